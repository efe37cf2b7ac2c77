"""
Registry Bot command line.

Commands:
    serve        run the HTTP API with uvicorn
    search       advanced search, print the listed company names
    payment      search and pay for a product for one company
    listing      legacy federal corporation listing for a name
    corporation  legacy detail record for one corporation id
    export       listing plus detail record for every row, as JSON lines
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn
from dotenv import load_dotenv
from tqdm import tqdm

from .api import create_app
from .config import Settings
from .errors import RegistryError
from .models import PaymentRequest, Product, SearchCriteria
from .service import RegistryService

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or os.environ.get("LOG_LEVEL", "INFO")).upper(),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()],
    )


def _criteria_from_args(args: argparse.Namespace) -> SearchCriteria:
    return SearchCriteria.from_dict({
        "query_word": args.query_word,
        "register_type_key": args.register_type,
        "business_type_selection": args.business_type,
        "status_key": args.status,
        "date_input": args.date,
        "search_operator": args.operator,
        "end_date": args.end_date,
    })


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_serve(settings: Settings, args: argparse.Namespace) -> int:
    port = args.port or settings.port
    logger.info(f"Listening on {args.host}:{port}")
    uvicorn.run(create_app(settings), host=args.host, port=port, log_level="info")
    return 0


def cmd_search(service: RegistryService, args: argparse.Namespace) -> int:
    outcome = service.search_companies(_criteria_from_args(args))
    if outcome.is_empty:
        logger.info("No results found")
        return 1
    _print_json({"company_names": outcome.company_names, "current_url": outcome.url})
    return 0


def cmd_payment(service: RegistryService, args: argparse.Namespace) -> int:
    request = PaymentRequest(
        criteria=_criteria_from_args(args),
        selected_company=args.company,
        product=Product.parse(args.product, "search_product"),
        email=args.email or service.settings.default_email,
    )
    current_url = service.open_payment_page(request)
    if current_url is None:
        logger.info("No results found")
        return 1
    _print_json({"current_url": current_url})
    return 0


def cmd_listing(service: RegistryService, args: argparse.Namespace) -> int:
    rows = service.list_registries(args.name, limit=args.limit)
    _print_json([row.to_dict() for row in rows])
    return 0


def cmd_corporation(service: RegistryService, args: argparse.Namespace) -> int:
    _print_json(service.get_corporation(args.corporation_id).to_dict())
    return 0


def cmd_export(service: RegistryService, args: argparse.Namespace) -> int:
    rows = service.list_registries(args.name, limit=args.limit)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    exported = 0
    failed = 0
    with output.open("w", encoding="utf-8") as f:
        with tqdm(rows, desc="Export", unit="corp") as pbar:
            for row in pbar:
                pbar.set_postfix_str(f"{row.business_name[:30]}...")
                try:
                    record = service.get_corporation(row.corporation_number)
                except RegistryError as e:
                    logger.warning(f"Skipping {row.corporation_number}: {e}")
                    failed += 1
                    continue
                line = {"listing": row.to_dict(), "corporation": record.to_dict()}
                f.write(json.dumps(line, ensure_ascii=False) + "\n")
                exported += 1

    logger.info(f"Export finished: {exported} exported, {failed} failed -> {output}")
    return 0 if failed == 0 else 2


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _add_search_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("query_word", help="Name or keyword to search for")
    parser.add_argument("--register-type", help="All, Corporations, Business Names or Partnerships")
    parser.add_argument("--business-type", help="Business type option text")
    parser.add_argument("--status", help="Active, Inactive or All")
    parser.add_argument("--date", help="Registration date, e.g. 'January 1, 2021'")
    parser.add_argument("--operator", help="On, Before, From or On, Between")
    parser.add_argument("--end-date", help="Second date for the Between operator")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Registry Bot - business registry search, purchase and extraction"
    )
    parser.add_argument("--env-file", help="Path to a .env file (default: ./.env)")
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Port (default: $PORT or 80)")

    # Search
    search_parser = subparsers.add_parser("search", help="Advanced search, list company names")
    _add_search_arguments(search_parser)

    # Payment
    payment_parser = subparsers.add_parser("payment", help="Search and pay for a product")
    _add_search_arguments(payment_parser)
    payment_parser.add_argument("--company", required=True, help="Company name as listed")
    payment_parser.add_argument("--product", required=True,
                                help="Profile Report, Document Copies or Certificate of Status")
    payment_parser.add_argument("--email", help="Delivery email (default: $DEFAULT_EMAIL)")

    # Listing
    listing_parser = subparsers.add_parser("listing", help="Legacy corporation listing")
    listing_parser.add_argument("name", help="Corporate name to search for")
    listing_parser.add_argument("--limit", type=int, help="Max. number of rows")

    # Corporation
    corporation_parser = subparsers.add_parser("corporation", help="Legacy corporation detail record")
    corporation_parser.add_argument("corporation_id", help="Corporation id")

    # Export
    export_parser = subparsers.add_parser("export", help="Listing plus detail records as JSON lines")
    export_parser.add_argument("name", help="Corporate name to search for")
    export_parser.add_argument("--limit", type=int, help="Max. number of corporations")
    export_parser.add_argument("--output", default="output/corporations.jsonl", help="Output file")

    return parser


COMMANDS = {
    "search": cmd_search,
    "payment": cmd_payment,
    "listing": cmd_listing,
    "corporation": cmd_corporation,
    "export": cmd_export,
}


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    load_dotenv(args.env_file)
    configure_logging(args.log_level)

    try:
        settings = Settings.from_env()
        if args.command == "serve":
            return cmd_serve(settings, args)
        return COMMANDS[args.command](RegistryService(settings), args)
    except RegistryError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
