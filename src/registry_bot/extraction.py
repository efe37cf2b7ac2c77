"""HTML extraction for the legacy federal corporation pages.

Two page shapes are handled, both fetched with a plain HTTP client:

- the paginated search listing (``fdrlCrpSrch.html``), one
  :class:`~registry_bot.models.ScrapedListingRow` per result row;
- the corporation detail page (``fdrlCrpDtls.html``), one
  :class:`~registry_bot.models.ExtractedCorporationRecord`.

The detail page has no stable ids, so its sections are addressed by their
position among the ``div.col-sm-12`` blocks. The positions live in
:data:`DETAIL_SECTIONS`; a markup change upstream means updating that table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import httpx
from bs4 import BeautifulSoup, NavigableString, Tag

from .errors import ExtractionError, FetchError
from .models import (
    DirectorEntry,
    DirectorSection,
    ExtractedCorporationRecord,
    FilingEntry,
    HistorySection,
    LabeledList,
    LabeledValue,
    PlainValue,
    ScrapedListingRow,
)

logger = logging.getLogger(__name__)


LISTING_PATH = "fdrlCrpSrch.html"
DETAIL_PATH = "fdrlCrpDtls.html"

CORPORATE_NAME_LABEL = "Corporate Name"
FILING_STATUS_LABEL = "Status of Annual Filings"


@dataclass(frozen=True)
class DetailSection:
    label: str
    index: int


CORPORATE_DETAILS = DetailSection("Corporate details", 2)
ADDRESS = DetailSection("Registered office address", 3)
DIRECTORS = DetailSection("Directors", 5)
ANNUAL_FILINGS = DetailSection("Annual filings", 7)
CORPORATE_HISTORY = DetailSection("Corporate history", 8)

DETAIL_SECTIONS: Tuple[DetailSection, ...] = (
    CORPORATE_DETAILS,
    ADDRESS,
    DIRECTORS,
    ANNUAL_FILINGS,
    CORPORATE_HISTORY,
)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def _joined(el: Tag) -> str:
    """Concatenate the trimmed text fragments of *el*."""
    return "".join(s.strip() for s in el.strings).strip()


def _collapsed(el: Tag) -> str:
    """Text of *el* with runs of whitespace collapsed to one space."""
    return " ".join(el.get_text(" ").split())


def _text_before_break(el: Tag) -> str:
    """Trimmed text of *el* up to its first ``<br>``."""
    parts = []
    for node in el.descendants:
        if isinstance(node, Tag) and node.name == "br":
            break
        if type(node) is NavigableString:
            parts.append(node.strip())
    return "".join(parts).strip()


def _require(el: Optional[Tag], what: str, section: DetailSection) -> Tag:
    if el is None:
        raise ExtractionError(f"missing {what}", section=section.label, index=section.index)
    return el


def _after_colon(text: str, field_name: str) -> str:
    """Second colon-separated segment of *text*, trimmed."""
    parts = text.split(":")
    if len(parts) < 2:
        raise ExtractionError(f"expected 'Label: value' for {field_name}, got {text!r}")
    return parts[1].strip()


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

def parse_listing_row(row: Tag) -> ScrapedListingRow:
    """Parse one ``div.col-md-11`` result row."""
    spans = row.find_all("span")
    if len(spans) < 4:
        raise ExtractionError(f"listing row has {len(spans)} spans, expected 4")

    anchor = spans[0].find("a")
    if anchor is None:
        raise ExtractionError("listing row has no business name link")

    return ScrapedListingRow(
        business_name=anchor.get_text(strip=True),
        status=_after_colon(spans[1].get_text(strip=True), "status"),
        corporation_number=_after_colon(spans[2].get_text(strip=True), "corporation number").replace("-", ""),
        business_number=_after_colon(spans[3].get_text(strip=True), "business number"),
    )


def parse_listing_page(html: str) -> Tuple[List[ScrapedListingRow], bool]:
    """Parse a listing page.

    Returns:
        The rows on the page and whether a "next page" link is present.
    """
    soup = BeautifulSoup(html, "html.parser")
    rows = [parse_listing_row(row) for row in soup.select("div.col-md-11")]
    has_next = soup.select_one('a[rel="next"]') is not None
    return rows, has_next


# ---------------------------------------------------------------------------
# Detail sections
# ---------------------------------------------------------------------------

def _section(sections: List[Tag], part: DetailSection) -> Tag:
    if part.index >= len(sections):
        raise ExtractionError(
            f"page has only {len(sections)} sections",
            section=part.label,
            index=part.index,
        )
    return sections[part.index]


def _label_of(row: Tag, part: DetailSection) -> str:
    return _joined(_require(row.find("b"), "label <b>", part))


def parse_corp_details(section: Tag) -> List[LabeledValue]:
    details = []
    for row in section.select("div.data-display-group"):
        label = _label_of(row, CORPORATE_DETAILS)
        value_el = _require(row.select_one("div.col-sm-8"), f"value for {label!r}", CORPORATE_DETAILS)
        if label == CORPORATE_NAME_LABEL:
            value = _text_before_break(value_el)
        else:
            value = _joined(value_el)
        details.append(LabeledValue(label, value))
    return details


def parse_address(section: Tag) -> str:
    block = _require(section.find("div"), "address block", ADDRESS)
    return ", ".join(block.stripped_strings)


def parse_directors(section: Tag) -> DirectorSection:
    counts_group = _require(section.select_one("div.inline-group"), "director counts", DIRECTORS)
    counts = []
    for row in counts_group.find_all("div"):
        label_el = row.find("b")
        if label_el is None:
            continue
        value_el = _require(row.find("span"), f"count for {label_el.get_text(strip=True)!r}", DIRECTORS)
        counts.append(LabeledValue(label_el.get_text(strip=True), value_el.get_text(strip=True)))

    directors = []
    for item in section.select("li.full-width"):
        fragments = list(item.stripped_strings)
        if not fragments:
            raise ExtractionError("empty director entry", section=DIRECTORS.label, index=DIRECTORS.index)
        directors.append(DirectorEntry(name=fragments[0], address=", ".join(fragments[1:])))

    return DirectorSection(counts=counts, directors=directors)


def _split_filing_item(text: str) -> LabeledValue:
    """``"2023 - Filed"`` -> label and value; further segments are dropped."""
    parts = text.split("-")
    if len(parts) < 2:
        raise ExtractionError(
            f"filing status item {text!r} has no '-' separator",
            section=ANNUAL_FILINGS.label,
            index=ANNUAL_FILINGS.index,
        )
    return LabeledValue(parts[0].strip(), parts[1].strip())


def parse_annual_filings(section: Tag) -> List[FilingEntry]:
    entries = []
    for row in section.select("div.data-display-group"):
        label = _label_of(row, ANNUAL_FILINGS)
        value_el = _require(row.select_one("div.col-sm-9"), f"value for {label!r}", ANNUAL_FILINGS)
        if label == FILING_STATUS_LABEL:
            items = [_split_filing_item(_joined(li)) for li in value_el.select("li")]
            entries.append(FilingEntry(label, LabeledList(items)))
        else:
            entries.append(FilingEntry(label, PlainValue(_collapsed(value_el))))
    return entries


def parse_corp_history(section: Tag) -> HistorySection:
    table = _require(section.find("table"), "name history table", CORPORATE_HISTORY)
    thead = _require(table.find("thead"), "name history heading", CORPORATE_HISTORY)
    cells = [_collapsed(td) for td in table.find_all("td")]
    if len(cells) % 2:
        raise ExtractionError(
            f"name history has an odd number of cells ({len(cells)})",
            section=CORPORATE_HISTORY.label,
            index=CORPORATE_HISTORY.index,
        )
    name_history = [LabeledValue(cells[i], cells[i + 1]) for i in range(0, len(cells), 2)]

    panel = _require(section.select_one("section.panel-info"), "history panel", CORPORATE_HISTORY)
    header = _require(panel.find("header"), "history panel header", CORPORATE_HISTORY)
    body = _require(panel.select_one("div.panel-body"), "history panel body", CORPORATE_HISTORY)
    panel_rows = []
    for row in body.select("div.data-display-group"):
        label = _label_of(row, CORPORATE_HISTORY)
        value_el = _require(row.select_one("div.col-sm-6"), f"value for {label!r}", CORPORATE_HISTORY)
        panel_rows.append(LabeledValue(label, _joined(value_el)))

    return HistorySection(
        name_history_title=_joined(thead),
        name_history=name_history,
        panel_title=_joined(header),
        panel_rows=panel_rows,
    )


def parse_corporation_detail(html: str) -> ExtractedCorporationRecord:
    """Parse a corporation detail page.

    Raises:
        ExtractionError: If a section or a required element is missing.
    """
    soup = BeautifulSoup(html, "html.parser")
    sections = soup.select("div.col-sm-12")

    return ExtractedCorporationRecord(
        corp_details=parse_corp_details(_section(sections, CORPORATE_DETAILS)),
        address_details=parse_address(_section(sections, ADDRESS)),
        director_details=parse_directors(_section(sections, DIRECTORS)),
        annual_filings_details=parse_annual_filings(_section(sections, ANNUAL_FILINGS)),
        corp_history_details=parse_corp_history(_section(sections, CORPORATE_HISTORY)),
    )


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

class LegacyRegistryClient:
    """Fetches and parses the legacy federal corporation pages."""

    def __init__(self, base_url: str, client: Optional[httpx.Client] = None, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=httpx.Timeout(timeout), follow_redirects=True)

    def _get(self, path: str, params: dict) -> str:
        url = f"{self.base_url}/{path}"
        try:
            response = self.client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(f"Could not fetch {url}: {exc}") from exc
        return response.text

    def listing_pages(self, corporate_name: str) -> Iterable[Tuple[int, List[ScrapedListingRow], bool]]:
        """Yield ``(page_number, rows, has_next)`` until the last page."""
        page = 0
        while True:
            logger.info(f"[LegacyRegistryClient.listing_pages] Extracting page {page}")
            html = self._get(LISTING_PATH, {
                "p": page, "crpNm": corporate_name, "crpNmbr": "", "bsNmbr": "",
                "cProv": "", "cStatus": "", "cAct": "",
            })
            rows, has_next = parse_listing_page(html)
            yield page, rows, has_next
            if not has_next:
                return
            page += 1

    def search_listing(self, corporate_name: str, limit: Optional[int] = None) -> List[ScrapedListingRow]:
        """Collect listing rows across pages, stopping at *limit* rows."""
        rows: List[ScrapedListingRow] = []
        if limit is not None and limit <= 0:
            return rows
        for _, page_rows, _ in self.listing_pages(corporate_name):
            rows.extend(page_rows)
            if limit is not None and len(rows) >= limit:
                return rows[:limit]
        return rows

    def detail_params(self, corporation_id: str) -> dict:
        return {
            "p": 0, "corpId": corporation_id, "V_TOKEN": "null", "crpNm": "",
            "crpNmbr": "", "bsNmbr": "", "cProv": "", "cStatus": "", "cAct": "",
        }

    def fetch_corporation(self, corporation_id: str) -> ExtractedCorporationRecord:
        logger.info(f"[LegacyRegistryClient.fetch_corporation] corpId={corporation_id}")
        html = self._get(DETAIL_PATH, self.detail_params(corporation_id))
        return parse_corporation_detail(html)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> LegacyRegistryClient:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()
