"""FastAPI application exposing the registry operations.

Every route except ``/healthz`` requires the ``Authorization`` header to carry
the configured token, either bare or as ``Bearer <token>``. Endpoints are
plain ``def`` functions, so FastAPI runs each one in its worker threadpool and
concurrent requests each get their own browser.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings
from .errors import (
    BrowserError,
    ExtractionError,
    FetchError,
    LocatorTimeout,
    NoResultsError,
    RegistryError,
    RelayError,
    SessionError,
    ValidationError,
)
from .models import PaymentRequest, RegistryContact, SearchCriteria
from .service import RegistryService

logger = logging.getLogger(__name__)

PUBLIC_PATHS = {"/healthz"}

NO_RESULTS_BODY = {"error": "No results found"}

ERROR_STATUS = {
    ValidationError: 422,
    NoResultsError: 404,
    ExtractionError: 500,
    FetchError: 502,
    RelayError: 502,
    SessionError: 500,
    LocatorTimeout: 500,
    BrowserError: 500,
    RegistryError: 500,
}


def token_matches(header: Optional[str], token: str) -> bool:
    """Accept ``<token>`` or ``Bearer <token>``."""
    if not header:
        return False
    if header == token:
        return True
    scheme, _, value = header.partition(" ")
    return scheme.lower() == "bearer" and value.strip() == token


def create_app(settings: Settings, service: Optional[RegistryService] = None) -> FastAPI:
    """Build the application for *settings*.

    Args:
        settings: Process configuration; the token gate uses ``settings.token``.
        service: Service to dispatch to. Built from *settings* when omitted.
    """
    if service is None:
        service = RegistryService(settings)
    app = FastAPI(title="Registry Bot API")

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    @app.middleware("http")
    async def require_token(request: Request, call_next):
        if request.url.path not in PUBLIC_PATHS and not token_matches(
            request.headers.get("authorization"), settings.token
        ):
            logger.warning(f"[require_token] Rejected {request.method} {request.url.path}")
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})
        return await call_next(request)

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def _handler(status_code: int):
        async def handle(request: Request, exc: RegistryError) -> JSONResponse:
            log = logger.warning if status_code < 500 else logger.error
            log(f"[{request.url.path}] {type(exc).__name__}: {exc}")
            return JSONResponse(status_code=status_code, content={"error": str(exc)})
        return handle

    for exc_class, status_code in ERROR_STATUS.items():
        app.add_exception_handler(exc_class, _handler(status_code))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"[{request.url.path}] Unhandled {type(exc).__name__}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.get("/healthz")
    def healthz() -> str:
        return "Healthy!"

    @app.get("/api/test-chrome")
    def test_chrome() -> Dict[str, str]:
        return {"title": service.test_browser()}

    @app.post("/api/payment-page")
    def payment_page(payload: Dict[str, Any] = Body(...)):
        request = PaymentRequest.from_dict(payload, settings.default_email)
        current_url = service.open_payment_page(request)
        if current_url is None:
            return JSONResponse(status_code=404, content=NO_RESULTS_BODY)
        return {"current_url": current_url}

    @app.post("/api/search-companies")
    def search_companies(payload: Dict[str, Any] = Body(...)):
        outcome = service.search_companies(SearchCriteria.from_dict(payload))
        if outcome.is_empty:
            return JSONResponse(status_code=404, content=NO_RESULTS_BODY)
        return {"company_names": outcome.company_names, "current_url": outcome.url}

    @app.get("/api/registries/{search_keyword}")
    def registries(search_keyword: str):
        return [row.to_dict() for row in service.list_registries(search_keyword)]

    @app.post("/api/registry/request")
    def registry_request(payload: Dict[str, Any] = Body(...)) -> str:
        service.request_registry(RegistryContact.from_dict(payload, settings.default_email))
        return "success"

    @app.post("/api/registry/request_by_name")
    def registry_request_by_name(payload: Dict[str, Any] = Body(...)) -> str:
        search_keyword = payload.get("search_keyword")
        if not isinstance(search_keyword, str) or not search_keyword.strip():
            raise ValidationError("missing field 'search_keyword'")
        contact = RegistryContact.from_dict(payload, settings.default_email)
        service.request_registry_by_name(search_keyword, contact)
        return "success"

    @app.get("/api/corporation/{corporation_id}")
    def corporation(corporation_id: str):
        return service.get_corporation(corporation_id).to_dict()

    return app
