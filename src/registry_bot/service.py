"""Request-level operations composed from the workflows and clients.

Both the HTTP layer and the CLI go through :class:`RegistryService`; neither
talks to the browser or the legacy pages directly.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

import httpx

from .config import BrowserConfig, Settings
from .errors import NoResultsError, ValidationError
from .extraction import LegacyRegistryClient
from .models import (
    ExtractedCorporationRecord,
    PaymentRequest,
    RegistryContact,
    ScrapedListingRow,
    SearchCriteria,
    SearchOutcome,
)
from .payment import PaymentWorkflow
from .relay import RegistryRelay
from .retry import run_in_session
from .search import SearchWorkflow
from .session import BrowserSession

logger = logging.getLogger(__name__)


class RegistryService:
    """Entry points for every registry operation.

    Args:
        settings: Process configuration.
        session_factory: Builds a fresh browser session per attempt.
        sleep: Used for settle delays and retry backoff.
        transport: Optional httpx transport for the legacy pages and the
            REST backend.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: Callable[[Optional[BrowserConfig]], BrowserSession] = BrowserSession,
        sleep: Callable[[float], None] = time.sleep,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.sleep = sleep
        self.transport = transport

    def _run(self, workflow: Callable[[BrowserSession], object], label: str):
        return run_in_session(
            workflow,
            browser=self.settings.browser,
            policy=self.settings.retry,
            session_factory=self.session_factory,
            sleep=self.sleep,
            label=label,
        )

    def _http_client(self) -> httpx.Client:
        return httpx.Client(
            transport=self.transport,
            timeout=httpx.Timeout(self.settings.http_timeout_seconds),
            follow_redirects=True,
        )

    # ------------------------------------------------------------------
    # Browser workflows
    # ------------------------------------------------------------------

    def test_browser(self) -> str:
        """Open the configured test page and return its title."""

        def attempt(session: BrowserSession) -> str:
            session.goto(self.settings.test_url)
            title = session.title
            logger.info(f"[test_browser] Page title: {title}")
            return title

        return self._run(attempt, "test-chrome")

    def search_companies(self, criteria: SearchCriteria) -> SearchOutcome:
        """Run a search and list the company names it found."""

        def attempt(session: BrowserSession) -> SearchOutcome:
            workflow = SearchWorkflow(
                criteria, self.settings.search_url, self.settings.timings, self.sleep
            )
            return workflow.list_companies(session)

        return self._run(attempt, f"search {criteria.query_word!r}")

    def open_payment_page(self, request: PaymentRequest) -> Optional[str]:
        """Search, then buy the requested product for the selected company.

        Both workflows share one browser per attempt, so a retry starts over
        from the search.

        Returns:
            The URL of the page after submitting payment, or ``None`` when the
            search found nothing.
        """

        def attempt(session: BrowserSession) -> Optional[str]:
            search = SearchWorkflow(
                request.criteria, self.settings.search_url, self.settings.timings, self.sleep
            )
            outcome = search.run(session)
            if outcome.is_empty:
                return None
            payment = PaymentWorkflow(
                request, self.settings.payment, self.settings.timings, self.sleep
            )
            return payment.run(session)

        return self._run(attempt, f"payment for {request.selected_company!r}")

    # ------------------------------------------------------------------
    # Legacy pages
    # ------------------------------------------------------------------

    def list_registries(self, keyword: str, limit: Optional[int] = None) -> List[ScrapedListingRow]:
        with LegacyRegistryClient(self.settings.legacy_base_url, self._http_client()) as client:
            rows = client.search_listing(keyword, limit=limit)
        logger.info(f"[list_registries] {len(rows)} rows for {keyword!r}")
        return rows

    def get_corporation(self, corporation_id: str) -> ExtractedCorporationRecord:
        with LegacyRegistryClient(self.settings.legacy_base_url, self._http_client()) as client:
            return client.fetch_corporation(corporation_id)

    # ------------------------------------------------------------------
    # Relay
    # ------------------------------------------------------------------

    def request_registry(self, contact: RegistryContact) -> None:
        if not contact.corporate_number:
            raise ValidationError("missing field 'corporate_number'")
        with RegistryRelay(self.settings.registry_api_url, self._http_client()) as relay:
            relay.request_copies(contact)

    def request_registry_by_name(self, search_keyword: str, contact: RegistryContact) -> None:
        """Relay a request for the first corporation the listing finds."""
        rows = self.list_registries(search_keyword, limit=1)
        if not rows:
            logger.info(f"[request_registry_by_name] No corporation listed for {search_keyword!r}")
            raise NoResultsError()
        with RegistryRelay(self.settings.registry_api_url, self._http_client()) as relay:
            relay.request_copies(contact, corporate_number=rows[0].corporation_number)
