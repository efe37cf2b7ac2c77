"""Search workflow for the registry's advanced search UI.

Flow:
    1. Landing: open the search page, set the timezone cookie
    2. Type the query word (long wait, the page warms up slowly)
    3. Open the advanced panel and pick the register type
    4. Optional filters: business type, status, registration date, operator,
       end date (Between only, confirmed with Enter)
    5. Submit, then probe for the "no results" marker
    6. Normalise the page size to 200 rows and return the listing URL

Every transition waits on a :class:`~registry_bot.locator.Locator`; the
settle delays are the documented exceptions.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from selenium.webdriver.common.keys import Keys

from .config import WorkflowTimings
from .locator import Locator, settle
from .models import RegisterType, SearchCriteria, SearchOperator, SearchOutcome
from .session import BrowserSession

logger = logging.getLogger(__name__)


class SearchState(Enum):
    LANDING = "Landing"
    QUERY_ENTERED = "QueryEntered"
    ADVANCED_PANEL_OPEN = "AdvancedPanelOpen"
    REGISTER_TYPE_SELECTED = "RegisterTypeSelected"
    BUSINESS_TYPE_SELECTED = "BusinessTypeSelected"
    STATUS_SELECTED = "StatusSelected"
    DATE_ENTERED = "DateEntered"
    OPERATOR_SELECTED = "OperatorSelected"
    END_DATE_ENTERED = "EndDateEntered"
    SUBMITTED = "Submitted"
    NO_RESULTS = "NoResults"
    RESULTS_LISTED = "ResultsListed"


TIMEZONE_COOKIE = ("x-catalyst-timezone", "America/Toronto")
PAGE_SIZE = 200

QUERY_INPUT = "//input[@name='QueryString']"
ADVANCED_BUTTON = "//a[@aria-label=' Advanced']"
REGISTRATION_DATE_INPUT = "//input[@name='RegistrationDate']"
END_DATE_INPUT = "//input[@name='RegistrationDate2']"
SEARCH_BUTTON = (
    "//div[@class='appBox appBlock registerItemSearch-tabs-criteriaAndButtons-buttonPad "
    "appButtonPad appSearchButtonPad appNotReadOnly appIndex1 appChildCount3']/div/button"
)
NO_RESULTS_MARKER = "//div[@id='appSearchNoResults']"
PAGE_SIZE_OPTION = "//div[@class='appSearchPageSize']/select/option[contains(text(), '{size}')]"
RESULT_LINKS = (
    "//a[@class='registerItemSearch-results-page-line-ItemBox-resultLeft-viewMenu "
    "appMenu appMenuItem appMenuDepth0 appItemSearchResult noSave "
    "viewInstanceUpdateStackPush appReadOnly appIndex0']"
)


class SearchWorkflow:
    """Drives one search through the advanced search form.

    The instance records the states it passed through in ``history`` so a
    failed attempt can be diagnosed from the logs.
    """

    def __init__(
        self,
        criteria: SearchCriteria,
        search_url: str,
        timings: Optional[WorkflowTimings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.criteria = criteria
        self.search_url = search_url
        self.timings = timings or WorkflowTimings()
        self.sleep = sleep
        self.state: Optional[SearchState] = None
        self.history: List[SearchState] = []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _locator(self, expression: str, timeout: Optional[float] = None) -> Locator:
        return Locator(
            expression,
            timeout=self.timings.default_timeout if timeout is None else timeout,
            poll_interval=self.timings.poll_interval,
        )

    def _option(self, text: str) -> Locator:
        return Locator.containing_text(
            "option", text,
            timeout=self.timings.default_timeout,
            poll_interval=self.timings.poll_interval,
        )

    def _enter(self, state: SearchState) -> None:
        self.state = state
        self.history.append(state)
        logger.info(f"[SearchWorkflow] -> {state.value}")

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def run(self, session: BrowserSession) -> SearchOutcome:
        """Run the search and return the outcome.

        Raises:
            LocatorTimeout: If an expected element never appeared.
        """
        driver = session.driver
        self._land(session)
        self._fill_query(driver)
        self._fill_filters(driver)
        self._submit(driver)

        if self._has_no_results(driver):
            self._enter(SearchState.NO_RESULTS)
            logger.info(f"[SearchWorkflow.run] No results for {self.criteria.query_word!r}")
            return SearchOutcome.no_results()

        self._normalise_page_size(driver)
        self._enter(SearchState.RESULTS_LISTED)
        return SearchOutcome.listed(session.current_url)

    def list_companies(self, session: BrowserSession) -> SearchOutcome:
        """Run the search and also collect the company names on the listing."""
        outcome = self.run(session)
        if outcome.is_empty:
            return outcome

        links = Locator(RESULT_LINKS, timeout=self.timings.default_timeout,
                        poll_interval=self.timings.poll_interval).all(session.driver)
        names = [link.text for link in links]
        logger.info(f"[SearchWorkflow.list_companies] {len(names)} companies listed")
        return SearchOutcome.listed(outcome.url, names)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _land(self, session: BrowserSession) -> None:
        self._enter(SearchState.LANDING)
        session.goto(self.search_url)
        session.add_cookie(*TIMEZONE_COOKIE, url=self.search_url)
        logger.info(f"[SearchWorkflow] Current URL: {session.current_url}")

    def _fill_query(self, driver) -> None:
        self._locator(QUERY_INPUT, self.timings.query_entry_timeout).send_keys(
            driver, self.criteria.query_word
        )
        self._enter(SearchState.QUERY_ENTERED)

        self._locator(ADVANCED_BUTTON).click(driver)
        self._enter(SearchState.ADVANCED_PANEL_OPEN)

    def _fill_filters(self, driver) -> None:
        criteria = self.criteria

        register_type = criteria.register_type or RegisterType.ALL
        self._option(register_type.label).click(driver)
        self._enter(SearchState.REGISTER_TYPE_SELECTED)
        # Business-type options are re-rendered for the chosen register.
        settle(self.timings.register_type_settle, "business type options", self.sleep)

        if criteria.business_type is not None:
            self._option(criteria.business_type).click(driver)
            self._enter(SearchState.BUSINESS_TYPE_SELECTED)

        if criteria.status is not None:
            self._option(criteria.status.label).click(driver)
            self._enter(SearchState.STATUS_SELECTED)

        if criteria.registration_date is not None:
            self._locator(REGISTRATION_DATE_INPUT).send_keys(driver, criteria.registration_date)
            self._enter(SearchState.DATE_ENTERED)

        if criteria.search_operator is not None:
            self._option(criteria.search_operator.label).click(driver)
            self._enter(SearchState.OPERATOR_SELECTED)

        if criteria.search_operator is SearchOperator.BETWEEN:
            # The second date field fades in after the operator changes.
            settle(self.timings.between_operator_settle, "end date field", self.sleep)
            end_date_input = self._locator(END_DATE_INPUT).send_keys(
                driver, criteria.effective_end_date
            )
            end_date_input.send_keys(Keys.ENTER)
            self._enter(SearchState.END_DATE_ENTERED)

    def _submit(self, driver) -> None:
        self._locator(SEARCH_BUTTON).click(driver)
        self._enter(SearchState.SUBMITTED)
        settle(self.timings.search_submit_settle, "search results", self.sleep)

    def _has_no_results(self, driver) -> bool:
        return self._locator(NO_RESULTS_MARKER, self.timings.no_results_probe_timeout).exists(driver)

    def _normalise_page_size(self, driver) -> None:
        self._locator(PAGE_SIZE_OPTION.format(size=PAGE_SIZE)).click(driver)
        # The listing re-renders in place with no completion marker.
        settle(self.timings.page_size_settle, "listing re-render", self.sleep)
