"""Payment workflow: from a search result listing to a submitted payment.

The workflow picks up on the listing page a :class:`SearchWorkflow` left
behind. It is never resumed part-way: any failure aborts the attempt and the
retry driver starts over with a fresh browser, search included.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from .config import PaymentSettings, WorkflowTimings
from .locator import Locator, settle
from .models import PaymentRequest, Product
from .session import BrowserSession

logger = logging.getLogger(__name__)


class PaymentState(Enum):
    COMPANY_SELECTED = "CompanySelected"
    SEARCH_PRODUCTS_PANEL_OPEN = "SearchProductsPanelOpen"
    SOURCE_MINISTRY_SELECTED = "SourceMinistrySelected"
    PRODUCT_TYPE_SELECTED = "ProductTypeSelected"
    CONTINUED = "Continued"
    PRODUCT_SPECIFIC_BRANCH = "ProductSpecificBranch"
    CREDIT_CARD_CHOSEN = "CreditCardChosen"
    REVIEW_CONFIRMED = "ReviewConfirmed"
    PAYMENT_FORM_FILLED = "PaymentFormFilled"
    PAYMENT_SUBMITTED = "PaymentSubmitted"


EMAIL_INPUTS = "//input[@type='email']"
REVIEW_CONFIRM_BUTTON = "(//div[@class='appBoxChildren appBlockChildren'])[last()]/button[1]"
MAKE_PAYMENT_BUTTON = "//button[@id='submit_btn']"
SUBMIT_PAYMENT_BUTTON = "//button[@id='submitButton']"

CARD_FIELDS = (
    ("//input[@name='trnCardOwner']", "card_name"),
    ("//input[@name='trnCardNumber']", "card_number"),
    ("//input[@id='trnExpMonth']", "card_month"),
    ("//input[@id='trnExpYear']", "card_year"),
    ("//input[@name='trnCardCvd']", "card_cvv"),
)

# Per product: the option to tick first (if any) and the action to submit.
PRODUCT_BRANCHES = {
    Product.PROFILE_REPORT: ("Current Report", "Submit"),
    Product.DOCUMENT_COPIES: ("Select all Documents", "Request Documents"),
    Product.CERTIFICATE_OF_STATUS: (None, "Submit"),
}


class PaymentWorkflow:
    """Walks the checkout for one :class:`PaymentRequest`."""

    def __init__(
        self,
        request: PaymentRequest,
        payment: PaymentSettings,
        timings: Optional[WorkflowTimings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.request = request
        self.payment = payment
        self.timings = timings or WorkflowTimings()
        self.sleep = sleep
        self.state: Optional[PaymentState] = None
        self.history: List[PaymentState] = []

    def _locator(self, expression: str, timeout: Optional[float] = None) -> Locator:
        return Locator(
            expression,
            timeout=self.timings.default_timeout if timeout is None else timeout,
            poll_interval=self.timings.poll_interval,
        )

    def _text(self, tag: str, text: str) -> Locator:
        return Locator.containing_text(
            tag, text,
            timeout=self.timings.default_timeout,
            poll_interval=self.timings.poll_interval,
        )

    def _enter(self, state: PaymentState) -> None:
        self.state = state
        self.history.append(state)
        logger.info(f"[PaymentWorkflow] -> {state.value}")

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, session: BrowserSession) -> str:
        """Complete the checkout and return the URL of the final page.

        Raises:
            LocatorTimeout: If an expected element never appeared.
        """
        driver = session.driver
        self._choose_product(driver)
        self._product_branch(driver)
        self._pay(driver)
        return session.current_url

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _choose_product(self, driver) -> None:
        self._text("span", self.request.selected_company).click(driver)
        self._enter(PaymentState.COMPANY_SELECTED)

        self._text("span", "Request Search Products").click(driver)
        self._enter(PaymentState.SEARCH_PRODUCTS_PANEL_OPEN)

        self._text("label", "from the Ministry").click(driver)
        self._enter(PaymentState.SOURCE_MINISTRY_SELECTED)

        self._text("label", self.request.product.value).click(driver)
        self._enter(PaymentState.PRODUCT_TYPE_SELECTED)

        self._text("span", "Continue").click(driver)
        self._enter(PaymentState.CONTINUED)

    def _product_branch(self, driver) -> None:
        option, action = PRODUCT_BRANCHES[self.request.product]
        self._enter(PaymentState.PRODUCT_SPECIFIC_BRANCH)
        logger.info(f"[PaymentWorkflow._product_branch] {self.request.product.value}")

        if option is not None:
            self._text("label", option).click(driver)
            # Email inputs are injected after the option animates in.
            settle(self.timings.product_option_settle, f"'{option}' form", self.sleep)

        self._fill_emails(driver)
        self._text("span", action).click(driver)

    def _fill_emails(self, driver) -> int:
        inputs = self._locator(EMAIL_INPUTS, self.timings.email_input_timeout).all(driver)
        for email_input in inputs:
            email_input.send_keys(self.request.email)
        logger.debug(f"[PaymentWorkflow._fill_emails] Filled {len(inputs)} email inputs")
        return len(inputs)

    def _pay(self, driver) -> None:
        self._text("option", "Credit Card").click(driver)
        self._enter(PaymentState.CREDIT_CARD_CHOSEN)
        settle(self.timings.payment_method_settle, "payment method", self.sleep)

        self._locator(REVIEW_CONFIRM_BUTTON).click(driver)
        self._enter(PaymentState.REVIEW_CONFIRMED)

        self._locator(MAKE_PAYMENT_BUTTON).click(driver)
        # Redirect to the hosted payment form.
        settle(self.timings.make_payment_settle, "hosted payment form", self.sleep)

        for expression, attr in CARD_FIELDS:
            self._locator(expression).send_keys(driver, getattr(self.payment, attr))
        self._enter(PaymentState.PAYMENT_FORM_FILLED)

        self._locator(SUBMIT_PAYMENT_BUTTON).click(driver)
        self._enter(PaymentState.PAYMENT_SUBMITTED)
