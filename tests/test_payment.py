"""
Tests for payment.py - product branches and the card form.
"""

import pytest

from registry_bot.locator import Locator
from registry_bot.models import PaymentRequest, Product, SearchCriteria
from registry_bot.payment import (
    CARD_FIELDS,
    EMAIL_INPUTS,
    MAKE_PAYMENT_BUTTON,
    REVIEW_CONFIRM_BUTTON,
    SUBMIT_PAYMENT_BUTTON,
    PaymentState,
    PaymentWorkflow,
)

from conftest import FakeDriver, ScriptedSession


def label(text):
    return Locator.containing_text("label", text).expression


def span(text):
    return Locator.containing_text("span", text).expression


def make_request(product, email="a@example.com"):
    return PaymentRequest(
        criteria=SearchCriteria("Acme"),
        selected_company="ACME INC.",
        product=product,
        email=email,
    )


@pytest.fixture
def run_payment(payment_settings, timings, recording_sleep):
    """Runs a PaymentWorkflow on a fresh FakeDriver; returns (workflow, driver)."""
    def runner(product, email_inputs=1):
        driver = FakeDriver(elements={EMAIL_INPUTS: [""] * email_inputs})
        workflow = PaymentWorkflow(make_request(product), payment_settings, timings, recording_sleep)
        with ScriptedSession(driver) as session:
            session.goto("https://registry.example.com/results")
            result = workflow.run(session)
        return workflow, driver, result
    return runner


class TestProductBranches:
    """Each product takes its own path through ProductSpecificBranch."""

    def test_certificate_of_status_skips_options(self, run_payment):
        """Certificate of Status: no 'Current Report' or 'Select all Documents'."""
        workflow, driver, _ = run_payment(Product.CERTIFICATE_OF_STATUS)
        clicked = driver.clicked()
        assert label("Current Report") not in clicked
        assert label("Select all Documents") not in clicked
        assert span("Submit") in clicked
        assert driver.typed()[EMAIL_INPUTS] == "a@example.com"

    def test_profile_report_branch(self, run_payment, recording_sleep, timings):
        _, driver, _ = run_payment(Product.PROFILE_REPORT)
        clicked = driver.clicked()
        assert clicked.index(label("Current Report")) < clicked.index(span("Submit"))
        assert timings.product_option_settle in recording_sleep.calls

    def test_document_copies_branch(self, run_payment):
        _, driver, _ = run_payment(Product.DOCUMENT_COPIES)
        clicked = driver.clicked()
        assert label("Select all Documents") in clicked
        assert span("Request Documents") in clicked
        assert span("Submit") not in clicked

    def test_every_email_input_filled(self, run_payment):
        _, driver, _ = run_payment(Product.CERTIFICATE_OF_STATUS, email_inputs=3)
        filled = [a for a in driver.actions if a[0] == "send_keys" and a[1] == EMAIL_INPUTS]
        assert len(filled) == 3


class TestCheckout:
    """Tests for the common checkout after the product branch."""

    def test_state_sequence(self, run_payment):
        workflow, _, _ = run_payment(Product.PROFILE_REPORT)
        assert workflow.history == list(PaymentState)

    def test_product_chosen_before_payment(self, run_payment):
        _, driver, _ = run_payment(Product.PROFILE_REPORT)
        clicked = driver.clicked()
        assert clicked[:5] == [
            span("ACME INC."),
            span("Request Search Products"),
            label("from the Ministry"),
            label("Profile Report"),
            span("Continue"),
        ]
        assert clicked[-3:] == [REVIEW_CONFIRM_BUTTON, MAKE_PAYMENT_BUTTON, SUBMIT_PAYMENT_BUTTON]

    def test_card_fields_from_settings(self, run_payment, payment_settings):
        _, driver, _ = run_payment(Product.CERTIFICATE_OF_STATUS)
        typed = driver.typed()
        for expression, attr in CARD_FIELDS:
            assert typed[expression] == getattr(payment_settings, attr)

    def test_returns_final_url(self, run_payment):
        _, _, result = run_payment(Product.CERTIFICATE_OF_STATUS)
        assert result == "https://registry.example.com/results"
