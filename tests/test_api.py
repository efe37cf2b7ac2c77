"""
Tests for api.py - token gate, routing and error-to-status mapping.

The service is a MagicMock so no browser or HTTP backend is involved.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from selenium.common.exceptions import ElementClickInterceptedException

from registry_bot.api import create_app, token_matches
from registry_bot.errors import (
    BrowserError,
    ExtractionError,
    FetchError,
    LocatorTimeout,
    NoResultsError,
    RelayError,
)
from registry_bot.models import (
    PaymentRequest,
    Product,
    ScrapedListingRow,
    SearchCriteria,
    SearchOutcome,
)

from conftest import detail_page_html

AUTH = {"Authorization": "Bearer test-token"}

PAYMENT_BODY = {
    "search_business_params": {"query_word": "Acme", "register_type_key": "Corporations"},
    "selected_company": "ACME INC.",
    "search_product": "Certificate of Status",
}


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def client(settings, service):
    return TestClient(create_app(settings, service))


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class TestTokenGate:
    """Tests for the Authorization check."""

    def test_token_matches(self):
        assert token_matches("test-token", "test-token")
        assert token_matches("Bearer test-token", "test-token")
        assert token_matches("bearer test-token", "test-token")
        assert not token_matches("Bearer other", "test-token")
        assert not token_matches(None, "test-token")

    def test_missing_token_rejected(self, client):
        response = client.get("/api/test-chrome")
        assert response.status_code == 401

    def test_wrong_token_rejected(self, client, service):
        response = client.get("/api/test-chrome", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        service.test_browser.assert_not_called()

    def test_bare_token_accepted(self, client, service):
        service.test_browser.return_value = "Example Domain"
        response = client.get("/api/test-chrome", headers={"Authorization": "test-token"})
        assert response.status_code == 200
        assert response.json() == {"title": "Example Domain"}

    def test_healthz_is_public(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == "Healthy!"


# ---------------------------------------------------------------------------
# Browser routes
# ---------------------------------------------------------------------------

class TestPaymentPage:

    def test_success(self, client, service):
        service.open_payment_page.return_value = "https://registry.example.com/receipt"
        response = client.post("/api/payment-page", json=PAYMENT_BODY, headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"current_url": "https://registry.example.com/receipt"}
        request = service.open_payment_page.call_args[0][0]
        assert isinstance(request, PaymentRequest)
        assert request.product is Product.CERTIFICATE_OF_STATUS
        assert request.email == "default@example.com"

    def test_no_results(self, client, service):
        service.open_payment_page.return_value = None
        response = client.post("/api/payment-page", json=PAYMENT_BODY, headers=AUTH)
        assert response.status_code == 404
        assert response.json() == {"error": "No results found"}

    def test_invalid_date_is_422(self, client, service):
        """Validation happens before any browser work."""
        body = dict(PAYMENT_BODY, search_business_params={"query_word": "Acme", "date_input": "jan 1 2021"})
        response = client.post("/api/payment-page", json=body, headers=AUTH)
        assert response.status_code == 422
        assert "date_input" in response.json()["error"]
        service.open_payment_page.assert_not_called()

    def test_exhausted_retries_is_500(self, client, service):
        service.open_payment_page.side_effect = LocatorTimeout("//button[@id='submit_btn']", 20.0)
        response = client.post("/api/payment-page", json=PAYMENT_BODY, headers=AUTH)
        assert response.status_code == 500
        assert "submit_btn" in response.json()["error"]


class TestSearchCompanies:

    def test_lists_names(self, client, service):
        service.search_companies.return_value = SearchOutcome.listed("https://x/list", ["ACME INC."])
        response = client.post("/api/search-companies", json={"query_word": "Acme"}, headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"company_names": ["ACME INC."], "current_url": "https://x/list"}
        assert service.search_companies.call_args[0][0] == SearchCriteria("Acme")

    def test_no_results(self, client, service):
        service.search_companies.return_value = SearchOutcome.no_results()
        response = client.post("/api/search-companies", json={"query_word": "Acme"}, headers=AUTH)
        assert response.status_code == 404
        assert response.json() == {"error": "No results found"}

    def test_disallowed_business_type(self, client, service):
        body = {
            "query_word": "Acme",
            "register_type_key": "Corporations",
            "business_type_selection": "Limited Partnership",
        }
        response = client.post("/api/search-companies", json=body, headers=AUTH)
        assert response.status_code == 422
        service.search_companies.assert_not_called()


# ---------------------------------------------------------------------------
# Legacy and relay routes
# ---------------------------------------------------------------------------

class TestRegistryRoutes:

    def test_registries(self, client, service):
        service.list_registries.return_value = [ScrapedListingRow("ACME INC.", "Active", "1234567", "BN1")]
        response = client.get("/api/registries/Acme", headers=AUTH)
        assert response.status_code == 200
        assert response.json() == [{
            "business_name": "ACME INC.",
            "status": "Active",
            "corporation_number": "1234567",
            "business_number": "BN1",
        }]

    def test_corporation(self, client, service):
        from registry_bot.extraction import parse_corporation_detail

        service.get_corporation.return_value = parse_corporation_detail(detail_page_html())
        response = client.get("/api/corporation/1234567", headers=AUTH)
        assert response.status_code == 200
        assert response.json()["corp_details"][0] == {"Corporate Name": "ACME WIDGETS INC."}
        service.get_corporation.assert_called_once_with("1234567")

    def test_extraction_error_is_500(self, client, service):
        service.get_corporation.side_effect = ExtractionError("missing", section="Directors", index=5)
        response = client.get("/api/corporation/1", headers=AUTH)
        assert response.status_code == 500
        assert "Directors" in response.json()["error"]

    def test_fetch_error_is_502(self, client, service):
        service.list_registries.side_effect = FetchError("Could not fetch")
        response = client.get("/api/registries/Acme", headers=AUTH)
        assert response.status_code == 502

    def test_registry_request(self, client, service):
        body = {"corporate_number": "1234567", "first_name": "Jane", "last_name": "Doe", "phone_number": "555"}
        response = client.post("/api/registry/request", json=body, headers=AUTH)
        assert response.status_code == 200
        assert response.json() == "success"
        contact = service.request_registry.call_args[0][0]
        assert contact.corporate_number == "1234567"
        assert contact.email == "default@example.com"

    def test_registry_request_relay_error(self, client, service):
        service.request_registry.side_effect = RelayError("contact creation rejected with status 400")
        body = {"corporate_number": "1", "first_name": "Jane", "last_name": "Doe", "phone_number": "555"}
        response = client.post("/api/registry/request", json=body, headers=AUTH)
        assert response.status_code == 502

    def test_registry_request_by_name(self, client, service):
        body = {"search_keyword": "Acme", "first_name": "Jane", "last_name": "Doe", "phone_number": "555"}
        response = client.post("/api/registry/request_by_name", json=body, headers=AUTH)
        assert response.status_code == 200
        assert service.request_registry_by_name.call_args[0][0] == "Acme"

    def test_registry_request_by_name_nothing_listed(self, client, service):
        service.request_registry_by_name.side_effect = NoResultsError()
        body = {"search_keyword": "Zzyzx", "first_name": "Jane", "last_name": "Doe", "phone_number": "555"}
        response = client.post("/api/registry/request_by_name", json=body, headers=AUTH)
        assert response.status_code == 404
        assert response.json() == {"error": "No results found"}

    def test_registry_request_by_name_requires_keyword(self, client, service):
        body = {"first_name": "Jane", "last_name": "Doe", "phone_number": "555"}
        response = client.post("/api/registry/request_by_name", json=body, headers=AUTH)
        assert response.status_code == 422
        service.request_registry_by_name.assert_not_called()


# ---------------------------------------------------------------------------
# Unexpected errors
# ---------------------------------------------------------------------------

class TestUnexpectedErrors:
    """Failures outside the RegistryError family still answer with JSON."""

    @pytest.fixture
    def lenient_client(self, settings, service):
        # Starlette re-raises after the 500 handler runs; keep the response instead
        return TestClient(create_app(settings, service), raise_server_exceptions=False)

    def test_browser_error_is_500(self, client, service):
        service.test_browser.side_effect = BrowserError("ElementClickInterceptedException: overlay")
        response = client.get("/api/test-chrome", headers=AUTH)
        assert response.status_code == 500
        assert response.json() == {"error": "ElementClickInterceptedException: overlay"}

    def test_raw_selenium_error_is_json_500(self, lenient_client, service):
        service.test_browser.side_effect = ElementClickInterceptedException("overlay in the way")
        response = lenient_client.get("/api/test-chrome", headers=AUTH)
        assert response.status_code == 500
        assert "overlay in the way" in response.json()["error"]
