"""
Registry Bot - business registry search, purchase and extraction.

Modules:
- config: frozen settings built from the environment
- errors: exception hierarchy
- models: search criteria, payment requests, extracted records
- locator: polling element lookup and named settle delays
- session: one Chrome instance per workflow attempt
- retry: exponential backoff around whole attempts
- search: advanced search workflow
- payment: product purchase workflow
- extraction: legacy corporation listing and detail pages
- relay: document-copy request relay to the REST backend
- service: request-level operations
- api: FastAPI application
- cli: command line entry point
"""

from .config import BrowserConfig, PaymentSettings, RetryPolicy, Settings, WorkflowTimings
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
from .models import (
    ExtractedCorporationRecord,
    PaymentRequest,
    Product,
    RegisterType,
    RegistryContact,
    ScrapedListingRow,
    SearchCriteria,
    SearchOperator,
    SearchOutcome,
    StatusKey,
)
from .service import RegistryService

__version__ = "1.0.0"
__all__ = [
    "BrowserConfig",
    "PaymentSettings",
    "RetryPolicy",
    "Settings",
    "WorkflowTimings",
    "BrowserError",
    "ExtractionError",
    "FetchError",
    "LocatorTimeout",
    "NoResultsError",
    "RegistryError",
    "RelayError",
    "SessionError",
    "ValidationError",
    "ExtractedCorporationRecord",
    "PaymentRequest",
    "Product",
    "RegisterType",
    "RegistryContact",
    "ScrapedListingRow",
    "SearchCriteria",
    "SearchOperator",
    "SearchOutcome",
    "StatusKey",
    "RegistryService",
]
