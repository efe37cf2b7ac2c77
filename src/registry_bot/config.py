"""Process-wide configuration.

Everything tuneable lives in frozen dataclasses built once at startup by
:meth:`Settings.from_env` and passed explicitly into every workflow. Nothing
in the workflows reads the environment on its own.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .errors import ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Browser
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BrowserConfig:
    """How a Chrome session is launched.

    ``webdriver_url`` points at an already running chromedriver (the container
    setup). When it is ``None`` a local chromedriver is installed and started
    through webdriver-manager.
    """

    webdriver_url: Optional[str] = "http://localhost:9515"
    headless: bool = True
    profile_root: Optional[str] = None
    page_load_timeout_seconds: int = 180


# ---------------------------------------------------------------------------
# Timings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkflowTimings:
    """Locator wait policies and the fixed settle delays.

    The settle delays cover client-side transitions that have no DOM signal
    to wait on. Every one of them is named here so it can be tuned (or set to
    zero in tests) in one place.
    """

    default_timeout: float = 20.0
    poll_interval: float = 1.0
    query_entry_timeout: float = 160.0
    email_input_timeout: float = 10.0
    no_results_probe_timeout: float = 5.0

    register_type_settle: float = 2.0
    between_operator_settle: float = 2.0
    search_submit_settle: float = 5.0
    page_size_settle: float = 15.0
    product_option_settle: float = 5.0
    payment_method_settle: float = 5.0
    make_payment_settle: float = 5.0


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for whole workflow attempts."""

    max_attempts: int = 10
    base_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        return min(self.base_delay * (self.exponential_base ** (attempt - 1)), self.max_delay)


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PaymentSettings:
    """Fixed payment instrument typed into the hosted payment form."""

    card_name: str
    card_number: str
    card_month: str
    card_year: str
    card_cvv: str

    def __repr__(self) -> str:
        return f"PaymentSettings(card_name={self.card_name!r}, card_number='****')"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    """Top-level immutable configuration object."""

    payment: PaymentSettings
    default_email: str
    token: str = "secret"
    port: int = 80
    search_url: str = "https://www.appmybizaccount.gov.on.ca/onbis/master/entity.pub.search"
    legacy_base_url: str = "https://ised-isde.canada.ca/cc/lgcy"
    registry_api_url: str = "https://ised-isde.canada.ca/cc/api"
    test_url: str = "https://example.com"
    http_timeout_seconds: float = 30.0
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    timings: WorkflowTimings = field(default_factory=WorkflowTimings)
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Settings:
        """Build settings from environment variables.

        Raises:
            ValidationError: If a required variable is missing or malformed.
        """
        env = os.environ if env is None else env

        missing = [
            name for name in (
                "CARD_NUMBER", "CARD_NAME", "CARD_MONTH", "CARD_YEAR", "CARD_CVV", "DEFAULT_EMAIL",
            )
            if not env.get(name)
        ]
        if missing:
            raise ValidationError(f"Missing required configuration: {', '.join(missing)}")

        try:
            port = int(env.get("PORT", "80"))
        except ValueError:
            raise ValidationError(f"PORT must be an integer, got {env.get('PORT')!r}") from None

        webdriver_url = env.get("WEBDRIVER_URL", BrowserConfig.webdriver_url) or None

        settings = cls(
            payment=PaymentSettings(
                card_name=env["CARD_NAME"],
                card_number=env["CARD_NUMBER"],
                card_month=env["CARD_MONTH"],
                card_year=env["CARD_YEAR"],
                card_cvv=env["CARD_CVV"],
            ),
            default_email=env["DEFAULT_EMAIL"],
            token=env.get("TOKEN", "secret"),
            port=port,
            search_url=env.get("SEARCH_URL", cls.search_url),
            legacy_base_url=env.get("LEGACY_BASE_URL", cls.legacy_base_url).rstrip("/"),
            registry_api_url=env.get("REGISTRY_API_URL", cls.registry_api_url).rstrip("/"),
            browser=BrowserConfig(
                webdriver_url=webdriver_url,
                headless=_truthy(env.get("HEADLESS", "1")),
                profile_root=env.get("PROFILE_ROOT") or None,
            ),
        )
        logger.debug(f"[Settings.from_env] Loaded settings (port={settings.port})")
        return settings


def _truthy(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")
