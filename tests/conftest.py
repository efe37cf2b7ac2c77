"""
Shared fixtures for all Registry Bot tests.

Provides a scripted stand-in for the Selenium driver, a browser session that
hands it out instead of launching Chrome, settings with zero wait timeouts,
and HTML builders for the legacy corporation pages.
"""

from typing import Dict, Iterable, List, Optional

import pytest

from registry_bot.config import (
    BrowserConfig,
    PaymentSettings,
    RetryPolicy,
    Settings,
    WorkflowTimings,
)
from registry_bot.session import BrowserSession


# ---------------------------------------------------------------------------
# Scripted Selenium driver
# ---------------------------------------------------------------------------

class FakeElement:
    """Element that records clicks and keystrokes on its driver."""

    def __init__(self, driver: "FakeDriver", expression: str, text: str = "") -> None:
        self.driver = driver
        self.expression = expression
        self.text = text

    def click(self) -> None:
        self.driver.actions.append(("click", self.expression))

    def send_keys(self, *keys) -> None:
        self.driver.actions.append(("send_keys", self.expression, "".join(keys)))


class FakeDriver:
    """Resolves every expression to one element unless scripted otherwise.

    Args:
        absent: Expressions that never match.
        elements: Expression -> element texts, for multi-element matches.
    """

    def __init__(self, absent: Iterable[str] = (), elements: Optional[Dict[str, List[str]]] = None) -> None:
        self.absent = set(absent)
        self.elements = elements or {}
        self.actions: List[tuple] = []
        self.visited: List[str] = []
        self.cookies: List[dict] = []
        self.current_url = "about:blank"
        self.title = "Example Domain"
        self.quit_calls = 0

    def find_elements(self, by, expression):
        if expression in self.absent:
            return []
        texts = self.elements.get(expression, [""])
        return [FakeElement(self, expression, text) for text in texts]

    def get(self, url: str) -> None:
        self.visited.append(url)
        self.current_url = url

    def add_cookie(self, cookie: dict) -> None:
        self.cookies.append(cookie)

    def set_page_load_timeout(self, seconds) -> None:
        pass

    def quit(self) -> None:
        self.quit_calls += 1

    # Helpers for assertions

    def clicked(self) -> List[str]:
        return [a[1] for a in self.actions if a[0] == "click"]

    def typed(self) -> Dict[str, str]:
        return {a[1]: a[2] for a in self.actions if a[0] == "send_keys"}


class ScriptedSession(BrowserSession):
    """BrowserSession whose driver is a :class:`FakeDriver`."""

    def __init__(self, driver: FakeDriver, config: Optional[BrowserConfig] = None) -> None:
        super().__init__(config)
        self._fake = driver

    def _create_driver(self, options):
        return self._fake


class RecordingSleep:
    """Stand-in for time.sleep that records the requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

FAST_TIMINGS = WorkflowTimings(
    default_timeout=0,
    poll_interval=0.01,
    query_entry_timeout=0,
    email_input_timeout=0,
    no_results_probe_timeout=0,
)


@pytest.fixture
def timings():
    """Zero locator timeouts; settle delays keep their defaults (sleep is recorded)."""
    return FAST_TIMINGS


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def payment_settings():
    return PaymentSettings(
        card_name="Jane Doe",
        card_number="4111111111111111",
        card_month="12",
        card_year="30",
        card_cvv="123",
    )


@pytest.fixture
def settings(tmp_path, payment_settings):
    """Settings with a local browser profile root and zero wait timeouts."""
    return Settings(
        payment=payment_settings,
        default_email="default@example.com",
        token="test-token",
        search_url="https://registry.example.com/search",
        legacy_base_url="https://legacy.example.com/cc/lgcy",
        registry_api_url="https://api.example.com/cc/api",
        browser=BrowserConfig(webdriver_url=None, profile_root=str(tmp_path)),
        timings=FAST_TIMINGS,
        retry=RetryPolicy(max_attempts=10),
    )


@pytest.fixture
def fake_driver():
    from registry_bot.search import NO_RESULTS_MARKER
    return FakeDriver(absent={NO_RESULTS_MARKER})


@pytest.fixture
def session(fake_driver, tmp_path):
    """A started ScriptedSession, stopped after the test."""
    s = ScriptedSession(fake_driver, BrowserConfig(webdriver_url=None, profile_root=str(tmp_path)))
    s.start()
    yield s
    s.stop()


@pytest.fixture
def session_factory(fake_driver):
    """Factory handing out ScriptedSessions; ``factory.created`` lists them."""
    created = []

    def factory(config):
        s = ScriptedSession(fake_driver, config)
        created.append(s)
        return s

    factory.created = created
    return factory


# ---------------------------------------------------------------------------
# Legacy page HTML
# ---------------------------------------------------------------------------

def listing_row_html(name: str, status: str, corp_number: str, business_number: str) -> str:
    return f"""
    <div class="col-md-11">
      <span><a href="#">{name}</a></span>
      <span>Status: {status}</span>
      <span>Corporation number: {corp_number}</span>
      <span>Business number: {business_number}</span>
    </div>"""


def listing_page_html(rows: List[str], has_next: bool = False) -> str:
    next_link = '<a rel="next" href="?p=next">Next</a>' if has_next else ""
    return f"<html><body>{''.join(rows)}{next_link}</body></html>"


CORP_DETAILS_SECTION = """
<div class="col-sm-12">
  <div class="data-display-group">
    <b>Corporate Name</b>
    <div class="col-sm-8">ACME WIDGETS INC.<br><span>Other names: ACME</span></div>
  </div>
  <div class="data-display-group">
    <b>Corporation Number</b>
    <div class="col-sm-8"> 123456-7 </div>
  </div>
</div>"""

ADDRESS_SECTION = """
<div class="col-sm-12">
  <div>
    <p>100 Main Street</p>
    <p>Ottawa ON K1A 0A1</p>
    <p>Canada</p>
  </div>
</div>"""

DIRECTORS_SECTION = """
<div class="col-sm-12">
  <div class="inline-group">
    <div><b>Minimum</b> <span>1</span></div>
    <div><b>Maximum</b> <span>10</span></div>
  </div>
  <ul>
    <li class="full-width">Jane Smith<br>1 Elm Road<br>Toronto ON</li>
    <li class="full-width">John Brown<br>2 Oak Lane<br>Ottawa ON</li>
  </ul>
</div>"""

ANNUAL_FILINGS_SECTION = """
<div class="col-sm-12">
  <div class="data-display-group">
    <b>Anniversary Date (MM-DD)</b>
    <div class="col-sm-9">
        06-15
    </div>
  </div>
  <div class="data-display-group">
    <b>Status of Annual Filings</b>
    <div class="col-sm-9">
      <ul>
        <li>2023 - Filed</li>
        <li>2022 - Overdue</li>
      </ul>
    </div>
  </div>
</div>"""

HISTORY_SECTION = """
<div class="col-sm-12">
  <table>
    <thead><tr><th>Corporate Name History</th></tr></thead>
    <tbody>
      <tr><td>2015-01-01 to present</td><td>ACME   WIDGETS INC.</td></tr>
      <tr><td>2010-03-04 to 2015-01-01</td><td>ACME LTD.</td></tr>
    </tbody>
  </table>
  <section class="panel-info">
    <header>Certificates and Filings</header>
    <div class="panel-body">
      <div class="data-display-group">
        <b>Certificate of Incorporation</b>
        <div class="col-sm-6">2010-03-04</div>
      </div>
    </div>
  </section>
</div>"""

FILLER_SECTION = '<div class="col-sm-12"><p>filler</p></div>'


def detail_page_html(**overrides: str) -> str:
    """Detail page with the sections at indexes 2, 3, 5, 7 and 8."""
    sections = [
        FILLER_SECTION,
        FILLER_SECTION,
        overrides.get("corp_details", CORP_DETAILS_SECTION),
        overrides.get("address", ADDRESS_SECTION),
        FILLER_SECTION,
        overrides.get("directors", DIRECTORS_SECTION),
        FILLER_SECTION,
        overrides.get("annual_filings", ANNUAL_FILINGS_SECTION),
        overrides.get("history", HISTORY_SECTION),
    ]
    if "truncate" in overrides:
        sections = sections[: int(overrides["truncate"])]
    return f"<html><body>{''.join(sections)}</body></html>"
