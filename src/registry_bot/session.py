"""Browser session management.

Each workflow attempt owns exactly one Chrome instance with its own
throw-away profile directory. The session is a context manager so the
browser is quit on every exit path; leaking chromedriver processes is the
one failure mode the service cannot recover from.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from webdriver_manager.chrome import ChromeDriverManager

from .config import BrowserConfig
from .errors import SessionError

logger = logging.getLogger(__name__)


def build_options(config: BrowserConfig, profile_dir: Path) -> Options:
    """Chrome options for one session."""
    options = Options()
    options.accept_insecure_certs = True
    options.add_argument("--ignore-certificate-errors")
    options.add_argument("--disable-dev-tools")
    options.add_argument(f"--user-data-dir={profile_dir}")

    if config.headless:
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--disable-web-security")
        options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--no-zygote")
        options.add_argument("--single-process")

    return options


class BrowserSession:
    """Exclusively owned handle to one Chrome instance.

    Use as a context manager::

        with BrowserSession(config) as session:
            session.driver.get(url)
    """

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self.config: BrowserConfig = config or BrowserConfig()
        self.driver: Optional[webdriver.Remote] = None
        self.profile_dir: Optional[Path] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _create_driver(self, options: Options) -> webdriver.Remote:
        if self.config.webdriver_url:
            return webdriver.Remote(command_executor=self.config.webdriver_url, options=options)
        service = Service(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)

    def start(self) -> BrowserSession:
        """Start the browser.

        Raises:
            SessionError: If the driver endpoint is unreachable or Chrome
                refuses to start.
        """
        if self.driver is not None:
            return self

        self.profile_dir = Path(tempfile.mkdtemp(prefix="registry-bot-", dir=self.config.profile_root))
        options = build_options(self.config, self.profile_dir)
        where = self.config.webdriver_url or "local chromedriver"
        logger.info(f"[start] Starting Chrome via {where}...")

        # Remote raises raw urllib3 errors and webdriver-manager its own,
        # so any failure here counts as an unusable session.
        try:
            driver = self._create_driver(options)
            driver.set_page_load_timeout(self.config.page_load_timeout_seconds)
        except Exception as exc:
            self._remove_profile()
            raise SessionError(f"Could not start browser via {where}: {exc}") from exc

        self.driver = driver
        return self

    def stop(self) -> None:
        """Quit the browser and drop the profile directory.

        A failure to quit is logged, never raised, so it cannot mask the
        error that ended the workflow.
        """
        try:
            if self.driver is not None:
                logger.info("[stop] Stopping Chrome browser...")
                self.driver.quit()
        except Exception as exc:
            logger.warning(f"[stop] Browser did not quit cleanly: {type(exc).__name__}: {exc}")
        finally:
            self.driver = None
            self._remove_profile()

    def _remove_profile(self) -> None:
        if self.profile_dir is not None:
            shutil.rmtree(self.profile_dir, ignore_errors=True)
            self.profile_dir = None

    # ------------------------------------------------------------------
    # Page helpers
    # ------------------------------------------------------------------

    def goto(self, url: str) -> None:
        logger.debug(f"[goto] {url}")
        self.driver.get(url)

    @property
    def current_url(self) -> str:
        return self.driver.current_url

    @property
    def title(self) -> str:
        return self.driver.title

    def add_cookie(self, name: str, value: str, url: str) -> None:
        """Set a cookie for the host of *url* (path ``/``, SameSite Lax)."""
        self.driver.add_cookie({
            "name": name,
            "value": value,
            "domain": urlparse(url).hostname,
            "path": "/",
            "sameSite": "Lax",
        })

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> BrowserSession:
        return self.start()

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.stop()


def acquire(config: Optional[BrowserConfig] = None) -> BrowserSession:
    """Start and return a new session. The caller must ``stop()`` it."""
    return BrowserSession(config).start()
