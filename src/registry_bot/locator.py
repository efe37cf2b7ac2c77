"""Polling element lookup, the only way the workflows touch a page.

Pages on the registry render asynchronously, so every lookup polls until a
match shows up or a timeout elapses. A handful of transitions have no DOM
signal at all; those go through :func:`settle` with a named delay from
:class:`~registry_bot.config.WorkflowTimings`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, List

from selenium.common.exceptions import StaleElementReferenceException, TimeoutException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support.ui import WebDriverWait

from .errors import LocatorTimeout

logger = logging.getLogger(__name__)


def xpath_literal(text: str) -> str:
    """Quote *text* for use inside an XPath expression.

    XPath 1.0 has no escape sequences, so text containing both quote kinds
    has to be assembled with ``concat()``.
    """
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    parts = text.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


@dataclass(frozen=True)
class Locator:
    """A targeting expression plus its wait policy."""

    expression: str
    timeout: float = 20.0
    poll_interval: float = 1.0
    by: str = By.XPATH

    @classmethod
    def containing_text(cls, tag: str, text: str, **policy) -> Locator:
        """``//tag[contains(text(), ...)]`` with proper quoting."""
        return cls(f"//{tag}[contains(text(), {xpath_literal(text)})]", **policy)

    def with_timeout(self, timeout: float) -> Locator:
        return replace(self, timeout=timeout)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _poll(self, driver) -> List[WebElement]:
        wait = WebDriverWait(
            driver,
            self.timeout,
            poll_frequency=self.poll_interval,
            ignored_exceptions=(StaleElementReferenceException,),
        )
        return wait.until(lambda d: d.find_elements(self.by, self.expression) or False)

    def first(self, driver) -> WebElement:
        """Return the first match, waiting up to the timeout.

        Raises:
            LocatorTimeout: If nothing matched in time.
        """
        start = time.monotonic()
        try:
            elements = self._poll(driver)
        except TimeoutException:
            elapsed = time.monotonic() - start
            logger.debug(f"[Locator.first] Timed out after {elapsed:.1f}s: {self.expression}")
            raise LocatorTimeout(self.expression, elapsed, self.timeout) from None
        logger.debug(f"[Locator.first] Found {self.expression} after {time.monotonic() - start:.1f}s")
        return elements[0]

    def all(self, driver) -> List[WebElement]:
        """Return every match once at least one exists, or ``[]`` on timeout."""
        start = time.monotonic()
        try:
            elements = self._poll(driver)
        except TimeoutException:
            logger.debug(
                f"[Locator.all] No match after {time.monotonic() - start:.1f}s: {self.expression}"
            )
            return []
        return list(elements)

    def exists(self, driver) -> bool:
        """Probe for the element; ``False`` when the wait runs out."""
        try:
            self.first(driver)
        except LocatorTimeout:
            return False
        return True

    def click(self, driver) -> WebElement:
        element = self.first(driver)
        element.click()
        return element

    def send_keys(self, driver, *keys: str) -> WebElement:
        element = self.first(driver)
        element.send_keys(*keys)
        return element


def settle(seconds: float, reason: str, sleep: Callable[[float], None] = time.sleep) -> None:
    """Fixed wait for a client-side transition with no observable DOM signal."""
    if seconds <= 0:
        return
    logger.debug(f"[settle] Waiting {seconds:.1f}s for {reason}")
    sleep(seconds)
