"""Retry with exponential backoff for whole workflow attempts.

An attempt is "acquire a fresh browser, run the workflow, release the
browser". Nothing from a failed attempt survives into the next one.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from selenium.common.exceptions import WebDriverException

from .config import BrowserConfig, RetryPolicy
from .errors import NON_RETRYABLE, BrowserError
from .session import BrowserSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retry(
    func: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """Call *func* until it succeeds or the policy runs out of attempts.

    Errors listed in :data:`~registry_bot.errors.NON_RETRYABLE` propagate
    immediately.

    Returns:
        Whatever *func* returned on the first successful attempt.

    Raises:
        Exception: The error of the last attempt once all attempts failed.
    """
    policy = policy or RetryPolicy()
    last_exception: Optional[Exception] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return func()
        except NON_RETRYABLE:
            raise
        except Exception as exc:
            last_exception = exc
            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.warning(
                    f"[with_retry] {label}: attempt {attempt}/{policy.max_attempts} failed: "
                    f"{type(exc).__name__}: {exc}. Retrying in {delay:.1f}s"
                )
                sleep(delay)

    logger.error(f"[with_retry] {label}: all {policy.max_attempts} attempts failed")
    raise last_exception


def run_in_session(
    workflow: Callable[[BrowserSession], T],
    browser: Optional[BrowserConfig] = None,
    policy: Optional[RetryPolicy] = None,
    session_factory: Callable[[Optional[BrowserConfig]], BrowserSession] = BrowserSession,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "workflow",
) -> T:
    """Run *workflow* against a fresh browser session, retrying on failure.

    Selenium errors raised by the workflow surface as
    :class:`~registry_bot.errors.BrowserError`.
    """

    def attempt() -> T:
        with session_factory(browser) as session:
            try:
                return workflow(session)
            except WebDriverException as exc:
                raise BrowserError(f"{type(exc).__name__}: {exc.msg or exc}") from exc

    return with_retry(attempt, policy=policy, sleep=sleep, label=label)
