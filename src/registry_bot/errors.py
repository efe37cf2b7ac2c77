"""Exception hierarchy for the registry workflows.

Selenium and httpx exceptions are translated into these at the seam where
they occur, so callers only ever deal with one family of errors.
"""

from __future__ import annotations

from typing import Optional


class RegistryError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(RegistryError):
    """Inbound criteria or request is malformed. Never retried."""


class SessionError(RegistryError):
    """The browser instance could not be acquired or is unusable."""


class LocatorTimeout(RegistryError):
    """An expected element never appeared on the page."""

    def __init__(self, expression: str, elapsed: float, timeout: Optional[float] = None) -> None:
        self.expression = expression
        self.elapsed = elapsed
        self.timeout = timeout
        super().__init__(
            f"Element not found after {elapsed:.1f}s: {expression}"
        )


class ExtractionError(RegistryError):
    """Fetched HTML is missing a section or is malformed. Never retried."""

    def __init__(self, message: str, section: Optional[str] = None, index: Optional[int] = None) -> None:
        self.section = section
        self.index = index
        if section is not None:
            where = f"section '{section}'" if index is None else f"section '{section}' (#{index})"
            message = f"{where}: {message}"
        super().__init__(message)


class BrowserError(RegistryError):
    """Selenium reported an error while a workflow drove the page."""


class NoResultsError(RegistryError):
    """A lookup that needs at least one match found none."""

    def __init__(self, message: str = "No results found") -> None:
        super().__init__(message)


class FetchError(RegistryError):
    """A legacy registry page could not be fetched."""


class RelayError(RegistryError):
    """A call to the registry REST backend failed."""


# Errors that retrying cannot fix.
NON_RETRYABLE: tuple[type[BaseException], ...] = (ValidationError, ExtractionError, NoResultsError)
