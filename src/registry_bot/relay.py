"""Document-copy request relay to the registry REST backend.

One relay run issues four calls in a fixed order, each depending on the
previous one:

    1. POST /cntcts          create the requester contact
    2. GET  /cntcts?...      look the contact up again to get its id
    3. GET  /dcmnts?crprtnid the corporation's document summaries
    4. POST /rqsts           submit the copies request
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import RelayError
from .models import RegistryContact

logger = logging.getLogger(__name__)

# Summary fields the request endpoint rejects.
DROPPED_SUMMARY_FIELDS = ("sourceRequest", "documentType")


def strip_summaries(summaries: List[Any]) -> List[Any]:
    """Remove :data:`DROPPED_SUMMARY_FIELDS` from each summary object."""
    cleaned = []
    for item in summaries:
        if isinstance(item, dict):
            item = {k: v for k, v in item.items() if k not in DROPPED_SUMMARY_FIELDS}
        cleaned.append(item)
    return cleaned


class RegistryRelay:
    """Runs the four-call request sequence for one contact."""

    def __init__(self, api_url: str, client: Optional[httpx.Client] = None, timeout: float = 30.0) -> None:
        self.api_url = api_url.rstrip("/")
        self.client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def _call(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.api_url}/{path}"
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RelayError(f"{method} {url} failed: {exc}") from exc
        logger.info(f"[RegistryRelay] {method} {path} -> {response.status_code}")
        return response

    @staticmethod
    def _check(response: httpx.Response, step: str) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RelayError(f"{step} rejected with status {response.status_code}") from exc

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def create_contact(self, contact: RegistryContact) -> None:
        payload = {
            "contactMethod": {
                "phoneNumber": contact.phone_number,
                "emailAddress": contact.email,
            },
            "firstName": contact.first_name,
            "lastName": contact.last_name,
        }
        response = self._call("POST", "cntcts", json=payload)
        self._check(response, "contact creation")

    def lookup_contact_id(self, contact: RegistryContact) -> str:
        response = self._call("GET", "cntcts", params={
            "eaddr": contact.email,
            "frstNm": contact.first_name,
            "lstNm": contact.last_name,
            "phnn": contact.phone_number,
        })
        self._check(response, "contact lookup")
        try:
            body = response.json()
        except ValueError as exc:
            raise RelayError("contact lookup returned invalid JSON") from exc
        contact_id = body.get("id") if isinstance(body, dict) else None
        if not isinstance(contact_id, str) or not contact_id:
            raise RelayError("contact lookup returned no id")
        return contact_id

    def fetch_summaries(self, corporate_number: str) -> List[Any]:
        """Document summaries for a corporation; empty when the backend refuses."""
        response = self._call("GET", "dcmnts", params={"crprtnid": corporate_number})
        if not response.is_success:
            logger.warning(
                f"[RegistryRelay.fetch_summaries] Request failed with status code: {response.status_code}"
            )
            return []
        try:
            body = response.json()
        except ValueError:
            logger.warning("[RegistryRelay.fetch_summaries] Response is not JSON, using no summaries")
            return []
        if not isinstance(body, list):
            logger.warning("[RegistryRelay.fetch_summaries] Response is not a list, using no summaries")
            return []
        return strip_summaries(body)

    def submit_request(self, corporate_number: str, summaries: List[Any], contact_id: str) -> None:
        payload: Dict[str, Any] = {
            "@type": "copies",
            "corporation": corporate_number,
            "summaries": summaries,
            "contact": contact_id,
        }
        response = self._call("POST", "rqsts", json=payload)
        self._check(response, "request submission")

    # ------------------------------------------------------------------
    # Sequence
    # ------------------------------------------------------------------

    def request_copies(self, contact: RegistryContact, corporate_number: Optional[str] = None) -> None:
        """Run the full sequence for *contact*.

        Raises:
            RelayError: If a call fails at the transport level, or contact
                creation, lookup or request submission is rejected.
        """
        corporate_number = corporate_number or contact.corporate_number
        if not corporate_number:
            raise RelayError("no corporate number to request copies for")

        logger.info(f"[RegistryRelay.request_copies] Requesting copies for corporation {corporate_number}")
        self.create_contact(contact)
        contact_id = self.lookup_contact_id(contact)
        summaries = self.fetch_summaries(corporate_number)
        self.submit_request(corporate_number, summaries, contact_id)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> RegistryRelay:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()
