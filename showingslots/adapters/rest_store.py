"""
REST document-store client for showing records.
"""

import logging
from typing import Any, Dict, List

import requests

from ..domain.exceptions import ShowingNotFound, UpstreamUnavailable
from ..domain.models import ShowingRecord
from .documents import encode_fields, record_from_document, record_to_document

logger = logging.getLogger(__name__)


class RestShowingStore:
    """
    Client for the hosted showing collection.

    Endpoints:
    - GET   /properties/{property_id}/showings -> {"showings": [...]}
    - POST  /showings                          -> {"id": "..."}
    - PATCH /showings/{showing_id}

    No retries are attempted; callers own the retry policy.
    """

    TIMEOUT_SECONDS = 30

    def __init__(self, base_url: str, api_key: str = ""):
        """
        Initialize the store client.

        Args:
            base_url: Root URL of the document store API
            api_key: Optional bearer token
        """
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    def list_showings(self, property_id: str) -> List[ShowingRecord]:
        """
        Fetch all showings of a property.

        Raises:
            UpstreamUnavailable: If the request fails or the payload is malformed
        """
        data = self._request("GET", f"/properties/{property_id}/showings")

        documents = data.get("showings") if isinstance(data, dict) else None
        if not isinstance(documents, list):
            raise UpstreamUnavailable("Showing store response has no 'showings' list")

        try:
            return [record_from_document(document) for document in documents]
        except ValueError as exc:
            raise UpstreamUnavailable(f"Malformed showing document: {exc}") from exc

    def create_showing(self, record: ShowingRecord) -> str:
        """Create a showing document and return the id assigned by the store."""
        payload = record_to_document(record)
        if not record.id:
            payload.pop("id")

        data = self._request("POST", "/showings", json=payload)
        showing_id = data.get("id") if isinstance(data, dict) else None
        if not showing_id:
            raise UpstreamUnavailable("Showing store did not return an id for the new showing")

        record.id = str(showing_id)
        return record.id

    def update_showing(self, showing_id: str, fields: Dict[str, Any]) -> None:
        """
        Apply a partial update to one showing.

        Raises:
            ShowingNotFound: If the store answers 404
        """
        self._request("PATCH", f"/showings/{showing_id}", json=encode_fields(fields))

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(
                method,
                url,
                headers=self.headers,
                timeout=self.TIMEOUT_SECONDS,
                **kwargs,
            )
            if response.status_code == 404 and method == "PATCH":
                raise ShowingNotFound(f"Showing not found: {url}")
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()

        except requests.exceptions.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise UpstreamUnavailable(f"Showing store request failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Showing store returned invalid JSON: {e}") from e
