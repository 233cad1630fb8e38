"""
File-backed showing store.

Keeps showing documents in a single JSON file (``{"showings": [...]}``).
Used by the CLI and for local testing without a hosted document store.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List

import pendulum

from ..domain.exceptions import ShowingNotFound, UpstreamUnavailable
from ..domain.models import ShowingRecord
from .documents import encode_fields, record_from_document, record_to_document

logger = logging.getLogger(__name__)


class JsonShowingStore:
    """
    Showing store backed by a JSON document file.

    A missing file is an empty store; it is created on the first write.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def list_showings(self, property_id: str) -> List[ShowingRecord]:
        """
        Load all showings of a property, in any status.

        Raises:
            UpstreamUnavailable: If the file cannot be read or parsed
        """
        records: List[ShowingRecord] = []
        for document in self._load_documents():
            if document.get("propertyId") != property_id:
                continue
            try:
                records.append(record_from_document(document))
            except ValueError as exc:
                raise UpstreamUnavailable(
                    f"Malformed showing document in {self.path}: {exc}"
                ) from exc
        return records

    def create_showing(self, record: ShowingRecord) -> str:
        """Persist a new showing and return its id."""
        documents = self._load_documents()

        if not record.id:
            record.id = uuid.uuid4().hex
        if record.created_at is None:
            record.created_at = pendulum.now("UTC")

        documents.append(record_to_document(record))
        self._save_documents(documents)
        logger.debug("Stored showing %s in %s", record.id, self.path)
        return record.id

    def update_showing(self, showing_id: str, fields: Dict[str, Any]) -> None:
        """
        Apply a partial update to one showing.

        Raises:
            ShowingNotFound: If no document has the given id
        """
        documents = self._load_documents()
        changes = encode_fields({**fields, "updated_at": pendulum.now("UTC")})

        for document in documents:
            if document.get("id") == showing_id:
                document.update(changes)
                break
        else:
            raise ShowingNotFound(f"Showing {showing_id} not found in {self.path}")

        self._save_documents(documents)

    def _load_documents(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise UpstreamUnavailable(f"Could not read showing store {self.path}: {exc}") from exc

        documents = data.get("showings") if isinstance(data, dict) else None
        if not isinstance(documents, list):
            raise UpstreamUnavailable(f"Showing store {self.path} has no 'showings' list")
        return documents

    def _save_documents(self, documents: List[Dict[str, Any]]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({"showings": documents}, f, indent=2)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise UpstreamUnavailable(f"Could not write showing store {self.path}: {exc}") from exc
