"""
Tests for the showing store adapters and document conversion.
"""

import json

import pendulum
import pytest
import requests

from showingslots.adapters import rest_store
from showingslots.adapters.documents import (
    encode_fields,
    parse_timestamp,
    record_from_document,
    record_to_document,
)
from showingslots.adapters.json_store import JsonShowingStore
from showingslots.adapters.rest_store import RestShowingStore
from showingslots.domain.exceptions import ShowingNotFound, UpstreamUnavailable
from showingslots.domain.models import ClientInfo, ShowingRecord, ShowingStatus


def _document(showing_id="s1", property_id="p1", **overrides):
    document = {
        "id": showing_id,
        "propertyId": property_id,
        "agentId": "agent-1",
        "clientName": "Ada",
        "clientEmail": "ada@example.com",
        "scheduledAt": "2024-11-25T15:00:00Z",
        "duration": 45,
        "status": "confirmed",
    }
    document.update(overrides)
    return document


class TestDocuments:
    """Tests for document conversion."""

    def test_parse_timestamp_formats(self):
        expected = pendulum.parse("2024-11-25T15:00:00Z")

        assert parse_timestamp("2024-11-25T10:00:00-05:00") == expected
        assert parse_timestamp({"seconds": int(expected.timestamp()), "nanoseconds": 0}) == expected
        assert parse_timestamp(expected.timestamp()) == expected
        assert parse_timestamp(expected.in_timezone("Asia/Tokyo")).timezone_name == "UTC"
        assert parse_timestamp(None) is None

        with pytest.raises(ValueError):
            parse_timestamp({"nanoseconds": 5})

    def test_record_from_document(self):
        record = record_from_document(_document(notes="Ring twice", preApproved=True))

        assert record.id == "s1"
        assert record.scheduled_at == pendulum.parse("2024-11-25T15:00:00Z")
        assert record.duration_minutes == 45
        assert record.status is ShowingStatus.CONFIRMED
        assert record.client.notes == "Ring twice"
        assert record.client.pre_approved

    def test_defaults_for_sparse_document(self):
        record = record_from_document({"id": "s1", "propertyId": "p1", "scheduledAt": "2024-11-25T15:00:00Z"})

        assert record.duration_minutes == 30
        assert record.status is ShowingStatus.SCHEDULED

    def test_missing_required_field(self):
        with pytest.raises(ValueError, match="scheduledAt"):
            record_from_document({"id": "s1", "propertyId": "p1"})

    def test_record_to_document(self):
        record = ShowingRecord(
            id="s1",
            property_id="p1",
            scheduled_at=pendulum.parse("2024-11-25 10:00", tz="America/New_York"),
            duration_minutes=30,
            client=ClientInfo(name="Ada", email="ada@example.com"),
        )

        document = record_to_document(record)

        assert document["scheduledAt"] == "2024-11-25T15:00:00Z"
        assert document["status"] == "scheduled"
        assert document["clientEmail"] == "ada@example.com"
        assert document["cancelledAt"] is None

    def test_encode_fields(self):
        encoded = encode_fields({
            "status": ShowingStatus.NO_SHOW,
            "scheduled_at": pendulum.parse("2024-11-25T15:00:00Z"),
            "cancellation_reason": "late",
        })

        assert encoded == {
            "status": "no-show",
            "scheduledAt": "2024-11-25T15:00:00Z",
            "cancellationReason": "late",
        }
        with pytest.raises(ValueError):
            encode_fields({"colour": "red"})


class TestJsonShowingStore:
    """Tests for the file-backed store."""

    def _write(self, path, documents):
        path.write_text(json.dumps({"showings": documents}), encoding="utf-8")

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonShowingStore(tmp_path / "showings.json").list_showings("p1") == []

    def test_lists_only_property_showings(self, tmp_path):
        path = tmp_path / "showings.json"
        self._write(path, [_document("s1"), _document("s2", property_id="p2"), _document("s3")])

        records = JsonShowingStore(path).list_showings("p1")

        assert [record.id for record in records] == ["s1", "s3"]

    def test_create_then_list(self, tmp_path):
        store = JsonShowingStore(tmp_path / "nested" / "showings.json")
        record = ShowingRecord(
            id="",
            property_id="p1",
            scheduled_at=pendulum.parse("2024-11-25T19:00:00Z"),
            duration_minutes=30,
            client=ClientInfo(name="Bo", email="bo@example.com"),
        )

        showing_id = store.create_showing(record)

        assert showing_id
        listed = store.list_showings("p1")
        assert [r.id for r in listed] == [showing_id]
        assert listed[0].scheduled_at == record.scheduled_at
        assert listed[0].created_at is not None
        assert not (tmp_path / "nested" / "showings.json.tmp").exists()

    def test_update(self, tmp_path):
        path = tmp_path / "showings.json"
        self._write(path, [_document("s1")])
        store = JsonShowingStore(path)

        store.update_showing("s1", {"status": ShowingStatus.CANCELLED, "cancellation_reason": "sold"})

        document = json.loads(path.read_text(encoding="utf-8"))["showings"][0]
        assert document["status"] == "cancelled"
        assert document["cancellationReason"] == "sold"
        assert "updatedAt" in document

    def test_update_unknown(self, tmp_path):
        path = tmp_path / "showings.json"
        self._write(path, [_document("s1")])

        with pytest.raises(ShowingNotFound):
            JsonShowingStore(path).update_showing("s9", {"status": ShowingStatus.CONFIRMED})

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "showings.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(UpstreamUnavailable):
            JsonShowingStore(path).list_showings("p1")

    def test_malformed_document(self, tmp_path):
        path = tmp_path / "showings.json"
        self._write(path, [_document("s1", scheduledAt="whenever")])

        with pytest.raises(UpstreamUnavailable):
            JsonShowingStore(path).list_showings("p1")


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode()

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self._payload


class RecordedCalls(list):
    """Requests made through the patched client, plus queued responses."""

    def __init__(self):
        super().__init__()
        self.responses = []


class TestRestShowingStore:
    """Tests for the REST store client."""

    @pytest.fixture
    def calls(self, monkeypatch):
        calls = RecordedCalls()
        responses = calls.responses

        def fake_request(method, url, **kwargs):
            calls.append((method, url, kwargs))
            response = responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response

        monkeypatch.setattr(rest_store.requests, "request", fake_request)
        return calls

    def test_list_showings(self, calls):
        calls.responses.append(FakeResponse(payload={"showings": [_document("s1")]}))
        store = RestShowingStore("https://store.example.com/api/", api_key="secret")

        records = store.list_showings("p1")

        method, url, kwargs = calls[0]
        assert method == "GET"
        assert url == "https://store.example.com/api/properties/p1/showings"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 30
        assert [record.id for record in records] == ["s1"]

    def test_create_showing(self, calls):
        calls.responses.append(FakeResponse(payload={"id": "new-1"}))
        record = ShowingRecord(
            id="",
            property_id="p1",
            scheduled_at=pendulum.parse("2024-11-25T19:00:00Z"),
            duration_minutes=30,
        )

        showing_id = RestShowingStore("https://store.example.com").create_showing(record)

        method, url, kwargs = calls[0]
        assert (method, url) == ("POST", "https://store.example.com/showings")
        assert "id" not in kwargs["json"]
        assert kwargs["json"]["scheduledAt"] == "2024-11-25T19:00:00Z"
        assert showing_id == record.id == "new-1"

    def test_update_showing(self, calls):
        calls.responses.append(FakeResponse(status_code=204))

        RestShowingStore("https://store.example.com").update_showing(
            "s1", {"status": ShowingStatus.CONFIRMED}
        )

        method, url, kwargs = calls[0]
        assert (method, url) == ("PATCH", "https://store.example.com/showings/s1")
        assert kwargs["json"] == {"status": "confirmed"}

    def test_update_unknown(self, calls):
        calls.responses.append(FakeResponse(status_code=404))

        with pytest.raises(ShowingNotFound):
            RestShowingStore("https://store.example.com").update_showing(
                "s9", {"status": ShowingStatus.CONFIRMED}
            )

    def test_connection_error(self, calls):
        calls.responses.append(requests.exceptions.ConnectionError("refused"))

        with pytest.raises(UpstreamUnavailable):
            RestShowingStore("https://store.example.com").list_showings("p1")

    def test_server_error(self, calls):
        calls.responses.append(FakeResponse(status_code=503, payload={"error": "down"}))

        with pytest.raises(UpstreamUnavailable):
            RestShowingStore("https://store.example.com").list_showings("p1")

    def test_malformed_payload(self, calls):
        calls.responses.append(FakeResponse(payload={"items": []}))

        with pytest.raises(UpstreamUnavailable):
            RestShowingStore("https://store.example.com").list_showings("p1")
