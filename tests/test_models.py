"""Unit tests for the Document data model.

Tests cover:
- Default documents and the "new" id sentinel
- Wire format parsing (including JSON-encoded questionnaire data)
- History timestamps and latest-entry lookup
- Immutability of documents and history
"""

import dataclasses
import json
from datetime import timezone

import pytest

from submission_request.models import (
    NEW_DOCUMENT_ID,
    Document,
    HistoryEvent,
    default_payload,
    merge_over_defaults,
    parse_timestamp,
)
from submission_request.types import DocumentStatus, SectionStatus


WIRE_DOCUMENT = {
    "_id": "app_001",
    "status": "In Review",
    "createdAt": "2024-01-02T10:00:00Z",
    "updatedAt": "2024-01-05T10:00:00Z",
    "submittedDate": "2024-01-04T10:00:00Z",
    "history": [
        {"status": "In Progress", "dateTime": "2024-01-02T10:00:00Z", "userID": 7},
        {"status": "Submitted", "dateTime": "2024-01-04T10:00:00Z", "userID": 7},
        {"status": "In Review", "dateTime": "2024-01-05T10:00:00Z", "userID": 9, "reviewComment": "Starting"},
    ],
    "questionnaireData": {
        "sections": [{"name": "A", "status": "Completed"}, {"name": "B", "status": "In Progress"}],
        "pi": {"firstName": "Ada"},
        "dataTypes": ["genomics"],
    },
}


class TestDefaults:
    """Test brand-new documents."""

    def test_new_document(self):
        """Should use the sentinel id, New status and default payload."""
        doc = Document.new()
        assert doc.id == NEW_DOCUMENT_ID
        assert doc.is_persisted is False
        assert doc.status is DocumentStatus.NEW
        assert doc.sections == ()
        assert doc.history == ()
        assert doc.payload == default_payload()

    def test_new_document_with_payload(self):
        """Should merge the given payload over the defaults."""
        doc = Document.new(payload={"pi": {"firstName": "Ada"}})
        assert doc.payload["pi"]["firstName"] == "Ada"
        assert doc.payload["pi"]["email"] == ""

    def test_default_payload_is_fresh(self):
        """Should return an independent payload on each call."""
        first = default_payload()
        first["pi"]["firstName"] = "changed"
        assert default_payload()["pi"]["firstName"] == ""


class TestWireFormat:
    """Test parsing and producing the wire representation."""

    def test_from_dict(self):
        """Should parse ids, statuses, sections, history and payload."""
        doc = Document.from_dict(WIRE_DOCUMENT)
        assert doc.id == "app_001"
        assert doc.is_persisted is True
        assert doc.status is DocumentStatus.IN_REVIEW
        assert doc.section("A").status is SectionStatus.COMPLETED
        assert doc.section("C") is None
        assert len(doc.history) == 3
        assert doc.history[2].review_comment == "Starting"
        assert doc.history[0].user_id == "7"
        assert doc.payload == {"pi": {"firstName": "Ada"}, "dataTypes": ["genomics"]}

    def test_from_dict_with_json_string(self):
        """Should accept questionnaire data encoded as a JSON string."""
        data = dict(WIRE_DOCUMENT, questionnaireData=json.dumps(WIRE_DOCUMENT["questionnaireData"]))
        doc = Document.from_dict(data)
        assert doc.payload["dataTypes"] == ["genomics"]
        assert len(doc.sections) == 2

    def test_from_dict_defaults(self):
        """Should default a missing id and status."""
        doc = Document.from_dict({})
        assert doc.id == NEW_DOCUMENT_ID
        assert doc.status is DocumentStatus.NEW

    def test_to_dict_places_sections_in_questionnaire(self):
        """Should nest sections inside questionnaireData."""
        result = Document.from_dict(WIRE_DOCUMENT).to_dict()
        assert result["_id"] == "app_001"
        assert result["status"] == "In Review"
        assert result["questionnaireData"]["sections"][1] == {"name": "B", "status": "In Progress"}
        assert result["history"][2]["reviewComment"] == "Starting"

    def test_merge_over_defaults(self):
        """Should fill every missing payload key with its default."""
        doc = merge_over_defaults(Document.from_dict(WIRE_DOCUMENT))
        assert doc.payload["pi"]["firstName"] == "Ada"
        assert doc.payload["pi"]["lastName"] == ""
        assert doc.payload["files"] == []


class TestHistory:
    """Test server-owned history entries."""

    def test_parse_timestamp(self):
        """Should parse ISO-8601 timestamps with a Z suffix."""
        ts = parse_timestamp("2024-01-02T10:00:00Z")
        assert ts.year == 2024
        assert ts.tzinfo is not None
        assert ts.utcoffset() == timezone.utc.utcoffset(ts)
        assert parse_timestamp(None) is None

    def test_latest_history_event(self):
        """Should pick the most recent entry by timestamp, not by position."""
        doc = Document.from_dict(WIRE_DOCUMENT)
        shuffled = dataclasses.replace(doc, history=(doc.history[2], doc.history[0], doc.history[1]))
        assert shuffled.latest_history_event().status is DocumentStatus.IN_REVIEW

    def test_no_history(self):
        """Should return None when there is no history."""
        assert Document.new().latest_history_event() is None

    def test_history_is_immutable(self):
        """Should expose history as an immutable tuple of frozen entries."""
        doc = Document.from_dict(WIRE_DOCUMENT)
        assert isinstance(doc.history, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            doc.history[0].status = DocumentStatus.APPROVED

    def test_document_is_frozen(self):
        """Should not allow reassigning document fields."""
        doc = Document.new()
        with pytest.raises(dataclasses.FrozenInstanceError):
            doc.id = "other"

    def test_history_entry_round_trip(self):
        """Should omit a missing review comment when serializing."""
        entry = HistoryEvent(status=DocumentStatus.SUBMITTED, date_time="2024-01-04T10:00:00Z", user_id="7")
        assert "reviewComment" not in entry.to_dict()
        assert HistoryEvent.from_dict(entry.to_dict()) == entry
