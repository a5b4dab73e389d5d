"""Data model for the Submission Request document.

A Document is an immutable value: every change produces a new instance via
``dataclasses.replace``. The DocumentStore swaps whole documents, which keeps
the last-committed copy safe from accidental mutation.

Wire format (camelCase keys, matching the remote document store):

    {
        "_id": "...",
        "status": "In Progress",
        "createdAt": "2024-01-01T10:00:00Z",
        "updatedAt": "...",
        "submittedDate": "...",
        "history": [{"status": "...", "reviewComment": "...", "dateTime": "...", "userID": "..."}],
        "applicant": {...},
        "organization": {...},
        "questionnaireData": {"sections": [{"name": "A", "status": "Completed"}], ...payload}
    }
"""

import copy
import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as date_parser

from submission_request.types import DocumentStatus, SectionStatus
from submission_request.values import deep_merge

NEW_DOCUMENT_ID = "new"

_EMPTY_CONTACT = {
    "position": "",
    "firstName": "",
    "lastName": "",
    "email": "",
    "phone": "",
    "institution": "",
}


def default_payload() -> Dict[str, Any]:
    """Return the payload of a brand-new questionnaire.

    Every top-level key is present with an empty value so that section forms
    can always read their fields.
    """
    return {
        "pi": {
            "firstName": "",
            "lastName": "",
            "position": "",
            "email": "",
            "institution": "",
            "address": "",
        },
        "piAsPrimaryContact": False,
        "primaryContact": dict(_EMPTY_CONTACT),
        "additionalContacts": [],
        "program": {"name": "", "abbreviation": "", "description": ""},
        "study": {
            "name": "",
            "abbreviation": "",
            "description": "",
            "publications": [],
            "plannedPublications": [],
            "repositories": [],
            "funding": {"agency": "", "grantNumbers": "", "nciProgramOfficer": "", "nciGPA": ""},
            "isDbGapRegistered": False,
            "dbGaPPPHSNumber": "",
        },
        "accessTypes": [],
        "targetedSubmissionDate": "",
        "targetedReleaseDate": "",
        "timeConstraints": [],
        "cancerTypes": [],
        "otherCancerTypes": "",
        "preCancerTypes": [],
        "otherPreCancerTypes": "",
        "numberOfParticipants": None,
        "species": [],
        "cellLines": False,
        "modelSystems": False,
        "imagingDataDeIdentified": None,
        "dataDeIdentified": None,
        "dataTypes": [],
        "otherDataTypes": "",
        "clinicalData": {"dataTypes": [], "otherDataTypes": "", "futureDataTypes": False},
        "files": [],
        "submitterComment": "",
    }


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the remote store, None if missing."""
    if not value:
        return None
    return date_parser.isoparse(value)


@dataclass(frozen=True)
class SectionState:
    """Stored completion state of one section."""
    name: str
    status: SectionStatus

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "status": self.status.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SectionState":
        return cls(name=data["name"], status=SectionStatus(data["status"]))


@dataclass(frozen=True)
class HistoryEvent:
    """One entry of the server-owned review history.

    Attributes:
        status: Document status recorded by this entry
        date_time: ISO-8601 timestamp as sent by the server
        user_id: Identifier of the user who caused the change
        review_comment: Optional reviewer comment
    """
    status: DocumentStatus
    date_time: str
    user_id: Optional[str] = None
    review_comment: Optional[str] = None

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.date_time)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "status": self.status.value,
            "dateTime": self.date_time,
            "userID": self.user_id,
        }
        if self.review_comment is not None:
            result["reviewComment"] = self.review_comment
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEvent":
        user_id = data.get("userID")
        return cls(
            status=DocumentStatus(data["status"]),
            date_time=data["dateTime"],
            user_id=str(user_id) if user_id is not None else None,
            review_comment=data.get("reviewComment"),
        )


@dataclass(frozen=True)
class Document:
    """The Submission Request.

    Attributes:
        id: Server identifier, or NEW_DOCUMENT_ID before the first save
        status: Workflow status
        sections: Stored section completion states, in first-visited order
        history: Server-owned review history, oldest first
        payload: Free-form questionnaire content keyed by top-level field
        created_at: Server timestamp (read-only)
        updated_at: Server timestamp (read-only)
        submitted_date: Server timestamp (read-only)
        applicant: Server-assigned applicant details (read-only)
        organization: Server-assigned organization (read-only)

    Examples:
        >>> doc = Document.new()
        >>> doc.id
        'new'
        >>> doc.is_persisted
        False
    """
    id: str = NEW_DOCUMENT_ID
    status: DocumentStatus = DocumentStatus.NEW
    sections: Tuple[SectionState, ...] = ()
    history: Tuple[HistoryEvent, ...] = ()
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    submitted_date: Optional[str] = None
    applicant: Optional[Dict[str, Any]] = None
    organization: Optional[Dict[str, Any]] = None

    @classmethod
    def new(cls, payload: Optional[Dict[str, Any]] = None) -> "Document":
        """Create an unsaved document with default payload values."""
        base = default_payload()
        if payload:
            base = deep_merge(base, payload)
        return cls(payload=base)

    @property
    def is_persisted(self) -> bool:
        return self.id != NEW_DOCUMENT_ID

    def section(self, name: str) -> Optional[SectionState]:
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def latest_history_event(self) -> Optional[HistoryEvent]:
        """Return the most recent history entry by timestamp."""
        if not self.history:
            return None

        def sort_key(event: HistoryEvent) -> float:
            ts = event.timestamp
            return ts.timestamp() if ts is not None else float("-inf")

        return max(self.history, key=sort_key)

    def with_payload(self, payload: Dict[str, Any]) -> "Document":
        return replace(self, payload=copy.deepcopy(payload))

    def copy(self) -> "Document":
        """Return a deep copy (the payload is the only mutable part)."""
        return replace(self, payload=copy.deepcopy(self.payload))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        questionnaire: Dict[str, Any] = copy.deepcopy(self.payload)
        questionnaire["sections"] = [s.to_dict() for s in self.sections]
        return {
            "_id": self.id,
            "status": self.status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "submittedDate": self.submitted_date,
            "history": [h.to_dict() for h in self.history],
            "applicant": copy.deepcopy(self.applicant),
            "organization": copy.deepcopy(self.organization),
            "questionnaireData": questionnaire,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        """Create a Document from its wire representation.

        ``questionnaireData`` may be a JSON-encoded string, as some backends
        store it that way.
        """
        questionnaire = data.get("questionnaireData") or {}
        if isinstance(questionnaire, str):
            questionnaire = json.loads(questionnaire) or {}
        questionnaire = dict(questionnaire)
        sections = questionnaire.pop("sections", None) or []

        return cls(
            id=data.get("_id") or NEW_DOCUMENT_ID,
            status=DocumentStatus(data.get("status") or DocumentStatus.NEW.value),
            sections=tuple(SectionState.from_dict(s) for s in sections),
            history=tuple(HistoryEvent.from_dict(h) for h in data.get("history") or []),
            payload=questionnaire,
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            submitted_date=data.get("submittedDate"),
            applicant=data.get("applicant"),
            organization=data.get("organization"),
        )


def merge_over_defaults(document: Document) -> Document:
    """Fill every payload key missing from ``document`` with its default."""
    return replace(document, payload=deep_merge(default_payload(), document.payload))


__all__ = [
    "NEW_DOCUMENT_ID",
    "default_payload",
    "parse_timestamp",
    "SectionState",
    "HistoryEvent",
    "Document",
    "merge_over_defaults",
]
