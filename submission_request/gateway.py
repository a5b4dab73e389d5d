"""Remote document store interface and an in-memory implementation.

The DocumentStore talks to the remote store only through the RemoteGateway
protocol. Every call either returns a response, raises TransportError when
the store could not be reached, or raises DomainError when the store
processed the request and rejected it.

InMemoryGateway keeps documents in dictionaries and enforces the same rules
a real backend does: id assignment on first save, append-only history, the
workflow transition table and study abbreviation uniqueness. It is used by
the test-suite and for local demos.
"""

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from typing_extensions import Protocol

from submission_request.errors import DomainError
from submission_request.models import Document, HistoryEvent, parse_timestamp
from submission_request.types import DocumentStatus, ErrorCode, Transition
from submission_request.workflow import TRANSITION_RULES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentResponse:
    """Server-authoritative subset returned by save and workflow calls.

    Attributes:
        id: Document identifier; None signals a malformed response
        status: Workflow status after the call
        history: Complete history after the call
        created_at: Server timestamp
        updated_at: Server timestamp
        submitted_date: Server timestamp
        applicant: Applicant details (set on first save)
        organization: Organization (set on first save)
    """
    id: Optional[str]
    status: Optional[DocumentStatus] = None
    history: Optional[Tuple[HistoryEvent, ...]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    submitted_date: Optional[str] = None
    applicant: Optional[Dict[str, Any]] = None
    organization: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentResponse":
        status = data.get("status")
        history = data.get("history")
        return cls(
            id=data.get("_id"),
            status=DocumentStatus(status) if status else None,
            history=tuple(HistoryEvent.from_dict(h) for h in history) if history is not None else None,
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            submitted_date=data.get("submittedDate"),
            applicant=data.get("applicant"),
            organization=data.get("organization"),
        )


class RemoteGateway(Protocol):
    """Request/response access to the remote document store."""

    async def fetch_by_id(self, document_id: str) -> Optional[Document]:
        ...

    async def fetch_most_recent_of_current_user(self) -> Optional[Document]:
        ...

    async def save_document(self, document: Document) -> DocumentResponse:
        ...

    async def submit(self, document_id: str) -> DocumentResponse:
        ...

    async def review(self, document_id: str) -> DocumentResponse:
        ...

    async def approve(self, document_id: str, comment: str, whole_program: bool) -> DocumentResponse:
        ...

    async def inquire(self, document_id: str, comment: str) -> DocumentResponse:
        ...

    async def reject(self, document_id: str, comment: str) -> DocumentResponse:
        ...

    async def reopen(self, document_id: str) -> DocumentResponse:
        ...


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# Statuses in which the applicant may still edit and save the questionnaire
EDITABLE_STATUSES = frozenset({DocumentStatus.NEW, DocumentStatus.IN_PROGRESS})


class InMemoryGateway:
    """RemoteGateway backed by in-process dictionaries.

    Attributes:
        user_id: Identifier recorded as ``userID`` in history entries
        calls: Names of every gateway method invoked, in order
        gate: When set, every call waits for this event before answering

    Examples:
        >>> gateway = InMemoryGateway(user_id="user_1")
        >>> gateway.calls
        []
    """

    def __init__(self, user_id: str = "user_1", clock: Optional[Callable[[], str]] = None):
        self.user_id = user_id
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self._clock = clock or _utc_now
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._owners: Dict[str, str] = {}
        self._failures: List[Exception] = []

    def fail_next(self, error: Exception) -> None:
        """Make the next gateway call raise ``error``."""
        self._failures.append(error)

    def seed(self, document: Document, owner: Optional[str] = None) -> Document:
        """Store a document directly, bypassing the workflow rules."""
        data = document.to_dict()
        if not document.is_persisted:
            data["_id"] = self._new_id()
        self._documents[data["_id"]] = data
        self._owners[data["_id"]] = owner or self.user_id
        return Document.from_dict(copy.deepcopy(data))

    def stored(self, document_id: str) -> Optional[Document]:
        """Return the stored copy of a document without recording a call."""
        data = self._documents.get(document_id)
        return Document.from_dict(copy.deepcopy(data)) if data else None

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.gate is not None:
            await self.gate.wait()
        if self._failures:
            raise self._failures.pop(0)

    def _new_id(self) -> str:
        return uuid.uuid4().hex

    def _require(self, document_id: str) -> Dict[str, Any]:
        data = self._documents.get(document_id)
        if data is None:
            raise DomainError(ErrorCode.NOT_FOUND, f"Submission request '{document_id}' not found")
        return data

    def _append_history(self, data: Dict[str, Any], status: DocumentStatus, comment: Optional[str] = None) -> None:
        entry: Dict[str, Any] = {"status": status.value, "dateTime": self._clock(), "userID": self.user_id}
        if comment is not None:
            entry["reviewComment"] = comment
        data["history"] = list(data.get("history") or []) + [entry]

    def _response(self, data: Dict[str, Any]) -> DocumentResponse:
        return DocumentResponse.from_dict(copy.deepcopy(data))

    def _study_abbreviation(self, data: Dict[str, Any]) -> str:
        study = (data.get("questionnaireData") or {}).get("study") or {}
        return (study.get("abbreviation") or "").strip().lower()

    async def fetch_by_id(self, document_id: str) -> Optional[Document]:
        await self._enter("fetch_by_id")
        data = self._documents.get(document_id)
        return Document.from_dict(copy.deepcopy(data)) if data else None

    async def fetch_most_recent_of_current_user(self) -> Optional[Document]:
        """Most recently submitted document owned by the current user."""
        await self._enter("fetch_most_recent_of_current_user")
        candidates = [
            data for doc_id, data in self._documents.items()
            if self._owners.get(doc_id) == self.user_id and data.get("submittedDate")
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda d: parse_timestamp(d["submittedDate"]).timestamp())
        return Document.from_dict(copy.deepcopy(latest))

    async def save_document(self, document: Document) -> DocumentResponse:
        await self._enter("save_document")
        incoming = document.to_dict()

        abbreviation = self._study_abbreviation(incoming)
        if abbreviation:
            for doc_id, data in self._documents.items():
                if doc_id != document.id and self._study_abbreviation(data) == abbreviation:
                    raise DomainError(
                        ErrorCode.DUPLICATE_STUDY_ABBREVIATION,
                        "A submission request with this study abbreviation already exists",
                    )

        now = self._clock()
        if not document.is_persisted:
            doc_id = self._new_id()
            data = {
                "_id": doc_id,
                "status": DocumentStatus.IN_PROGRESS.value,
                "createdAt": now,
                "submittedDate": None,
                "history": [],
                "applicant": {"applicantID": self.user_id},
                "organization": None,
            }
            self._append_history(data, DocumentStatus.IN_PROGRESS)
            self._documents[doc_id] = data
            self._owners[doc_id] = self.user_id
        else:
            data = self._require(document.id)
            if DocumentStatus(data["status"]) not in EDITABLE_STATUSES:
                raise DomainError(
                    ErrorCode.INVALID_TRANSITION,
                    f"Submission request can not be edited in status '{data['status']}'",
                )
            if data["status"] == DocumentStatus.NEW.value:
                data["status"] = DocumentStatus.IN_PROGRESS.value
                self._append_history(data, DocumentStatus.IN_PROGRESS)

        data["questionnaireData"] = incoming["questionnaireData"]
        data["updatedAt"] = now
        logger.debug("Saved submission request %s", data["_id"])
        return self._response(data)

    def _apply_transition(
        self,
        transition: Transition,
        document_id: str,
        comment: Optional[str] = None,
    ) -> DocumentResponse:
        data = self._require(document_id)
        rule = TRANSITION_RULES[transition]
        current = DocumentStatus(data["status"])
        if current not in rule.valid_from:
            raise DomainError(
                ErrorCode.INVALID_TRANSITION,
                f"Cannot {transition.value} a submission request in status '{current.value}'",
            )

        new_status = rule.target or current
        now = self._clock()
        data["status"] = new_status.value
        data["updatedAt"] = now
        if transition is Transition.SUBMIT:
            data["submittedDate"] = now
        self._append_history(data, new_status, comment)
        logger.debug("Applied %s to %s: %s -> %s", transition.value, document_id, current.value, new_status.value)
        return self._response(data)

    async def submit(self, document_id: str) -> DocumentResponse:
        await self._enter("submit")
        return self._apply_transition(Transition.SUBMIT, document_id)

    async def review(self, document_id: str) -> DocumentResponse:
        await self._enter("review")
        return self._apply_transition(Transition.REVIEW, document_id)

    async def approve(self, document_id: str, comment: str, whole_program: bool) -> DocumentResponse:
        await self._enter("approve")
        response = self._apply_transition(Transition.APPROVE, document_id, comment)
        self._documents[document_id]["programLevelApproval"] = whole_program
        return response

    async def inquire(self, document_id: str, comment: str) -> DocumentResponse:
        await self._enter("inquire")
        return self._apply_transition(Transition.INQUIRE, document_id, comment)

    async def reject(self, document_id: str, comment: str) -> DocumentResponse:
        await self._enter("reject")
        return self._apply_transition(Transition.REJECT, document_id, comment)

    async def reopen(self, document_id: str) -> DocumentResponse:
        await self._enter("reopen")
        return self._apply_transition(Transition.REOPEN, document_id)


__all__ = [
    "DocumentResponse",
    "RemoteGateway",
    "EDITABLE_STATUSES",
    "InMemoryGateway",
]
