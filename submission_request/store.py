"""DocumentStore: owner of the active Submission Request.

The store keeps two documents:

- ``committed``: the last document confirmed by the remote store. Dirty
  checks and new saves are always computed against it.
- ``document``: what the user currently sees. It equals ``committed`` except
  after a failed save, where it keeps the merged-but-unsaved edits so nothing
  typed by the user is lost.

At most one remote call is in flight at a time. While the lifecycle status is
LOADING, SAVING or SUBMITTING because of a call, every other mutating
operation raises OperationInProgressError without reaching the gateway.
Calls are never queued and never retried.

Usage:
    >>> import asyncio
    >>> from submission_request.gateway import InMemoryGateway
    >>> store = DocumentStore(InMemoryGateway())
    >>> doc = asyncio.run(store.load("new"))
    >>> store.lifecycle
    <LifecycleStatus.LOADED: 'LOADED'>
"""

import asyncio
import copy
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar, Union

from submission_request.completion import (
    derive_review_status,
    evaluate_section_status,
    section_status,
    with_section_status,
)
from submission_request.config import Settings
from submission_request.dirty import apply_extracted_payload, is_dirty
from submission_request.errors import (
    DomainError,
    OperationInProgressError,
    SessionClosedError,
    SubmissionRequestError,
    TransportError,
    ValidationError,
)
from submission_request.events import EventEmitter, StoreEvent
from submission_request.gateway import DocumentResponse, RemoteGateway
from submission_request.models import NEW_DOCUMENT_ID, Document, merge_over_defaults
from submission_request.sections import (
    DEFAULT_REGISTRY,
    PREFILL_PAYLOAD_KEY,
    PREFILL_SECTION_ID,
    STUDY_SECTION_ID,
    SectionRegistry,
)
from submission_request.types import (
    ErrorCode,
    EventType,
    LifecycleStatus,
    SectionStatus,
    Transition,
)
from submission_request.values import deep_merge
from submission_request.workflow import (
    WorkflowTransitions,
    check_preconditions,
    validate_comment,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PrefillSource = Callable[[], Awaitable[Optional[Document]]]

UNKNOWN_ERROR_MESSAGE = "An unknown issue occurred"


class DocumentStore:
    """State machine owning one Submission Request per editing session.

    Attributes:
        events: Emitter receiving a StoreEvent for every lifecycle change
            and every completed operation

    Examples:
        >>> from submission_request.gateway import InMemoryGateway
        >>> store = DocumentStore(InMemoryGateway())
        >>> store.lifecycle
        <LifecycleStatus.LOADING: 'LOADING'>
        >>> store.document is None
        True
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        registry: SectionRegistry = DEFAULT_REGISTRY,
        settings: Optional[Settings] = None,
        events: Optional[EventEmitter] = None,
    ):
        self._gateway = gateway
        self._registry = registry
        self._settings = settings or Settings()
        self._workflow = WorkflowTransitions(gateway)
        self.events = events or EventEmitter()

        self._lifecycle = LifecycleStatus.LOADING
        self._document: Optional[Document] = None
        self._committed: Optional[Document] = None
        self._error: Optional[str] = None
        self._last_error: Optional[SubmissionRequestError] = None
        self._in_flight = False
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def lifecycle(self) -> LifecycleStatus:
        return self._lifecycle

    @property
    def document(self) -> Optional[Document]:
        """Document currently shown to the user."""
        return self._document

    @property
    def committed(self) -> Optional[Document]:
        """Last document confirmed by the remote store."""
        return self._committed

    @property
    def error(self) -> Optional[str]:
        """User-facing message of the last failure, cleared on success."""
        return self._error

    @property
    def last_error(self) -> Optional[SubmissionRequestError]:
        return self._last_error

    @property
    def registry(self) -> SectionRegistry:
        return self._registry

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    @property
    def is_closed(self) -> bool:
        return self._closed

    def section_status(self, section_id: str) -> SectionStatus:
        if section_id == self._registry.review_id:
            return self.review_status
        if self._document is None:
            return SectionStatus.NOT_STARTED
        return section_status(self._document, section_id)

    @property
    def review_status(self) -> SectionStatus:
        if self._document is None:
            return SectionStatus.NOT_STARTED
        return derive_review_status(self._document, self._registry)

    # ------------------------------------------------------------------
    # Guards and bookkeeping
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("The editing session has been closed")

    def _ensure_idle(self) -> None:
        if self._in_flight:
            raise OperationInProgressError(
                f"Another operation is in progress ({self._lifecycle.value})"
            )

    def _ensure_loaded(self) -> Document:
        if self._committed is None:
            raise ValidationError("No submission request is loaded")
        return self._committed

    def _document_id(self) -> Optional[str]:
        return self._document.id if self._document is not None else None

    def _emit(self, event_type: EventType, payload: Optional[Dict[str, Any]] = None) -> None:
        self.events.emit(StoreEvent.create(event_type, self._document_id(), self._lifecycle, payload))

    def _set_lifecycle(self, status: LifecycleStatus) -> None:
        previous = self._lifecycle
        self._lifecycle = status
        if status is not LifecycleStatus.ERROR:
            self._error = None
            self._last_error = None
        self._emit(EventType.LIFECYCLE_CHANGED, {"from": previous.value, "to": status.value})

    def _fail(self, exc: SubmissionRequestError, event_type: EventType, payload: Dict[str, Any]) -> None:
        previous = self._lifecycle
        self._lifecycle = LifecycleStatus.ERROR
        self._error = exc.message
        self._last_error = exc
        self._emit(EventType.LIFECYCLE_CHANGED, {"from": previous.value, "to": LifecycleStatus.ERROR.value})
        self._emit(event_type, {**payload, "error": exc.to_dict()})
        logger.warning("%s failed for %s: %s", payload.get("operation"), self._document_id(), exc.message)

    def _discard_response(self, operation: str) -> None:
        logger.debug("Discarding %s response for closed session %s", operation, self._document_id())
        self._emit(EventType.RESPONSE_DISCARDED, {"operation": operation})

    async def _remote(self, call: Awaitable[T]) -> T:
        """Await a gateway call, mapping any non-domain failure to TransportError."""
        try:
            return await call
        except SubmissionRequestError:
            raise
        except (OSError, asyncio.TimeoutError) as exc:
            raise TransportError(f"The remote store could not be reached: {exc}") from exc
        except Exception as exc:
            raise TransportError(f"The remote store request failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(
        self,
        document_id: str,
        prefill: Optional[Union[Document, PrefillSource]] = None,
    ) -> Optional[Document]:
        """Load a document, or create a default one for the "new" sentinel.

        Args:
            document_id: Server id, or NEW_DOCUMENT_ID for a brand-new document
            prefill: Most recent submission of the current user, or an async
                callable returning it. Used to pre-fill the principal
                investigator of new documents. Defaults to the gateway's
                ``fetch_most_recent_of_current_user``; resolved at most once.

        Returns:
            The loaded document, or None if the session was closed meanwhile

        Raises:
            ValidationError: If ``document_id`` is empty
            TransportError: If the remote store could not be reached
            DomainError: If the document does not exist
        """
        self._ensure_open()
        self._ensure_idle()

        if not document_id or not document_id.strip():
            exc = ValidationError("Invalid submission request ID provided")
            self._fail(exc, EventType.LOAD_FAILED, {"operation": "load"})
            raise exc

        self._in_flight = True
        self._set_lifecycle(LifecycleStatus.LOADING)
        try:
            if document_id == NEW_DOCUMENT_ID:
                document = await self._apply_prefill(Document.new(), prefill)
            else:
                fetched = await self._remote(self._gateway.fetch_by_id(document_id))
                if fetched is None:
                    raise DomainError(ErrorCode.NOT_FOUND, f"Submission request '{document_id}' not found")
                document = merge_over_defaults(fetched)
                if section_status(document, PREFILL_SECTION_ID) is SectionStatus.NOT_STARTED:
                    document = await self._apply_prefill(document, prefill)
        except SubmissionRequestError as exc:
            if self._closed:
                self._discard_response("load")
                return None
            self._document = None
            self._committed = None
            self._fail(exc, EventType.LOAD_FAILED, {"operation": "load"})
            raise
        finally:
            self._in_flight = False

        if self._closed:
            self._discard_response("load")
            return None

        self._document = document
        self._committed = document.copy()
        self._set_lifecycle(LifecycleStatus.LOADED)
        self._emit(EventType.DOCUMENT_LOADED, {"operation": "load"})
        logger.info("Loaded submission request %s (%s)", document.id, document.status.value)
        return document

    async def _apply_prefill(
        self,
        document: Document,
        prefill: Optional[Union[Document, PrefillSource]],
    ) -> Document:
        """Best-effort pre-fill of the principal investigator details.

        A missing previous submission or a failed lookup leaves the
        document untouched.
        """
        if not self._settings.prefill_enabled:
            return document

        if isinstance(prefill, Document):
            previous: Optional[Document] = prefill
        else:
            source = prefill or self._gateway.fetch_most_recent_of_current_user
            try:
                previous = await self._remote(source())
            except SubmissionRequestError as exc:
                logger.warning("Could not read the last submission for pre-fill: %s", exc.message)
                return document

        if previous is None:
            return document
        prior = previous.payload.get(PREFILL_PAYLOAD_KEY)
        if not isinstance(prior, Mapping):
            return document

        payload = copy.deepcopy(document.payload)
        payload[PREFILL_PAYLOAD_KEY] = deep_merge(payload.get(PREFILL_PAYLOAD_KEY) or {}, prior)
        return replace(document, payload=payload)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def candidate(self, section_id: str, extracted: Mapping[str, Any]) -> Document:
        """Last-committed document with a section's extracted values merged in.

        Raises:
            ValidationError: If nothing is loaded or the section is unknown
        """
        committed = self._ensure_loaded()
        if not self._registry.contains(section_id):
            raise ValidationError(f"Unknown section '{section_id}'")
        return apply_extracted_payload(committed, extracted)

    def is_dirty(self, section_id: str, extracted: Mapping[str, Any]) -> bool:
        """True when the on-screen values differ from the last-committed document."""
        if self._committed is None:
            return False
        return is_dirty(self._committed, self.candidate(section_id, extracted))

    def discard(self) -> Document:
        """Revert the current document to the last-committed one."""
        self._ensure_open()
        self._ensure_idle()
        committed = self._ensure_loaded()
        self._document = committed.copy()
        self._emit(EventType.CHANGES_DISCARDED)
        return self._document

    async def save(self, section_id: str, extracted: Mapping[str, Any], valid: bool) -> Optional[str]:
        """Save a section's values.

        Args:
            section_id: The section being edited
            extracted: The section's current field values, keyed by
                top-level payload key
            valid: Whether the section's form reports every required field
                as valid

        Returns:
            The document id (newly issued on first save), or None if the
            session was closed before the response arrived

        Raises:
            ValidationError: If nothing is loaded or the section is not editable
            OperationInProgressError: If another call is in flight
            TransportError: If the remote store could not be reached
            DomainError: If the remote store rejected the document
        """
        self._ensure_open()
        self._ensure_idle()
        committed = self._ensure_loaded()
        if not self._registry.is_editable(section_id):
            raise ValidationError(f"Section '{section_id}' can not be saved")

        status = evaluate_section_status(valid=valid, visited=True)
        candidate = self.candidate(section_id, extracted)
        candidate = replace(candidate, sections=with_section_status(candidate.sections, section_id, status))

        if not is_dirty(committed, candidate):
            self._document = committed.copy()
            if self._lifecycle is LifecycleStatus.ERROR:
                self._set_lifecycle(LifecycleStatus.LOADED)
            self._emit(EventType.SAVE_SKIPPED, {"operation": "save", "section": section_id})
            return committed.id

        self._document = candidate
        self._in_flight = True
        self._set_lifecycle(LifecycleStatus.SAVING)
        try:
            response = await self._remote(self._gateway.save_document(candidate))
            if not self._closed and not response.id:
                raise DomainError(ErrorCode.UNKNOWN, UNKNOWN_ERROR_MESSAGE)
        except SubmissionRequestError as exc:
            if self._closed:
                self._discard_response("save")
                return None
            if isinstance(exc, DomainError) and exc.code is ErrorCode.DUPLICATE_STUDY_ABBREVIATION:
                self._revert_study_section_after_duplicate()
            self._fail(exc, EventType.SAVE_FAILED, {"operation": "save", "section": section_id})
            raise
        finally:
            self._in_flight = False

        if self._closed:
            self._discard_response("save")
            return None

        saved = self._merge_response(candidate, response)
        self._document = saved
        self._committed = saved.copy()
        self._set_lifecycle(LifecycleStatus.LOADED)
        self._emit(EventType.DOCUMENT_SAVED, {"operation": "save", "section": section_id, "sectionStatus": status.value})
        logger.info("Saved section %s of %s as %s", section_id, saved.id, status.value)
        return saved.id

    def _revert_study_section_after_duplicate(self) -> None:
        """Force the study section back to In Progress.

        The study abbreviation must be unique server-side. When the store
        rejects it, the study section must not appear complete even though
        its form reported valid. This is the only case where a Completed
        section moves back.
        """
        document = self._document
        if document is None:
            return
        sections = with_section_status(document.sections, STUDY_SECTION_ID, SectionStatus.IN_PROGRESS)
        self._document = replace(document, sections=sections)
        self._emit(EventType.SECTION_REVERTED, {"section": STUDY_SECTION_ID, "reason": ErrorCode.DUPLICATE_STUDY_ABBREVIATION.value})

    def _merge_response(self, document: Document, response: DocumentResponse) -> Document:
        """Merge the server-authoritative fields of a response into ``document``."""
        changes: Dict[str, Any] = {}
        if not document.is_persisted:
            changes["id"] = response.id
            changes["applicant"] = response.applicant
            changes["organization"] = response.organization
        elif response.id != document.id:
            logger.warning("Ignoring id change from %s to %s in server response", document.id, response.id)

        if response.status is not None:
            changes["status"] = response.status
        if response.history is not None:
            if len(response.history) < len(document.history):
                logger.warning("Server returned a shorter history for %s", document.id)
            changes["history"] = response.history
        for attr in ("created_at", "updated_at", "submitted_date"):
            value = getattr(response, attr)
            if value is not None:
                changes[attr] = value
        return replace(document, **changes)

    # ------------------------------------------------------------------
    # Workflow transitions
    # ------------------------------------------------------------------

    async def submit(self) -> Optional[str]:
        """Submit a completed document for review."""
        return await self._transition(Transition.SUBMIT)

    async def review(self) -> Optional[str]:
        """Move a submitted document into review."""
        return await self._transition(Transition.REVIEW)

    async def reopen(self) -> Optional[str]:
        """Return a rejected document to In Progress."""
        return await self._transition(Transition.REOPEN)

    async def approve(self, comment: str, whole_program: bool = False) -> Optional[str]:
        return await self._transition(Transition.APPROVE, comment=comment, whole_program=whole_program)

    async def inquire(self, comment: str) -> Optional[str]:
        return await self._transition(Transition.INQUIRE, comment=comment)

    async def reject(self, comment: str) -> Optional[str]:
        return await self._transition(Transition.REJECT, comment=comment)

    async def _transition(
        self,
        transition: Transition,
        comment: Optional[str] = None,
        whole_program: bool = False,
    ) -> Optional[str]:
        """Run one workflow transition with confirm-then-commit semantics.

        Every precondition is checked before the gateway is called. The
        document status only changes once the server confirmed the call; on
        failure the document is left exactly as it was.
        """
        self._ensure_open()
        comment = validate_comment(transition, comment)
        self._ensure_idle()
        committed = self._ensure_loaded()
        check_preconditions(committed, transition, self._registry)

        rule = self._workflow.rule(transition)
        previous_status = committed.status
        self._in_flight = True
        self._set_lifecycle(rule.busy_status)
        try:
            response = await self._remote(
                self._workflow.invoke(transition, committed.id, comment=comment, whole_program=whole_program)
            )
            if not self._closed and not response.id:
                raise DomainError(ErrorCode.UNKNOWN, UNKNOWN_ERROR_MESSAGE)
        except SubmissionRequestError as exc:
            if self._closed:
                self._discard_response(transition.value)
                return None
            self._fail(exc, EventType.TRANSITION_FAILED, {"operation": transition.value})
            raise
        finally:
            self._in_flight = False

        if self._closed:
            self._discard_response(transition.value)
            return None

        self._committed = self._merge_response(committed, response)
        self._document = self._committed.copy()
        self._set_lifecycle(LifecycleStatus.LOADED)
        self._emit(
            EventType.TRANSITION_SUCCEEDED,
            {
                "operation": transition.value,
                "from": previous_status.value,
                "to": self._committed.status.value,
            },
        )
        logger.info(
            "Transition %s on %s: %s -> %s",
            transition.value, committed.id, previous_status.value, self._committed.status.value,
        )
        return response.id

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """End the editing session; responses still in flight are discarded."""
        if not self._closed:
            self._closed = True
            logger.debug("Closed editing session for %s", self._document_id())


__all__ = [
    "PrefillSource",
    "DocumentStore",
]
