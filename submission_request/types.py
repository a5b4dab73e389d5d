"""Core type definitions for the Submission Request workflow.

This module defines the enumerations shared by every component:
- DocumentStatus: Domain workflow status of a Submission Request
- SectionStatus: Completion state of a single questionnaire section
- LifecycleStatus: Phase of the DocumentStore itself (loading, saving, ...)
- Transition: Workflow transitions that change the document status
- ErrorCode: Machine-readable codes carried by domain errors
- EventType: Store event types for the event stream
- FieldErrorCode: Validation error codes for individual fields
- GuardState: NavigationGuard states

Enum values are the exact strings exchanged with the remote document store,
so they can be serialized without a lookup table.
"""

from enum import Enum


class DocumentStatus(str, Enum):
    """Workflow status of a Submission Request.

    Terminal: approved. Rejected is terminal until the document is reopened.
    """
    NEW = "New"
    IN_PROGRESS = "In Progress"
    SUBMITTED = "Submitted"
    IN_REVIEW = "In Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class SectionStatus(str, Enum):
    """Completion state of a questionnaire section.

    A section only moves Not Started -> In Progress <-> Completed.
    """
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class LifecycleStatus(str, Enum):
    """Phase of the DocumentStore, distinct from the document status."""
    LOADING = "LOADING"
    LOADED = "LOADED"
    SAVING = "SAVING"
    SUBMITTING = "SUBMITTING"
    ERROR = "ERROR"


class Transition(str, Enum):
    """Status-changing workflow calls."""
    SUBMIT = "submit"
    REVIEW = "review"
    APPROVE = "approve"
    INQUIRE = "inquire"
    REJECT = "reject"
    REOPEN = "reopen"


class ErrorCode(str, Enum):
    """Machine-readable codes for errors reported by the remote store."""
    DUPLICATE_STUDY_ABBREVIATION = "duplicate_study_abbreviation"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    UNKNOWN = "unknown"


class EventType(str, Enum):
    """Store event types for the event stream.

    Every lifecycle change and every completed store operation emits a
    typed event.
    """
    LIFECYCLE_CHANGED = "lifecycle.changed"
    DOCUMENT_LOADED = "document.loaded"
    LOAD_FAILED = "document.load_failed"
    DOCUMENT_SAVED = "document.saved"
    SAVE_FAILED = "document.save_failed"
    SAVE_SKIPPED = "document.save_skipped"
    CHANGES_DISCARDED = "document.changes_discarded"
    SECTION_REVERTED = "section.reverted"
    TRANSITION_SUCCEEDED = "workflow.transition_succeeded"
    TRANSITION_FAILED = "workflow.transition_failed"
    RESPONSE_DISCARDED = "session.response_discarded"


class FieldErrorCode(str, Enum):
    """Validation error codes for individual field failures."""
    REQUIRED = "required"
    INVALID_TYPE = "invalid_type"
    INVALID_FORMAT = "invalid_format"
    INVALID_VALUE = "invalid_value"
    TOO_LONG = "too_long"
    TOO_SHORT = "too_short"
    CUSTOM = "custom"


class GuardState(str, Enum):
    """NavigationGuard states."""
    IDLE = "idle"
    BLOCKED = "blocked"


__all__ = [
    "DocumentStatus",
    "SectionStatus",
    "LifecycleStatus",
    "Transition",
    "ErrorCode",
    "EventType",
    "FieldErrorCode",
    "GuardState",
]
