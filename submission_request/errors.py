"""Error taxonomy for the Submission Request workflow.

Three kinds of failure are distinguished:

- ValidationError: a client-side precondition failed before any remote call
  was made (empty review comment, submitting an incomplete document, a second
  mutating call while one is in flight). These never reach the RemoteGateway.
- TransportError: the remote store could not be reached or did not answer.
- DomainError: the remote store processed the request but rejected it. It
  carries a machine-readable ErrorCode so callers can match on the code
  instead of on message text.

Per-field validation details (FieldError) follow the same serializable
dataclass shape as the rest of the package.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from submission_request.types import (
    DocumentStatus,
    ErrorCode,
    FieldErrorCode,
    Transition,
)


@dataclass(frozen=True)
class FieldError:
    """Per-field validation error details.

    Attributes:
        path: Dot-notation field path (e.g., "pi.email", "study.abbreviation")
        code: Specific validation error code
        message: Human-readable error description
        expected: Optional - what was expected (type, format, enum values, etc.)
        received: Optional - what was actually received

    Examples:
        >>> err = FieldError(
        ...     path="pi.email",
        ...     code=FieldErrorCode.INVALID_FORMAT,
        ...     message="Invalid email format",
        ... )
        >>> err.path
        'pi.email'
    """
    path: str
    code: FieldErrorCode
    message: str
    expected: Optional[Any] = None
    received: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "path": self.path,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }
        if self.expected is not None:
            result["expected"] = self.expected
        if self.received is not None:
            result["received"] = self.received
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldError":
        """Create FieldError from dict."""
        code = data["code"]
        if isinstance(code, str):
            code = FieldErrorCode(code)
        return cls(
            path=data["path"],
            code=code,
            message=data["message"],
            expected=data.get("expected"),
            received=data.get("received"),
        )


class SubmissionRequestError(Exception):
    """Base class for every error raised by this package."""

    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {"kind": self.kind, "message": self.message}


class ValidationError(SubmissionRequestError):
    """A client-side precondition failed; nothing was sent to the server."""

    kind = "validation"


class InvalidTransitionError(ValidationError):
    """Raised when a workflow transition is not allowed from the current status.

    Attributes:
        transition: The transition that was attempted
        current_status: The document status at the time of the attempt
    """

    def __init__(self, transition: Transition, current_status: DocumentStatus, message: str):
        self.transition = transition
        self.current_status = current_status
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["transition"] = self.transition.value
        result["currentStatus"] = self.current_status.value
        return result


class OperationInProgressError(ValidationError):
    """Raised when a mutating call is attempted while another is in flight."""


class SessionClosedError(ValidationError):
    """Raised when the store is used after its editing session was disposed."""


class NavigationStateError(ValidationError):
    """Raised when a blocked-navigation decision is made with nothing blocked."""


class TransportError(SubmissionRequestError):
    """The remote store was unreachable or the request did not complete."""

    kind = "transport"


class DomainError(SubmissionRequestError):
    """The remote store completed the request but rejected it.

    Attributes:
        code: Machine-readable reason for the rejection

    Examples:
        >>> err = DomainError(ErrorCode.DUPLICATE_STUDY_ABBREVIATION, "Duplicate study")
        >>> err.code is ErrorCode.DUPLICATE_STUDY_ABBREVIATION
        True
    """

    kind = "domain"

    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["code"] = self.code.value
        return result


__all__ = [
    "FieldError",
    "SubmissionRequestError",
    "ValidationError",
    "InvalidTransitionError",
    "OperationInProgressError",
    "SessionClosedError",
    "NavigationStateError",
    "TransportError",
    "DomainError",
]
