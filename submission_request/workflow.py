"""Review workflow transitions for the Submission Request.

This module holds the transition table of the review workflow and the
client-side preconditions checked before any remote call is made:

    New -> In Progress -> Submitted -> In Review -> {Approved | Rejected}
    Rejected -> In Progress (reopen)

The table is shared by the DocumentStore (client-side precondition checks)
and by the InMemoryGateway (server-side enforcement).

Usage:
    >>> from submission_request.workflow import can_apply
    >>> from submission_request.types import DocumentStatus, Transition
    >>> can_apply(Transition.REVIEW, DocumentStatus.SUBMITTED)
    True
    >>> can_apply(Transition.APPROVE, DocumentStatus.SUBMITTED)
    False
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, FrozenSet, Optional

from submission_request.completion import incomplete_sections
from submission_request.errors import InvalidTransitionError, ValidationError
from submission_request.models import Document
from submission_request.sections import SectionRegistry
from submission_request.types import DocumentStatus, LifecycleStatus, Transition

if TYPE_CHECKING:
    from submission_request.gateway import DocumentResponse, RemoteGateway


@dataclass(frozen=True)
class TransitionRule:
    """Preconditions and effect of one workflow transition.

    Attributes:
        transition: The transition this rule describes
        valid_from: Document statuses the transition may start from
        target: Resulting status, or None when the server decides
        busy_status: Store lifecycle status while the call is in flight
        requires_comment: Whether a non-empty reviewer comment is mandatory
        requires_complete: Whether every editable section must be Completed
    """
    transition: Transition
    valid_from: FrozenSet[DocumentStatus]
    target: Optional[DocumentStatus]
    busy_status: LifecycleStatus
    requires_comment: bool = False
    requires_complete: bool = False


TRANSITION_RULES: Dict[Transition, TransitionRule] = {
    Transition.SUBMIT: TransitionRule(
        transition=Transition.SUBMIT,
        valid_from=frozenset({DocumentStatus.IN_PROGRESS}),
        target=DocumentStatus.SUBMITTED,
        busy_status=LifecycleStatus.SUBMITTING,
        requires_complete=True,
    ),
    Transition.REVIEW: TransitionRule(
        transition=Transition.REVIEW,
        valid_from=frozenset({DocumentStatus.SUBMITTED}),
        target=DocumentStatus.IN_REVIEW,
        busy_status=LifecycleStatus.LOADING,
    ),
    Transition.APPROVE: TransitionRule(
        transition=Transition.APPROVE,
        valid_from=frozenset({DocumentStatus.IN_REVIEW}),
        target=DocumentStatus.APPROVED,
        busy_status=LifecycleStatus.SUBMITTING,
        requires_comment=True,
    ),
    Transition.INQUIRE: TransitionRule(
        transition=Transition.INQUIRE,
        valid_from=frozenset({DocumentStatus.IN_REVIEW}),
        target=None,
        busy_status=LifecycleStatus.SUBMITTING,
        requires_comment=True,
    ),
    Transition.REJECT: TransitionRule(
        transition=Transition.REJECT,
        valid_from=frozenset({DocumentStatus.IN_REVIEW}),
        target=DocumentStatus.REJECTED,
        busy_status=LifecycleStatus.SUBMITTING,
        requires_comment=True,
    ),
    Transition.REOPEN: TransitionRule(
        transition=Transition.REOPEN,
        valid_from=frozenset({DocumentStatus.REJECTED}),
        target=DocumentStatus.IN_PROGRESS,
        busy_status=LifecycleStatus.LOADING,
    ),
}


def can_apply(transition: Transition, status: DocumentStatus) -> bool:
    return status in TRANSITION_RULES[transition].valid_from


def is_terminal(status: DocumentStatus) -> bool:
    """True when no transition can start from ``status``.

    Rejected is not terminal because it can be reopened.
    """
    return not any(status in rule.valid_from for rule in TRANSITION_RULES.values())


def validate_comment(transition: Transition, comment: Optional[str]) -> Optional[str]:
    """Return the trimmed comment, or raise if a required one is empty.

    Raises:
        ValidationError: If the transition needs a comment and none was given
    """
    rule = TRANSITION_RULES[transition]
    trimmed = comment.strip() if comment is not None else None
    if rule.requires_comment and not trimmed:
        raise ValidationError(f"A review comment is required to {transition.value} a submission request")
    return trimmed


def check_preconditions(document: Document, transition: Transition, registry: SectionRegistry) -> None:
    """Validate that ``transition`` may be requested for ``document``.

    Raises:
        ValidationError: If the document was never saved or is incomplete
        InvalidTransitionError: If the current status does not allow it
    """
    rule = TRANSITION_RULES[transition]

    if not document.is_persisted:
        raise ValidationError(
            f"Cannot {transition.value} a submission request that has not been saved"
        )

    if document.status not in rule.valid_from:
        allowed = ", ".join(sorted(s.value for s in rule.valid_from))
        raise InvalidTransitionError(
            transition=transition,
            current_status=document.status,
            message=(
                f"Invalid transition: cannot {transition.value} from "
                f"'{document.status.value}'. Allowed from: {allowed}"
            ),
        )

    if rule.requires_complete:
        missing = incomplete_sections(document, registry)
        if missing:
            raise ValidationError(
                f"Cannot {transition.value}: sections not completed: {', '.join(missing)}"
            )


class WorkflowTransitions:
    """Maps each transition onto its RemoteGateway call.

    The DocumentStore sequences its lifecycle status around ``invoke``;
    this class only knows which remote call belongs to which transition.
    """

    def __init__(self, gateway: "RemoteGateway"):
        self._gateway = gateway

    @staticmethod
    def rule(transition: Transition) -> TransitionRule:
        return TRANSITION_RULES[transition]

    async def invoke(
        self,
        transition: Transition,
        document_id: str,
        comment: Optional[str] = None,
        whole_program: bool = False,
    ) -> "DocumentResponse":
        gateway = self._gateway
        if transition is Transition.SUBMIT:
            return await gateway.submit(document_id)
        if transition is Transition.REVIEW:
            return await gateway.review(document_id)
        if transition is Transition.APPROVE:
            return await gateway.approve(document_id, comment or "", whole_program)
        if transition is Transition.INQUIRE:
            return await gateway.inquire(document_id, comment or "")
        if transition is Transition.REJECT:
            return await gateway.reject(document_id, comment or "")
        if transition is Transition.REOPEN:
            return await gateway.reopen(document_id)
        raise ValueError(f"Unknown transition: {transition}")


__all__ = [
    "TransitionRule",
    "TRANSITION_RULES",
    "can_apply",
    "is_terminal",
    "validate_comment",
    "check_preconditions",
    "WorkflowTransitions",
]
