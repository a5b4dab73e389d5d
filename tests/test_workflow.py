"""Unit tests for the review workflow transition table.

Tests cover:
- Which transitions apply from which status
- Terminal statuses
- Reviewer comment requirements
- Client-side preconditions
- Routing of transitions onto gateway calls
"""

from dataclasses import replace

import pytest

from submission_request.errors import DomainError, InvalidTransitionError, ValidationError
from submission_request.gateway import InMemoryGateway
from submission_request.models import Document
from submission_request.sections import DEFAULT_REGISTRY
from submission_request.types import DocumentStatus, ErrorCode, LifecycleStatus, Transition
from submission_request.workflow import (
    TRANSITION_RULES,
    WorkflowTransitions,
    can_apply,
    check_preconditions,
    is_terminal,
    validate_comment,
)

from tests.helpers import run, seed_document


VALID_TRANSITIONS = [
    (Transition.SUBMIT, DocumentStatus.IN_PROGRESS),
    (Transition.REVIEW, DocumentStatus.SUBMITTED),
    (Transition.APPROVE, DocumentStatus.IN_REVIEW),
    (Transition.INQUIRE, DocumentStatus.IN_REVIEW),
    (Transition.REJECT, DocumentStatus.IN_REVIEW),
    (Transition.REOPEN, DocumentStatus.REJECTED),
]


class TestTransitionTable:
    """Test the transition rules."""

    @pytest.mark.parametrize("transition,status", VALID_TRANSITIONS)
    def test_valid_transitions(self, transition, status):
        """Should allow each transition from its source status."""
        assert can_apply(transition, status) is True

    @pytest.mark.parametrize("transition", list(Transition))
    def test_nothing_from_new(self, transition):
        """Should not allow any transition on a new document."""
        assert can_apply(transition, DocumentStatus.NEW) is False

    def test_approve_from_submitted(self):
        """Should not allow approving before review started."""
        assert can_apply(Transition.APPROVE, DocumentStatus.SUBMITTED) is False

    def test_terminal_statuses(self):
        """Should treat only Approved as terminal."""
        assert is_terminal(DocumentStatus.APPROVED) is True
        assert is_terminal(DocumentStatus.REJECTED) is False
        assert is_terminal(DocumentStatus.IN_REVIEW) is False

    def test_busy_statuses(self):
        """Should run review and reopen as LOADING, the others as SUBMITTING."""
        assert TRANSITION_RULES[Transition.REVIEW].busy_status is LifecycleStatus.LOADING
        assert TRANSITION_RULES[Transition.REOPEN].busy_status is LifecycleStatus.LOADING
        assert TRANSITION_RULES[Transition.SUBMIT].busy_status is LifecycleStatus.SUBMITTING
        assert TRANSITION_RULES[Transition.APPROVE].busy_status is LifecycleStatus.SUBMITTING

    def test_inquire_has_no_fixed_target(self):
        """Should leave the resulting status of an inquiry to the server."""
        assert TRANSITION_RULES[Transition.INQUIRE].target is None


class TestComments:
    """Test reviewer comment handling."""

    @pytest.mark.parametrize("transition", [Transition.APPROVE, Transition.INQUIRE, Transition.REJECT])
    @pytest.mark.parametrize("comment", [None, "", "   \n"])
    def test_required_comment(self, transition, comment):
        """Should refuse a missing or blank comment."""
        with pytest.raises(ValidationError):
            validate_comment(transition, comment)

    def test_comment_is_trimmed(self):
        """Should return the comment without surrounding whitespace."""
        assert validate_comment(Transition.REJECT, "  Missing consent  ") == "Missing consent"

    def test_optional_comment(self):
        """Should accept no comment where none is needed."""
        assert validate_comment(Transition.SUBMIT, None) is None


class TestPreconditions:
    """Test checks made before any remote call."""

    def test_unsaved_document(self):
        """Should refuse transitions on a document that was never saved."""
        with pytest.raises(ValidationError, match="has not been saved"):
            check_preconditions(Document.new(), Transition.SUBMIT, DEFAULT_REGISTRY)

    def test_wrong_status(self):
        """Should raise InvalidTransitionError carrying the attempt."""
        document = replace(Document.new(), id="app_001", status=DocumentStatus.IN_PROGRESS)
        with pytest.raises(InvalidTransitionError) as exc_info:
            check_preconditions(document, Transition.APPROVE, DEFAULT_REGISTRY)
        assert exc_info.value.transition is Transition.APPROVE
        assert exc_info.value.current_status is DocumentStatus.IN_PROGRESS
        assert exc_info.value.to_dict()["currentStatus"] == "In Progress"

    def test_submit_incomplete(self):
        """Should list the sections that are not completed."""
        document = replace(Document.new(), id="app_001", status=DocumentStatus.IN_PROGRESS)
        with pytest.raises(ValidationError, match="A, B, C, D"):
            check_preconditions(document, Transition.SUBMIT, DEFAULT_REGISTRY)

    def test_submit_complete(self):
        """Should pass for a completed, in-progress document."""
        document = seed_document(InMemoryGateway(), DocumentStatus.IN_PROGRESS)
        check_preconditions(document, Transition.SUBMIT, DEFAULT_REGISTRY)


class TestWorkflowTransitions:
    """Test the mapping from transitions to gateway calls."""

    def test_invoke_routes_to_gateway(self):
        """Should call the gateway method named after the transition."""
        gateway = InMemoryGateway()
        document = seed_document(gateway, DocumentStatus.IN_REVIEW)
        workflow = WorkflowTransitions(gateway)

        response = run(workflow.invoke(Transition.REJECT, document.id, comment="Incomplete"))

        assert gateway.calls == ["reject"]
        assert response.status is DocumentStatus.REJECTED
        assert response.history[-1].review_comment == "Incomplete"

    def test_server_enforces_rules(self):
        """Should surface the server's refusal of an invalid transition."""
        gateway = InMemoryGateway()
        document = seed_document(gateway, DocumentStatus.IN_PROGRESS)
        workflow = WorkflowTransitions(gateway)

        with pytest.raises(DomainError) as exc_info:
            run(workflow.invoke(Transition.APPROVE, document.id, comment="ok"))
        assert exc_info.value.code is ErrorCode.INVALID_TRANSITION
