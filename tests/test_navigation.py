"""Unit tests for the NavigationGuard.

Tests cover:
- Blocking navigation away from a dirty section
- Letting navigation through for untouched or whitespace-only edits
- Save, Discard and Cancel decisions
- The tab-close warning
"""

import pytest

from submission_request.errors import NavigationStateError, TransportError
from submission_request.gateway import InMemoryGateway
from submission_request.models import default_payload
from submission_request.navigation import UNSAVED_CHANGES_MESSAGE, NavigationGuard
from submission_request.store import DocumentStore
from submission_request.types import GuardState, LifecycleStatus, SectionStatus

from tests.helpers import VALID_A, FakeForm, FakeRouter, run


def setup_guard(payload=None, valid=True, gateway=None):
    gateway = gateway or InMemoryGateway()
    store = DocumentStore(gateway)
    run(store.load("new"))
    router = FakeRouter()
    guard = NavigationGuard(store, router)
    guard.attach()
    form = FakeForm("A", payload=VALID_A if payload is None else payload, valid=valid)
    guard.mount(form)
    return guard, store, router, form


class TestBlocking:
    """Test when navigation is suspended."""

    def test_attach_registers_predicate(self):
        """Should hand the router a predicate and keep its blocker."""
        guard, _, router, _ = setup_guard()
        assert router.predicate == guard.should_block
        assert guard.blocked_signal == "blocker"

    def test_dirty_section_blocks(self):
        """Should suspend navigation away from unsaved edits."""
        guard, _, router, _ = setup_guard()

        assert router.navigate() is False
        assert guard.state is GuardState.BLOCKED
        assert guard.is_blocked is True

    def test_untouched_section_passes(self):
        """Should let navigation through when nothing changed."""
        guard, _, router, _ = setup_guard(payload={"pi": default_payload()["pi"]})

        assert router.navigate() is True
        assert guard.state is GuardState.IDLE

    def test_whitespace_only_edits_pass(self):
        """Should ignore fields that only gained whitespace."""
        pi = dict(default_payload()["pi"], firstName="   ", address="\n")
        guard, _, router, _ = setup_guard(payload={"pi": pi})

        assert router.navigate() is True

    def test_no_form_mounted(self):
        """Should never block without a mounted form."""
        guard, _, router, _ = setup_guard()
        guard.unmount()

        assert router.navigate() is True
        assert guard.has_unsaved_changes() is False

    def test_stays_blocked(self):
        """Should keep blocking until the user decides."""
        guard, _, router, form = setup_guard()
        router.navigate()
        form.payload = {"pi": default_payload()["pi"]}

        assert guard.should_block() is True

    def test_nothing_loaded(self):
        """Should not block before a document is loaded."""
        store = DocumentStore(InMemoryGateway())
        guard = NavigationGuard(store, FakeRouter())
        guard.mount(FakeForm("A", payload=VALID_A))

        assert guard.should_block() is False


class TestDecisions:
    """Test the Save, Discard and Cancel choices."""

    def test_save_and_proceed(self):
        """Should save the section and resume navigation."""
        guard, store, router, _ = setup_guard()
        router.navigate()

        assert run(guard.save_and_proceed()) is True

        assert router.resumed == 1
        assert guard.state is GuardState.IDLE
        assert store.committed.is_persisted is True
        assert store.section_status("A") is SectionStatus.COMPLETED
        assert router.navigate() is True

    def test_save_invalid_section(self):
        """Should save an invalid section as In Progress and still proceed."""
        pi = dict(default_payload()["pi"], firstName="Ada")
        guard, store, router, _ = setup_guard(payload={"pi": pi}, valid=False)
        router.navigate()

        assert run(guard.save_and_proceed()) is True
        assert store.section_status("A") is SectionStatus.IN_PROGRESS

    def test_save_failure_stays_blocked(self):
        """Should stay on the section and keep the error when the save fails."""
        gateway = InMemoryGateway()
        guard, store, router, _ = setup_guard(gateway=gateway)
        router.navigate()
        gateway.fail_next(TransportError("timed out"))

        assert run(guard.save_and_proceed()) is False

        assert router.resumed == 0
        assert guard.is_blocked is True
        assert isinstance(guard.error, TransportError)
        assert store.lifecycle is LifecycleStatus.ERROR

    def test_retry_after_failure(self):
        """Should resume once a retried save succeeds."""
        gateway = InMemoryGateway()
        guard, _, router, _ = setup_guard(gateway=gateway)
        router.navigate()
        gateway.fail_next(TransportError("timed out"))
        run(guard.save_and_proceed())

        assert run(guard.save_and_proceed()) is True
        assert guard.error is None
        assert router.resumed == 1

    def test_discard_and_proceed(self):
        """Should drop the edits and resume navigation."""
        guard, store, router, _ = setup_guard()
        router.navigate()

        guard.discard_and_proceed()

        assert router.resumed == 1
        assert guard.state is GuardState.IDLE
        assert store.document == store.committed
        assert store.committed.is_persisted is False

    def test_cancel(self):
        """Should abort the navigation and keep the edits on screen."""
        guard, _, router, form = setup_guard()
        router.navigate()

        guard.cancel()

        assert router.aborted == 1
        assert guard.state is GuardState.IDLE
        assert form.payload == VALID_A
        assert router.navigate() is False

    @pytest.mark.parametrize("decision", ["cancel", "discard_and_proceed"])
    def test_decision_without_block(self, decision):
        """Should refuse a decision when nothing is blocked."""
        guard, _, _, _ = setup_guard()
        with pytest.raises(NavigationStateError):
            getattr(guard, decision)()

    def test_save_without_block(self):
        """Should refuse to save-and-proceed when nothing is blocked."""
        guard, _, _, _ = setup_guard()
        with pytest.raises(NavigationStateError):
            run(guard.save_and_proceed())


class TestBeforeUnload:
    """Test the tab-close warning."""

    def test_warns_when_dirty(self):
        """Should return the warning message for unsaved edits."""
        guard, _, _, _ = setup_guard()
        assert guard.before_unload() == UNSAVED_CHANGES_MESSAGE

    def test_silent_when_clean(self):
        """Should return nothing when there is nothing to lose."""
        guard, _, _, _ = setup_guard(payload={"pi": default_payload()["pi"]})
        assert guard.before_unload() is None
