"""Navigation guard for sections with unsaved changes.

The guard sits between the router and the DocumentStore. It never navigates
by itself: the router asks it whether an attempted navigation must be
suspended, and the guard later tells the router to resume or abort once the
user picked Save, Discard or Cancel.

Two levels of protection exist:

- In-app navigation is suspended while the mounted section is dirty. The
  guard moves to BLOCKED and nothing happens until the user decides.
- Closing the tab or window cannot be suspended. ``before_unload`` only
  returns a warning message for the host to display; if the user confirms,
  unsaved edits are lost.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from typing_extensions import Protocol

from submission_request.errors import NavigationStateError, SubmissionRequestError
from submission_request.store import DocumentStore
from submission_request.types import GuardState

logger = logging.getLogger(__name__)

UNSAVED_CHANGES_MESSAGE = "You have unsaved form changes. Are you sure you want to leave?"


@dataclass(frozen=True)
class FormSnapshot:
    """Current values of a section form and its native validity."""
    payload: Dict[str, Any] = field(default_factory=dict)
    valid: bool = False


class SectionForm(Protocol):
    """The rendered, editable form of the active section."""

    section_id: str

    def extract(self) -> FormSnapshot:
        ...


class Router(Protocol):
    """Navigation capability provided by the host application."""

    def intercept(self, predicate: Callable[[], bool]) -> Any:
        """Register ``predicate``; a True result suspends the navigation."""
        ...

    def resume(self) -> None:
        """Perform the suspended navigation."""
        ...

    def abort(self) -> None:
        """Drop the suspended navigation."""
        ...


class NavigationGuard:
    """Blocks navigation away from a dirty section until the user decides.

    States: IDLE and BLOCKED.

    Examples:
        >>> from submission_request.gateway import InMemoryGateway
        >>> class NullRouter:
        ...     def intercept(self, predicate): return None
        ...     def resume(self): pass
        ...     def abort(self): pass
        >>> guard = NavigationGuard(DocumentStore(InMemoryGateway()), NullRouter())
        >>> guard.should_block()
        False
    """

    def __init__(self, store: DocumentStore, router: Router):
        self._store = store
        self._router = router
        self._form: Optional[SectionForm] = None
        self.state = GuardState.IDLE
        self.error: Optional[SubmissionRequestError] = None
        self.blocked_signal: Any = None

    def attach(self) -> None:
        """Register the guard's predicate with the router."""
        self.blocked_signal = self._router.intercept(self.should_block)

    @property
    def form(self) -> Optional[SectionForm]:
        return self._form

    def mount(self, form: SectionForm) -> None:
        self._form = form

    def unmount(self) -> None:
        self._form = None
        self.state = GuardState.IDLE

    @property
    def is_blocked(self) -> bool:
        return self.state is GuardState.BLOCKED

    def has_unsaved_changes(self) -> bool:
        form = self._form
        if form is None or self._store.committed is None:
            return False
        snapshot = form.extract()
        return self._store.is_dirty(form.section_id, snapshot.payload)

    def should_block(self) -> bool:
        """Router predicate: suspend the navigation when there are unsaved changes."""
        if self.state is GuardState.BLOCKED:
            return True
        if self.has_unsaved_changes():
            self.state = GuardState.BLOCKED
            self.error = None
            logger.debug("Navigation blocked: section %s has unsaved changes", self._form.section_id)
            return True
        return False

    def before_unload(self) -> Optional[str]:
        """Warning to show when the tab or window is being closed, if dirty."""
        return UNSAVED_CHANGES_MESSAGE if self.has_unsaved_changes() else None

    def _ensure_blocked(self) -> None:
        if self.state is not GuardState.BLOCKED:
            raise NavigationStateError("No navigation is currently blocked")

    async def save_and_proceed(self) -> bool:
        """Save the mounted section, then resume the navigation.

        On failure the guard stays BLOCKED, the error is kept in ``error``
        and the navigation is not resumed.

        Returns:
            True if the navigation was resumed
        """
        self._ensure_blocked()
        form = self._form
        if form is None:
            self.state = GuardState.IDLE
            self._router.resume()
            return True

        snapshot = form.extract()
        try:
            saved_id = await self._store.save(form.section_id, snapshot.payload, snapshot.valid)
        except SubmissionRequestError as exc:
            self.error = exc
            logger.info("Save before navigation failed, staying on section %s: %s", form.section_id, exc.message)
            return False

        if saved_id is None:
            return False

        self.error = None
        self.state = GuardState.IDLE
        self._router.resume()
        return True

    def discard_and_proceed(self) -> None:
        """Drop the unsaved edits and resume the navigation."""
        self._ensure_blocked()
        self._store.discard()
        self.error = None
        self.state = GuardState.IDLE
        self._router.resume()

    def cancel(self) -> None:
        """Stay on the section; the navigation attempt is abandoned."""
        self._ensure_blocked()
        self.error = None
        self.state = GuardState.IDLE
        self._router.abort()


__all__ = [
    "UNSAVED_CHANGES_MESSAGE",
    "FormSnapshot",
    "SectionForm",
    "Router",
    "NavigationGuard",
]
