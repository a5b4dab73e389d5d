"""Submission Request workflow core.

This package owns the client-side state of a multi-section Submission
Request while it is edited and reviewed:
- Section completion evaluation and derived Review status
- Unsaved-change detection over nested, dynamically shaped payloads
- A DocumentStore with a single in-flight remote call and confirm-then-commit
  workflow transitions (submit, review, approve, inquire, reject, reopen)
- A navigation guard that suspends in-app navigation away from a dirty section

Basic usage:
    >>> import asyncio
    >>> from submission_request import DocumentStore, InMemoryGateway
    >>> store = DocumentStore(InMemoryGateway())
    >>> document = asyncio.run(store.load("new"))
    >>> document.status.value
    'New'
"""

__version__ = "0.1.0"

# Version info
VERSION = (0, 1, 0)

from submission_request.config import Settings
from submission_request.gateway import InMemoryGateway, RemoteGateway
from submission_request.logging_config import configure_logging
from submission_request.navigation import NavigationGuard
from submission_request.store import DocumentStore
from submission_request.validation import ValidationResult, validate_section

__all__ = [
    "__version__",
    "VERSION",
    "DocumentStore",
    "NavigationGuard",
    "RemoteGateway",
    "InMemoryGateway",
    "Settings",
    "configure_logging",
    "ValidationResult",
    "validate_section",
]
