"""Shared payloads and fakes for the test-suite."""

import asyncio
import copy
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional

from submission_request.models import Document, SectionState, default_payload
from submission_request.navigation import FormSnapshot
from submission_request.types import DocumentStatus, SectionStatus

VALID_A = {
    "pi": {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "position": "Principal Investigator",
        "email": "ada@example.org",
        "institution": "National Cancer Institute",
        "address": "9609 Medical Center Dr",
    },
}
VALID_B = {
    "program": {"name": "Cancer Genomics", "abbreviation": "CG", "description": ""},
    "study": {"name": "Lung Atlas", "abbreviation": "LA"},
}
VALID_C = {
    "accessTypes": ["Controlled Access"],
    "targetedSubmissionDate": "2024-05-01",
    "targetedReleaseDate": "2024-09-01",
    "numberOfParticipants": 120,
}
VALID_D = {"dataTypes": ["genomics"]}

VALID_SECTIONS = {"A": VALID_A, "B": VALID_B, "C": VALID_C, "D": VALID_D}


def run(coro):
    """Run a coroutine on a fresh event loop."""
    return asyncio.run(coro)


async def complete_all_sections(store) -> str:
    """Save every editable section with valid values; returns the document id."""
    document_id = None
    for section_id, payload in VALID_SECTIONS.items():
        document_id = await store.save(section_id, payload, valid=True)
    return document_id


@dataclass
class FakeForm:
    """Section form whose values the test sets directly."""
    section_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    valid: bool = False

    def extract(self) -> FormSnapshot:
        return FormSnapshot(payload=dict(self.payload), valid=self.valid)


class FakeRouter:
    """Router recording every guard decision."""

    def __init__(self):
        self.predicate: Optional[Callable[[], bool]] = None
        self.resumed = 0
        self.aborted = 0

    def intercept(self, predicate: Callable[[], bool]) -> str:
        self.predicate = predicate
        return "blocker"

    def navigate(self) -> bool:
        """Attempt a navigation; returns True if it was performed immediately."""
        if self.predicate is not None and self.predicate():
            return False
        return True

    def resume(self) -> None:
        self.resumed += 1

    def abort(self) -> None:
        self.aborted += 1


def complete_payload() -> Dict[str, Any]:
    """Default payload with every section filled in."""
    payload = default_payload()
    for values in VALID_SECTIONS.values():
        payload.update(copy.deepcopy(values))
    return payload


def seed_document(gateway, status: DocumentStatus, complete: bool = True, owner: Optional[str] = None) -> Document:
    """Store a document in ``status`` directly on the gateway."""
    sections = tuple(SectionState(name=s, status=SectionStatus.COMPLETED) for s in VALID_SECTIONS) if complete else ()
    document = replace(Document.new(payload=complete_payload()), status=status, sections=sections)
    return gateway.seed(document, owner=owner)
