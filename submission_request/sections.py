"""Static section configuration for the Submission Request questionnaire.

The questionnaire is split into ordered, independently completable sections
followed by the terminal Review pseudo-section. Each section owns a set of
top-level payload keys and may declare a JSON Schema for the required fields
of those keys.

Usage:
    >>> from submission_request.sections import DEFAULT_REGISTRY
    >>> DEFAULT_REGISTRY.editable_ids
    ('A', 'B', 'C', 'D')
    >>> DEFAULT_REGISTRY.next("B")
    'C'
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

REVIEW_SECTION_ID = "REVIEW"

# Section whose payload key is pre-filled from the user's last submission
PREFILL_SECTION_ID = "A"
PREFILL_PAYLOAD_KEY = "pi"

# Section holding the study abbreviation that must be unique server-side
STUDY_SECTION_ID = "B"


@dataclass(frozen=True)
class SectionDefinition:
    """A single questionnaire section.

    Attributes:
        id: Stable section identifier (e.g., "A")
        title: Display title
        payload_keys: Top-level payload keys edited in this section
        schema: Optional JSON Schema over those keys describing required fields
        editable: False only for the Review pseudo-section
    """
    id: str
    title: str
    payload_keys: Tuple[str, ...] = ()
    schema: Optional[Dict[str, Any]] = field(default=None, compare=False)
    editable: bool = True


_NON_EMPTY = {"type": "string", "minLength": 1}

SECTION_A = SectionDefinition(
    id="A",
    title="Principal Investigator & Contact",
    payload_keys=("pi", "piAsPrimaryContact", "primaryContact", "additionalContacts"),
    schema={
        "type": "object",
        "properties": {
            "pi": {
                "type": "object",
                "properties": {
                    "firstName": _NON_EMPTY,
                    "lastName": _NON_EMPTY,
                    "position": _NON_EMPTY,
                    "email": {"type": "string", "format": "email"},
                    "institution": _NON_EMPTY,
                    "address": _NON_EMPTY,
                },
                "required": ["firstName", "lastName", "position", "email", "institution", "address"],
            },
        },
        "required": ["pi"],
    },
)

SECTION_B = SectionDefinition(
    id="B",
    title="Program & Study",
    payload_keys=("program", "study"),
    schema={
        "type": "object",
        "properties": {
            "program": {
                "type": "object",
                "properties": {"name": _NON_EMPTY},
                "required": ["name"],
            },
            "study": {
                "type": "object",
                "properties": {
                    "name": _NON_EMPTY,
                    "abbreviation": {"type": "string", "minLength": 1, "maxLength": 20},
                },
                "required": ["name", "abbreviation"],
            },
        },
        "required": ["program", "study"],
    },
)

SECTION_C = SectionDefinition(
    id="C",
    title="Data Access & Disease",
    payload_keys=(
        "accessTypes",
        "targetedSubmissionDate",
        "targetedReleaseDate",
        "timeConstraints",
        "cancerTypes",
        "otherCancerTypes",
        "preCancerTypes",
        "otherPreCancerTypes",
        "numberOfParticipants",
        "species",
        "cellLines",
        "modelSystems",
    ),
    schema={
        "type": "object",
        "properties": {
            "accessTypes": {"type": "array", "minItems": 1},
            "targetedSubmissionDate": _NON_EMPTY,
            "targetedReleaseDate": _NON_EMPTY,
            "numberOfParticipants": {"type": "integer", "minimum": 1},
        },
        "required": ["accessTypes", "targetedSubmissionDate", "targetedReleaseDate", "numberOfParticipants"],
    },
)

SECTION_D = SectionDefinition(
    id="D",
    title="Data Types",
    payload_keys=(
        "dataTypes",
        "otherDataTypes",
        "clinicalData",
        "files",
        "imagingDataDeIdentified",
        "dataDeIdentified",
        "submitterComment",
    ),
    schema={
        "type": "object",
        "properties": {
            "dataTypes": {"type": "array", "minItems": 1},
            "files": {"type": "array"},
        },
        "required": ["dataTypes"],
    },
)

SECTION_REVIEW = SectionDefinition(id=REVIEW_SECTION_ID, title="Review", editable=False)


class SectionRegistry:
    """Ordered, immutable collection of section definitions.

    The last section must be the non-editable Review pseudo-section.
    """

    def __init__(self, sections: Tuple[SectionDefinition, ...]):
        if not sections or sections[-1].editable:
            raise ValueError("The last section must be the non-editable Review section")
        ids = [s.id for s in sections]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Section ids must be unique: {ids}")

        self._sections = tuple(sections)
        self._by_id = {s.id: s for s in sections}

    def __iter__(self) -> Iterator[SectionDefinition]:
        return iter(self._sections)

    def __len__(self) -> int:
        return len(self._sections)

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(s.id for s in self._sections)

    @property
    def editable_ids(self) -> Tuple[str, ...]:
        return tuple(s.id for s in self._sections if s.editable)

    @property
    def review_id(self) -> str:
        return self._sections[-1].id

    def contains(self, section_id: str) -> bool:
        return section_id in self._by_id

    def get(self, section_id: str) -> SectionDefinition:
        """Return the definition for ``section_id``.

        Raises:
            KeyError: If the section is unknown
        """
        try:
            return self._by_id[section_id]
        except KeyError:
            raise KeyError(f"Unknown section '{section_id}'") from None

    def is_editable(self, section_id: str) -> bool:
        return self.contains(section_id) and self._by_id[section_id].editable

    def resolve(self, section_id: Optional[str]) -> str:
        """Return ``section_id`` if known, otherwise the first section."""
        if section_id is not None and self.contains(section_id):
            return section_id
        return self._sections[0].id

    def index(self, section_id: str) -> int:
        return self.ids.index(self.get(section_id).id)

    def previous(self, section_id: str) -> Optional[str]:
        """Return the section before ``section_id``, or None for the first one."""
        position = self.index(section_id)
        return self._sections[position - 1].id if position > 0 else None

    def next(self, section_id: str) -> Optional[str]:
        """Return the section after ``section_id``, or None for Review."""
        position = self.index(section_id)
        if position + 1 < len(self._sections):
            return self._sections[position + 1].id
        return None


DEFAULT_REGISTRY = SectionRegistry((SECTION_A, SECTION_B, SECTION_C, SECTION_D, SECTION_REVIEW))


__all__ = [
    "REVIEW_SECTION_ID",
    "PREFILL_SECTION_ID",
    "PREFILL_PAYLOAD_KEY",
    "STUDY_SECTION_ID",
    "SectionDefinition",
    "SectionRegistry",
    "DEFAULT_REGISTRY",
]
