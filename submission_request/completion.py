"""Section completion evaluation.

The evaluator is intentionally not a semantic validator: it aggregates a
section's validity signal ("every required field currently satisfies its
constraints") into a tri-state status. Deciding whether a field is valid is
left to the per-field rules (see ``submission_request.validation``).
"""

from typing import List, Tuple

from submission_request.models import Document, SectionState
from submission_request.sections import SectionRegistry
from submission_request.types import DocumentStatus, SectionStatus


def evaluate_section_status(valid: bool, visited: bool) -> SectionStatus:
    """Return the completion status for a section.

    Args:
        valid: Whether the section's form currently reports itself valid
        visited: Whether the section has ever been visited

    Examples:
        >>> evaluate_section_status(valid=True, visited=True)
        <SectionStatus.COMPLETED: 'Completed'>
        >>> evaluate_section_status(valid=False, visited=True)
        <SectionStatus.IN_PROGRESS: 'In Progress'>
        >>> evaluate_section_status(valid=False, visited=False)
        <SectionStatus.NOT_STARTED: 'Not Started'>
    """
    if valid:
        return SectionStatus.COMPLETED
    if visited:
        return SectionStatus.IN_PROGRESS
    return SectionStatus.NOT_STARTED


def section_status(document: Document, section_id: str) -> SectionStatus:
    """Stored status of a section; absent entries are Not Started."""
    section = document.section(section_id)
    return section.status if section is not None else SectionStatus.NOT_STARTED


def with_section_status(
    sections: Tuple[SectionState, ...],
    section_id: str,
    status: SectionStatus,
) -> Tuple[SectionState, ...]:
    """Return ``sections`` with ``section_id`` set to ``status``.

    The entry is updated in place if present, otherwise appended.
    """
    updated: List[SectionState] = []
    found = False
    for section in sections:
        if section.name == section_id:
            updated.append(SectionState(name=section_id, status=status))
            found = True
        else:
            updated.append(section)
    if not found:
        updated.append(SectionState(name=section_id, status=status))
    return tuple(updated)


def all_sections_completed(document: Document, registry: SectionRegistry) -> bool:
    return all(
        section_status(document, section_id) is SectionStatus.COMPLETED
        for section_id in registry.editable_ids
    )


def incomplete_sections(document: Document, registry: SectionRegistry) -> List[str]:
    return [
        section_id
        for section_id in registry.editable_ids
        if section_status(document, section_id) is not SectionStatus.COMPLETED
    ]


def derive_review_status(document: Document, registry: SectionRegistry) -> SectionStatus:
    """Derived status of the Review pseudo-section.

    Completed iff every editable section is Completed. Review is never
    stored by a save; its status is always computed from the others.
    """
    if all_sections_completed(document, registry):
        return SectionStatus.COMPLETED
    visited = any(
        section_status(document, section_id) is not SectionStatus.NOT_STARTED
        for section_id in registry.editable_ids
    )
    return evaluate_section_status(valid=False, visited=visited)


def is_review_finalized(document: Document, registry: SectionRegistry) -> bool:
    """True once the document was approved with every section complete."""
    return document.status is DocumentStatus.APPROVED and all_sections_completed(document, registry)


__all__ = [
    "evaluate_section_status",
    "section_status",
    "with_section_status",
    "all_sections_completed",
    "incomplete_sections",
    "derive_review_status",
    "is_review_finalized",
]
