"""Unsaved-change detection.

A document is dirty when the candidate rebuilt from the on-screen fields
differs structurally from the last-committed document. The comparison runs
over the wire representation, so a changed section status counts as well as
a changed payload value.
"""

import copy
from dataclasses import replace
from typing import Any, Mapping, Optional

from submission_request.models import Document
from submission_request.values import structurally_equal


def apply_extracted_payload(document: Document, extracted: Mapping[str, Any]) -> Document:
    """Merge a section's extracted field values over ``document``.

    Merging is shallow per top-level key: a section's content replaces the
    stored value for that key wholesale, other keys are kept.
    """
    payload = copy.deepcopy(document.payload)
    for key, value in extracted.items():
        payload[key] = copy.deepcopy(value)
    return replace(document, payload=payload)


def is_dirty(committed: Optional[Document], candidate: Optional[Document]) -> bool:
    """Return True when ``candidate`` has changes not present in ``committed``.

    A missing committed document with a candidate present is always dirty.

    Examples:
        >>> doc = Document.new()
        >>> is_dirty(doc, doc)
        False
        >>> is_dirty(doc, apply_extracted_payload(doc, {"otherDataTypes": "RNA-Seq"}))
        True
    """
    if candidate is None:
        return False
    if committed is None:
        return True
    return not structurally_equal(committed.to_dict(), candidate.to_dict())


__all__ = [
    "apply_extracted_payload",
    "is_dirty",
]
