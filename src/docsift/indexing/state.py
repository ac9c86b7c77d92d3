"""
Processing status state machine.

Documents are immutable snapshots; every stage produces the next snapshot
through ``apply_stage`` so that a status change is always validated before
it is persisted.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from ..errors import InvalidTransitionError
from ..storage import DocumentRecord, ProcessingStatus

STATUS_SEQUENCE: tuple[ProcessingStatus, ...] = (
    ProcessingStatus.PENDING,
    ProcessingStatus.EXTRACTING,
    ProcessingStatus.EMBEDDING,
    ProcessingStatus.TAGGING,
    ProcessingStatus.COMPLETE,
)


def can_transition(current: ProcessingStatus, target: ProcessingStatus) -> bool:
    """Return True if *target* may follow *current*."""
    if current.is_terminal:
        return False
    if target is ProcessingStatus.ERROR:
        return True
    return STATUS_SEQUENCE.index(target) == STATUS_SEQUENCE.index(current) + 1


def ensure_transition(current: ProcessingStatus, target: ProcessingStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move document from {current.value!r} to {target.value!r}"
        )


def apply_stage(
    document: DocumentRecord,
    status: ProcessingStatus | None = None,
    **changes: Any,
) -> DocumentRecord:
    """Return a new snapshot with *changes* applied and *status* validated."""
    if status is not None:
        ensure_transition(document.status, status)
        changes["status"] = status
    elif document.status.is_terminal:
        raise InvalidTransitionError(
            f"Document {document.id} is {document.status.value} and can no longer change"
        )
    return replace(document, **changes)
