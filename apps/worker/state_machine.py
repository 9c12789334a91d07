"""
Per-document processing lifecycle.

    QUEUED -> GENERATING_PROSE -> EXTRACTING_ENTITIES -> COMPLETED
                     |                     |
                     +------> ERROR <------+

Every operation returns a new ProcessedDocument; the input is never mutated.
"""
from __future__ import annotations

from typing import Any

from packages.shared.models import DailyEntry, ProcessedDocument, ProcessingStatus, Warning

ALLOWED_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    ProcessingStatus.IDLE: frozenset({ProcessingStatus.QUEUED}),
    ProcessingStatus.QUEUED: frozenset({ProcessingStatus.GENERATING_PROSE}),
    ProcessingStatus.GENERATING_PROSE: frozenset({
        ProcessingStatus.EXTRACTING_ENTITIES,
        ProcessingStatus.ERROR,
    }),
    ProcessingStatus.EXTRACTING_ENTITIES: frozenset({
        ProcessingStatus.COMPLETED,
        ProcessingStatus.ERROR,
    }),
    ProcessingStatus.COMPLETED: frozenset(),
    ProcessingStatus.ERROR: frozenset(),
}


class InvalidTransitionError(Exception):
    def __init__(self, document_id: str, current: ProcessingStatus, target: ProcessingStatus):
        super().__init__(f"Document {document_id}: cannot move from {current.value} to {target.value}")
        self.document_id = document_id
        self.current = current
        self.target = target


def can_transition(current: ProcessingStatus, target: ProcessingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(doc: ProcessedDocument, target: ProcessingStatus, **changes: Any) -> ProcessedDocument:
    if not can_transition(doc.status, target):
        raise InvalidTransitionError(doc.id, doc.status, target)
    return doc.model_copy(update={**changes, "status": target})


def begin_prose(doc: ProcessedDocument) -> ProcessedDocument:
    return transition(doc, ProcessingStatus.GENERATING_PROSE, error=None)


def begin_extraction(
    doc: ProcessedDocument,
    prose: str,
    warnings: list[Warning] | None = None,
) -> ProcessedDocument:
    return transition(
        doc,
        ProcessingStatus.EXTRACTING_ENTITIES,
        prose=prose,
        warnings=doc.warnings + list(warnings or []),
    )


def complete(
    doc: ProcessedDocument,
    entries: list[DailyEntry],
    warnings: list[Warning] | None = None,
) -> ProcessedDocument:
    return transition(
        doc,
        ProcessingStatus.COMPLETED,
        entries=list(entries),
        warnings=doc.warnings + list(warnings or []),
    )


def fail(doc: ProcessedDocument, message: str) -> ProcessedDocument:
    # Prose already produced (stage 2 failures) is kept for display.
    return transition(doc, ProcessingStatus.ERROR, error=message)
