"""
Case persistence: load and save the whole case collection.

Binary content is not stored here; see packages.shared.storage.BlobStore.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import sessionmaker

from packages.db.database import get_session
from packages.db.models import CaseRow, DocumentRow
from packages.shared.models import Case, DailyEntry, ProcessedDocument, ProcessingStatus, Warning

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back out.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CaseRepository:
    def __init__(self, session_factory: sessionmaker | None = None):
        self._session_factory = session_factory

    def load_all_cases(self) -> list[Case]:
        """Load every case with its documents (binary handles are never included)."""
        with get_session(self._session_factory) as session:
            rows = session.query(CaseRow).order_by(CaseRow.created_at, CaseRow.id).all()
            cases = [self._to_case(row) for row in rows]
        logger.info(f"Loaded {len(cases)} case(s)")
        return cases

    def save_all_cases(self, cases: list[Case]) -> None:
        """Replace the persisted collection with *cases* in one transaction."""
        with get_session(self._session_factory) as session:
            existing = {row.id: row for row in session.query(CaseRow).all()}
            keep_ids = {case.id for case in cases}

            for case_id, row in existing.items():
                if case_id not in keep_ids:
                    session.delete(row)

            for case in cases:
                row = existing.get(case.id)
                if row is None:
                    row = CaseRow(id=case.id)
                    session.add(row)
                row.name = case.name
                row.created_at = case.created_at

                doc_rows = {d.id: d for d in row.documents}
                ordered: list[DocumentRow] = []
                for position, doc in enumerate(case.documents):
                    doc_row = doc_rows.get(doc.id) or DocumentRow(id=doc.id)
                    self._fill_document_row(doc_row, doc, position)
                    ordered.append(doc_row)
                # delete-orphan cascade removes documents no longer present
                row.documents = ordered

    @staticmethod
    def _fill_document_row(row: DocumentRow, doc: ProcessedDocument, position: int) -> None:
        row.position = position
        row.name = doc.name
        row.mime_type = doc.mime_type
        row.size = doc.size
        row.uploaded_at = doc.uploaded_at
        row.status = doc.status.value
        row.prose = doc.prose
        row.entries_json = (
            [entry.model_dump(mode="json") for entry in doc.entries]
            if doc.entries is not None
            else None
        )
        row.error_message = doc.error
        row.warnings_json = [w.model_dump(mode="json") for w in doc.warnings]

    @staticmethod
    def _to_case(row: CaseRow) -> Case:
        documents = [
            ProcessedDocument(
                id=d.id,
                name=d.name,
                mime_type=d.mime_type,
                size=d.size,
                uploaded_at=_as_utc(d.uploaded_at),
                status=ProcessingStatus(d.status),
                prose=d.prose,
                entries=(
                    [DailyEntry.model_validate(e) for e in d.entries_json]
                    if d.entries_json is not None
                    else None
                ),
                error=d.error_message,
                warnings=[Warning.model_validate(w) for w in (d.warnings_json or [])],
            )
            for d in row.documents
        ]
        return Case(
            id=row.id,
            name=row.name,
            created_at=_as_utc(row.created_at),
            documents=documents,
        )
