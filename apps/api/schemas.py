"""
API response models.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from apps.worker.project.models import CategoryCount, TimelineEntry
from packages.shared.models import Case, DailyEntry, ProcessedDocument, Warning


class DocumentResponse(BaseModel):
    id: str
    name: str
    mime_type: str
    size: int
    uploaded_at: str
    status: str
    prose: Optional[str] = None
    entries: list[DailyEntry] = Field(default_factory=list)
    error: Optional[str] = None
    warnings: list[Warning] = Field(default_factory=list)
    has_source: bool

    @classmethod
    def from_document(cls, doc: ProcessedDocument) -> "DocumentResponse":
        return cls(
            id=doc.id,
            name=doc.name,
            mime_type=doc.mime_type,
            size=doc.size,
            uploaded_at=doc.uploaded_at.isoformat(),
            status=doc.status.value,
            prose=doc.prose,
            entries=doc.entries or [],
            error=doc.error,
            warnings=doc.warnings,
            has_source=doc.has_binary,
        )


class CaseSummary(BaseModel):
    id: str
    name: str
    created_at: str
    document_count: int
    active: bool


class CaseResponse(CaseSummary):
    documents: list[DocumentResponse] = Field(default_factory=list)

    @classmethod
    def from_case(cls, case: Case, active: bool) -> "CaseResponse":
        return cls(
            id=case.id,
            name=case.name,
            created_at=case.created_at.isoformat(),
            document_count=len(case.documents),
            active=active,
            documents=[DocumentResponse.from_document(d) for d in case.documents],
        )


class TimelineResponse(BaseModel):
    entries: list[TimelineEntry] = Field(default_factory=list)
    category_counts: list[CategoryCount] = Field(default_factory=list)
