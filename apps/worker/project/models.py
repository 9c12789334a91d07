from __future__ import annotations

from pydantic import BaseModel, Field

from packages.shared.models import DailyEntry, FactCategory


class TimelineEntry(DailyEntry):
    """A DailyEntry stamped with the document it was extracted from."""
    id: str
    source_document_id: str
    source_document_name: str


class CategoryCount(BaseModel):
    category: FactCategory
    count: int = Field(ge=0)
