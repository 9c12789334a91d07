import os
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .common import BinaryHandle, Warning
from .enums import IN_FLIGHT_STATUSES, FactCategory, ProcessingStatus


def _uuid() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PipelineConfig(BaseModel):
    """Configuration for document processing."""
    concurrency_limit: int = Field(default=2, ge=1)
    prose_timeout_seconds: float = Field(default=180.0, gt=0)
    extraction_timeout_seconds: float = Field(default=120.0, gt=0)
    prose_model: str = "gpt-4o"
    extraction_model: str = "gpt-4o"
    max_upload_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        defaults = cls()
        return cls(
            concurrency_limit=int(os.getenv("MEDCHRONS_CONCURRENCY_LIMIT", defaults.concurrency_limit)),
            prose_timeout_seconds=float(os.getenv("MEDCHRONS_PROSE_TIMEOUT_SECONDS", defaults.prose_timeout_seconds)),
            extraction_timeout_seconds=float(
                os.getenv("MEDCHRONS_EXTRACTION_TIMEOUT_SECONDS", defaults.extraction_timeout_seconds)
            ),
            prose_model=os.getenv("MEDCHRONS_PROSE_MODEL", defaults.prose_model),
            extraction_model=os.getenv("MEDCHRONS_EXTRACTION_MODEL", defaults.extraction_model),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", defaults.max_upload_bytes)),
        )


class Fact(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    time: Optional[str] = None
    category: FactCategory
    detail: str = Field(min_length=1)
    page_number: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("page_number", "pageNumber"),
    )
    quote: Optional[str] = None

    @field_validator("time", "quote", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _quote_requires_page(self) -> "Fact":
        # A quote without a locatable page cannot be shown in the viewer.
        if self.quote is not None and self.page_number is None:
            raise ValueError("quote requires page_number")
        return self


class DailyEntry(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    date: str = Field(min_length=1)  # As emitted; ISO preferred but not enforced
    summary: str = Field(min_length=1)
    facts: list[Fact] = Field(min_length=1)
    tags: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("tags", "umlsEntities", "conceptTags"),
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _none_tags(cls, value):
        return [] if value is None else value


class ProcessedDocument(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default_factory=_uuid)
    name: str
    mime_type: str = "application/octet-stream"
    size: int = Field(default=0, ge=0)
    uploaded_at: datetime = Field(default_factory=utcnow)
    status: ProcessingStatus = ProcessingStatus.QUEUED
    prose: Optional[str] = None
    entries: Optional[list[DailyEntry]] = None
    error: Optional[str] = None
    warnings: list[Warning] = Field(default_factory=list)
    binary: Optional[BinaryHandle] = Field(default=None, exclude=True, repr=False)

    @property
    def has_binary(self) -> bool:
        return self.binary is not None

    @property
    def is_in_flight(self) -> bool:
        return self.status in IN_FLIGHT_STATUSES


class Case(BaseModel):
    id: str = Field(default_factory=_uuid)
    name: str = Field(min_length=1, max_length=200)
    created_at: datetime = Field(default_factory=utcnow)
    documents: list[ProcessedDocument] = Field(default_factory=list)

    def find_document(self, document_id: str) -> Optional[ProcessedDocument]:
        for doc in self.documents:
            if doc.id == document_id:
                return doc
        return None
