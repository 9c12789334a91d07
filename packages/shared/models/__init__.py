from .common import DOCX_MIME_TYPE, BinaryHandle, Warning, document_kind
from .domain import Case, DailyEntry, Fact, PipelineConfig, ProcessedDocument, utcnow
from .enums import IN_FLIGHT_STATUSES, DocumentKind, FactCategory, ProcessingStatus

__all__ = [
    "BinaryHandle",
    "Case",
    "DOCX_MIME_TYPE",
    "DailyEntry",
    "DocumentKind",
    "Fact",
    "FactCategory",
    "IN_FLIGHT_STATUSES",
    "PipelineConfig",
    "ProcessedDocument",
    "ProcessingStatus",
    "Warning",
    "document_kind",
    "utcnow",
]
