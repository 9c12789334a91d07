from enum import Enum


class ProcessingStatus(str, Enum):
    IDLE = "IDLE"  # Pre-queue placeholder, never used once admitted
    QUEUED = "QUEUED"
    GENERATING_PROSE = "GENERATING_PROSE"
    EXTRACTING_ENTITIES = "EXTRACTING_ENTITIES"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


# Statuses that occupy a pipeline slot.
IN_FLIGHT_STATUSES = frozenset({
    ProcessingStatus.GENERATING_PROSE,
    ProcessingStatus.EXTRACTING_ENTITIES,
})


class FactCategory(str, Enum):
    DIAGNOSIS = "Diagnosis"
    TREATMENT = "Treatment"
    SYMPTOM = "Symptom"
    LAB_RESULT = "Lab Result"
    MEDICATION = "Medication"
    ADMINISTRATIVE = "Administrative"
    OTHER = "Other"


class DocumentKind(str, Enum):
    PDF = "pdf"
    IMAGE = "image"
    DOCX = "docx"
    UNKNOWN = "unknown"
