"""
Unit tests for the core data model.
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from packages.shared.models import (
    BinaryHandle,
    Case,
    DailyEntry,
    DocumentKind,
    Fact,
    FactCategory,
    PipelineConfig,
    ProcessedDocument,
    ProcessingStatus,
    document_kind,
)


class TestFact:
    def test_accepts_camel_case_page_number(self):
        fact = Fact.model_validate({"category": "Diagnosis", "detail": "Lumbar strain", "pageNumber": 3})
        assert fact.page_number == 3
        assert fact.category == FactCategory.DIAGNOSIS

    def test_rejects_unknown_category(self):
        with pytest.raises(ValidationError):
            Fact(category="Surgery", detail="Appendectomy")

    def test_rejects_blank_detail(self):
        with pytest.raises(ValidationError):
            Fact(category="Other", detail="   ")

    def test_page_number_must_be_positive(self):
        with pytest.raises(ValidationError):
            Fact(category="Other", detail="x", page_number=0)

    def test_quote_without_page_rejected(self):
        with pytest.raises(ValidationError, match="quote requires page_number"):
            Fact(category="Symptom", detail="Pain", quote="pain 7/10")

    def test_blank_time_and_quote_become_none(self):
        fact = Fact(category="Symptom", detail="Pain", time=" ", quote="")
        assert fact.time is None
        assert fact.quote is None


class TestDailyEntry:
    def _fact(self) -> Fact:
        return Fact(category="Treatment", detail="Physical therapy")

    def test_requires_at_least_one_fact(self):
        with pytest.raises(ValidationError):
            DailyEntry(date="2024-03-01", summary="Visit", facts=[])

    def test_tags_read_from_legacy_names(self):
        a = DailyEntry.model_validate({"date": "2024-03-01", "summary": "s", "facts": [self._fact()], "umlsEntities": ["Pain"]})
        b = DailyEntry.model_validate({"date": "2024-03-01", "summary": "s", "facts": [self._fact()], "conceptTags": ["Pain"]})
        assert a.tags == ["Pain"]
        assert b.tags == ["Pain"]

    def test_null_tags_become_empty(self):
        entry = DailyEntry.model_validate({"date": "2024-03-01", "summary": "s", "facts": [self._fact()], "tags": None})
        assert entry.tags == []

    def test_non_iso_date_kept_verbatim(self):
        entry = DailyEntry(date="Early March 2024", summary="s", facts=[self._fact()])
        assert entry.date == "Early March 2024"


class TestProcessedDocument:
    def test_defaults(self):
        doc = ProcessedDocument(name="a.pdf")
        assert doc.status == ProcessingStatus.QUEUED
        assert doc.entries is None
        assert doc.warnings == []
        assert not doc.has_binary
        assert not doc.is_in_flight

    def test_binary_never_serialised(self):
        handle = BinaryHandle(content=b"%PDF-1.4", mime_type="application/pdf", filename="a.pdf")
        doc = ProcessedDocument(name="a.pdf", binary=handle)
        assert doc.has_binary
        assert "binary" not in doc.model_dump()
        assert "binary" not in doc.model_dump_json()

    @pytest.mark.parametrize("status", [ProcessingStatus.GENERATING_PROSE, ProcessingStatus.EXTRACTING_ENTITIES])
    def test_in_flight_statuses(self, status):
        assert ProcessedDocument(name="a.pdf", status=status).is_in_flight


def test_case_name_length_bounds():
    with pytest.raises(ValidationError):
        Case(name="")
    with pytest.raises(ValidationError):
        Case(name="x" * 201)


def test_case_find_document():
    doc = ProcessedDocument(name="a.pdf")
    case = Case(name="Smith", documents=[doc])
    assert case.find_document(doc.id) is doc
    assert case.find_document("missing") is None


@pytest.mark.parametrize(
    "mime,name,expected",
    [
        ("application/pdf", "x", DocumentKind.PDF),
        ("", "scan.PDF", DocumentKind.PDF),
        ("image/png", "x", DocumentKind.IMAGE),
        ("application/octet-stream", "photo.jpg", DocumentKind.IMAGE),
        ("", "notes.docx", DocumentKind.DOCX),
        ("text/plain", "notes.txt", DocumentKind.UNKNOWN),
    ],
)
def test_document_kind(mime, name, expected):
    assert document_kind(mime, name) == expected


def test_pipeline_config_from_env(monkeypatch):
    monkeypatch.setenv("MEDCHRONS_CONCURRENCY_LIMIT", "4")
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "1024")
    config = PipelineConfig.from_env()
    assert config.concurrency_limit == 4
    assert config.max_upload_bytes == 1024
    assert PipelineConfig().concurrency_limit == 2
