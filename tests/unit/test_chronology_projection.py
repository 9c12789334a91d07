"""
Unit tests for the case timeline projection.
"""
from __future__ import annotations

from apps.worker.project.chronology import (
    build_case_timeline,
    build_document_timeline,
    category_counts,
    filter_by_category,
    sort_chronologically,
)
from packages.shared.models import DailyEntry, Fact, FactCategory, ProcessedDocument, ProcessingStatus


def _entry(date: str, *categories: str) -> DailyEntry:
    cats = categories or ("Other",)
    return DailyEntry(
        date=date,
        summary=f"Events on {date}",
        facts=[Fact(category=c, detail=f"{c} fact", page_number=1) for c in cats],
    )


def _completed(name: str, *entries: DailyEntry) -> ProcessedDocument:
    return ProcessedDocument(id=name, name=f"{name}.pdf", status=ProcessingStatus.COMPLETED, entries=list(entries))


def test_only_completed_documents_contribute():
    docs = [
        _completed("a", _entry("2024-03-01")),
        ProcessedDocument(id="b", name="b.pdf", status=ProcessingStatus.ERROR, prose="p"),
        ProcessedDocument(id="c", name="c.pdf", status=ProcessingStatus.EXTRACTING_ENTITIES),
        _completed("d"),
    ]
    timeline = build_case_timeline(docs)
    assert [e.source_document_id for e in timeline] == ["a"]


def test_entries_stamped_with_source_and_stable_ids():
    doc = _completed("a", _entry("2024-03-05"), _entry("2024-03-01"))
    timeline = build_document_timeline(doc)
    assert [e.id for e in timeline] == ["a:0", "a:1"]
    assert all(e.source_document_name == "a.pdf" for e in timeline)
    assert timeline[0].facts[0].page_number == 1
    # Projection is idempotent
    assert build_document_timeline(doc) == timeline


def test_case_timeline_keeps_document_then_entry_order():
    docs = [
        _completed("a", _entry("2024-03-05"), _entry("2024-03-01")),
        _completed("b", _entry("2024-02-01")),
    ]
    assert [e.id for e in build_case_timeline(docs)] == ["a:0", "a:1", "b:0"]


def test_sort_is_plain_string_order():
    docs = [_completed("a", _entry("2024-03-05"), _entry("2024-03-01"), _entry("March 2, 2024"))]
    dates = [e.date for e in sort_chronologically(build_case_timeline(docs))]
    assert dates == ["2024-03-01", "2024-03-05", "March 2, 2024"]


def test_sort_is_stable_for_equal_dates():
    docs = [_completed("a", _entry("2024-03-01")), _completed("b", _entry("2024-03-01"))]
    assert [e.id for e in sort_chronologically(build_case_timeline(docs))] == ["a:0", "b:0"]


def test_filter_by_category_trims_facts_and_drops_empty_entries():
    timeline = build_case_timeline([
        _completed("a", _entry("2024-03-01", "Diagnosis", "Medication"), _entry("2024-03-02", "Symptom")),
    ])
    filtered = filter_by_category(timeline, FactCategory.MEDICATION)
    assert [e.date for e in filtered] == ["2024-03-01"]
    assert [f.category for f in filtered[0].facts] == [FactCategory.MEDICATION]
    # Source timeline untouched
    assert len(timeline[0].facts) == 2


def test_category_counts_in_enum_order_without_zeros():
    timeline = build_case_timeline([
        _completed("a", _entry("2024-03-01", "Medication", "Diagnosis", "Medication")),
        _completed("b", _entry("2024-03-02", "Other")),
    ])
    counts = [(c.category.value, c.count) for c in category_counts(timeline)]
    assert counts == [("Diagnosis", 1), ("Medication", 2), ("Other", 1)]
