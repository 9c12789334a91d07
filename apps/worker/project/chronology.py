"""
Case timeline projection.

Pure functions over the document collection; callers recompute on every
change instead of patching previous results.
"""
from __future__ import annotations

from collections import Counter
from typing import Iterable

from apps.worker.project.models import CategoryCount, TimelineEntry
from packages.shared.models import FactCategory, ProcessedDocument, ProcessingStatus


def build_document_timeline(document: ProcessedDocument) -> list[TimelineEntry]:
    if document.status != ProcessingStatus.COMPLETED or not document.entries:
        return []
    return [
        TimelineEntry(
            **entry.model_dump(),
            id=f"{document.id}:{index}",
            source_document_id=document.id,
            source_document_name=document.name,
        )
        for index, entry in enumerate(document.entries)
    ]


def build_case_timeline(documents: Iterable[ProcessedDocument]) -> list[TimelineEntry]:
    """Flatten completed documents' entries in document order, then entry order."""
    timeline: list[TimelineEntry] = []
    for document in documents:
        timeline.extend(build_document_timeline(document))
    return timeline


def sort_chronologically(entries: Iterable[TimelineEntry]) -> list[TimelineEntry]:
    # Plain string comparison; only ISO dates sort in calendar order.
    return sorted(entries, key=lambda e: e.date)


def filter_by_category(entries: Iterable[TimelineEntry], category: FactCategory) -> list[TimelineEntry]:
    """Keep only facts of one category; entries left without facts are dropped."""
    filtered = []
    for entry in entries:
        facts = [f for f in entry.facts if f.category == category]
        if facts:
            filtered.append(entry.model_copy(update={"facts": facts}))
    return filtered


def category_counts(entries: Iterable[TimelineEntry]) -> list[CategoryCount]:
    counts = Counter(fact.category for entry in entries for fact in entry.facts)
    return [
        CategoryCount(category=category, count=counts[category])
        for category in FactCategory
        if counts[category]
    ]
