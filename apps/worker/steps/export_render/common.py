"""
Shared row formatting helpers for chronology export rendering.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from apps.worker.project.chronology import sort_chronologically

if TYPE_CHECKING:
    from apps.worker.project.models import TimelineEntry
    from packages.shared.models import Fact

EXPORT_HEADERS = ["Date/Time", "Category", "Event Details", "Page Ref", "Source"]
CASE_EXPORT_TITLE = "Master Medical Chronology"


def document_export_title(name: str) -> str:
    return f"Chronology: {name}"


@dataclass(frozen=True)
class ExportRow:
    date: str
    time: str
    category: str
    detail: str
    page_ref: str
    source: str


def _page_ref(fact: Fact) -> str:
    return f"Pg {fact.page_number}" if fact.page_number else "-"


def export_rows(entries: list[TimelineEntry]) -> list[ExportRow]:
    """One row per fact, entries sorted by date."""
    rows = []
    for entry in sort_chronologically(entries):
        for fact in entry.facts:
            rows.append(ExportRow(
                date=entry.date,
                time=fact.time or "",
                category=fact.category.value,
                detail=fact.detail,
                page_ref=_page_ref(fact),
                source=entry.source_document_name,
            ))
    return rows


def _set_cell_shading(cell, hex_color: str):
    """Set background shading on a DOCX table cell."""
    from docx.oxml.ns import qn
    from lxml import etree
    shading = etree.SubElement(cell._element.get_or_add_tcPr(), qn("w:shd"))
    shading.set(qn("w:fill"), hex_color)
    shading.set(qn("w:val"), "clear")
