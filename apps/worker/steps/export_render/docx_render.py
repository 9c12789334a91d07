"""
DOCX rendering for chronology export.

One table row per fact, grouped by date in lexicographic date order.
"""
from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from docx import Document as DocxDocument
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from apps.worker.steps.export_render.common import (
    CASE_EXPORT_TITLE,
    EXPORT_HEADERS,
    _set_cell_shading,
    export_rows,
)

if TYPE_CHECKING:
    from apps.worker.project.models import TimelineEntry

_HEADER_FILL = "E0F2FE"
_HEADER_TEXT = RGBColor(0x0C, 0x4A, 0x6E)
_MUTED_TEXT = RGBColor(0x64, 0x74, 0x8B)
_COLUMN_WIDTHS = (Inches(1.1), Inches(1.1), Inches(2.9), Inches(0.8), Inches(1.1))


def _style_runs(cell, size: int, bold: bool = False, color: RGBColor | None = None) -> None:
    for paragraph in cell.paragraphs:
        for run in paragraph.runs:
            run.font.size = Pt(size)
            run.font.bold = bold
            if color is not None:
                run.font.color.rgb = color


def generate_docx(entries: list[TimelineEntry], title: str = CASE_EXPORT_TITLE) -> bytes:
    """
    Generate a DOCX chronology table with columns
    Date/Time, Category, Event Details, Page Ref and Source.
    """
    doc = DocxDocument()

    for section in doc.sections:
        section.left_margin = Inches(0.75)
        section.right_margin = Inches(0.75)
        section.top_margin = Inches(0.75)
        section.bottom_margin = Inches(0.75)

    title_para = doc.add_heading(title, level=1)
    title_para.alignment = WD_ALIGN_PARAGRAPH.CENTER

    generated = doc.add_paragraph(f"Generated on {datetime.now(timezone.utc).strftime('%Y-%m-%d')}")
    generated.alignment = WD_ALIGN_PARAGRAPH.CENTER
    generated.runs[0].font.size = Pt(10)
    generated.runs[0].font.color.rgb = _MUTED_TEXT

    tbl = doc.add_table(rows=1, cols=len(EXPORT_HEADERS))
    tbl.alignment = WD_TABLE_ALIGNMENT.CENTER
    tbl.autofit = False

    for idx, hdr_text in enumerate(EXPORT_HEADERS):
        cell = tbl.rows[0].cells[idx]
        cell.text = hdr_text
        cell.width = _COLUMN_WIDTHS[idx]
        _set_cell_shading(cell, _HEADER_FILL)
        _style_runs(cell, 10, bold=True, color=_HEADER_TEXT)

    for row in export_rows(entries):
        cells = tbl.add_row().cells
        cells[0].text = row.date
        _style_runs(cells[0], 10, bold=True)
        if row.time:
            time_run = cells[0].add_paragraph().add_run(row.time)
            time_run.font.size = Pt(8)
            time_run.font.color.rgb = _MUTED_TEXT
        cells[1].text = row.category
        cells[2].text = row.detail
        cells[3].text = row.page_ref
        cells[4].text = row.source
        for idx in (1, 2):
            _style_runs(cells[idx], 10)
        for idx in (3, 4):
            _style_runs(cells[idx], 8, color=_MUTED_TEXT)
        for idx, cell in enumerate(cells):
            cell.width = _COLUMN_WIDTHS[idx]

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
