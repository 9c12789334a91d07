"""
Timeline rendering logic for PDF export.
"""
from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO
from typing import TYPE_CHECKING
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    BaseDocTemplate,
    Frame,
    LongTable,
    PageTemplate,
    Paragraph,
    Spacer,
    TableStyle,
)

from apps.worker.steps.export_render.common import CASE_EXPORT_TITLE, EXPORT_HEADERS, export_rows

if TYPE_CHECKING:
    from apps.worker.project.models import TimelineEntry

_HEADER_FILL = colors.HexColor("#E0F2FE")
_HEADER_TEXT = colors.HexColor("#0C4A6E")
_COLUMN_WIDTHS = (1.1 * inch, 1.0 * inch, 3.0 * inch, 0.7 * inch, 1.2 * inch)


def _footer(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(colors.grey)
    canvas.drawRightString(letter[0] - 0.75 * inch, 0.5 * inch, f"Page {doc.page}")
    canvas.restoreState()


def generate_pdf(entries: list[TimelineEntry], title: str = CASE_EXPORT_TITLE) -> bytes:
    """Generate a PDF chronology with the same rows as the DOCX table."""
    buf = BytesIO()
    doc = BaseDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=title,
    )
    frame = Frame(doc.leftMargin, doc.bottomMargin, doc.width, doc.height, id="normal")
    doc.addPageTemplates([PageTemplate(id="chronology", frames=[frame], onPage=_footer)])

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("TitleStyle", parent=styles["Title"], fontSize=16, spaceAfter=4)
    meta_style = ParagraphStyle("MetaStyle", parent=styles["Normal"], fontSize=8, textColor=colors.grey, alignment=1)
    cell_style = ParagraphStyle("CellStyle", parent=styles["Normal"], fontSize=8, leading=10)
    header_style = ParagraphStyle("HeaderStyle", parent=cell_style, textColor=_HEADER_TEXT, fontName="Helvetica-Bold")

    flowables = [
        Paragraph(escape(title), title_style),
        Paragraph(f"Generated on {datetime.now(timezone.utc).strftime('%Y-%m-%d')}", meta_style),
        Spacer(1, 0.2 * inch),
    ]

    data = [[Paragraph(h, header_style) for h in EXPORT_HEADERS]]
    for row in export_rows(entries):
        when = f"<b>{escape(row.date)}</b>"
        if row.time:
            when += f"<br/>{escape(row.time)}"
        data.append([
            Paragraph(when, cell_style),
            Paragraph(escape(row.category), cell_style),
            Paragraph(escape(row.detail), cell_style),
            Paragraph(escape(row.page_ref), cell_style),
            Paragraph(escape(row.source), cell_style),
        ])

    if len(data) == 1:
        flowables.append(Paragraph("No chronology entries.", styles["Normal"]))
    else:
        table = LongTable(data, colWidths=_COLUMN_WIDTHS, repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), _HEADER_FILL),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]))
        flowables.append(table)

    doc.build(flowables)
    return buf.getvalue()
