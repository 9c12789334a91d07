"""
CSV rendering for chronology export; same rows as the DOCX table.
"""
from __future__ import annotations

import csv
import io
from typing import TYPE_CHECKING

from apps.worker.steps.export_render.common import export_rows

if TYPE_CHECKING:
    from apps.worker.project.models import TimelineEntry


def generate_csv(entries: list[TimelineEntry]) -> bytes:
    """Generate a CSV chronology with one row per fact."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["date", "time", "category", "detail", "page_ref", "source"])
    for row in export_rows(entries):
        writer.writerow([row.date, row.time, row.category, row.detail, row.page_ref, row.source])
    return buf.getvalue().encode("utf-8")
