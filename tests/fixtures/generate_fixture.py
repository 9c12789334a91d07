"""
Generate a synthetic multi-page medical record PDF for tests.
Each page is a separate encounter so page citations can be checked.
"""
from __future__ import annotations

import io
from pathlib import Path

from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer

ENCOUNTERS = [
    (
        "Southwest Regional Medical Center - Emergency Department",
        "Date of Service: 2024-03-01",
        [
            "Patient presents after rear-end collision with neck and lower back pain, rated 7/10.",
            "Assessment: cervical strain; lumbar strain.",
            "Plan: Naproxen 500mg BID, follow up with primary care in one week.",
        ],
    ),
    (
        "Southwest Radiology Associates",
        "Exam Date: 2024-03-18",
        [
            "Study: MRI lumbar spine without contrast.",
            "Impression: L4-L5 disc herniation with left foraminal narrowing.",
        ],
    ),
    (
        "Pinnacle Physical Therapy",
        "Visit Date: 2024-03-22",
        [
            "Patient reports low back pain 6/10 with radiating left leg symptoms.",
            "Therapeutic exercise: core stabilization and nerve glides, 20 minutes.",
        ],
    ),
]


def create_synthetic_pdf() -> bytes:
    """Create a three-page synthetic medical record PDF, one encounter per page."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=letter)
    styles = getSampleStyleSheet()
    story = []

    for index, (facility, date_line, lines) in enumerate(ENCOUNTERS):
        if index:
            story.append(PageBreak())
        story.append(Paragraph(facility, styles["Title"]))
        story.append(Paragraph("Patient: John Smith", styles["Normal"]))
        story.append(Paragraph(date_line, styles["Normal"]))
        story.append(Spacer(1, 0.2 * inch))
        for line in lines:
            story.append(Paragraph(line, styles["Normal"]))
            story.append(Spacer(1, 0.1 * inch))

    doc.build(story)
    return buf.getvalue()


if __name__ == "__main__":
    fixture_dir = Path(__file__).parent
    output_path = fixture_dir / "synthetic_medical_record.pdf"
    output_path.write_bytes(create_synthetic_pdf())
    print(f"Generated {output_path}")
