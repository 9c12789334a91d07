"""
API route: Exports (DOCX / CSV / PDF chronology downloads)
"""
from __future__ import annotations

import re

from fastapi import APIRouter, Depends, Response

from apps.api.dependencies import AppServices, get_services, require_case, require_document
from apps.worker.project.chronology import build_case_timeline, build_document_timeline
from apps.worker.steps.export_render import (
    CASE_EXPORT_TITLE,
    document_export_title,
    generate_csv,
    generate_docx,
    generate_pdf,
)
from packages.shared.models import DOCX_MIME_TYPE

router = APIRouter(tags=["exports"])


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _file_stem(name: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", name.rsplit(".", 1)[0]).strip("_")
    return stem or "document"


@router.get("/cases/{case_id}/exports/docx")
async def export_case_docx(case_id: str, services: AppServices = Depends(get_services)):
    case = require_case(services.workspace, case_id)
    content = generate_docx(build_case_timeline(case.documents), CASE_EXPORT_TITLE)
    return _attachment(content, DOCX_MIME_TYPE, "Medical_Chronology.docx")


@router.get("/cases/{case_id}/exports/csv")
async def export_case_csv(case_id: str, services: AppServices = Depends(get_services)):
    case = require_case(services.workspace, case_id)
    content = generate_csv(build_case_timeline(case.documents))
    return _attachment(content, "text/csv", "Medical_Chronology.csv")


@router.get("/documents/{document_id}/exports/docx")
async def export_document_docx(document_id: str, services: AppServices = Depends(get_services)):
    doc = require_document(services.workspace, document_id)
    content = generate_docx(build_document_timeline(doc), document_export_title(doc.name))
    return _attachment(content, DOCX_MIME_TYPE, f"{_file_stem(doc.name)}_Chronology.docx")


@router.get("/documents/{document_id}/exports/csv")
async def export_document_csv(document_id: str, services: AppServices = Depends(get_services)):
    doc = require_document(services.workspace, document_id)
    content = generate_csv(build_document_timeline(doc))
    return _attachment(content, "text/csv", f"{_file_stem(doc.name)}_Chronology.csv")


@router.get("/cases/{case_id}/exports/pdf")
async def export_case_pdf(case_id: str, services: AppServices = Depends(get_services)):
    case = require_case(services.workspace, case_id)
    content = generate_pdf(build_case_timeline(case.documents), CASE_EXPORT_TITLE)
    return _attachment(content, "application/pdf", "Medical_Chronology.pdf")


@router.get("/documents/{document_id}/exports/pdf")
async def export_document_pdf(document_id: str, services: AppServices = Depends(get_services)):
    doc = require_document(services.workspace, document_id)
    content = generate_pdf(build_document_timeline(doc), document_export_title(doc.name))
    return _attachment(content, "application/pdf", f"{_file_stem(doc.name)}_Chronology.pdf")
