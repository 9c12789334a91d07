"""
API route: Documents (upload, status, delete, re-submit)
"""
from __future__ import annotations

import logging
import mimetypes
import os
import re
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile

from apps.api.dependencies import AppServices, get_services, require_case, require_document
from apps.api.schemas import DocumentResponse
from packages.shared.models import BinaryHandle, DocumentKind, document_kind
from packages.shared.storage import sha256_bytes

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])

_GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


def _content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name plus the RFC 5987 UTF-8 form."""
    stem, ext = os.path.splitext(filename)
    safe_stem = re.sub(r"[^A-Za-z0-9._-]+", "_", stem).strip("_") or "document"
    safe_ext = re.sub(r"[^A-Za-z0-9.]+", "", ext)
    return f"attachment; filename=\"{safe_stem}{safe_ext}\"; filename*=UTF-8''{quote(filename, safe='')}"


async def _read_upload(file: UploadFile, max_bytes: int) -> BinaryHandle:
    filename = file.filename or "upload"
    mime_type = (file.content_type or "").lower()
    if mime_type in _GENERIC_MIME_TYPES:
        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

    if document_kind(mime_type, filename) == DocumentKind.UNKNOWN:
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {filename}")

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail=f"Empty file: {filename}")
    if len(content) > max_bytes:
        raise HTTPException(status_code=413, detail="Upload exceeds configured size limit")
    if document_kind(mime_type, filename) == DocumentKind.PDF and not content.startswith(b"%PDF-"):
        raise HTTPException(status_code=400, detail="Uploaded file is not a valid PDF signature")

    logger.info(f"Received upload {filename} ({mime_type}, {len(content)} bytes, sha256={sha256_bytes(content)[:12]})")
    return BinaryHandle(content=content, mime_type=mime_type, filename=filename)


@router.post(
    "/cases/{case_id}/documents",
    response_model=list[DocumentResponse],
    status_code=201,
)
async def upload_documents(
    case_id: str,
    files: list[UploadFile] = File(...),
    services: AppServices = Depends(get_services),
):
    """Upload one or more source documents; each is queued for processing."""
    require_case(services.workspace, case_id)
    # Validate the whole batch before queueing any of it.
    handles = [await _read_upload(f, services.config.max_upload_bytes) for f in files]
    docs = services.workspace.add_documents(case_id, handles)
    # Admission may already have advanced some of them.
    return [DocumentResponse.from_document(services.workspace.get_document(d.id)) for d in docs]


@router.get("/cases/{case_id}/documents", response_model=list[DocumentResponse])
async def list_documents(case_id: str, services: AppServices = Depends(get_services)):
    case = require_case(services.workspace, case_id)
    return [DocumentResponse.from_document(d) for d in case.documents]


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, services: AppServices = Depends(get_services)):
    return DocumentResponse.from_document(require_document(services.workspace, document_id))


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(document_id: str, services: AppServices = Depends(get_services)):
    if not services.workspace.delete_document(document_id):
        raise HTTPException(status_code=404, detail="Document not found")
    return Response(status_code=204)


@router.post("/documents/{document_id}/resubmit", response_model=DocumentResponse, status_code=201)
async def resubmit_document(document_id: str, services: AppServices = Depends(get_services)):
    """Queue the same source again as a new document."""
    doc = require_document(services.workspace, document_id)
    if not doc.has_binary:
        raise HTTPException(status_code=409, detail="Source content is not available in this session")
    new_doc = services.workspace.resubmit_document(document_id)
    return DocumentResponse.from_document(services.workspace.get_document(new_doc.id))


@router.put("/documents/{document_id}/content", response_model=DocumentResponse)
async def attach_content(
    document_id: str,
    file: UploadFile = File(...),
    services: AppServices = Depends(get_services),
):
    """Re-attach source bytes to a document that lost them."""
    require_document(services.workspace, document_id)
    handle = await _read_upload(file, services.config.max_upload_bytes)
    services.workspace.attach_binary(document_id, handle)
    return DocumentResponse.from_document(require_document(services.workspace, document_id))


@router.get("/documents/{document_id}/download")
async def download_document(document_id: str, services: AppServices = Depends(get_services)):
    """Download the original uploaded source."""
    doc = require_document(services.workspace, document_id)
    if doc.binary is None:
        raise HTTPException(status_code=404, detail="Source content is not available in this session")
    return Response(
        content=doc.binary.content,
        media_type=doc.binary.mime_type,
        headers={"Content-Disposition": _content_disposition(doc.name)},
    )
