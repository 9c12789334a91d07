"""
API route: Source viewer sessions
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from apps.api.dependencies import AppServices, get_services, require_document
from apps.worker.lib.source_viewer import SourceUnavailableError, ViewerSession, ViewerSessionNotFoundError

router = APIRouter(tags=["viewer"])


class OpenViewerRequest(BaseModel):
    document_id: str
    entry_index: int = Field(ge=0)
    fact_index: int = Field(ge=0)


class ViewerSessionResponse(BaseModel):
    id: str
    document_id: str
    source_name: str
    page_number: int
    quote: Optional[str] = None
    summary: str

    @classmethod
    def from_session(cls, session: ViewerSession) -> "ViewerSessionResponse":
        return cls(
            id=session.id,
            document_id=session.document_id,
            source_name=session.source_name,
            page_number=session.page_number,
            quote=session.quote,
            summary=session.summary,
        )


@router.post("/viewer/sessions", response_model=ViewerSessionResponse, status_code=201)
async def open_viewer(req: OpenViewerRequest, services: AppServices = Depends(get_services)):
    doc = require_document(services.workspace, req.document_id)
    entries = doc.entries or []
    if req.entry_index >= len(entries):
        raise HTTPException(status_code=404, detail="Entry not found")
    entry = entries[req.entry_index]
    if req.fact_index >= len(entry.facts):
        raise HTTPException(status_code=404, detail="Fact not found")
    try:
        session = services.viewer.open(doc, entry, entry.facts[req.fact_index])
    except SourceUnavailableError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ViewerSessionResponse.from_session(session)


@router.get("/viewer/sessions/{session_id}", response_model=ViewerSessionResponse)
async def get_viewer(session_id: str, services: AppServices = Depends(get_services)):
    try:
        return ViewerSessionResponse.from_session(services.viewer.get(session_id))
    except ViewerSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Viewer session not found") from exc


@router.get("/viewer/sessions/{session_id}/page")
async def render_viewer_page(session_id: str, services: AppServices = Depends(get_services)):
    try:
        media_type, content = services.viewer.render(session_id)
    except ViewerSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Viewer session not found") from exc
    except SourceUnavailableError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return Response(content=content, media_type=media_type)


@router.delete("/viewer/sessions/{session_id}", status_code=204)
async def close_viewer(session_id: str, services: AppServices = Depends(get_services)):
    services.viewer.close(session_id)
    return Response(status_code=204)
