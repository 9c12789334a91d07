"""
Source viewer: show the cited page of the original document for a fact.

PDF pages are rendered to PNG with PyMuPDF; images and other formats are
returned as stored. Sessions are dropped as soon as their document is
removed from the workspace.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

import fitz  # PyMuPDF

from apps.worker.workspace import Workspace
from packages.shared.models import DailyEntry, DocumentKind, Fact, ProcessedDocument, document_kind

logger = logging.getLogger(__name__)

DEFAULT_RENDER_DPI = 110


class SourceUnavailableError(Exception):
    """The document's binary content is not available in this session."""


class ViewerSessionNotFoundError(Exception):
    pass


@dataclass(frozen=True)
class ViewerSession:
    id: str
    document_id: str
    source_name: str
    mime_type: str
    page_number: int
    quote: Optional[str]
    summary: str


def render_pdf_page(content: bytes, page_number: int, dpi: int = DEFAULT_RENDER_DPI) -> tuple[bytes, int]:
    """
    Render one 1-based page to PNG, clamping to the document's page range.

    Returns:
        (png_bytes, page_number_rendered)
    """
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except Exception as exc:
        raise SourceUnavailableError(f"Cannot open PDF: {exc}") from exc
    try:
        if doc.page_count == 0:
            raise SourceUnavailableError("PDF has no pages")
        index = min(max(page_number, 1), doc.page_count) - 1
        pix = doc[index].get_pixmap(dpi=dpi)
        return pix.tobytes("png"), index + 1
    finally:
        doc.close()


class SourceViewer:
    def __init__(self, workspace: Workspace, dpi: int = DEFAULT_RENDER_DPI):
        self.workspace = workspace
        self.dpi = dpi
        self._sessions: dict[str, ViewerSession] = {}
        self._unsubscribe = workspace.subscribe(self._on_workspace_change)

    def open(self, document: ProcessedDocument, entry: DailyEntry, fact: Fact) -> ViewerSession:
        if not document.has_binary:
            raise SourceUnavailableError(f"Source for {document.name} is not available in this session")
        session = ViewerSession(
            id=uuid.uuid4().hex,
            document_id=document.id,
            source_name=document.name,
            mime_type=document.mime_type,
            page_number=fact.page_number or 1,
            quote=fact.quote,
            summary=entry.summary,
        )
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> ViewerSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise ViewerSessionNotFoundError(session_id) from None

    def render(self, session_id: str) -> tuple[str, bytes]:
        """Return (media_type, content) for the session's cited page."""
        session = self.get(session_id)
        found = self.workspace.find_document(session.document_id)
        if found is None or found[1].binary is None:
            raise SourceUnavailableError(f"Source for {session.source_name} is no longer available")
        handle = found[1].binary

        if document_kind(handle.mime_type, handle.filename) == DocumentKind.PDF:
            png, rendered = render_pdf_page(handle.content, session.page_number, self.dpi)
            if rendered != session.page_number:
                logger.debug(f"[{session.document_id}] Cited page {session.page_number} clamped to {rendered}")
            return "image/png", png
        return handle.mime_type or "application/octet-stream", handle.content

    def close(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def dispose(self) -> None:
        self._unsubscribe()
        self._sessions.clear()

    @property
    def open_sessions(self) -> list[ViewerSession]:
        return list(self._sessions.values())

    def _on_workspace_change(self, workspace: Workspace) -> None:
        stale = [
            sid for sid, session in self._sessions.items()
            if workspace.find_document(session.document_id) is None
        ]
        for sid in stale:
            del self._sessions[sid]
        if stale:
            logger.info(f"Closed {len(stale)} viewer session(s) for deleted documents")
