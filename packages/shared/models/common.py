from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from .enums import DocumentKind

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class Warning(BaseModel):
    code: str
    message: str
    page: Optional[int] = None
    document_id: Optional[str] = None


@dataclass(frozen=True)
class BinaryHandle:
    """
    Session-scoped reference to a document's original bytes.

    Never serialised with the case data; it is restored from the blob store
    when one is available, otherwise re-processing and preview are disabled.
    """
    content: bytes
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


def document_kind(mime_type: str | None, filename: str | None = None) -> DocumentKind:
    """Classify a declared MIME type (falling back to the file extension)."""
    mime = (mime_type or "").lower()
    name = (filename or "").lower()
    if mime == "application/pdf" or name.endswith(".pdf"):
        return DocumentKind.PDF
    if mime.startswith("image/"):
        return DocumentKind.IMAGE
    if mime == DOCX_MIME_TYPE or name.endswith(".docx"):
        return DocumentKind.DOCX
    if name.endswith((".png", ".jpg", ".jpeg", ".gif", ".webp", ".tif", ".tiff")):
        return DocumentKind.IMAGE
    return DocumentKind.UNKNOWN
