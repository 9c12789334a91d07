"""
Local disk storage for original document bytes.

Binary content is keyed by document id and kept apart from the case data,
so a missing file only disables re-processing and preview.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Optional

DATA_DIR = Path(os.environ.get("DATA_DIR", "./data"))
UPLOADS_DIR = DATA_DIR / "uploads"


def sha256_bytes(data: bytes) -> str:
    """Compute sha256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


class BlobStore:
    """Stores document bytes on disk under ``<root>/<document_id>.bin``."""

    def __init__(self, root: Path | str | None = None):
        self.root = Path(root) if root is not None else UPLOADS_DIR

    def path_for(self, document_id: str) -> Path:
        return self.root / f"{document_id}.bin"

    def save_upload(self, document_id: str, file_bytes: bytes) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(document_id)
        path.write_bytes(file_bytes)
        return path

    def load_upload(self, document_id: str) -> Optional[bytes]:
        path = self.path_for(document_id)
        if not path.exists():
            return None
        return path.read_bytes()

    def delete_upload(self, document_id: str) -> None:
        self.path_for(document_id).unlink(missing_ok=True)
