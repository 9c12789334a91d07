"""
In-process case/document collection.

All mutations go through this class. Documents are replaced copy-on-write by
id, the collection is persisted after every mutation, and subscribers are
notified synchronously so the scheduler and projections see every state change.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from apps.worker.state_machine import fail
from packages.db.repository import CaseRepository
from packages.shared.models import BinaryHandle, Case, ProcessedDocument, ProcessingStatus
from packages.shared.storage import BlobStore

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Processing was interrupted. Please re-submit the document."

Listener = Callable[["Workspace"], None]


class CaseNotFoundError(Exception):
    pass


class DocumentNotFoundError(Exception):
    pass


class Workspace:
    def __init__(
        self,
        repository: CaseRepository | None = None,
        blob_store: BlobStore | None = None,
    ):
        self.repository = repository
        self.blob_store = blob_store
        self._cases: list[Case] = []
        self._active_case_id: Optional[str] = None
        self._listeners: list[Listener] = []

    @classmethod
    def load(cls, repository: CaseRepository, blob_store: BlobStore | None = None) -> "Workspace":
        """
        Build a workspace from persisted cases. Documents caught mid-stage by a
        previous shutdown are moved to ERROR, and binary handles are restored
        from the blob store where available.
        """
        workspace = cls(repository, blob_store)
        recovered = 0
        cases = []
        for case in repository.load_all_cases():
            documents = []
            for doc in case.documents:
                if doc.is_in_flight:
                    doc = fail(doc, INTERRUPTED_MESSAGE)
                    recovered += 1
                documents.append(workspace._restore_binary(doc))
            cases.append(case.model_copy(update={"documents": documents}))
        workspace._cases = cases
        if cases:
            workspace._active_case_id = max(cases, key=lambda c: c.created_at).id
        if recovered:
            logger.warning(f"Marked {recovered} interrupted document(s) as failed")
            workspace._persist()
        return workspace

    def _restore_binary(self, doc: ProcessedDocument) -> ProcessedDocument:
        if self.blob_store is None or doc.binary is not None:
            return doc
        content = self.blob_store.load_upload(doc.id)
        if content is None:
            return doc
        handle = BinaryHandle(content=content, mime_type=doc.mime_type, filename=doc.name)
        return doc.model_copy(update={"binary": handle})

    # ── Reads ────────────────────────────────────────────────────────────

    @property
    def cases(self) -> list[Case]:
        return list(self._cases)

    @property
    def active_case(self) -> Optional[Case]:
        if self._active_case_id is None:
            return None
        return next((c for c in self._cases if c.id == self._active_case_id), None)

    def active_documents(self) -> list[ProcessedDocument]:
        case = self.active_case
        return list(case.documents) if case else []

    def get_case(self, case_id: str) -> Case:
        for case in self._cases:
            if case.id == case_id:
                return case
        raise CaseNotFoundError(case_id)

    def find_document(self, document_id: str) -> Optional[tuple[Case, ProcessedDocument]]:
        for case in self._cases:
            doc = case.find_document(document_id)
            if doc is not None:
                return case, doc
        return None

    def get_document(self, document_id: str) -> ProcessedDocument:
        found = self.find_document(document_id)
        if found is None:
            raise DocumentNotFoundError(document_id)
        return found[1]

    # ── Subscription ─────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception(f"Workspace listener {listener!r} failed")

    def _persist(self) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save_all_cases(self._cases)
        except Exception:
            # In-memory state stays authoritative for the session.
            logger.exception("Failed to persist cases")

    def _commit(self, cases: list[Case]) -> None:
        self._cases = cases
        self._persist()
        self._notify()

    def _replace_case(self, case: Case) -> None:
        self._commit([case if c.id == case.id else c for c in self._cases])

    # ── User actions ─────────────────────────────────────────────────────

    def create_case(self, name: str, activate: bool = True) -> Case:
        case = Case(name=name)
        if activate:
            self._active_case_id = case.id
        self._commit(self._cases + [case])
        logger.info(f"Created case {case.id} ({name!r})")
        return case

    def set_active_case(self, case_id: str) -> Case:
        case = self.get_case(case_id)
        self._active_case_id = case.id
        self._notify()
        return case

    def delete_case(self, case_id: str) -> None:
        case = self.get_case(case_id)
        for doc in case.documents:
            self._dispose_binary(doc.id)
        remaining = [c for c in self._cases if c.id != case_id]
        if self._active_case_id == case_id:
            self._active_case_id = max(remaining, key=lambda c: c.created_at).id if remaining else None
        self._commit(remaining)
        logger.info(f"Deleted case {case_id} with {len(case.documents)} document(s)")

    def add_documents(self, case_id: str, uploads: list[BinaryHandle]) -> list[ProcessedDocument]:
        """Create one QUEUED document per upload, in the given order."""
        case = self.get_case(case_id)
        new_docs = [
            ProcessedDocument(
                name=handle.filename,
                mime_type=handle.mime_type,
                size=handle.size,
                status=ProcessingStatus.QUEUED,
                binary=handle,
            )
            for handle in uploads
        ]
        if self.blob_store is not None:
            for doc in new_docs:
                self.blob_store.save_upload(doc.id, doc.binary.content)
        self._replace_case(case.model_copy(update={"documents": case.documents + new_docs}))
        logger.info(f"Queued {len(new_docs)} document(s) in case {case_id}")
        return new_docs

    def delete_document(self, document_id: str) -> bool:
        found = self.find_document(document_id)
        if found is None:
            return False
        case, _ = found
        self._dispose_binary(document_id)
        self._replace_case(case.model_copy(update={
            "documents": [d for d in case.documents if d.id != document_id],
        }))
        logger.info(f"[{document_id}] Document deleted")
        return True

    def attach_binary(self, document_id: str, handle: BinaryHandle) -> bool:
        """Attach (or re-attach) the session handle; QUEUED documents become admissible."""
        if self.blob_store is not None and self.find_document(document_id) is not None:
            self.blob_store.save_upload(document_id, handle.content)
        return self.update_document(document_id, lambda d: d.model_copy(update={"binary": handle}))

    def resubmit_document(self, document_id: str) -> ProcessedDocument:
        """Queue the same source again as a brand-new document."""
        case, doc = self.find_document(document_id) or (None, None)
        if doc is None:
            raise DocumentNotFoundError(document_id)
        if doc.binary is None:
            raise ValueError(f"Document {document_id} has no binary content in this session")
        return self.add_documents(case.id, [doc.binary])[0]

    def _dispose_binary(self, document_id: str) -> None:
        if self.blob_store is not None:
            self.blob_store.delete_upload(document_id)

    # ── Pipeline updates ─────────────────────────────────────────────────

    def update_document(
        self,
        document_id: str,
        fn: Callable[[ProcessedDocument], ProcessedDocument],
    ) -> bool:
        """
        Replace one document with fn(document), leaving siblings untouched.
        Returns False (and does nothing) if the document no longer exists.
        """
        found = self.find_document(document_id)
        if found is None:
            return False
        case, doc = found
        updated = fn(doc)
        self._replace_case(case.model_copy(update={
            "documents": [updated if d.id == document_id else d for d in case.documents],
        }))
        return True
