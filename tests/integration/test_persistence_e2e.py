"""
Integration test: case collection round-trips through the SQL repository
and the disk blob store.
"""
from __future__ import annotations

import pytest
from sqlalchemy.orm import sessionmaker

from apps.worker.state_machine import begin_extraction, begin_prose, complete, fail
from apps.worker.workspace import INTERRUPTED_MESSAGE, Workspace
from packages.db.database import get_session, init_db, make_engine
from packages.db.models import CaseRow, DocumentRow
from packages.db.repository import CaseRepository
from packages.shared.models import BinaryHandle, DailyEntry, Fact, ProcessingStatus, Warning
from packages.shared.storage import BlobStore


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'medchrons_test.db'}")
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    return CaseRepository(session_factory)


def _handle(name: str) -> BinaryHandle:
    return BinaryHandle(content=f"%PDF-1.4 {name}".encode(), mime_type="application/pdf", filename=name)


def _entry() -> DailyEntry:
    return DailyEntry(
        date="2024-03-01",
        summary="ER visit",
        facts=[Fact(category="Symptom", detail="Back pain", time="14:30", page_number=1, quote="back pain")],
        tags=["Low Back Pain"],
    )


class TestPersistenceE2E:
    def test_round_trip(self, repository, tmp_path):
        store = BlobStore(tmp_path / "uploads")
        ws = Workspace(repository=repository, blob_store=store)
        case = ws.create_case("Smith v. Doe")
        done, failed, queued = ws.add_documents(case.id, [_handle("a.pdf"), _handle("b.pdf"), _handle("c.pdf")])

        ws.update_document(done.id, begin_prose)
        ws.update_document(done.id, lambda d: begin_extraction(d, "Back pain [Page 1].", [Warning(code="W", message="m")]))
        ws.update_document(done.id, lambda d: complete(d, [_entry()]))
        ws.update_document(failed.id, begin_prose)
        ws.update_document(failed.id, lambda d: fail(d, "Failed to generate document description."))

        reloaded = Workspace.load(CaseRepository(repository._session_factory), store)
        (loaded_case,) = reloaded.cases
        assert loaded_case.name == "Smith v. Doe"
        assert [d.id for d in loaded_case.documents] == [done.id, failed.id, queued.id]

        loaded_done = reloaded.get_document(done.id)
        assert loaded_done.status == ProcessingStatus.COMPLETED
        assert loaded_done.prose == "Back pain [Page 1]."
        assert loaded_done.entries == [_entry()]
        assert [w.code for w in loaded_done.warnings] == ["W"]
        assert loaded_done.uploaded_at.tzinfo is not None

        loaded_failed = reloaded.get_document(failed.id)
        assert loaded_failed.status == ProcessingStatus.ERROR
        assert loaded_failed.error == "Failed to generate document description."

        loaded_queued = reloaded.get_document(queued.id)
        assert loaded_queued.status == ProcessingStatus.QUEUED
        assert loaded_queued.binary.content == b"%PDF-1.4 c.pdf"

    def test_interrupted_document_recovered_and_saved(self, repository):
        ws = Workspace(repository=repository)
        case = ws.create_case("Smith")
        (doc,) = ws.add_documents(case.id, [_handle("a.pdf")])
        ws.update_document(doc.id, begin_prose)

        reloaded = Workspace.load(repository)
        assert reloaded.get_document(doc.id).status == ProcessingStatus.ERROR
        assert reloaded.get_document(doc.id).error == INTERRUPTED_MESSAGE
        # Recovery itself was persisted
        (persisted,) = repository.load_all_cases()
        assert persisted.documents[0].status == ProcessingStatus.ERROR

    def test_deletes_are_replace_all(self, repository, session_factory):
        ws = Workspace(repository=repository)
        keep = ws.create_case("Keep")
        drop = ws.create_case("Drop")
        a, b = ws.add_documents(keep.id, [_handle("a.pdf"), _handle("b.pdf")])
        ws.add_documents(drop.id, [_handle("c.pdf")])

        ws.delete_document(a.id)
        ws.delete_case(drop.id)

        with get_session(session_factory) as session:
            assert [r.id for r in session.query(CaseRow).all()] == [keep.id]
            rows = session.query(DocumentRow).all()
            assert [(r.id, r.position) for r in rows] == [(b.id, 0)]

    def test_empty_database_loads_empty_workspace(self, repository):
        ws = Workspace.load(repository)
        assert ws.cases == []
        assert ws.active_case is None
