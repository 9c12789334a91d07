"""
Integration test: scheduler + two-stage pipeline over a workspace, with a
scripted model capability.
"""
from __future__ import annotations

import asyncio

import pytest

from apps.worker.pipeline import UNEXPECTED_FAILURE_MESSAGE, process_document
from apps.worker.project.chronology import build_case_timeline, sort_chronologically
from apps.worker.runner import build_parser, load_handle, run_case
from apps.worker.scheduler import QueueScheduler
from apps.worker.state_machine import begin_prose
from apps.worker.steps.step01_prose import PROSE_FAILURE_MESSAGE
from apps.worker.steps.step02_entities import EXTRACTION_FAILURE_MESSAGE
from apps.worker.workspace import Workspace
from packages.shared.models import BinaryHandle, PipelineConfig, ProcessingStatus
from tests.fixtures.fake_model import SAMPLE_PROSE, FakeModelCapability, unreachable
from tests.fixtures.generate_fixture import create_synthetic_pdf

S = ProcessingStatus


def _handles(*names: str) -> list[BinaryHandle]:
    return [BinaryHandle(content=create_synthetic_pdf(), mime_type="application/pdf", filename=n) for n in names]


def _start(ws: Workspace, capability, config: PipelineConfig | None = None) -> QueueScheduler:
    config = config or PipelineConfig()

    async def run(doc_id: str) -> None:
        await process_document(doc_id, ws, capability, config)

    scheduler = QueueScheduler(ws, run, limit=config.concurrency_limit)
    scheduler.start()
    return scheduler


class TestPipelineE2E:
    @pytest.mark.asyncio
    async def test_full_pipeline(self):
        ws = Workspace()
        capability = FakeModelCapability()
        scheduler = _start(ws, capability)
        case = ws.create_case("Smith v. Doe")
        docs = ws.add_documents(case.id, _handles("a.pdf", "b.pdf", "c.pdf"))
        await scheduler.wait_idle()

        for doc in docs:
            final = ws.get_document(doc.id)
            assert final.status == S.COMPLETED
            assert final.prose == SAMPLE_PROSE
            assert [e.date for e in final.entries] == ["2024-03-01", "2024-03-18"]
            assert final.error is None
        assert sorted(capability.prose_calls) == ["a.pdf", "b.pdf", "c.pdf"]

        timeline = sort_chronologically(build_case_timeline(ws.active_documents()))
        assert len(timeline) == 6
        assert {e.source_document_name for e in timeline} == {"a.pdf", "b.pdf", "c.pdf"}
        # Every fact carries a page citation
        assert all(f.page_number for e in timeline for f in e.facts)

    @pytest.mark.asyncio
    async def test_stage_one_failure(self):
        ws = Workspace()
        scheduler = _start(ws, FakeModelCapability(prose=unreachable()))
        case = ws.create_case("Smith")
        (doc,) = ws.add_documents(case.id, _handles("a.pdf"))
        await scheduler.wait_idle()
        final = ws.get_document(doc.id)
        assert final.status == S.ERROR
        assert final.error.startswith(PROSE_FAILURE_MESSAGE)
        assert final.prose is None

    @pytest.mark.asyncio
    async def test_stage_two_failure_keeps_prose(self):
        ws = Workspace()
        scheduler = _start(ws, FakeModelCapability(entries={"unexpected": True}))
        case = ws.create_case("Smith")
        (doc,) = ws.add_documents(case.id, _handles("a.pdf"))
        await scheduler.wait_idle()
        final = ws.get_document(doc.id)
        assert final.status == S.ERROR
        assert final.error.startswith(EXTRACTION_FAILURE_MESSAGE)
        assert final.prose == SAMPLE_PROSE

    @pytest.mark.asyncio
    async def test_empty_extraction_completes(self):
        ws = Workspace()
        scheduler = _start(ws, FakeModelCapability(entries=[]))
        case = ws.create_case("Smith")
        (doc,) = ws.add_documents(case.id, _handles("a.pdf"))
        await scheduler.wait_idle()
        final = ws.get_document(doc.id)
        assert final.status == S.COMPLETED
        assert final.entries == []

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self):
        def explode(_prose):
            raise RuntimeError("bug in adapter")

        ws = Workspace()
        scheduler = _start(ws, FakeModelCapability(entries=explode))
        case = ws.create_case("Smith")
        bad, = ws.add_documents(case.id, _handles("a.pdf"))
        await scheduler.wait_idle()
        assert ws.get_document(bad.id).status == S.ERROR
        assert ws.get_document(bad.id).error == UNEXPECTED_FAILURE_MESSAGE

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_siblings(self):
        def prose_for(filename):
            if filename == "bad.pdf":
                raise unreachable()
            return SAMPLE_PROSE

        ws = Workspace()
        scheduler = _start(ws, FakeModelCapability(prose=prose_for))
        case = ws.create_case("Smith")
        good1, bad, good2 = ws.add_documents(case.id, _handles("good1.pdf", "bad.pdf", "good2.pdf"))
        await scheduler.wait_idle()
        assert ws.get_document(good1.id).status == S.COMPLETED
        assert ws.get_document(bad.id).status == S.ERROR
        assert ws.get_document(good2.id).status == S.COMPLETED

    @pytest.mark.asyncio
    async def test_delete_during_stage_one_is_not_resurrected(self):
        ws = Workspace()
        capability = FakeModelCapability()
        gate = capability.gate("a.pdf")
        scheduler = _start(ws, capability)
        case = ws.create_case("Smith")
        (doc,) = ws.add_documents(case.id, _handles("a.pdf"))
        await asyncio.sleep(0)
        assert ws.get_document(doc.id).status == S.GENERATING_PROSE

        ws.delete_document(doc.id)
        gate.set()
        await scheduler.wait_idle()
        assert ws.find_document(doc.id) is None
        assert capability.extraction_calls == []

    @pytest.mark.asyncio
    async def test_delete_during_stage_two_is_not_resurrected(self):
        ws = Workspace()
        capability = FakeModelCapability()
        gate = capability.extraction_gate()
        scheduler = _start(ws, capability)
        case = ws.create_case("Smith")
        (doc,) = ws.add_documents(case.id, _handles("a.pdf"))
        for _ in range(50):
            if ws.get_document(doc.id).status == S.EXTRACTING_ENTITIES:
                break
            await asyncio.sleep(0)
        assert ws.get_document(doc.id).status == S.EXTRACTING_ENTITIES

        ws.delete_document(doc.id)
        gate.set()
        await scheduler.wait_idle()
        assert capability.extraction_calls == [SAMPLE_PROSE]
        assert ws.find_document(doc.id) is None
        assert ws.active_documents() == []

    @pytest.mark.asyncio
    async def test_reattached_content_type_is_sent_to_model(self):
        ws = Workspace()
        capability = FakeModelCapability()
        case = ws.create_case("Smith")
        (doc,) = ws.add_documents(case.id, _handles("a.pdf"))
        ws.attach_binary(doc.id, BinaryHandle(content=b"\x89PNGdata", mime_type="image/png", filename="a.png"))
        ws.update_document(doc.id, begin_prose)

        await process_document(doc.id, ws, capability)
        assert capability.prose_mime_types == ["image/png"]
        assert capability.prose_calls == ["a.png"]
        assert ws.get_document(doc.id).status == S.COMPLETED

    @pytest.mark.asyncio
    async def test_stage_timeout(self):
        ws = Workspace()
        capability = FakeModelCapability()
        capability.gate("slow.pdf")
        config = PipelineConfig(prose_timeout_seconds=0.05)
        scheduler = _start(ws, capability, config)
        case = ws.create_case("Smith")
        slow, fast = ws.add_documents(case.id, _handles("slow.pdf", "fast.pdf"))
        await scheduler.wait_idle()
        assert ws.get_document(slow.id).status == S.ERROR
        assert "timed out" in ws.get_document(slow.id).error
        assert ws.get_document(fast.id).status == S.COMPLETED


class TestRunner:
    @pytest.mark.asyncio
    async def test_run_case(self):
        config = PipelineConfig(concurrency_limit=1)
        ws = await run_case("CLI Case", _handles("a.pdf", "b.pdf"), FakeModelCapability(), config)
        assert ws.active_case.name == "CLI Case"
        assert [d.status for d in ws.active_documents()] == [S.COMPLETED, S.COMPLETED]

    @pytest.mark.asyncio
    async def test_run_case_leaves_other_cases_queued(self):
        ws = Workspace()
        old_case = ws.create_case("Earlier Case")
        (old_doc,) = ws.add_documents(old_case.id, _handles("old.pdf"))
        capability = FakeModelCapability()

        await run_case("CLI Case", _handles("new.pdf"), capability, PipelineConfig(), workspace=ws)
        assert capability.prose_calls == ["new.pdf"]
        assert ws.get_document(old_doc.id).status == S.QUEUED
        assert [d.status for d in ws.active_documents()] == [S.COMPLETED]

    def test_parser_and_handles(self, tmp_path):
        pdf = tmp_path / "records.pdf"
        pdf.write_bytes(create_synthetic_pdf())
        args = build_parser().parse_args(["--case", "Smith", str(pdf), "--export", str(tmp_path / "out.docx")])
        assert args.case == "Smith"
        handle = load_handle(args.files[0])
        assert handle.mime_type == "application/pdf"
        assert handle.filename == "records.pdf"

    def test_unsupported_file_rejected(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")
        with pytest.raises(ValueError):
            load_handle(notes)
