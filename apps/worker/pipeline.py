"""
Pipeline orchestrator: runs both stages for one admitted document.
"""
from __future__ import annotations

import logging
import time

from apps.worker.lib.model_client import ModelCapability
from apps.worker.state_machine import begin_extraction, can_transition, complete, fail
from apps.worker.steps.step01_prose import ProseGenerationError, generate_prose
from apps.worker.steps.step02_entities import EntityExtractionError, extract_daily_entries
from apps.worker.workspace import Workspace
from packages.shared.models import PipelineConfig, ProcessedDocument, ProcessingStatus

logger = logging.getLogger(__name__)

UNEXPECTED_FAILURE_MESSAGE = "Processing failed. Please try again."


def _fail_if_in_flight(message: str):
    def apply(doc: ProcessedDocument) -> ProcessedDocument:
        if can_transition(doc.status, ProcessingStatus.ERROR):
            return fail(doc, message)
        return doc
    return apply


async def process_document(
    doc_id: str,
    workspace: Workspace,
    capability: ModelCapability,
    config: PipelineConfig | None = None,
) -> None:
    """
    Run prose generation then entity extraction for a document that the
    scheduler has already moved to GENERATING_PROSE.

    Every result is written back through ``workspace.update_document``, so a
    document deleted while a stage is in flight is simply dropped.
    """
    config = config or PipelineConfig()
    start_time = time.time()

    found = workspace.find_document(doc_id)
    if found is None:
        logger.info(f"[{doc_id}] Document removed before processing started")
        return
    doc = found[1]
    if doc.binary is None:
        workspace.update_document(doc_id, _fail_if_in_flight("Document content is no longer available."))
        return

    try:
        # ── Stage 1: Prose generation ─────────────────────────────────
        logger.info(f"[{doc_id}] Stage 1: Prose generation for {doc.name}")
        prose, prose_warnings = await generate_prose(
            doc.binary.content,
            doc.binary.mime_type,
            capability,
            filename=doc.binary.filename,
            timeout=config.prose_timeout_seconds,
            document_id=doc_id,
        )
        if not workspace.update_document(doc_id, lambda d: begin_extraction(d, prose, prose_warnings)):
            logger.info(f"[{doc_id}] Document deleted during stage 1; result discarded")
            return

        # ── Stage 2: Entity extraction ────────────────────────────────
        logger.info(f"[{doc_id}] Stage 2: Entity extraction")
        entries, entry_warnings = await extract_daily_entries(
            prose,
            capability,
            timeout=config.extraction_timeout_seconds,
            document_id=doc_id,
        )
        if not workspace.update_document(doc_id, lambda d: complete(d, entries, entry_warnings)):
            logger.info(f"[{doc_id}] Document deleted during stage 2; result discarded")
            return

        logger.info(
            f"[{doc_id}] Pipeline completed: entries={len(entries)}, "
            f"facts={sum(len(e.facts) for e in entries)}, seconds={time.time() - start_time:.1f}"
        )

    except (ProseGenerationError, EntityExtractionError) as exc:
        logger.warning(f"[{doc_id}] Pipeline failed: {exc}")
        workspace.update_document(doc_id, _fail_if_in_flight(str(exc)))
    except Exception as exc:
        logger.exception(f"[{doc_id}] Pipeline failed unexpectedly: {exc}")
        workspace.update_document(doc_id, _fail_if_in_flight(UNEXPECTED_FAILURE_MESSAGE))
