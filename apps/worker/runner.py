"""
Command-line runner.

Processes local files as one case and optionally writes the chronology:

    python -m apps.worker.runner --case "Jane Doe" records.pdf labs.png --export out.docx
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Optional

from apps.worker.lib.model_client import ModelCapability, OpenAIModelCapability
from apps.worker.pipeline import process_document
from apps.worker.project.chronology import build_case_timeline, sort_chronologically
from apps.worker.scheduler import QueueScheduler
from apps.worker.steps.export_render import CASE_EXPORT_TITLE, generate_csv, generate_docx, generate_pdf
from apps.worker.workspace import Workspace
from packages.shared.models import BinaryHandle, DocumentKind, PipelineConfig, ProcessingStatus, document_kind

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build a cited medical chronology from local files.")
    parser.add_argument("files", nargs="+", type=Path, help="PDF, image or DOCX files to process")
    parser.add_argument("--case", default="Untitled Case", help="Case name")
    parser.add_argument("--export", type=Path, default=None, help="Write the chronology as DOCX")
    parser.add_argument("--csv", type=Path, default=None, help="Write the chronology as CSV")
    parser.add_argument("--pdf", type=Path, default=None, help="Write the chronology as PDF")
    parser.add_argument("--concurrency", type=int, default=None, help="Documents processed at once")
    parser.add_argument("--persist", action="store_true", help="Save the case to DATABASE_URL / DATA_DIR")
    return parser


def load_handle(path: Path) -> BinaryHandle:
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    if document_kind(mime_type, path.name) == DocumentKind.UNKNOWN:
        raise ValueError(f"Unsupported file type: {path}")
    return BinaryHandle(content=path.read_bytes(), mime_type=mime_type, filename=path.name)


def _build_workspace(persist: bool) -> Workspace:
    if not persist:
        return Workspace()
    from packages.db.database import init_db
    from packages.db.repository import CaseRepository
    from packages.shared.storage import BlobStore

    init_db()
    return Workspace.load(CaseRepository(), BlobStore())


async def run_case(
    case_name: str,
    handles: list[BinaryHandle],
    capability: ModelCapability,
    config: PipelineConfig,
    workspace: Optional[Workspace] = None,
) -> Workspace:
    """Queue every handle in a new active case and wait for all of them to settle."""
    workspace = workspace or Workspace()

    async def run(doc_id: str) -> None:
        await process_document(doc_id, workspace, capability, config)

    # Activate the new case first so only its documents are admitted.
    case = workspace.create_case(case_name)
    workspace.add_documents(case.id, handles)

    scheduler = QueueScheduler(workspace, run, limit=config.concurrency_limit)
    scheduler.start()
    try:
        await scheduler.wait_idle()
    finally:
        scheduler.stop()
    return workspace


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    args = build_parser().parse_args(argv)

    config = PipelineConfig.from_env()
    if args.concurrency is not None:
        if args.concurrency < 1:
            logger.error("--concurrency must be at least 1")
            return 2
        config = config.model_copy(update={"concurrency_limit": args.concurrency})

    try:
        handles = [load_handle(p) for p in args.files]
    except (OSError, ValueError) as exc:
        logger.error(str(exc))
        return 2

    workspace = asyncio.run(run_case(
        args.case,
        handles,
        OpenAIModelCapability(config),
        config,
        workspace=_build_workspace(args.persist),
    ))

    documents = workspace.active_documents()
    for doc in documents:
        if doc.status == ProcessingStatus.COMPLETED:
            logger.info(f"{doc.name}: {len(doc.entries)} entries")
        else:
            logger.error(f"{doc.name}: {doc.status.value} - {doc.error}")

    timeline = sort_chronologically(build_case_timeline(documents))
    if args.export:
        args.export.write_bytes(generate_docx(timeline, CASE_EXPORT_TITLE))
        logger.info(f"Wrote {args.export}")
    if args.csv:
        args.csv.write_bytes(generate_csv(timeline))
        logger.info(f"Wrote {args.csv}")
    if args.pdf:
        args.pdf.write_bytes(generate_pdf(timeline, CASE_EXPORT_TITLE))
        logger.info(f"Wrote {args.pdf}")

    failed = sum(1 for d in documents if d.status == ProcessingStatus.ERROR)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
