"""
MedChrons API - FastAPI application entry point.
"""
from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from apps.api.dependencies import AppServices
from apps.worker.lib.model_client import ModelCapability, OpenAIModelCapability
from apps.worker.lib.source_viewer import SourceViewer
from apps.worker.pipeline import process_document
from apps.worker.scheduler import QueueScheduler
from apps.worker.workspace import Workspace
from packages.db.database import init_db
from packages.db.repository import CaseRepository
from packages.shared.models import PipelineConfig
from packages.shared.storage import BlobStore


def _parse_csv_env(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return [value.strip() for value in raw.split(",") if value.strip()]


def _parse_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("medchrons")

cors_allow_origins = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
)
cors_allow_credentials = _parse_bool_env("CORS_ALLOW_CREDENTIALS", True)
audit_logging_enabled = _parse_bool_env("AUDIT_LOGGING", True)


def create_app(
    capability: Optional[ModelCapability] = None,
    repository: Optional[CaseRepository] = None,
    blob_store: Optional[BlobStore] = None,
    config: Optional[PipelineConfig] = None,
) -> FastAPI:
    """
    Build the API. Collaborators default to the production ones (SQL
    repository from DATABASE_URL, disk blob store under DATA_DIR, OpenAI).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pipeline_config = config or PipelineConfig.from_env()
        repo = repository
        if repo is None:
            logger.info("Initializing database...")
            init_db()
            repo = CaseRepository()

        workspace = Workspace.load(repo, blob_store or BlobStore())
        model = capability or OpenAIModelCapability(pipeline_config)

        async def run(doc_id: str) -> None:
            await process_document(doc_id, workspace, model, pipeline_config)

        scheduler = QueueScheduler(workspace, run, limit=pipeline_config.concurrency_limit)
        viewer = SourceViewer(workspace)
        app.state.services = AppServices(
            workspace=workspace,
            scheduler=scheduler,
            viewer=viewer,
            capability=model,
            config=pipeline_config,
        )
        scheduler.start()
        logger.info(f"Workspace ready: {len(workspace.cases)} case(s), concurrency={scheduler.limit}")
        try:
            yield
        finally:
            scheduler.stop()
            viewer.dispose()
            if scheduler.pending_tasks:
                # Unfinished documents are marked interrupted on next start.
                logger.warning(f"Shutting down with {scheduler.pending_tasks} pipeline task(s) in flight")
            app.state.services = None

    app = FastAPI(
        title="MedChrons API",
        description="Cited medical chronologies from uploaded records",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allow_origins,
        allow_credentials=cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id"],
    )

    @app.middleware("http")
    async def request_audit_middleware(request: Request, call_next):
        started = time.perf_counter()
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex

        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        response.headers.setdefault("X-Content-Type-Options", "nosniff")

        if audit_logging_enabled:
            duration_ms = int((time.perf_counter() - started) * 1000)
            logger.info(
                "request_audit request_id=%s method=%s path=%s status=%s duration_ms=%s",
                request_id,
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
        return response

    from apps.api.routes.cases import router as cases_router
    from apps.api.routes.documents import router as docs_router
    from apps.api.routes.exports import router as exports_router
    from apps.api.routes.timeline import router as timeline_router
    from apps.api.routes.viewer import router as viewer_router

    app.include_router(cases_router)
    app.include_router(docs_router)
    app.include_router(timeline_router)
    app.include_router(exports_router)
    app.include_router(viewer_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": "0.1.0"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("apps.api.main:app", host="0.0.0.0", port=8000, reload=True)
