"""
Request-scoped access to the services created in the app lifespan.
"""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, Request

from apps.worker.lib.model_client import ModelCapability
from apps.worker.lib.source_viewer import SourceViewer
from apps.worker.scheduler import QueueScheduler
from apps.worker.workspace import Workspace
from packages.shared.models import Case, PipelineConfig, ProcessedDocument


@dataclass
class AppServices:
    workspace: Workspace
    scheduler: QueueScheduler
    viewer: SourceViewer
    capability: ModelCapability
    config: PipelineConfig


def get_services(request: Request) -> AppServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return services


def require_case(workspace: Workspace, case_id: str) -> Case:
    case = next((c for c in workspace.cases if c.id == case_id), None)
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found")
    return case


def require_document(workspace: Workspace, document_id: str) -> ProcessedDocument:
    found = workspace.find_document(document_id)
    if found is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return found[1]
