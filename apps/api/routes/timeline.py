"""
API route: Timeline (case-wide and per-document chronology)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from apps.api.dependencies import AppServices, get_services, require_case, require_document
from apps.api.schemas import TimelineResponse
from apps.worker.project.chronology import (
    build_case_timeline,
    build_document_timeline,
    category_counts,
    filter_by_category,
    sort_chronologically,
)
from apps.worker.project.models import TimelineEntry
from packages.shared.models import FactCategory

router = APIRouter(tags=["timeline"])


def _timeline_response(entries: list[TimelineEntry], category: Optional[FactCategory]) -> TimelineResponse:
    entries = sort_chronologically(entries)
    # Counts always describe the unfiltered timeline.
    counts = category_counts(entries)
    if category is not None:
        entries = filter_by_category(entries, category)
    return TimelineResponse(entries=entries, category_counts=counts)


@router.get("/cases/{case_id}/timeline", response_model=TimelineResponse)
async def get_case_timeline(
    case_id: str,
    category: Optional[FactCategory] = None,
    services: AppServices = Depends(get_services),
):
    case = require_case(services.workspace, case_id)
    return _timeline_response(build_case_timeline(case.documents), category)


@router.get("/documents/{document_id}/timeline", response_model=TimelineResponse)
async def get_document_timeline(
    document_id: str,
    category: Optional[FactCategory] = None,
    services: AppServices = Depends(get_services),
):
    doc = require_document(services.workspace, document_id)
    return _timeline_response(build_document_timeline(doc), category)
