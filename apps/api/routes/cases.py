"""
API route: Cases
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from apps.api.dependencies import AppServices, get_services, require_case
from apps.api.schemas import CaseResponse, CaseSummary

router = APIRouter(tags=["cases"])


class CreateCaseRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    activate: bool = True


@router.get("/cases", response_model=list[CaseSummary])
async def list_cases(services: AppServices = Depends(get_services)):
    workspace = services.workspace
    active = workspace.active_case
    return [
        CaseSummary(
            id=case.id,
            name=case.name,
            created_at=case.created_at.isoformat(),
            document_count=len(case.documents),
            active=active is not None and active.id == case.id,
        )
        for case in sorted(workspace.cases, key=lambda c: c.created_at, reverse=True)
    ]


@router.post("/cases", response_model=CaseResponse, status_code=201)
async def create_case(req: CreateCaseRequest, services: AppServices = Depends(get_services)):
    case = services.workspace.create_case(req.name, activate=req.activate)
    return CaseResponse.from_case(case, active=req.activate)


@router.get("/cases/{case_id}", response_model=CaseResponse)
async def get_case(case_id: str, services: AppServices = Depends(get_services)):
    workspace = services.workspace
    case = require_case(workspace, case_id)
    active = workspace.active_case
    return CaseResponse.from_case(case, active=active is not None and active.id == case.id)


@router.post("/cases/{case_id}/activate", response_model=CaseResponse)
async def activate_case(case_id: str, services: AppServices = Depends(get_services)):
    require_case(services.workspace, case_id)
    case = services.workspace.set_active_case(case_id)
    return CaseResponse.from_case(case, active=True)


@router.delete("/cases/{case_id}", status_code=204)
async def delete_case(case_id: str, services: AppServices = Depends(get_services)):
    require_case(services.workspace, case_id)
    services.workspace.delete_case(case_id)
    return Response(status_code=204)
