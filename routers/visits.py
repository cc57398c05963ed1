"""
Visit APIs: scheduling and the visit lifecycle.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date, datetime

from database.models import Employee, Module, PermissionLevel, VisitStatus
from auth.dependencies import get_db_session, require_permission
from services.visit_service import VisitService, DEFAULT_VISIT_MINUTES


router = APIRouter(prefix="/api/visits", tags=["visits"])

can_view = require_permission(Module.VISITS, PermissionLevel.VIEW)
can_edit = require_permission(Module.VISITS, PermissionLevel.EDIT)
can_manage = require_permission(Module.VISITS, PermissionLevel.FULL)


class VisitCreate(BaseModel):
    prisoner_id: str
    visitor_id: str
    scheduled_datetime: datetime
    duration: int = Field(DEFAULT_VISIT_MINUTES, gt=0)
    notes: Optional[str] = None


class VisitUpdate(BaseModel):
    scheduled_datetime: Optional[datetime] = None
    duration: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None


class CancelRequest(BaseModel):
    notes: Optional[str] = None


class VisitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    visit_id: str
    prisoner_id: str
    visitor_id: str
    scheduled_datetime: datetime
    duration: int
    status: VisitStatus
    notes: Optional[str] = None
    actual_start_datetime: Optional[datetime] = None
    actual_end_datetime: Optional[datetime] = None


class VisitStatsResponse(BaseModel):
    total: int
    completed: int
    scheduled: int
    cancelled: int


@router.get("/stats", response_model=VisitStatsResponse)
async def visit_stats(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return VisitStatsResponse(**VisitService.get_visit_statistics(db))


@router.get("/today", response_model=List[VisitResponse])
async def todays_visits(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [VisitResponse.model_validate(v) for v in VisitService.get_todays_visits(db)]


@router.get("/upcoming", response_model=List[VisitResponse])
async def upcoming_visits(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [VisitResponse.model_validate(v) for v in VisitService.get_upcoming_visits(db)]


@router.get("/overdue", response_model=List[VisitResponse])
async def overdue_visits(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [VisitResponse.model_validate(v) for v in VisitService.get_overdue_visits(db)]


@router.get("", response_model=List[VisitResponse])
async def list_visits(
    search: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status", description="Visit status or 'All'"),
    on: Optional[date] = Query(None, description="Scheduled date"),
    prisoner_id: Optional[str] = Query(None),
    visitor_id: Optional[str] = Query(None),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if prisoner_id:
        visits = VisitService.get_visits_by_prisoner(db, prisoner_id)
    elif visitor_id:
        visits = VisitService.get_visits_by_visitor(db, visitor_id)
    elif search or status_filter or on:
        visits = VisitService.search_visits(db, search, status_filter, on)
    else:
        visits = VisitService.list_visits(db)
    return [VisitResponse.model_validate(v) for v in visits]


@router.post("", response_model=VisitResponse, status_code=201)
async def schedule_visit(
    body: VisitCreate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return VisitResponse.model_validate(VisitService.schedule_visit(db, **body.model_dump()))


@router.get("/{visit_id}", response_model=VisitResponse)
async def get_visit(
    visit_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return VisitResponse.model_validate(VisitService.get_visit(db, visit_id))


@router.patch("/{visit_id}", response_model=VisitResponse)
async def update_visit(
    visit_id: str,
    body: VisitUpdate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    visit = VisitService.update_visit(db, visit_id, **body.model_dump(exclude_unset=True))
    return VisitResponse.model_validate(visit)


@router.post("/{visit_id}/start", response_model=VisitResponse)
async def start_visit(
    visit_id: str,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return VisitResponse.model_validate(VisitService.start_visit(db, visit_id))


@router.post("/{visit_id}/complete", response_model=VisitResponse)
async def complete_visit(
    visit_id: str,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    """Complete the visit and add it to the visitor's history."""
    return VisitResponse.model_validate(VisitService.complete_visit(db, visit_id))


@router.post("/{visit_id}/cancel", response_model=VisitResponse)
async def cancel_visit(
    visit_id: str,
    body: Optional[CancelRequest] = None,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return VisitResponse.model_validate(VisitService.cancel_visit(db, visit_id, body.notes if body else None))


@router.delete("/{visit_id}")
async def delete_visit(
    visit_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    VisitService.delete_visit(db, visit_id)
    return {"success": True, "message": f"Visit {visit_id} deleted"}
