"""
Guard duty APIs.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date, datetime

from database.models import DutyStatus, Employee, Module, PermissionLevel, Priority
from auth.dependencies import get_db_session, require_permission
from services.guard_duty_service import GuardDutyService


router = APIRouter(prefix="/api/guard-duties", tags=["guard-duties"])

can_view = require_permission(Module.GUARD_DUTIES, PermissionLevel.VIEW)
can_edit = require_permission(Module.GUARD_DUTIES, PermissionLevel.EDIT)
can_manage = require_permission(Module.GUARD_DUTIES, PermissionLevel.FULL)


class DutyCreate(BaseModel):
    officer_id: str
    duty_date: date
    duty_type: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    notes: Optional[str] = None


class DutyUpdate(BaseModel):
    officer_id: Optional[str] = None
    duty_date: Optional[date] = None
    duty_type: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    priority: Optional[Priority] = None
    notes: Optional[str] = None


class CompleteDutyRequest(BaseModel):
    completed_time: Optional[str] = None


class CancelDutyRequest(BaseModel):
    reason: Optional[str] = None


class IssueReport(BaseModel):
    issue: str


class DutyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    duty_id: str
    officer_id: Optional[str] = None
    officer_name: Optional[str] = None
    duty_type: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duty_date: date
    status: DutyStatus
    priority: Priority
    notes: Optional[str] = None
    completed_time: Optional[str] = None


class IssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    duty_id: str
    issue_description: str
    reported_by: Optional[str] = None
    reported_at: datetime


@router.get("/stats")
async def duty_stats(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return {"total": GuardDutyService.get_total_duties_count(db)}


@router.get("/today", response_model=List[DutyResponse])
async def my_duties_today(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """The caller's duties for today."""
    duties = GuardDutyService.get_today_duties_by_officer(db, current_employee.employee_id)
    return [DutyResponse.model_validate(d) for d in duties]


@router.get("", response_model=List[DutyResponse])
async def list_duties(
    search: Optional[str] = Query(None, description="Match officer, location or duty type"),
    status_filter: Optional[str] = Query(None, alias="status", description="Duty status or 'All'"),
    duty_date: Optional[date] = Query(None, alias="date"),
    officer_id: Optional[str] = Query(None),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if officer_id:
        duties = GuardDutyService.get_duties_by_officer(db, officer_id)
    elif search or status_filter:
        duties = GuardDutyService.search_guard_duties(db, search, status_filter, duty_date)
    elif duty_date:
        duties = GuardDutyService.get_duties_by_date(db, duty_date)
    else:
        duties = GuardDutyService.list_guard_duties(db)
    return [DutyResponse.model_validate(d) for d in duties]


@router.post("", response_model=DutyResponse, status_code=201)
async def add_duty(
    body: DutyCreate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return DutyResponse.model_validate(GuardDutyService.add_guard_duty(db, **body.model_dump()))


@router.get("/{duty_id}", response_model=DutyResponse)
async def get_duty(
    duty_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return DutyResponse.model_validate(GuardDutyService.get_guard_duty(db, duty_id))


@router.patch("/{duty_id}", response_model=DutyResponse)
async def update_duty(
    duty_id: str,
    body: DutyUpdate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    duty = GuardDutyService.update_guard_duty(db, duty_id, **body.model_dump(exclude_unset=True))
    return DutyResponse.model_validate(duty)


@router.post("/{duty_id}/start", response_model=DutyResponse)
async def start_duty(
    duty_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return DutyResponse.model_validate(GuardDutyService.start_duty(db, duty_id))


@router.post("/{duty_id}/complete", response_model=DutyResponse)
async def complete_duty(
    duty_id: str,
    body: Optional[CompleteDutyRequest] = None,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    duty = GuardDutyService.complete_duty(db, duty_id, body.completed_time if body else None)
    return DutyResponse.model_validate(duty)


@router.post("/{duty_id}/cancel", response_model=DutyResponse)
async def cancel_duty(
    duty_id: str,
    body: Optional[CancelDutyRequest] = None,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    duty = GuardDutyService.cancel_duty(db, duty_id, body.reason if body else None)
    return DutyResponse.model_validate(duty)


@router.get("/{duty_id}/issues", response_model=List[IssueResponse])
async def duty_issues(
    duty_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [IssueResponse.model_validate(i) for i in GuardDutyService.get_duty_issues(db, duty_id)]


@router.post("/{duty_id}/issues", response_model=IssueResponse, status_code=201)
async def report_issue(
    duty_id: str,
    body: IssueReport,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    entry = GuardDutyService.report_duty_issue(db, duty_id, body.issue, current_employee.employee_id)
    return IssueResponse.model_validate(entry)


@router.delete("/{duty_id}")
async def delete_duty(
    duty_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    GuardDutyService.delete_guard_duty(db, duty_id)
    return {"success": True, "message": f"Duty {duty_id} deleted"}
