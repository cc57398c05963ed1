"""
Visitor APIs.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date

from database.models import Employee, Module, PermissionLevel, VisitorStatus
from auth.dependencies import get_db_session, require_permission
from services.visitor_service import VisitorService


router = APIRouter(prefix="/api/visitors", tags=["visitors"])

can_view = require_permission(Module.VISITORS, PermissionLevel.VIEW)
can_edit = require_permission(Module.VISITORS, PermissionLevel.EDIT)
can_manage = require_permission(Module.VISITORS, PermissionLevel.FULL)


class VisitorCreate(BaseModel):
    name: str
    prisoner_id: str
    phone: Optional[str] = None
    relationship: Optional[str] = None
    status: VisitorStatus = VisitorStatus.PENDING
    visitor_id: Optional[str] = None


class VisitorUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None
    prisoner_id: Optional[str] = None


class VisitorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    visitor_id: str
    name: str
    phone: Optional[str] = None
    relationship: Optional[str] = Field(None, validation_alias="relationship_to_prisoner")
    prisoner_id: Optional[str] = None
    visit_count: int
    last_visit_date: Optional[date] = None
    status: VisitorStatus


@router.get("/stats")
async def visitor_stats(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return {
        "total": VisitorService.get_total_visitors(db),
        "approved": VisitorService.get_approved_visitors_count(db),
    }


@router.get("/top", response_model=List[VisitorResponse])
async def top_visitors(
    limit: int = Query(10, ge=1, le=100),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [VisitorResponse.model_validate(v) for v in VisitorService.get_top_visitors(db, limit)]


@router.get("", response_model=List[VisitorResponse])
async def list_visitors(
    prisoner_id: Optional[str] = Query(None),
    status_filter: Optional[VisitorStatus] = Query(None, alias="status"),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if prisoner_id:
        visitors = VisitorService.get_visitors_by_prisoner(db, prisoner_id)
    elif status_filter:
        visitors = VisitorService.get_visitors_by_status(db, status_filter)
    else:
        visitors = VisitorService.list_visitors(db)
    return [VisitorResponse.model_validate(v) for v in visitors]


@router.post("", response_model=VisitorResponse, status_code=201)
async def add_visitor(
    body: VisitorCreate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return VisitorResponse.model_validate(VisitorService.add_visitor(db, **body.model_dump()))


@router.get("/{visitor_id}", response_model=VisitorResponse)
async def get_visitor(
    visitor_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return VisitorResponse.model_validate(VisitorService.get_visitor(db, visitor_id))


@router.patch("/{visitor_id}", response_model=VisitorResponse)
async def update_visitor(
    visitor_id: str,
    body: VisitorUpdate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    visitor = VisitorService.update_visitor(db, visitor_id, **body.model_dump(exclude_unset=True))
    return VisitorResponse.model_validate(visitor)


@router.post("/{visitor_id}/approve", response_model=VisitorResponse)
async def approve_visitor(
    visitor_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    return VisitorResponse.model_validate(VisitorService.approve_visitor(db, visitor_id))


@router.post("/{visitor_id}/ban", response_model=VisitorResponse)
async def ban_visitor(
    visitor_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    return VisitorResponse.model_validate(VisitorService.ban_visitor(db, visitor_id))


@router.delete("/{visitor_id}")
async def delete_visitor(
    visitor_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    VisitorService.delete_visitor(db, visitor_id)
    return {"success": True, "message": f"Visitor {visitor_id} deleted"}
