"""
Prisoner APIs: intake, search, cell transfer and release.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date

from database.models import Employee, Module, PermissionLevel, PrisonerStatus
from auth.dependencies import get_db_session, require_permission
from services.prisoner_service import PrisonerService


router = APIRouter(prefix="/api/prisoners", tags=["prisoners"])

can_view = require_permission(Module.PRISONERS, PermissionLevel.VIEW)
can_edit = require_permission(Module.PRISONERS, PermissionLevel.EDIT)
can_manage = require_permission(Module.PRISONERS, PermissionLevel.FULL)


class PrisonerCreate(BaseModel):
    """Intake request."""
    name: str
    prisoner_id: Optional[str] = None
    phone: Optional[str] = None
    crime: Optional[str] = None
    cell_number: Optional[str] = None
    sentence_duration: Optional[str] = None
    admission_date: Optional[date] = None


class PrisonerUpdate(BaseModel):
    """Update personal fields."""
    name: Optional[str] = None
    phone: Optional[str] = None
    crime: Optional[str] = None
    sentence_duration: Optional[str] = None
    admission_date: Optional[date] = None


class TransferRequest(BaseModel):
    cell_number: str


class ReleaseRequest(BaseModel):
    release_date: Optional[date] = None


class PrisonerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    prisoner_id: str
    name: str
    phone: Optional[str] = None
    crime: Optional[str] = None
    cell_number: Optional[str] = None
    sentence_duration: Optional[str] = None
    status: PrisonerStatus
    admission_date: Optional[date] = None
    release_date: Optional[date] = None


class PrisonerStatsResponse(BaseModel):
    total: int
    average_per_cell: float
    unique_crimes: int


@router.get("/stats", response_model=PrisonerStatsResponse)
async def prisoner_stats(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return PrisonerStatsResponse(**PrisonerService.get_prisoner_statistics(db))


@router.get("", response_model=List[PrisonerResponse])
async def list_prisoners(
    search: Optional[str] = Query(None, description="Match name, ID or crime"),
    cell: Optional[str] = Query(None),
    crime: Optional[str] = Query(None),
    status_filter: Optional[PrisonerStatus] = Query(None, alias="status"),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if search:
        prisoners = PrisonerService.search_prisoners(db, search)
    elif cell:
        prisoners = PrisonerService.get_prisoners_by_cell(db, cell)
    elif crime:
        prisoners = PrisonerService.get_prisoners_by_crime(db, crime)
    else:
        prisoners = PrisonerService.list_prisoners(db, status_filter)
    return [PrisonerResponse.model_validate(p) for p in prisoners]


@router.post("", response_model=PrisonerResponse, status_code=201)
async def create_prisoner(
    body: PrisonerCreate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    prisoner = PrisonerService.create_prisoner(db, **body.model_dump())
    return PrisonerResponse.model_validate(prisoner)


@router.get("/{prisoner_id}", response_model=PrisonerResponse)
async def get_prisoner(
    prisoner_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return PrisonerResponse.model_validate(PrisonerService.get_prisoner(db, prisoner_id))


@router.patch("/{prisoner_id}", response_model=PrisonerResponse)
async def update_prisoner(
    prisoner_id: str,
    body: PrisonerUpdate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    prisoner = PrisonerService.update_prisoner(db, prisoner_id, **body.model_dump(exclude_unset=True))
    return PrisonerResponse.model_validate(prisoner)


@router.post("/{prisoner_id}/transfer", response_model=PrisonerResponse)
async def transfer_prisoner(
    prisoner_id: str,
    body: TransferRequest,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    """Move a prisoner to another cell (fails with 409 if the cell is full)."""
    prisoner = PrisonerService.transfer_prisoner_cell(db, prisoner_id, body.cell_number)
    return PrisonerResponse.model_validate(prisoner)


@router.post("/{prisoner_id}/release", response_model=PrisonerResponse)
async def release_prisoner(
    prisoner_id: str,
    body: Optional[ReleaseRequest] = None,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    prisoner = PrisonerService.release_prisoner(db, prisoner_id, body.release_date if body else None)
    return PrisonerResponse.model_validate(prisoner)


@router.post("/{prisoner_id}/transfer-out", response_model=PrisonerResponse)
async def transfer_prisoner_out(
    prisoner_id: str,
    body: Optional[ReleaseRequest] = None,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    """Transfer to another facility."""
    prisoner = PrisonerService.transfer_prisoner_out(db, prisoner_id, body.release_date if body else None)
    return PrisonerResponse.model_validate(prisoner)


@router.delete("/{prisoner_id}")
async def delete_prisoner(
    prisoner_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    PrisonerService.delete_prisoner(db, prisoner_id)
    return {"success": True, "message": f"Prisoner {prisoner_id} deleted"}
