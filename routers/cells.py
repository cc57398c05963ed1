"""
Cell APIs: cell records, availability and occupancy.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from database.models import CellStatus, CellType, Employee, Module, PermissionLevel, SecurityLevel
from auth.dependencies import get_db_session, require_permission
from services.cell_service import CellService
from services.occupancy_tracker import OccupancyTracker


router = APIRouter(prefix="/api/cells", tags=["cells"])

can_view = require_permission(Module.CELLS, PermissionLevel.VIEW)
can_edit = require_permission(Module.CELLS, PermissionLevel.EDIT)
can_manage = require_permission(Module.CELLS, PermissionLevel.FULL)


class CellCreate(BaseModel):
    cell_number: str
    capacity: int = Field(..., ge=0)
    cell_type: CellType = CellType.STANDARD
    security_level: SecurityLevel = SecurityLevel.MEDIUM


class CellUpdate(BaseModel):
    capacity: Optional[int] = Field(None, ge=0)
    cell_type: Optional[CellType] = None
    security_level: Optional[SecurityLevel] = None


class CellResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cell_number: str
    cell_type: CellType
    capacity: int
    current_occupancy: int
    security_level: SecurityLevel
    status: CellStatus


class OccupancyStatsResponse(BaseModel):
    total_cells: int
    total_capacity: int
    total_occupancy: int
    available: int


class OccupancyDrift(BaseModel):
    cell_number: str
    recorded_occupancy: int
    assigned_prisoners: int


@router.get("/stats", response_model=OccupancyStatsResponse)
async def occupancy_stats(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return OccupancyStatsResponse(
        total_cells=CellService.get_total_cells(db),
        **CellService.get_occupancy_statistics(db),
    )


@router.get("/available", response_model=List[CellResponse])
async def available_cells(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Cells with a free bed that are not under maintenance."""
    return [CellResponse.model_validate(c) for c in CellService.get_available_cells(db)]


@router.get("/drift", response_model=List[OccupancyDrift])
async def occupancy_drift(
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    """Cells whose recorded occupancy disagrees with the prisoners assigned."""
    return [
        OccupancyDrift(cell_number=cell, recorded_occupancy=recorded, assigned_prisoners=assigned)
        for cell, recorded, assigned in OccupancyTracker.find_occupancy_drift(db)
    ]


@router.get("", response_model=List[CellResponse])
async def list_cells(
    security_level: Optional[SecurityLevel] = Query(None),
    status_filter: Optional[CellStatus] = Query(None, alias="status"),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if security_level:
        cells = CellService.get_cells_by_security_level(db, security_level)
    elif status_filter:
        cells = CellService.get_cells_by_status(db, status_filter)
    else:
        cells = CellService.list_cells(db)
    return [CellResponse.model_validate(c) for c in cells]


@router.post("", response_model=CellResponse, status_code=201)
async def add_cell(
    body: CellCreate,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    return CellResponse.model_validate(CellService.add_cell(db, **body.model_dump()))


@router.get("/{cell_number}", response_model=CellResponse)
async def get_cell(
    cell_number: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return CellResponse.model_validate(CellService.get_cell(db, cell_number))


@router.patch("/{cell_number}", response_model=CellResponse)
async def update_cell(
    cell_number: str,
    body: CellUpdate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    cell = CellService.update_cell(db, cell_number, **body.model_dump(exclude_unset=True))
    return CellResponse.model_validate(cell)


@router.post("/{cell_number}/maintenance", response_model=CellResponse)
async def start_maintenance(
    cell_number: str,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return CellResponse.model_validate(CellService.set_cell_under_maintenance(db, cell_number))


@router.delete("/{cell_number}/maintenance", response_model=CellResponse)
async def end_maintenance(
    cell_number: str,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return CellResponse.model_validate(CellService.end_cell_maintenance(db, cell_number))


@router.post("/{cell_number}/reconcile", response_model=CellResponse)
async def reconcile_cell(
    cell_number: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    """Reset recorded occupancy to the number of prisoners assigned."""
    return CellResponse.model_validate(OccupancyTracker.reconcile_cell(db, cell_number))


@router.delete("/{cell_number}")
async def delete_cell(
    cell_number: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    CellService.delete_cell(db, cell_number)
    return {"success": True, "message": f"Cell {cell_number} deleted"}
