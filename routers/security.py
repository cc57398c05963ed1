"""
Security APIs: alerts, the security log and emergency procedures.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from database.models import (
    AlertStatus, Employee, Module, PermissionLevel, ProcedureType,
    SecurityLogStatus, Severity
)
from auth.dependencies import get_db_session, require_permission
from services.security_alert_service import SecurityAlertService
from services.security_log_service import SecurityLogService
from services.emergency_procedure_service import EmergencyProcedureService


router = APIRouter(prefix="/api/security", tags=["security"])

can_view = require_permission(Module.SECURITY, PermissionLevel.VIEW)
can_edit = require_permission(Module.SECURITY, PermissionLevel.EDIT)
can_manage = require_permission(Module.SECURITY, PermissionLevel.FULL)


# ============================================================================
# Schemas
# ============================================================================

class AlertCreate(BaseModel):
    alert_type: str
    severity: Severity
    description: str
    location: Optional[str] = None
    requires_response: bool = True
    response_time: int = Field(5, ge=0)
    notes: Optional[str] = None


class AlertResolve(BaseModel):
    notes: Optional[str] = None


class AlertAssign(BaseModel):
    employee_id: str


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    alert_id: str
    alert_type: str
    severity: Severity
    description: str
    location: Optional[str] = None
    triggered_at: datetime
    triggered_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    assigned_to: Optional[str] = None
    status: AlertStatus
    notes: Optional[str] = None
    requires_response: bool
    response_time: int


class AlertStatsResponse(BaseModel):
    total: int
    active: int
    acknowledged: int
    resolved: int
    critical: int


class LogCreate(BaseModel):
    event_type: str
    severity: Severity
    description: str
    location: Optional[str] = None
    affected_entity: Optional[str] = None


class LogResolve(BaseModel):
    resolution_notes: Optional[str] = None


class LogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    log_id: str
    event_type: str
    severity: Severity
    description: str
    location: Optional[str] = None
    timestamp: datetime
    employee_id: Optional[str] = None
    affected_entity: Optional[str] = None
    ip_address: Optional[str] = None
    status: SecurityLogStatus
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None


class LogStatsResponse(BaseModel):
    total: int
    critical: int
    high: int
    medium: int
    low: int
    resolved: int


class ProcedureCreate(BaseModel):
    procedure_type: ProcedureType
    title: str
    description: str
    steps: str
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None


class ProcedureUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    steps: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None


class ProcedureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    procedure_id: int
    procedure_type: ProcedureType
    title: str
    description: str
    steps: str
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    last_updated: datetime
    updated_by: Optional[str] = None


# ============================================================================
# Alerts
# ============================================================================

@router.get("/alerts/stats", response_model=AlertStatsResponse)
async def alert_stats(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return AlertStatsResponse(**SecurityAlertService.get_alert_statistics(db))


@router.get("/alerts/active", response_model=List[AlertResponse])
async def active_alerts(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Alerts that are active or acknowledged but not yet resolved."""
    return [AlertResponse.model_validate(a) for a in SecurityAlertService.get_active_alerts(db)]


@router.get("/alerts/critical", response_model=List[AlertResponse])
async def critical_alerts(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [AlertResponse.model_validate(a) for a in SecurityAlertService.get_critical_alerts(db)]


@router.get("/alerts", response_model=List[AlertResponse])
async def list_alerts(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [AlertResponse.model_validate(a) for a in SecurityAlertService.list_alerts(db)]


@router.post("/alerts", response_model=AlertResponse, status_code=201)
async def create_alert(
    body: AlertCreate,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Any employee with access to the security module may raise an alert."""
    alert = SecurityAlertService.create_alert(
        db, triggered_by=current_employee.employee_id, **body.model_dump()
    )
    return AlertResponse.model_validate(alert)


@router.get("/alerts/{alert_id}", response_model=AlertResponse)
async def get_alert(
    alert_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return AlertResponse.model_validate(SecurityAlertService.get_alert(db, alert_id))


@router.post("/alerts/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(
    alert_id: str,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    alert = SecurityAlertService.acknowledge_alert(db, alert_id, current_employee.employee_id)
    return AlertResponse.model_validate(alert)


@router.post("/alerts/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: str,
    body: Optional[AlertResolve] = None,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    alert = SecurityAlertService.resolve_alert(
        db, alert_id, current_employee.employee_id, body.notes if body else None
    )
    return AlertResponse.model_validate(alert)


@router.post("/alerts/{alert_id}/assign", response_model=AlertResponse)
async def assign_alert(
    alert_id: str,
    body: AlertAssign,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    return AlertResponse.model_validate(SecurityAlertService.assign_alert(db, alert_id, body.employee_id))


# ============================================================================
# Security log
# ============================================================================

@router.get("/logs/stats", response_model=LogStatsResponse)
async def log_stats(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return LogStatsResponse(**SecurityLogService.get_security_log_statistics(db))


@router.get("/logs/unresolved", response_model=List[LogResponse])
async def unresolved_logs(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [LogResponse.model_validate(e) for e in SecurityLogService.get_unresolved_logs(db)]


@router.get("/logs/recent", response_model=List[LogResponse])
async def recent_logs(
    hours: int = Query(24, ge=1, le=24 * 365),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [LogResponse.model_validate(e) for e in SecurityLogService.get_recent_logs(db, hours)]


@router.get("/logs", response_model=List[LogResponse])
async def list_logs(
    severity: Optional[Severity] = Query(None),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if severity:
        entries = SecurityLogService.get_logs_by_severity(db, severity)
    else:
        entries = SecurityLogService.get_all_logs(db)
    return [LogResponse.model_validate(e) for e in entries]


@router.post("/logs", response_model=LogResponse, status_code=201)
async def add_log(
    body: LogCreate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    entry = SecurityLogService.add_security_log(
        db, employee_id=current_employee.employee_id, **body.model_dump()
    )
    return LogResponse.model_validate(entry)


@router.delete("/logs")
async def clear_old_logs(
    days: int = Query(..., ge=1, description="Delete resolved entries older than this many days"),
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    deleted = SecurityLogService.clear_old_logs(db, days)
    return {"success": True, "deleted": deleted}


@router.get("/logs/{log_id}", response_model=LogResponse)
async def get_log(
    log_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return LogResponse.model_validate(SecurityLogService.get_security_log(db, log_id))


@router.post("/logs/{log_id}/investigate", response_model=LogResponse)
async def investigate_log(
    log_id: str,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return LogResponse.model_validate(SecurityLogService.investigate_log(db, log_id))


@router.post("/logs/{log_id}/resolve", response_model=LogResponse)
async def resolve_log(
    log_id: str,
    body: Optional[LogResolve] = None,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    entry = SecurityLogService.resolve_security_log(
        db, log_id, current_employee.employee_id, body.resolution_notes if body else None
    )
    return LogResponse.model_validate(entry)


# ============================================================================
# Emergency procedures
# ============================================================================

@router.get("/procedures", response_model=List[ProcedureResponse])
async def list_procedures(
    procedure_type: Optional[ProcedureType] = Query(None, alias="type"),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if procedure_type:
        procedures = EmergencyProcedureService.get_procedures_by_type(db, procedure_type)
    else:
        procedures = EmergencyProcedureService.list_procedures(db)
    return [ProcedureResponse.model_validate(p) for p in procedures]


@router.post("/procedures", response_model=ProcedureResponse, status_code=201)
async def add_procedure(
    body: ProcedureCreate,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    procedure = EmergencyProcedureService.add_procedure(
        db, updated_by=current_employee.employee_id, **body.model_dump()
    )
    return ProcedureResponse.model_validate(procedure)


@router.get("/procedures/{procedure_id}", response_model=ProcedureResponse)
async def get_procedure(
    procedure_id: int,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return ProcedureResponse.model_validate(EmergencyProcedureService.get_procedure(db, procedure_id))


@router.patch("/procedures/{procedure_id}", response_model=ProcedureResponse)
async def update_procedure(
    procedure_id: int,
    body: ProcedureUpdate,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    procedure = EmergencyProcedureService.update_procedure(
        db, procedure_id, updated_by=current_employee.employee_id,
        **body.model_dump(exclude_unset=True)
    )
    return ProcedureResponse.model_validate(procedure)
