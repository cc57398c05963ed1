"""
Access control APIs: grants, revocations and permission checks.
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date

from database.models import Employee, Module, PermissionLevel, Severity
from auth.dependencies import get_db_session, require_permission
from services.access_control_service import AccessControlService
from services.audit_service import AuditService, AuditEvent


router = APIRouter(prefix="/api/access-controls", tags=["access-controls"])

can_view = require_permission(Module.ACCESS_CONTROL, PermissionLevel.VIEW)
can_manage = require_permission(Module.ACCESS_CONTROL, PermissionLevel.FULL)


class GrantRequest(BaseModel):
    employee_id: str
    module: Module
    permission_level: PermissionLevel
    expires_on: Optional[date] = None


class AccessControlUpdate(BaseModel):
    permission_level: Optional[PermissionLevel] = None
    expires_on: Optional[date] = None
    is_active: Optional[bool] = None
    clear_expiry: bool = False


class RevokeRequest(BaseModel):
    employee_id: str
    module: Module


class AccessControlResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    control_id: str
    employee_id: str
    employee_name: str
    module: Module
    permission_level: PermissionLevel
    granted_by: Optional[str] = None
    granted_date: Optional[date] = None
    expires_on: Optional[date] = None
    is_active: bool


class PermissionEntry(BaseModel):
    module: str
    permission_level: str


class PermissionCheckResponse(BaseModel):
    employee_id: str
    module: str
    required: str
    allowed: bool


def _audit_change(db: Session, request: Request, actor: Employee, description: str, employee_id: str):
    AuditService.log_from_request(
        db, request, AuditEvent.PERMISSION_CHANGE, description,
        employee_id=actor.employee_id,
        severity=Severity.MEDIUM,
        affected_entity=f"Employee: {employee_id}",
    )


@router.get("/expired", response_model=List[AccessControlResponse])
async def expired_controls(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Grants past their expiry date that are still flagged active."""
    return [AccessControlResponse.model_validate(c) for c in AccessControlService.get_expired_access_controls(db)]


@router.post("/expired/deactivate")
async def deactivate_expired(
    request: Request,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    count = AccessControlService.deactivate_expired_access_controls(db)
    if count:
        AuditService.log_from_request(
            db, request, AuditEvent.PERMISSION_CHANGE,
            f"Deactivated {count} expired access controls",
            employee_id=current_employee.employee_id,
            severity=Severity.MEDIUM,
        )
    return {"success": True, "deactivated": count}


@router.get("/check", response_model=PermissionCheckResponse)
async def check_permission(
    employee_id: str = Query(...),
    module: str = Query(...),
    required: PermissionLevel = Query(PermissionLevel.VIEW),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Unknown modules are reported as not allowed rather than rejected."""
    allowed = AccessControlService.has_permission(db, employee_id, module, required)
    return PermissionCheckResponse(
        employee_id=employee_id, module=module, required=required.value, allowed=allowed
    )


@router.get("/employee/{employee_id}/permissions", response_model=List[PermissionEntry])
async def employee_permissions(
    employee_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [
        PermissionEntry(module=module, permission_level=level)
        for module, level in AccessControlService.get_employee_permissions(db, employee_id)
    ]


@router.get("", response_model=List[AccessControlResponse])
async def list_controls(
    employee_id: Optional[str] = Query(None),
    module: Optional[Module] = Query(None),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if employee_id:
        controls = AccessControlService.get_access_controls_by_employee(db, employee_id)
    elif module:
        controls = AccessControlService.get_access_controls_by_module(db, module)
    else:
        controls = AccessControlService.list_access_controls(db)
    return [AccessControlResponse.model_validate(c) for c in controls]


@router.post("", response_model=AccessControlResponse, status_code=201)
async def grant_access(
    body: GrantRequest,
    request: Request,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    control = AccessControlService.grant_access(
        db,
        employee_id=body.employee_id,
        module=body.module,
        permission_level=body.permission_level,
        granted_by=current_employee.employee_id,
        expires_on=body.expires_on,
    )
    _audit_change(
        db, request, current_employee,
        f"Granted {body.permission_level.value} on {body.module.value} to {body.employee_id}",
        body.employee_id,
    )
    return AccessControlResponse.model_validate(control)


@router.post("/revoke", response_model=AccessControlResponse)
async def revoke_access(
    body: RevokeRequest,
    request: Request,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    control = AccessControlService.revoke_access_control(db, body.employee_id, body.module)
    _audit_change(
        db, request, current_employee,
        f"Revoked {body.module.value} access for {body.employee_id}",
        body.employee_id,
    )
    return AccessControlResponse.model_validate(control)


@router.get("/{control_id}", response_model=AccessControlResponse)
async def get_control(
    control_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return AccessControlResponse.model_validate(AccessControlService.get_access_control(db, control_id))


@router.patch("/{control_id}", response_model=AccessControlResponse)
async def update_control(
    control_id: str,
    body: AccessControlUpdate,
    request: Request,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    control = AccessControlService.update_access_control(
        db, control_id, **body.model_dump(exclude_unset=True)
    )
    _audit_change(db, request, current_employee, f"Updated access control {control_id}", control.employee_id)
    return AccessControlResponse.model_validate(control)


@router.delete("/{control_id}")
async def delete_control(
    control_id: str,
    request: Request,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    employee_id = AccessControlService.get_access_control(db, control_id).employee_id
    AccessControlService.delete_access_control(db, control_id)
    _audit_change(db, request, current_employee, f"Deleted access control {control_id}", employee_id)
    return {"success": True, "message": f"Access control {control_id} deleted"}
