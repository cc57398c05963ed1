"""
Authentication endpoints: login, current employee, password change and account locking.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from database.models import Employee, EmployeeRole
from auth.dependencies import get_db_session, get_current_employee, require_admin
from services.auth_service import AuthService
from services.audit_service import AuditService, AuditEvent
from services.access_control_service import AccessControlService
from core.logger import logger
import config


router = APIRouter(prefix="/api/auth", tags=["authentication"])


# Request Models
class LoginRequest(BaseModel):
    """Login request."""
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    """Change own password."""
    current_password: str
    new_password: str


class SetCredentialsRequest(BaseModel):
    """Administrator sets or resets an employee's login."""
    username: str
    password: str


class PermissionEntry(BaseModel):
    module: str
    permission_level: str


class EmployeeSummary(BaseModel):
    employee_id: str
    name: str
    username: Optional[str] = None
    role: EmployeeRole
    position: Optional[str] = None
    department: Optional[str] = None
    last_login: Optional[datetime] = None
    permissions: List[PermissionEntry] = []


class TokenResponse(BaseModel):
    """Token response model."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    employee: EmployeeSummary


def _summary(db: Session, employee: Employee) -> EmployeeSummary:
    return EmployeeSummary(
        employee_id=employee.employee_id,
        name=employee.name,
        username=employee.username,
        role=employee.role,
        position=employee.position,
        department=employee.department,
        last_login=employee.last_login,
        permissions=[
            PermissionEntry(module=module, permission_level=level)
            for module, level in AccessControlService.get_employee_permissions(db, employee.employee_id)
        ],
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db_session)
):
    """
    Log in with username and password.

    Failed attempts are counted; the account is locked for a while after
    too many of them.
    """
    ip_address = request.client.host if request.client else None
    employee = AuthService.authenticate(db, credentials.username, credentials.password, ip_address)
    if employee is None:
        # Commit the failure bookkeeping before rejecting
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = AuthService.create_token(employee)
    return TokenResponse(
        access_token=token,
        expires_in=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        employee=_summary(db, employee),
    )


@router.post("/logout")
async def logout(
    request: Request,
    current_employee: Employee = Depends(get_current_employee),
    db: Session = Depends(get_db_session)
):
    """Record a logout. Tokens are stateless and simply expire."""
    AuditService.log_from_request(
        db, request, AuditEvent.LOGOUT, f"'{current_employee.username}' logged out",
        employee_id=current_employee.employee_id,
    )
    return {"success": True}


@router.get("/me", response_model=EmployeeSummary)
async def me(
    current_employee: Employee = Depends(get_current_employee),
    db: Session = Depends(get_db_session)
):
    """Current employee with their active permissions."""
    return _summary(db, current_employee)


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    current_employee: Employee = Depends(get_current_employee),
    db: Session = Depends(get_db_session)
):
    AuthService.change_password(db, current_employee.employee_id, body.current_password, body.new_password)
    logger.info(f"Password changed by {current_employee.employee_id}")
    return {"success": True, "message": "Password changed"}


@router.put("/credentials/{employee_id}")
async def set_credentials(
    employee_id: str,
    body: SetCredentialsRequest,
    current_employee: Employee = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Give an employee a login or reset it. Administrator only."""
    AuthService.set_credentials(db, employee_id, body.username, body.password)
    return {"success": True, "message": f"Credentials set for {employee_id}"}


@router.post("/lock/{username}")
async def lock_account(
    username: str,
    current_employee: Employee = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Deactivate an account. Administrator only."""
    employee = AuthService.lock_account(db, username)
    return {"success": True, "username": employee.username, "is_active": employee.is_active}


@router.post("/unlock/{username}")
async def unlock_account(
    username: str,
    current_employee: Employee = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Reactivate an account and clear failed attempts. Administrator only."""
    employee = AuthService.unlock_account(db, username)
    return {"success": True, "username": employee.username, "is_active": employee.is_active}


@router.get("/username-exists/{username}")
async def username_exists(
    username: str,
    current_employee: Employee = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return {"exists": AuthService.username_exists(db, username)}
