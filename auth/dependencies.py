"""
Authentication and authorization dependencies for FastAPI.
"""
from fastapi import Depends, HTTPException, Request, status, Security
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database.models import Employee, EmployeeRole, Module, PermissionLevel, Severity
from auth.security import security, decode_access_token
from services.access_control_service import AccessControlService
from services.audit_service import AuditService, AuditEvent
from core.logger import logger
import config


def get_db_session():
    """Get database session (one transaction per request)."""
    if not config.db:
        raise HTTPException(status_code=503, detail="Database not initialized")
    with config.db.get_session() as session:
        yield session


async def get_current_employee(
    credentials: HTTPAuthorizationCredentials = Security(security),
    db: Session = Depends(get_db_session)
) -> Employee:
    """
    Get the authenticated employee from the JWT bearer token.

    Raises:
        HTTPException: 401 on a bad token or unknown employee, 403 on an inactive account
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    employee = db.get(Employee, payload["sub"])
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Employee not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not employee.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Employee account is inactive",
        )

    return employee


def require_role(allowed_roles: list[EmployeeRole]):
    """
    Dependency factory for role-based access control.

    Args:
        allowed_roles: Roles that may call the endpoint

    Returns:
        Dependency function
    """
    async def role_checker(
        current_employee: Employee = Depends(get_current_employee)
    ) -> Employee:
        if current_employee.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(r.value for r in allowed_roles)}"
            )
        return current_employee

    return role_checker


def _record_denial(request: Request, employee: Employee, module: Module, level: PermissionLevel) -> None:
    # Own transaction: the request's session rolls back when the 403 propagates
    with config.db.get_session() as audit_db:
        AuditService.log_from_request(
            audit_db,
            request,
            AuditEvent.ACCESS_DENIED,
            f"{employee.employee_id} lacks {level.value} on {module.value} ({request.method} {request.url.path})",
            employee_id=employee.employee_id,
            severity=Severity.MEDIUM,
            affected_entity=f"Module: {module.value}",
            resolved=False,
        )


def require_permission(module: Module, level: PermissionLevel):
    """
    Dependency factory for module permissions.

    Administrators pass every module check; everyone else needs an active,
    unexpired grant of at least ``level`` on ``module``. Denials are written
    to the security log.
    """
    async def permission_checker(
        request: Request,
        current_employee: Employee = Depends(get_current_employee),
        db: Session = Depends(get_db_session)
    ) -> Employee:
        if current_employee.role == EmployeeRole.ADMINISTRATOR:
            return current_employee

        if AccessControlService.has_permission(db, current_employee.employee_id, module, level):
            return current_employee

        logger.warning(f"Access denied: {current_employee.employee_id} needs {level.value} on {module.value}")
        _record_denial(request, current_employee, module, level)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. Requires {level.value} permission on {module.value}",
        )

    return permission_checker


require_admin = require_role([EmployeeRole.ADMINISTRATOR])
