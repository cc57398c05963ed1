"""
Audit trail for security-relevant actions, persisted as security log entries.
"""
from typing import Optional
from sqlalchemy.orm import Session
from fastapi import Request

from database.models import SecurityLog, Severity, SecurityLogStatus
from services.identifiers import generate_log_id
from core.logger import logger


class AuditEvent:
    """Event types written by the application itself."""
    LOGIN = "Login"
    LOGIN_FAILED = "Login_Failed"
    LOGOUT = "Logout"
    ACCOUNT_LOCKED = "Account_Locked"
    ACCESS_DENIED = "Access_Denied"
    PERMISSION_CHANGE = "Permission_Change"
    SYSTEM_ALERT = "System_Alert"


class AuditService:
    """Service for audit logging."""

    @staticmethod
    def log_action(
        db: Session,
        event_type: str,
        description: str,
        employee_id: Optional[str] = None,
        severity: Severity = Severity.LOW,
        affected_entity: Optional[str] = None,
        ip_address: Optional[str] = None,
        location: Optional[str] = None,
        resolved: bool = True,
    ) -> SecurityLog:
        """
        Log an action to the security log.

        Args:
            db: Database session
            event_type: Event name (see AuditEvent)
            description: Human readable message
            employee_id: Employee involved, if any
            severity: Severity of the event
            affected_entity: e.g. "Module: Security" or a prisoner ID
            ip_address: Client address
            location: Physical or logical location
            resolved: Routine events are stored as already resolved so they
                do not show up in the unresolved queue

        Returns:
            Created SecurityLog
        """
        entry = SecurityLog(
            log_id=generate_log_id(db),
            event_type=event_type,
            severity=severity,
            description=description,
            location=location,
            employee_id=employee_id,
            affected_entity=affected_entity,
            ip_address=ip_address,
            status=SecurityLogStatus.RESOLVED if resolved else SecurityLogStatus.PENDING,
        )
        db.add(entry)
        db.flush()
        logger.debug(f"Audit {event_type}: {description}")
        return entry

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        event_type: str,
        description: str,
        employee_id: Optional[str] = None,
        severity: Severity = Severity.LOW,
        affected_entity: Optional[str] = None,
        resolved: bool = True,
    ) -> SecurityLog:
        """Log an action, taking the client address from a FastAPI request."""
        ip_address = request.client.host if request.client else None

        return AuditService.log_action(
            db=db,
            event_type=event_type,
            description=description,
            employee_id=employee_id,
            severity=severity,
            affected_entity=affected_entity,
            ip_address=ip_address,
            resolved=resolved,
        )
