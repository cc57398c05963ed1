"""
Security log service: recorded security events and their follow-up.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import Employee, SecurityLog, SecurityLogStatus, Severity
from services.identifiers import generate_log_id
from services.lifecycle import StatusLifecycleManager, WorkflowKind
from core.errors import NotFoundError, ValidationError
from core.validators import parse_enum, require_text
from core.logger import logger


class SecurityLogService:
    """Service for security log entries."""

    @staticmethod
    def generate_log_id(db: Session) -> str:
        return generate_log_id(db)

    @staticmethod
    def add_security_log(
        db: Session,
        event_type: str,
        severity: Union[str, Severity],
        description: str,
        location: Optional[str] = None,
        employee_id: Optional[str] = None,
        affected_entity: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> SecurityLog:
        """Record a security event awaiting review."""
        if employee_id and db.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)
        entry = SecurityLog(
            log_id=generate_log_id(db),
            event_type=require_text(event_type, "Event type", max_length=50),
            severity=parse_enum(Severity, severity, "severity"),
            description=require_text(description, "Description"),
            location=location,
            timestamp=datetime.utcnow(),
            employee_id=employee_id,
            affected_entity=affected_entity,
            ip_address=ip_address,
            status=SecurityLogStatus.PENDING,
        )
        db.add(entry)
        db.flush()
        logger.info(f"Security log {entry.log_id} [{entry.severity.value}] {entry.event_type}")
        return entry

    @staticmethod
    def get_security_log(db: Session, log_id: str) -> SecurityLog:
        entry = db.get(SecurityLog, log_id)
        if entry is None:
            raise NotFoundError("SecurityLog", log_id)
        return entry

    @staticmethod
    def get_all_logs(db: Session) -> List[SecurityLog]:
        return db.query(SecurityLog).order_by(SecurityLog.timestamp.desc()).all()

    @staticmethod
    def get_logs_by_severity(db: Session, severity: Union[str, Severity]) -> List[SecurityLog]:
        severity = parse_enum(Severity, severity, "severity")
        return db.query(SecurityLog).filter(
            SecurityLog.severity == severity
        ).order_by(SecurityLog.timestamp.desc()).all()

    @staticmethod
    def get_unresolved_logs(db: Session) -> List[SecurityLog]:
        return db.query(SecurityLog).filter(
            SecurityLog.status != SecurityLogStatus.RESOLVED
        ).order_by(SecurityLog.timestamp.desc()).all()

    @staticmethod
    def investigate_log(db: Session, log_id: str) -> SecurityLog:
        entry = SecurityLogService.get_security_log(db, log_id)
        StatusLifecycleManager.transition(entry, WorkflowKind.SECURITY_LOG, SecurityLogStatus.INVESTIGATING, log_id)
        db.flush()
        return entry

    @staticmethod
    def resolve_security_log(
        db: Session,
        log_id: str,
        resolved_by: str,
        resolution_notes: Optional[str] = None
    ) -> SecurityLog:
        entry = SecurityLogService.get_security_log(db, log_id)
        if db.get(Employee, resolved_by) is None:
            raise NotFoundError("Employee", resolved_by)
        StatusLifecycleManager.transition(
            entry, WorkflowKind.SECURITY_LOG, SecurityLogStatus.RESOLVED, log_id,
            resolved_by=resolved_by,
            resolved_at=datetime.utcnow(),
            resolution_notes=resolution_notes,
        )
        db.flush()
        return entry

    @staticmethod
    def get_recent_logs(db: Session, hours: int = 24, now: Optional[datetime] = None) -> List[SecurityLog]:
        if hours <= 0:
            raise ValidationError("Hours must be positive")
        since = (now or datetime.utcnow()) - timedelta(hours=hours)
        return db.query(SecurityLog).filter(
            SecurityLog.timestamp >= since
        ).order_by(SecurityLog.timestamp.desc()).all()

    @staticmethod
    def get_security_log_statistics(db: Session) -> Dict[str, int]:
        """
        Returns:
            Dict with total, counts per severity and resolved
        """
        by_severity = dict(
            db.query(SecurityLog.severity, func.count(SecurityLog.log_id))
            .group_by(SecurityLog.severity)
            .all()
        )
        resolved = db.query(func.count(SecurityLog.log_id)).filter(
            SecurityLog.status == SecurityLogStatus.RESOLVED
        ).scalar() or 0
        return {
            "total": sum(by_severity.values()),
            "critical": by_severity.get(Severity.CRITICAL, 0),
            "high": by_severity.get(Severity.HIGH, 0),
            "medium": by_severity.get(Severity.MEDIUM, 0),
            "low": by_severity.get(Severity.LOW, 0),
            "resolved": resolved,
        }

    @staticmethod
    def clear_old_logs(db: Session, days: int, now: Optional[datetime] = None) -> int:
        """
        Delete resolved entries older than ``days``. Open entries are kept
        regardless of age.

        Returns:
            Number of entries deleted
        """
        if days <= 0:
            raise ValidationError("Days must be positive")
        cutoff = (now or datetime.utcnow()) - timedelta(days=days)
        db.flush()
        deleted = db.query(SecurityLog).filter(
            SecurityLog.timestamp < cutoff,
            SecurityLog.status == SecurityLogStatus.RESOLVED,
        ).delete(synchronize_session="fetch")
        logger.info(f"Cleared {deleted} security log entries older than {days} days")
        return deleted
