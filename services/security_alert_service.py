"""
Security alert service: raising, acknowledging, resolving and assigning alerts.
"""
from datetime import datetime
from typing import Dict, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import AlertStatus, Employee, SecurityAlert, Severity
from services.identifiers import generate_alert_id
from services.lifecycle import StatusLifecycleManager, WorkflowKind
from core.errors import NotFoundError, ValidationError
from core.validators import parse_enum, require_text
from core.logger import logger

# Alerts that still need someone's attention
OPEN_ALERT_STATUSES = (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED)


class SecurityAlertService:
    """Service for security alerts."""

    @staticmethod
    def generate_alert_id(db: Session) -> str:
        return generate_alert_id(db)

    @staticmethod
    def _require_employee(db: Session, employee_id: str) -> Employee:
        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    @staticmethod
    def create_alert(
        db: Session,
        alert_type: str,
        severity: Union[str, Severity],
        description: str,
        location: Optional[str] = None,
        triggered_by: Optional[str] = "System",
        requires_response: bool = True,
        response_time: int = 5,
        notes: Optional[str] = None
    ) -> SecurityAlert:
        """
        Raise a new active alert.

        Args:
            db: Database session
            alert_type: e.g. Intrusion, Equipment_Failure, Unauthorized_Access, Emergency
            severity: Low, Medium, High or Critical
            description: What happened
            location: Where it happened
            triggered_by: "System" or the reporting employee's ID
            requires_response: Whether staff must respond
            response_time: Expected response time in minutes

        Returns:
            Created SecurityAlert
        """
        if response_time is not None and response_time < 0:
            raise ValidationError("Response time cannot be negative")
        alert = SecurityAlert(
            alert_id=generate_alert_id(db),
            alert_type=require_text(alert_type, "Alert type", max_length=50),
            severity=parse_enum(Severity, severity, "severity"),
            description=require_text(description, "Description"),
            location=location,
            triggered_at=datetime.utcnow(),
            triggered_by=triggered_by,
            status=AlertStatus.ACTIVE,
            requires_response=requires_response,
            response_time=response_time if response_time is not None else 5,
            notes=notes,
        )
        db.add(alert)
        db.flush()
        log = logger.critical if alert.severity == Severity.CRITICAL else logger.warning
        log(f"Security alert {alert.alert_id} [{alert.severity.value}] {alert.alert_type} at {location or '-'}")
        return alert

    @staticmethod
    def get_alert(db: Session, alert_id: str) -> SecurityAlert:
        alert = db.get(SecurityAlert, alert_id)
        if alert is None:
            raise NotFoundError("SecurityAlert", alert_id)
        return alert

    @staticmethod
    def list_alerts(db: Session) -> List[SecurityAlert]:
        return db.query(SecurityAlert).order_by(SecurityAlert.triggered_at.desc()).all()

    @staticmethod
    def get_active_alerts(db: Session) -> List[SecurityAlert]:
        """Active and acknowledged alerts, newest first."""
        return db.query(SecurityAlert).filter(
            SecurityAlert.status.in_(OPEN_ALERT_STATUSES)
        ).order_by(SecurityAlert.triggered_at.desc()).all()

    @staticmethod
    def get_critical_alerts(db: Session) -> List[SecurityAlert]:
        """Critical alerts nobody has acknowledged yet."""
        return db.query(SecurityAlert).filter(
            SecurityAlert.severity == Severity.CRITICAL,
            SecurityAlert.status == AlertStatus.ACTIVE,
        ).order_by(SecurityAlert.triggered_at.desc()).all()

    @staticmethod
    def acknowledge_alert(db: Session, alert_id: str, employee_id: str) -> SecurityAlert:
        alert = SecurityAlertService.get_alert(db, alert_id)
        SecurityAlertService._require_employee(db, employee_id)
        StatusLifecycleManager.transition(
            alert, WorkflowKind.SECURITY_ALERT, AlertStatus.ACKNOWLEDGED, alert_id,
            acknowledged_by=employee_id,
            acknowledged_at=datetime.utcnow(),
        )
        db.flush()
        return alert

    @staticmethod
    def resolve_alert(db: Session, alert_id: str, employee_id: str, notes: Optional[str] = None) -> SecurityAlert:
        alert = SecurityAlertService.get_alert(db, alert_id)
        SecurityAlertService._require_employee(db, employee_id)
        changes = {"resolved_by": employee_id, "resolved_at": datetime.utcnow()}
        if notes is not None:
            changes["notes"] = notes
        StatusLifecycleManager.transition(
            alert, WorkflowKind.SECURITY_ALERT, AlertStatus.RESOLVED, alert_id, **changes
        )
        db.flush()
        return alert

    @staticmethod
    def assign_alert(db: Session, alert_id: str, employee_id: str) -> SecurityAlert:
        """Assign an open alert to an employee. Status is unchanged."""
        alert = SecurityAlertService.get_alert(db, alert_id)
        SecurityAlertService._require_employee(db, employee_id)
        if alert.status == AlertStatus.RESOLVED:
            raise ValidationError(f"Alert {alert_id} is already resolved")
        alert.assigned_to = employee_id
        db.flush()
        logger.info(f"Alert {alert_id} assigned to {employee_id}")
        return alert

    @staticmethod
    def get_alert_statistics(db: Session) -> Dict[str, int]:
        """
        Returns:
            Dict with total, active, acknowledged, resolved and critical counts
        """
        counts = dict(
            db.query(SecurityAlert.status, func.count(SecurityAlert.alert_id))
            .group_by(SecurityAlert.status)
            .all()
        )
        critical = db.query(func.count(SecurityAlert.alert_id)).filter(
            SecurityAlert.severity == Severity.CRITICAL
        ).scalar() or 0
        return {
            "total": sum(counts.values()),
            "active": counts.get(AlertStatus.ACTIVE, 0),
            "acknowledged": counts.get(AlertStatus.ACKNOWLEDGED, 0),
            "resolved": counts.get(AlertStatus.RESOLVED, 0),
            "critical": critical,
        }
