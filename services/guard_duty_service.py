"""
Guard duty service: shift scheduling, the duty lifecycle and issue reports.
"""
from datetime import date, datetime, time
from typing import List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database.models import DutyIssue, DutyStatus, Employee, GuardDuty, Priority
from services.identifiers import generate_duty_id
from services.lifecycle import StatusLifecycleManager, WorkflowKind
from core.errors import NotFoundError
from core.validators import format_time_of_day, parse_enum, parse_optional_filter, require_text
from core.logger import logger


class GuardDutyService:
    """Service for guard duties."""

    @staticmethod
    def generate_duty_id(db: Session, on: Optional[date] = None) -> str:
        return generate_duty_id(db, on)

    @staticmethod
    def _officer(db: Session, officer_id: Optional[str]) -> Optional[Employee]:
        if not officer_id:
            return None
        officer = db.get(Employee, officer_id)
        if officer is None:
            raise NotFoundError("Employee", officer_id)
        return officer

    @staticmethod
    def add_guard_duty(
        db: Session,
        officer_id: str,
        duty_date: date,
        duty_type: Optional[str] = None,
        location: Optional[str] = None,
        start_time: Union[str, time, None] = None,
        end_time: Union[str, time, None] = None,
        priority: Union[str, Priority] = Priority.MEDIUM,
        notes: Optional[str] = None
    ) -> GuardDuty:
        """
        Schedule a duty for an officer.

        Raises:
            NotFoundError: if the officer does not exist
            ValidationError: on a malformed time or unknown priority
        """
        officer = GuardDutyService._officer(db, officer_id)
        duty = GuardDuty(
            duty_id=generate_duty_id(db),
            officer_id=officer.employee_id if officer else None,
            officer_name=officer.name if officer else None,
            duty_type=duty_type,
            location=location,
            start_time=format_time_of_day(start_time),
            end_time=format_time_of_day(end_time),
            duty_date=duty_date,
            status=DutyStatus.SCHEDULED,
            priority=parse_enum(Priority, priority, "priority"),
            notes=notes,
        )
        db.add(duty)
        db.flush()
        logger.info(f"Scheduled duty {duty.duty_id} for {officer_id} on {duty_date}")
        return duty

    @staticmethod
    def get_guard_duty(db: Session, duty_id: str) -> GuardDuty:
        duty = db.get(GuardDuty, duty_id)
        if duty is None:
            raise NotFoundError("GuardDuty", duty_id)
        return duty

    @staticmethod
    def list_guard_duties(db: Session) -> List[GuardDuty]:
        return db.query(GuardDuty).order_by(GuardDuty.duty_date.desc(), GuardDuty.start_time).all()

    @staticmethod
    def update_guard_duty(
        db: Session,
        duty_id: str,
        officer_id: Optional[str] = None,
        duty_date: Optional[date] = None,
        duty_type: Optional[str] = None,
        location: Optional[str] = None,
        start_time: Union[str, time, None] = None,
        end_time: Union[str, time, None] = None,
        priority: Optional[Union[str, Priority]] = None,
        notes: Optional[str] = None
    ) -> GuardDuty:
        """Update duty details. Status changes go through start/complete/cancel."""
        duty = GuardDutyService.get_guard_duty(db, duty_id)
        StatusLifecycleManager.ensure_open(WorkflowKind.GUARD_DUTY, duty.status, duty_id)
        if officer_id is not None:
            officer = GuardDutyService._officer(db, officer_id)
            duty.officer_id = officer.employee_id
            duty.officer_name = officer.name
        if duty_date is not None:
            duty.duty_date = duty_date
        if duty_type is not None:
            duty.duty_type = duty_type
        if location is not None:
            duty.location = location
        if start_time is not None:
            duty.start_time = format_time_of_day(start_time)
        if end_time is not None:
            duty.end_time = format_time_of_day(end_time)
        if priority is not None:
            duty.priority = parse_enum(Priority, priority, "priority")
        if notes is not None:
            duty.notes = notes
        db.flush()
        logger.info(f"Updated duty {duty_id}")
        return duty

    @staticmethod
    def delete_guard_duty(db: Session, duty_id: str) -> None:
        """Delete a duty and its issue reports."""
        duty = GuardDutyService.get_guard_duty(db, duty_id)
        db.delete(duty)
        db.flush()
        logger.info(f"Deleted duty {duty_id}")

    @staticmethod
    def get_duties_by_officer(db: Session, officer_id: str) -> List[GuardDuty]:
        return db.query(GuardDuty).filter(
            GuardDuty.officer_id == officer_id
        ).order_by(GuardDuty.duty_date.desc(), GuardDuty.start_time).all()

    @staticmethod
    def get_duties_by_date(db: Session, duty_date: date) -> List[GuardDuty]:
        return db.query(GuardDuty).filter(
            GuardDuty.duty_date == duty_date
        ).order_by(GuardDuty.start_time).all()

    @staticmethod
    def get_duties_by_status(db: Session, status: Union[str, DutyStatus]) -> List[GuardDuty]:
        status = StatusLifecycleManager.coerce(WorkflowKind.GUARD_DUTY, status)
        return db.query(GuardDuty).filter(
            GuardDuty.status == status
        ).order_by(GuardDuty.duty_date.desc(), GuardDuty.start_time).all()

    @staticmethod
    def get_today_duties_by_officer(db: Session, officer_id: str, today: Optional[date] = None) -> List[GuardDuty]:
        return db.query(GuardDuty).filter(
            GuardDuty.officer_id == officer_id,
            GuardDuty.duty_date == (today or date.today()),
        ).order_by(GuardDuty.start_time).all()

    @staticmethod
    def search_guard_duties(
        db: Session,
        search_text: Optional[str] = None,
        status: Optional[str] = None,
        duty_date: Optional[date] = None
    ) -> List[GuardDuty]:
        """Match officer name, location or duty type; status "All" means any."""
        query = db.query(GuardDuty)
        if search_text and search_text.strip():
            pattern = f"%{search_text.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(GuardDuty.officer_name).like(pattern),
                    func.lower(GuardDuty.location).like(pattern),
                    func.lower(GuardDuty.duty_type).like(pattern),
                )
            )
        status = parse_optional_filter(DutyStatus, status, "duty status")
        if status is not None:
            query = query.filter(GuardDuty.status == status)
        if duty_date is not None:
            query = query.filter(GuardDuty.duty_date == duty_date)
        return query.order_by(GuardDuty.duty_date.desc(), GuardDuty.start_time).all()

    @staticmethod
    def start_duty(db: Session, duty_id: str) -> GuardDuty:
        duty = GuardDutyService.get_guard_duty(db, duty_id)
        StatusLifecycleManager.transition(duty, WorkflowKind.GUARD_DUTY, DutyStatus.IN_PROGRESS, duty_id)
        db.flush()
        return duty

    @staticmethod
    def complete_duty(
        db: Session,
        duty_id: str,
        completed_time: Union[str, time, datetime, None] = None
    ) -> GuardDuty:
        """Finish a duty; completed_time defaults to now and is stored as HH:MM:SS."""
        duty = GuardDutyService.get_guard_duty(db, duty_id)
        StatusLifecycleManager.transition(
            duty, WorkflowKind.GUARD_DUTY, DutyStatus.COMPLETED, duty_id,
            completed_time=format_time_of_day(completed_time or datetime.now()),
        )
        db.flush()
        return duty

    @staticmethod
    def cancel_duty(db: Session, duty_id: str, reason: Optional[str] = None) -> GuardDuty:
        duty = GuardDutyService.get_guard_duty(db, duty_id)
        changes = {"notes": reason} if reason else {}
        StatusLifecycleManager.transition(duty, WorkflowKind.GUARD_DUTY, DutyStatus.CANCELLED, duty_id, **changes)
        db.flush()
        return duty

    @staticmethod
    def report_duty_issue(db: Session, duty_id: str, issue: str, reported_by: Optional[str] = None) -> DutyIssue:
        """
        Append an issue report to a duty. Does not change the duty status.
        """
        GuardDutyService.get_guard_duty(db, duty_id)
        entry = DutyIssue(
            duty_id=duty_id,
            issue_description=require_text(issue, "Issue description"),
            reported_by=reported_by,
        )
        db.add(entry)
        db.flush()
        logger.warning(f"Issue reported on duty {duty_id} by {reported_by or 'unknown'}")
        return entry

    @staticmethod
    def get_duty_issues(db: Session, duty_id: str) -> List[DutyIssue]:
        GuardDutyService.get_guard_duty(db, duty_id)
        return db.query(DutyIssue).filter(
            DutyIssue.duty_id == duty_id
        ).order_by(DutyIssue.reported_at, DutyIssue.id).all()

    @staticmethod
    def get_total_duties_count(db: Session) -> int:
        return db.query(func.count(GuardDuty.duty_id)).scalar() or 0
