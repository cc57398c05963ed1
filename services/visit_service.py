"""
Visit service: scheduling and the visit lifecycle.

Status changes are validated by StatusLifecycleManager. Completing a visit
also updates the visitor's history in the same transaction.
"""
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database.models import Prisoner, Visit, VisitStatus, Visitor, VisitorStatus
from services.identifiers import generate_visit_id
from services.lifecycle import StatusLifecycleManager, WorkflowKind
from services.visitor_service import VisitorService
from core.errors import ConstraintViolationError, NotFoundError, ValidationError
from core.validators import parse_optional_filter
from core.logger import logger

DEFAULT_VISIT_MINUTES = 30


class VisitService:
    """Service for visits."""

    @staticmethod
    def generate_visit_id(db: Session, on: Optional[date] = None) -> str:
        return generate_visit_id(db, on)

    @staticmethod
    def schedule_visit(
        db: Session,
        prisoner_id: str,
        visitor_id: str,
        scheduled_datetime: datetime,
        duration: int = DEFAULT_VISIT_MINUTES,
        notes: Optional[str] = None
    ) -> Visit:
        """
        Schedule a visit.

        Raises:
            NotFoundError: if the prisoner or visitor does not exist
            ConstraintViolationError: if the visitor is banned
            ValidationError: on a non-positive duration
        """
        if duration is None or duration <= 0:
            raise ValidationError("Visit duration must be positive")
        if db.get(Prisoner, prisoner_id) is None:
            raise NotFoundError("Prisoner", prisoner_id)
        visitor = db.get(Visitor, visitor_id)
        if visitor is None:
            raise NotFoundError("Visitor", visitor_id)
        if visitor.status == VisitorStatus.BANNED:
            raise ConstraintViolationError(
                f"Visitor {visitor_id} is banned", entity="Visitor", identifier=visitor_id
            )

        visit = Visit(
            visit_id=generate_visit_id(db, scheduled_datetime.date()),
            prisoner_id=prisoner_id,
            visitor_id=visitor_id,
            scheduled_datetime=scheduled_datetime,
            duration=duration,
            status=VisitStatus.SCHEDULED,
            notes=notes,
        )
        db.add(visit)
        db.flush()
        logger.info(f"Scheduled visit {visit.visit_id} ({visitor_id} -> {prisoner_id}) at {scheduled_datetime}")
        return visit

    @staticmethod
    def get_visit(db: Session, visit_id: str) -> Visit:
        visit = db.get(Visit, visit_id)
        if visit is None:
            raise NotFoundError("Visit", visit_id)
        return visit

    @staticmethod
    def list_visits(db: Session) -> List[Visit]:
        return db.query(Visit).order_by(Visit.scheduled_datetime.desc()).all()

    @staticmethod
    def update_visit(
        db: Session,
        visit_id: str,
        scheduled_datetime: Optional[datetime] = None,
        duration: Optional[int] = None,
        notes: Optional[str] = None
    ) -> Visit:
        """
        Reschedule or annotate a visit. Only scheduled visits can be moved.
        """
        visit = VisitService.get_visit(db, visit_id)
        if (scheduled_datetime is not None or duration is not None) and visit.status != VisitStatus.SCHEDULED:
            raise ValidationError(f"Visit {visit_id} is {visit.status.value} and can no longer be rescheduled")
        if scheduled_datetime is not None:
            visit.scheduled_datetime = scheduled_datetime
        if duration is not None:
            if duration <= 0:
                raise ValidationError("Visit duration must be positive")
            visit.duration = duration
        if notes is not None:
            visit.notes = notes
        db.flush()
        logger.info(f"Updated visit {visit_id}")
        return visit

    @staticmethod
    def delete_visit(db: Session, visit_id: str) -> None:
        visit = VisitService.get_visit(db, visit_id)
        db.delete(visit)
        db.flush()
        logger.info(f"Deleted visit {visit_id}")

    @staticmethod
    def get_visits_by_prisoner(db: Session, prisoner_id: str) -> List[Visit]:
        return db.query(Visit).filter(
            Visit.prisoner_id == prisoner_id
        ).order_by(Visit.scheduled_datetime.desc()).all()

    @staticmethod
    def get_visits_by_visitor(db: Session, visitor_id: str) -> List[Visit]:
        return db.query(Visit).filter(
            Visit.visitor_id == visitor_id
        ).order_by(Visit.scheduled_datetime.desc()).all()

    @staticmethod
    def get_visits_by_status(db: Session, status: Union[str, VisitStatus]) -> List[Visit]:
        status = StatusLifecycleManager.coerce(WorkflowKind.VISIT, status)
        return db.query(Visit).filter(Visit.status == status).order_by(Visit.scheduled_datetime).all()

    @staticmethod
    def get_todays_visits(db: Session, today: Optional[date] = None) -> List[Visit]:
        day = today or date.today()
        start = datetime.combine(day, datetime.min.time())
        return db.query(Visit).filter(
            Visit.scheduled_datetime >= start,
            Visit.scheduled_datetime < start + timedelta(days=1),
        ).order_by(Visit.scheduled_datetime).all()

    @staticmethod
    def get_upcoming_visits(db: Session, now: Optional[datetime] = None) -> List[Visit]:
        """Scheduled visits still in the future."""
        return db.query(Visit).filter(
            Visit.scheduled_datetime > (now or datetime.now()),
            Visit.status == VisitStatus.SCHEDULED,
        ).order_by(Visit.scheduled_datetime).all()

    @staticmethod
    def get_overdue_visits(db: Session, now: Optional[datetime] = None) -> List[Visit]:
        """Visits still Scheduled although their time has passed."""
        return db.query(Visit).filter(
            Visit.scheduled_datetime < (now or datetime.now()),
            Visit.status == VisitStatus.SCHEDULED,
        ).order_by(Visit.scheduled_datetime).all()

    @staticmethod
    def search_visits(
        db: Session,
        search_text: Optional[str] = None,
        status: Optional[str] = None,
        on: Optional[date] = None
    ) -> List[Visit]:
        """
        Match visit, prisoner or visitor ID and notes; status "All" means any.
        """
        query = db.query(Visit)
        if search_text and search_text.strip():
            pattern = f"%{search_text.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(Visit.visit_id).like(pattern),
                    func.lower(Visit.prisoner_id).like(pattern),
                    func.lower(Visit.visitor_id).like(pattern),
                    func.lower(Visit.notes).like(pattern),
                )
            )
        status = parse_optional_filter(VisitStatus, status, "visit status")
        if status is not None:
            query = query.filter(Visit.status == status)
        if on is not None:
            start = datetime.combine(on, datetime.min.time())
            query = query.filter(
                Visit.scheduled_datetime >= start,
                Visit.scheduled_datetime < start + timedelta(days=1),
            )
        return query.order_by(Visit.scheduled_datetime).all()

    @staticmethod
    def start_visit(db: Session, visit_id: str) -> Visit:
        visit = VisitService.get_visit(db, visit_id)
        StatusLifecycleManager.transition(
            visit, WorkflowKind.VISIT, VisitStatus.IN_PROGRESS, visit_id,
            actual_start_datetime=datetime.now(),
        )
        db.flush()
        return visit

    @staticmethod
    def complete_visit(db: Session, visit_id: str) -> Visit:
        """
        Complete a visit and record it in the visitor's history.

        Both writes share the caller's transaction: if recording the visit
        fails, the status change rolls back with it.
        """
        visit = VisitService.get_visit(db, visit_id)
        finished = datetime.now()
        StatusLifecycleManager.transition(
            visit, WorkflowKind.VISIT, VisitStatus.COMPLETED, visit_id,
            actual_end_datetime=finished,
        )
        db.flush()
        VisitorService.record_visit(db, visit.visitor_id, finished.date())
        return visit

    @staticmethod
    def cancel_visit(db: Session, visit_id: str, cancellation_notes: Optional[str] = None) -> Visit:
        visit = VisitService.get_visit(db, visit_id)
        changes = {"notes": cancellation_notes} if cancellation_notes else {}
        StatusLifecycleManager.transition(visit, WorkflowKind.VISIT, VisitStatus.CANCELLED, visit_id, **changes)
        db.flush()
        return visit

    @staticmethod
    def get_total_visits(db: Session) -> int:
        return db.query(func.count(Visit.visit_id)).scalar() or 0

    @staticmethod
    def get_visit_statistics(db: Session) -> Dict[str, int]:
        """
        Returns:
            Dict with total, completed, scheduled and cancelled counts
        """
        counts = dict(db.query(Visit.status, func.count(Visit.visit_id)).group_by(Visit.status).all())
        return {
            "total": sum(counts.values()),
            "completed": counts.get(VisitStatus.COMPLETED, 0),
            "scheduled": counts.get(VisitStatus.SCHEDULED, 0),
            "cancelled": counts.get(VisitStatus.CANCELLED, 0),
        }
