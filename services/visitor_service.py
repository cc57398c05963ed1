"""
Visitor service: registered visitors, approval and visit history.
"""
from datetime import date
from typing import List, Optional, Union

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from database.models import Prisoner, Visitor, VisitorStatus
from services.identifiers import generate_visitor_id
from core.errors import DuplicateRecordError, NotFoundError, ValidationError
from core.validators import parse_enum, require_text, validate_phone
from core.logger import logger


class VisitorService:
    """Service for visitor records."""

    @staticmethod
    def generate_visitor_id(db: Session) -> str:
        return generate_visitor_id(db)

    @staticmethod
    def add_visitor(
        db: Session,
        name: str,
        prisoner_id: str,
        phone: Optional[str] = None,
        relationship: Optional[str] = None,
        status: Union[str, VisitorStatus] = VisitorStatus.PENDING,
        visitor_id: Optional[str] = None
    ) -> Visitor:
        """
        Register a visitor for a prisoner.

        Raises:
            NotFoundError: if the prisoner does not exist
            DuplicateRecordError: if visitor_id is taken
        """
        name = require_text(name, "Visitor name", max_length=100)
        is_valid, error_message = validate_phone(phone)
        if not is_valid:
            raise ValidationError(error_message)
        if db.get(Prisoner, prisoner_id) is None:
            raise NotFoundError("Prisoner", prisoner_id)

        if visitor_id:
            if db.get(Visitor, visitor_id) is not None:
                raise DuplicateRecordError(f"Visitor ID already exists: {visitor_id}")
        else:
            visitor_id = generate_visitor_id(db)

        visitor = Visitor(
            visitor_id=visitor_id,
            name=name,
            phone=phone,
            relationship_to_prisoner=relationship,
            prisoner_id=prisoner_id,
            visit_count=0,
            status=parse_enum(VisitorStatus, status, "visitor status"),
        )
        db.add(visitor)
        db.flush()
        logger.info(f"Registered visitor {visitor_id} for prisoner {prisoner_id}")
        return visitor

    @staticmethod
    def get_visitor(db: Session, visitor_id: str) -> Visitor:
        visitor = db.get(Visitor, visitor_id)
        if visitor is None:
            raise NotFoundError("Visitor", visitor_id)
        return visitor

    @staticmethod
    def list_visitors(db: Session) -> List[Visitor]:
        return db.query(Visitor).order_by(Visitor.name).all()

    @staticmethod
    def update_visitor(
        db: Session,
        visitor_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        relationship: Optional[str] = None,
        prisoner_id: Optional[str] = None
    ) -> Visitor:
        visitor = VisitorService.get_visitor(db, visitor_id)
        if name is not None:
            visitor.name = require_text(name, "Visitor name", max_length=100)
        if phone is not None:
            is_valid, error_message = validate_phone(phone)
            if not is_valid:
                raise ValidationError(error_message)
            visitor.phone = phone
        if relationship is not None:
            visitor.relationship_to_prisoner = relationship
        if prisoner_id is not None:
            if db.get(Prisoner, prisoner_id) is None:
                raise NotFoundError("Prisoner", prisoner_id)
            visitor.prisoner_id = prisoner_id
        db.flush()
        logger.info(f"Updated visitor {visitor_id}")
        return visitor

    @staticmethod
    def delete_visitor(db: Session, visitor_id: str) -> None:
        """Delete a visitor together with their visits."""
        visitor = VisitorService.get_visitor(db, visitor_id)
        db.delete(visitor)
        db.flush()
        logger.info(f"Deleted visitor {visitor_id}")

    @staticmethod
    def get_visitors_by_prisoner(db: Session, prisoner_id: str) -> List[Visitor]:
        return db.query(Visitor).filter(Visitor.prisoner_id == prisoner_id).order_by(Visitor.name).all()

    @staticmethod
    def get_visitors_by_status(db: Session, status: Union[str, VisitorStatus]) -> List[Visitor]:
        status = parse_enum(VisitorStatus, status, "visitor status")
        return db.query(Visitor).filter(Visitor.status == status).order_by(Visitor.name).all()

    @staticmethod
    def _set_status(db: Session, visitor_id: str, status: VisitorStatus) -> Visitor:
        visitor = VisitorService.get_visitor(db, visitor_id)
        visitor.status = status
        db.flush()
        logger.info(f"Visitor {visitor_id} is now {status.value}")
        return visitor

    @staticmethod
    def approve_visitor(db: Session, visitor_id: str) -> Visitor:
        return VisitorService._set_status(db, visitor_id, VisitorStatus.APPROVED)

    @staticmethod
    def ban_visitor(db: Session, visitor_id: str) -> Visitor:
        return VisitorService._set_status(db, visitor_id, VisitorStatus.BANNED)

    @staticmethod
    def record_visit(db: Session, visitor_id: str, on: Optional[date] = None) -> Visitor:
        """
        Count one more visit and stamp the visit date.

        The increment is done in SQL so concurrent completions for the same
        visitor are never lost.
        """
        db.flush()
        result = db.execute(
            update(Visitor)
            .where(Visitor.visitor_id == visitor_id)
            .values(visit_count=Visitor.visit_count + 1, last_visit_date=on or date.today())
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFoundError("Visitor", visitor_id)
        visitor = VisitorService.get_visitor(db, visitor_id)
        # The bulk UPDATE bypasses the identity map; reload the row
        db.refresh(visitor)
        logger.info(f"Recorded visit for visitor {visitor_id} (total {visitor.visit_count})")
        return visitor

    @staticmethod
    def get_total_visitors(db: Session) -> int:
        return db.query(func.count(Visitor.visitor_id)).scalar() or 0

    @staticmethod
    def get_approved_visitors_count(db: Session) -> int:
        return db.query(func.count(Visitor.visitor_id)).filter(
            Visitor.status == VisitorStatus.APPROVED
        ).scalar() or 0

    @staticmethod
    def get_top_visitors(db: Session, limit: int = 10) -> List[Visitor]:
        """Visitors with the most recorded visits first."""
        if limit <= 0:
            raise ValidationError("Limit must be positive")
        return db.query(Visitor).order_by(Visitor.visit_count.desc(), Visitor.name).limit(limit).all()
