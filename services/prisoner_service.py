"""
Prisoner service: intake, search, cell transfers and release.

Cell assignment always goes through the OccupancyTracker, in the same
session as the prisoner row, so the prisoner and the cell counters commit
or roll back together.
"""
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database.models import Cell, Prisoner, PrisonerStatus
from services.occupancy_tracker import OccupancyTracker
from services.identifiers import generate_prisoner_id
from core.errors import DuplicateRecordError, InvalidTransitionError, NotFoundError, ValidationError
from core.validators import require_text, validate_phone
from core.logger import logger


class PrisonerService:
    """Service for prisoner records."""

    @staticmethod
    def generate_prisoner_id(db: Session) -> str:
        return generate_prisoner_id(db)

    @staticmethod
    def prisoner_id_exists(db: Session, prisoner_id: str) -> bool:
        return db.get(Prisoner, prisoner_id) is not None

    @staticmethod
    def create_prisoner(
        db: Session,
        name: str,
        phone: Optional[str] = None,
        crime: Optional[str] = None,
        cell_number: Optional[str] = None,
        sentence_duration: Optional[str] = None,
        admission_date: Optional[date] = None,
        prisoner_id: Optional[str] = None
    ) -> Prisoner:
        """
        Admit a prisoner, optionally straight into a cell.

        Args:
            db: Database session
            name: Full name
            phone: Contact phone
            crime: Offence
            cell_number: Cell to assign; must have space
            sentence_duration: Free text, e.g. "5 years"
            admission_date: Defaults to today
            prisoner_id: Explicit ID; generated when omitted

        Returns:
            Created Prisoner

        Raises:
            DuplicateRecordError: if prisoner_id is taken
            NotFoundError: if the cell does not exist
            CellCapacityError: if the cell is full or under maintenance
        """
        name = require_text(name, "Prisoner name", max_length=100)
        is_valid, error_message = validate_phone(phone)
        if not is_valid:
            raise ValidationError(error_message)

        if prisoner_id:
            if PrisonerService.prisoner_id_exists(db, prisoner_id):
                raise DuplicateRecordError(f"Prisoner ID already exists: {prisoner_id}")
        else:
            prisoner_id = generate_prisoner_id(db)

        if cell_number:
            OccupancyTracker.increment_occupancy(db, cell_number)

        prisoner = Prisoner(
            prisoner_id=prisoner_id,
            name=name,
            phone=phone,
            crime=crime,
            cell_number=cell_number or None,
            sentence_duration=sentence_duration,
            status=PrisonerStatus.IN_CUSTODY,
            admission_date=admission_date or date.today(),
        )
        db.add(prisoner)
        db.flush()

        logger.info(f"Admitted prisoner {prisoner_id} ({prisoner.name}) to cell {cell_number or '-'}")
        return prisoner

    @staticmethod
    def get_prisoner(db: Session, prisoner_id: str) -> Prisoner:
        """Get prisoner by ID."""
        prisoner = db.get(Prisoner, prisoner_id)
        if prisoner is None:
            raise NotFoundError("Prisoner", prisoner_id)
        return prisoner

    @staticmethod
    def list_prisoners(db: Session, status: Optional[PrisonerStatus] = None) -> List[Prisoner]:
        query = db.query(Prisoner)
        if status is not None:
            query = query.filter(Prisoner.status == status)
        return query.order_by(Prisoner.name).all()

    @staticmethod
    def search_prisoners(db: Session, search_term: str) -> List[Prisoner]:
        """Case-insensitive match on name, ID or crime."""
        pattern = f"%{search_term.strip().lower()}%"
        return db.query(Prisoner).filter(
            or_(
                func.lower(Prisoner.name).like(pattern),
                func.lower(Prisoner.prisoner_id).like(pattern),
                func.lower(Prisoner.crime).like(pattern),
            )
        ).order_by(Prisoner.name).all()

    @staticmethod
    def update_prisoner(
        db: Session,
        prisoner_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        crime: Optional[str] = None,
        sentence_duration: Optional[str] = None,
        admission_date: Optional[date] = None
    ) -> Prisoner:
        """
        Update personal fields. Cell changes go through transfer_prisoner_cell.
        """
        prisoner = PrisonerService.get_prisoner(db, prisoner_id)
        if name is not None:
            if not name.strip():
                raise ValidationError("Prisoner name cannot be empty")
            prisoner.name = name.strip()
        if phone is not None:
            is_valid, error_message = validate_phone(phone)
            if not is_valid:
                raise ValidationError(error_message)
            prisoner.phone = phone
        if crime is not None:
            prisoner.crime = crime
        if sentence_duration is not None:
            prisoner.sentence_duration = sentence_duration
        if admission_date is not None:
            prisoner.admission_date = admission_date
        db.flush()
        logger.info(f"Updated prisoner {prisoner_id}")
        return prisoner

    @staticmethod
    def get_prisoners_by_cell(db: Session, cell_number: str) -> List[Prisoner]:
        return db.query(Prisoner).filter(
            Prisoner.cell_number == cell_number
        ).order_by(Prisoner.name).all()

    @staticmethod
    def get_prisoners_by_crime(db: Session, crime: str) -> List[Prisoner]:
        pattern = f"%{crime.strip().lower()}%"
        return db.query(Prisoner).filter(
            func.lower(Prisoner.crime).like(pattern)
        ).order_by(Prisoner.name).all()

    @staticmethod
    def get_prisoner_count_by_cell(db: Session, cell_number: str) -> int:
        return db.query(func.count(Prisoner.prisoner_id)).filter(
            Prisoner.cell_number == cell_number
        ).scalar() or 0

    @staticmethod
    def get_total_prisoners(db: Session) -> int:
        return db.query(func.count(Prisoner.prisoner_id)).scalar() or 0

    @staticmethod
    def transfer_prisoner_cell(db: Session, prisoner_id: str, new_cell_number: str) -> Prisoner:
        """
        Move an in-custody prisoner to another cell.

        The destination is checked and filled before the source is emptied,
        all inside the caller's transaction: a full destination leaves both
        cells and the prisoner unchanged.

        Raises:
            NotFoundError: if the prisoner or a cell does not exist
            InvalidTransitionError: if the prisoner is not in custody
            CellCapacityError: if the destination has no space
        """
        prisoner = PrisonerService.get_prisoner(db, prisoner_id)
        if prisoner.status != PrisonerStatus.IN_CUSTODY:
            raise InvalidTransitionError(
                "Prisoner", prisoner_id, prisoner.status.value, f"cell {new_cell_number}"
            )

        old_cell_number = prisoner.cell_number
        if old_cell_number == new_cell_number:
            return prisoner

        if old_cell_number:
            OccupancyTracker.move(db, old_cell_number, new_cell_number)
        else:
            OccupancyTracker.increment_occupancy(db, new_cell_number)

        prisoner.cell_number = new_cell_number
        db.flush()
        logger.info(f"Transferred prisoner {prisoner_id}: {old_cell_number or '-'} -> {new_cell_number}")
        return prisoner

    @staticmethod
    def _leave_custody(db: Session, prisoner: Prisoner, target: PrisonerStatus, on: Optional[date]) -> Prisoner:
        if prisoner.status != PrisonerStatus.IN_CUSTODY:
            raise InvalidTransitionError("Prisoner", prisoner.prisoner_id, prisoner.status.value, target.value)
        if prisoner.cell_number:
            OccupancyTracker.decrement_occupancy(db, prisoner.cell_number)
        prisoner.cell_number = None
        prisoner.status = target
        prisoner.release_date = on or date.today()
        db.flush()
        return prisoner

    @staticmethod
    def release_prisoner(db: Session, prisoner_id: str, release_date: Optional[date] = None) -> Prisoner:
        """Release from custody and free the cell bed."""
        prisoner = PrisonerService.get_prisoner(db, prisoner_id)
        PrisonerService._leave_custody(db, prisoner, PrisonerStatus.RELEASED, release_date)
        logger.info(f"Released prisoner {prisoner_id}")
        return prisoner

    @staticmethod
    def transfer_prisoner_out(db: Session, prisoner_id: str, transfer_date: Optional[date] = None) -> Prisoner:
        """Transfer to another facility and free the cell bed."""
        prisoner = PrisonerService.get_prisoner(db, prisoner_id)
        PrisonerService._leave_custody(db, prisoner, PrisonerStatus.TRANSFERRED, transfer_date)
        logger.info(f"Prisoner {prisoner_id} transferred out")
        return prisoner

    @staticmethod
    def delete_prisoner(db: Session, prisoner_id: str) -> None:
        """
        Purge a prisoner record (visitors and visits cascade).

        An in-custody prisoner frees their cell bed in the same transaction.
        """
        prisoner = PrisonerService.get_prisoner(db, prisoner_id)
        if prisoner.status == PrisonerStatus.IN_CUSTODY and prisoner.cell_number:
            OccupancyTracker.decrement_occupancy(db, prisoner.cell_number)
        db.delete(prisoner)
        db.flush()
        logger.info(f"Deleted prisoner {prisoner_id}")

    @staticmethod
    def get_prisoner_statistics(db: Session) -> Dict[str, float]:
        """
        Returns:
            Dict with total, average_per_cell (prisoners per occupied cell)
            and unique_crimes
        """
        total = PrisonerService.get_total_prisoners(db)
        unique_crimes = db.query(func.count(func.distinct(Prisoner.crime))).scalar() or 0

        per_cell = db.query(func.count(Prisoner.prisoner_id)).join(
            Cell, Cell.cell_number == Prisoner.cell_number
        ).group_by(Prisoner.cell_number).all()
        average = round(sum(c for (c,) in per_cell) / len(per_cell), 2) if per_cell else 0.0

        return {
            "total": total,
            "average_per_cell": average,
            "unique_crimes": unique_crimes,
        }
