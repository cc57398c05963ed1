"""
Cell service: cell records, availability queries and occupancy statistics.

Occupancy itself is never written here; see OccupancyTracker.
"""
from typing import Dict, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import Cell, CellStatus, CellType, SecurityLevel
from services.occupancy_tracker import OccupancyTracker
from core.errors import ConstraintViolationError, DuplicateRecordError, NotFoundError, ValidationError
from core.validators import parse_enum, require_text, require_non_negative
from core.logger import logger


class CellService:
    """Service for cell records."""

    @staticmethod
    def add_cell(
        db: Session,
        cell_number: str,
        capacity: int,
        cell_type: Union[str, CellType] = CellType.STANDARD,
        security_level: Union[str, SecurityLevel] = SecurityLevel.MEDIUM
    ) -> Cell:
        """
        Register a new, empty cell.

        Raises:
            DuplicateRecordError: if the cell number is taken
            ValidationError: on a negative capacity or unknown type/level
        """
        cell_number = require_text(cell_number, "Cell number", max_length=10)
        require_non_negative(capacity, "Capacity")
        if db.get(Cell, cell_number) is not None:
            raise DuplicateRecordError(f"Cell already exists: {cell_number}")

        cell = Cell(
            cell_number=cell_number,
            cell_type=parse_enum(CellType, cell_type, "cell type"),
            capacity=capacity,
            current_occupancy=0,
            security_level=parse_enum(SecurityLevel, security_level, "security level"),
            status=CellStatus.VACANT,
        )
        db.add(cell)
        db.flush()
        logger.info(f"Added cell {cell_number} (capacity {capacity})")
        return cell

    @staticmethod
    def get_cell(db: Session, cell_number: str) -> Cell:
        cell = db.get(Cell, cell_number)
        if cell is None:
            raise NotFoundError("Cell", cell_number)
        return cell

    @staticmethod
    def list_cells(db: Session) -> List[Cell]:
        return db.query(Cell).order_by(Cell.cell_number).all()

    @staticmethod
    def update_cell(
        db: Session,
        cell_number: str,
        capacity: Optional[int] = None,
        cell_type: Optional[Union[str, CellType]] = None,
        security_level: Optional[Union[str, SecurityLevel]] = None
    ) -> Cell:
        """
        Update cell attributes.

        Raises:
            ConstraintViolationError: if the new capacity is below current occupancy
        """
        cell = CellService.get_cell(db, cell_number)
        if capacity is not None:
            require_non_negative(capacity, "Capacity")
            if capacity < cell.current_occupancy:
                raise ConstraintViolationError(
                    f"Cell {cell_number}: capacity {capacity} is below current occupancy {cell.current_occupancy}",
                    entity="Cell",
                    identifier=cell_number,
                )
            cell.capacity = capacity
        if cell_type is not None:
            cell.cell_type = parse_enum(CellType, cell_type, "cell type")
        if security_level is not None:
            cell.security_level = parse_enum(SecurityLevel, security_level, "security level")
        db.flush()
        logger.info(f"Updated cell {cell_number}")
        return cell

    @staticmethod
    def delete_cell(db: Session, cell_number: str) -> None:
        """
        Delete an empty cell.

        Raises:
            ConstraintViolationError: while prisoners occupy the cell
        """
        cell = CellService.get_cell(db, cell_number)
        if cell.current_occupancy > 0 or OccupancyTracker.count_assigned_prisoners(db, cell_number) > 0:
            raise ConstraintViolationError(
                f"Cell {cell_number} is occupied and cannot be deleted",
                entity="Cell",
                identifier=cell_number,
            )
        db.delete(cell)
        db.flush()
        logger.info(f"Deleted cell {cell_number}")

    @staticmethod
    def get_cells_by_security_level(db: Session, security_level: Union[str, SecurityLevel]) -> List[Cell]:
        level = parse_enum(SecurityLevel, security_level, "security level")
        return db.query(Cell).filter(Cell.security_level == level).order_by(Cell.cell_number).all()

    @staticmethod
    def get_cells_by_status(db: Session, status: Union[str, CellStatus]) -> List[Cell]:
        status = parse_enum(CellStatus, status, "cell status")
        return db.query(Cell).filter(Cell.status == status).order_by(Cell.cell_number).all()

    @staticmethod
    def get_available_cells(db: Session) -> List[Cell]:
        """Cells with a free bed that are not under maintenance."""
        return db.query(Cell).filter(
            Cell.current_occupancy < Cell.capacity,
            Cell.status != CellStatus.UNDER_MAINTENANCE,
        ).order_by(Cell.cell_number).all()

    @staticmethod
    def set_cell_under_maintenance(db: Session, cell_number: str) -> Cell:
        """Take a cell out of service. Occupants stay; no new intake is accepted."""
        cell = CellService.get_cell(db, cell_number)
        cell.status = CellStatus.UNDER_MAINTENANCE
        db.flush()
        logger.warning(f"Cell {cell_number} set under maintenance ({cell.current_occupancy} occupants)")
        return cell

    @staticmethod
    def end_cell_maintenance(db: Session, cell_number: str) -> Cell:
        """Return a cell to service with the status its occupancy implies."""
        cell = CellService.get_cell(db, cell_number)
        if cell.status != CellStatus.UNDER_MAINTENANCE:
            raise ValidationError(f"Cell {cell_number} is not under maintenance")
        cell.status = CellStatus.OCCUPIED if cell.current_occupancy > 0 else CellStatus.VACANT
        db.flush()
        logger.info(f"Cell {cell_number} back in service")
        return cell

    @staticmethod
    def get_total_cells(db: Session) -> int:
        return db.query(func.count(Cell.cell_number)).scalar() or 0

    @staticmethod
    def get_total_capacity(db: Session) -> int:
        return db.query(func.coalesce(func.sum(Cell.capacity), 0)).scalar() or 0

    @staticmethod
    def get_total_occupancy(db: Session) -> int:
        return db.query(func.coalesce(func.sum(Cell.current_occupancy), 0)).scalar() or 0

    @staticmethod
    def get_occupancy_statistics(db: Session) -> Dict[str, int]:
        """
        Returns:
            Dict with total_capacity, total_occupancy and available
        """
        capacity = CellService.get_total_capacity(db)
        occupancy = CellService.get_total_occupancy(db)
        return {
            "total_capacity": capacity,
            "total_occupancy": occupancy,
            "available": capacity - occupancy,
        }
