"""
Cell occupancy bookkeeping.

The tracker is the only writer of ``cells.current_occupancy`` and of the
Vacant/Occupied part of ``cells.status``. Every change is a single
conditional UPDATE, so the space check and the write cannot be split by a
concurrent caller: either the row still satisfies the guard and is updated,
or nothing is written. Callers pass their session; the change commits or
rolls back with the rest of their transaction (e.g. a prisoner transfer).
"""
from typing import List, Tuple

from sqlalchemy import update, func
from sqlalchemy.orm import Session

from database.models import Cell, CellStatus, Prisoner, PrisonerStatus
from core.errors import CellCapacityError, NotFoundError
from core.logger import get_logger

logger = get_logger("occupancy")

_SYNC = {"synchronize_session": "fetch"}


class OccupancyTracker:
    """Keeps 0 <= current_occupancy <= capacity for every cell."""

    @staticmethod
    def _get_cell(db: Session, cell_number: str) -> Cell:
        cell = db.get(Cell, cell_number)
        if cell is None:
            raise NotFoundError("Cell", cell_number)
        return cell

    @staticmethod
    def has_available_space(db: Session, cell_number: str) -> bool:
        """True if the cell exists, is not under maintenance and has a free bed."""
        cell = OccupancyTracker._get_cell(db, cell_number)
        return cell.status != CellStatus.UNDER_MAINTENANCE and cell.has_available_space()

    @staticmethod
    def increment_occupancy(db: Session, cell_number: str) -> Cell:
        """
        Add one occupant to a cell.

        Args:
            db: Database session (the caller's transaction)
            cell_number: Cell to fill

        Returns:
            The refreshed Cell

        Raises:
            NotFoundError: if the cell does not exist
            CellCapacityError: if the cell is full or under maintenance
        """
        db.flush()
        result = db.execute(
            update(Cell)
            .where(
                Cell.cell_number == cell_number,
                Cell.current_occupancy < Cell.capacity,
                Cell.status != CellStatus.UNDER_MAINTENANCE,
            )
            .values(current_occupancy=Cell.current_occupancy + 1)
            .execution_options(**_SYNC)
        )
        if result.rowcount == 0:
            cell = OccupancyTracker._get_cell(db, cell_number)
            if cell.status == CellStatus.UNDER_MAINTENANCE:
                raise CellCapacityError(cell_number, "cell is under maintenance")
            raise CellCapacityError(
                cell_number, f"cell is full ({cell.current_occupancy}/{cell.capacity})"
            )

        db.execute(
            update(Cell)
            .where(Cell.cell_number == cell_number, Cell.status != CellStatus.UNDER_MAINTENANCE)
            .values(status=CellStatus.OCCUPIED)
            .execution_options(**_SYNC)
        )
        cell = OccupancyTracker._get_cell(db, cell_number)
        logger.info(f"Cell {cell_number} occupancy +1 -> {cell.current_occupancy}/{cell.capacity}")
        return cell

    @staticmethod
    def decrement_occupancy(db: Session, cell_number: str) -> Cell:
        """
        Remove one occupant from a cell.

        Raises:
            NotFoundError: if the cell does not exist
            CellCapacityError: if the cell is already empty
        """
        db.flush()
        result = db.execute(
            update(Cell)
            .where(Cell.cell_number == cell_number, Cell.current_occupancy > 0)
            .values(current_occupancy=Cell.current_occupancy - 1)
            .execution_options(**_SYNC)
        )
        if result.rowcount == 0:
            OccupancyTracker._get_cell(db, cell_number)
            raise CellCapacityError(cell_number, "cell is already empty")

        db.execute(
            update(Cell)
            .where(
                Cell.cell_number == cell_number,
                Cell.current_occupancy == 0,
                Cell.status != CellStatus.UNDER_MAINTENANCE,
            )
            .values(status=CellStatus.VACANT)
            .execution_options(**_SYNC)
        )
        cell = OccupancyTracker._get_cell(db, cell_number)
        logger.info(f"Cell {cell_number} occupancy -1 -> {cell.current_occupancy}/{cell.capacity}")
        return cell

    @staticmethod
    def move(db: Session, from_cell: str, to_cell: str) -> Tuple[Cell, Cell]:
        """
        Move one occupant between cells inside the caller's transaction.

        The destination is filled first so a full destination fails before
        the source is touched.
        """
        target = OccupancyTracker.increment_occupancy(db, to_cell)
        source = OccupancyTracker.decrement_occupancy(db, from_cell)
        return source, target

    @staticmethod
    def count_assigned_prisoners(db: Session, cell_number: str) -> int:
        """Number of in-custody prisoners referencing the cell."""
        db.flush()
        return db.query(func.count(Prisoner.prisoner_id)).filter(
            Prisoner.cell_number == cell_number,
            Prisoner.status == PrisonerStatus.IN_CUSTODY,
        ).scalar() or 0

    @staticmethod
    def find_occupancy_drift(db: Session) -> List[Tuple[str, int, int]]:
        """
        Cells whose recorded occupancy differs from the prisoners assigned.

        Returns:
            List of (cell_number, recorded_occupancy, assigned_prisoners)
        """
        db.flush()
        counts = dict(
            db.query(Prisoner.cell_number, func.count(Prisoner.prisoner_id))
            .filter(Prisoner.status == PrisonerStatus.IN_CUSTODY, Prisoner.cell_number.isnot(None))
            .group_by(Prisoner.cell_number)
            .all()
        )
        drift = []
        for cell in db.query(Cell).order_by(Cell.cell_number).all():
            assigned = counts.get(cell.cell_number, 0)
            if assigned != cell.current_occupancy:
                drift.append((cell.cell_number, cell.current_occupancy, assigned))
        return drift

    @staticmethod
    def reconcile_cell(db: Session, cell_number: str) -> Cell:
        """
        Reset recorded occupancy to the number of assigned prisoners.

        Raises:
            NotFoundError: if the cell does not exist
            CellCapacityError: if more prisoners are assigned than the cell holds
        """
        cell = OccupancyTracker._get_cell(db, cell_number)
        assigned = OccupancyTracker.count_assigned_prisoners(db, cell_number)
        if assigned > cell.capacity:
            raise CellCapacityError(
                cell_number, f"{assigned} prisoners assigned but capacity is {cell.capacity}"
            )
        if assigned != cell.current_occupancy:
            logger.warning(
                f"Cell {cell_number} occupancy drift: recorded {cell.current_occupancy}, assigned {assigned}"
            )
        cell.current_occupancy = assigned
        if cell.status != CellStatus.UNDER_MAINTENANCE:
            cell.status = CellStatus.OCCUPIED if assigned > 0 else CellStatus.VACANT
        db.flush()
        return cell
