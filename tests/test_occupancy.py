import pytest

from core.errors import CellCapacityError, ConstraintViolationError, NotFoundError, InvalidTransitionError
from database.models import CellStatus, PrisonerStatus
from services.cell_service import CellService
from services.occupancy_tracker import OccupancyTracker
from services.prisoner_service import PrisonerService


def fill(db, cell_number, count):
    for _ in range(count):
        OccupancyTracker.increment_occupancy(db, cell_number)


def test_last_bed_is_taken_then_cell_refuses(db, cell):
    fill(db, "A-101", 3)

    assert OccupancyTracker.increment_occupancy(db, "A-101").current_occupancy == 4
    with pytest.raises(CellCapacityError):
        OccupancyTracker.increment_occupancy(db, "A-101")

    cell = CellService.get_cell(db, "A-101")
    assert cell.current_occupancy == 4
    assert cell.status == CellStatus.OCCUPIED


def test_empty_cell_cannot_be_decremented(db, cell):
    with pytest.raises(CellCapacityError):
        OccupancyTracker.decrement_occupancy(db, "A-101")
    assert CellService.get_cell(db, "A-101").current_occupancy == 0


def test_unknown_cell_is_not_found(db):
    with pytest.raises(NotFoundError):
        OccupancyTracker.increment_occupancy(db, "Z-999")
    with pytest.raises(NotFoundError):
        OccupancyTracker.decrement_occupancy(db, "Z-999")


def test_status_follows_occupancy(db, cell):
    OccupancyTracker.increment_occupancy(db, "A-101")
    assert CellService.get_cell(db, "A-101").status == CellStatus.OCCUPIED
    OccupancyTracker.decrement_occupancy(db, "A-101")
    assert CellService.get_cell(db, "A-101").status == CellStatus.VACANT


def test_maintenance_refuses_intake_but_keeps_occupants(db, cell):
    fill(db, "A-101", 2)
    CellService.set_cell_under_maintenance(db, "A-101")

    assert not OccupancyTracker.has_available_space(db, "A-101")
    with pytest.raises(CellCapacityError):
        OccupancyTracker.increment_occupancy(db, "A-101")

    OccupancyTracker.decrement_occupancy(db, "A-101")
    cell = CellService.get_cell(db, "A-101")
    assert cell.current_occupancy == 1
    assert cell.status == CellStatus.UNDER_MAINTENANCE

    assert CellService.end_cell_maintenance(db, "A-101").status == CellStatus.OCCUPIED


def test_intake_into_full_cell_leaves_no_prisoner(db):
    CellService.add_cell(db, "B-201", capacity=1)
    PrisonerService.create_prisoner(db, "Lee Park", crime="Fraud", cell_number="B-201", prisoner_id="PR000001")

    with pytest.raises(CellCapacityError):
        PrisonerService.create_prisoner(db, "Sam Ortiz", cell_number="B-201", prisoner_id="PR000002")

    assert not PrisonerService.prisoner_id_exists(db, "PR000002")
    assert CellService.get_cell(db, "B-201").current_occupancy == 1


def test_transfer_moves_one_bed(db, cell):
    CellService.add_cell(db, "B-201", capacity=2)
    PrisonerService.create_prisoner(db, "Lee Park", cell_number="A-101", prisoner_id="PR000001")

    prisoner = PrisonerService.transfer_prisoner_cell(db, "PR000001", "B-201")

    assert prisoner.cell_number == "B-201"
    assert CellService.get_cell(db, "A-101").current_occupancy == 0
    assert CellService.get_cell(db, "B-201").current_occupancy == 1


def test_transfer_to_full_cell_changes_nothing(db, cell):
    CellService.add_cell(db, "B-201", capacity=1)
    PrisonerService.create_prisoner(db, "Lee Park", cell_number="A-101", prisoner_id="PR000001")
    PrisonerService.create_prisoner(db, "Sam Ortiz", cell_number="B-201", prisoner_id="PR000002")

    with pytest.raises(CellCapacityError):
        PrisonerService.transfer_prisoner_cell(db, "PR000001", "B-201")

    assert PrisonerService.get_prisoner(db, "PR000001").cell_number == "A-101"
    assert CellService.get_cell(db, "A-101").current_occupancy == 1
    assert CellService.get_cell(db, "B-201").current_occupancy == 1


def test_release_frees_bed_and_cannot_repeat(db, cell):
    PrisonerService.create_prisoner(db, "Lee Park", cell_number="A-101", prisoner_id="PR000001")

    prisoner = PrisonerService.release_prisoner(db, "PR000001")

    assert prisoner.status == PrisonerStatus.RELEASED
    assert prisoner.cell_number is None
    assert prisoner.release_date is not None
    assert CellService.get_cell(db, "A-101").current_occupancy == 0
    with pytest.raises(InvalidTransitionError):
        PrisonerService.release_prisoner(db, "PR000001")


def test_delete_prisoner_frees_bed(db, cell):
    PrisonerService.create_prisoner(db, "Lee Park", cell_number="A-101", prisoner_id="PR000001")
    PrisonerService.delete_prisoner(db, "PR000001")
    assert CellService.get_cell(db, "A-101").current_occupancy == 0


def test_capacity_cannot_drop_below_occupancy(db, cell):
    fill(db, "A-101", 3)
    with pytest.raises(ConstraintViolationError):
        CellService.update_cell(db, "A-101", capacity=2)
    assert CellService.update_cell(db, "A-101", capacity=3).capacity == 3


def test_occupied_cell_cannot_be_deleted(db, cell):
    PrisonerService.create_prisoner(db, "Lee Park", cell_number="A-101")
    with pytest.raises(ConstraintViolationError):
        CellService.delete_cell(db, "A-101")


def test_reconcile_repairs_drift(db, cell):
    PrisonerService.create_prisoner(db, "Lee Park", cell_number="A-101")
    cell.current_occupancy = 3
    db.flush()

    assert OccupancyTracker.find_occupancy_drift(db) == [("A-101", 3, 1)]
    assert OccupancyTracker.reconcile_cell(db, "A-101").current_occupancy == 1
    assert OccupancyTracker.find_occupancy_drift(db) == []


def test_occupancy_statistics(db, cell):
    CellService.add_cell(db, "B-201", capacity=2)
    fill(db, "A-101", 3)

    assert CellService.get_occupancy_statistics(db) == {
        "total_capacity": 6,
        "total_occupancy": 3,
        "available": 3,
    }
    assert [c.cell_number for c in CellService.get_available_cells(db)] == ["A-101", "B-201"]
