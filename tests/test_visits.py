from datetime import date, datetime, timedelta

import pytest

from core.errors import ConstraintViolationError, InvalidTransitionError, NotFoundError, ValidationError
from database.models import Visit, Visitor, VisitStatus, VisitorStatus
from services.prisoner_service import PrisonerService
from services.visitor_service import VisitorService
from services.visit_service import VisitService


@pytest.fixture
def visitor(db):
    PrisonerService.create_prisoner(db, "Lee Park", crime="Fraud", prisoner_id="PR000001")
    return VisitorService.add_visitor(
        db, "Ana Park", "PR000001", phone="555-0101", relationship="Sister",
        status=VisitorStatus.APPROVED, visitor_id="VST-0001",
    )


@pytest.fixture
def visit(db, visitor):
    return VisitService.schedule_visit(db, "PR000001", "VST-0001", datetime.now() + timedelta(hours=2))


def test_schedule_visit(db, visit):
    assert visit.status == VisitStatus.SCHEDULED
    assert visit.duration == 30
    assert visit.visit_id.startswith("VISIT-")
    assert VisitService.get_upcoming_visits(db) == [visit]


def test_complete_visit_counts_exactly_one(db, visit):
    VisitService.start_visit(db, visit.visit_id)
    completed = VisitService.complete_visit(db, visit.visit_id)

    visitor = VisitorService.get_visitor(db, "VST-0001")
    assert completed.status == VisitStatus.COMPLETED
    assert completed.actual_start_datetime is not None
    assert completed.actual_end_datetime is not None
    assert visitor.visit_count == 1
    assert visitor.last_visit_date == date.today()


def test_completed_visit_stamps_visitor_in_same_session(db, visit):
    visitor = VisitorService.get_visitor(db, "VST-0001")
    assert visitor.last_visit_date is None

    VisitService.start_visit(db, visit.visit_id)
    VisitService.complete_visit(db, visit.visit_id)

    assert visitor.visit_count == 1
    assert visitor.last_visit_date == date.today()


def test_completion_rolls_back_when_visit_count_fails(database, monkeypatch):
    with database.get_session() as session:
        PrisonerService.create_prisoner(session, "Lee Park", prisoner_id="PR000001")
        VisitorService.add_visitor(
            session, "Ana Park", "PR000001", status=VisitorStatus.APPROVED, visitor_id="VST-0001"
        )
        visit = VisitService.schedule_visit(session, "PR000001", "VST-0001", datetime.now())
        VisitService.start_visit(session, visit.visit_id)
        visit_id = visit.visit_id

    def unavailable(db, visitor_id, on=None):
        raise ConstraintViolationError(f"Visitor history locked: {visitor_id}")

    monkeypatch.setattr(VisitorService, "record_visit", staticmethod(unavailable))
    with pytest.raises(ConstraintViolationError):
        with database.get_session() as session:
            VisitService.complete_visit(session, visit_id)

    with database.get_session() as session:
        assert session.get(Visit, visit_id).status == VisitStatus.IN_PROGRESS
        assert session.get(Visit, visit_id).actual_end_datetime is None
        assert session.get(Visitor, "VST-0001").visit_count == 0


def test_completing_twice_does_not_count_twice(db, visit):
    VisitService.start_visit(db, visit.visit_id)
    VisitService.complete_visit(db, visit.visit_id)

    with pytest.raises(InvalidTransitionError):
        VisitService.complete_visit(db, visit.visit_id)
    assert VisitorService.get_visitor(db, "VST-0001").visit_count == 1


def test_cancelled_visit_cannot_start(db, visit):
    VisitService.cancel_visit(db, visit.visit_id, "Lockdown")
    assert VisitService.get_visit(db, visit.visit_id).notes == "Lockdown"
    with pytest.raises(InvalidTransitionError):
        VisitService.start_visit(db, visit.visit_id)


def test_banned_visitor_cannot_schedule(db, visitor):
    VisitorService.ban_visitor(db, "VST-0001")
    with pytest.raises(ConstraintViolationError):
        VisitService.schedule_visit(db, "PR000001", "VST-0001", datetime.now())


def test_schedule_requires_known_parties(db, visitor):
    with pytest.raises(NotFoundError):
        VisitService.schedule_visit(db, "PR999999", "VST-0001", datetime.now())
    with pytest.raises(ValidationError):
        VisitService.schedule_visit(db, "PR000001", "VST-0001", datetime.now(), duration=0)


def test_overdue_and_statistics(db, visitor):
    late = VisitService.schedule_visit(db, "PR000001", "VST-0001", datetime.now() - timedelta(hours=3))
    other = VisitService.schedule_visit(db, "PR000001", "VST-0001", datetime.now() + timedelta(days=1))
    VisitService.cancel_visit(db, other.visit_id)

    assert VisitService.get_overdue_visits(db) == [late]
    assert VisitService.get_visit_statistics(db) == {
        "total": 2, "completed": 0, "scheduled": 1, "cancelled": 1,
    }


def test_search_visits_all_means_any_status(db, visit):
    assert VisitService.search_visits(db, "pr000001", "All") == [visit]
    assert VisitService.search_visits(db, None, "Completed") == []


def test_top_visitors(db, visitor):
    VisitorService.add_visitor(db, "Ben Park", "PR000001", visitor_id="VST-0002")
    VisitorService.record_visit(db, "VST-0002")
    VisitorService.record_visit(db, "VST-0002")
    VisitorService.record_visit(db, "VST-0001")

    assert [v.visitor_id for v in VisitorService.get_top_visitors(db, 2)] == ["VST-0002", "VST-0001"]
    assert VisitorService.get_approved_visitors_count(db) == 1
