import re
from datetime import date

import pytest

from core.errors import DuplicateRecordError
from database.models import Prisoner
from services import identifiers


def test_formats(db):
    assert re.fullmatch(r"PR\d{6}", identifiers.generate_prisoner_id(db))
    assert re.fullmatch(r"EMP\d{6}", identifiers.generate_employee_id(db))
    assert re.fullmatch(r"VISIT-20261018-[0-9A-F]{8}", identifiers.generate_visit_id(db, date(2026, 10, 18)))
    assert re.fullmatch(r"DUTY20261018\d{4}", identifiers.generate_duty_id(db, date(2026, 10, 18)))
    assert re.fullmatch(r"TASK-[0-9A-F]{8}", identifiers.generate_task_id(db))
    assert re.fullmatch(r"LOG-[0-9A-F]{8}-\d{4}", identifiers.generate_log_id(db))
    assert re.fullmatch(r"ALERT-[0-9A-F]{8}", identifiers.generate_alert_id(db))
    assert re.fullmatch(r"VST-[0-9A-F]{8}", identifiers.generate_visitor_id(db))
    assert re.fullmatch(r"AC-[0-9A-F]{8}", identifiers.generate_control_id(db))
    assert re.fullmatch(r"REP20261018\d{4}", identifiers.generate_report_id(db, date(2026, 10, 18)))


def test_collision_is_retried(db, monkeypatch):
    db.add(Prisoner(prisoner_id="PR000001", name="Lee Park"))
    db.flush()
    draws = iter(["000001", "000001", "000002"])
    monkeypatch.setattr(identifiers, "_digits", lambda n: next(draws))

    assert identifiers.generate_prisoner_id(db) == "PR000002"


def test_gives_up_when_space_is_exhausted(db, monkeypatch):
    db.add(Prisoner(prisoner_id="PR000001", name="Lee Park"))
    db.flush()
    monkeypatch.setattr(identifiers, "_digits", lambda n: "000001")

    with pytest.raises(DuplicateRecordError):
        identifiers.generate_prisoner_id(db)
