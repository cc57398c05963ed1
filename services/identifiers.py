"""Generate prefixed, human-readable identifiers (PR123456, VISIT-20261018-1A2B3C4D, ...)."""
import secrets
import uuid
from datetime import date
from typing import Callable, Optional

from sqlalchemy.orm import Session

from database.models import (
    Prisoner, Employee, Visitor, Visit, Task, GuardDuty, SecurityAlert, SecurityLog, AccessControl,
    DailyReport,
)
from core.errors import DuplicateRecordError

MAX_ATTEMPTS = 20


def _hex8() -> str:
    return uuid.uuid4().hex[:8].upper()


def _digits(n: int) -> str:
    return f"{secrets.randbelow(10 ** n):0{n}d}"


def _unique(db: Session, model, candidate: Callable[[], str]) -> str:
    """Draw candidates until one is not taken by an existing primary key."""
    for _ in range(MAX_ATTEMPTS):
        value = candidate()
        if db.get(model, value) is None:
            return value
    raise DuplicateRecordError(f"Could not generate a free {model.__name__} identifier")


def generate_prisoner_id(db: Session) -> str:
    """PR + 6 digits."""
    return _unique(db, Prisoner, lambda: f"PR{_digits(6)}")


def generate_employee_id(db: Session) -> str:
    """EMP + 6 digits."""
    return _unique(db, Employee, lambda: f"EMP{_digits(6)}")


def generate_visitor_id(db: Session) -> str:
    """VST- + 8 hex characters."""
    return _unique(db, Visitor, lambda: f"VST-{_hex8()}")


def generate_visit_id(db: Session, on: Optional[date] = None) -> str:
    """VISIT-YYYYMMDD-XXXXXXXX."""
    stamp = (on or date.today()).strftime("%Y%m%d")
    return _unique(db, Visit, lambda: f"VISIT-{stamp}-{_hex8()}")


def generate_task_id(db: Session) -> str:
    """TASK- + 8 hex characters."""
    return _unique(db, Task, lambda: f"TASK-{_hex8()}")


def generate_duty_id(db: Session, on: Optional[date] = None) -> str:
    """DUTY + yyyyMMdd + 4 digits."""
    stamp = (on or date.today()).strftime("%Y%m%d")
    return _unique(db, GuardDuty, lambda: f"DUTY{stamp}{_digits(4)}")


def generate_alert_id(db: Session) -> str:
    """ALERT- + 8 hex characters."""
    return _unique(db, SecurityAlert, lambda: f"ALERT-{_hex8()}")


def generate_log_id(db: Session) -> str:
    """LOG-XXXXXXXX-NNNN."""
    return _unique(db, SecurityLog, lambda: f"LOG-{_hex8()}-{_digits(4)}")


def generate_control_id(db: Session) -> str:
    """AC- + 8 hex characters."""
    return _unique(db, AccessControl, lambda: f"AC-{_hex8()}")


def generate_report_id(db: Session, on: Optional[date] = None) -> str:
    """REP + yyyyMMdd + 4 digits."""
    stamp = (on or date.today()).strftime("%Y%m%d")
    return _unique(db, DailyReport, lambda: f"REP{stamp}{_digits(4)}")
