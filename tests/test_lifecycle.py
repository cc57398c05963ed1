import pytest

from core.errors import ConstraintViolationError, InvalidTransitionError, ValidationError
from database.models import AlertStatus, TaskStatus, VisitStatus, DutyStatus, ReportStatus
from services.lifecycle import StatusLifecycleManager, WorkflowKind


@pytest.mark.parametrize("kind, current, target", [
    (WorkflowKind.VISIT, VisitStatus.SCHEDULED, VisitStatus.IN_PROGRESS),
    (WorkflowKind.VISIT, VisitStatus.IN_PROGRESS, VisitStatus.COMPLETED),
    (WorkflowKind.VISIT, VisitStatus.SCHEDULED, VisitStatus.CANCELLED),
    (WorkflowKind.TASK, TaskStatus.PENDING, TaskStatus.COMPLETED),
    (WorkflowKind.GUARD_DUTY, DutyStatus.IN_PROGRESS, DutyStatus.CANCELLED),
    (WorkflowKind.SECURITY_ALERT, AlertStatus.ACTIVE, AlertStatus.RESOLVED),
    (WorkflowKind.SECURITY_ALERT, "Acknowledged", "Resolved"),
    (WorkflowKind.DAILY_REPORT, ReportStatus.DRAFT, ReportStatus.SUBMITTED),
    (WorkflowKind.DAILY_REPORT, ReportStatus.SUBMITTED, ReportStatus.APPROVED),
    (WorkflowKind.DAILY_REPORT, ReportStatus.REJECTED, ReportStatus.DRAFT),
])
def test_allowed_moves(kind, current, target):
    assert StatusLifecycleManager.can_transition(kind, current, target)
    StatusLifecycleManager.ensure_transition(kind, current, target)


@pytest.mark.parametrize("kind, current, target", [
    (WorkflowKind.VISIT, VisitStatus.COMPLETED, VisitStatus.COMPLETED),
    (WorkflowKind.VISIT, VisitStatus.CANCELLED, VisitStatus.IN_PROGRESS),
    (WorkflowKind.VISIT, VisitStatus.SCHEDULED, VisitStatus.COMPLETED),
    (WorkflowKind.TASK, TaskStatus.CANCELLED, TaskStatus.COMPLETED),
    (WorkflowKind.SECURITY_ALERT, AlertStatus.RESOLVED, AlertStatus.ACTIVE),
    (WorkflowKind.SECURITY_ALERT, AlertStatus.ACKNOWLEDGED, AlertStatus.ACTIVE),
    (WorkflowKind.DAILY_REPORT, ReportStatus.DRAFT, ReportStatus.APPROVED),
    (WorkflowKind.DAILY_REPORT, ReportStatus.APPROVED, ReportStatus.REJECTED),
])
def test_rejected_moves(kind, current, target):
    assert not StatusLifecycleManager.can_transition(kind, current, target)
    with pytest.raises(InvalidTransitionError):
        StatusLifecycleManager.ensure_transition(kind, current, target, "X-1")


def test_terminal_states():
    assert StatusLifecycleManager.is_terminal(WorkflowKind.SECURITY_ALERT, AlertStatus.RESOLVED)
    assert not StatusLifecycleManager.is_terminal(WorkflowKind.TASK, TaskStatus.IN_PROGRESS)


def test_transition_writes_status_and_fields():
    class Row:
        status = TaskStatus.PENDING
        completed_by = None

    row = Row()
    StatusLifecycleManager.transition(row, WorkflowKind.TASK, "Completed", "TASK-1", completed_by="EMP001")

    assert row.status == TaskStatus.COMPLETED
    assert row.completed_by == "EMP001"


def test_unknown_status_value_is_rejected():
    with pytest.raises(ValidationError):
        StatusLifecycleManager.coerce(WorkflowKind.VISIT, "Postponed")


def test_closed_records_are_not_editable():
    StatusLifecycleManager.ensure_open(WorkflowKind.TASK, TaskStatus.IN_PROGRESS, "TASK-1")
    with pytest.raises(ConstraintViolationError):
        StatusLifecycleManager.ensure_open(WorkflowKind.GUARD_DUTY, DutyStatus.CANCELLED, "DUTY-1")
