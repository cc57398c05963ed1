"""
Status lifecycle rules for visits, tasks, guard duties, security alerts,
security logs and daily reports.

Each workflow entity has an explicit transition table. Services call
``StatusLifecycleManager.transition`` before writing a new status, so an
illegal move (resolving an already resolved alert, starting a cancelled
visit, ...) raises ``InvalidTransitionError`` instead of silently
overwriting the row.
"""
from typing import Dict, FrozenSet, Optional, Type
import enum

from database.models import (
    VisitStatus, TaskStatus, DutyStatus, AlertStatus, SecurityLogStatus, ReportStatus
)
from core.errors import ConstraintViolationError, InvalidTransitionError, ValidationError
from core.logger import get_logger

logger = get_logger("lifecycle")


class WorkflowKind(str, enum.Enum):
    """Entities that carry a managed status."""
    VISIT = "Visit"
    TASK = "Task"
    GUARD_DUTY = "GuardDuty"
    SECURITY_ALERT = "SecurityAlert"
    SECURITY_LOG = "SecurityLog"
    DAILY_REPORT = "DailyReport"


STATUS_ENUMS: Dict[WorkflowKind, Type[enum.Enum]] = {
    WorkflowKind.VISIT: VisitStatus,
    WorkflowKind.TASK: TaskStatus,
    WorkflowKind.GUARD_DUTY: DutyStatus,
    WorkflowKind.SECURITY_ALERT: AlertStatus,
    WorkflowKind.SECURITY_LOG: SecurityLogStatus,
    WorkflowKind.DAILY_REPORT: ReportStatus,
}

# current status -> statuses reachable in one step
TRANSITIONS: Dict[WorkflowKind, Dict[enum.Enum, FrozenSet[enum.Enum]]] = {
    WorkflowKind.VISIT: {
        VisitStatus.SCHEDULED: frozenset({VisitStatus.IN_PROGRESS, VisitStatus.CANCELLED}),
        VisitStatus.IN_PROGRESS: frozenset({VisitStatus.COMPLETED, VisitStatus.CANCELLED}),
        VisitStatus.COMPLETED: frozenset(),
        VisitStatus.CANCELLED: frozenset(),
    },
    WorkflowKind.TASK: {
        # Pending -> Completed: tasks may be closed without being started
        TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
        TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
        TaskStatus.COMPLETED: frozenset(),
        TaskStatus.CANCELLED: frozenset(),
    },
    WorkflowKind.GUARD_DUTY: {
        DutyStatus.SCHEDULED: frozenset({DutyStatus.IN_PROGRESS, DutyStatus.CANCELLED}),
        DutyStatus.IN_PROGRESS: frozenset({DutyStatus.COMPLETED, DutyStatus.CANCELLED}),
        DutyStatus.COMPLETED: frozenset(),
        DutyStatus.CANCELLED: frozenset(),
    },
    WorkflowKind.SECURITY_ALERT: {
        AlertStatus.ACTIVE: frozenset({AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED}),
        AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.RESOLVED}),
        AlertStatus.RESOLVED: frozenset(),
    },
    WorkflowKind.SECURITY_LOG: {
        SecurityLogStatus.PENDING: frozenset({SecurityLogStatus.INVESTIGATING, SecurityLogStatus.RESOLVED}),
        SecurityLogStatus.INVESTIGATING: frozenset({SecurityLogStatus.RESOLVED}),
        SecurityLogStatus.RESOLVED: frozenset(),
    },
    WorkflowKind.DAILY_REPORT: {
        ReportStatus.DRAFT: frozenset({ReportStatus.SUBMITTED}),
        ReportStatus.SUBMITTED: frozenset({ReportStatus.UNDER_REVIEW, ReportStatus.APPROVED, ReportStatus.REJECTED}),
        ReportStatus.UNDER_REVIEW: frozenset({ReportStatus.APPROVED, ReportStatus.REJECTED}),
        # A rejected report goes back to its author for revision
        ReportStatus.REJECTED: frozenset({ReportStatus.DRAFT}),
        ReportStatus.APPROVED: frozenset(),
    },
}


class StatusLifecycleManager:
    """Validates and applies status changes on workflow entities."""

    @staticmethod
    def coerce(kind: WorkflowKind, value) -> enum.Enum:
        """
        Turn a raw status (enum member or its string value) into the enum.

        Raises:
            ValidationError: if the value is not a known status for ``kind``
        """
        status_enum = STATUS_ENUMS[kind]
        if isinstance(value, status_enum):
            return value
        try:
            return status_enum(value)
        except ValueError:
            raise ValidationError(f"Unknown {kind.value} status: {value}")

    @staticmethod
    def can_transition(kind: WorkflowKind, current, target) -> bool:
        """Whether ``current -> target`` is a legal single step."""
        status_enum = STATUS_ENUMS[kind]
        try:
            current = current if isinstance(current, status_enum) else status_enum(current)
            target = target if isinstance(target, status_enum) else status_enum(target)
        except ValueError:
            return False
        return target in TRANSITIONS[kind].get(current, frozenset())

    @staticmethod
    def allowed_targets(kind: WorkflowKind, current) -> FrozenSet[enum.Enum]:
        """Statuses reachable from ``current``."""
        current = StatusLifecycleManager.coerce(kind, current)
        return TRANSITIONS[kind].get(current, frozenset())

    @staticmethod
    def is_terminal(kind: WorkflowKind, current) -> bool:
        return not StatusLifecycleManager.allowed_targets(kind, current)

    @staticmethod
    def ensure_open(kind: WorkflowKind, current, identifier: Optional[str] = None) -> None:
        """
        Raise if the entity is in a terminal status; closed records are read-only.

        Raises:
            ConstraintViolationError: when ``current`` is terminal
        """
        if StatusLifecycleManager.is_terminal(kind, current):
            current_value = getattr(current, "value", current)
            raise ConstraintViolationError(
                f"{kind.value} {identifier} is {current_value} and can no longer be edited",
                entity=kind.value,
                identifier=identifier,
            )

    @staticmethod
    def ensure_transition(kind: WorkflowKind, current, target, identifier: Optional[str] = None) -> None:
        """
        Raise unless ``current -> target`` is allowed.

        Raises:
            InvalidTransitionError: on any illegal move, including re-applying a terminal status
        """
        if not StatusLifecycleManager.can_transition(kind, current, target):
            current_value = getattr(current, "value", current)
            target_value = getattr(target, "value", target)
            logger.warning(f"Rejected {kind.value} transition {identifier}: {current_value} -> {target_value}")
            raise InvalidTransitionError(kind.value, identifier, str(current_value), str(target_value))

    @staticmethod
    def transition(entity, kind: WorkflowKind, target, identifier: Optional[str] = None, **changes) -> None:
        """
        Move ``entity.status`` to ``target`` and apply the bookkeeping fields.

        Args:
            entity: ORM instance with a ``status`` attribute
            kind: Workflow the entity belongs to
            target: New status
            identifier: Entity key, used in errors and logs
            **changes: Extra attributes written together with the status
                (timestamps, actor, notes)
        """
        target = StatusLifecycleManager.coerce(kind, target)
        StatusLifecycleManager.ensure_transition(kind, entity.status, target, identifier)
        previous = entity.status
        entity.status = target
        for field, value in changes.items():
            setattr(entity, field, value)
        logger.info(
            f"{kind.value} {identifier}: {getattr(previous, 'value', previous)} -> {target.value}"
        )
