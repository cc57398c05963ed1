"""
Task service: work items for officers and their lifecycle.
"""
from datetime import date
from typing import List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database.models import Employee, Priority, Task, TaskStatus
from services.identifiers import generate_task_id
from services.lifecycle import StatusLifecycleManager, WorkflowKind
from core.errors import NotFoundError
from core.validators import parse_enum, parse_optional_filter, require_text, require_non_negative
from core.logger import logger

# Done or abandoned; never overdue
CLOSED_TASK_STATUSES = (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


class TaskService:
    """Service for tasks."""

    @staticmethod
    def generate_task_id(db: Session) -> str:
        return generate_task_id(db)

    @staticmethod
    def _assignee(db: Session, employee_id: Optional[str]) -> Optional[Employee]:
        if not employee_id:
            return None
        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    @staticmethod
    def add_task(
        db: Session,
        task_name: str,
        description: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        priority: Union[str, Priority] = Priority.MEDIUM,
        due_date: Optional[date] = None,
        created_by: Optional[str] = None,
        category: Optional[str] = None,
        estimated_hours: int = 0
    ) -> Task:
        """
        Create a pending task.

        Args:
            db: Database session
            task_name: Short title
            description: Details
            assigned_to_id: Employee the task is assigned to
            priority: Low, Medium, High or Urgent
            due_date: Deadline
            created_by: Employee creating the task
            category: Free-form grouping, e.g. "Inspection"
            estimated_hours: Effort estimate

        Returns:
            Created Task
        """
        task_name = require_text(task_name, "Task name", max_length=100)
        require_non_negative(estimated_hours, "Estimated hours")
        assignee = TaskService._assignee(db, assigned_to_id)

        task = Task(
            task_id=generate_task_id(db),
            task_name=task_name,
            description=description,
            assigned_to_id=assignee.employee_id if assignee else None,
            assigned_to_name=assignee.name if assignee else None,
            priority=parse_enum(Priority, priority, "priority"),
            status=TaskStatus.PENDING,
            due_date=due_date,
            created_by=created_by,
            category=category,
            estimated_hours=estimated_hours or 0,
        )
        db.add(task)
        db.flush()
        logger.info(f"Created task {task.task_id} '{task_name}' for {assigned_to_id or 'nobody'}")
        return task

    @staticmethod
    def get_task(db: Session, task_id: str) -> Task:
        task = db.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    @staticmethod
    def list_tasks(db: Session) -> List[Task]:
        return db.query(Task).order_by(Task.due_date.desc()).all()

    @staticmethod
    def update_task(
        db: Session,
        task_id: str,
        task_name: Optional[str] = None,
        description: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        priority: Optional[Union[str, Priority]] = None,
        due_date: Optional[date] = None,
        category: Optional[str] = None,
        estimated_hours: Optional[int] = None
    ) -> Task:
        """Update task details. Status changes go through start/complete/cancel."""
        task = TaskService.get_task(db, task_id)
        StatusLifecycleManager.ensure_open(WorkflowKind.TASK, task.status, task_id)
        if task_name is not None:
            task.task_name = require_text(task_name, "Task name", max_length=100)
        if description is not None:
            task.description = description
        if assigned_to_id is not None:
            assignee = TaskService._assignee(db, assigned_to_id)
            task.assigned_to_id = assignee.employee_id
            task.assigned_to_name = assignee.name
        if priority is not None:
            task.priority = parse_enum(Priority, priority, "priority")
        if due_date is not None:
            task.due_date = due_date
        if category is not None:
            task.category = category
        if estimated_hours is not None:
            require_non_negative(estimated_hours, "Estimated hours")
            task.estimated_hours = estimated_hours
        db.flush()
        logger.info(f"Updated task {task_id}")
        return task

    @staticmethod
    def delete_task(db: Session, task_id: str) -> None:
        task = TaskService.get_task(db, task_id)
        db.delete(task)
        db.flush()
        logger.info(f"Deleted task {task_id}")

    @staticmethod
    def get_tasks_by_status(db: Session, status: Union[str, TaskStatus]) -> List[Task]:
        status = StatusLifecycleManager.coerce(WorkflowKind.TASK, status)
        return db.query(Task).filter(Task.status == status).order_by(Task.due_date.desc()).all()

    @staticmethod
    def get_overdue_tasks(db: Session, today: Optional[date] = None) -> List[Task]:
        """Open tasks whose due date is before today."""
        return db.query(Task).filter(
            Task.due_date < (today or date.today()),
            Task.status.notin_(CLOSED_TASK_STATUSES),
        ).order_by(Task.due_date.desc()).all()

    @staticmethod
    def get_tasks_by_officer(db: Session, officer_id: str) -> List[Task]:
        return db.query(Task).filter(Task.assigned_to_id == officer_id).order_by(Task.due_date).all()

    @staticmethod
    def get_tasks_by_category(db: Session, category: str) -> List[Task]:
        return db.query(Task).filter(Task.category == category).order_by(Task.due_date).all()

    @staticmethod
    def search_tasks(
        db: Session,
        search_text: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None
    ) -> List[Task]:
        """
        Case-insensitive match on name, description or assignee name.

        ``status`` and ``priority`` accept "All" (or None) for no filter.
        """
        query = db.query(Task)
        if search_text and search_text.strip():
            pattern = f"%{search_text.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(Task.task_name).like(pattern),
                    func.lower(Task.description).like(pattern),
                    func.lower(Task.assigned_to_name).like(pattern),
                )
            )
        status = parse_optional_filter(TaskStatus, status, "task status")
        if status is not None:
            query = query.filter(Task.status == status)
        priority = parse_optional_filter(Priority, priority, "priority")
        if priority is not None:
            query = query.filter(Task.priority == priority)
        return query.order_by(Task.due_date.desc()).all()

    @staticmethod
    def start_task(db: Session, task_id: str) -> Task:
        task = TaskService.get_task(db, task_id)
        StatusLifecycleManager.transition(task, WorkflowKind.TASK, TaskStatus.IN_PROGRESS, task_id)
        db.flush()
        return task

    @staticmethod
    def complete_task(
        db: Session,
        task_id: str,
        completed_by: Optional[str] = None,
        completion_notes: Optional[str] = None
    ) -> Task:
        """Mark a pending or in-progress task as completed."""
        task = TaskService.get_task(db, task_id)
        StatusLifecycleManager.transition(
            task, WorkflowKind.TASK, TaskStatus.COMPLETED, task_id,
            completed_date=date.today(),
            completed_by=completed_by,
            completion_notes=completion_notes,
        )
        db.flush()
        return task

    @staticmethod
    def cancel_task(db: Session, task_id: str) -> Task:
        task = TaskService.get_task(db, task_id)
        StatusLifecycleManager.transition(task, WorkflowKind.TASK, TaskStatus.CANCELLED, task_id)
        db.flush()
        return task

    @staticmethod
    def get_task_count_by_officer(db: Session, officer_id: str) -> int:
        if not officer_id or not officer_id.strip():
            return 0
        return db.query(func.count(Task.task_id)).filter(Task.assigned_to_id == officer_id).scalar() or 0

    @staticmethod
    def get_total_task_count(db: Session) -> int:
        return db.query(func.count(Task.task_id)).scalar() or 0
