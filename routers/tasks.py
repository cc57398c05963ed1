"""
Task APIs.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date

from database.models import Employee, Module, PermissionLevel, Priority, TaskStatus
from auth.dependencies import get_db_session, require_permission
from services.task_service import TaskService


router = APIRouter(prefix="/api/tasks", tags=["tasks"])

can_view = require_permission(Module.TASKS, PermissionLevel.VIEW)
can_edit = require_permission(Module.TASKS, PermissionLevel.EDIT)
can_manage = require_permission(Module.TASKS, PermissionLevel.FULL)


class TaskCreate(BaseModel):
    task_name: str
    description: Optional[str] = None
    assigned_to_id: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    due_date: Optional[date] = None
    category: Optional[str] = None
    estimated_hours: int = Field(0, ge=0)


class TaskUpdate(BaseModel):
    task_name: Optional[str] = None
    description: Optional[str] = None
    assigned_to_id: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    estimated_hours: Optional[int] = Field(None, ge=0)


class CompleteRequest(BaseModel):
    completion_notes: Optional[str] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    task_id: str
    task_name: str
    description: Optional[str] = None
    assigned_to_id: Optional[str] = None
    assigned_to_name: Optional[str] = None
    priority: Priority
    status: TaskStatus
    due_date: Optional[date] = None
    created_by: Optional[str] = None
    category: Optional[str] = None
    estimated_hours: int
    completed_date: Optional[date] = None
    completed_by: Optional[str] = None
    completion_notes: Optional[str] = None


@router.get("/stats")
async def task_stats(
    officer_id: Optional[str] = Query(None),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    stats = {"total": TaskService.get_total_task_count(db)}
    if officer_id:
        stats["officer"] = TaskService.get_task_count_by_officer(db, officer_id)
    return stats


@router.get("/overdue", response_model=List[TaskResponse])
async def overdue_tasks(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return [TaskResponse.model_validate(t) for t in TaskService.get_overdue_tasks(db)]


@router.get("/mine", response_model=List[TaskResponse])
async def my_tasks(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Tasks assigned to the caller."""
    return [TaskResponse.model_validate(t) for t in TaskService.get_tasks_by_officer(db, current_employee.employee_id)]


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    search: Optional[str] = Query(None, description="Match name, description or assignee"),
    status_filter: Optional[str] = Query(None, alias="status", description="Task status or 'All'"),
    priority: Optional[str] = Query(None, description="Priority or 'All'"),
    officer_id: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    if officer_id:
        tasks = TaskService.get_tasks_by_officer(db, officer_id)
    elif category:
        tasks = TaskService.get_tasks_by_category(db, category)
    elif search or status_filter or priority:
        tasks = TaskService.search_tasks(db, search, status_filter, priority)
    else:
        tasks = TaskService.list_tasks(db)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.post("", response_model=TaskResponse, status_code=201)
async def add_task(
    body: TaskCreate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    task = TaskService.add_task(db, created_by=current_employee.employee_id, **body.model_dump())
    return TaskResponse.model_validate(task)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return TaskResponse.model_validate(TaskService.get_task(db, task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    task = TaskService.update_task(db, task_id, **body.model_dump(exclude_unset=True))
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return TaskResponse.model_validate(TaskService.start_task(db, task_id))


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: str,
    body: Optional[CompleteRequest] = None,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Officers with View access may close their tasks."""
    task = TaskService.complete_task(
        db, task_id,
        completed_by=current_employee.employee_id,
        completion_notes=body.completion_notes if body else None,
    )
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/cancel", response_model=TaskResponse)
async def cancel_task(
    task_id: str,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return TaskResponse.model_validate(TaskService.cancel_task(db, task_id))


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    TaskService.delete_task(db, task_id)
    return {"success": True, "message": f"Task {task_id} deleted"}
