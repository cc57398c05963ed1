"""
Employee management APIs.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date, datetime

from database.models import Employee, EmployeeRole, Module, PermissionLevel
from auth.dependencies import get_db_session, require_permission
from services.employee_service import EmployeeService


router = APIRouter(prefix="/api/employees", tags=["employees"])

can_view = require_permission(Module.EMPLOYEES, PermissionLevel.VIEW)
can_edit = require_permission(Module.EMPLOYEES, PermissionLevel.EDIT)
can_manage = require_permission(Module.EMPLOYEES, PermissionLevel.FULL)


# Request/Response Models
class EmployeeCreate(BaseModel):
    """Create employee request."""
    name: str
    employee_id: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    salary: Optional[float] = None
    hire_date: Optional[date] = None
    role: EmployeeRole = EmployeeRole.OFFICER
    username: Optional[str] = None
    password: Optional[str] = None


class EmployeeUpdate(BaseModel):
    """Update employee request."""
    name: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    salary: Optional[float] = None
    hire_date: Optional[date] = None
    role: Optional[EmployeeRole] = None


class SalaryUpdate(BaseModel):
    salary: float


class EmployeeResponse(BaseModel):
    """Employee response model. Never includes the password hash."""
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    name: str
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    salary: Optional[float] = None
    hire_date: Optional[date] = None
    username: Optional[str] = None
    role: EmployeeRole
    is_active: bool
    last_login: Optional[datetime] = None


@router.get("/stats")
async def employee_stats(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return {"total": EmployeeService.get_total_employees(db)}


@router.get("", response_model=List[EmployeeResponse])
async def list_employees(
    department: Optional[str] = Query(None),
    position: Optional[str] = Query(None),
    role: Optional[EmployeeRole] = Query(None),
    min_salary: Optional[float] = Query(None, ge=0),
    active_only: bool = Query(False),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """List employees, optionally filtered by one criterion."""
    if department:
        employees = EmployeeService.get_employees_by_department(db, department)
    elif position:
        employees = EmployeeService.get_employees_by_position(db, position)
    elif role:
        employees = EmployeeService.get_employees_by_role(db, role)
    elif min_salary is not None:
        employees = EmployeeService.get_employees_with_salary_greater_than(db, min_salary)
    else:
        employees = EmployeeService.list_employees(db, active_only=active_only)
    return [EmployeeResponse.model_validate(e) for e in employees]


@router.post("", response_model=EmployeeResponse, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    employee = EmployeeService.create_employee(db, **body.model_dump())
    return EmployeeResponse.model_validate(employee)


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return EmployeeResponse.model_validate(EmployeeService.get_employee(db, employee_id))


@router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    body: EmployeeUpdate,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    employee = EmployeeService.update_employee(db, employee_id, **body.model_dump(exclude_unset=True))
    return EmployeeResponse.model_validate(employee)


@router.put("/{employee_id}/salary", response_model=EmployeeResponse)
async def update_salary(
    employee_id: str,
    body: SalaryUpdate,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    employee = EmployeeService.update_employee_salary(db, employee_id, body.salary)
    return EmployeeResponse.model_validate(employee)


@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    EmployeeService.delete_employee(db, employee_id)
    return {"success": True, "message": f"Employee {employee_id} deleted"}
