"""
Employee service: staff records and payroll queries.

Login credentials live on the same row but are managed by AuthService.
"""
from datetime import date
from typing import List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import Employee, EmployeeRole
from services.auth_service import AuthService
from services.identifiers import generate_employee_id
from core.errors import DuplicateRecordError, NotFoundError, ValidationError
from core.validators import parse_enum, require_text, require_non_negative, validate_phone
from core.logger import logger


class EmployeeService:
    """Service for employee records."""

    @staticmethod
    def create_employee(
        db: Session,
        name: str,
        phone: Optional[str] = None,
        position: Optional[str] = None,
        department: Optional[str] = None,
        salary: Optional[float] = None,
        hire_date: Optional[date] = None,
        role: Union[str, EmployeeRole] = EmployeeRole.OFFICER,
        employee_id: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None
    ) -> Employee:
        """
        Create an employee, optionally with a login.

        Args:
            db: Database session
            name: Full name
            phone: Contact phone
            position: Job title
            department: Department name
            salary: Monthly salary
            hire_date: Defaults to today
            role: Administrator, Officer or Staff
            employee_id: Explicit ID; generated when omitted
            username: Login name (requires password)
            password: Plain text password, hashed before storage

        Returns:
            Created Employee

        Raises:
            DuplicateRecordError: if the ID or username is taken
            ValidationError: on bad input or a weak password
        """
        name = require_text(name, "Employee name", max_length=100)
        require_non_negative(salary, "Salary")
        is_valid, error_message = validate_phone(phone)
        if not is_valid:
            raise ValidationError(error_message)
        if bool(username) != bool(password):
            raise ValidationError("Username and password must be given together")

        if employee_id:
            if db.get(Employee, employee_id) is not None:
                raise DuplicateRecordError(f"Employee ID already exists: {employee_id}")
        else:
            employee_id = generate_employee_id(db)

        employee = Employee(
            employee_id=employee_id,
            name=name,
            phone=phone,
            position=position,
            department=department,
            salary=salary,
            hire_date=hire_date or date.today(),
            role=parse_enum(EmployeeRole, role, "role"),
            is_active=True,
            failed_login_attempts=0,
        )
        db.add(employee)
        db.flush()

        if username:
            AuthService.set_credentials(db, employee_id, username, password)

        logger.info(f"Created employee {employee_id} ({name}, {employee.role.value})")
        return employee

    @staticmethod
    def get_employee(db: Session, employee_id: str) -> Employee:
        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    @staticmethod
    def list_employees(db: Session, active_only: bool = False) -> List[Employee]:
        query = db.query(Employee)
        if active_only:
            query = query.filter(Employee.is_active.is_(True))
        return query.order_by(Employee.name).all()

    @staticmethod
    def update_employee(
        db: Session,
        employee_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        position: Optional[str] = None,
        department: Optional[str] = None,
        salary: Optional[float] = None,
        hire_date: Optional[date] = None,
        role: Optional[Union[str, EmployeeRole]] = None
    ) -> Employee:
        """Update employee fields that are not None."""
        employee = EmployeeService.get_employee(db, employee_id)
        if name is not None:
            employee.name = require_text(name, "Employee name", max_length=100)
        if phone is not None:
            is_valid, error_message = validate_phone(phone)
            if not is_valid:
                raise ValidationError(error_message)
            employee.phone = phone
        if position is not None:
            employee.position = position
        if department is not None:
            employee.department = department
        if salary is not None:
            require_non_negative(salary, "Salary")
            employee.salary = salary
        if hire_date is not None:
            employee.hire_date = hire_date
        if role is not None:
            employee.role = parse_enum(EmployeeRole, role, "role")
        db.flush()
        logger.info(f"Updated employee {employee_id}")
        return employee

    @staticmethod
    def delete_employee(db: Session, employee_id: str) -> None:
        """Delete an employee; their access controls go with them, task assignments are cleared."""
        employee = EmployeeService.get_employee(db, employee_id)
        db.delete(employee)
        db.flush()
        logger.info(f"Deleted employee {employee_id}")

    @staticmethod
    def get_employees_by_department(db: Session, department: str) -> List[Employee]:
        return db.query(Employee).filter(Employee.department == department).order_by(Employee.name).all()

    @staticmethod
    def get_employees_by_position(db: Session, position: str) -> List[Employee]:
        return db.query(Employee).filter(Employee.position == position).order_by(Employee.name).all()

    @staticmethod
    def get_employees_by_role(db: Session, role: Union[str, EmployeeRole]) -> List[Employee]:
        role = parse_enum(EmployeeRole, role, "role")
        return db.query(Employee).filter(Employee.role == role).order_by(Employee.name).all()

    @staticmethod
    def update_employee_salary(db: Session, employee_id: str, new_salary: float) -> Employee:
        require_non_negative(new_salary, "Salary")
        employee = EmployeeService.get_employee(db, employee_id)
        employee.salary = new_salary
        db.flush()
        logger.info(f"Salary of {employee_id} set to {new_salary}")
        return employee

    @staticmethod
    def get_total_employees(db: Session) -> int:
        return db.query(func.count(Employee.employee_id)).scalar() or 0

    @staticmethod
    def get_employees_with_salary_greater_than(db: Session, min_salary: float) -> List[Employee]:
        return db.query(Employee).filter(
            Employee.salary > min_salary
        ).order_by(Employee.salary.desc()).all()
