#!/usr/bin/env python3
"""
Script to create an administrator account with Full access on every module.
"""
import getpass
import sys
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import Database
from database.models import EmployeeRole, Module, PermissionLevel
from services.employee_service import EmployeeService
from services.access_control_service import AccessControlService
from core.errors import PrisonError
import config


def create_admin():
    """Create an administrator."""
    # Initialize database
    config.db = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    config.db.create_tables()

    print("Creating administrator...")
    print("=" * 50)

    # Get user input
    name = input("Full name: ").strip()
    username = input("Username: ").strip()
    password = getpass.getpass("Password: ").strip()
    department = input("Department (optional): ").strip() or None

    if not name or not username or not password:
        print("Error: Name, username, and password are required")
        sys.exit(1)

    try:
        with config.db.get_session() as db:
            employee = EmployeeService.create_employee(
                db=db,
                name=name,
                position="Administrator",
                department=department,
                role=EmployeeRole.ADMINISTRATOR,
                username=username,
                password=password,
            )
            for module in Module:
                AccessControlService.grant_access(
                    db, employee.employee_id, module, PermissionLevel.FULL
                )
            print("\n✓ Administrator created successfully!")
            print(f"  Employee ID: {employee.employee_id}")
            print(f"  Username: {employee.username}")
            print(f"  Role: {employee.role.value}")
            print(f"  Modules: {', '.join(m.value for m in Module)}")
    except PrisonError as e:
        print(f"\n✗ Error: {e.message}")
        sys.exit(1)
    finally:
        config.db.dispose()


if __name__ == "__main__":
    create_admin()
