import pytest
from fastapi.testclient import TestClient

import config
import auth.security
from auth.security import create_access_token
from database.connection import Database
from database.models import EmployeeRole
from services.employee_service import EmployeeService
from services.cell_service import CellService
from app import app

ADMIN_PASSWORD = "Warden2026x"
OFFICER_PASSWORD = "Guard2026x"


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(auth.security, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def database():
    database = Database("sqlite://")
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def cell(db):
    return CellService.add_cell(db, "A-101", capacity=4)


@pytest.fixture
def officer(db):
    return EmployeeService.create_employee(
        db, "Dana Reyes", position="Guard", department="Security",
        salary=42000, employee_id="EMP001",
        username="dreyes", password=OFFICER_PASSWORD,
    )


@pytest.fixture
def seeded(database):
    """Committed administrator and officer accounts for API tests."""
    with database.get_session() as session:
        EmployeeService.create_employee(
            session, "Morgan Hale", position="Warden", role=EmployeeRole.ADMINISTRATOR,
            employee_id="EMP900", username="warden", password=ADMIN_PASSWORD,
        )
        EmployeeService.create_employee(
            session, "Dana Reyes", position="Guard", role=EmployeeRole.OFFICER,
            employee_id="EMP001", username="dreyes", password=OFFICER_PASSWORD,
        )
    return database


@pytest.fixture
def client(seeded):
    config.db = seeded
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        config.db = None


def bearer(employee_id, username, role):
    token = create_access_token({"sub": employee_id, "username": username, "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return bearer("EMP900", "warden", EmployeeRole.ADMINISTRATOR)


@pytest.fixture
def officer_headers():
    return bearer("EMP001", "dreyes", EmployeeRole.OFFICER)
