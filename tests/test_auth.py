from datetime import datetime, timedelta

import pytest

import config
from auth.security import get_password_hash, verify_password, validate_password, create_access_token, decode_access_token
from core.errors import AuthenticationError, DuplicateRecordError, ValidationError
from database.models import SecurityLog
from services.audit_service import AuditEvent
from services.auth_service import AuthService
from services.employee_service import EmployeeService

OFFICER_PASSWORD = "Guard2026x"


def test_hash_is_salted_and_verifies():
    first = get_password_hash("Guard2026x")
    second = get_password_hash("Guard2026x")

    assert first != second
    assert "Guard2026x" not in first
    assert verify_password("Guard2026x", first)
    assert not verify_password("guard2026x", first)
    assert not verify_password("Guard2026x", "Guard2026x")


@pytest.mark.parametrize("password", ["short1", "lettersonly", "12345678", ""])
def test_weak_passwords_rejected(password):
    is_valid, message = validate_password(password)
    assert not is_valid
    assert message


def test_successful_login_sets_last_login(db, officer):
    employee = AuthService.authenticate(db, "dreyes", OFFICER_PASSWORD, "10.0.0.5")

    assert employee is not None
    assert employee.last_login is not None
    assert employee.failed_login_attempts == 0
    events = [e.event_type for e in db.query(SecurityLog).all()]
    assert AuditEvent.LOGIN in events


def test_wrong_password_never_touches_last_login(db, officer):
    AuthService.authenticate(db, "dreyes", OFFICER_PASSWORD)
    before = officer.last_login

    assert AuthService.authenticate(db, "dreyes", "wrong-pass-1") is None

    assert officer.last_login == before
    assert officer.failed_login_attempts == 1


def test_unknown_username(db):
    assert AuthService.authenticate(db, "ghost", "Whatever123") is None
    assert db.query(SecurityLog).filter(SecurityLog.event_type == AuditEvent.LOGIN_FAILED).count() == 1


def test_lockout_after_repeated_failures(db, officer, monkeypatch):
    monkeypatch.setattr(config, "MAX_LOGIN_ATTEMPTS", 3)
    for _ in range(3):
        AuthService.authenticate(db, "dreyes", "wrong-pass-1")

    assert officer.locked_until is not None
    assert AuthService.authenticate(db, "dreyes", OFFICER_PASSWORD) is None
    assert officer.last_login is None
    assert db.query(SecurityLog).filter(SecurityLog.event_type == AuditEvent.ACCOUNT_LOCKED).count() == 1


def test_expired_lockout_is_cleared(db, officer):
    officer.failed_login_attempts = 5
    officer.locked_until = datetime.utcnow() - timedelta(minutes=1)
    db.flush()

    assert AuthService.authenticate(db, "dreyes", OFFICER_PASSWORD) is not None
    assert officer.locked_until is None


def test_lock_and_unlock(db, officer):
    AuthService.lock_account(db, "dreyes")
    assert not AuthService.is_account_active(db, "dreyes")
    assert AuthService.authenticate(db, "dreyes", OFFICER_PASSWORD) is None

    officer.failed_login_attempts = 4
    AuthService.unlock_account(db, "dreyes")
    assert AuthService.is_account_active(db, "dreyes")
    assert officer.failed_login_attempts == 0
    assert AuthService.authenticate(db, "dreyes", OFFICER_PASSWORD) is not None


def test_validate_credentials_has_no_side_effects(db, officer):
    assert AuthService.validate_credentials(db, "dreyes", OFFICER_PASSWORD)
    assert not AuthService.validate_credentials(db, "dreyes", "wrong-pass-1")
    assert officer.last_login is None
    assert officer.failed_login_attempts == 0


def test_change_password(db, officer):
    with pytest.raises(AuthenticationError):
        AuthService.change_password(db, "EMP001", "wrong-pass-1", "NewGuard2027")

    AuthService.change_password(db, "EMP001", OFFICER_PASSWORD, "NewGuard2027")
    assert AuthService.validate_credentials(db, "dreyes", "NewGuard2027")
    assert not AuthService.validate_credentials(db, "dreyes", OFFICER_PASSWORD)


def test_username_must_be_unique(db, officer):
    other = EmployeeService.create_employee(db, "Kai Moss", employee_id="EMP002")
    with pytest.raises(DuplicateRecordError):
        AuthService.set_credentials(db, other.employee_id, "dreyes", "Another2026")


def test_set_password_requires_login(db):
    EmployeeService.create_employee(db, "Kai Moss", employee_id="EMP002")
    with pytest.raises(ValidationError):
        AuthService.set_password(db, "EMP002", "Another2026")


def test_token_round_trip(officer):
    token = AuthService.create_token(officer)
    payload = decode_access_token(token)

    assert payload["sub"] == "EMP001"
    assert payload["role"] == "Officer"
    assert decode_access_token(token + "x") is None
    assert decode_access_token(create_access_token({"sub": "EMP001"}, expires_delta=timedelta(seconds=-1))) is None
