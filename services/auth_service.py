"""
Authentication service: credential checks, login bookkeeping and account locking.
"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from database.models import Employee, Severity
from auth.security import verify_password, get_password_hash, validate_password, create_access_token
from services.audit_service import AuditService, AuditEvent
from core.errors import AuthenticationError, DuplicateRecordError, NotFoundError, ValidationError
from core.logger import logger
import config


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    def get_employee_by_username(db: Session, username: str) -> Optional[Employee]:
        """Get employee by username (no password check)."""
        return db.query(Employee).filter(Employee.username == username).first()

    @staticmethod
    def username_exists(db: Session, username: str) -> bool:
        return AuthService.get_employee_by_username(db, username) is not None

    @staticmethod
    def is_account_active(db: Session, username: str) -> bool:
        employee = AuthService.get_employee_by_username(db, username)
        return bool(employee and employee.is_active)

    @staticmethod
    def _is_locked(employee: Employee, now: datetime) -> bool:
        return employee.locked_until is not None and employee.locked_until > now

    @staticmethod
    def validate_credentials(db: Session, username: str, password: str) -> bool:
        """
        Check credentials without any bookkeeping (no last_login, no failure counter).
        """
        employee = AuthService.get_employee_by_username(db, username)
        if employee is None or not employee.is_active:
            return False
        if AuthService._is_locked(employee, datetime.utcnow()):
            return False
        return verify_password(password, employee.hashed_password)

    @staticmethod
    def authenticate(
        db: Session,
        username: str,
        password: str,
        ip_address: Optional[str] = None
    ) -> Optional[Employee]:
        """
        Authenticate an employee with account lockout protection.

        Everything happens in the caller's transaction: the lookup, the hash
        check and the last_login update. A failed attempt never touches
        last_login; it only bumps the failure counter (and locks the account
        temporarily after MAX_LOGIN_ATTEMPTS).

        Args:
            db: Database session
            username: Login name
            password: Plain text password
            ip_address: IP address for the audit trail

        Returns:
            Employee if authenticated, None otherwise
        """
        employee = AuthService.get_employee_by_username(db, username)
        if employee is None:
            AuditService.log_action(
                db, AuditEvent.LOGIN_FAILED, f"Login attempt for unknown username '{username}'",
                severity=Severity.MEDIUM, ip_address=ip_address,
            )
            return None

        if not employee.is_active:
            logger.warning(f"Login attempt for inactive account: {username}")
            return None

        now = datetime.utcnow()
        if AuthService._is_locked(employee, now):
            logger.warning(f"Login attempt for locked account: {username}")
            return None
        if employee.locked_until is not None:
            # Lockout expired
            employee.locked_until = None
            employee.failed_login_attempts = 0

        if not verify_password(password, employee.hashed_password):
            employee.failed_login_attempts = (employee.failed_login_attempts or 0) + 1
            AuditService.log_action(
                db, AuditEvent.LOGIN_FAILED, f"Wrong password for '{username}'",
                employee_id=employee.employee_id, severity=Severity.MEDIUM, ip_address=ip_address,
            )
            if employee.failed_login_attempts >= config.MAX_LOGIN_ATTEMPTS:
                employee.locked_until = now + timedelta(minutes=config.LOCKOUT_DURATION_MINUTES)
                logger.warning(f"Account locked due to too many failed attempts: {username}")
                AuditService.log_action(
                    db, AuditEvent.ACCOUNT_LOCKED,
                    f"Account '{username}' locked for {config.LOCKOUT_DURATION_MINUTES} minutes",
                    employee_id=employee.employee_id, severity=Severity.HIGH,
                    ip_address=ip_address, resolved=False,
                )
            db.flush()
            return None

        employee.failed_login_attempts = 0
        employee.locked_until = None
        employee.last_login = now
        AuditService.log_action(
            db, AuditEvent.LOGIN, f"'{username}' logged in",
            employee_id=employee.employee_id, ip_address=ip_address,
        )
        db.flush()
        logger.info(f"Employee {employee.employee_id} authenticated")
        return employee

    @staticmethod
    def create_token(employee: Employee) -> str:
        """Create a JWT access token for an authenticated employee."""
        data = {
            "sub": employee.employee_id,
            "username": employee.username,
            "role": getattr(employee.role, "value", employee.role),
        }
        return create_access_token(data)

    @staticmethod
    def set_credentials(db: Session, employee_id: str, username: str, password: str) -> Employee:
        """
        Give an employee a login (or replace it).

        Raises:
            NotFoundError: if the employee does not exist
            DuplicateRecordError: if the username belongs to someone else
            ValidationError: if the password is too weak
        """
        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)

        existing = AuthService.get_employee_by_username(db, username)
        if existing is not None and existing.employee_id != employee_id:
            raise DuplicateRecordError(f"Username already taken: {username}")

        is_valid, error_message = validate_password(password)
        if not is_valid:
            raise ValidationError(error_message)

        employee.username = username
        employee.hashed_password = get_password_hash(password)
        employee.password_changed_at = datetime.utcnow()
        employee.failed_login_attempts = 0
        employee.locked_until = None
        db.flush()
        logger.info(f"Credentials set for employee {employee_id}")
        return employee

    @staticmethod
    def set_password(db: Session, employee_id: str, password: str) -> Employee:
        """Administrative password reset; keeps the current username."""
        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        if not employee.username:
            raise ValidationError(f"Employee {employee_id} has no login")
        return AuthService.set_credentials(db, employee_id, employee.username, password)

    @staticmethod
    def change_password(db: Session, employee_id: str, current_password: str, new_password: str) -> Employee:
        """
        Change own password after re-checking the current one.

        Raises:
            AuthenticationError: if the current password is wrong
        """
        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        if not verify_password(current_password, employee.hashed_password):
            raise AuthenticationError("Current password is incorrect")
        return AuthService.set_credentials(db, employee_id, employee.username, new_password)

    @staticmethod
    def lock_account(db: Session, username: str) -> Employee:
        """Deactivate an account."""
        employee = AuthService.get_employee_by_username(db, username)
        if employee is None:
            raise NotFoundError("Employee", username)
        employee.is_active = False
        db.flush()
        logger.warning(f"Account locked: {username}")
        return employee

    @staticmethod
    def unlock_account(db: Session, username: str) -> Employee:
        """Reactivate an account and clear failed attempts."""
        employee = AuthService.get_employee_by_username(db, username)
        if employee is None:
            raise NotFoundError("Employee", username)
        employee.is_active = True
        employee.failed_login_attempts = 0
        employee.locked_until = None
        db.flush()
        logger.info(f"Account unlocked: {username}")
        return employee
