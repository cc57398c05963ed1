"""
Access control: per-module permission grants and the permission evaluator.
"""
from datetime import date
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from database.models import AccessControl, Employee, Module, PermissionLevel
from services.identifiers import generate_control_id
from core.errors import NotFoundError, ValidationError
from core.logger import get_logger
import config

logger = get_logger("access_control")

# View < Edit < Full; None grants nothing
PERMISSION_RANK: Dict[PermissionLevel, int] = {
    PermissionLevel.NONE: 0,
    PermissionLevel.VIEW: 1,
    PermissionLevel.EDIT: 2,
    PermissionLevel.FULL: 3,
}


def parse_module(value: Union[str, Module]) -> Module:
    """Validate a module name at the boundary."""
    if isinstance(value, Module):
        return value
    try:
        return Module(value)
    except ValueError:
        raise ValidationError(f"Unknown module: {value}")


def parse_permission_level(value: Union[str, PermissionLevel]) -> PermissionLevel:
    """Validate a permission level at the boundary."""
    if isinstance(value, PermissionLevel):
        return value
    try:
        return PermissionLevel(value)
    except ValueError:
        raise ValidationError(f"Unknown permission level: {value}")


def level_satisfies(granted, required) -> bool:
    """
    Whether a granted level covers the required one.

    Unknown values on either side never satisfy, and ``None`` is never
    enough, not even for a ``None`` requirement.
    """
    try:
        granted = granted if isinstance(granted, PermissionLevel) else PermissionLevel(granted)
        required = required if isinstance(required, PermissionLevel) else PermissionLevel(required)
    except ValueError:
        return False
    if required == PermissionLevel.NONE:
        return False
    return PERMISSION_RANK[granted] >= PERMISSION_RANK[required]


def is_expired(control: AccessControl, today: Optional[date] = None) -> bool:
    """Expired means the expiry date lies strictly before today."""
    if control.expires_on is None:
        return False
    return control.expires_on < (today or date.today())


class AccessControlService:
    """Grants, revocations and permission checks."""

    @staticmethod
    def grant_access(
        db: Session,
        employee_id: str,
        module: Union[str, Module],
        permission_level: Union[str, PermissionLevel],
        granted_by: Optional[str] = None,
        expires_on: Optional[date] = None,
    ) -> AccessControl:
        """
        Grant (or re-grant) a permission level on a module.

        There is one row per (employee, module): an existing row is updated
        and reactivated instead of inserting a second one.

        Raises:
            NotFoundError: if the employee does not exist
            ValidationError: on an unknown module or level
        """
        module = parse_module(module)
        permission_level = parse_permission_level(permission_level)

        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)

        control = db.query(AccessControl).filter(
            AccessControl.employee_id == employee_id,
            AccessControl.module == module,
        ).first()

        if control is None:
            control = AccessControl(
                control_id=generate_control_id(db),
                employee_id=employee_id,
                employee_name=employee.name,
                module=module,
            )
            db.add(control)

        control.permission_level = permission_level
        control.granted_by = granted_by
        control.granted_date = date.today()
        control.expires_on = expires_on
        control.is_active = True
        db.flush()

        logger.info(
            f"Granted {permission_level.value} on {module.value} to {employee_id}"
            f" (by {granted_by or 'system'}, expires {expires_on or 'never'})"
        )
        return control

    @staticmethod
    def get_access_control(db: Session, control_id: str) -> AccessControl:
        control = db.get(AccessControl, control_id)
        if control is None:
            raise NotFoundError("AccessControl", control_id)
        return control

    @staticmethod
    def list_access_controls(db: Session) -> List[AccessControl]:
        return db.query(AccessControl).order_by(AccessControl.employee_name, AccessControl.module).all()

    @staticmethod
    def get_access_controls_by_employee(db: Session, employee_id: str) -> List[AccessControl]:
        return db.query(AccessControl).filter(
            AccessControl.employee_id == employee_id
        ).order_by(AccessControl.module).all()

    @staticmethod
    def get_access_controls_by_module(db: Session, module: Union[str, Module]) -> List[AccessControl]:
        module = parse_module(module)
        return db.query(AccessControl).filter(
            AccessControl.module == module
        ).order_by(AccessControl.employee_name).all()

    @staticmethod
    def update_access_control(
        db: Session,
        control_id: str,
        permission_level: Optional[Union[str, PermissionLevel]] = None,
        expires_on: Optional[date] = None,
        is_active: Optional[bool] = None,
        clear_expiry: bool = False,
    ) -> AccessControl:
        """Change level, expiry or active flag of an existing grant."""
        control = AccessControlService.get_access_control(db, control_id)
        if permission_level is not None:
            control.permission_level = parse_permission_level(permission_level)
        if clear_expiry:
            control.expires_on = None
        elif expires_on is not None:
            control.expires_on = expires_on
        if is_active is not None:
            control.is_active = is_active
        db.flush()
        logger.info(f"Updated access control {control_id}")
        return control

    @staticmethod
    def revoke_access_control(db: Session, employee_id: str, module: Union[str, Module]) -> AccessControl:
        """
        Deactivate the grant for (employee, module).

        Raises:
            NotFoundError: if there is no grant for the pair
        """
        module = parse_module(module)
        control = db.query(AccessControl).filter(
            AccessControl.employee_id == employee_id,
            AccessControl.module == module,
        ).first()
        if control is None:
            raise NotFoundError("AccessControl", f"{employee_id}/{module.value}")
        control.is_active = False
        db.flush()
        logger.info(f"Revoked {module.value} access for {employee_id}")
        return control

    @staticmethod
    def delete_access_control(db: Session, control_id: str) -> None:
        control = AccessControlService.get_access_control(db, control_id)
        db.delete(control)
        db.flush()
        logger.info(f"Deleted access control {control_id}")

    @staticmethod
    def has_permission(
        db: Session,
        employee_id: str,
        module: Union[str, Module],
        required: Union[str, PermissionLevel],
        enforce_expiry: Optional[bool] = None,
        today: Optional[date] = None,
    ) -> bool:
        """
        Check whether an employee holds at least ``required`` on ``module``.

        Fails closed: no row, an inactive row, an unknown module or level,
        and (when expiry is enforced) an expired row all return False.

        Args:
            db: Database session
            employee_id: Employee to check
            module: Module name
            required: Minimum level needed (View, Edit or Full)
            enforce_expiry: Override of ``config.ACCESS_EXPIRY_ENFORCED``
            today: Reference date for expiry (defaults to today)
        """
        try:
            module = parse_module(module)
        except ValidationError:
            return False

        control = db.query(AccessControl).filter(
            AccessControl.employee_id == employee_id,
            AccessControl.module == module,
            AccessControl.is_active.is_(True),
        ).first()
        if control is None:
            return False

        if enforce_expiry is None:
            enforce_expiry = config.ACCESS_EXPIRY_ENFORCED
        if enforce_expiry and is_expired(control, today):
            logger.info(f"Expired {module.value} grant for {employee_id} (expired {control.expires_on})")
            return False

        return level_satisfies(control.permission_level, required)

    @staticmethod
    def get_employee_permissions(db: Session, employee_id: str) -> List[Tuple[str, str]]:
        """Active (module, level) pairs of an employee, for summary displays."""
        controls = db.query(AccessControl).filter(
            AccessControl.employee_id == employee_id,
            AccessControl.is_active.is_(True),
        ).order_by(AccessControl.module).all()
        return [
            (getattr(c.module, "value", c.module), getattr(c.permission_level, "value", c.permission_level))
            for c in controls
        ]

    @staticmethod
    def get_expired_access_controls(db: Session, today: Optional[date] = None) -> List[AccessControl]:
        """Grants whose expiry date has passed but which are still flagged active."""
        return db.query(AccessControl).filter(
            AccessControl.expires_on.isnot(None),
            AccessControl.expires_on < (today or date.today()),
            AccessControl.is_active.is_(True),
        ).order_by(AccessControl.expires_on).all()

    @staticmethod
    def deactivate_expired_access_controls(db: Session, today: Optional[date] = None) -> int:
        """
        On-demand sweep: deactivate every expired grant.

        Returns:
            Number of grants deactivated
        """
        expired = AccessControlService.get_expired_access_controls(db, today)
        for control in expired:
            control.is_active = False
        db.flush()
        if expired:
            logger.warning(f"Deactivated {len(expired)} expired access controls")
        return len(expired)
