from datetime import date, timedelta

import pytest

import config
from core.errors import NotFoundError
from database.models import Module, PermissionLevel
from services.access_control_service import AccessControlService, level_satisfies


@pytest.mark.parametrize("granted, required, expected", [
    ("View", "View", True),
    ("View", "Edit", False),
    ("View", "Full", False),
    ("Edit", "View", True),
    ("Edit", "Edit", True),
    ("Edit", "Full", False),
    ("Full", "View", True),
    ("Full", "Full", True),
    ("None", "View", False),
    ("Full", "None", False),
    ("Full", "Owner", False),
])
def test_level_hierarchy(granted, required, expected):
    assert level_satisfies(granted, required) is expected


def test_grant_and_check(db, officer):
    AccessControlService.grant_access(db, "EMP001", Module.PRISONERS, PermissionLevel.EDIT)

    assert AccessControlService.has_permission(db, "EMP001", "Prisoners", "View")
    assert AccessControlService.has_permission(db, "EMP001", "Prisoners", "Edit")
    assert not AccessControlService.has_permission(db, "EMP001", "Prisoners", "Full")
    assert not AccessControlService.has_permission(db, "EMP001", "Cells", "View")
    assert not AccessControlService.has_permission(db, "EMP001", "Armory", "View")


def test_regrant_updates_single_row(db, officer):
    AccessControlService.grant_access(db, "EMP001", Module.SECURITY, PermissionLevel.VIEW)
    AccessControlService.grant_access(db, "EMP001", Module.SECURITY, PermissionLevel.FULL)

    rows = AccessControlService.get_access_controls_by_employee(db, "EMP001")
    assert len(rows) == 1
    assert rows[0].permission_level == PermissionLevel.FULL


def test_revoke_removes_every_level(db, officer):
    AccessControlService.grant_access(db, "EMP001", Module.VISITS, PermissionLevel.FULL)
    AccessControlService.revoke_access_control(db, "EMP001", Module.VISITS)

    for level in ("View", "Edit", "Full"):
        assert not AccessControlService.has_permission(db, "EMP001", Module.VISITS, level)
    assert AccessControlService.get_employee_permissions(db, "EMP001") == []


def test_revoke_without_grant_is_not_found(db, officer):
    with pytest.raises(NotFoundError):
        AccessControlService.revoke_access_control(db, "EMP001", Module.TASKS)


def test_grant_reactivates_revoked_row(db, officer):
    AccessControlService.grant_access(db, "EMP001", Module.TASKS, PermissionLevel.VIEW)
    AccessControlService.revoke_access_control(db, "EMP001", Module.TASKS)
    AccessControlService.grant_access(db, "EMP001", Module.TASKS, PermissionLevel.VIEW)

    assert AccessControlService.has_permission(db, "EMP001", Module.TASKS, PermissionLevel.VIEW)


def test_expired_grant_fails_closed_when_enforced(db, officer, monkeypatch):
    monkeypatch.setattr(config, "ACCESS_EXPIRY_ENFORCED", True)
    AccessControlService.grant_access(
        db, "EMP001", Module.SECURITY, PermissionLevel.VIEW, expires_on=date.today() - timedelta(days=1)
    )

    assert not AccessControlService.has_permission(db, "EMP001", "Security", "View")
    assert [c.employee_id for c in AccessControlService.get_expired_access_controls(db)] == ["EMP001"]


def test_expired_grant_still_grants_when_advisory(db, officer, monkeypatch):
    monkeypatch.setattr(config, "ACCESS_EXPIRY_ENFORCED", False)
    AccessControlService.grant_access(
        db, "EMP001", Module.SECURITY, PermissionLevel.VIEW, expires_on=date.today() - timedelta(days=1)
    )

    assert AccessControlService.has_permission(db, "EMP001", "Security", "View")
    assert len(AccessControlService.get_expired_access_controls(db)) == 1


def test_grant_expiring_today_is_still_valid(db, officer):
    AccessControlService.grant_access(
        db, "EMP001", Module.CELLS, PermissionLevel.VIEW, expires_on=date.today()
    )
    assert AccessControlService.has_permission(db, "EMP001", Module.CELLS, "View", enforce_expiry=True)


def test_sweep_deactivates_expired(db, officer):
    yesterday = date.today() - timedelta(days=1)
    AccessControlService.grant_access(db, "EMP001", Module.SECURITY, PermissionLevel.VIEW, expires_on=yesterday)
    AccessControlService.grant_access(db, "EMP001", Module.CELLS, PermissionLevel.VIEW)

    assert AccessControlService.deactivate_expired_access_controls(db) == 1
    assert AccessControlService.get_expired_access_controls(db) == []
    assert AccessControlService.get_employee_permissions(db, "EMP001") == [("Cells", "View")]


def test_grant_for_unknown_employee(db):
    with pytest.raises(NotFoundError):
        AccessControlService.grant_access(db, "EMP404", Module.CELLS, PermissionLevel.VIEW)
