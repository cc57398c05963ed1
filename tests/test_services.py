import re
from datetime import date, datetime, time, timedelta

import pytest

from core.errors import ConstraintViolationError, InvalidTransitionError, NotFoundError, ValidationError
from database.models import (
    AlertStatus,
    DutyStatus,
    ProcedureType,
    SecurityLogStatus,
    Severity,
    TaskStatus,
)
from services.cell_service import CellService
from services.emergency_procedure_service import EmergencyProcedureService
from services.employee_service import EmployeeService
from services.guard_duty_service import GuardDutyService
from services.prisoner_service import PrisonerService
from services.security_alert_service import SecurityAlertService
from services.security_log_service import SecurityLogService
from services.task_service import TaskService


class TestTasks:
    def test_assignee_must_exist(self, db):
        with pytest.raises(NotFoundError):
            TaskService.add_task(db, "Count inmates", assigned_to_id="EMP404")

    def test_assignee_name_is_copied(self, db, officer):
        task = TaskService.add_task(db, "Count inmates", assigned_to_id="EMP001", priority="High")

        assert task.status == TaskStatus.PENDING
        assert task.assigned_to_name == officer.name
        assert TaskService.get_task_count_by_officer(db, "EMP001") == 1
        assert TaskService.get_task_count_by_officer(db, "  ") == 0

    def test_overdue_ignores_closed_tasks(self, db):
        last_week = date.today() - timedelta(days=7)
        open_task = TaskService.add_task(db, "Fix gate", due_date=last_week)
        done = TaskService.add_task(db, "Paint wall", due_date=last_week)
        dropped = TaskService.add_task(db, "Order food", due_date=last_week)
        TaskService.add_task(db, "Future audit", due_date=date.today() + timedelta(days=3))
        TaskService.complete_task(db, done.task_id)
        TaskService.cancel_task(db, dropped.task_id)

        assert TaskService.get_overdue_tasks(db) == [open_task]

    def test_complete_records_who_and_when(self, db, officer):
        task = TaskService.add_task(db, "Inspect block B", assigned_to_id="EMP001")
        TaskService.start_task(db, task.task_id)
        TaskService.complete_task(db, task.task_id, completed_by="EMP001", completion_notes="All clear")

        assert task.status == TaskStatus.COMPLETED
        assert task.completed_by == "EMP001"
        assert task.completed_date == date.today()
        with pytest.raises(InvalidTransitionError):
            TaskService.start_task(db, task.task_id)

    def test_closed_task_is_read_only(self, db):
        task = TaskService.add_task(db, "Fix gate")
        TaskService.update_task(db, task.task_id, priority="High")
        TaskService.cancel_task(db, task.task_id)

        with pytest.raises(ConstraintViolationError):
            TaskService.update_task(db, task.task_id, task_name="Fix gate 2")
        assert task.task_name == "Fix gate"

    def test_search_all_is_no_filter(self, db, officer):
        task = TaskService.add_task(db, "Inspect kitchen", assigned_to_id="EMP001", priority="Low")
        TaskService.add_task(db, "Laundry rota")

        assert TaskService.search_tasks(db, "KITCHEN", "All", "All") == [task]
        assert TaskService.search_tasks(db, officer.name.split()[0].lower()) == [task]
        assert TaskService.search_tasks(db, None, "Pending", "High") == []
        with pytest.raises(ValidationError):
            TaskService.search_tasks(db, None, "Someday")


class TestGuardDuties:
    def test_schedule_normalizes_times(self, db, officer):
        duty = GuardDutyService.add_guard_duty(
            db, "EMP001", date.today(), duty_type="Patrol", location="Yard", start_time="06:00", end_time=time(14, 0)
        )

        assert duty.status == DutyStatus.SCHEDULED
        assert duty.start_time == "06:00:00"
        assert duty.end_time == "14:00:00"
        assert GuardDutyService.get_today_duties_by_officer(db, "EMP001") == [duty]

    def test_complete_stores_clock_time(self, db, officer):
        duty = GuardDutyService.add_guard_duty(db, "EMP001", date.today())
        GuardDutyService.start_duty(db, duty.duty_id)
        GuardDutyService.complete_duty(db, duty.duty_id)

        assert duty.status == DutyStatus.COMPLETED
        assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", duty.completed_time)

    def test_cancel_keeps_reason(self, db, officer):
        duty = GuardDutyService.add_guard_duty(db, "EMP001", date.today())
        GuardDutyService.cancel_duty(db, duty.duty_id, "Short staffed")

        assert duty.notes == "Short staffed"
        with pytest.raises(InvalidTransitionError):
            GuardDutyService.start_duty(db, duty.duty_id)

    def test_issue_reports_leave_status_alone(self, db, officer):
        duty = GuardDutyService.add_guard_duty(db, "EMP001", date.today())
        GuardDutyService.report_duty_issue(db, duty.duty_id, "Radio dead", reported_by="EMP001")
        GuardDutyService.report_duty_issue(db, duty.duty_id, "Gate 3 sticks")

        issues = GuardDutyService.get_duty_issues(db, duty.duty_id)
        assert [i.issue_description for i in issues] == ["Radio dead", "Gate 3 sticks"]
        assert duty.status == DutyStatus.SCHEDULED
        with pytest.raises(ValidationError):
            GuardDutyService.report_duty_issue(db, duty.duty_id, "   ")

    def test_completed_duty_is_read_only(self, db, officer):
        duty = GuardDutyService.add_guard_duty(db, "EMP001", date.today(), location="Yard")
        GuardDutyService.start_duty(db, duty.duty_id)
        GuardDutyService.update_guard_duty(db, duty.duty_id, notes="Quiet shift")
        GuardDutyService.complete_duty(db, duty.duty_id)

        with pytest.raises(ConstraintViolationError):
            GuardDutyService.update_guard_duty(db, duty.duty_id, location="Gate 2")
        assert duty.location == "Yard"

    def test_bad_time_is_rejected(self, db, officer):
        with pytest.raises(ValidationError):
            GuardDutyService.add_guard_duty(db, "EMP001", date.today(), start_time="25:99")


class TestSecurityAlerts:
    def test_acknowledge_then_resolve(self, db, officer):
        alert = SecurityAlertService.create_alert(db, "Perimeter", "High", "Fence breach", location="North wall")
        SecurityAlertService.acknowledge_alert(db, alert.alert_id, "EMP001")
        SecurityAlertService.resolve_alert(db, alert.alert_id, "EMP001", notes="Fence repaired")

        assert alert.status == AlertStatus.RESOLVED
        assert alert.acknowledged_by == "EMP001"
        assert alert.resolved_at is not None
        with pytest.raises(InvalidTransitionError):
            SecurityAlertService.resolve_alert(db, alert.alert_id, "EMP001")

    def test_resolved_alert_cannot_be_assigned(self, db, officer):
        alert = SecurityAlertService.create_alert(db, "Fight", "Medium", "Scuffle in canteen")
        SecurityAlertService.assign_alert(db, alert.alert_id, "EMP001")
        assert alert.assigned_to == "EMP001"
        assert alert.status == AlertStatus.ACTIVE

        SecurityAlertService.resolve_alert(db, alert.alert_id, "EMP001")
        with pytest.raises(ValidationError):
            SecurityAlertService.assign_alert(db, alert.alert_id, "EMP001")

    def test_statistics_and_critical(self, db, officer):
        riot = SecurityAlertService.create_alert(db, "Riot", Severity.CRITICAL, "Block C unrest")
        SecurityAlertService.create_alert(db, "Alarm", "Low", "Smoke detector test")
        seen = SecurityAlertService.create_alert(db, "Escape", "Critical", "Headcount mismatch")
        SecurityAlertService.acknowledge_alert(db, seen.alert_id, "EMP001")

        assert SecurityAlertService.get_critical_alerts(db) == [riot]
        assert len(SecurityAlertService.get_active_alerts(db)) == 3
        assert SecurityAlertService.get_alert_statistics(db) == {
            "total": 3, "active": 2, "acknowledged": 1, "resolved": 0, "critical": 2,
        }

    def test_negative_response_time(self, db):
        with pytest.raises(ValidationError):
            SecurityAlertService.create_alert(db, "Alarm", "Low", "Test", response_time=-1)


class TestSecurityLogs:
    def test_investigate_then_resolve(self, db, officer):
        entry = SecurityLogService.add_security_log(db, "Contraband", "High", "Phone found in cell A-101")
        SecurityLogService.investigate_log(db, entry.log_id)
        SecurityLogService.resolve_security_log(db, entry.log_id, "EMP001", "Confiscated")

        assert entry.status == SecurityLogStatus.RESOLVED
        assert entry.resolved_by == "EMP001"
        assert SecurityLogService.get_unresolved_logs(db) == []
        with pytest.raises(InvalidTransitionError):
            SecurityLogService.investigate_log(db, entry.log_id)

    def test_clear_old_logs_keeps_open_entries(self, db, officer):
        now = datetime.utcnow()
        old_closed = SecurityLogService.add_security_log(db, "Door", "Low", "Door left open")
        old_open = SecurityLogService.add_security_log(db, "Door", "Low", "Door jammed")
        fresh = SecurityLogService.add_security_log(db, "Door", "Low", "Door checked")
        SecurityLogService.resolve_security_log(db, old_closed.log_id, "EMP001")
        SecurityLogService.resolve_security_log(db, fresh.log_id, "EMP001")
        old_closed.timestamp = now - timedelta(days=40)
        old_open.timestamp = now - timedelta(days=40)
        db.flush()

        assert SecurityLogService.clear_old_logs(db, 30, now=now) == 1
        remaining = {e.log_id for e in SecurityLogService.get_all_logs(db)}
        assert remaining == {old_open.log_id, fresh.log_id}
        with pytest.raises(ValidationError):
            SecurityLogService.clear_old_logs(db, 0)

    def test_recent_logs_and_statistics(self, db, officer):
        now = datetime.utcnow()
        old = SecurityLogService.add_security_log(db, "Visit", "Medium", "Visitor ID mismatch")
        recent = SecurityLogService.add_security_log(db, "Visit", "Critical", "Weapon at gate")
        old.timestamp = now - timedelta(hours=30)
        db.flush()

        assert SecurityLogService.get_recent_logs(db, 24, now=now) == [recent]
        stats = SecurityLogService.get_security_log_statistics(db)
        assert stats["total"] == 2
        assert stats["critical"] == 1
        assert stats["medium"] == 1
        assert stats["resolved"] == 0
        assert [e.log_id for e in SecurityLogService.get_logs_by_severity(db, "Critical")] == [recent.log_id]

    def test_unknown_reporter(self, db):
        with pytest.raises(NotFoundError):
            SecurityLogService.add_security_log(db, "Door", "Low", "Door open", employee_id="EMP404")


class TestEmergencyProcedures:
    def test_seeding_is_idempotent(self, db):
        assert EmergencyProcedureService.seed_default_procedures(db) == 3
        assert EmergencyProcedureService.seed_default_procedures(db) == 0

        lockdown = EmergencyProcedureService.get_procedures_by_type(db, ProcedureType.LOCKDOWN)
        assert len(lockdown) == 1
        assert lockdown[0].steps.startswith("1. Press red lockdown button")

    def test_update_touches_last_updated(self, db):
        EmergencyProcedureService.seed_default_procedures(db)
        fire = EmergencyProcedureService.get_procedures_by_type(db, "Fire")[0]
        before = fire.last_updated

        EmergencyProcedureService.update_procedure(db, fire.procedure_id, contact_person="Chief Ortiz")

        assert fire.contact_person == "Chief Ortiz"
        assert before is None or fire.last_updated >= before

    def test_unknown_procedure(self, db):
        with pytest.raises(NotFoundError):
            EmergencyProcedureService.get_procedure(db, 999)


class TestEmployees:
    def test_login_needs_both_username_and_password(self, db):
        with pytest.raises(ValidationError):
            EmployeeService.create_employee(db, "Kai Moss", username="kmoss")
        with pytest.raises(ValidationError):
            EmployeeService.create_employee(db, "Kai Moss", password="Secret2026")

    def test_generated_id_and_salary_filter(self, db):
        low = EmployeeService.create_employee(db, "Kai Moss", salary=2800)
        high = EmployeeService.create_employee(db, "Ruth Vance", salary=5200, department="Security")

        assert re.fullmatch(r"EMP\d{6}", low.employee_id)
        assert EmployeeService.get_employees_with_salary_greater_than(db, 3000) == [high]
        assert EmployeeService.get_employees_by_department(db, "Security") == [high]
        assert EmployeeService.get_total_employees(db) == 2

    def test_negative_salary(self, db):
        with pytest.raises(ValidationError):
            EmployeeService.create_employee(db, "Kai Moss", salary=-1)


class TestPrisoners:
    def test_statistics_average_over_occupied_cells(self, db):
        CellService.add_cell(db, "B-201", 2)
        CellService.add_cell(db, "B-202", 2)
        PrisonerService.create_prisoner(db, "Lee Park", crime="Fraud", cell_number="B-201")
        PrisonerService.create_prisoner(db, "Tom Hale", crime="Theft", cell_number="B-201")
        PrisonerService.create_prisoner(db, "Ivo Mar", crime="Fraud", cell_number="B-202")
        PrisonerService.create_prisoner(db, "Sam Roe", crime="Arson")

        assert PrisonerService.get_prisoner_statistics(db) == {
            "total": 4, "average_per_cell": 1.5, "unique_crimes": 3,
        }

    def test_search_is_case_insensitive(self, db):
        lee = PrisonerService.create_prisoner(db, "Lee Park", crime="Fraud", prisoner_id="PR000001")
        PrisonerService.create_prisoner(db, "Tom Hale", crime="Theft", prisoner_id="PR000002")

        assert PrisonerService.search_prisoners(db, "FRAUD") == [lee]
        assert PrisonerService.search_prisoners(db, "pr000001") == [lee]
