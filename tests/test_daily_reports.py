import re
from datetime import date, timedelta

import pytest

from core.errors import ConstraintViolationError, InvalidTransitionError, NotFoundError, ValidationError
from database.models import EmployeeRole, ReportComment, ReportStatus, ReportType
from services.daily_report_service import DailyReportService
from services.employee_service import EmployeeService


@pytest.fixture
def warden(db):
    return EmployeeService.create_employee(
        db, "Morgan Hale", position="Warden", role=EmployeeRole.ADMINISTRATOR, employee_id="EMP900"
    )


@pytest.fixture
def report(db, officer):
    return DailyReportService.create_report(
        db, "EMP001", report_type=ReportType.SECURITY,
        incidents_summary="Contraband found in A-101", patrols_completed="4",
    )


def test_new_report_is_a_draft(report, officer):
    assert report.status == ReportStatus.DRAFT
    assert report.officer_name == officer.name
    assert report.report_date == date.today()
    assert re.fullmatch(r"REP\d{12}", report.report_id)


def test_create_and_submit_in_one_step(db, officer):
    report = DailyReportService.create_report(db, "EMP001", submit=True, actions_taken="Lockdown drill")
    assert report.status == ReportStatus.SUBMITTED


def test_create_rejects_bad_input(db, officer):
    with pytest.raises(ValidationError):
        DailyReportService.create_report(db, "EMP001", mood="tired")
    with pytest.raises(NotFoundError):
        DailyReportService.create_report(db, "EMP404")


def test_only_drafts_can_be_edited(db, report):
    DailyReportService.update_report(db, report.report_id, actions_taken="Confiscated", priority="High")
    assert report.actions_taken == "Confiscated"

    DailyReportService.submit_report(db, report.report_id)
    with pytest.raises(ConstraintViolationError):
        DailyReportService.update_report(db, report.report_id, actions_taken="Changed later")
    assert report.actions_taken == "Confiscated"


def test_review_records_reviewer(db, report, warden):
    DailyReportService.submit_report(db, report.report_id)
    DailyReportService.update_report_status(db, report.report_id, "Under Review", "EMP900")
    DailyReportService.update_report_status(db, report.report_id, ReportStatus.APPROVED, "EMP900", "Good detail")

    assert report.status == ReportStatus.APPROVED
    assert report.reviewed_by == "EMP900"
    assert report.review_date == date.today()
    assert report.review_notes == "Good detail"
    with pytest.raises(InvalidTransitionError):
        DailyReportService.update_report_status(db, report.report_id, "Rejected", "EMP900")


def test_draft_cannot_be_reviewed(db, report, warden):
    with pytest.raises(InvalidTransitionError):
        DailyReportService.update_report_status(db, report.report_id, "Approved", "EMP900")
    with pytest.raises(ValidationError):
        DailyReportService.update_report_status(db, report.report_id, "Draft", "EMP900")
    assert report.status == ReportStatus.DRAFT


def test_rejected_report_is_revised_and_resubmitted(db, report, warden):
    DailyReportService.submit_report(db, report.report_id)
    DailyReportService.update_report_status(db, report.report_id, "Rejected", "EMP900", "Missing headcount")
    DailyReportService.reopen_report(db, report.report_id)
    DailyReportService.update_report(db, report.report_id, additional_notes="Headcount 212")
    DailyReportService.submit_report(db, report.report_id)

    assert report.status == ReportStatus.SUBMITTED
    assert report.additional_notes == "Headcount 212"


def test_comments_are_appended(db, report, warden):
    DailyReportService.add_admin_comment(db, report.report_id, "Which cell?", "EMP900")
    DailyReportService.add_admin_comment(db, report.report_id, "Thanks", "EMP900")

    comments = DailyReportService.get_report_comments(db, report.report_id)
    assert [c.comment for c in comments] == ["Which cell?", "Thanks"]
    assert report.status == ReportStatus.DRAFT
    with pytest.raises(ValidationError):
        DailyReportService.add_admin_comment(db, report.report_id, "  ", "EMP900")


def test_feedback_reaches_the_author(db, report, warden):
    sent = DailyReportService.send_feedback_to_officer(db, report.report_id, "Well handled", "EMP900")

    assert sent.officer_id == "EMP001"
    assert DailyReportService.get_feedback_for_officer(db, "EMP001", unread_only=True) == [sent]

    DailyReportService.mark_feedback_read(db, sent.id, "EMP001")
    assert DailyReportService.get_feedback_for_officer(db, "EMP001", unread_only=True) == []
    assert DailyReportService.get_feedback_for_officer(db, "EMP001") == [sent]
    with pytest.raises(NotFoundError):
        DailyReportService.mark_feedback_read(db, sent.id, "EMP900")


def test_search_filters(db, report):
    old = DailyReportService.create_report(
        db, "EMP001", report_date=date.today() - timedelta(days=10), report_type="Incident",
        incidents_summary="Fight in yard",
    )
    DailyReportService.submit_report(db, old.report_id)

    assert DailyReportService.search_reports(db, "CONTRABAND", "All", "All") == [report]
    assert DailyReportService.search_reports(db, None, "Submitted") == [old]
    assert DailyReportService.search_reports(db, None, None, "Incident") == [old]
    assert DailyReportService.search_reports(db, date_from=date.today() - timedelta(days=1)) == [report]
    assert DailyReportService.search_reports(db, date_to=old.report_date) == [old]
    assert DailyReportService.get_reports_by_officer(db, "EMP001") == [report, old]
    with pytest.raises(ValidationError):
        DailyReportService.search_reports(db, None, "Filed")


def test_statistics_and_delete(db, report, warden):
    DailyReportService.create_report(db, "EMP001", submit=True)
    DailyReportService.add_admin_comment(db, report.report_id, "Noted", "EMP900")

    stats = DailyReportService.get_report_statistics(db)
    assert stats["total"] == 2
    assert stats["draft"] == 1
    assert stats["submitted"] == 1
    assert stats["approved"] == 0

    DailyReportService.delete_report(db, report.report_id)
    assert DailyReportService.get_total_report_count(db) == 1
    assert db.query(ReportComment).count() == 0


def test_officer_writes_and_admin_reviews_over_http(client, admin_headers, officer_headers):
    assert client.post(
        "/api/access-controls",
        json={"employee_id": "EMP001", "module": "DailyReports", "permission_level": "View"},
        headers=admin_headers,
    ).status_code == 201

    created = client.post(
        "/api/daily-reports",
        json={"incidents_summary": "Quiet night", "submit": True},
        headers=officer_headers,
    )
    assert created.status_code == 201
    report_id = created.json()["report_id"]
    assert created.json()["officer_id"] == "EMP001"
    assert created.json()["status"] == "Submitted"

    denied = client.post(
        f"/api/daily-reports/{report_id}/review", json={"status": "Approved"}, headers=officer_headers
    )
    assert denied.status_code == 403

    reviewed = client.post(
        f"/api/daily-reports/{report_id}/review", json={"status": "Approved"}, headers=admin_headers
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["reviewed_by"] == "EMP900"

    edit = client.patch(f"/api/daily-reports/{report_id}", json={"actions_taken": "x"}, headers=officer_headers)
    assert edit.status_code == 409

    assert client.post(
        f"/api/daily-reports/{report_id}/feedback", json={"feedback": "Thanks"}, headers=admin_headers
    ).status_code == 201
    inbox = client.get("/api/daily-reports/feedback", headers=officer_headers)
    assert [f["feedback"] for f in inbox.json()] == ["Thanks"]
