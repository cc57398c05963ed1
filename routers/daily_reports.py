"""
Daily report APIs: officers write and submit shift reports, administrators
review them, comment and send feedback.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date, datetime

from database.models import (
    DailyReport, Employee, EmployeeRole, Module, PermissionLevel, Priority, ReportStatus, ReportType
)
from auth.dependencies import get_db_session, require_permission
from services.daily_report_service import DailyReportService
from services.access_control_service import AccessControlService
from core.errors import PermissionDeniedError


router = APIRouter(prefix="/api/daily-reports", tags=["daily-reports"])

can_view = require_permission(Module.DAILY_REPORTS, PermissionLevel.VIEW)
can_edit = require_permission(Module.DAILY_REPORTS, PermissionLevel.EDIT)
can_manage = require_permission(Module.DAILY_REPORTS, PermissionLevel.FULL)


class ReportContent(BaseModel):
    incidents_summary: Optional[str] = None
    actions_taken: Optional[str] = None
    patrols_completed: Optional[str] = None
    cell_inspections: Optional[str] = None
    visitor_screenings: Optional[str] = None
    activity_details: Optional[str] = None
    additional_notes: Optional[str] = None


class ReportCreate(ReportContent):
    report_type: ReportType = ReportType.DAILY_OPERATIONS
    priority: Priority = Priority.MEDIUM
    report_date: Optional[date] = None
    submit: bool = False


class ReportUpdate(ReportContent):
    report_type: Optional[ReportType] = None
    priority: Optional[Priority] = None
    report_date: Optional[date] = None


class ReviewRequest(BaseModel):
    status: ReportStatus
    review_notes: Optional[str] = None


class CommentRequest(BaseModel):
    comment: str


class FeedbackRequest(BaseModel):
    feedback: str
    officer_id: Optional[str] = None


class ReportResponse(ReportContent):
    model_config = ConfigDict(from_attributes=True)

    report_id: str
    officer_id: Optional[str] = None
    officer_name: Optional[str] = None
    report_type: ReportType
    priority: Priority
    report_date: date
    status: ReportStatus
    reviewed_by: Optional[str] = None
    review_date: Optional[date] = None
    review_notes: Optional[str] = None
    created_at: Optional[datetime] = None


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    report_id: str
    comment: str
    author_id: Optional[str] = None
    created_at: datetime


class FeedbackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    report_id: str
    officer_id: str
    feedback: str
    from_admin: Optional[str] = None
    sent_at: datetime
    is_read: bool


def _own_report(db: Session, report_id: str, employee: Employee, reviewers: bool = False) -> DailyReport:
    """
    Load a report the caller may touch: its author, an administrator, or
    (when ``reviewers`` is set) anyone with Edit on daily reports.
    """
    report = DailyReportService.get_report(db, report_id)
    if employee.role == EmployeeRole.ADMINISTRATOR or report.officer_id == employee.employee_id:
        return report
    if not (reviewers and AccessControlService.has_permission(
        db, employee.employee_id, Module.DAILY_REPORTS, PermissionLevel.EDIT
    )):
        raise PermissionDeniedError(
            f"Report {report_id} belongs to another officer",
            entity="DailyReport",
            identifier=report_id,
        )
    return report


@router.get("/stats")
async def report_stats(
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    return DailyReportService.get_report_statistics(db)


@router.get("/mine", response_model=List[ReportResponse])
async def my_reports(
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Reports written by the caller."""
    reports = DailyReportService.get_reports_by_officer(db, current_employee.employee_id)
    return [ReportResponse.model_validate(r) for r in reports]


@router.get("/feedback", response_model=List[FeedbackResponse])
async def my_feedback(
    unread: bool = Query(False),
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    entries = DailyReportService.get_feedback_for_officer(db, current_employee.employee_id, unread_only=unread)
    return [FeedbackResponse.model_validate(f) for f in entries]


@router.post("/feedback/{feedback_id}/read", response_model=FeedbackResponse)
async def mark_feedback_read(
    feedback_id: int,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    entry = DailyReportService.mark_feedback_read(db, feedback_id, current_employee.employee_id)
    return FeedbackResponse.model_validate(entry)


@router.get("", response_model=List[ReportResponse])
async def list_reports(
    search: Optional[str] = Query(None, description="Match report ID, officer name or incidents"),
    status_filter: Optional[str] = Query(None, alias="status", description="Report status or 'All'"),
    report_type: Optional[str] = Query(None, alias="type", description="Report type or 'All'"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    officer_id: Optional[str] = Query(None),
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    if officer_id:
        reports = DailyReportService.get_reports_by_officer(db, officer_id)
    elif search or status_filter or report_type or date_from or date_to:
        reports = DailyReportService.search_reports(db, search, status_filter, report_type, date_from, date_to)
    else:
        reports = DailyReportService.list_reports(db)
    return [ReportResponse.model_validate(r) for r in reports]


@router.post("", response_model=ReportResponse, status_code=201)
async def create_report(
    body: ReportCreate,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    """Officers write reports for themselves."""
    report = DailyReportService.create_report(
        db, current_employee.employee_id, **body.model_dump(exclude_none=True)
    )
    return ReportResponse.model_validate(report)


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    return ReportResponse.model_validate(_own_report(db, report_id, current_employee, reviewers=True))


@router.patch("/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: str,
    body: ReportUpdate,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    _own_report(db, report_id, current_employee)
    report = DailyReportService.update_report(db, report_id, **body.model_dump(exclude_unset=True))
    return ReportResponse.model_validate(report)


@router.post("/{report_id}/submit", response_model=ReportResponse)
async def submit_report(
    report_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    _own_report(db, report_id, current_employee)
    return ReportResponse.model_validate(DailyReportService.submit_report(db, report_id))


@router.post("/{report_id}/reopen", response_model=ReportResponse)
async def reopen_report(
    report_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    _own_report(db, report_id, current_employee)
    return ReportResponse.model_validate(DailyReportService.reopen_report(db, report_id))


@router.post("/{report_id}/review", response_model=ReportResponse)
async def review_report(
    report_id: str,
    body: ReviewRequest,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    report = DailyReportService.update_report_status(
        db, report_id, body.status, current_employee.employee_id, body.review_notes
    )
    return ReportResponse.model_validate(report)


@router.get("/{report_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    report_id: str,
    current_employee: Employee = Depends(can_view),
    db: Session = Depends(get_db_session)
):
    _own_report(db, report_id, current_employee, reviewers=True)
    return [CommentResponse.model_validate(c) for c in DailyReportService.get_report_comments(db, report_id)]


@router.post("/{report_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    report_id: str,
    body: CommentRequest,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    entry = DailyReportService.add_admin_comment(db, report_id, body.comment, current_employee.employee_id)
    return CommentResponse.model_validate(entry)


@router.post("/{report_id}/feedback", response_model=FeedbackResponse, status_code=201)
async def send_feedback(
    report_id: str,
    body: FeedbackRequest,
    current_employee: Employee = Depends(can_edit),
    db: Session = Depends(get_db_session)
):
    entry = DailyReportService.send_feedback_to_officer(
        db, report_id, body.feedback, current_employee.employee_id, officer_id=body.officer_id
    )
    return FeedbackResponse.model_validate(entry)


@router.delete("/{report_id}")
async def delete_report(
    report_id: str,
    current_employee: Employee = Depends(can_manage),
    db: Session = Depends(get_db_session)
):
    DailyReportService.delete_report(db, report_id)
    return {"success": True, "message": f"Daily report {report_id} deleted"}
