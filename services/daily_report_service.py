"""
Daily report service: officers' end-of-shift reports and their review.

A report is written as a Draft, submitted by its author and then reviewed
(Under Review, Approved or Rejected) by an administrator. Rejected reports
go back to Draft for revision. Reviewer comments and feedback to the
officer are append-only side records, not status changes.
"""
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database.models import (
    DailyReport, Employee, Priority, ReportComment, ReportFeedback, ReportStatus, ReportType
)
from services.identifiers import generate_report_id
from services.lifecycle import StatusLifecycleManager, WorkflowKind
from core.errors import ConstraintViolationError, NotFoundError, ValidationError
from core.validators import parse_enum, parse_optional_filter, require_text
from core.logger import logger

CONTENT_FIELDS = (
    "incidents_summary",
    "actions_taken",
    "patrols_completed",
    "cell_inspections",
    "visitor_screenings",
    "activity_details",
    "additional_notes",
)

# Outcomes an administrator may record
REVIEW_STATUSES = (ReportStatus.UNDER_REVIEW, ReportStatus.APPROVED, ReportStatus.REJECTED)


class DailyReportService:
    """Service for daily reports."""

    @staticmethod
    def generate_report_id(db: Session, on: Optional[date] = None) -> str:
        return generate_report_id(db, on)

    @staticmethod
    def _employee(db: Session, employee_id: str) -> Employee:
        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    @staticmethod
    def create_report(
        db: Session,
        officer_id: str,
        report_date: Optional[date] = None,
        report_type: Union[str, ReportType] = ReportType.DAILY_OPERATIONS,
        priority: Union[str, Priority] = Priority.MEDIUM,
        submit: bool = False,
        **content: Optional[str]
    ) -> DailyReport:
        """
        Write a report for an officer's shift.

        Args:
            db: Database session
            officer_id: Author
            report_date: Shift date, defaults to today
            report_type: Security, Incident, Daily Operations or Special Event
            priority: Report priority
            submit: Submit straight away instead of keeping a Draft
            **content: Any of the free-text sections in CONTENT_FIELDS

        Returns:
            Created DailyReport

        Raises:
            NotFoundError: if the officer does not exist
            ValidationError: on an unknown section, type or priority
        """
        unknown = set(content) - set(CONTENT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown report sections: {', '.join(sorted(unknown))}")
        officer = DailyReportService._employee(db, officer_id)
        report_date = report_date or date.today()

        report = DailyReport(
            report_id=generate_report_id(db, report_date),
            officer_id=officer.employee_id,
            officer_name=officer.name,
            report_type=parse_enum(ReportType, report_type, "report type"),
            priority=parse_enum(Priority, priority, "priority"),
            report_date=report_date,
            status=ReportStatus.DRAFT,
            **content,
        )
        db.add(report)
        db.flush()
        logger.info(f"Created daily report {report.report_id} for {officer_id} ({report_date})")
        if submit:
            DailyReportService.submit_report(db, report.report_id)
        return report

    @staticmethod
    def get_report(db: Session, report_id: str) -> DailyReport:
        report = db.get(DailyReport, report_id)
        if report is None:
            raise NotFoundError("DailyReport", report_id)
        return report

    @staticmethod
    def list_reports(db: Session) -> List[DailyReport]:
        return db.query(DailyReport).order_by(
            DailyReport.report_date.desc(), DailyReport.created_at.desc()
        ).all()

    @staticmethod
    def update_report(
        db: Session,
        report_id: str,
        report_type: Optional[Union[str, ReportType]] = None,
        priority: Optional[Union[str, Priority]] = None,
        report_date: Optional[date] = None,
        **content: Optional[str]
    ) -> DailyReport:
        """Edit a Draft. Submitted and reviewed reports are read-only."""
        report = DailyReportService.get_report(db, report_id)
        if report.status != ReportStatus.DRAFT:
            raise ConstraintViolationError(
                f"Report {report_id} is {report.status.value}; only drafts can be edited",
                entity="DailyReport",
                identifier=report_id,
            )
        unknown = set(content) - set(CONTENT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown report sections: {', '.join(sorted(unknown))}")
        if report_type is not None:
            report.report_type = parse_enum(ReportType, report_type, "report type")
        if priority is not None:
            report.priority = parse_enum(Priority, priority, "priority")
        if report_date is not None:
            report.report_date = report_date
        for field, value in content.items():
            if value is not None:
                setattr(report, field, value)
        db.flush()
        logger.info(f"Updated daily report {report_id}")
        return report

    @staticmethod
    def delete_report(db: Session, report_id: str) -> None:
        """Delete a report with its comments and feedback."""
        report = DailyReportService.get_report(db, report_id)
        db.delete(report)
        db.flush()
        logger.info(f"Deleted daily report {report_id}")

    @staticmethod
    def submit_report(db: Session, report_id: str) -> DailyReport:
        report = DailyReportService.get_report(db, report_id)
        StatusLifecycleManager.transition(report, WorkflowKind.DAILY_REPORT, ReportStatus.SUBMITTED, report_id)
        db.flush()
        return report

    @staticmethod
    def update_report_status(
        db: Session,
        report_id: str,
        status: Union[str, ReportStatus],
        reviewed_by: str,
        review_notes: Optional[str] = None
    ) -> DailyReport:
        """
        Record a review outcome (Under Review, Approved or Rejected).

        Raises:
            ValidationError: if ``status`` is not a review outcome
            InvalidTransitionError: if the report is not awaiting review
        """
        target = StatusLifecycleManager.coerce(WorkflowKind.DAILY_REPORT, status)
        if target not in REVIEW_STATUSES:
            raise ValidationError(f"{target.value} is not a review outcome")
        report = DailyReportService.get_report(db, report_id)
        DailyReportService._employee(db, reviewed_by)
        changes = {"reviewed_by": reviewed_by, "review_date": date.today()}
        if review_notes is not None:
            changes["review_notes"] = review_notes
        StatusLifecycleManager.transition(report, WorkflowKind.DAILY_REPORT, target, report_id, **changes)
        db.flush()
        return report

    @staticmethod
    def reopen_report(db: Session, report_id: str) -> DailyReport:
        """Send a rejected report back to Draft so its author can revise it."""
        report = DailyReportService.get_report(db, report_id)
        StatusLifecycleManager.transition(report, WorkflowKind.DAILY_REPORT, ReportStatus.DRAFT, report_id)
        db.flush()
        return report

    @staticmethod
    def add_admin_comment(db: Session, report_id: str, comment: str, author_id: str) -> ReportComment:
        DailyReportService.get_report(db, report_id)
        DailyReportService._employee(db, author_id)
        entry = ReportComment(
            report_id=report_id,
            comment=require_text(comment, "Comment"),
            author_id=author_id,
            created_at=datetime.utcnow(),
        )
        db.add(entry)
        db.flush()
        logger.info(f"Comment added to daily report {report_id} by {author_id}")
        return entry

    @staticmethod
    def get_report_comments(db: Session, report_id: str) -> List[ReportComment]:
        DailyReportService.get_report(db, report_id)
        return db.query(ReportComment).filter(
            ReportComment.report_id == report_id
        ).order_by(ReportComment.created_at, ReportComment.id).all()

    @staticmethod
    def send_feedback_to_officer(
        db: Session,
        report_id: str,
        feedback: str,
        from_admin: str,
        officer_id: Optional[str] = None
    ) -> ReportFeedback:
        """
        Send feedback on a report. Goes to the report's author unless
        ``officer_id`` names someone else.
        """
        report = DailyReportService.get_report(db, report_id)
        DailyReportService._employee(db, from_admin)
        officer_id = officer_id or report.officer_id
        if not officer_id:
            raise ValidationError(f"Report {report_id} has no officer to send feedback to")
        DailyReportService._employee(db, officer_id)
        entry = ReportFeedback(
            report_id=report_id,
            officer_id=officer_id,
            feedback=require_text(feedback, "Feedback"),
            from_admin=from_admin,
            sent_at=datetime.utcnow(),
            is_read=False,
        )
        db.add(entry)
        db.flush()
        logger.info(f"Feedback on report {report_id} sent to {officer_id} by {from_admin}")
        return entry

    @staticmethod
    def get_feedback_for_officer(db: Session, officer_id: str, unread_only: bool = False) -> List[ReportFeedback]:
        query = db.query(ReportFeedback).filter(ReportFeedback.officer_id == officer_id)
        if unread_only:
            query = query.filter(ReportFeedback.is_read.is_(False))
        return query.order_by(ReportFeedback.sent_at.desc(), ReportFeedback.id.desc()).all()

    @staticmethod
    def mark_feedback_read(db: Session, feedback_id: int, officer_id: str) -> ReportFeedback:
        entry = db.get(ReportFeedback, feedback_id)
        if entry is None or entry.officer_id != officer_id:
            raise NotFoundError("ReportFeedback", str(feedback_id))
        entry.is_read = True
        db.flush()
        return entry

    @staticmethod
    def get_reports_by_officer(db: Session, officer_id: str) -> List[DailyReport]:
        return db.query(DailyReport).filter(
            DailyReport.officer_id == officer_id
        ).order_by(DailyReport.report_date.desc()).all()

    @staticmethod
    def get_reports_by_status(db: Session, status: Union[str, ReportStatus]) -> List[DailyReport]:
        status = StatusLifecycleManager.coerce(WorkflowKind.DAILY_REPORT, status)
        return db.query(DailyReport).filter(
            DailyReport.status == status
        ).order_by(DailyReport.report_date.desc()).all()

    @staticmethod
    def search_reports(
        db: Session,
        search_text: Optional[str] = None,
        status: Optional[str] = None,
        report_type: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> List[DailyReport]:
        """
        Case-insensitive match on report ID, officer name or incidents summary.

        ``status`` and ``report_type`` accept "All" (or None) for no filter;
        the date range is inclusive at both ends.
        """
        query = db.query(DailyReport)
        if search_text and search_text.strip():
            pattern = f"%{search_text.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(DailyReport.report_id).like(pattern),
                    func.lower(DailyReport.officer_name).like(pattern),
                    func.lower(DailyReport.incidents_summary).like(pattern),
                )
            )
        status = parse_optional_filter(ReportStatus, status, "report status")
        if status is not None:
            query = query.filter(DailyReport.status == status)
        report_type = parse_optional_filter(ReportType, report_type, "report type")
        if report_type is not None:
            query = query.filter(DailyReport.report_type == report_type)
        if date_from is not None:
            query = query.filter(DailyReport.report_date >= date_from)
        if date_to is not None:
            query = query.filter(DailyReport.report_date <= date_to)
        return query.order_by(DailyReport.report_date.desc(), DailyReport.created_at.desc()).all()

    @staticmethod
    def get_total_report_count(db: Session) -> int:
        return db.query(func.count(DailyReport.report_id)).scalar() or 0

    @staticmethod
    def get_report_statistics(db: Session) -> Dict[str, int]:
        """
        Returns:
            Dict with total and a count per status
        """
        counts = dict(
            db.query(DailyReport.status, func.count(DailyReport.report_id))
            .group_by(DailyReport.status)
            .all()
        )
        stats = {"total": sum(counts.values())}
        for status in ReportStatus:
            stats[status.name.lower()] = counts.get(status, 0)
        return stats
