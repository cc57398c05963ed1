"""
Database models for the prison management back office.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Date, Text,
    ForeignKey, Index, TypeDecorator, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship
import enum

Base = declarative_base()


# ============================================================================
# Custom Type Decorator for Enum Values
# ============================================================================

class EnumValue(TypeDecorator):
    """Type decorator to ensure enum values (not names) are stored."""
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        """Convert enum to its value when writing to database."""
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def process_result_value(self, value, dialect):
        """Convert database value back to enum when reading."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return self.enum_class(value)
            except ValueError:
                return value
        return value


# ============================================================================
# Enums - Must be defined before models that use them
# ============================================================================

class PrisonerStatus(str, enum.Enum):
    """Custody status of a prisoner."""
    IN_CUSTODY = "In Custody"
    RELEASED = "Released"
    TRANSFERRED = "Transferred"


class CellType(str, enum.Enum):
    """Cell layout."""
    SINGLE = "Single"
    DOUBLE = "Double"
    STANDARD = "Standard"
    GENERAL = "General"
    SOLITARY = "Solitary"


class CellStatus(str, enum.Enum):
    """Cell status; Vacant/Occupied follow occupancy, maintenance is set by staff."""
    VACANT = "Vacant"
    OCCUPIED = "Occupied"
    UNDER_MAINTENANCE = "Under Maintenance"


class SecurityLevel(str, enum.Enum):
    """Cell security classification."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    MAXIMUM = "Maximum"


class EmployeeRole(str, enum.Enum):
    """Employee roles for authorization."""
    ADMINISTRATOR = "Administrator"
    OFFICER = "Officer"
    STAFF = "Staff"


class Module(str, enum.Enum):
    """Functional areas used as the unit of access control."""
    PRISONERS = "Prisoners"
    CELLS = "Cells"
    VISITORS = "Visitors"
    VISITS = "Visits"
    EMPLOYEES = "Employees"
    TASKS = "Tasks"
    GUARD_DUTIES = "GuardDuties"
    SECURITY = "Security"
    ACCESS_CONTROL = "AccessControl"
    DAILY_REPORTS = "DailyReports"


class PermissionLevel(str, enum.Enum):
    """Per-module permission level. View < Edit < Full."""
    NONE = "None"
    VIEW = "View"
    EDIT = "Edit"
    FULL = "Full"


class VisitorStatus(str, enum.Enum):
    """Visitor approval status."""
    PENDING = "Pending"
    APPROVED = "Approved"
    BANNED = "Banned"


class VisitStatus(str, enum.Enum):
    """Visit lifecycle status."""
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskStatus(str, enum.Enum):
    """Task lifecycle status."""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Priority(str, enum.Enum):
    """Priority for tasks and guard duties."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class DutyStatus(str, enum.Enum):
    """Guard duty lifecycle status."""
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Severity(str, enum.Enum):
    """Severity for alerts and security log entries."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class AlertStatus(str, enum.Enum):
    """Security alert lifecycle status."""
    ACTIVE = "Active"
    ACKNOWLEDGED = "Acknowledged"
    RESOLVED = "Resolved"


class SecurityLogStatus(str, enum.Enum):
    """Security log follow-up status."""
    PENDING = "Pending"
    INVESTIGATING = "Investigating"
    RESOLVED = "Resolved"


class ProcedureType(str, enum.Enum):
    """Emergency procedure kinds."""
    LOCKDOWN = "Lockdown"
    FIRE = "Fire"
    MEDICAL = "Medical"
    INTRUDER = "Intruder"


class ReportType(str, enum.Enum):
    """Officer daily report kinds."""
    SECURITY = "Security"
    INCIDENT = "Incident"
    DAILY_OPERATIONS = "Daily Operations"
    SPECIAL_EVENT = "Special Event"


class ReportStatus(str, enum.Enum):
    """Daily report review workflow."""
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# ============================================================================
# Models
# ============================================================================

class Cell(Base):
    """Prison cell. Occupancy is owned by the occupancy tracker."""
    __tablename__ = "cells"

    cell_number = Column(String(10), primary_key=True)
    cell_type = Column(EnumValue(CellType), default=CellType.STANDARD, nullable=False)
    capacity = Column(Integer, nullable=False)
    current_occupancy = Column(Integer, default=0, nullable=False)
    security_level = Column(EnumValue(SecurityLevel), default=SecurityLevel.MEDIUM, nullable=False)
    status = Column(EnumValue(CellStatus), default=CellStatus.VACANT, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    prisoners = relationship("Prisoner", back_populates="cell")

    __table_args__ = (
        CheckConstraint('capacity >= 0', name='ck_cell_capacity_non_negative'),
        CheckConstraint(
            'current_occupancy >= 0 AND current_occupancy <= capacity',
            name='ck_cell_occupancy_within_capacity'
        ),
        Index('idx_cell_status', 'status'),
        Index('idx_cell_security_level', 'security_level'),
    )

    def has_available_space(self) -> bool:
        return self.current_occupancy < self.capacity


class Prisoner(Base):
    """Prisoner record."""
    __tablename__ = "prisoners"

    prisoner_id = Column(String(20), primary_key=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(15), nullable=True)
    crime = Column(String(200), nullable=True)
    cell_number = Column(String(10), ForeignKey("cells.cell_number", ondelete="SET NULL"), nullable=True)
    sentence_duration = Column(String(50), nullable=True)  # Free text, e.g. "5 years"
    status = Column(EnumValue(PrisonerStatus), default=PrisonerStatus.IN_CUSTODY, nullable=False)
    admission_date = Column(Date, nullable=True)
    release_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    cell = relationship("Cell", back_populates="prisoners")
    visitors = relationship("Visitor", back_populates="prisoner", cascade="all, delete-orphan", passive_deletes=True)
    visits = relationship("Visit", back_populates="prisoner", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index('idx_prisoner_cell', 'cell_number'),
        Index('idx_prisoner_status', 'status'),
        Index('idx_prisoner_name', 'name'),
    )


class Employee(Base):
    """Employee record, also the login account."""
    __tablename__ = "employees"

    employee_id = Column(String(20), primary_key=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(15), nullable=True)
    position = Column(String(50), nullable=True)
    department = Column(String(50), nullable=True)
    salary = Column(Float, nullable=True)
    hire_date = Column(Date, nullable=True)

    # Credentials
    username = Column(String(50), unique=True, nullable=True, index=True)
    hashed_password = Column(String(255), nullable=True)  # bcrypt hash, never the plain password
    role = Column(EnumValue(EmployeeRole), default=EmployeeRole.OFFICER, nullable=False)

    # Status flags
    is_active = Column(Boolean, default=True, nullable=False)
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime, nullable=True)  # Temporary lockout after repeated failures
    last_login = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    access_controls = relationship(
        "AccessControl",
        back_populates="employee",
        foreign_keys="AccessControl.employee_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_employee_department', 'department'),
        Index('idx_employee_position', 'position'),
        Index('idx_employee_role', 'role'),
    )


class AccessControl(Base):
    """Permission level of one employee on one module."""
    __tablename__ = "access_controls"

    control_id = Column(String(50), primary_key=True)
    employee_id = Column(String(20), ForeignKey("employees.employee_id", ondelete="CASCADE"), nullable=False)
    employee_name = Column(String(100), nullable=False)  # Snapshot for listings
    module = Column(EnumValue(Module), nullable=False)
    permission_level = Column(EnumValue(PermissionLevel), nullable=False)
    granted_by = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    granted_date = Column(Date, nullable=True)
    expires_on = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    employee = relationship("Employee", back_populates="access_controls", foreign_keys=[employee_id])
    grantor = relationship("Employee", foreign_keys=[granted_by])

    __table_args__ = (
        UniqueConstraint('employee_id', 'module', name='unique_access'),
        Index('idx_access_controls_employee', 'employee_id'),
        Index('idx_access_controls_module', 'module'),
    )


class Visitor(Base):
    """Registered visitor of one prisoner."""
    __tablename__ = "visitors"

    visitor_id = Column(String(20), primary_key=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(15), nullable=True)
    relationship_to_prisoner = Column("relationship", String(50), nullable=True)
    prisoner_id = Column(String(20), ForeignKey("prisoners.prisoner_id", ondelete="CASCADE"), nullable=True)
    visit_count = Column(Integer, default=0, nullable=False)
    last_visit_date = Column(Date, nullable=True)
    status = Column(EnumValue(VisitorStatus), default=VisitorStatus.PENDING, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    prisoner = relationship("Prisoner", back_populates="visitors")
    visits = relationship("Visit", back_populates="visitor", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index('idx_visitor_prisoner', 'prisoner_id'),
        Index('idx_visitor_status', 'status'),
    )


class Visit(Base):
    """Scheduled visit between a visitor and a prisoner."""
    __tablename__ = "visits"

    visit_id = Column(String(30), primary_key=True)
    prisoner_id = Column(String(20), ForeignKey("prisoners.prisoner_id", ondelete="CASCADE"), nullable=False)
    visitor_id = Column(String(20), ForeignKey("visitors.visitor_id", ondelete="CASCADE"), nullable=False)
    scheduled_datetime = Column(DateTime, nullable=False)
    duration = Column(Integer, default=30, nullable=False)  # minutes
    status = Column(EnumValue(VisitStatus), default=VisitStatus.SCHEDULED, nullable=False)
    notes = Column(Text, nullable=True)
    actual_start_datetime = Column(DateTime, nullable=True)  # Set on start
    actual_end_datetime = Column(DateTime, nullable=True)  # Set on completion
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    prisoner = relationship("Prisoner", back_populates="visits")
    visitor = relationship("Visitor", back_populates="visits")

    __table_args__ = (
        Index('idx_visit_prisoner', 'prisoner_id'),
        Index('idx_visit_visitor', 'visitor_id'),
        Index('idx_visit_status', 'status'),
        Index('idx_visit_scheduled', 'scheduled_datetime'),
    )


class Task(Base):
    """Work item assigned to an officer."""
    __tablename__ = "tasks"

    task_id = Column(String(20), primary_key=True)
    task_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    assigned_to_id = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    assigned_to_name = Column(String(100), nullable=True)
    priority = Column(EnumValue(Priority), default=Priority.MEDIUM, nullable=False)
    status = Column(EnumValue(TaskStatus), default=TaskStatus.PENDING, nullable=False)
    due_date = Column(Date, nullable=True)
    created_by = Column(String(20), nullable=True)
    category = Column(String(50), nullable=True)
    estimated_hours = Column(Integer, default=0, nullable=False)
    completed_date = Column(Date, nullable=True)
    completed_by = Column(String(20), nullable=True)
    completion_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_task_status', 'status'),
        Index('idx_task_assigned', 'assigned_to_id'),
        Index('idx_task_due', 'due_date'),
    )


class GuardDuty(Base):
    """Guard duty shift."""
    __tablename__ = "guard_duties"

    duty_id = Column(String(20), primary_key=True)
    officer_id = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    officer_name = Column(String(100), nullable=True)
    duty_type = Column(String(50), nullable=True)  # e.g. Patrol, Gate, Tower
    location = Column(String(100), nullable=True)
    start_time = Column(String(8), nullable=True)  # HH:MM:SS
    end_time = Column(String(8), nullable=True)
    duty_date = Column(Date, nullable=False)
    status = Column(EnumValue(DutyStatus), default=DutyStatus.SCHEDULED, nullable=False)
    priority = Column(EnumValue(Priority), default=Priority.MEDIUM, nullable=False)
    notes = Column(Text, nullable=True)
    completed_time = Column(String(8), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    issues = relationship("DutyIssue", back_populates="duty", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index('idx_duty_officer', 'officer_id'),
        Index('idx_duty_date', 'duty_date'),
        Index('idx_duty_status', 'status'),
    )


class DutyIssue(Base):
    """Issue reported during a guard duty (append-only)."""
    __tablename__ = "duty_issues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    duty_id = Column(String(20), ForeignKey("guard_duties.duty_id", ondelete="CASCADE"), nullable=False)
    issue_description = Column(Text, nullable=False)
    reported_by = Column(String(20), nullable=True)
    reported_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    duty = relationship("GuardDuty", back_populates="issues")

    __table_args__ = (
        Index('idx_duty_issue_duty', 'duty_id'),
    )


class SecurityAlert(Base):
    """Security alert raised by staff or a system sensor."""
    __tablename__ = "security_alerts"

    alert_id = Column(String(50), primary_key=True)
    alert_type = Column(String(50), nullable=False)  # Intrusion, Equipment_Failure, Unauthorized_Access, Emergency
    severity = Column(EnumValue(Severity), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(100), nullable=True)
    triggered_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    triggered_by = Column(String(50), nullable=True)  # "System" or an employee ID
    acknowledged_at = Column(DateTime, nullable=True)
    acknowledged_by = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    assigned_to = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    status = Column(EnumValue(AlertStatus), default=AlertStatus.ACTIVE, nullable=False)
    notes = Column(Text, nullable=True)
    requires_response = Column(Boolean, default=True, nullable=False)
    response_time = Column(Integer, default=5, nullable=False)  # minutes

    __table_args__ = (
        Index('idx_security_alerts_status', 'status'),
        Index('idx_security_alerts_severity', 'severity'),
        Index('idx_security_alerts_triggered', 'triggered_at'),
    )


class SecurityLog(Base):
    """Security event log, also used for the authentication audit trail."""
    __tablename__ = "security_logs"

    log_id = Column(String(50), primary_key=True)
    event_type = Column(String(50), nullable=False)  # Login, Logout, Access_Denied, Security_Breach, System_Alert
    severity = Column(EnumValue(Severity), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(100), nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    employee_id = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    affected_entity = Column(String(100), nullable=True)
    ip_address = Column(String(45), nullable=True)  # IPv6 compatible
    status = Column(EnumValue(SecurityLogStatus), default=SecurityLogStatus.PENDING, nullable=False)
    resolution_notes = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        Index('idx_security_logs_timestamp', 'timestamp'),
        Index('idx_security_logs_severity', 'severity'),
        Index('idx_security_logs_status', 'status'),
    )


class EmergencyProcedure(Base):
    """Emergency response procedure."""
    __tablename__ = "emergency_procedures"

    procedure_id = Column(Integer, primary_key=True, autoincrement=True)
    procedure_type = Column(EnumValue(ProcedureType), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    steps = Column(Text, nullable=False)  # Newline separated
    contact_person = Column(String(100), nullable=True)
    contact_phone = Column(String(20), nullable=True)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    updated_by = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        Index('idx_procedures_type', 'procedure_type'),
    )


class DailyReport(Base):
    """End-of-shift report written by an officer and reviewed by an administrator."""
    __tablename__ = "daily_reports"

    report_id = Column(String(20), primary_key=True)
    officer_id = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    officer_name = Column(String(100), nullable=True)
    report_type = Column(EnumValue(ReportType), default=ReportType.DAILY_OPERATIONS, nullable=False)
    priority = Column(EnumValue(Priority), default=Priority.MEDIUM, nullable=False)
    report_date = Column(Date, nullable=False)
    status = Column(EnumValue(ReportStatus), default=ReportStatus.DRAFT, nullable=False)

    # Shift content
    incidents_summary = Column(Text, nullable=True)
    actions_taken = Column(Text, nullable=True)
    patrols_completed = Column(Text, nullable=True)
    cell_inspections = Column(Text, nullable=True)
    visitor_screenings = Column(Text, nullable=True)
    activity_details = Column(Text, nullable=True)
    additional_notes = Column(Text, nullable=True)

    # Review
    reviewed_by = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    review_date = Column(Date, nullable=True)
    review_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    comments = relationship("ReportComment", back_populates="report", cascade="all, delete-orphan", passive_deletes=True)
    feedback = relationship("ReportFeedback", back_populates="report", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index('idx_daily_report_officer', 'officer_id'),
        Index('idx_daily_report_date', 'report_date'),
        Index('idx_daily_report_status', 'status'),
    )


class ReportComment(Base):
    """Reviewer comment on a daily report (append-only)."""
    __tablename__ = "report_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(String(20), ForeignKey("daily_reports.report_id", ondelete="CASCADE"), nullable=False)
    comment = Column(Text, nullable=False)
    author_id = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    report = relationship("DailyReport", back_populates="comments")

    __table_args__ = (
        Index('idx_report_comment_report', 'report_id'),
    )


class ReportFeedback(Base):
    """Feedback sent to the officer who wrote a report."""
    __tablename__ = "report_feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(String(20), ForeignKey("daily_reports.report_id", ondelete="CASCADE"), nullable=False)
    officer_id = Column(String(20), ForeignKey("employees.employee_id", ondelete="CASCADE"), nullable=False)
    feedback = Column(Text, nullable=False)
    from_admin = Column(String(20), ForeignKey("employees.employee_id", ondelete="SET NULL"), nullable=True)
    sent_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)

    report = relationship("DailyReport", back_populates="feedback")

    __table_args__ = (
        Index('idx_report_feedback_report', 'report_id'),
        Index('idx_report_feedback_officer', 'officer_id'),
    )
