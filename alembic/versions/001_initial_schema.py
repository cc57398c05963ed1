"""Initial schema - cells, prisoners, employees, access controls, visits, tasks, duties, security

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'cells',
        sa.Column('cell_number', sa.String(length=10), nullable=False),
        sa.Column('cell_type', sa.String(length=20), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('current_occupancy', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('security_level', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('cell_number'),
        sa.CheckConstraint('capacity >= 0', name='ck_cell_capacity_non_negative'),
        sa.CheckConstraint(
            'current_occupancy >= 0 AND current_occupancy <= capacity',
            name='ck_cell_occupancy_within_capacity'
        )
    )
    op.create_index('idx_cell_status', 'cells', ['status'])
    op.create_index('idx_cell_security_level', 'cells', ['security_level'])

    op.create_table(
        'prisoners',
        sa.Column('prisoner_id', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=15), nullable=True),
        sa.Column('crime', sa.String(length=200), nullable=True),
        sa.Column('cell_number', sa.String(length=10), nullable=True),
        sa.Column('sentence_duration', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('admission_date', sa.Date(), nullable=True),
        sa.Column('release_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['cell_number'], ['cells.cell_number'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('prisoner_id')
    )
    op.create_index('idx_prisoner_cell', 'prisoners', ['cell_number'])
    op.create_index('idx_prisoner_status', 'prisoners', ['status'])
    op.create_index('idx_prisoner_name', 'prisoners', ['name'])

    op.create_table(
        'employees',
        sa.Column('employee_id', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=15), nullable=True),
        sa.Column('position', sa.String(length=50), nullable=True),
        sa.Column('department', sa.String(length=50), nullable=True),
        sa.Column('salary', sa.Float(), nullable=True),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('username', sa.String(length=50), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('locked_until', sa.DateTime(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('password_changed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('employee_id')
    )
    op.create_index('ix_employees_username', 'employees', ['username'], unique=True)
    op.create_index('idx_employee_department', 'employees', ['department'])
    op.create_index('idx_employee_position', 'employees', ['position'])
    op.create_index('idx_employee_role', 'employees', ['role'])

    op.create_table(
        'access_controls',
        sa.Column('control_id', sa.String(length=50), nullable=False),
        sa.Column('employee_id', sa.String(length=20), nullable=False),
        sa.Column('employee_name', sa.String(length=100), nullable=False),
        sa.Column('module', sa.String(length=20), nullable=False),
        sa.Column('permission_level', sa.String(length=10), nullable=False),
        sa.Column('granted_by', sa.String(length=20), nullable=True),
        sa.Column('granted_date', sa.Date(), nullable=True),
        sa.Column('expires_on', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.employee_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['granted_by'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('control_id'),
        sa.UniqueConstraint('employee_id', 'module', name='unique_access')
    )
    op.create_index('idx_access_controls_employee', 'access_controls', ['employee_id'])
    op.create_index('idx_access_controls_module', 'access_controls', ['module'])

    op.create_table(
        'visitors',
        sa.Column('visitor_id', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=15), nullable=True),
        sa.Column('relationship', sa.String(length=50), nullable=True),
        sa.Column('prisoner_id', sa.String(length=20), nullable=True),
        sa.Column('visit_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_visit_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['prisoner_id'], ['prisoners.prisoner_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('visitor_id')
    )
    op.create_index('idx_visitor_prisoner', 'visitors', ['prisoner_id'])
    op.create_index('idx_visitor_status', 'visitors', ['status'])

    op.create_table(
        'visits',
        sa.Column('visit_id', sa.String(length=30), nullable=False),
        sa.Column('prisoner_id', sa.String(length=20), nullable=False),
        sa.Column('visitor_id', sa.String(length=20), nullable=False),
        sa.Column('scheduled_datetime', sa.DateTime(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('actual_start_datetime', sa.DateTime(), nullable=True),
        sa.Column('actual_end_datetime', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['prisoner_id'], ['prisoners.prisoner_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['visitor_id'], ['visitors.visitor_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('visit_id')
    )
    op.create_index('idx_visit_prisoner', 'visits', ['prisoner_id'])
    op.create_index('idx_visit_visitor', 'visits', ['visitor_id'])
    op.create_index('idx_visit_status', 'visits', ['status'])
    op.create_index('idx_visit_scheduled', 'visits', ['scheduled_datetime'])

    op.create_table(
        'tasks',
        sa.Column('task_id', sa.String(length=20), nullable=False),
        sa.Column('task_name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('assigned_to_id', sa.String(length=20), nullable=True),
        sa.Column('assigned_to_name', sa.String(length=100), nullable=True),
        sa.Column('priority', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('created_by', sa.String(length=20), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('estimated_hours', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_date', sa.Date(), nullable=True),
        sa.Column('completed_by', sa.String(length=20), nullable=True),
        sa.Column('completion_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['assigned_to_id'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('task_id')
    )
    op.create_index('idx_task_status', 'tasks', ['status'])
    op.create_index('idx_task_assigned', 'tasks', ['assigned_to_id'])
    op.create_index('idx_task_due', 'tasks', ['due_date'])

    op.create_table(
        'guard_duties',
        sa.Column('duty_id', sa.String(length=20), nullable=False),
        sa.Column('officer_id', sa.String(length=20), nullable=True),
        sa.Column('officer_name', sa.String(length=100), nullable=True),
        sa.Column('duty_type', sa.String(length=50), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('start_time', sa.String(length=8), nullable=True),
        sa.Column('end_time', sa.String(length=8), nullable=True),
        sa.Column('duty_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.String(length=10), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completed_time', sa.String(length=8), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['officer_id'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('duty_id')
    )
    op.create_index('idx_duty_officer', 'guard_duties', ['officer_id'])
    op.create_index('idx_duty_date', 'guard_duties', ['duty_date'])
    op.create_index('idx_duty_status', 'guard_duties', ['status'])

    op.create_table(
        'duty_issues',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('duty_id', sa.String(length=20), nullable=False),
        sa.Column('issue_description', sa.Text(), nullable=False),
        sa.Column('reported_by', sa.String(length=20), nullable=True),
        sa.Column('reported_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['duty_id'], ['guard_duties.duty_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_duty_issue_duty', 'duty_issues', ['duty_id'])

    op.create_table(
        'security_alerts',
        sa.Column('alert_id', sa.String(length=50), nullable=False),
        sa.Column('alert_type', sa.String(length=50), nullable=False),
        sa.Column('severity', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('triggered_at', sa.DateTime(), nullable=False),
        sa.Column('triggered_by', sa.String(length=50), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('acknowledged_by', sa.String(length=20), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_by', sa.String(length=20), nullable=True),
        sa.Column('assigned_to', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('requires_response', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('response_time', sa.Integer(), nullable=False, server_default='5'),
        sa.ForeignKeyConstraint(['acknowledged_by'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['resolved_by'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['assigned_to'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('alert_id')
    )
    op.create_index('idx_security_alerts_status', 'security_alerts', ['status'])
    op.create_index('idx_security_alerts_severity', 'security_alerts', ['severity'])
    op.create_index('idx_security_alerts_triggered', 'security_alerts', ['triggered_at'])

    op.create_table(
        'security_logs',
        sa.Column('log_id', sa.String(length=50), nullable=False),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('severity', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('employee_id', sa.String(length=20), nullable=True),
        sa.Column('affected_entity', sa.String(length=100), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_by', sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['resolved_by'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('log_id')
    )
    op.create_index('idx_security_logs_timestamp', 'security_logs', ['timestamp'])
    op.create_index('idx_security_logs_severity', 'security_logs', ['severity'])
    op.create_index('idx_security_logs_status', 'security_logs', ['status'])

    op.create_table(
        'emergency_procedures',
        sa.Column('procedure_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('procedure_type', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('steps', sa.Text(), nullable=False),
        sa.Column('contact_person', sa.String(length=100), nullable=True),
        sa.Column('contact_phone', sa.String(length=20), nullable=True),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.Column('updated_by', sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(['updated_by'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('procedure_id')
    )
    op.create_index('idx_procedures_type', 'emergency_procedures', ['procedure_type'])


def downgrade() -> None:
    op.drop_index('idx_procedures_type', table_name='emergency_procedures')
    op.drop_table('emergency_procedures')
    op.drop_index('idx_security_logs_status', table_name='security_logs')
    op.drop_index('idx_security_logs_severity', table_name='security_logs')
    op.drop_index('idx_security_logs_timestamp', table_name='security_logs')
    op.drop_table('security_logs')
    op.drop_index('idx_security_alerts_triggered', table_name='security_alerts')
    op.drop_index('idx_security_alerts_severity', table_name='security_alerts')
    op.drop_index('idx_security_alerts_status', table_name='security_alerts')
    op.drop_table('security_alerts')
    op.drop_index('idx_duty_issue_duty', table_name='duty_issues')
    op.drop_table('duty_issues')
    op.drop_index('idx_duty_status', table_name='guard_duties')
    op.drop_index('idx_duty_date', table_name='guard_duties')
    op.drop_index('idx_duty_officer', table_name='guard_duties')
    op.drop_table('guard_duties')
    op.drop_index('idx_task_due', table_name='tasks')
    op.drop_index('idx_task_assigned', table_name='tasks')
    op.drop_index('idx_task_status', table_name='tasks')
    op.drop_table('tasks')
    op.drop_index('idx_visit_scheduled', table_name='visits')
    op.drop_index('idx_visit_status', table_name='visits')
    op.drop_index('idx_visit_visitor', table_name='visits')
    op.drop_index('idx_visit_prisoner', table_name='visits')
    op.drop_table('visits')
    op.drop_index('idx_visitor_status', table_name='visitors')
    op.drop_index('idx_visitor_prisoner', table_name='visitors')
    op.drop_table('visitors')
    op.drop_index('idx_access_controls_module', table_name='access_controls')
    op.drop_index('idx_access_controls_employee', table_name='access_controls')
    op.drop_table('access_controls')
    op.drop_index('idx_employee_role', table_name='employees')
    op.drop_index('idx_employee_position', table_name='employees')
    op.drop_index('idx_employee_department', table_name='employees')
    op.drop_index('ix_employees_username', table_name='employees')
    op.drop_table('employees')
    op.drop_index('idx_prisoner_name', table_name='prisoners')
    op.drop_index('idx_prisoner_status', table_name='prisoners')
    op.drop_index('idx_prisoner_cell', table_name='prisoners')
    op.drop_table('prisoners')
    op.drop_index('idx_cell_security_level', table_name='cells')
    op.drop_index('idx_cell_status', table_name='cells')
    op.drop_table('cells')
