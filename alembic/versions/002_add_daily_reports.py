"""Add daily reports with reviewer comments and officer feedback

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'daily_reports',
        sa.Column('report_id', sa.String(length=20), nullable=False),
        sa.Column('officer_id', sa.String(length=20), nullable=True),
        sa.Column('officer_name', sa.String(length=100), nullable=True),
        sa.Column('report_type', sa.String(), nullable=False),
        sa.Column('priority', sa.String(), nullable=False),
        sa.Column('report_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('incidents_summary', sa.Text(), nullable=True),
        sa.Column('actions_taken', sa.Text(), nullable=True),
        sa.Column('patrols_completed', sa.Text(), nullable=True),
        sa.Column('cell_inspections', sa.Text(), nullable=True),
        sa.Column('visitor_screenings', sa.Text(), nullable=True),
        sa.Column('activity_details', sa.Text(), nullable=True),
        sa.Column('additional_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.String(length=20), nullable=True),
        sa.Column('review_date', sa.Date(), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['officer_id'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reviewed_by'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('report_id')
    )
    op.create_index('idx_daily_report_officer', 'daily_reports', ['officer_id'])
    op.create_index('idx_daily_report_date', 'daily_reports', ['report_date'])
    op.create_index('idx_daily_report_status', 'daily_reports', ['status'])

    op.create_table(
        'report_comments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('report_id', sa.String(length=20), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('author_id', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['report_id'], ['daily_reports.report_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_report_comment_report', 'report_comments', ['report_id'])

    op.create_table(
        'report_feedback',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('report_id', sa.String(length=20), nullable=False),
        sa.Column('officer_id', sa.String(length=20), nullable=False),
        sa.Column('feedback', sa.Text(), nullable=False),
        sa.Column('from_admin', sa.String(length=20), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['report_id'], ['daily_reports.report_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['officer_id'], ['employees.employee_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['from_admin'], ['employees.employee_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_report_feedback_report', 'report_feedback', ['report_id'])
    op.create_index('idx_report_feedback_officer', 'report_feedback', ['officer_id'])


def downgrade() -> None:
    op.drop_index('idx_report_feedback_officer', table_name='report_feedback')
    op.drop_index('idx_report_feedback_report', table_name='report_feedback')
    op.drop_table('report_feedback')
    op.drop_index('idx_report_comment_report', table_name='report_comments')
    op.drop_table('report_comments')
    op.drop_index('idx_daily_report_status', table_name='daily_reports')
    op.drop_index('idx_daily_report_date', table_name='daily_reports')
    op.drop_index('idx_daily_report_officer', table_name='daily_reports')
    op.drop_table('daily_reports')
