"""Initial schema: users, cases, reports, report files, notifications, audit, jobs.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ==========================================================================
    # users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(150), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )

    # ==========================================================================
    # cases
    # ==========================================================================
    op.create_table(
        'cases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('reference', sa.String(64), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('status', sa.String(30), nullable=True),
        sa.Column('data_json', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(150), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reference', name='uq_cases_reference'),
    )
    op.create_index('idx_cases_created_by', 'cases', ['created_by'])

    # ==========================================================================
    # reports + report_files
    # ==========================================================================
    op.create_table(
        'reports',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('beneficiary', sa.String(255), nullable=True),
        sa.Column('beneficiaries', sa.Text(), nullable=False),
        sa.Column('insured', sa.String(255), nullable=True),
        sa.Column('insureds', sa.Text(), nullable=False),
        sa.Column('initiator', sa.String(255), nullable=False),
        sa.Column('subscriber', sa.String(255), nullable=False),
        sa.Column('case_id', sa.String(64), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('created_by', sa.String(150), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_reports_created_by', 'reports', ['created_by'])
    op.create_index('idx_reports_created_at', 'reports', ['created_at'])

    op.create_table(
        'report_files',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('report_id', sa.Integer(), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('storage_key', sa.String(512), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['report_id'], ['reports.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_report_files_report', 'report_files', ['report_id', 'created_at'])

    # ==========================================================================
    # notifications
    # ==========================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(150), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('action', sa.String(100), nullable=True),
        sa.Column('url', sa.String(500), nullable=True),
        sa.Column('metadata', sa.Text(), nullable=True),
        sa.Column('state', sa.String(20), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_notif_user_state', 'notifications', ['user_id', 'state', 'created_at'])
    op.create_index('idx_notif_created', 'notifications', ['created_at'])

    # ==========================================================================
    # audit_events
    # ==========================================================================
    op.create_table(
        'audit_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('actor', sa.String(150), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_audit_type_created', 'audit_events', ['type', 'created_at'])

    # ==========================================================================
    # jobs
    # ==========================================================================
    op.create_table(
        'jobs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('run_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('max_attempts', sa.Integer(), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('idempotency_key', sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', name='uq_job_idempotency'),
    )
    op.create_index('idx_jobs_pending', 'jobs', ['status', 'run_at'])


def downgrade() -> None:
    op.drop_index('idx_jobs_pending', table_name='jobs')
    op.drop_table('jobs')
    op.drop_index('idx_audit_type_created', table_name='audit_events')
    op.drop_table('audit_events')
    op.drop_index('idx_notif_created', table_name='notifications')
    op.drop_index('idx_notif_user_state', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('idx_report_files_report', table_name='report_files')
    op.drop_table('report_files')
    op.drop_index('idx_reports_created_at', table_name='reports')
    op.drop_index('idx_reports_created_by', table_name='reports')
    op.drop_table('reports')
    op.drop_index('idx_cases_created_by', table_name='cases')
    op.drop_table('cases')
    op.drop_table('users')
