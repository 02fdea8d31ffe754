"""
Initial GP practice compliance schema.

Creates practices and users, workforce, processes and tasks, governance
(incidents, complaints, policies, IPC audits), fridge monitoring, medical
requests, notifications and email logs, audit logs and baseline snapshots.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'initial_schema_20250101'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True)


def _practice_fk(nullable=False):
    return sa.Column(
        'practice_id',
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey('practices.id', ondelete='CASCADE'),
        nullable=nullable,
    )


def _user_fk(name, ondelete='SET NULL', nullable=True):
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete=ondelete), nullable=nullable)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()'))


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()'))


def upgrade() -> None:
    op.create_table(
        'practices',
        _id(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('theme', postgresql.JSONB(), nullable=True),
        sa.Column('country', sa.String(20), nullable=False, server_default='wales'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('onboarding_stage', sa.String(50), nullable=False, server_default='pending'),
        sa.Column('onboarding_completed_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("country in ('wales','england','scotland')", name='ck_practices_country'),
    )

    op.create_table(
        'users',
        _id(),
        _practice_fk(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('role', sa.String(50), nullable=False, server_default='reception'),
        sa.Column('is_practice_manager', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('mfa_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_users_practice_email', 'users', ['practice_id', 'email'], unique=True)
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'employees',
        _id(),
        _practice_fk(),
        _user_fk('user_id'),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('role', sa.String(100), nullable=True),
        sa.Column('manager_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_employees_practice_id', 'employees', ['practice_id'])

    op.create_table(
        'training_records',
        _id(),
        _practice_fk(),
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_name', sa.Text(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expiry_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_mandatory', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_training_records_practice_expiry', 'training_records', ['practice_id', 'expiry_date'])
    op.create_index('idx_training_records_employee_id', 'training_records', ['employee_id'])

    op.create_table(
        'process_templates',
        _id(),
        _practice_fk(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('module', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('frequency', sa.String(20), nullable=False, server_default='daily'),
        sa.Column('responsible_role', sa.String(50), nullable=False, server_default='reception'),
        sa.Column('sla_hours', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('steps', postgresql.JSONB(), nullable=True),
        sa.Column('evidence_hint', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_process_templates_practice_id', 'process_templates', ['practice_id'])

    op.create_table(
        'tasks',
        _id(),
        _practice_fk(),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('process_templates.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        _user_fk('assignee_id'),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('module', sa.String(50), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_tasks_practice_due_at', 'tasks', ['practice_id', 'due_at'])
    op.create_index('idx_tasks_assignee_id', 'tasks', ['assignee_id'])
    op.create_index('idx_tasks_status', 'tasks', ['status'])

    op.create_table(
        'incidents',
        _id(),
        _practice_fk(),
        _user_fk('reported_by_id'),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False, server_default='low'),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('date_occurred', sa.DateTime(timezone=True), nullable=False),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('immediate_actions', sa.Text(), nullable=True),
        sa.Column('root_cause', sa.Text(), nullable=True),
        sa.Column('preventive_actions', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='open'),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        _user_fk('closed_by_id'),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_incidents_practice_date', 'incidents', ['practice_id', 'date_occurred'])

    op.create_table(
        'complaints',
        _id(),
        _practice_fk(),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('channel', sa.String(50), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        _user_fk('assigned_to'),
        sa.Column('ack_due', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ack_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('final_due', sa.DateTime(timezone=True), nullable=True),
        sa.Column('final_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='open'),
        sa.Column('sla_status', sa.String(20), nullable=False, server_default='on_track'),
        sa.Column('emis_hash', sa.String(128), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_complaints_practice_received', 'complaints', ['practice_id', 'received_at'])
    op.create_index('idx_complaints_status', 'complaints', ['status'])

    op.create_table(
        'policy_documents',
        _id(),
        _practice_fk(),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('version', sa.String(20), nullable=False, server_default='1.0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('content', sa.Text(), nullable=True),
        _user_fk('owner_id'),
        sa.Column('next_review_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_reviewed_at', sa.DateTime(timezone=True), nullable=True),
        _user_fk('last_reviewed_by'),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        _user_fk('approved_by'),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_policy_documents_practice_review', 'policy_documents', ['practice_id', 'next_review_date'])

    op.create_table(
        'policy_acknowledgments',
        _id(),
        sa.Column('policy_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('policy_documents.id', ondelete='CASCADE'), nullable=False),
        _user_fk('user_id', ondelete='CASCADE', nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        _created_at(),
    )
    op.create_index('idx_policy_acknowledgments_unique', 'policy_acknowledgments', ['policy_id', 'user_id'], unique=True)

    op.create_table(
        'ipc_audits',
        _id(),
        _practice_fk(),
        sa.Column('audit_date', sa.DateTime(timezone=True), nullable=False),
        _user_fk('auditor_id'),
        sa.Column('audit_type', sa.String(30), nullable=False, server_default='six_monthly'),
        sa.Column('overall_score', sa.Float(), nullable=True),
        sa.Column('overall_result', sa.String(10), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('findings', postgresql.JSONB(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_ipc_audits_practice_date', 'ipc_audits', ['practice_id', 'audit_date'])

    op.create_table(
        'fridge_units',
        _id(),
        _practice_fk(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('min_temp', sa.Float(), nullable=False, server_default='2.0'),
        sa.Column('max_temp', sa.Float(), nullable=False, server_default='8.0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        'fridge_readings',
        _id(),
        _practice_fk(),
        sa.Column('fridge_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('fridge_units.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reading_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('log_time', sa.String(2), nullable=True),
        sa.Column('temperature', sa.Float(), nullable=False),
        _user_fk('recorded_by'),
        sa.Column('is_out_of_range', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('action_taken', sa.Text(), nullable=True),
        sa.Column('outcome', sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index('idx_fridge_readings_practice_date', 'fridge_readings', ['practice_id', 'reading_date'])
    op.create_index('idx_fridge_readings_fridge_id', 'fridge_readings', ['fridge_id'])

    op.create_table(
        'medical_requests',
        _id(),
        _practice_fk(),
        sa.Column('request_type', sa.String(30), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='received'),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('assigned_gp_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('emis_hash', sa.String(128), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_medical_requests_practice_received', 'medical_requests', ['practice_id', 'received_at'])

    op.create_table(
        'notification_preferences',
        _id(),
        _user_fk('user_id', ondelete='CASCADE', nullable=False),
        sa.Column('in_app_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_frequency', sa.String(20), nullable=False, server_default='immediate'),
        sa.Column('policy_reminders', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('task_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint('user_id', name='uq_notification_preferences_user_id'),
    )

    op.create_table(
        'notifications',
        _id(),
        _practice_fk(),
        _user_fk('user_id', ondelete='CASCADE', nullable=False),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('priority', sa.String(20), nullable=False, server_default='normal'),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('action_url', sa.String(500), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_notifications_user_id_created_at', 'notifications', ['user_id', 'created_at'])
    op.create_index('idx_notifications_user_id_is_read', 'notifications', ['user_id', 'is_read'])
    op.create_index('idx_notifications_expires_at', 'notifications', ['expires_at'])

    op.create_table(
        'scheduled_reminders',
        _id(),
        _practice_fk(),
        sa.Column('reminder_type', sa.String(50), nullable=False),
        sa.Column('schedule_pattern', sa.String(50), nullable=True),
        sa.Column('next_run_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_run_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_scheduled_reminders_next_run', 'scheduled_reminders', ['is_active', 'next_run_at'])

    op.create_table(
        'email_logs',
        _id(),
        _practice_fk(nullable=True),
        sa.Column('recipient_email', sa.String(320), nullable=False),
        sa.Column('recipient_name', sa.Text(), nullable=True),
        sa.Column('subject', sa.String(300), nullable=False),
        sa.Column('email_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('resend_email_id', sa.String(255), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('clicked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('bounced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('bounce_type', sa.String(50), nullable=True),
        sa.Column('bounce_reason', sa.Text(), nullable=True),
        sa.Column('complained_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_email_logs_practice_created', 'email_logs', ['practice_id', 'created_at'])
    op.create_index('idx_email_logs_status', 'email_logs', ['status'])
    op.create_index('idx_email_logs_resend_email_id', 'email_logs', ['resend_email_id'])

    op.create_table(
        'audit_logs',
        _id(),
        _practice_fk(),
        _user_fk('user_id'),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('action', sa.String(10), nullable=False),
        sa.Column('before_data', postgresql.JSONB(), nullable=True),
        sa.Column('after_data', postgresql.JSONB(), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index('ix_audit_logs_practice_id_created_at', 'audit_logs', ['practice_id', 'created_at'])
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])

    op.create_table(
        'baseline_snapshots',
        _id(),
        _practice_fk(),
        sa.Column('baseline_name', sa.Text(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('compliance_score', sa.Float(), nullable=False),
        sa.Column('fit_for_audit_score', sa.Float(), nullable=False),
        sa.Column('driver_details', postgresql.JSONB(), nullable=False),
        sa.Column('red_flags', postgresql.JSONB(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('replaces_baseline_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('baseline_snapshots.id', ondelete='SET NULL'), nullable=True),
        sa.Column('rebaseline_reason', sa.Text(), nullable=True),
        _user_fk('created_by'),
        sa.Column('model_version', sa.String(10), nullable=False, server_default='1.0'),
        _created_at(),
    )
    op.create_index('idx_baseline_snapshots_practice_created', 'baseline_snapshots', ['practice_id', 'created_at'])


def downgrade() -> None:
    for table in (
        'baseline_snapshots',
        'audit_logs',
        'email_logs',
        'scheduled_reminders',
        'notifications',
        'notification_preferences',
        'medical_requests',
        'fridge_readings',
        'fridge_units',
        'ipc_audits',
        'policy_acknowledgments',
        'policy_documents',
        'complaints',
        'incidents',
        'tasks',
        'process_templates',
        'training_records',
        'employees',
        'users',
        'practices',
    ):
        op.drop_table(table)
