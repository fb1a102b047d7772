"""create request workflow tables

Revision ID: 3c1f0a7d9b21
Revises:
Create Date: 2025-12-12 18:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '3c1f0a7d9b21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

REQUEST_STATUS = sa.Enum(
    'draft', 'pending_supervisor_approval', 'pending_hr_review', 'approved',
    'rejected', 'returned_for_correction', 'closed',
    name='request_status',
)
STEP_STATUS = sa.Enum(
    'pending', 'waiting', 'approved', 'rejected', 'returned', 'skipped',
    name='request_step_status',
)
COMMENT_VISIBILITY = sa.Enum('all', 'internal', name='comment_visibility')
EVENT_TYPE = sa.Enum(
    'created', 'submitted', 'status_changed', 'approved', 'rejected', 'forwarded',
    'returned_for_correction', 'closed', 'comment_added', 'metadata_updated', 'attachment_added',
    name='request_event_type',
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    ]


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('full_name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=150), nullable=False),
        sa.Column('phone', sa.String(length=20)),
        sa.Column('supervisor_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('property_id', sa.Integer()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_profiles_id', 'profiles', ['id'])
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)
    op.create_index('ix_profiles_property_id', 'profiles', ['property_id'])

    op.create_table(
        'user_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('property_id', sa.Integer()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_user_roles_id', 'user_roles', ['id'])
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])
    op.create_index('ix_user_roles_role', 'user_roles', ['role'])

    op.create_table(
        'requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_no', sa.Integer(), nullable=False, unique=True),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('requester_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('supervisor_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('current_assignee_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('status', REQUEST_STATUS, nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.Column('metadata', sa.JSON()),
        *_timestamps(),
    )
    op.create_index('ix_requests_id', 'requests', ['id'])
    op.create_index('ix_requests_requester_id', 'requests', ['requester_id'])
    op.create_index('ix_requests_current_assignee_id', 'requests', ['current_assignee_id'])
    op.create_index('ix_requests_status', 'requests', ['status'])
    op.create_index('idx_requests_entity', 'requests', ['entity_type', 'entity_id'])

    op.create_table(
        'request_steps',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_id', sa.Integer(), sa.ForeignKey('requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('step_order', sa.Integer(), nullable=False),
        sa.Column('assignee_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('assignee_role', sa.String(length=50)),
        sa.Column('status', STEP_STATUS, nullable=False),
        sa.Column('comment', sa.Text()),
        sa.Column('acted_at', sa.DateTime(timezone=True)),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        *_timestamps(),
        sa.UniqueConstraint('request_id', 'step_order', name='uq_request_steps_order'),
    )
    op.create_index('ix_request_steps_id', 'request_steps', ['id'])
    op.create_index('ix_request_steps_request_id', 'request_steps', ['request_id'])
    op.create_index('ix_request_steps_assignee_id', 'request_steps', ['assignee_id'])

    op.create_table(
        'request_comments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_id', sa.Integer(), sa.ForeignKey('requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('visibility', COMMENT_VISIBILITY, nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_request_comments_id', 'request_comments', ['id'])
    op.create_index('ix_request_comments_request_id', 'request_comments', ['request_id'])

    op.create_table(
        'request_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_id', sa.Integer(), sa.ForeignKey('requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('event_type', EVENT_TYPE, nullable=False),
        sa.Column('payload', sa.JSON()),
        *_timestamps(),
    )
    op.create_index('ix_request_events_id', 'request_events', ['id'])
    op.create_index('ix_request_events_request_id', 'request_events', ['request_id'])

    op.create_table(
        'request_attachments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_id', sa.Integer(), sa.ForeignKey('requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('uploaded_by', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('storage_bucket', sa.String(length=100), nullable=False),
        sa.Column('storage_path', sa.String(length=500), nullable=False),
        sa.Column('file_name', sa.String(length=255)),
        sa.Column('file_type', sa.String(length=100)),
        sa.Column('file_size', sa.BigInteger()),
        *_timestamps(),
    )
    op.create_index('ix_request_attachments_id', 'request_attachments', ['id'])
    op.create_index('ix_request_attachments_request_id', 'request_attachments', ['request_id'])

    op.create_table(
        'notification_queue',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('notification_type', sa.String(length=50), nullable=False),
        sa.Column('recipient_id', sa.Integer()),
        sa.Column('subject', sa.String(length=500)),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('template_data', sa.JSON()),
        sa.Column('priority', sa.Integer()),
        sa.Column('status', sa.String(length=20)),
        sa.Column('sent_at', sa.DateTime(timezone=True)),
        sa.Column('error_message', sa.Text()),
        sa.Column('reference_type', sa.String(length=50)),
        sa.Column('reference_id', sa.Integer()),
        *_timestamps(),
    )
    op.create_index('ix_notification_queue_id', 'notification_queue', ['id'])
    op.create_index('ix_notification_queue_recipient_id', 'notification_queue', ['recipient_id'])

    print("✓ [3c1f0a7d9b21] Created request workflow tables")


def downgrade() -> None:
    op.drop_table('notification_queue')
    op.drop_table('request_attachments')
    op.drop_table('request_events')
    op.drop_table('request_comments')
    op.drop_table('request_steps')
    op.drop_table('requests')
    op.drop_table('user_roles')
    op.drop_table('profiles')

    bind = op.get_bind()
    for enum in (EVENT_TYPE, COMMENT_VISIBILITY, STEP_STATUS, REQUEST_STATUS):
        enum.drop(bind, checkfirst=True)
