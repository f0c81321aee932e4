"""Notification pipeline tables: users (directory), user_devices, notification_preferences, notifications.

- user_devices: one row per Expo token (unique); is_active=false rows kept for audit.
- notification_preferences: one row per user, all categories default true.
- notifications: durable history, one row per recipient per request.
Indexes support: "active tokens for users", "my recent notifications", "my unread".
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(256), nullable=True),
        sa.Column("group_id", sa.String(64), nullable=True),
        sa.Column("role", sa.String(32), nullable=False, server_default="member"),
    )
    op.create_index("ix_users_group_id", "users", ["group_id"], unique=False)

    op.create_table(
        "user_devices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("expo_push_token", sa.String(256), nullable=False),
        sa.Column("device_name", sa.String(256), nullable=True),
        sa.Column("device_os", sa.String(16), nullable=True),
        sa.Column("app_version", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint("device_os IN ('ios', 'android')", name="ck_user_devices_device_os"),
    )
    op.create_index("ix_user_devices_expo_push_token", "user_devices", ["expo_push_token"], unique=True)
    op.create_index("ix_user_devices_user_id", "user_devices", ["user_id"], unique=False)
    op.create_index("ix_user_devices_is_active", "user_devices", ["is_active"], unique=False)

    op.create_table(
        "notification_preferences",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("ride_requests", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("ride_status_updates", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("event_updates", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("dd_request_updates", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("dd_session_reminders", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sep_failure_alerts", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("dd_revocation_alerts", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON().with_variant(JSONB(), "postgresql"), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False, server_default="normal"),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "priority IN ('low', 'normal', 'high', 'critical')", name="ck_notifications_priority"
        ),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)
    op.create_index("ix_notifications_type", "notifications", ["type"], unique=False)
    op.create_index(
        "ix_notifications_user_read_created",
        "notifications",
        ["user_id", "read", "created_at"],
        unique=False,
        postgresql_ops={"created_at": "DESC"},
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_user_read_created", table_name="notifications")
    op.drop_index("ix_notifications_type", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("notification_preferences")
    op.drop_index("ix_user_devices_is_active", table_name="user_devices")
    op.drop_index("ix_user_devices_user_id", table_name="user_devices")
    op.drop_index("ix_user_devices_expo_push_token", table_name="user_devices")
    op.drop_table("user_devices")
    op.drop_index("ix_users_group_id", table_name="users")
    op.drop_table("users")
