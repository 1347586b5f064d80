"""create chat_sessions and chat_messages tables

Revision ID: 8f4b2e6c0a13
Revises: 3c1d9a7e52f0
Create Date: 2026-10-12

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8f4b2e6c0a13"
down_revision: str | Sequence[str] | None = "3c1d9a7e52f0"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create chat_sessions and chat_messages tables."""
    op.create_table(
        "chat_sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("public_id", sa.String(36), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=True),
        sa.Column("agent_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("priority", sa.String(10), nullable=False),
        sa.Column("initial_message", sa.Text(), nullable=True),
        sa.Column("current_page", sa.String(500), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("last_message_id", sa.Integer(), server_default="0", nullable=False),
        sa.Column("customer_read_id", sa.Integer(), server_default="0", nullable=False),
        sa.Column("agent_read_id", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("agent_joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("close_reason", sa.String(30), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["agent_id"], ["support_agents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_chat_sessions_public_id"),
        "chat_sessions",
        ["public_id"],
        unique=True,
    )
    op.create_index(
        op.f("ix_chat_sessions_customer_id"),
        "chat_sessions",
        ["customer_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_chat_sessions_tenant_id"),
        "chat_sessions",
        ["tenant_id"],
        unique=False,
    )
    op.create_index(
        "ix_chat_sessions_status_created_at",
        "chat_sessions",
        ["status", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_chat_sessions_agent_id_status",
        "chat_sessions",
        ["agent_id", "status"],
        unique=False,
    )

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=True),
        sa.Column("sender_type", sa.String(20), nullable=False),
        sa.Column("sender_name", sa.String(100), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("client_message_id", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["session_id"], ["chat_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id", "seq", name="uq_chat_messages_session_seq"),
        sa.UniqueConstraint(
            "session_id",
            "client_message_id",
            name="uq_chat_messages_session_client_message_id",
        ),
    )
    op.create_index(
        op.f("ix_chat_messages_session_id"),
        "chat_messages",
        ["session_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop chat_messages and chat_sessions tables."""
    op.drop_index(op.f("ix_chat_messages_session_id"), table_name="chat_messages")
    op.drop_table("chat_messages")
    op.drop_index("ix_chat_sessions_agent_id_status", table_name="chat_sessions")
    op.drop_index("ix_chat_sessions_status_created_at", table_name="chat_sessions")
    op.drop_index(op.f("ix_chat_sessions_tenant_id"), table_name="chat_sessions")
    op.drop_index(op.f("ix_chat_sessions_customer_id"), table_name="chat_sessions")
    op.drop_index(op.f("ix_chat_sessions_public_id"), table_name="chat_sessions")
    op.drop_table("chat_sessions")
