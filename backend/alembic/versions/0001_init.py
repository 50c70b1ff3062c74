"""init

Revision ID: 0001_init
Revises:
Create Date: 2025-11-10
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _inspector():
    from sqlalchemy import inspect as sa_inspect
    return sa_inspect(op.get_bind())


def upgrade() -> None:
    existing_tables = set(_inspector().get_table_names())

    if "profiles" not in existing_tables:
        op.create_table(
            "profiles",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("name", sa.String(), nullable=False, server_default="User"),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
        op.create_index("ix_profiles_id", "profiles", ["id"])
        op.create_index("ix_profiles_email", "profiles", ["email"])

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
            sa.Column("role", sa.Enum("student", "staff", name="app_role"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.UniqueConstraint("user_id", "role", name="uq_user_roles_user_id_role"),
        )
        op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])

    if "tickets" not in existing_tables:
        op.create_table(
            "tickets",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("student_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
            sa.Column("subject", sa.String(), nullable=False),
            sa.Column("status", sa.Enum("pending", "resolved", name="ticket_status"), nullable=False, server_default="pending"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
        op.create_index("ix_tickets_student_id", "tickets", ["student_id"])
        op.create_index("ix_tickets_created_at", "tickets", ["created_at"])

    if "messages" not in existing_tables:
        op.create_table(
            "messages",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("ticket_id", sa.String(36), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
            sa.Column("sender_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
            sa.Column("message_type", sa.Enum("text", "voice", name="message_type"), nullable=False, server_default="text"),
            sa.Column("content", sa.Text(), nullable=True),
            sa.Column("transcript", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
        op.create_index("ix_messages_ticket_id", "messages", ["ticket_id"])
        op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
        op.create_index("ix_messages_created_at", "messages", ["created_at"])

    if "media_assets" not in existing_tables:
        op.create_table(
            "media_assets",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("message_id", sa.String(36), sa.ForeignKey("messages.id", ondelete="CASCADE"), nullable=False),
            sa.Column("storage_path", sa.String(), nullable=False, unique=True),
            sa.Column("file_type", sa.Enum("image", "pdf", name="file_type"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
        op.create_index("ix_media_assets_message_id", "media_assets", ["message_id"])


def downgrade() -> None:
    bind = op.get_bind()
    op.drop_table("media_assets")
    op.drop_table("messages")
    op.drop_table("tickets")
    op.drop_table("user_roles")
    op.drop_table("profiles")
    if bind.dialect.name == "postgresql":
        for name in ("file_type", "message_type", "ticket_status", "app_role"):
            op.execute(sa.text(f"DROP TYPE IF EXISTS {name}"))
