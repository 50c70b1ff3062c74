"""admin role and security audit log

Revision ID: 0002_security_audit_log
Revises: 0001_init
Create Date: 2025-11-11
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_security_audit_log"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def _table_names() -> set[str]:
    from sqlalchemy import inspect as sa_inspect
    return set(sa_inspect(op.get_bind()).get_table_names())


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute(sa.text("ALTER TYPE app_role ADD VALUE IF NOT EXISTS 'admin'"))
    else:
        with op.batch_alter_table("user_roles") as batch:
            batch.alter_column(
                "role",
                existing_type=sa.Enum("student", "staff", name="app_role"),
                type_=sa.Enum("student", "staff", "admin", name="app_role"),
                existing_nullable=False,
            )

    if "security_audit_log" not in _table_names():
        op.create_table(
            "security_audit_log",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("user_id", sa.String(36), nullable=True),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("details", sa.JSON(), nullable=True),
            sa.Column("ip_address", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
        op.create_index("ix_security_audit_log_user_id", "security_audit_log", ["user_id"])
        op.create_index("ix_security_audit_log_action", "security_audit_log", ["action"])
        op.create_index("ix_security_audit_log_created_at", "security_audit_log", ["created_at"])


def downgrade() -> None:
    if "security_audit_log" in _table_names():
        op.drop_table("security_audit_log")
    # Postgres cannot drop a single enum value; admin stays in app_role there.
    if op.get_bind().dialect.name != "postgresql":
        op.execute(sa.text("DELETE FROM user_roles WHERE role = 'admin'"))
        with op.batch_alter_table("user_roles") as batch:
            batch.alter_column(
                "role",
                existing_type=sa.Enum("student", "staff", "admin", name="app_role"),
                type_=sa.Enum("student", "staff", name="app_role"),
                existing_nullable=False,
            )
