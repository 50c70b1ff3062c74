"""ticket status pending/in_progress/completed

Revision ID: 0003_ticket_status_in_progress
Revises: 0002_security_audit_log
Create Date: 2025-11-15
"""

from alembic import op
import sqlalchemy as sa


revision = "0003_ticket_status_in_progress"
down_revision = "0002_security_audit_log"
branch_labels = None
depends_on = None


OLD_STATUS = sa.Enum("pending", "resolved", name="ticket_status")
NEW_STATUS = sa.Enum("pending", "in_progress", "completed", name="ticket_status")


def _index_names(table: str) -> set[str]:
    from sqlalchemy import inspect as sa_inspect
    return {idx["name"] for idx in sa_inspect(op.get_bind()).get_indexes(table)}


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute(sa.text("ALTER TYPE ticket_status RENAME TO ticket_status_old"))
        op.execute(sa.text("CREATE TYPE ticket_status AS ENUM ('pending', 'in_progress', 'completed')"))
        op.execute(
            sa.text(
                "ALTER TABLE tickets "
                "ALTER COLUMN status DROP DEFAULT, "
                "ALTER COLUMN status TYPE ticket_status USING "
                "CASE WHEN status::text = 'resolved' THEN 'completed'::ticket_status "
                "ELSE status::text::ticket_status END, "
                "ALTER COLUMN status SET DEFAULT 'pending'::ticket_status"
            )
        )
        op.execute(sa.text("DROP TYPE ticket_status_old"))
    else:
        with op.batch_alter_table("tickets") as batch:
            batch.alter_column(
                "status",
                existing_type=OLD_STATUS,
                type_=sa.String(32),
                existing_nullable=False,
            )
        op.execute(sa.text("UPDATE tickets SET status = 'completed' WHERE status = 'resolved'"))
        with op.batch_alter_table("tickets") as batch:
            batch.alter_column("status", existing_type=sa.String(32), type_=NEW_STATUS, existing_nullable=False)

    if "ix_tickets_status" not in _index_names("tickets"):
        op.create_index("ix_tickets_status", "tickets", ["status"])


def downgrade() -> None:
    bind = op.get_bind()
    if "ix_tickets_status" in _index_names("tickets"):
        op.drop_index("ix_tickets_status", table_name="tickets")
    if bind.dialect.name == "postgresql":
        op.execute(sa.text("ALTER TYPE ticket_status RENAME TO ticket_status_new"))
        op.execute(sa.text("CREATE TYPE ticket_status AS ENUM ('pending', 'resolved')"))
        op.execute(
            sa.text(
                "ALTER TABLE tickets "
                "ALTER COLUMN status DROP DEFAULT, "
                "ALTER COLUMN status TYPE ticket_status USING "
                "CASE WHEN status::text = 'completed' THEN 'resolved'::ticket_status "
                "ELSE 'pending'::ticket_status END, "
                "ALTER COLUMN status SET DEFAULT 'pending'::ticket_status"
            )
        )
        op.execute(sa.text("DROP TYPE ticket_status_new"))
    else:
        with op.batch_alter_table("tickets") as batch:
            batch.alter_column("status", existing_type=NEW_STATUS, type_=sa.String(32), existing_nullable=False)
        op.execute(sa.text("UPDATE tickets SET status = 'resolved' WHERE status = 'completed'"))
        op.execute(sa.text("UPDATE tickets SET status = 'pending' WHERE status = 'in_progress'"))
        with op.batch_alter_table("tickets") as batch:
            batch.alter_column("status", existing_type=sa.String(32), type_=OLD_STATUS, existing_nullable=False)
