"""add law case tables

Revision ID: 3c1e7a9b2d40
Revises:
Create Date: 2026-09-28 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c1e7a9b2d40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "law_clients",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_uid", sa.String(length=128), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=60), nullable=True),
        sa.Column("client_type", sa.String(length=30), nullable=False, server_default="individual"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_law_clients_scope", "law_clients", ["owner_uid", "organization_id"])

    op.create_table(
        "law_cases",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_uid", sa.String(length=128), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("case_number", sa.String(length=40), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("case_type", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
        sa.Column("client_id", sa.String(length=36), nullable=False),
        sa.Column("assigned_to_id", sa.String(length=36), nullable=True),
        sa.Column("filing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_hearing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["law_clients.id"]),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_law_cases_scope_status", "law_cases", ["owner_uid", "organization_id", "status"])
    op.create_index("ix_law_cases_scope_created", "law_cases", ["owner_uid", "organization_id", "created_at"])
    op.create_index("ix_law_cases_client_id", "law_cases", ["client_id"])

    op.create_table(
        "law_documents",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_uid", sa.String(length=128), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("case_id", sa.String(length=36), nullable=True),
        sa.Column("file_name", sa.String(length=300), nullable=False),
        sa.Column("file_url", sa.String(length=1000), nullable=True),
        sa.Column("file_type", sa.String(length=20), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("document_type", sa.String(length=40), nullable=False),
        sa.Column("uploaded_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["case_id"], ["law_cases.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["uploaded_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_law_documents_case_created", "law_documents", ["case_id", "created_at"])

    op.create_table(
        "law_tasks",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_uid", sa.String(length=128), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("case_id", sa.String(length=36), nullable=True),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("priority", sa.String(length=20), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_to_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["case_id"], ["law_cases.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_law_tasks_case_created", "law_tasks", ["case_id", "created_at"])

    op.create_table(
        "law_events",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_uid", sa.String(length=128), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("case_id", sa.String(length=36), nullable=True),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("event_type", sa.String(length=40), nullable=False),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(length=300), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["case_id"], ["law_cases.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_law_events_case_event_date", "law_events", ["case_id", "event_date"])

    op.create_table(
        "law_invoices",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_uid", sa.String(length=128), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("case_id", sa.String(length=36), nullable=True),
        sa.Column("invoice_number", sa.String(length=40), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["case_id"], ["law_cases.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_law_invoices_case_created", "law_invoices", ["case_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_law_invoices_case_created", table_name="law_invoices")
    op.drop_table("law_invoices")
    op.drop_index("ix_law_events_case_event_date", table_name="law_events")
    op.drop_table("law_events")
    op.drop_index("ix_law_tasks_case_created", table_name="law_tasks")
    op.drop_table("law_tasks")
    op.drop_index("ix_law_documents_case_created", table_name="law_documents")
    op.drop_table("law_documents")
    op.drop_index("ix_law_cases_client_id", table_name="law_cases")
    op.drop_index("ix_law_cases_scope_created", table_name="law_cases")
    op.drop_index("ix_law_cases_scope_status", table_name="law_cases")
    op.drop_table("law_cases")
    op.drop_index("ix_law_clients_scope", table_name="law_clients")
    op.drop_table("law_clients")
    op.drop_table("users")
