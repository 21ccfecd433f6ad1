"""add case number sequences and case number uniqueness

Revision ID: 8e4b2f6c1a57
Revises: 3c1e7a9b2d40
Create Date: 2026-10-05 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "8e4b2f6c1a57"
down_revision = "3c1e7a9b2d40"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "case_number_sequences",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_uid", sa.String(length=128), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_uid", "year", name="uq_case_number_sequences_owner_year"),
    )
    with op.batch_alter_table("law_cases") as batch_op:
        batch_op.create_unique_constraint("uq_law_cases_owner_case_number", ["owner_uid", "case_number"])


def downgrade() -> None:
    with op.batch_alter_table("law_cases") as batch_op:
        batch_op.drop_constraint("uq_law_cases_owner_case_number", type_="unique")
    op.drop_table("case_number_sequences")
