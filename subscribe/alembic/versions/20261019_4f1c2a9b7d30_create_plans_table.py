"""create plans table

Revision ID: 4f1c2a9b7d30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "4f1c2a9b7d30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "plans",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("plan_type", sa.String(length=20), nullable=False, server_default="monthly"),
        sa.Column("plan_day_interval", sa.Integer(), nullable=True),
        sa.Column("plan_month_interval", sa.Integer(), nullable=True),
        sa.Column("plan_month_day", sa.Integer(), nullable=True),
        sa.Column("plan_monthly_behavior", sa.String(length=30), nullable=True),
        sa.Column("plan_year_interval", sa.Integer(), nullable=True),
        sa.Column("renewal_period", sa.Integer(), nullable=True),
        sa.Column("price", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("setup_price", sa.Numeric(12, 4), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column(
            "is_custom_membership", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("membership_price", sa.Numeric(12, 4), nullable=True),
        sa.Column("trial_days", sa.Integer(), nullable=True),
        sa.Column("grace_days", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index(op.f("ix_plans_code"), "plans", ["code"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_plans_code"), table_name="plans")
    op.drop_table("plans")
