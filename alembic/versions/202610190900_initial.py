"""initial ledger schema

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def _ledger_type() -> sa.Enum:
    return sa.Enum("REVENUE", "EXPENDITURE", name="ledgertype")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", _ledger_type(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_categories_user_type", "categories", ["user_id", "type"])

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_budget_user"),
    )

    op.create_table(
        "expenditure_ratios",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("fixed_percent", sa.Integer(), nullable=False),
        sa.Column("variable_percent", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_expenditure_ratio_user"),
        sa.CheckConstraint(
            "fixed_percent + variable_percent = 100",
            name="ck_expenditure_ratio_sum",
        ),
    )

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", _ledger_type(), nullable=False),
        sa.Column("content", sa.String(length=200), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category_name", sa.String(length=100), nullable=False),
        sa.Column("payment_method", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_ledger_entries_user_date", "ledger_entries", ["user_id", "date"]
    )

    op.create_table(
        "asset_goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "date", name="uq_asset_goal_user_date"),
    )

    op.create_table(
        "money_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_money_logs_user_date", "money_logs", ["user_id", "date"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "money_log_id",
            sa.Integer(),
            sa.ForeignKey("money_logs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.String(length=500), nullable=False),
        sa.Column("store_filename", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "money_log_id", "position", name="uq_attachment_log_position"
        ),
    )


def downgrade() -> None:
    op.drop_table("attachments")
    op.drop_index("ix_money_logs_user_date", table_name="money_logs")
    op.drop_table("money_logs")
    op.drop_table("asset_goals")
    op.drop_index("ix_ledger_entries_user_date", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_table("expenditure_ratios")
    op.drop_table("budgets")
    op.drop_index("ix_categories_user_type", table_name="categories")
    op.drop_table("categories")
    sa.Enum(name="ledgertype").drop(op.get_bind(), checkfirst=True)
