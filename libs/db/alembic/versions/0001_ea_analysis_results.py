# ruff: noqa: I001
"""Analysis results table.

Revision ID: 0001_ea_analysis_results
Revises: None
Create Date: 2026-10-17
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ea_analysis_results"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "ea_analysis_results",
        sa.Column("document_id", sa.String(length=128), primary_key=True),
        sa.Column("transactions", sa.JSON(), nullable=False),
        sa.Column("summary", sa.JSON(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "source IN ('model','pattern','amounts','demo')",
            name="ck_ea_analysis_results_source",
        ),
        sa.CheckConstraint("version >= 1", name="ck_ea_analysis_results_version"),
    )
    op.create_index(
        "ix_ea_analysis_results_updated_at",
        "ea_analysis_results",
        ["updated_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_ea_analysis_results_updated_at", table_name="ea_analysis_results")
    op.drop_table("ea_analysis_results")
