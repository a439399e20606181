"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create contracts and status_changes tables."""

    op.create_table(
        "contracts",
        sa.Column("id", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("contract_type", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("amount", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("submission_date", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("contracting_body", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("link", sa.String(length=2000), nullable=True),
        sa.Column("pliego_link", sa.String(length=2000), nullable=True),
        sa.Column("anuncio_link", sa.String(length=2000), nullable=True),
        sa.Column("scraped_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contracts_status", "contracts", ["status"])
    op.create_index("ix_contracts_scraped_at", "contracts", ["scraped_at"])

    op.create_table(
        "status_changes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("contract_id", sa.String(length=200), nullable=False),
        sa.Column("old_status", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("new_status", sa.String(length=100), nullable=False),
        sa.Column("changed_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_status_changes_contract_id", "status_changes", ["contract_id"])
    op.create_index("ix_status_changes_changed_at", "status_changes", ["changed_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("status_changes")
    op.drop_table("contracts")
