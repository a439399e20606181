"""
SQLAlchemy ORM models for ContractWatch.

Defines the database schema:
- Contracts: current record for every identifier ever seen
- StatusChanges: append-only history of status transitions
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


# =============================================================================
# Contract Model
# =============================================================================


class Contract(Base, TimestampMixin):
    """A procurement listing keyed by its portal file number."""

    __tablename__ = "contracts"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contract_type: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    amount: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    submission_date: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    contracting_body: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    # URLs
    link: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    pliego_link: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    anuncio_link: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    scraped_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Contract(id='{self.id}', status='{self.status}')>"


# =============================================================================
# Status Change Model
# =============================================================================


class StatusChange(Base):
    """One observed status transition. Rows are never updated."""

    __tablename__ = "status_changes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Plain reference: history survives contract deletion
    contract_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    old_status: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    new_status: Mapped[str] = mapped_column(String(100), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_status_changes_changed_at", "changed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<StatusChange(contract_id='{self.contract_id}', "
            f"'{self.old_status}' -> '{self.new_status}')>"
        )
