"""
Repository pattern for database operations.

Provides clean abstractions for CRUD operations on contracts and their
status history. Repositories never commit; the caller owns the
transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from .models import Contract, StatusChange, utcnow

if TYPE_CHECKING:
    from contractwatch.core.extract.base import ContractRecord


# Columns copied verbatim from an extracted record
RECORD_FIELDS = (
    "description",
    "contract_type",
    "status",
    "amount",
    "submission_date",
    "contracting_body",
    "link",
    "scraped_at",
)

# Document links are only ever filled in, never cleared
LINK_FIELDS = ("pliego_link", "anuncio_link")


# =============================================================================
# Contract Repository
# =============================================================================


class ContractRepository:
    """Repository for Contract CRUD operations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, contract_id: str) -> Contract | None:
        """Get contract by identifier."""
        return self.session.get(Contract, contract_id)

    def existing_ids(self, contract_ids: Iterable[str]) -> set[str]:
        """Subset of ``contract_ids`` already stored."""
        ids = list(dict.fromkeys(contract_ids))
        if not ids:
            return set()
        stmt = select(Contract.id).where(Contract.id.in_(ids))
        return set(self.session.execute(stmt).scalars().all())

    def list_all(self) -> Sequence[Contract]:
        """All contracts, most recently scraped first."""
        stmt = select(Contract).order_by(Contract.scraped_at.desc(), Contract.id)
        return self.session.execute(stmt).scalars().all()

    def count(self) -> int:
        stmt = select(func.count()).select_from(Contract)
        return self.session.execute(stmt).scalar_one()

    def upsert(self, record: "ContractRecord") -> tuple[Contract, str | None]:
        """Create or update a contract from an extracted record.

        Returns:
            Tuple of (contract, previous_status). previous_status is None
            when the contract was created.
        """
        existing = self.get(record.id)

        if existing is None:
            contract = Contract(id=record.id)
            for field in RECORD_FIELDS + LINK_FIELDS:
                setattr(contract, field, getattr(record, field))
            self.session.add(contract)
            # Visible to later lookups in the same batch
            self.session.flush()
            return contract, None

        previous_status = existing.status
        for field in RECORD_FIELDS:
            setattr(existing, field, getattr(record, field))
        for field in LINK_FIELDS:
            value = getattr(record, field)
            if value:
                setattr(existing, field, value)
        existing.updated_at = utcnow()

        return existing, previous_status

    def set_status(self, contract: Contract, status: str) -> None:
        contract.status = status
        contract.updated_at = utcnow()

    def delete(self, contract_id: str) -> bool:
        """Delete one contract. Returns False if it did not exist."""
        contract = self.get(contract_id)
        if contract is None:
            return False
        self.session.delete(contract)
        return True

    def delete_all(self) -> int:
        """Delete every contract; status history is kept."""
        result = self.session.execute(delete(Contract))
        return result.rowcount or 0

    def with_status_changes_since(self, since: datetime) -> Sequence[Contract]:
        """Distinct contracts with a status change at or after ``since``."""
        changed = (
            select(StatusChange.contract_id)
            .where(StatusChange.changed_at >= since)
            .distinct()
        )
        stmt = (
            select(Contract)
            .where(Contract.id.in_(changed))
            .order_by(Contract.scraped_at.desc(), Contract.id)
        )
        return self.session.execute(stmt).scalars().all()


# =============================================================================
# Status Change Repository
# =============================================================================


class StatusChangeRepository:
    """Repository for the append-only status history."""

    def __init__(self, session: Session):
        self.session = session

    def record(self, contract_id: str, old_status: str, new_status: str) -> StatusChange:
        change = StatusChange(
            contract_id=contract_id,
            old_status=old_status,
            new_status=new_status,
            changed_at=utcnow(),
        )
        self.session.add(change)
        return change

    def for_contract(self, contract_id: str) -> Sequence[StatusChange]:
        stmt = (
            select(StatusChange)
            .where(StatusChange.contract_id == contract_id)
            .order_by(StatusChange.changed_at.desc(), StatusChange.id.desc())
        )
        return self.session.execute(stmt).scalars().all()

    def since(self, since: datetime) -> Sequence[StatusChange]:
        stmt = (
            select(StatusChange)
            .where(StatusChange.changed_at >= since)
            .order_by(StatusChange.changed_at.desc(), StatusChange.id.desc())
        )
        return self.session.execute(stmt).scalars().all()

    def all(self) -> Sequence[StatusChange]:
        stmt = select(StatusChange).order_by(
            StatusChange.changed_at.desc(), StatusChange.id.desc()
        )
        return self.session.execute(stmt).scalars().all()
