"""
Contract store: the transactional change detector.

Every public operation runs in exactly one transaction. Failures roll the
transaction back and surface as ``PersistenceError``; nothing is written
partially.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generator, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from contractwatch.core.extract.base import ContractRecord
from contractwatch.core.logging import LoggerLike

from .db import create_db_engine, create_session_factory, get_session, get_session_factory
from .models import Base, Contract, StatusChange, utcnow
from .repo import ContractRepository, StatusChangeRepository

logger = logging.getLogger(__name__)

# Window for "recent" status changes
RECENT_WINDOW = timedelta(hours=24)


# =============================================================================
# Errors
# =============================================================================


class PersistenceError(Exception):
    """A storage transaction failed and was rolled back."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.cause = cause


class ContractNotFound(PersistenceError):
    """The requested contract does not exist."""

    def __init__(self, contract_id: str):
        super().__init__(f"Contract {contract_id} not found", operation="delete_contract")
        self.contract_id = contract_id


# =============================================================================
# Read Models
# =============================================================================


@dataclass(frozen=True)
class StatusChangeRecord:
    """A stored status transition."""

    id: int
    contract_id: str
    old_status: str
    new_status: str
    changed_at: datetime

    def __str__(self) -> str:
        return f"{self.contract_id}: {self.old_status} → {self.new_status}"


def _to_record(contract: Contract) -> ContractRecord:
    return ContractRecord(
        id=contract.id,
        description=contract.description,
        contract_type=contract.contract_type,
        status=contract.status,
        amount=contract.amount,
        submission_date=contract.submission_date,
        contracting_body=contract.contracting_body,
        link=contract.link,
        pliego_link=contract.pliego_link,
        anuncio_link=contract.anuncio_link,
        scraped_at=contract.scraped_at,
    )


def _to_change(change: StatusChange) -> StatusChangeRecord:
    return StatusChangeRecord(
        id=change.id,
        contract_id=change.contract_id,
        old_status=change.old_status,
        new_status=change.new_status,
        changed_at=change.changed_at,
    )


# =============================================================================
# Store
# =============================================================================


class ContractStore:
    """Persistence facade used by the runner, the enhancer and the CLI."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        log: LoggerLike | None = None,
    ):
        self._factory = session_factory or get_session_factory()
        self.log = log or logger

    @classmethod
    def from_url(
        cls,
        url: str,
        echo: bool = False,
        create_tables: bool = True,
        log: LoggerLike | None = None,
    ) -> "ContractStore":
        """Build a store on its own engine, e.g. ``sqlite://`` for tests."""
        engine = create_db_engine(url, echo=echo)
        if create_tables:
            Base.metadata.create_all(bind=engine)
        return cls(create_session_factory(engine), log=log)

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Session, None, None]:
        try:
            with get_session(self._factory) as session:
                yield session
        except SQLAlchemyError as e:
            self.log.error(f"Storage operation {operation} failed: {e}")
            raise PersistenceError(
                f"{operation} failed: {e}",
                operation=operation,
                cause=e,
            ) from e

    # =========================================================================
    # Change detection
    # =========================================================================

    def save_contracts(self, contracts: Sequence[ContractRecord]) -> list[StatusChangeRecord]:
        """Upsert a batch and record status transitions of known contracts.

        Returns:
            The status changes recorded for this batch
        """
        if not contracts:
            return []

        changes: list[StatusChange] = []
        with self._transaction("save_contracts") as session:
            contract_repo = ContractRepository(session)
            change_repo = StatusChangeRepository(session)

            for record in contracts:
                _, previous = contract_repo.upsert(record)
                if previous and previous != record.status:
                    changes.append(change_repo.record(record.id, previous, record.status))

            session.flush()
            result = [_to_change(change) for change in changes]

        self.log.info(f"Saved {len(contracts)} contracts to database")
        for change in result:
            self.log.info(f"Status change: {change}")
        return result

    def check_and_update_status_changes(
        self,
        contracts: Sequence[ContractRecord],
    ) -> list[StatusChangeRecord]:
        """Reconcile stored statuses against a full listing.

        Unknown identifiers are ignored; this never creates contracts.
        """
        if not contracts:
            return []

        changes: list[StatusChange] = []
        with self._transaction("check_and_update_status_changes") as session:
            contract_repo = ContractRepository(session)
            change_repo = StatusChangeRepository(session)

            for record in contracts:
                stored = contract_repo.get(record.id)
                if stored is None or stored.status == record.status:
                    continue

                old_status = stored.status
                contract_repo.set_status(stored, record.status)
                changes.append(change_repo.record(record.id, old_status, record.status))

            session.flush()
            result = [_to_change(change) for change in changes]

        for change in result:
            self.log.info(f"Status change: {change}")
        if result:
            self.log.info(f"Updated {len(result)} contract statuses")
        return result

    def get_new_contracts(self, contracts: Sequence[ContractRecord]) -> list[ContractRecord]:
        """Contracts whose identifier is not stored yet, in input order."""
        if not contracts:
            return []

        with self._transaction("get_new_contracts") as session:
            known = ContractRepository(session).existing_ids(c.id for c in contracts)

        new = [c for c in contracts if c.id not in known]
        self.log.info(f"Found {len(new)} new contracts")
        return new

    # =========================================================================
    # Queries
    # =========================================================================

    def get_contracts(self) -> list[ContractRecord]:
        with self._transaction("get_contracts") as session:
            return [_to_record(c) for c in ContractRepository(session).list_all()]

    def get_contract(self, contract_id: str) -> ContractRecord | None:
        with self._transaction("get_contract") as session:
            contract = ContractRepository(session).get(contract_id)
            return _to_record(contract) if contract is not None else None

    def count(self) -> int:
        with self._transaction("count") as session:
            return ContractRepository(session).count()

    def get_status_changes(self, contract_id: str) -> list[StatusChangeRecord]:
        with self._transaction("get_status_changes") as session:
            changes = StatusChangeRepository(session).for_contract(contract_id)
            return [_to_change(c) for c in changes]

    def get_recent_status_changes(self) -> list[StatusChangeRecord]:
        """Changes from the last 24 hours, newest first."""
        since = utcnow() - RECENT_WINDOW
        with self._transaction("get_recent_status_changes") as session:
            return [_to_change(c) for c in StatusChangeRepository(session).since(since)]

    def get_all_status_changes(self) -> list[StatusChangeRecord]:
        with self._transaction("get_all_status_changes") as session:
            return [_to_change(c) for c in StatusChangeRepository(session).all()]

    def get_contracts_with_status_changes(self) -> list[ContractRecord]:
        """Distinct contracts with a status change in the last 24 hours."""
        since = utcnow() - RECENT_WINDOW
        with self._transaction("get_contracts_with_status_changes") as session:
            contracts = ContractRepository(session).with_status_changes_since(since)
            return [_to_record(c) for c in contracts]

    # =========================================================================
    # Maintenance
    # =========================================================================

    def delete_contract(self, contract_id: str) -> None:
        """Delete one contract.

        Raises:
            ContractNotFound: If no contract has this identifier
        """
        with self._transaction("delete_contract") as session:
            if not ContractRepository(session).delete(contract_id):
                raise ContractNotFound(contract_id)
        self.log.info(f"Contract {contract_id} deleted from database")

    def delete_all_contracts(self) -> int:
        with self._transaction("delete_all_contracts") as session:
            deleted = ContractRepository(session).delete_all()
        self.log.info(f"Deleted {deleted} contracts from database")
        return deleted
