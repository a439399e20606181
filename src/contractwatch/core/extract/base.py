"""
Extraction data structures.

Defines the contract record produced from a results table and the
per-pass extraction result.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored by the persistence layer."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class ContractRecord:
    """One procurement listing as read from the portal."""

    id: str
    description: str = ""
    contract_type: str = ""
    status: str = ""
    amount: str = ""  # Currency text as shown, never parsed
    submission_date: str = ""
    contracting_body: str = ""

    # Links
    link: str | None = None
    pliego_link: str | None = None
    anuncio_link: str | None = None

    scraped_at: datetime = field(default_factory=utcnow)

    @property
    def has_documents(self) -> bool:
        """Both document links are known."""
        return bool(self.pliego_link and self.anuncio_link)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class SkippedRow:
    """A table row excluded from a pass, kept for diagnostics."""

    row_index: int
    reason: str  # header, short, status
    cells: list[str] = field(default_factory=list)


@dataclass
class ExtractionResult:
    """Result of one extraction pass over a results table."""

    contracts: list[ContractRecord] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)
    row_count: int = 0
    filtered: bool = True

    @property
    def ok(self) -> bool:
        return len(self.contracts) > 0

    def skipped_for(self, reason: str) -> list[SkippedRow]:
        return [row for row in self.skipped if row.reason == reason]


class ExtractionError(Exception):
    """Results table missing or document could not be parsed."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.url = url
        self.cause = cause
