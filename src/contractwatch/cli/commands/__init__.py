"""CLI command modules."""

from . import contracts, db, notify, schedule, scrape

__all__ = [
    "contracts",
    "db",
    "notify",
    "schedule",
    "scrape",
]
