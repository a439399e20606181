"""
ContractWatch - Terminal-first monitor for Spanish public-procurement listings.

A CLI tool that drives the state contracting portal's search form for one
CPV code, extracts the listed contracts, tracks status transitions, and
stores everything in a local database.
"""

__version__ = "0.1.0"
__app_name__ = "contractwatch"
