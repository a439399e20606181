"""Results-table extraction and contract identifier heuristics."""

from .base import ContractRecord, ExtractionError, ExtractionResult, SkippedRow
from .identifiers import DESCRIPTION_STARTERS, ID_PATTERNS, split_contract_id
from .results_table import ResultsTableExtractor

__all__ = [
    "ContractRecord",
    "ExtractionError",
    "ExtractionResult",
    "SkippedRow",
    "DESCRIPTION_STARTERS",
    "ID_PATTERNS",
    "split_contract_id",
    "ResultsTableExtractor",
]
