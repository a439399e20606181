"""
Results table extraction.

Reads the portal's search results table into ``ContractRecord`` objects.
Column order is fixed by the portal:

    identifier+description | type | status | amount | submission date | body

Two passes share the same row rules: the filtered pass keeps only
actionable statuses, the unfiltered pass keeps every valid row and feeds
status-change detection.
"""

from __future__ import annotations

import logging
from datetime import datetime

from lxml import etree
from lxml import html as lxml_html
from lxml.html import HtmlElement

from contractwatch.core.config.models import PortalConfig
from contractwatch.core.logging import LoggerLike

from .base import ContractRecord, ExtractionError, ExtractionResult, SkippedRow, utcnow
from .identifiers import split_contract_id

logger = logging.getLogger(__name__)

# Cells a row must carry to map onto the fixed column order
MIN_CELLS = 6


class ResultsTableExtractor:
    """Extract contract records from the rendered results page."""

    def __init__(
        self,
        portal: PortalConfig | None = None,
        log: LoggerLike | None = None,
    ):
        self.portal = portal or PortalConfig()
        self.log = log or logger
        self._allowed = {status.lower() for status in self.portal.allowed_statuses}

    @property
    def name(self) -> str:
        return "results_table"

    # =========================================================================
    # Public API
    # =========================================================================

    def extract(
        self,
        html: str,
        url: str | None = None,
        filtered: bool = True,
    ) -> ExtractionResult:
        """Extract contracts from a results page.

        Args:
            html: Rendered page HTML
            url: Source URL, for error context
            filtered: Keep only rows with an allowed status

        Returns:
            ExtractionResult with the kept contracts and skipped rows

        Raises:
            ExtractionError: If the page cannot be parsed or has no results table
        """
        table = self._find_table(html, url)
        result = ExtractionResult(filtered=filtered)

        rows = [self._read_row(tr) for tr in table.iter("tr")]
        result.row_count = len(rows)
        self.log.info(f"Found {len(rows)} rows in results table")

        # Rows without the full column set are dropped before the header check
        valid: list[tuple[int, list[str], str | None]] = []
        for index, (cells, link) in enumerate(rows):
            if len(cells) < MIN_CELLS:
                self.log.debug(f"Row {index} has insufficient cells ({len(cells)}), skipping")
                result.skipped.append(SkippedRow(index, "short", cells))
                continue
            valid.append((index, cells, link))

        scraped_at = utcnow()
        for position, (index, cells, link) in enumerate(valid):
            if position == 0 and self.is_header(cells):
                self.log.debug("Skipping header row")
                result.skipped.append(SkippedRow(index, "header", cells))
                continue

            contract = self._build_contract(cells, link, scraped_at)

            if filtered and not self.is_allowed_status(contract.status):
                self.log.info(f"Skipped contract (status: {contract.status}): {contract.id}")
                result.skipped.append(SkippedRow(index, "status", cells))
                continue

            self.log.debug(f"Extracted contract ({contract.status}): {contract.id}")
            result.contracts.append(contract)

        self.log.info(
            f"Extracted {len(result.contracts)} contracts"
            f"{'' if filtered else ' (all statuses)'}"
        )
        return result

    def extract_contracts(self, html: str, url: str | None = None) -> list[ContractRecord]:
        """Actionable contracts only (allowed statuses)."""
        return self.extract(html, url, filtered=True).contracts

    def extract_all(self, html: str, url: str | None = None) -> list[ContractRecord]:
        """Every valid row regardless of status."""
        return self.extract(html, url, filtered=False).contracts

    # =========================================================================
    # Row rules
    # =========================================================================

    def is_header(self, cells: list[str]) -> bool:
        """Whether any cell mentions a header keyword."""
        for cell in cells:
            lowered = cell.strip().lower()
            if any(keyword in lowered for keyword in self.portal.header_keywords):
                return True
        return False

    def is_allowed_status(self, status: str) -> bool:
        return status.strip().lower() in self._allowed

    def resolve_detail_link(self, href: str) -> str:
        """Turn a first-cell href into an absolute detail URL."""
        base = self.portal.base_url
        if href.startswith("#"):
            return self.portal.search_form_url
        if href.startswith("/"):
            return base + href
        if not href.startswith("http"):
            return base + "/" + href
        return href

    # =========================================================================
    # Helpers
    # =========================================================================

    def _find_table(self, html: str, url: str | None) -> HtmlElement:
        try:
            doc = lxml_html.fromstring(html)
        except (etree.ParserError, ValueError) as e:
            raise ExtractionError(f"Failed to parse HTML: {e}", url=url, cause=e) from e

        table_id = self.portal.results_table_id
        matches = doc.xpath("//*[@id=$table_id]", table_id=table_id)
        if not matches:
            raise ExtractionError(f"Could not find results table #{table_id}", url=url)
        return matches[0]

    def _read_row(self, tr: HtmlElement) -> tuple[list[str], str | None]:
        cells = tr.xpath(".//td")
        texts = [cell.text_content().strip() for cell in cells]
        link = self._first_cell_link(cells[0]) if cells else None
        return texts, link

    def _first_cell_link(self, cell: HtmlElement) -> str | None:
        anchors = cell.cssselect(f"a[href*='{self.portal.detail_link_marker}']")
        if not anchors:
            anchors = cell.cssselect("a")
        if not anchors:
            return None

        href = anchors[0].get("href")
        if href is None:
            return None
        return self.resolve_detail_link(href.strip())

    def _build_contract(
        self,
        cells: list[str],
        link: str | None,
        scraped_at: datetime,
    ) -> ContractRecord:
        contract_id, description = split_contract_id(cells[0])
        return ContractRecord(
            id=contract_id,
            description=description,
            contract_type=cells[1],
            status=cells[2],
            amount=cells[3],
            submission_date=cells[4],
            contracting_body=cells[5],
            link=link,
            scraped_at=scraped_at,
        )
