"""
Document-link enhancer.

Visits contract detail pages to recover the Pliego (tender conditions)
and Anuncio (tender notice) document links. Document rows on the detail
page carry a ``td.tipoDocumento`` cell naming the document type and an
``a.celdaTam2`` link to the document servlet.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence

from lxml import etree
from lxml import html as lxml_html

from contractwatch.core.backends.base import Navigator
from contractwatch.core.config.models import PortalConfig, TimingProfile
from contractwatch.core.extract.base import ContractRecord
from contractwatch.core.logging import LoggerLike

if TYPE_CHECKING:
    from contractwatch.persistence.store import ContractStore

logger = logging.getLogger(__name__)


class EnhancementWarning(UserWarning):
    """Document links for one contract could not be retrieved."""

    def __init__(
        self,
        message: str,
        contract_id: str,
        url: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.contract_id = contract_id
        self.url = url
        self.cause = cause


@dataclass
class EnhancementResult:
    """Outcome of one enhancement pass."""

    contracts: list[ContractRecord] = field(default_factory=list)
    processed: int = 0
    skipped: int = 0
    enhanced: int = 0
    warnings: list[EnhancementWarning] = field(default_factory=list)


def parse_document_links(
    html: str,
    portal: PortalConfig | None = None,
) -> tuple[str | None, str | None]:
    """Find the Pliego and Anuncio links on a detail page.

    The first link of each category wins.

    Returns:
        ``(pliego_link, anuncio_link)``; either may be None
    """
    portal = portal or PortalConfig()

    try:
        doc = lxml_html.fromstring(html)
    except (etree.ParserError, ValueError) as e:
        logger.warning(f"Failed to parse contract detail HTML: {e}")
        return None, None

    pliego: str | None = None
    anuncio: str | None = None

    for anchor in doc.cssselect(f"a.{portal.document_link_class}"):
        href = anchor.get("href")
        if not href or portal.document_endpoint_marker not in href:
            continue

        row = next(anchor.iterancestors("tr"), None)
        if row is None:
            continue

        type_cells = row.cssselect(f"td.{portal.document_type_class}")
        if not type_cells:
            continue

        document_type = type_cells[0].text_content().strip().lower()
        logger.debug(f"Found document link with type: {document_type!r}")

        if pliego is None and any(m in document_type for m in portal.pliego_markers):
            pliego = href
        if anuncio is None and any(m in document_type for m in portal.anuncio_markers):
            anuncio = href

        if pliego and anuncio:
            break

    return pliego, anuncio


class DocumentLinkEnhancer:
    """Fill in document links by visiting each contract's detail page.

    Contracts are visited one at a time. Stored links are copied onto the
    contract first; contracts already holding both are not visited. A
    failed visit leaves the contract with whatever links it had.
    """

    def __init__(
        self,
        navigator: Navigator,
        store: "ContractStore | None" = None,
        portal: PortalConfig | None = None,
        timing: TimingProfile | None = None,
        *,
        log: LoggerLike | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.navigator = navigator
        self.store = store
        self.portal = portal or PortalConfig()
        self.timing = timing or TimingProfile.headless()
        self.log = log or logger
        self._sleep = sleep

    async def enhance(self, contracts: Sequence[ContractRecord]) -> EnhancementResult:
        """Enhance contracts in place and return the pass summary."""
        result = EnhancementResult(contracts=list(contracts))
        self.log.info(f"Starting document link enhancement for {len(contracts)} contracts")

        for contract in result.contracts:
            if not contract.link:
                self.log.debug(f"No detail link for {contract.id}, skipping")
                result.skipped += 1
                continue

            if self._copy_stored_links(contract):
                self.log.debug(f"Contract {contract.id} already has document links, skipping")
                result.skipped += 1
                continue

            result.processed += 1
            try:
                pliego, anuncio = await self.fetch_links(contract.link)
            except Exception as e:
                warning = EnhancementWarning(
                    f"Failed to extract document links for {contract.id}: {e}",
                    contract_id=contract.id,
                    url=contract.link,
                    cause=e,
                )
                self.log.warning(warning.message)
                result.warnings.append(warning)
                continue

            changed = False
            if pliego and pliego != contract.pliego_link:
                contract.pliego_link = pliego
                changed = True
            if anuncio and anuncio != contract.anuncio_link:
                contract.anuncio_link = anuncio
                changed = True
            if changed:
                result.enhanced += 1

            self.log.info(
                f"Contract {contract.id} document links - "
                f"Pliego: {'yes' if contract.pliego_link else 'no'}, "
                f"Anuncio: {'yes' if contract.anuncio_link else 'no'}"
            )

        self.log.info(
            f"Document link enhancement completed - "
            f"Processed: {result.processed}, Skipped: {result.skipped}"
        )
        return result

    async def fetch_links(self, url: str) -> tuple[str | None, str | None]:
        """Load one detail page and parse its document links."""
        await self.navigator.navigate(url)
        if self.timing.detail_page_settle > 0:
            await self._sleep(self.timing.detail_page_settle)
        html = await self.navigator.get_page_content()
        return parse_document_links(html, self.portal)

    def _copy_stored_links(self, contract: ContractRecord) -> bool:
        """Copy stored links onto ``contract``; True if both are now known."""
        if self.store is None:
            return contract.has_documents

        try:
            stored = self.store.get_contract(contract.id)
        except Exception as e:
            self.log.warning(f"Failed to check existing contract {contract.id}: {e}")
            return contract.has_documents

        if stored is not None:
            if stored.pliego_link and not contract.pliego_link:
                contract.pliego_link = stored.pliego_link
            if stored.anuncio_link and not contract.anuncio_link:
                contract.anuncio_link = stored.anuncio_link

        return contract.has_documents
