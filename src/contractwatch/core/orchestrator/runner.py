"""
Monitor run orchestrator.

Coordinates one complete run:
navigate → extract → enhance → detect changes → persist → notify.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import uuid4

from contractwatch.core.backends.base import BackendError, Navigator
from contractwatch.core.backends.playwright_backend import PlaywrightBackend
from contractwatch.core.config.models import AppConfig
from contractwatch.core.enhance.documents import DocumentLinkEnhancer
from contractwatch.core.extract.base import ContractRecord, ExtractionError, utcnow
from contractwatch.core.extract.results_table import ResultsTableExtractor
from contractwatch.core.logging import ContextualLogger, get_contextual_logger
from contractwatch.core.navigation.state_machine import SearchNavigator
from contractwatch.notify.mailer import EmailNotifier, NotificationError
from contractwatch.persistence.db import init_db
from contractwatch.persistence.store import ContractStore, PersistenceError, StatusChangeRecord

logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    """Statistics for a monitor run."""

    run_id: str = ""
    mode: str = ""

    contracts_found: int = 0  # Filtered, actionable
    contracts_all: int = 0  # Every valid row
    contracts_new: int = 0
    contracts_enhanced: int = 0
    contracts_stored: int = 0
    notified: bool = False
    results_found: bool = False

    new_contracts: list[ContractRecord] = field(default_factory=list)
    status_changes: list[StatusChangeRecord] = field(default_factory=list)
    recent_changes: list[StatusChangeRecord] = field(default_factory=list)

    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def duration_seconds(self) -> float | None:
        """Get run duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "mode": self.mode,
            "contracts_found": self.contracts_found,
            "contracts_all": self.contracts_all,
            "contracts_new": self.contracts_new,
            "contracts_enhanced": self.contracts_enhanced,
            "contracts_stored": self.contracts_stored,
            "status_changes": len(self.status_changes),
            "notified": self.notified,
            "errors_count": len(self.errors),
            "duration_seconds": self.duration_seconds,
        }


class MonitorRunner:
    """Orchestrates one monitoring run.

    Coordinates:
    - Browser backend creation and teardown
    - The search-form state machine
    - Filtered and unfiltered extraction
    - Document link enhancement
    - Status change detection and persistence
    - New-contract notification
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        store: ContractStore | None = None,
        navigator: Navigator | None = None,
        notifier: EmailNotifier | None = None,
        enhance: bool | None = None,
        notify: bool = True,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Application configuration
            store: Contract store (default: the configured database)
            navigator: Navigation backend (default: Playwright from config)
            notifier: E-mail notifier (default: from config)
            enhance: Visit detail pages for document links (overrides config)
            notify: Send the new-contracts e-mail
        """
        self.config = config or AppConfig()
        if store is None:
            init_db(self.config.database.url, echo=self.config.database.echo)
            store = ContractStore()
        self.store = store
        self.navigator = navigator
        self.notifier = notifier or EmailNotifier(self.config.notifier)
        self.enhance = self.config.enhance_documents if enhance is None else enhance
        self.notify = notify
        self._sleep = sleep
        self._clock = clock

        self.run_id = uuid4().hex[:12]
        self.log: ContextualLogger = get_contextual_logger(
            "runner",
            mode=self.config.browser.mode.value,
            run_id=self.run_id,
        )

    def _create_backend(self) -> Navigator:
        self.log.info(f"Using PlaywrightBackend ({self.config.browser.mode.value})")
        return PlaywrightBackend(self.config.browser)

    async def run(self) -> RunStats:
        """Execute a complete monitoring run.

        Navigation, primary extraction and the final save are fatal; every
        other stage degrades to a warning.

        Returns:
            RunStats with execution statistics
        """
        stats = RunStats(run_id=self.run_id, mode=self.config.browser.mode.value)
        navigator = self.navigator or self._create_backend()

        try:
            await self._execute(navigator, stats)
        except Exception as e:
            stats.errors.append(str(e))
            self.log.exception(f"Monitor run failed: {e}")
        finally:
            stats.finished_at = utcnow()
            await navigator.close()

        return stats

    async def _execute(self, navigator: Navigator, stats: RunStats) -> None:
        cfg = self.config
        timing = cfg.browser.effective_timing

        # Navigate to results
        machine = SearchNavigator(
            navigator,
            cfg.portal,
            timing,
            log=self.log.getChild("navigation"),
            capture_steps=cfg.browser.screenshots_on_steps,
            sleep=self._sleep,
            clock=self._clock,
        )
        outcome = await machine.run()
        stats.results_found = outcome.results_found
        html = await navigator.get_page_content()

        # Extract
        extractor = ResultsTableExtractor(cfg.portal, log=self.log.getChild("extract"))
        contracts = extractor.extract_contracts(html, cfg.portal.search_form_url)
        stats.contracts_found = len(contracts)

        try:
            all_contracts = extractor.extract_all(html, cfg.portal.search_form_url)
        except ExtractionError as e:
            self._warn(stats, f"Failed to extract all contracts for status check: {e.message}")
            all_contracts = []
        stats.contracts_all = len(all_contracts)

        # Enhance
        if self.enhance and contracts:
            enhancer = DocumentLinkEnhancer(
                navigator,
                self.store,
                cfg.portal,
                timing,
                log=self.log.getChild("enhance"),
                sleep=self._sleep,
            )
            result = await enhancer.enhance(contracts)
            contracts = result.contracts
            stats.contracts_enhanced = result.enhanced
            stats.warnings.extend(w.message for w in result.warnings)

        # Detect changes
        try:
            stats.status_changes.extend(self.store.check_and_update_status_changes(all_contracts))
        except PersistenceError as e:
            self._warn(stats, f"Failed to check status changes: {e.message}")

        new_contracts = self.store.get_new_contracts(contracts)
        stats.new_contracts = new_contracts
        stats.contracts_new = len(new_contracts)

        # Persist
        stats.status_changes.extend(self.store.save_contracts(contracts))

        # Notify
        if self.notify and new_contracts:
            await self._notify(new_contracts, stats)

        # Report
        stats.contracts_stored = self.store.count()
        stats.recent_changes = self.store.get_recent_status_changes()
        self.log.info(
            f"Run complete: {stats.contracts_found} found, {stats.contracts_new} new, "
            f"{stats.contracts_stored} stored, {len(stats.recent_changes)} recent status changes"
        )

    async def _notify(self, contracts: list[ContractRecord], stats: RunStats) -> None:
        if not self.notifier.is_configured:
            self._warn(stats, "E-mail notifier not configured, skipping notification")
            return

        try:
            # smtplib blocks; keep the event loop free
            stats.notified = await asyncio.to_thread(self.notifier.send_new_contracts, contracts)
        except NotificationError as e:
            self._warn(stats, f"Failed to send notification: {e.message}")

    def _warn(self, stats: RunStats, message: str) -> None:
        stats.warnings.append(message)
        self.log.warning(message)

    async def test_connection(self) -> bool:
        """Load the search form once and report whether it worked."""
        navigator = self.navigator or self._create_backend()
        machine = SearchNavigator(
            navigator,
            self.config.portal,
            self.config.browser.effective_timing,
            log=self.log.getChild("navigation"),
            sleep=self._sleep,
            clock=self._clock,
        )

        try:
            await machine.load_form()
        except BackendError as e:
            self.log.error(f"Connection test failed: {e.message}")
            return False
        finally:
            await navigator.close()

        self.log.info("Connection test successful")
        return True
