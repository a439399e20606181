"""
Navigation state machine for the portal's search form.

Drives one browser session through the fixed search workflow:

    START -> FORM_LOADED -> CODE_ENTERED -> FILTER_ADDED -> SUBMITTED -> RESULTS_READY

Every transition locates its control through an ordered locator strategy
list, performs one action and then settles for a fixed delay taken from
the active timing profile. The same routine serves visible and headless
browsers; only the timing profile differs.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from contractwatch.core.backends.base import BackendError, LocatorStrategy, Navigator
from contractwatch.core.config.models import PortalConfig, TimingProfile
from contractwatch.core.logging import LoggerLike

from .locators import (
    ADD_BUTTON_STRATEGIES,
    CPV_FIELD_STRATEGIES,
    SEARCH_BUTTON_STRATEGIES,
    locate_first,
)

logger = logging.getLogger(__name__)


class NavigationState(str, Enum):
    """States of the search workflow, in order."""

    START = "start"
    FORM_LOADED = "form_loaded"
    CODE_ENTERED = "code_entered"
    FILTER_ADDED = "filter_added"
    SUBMITTED = "submitted"
    RESULTS_READY = "results_ready"


_NEXT_STATE: dict[NavigationState, NavigationState] = {
    NavigationState.START: NavigationState.FORM_LOADED,
    NavigationState.FORM_LOADED: NavigationState.CODE_ENTERED,
    NavigationState.CODE_ENTERED: NavigationState.FILTER_ADDED,
    NavigationState.FILTER_ADDED: NavigationState.SUBMITTED,
    NavigationState.SUBMITTED: NavigationState.RESULTS_READY,
}


class NavigationError(BackendError):
    """A required control could not be reached; the run cannot continue."""

    def __init__(
        self,
        message: str,
        step: str | None = None,
        strategies: Sequence[LocatorStrategy] = (),
        url: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, url=url, cause=cause)
        self.step = step
        self.strategies = tuple(strategies)


@dataclass
class NavigationOutcome:
    """Result of driving the search workflow."""

    state: NavigationState
    results_found: bool = False
    results_wait_seconds: float = 0.0
    matched: dict[str, str] = field(default_factory=dict)


class SearchNavigator:
    """Runs the search workflow against any ``Navigator`` backend."""

    def __init__(
        self,
        navigator: Navigator,
        portal: PortalConfig | None = None,
        timing: TimingProfile | None = None,
        *,
        log: LoggerLike | None = None,
        capture_steps: bool = False,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the state machine.

        Args:
            navigator: Backend providing the navigation capability
            portal: Portal settings (URL, CPV code, vocabularies)
            timing: Settle delays and polling bounds
            log: Logger to report progress to
            capture_steps: Screenshot after every transition
            sleep: Awaitable delay function
            clock: Monotonic clock used for the results deadline
        """
        self.navigator = navigator
        self.portal = portal or PortalConfig()
        self.timing = timing or TimingProfile.headless()
        self.log = log or logger
        self.capture_steps = capture_steps
        self._sleep = sleep
        self._clock = clock

        self.state = NavigationState.START
        self.matched: dict[str, str] = {}

    # =========================================================================
    # Workflow
    # =========================================================================

    async def run(self) -> NavigationOutcome:
        """Drive the workflow from START to RESULTS_READY.

        Raises:
            NavigationError: If a required control cannot be found or used
        """
        await self.load_form()
        await self.enter_code()
        await self.add_filter()
        await self.submit()
        found, waited = await self.wait_for_results()

        return NavigationOutcome(
            state=self.state,
            results_found=found,
            results_wait_seconds=waited,
            matched=dict(self.matched),
        )

    async def load_form(self) -> None:
        """START -> FORM_LOADED."""
        self._expect(NavigationState.START)
        url = self.portal.search_form_url

        self.log.info("Loading search form")
        try:
            await self.navigator.navigate(url)
        except BackendError as e:
            raise NavigationError(
                f"Could not load search form: {e.message}",
                step="load_form",
                url=url,
                cause=e,
            ) from e

        await self._settle(self.timing.form_load_settle)
        await self._advance()

    async def enter_code(self) -> None:
        """FORM_LOADED -> CODE_ENTERED."""
        self._expect(NavigationState.FORM_LOADED)
        field_el = await self._locate("cpv_field", CPV_FIELD_STRATEGIES)

        await self._settle(self.timing.pre_type_delay)
        self.log.info(f"Entering CPV code {self.portal.cpv_code}")
        await self._act(
            "cpv_field",
            self.navigator.type_text(
                field_el,
                self.portal.cpv_code,
                delay_ms=self.timing.per_key_delay_ms,
            ),
        )
        await self._settle(self.timing.post_type_settle)
        await self._advance()

    async def add_filter(self) -> None:
        """CODE_ENTERED -> FILTER_ADDED."""
        self._expect(NavigationState.CODE_ENTERED)
        button = await self._locate("add_button", ADD_BUTTON_STRATEGIES)

        await self._settle(self.timing.pre_add_click)
        self.log.info("Adding CPV filter")
        await self._act("add_button", self.navigator.click(button))
        await self._settle(self.timing.post_add_click)
        await self._advance()

    async def submit(self) -> None:
        """FILTER_ADDED -> SUBMITTED."""
        self._expect(NavigationState.FILTER_ADDED)
        button = await self._locate("search_button", SEARCH_BUTTON_STRATEGIES)

        await self._settle(self.timing.pre_search_click)
        self.log.info("Submitting search")
        await self._act("search_button", self.navigator.click(button))
        await self._advance()

    async def wait_for_results(self) -> tuple[bool, float]:
        """SUBMITTED -> RESULTS_READY, by bounded polling.

        A loading page is re-polled on the loading interval; otherwise the
        results table is looked up and re-polled on the results interval.
        Reaching the deadline is not an error: the state still advances and
        extraction decides whether usable data exists.

        Returns:
            ``(found, waited_seconds)``
        """
        self._expect(NavigationState.SUBMITTED)
        table = LocatorStrategy.by_id(self.portal.results_table_id)
        started = self._clock()
        deadline = started + self.timing.results_max_wait
        found = False

        while self._clock() < deadline:
            text = await self.navigator.get_page_text()
            if any(phrase in text for phrase in self.portal.loading_phrases):
                self.log.debug("Search still loading")
                await self._sleep(self.timing.loading_repoll)
                continue

            if await self.navigator.find_element(table) is not None:
                found = True
                break

            self.log.debug("Results table not present yet")
            await self._sleep(self.timing.results_repoll)

        waited = self._clock() - started
        if found:
            self.log.info(f"Results table found after {waited:.1f}s")
        else:
            self.log.warning(
                f"Results table not found within {self.timing.results_max_wait:.0f}s; "
                "continuing with current page"
            )

        await self._advance()
        return found, waited

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _locate(self, step: str, strategies: Sequence[LocatorStrategy]) -> Any:
        match = await locate_first(self.navigator, strategies, self.log)
        if match is None:
            await self.navigator.screenshot(f"{step}_not_found")
            raise NavigationError(
                f"Could not locate {step} with any of {len(strategies)} strategies",
                step=step,
                strategies=strategies,
            )

        strategy, element = match
        self.matched[step] = str(strategy)
        return element

    async def _act(self, step: str, action: Awaitable[None]) -> None:
        try:
            await action
        except BackendError as e:
            raise NavigationError(
                f"Action on {step} failed: {e.message}",
                step=step,
                url=e.url,
                cause=e,
            ) from e

    async def _settle(self, seconds: float) -> None:
        if seconds > 0:
            await self._sleep(seconds)

    def _expect(self, state: NavigationState) -> None:
        if self.state is not state:
            raise RuntimeError(
                f"Navigation out of order: expected {state.value}, at {self.state.value}"
            )

    async def _advance(self) -> None:
        self.state = _NEXT_STATE[self.state]
        self.log.debug(f"Navigation state: {self.state.value}")
        if self.capture_steps:
            await self.navigator.screenshot(f"step_{self.state.value}")
