"""
Playwright Backend implementation for browser automation.

Provides the navigation capability on top of async Playwright with:
- Visible or headless Chromium/Firefox/WebKit
- XPath, CSS and id locator strategies
- Per-key typing delays
- Screenshot capture for steps and errors
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from contractwatch.core.config.models import BrowserConfig

from .base import (
    ActionFailed,
    BackendError,
    BrowserError,
    ElementNotFound,
    LocatorKind,
    LocatorStrategy,
    NavigationTimeout,
    Navigator,
)

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Locator, Page, Playwright

logger = logging.getLogger(__name__)


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


def to_selector(strategy: LocatorStrategy) -> str:
    """Translate a locator strategy into a Playwright selector string."""
    if strategy.kind is LocatorKind.XPATH:
        return f"xpath={strategy.value}"
    if strategy.kind is LocatorKind.ID:
        return f"id={strategy.value}"
    return strategy.value


class PlaywrightBackend(Navigator):
    """Playwright-based navigation backend.

    One browser, one context, one page; every call operates on that page.
    """

    def __init__(self, config: BrowserConfig | None = None):
        self.config = config or BrowserConfig()
        self.headless = self.config.headless
        self.user_agent = self.config.user_agent or DEFAULT_USER_AGENT

        self.screenshots_path = Path(self.config.screenshots_path)
        self.screenshots_path.mkdir(parents=True, exist_ok=True)

        # Playwright objects (initialized on first use)
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def name(self) -> str:
        return "playwright"

    async def _ensure_browser(self) -> None:
        """Initialize browser if not already running."""
        if self._browser is not None and self._browser.is_connected():
            return

        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()

        if self.config.browser == "firefox":
            browser_launcher = self._playwright.firefox
        elif self.config.browser == "webkit":
            browser_launcher = self._playwright.webkit
        else:
            browser_launcher = self._playwright.chromium

        launch_args: list[str] = []
        if self.config.browser == "chromium":
            launch_args = [
                "--no-sandbox",
                "--disable-dev-shm-usage",
                "--disable-blink-features=AutomationControlled",
                "--disable-extensions",
                f"--window-size={self.config.window_width},{self.config.window_height}",
            ]
            if not self.headless:
                launch_args.append("--start-maximized")

        try:
            self._browser = await browser_launcher.launch(
                headless=self.headless,
                args=launch_args,
            )
        except Exception as e:
            raise BrowserError(
                f"Failed to launch {self.config.browser} browser. "
                f"Run: playwright install {self.config.browser}",
                cause=e,
            ) from e

        logger.info(f"Launched {self.config.browser} browser (headless={self.headless})")

    async def _ensure_context(self) -> BrowserContext:
        """Get or create the browser context."""
        await self._ensure_browser()

        if self._context is not None:
            return self._context

        assert self._browser is not None
        self._context = await self._browser.new_context(
            viewport={
                "width": self.config.window_width,
                "height": self.config.window_height,
            },
            user_agent=self.user_agent,
            locale="es-ES",
            timezone_id="Europe/Madrid",
        )
        return self._context

    async def _get_page(self) -> Page:
        """Get or create a page."""
        context = await self._ensure_context()

        if self._page is None or self._page.is_closed():
            self._page = await context.new_page()
            self._page.set_default_timeout(self.config.action_timeout_ms)
            self._page.set_default_navigation_timeout(self.config.navigation_timeout_ms)

        return self._page

    async def navigate(self, url: str) -> None:
        page = await self._get_page()

        try:
            await page.goto(url, wait_until="domcontentloaded")
        except Exception as e:
            await self.screenshot("navigation_error")
            if "timeout" in str(e).lower():
                raise NavigationTimeout(
                    f"Navigation timeout: {url}",
                    url=url,
                    cause=e,
                ) from e
            raise BackendError(f"Browser error: {e}", url=url, cause=e) from e

    async def find_element(self, strategy: LocatorStrategy) -> Locator | None:
        page = await self._get_page()
        locator = page.locator(to_selector(strategy)).first

        try:
            if await locator.count() == 0:
                return None
        except Exception as e:
            # Malformed selectors count as a miss so the next strategy runs
            logger.debug(f"Locator {strategy} failed: {e}")
            return None

        return locator

    async def click(self, element: Any) -> None:
        try:
            await element.click()
        except Exception as e:
            await self.screenshot("click_error")
            raise self._action_error("Click", e) from e

    async def type_text(self, element: Any, text: str, delay_ms: int = 0) -> None:
        try:
            await element.fill("")
            await element.press_sequentially(text, delay=delay_ms)
        except Exception as e:
            await self.screenshot("type_error")
            raise self._action_error("Typing", e) from e

    async def get_page_content(self) -> str:
        page = await self._get_page()
        try:
            return await page.content()
        except Exception as e:
            await self.screenshot("content_error")
            raise BackendError(f"Could not read page content: {e}", url=self._current_url(), cause=e) from e

    async def get_page_text(self) -> str:
        page = await self._get_page()
        try:
            return await page.inner_text("body")
        except Exception:
            # Body can be missing while a navigation is in flight
            return ""

    async def screenshot(self, name: str) -> str | None:
        """Capture the current page into the screenshots directory."""
        if self._page is None or self._page.is_closed():
            return None

        try:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filepath = self.screenshots_path / f"{name}_{timestamp}.png"
            await self._page.screenshot(path=str(filepath), full_page=True)
            logger.info(f"Screenshot saved: {filepath}")
            return str(filepath)
        except Exception as e:
            logger.warning(f"Failed to capture screenshot: {e}")
            return None

    def _action_error(self, action: str, e: Exception) -> BackendError:
        # A located element that detached before the action times out
        if "timeout" in str(e).lower():
            return ElementNotFound(f"{action} target disappeared: {e}", url=self._current_url(), cause=e)
        return ActionFailed(f"{action} failed: {e}", url=self._current_url(), cause=e)

    def _current_url(self) -> str | None:
        if self._page is None or self._page.is_closed():
            return None
        return self._page.url

    async def close(self) -> None:
        """Close browser and clean up resources."""
        if self._page and not self._page.is_closed():
            await self._page.close()
        self._page = None

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Playwright backend closed")
