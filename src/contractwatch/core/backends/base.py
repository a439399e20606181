"""
Backend base classes and data structures.

Defines the navigation-capability interface every browser backend offers
to the navigation state machine and the document-link enhancer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class LocatorKind(str, Enum):
    """How a locator strategy addresses an element."""

    XPATH = "xpath"
    CSS = "css"
    ID = "id"


@dataclass(frozen=True)
class LocatorStrategy:
    """One way of finding a page element."""

    kind: LocatorKind
    value: str

    @classmethod
    def xpath(cls, value: str) -> "LocatorStrategy":
        return cls(LocatorKind.XPATH, value)

    @classmethod
    def css(cls, value: str) -> "LocatorStrategy":
        return cls(LocatorKind.CSS, value)

    @classmethod
    def by_id(cls, value: str) -> "LocatorStrategy":
        return cls(LocatorKind.ID, value)

    def __str__(self) -> str:
        return f"{self.kind.value}={self.value}"


class Navigator(ABC):
    """Abstract navigation capability used by the core.

    Element handles returned by ``find_element`` are opaque to callers and
    only ever passed back to ``click`` and ``type_text`` of the same
    navigator.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""
        pass

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load a URL in the current page.

        Raises:
            BackendError: If the page cannot be loaded
        """
        pass

    @abstractmethod
    async def find_element(self, strategy: LocatorStrategy) -> Any | None:
        """Return a handle for the first element matching ``strategy``, or None."""
        pass

    @abstractmethod
    async def click(self, element: Any) -> None:
        pass

    @abstractmethod
    async def type_text(self, element: Any, text: str, delay_ms: int = 0) -> None:
        """Clear an input and type ``text`` one key at a time."""
        pass

    @abstractmethod
    async def get_page_content(self) -> str:
        """Return the rendered HTML of the current page."""
        pass

    @abstractmethod
    async def get_page_text(self) -> str:
        """Return the visible text of the current page body."""
        pass

    async def screenshot(self, name: str) -> str | None:
        """Capture the current page; returns the saved path if supported."""
        return None

    async def close(self) -> None:
        """Clean up backend resources."""
        pass

    async def __aenter__(self) -> "Navigator":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


# =============================================================================
# Errors
# =============================================================================


class BackendError(Exception):
    """Base exception for backend errors."""

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


class BrowserError(BackendError):
    """Browser failed to launch or crashed."""
    pass


class NavigationTimeout(BackendError):
    """Page didn't load in time."""
    pass


class ElementNotFound(BackendError):
    """Selector didn't match any element."""
    pass


class ActionFailed(BackendError):
    """Click or typing failed on a located element."""
    pass
