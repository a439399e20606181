"""Browser backends implementing the navigation capability."""

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
from .playwright_backend import PlaywrightBackend

__all__ = [
    # Interface
    "Navigator",
    "LocatorKind",
    "LocatorStrategy",
    # Errors
    "BackendError",
    "BrowserError",
    "NavigationTimeout",
    "ElementNotFound",
    "ActionFailed",
    # Playwright backend
    "PlaywrightBackend",
]
