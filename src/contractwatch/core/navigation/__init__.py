"""Search-form navigation state machine and locator strategies."""

from .locators import (
    ADD_BUTTON_STRATEGIES,
    CPV_FIELD_STRATEGIES,
    SEARCH_BUTTON_STRATEGIES,
    locate_first,
)
from .state_machine import (
    NavigationError,
    NavigationOutcome,
    NavigationState,
    SearchNavigator,
)

__all__ = [
    "ADD_BUTTON_STRATEGIES",
    "CPV_FIELD_STRATEGIES",
    "SEARCH_BUTTON_STRATEGIES",
    "locate_first",
    "NavigationError",
    "NavigationOutcome",
    "NavigationState",
    "SearchNavigator",
]
