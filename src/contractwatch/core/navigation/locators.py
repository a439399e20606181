"""
Ordered locator strategies for the portal's search form controls.

Each list is tried top to bottom; the first strategy that matches an
element wins. Order matters: specific attribute matches come before
generic fallbacks.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from contractwatch.core.backends.base import LocatorStrategy, Navigator
from contractwatch.core.logging import LoggerLike

logger = logging.getLogger(__name__)

xpath = LocatorStrategy.xpath


CPV_FIELD_STRATEGIES: tuple[LocatorStrategy, ...] = (
    xpath("//input[contains(@name, 'codigoCpv')]"),
    xpath("//input[contains(@name, 'cpv')]"),
    xpath("//input[contains(@id, 'cpv')]"),
    xpath("//input[contains(@id, 'codigo')]"),
    xpath("//input[@placeholder='CPV']"),
    xpath("//input[@placeholder='Código CPV']"),
    xpath("//input[@type='text' and contains(@class, 'form-control')]"),
    xpath("//input[@type='text' and contains(@class, 'input')]"),
    xpath("//input[@type='text' and contains(@style, 'width')]"),
    xpath("//input[@type='text']"),
    xpath("//input[contains(@class, 'form-control')]"),
    xpath("//input[contains(@class, 'input')]"),
)

ADD_BUTTON_STRATEGIES: tuple[LocatorStrategy, ...] = (
    xpath("//input[@value='Añadir']"),
    xpath("//a[contains(text(), 'Añadir')]"),
    xpath("//span[contains(text(), 'Añadir')]"),
    xpath("//button[contains(text(), 'Añadir')]"),
    xpath("//input[@type='submit' and contains(@value, 'Añadir')]"),
    xpath("//*[contains(text(), 'Añadir')]"),
)

SEARCH_BUTTON_STRATEGIES: tuple[LocatorStrategy, ...] = (
    xpath("//input[@value='Buscar']"),
    xpath("//button[contains(text(), 'Buscar')]"),
    xpath("//input[@type='submit']"),
    xpath("//*[contains(text(), 'Buscar')]"),
)


async def locate_first(
    navigator: Navigator,
    strategies: Sequence[LocatorStrategy],
    log: LoggerLike | None = None,
) -> tuple[LocatorStrategy, Any] | None:
    """Try each strategy in order and return the first match.

    Returns:
        ``(strategy, element)`` for the first strategy that matched,
        or None when no strategy matched.
    """
    log = log or logger

    for strategy in strategies:
        log.debug(f"Trying locator: {strategy}")
        element = await navigator.find_element(strategy)
        if element is not None:
            log.info(f"Matched locator: {strategy}")
            return strategy, element

    return None
