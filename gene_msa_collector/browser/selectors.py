"""
Ordered element lookup strategies for the orthobrowser export menu.

Each control is described by a priority-ordered list of tagged strategies;
the first strategy that matches an element on the page wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from playwright.async_api import ElementHandle, Page

logger = logging.getLogger(__name__)


class StrategyKind(Enum):
    """How a strategy identifies its element."""
    ID = "id"
    ATTRIBUTE = "attribute"
    STRUCTURE = "structure"
    TEXT = "text"


@dataclass(frozen=True)
class SelectorStrategy:
    """A single way of finding a control."""
    kind: StrategyKind
    selector: str
    text: Optional[str] = None
    required_attribute: Optional[str] = None

    def describe(self) -> str:
        if self.kind == StrategyKind.TEXT:
            return f"{self.kind.value}:{self.selector}[text={self.text!r}]"
        return f"{self.kind.value}:{self.selector}"


@dataclass
class StrategyMatch:
    """An element found by a strategy."""
    strategy: SelectorStrategy
    element: Any


EXPORT_STRATEGIES: Sequence[SelectorStrategy] = (
    SelectorStrategy(StrategyKind.ID, "#navbarDropdown"),
    SelectorStrategy(StrategyKind.ATTRIBUTE, 'a.nav-link.dropdown-toggle[data-bs-toggle="dropdown"]'),
    SelectorStrategy(StrategyKind.STRUCTURE, "li.nav-item.dropdown a.nav-link"),
    SelectorStrategy(StrategyKind.TEXT, "a.nav-link.dropdown-toggle", text="Export"),
    SelectorStrategy(StrategyKind.TEXT, "a", text="Export", required_attribute="data-bs-toggle"),
)

MSA_STRATEGIES: Sequence[SelectorStrategy] = (
    SelectorStrategy(StrategyKind.ID, "#msa_button"),
    SelectorStrategy(StrategyKind.ATTRIBUTE, "button.export-button#msa_button"),
    SelectorStrategy(StrategyKind.TEXT, ".export-button", text="MSA"),
    SelectorStrategy(StrategyKind.TEXT, "button", text="MSA"),
)


async def _match_text(page: Page, strategy: SelectorStrategy) -> Optional[ElementHandle]:
    for element in await page.query_selector_all(strategy.selector):
        content = await element.text_content()
        if content is None or content.strip() != strategy.text:
            continue
        if strategy.required_attribute is not None:
            if await element.get_attribute(strategy.required_attribute) is None:
                continue
        return element
    return None


async def find_element(page: Page, strategy: SelectorStrategy) -> Optional[ElementHandle]:
    """Element matched by one strategy, or None."""
    if strategy.kind == StrategyKind.TEXT:
        return await _match_text(page, strategy)
    return await page.query_selector(strategy.selector)


async def locate(page: Page, strategies: Sequence[SelectorStrategy]) -> Optional[StrategyMatch]:
    """
    Try strategies in priority order.

    Args:
        page: Page to search
        strategies: Strategies, highest priority first

    Returns:
        The first match, or None when no strategy matches
    """
    for strategy in strategies:
        element = await find_element(page, strategy)
        if element is not None:
            logger.debug("Matched element via %s", strategy.describe())
            return StrategyMatch(strategy=strategy, element=element)
    return None


async def activate(page: Page, strategies: Sequence[SelectorStrategy]) -> Optional[StrategyMatch]:
    """
    Locate a control and click it.

    The click is dispatched on the DOM node itself, so collapsed dropdown
    items that are not yet visible can still be triggered.
    """
    match = await locate(page, strategies)
    if match is None:
        return None
    await match.element.evaluate("node => node.click()")
    return match
