"""
Browser automation layer.

Playwright session management and the ordered selector strategies used to
find the orthobrowser's export controls.
"""

from .session import BrowserSession, CLIPBOARD_SHIM_SCRIPT, origin_of
from .selectors import (
    StrategyKind,
    SelectorStrategy,
    StrategyMatch,
    EXPORT_STRATEGIES,
    MSA_STRATEGIES,
    locate,
    activate
)

__all__ = [
    'BrowserSession',
    'CLIPBOARD_SHIM_SCRIPT',
    'origin_of',
    'StrategyKind',
    'SelectorStrategy',
    'StrategyMatch',
    'EXPORT_STRATEGIES',
    'MSA_STRATEGIES',
    'locate',
    'activate'
]
