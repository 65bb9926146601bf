"""
Security lookup providers.

Provides a pluggable interface for resolving security identifiers to
Yahoo symbols, with an optional file cache for repeat conversions.
"""

from ibkr_ghostfolio.data.providers.base import SecurityProvider, SecurityLookupError
from ibkr_ghostfolio.data.providers.cache import CachedSecurityProvider, FileCache
from ibkr_ghostfolio.data.providers.yfinance_provider import (
    YFinanceSecurityProvider,
    get_default_provider,
)

__all__ = [
    "SecurityProvider",
    "SecurityLookupError",
    "CachedSecurityProvider",
    "FileCache",
    "YFinanceSecurityProvider",
    "get_default_provider",
]
