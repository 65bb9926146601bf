"""
Yahoo Finance security lookup provider.

Uses the yfinance library to resolve ISINs (via Yahoo's search endpoint)
and symbol overrides (via the quote endpoint) to Yahoo symbols.
"""

import asyncio
import time
from typing import Any, Optional

import yfinance as yf

from ibkr_ghostfolio.models import DataSource, ResolvedSecurity
from ibkr_ghostfolio.data.providers.base import SecurityLookupError, SecurityProvider


class YFinanceSecurityProvider(SecurityProvider):
    """
    Security provider backed by Yahoo Finance.

    Features:
    - Searches identifiers and prefers quotes trading in the requested currency
    - Looks up symbol overrides directly
    - Retries failed requests before giving up
    - Runs blocking yfinance calls in a worker thread
    """

    # Quote types that can be booked as Ghostfolio activities
    SUPPORTED_QUOTE_TYPES = ("EQUITY", "ETF", "MUTUALFUND")

    # Number of search results requested per identifier
    SEARCH_RESULTS = 10

    def __init__(self, max_retries: int = 3, retry_delay: float = 2.0):
        """
        Initialize Yahoo Finance provider.

        Args:
            max_retries: Maximum retries for failed requests
            retry_delay: Delay between retries (seconds)
        """
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    @property
    def name(self) -> str:
        return "YahooFinance"

    async def resolve(
        self,
        identifier: Optional[str],
        symbol_override: Optional[str],
        hint: Optional[str],
        currency: str,
    ) -> Optional[ResolvedSecurity]:
        query = symbol_override or identifier
        if not query:
            return None

        return await asyncio.to_thread(
            self._resolve_with_retry,
            query.strip(),
            symbol_override is not None,
            currency,
        )

    def _resolve_with_retry(
        self,
        query: str,
        is_symbol: bool,
        currency: str,
    ) -> Optional[ResolvedSecurity]:
        """Run a lookup, retrying on failure."""
        for attempt in range(self._max_retries):
            try:
                if is_symbol:
                    return self._lookup_symbol(query, currency)
                return self._search(query, currency)

            except Exception as e:
                if attempt < self._max_retries - 1:
                    time.sleep(self._retry_delay * (attempt + 1))
                else:
                    raise SecurityLookupError(
                        f"Failed to look up {query} after {self._max_retries} attempts: {e}"
                    )

        return None

    def _search(self, identifier: str, currency: str) -> Optional[ResolvedSecurity]:
        """Search Yahoo for an identifier and pick the best quote."""
        search = yf.Search(identifier, max_results=self.SEARCH_RESULTS, news_count=0)
        quotes = [
            q for q in (search.quotes or [])
            if q.get("symbol") and q.get("quoteType") in self.SUPPORTED_QUOTE_TYPES
        ]

        if not quotes:
            return None

        # Prefer the listing that trades in the row's currency
        fallback: Optional[ResolvedSecurity] = None
        for quote in quotes:
            quote_currency = self._quote_currency(quote["symbol"])
            security = ResolvedSecurity(
                symbol=quote["symbol"],
                currency=quote_currency or currency,
                display_name=_display_name(quote, quote["symbol"]),
                data_source=DataSource.YAHOO,
            )
            if quote_currency == currency:
                return security
            if fallback is None:
                fallback = security

        return fallback

    def _lookup_symbol(self, symbol: str, currency: str) -> Optional[ResolvedSecurity]:
        """Look up an explicit Yahoo symbol."""
        info = yf.Ticker(symbol).info or {}

        # Unknown symbols come back as a near-empty payload
        if not info.get("quoteType") and not info.get("currency"):
            return None

        return ResolvedSecurity(
            symbol=info.get("symbol", symbol),
            currency=info.get("currency") or currency,
            display_name=_display_name(
                {"longname": info.get("longName"), "shortname": info.get("shortName")},
                symbol,
            ),
            data_source=DataSource.YAHOO,
        )

    def _quote_currency(self, symbol: str) -> Optional[str]:
        """Trading currency of a Yahoo symbol."""
        return getattr(yf.Ticker(symbol).fast_info, "currency", None)


def _display_name(quote: dict[str, Any], default: str) -> str:
    return quote.get("longname") or quote.get("shortname") or default


def get_default_provider(cache_dir: Optional[str] = None) -> SecurityProvider:
    """
    Get the default security provider instance.

    Args:
        cache_dir: Directory for cache files (None disables caching)

    Returns:
        SecurityProvider instance (YFinance with optional caching)
    """
    from ibkr_ghostfolio.data.providers.cache import CachedSecurityProvider, FileCache

    provider = YFinanceSecurityProvider()

    if cache_dir:
        cache = FileCache(cache_dir)
        return CachedSecurityProvider(provider, cache)

    return provider
