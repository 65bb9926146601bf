"""
Caching layer for security providers.

Provides file-based caching of resolved securities so that:
- Repeated conversions of the same history do not re-query Yahoo
- Subsequent runs are faster
"""

import hashlib
import json
import shutil
from pathlib import Path
from typing import Optional

from ibkr_ghostfolio.models import DataSource, ResolvedSecurity
from ibkr_ghostfolio.data.providers.base import SecurityProvider


class FileCache:
    """
    File-based cache for resolved securities.

    Stores one JSON file per (query, currency) pair.
    """

    def __init__(self, cache_dir: str | Path = "data/cache"):
        """
        Initialize the file cache.

        Args:
            cache_dir: Directory to store cached data
        """
        self.cache_dir = Path(cache_dir)
        self.securities_dir = self.cache_dir / "securities"
        self.securities_dir.mkdir(parents=True, exist_ok=True)

    def _get_cache_key(self, query: str, currency: str) -> str:
        """Generate a cache key for a lookup."""
        key_str = f"{query.upper().strip()}_{currency}"
        return hashlib.md5(key_str.encode()).hexdigest()[:12]

    def _cache_file(self, query: str, currency: str) -> Path:
        return self.securities_dir / f"security_{self._get_cache_key(query, currency)}.json"

    def get_security(self, query: str, currency: str) -> Optional[ResolvedSecurity]:
        """
        Get a cached security if available.

        Args:
            query: Identifier or symbol override that was looked up
            currency: Currency hint of the lookup

        Returns:
            Cached ResolvedSecurity or None if not cached
        """
        cache_file = self._cache_file(query, currency)

        if cache_file.exists():
            try:
                with open(cache_file, "r") as f:
                    data = json.load(f)
                return ResolvedSecurity(
                    symbol=data["symbol"],
                    currency=data["currency"],
                    display_name=data["display_name"],
                    data_source=DataSource(data["data_source"]),
                )
            except (OSError, ValueError, KeyError):
                # Cache corrupted, will re-fetch
                return None

        return None

    def save_security(self, query: str, currency: str, security: ResolvedSecurity) -> None:
        """
        Save a resolved security to the cache.

        Args:
            query: Identifier or symbol override that was looked up
            currency: Currency hint of the lookup
            security: Result to store
        """
        record = {
            "query": query,
            "symbol": security.symbol,
            "currency": security.currency,
            "display_name": security.display_name,
            "data_source": security.data_source.value,
        }

        try:
            with open(self._cache_file(query, currency), "w") as f:
                json.dump(record, f, indent=2)
        except OSError:
            # Don't fail on cache write errors
            pass

    def clear(self) -> None:
        """Clear all cached data."""
        if self.securities_dir.exists():
            shutil.rmtree(self.securities_dir)
            self.securities_dir.mkdir(exist_ok=True)


class CachedSecurityProvider(SecurityProvider):
    """
    Wrapper that adds caching to any SecurityProvider.

    Checks cache before calling the underlying provider and saves
    found securities afterwards. Lookups that found nothing are not cached.
    """

    def __init__(
        self,
        provider: SecurityProvider,
        cache: Optional[FileCache] = None,
    ):
        """
        Initialize cached provider.

        Args:
            provider: Underlying security provider
            cache: File cache instance (creates default if None)
        """
        self._provider = provider
        self._cache = cache or FileCache()

    @property
    def name(self) -> str:
        return f"Cached({self._provider.name})"

    async def resolve(
        self,
        identifier: Optional[str],
        symbol_override: Optional[str],
        hint: Optional[str],
        currency: str,
    ) -> Optional[ResolvedSecurity]:
        query = symbol_override or identifier or ""

        cached = self._cache.get_security(query, currency)
        if cached is not None:
            return cached

        security = await self._provider.resolve(identifier, symbol_override, hint, currency)

        if security is not None:
            self._cache.save_security(query, currency, security)

        return security
