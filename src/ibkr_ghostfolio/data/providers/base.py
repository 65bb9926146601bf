"""
Abstract base class for security lookup providers.

Defines the interface the converter uses to turn an identifier (or an
explicit symbol override) into a resolved security, enabling pluggable
lookup services.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ibkr_ghostfolio.models import ResolvedSecurity


class SecurityLookupError(Exception):
    """Raised when a security lookup fails (as opposed to finding nothing)."""
    pass


class SecurityProvider(ABC):
    """
    Abstract base class for security lookup providers.

    Implementations resolve one security per call. A lookup that finds
    nothing returns None; a lookup that cannot be performed raises
    SecurityLookupError.
    """

    @abstractmethod
    async def resolve(
        self,
        identifier: Optional[str],
        symbol_override: Optional[str],
        hint: Optional[str],
        currency: str,
    ) -> Optional[ResolvedSecurity]:
        """
        Resolve a security.

        Args:
            identifier: Security identifier (ISIN), None when an override is given
            symbol_override: Symbol to look up instead of the identifier
            hint: Reserved for provider specific hints (unused)
            currency: Currency the security is expected to trade in

        Returns:
            ResolvedSecurity, or None if nothing matched

        Raises:
            SecurityLookupError: If the lookup service fails
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this provider."""
        pass
