"""
Security identity resolution.

Applies the override table before deferring to the lookup provider:
1. Manual identifiers get a synthetic GF_<identifier> security, no lookup
2. Identifiers with a replacement symbol are looked up under that symbol
3. Anything else is looked up by identifier
"""

from typing import Optional

from ibkr_ghostfolio.models import DataSource, ResolvedSecurity
from ibkr_ghostfolio.data.overrides import OverrideTable
from ibkr_ghostfolio.data.providers.base import SecurityProvider


MANUAL_SYMBOL_PREFIX = "GF_"


def manual_security(
    identifier: str,
    currency: str,
    default_currency: str = "USD",
) -> ResolvedSecurity:
    """
    Create the synthetic security for a manually resolved identifier.

    Args:
        identifier: Security identifier
        currency: Currency of the row (may be empty)
        default_currency: Currency used when the row has none

    Returns:
        ResolvedSecurity with the MANUAL data source
    """
    return ResolvedSecurity(
        symbol=f"{MANUAL_SYMBOL_PREFIX}{identifier}",
        currency=currency or default_currency,
        display_name=identifier,
        data_source=DataSource.MANUAL,
    )


class IdentityResolver:
    """Resolves row identifiers to securities."""

    def __init__(
        self,
        provider: SecurityProvider,
        overrides: Optional[OverrideTable] = None,
        default_currency: str = "USD",
    ):
        """
        Initialize the resolver.

        Args:
            provider: Lookup provider for non-manual identifiers
            overrides: Override table (empty if None)
            default_currency: Currency for manual securities on rows without one
        """
        self._provider = provider
        self._overrides = overrides if overrides is not None else OverrideTable()
        self._default_currency = default_currency

    async def resolve(self, identifier: str, currency: str) -> Optional[ResolvedSecurity]:
        """
        Resolve an identifier.

        Args:
            identifier: Security identifier of the row
            currency: Canonical currency of the row

        Returns:
            ResolvedSecurity, or None if the provider found nothing

        Raises:
            SecurityLookupError: Propagated from the provider
        """
        if self._overrides.is_manual(identifier):
            return manual_security(identifier, currency, self._default_currency)

        replacement = self._overrides.replacement_for(identifier)
        if replacement:
            return await self._provider.resolve(None, replacement, None, currency)

        return await self._provider.resolve(identifier, None, None, currency)
