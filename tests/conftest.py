"""
Pytest fixtures for the IBKR to Ghostfolio converter tests.

Provides sample exports, an in-memory security provider and helpers used
across test modules.
"""

from datetime import timezone
from decimal import Decimal
from typing import Optional

import pytest

from ibkr_ghostfolio.data.providers.base import SecurityLookupError, SecurityProvider
from ibkr_ghostfolio.models import (
    ConverterConfig,
    DataSource,
    DividendRow,
    OrderType,
    ResolvedSecurity,
    TradeRow,
)


TRADE_HEADER = (
    "Type,Date,ISIN,Quantity,Price,TotalAmount,TradeCurrency,Commission,CommissionCurrency"
)
DIVIDEND_HEADER = "Type,Date,ISIN,Description,Amount,Currency"

APPLE_ISIN = "US0378331005"
VODAFONE_ISIN = "GB00BH4HKS39"

APPLE_DIVIDEND = "AAPL(US0378331005) CASH DIVIDEND USD 0.24 PER SHARE (Ordinary Dividend)"
APPLE_TAX = "AAPL(US0378331005) CASH DIVIDEND USD 0.24 PER SHARE - US TAX"


class FakeSecurityProvider(SecurityProvider):
    """In-memory provider that records every lookup."""

    def __init__(
        self,
        securities: Optional[dict[str, ResolvedSecurity]] = None,
        failing: Optional[set[str]] = None,
    ):
        self.securities = securities or {}
        self.failing = failing or set()
        self.calls: list[tuple] = []

    @property
    def name(self) -> str:
        return "Fake"

    async def resolve(self, identifier, symbol_override, hint, currency):
        self.calls.append((identifier, symbol_override, hint, currency))
        query = symbol_override or identifier
        if query in self.failing:
            raise SecurityLookupError(f"Lookup service unavailable for {query}")
        return self.securities.get(query)


@pytest.fixture
def apple() -> ResolvedSecurity:
    return ResolvedSecurity(
        symbol="AAPL",
        currency="USD",
        display_name="Apple Inc.",
        data_source=DataSource.YAHOO,
    )


@pytest.fixture
def vodafone() -> ResolvedSecurity:
    return ResolvedSecurity(
        symbol="VOD.L",
        currency="GBp",
        display_name="Vodafone Group Plc",
        data_source=DataSource.YAHOO,
    )


@pytest.fixture
def fake_provider(apple: ResolvedSecurity, vodafone: ResolvedSecurity) -> FakeSecurityProvider:
    """Provider that knows Apple and Vodafone by ISIN."""
    return FakeSecurityProvider({APPLE_ISIN: apple, VODAFONE_ISIN: vodafone})


@pytest.fixture
def utc_config() -> ConverterConfig:
    """Converter settings with deterministic dates."""
    return ConverterConfig(account_id="test-account", timezone=timezone.utc)


@pytest.fixture
def trade_csv() -> str:
    """A trades export with one buy and one sell."""
    return "\n".join([
        TRADE_HEADER,
        f"BUY,20230105,{APPLE_ISIN},10,150.00,1500.00,USD,1.00,USD",
        f"SELL,20230210,{APPLE_ISIN},-4,155.50,-622.00,USD,-1.00,USD",
        "",
    ])


@pytest.fixture
def dividend_csv() -> str:
    """A dividends export with a dividend and its withholding tax."""
    return "\n".join([
        DIVIDEND_HEADER,
        f'Dividends,20230216,{APPLE_ISIN},"{APPLE_DIVIDEND}",2.40,USD',
        f'Withholding Tax,20230216,{APPLE_ISIN},"{APPLE_TAX}",-0.36,USD',
        "",
    ])


def make_trade_row(**overrides) -> TradeRow:
    """Build a TradeRow with sensible defaults."""
    values = dict(
        line_number=2,
        action="BUY",
        type=OrderType.BUY,
        date="20230105",
        identifier=APPLE_ISIN,
        quantity=Decimal("10"),
        price=Decimal("150.00"),
        total_amount=Decimal("1500.00"),
        trade_currency="USD",
        commission=Decimal("1.00"),
        commission_currency="USD",
    )
    values.update(overrides)
    return TradeRow(**values)


def make_dividend_row(**overrides) -> DividendRow:
    """Build a DividendRow with sensible defaults."""
    values = dict(
        line_number=2,
        action="Dividends",
        type=OrderType.DIVIDEND,
        date="20230216",
        identifier=APPLE_ISIN,
        description=APPLE_DIVIDEND,
        amount=Decimal("2.40"),
        currency="USD",
    )
    values.update(overrides)
    return DividendRow(**values)
