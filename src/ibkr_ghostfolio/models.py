"""
Core data models for the IBKR to Ghostfolio converter.

This module defines the data structures that flow through the conversion
pipeline: the two raw row layouts of an IBKR export, the override table
entries, resolved securities, intermediate economic events and the final
Ghostfolio activities. All monetary and share quantities use Decimal for
precision and are only converted to floats when serialized.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union


class OrderType(Enum):
    """Classification of the IBKR action text."""
    BUY = "buy"
    SELL = "sell"
    DIVIDEND = "dividend"
    DIVIDEND_TAX = "dividendTax"


class RowLayout(Enum):
    """Column layout of an IBKR export, decided once from the header."""
    TRADE = "TRADE"
    DIVIDEND = "DIVIDEND"


class OverrideKind(Enum):
    """How an identifier listed in the overrides file is resolved."""
    MANUAL = "MANUAL"    # Never looked up, synthetic security
    REPLACE = "REPLACE"  # Looked up under a replacement symbol


class DataSource(Enum):
    """Ghostfolio data source of a resolved security."""
    YAHOO = "YAHOO"
    MANUAL = "MANUAL"


class EventKind(Enum):
    """Economic meaning of a classified row."""
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    DIVIDEND_TAX = "DIVIDEND_TAX"
    PAYMENT_IN_LIEU = "PAYMENT_IN_LIEU"


class ActionType(Enum):
    """Types of logged actions for the decision log."""
    CONFIG_LOADED = "CONFIG_LOADED"
    OVERRIDES_LOADED = "OVERRIDES_LOADED"
    ROW_UNRESOLVED = "ROW_UNRESOLVED"
    ROW_SKIPPED = "ROW_SKIPPED"
    DIVIDEND_MERGED = "DIVIDEND_MERGED"
    CONVERSION_COMPLETED = "CONVERSION_COMPLETED"


class RowOutcome(Enum):
    """What the converter did with a single input row."""
    EMITTED = "EMITTED"        # New activity appended
    MERGED = "MERGED"          # Completed an emitted dividend/tax counterpart
    IGNORED = "IGNORED"        # No identifier, dropped silently
    UNRESOLVED = "UNRESOLVED"  # Lookup found nothing
    SKIPPED = "SKIPPED"        # Could not be classified


@dataclass(frozen=True)
class TradeRow:
    """
    A row of an IBKR trades export.

    Attributes:
        line_number: 1-based line in the source file
        action: Raw action text as exported
        type: Classified action (None when the text matched nothing)
        date: Trade date as an 8-digit YYYYMMDD string
        identifier: Security identifier (ISIN)
        quantity: Number of shares, always non-negative
        price: Price per share, always non-negative
        total_amount: Gross trade amount, always non-negative
        trade_currency: Currency the trade settled in
        commission: Commission paid, always non-negative
        commission_currency: Currency of the commission
    """
    line_number: int
    action: str
    type: Optional[OrderType]
    date: str
    identifier: str
    quantity: Decimal
    price: Decimal
    total_amount: Decimal
    trade_currency: str
    commission: Decimal
    commission_currency: str

    @property
    def currency(self) -> str:
        return self.trade_currency


@dataclass(frozen=True)
class DividendRow:
    """
    A row of an IBKR dividends export.

    Attributes:
        line_number: 1-based line in the source file
        action: Raw action text as exported
        type: Classified action (None when the text matched nothing)
        date: Payment date as an 8-digit YYYYMMDD string
        identifier: Security identifier (ISIN)
        description: Free-text description, carries the per-share rate
        amount: Cash amount, always non-negative
        currency: Currency of the cash amount
    """
    line_number: int
    action: str
    type: Optional[OrderType]
    date: str
    identifier: str
    description: str
    amount: Decimal
    currency: str


RawRow = Union[TradeRow, DividendRow]


@dataclass(frozen=True)
class OverrideEntry:
    """
    Override for a single identifier.

    Attributes:
        kind: MANUAL or REPLACE
        replacement_key: Symbol to look up instead (REPLACE only)
    """
    kind: OverrideKind
    replacement_key: Optional[str] = None

    @classmethod
    def manual(cls) -> "OverrideEntry":
        return cls(kind=OverrideKind.MANUAL)

    @classmethod
    def replace(cls, replacement_key: str) -> "OverrideEntry":
        return cls(kind=OverrideKind.REPLACE, replacement_key=replacement_key)


@dataclass(frozen=True)
class ResolvedSecurity:
    """
    Security identity returned by the identity resolver.

    Attributes:
        symbol: Symbol known to the data source (e.g. Yahoo ticker)
        currency: Trading currency of the security
        display_name: Human readable name
        data_source: YAHOO or MANUAL
    """
    symbol: str
    currency: str
    display_name: str
    data_source: DataSource = DataSource.YAHOO


@dataclass
class EconomicEvent:
    """
    Intermediate event produced by the row classifier.

    Attributes:
        kind: Economic meaning of the row
        quantity: Shares (trades, dividends) or cash amount (payment in lieu)
        unit_price: Price per share (0 for payment in lieu)
        fee: Commission or withheld tax
        comment: Free-text comment carried to the activity
        currency: Canonical currency of the row
        date: Event date
        security: Resolved security of the row
    """
    kind: EventKind
    quantity: Decimal
    unit_price: Decimal
    fee: Decimal
    comment: str
    currency: str
    date: date
    security: ResolvedSecurity


@dataclass
class Activity:
    """
    A single Ghostfolio activity.

    Mutable: the dividend/tax matcher completes an emitted activity in place
    when the second half of a split dividend arrives.
    """
    account_id: Optional[str]
    comment: str
    fee: Decimal
    quantity: Decimal
    type: str
    unit_price: Decimal
    currency: str
    data_source: DataSource
    date: str
    symbol: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the Ghostfolio import format."""
        return {
            "accountId": self.account_id,
            "comment": self.comment,
            "fee": float(self.fee),
            "quantity": float(self.quantity),
            "type": self.type,
            "unitPrice": float(self.unit_price),
            "currency": self.currency,
            "dataSource": self.data_source.value,
            "date": self.date,
            "symbol": self.symbol,
        }


@dataclass
class ExportEnvelope:
    """
    Ghostfolio import file: metadata plus the ordered activity list.

    Attributes:
        generated_at: When the export was produced
        activities: Activities in input order
        format_version: Ghostfolio export format version
    """
    generated_at: datetime
    activities: list[Activity] = field(default_factory=list)
    format_version: str = "v0"

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": {
                "date": self.generated_at.isoformat(),
                "version": self.format_version,
            },
            "activities": [a.to_dict() for a in self.activities],
        }


@dataclass
class ConverterConfig:
    """
    Conversion settings.

    Attributes:
        account_id: Ghostfolio account every activity is booked on
        overrides_path: Path of the ISIN overrides file
        default_currency: Currency for manual securities on rows without one
        strict_dividend_prices: Abort on dividends without a per-share rate
        delimiter: CSV field delimiter
        cache_dir: Directory for the lookup cache (None disables caching)
        timezone: Timezone of output dates (None = local timezone)
    """
    account_id: Optional[str] = None
    overrides_path: str = "isin-overrides.txt"
    default_currency: str = "USD"
    strict_dividend_prices: bool = False
    delimiter: str = ","
    cache_dir: Optional[str] = None
    timezone: Optional[tzinfo] = None


@dataclass
class DecisionLogEntry:
    """
    Entry for the append-only decision log.

    Attributes:
        timestamp: When the action occurred
        action_type: Type of action
        source_file: Input file involved (if applicable)
        details: JSON-serializable details dictionary
    """
    timestamp: datetime
    action_type: ActionType
    source_file: Optional[str]
    details: dict

    @classmethod
    def create(
        cls,
        action_type: ActionType,
        source_file: Optional[str],
        details: dict,
    ) -> "DecisionLogEntry":
        """Factory method with auto-generated timestamp."""
        return cls(
            timestamp=datetime.now(),
            action_type=action_type,
            source_file=source_file,
            details=details,
        )
