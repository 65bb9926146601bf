"""
Row classification.

Turns a typed IBKR row plus its resolved security into an EconomicEvent.
Trade rows map directly to buys and sells. Dividend rows are classified from
their description: payments in lieu of dividends are booked as a cash amount,
ordinary dividends and withholding tax need the per-share rate quoted in the
description ("... USD 0.24 PER SHARE ...").
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ibkr_ghostfolio.models import (
    DividendRow,
    EconomicEvent,
    EventKind,
    OrderType,
    RawRow,
    ResolvedSecurity,
    TradeRow,
)


PER_SHARE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)(?= PER SHARE)")
PAYMENT_IN_LIEU_MARKER = "in lieu of"
QUANTITY_PRECISION = Decimal("0.001")
DATE_FORMAT = "%Y%m%d"


class RowClassificationError(Exception):
    """Raised when a row cannot be turned into an economic event."""

    def __init__(self, message: str, row: RawRow):
        super().__init__(message)
        self.row = row


class PriceParseError(RowClassificationError):
    """Raised when a dividend description carries no per-share rate."""
    pass


class UnclassifiedActionError(RowClassificationError):
    """Raised when a trade row is neither a buy nor a sell."""
    pass


class InvalidDateError(RowClassificationError):
    """Raised when a row date is not an 8-digit YYYYMMDD value."""
    pass


def parse_per_share_price(description: str) -> Optional[Decimal]:
    """
    Extract the per-share rate from a dividend description.

    Args:
        description: Free-text description of a dividend or tax line

    Returns:
        The first number immediately followed by " PER SHARE", or None if
        there is none or it is zero
    """
    match = PER_SHARE_PATTERN.search(description)
    if match is None:
        return None

    price = Decimal(match.group(1))
    if price == 0:
        return None
    return price


def is_payment_in_lieu(description: str) -> bool:
    """Whether a description denotes a payment in lieu of a dividend."""
    return PAYMENT_IN_LIEU_MARKER in description.lower()


def parse_row_date(row: RawRow) -> date:
    """Parse the YYYYMMDD date of a row."""
    try:
        return datetime.strptime(row.date, DATE_FORMAT).date()
    except ValueError:
        raise InvalidDateError(
            f"Invalid date {row.date!r} on line {row.line_number}", row
        )


def classify_row(row: RawRow, security: ResolvedSecurity, currency: str) -> EconomicEvent:
    """
    Classify a row into an economic event.

    Args:
        row: Typed IBKR row
        security: Resolved security of the row
        currency: Canonical currency of the row

    Returns:
        EconomicEvent

    Raises:
        UnclassifiedActionError: Trade row that is not a buy or sell
        PriceParseError: Dividend or tax row without a per-share rate
        InvalidDateError: Row date cannot be parsed
    """
    event_date = parse_row_date(row)

    if isinstance(row, TradeRow):
        return _classify_trade(row, security, currency, event_date)
    return _classify_dividend(row, security, currency, event_date)


def _classify_trade(
    row: TradeRow,
    security: ResolvedSecurity,
    currency: str,
    event_date: date,
) -> EconomicEvent:
    if row.type == OrderType.BUY:
        kind = EventKind.BUY
    elif row.type == OrderType.SELL:
        kind = EventKind.SELL
    else:
        raise UnclassifiedActionError(
            f"Unsupported trade action {row.action!r} on line {row.line_number}", row
        )

    return EconomicEvent(
        kind=kind,
        quantity=row.quantity,
        unit_price=row.price,
        fee=row.commission,
        comment="",
        currency=currency,
        date=event_date,
        security=security,
    )


def _classify_dividend(
    row: DividendRow,
    security: ResolvedSecurity,
    currency: str,
    event_date: date,
) -> EconomicEvent:
    if is_payment_in_lieu(row.description):
        return EconomicEvent(
            kind=EventKind.PAYMENT_IN_LIEU,
            quantity=row.amount,
            unit_price=Decimal("0"),
            fee=Decimal("0"),
            comment=row.description,
            currency=currency,
            date=event_date,
            security=security,
        )

    price = parse_per_share_price(row.description)
    if price is None:
        raise PriceParseError(
            f"No per-share rate in description {row.description!r} on line {row.line_number}",
            row,
        )

    if row.type == OrderType.DIVIDEND_TAX:
        # The rate is kept so the tax line can complete its dividend
        return EconomicEvent(
            kind=EventKind.DIVIDEND_TAX,
            quantity=Decimal("0"),
            unit_price=price,
            fee=abs(row.amount),
            comment=row.description,
            currency=currency,
            date=event_date,
            security=security,
        )

    return EconomicEvent(
        kind=EventKind.DIVIDEND,
        quantity=(row.amount / price).quantize(QUANTITY_PRECISION, rounding=ROUND_HALF_UP),
        unit_price=price,
        fee=Decimal("0"),
        comment=row.description,
        currency=currency,
        date=event_date,
        security=security,
    )
