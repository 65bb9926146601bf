"""
Assembly of Ghostfolio activities from economic events.
"""

from datetime import date, datetime, time, tzinfo
from typing import Optional

from ibkr_ghostfolio.models import Activity, EconomicEvent, EventKind


# London listings are quoted in pence; Ghostfolio expects "GBp"
CURRENCY_ALIASES = {
    "GBX": "GBp",
}

ACTIVITY_TYPES = {
    EventKind.BUY: "buy",
    EventKind.SELL: "sell",
    EventKind.DIVIDEND: "dividend",
    EventKind.DIVIDEND_TAX: "dividend",
    EventKind.PAYMENT_IN_LIEU: "dividend",
}


def canonical_currency(currency: str) -> str:
    """Rewrite a currency code to the form Ghostfolio expects."""
    return CURRENCY_ALIASES.get(currency, currency)


def format_activity_date(value: date, tz: Optional[tzinfo] = None) -> str:
    """
    Format a date as ISO-8601 midnight with a UTC offset.

    Args:
        value: Date to format
        tz: Timezone of the offset (None = local timezone)

    Returns:
        String such as "2023-01-05T00:00:00+01:00"
    """
    midnight = datetime.combine(value, time.min)
    if tz is None:
        midnight = midnight.astimezone()
    else:
        midnight = midnight.replace(tzinfo=tz)
    return midnight.isoformat(timespec="seconds")


def build_activity(
    event: EconomicEvent,
    account_id: Optional[str],
    tz: Optional[tzinfo] = None,
) -> Activity:
    """
    Build the Ghostfolio activity for an economic event.

    Args:
        event: Classified event
        account_id: Ghostfolio account to book the activity on
        tz: Timezone of the activity date (None = local timezone)

    Returns:
        Activity
    """
    return Activity(
        account_id=account_id,
        comment=event.comment,
        fee=event.fee,
        quantity=event.quantity,
        type=ACTIVITY_TYPES[event.kind],
        unit_price=event.unit_price,
        currency=event.currency,
        data_source=event.security.data_source,
        date=format_activity_date(event.date, tz),
        symbol=event.security.symbol,
    )
