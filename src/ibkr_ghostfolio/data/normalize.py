"""
Per-field normalization applied while IBKR rows are read.

The action text is classified into an OrderType and amount columns are
coerced to non-negative Decimals: IBKR encodes direction in the action,
not in the sign.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from ibkr_ghostfolio.models import OrderType


# Checked in order; the first substring found wins
_ACTION_KEYWORDS = (
    ("buy", OrderType.BUY),
    ("sell", OrderType.SELL),
    ("dividend", OrderType.DIVIDEND),
    ("tax", OrderType.DIVIDEND_TAX),
)


def classify_action(action: str) -> Optional[OrderType]:
    """
    Classify an IBKR action text.

    Args:
        action: Raw action text (e.g. "BUY", "Dividends", "Withholding Tax")

    Returns:
        The matching OrderType, or None when no keyword is contained
    """
    action_lower = action.lower()
    for keyword, order_type in _ACTION_KEYWORDS:
        if keyword in action_lower:
            return order_type
    return None


def parse_amount(value: str) -> Decimal:
    """
    Parse an amount column to its absolute value.

    Blank values are treated as zero. Thousands separators are removed.

    Raises:
        ValueError: If the value is not a number
    """
    cleaned = str(value).strip().strip('"').replace(",", "")
    if not cleaned:
        return Decimal("0")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")

    return abs(amount)
