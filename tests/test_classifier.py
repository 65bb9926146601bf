"""
Tests for row classification and activity assembly.
"""

from datetime import date, timedelta, timezone
from decimal import Decimal

import pytest

from ibkr_ghostfolio.conversion.assembler import (
    build_activity,
    canonical_currency,
    format_activity_date,
)
from ibkr_ghostfolio.conversion.classifier import (
    InvalidDateError,
    PriceParseError,
    UnclassifiedActionError,
    classify_row,
    is_payment_in_lieu,
    parse_per_share_price,
)
from ibkr_ghostfolio.models import DataSource, EventKind, OrderType

from conftest import APPLE_TAX, make_dividend_row, make_trade_row


class TestParsePerSharePrice:
    """Tests for per-share rate extraction."""

    def test_decimal_rate(self):
        """The number before PER SHARE is the rate."""
        assert parse_per_share_price("CASH DIVIDEND USD 0.24 PER SHARE") == Decimal("0.24")

    def test_integer_rate(self):
        """Whole-number rates are accepted."""
        assert parse_per_share_price("CASH DIVIDEND USD 2 PER SHARE") == Decimal("2")

    def test_bare_rate(self):
        """The rate may be the whole description prefix."""
        assert parse_per_share_price("0.24 PER SHARE") == Decimal("0.24")

    def test_missing_rate(self):
        """Descriptions without a rate yield None."""
        assert parse_per_share_price("CASH DIVIDEND USD 0.24") is None
        assert parse_per_share_price("") is None

    def test_rate_must_be_directly_followed(self):
        """The rate must be immediately followed by ' PER SHARE'."""
        assert parse_per_share_price("USD 0.24  PER SHARE") is None

    def test_zero_rate(self):
        """A zero rate cannot be used to derive a quantity."""
        assert parse_per_share_price("USD 0.00 PER SHARE") is None


class TestPaymentInLieu:
    """Tests for payment in lieu detection."""

    def test_case_insensitive(self):
        """The marker is matched case-insensitively."""
        assert is_payment_in_lieu("AAPL PAYMENT IN LIEU OF DIVIDEND")
        assert is_payment_in_lieu("Payment in lieu of dividend")
        assert not is_payment_in_lieu("CASH DIVIDEND USD 0.24 PER SHARE")


class TestClassifyTrade:
    """Tests for trade rows."""

    def test_buy(self, apple):
        """Buys carry quantity, price and commission."""
        event = classify_row(make_trade_row(), apple, "USD")

        assert event.kind == EventKind.BUY
        assert event.quantity == Decimal("10")
        assert event.unit_price == Decimal("150.00")
        assert event.fee == Decimal("1.00")
        assert event.comment == ""
        assert event.date == date(2023, 1, 5)
        assert event.security == apple

    def test_sell(self, apple):
        """Sells are classified from the action."""
        event = classify_row(make_trade_row(action="SELL", type=OrderType.SELL), apple, "USD")
        assert event.kind == EventKind.SELL

    def test_unclassified_action(self, apple):
        """Trade rows must be buys or sells."""
        with pytest.raises(UnclassifiedActionError):
            classify_row(make_trade_row(action="TRANSFER", type=None), apple, "USD")

    def test_dividend_action_on_trade_row(self, apple):
        """Dividend actions are not valid in a trades export."""
        with pytest.raises(UnclassifiedActionError):
            classify_row(make_trade_row(type=OrderType.DIVIDEND), apple, "USD")

    def test_invalid_date(self, apple):
        """Dates must be YYYYMMDD."""
        with pytest.raises(InvalidDateError):
            classify_row(make_trade_row(date="2023-01-05"), apple, "USD")


class TestClassifyDividend:
    """Tests for dividend rows."""

    def test_ordinary_dividend(self, apple):
        """Quantity is the amount divided by the rate."""
        row = make_dividend_row(description="0.24 PER SHARE", amount=Decimal("2.40"))
        event = classify_row(row, apple, "USD")

        assert event.kind == EventKind.DIVIDEND
        assert event.quantity == Decimal("10")
        assert event.unit_price == Decimal("0.24")
        assert event.fee == Decimal("0")
        assert event.comment == "0.24 PER SHARE"

    def test_quantity_rounded_to_three_places(self, apple):
        """Derived quantities are rounded to three decimals."""
        row = make_dividend_row(description="USD 0.3 PER SHARE", amount=Decimal("1.00"))
        event = classify_row(row, apple, "USD")
        assert event.quantity == Decimal("3.333")

    def test_withholding_tax(self, apple):
        """Tax keeps the rate, has no quantity and carries the amount as fee."""
        row = make_dividend_row(
            action="Withholding Tax",
            type=OrderType.DIVIDEND_TAX,
            description=APPLE_TAX,
            amount=Decimal("0.36"),
        )
        event = classify_row(row, apple, "USD")

        assert event.kind == EventKind.DIVIDEND_TAX
        assert event.quantity == Decimal("0")
        assert event.unit_price == Decimal("0.24")
        assert event.fee == Decimal("0.36")
        assert event.comment == APPLE_TAX

    def test_payment_in_lieu(self, apple):
        """Payments in lieu book the cash amount as quantity."""
        description = "AAPL(US0378331005) PAYMENT IN LIEU OF DIVIDEND (Ordinary Dividend)"
        row = make_dividend_row(description=description, amount=Decimal("5.12"))
        event = classify_row(row, apple, "USD")

        assert event.kind == EventKind.PAYMENT_IN_LIEU
        assert event.quantity == Decimal("5.12")
        assert event.unit_price == Decimal("0")
        assert event.fee == Decimal("0")
        assert event.comment == description

    def test_missing_rate(self, apple):
        """Ordinary dividends without a rate cannot be classified."""
        row = make_dividend_row(description="CASH DIVIDEND")
        with pytest.raises(PriceParseError) as exc_info:
            classify_row(row, apple, "USD")
        assert exc_info.value.row is row

    def test_unclassified_dividend_action(self, apple):
        """Dividend rows with an unknown action are ordinary dividends."""
        row = make_dividend_row(action="Other", type=None)
        assert classify_row(row, apple, "USD").kind == EventKind.DIVIDEND


class TestAssembler:
    """Tests for activity assembly."""

    def test_canonical_currency(self):
        """GBX is rewritten to GBp, everything else passes through."""
        assert canonical_currency("GBX") == "GBp"
        assert canonical_currency("USD") == "USD"
        assert canonical_currency("GBP") == "GBP"
        assert canonical_currency("") == ""

    def test_format_date_utc(self):
        """Dates are midnight with an offset."""
        assert format_activity_date(date(2023, 1, 5), timezone.utc) == "2023-01-05T00:00:00+00:00"

    def test_format_date_offset(self):
        """The offset of the configured timezone is used."""
        tz = timezone(timedelta(hours=1))
        assert format_activity_date(date(2023, 1, 5), tz) == "2023-01-05T00:00:00+01:00"

    def test_format_date_local(self):
        """Without a timezone the local offset is used."""
        formatted = format_activity_date(date(2023, 1, 5))
        assert formatted.startswith("2023-01-05T00:00:00")
        assert formatted[19] in "+-"

    def test_build_trade_activity(self, apple):
        """Trades map onto the Ghostfolio fields."""
        event = classify_row(make_trade_row(), apple, "USD")
        activity = build_activity(event, "acc-1", timezone.utc)

        assert activity.to_dict() == {
            "accountId": "acc-1",
            "comment": "",
            "fee": 1.0,
            "quantity": 10.0,
            "type": "buy",
            "unitPrice": 150.0,
            "currency": "USD",
            "dataSource": "YAHOO",
            "date": "2023-01-05T00:00:00+00:00",
            "symbol": "AAPL",
        }

    def test_dividend_family_is_dividend(self, apple):
        """Tax and payment in lieu events are booked as dividends."""
        tax = make_dividend_row(type=OrderType.DIVIDEND_TAX, description=APPLE_TAX)
        pil = make_dividend_row(description="PAYMENT IN LIEU OF DIVIDEND")
        for row in (tax, pil):
            activity = build_activity(classify_row(row, apple, "USD"), None, timezone.utc)
            assert activity.type == "dividend"
            assert activity.data_source == DataSource.YAHOO
