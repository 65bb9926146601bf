"""
Tests for reading IBKR exports and writing Ghostfolio exports.
"""

import json
from datetime import datetime
from decimal import Decimal

import pytest

from ibkr_ghostfolio.data.loaders import (
    DataLoadError,
    load_export,
    parse_export,
    save_export,
)
from ibkr_ghostfolio.models import (
    Activity,
    DataSource,
    DividendRow,
    ExportEnvelope,
    OrderType,
    RowLayout,
    TradeRow,
)

from conftest import APPLE_DIVIDEND, APPLE_ISIN, DIVIDEND_HEADER, TRADE_HEADER


class TestParseExport:
    """Tests for parse_export."""

    def test_trade_rows(self, trade_csv):
        """Trade exports become TradeRows with normalized amounts."""
        schema, rows = parse_export(trade_csv)

        assert schema.layout == RowLayout.TRADE
        assert len(rows) == 2
        assert all(isinstance(r, TradeRow) for r in rows)

        buy, sell = rows
        assert buy.type == OrderType.BUY
        assert buy.date == "20230105"
        assert buy.identifier == APPLE_ISIN
        assert buy.quantity == Decimal("10")
        assert buy.price == Decimal("150.00")
        assert buy.commission == Decimal("1.00")
        assert buy.trade_currency == "USD"
        assert buy.currency == "USD"

        assert sell.type == OrderType.SELL
        assert sell.quantity == Decimal("4")
        assert sell.total_amount == Decimal("622.00")
        assert sell.commission == Decimal("1.00")

    def test_dividend_rows(self, dividend_csv):
        """Dividend exports become DividendRows, quoted descriptions intact."""
        schema, rows = parse_export(dividend_csv)

        assert schema.layout == RowLayout.DIVIDEND
        assert all(isinstance(r, DividendRow) for r in rows)

        dividend, tax = rows
        assert dividend.description == APPLE_DIVIDEND
        assert dividend.amount == Decimal("2.40")
        assert dividend.type == OrderType.DIVIDEND
        assert tax.type == OrderType.DIVIDEND_TAX
        assert tax.amount == Decimal("0.36")

    def test_line_numbers(self, trade_csv):
        """Rows remember their line in the file."""
        _, rows = parse_export(trade_csv)
        assert [r.line_number for r in rows] == [2, 3]

    def test_date_kept_as_text(self):
        """Dates are not coerced to numbers."""
        text = f"{DIVIDEND_HEADER}\nDividends,20230216,{APPLE_ISIN},X 0.1 PER SHARE,1,USD\n"
        _, rows = parse_export(text)
        assert rows[0].date == "20230216"

    def test_empty_identifier_kept(self):
        """Rows without identifier are returned with an empty identifier."""
        text = f"{DIVIDEND_HEADER}\nDividends,20230216,,Cash interest,1,USD\n"
        _, rows = parse_export(text)
        assert rows[0].identifier == ""

    def test_unclassified_action(self):
        """Unknown actions are kept with no type."""
        text = f"{TRADE_HEADER}\nTRANSFER,20230105,{APPLE_ISIN},1,1,1,USD,0,USD\n"
        _, rows = parse_export(text)
        assert rows[0].type is None
        assert rows[0].action == "TRANSFER"

    def test_header_only_is_parse_failure(self):
        """A file without data rows cannot be converted."""
        with pytest.raises(DataLoadError) as exc_info:
            parse_export(DIVIDEND_HEADER + "\n")
        assert "An error occurred while parsing!" in str(exc_info.value)

    def test_empty_file_is_parse_failure(self):
        """An empty file cannot be converted."""
        with pytest.raises(DataLoadError):
            parse_export("")

    def test_invalid_amount_is_parse_failure(self):
        """Non-numeric amounts fail the whole file."""
        text = f"{DIVIDEND_HEADER}\nDividends,20230216,{APPLE_ISIN},X,abc,USD\n"
        with pytest.raises(DataLoadError) as exc_info:
            parse_export(text)
        assert "Details" in str(exc_info.value)

    def test_row_wider_than_layout(self):
        """A row with an extra field fails the whole file."""
        text = (
            f"{DIVIDEND_HEADER}\n"
            f'DIVIDEND,20230105,{APPLE_ISIN},"0.24 PER SHARE",2.40,USD,EXTRA\n'
        )
        with pytest.raises(DataLoadError) as exc_info:
            parse_export(text)
        assert "expected 6 fields" in str(exc_info.value)

    def test_later_row_wider_than_layout(self):
        """An extra field after valid rows fails the whole file."""
        text = (
            f"{DIVIDEND_HEADER}\n"
            f'DIVIDEND,20230105,{APPLE_ISIN},"0.24 PER SHARE",2.40,USD\n'
            f'TAX,20230105,{APPLE_ISIN},"0.24 PER SHARE",0.36,USD,EXTRA\n'
        )
        with pytest.raises(DataLoadError):
            parse_export(text)

    def test_row_shorter_than_layout(self):
        """A row with a missing field fails the whole file."""
        text = (
            f"{DIVIDEND_HEADER}\n"
            f'DIVIDEND,20230105,{APPLE_ISIN},"0.24 PER SHARE",2.40,USD\n'
            f'TAX,20230105,{APPLE_ISIN},"0.24 PER SHARE",0.36\n'
        )
        with pytest.raises(DataLoadError) as exc_info:
            parse_export(text)
        assert "line 3" in str(exc_info.value)

    def test_trade_row_shorter_than_layout(self):
        """Trade rows must carry all nine fields."""
        text = f"{TRADE_HEADER}\nBUY,20230105,{APPLE_ISIN},10,150.00,1500.00,USD\n"
        with pytest.raises(DataLoadError):
            parse_export(text)

    def test_empty_fields_are_not_missing(self):
        """Fields that are present but empty are accepted."""
        text = f"{DIVIDEND_HEADER}\nDividends,20230216,,,,\n"
        _, rows = parse_export(text)
        assert rows[0].identifier == ""
        assert rows[0].amount == Decimal("0")
        assert rows[0].currency == ""


class TestLoadExport:
    """Tests for load_export."""

    def test_missing_file(self, tmp_path):
        """Missing files raise DataLoadError."""
        with pytest.raises(DataLoadError):
            load_export(tmp_path / "missing.csv")

    def test_reads_file(self, tmp_path, trade_csv):
        """Files are read, including a UTF-8 byte order mark."""
        path = tmp_path / "trades.csv"
        path.write_text("\ufeff" + trade_csv, encoding="utf-8")
        schema, rows = load_export(path)
        assert schema.layout == RowLayout.TRADE
        assert len(rows) == 2


class TestSaveExport:
    """Tests for save_export."""

    def test_writes_envelope(self, tmp_path):
        """The export is written as Ghostfolio JSON."""
        envelope = ExportEnvelope(
            generated_at=datetime(2024, 1, 2, 3, 4, 5),
            activities=[
                Activity(
                    account_id="acc",
                    comment="",
                    fee=Decimal("1.00"),
                    quantity=Decimal("10"),
                    type="buy",
                    unit_price=Decimal("150.00"),
                    currency="USD",
                    data_source=DataSource.YAHOO,
                    date="2023-01-05T00:00:00+00:00",
                    symbol="AAPL",
                )
            ],
        )

        path = save_export(envelope, tmp_path / "out" / "export.json")
        data = json.loads(path.read_text())

        assert data["meta"] == {"date": "2024-01-02T03:04:05", "version": "v0"}
        assert data["activities"] == [{
            "accountId": "acc",
            "comment": "",
            "fee": 1.0,
            "quantity": 10.0,
            "type": "buy",
            "unitPrice": 150.0,
            "currency": "USD",
            "dataSource": "YAHOO",
            "date": "2023-01-05T00:00:00+00:00",
            "symbol": "AAPL",
        }]
