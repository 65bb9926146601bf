"""
Data loading and saving functions for IBKR exports and Ghostfolio imports.

Reads an IBKR CSV export into typed TradeRow/DividendRow records (the layout
is decided once, from the header, and never re-inferred) and writes the
Ghostfolio export JSON.
"""

import io
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import pandas as pd

from ibkr_ghostfolio.models import (
    DividendRow,
    ExportEnvelope,
    RawRow,
    RowLayout,
    TradeRow,
)
from ibkr_ghostfolio.data.normalize import classify_action, parse_amount
from ibkr_ghostfolio.data.schemas import FileSchema, detect_schema_from_text


PARSE_ERROR_MESSAGE = "An error occurred while parsing!"

# Data starts on the second line of the file
FIRST_DATA_LINE = 2


class DataLoadError(Exception):
    """Raised when data cannot be loaded or is invalid."""
    pass


def read_export_text(file_path: str | Path) -> str:
    """
    Read an IBKR export from disk.

    Raises:
        DataLoadError: If the file does not exist or cannot be read
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        return file_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise DataLoadError(f"{PARSE_ERROR_MESSAGE} Details: {e}")


def parse_export(text: str, delimiter: str = ",") -> tuple[FileSchema, list[RawRow]]:
    """
    Parse the contents of an IBKR export.

    Args:
        text: Full file contents including the header line
        delimiter: Field delimiter

    Returns:
        Tuple of (detected schema, rows in file order)

    Raises:
        DataLoadError: If the CSV is malformed or holds no data rows
    """
    schema = detect_schema_from_text(text, delimiter)
    df = _read_csv(text, schema, delimiter)

    if df.empty:
        raise DataLoadError(PARSE_ERROR_MESSAGE)

    rows: list[RawRow] = []
    for idx, record in enumerate(df.to_dict(orient="records")):
        line_number = idx + FIRST_DATA_LINE
        if schema.layout == RowLayout.TRADE:
            rows.append(_build_trade_row(record, line_number))
        else:
            rows.append(_build_dividend_row(record, line_number))

    return schema, rows


def load_export(file_path: str | Path, delimiter: str = ",") -> tuple[FileSchema, list[RawRow]]:
    """Read and parse an IBKR export file."""
    return parse_export(read_export_text(file_path), delimiter)


def save_export(envelope: ExportEnvelope, output_path: str | Path) -> Path:
    """
    Write a Ghostfolio export to a JSON file.

    Args:
        envelope: Export to write
        output_path: Path to write the JSON file

    Returns:
        The path written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(envelope.to_dict(), f, indent=2)
        f.write("\n")

    return output_path


def _read_csv(text: str, schema: FileSchema, delimiter: str) -> pd.DataFrame:
    """
    Tokenize the export, normalizing amount columns on the way.

    Every data row must have exactly as many fields as the layout.

    Raises:
        DataLoadError: If the CSV is malformed, a row has the wrong number
            of fields or an amount is not a number
    """
    columns = schema.all_columns
    numeric = set(schema.numeric_columns)
    try:
        # Columns are read by position; pandas rejects rows wider than the first
        df = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            skiprows=1,
            dtype={i: str for i, c in enumerate(columns) if c not in numeric},
            converters={i: parse_amount for i, c in enumerate(columns) if c in numeric},
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        raise DataLoadError(PARSE_ERROR_MESSAGE)
    except (pd.errors.ParserError, ValueError) as e:
        raise DataLoadError(f"{PARSE_ERROR_MESSAGE} Details: {e}")

    if len(df.columns) != len(columns):
        raise DataLoadError(
            f"{PARSE_ERROR_MESSAGE} Details: expected {len(columns)} fields, "
            f"saw {len(df.columns)}"
        )

    # Empty fields read as "", so a missing value means the row was too short
    short_rows = df.index[df.isna().any(axis=1)]
    if len(short_rows) > 0:
        raise DataLoadError(
            f"{PARSE_ERROR_MESSAGE} Details: expected {len(columns)} fields "
            f"on line {short_rows[0] + FIRST_DATA_LINE}"
        )

    df.columns = columns
    return df


def _text(record: dict[str, Any], column: str) -> str:
    value = record.get(column)
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value)


def _amount(record: dict[str, Any], column: str) -> Decimal:
    value = record.get(column)
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return parse_amount("")
    return parse_amount(value)


def _build_trade_row(record: dict[str, Any], line_number: int) -> TradeRow:
    action = _text(record, "type")
    return TradeRow(
        line_number=line_number,
        action=action,
        type=classify_action(action),
        date=_text(record, "date").strip(),
        identifier=_text(record, "identifier"),
        quantity=_amount(record, "quantity"),
        price=_amount(record, "price"),
        total_amount=_amount(record, "totalAmount"),
        trade_currency=_text(record, "tradeCurrency").strip(),
        commission=_amount(record, "commission"),
        commission_currency=_text(record, "commissionCurrency").strip(),
    )


def _build_dividend_row(record: dict[str, Any], line_number: int) -> DividendRow:
    action = _text(record, "type")
    return DividendRow(
        line_number=line_number,
        action=action,
        type=classify_action(action),
        date=_text(record, "date").strip(),
        identifier=_text(record, "identifier"),
        description=_text(record, "description"),
        amount=_amount(record, "amount"),
        currency=_text(record, "currency").strip(),
    )
