"""
Column layouts of IBKR exports and header-based layout detection.

IBKR exports carry no usable column names, so the layout is chosen from the
number of fields in the header line alone: more than six fields is a trades
export, anything else a dividends export. Column names are never validated.
"""

from dataclasses import dataclass

from ibkr_ghostfolio.models import RowLayout


@dataclass
class ColumnSchema:
    """Schema definition for a single column."""
    name: str
    numeric: bool = False


@dataclass
class FileSchema:
    """Schema definition for a file."""
    name: str
    layout: RowLayout
    columns: list[ColumnSchema]
    description: str

    @property
    def all_columns(self) -> list[str]:
        """Get list of all column names."""
        return [c.name for c in self.columns]

    @property
    def numeric_columns(self) -> list[str]:
        """Get list of columns holding amounts."""
        return [c.name for c in self.columns if c.numeric]


# Trades export (9 columns)
TRADE_SCHEMA = FileSchema(
    name="ibkr_trades",
    layout=RowLayout.TRADE,
    description="IBKR trade fills",
    columns=[
        ColumnSchema(name="type"),
        ColumnSchema(name="date"),
        ColumnSchema(name="identifier"),
        ColumnSchema(name="quantity", numeric=True),
        ColumnSchema(name="price", numeric=True),
        ColumnSchema(name="totalAmount", numeric=True),
        ColumnSchema(name="tradeCurrency"),
        ColumnSchema(name="commission", numeric=True),
        ColumnSchema(name="commissionCurrency"),
    ],
)

# Dividends export (6 columns)
DIVIDEND_SCHEMA = FileSchema(
    name="ibkr_dividends",
    layout=RowLayout.DIVIDEND,
    description="IBKR dividend and withholding tax lines",
    columns=[
        ColumnSchema(name="type"),
        ColumnSchema(name="date"),
        ColumnSchema(name="identifier"),
        ColumnSchema(name="description"),
        ColumnSchema(name="amount", numeric=True),
        ColumnSchema(name="currency"),
    ],
)

# Header field count above which a file is treated as a trades export
DIVIDEND_COLUMN_COUNT = len(DIVIDEND_SCHEMA.columns)


def detect_schema(header_line: str, delimiter: str = ",") -> FileSchema:
    """
    Select the column layout from the header line of an export.

    Args:
        header_line: First line of the file
        delimiter: Field delimiter

    Returns:
        TRADE_SCHEMA when the header has more than six fields,
        DIVIDEND_SCHEMA otherwise
    """
    field_count = len(header_line.rstrip("\r\n").split(delimiter))
    if field_count > DIVIDEND_COLUMN_COUNT:
        return TRADE_SCHEMA
    return DIVIDEND_SCHEMA


def detect_schema_from_text(text: str, delimiter: str = ",") -> FileSchema:
    """Select the column layout from the full contents of an export."""
    return detect_schema(text.split("\n", 1)[0], delimiter)
