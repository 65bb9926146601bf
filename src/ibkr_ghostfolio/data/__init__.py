"""
Data ingestion module for the IBKR to Ghostfolio converter.

Provides layout detection, field normalization and loading of IBKR CSV
exports, the ISIN override table, and writing of Ghostfolio export files.
"""

from ibkr_ghostfolio.data.loaders import (
    DataLoadError,
    load_export,
    parse_export,
    read_export_text,
    save_export,
)
from ibkr_ghostfolio.data.overrides import (
    OverrideTable,
    load_overrides,
    parse_overrides,
)
from ibkr_ghostfolio.data.schemas import (
    DIVIDEND_SCHEMA,
    TRADE_SCHEMA,
    detect_schema,
)

__all__ = [
    "DataLoadError",
    "load_export",
    "parse_export",
    "read_export_text",
    "save_export",
    "OverrideTable",
    "load_overrides",
    "parse_overrides",
    "DIVIDEND_SCHEMA",
    "TRADE_SCHEMA",
    "detect_schema",
]
