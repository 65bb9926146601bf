"""
Conversion module for the IBKR to Ghostfolio converter.

Provides identity resolution, row classification, dividend/tax matching
and activity assembly, and the pipeline that ties them together.
"""

from ibkr_ghostfolio.conversion.assembler import (
    build_activity,
    canonical_currency,
    format_activity_date,
)
from ibkr_ghostfolio.conversion.classifier import (
    PriceParseError,
    RowClassificationError,
    classify_row,
    parse_per_share_price,
)
from ibkr_ghostfolio.conversion.converter import (
    ConversionError,
    DividendPriceError,
    IbkrConverter,
)
from ibkr_ghostfolio.conversion.matcher import DividendMatcher
from ibkr_ghostfolio.conversion.resolver import IdentityResolver, manual_security

__all__ = [
    "build_activity",
    "canonical_currency",
    "format_activity_date",
    "PriceParseError",
    "RowClassificationError",
    "classify_row",
    "parse_per_share_price",
    "ConversionError",
    "DividendPriceError",
    "IbkrConverter",
    "DividendMatcher",
    "IdentityResolver",
    "manual_security",
]
