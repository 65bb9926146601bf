"""
IBKR to Ghostfolio conversion pipeline.

Rows are processed strictly in file order, one at a time:

1. Rows without an identifier are dropped silently
2. The identifier is resolved (override table, then lookup provider);
   unresolved rows are reported and skipped
3. The row is classified into an economic event
4. Dividends and withholding tax complete an already emitted counterpart
   when there is one; everything else becomes a new activity

Each lookup is awaited before the next row starts, so the matcher always
sees exactly the rows processed so far. A failing lookup aborts the batch.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ibkr_ghostfolio.models import (
    ConverterConfig,
    ExportEnvelope,
    RawRow,
    RowOutcome,
)
from ibkr_ghostfolio.data.loaders import parse_export, read_export_text
from ibkr_ghostfolio.data.overrides import OverrideTable
from ibkr_ghostfolio.data.providers.base import SecurityLookupError, SecurityProvider
from ibkr_ghostfolio.conversion.assembler import (
    build_activity,
    canonical_currency,
    format_activity_date,
)
from ibkr_ghostfolio.conversion.classifier import (
    PriceParseError,
    RowClassificationError,
    classify_row,
)
from ibkr_ghostfolio.conversion.matcher import DividendMatcher
from ibkr_ghostfolio.conversion.resolver import IdentityResolver
from ibkr_ghostfolio.logging.decision_log import DecisionLogger


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class ConversionError(Exception):
    """Raised when a conversion has to be aborted."""
    pass


class DividendPriceError(ConversionError):
    """Raised in strict mode for a dividend line without a per-share rate."""
    pass


def is_ignored_row(row: RawRow) -> bool:
    """Rows without an identifier are cash events outside the converter's scope."""
    return not row.identifier


class IbkrConverter:
    """Converts IBKR trade and dividend exports to a Ghostfolio export."""

    def __init__(
        self,
        provider: SecurityProvider,
        overrides: Optional[OverrideTable] = None,
        config: Optional[ConverterConfig] = None,
        decision_logger: Optional[DecisionLogger] = None,
    ):
        """
        Initialize the converter.

        Args:
            provider: Lookup provider for identifiers
            overrides: ISIN override table (empty if None)
            config: Conversion settings (defaults if None)
            decision_logger: Optional audit log
        """
        self.config = config or ConverterConfig()
        self.resolver = IdentityResolver(
            provider,
            overrides,
            default_currency=self.config.default_currency,
        )
        self.decision_logger = decision_logger

    async def convert_file(
        self,
        file_path: str | Path,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportEnvelope:
        """Read, parse and convert an IBKR export file."""
        return await self.convert_text(read_export_text(file_path), on_progress)

    async def convert_text(
        self,
        text: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportEnvelope:
        """
        Parse and convert the contents of an IBKR export.

        Raises:
            DataLoadError: If the CSV is malformed or empty
            SecurityLookupError: If a lookup fails
            DividendPriceError: Strict mode only, see ConverterConfig
        """
        _, rows = parse_export(text, self.config.delimiter)
        logger.info("Read CSV file. Start processing..")
        return await self.convert_rows(rows, on_progress)

    async def convert_rows(
        self,
        rows: list[RawRow],
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportEnvelope:
        """
        Convert typed rows to a Ghostfolio export.

        Args:
            rows: Rows in file order, all of the same layout
            on_progress: Called with 1 after each row is handled

        Returns:
            ExportEnvelope with activities in input order
        """
        envelope = ExportEnvelope(generated_at=datetime.now(timezone.utc))
        matcher = DividendMatcher()
        outcomes: Counter[RowOutcome] = Counter()

        for row in rows:
            if is_ignored_row(row):
                outcomes[RowOutcome.IGNORED] += 1
            else:
                outcomes[await self._convert_row(row, matcher)] += 1

            if on_progress is not None:
                on_progress(1)

        envelope.activities = matcher.activities
        ignored = outcomes[RowOutcome.IGNORED]
        unresolved = outcomes[RowOutcome.UNRESOLVED]
        skipped = outcomes[RowOutcome.SKIPPED]

        logger.info(
            f"Converted {len(rows)} rows into {len(envelope.activities)} activities "
            f"({ignored} ignored, {unresolved} unresolved, {skipped} skipped)"
        )
        if self.decision_logger is not None:
            self.decision_logger.log_conversion_completed(
                envelope, len(rows), ignored, unresolved, skipped,
            )

        return envelope

    async def _convert_row(self, row: RawRow, matcher: DividendMatcher) -> RowOutcome:
        """Convert one row into the matcher's activity list."""
        currency = canonical_currency(row.currency)

        try:
            security = await self.resolver.resolve(row.identifier, currency)
        except SecurityLookupError:
            logger.error(
                f"Lookup failed for {row.identifier} (line {row.line_number}). "
                "Aborting conversion."
            )
            raise

        if security is None:
            logger.warning(
                f"No result found for {_action_label(row)} action for {row.identifier}! "
                "Please add this manually.."
            )
            if self.decision_logger is not None:
                self.decision_logger.log_row_unresolved(row)
            return RowOutcome.UNRESOLVED

        try:
            event = classify_row(row, security, currency)
        except PriceParseError as e:
            if self.config.strict_dividend_prices:
                raise DividendPriceError(str(e)) from e
            return self._skip(row, str(e))
        except RowClassificationError as e:
            return self._skip(row, str(e))

        activity_date = format_activity_date(event.date, self.config.timezone)
        merged = matcher.merge(event, activity_date)
        if merged is not None:
            if self.decision_logger is not None:
                self.decision_logger.log_dividend_merged(row, merged)
            return RowOutcome.MERGED

        matcher.append(
            build_activity(event, self.config.account_id, self.config.timezone),
            event.kind,
        )
        return RowOutcome.EMITTED

    def _skip(self, row: RawRow, reason: str) -> RowOutcome:
        logger.warning(f"Skipping line {row.line_number}: {reason}")
        if self.decision_logger is not None:
            self.decision_logger.log_row_skipped(row, reason)
        return RowOutcome.SKIPPED


def _action_label(row: RawRow) -> str:
    return row.type.value if row.type is not None else row.action
