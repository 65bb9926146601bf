"""
Append-only decision logging for the IBKR to Ghostfolio converter.

Every decision the converter takes about a row that does not end up as a
plain activity (unresolved, skipped, merged) is logged with a timestamp so a
conversion can be audited after the fact.
"""

import json
from datetime import datetime, date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from ibkr_ghostfolio.models import (
    ActionType,
    Activity,
    ConverterConfig,
    DecisionLogEntry,
    ExportEnvelope,
    RawRow,
)
from ibkr_ghostfolio.data.overrides import OverrideTable


class DecisionLogger:
    """
    Append-only decision logger.

    Writes all decisions to a JSONL file for audit purposes.
    Each line is a complete JSON object representing one action.
    """

    def __init__(self, log_path: str | Path, source_file: Optional[str] = None):
        """
        Initialize the decision logger.

        Args:
            log_path: Path to the log file (will be created if not exists)
            source_file: Input file the logged decisions refer to
        """
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.source_file = source_file

    def log(self, entry: DecisionLogEntry) -> None:
        """
        Write a decision log entry.

        Args:
            entry: DecisionLogEntry to write
        """
        record = {
            "timestamp": entry.timestamp.isoformat(),
            "action_type": entry.action_type.value,
            "source_file": entry.source_file,
            "details": entry.details,
        }

        with open(self.log_path, "a") as f:
            f.write(json.dumps(record, cls=DecimalEncoder) + "\n")

    def _log(self, action_type: ActionType, details: dict) -> None:
        self.log(DecisionLogEntry.create(
            action_type=action_type,
            source_file=self.source_file,
            details=details,
        ))

    def log_config_loaded(self, config: ConverterConfig, config_path: Optional[str]) -> None:
        """
        Log the configuration a conversion runs with.

        Args:
            config: Effective configuration
            config_path: YAML file it was loaded from (if any)
        """
        self._log(ActionType.CONFIG_LOADED, {
            "config_path": config_path,
            "account_id": config.account_id,
            "overrides_path": config.overrides_path,
            "default_currency": config.default_currency,
            "strict_dividend_prices": config.strict_dividend_prices,
        })

    def log_overrides_loaded(self, overrides: OverrideTable) -> None:
        """Log the override table."""
        self._log(ActionType.OVERRIDES_LOADED, {
            "manual": sorted(i for i in overrides if overrides.is_manual(i)),
            "replacements": {
                i: overrides.replacement_for(i)
                for i in sorted(overrides)
                if not overrides.is_manual(i)
            },
        })

    def log_row_unresolved(self, row: RawRow) -> None:
        """Log a row whose identifier the lookup provider did not find."""
        self._log(ActionType.ROW_UNRESOLVED, {
            "line": row.line_number,
            "identifier": row.identifier,
            "action": row.action,
        })

    def log_row_skipped(self, row: RawRow, reason: str) -> None:
        """Log a row that could not be classified."""
        self._log(ActionType.ROW_SKIPPED, {
            "line": row.line_number,
            "identifier": row.identifier,
            "action": row.action,
            "reason": reason,
        })

    def log_dividend_merged(self, row: RawRow, activity: Activity) -> None:
        """Log a dividend or tax line that completed an emitted activity."""
        self._log(ActionType.DIVIDEND_MERGED, {
            "line": row.line_number,
            "symbol": activity.symbol,
            "date": activity.date,
            "quantity": activity.quantity,
            "unit_price": activity.unit_price,
            "fee": activity.fee,
        })

    def log_conversion_completed(
        self,
        envelope: ExportEnvelope,
        rows_read: int,
        rows_ignored: int,
        rows_unresolved: int,
        rows_skipped: int,
    ) -> None:
        """Log conversion totals."""
        activities = envelope.activities
        self._log(ActionType.CONVERSION_COMPLETED, {
            "rows_read": rows_read,
            "rows_ignored": rows_ignored,
            "rows_unresolved": rows_unresolved,
            "rows_skipped": rows_skipped,
            "activities": len(activities),
            "by_type": {
                t: sum(1 for a in activities if a.type == t)
                for t in sorted(set(a.type for a in activities))
            },
        })

    def read_log(self) -> list[DecisionLogEntry]:
        """
        Read all entries from the log file.

        Returns:
            List of DecisionLogEntry objects
        """
        entries: list[DecisionLogEntry] = []

        if not self.log_path.exists():
            return entries

        with open(self.log_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                entries.append(DecisionLogEntry(
                    timestamp=datetime.fromisoformat(record["timestamp"]),
                    action_type=ActionType(record["action_type"]),
                    source_file=record.get("source_file"),
                    details=record.get("details", {}),
                ))

        return entries

    def get_entries_by_type(self, action_type: ActionType) -> list[DecisionLogEntry]:
        """
        Get log entries of a specific type.

        Args:
            action_type: Type of action to filter by

        Returns:
            Filtered list of entries
        """
        return [e for e in self.read_log() if e.action_type == action_type]


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)
