"""
ISIN override table.

The overrides file lists one ``IDENTIFIER=VALUE`` pair per line. When the
value equals the identifier, the identifier is resolved manually (a synthetic
security, never looked up). Otherwise the value is the symbol to look up in
place of the identifier. Blank lines and ``#`` comments are ignored, malformed
lines are skipped, and a later line for the same identifier replaces an
earlier one.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Optional

from ibkr_ghostfolio.models import OverrideEntry, OverrideKind


logger = logging.getLogger(__name__)


class OverrideTable(Mapping):
    """
    Read-only mapping from identifier to OverrideEntry.

    Built once before conversion starts and shared by reference.
    """

    def __init__(self, entries: Optional[Mapping[str, OverrideEntry]] = None):
        self._entries = MappingProxyType(dict(entries or {}))

    def __getitem__(self, identifier: str) -> OverrideEntry:
        return self._entries[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"OverrideTable({dict(self._entries)!r})"

    def is_manual(self, identifier: str) -> bool:
        """Whether the identifier is resolved manually."""
        entry = self._entries.get(identifier)
        return entry is not None and entry.kind == OverrideKind.MANUAL

    def replacement_for(self, identifier: str) -> Optional[str]:
        """Replacement lookup symbol for the identifier, if any."""
        entry = self._entries.get(identifier)
        if entry is None or entry.kind != OverrideKind.REPLACE:
            return None
        return entry.replacement_key

    @property
    def manual_count(self) -> int:
        return sum(1 for e in self._entries.values() if e.kind == OverrideKind.MANUAL)

    @property
    def replace_count(self) -> int:
        return sum(1 for e in self._entries.values() if e.kind == OverrideKind.REPLACE)


def parse_override_line(line: str) -> Optional[tuple[str, OverrideEntry]]:
    """
    Parse a single line of the overrides file.

    Args:
        line: Raw line

    Returns:
        (identifier, entry) tuple, or None for blank, comment and
        malformed lines
    """
    trimmed = line.strip()
    if not trimmed or trimmed.startswith("#"):
        return None

    parts = trimmed.split("=")
    if len(parts) != 2:
        return None

    identifier = parts[0].strip()
    value = parts[1].strip()
    if not identifier or not value:
        return None

    if identifier == value:
        return identifier, OverrideEntry.manual()
    return identifier, OverrideEntry.replace(value)


def parse_overrides(lines: Iterable[str]) -> OverrideTable:
    """
    Build an override table from the lines of an overrides file.

    Args:
        lines: Lines of the file

    Returns:
        OverrideTable (last line wins for duplicate identifiers)
    """
    entries: dict[str, OverrideEntry] = {}

    for line in lines:
        parsed = parse_override_line(line)
        if parsed is None:
            continue

        identifier, entry = parsed
        entries[identifier] = entry
        if entry.kind == OverrideKind.MANUAL:
            logger.info(f"Marked {identifier} as MANUAL data source")
        else:
            logger.info(f"Override: {identifier} -> {entry.replacement_key}")

    table = OverrideTable(entries)
    if len(table) > 0:
        logger.info(
            f"Loaded {table.replace_count} overrides and {table.manual_count} manual ISINs"
        )
    return table


def load_overrides(file_path: Optional[str | Path]) -> OverrideTable:
    """
    Load the override table from disk.

    Args:
        file_path: Path to the overrides file. A relative path is resolved
            against the working directory.

    Returns:
        OverrideTable; empty when no path is given or the file does not exist
    """
    if file_path is None:
        return OverrideTable()

    file_path = Path(file_path)
    if not file_path.exists():
        return OverrideTable()

    content = file_path.read_text(encoding="utf-8")
    return parse_overrides(content.splitlines())
