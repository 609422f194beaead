"""
Delimited-text parsing for the importer.

The input has no header row: every non-empty line is data, and column names
are synthesized as ``Column 1..N`` from the width of the first line. Lines
may be wider or narrower than the first one; missing cells read as empty.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from vaultkeeper.errors import ValidationError


@dataclass(frozen=True)
class ParsedTable:
    header: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return len(self.header)

    def __len__(self) -> int:
        return len(self.rows)


def cell(row: list[str], index: int) -> str:
    """Trimmed cell value, empty when the row is too short."""
    return row[index].strip() if 0 <= index < len(row) else ""


def parse_delimited(text: str, separator: str) -> ParsedTable:
    """Split ``text`` into rows on newlines and cells on ``separator``.

    Raises:
        ValidationError: ``separator`` is empty.
    """
    if not separator:
        raise ValidationError("separator must not be empty")

    lines = [line for line in text.strip().splitlines() if line.strip()]
    if not lines:
        return ParsedTable()

    rows = [line.split(separator) for line in lines]
    header = [f"Column {i + 1}" for i in range(len(rows[0]))]
    return ParsedTable(header=header, rows=rows)
