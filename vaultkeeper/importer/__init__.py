"""
Tabular importer — turns delimited text into typed service records.

Public API:
    parse_delimited(text, separator)   → ParsedTable
    reconcile(rows, config, vault)     → ImportPlan
    ImportSession                      → parse/configure/preview/commit lifecycle
"""

from __future__ import annotations

from vaultkeeper.importer.parsing import ParsedTable, parse_delimited
from vaultkeeper.importer.reconciler import (
    ColumnMapping,
    ImportOutcome,
    ImportPlan,
    ImportSession,
    ImportSettings,
    LabelStrategy,
    reconcile,
)

__all__ = [
    "ColumnMapping",
    "ImportOutcome",
    "ImportPlan",
    "ImportSession",
    "ImportSettings",
    "LabelStrategy",
    "ParsedTable",
    "parse_delimited",
    "reconcile",
]
