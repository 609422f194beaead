"""
Import reconciler — maps parsed rows onto new services of one primary type.

Rows are independent: a row that cannot be completed (no label, a linked
value that resolves to nothing, a duplicate label) is skipped and counted,
never fatal to the batch. Configuration errors are fatal and raised before
any row is looked at.

Column mappings are written as strings:

    ignore
    tags                                   comma-separated tag list
    field:<typeId>:<fieldKey>              plain value, or a linked_service
                                           lookup on the same key
    field:<typeId>:<fieldKey>@<lookupKey>  linked_service lookup on lookupKey

Usage:
    from vaultkeeper.importer.reconciler import ImportSession, ImportSettings

    session = ImportSession()
    session.load(text, "||")
    session.configure(ImportSettings(primary_type_id="account", label_column=0,
                                     columns={1: ColumnMapping.parse("tags")}))
    plan = session.preview(store.vault)
    outcome = await session.commit(store)
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from vaultkeeper.catalog.models import Service, ServiceType, Vault
from vaultkeeper.catalog.relations import find_by_field
from vaultkeeper.config import get_config
from vaultkeeper.errors import ReferentialError, ValidationError
from vaultkeeper.importer.parsing import ParsedTable, cell, parse_delimited

if TYPE_CHECKING:
    from vaultkeeper.catalog.store import CatalogStore

logger = logging.getLogger(__name__)

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


class ImportState(StrEnum):
    EMPTY = "empty"
    PARSED = "parsed"
    CONFIGURED = "configured"
    PREVIEWED = "previewed"
    COMMITTED = "committed"


class LabelStrategy(StrEnum):
    MAP = "map"
    GENERATE = "generate"


class MappingKind(StrEnum):
    IGNORE = "ignore"
    TAGS = "tags"
    FIELD = "field"


class SkipReason(StrEnum):
    MISSING_LABEL = "missing_label"
    UNRESOLVED_LINK = "unresolved_link"
    DUPLICATE = "duplicate"


# ─── Configuration ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ColumnMapping:
    kind: MappingKind = MappingKind.IGNORE
    service_type_id: str = ""
    field_key: str = ""
    lookup_key: str | None = None

    @classmethod
    def parse(cls, text: str) -> ColumnMapping:
        """Parse ``ignore``, ``tags`` or ``field:<type>:<key>[@<lookup>]``."""
        text = text.strip()
        if text in ("", MappingKind.IGNORE):
            return cls()
        if text == MappingKind.TAGS:
            return cls(kind=MappingKind.TAGS)

        kind, _, rest = text.partition(":")
        type_id, _, key = rest.partition(":")
        if kind != MappingKind.FIELD or not type_id or not key:
            raise ValidationError(f"invalid column mapping '{text}'")
        key, _, lookup = key.partition("@")
        if not key:
            raise ValidationError(f"invalid column mapping '{text}'")
        return cls(
            kind=MappingKind.FIELD,
            service_type_id=type_id,
            field_key=key,
            lookup_key=lookup or None,
        )

    def __str__(self) -> str:
        if self.kind != MappingKind.FIELD:
            return str(self.kind)
        suffix = f"@{self.lookup_key}" if self.lookup_key else ""
        return f"field:{self.service_type_id}:{self.field_key}{suffix}"


def _default_pattern() -> str:
    return get_config().import_.label_pattern


def _default_start() -> int:
    return get_config().import_.label_start


@dataclass(frozen=True)
class ImportSettings:
    """How columns map onto the primary service type. Column indexes are 0-based."""

    primary_type_id: str
    columns: dict[int, ColumnMapping] = field(default_factory=dict)
    label_strategy: LabelStrategy = LabelStrategy.MAP
    label_column: int | None = None
    label_pattern: str = field(default_factory=_default_pattern)
    label_start: int = field(default_factory=_default_start)


def validate_settings(
    settings: ImportSettings, vault: Vault | None = None, width: int | None = None
) -> None:
    """Reject an unusable configuration.

    Raises:
        ValidationError: no primary type, a primary type missing from
            ``vault``, map strategy without a label column, a label column
            outside ``width``, an empty generate pattern, or a field mapping
            aimed at another service type.
    """
    if not settings.primary_type_id:
        raise ValidationError("a primary service type is required")
    if vault is not None and vault.service_type(settings.primary_type_id) is None:
        raise ValidationError(f"unknown service type '{settings.primary_type_id}'")

    if settings.label_strategy == LabelStrategy.MAP:
        if settings.label_column is None:
            raise ValidationError("select the column that holds the label")
        if settings.label_column < 0 or (width is not None and settings.label_column >= width):
            raise ValidationError(f"label column {settings.label_column + 1} is out of range")
    elif not settings.label_pattern:
        raise ValidationError("a label pattern is required to generate labels")

    for index, mapping in settings.columns.items():
        if (
            mapping.kind == MappingKind.FIELD
            and mapping.service_type_id != settings.primary_type_id
        ):
            raise ValidationError(
                f"column {index + 1} maps to '{mapping.service_type_id}', "
                f"not the primary type '{settings.primary_type_id}'"
            )


# ─── Planning ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RowSkip:
    row_index: int
    reason: SkipReason
    detail: str = ""


@dataclass
class ImportPlan:
    accepted: list[Service] = field(default_factory=list)
    skipped: list[RowSkip] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(frozen=True)
class ImportOutcome:
    accepted: int
    skipped: int


@dataclass(frozen=True)
class _PendingLink:
    field_key: str
    target_type_id: str
    lookup_key: str
    value: str


def next_label_number(vault: Vault, pattern: str, start: int) -> int:
    """One past the highest number already used after ``pattern``, else ``start``."""
    used = []
    for s in vault.services:
        if not s.label.startswith(pattern):
            continue
        m = _LEADING_INT_RE.match(s.label[len(pattern) :])
        if m:
            used.append(int(m.group(1)))
    return max(used) + 1 if used else start


def _split_tags(value: str) -> list[str]:
    return [t.strip() for t in value.split(",") if t.strip()]


def reconcile(
    rows: list[list[str]],
    settings: ImportSettings,
    vault: Vault,
    id_factory: Callable[[], str] | None = None,
) -> ImportPlan:
    """Turn ``rows`` into new services of the primary type.

    Raises:
        ValidationError: the configuration is unusable (see ``validate_settings``).
    """
    validate_settings(settings, vault)
    primary: ServiceType = vault.service_type(settings.primary_type_id)  # type: ignore[assignment]
    new_id = id_factory or (lambda: str(uuid.uuid4()))
    generating = settings.label_strategy == LabelStrategy.GENERATE
    next_number = (
        next_label_number(vault, settings.label_pattern, settings.label_start) if generating else 0
    )

    plan = ImportPlan()
    taken = {(s.label, s.service_type_id) for s in vault.services}

    for row_index, row in enumerate(rows):
        if generating:
            label = f"{settings.label_pattern}{next_number + plan.accepted_count}"
        else:
            label = cell(row, settings.label_column)  # type: ignore[arg-type]
            if not label:
                plan.skipped.append(RowSkip(row_index, SkipReason.MISSING_LABEL))
                logger.debug("Row %d skipped: no label", row_index + 1)
                continue

        data: dict[str, str] = {}
        tags: list[str] = []
        pending: list[_PendingLink] = []
        for col_index, mapping in sorted(settings.columns.items()):
            if not generating and col_index == settings.label_column:
                continue
            value = cell(row, col_index)
            if mapping.kind == MappingKind.IGNORE or not value:
                continue
            if mapping.kind == MappingKind.TAGS:
                tags = _split_tags(value)
                continue

            service_field = primary.field(mapping.field_key)
            if service_field is None:
                continue
            if service_field.is_link and service_field.linked_service_type_id:
                pending.append(
                    _PendingLink(
                        field_key=service_field.key,
                        target_type_id=service_field.linked_service_type_id,
                        lookup_key=mapping.lookup_key or service_field.key,
                        value=value,
                    )
                )
            else:
                data[service_field.key] = value

        try:
            for link in pending:
                target = find_by_field(vault, link.target_type_id, link.lookup_key, link.value)
                data[link.field_key] = target.id
        except ReferentialError as e:
            plan.skipped.append(RowSkip(row_index, SkipReason.UNRESOLVED_LINK, str(e)))
            logger.debug("Row %d skipped: %s", row_index + 1, e)
            continue

        if (label, primary.id) in taken:
            plan.skipped.append(RowSkip(row_index, SkipReason.DUPLICATE, label))
            logger.debug("Row %d skipped: duplicate label", row_index + 1)
            continue

        taken.add((label, primary.id))
        plan.accepted.append(
            Service(id=new_id(), service_type_id=primary.id, label=label, data=data, tags=tags)
        )

    if plan.skipped:
        logger.warning(
            "Import of %d row(s) into %s: %d accepted, %d skipped",
            len(rows),
            primary.id,
            plan.accepted_count,
            plan.skipped_count,
        )
    return plan


# ─── Session ─────────────────────────────────────────────────────────────


class ImportSession:
    """Parse → configure → preview → commit, one import at a time."""

    def __init__(self) -> None:
        self.state = ImportState.EMPTY
        self.table = ParsedTable()
        self.settings: ImportSettings | None = None
        self.plan: ImportPlan | None = None

    def load(self, text: str, separator: str | None = None) -> ParsedTable:
        """Parse ``text``. Replaces any earlier table and drops the configuration."""
        sep = separator if separator is not None else get_config().import_.separator
        self.table = parse_delimited(text, sep)
        self.settings = None
        self.plan = None
        self.state = ImportState.PARSED if self.table.rows else ImportState.EMPTY
        return self.table

    def configure(self, settings: ImportSettings) -> None:
        if self.state == ImportState.EMPTY:
            raise ValidationError("nothing to configure: no rows parsed")
        validate_settings(settings, width=self.table.width)
        self.settings = settings
        self.plan = None
        self.state = ImportState.CONFIGURED

    def preview(self, vault: Vault) -> ImportPlan:
        if self.settings is None:
            raise ValidationError("import is not configured")
        self.plan = reconcile(self.table.rows, self.settings, vault)
        self.state = ImportState.PREVIEWED
        return self.plan

    async def commit(self, store: CatalogStore) -> ImportOutcome:
        """Add every accepted row in a single batch.

        The plan is recomputed against the store's current snapshot. A
        gateway failure propagates and nothing is recorded as committed.
        """
        if self.state not in (ImportState.CONFIGURED, ImportState.PREVIEWED):
            raise ValidationError(f"cannot commit an import in state '{self.state}'")
        if store.vault is None:
            raise ValidationError("vault is locked")

        plan = self.preview(store.vault)
        if plan.accepted:
            await store.add_services(plan.accepted)
        self.state = ImportState.COMMITTED
        logger.info(
            "Imported %d service(s), skipped %d row(s)", plan.accepted_count, plan.skipped_count
        )
        return ImportOutcome(accepted=plan.accepted_count, skipped=plan.skipped_count)
