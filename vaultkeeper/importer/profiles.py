"""
YAML profiles for imports and bulk requests.

An import profile describes how a delimited file maps onto a service type.
Columns are numbered from 1, matching the synthesized ``Column N`` headers:

    separator: "||"
    primary_type: account
    label:
      strategy: map        # or: generate
      column: 1            # map only
      pattern: ACC         # generate only
      start: 1
    columns:
      2: field:account:email_ref@address
      3: tags

A bulk request file is the request itself, in either key style:

    account_config: {count: 3, name_template: "Work%n%", start_number: 5}
    link_services: true
    service_configs:
      - {service_type_id: email, name_template: "mail%n%"}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError as PydanticValidationError

from vaultkeeper.bulk.models import BulkCreateRequest
from vaultkeeper.config import get_config
from vaultkeeper.errors import ValidationError
from vaultkeeper.importer.reconciler import ColumnMapping, ImportSettings, LabelStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportProfile:
    separator: str
    settings: ImportSettings


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ValidationError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ValidationError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"{path} must contain a mapping")
    return data


def _column_index(raw: Any, what: str) -> int:
    try:
        index = int(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{what} must be a column number, got {raw!r}") from e
    if index < 1:
        raise ValidationError(f"{what} must be 1 or greater, got {index}")
    return index - 1


def _start_number(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"label start must be a number, got {raw!r}") from e


def import_profile_from_dict(data: dict[str, Any]) -> ImportProfile:
    cfg = get_config().import_
    label = data.get("label") or {}
    if not isinstance(label, dict):
        raise ValidationError(f"label must be a mapping, got {label!r}")
    try:
        strategy = LabelStrategy(label.get("strategy", LabelStrategy.MAP))
    except ValueError as e:
        raise ValidationError(f"unknown label strategy {label.get('strategy')!r}") from e

    label_column = None
    if strategy == LabelStrategy.MAP and label.get("column") is not None:
        label_column = _column_index(label["column"], "label column")

    raw_columns = data.get("columns") or {}
    if not isinstance(raw_columns, dict):
        raise ValidationError(f"columns must be a mapping, got {raw_columns!r}")
    columns = {
        _column_index(k, "column"): ColumnMapping.parse(str(v)) for k, v in raw_columns.items()
    }
    settings = ImportSettings(
        primary_type_id=str(data.get("primary_type") or ""),
        columns=columns,
        label_strategy=strategy,
        label_column=label_column,
        label_pattern=str(label.get("pattern", cfg.label_pattern)),
        label_start=_start_number(label.get("start", cfg.label_start)),
    )
    return ImportProfile(separator=str(data.get("separator", cfg.separator)), settings=settings)


def load_import_profile(path: str | Path) -> ImportProfile:
    profile = import_profile_from_dict(_load_yaml(Path(path)))
    logger.debug("Loaded import profile %s for type %s", path, profile.settings.primary_type_id)
    return profile


def load_bulk_request(path: str | Path) -> BulkCreateRequest:
    data = _load_yaml(Path(path))
    try:
        return BulkCreateRequest.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"invalid bulk request in {path}: {e}") from e
