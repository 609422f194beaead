"""
Schema rules for service types — key generation and type validation.

Pure functions, no I/O. Every service type passes through
``validate_service_type`` before the store sends it to the backend.

Usage:
    from vaultkeeper.catalog.schema import generate_key, validate_service_type

    generate_key("Recovery Email!")        # "recovery_email"
    check, detail = validate_service_type(service_type)
"""

from __future__ import annotations

import re
import uuid
from enum import StrEnum

from vaultkeeper.catalog.models import FieldType, Service, ServiceField, ServiceType, Vault

_STRIP_RE = re.compile(r"[^a-z0-9_\s]")
_SEPARATOR_RE = re.compile(r"[\s_]+")


class SchemaCheck(StrEnum):
    OK = "ok"
    MISSING_NAME_OR_ID = "missing_name_or_id"
    DUPLICATE_KEY = "duplicate_key"
    EMPTY_KEY = "empty_key"
    MISSING_LINK_TARGET = "missing_link_target"


def generate_key(label: str) -> str:
    """Derive a storage key from a human label.

    Lowercases, drops everything outside ``[a-z0-9\\s]`` (underscores survive so
    an existing key maps to itself) and turns whitespace runs into ``_``. The
    key never starts or ends with ``_``.
    """
    stripped = _STRIP_RE.sub("", label.lower())
    return _SEPARATOR_RE.sub("_", stripped).strip("_")


def slugify_type_id(name: str) -> str:
    """Service type id from its name. Only used when the type is created."""
    return generate_key(name)


def new_field(
    label: str,
    field_type: FieldType = FieldType.TEXT,
    *,
    key: str | None = None,
    masked: bool = False,
    required: bool = False,
    linked_service_type_id: str | None = None,
) -> ServiceField:
    return ServiceField(
        id=str(uuid.uuid4()),
        key=key if key is not None else generate_key(label),
        label=label,
        type=field_type,
        masked=masked,
        required=required,
        linked_service_type_id=linked_service_type_id,
    )


def new_service_type(
    name: str, icon: str = "Server", fields: list[ServiceField] | None = None
) -> ServiceType:
    return ServiceType(id=slugify_type_id(name), name=name, icon=icon, fields=fields or [])


def validate_service_type(service_type: ServiceType) -> tuple[SchemaCheck, str]:
    """Validate a service type's shape.

    Returns:
        (check, detail) tuple. ``check`` is ``SchemaCheck.OK`` when valid;
        ``detail`` names the offending field key otherwise.
    """
    if not service_type.name.strip() or not service_type.id.strip():
        return SchemaCheck.MISSING_NAME_OR_ID, "service type needs both a name and an id"

    seen: set[str] = set()
    for f in service_type.fields:
        if not f.key:
            return SchemaCheck.EMPTY_KEY, f"field '{f.label}' has an empty key"
        if f.key in seen:
            return SchemaCheck.DUPLICATE_KEY, f"duplicate field key '{f.key}'"
        seen.add(f.key)

        if f.is_link and not f.linked_service_type_id:
            return (
                SchemaCheck.MISSING_LINK_TARGET,
                f"linked_service field '{f.key}' has no linked service type",
            )
        if not f.is_link and f.linked_service_type_id:
            return (
                SchemaCheck.MISSING_LINK_TARGET,
                f"field '{f.key}' is not a linked_service field but names a link target",
            )

    return SchemaCheck.OK, "ok"


def missing_required_fields(service: Service, service_type: ServiceType) -> list[str]:
    """Required field keys that are absent or empty on ``service``."""
    return [f.key for f in service_type.fields if f.required and not service.data.get(f.key)]


def orphaned_data_keys(vault: Vault, updated_type: ServiceType) -> dict[str, list[str]]:
    """Services whose data would carry keys ``updated_type`` no longer defines.

    Schema evolution never deletes stored values; this only reports them.

    Returns:
        {service_id: [orphaned keys]} for affected services.
    """
    known = set(updated_type.keys)
    report: dict[str, list[str]] = {}
    for s in vault.services:
        if s.service_type_id != updated_type.id:
            continue
        extra = sorted(k for k in s.data if k not in known)
        if extra:
            report[s.id] = extra
    return report
