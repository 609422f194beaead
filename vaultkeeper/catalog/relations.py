"""
Read-time relation helpers — account↔service links and linked_service fields.

References between catalog records are soft: an account may list a service
id that was deleted, a service may point at a deleted service type, and a
linked_service field may hold an id that no longer resolves. Nothing here
raises on a dangling reference; it is reported instead.

Usage:
    from vaultkeeper.catalog.relations import linked_services, resolve_link

    services = linked_services(vault, account)        # dangling ids dropped
    link = resolve_link(vault, field, service.data.get(field.key))
    if link.status is LinkStatus.BROKEN: ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from vaultkeeper.catalog.models import Account, Service, ServiceField, Vault
from vaultkeeper.catalog.schema import missing_required_fields
from vaultkeeper.errors import ReferentialError


class LinkStatus(StrEnum):
    EMPTY = "empty"
    OK = "ok"
    BROKEN = "broken"  # id not found
    MISTYPED = "mistyped"  # found, but of another service type


@dataclass(frozen=True)
class ResolvedLink:
    status: LinkStatus
    service: Service | None = None


# ─── Types ───────────────────────────────────────────────────────────────


def type_name(vault: Vault, service_type_id: str, default: str = "") -> str:
    """Display name of a service type, ``default`` when the type is gone."""
    st = vault.service_type(service_type_id)
    return st.name if st else default


def services_of_type(vault: Vault, service_type_id: str) -> list[Service]:
    return [s for s in vault.services if s.service_type_id == service_type_id]


def type_references(vault: Vault, service_type_id: str) -> dict[str, list[str]]:
    """Everything that still refers to a service type.

    Returns:
        {"services": [service ids], "fields": ["<type id>.<field key>", ...]}
    """
    fields = [
        f"{st.id}.{f.key}"
        for st in vault.service_types
        for f in st.fields
        if f.linked_service_type_id == service_type_id
    ]
    return {
        "services": [s.id for s in services_of_type(vault, service_type_id)],
        "fields": fields,
    }


# ─── Account ↔ service ──────────────────────────────────────────────────


def linked_services(vault: Vault, account: Account) -> list[Service]:
    """Services linked to ``account``, in catalog order. Dangling ids are skipped."""
    wanted = set(account.linked_services)
    return [s for s in vault.services if s.id in wanted]


def dangling_service_ids(vault: Vault, account: Account) -> list[str]:
    known = {s.id for s in vault.services}
    return [sid for sid in account.linked_services if sid not in known]


def accounts_for_service(vault: Vault, service_id: str) -> list[Account]:
    return [a for a in vault.accounts if service_id in a.linked_services]


def unlinked_services(vault: Vault, account: Account) -> list[Service]:
    """Services that could still be linked to ``account``."""
    linked = set(account.linked_services)
    return [s for s in vault.services if s.id not in linked]


def available_accounts(vault: Vault, service_id: str) -> list[Account]:
    """Accounts that do not yet link ``service_id``."""
    return [a for a in vault.accounts if service_id not in a.linked_services]


# ─── linked_service fields ──────────────────────────────────────────────


def link_candidates(vault: Vault, field: ServiceField) -> list[Service]:
    """Services a linked_service field may point at."""
    if not field.linked_service_type_id:
        return []
    return services_of_type(vault, field.linked_service_type_id)


def resolve_link(vault: Vault, field: ServiceField, value: str | None) -> ResolvedLink:
    if not value:
        return ResolvedLink(LinkStatus.EMPTY)
    target = vault.service(value)
    if target is None:
        return ResolvedLink(LinkStatus.BROKEN)
    if target.service_type_id != field.linked_service_type_id:
        return ResolvedLink(LinkStatus.MISTYPED, target)
    return ResolvedLink(LinkStatus.OK, target)


def find_by_field(vault: Vault, service_type_id: str, key: str, value: str) -> Service:
    """First service of ``service_type_id`` whose ``data[key] == value``.

    Raises:
        ReferentialError: the type is unknown, does not define ``key``,
            or no service carries that value.
    """
    st = vault.service_type(service_type_id)
    if st is None:
        raise ReferentialError(
            f"linked service type '{service_type_id}' does not exist",
            reference=service_type_id,
        )
    if st.field(key) is None:
        raise ReferentialError(
            f"service type '{service_type_id}' has no field '{key}'",
            reference=f"{service_type_id}.{key}",
        )
    for s in vault.services:
        if s.service_type_id == service_type_id and s.data.get(key) == value:
            return s
    raise ReferentialError(
        f"no '{service_type_id}' service matches on '{key}'",
        reference=f"{service_type_id}.{key}",
    )


def service_issues(vault: Vault, service: Service) -> list[str]:
    """Human-readable data-quality problems for one service.

    Covers an unknown service type, empty required fields and
    linked_service fields that are broken or point at the wrong type.
    """
    st = vault.service_type(service.service_type_id)
    if st is None:
        return [f"unknown service type '{service.service_type_id}'"]

    issues = [f"required field '{key}' is empty" for key in missing_required_fields(service, st)]
    for f in st.fields:
        if not f.is_link:
            continue
        link = resolve_link(vault, f, service.data.get(f.key))
        if link.status is LinkStatus.BROKEN:
            issues.append(f"linked field '{f.key}' points at a missing service")
        elif link.status is LinkStatus.MISTYPED:
            issues.append(f"linked field '{f.key}' points at a service of another type")
    return issues
