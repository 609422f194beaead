"""
Bulk generator — expands a templated request into N accounts and their services.

Numbering is deterministic: account ``i`` (0-based) gets ``n = start_number + i``
and every ``%n%`` in the account template and in each service template is
replaced by that same ``n``.

Validation is all-or-nothing: any bad rule rejects the whole request before
anything is generated. Generated labels are NOT deduplicated; collisions are
reported by ``label_collisions`` and left to the caller.

Usage:
    from vaultkeeper.bulk.generator import expand_bulk_request, validate_bulk_request

    validate_bulk_request(request, vault.service_types)
    plan = expand_bulk_request(request)
    [a.label for a in plan.accounts]    # ["Work5", "Work6", "Work7"]
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Callable, Sequence

from vaultkeeper.bulk.models import PLACEHOLDER, BulkCreateRequest, BulkPlan
from vaultkeeper.catalog.models import Account, Service, ServiceType, Vault
from vaultkeeper.config import get_config
from vaultkeeper.errors import ReferentialError, ValidationError

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def render_label(template: str, n: int) -> str:
    return template.replace(PLACEHOLDER, str(n))


def validate_bulk_request(
    request: BulkCreateRequest,
    service_types: Sequence[ServiceType] | None = None,
    *,
    max_count: int | None = None,
) -> None:
    """Reject a bad request as a whole.

    Raises:
        ValidationError: empty/placeholder-less template, count out of range,
            or incomplete service configs when linking is requested.
        ReferentialError: ``service_types`` was given and a service config
            names a type that is not in it.
    """
    if max_count is None:
        max_count = get_config().bulk_max_count

    cfg = request.account_config
    if not cfg.name_template.strip():
        raise ValidationError("account name template is required")
    if PLACEHOLDER not in cfg.name_template:
        raise ValidationError(f"account name template must contain the {PLACEHOLDER} placeholder")
    if not 1 <= cfg.count <= max_count:
        raise ValidationError(f"count must be between 1 and {max_count}, got {cfg.count}")

    if not request.link_services:
        return

    if not request.service_configs:
        raise ValidationError("linking services requires at least one service config")
    for index, sc in enumerate(request.service_configs):
        if not sc.service_type_id:
            raise ValidationError(f"service config #{index + 1} has no service type")
        if not sc.name_template.strip():
            raise ValidationError(f"service config #{index + 1} has no name template")

    if service_types is not None:
        known = {st.id for st in service_types}
        for sc in request.service_configs:
            if sc.service_type_id not in known:
                raise ReferentialError(
                    f"service type '{sc.service_type_id}' does not exist",
                    reference=sc.service_type_id,
                )


def expand_bulk_request(
    request: BulkCreateRequest, id_factory: Callable[[], str] | None = None
) -> BulkPlan:
    """Expand a validated request into concrete accounts and services."""
    new_id = id_factory or _new_id
    cfg = request.account_config
    configs = request.service_configs if request.link_services else []

    accounts: list[Account] = []
    services: list[Service] = []
    for i in range(cfg.count):
        n = cfg.start_number + i
        linked: list[str] = []
        for sc in configs:
            service = Service(
                id=new_id(),
                service_type_id=sc.service_type_id,
                label=render_label(sc.name_template, n),
                data=dict(sc.data),
                tags=list(sc.tags),
            )
            services.append(service)
            linked.append(service.id)

        accounts.append(
            Account(
                id=new_id(),
                label=render_label(cfg.name_template, n),
                notes=cfg.notes,
                tags=list(cfg.tags),
                linked_services=linked,
            )
        )

    return BulkPlan(accounts=accounts, services=services)


def label_collisions(plan: BulkPlan, vault: Vault | None = None) -> list[str]:
    """Account labels that repeat within ``plan`` or already exist in ``vault``."""
    counts = Counter(a.label for a in plan.accounts)
    existing = {a.label for a in vault.accounts} if vault else set()

    collisions: list[str] = []
    for a in plan.accounts:
        if (counts[a.label] > 1 or a.label in existing) and a.label not in collisions:
            collisions.append(a.label)
    if collisions:
        logger.warning(
            "Bulk request produces %d colliding account label(s): %s",
            len(collisions),
            ", ".join(collisions[:5]),
        )
    return collisions
