"""Bulk account creation request models (camelCase on the wire)."""

from __future__ import annotations

from pydantic import Field

from vaultkeeper.catalog.models import Account, CatalogModel, Service

PLACEHOLDER = "%n%"


class BulkAccountConfig(CatalogModel):
    count: int = 1
    name_template: str = f"Work{PLACEHOLDER}"
    start_number: int = 1
    tags: list[str] = Field(default_factory=list)
    notes: str = ""


class ServiceLinkConfig(CatalogModel):
    service_type_id: str = ""
    name_template: str = PLACEHOLDER
    data: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)


class BulkCreateRequest(CatalogModel):
    account_config: BulkAccountConfig = Field(default_factory=BulkAccountConfig)
    link_services: bool = False
    service_configs: list[ServiceLinkConfig] = Field(default_factory=list)


class BulkPlan(CatalogModel):
    """The accounts and services one bulk request expands to."""

    accounts: list[Account] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)
