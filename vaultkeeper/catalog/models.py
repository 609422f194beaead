"""
Catalog data models — service types, services, accounts and the vault snapshot.

Models are frozen pydantic models. Attribute names are snake_case; the wire
shape (what the backend persists and returns) is camelCase via aliases:

    Service.model_validate({"id": "s1", "serviceTypeId": "email", "label": "a"})
    service.to_wire()  # {"id": "s1", "serviceTypeId": "email", ...}

A mutation never edits a model in place: callers build a replacement with
``model_copy(update=...)`` and swap it into a new snapshot.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class FieldType(StrEnum):
    TEXT = "text"
    SECRET = "secret"
    TEXTAREA = "textarea"
    URL = "url"
    LINKED_SERVICE = "linked_service"
    TWO_FA = "2fa"


def _unique(values: list[str]) -> list[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(values))


class CatalogModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Serialize to the backend's camelCase JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ServiceField(CatalogModel):
    id: str
    key: str
    label: str
    type: FieldType = FieldType.TEXT
    masked: bool = False
    required: bool = False
    linked_service_type_id: str | None = None

    @property
    def is_link(self) -> bool:
        return self.type == FieldType.LINKED_SERVICE

    @property
    def is_sensitive(self) -> bool:
        """Rendered masked: secret fields and anything flagged masked."""
        return self.type == FieldType.SECRET or self.masked


class ServiceType(CatalogModel):
    id: str
    name: str
    icon: str = "Server"
    fields: list[ServiceField] = Field(default_factory=list)

    def field(self, key: str) -> ServiceField | None:
        for f in self.fields:
            if f.key == key:
                return f
        return None

    @property
    def keys(self) -> list[str]:
        return [f.key for f in self.fields]


class Service(CatalogModel):
    id: str
    service_type_id: str
    label: str
    data: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, v: list[str]) -> list[str]:
        return _unique(v)


class Account(CatalogModel):
    id: str
    label: str
    notes: str = ""
    tags: list[str] = Field(default_factory=list)
    linked_services: list[str] = Field(default_factory=list)

    @field_validator("tags", "linked_services")
    @classmethod
    def _dedupe(cls, v: list[str]) -> list[str]:
        return _unique(v)

    def with_linked(self, service_ids: list[str]) -> Account:
        """Union ``service_ids`` into linked_services (set semantics)."""
        return self.model_copy(
            update={"linked_services": _unique([*self.linked_services, *service_ids])}
        )

    def without_linked(self, service_ids: list[str]) -> Account:
        drop = set(service_ids)
        return self.model_copy(
            update={"linked_services": [sid for sid in self.linked_services if sid not in drop]}
        )


class Settings(CatalogModel):
    auto_lock_minutes: int = 15


class Vault(CatalogModel):
    version: str = "0.2.0"
    service_types: list[ServiceType] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)

    def service_type(self, service_type_id: str) -> ServiceType | None:
        for st in self.service_types:
            if st.id == service_type_id:
                return st
        return None

    def service(self, service_id: str) -> Service | None:
        for s in self.services:
            if s.id == service_id:
                return s
        return None

    def account(self, account_id: str) -> Account | None:
        for a in self.accounts:
            if a.id == account_id:
                return a
        return None
