"""
Catalog Store — the session's single authoritative vault snapshot.

Every mutation follows the same discipline:

    1. no vault loaded → no-op
    2. validate input (ValidationError, nothing sent)
    3. await the backend gateway with the exact payload
    4. on success, replace the snapshot with a structurally rebuilt copy

A gateway failure propagates to the caller and the snapshot stays exactly as
it was. There is no optimistic update, so there is nothing to roll back.

The store does not serialize callers: await one mutation before issuing the
next against the same entity.

Usage:
    from vaultkeeper.catalog.store import CatalogStore
    from vaultkeeper.gateway.memory import InMemoryGateway

    store = CatalogStore(InMemoryGateway(vault, password="pw"))
    await store.unlock("pw")
    await store.link_services_to_account(account.id, [service.id])
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from enum import StrEnum
from typing import Any, TypeVar

from vaultkeeper.bulk.generator import expand_bulk_request, label_collisions, validate_bulk_request
from vaultkeeper.bulk.models import BulkCreateRequest
from vaultkeeper.catalog.models import Account, Service, ServiceType, Settings, Vault
from vaultkeeper.catalog.relations import type_references
from vaultkeeper.catalog.schema import SchemaCheck, orphaned_data_keys, validate_service_type
from vaultkeeper.errors import BackendError, ValidationError
from vaultkeeper.gateway.base import BackendGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AppStatus(StrEnum):
    LOADING = "loading"
    NEEDS_SETUP = "needs_setup"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    ERROR = "error"


def _require_label(label: str, what: str) -> None:
    if not label.strip():
        raise ValidationError(f"{what} label is required")


class CatalogStore:
    """State container owning one Vault snapshot."""

    def __init__(self, gateway: BackendGateway) -> None:
        self.gateway = gateway
        self.status = AppStatus.LOADING
        self.error: str | None = None
        self._vault: Vault | None = None

    @property
    def vault(self) -> Vault | None:
        return self._vault

    # ─── Internals ───────────────────────────────────────────────────────

    async def _send(self, command: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except BackendError as e:
            logger.warning("Backend rejected %s: %s", command, e)
            raise

    def _replace(self, command: str, **update: Any) -> None:
        """Swap in a rebuilt snapshot. Skipped if the vault was locked meanwhile."""
        if self._vault is None:
            return
        self._vault = self._vault.model_copy(update=update)
        logger.info("Committed %s", command)

    # ─── Lifecycle ───────────────────────────────────────────────────────

    async def check_initial_status(self) -> AppStatus:
        try:
            exists = await self.gateway.vault_exists()
        except BackendError as e:
            self.status, self.error = AppStatus.ERROR, str(e) or "Failed to initialize"
            return self.status
        self.status = AppStatus.LOCKED if exists else AppStatus.NEEDS_SETUP
        return self.status

    async def unlock(self, password: str) -> Vault:
        self.status, self.error = AppStatus.LOADING, None
        try:
            vault = await self.gateway.unlock_vault(password)
        except BackendError as e:
            self.status, self.error = AppStatus.ERROR, str(e)
            raise
        self._vault = vault
        self.status = AppStatus.UNLOCKED
        logger.info(
            "Vault unlocked: %d types, %d services, %d accounts",
            len(vault.service_types),
            len(vault.services),
            len(vault.accounts),
        )
        return vault

    async def create_vault(
        self, password: str, settings: Settings, selected_service_type_ids: list[str]
    ) -> Vault:
        if not password:
            raise ValidationError("master password is required")
        self.status, self.error = AppStatus.LOADING, None
        try:
            vault = await self.gateway.create_vault(password, settings, selected_service_type_ids)
        except BackendError as e:
            self.status, self.error = AppStatus.ERROR, str(e)
            raise
        self._vault = vault
        self.status = AppStatus.UNLOCKED
        logger.info("Vault created with %d service types", len(vault.service_types))
        return vault

    async def lock(self) -> None:
        self.status = AppStatus.LOADING
        try:
            await self.gateway.lock_vault()
        except BackendError as e:
            self.status, self.error = AppStatus.ERROR, str(e)
            raise
        self._vault = None
        self.status, self.error = AppStatus.LOCKED, None
        logger.info("Vault locked")

    def reset_error(self) -> None:
        """Recover from a failed unlock/create back to the lock screen state."""
        if self.status == AppStatus.ERROR:
            self.status, self.error = AppStatus.LOCKED, None

    async def refresh(self) -> Vault | None:
        """Replace the snapshot with the backend's current vault."""
        if self._vault is None:
            return None
        vault = await self._send("get_vault", self.gateway.get_vault())
        if self._vault is not None:
            self._vault = vault
        return self._vault

    # ─── Settings ────────────────────────────────────────────────────────

    async def update_settings(self, settings: Settings) -> None:
        if self._vault is None:
            return
        if settings.auto_lock_minutes < 0:
            raise ValidationError("auto-lock minutes cannot be negative")
        await self._send("update_settings", self.gateway.update_settings(settings))
        self._replace("update_settings", settings=settings)

    async def change_password(self, old_password: str, new_password: str) -> None:
        if not new_password:
            raise ValidationError("new master password is required")
        await self._send(
            "change_master_password",
            self.gateway.change_master_password(old_password, new_password),
        )
        logger.info("Master password changed")

    # ─── Service types ───────────────────────────────────────────────────

    async def add_service_type(self, service_type: ServiceType) -> None:
        vault = self._vault
        if vault is None:
            return
        check, detail = validate_service_type(service_type)
        if check != SchemaCheck.OK:
            raise ValidationError(detail)
        if vault.service_type(service_type.id) is not None:
            raise ValidationError(f"service type '{service_type.id}' already exists")

        await self._send("add_service_type", self.gateway.add_service_type(service_type))
        self._replace(
            "add_service_type", service_types=[*self._vault.service_types, service_type]
        )

    async def update_service_type(self, service_type: ServiceType) -> None:
        vault = self._vault
        if vault is None:
            return
        check, detail = validate_service_type(service_type)
        if check != SchemaCheck.OK:
            raise ValidationError(detail)
        if vault.service_type(service_type.id) is None:
            raise ValidationError(
                f"unknown service type '{service_type.id}' (type ids cannot be changed)"
            )

        orphaned = orphaned_data_keys(vault, service_type)
        if orphaned:
            logger.warning(
                "Service type %s no longer defines keys held by %d service(s); values are kept",
                service_type.id,
                len(orphaned),
            )

        await self._send("update_service_type", self.gateway.update_service_type(service_type))
        self._replace(
            "update_service_type",
            service_types=[
                service_type if st.id == service_type.id else st
                for st in self._vault.service_types
            ],
        )

    async def delete_service_type(self, service_type_id: str) -> None:
        vault = self._vault
        if vault is None:
            return
        refs = type_references(vault, service_type_id)
        if refs["services"] or refs["fields"]:
            logger.warning(
                "Deleting service type %s leaves %d service(s) and %d link field(s) dangling",
                service_type_id,
                len(refs["services"]),
                len(refs["fields"]),
            )

        await self._send("delete_service_type", self.gateway.delete_service_type(service_type_id))
        self._replace(
            "delete_service_type",
            service_types=[st for st in self._vault.service_types if st.id != service_type_id],
        )

    # ─── Services ────────────────────────────────────────────────────────

    async def add_service(self, service: Service, account_id: str | None = None) -> None:
        if self._vault is None:
            return
        _require_label(service.label, "service")
        if not service.service_type_id:
            raise ValidationError("service type is required")

        await self._send("add_service", self.gateway.add_service(service, account_id))
        vault = self._vault
        accounts = vault.accounts
        if account_id:
            accounts = [
                a.with_linked([service.id]) if a.id == account_id else a for a in vault.accounts
            ]
        self._replace("add_service", services=[*vault.services, service], accounts=accounts)

    async def add_services(self, services: list[Service]) -> None:
        if self._vault is None or not services:
            return
        for s in services:
            _require_label(s.label, "service")

        await self._send("add_services", self.gateway.add_services(services))
        self._replace("add_services", services=[*self._vault.services, *services])

    async def update_service(self, service: Service) -> None:
        if self._vault is None:
            return
        _require_label(service.label, "service")

        await self._send("update_service", self.gateway.update_service(service))
        self._replace(
            "update_service",
            services=[service if s.id == service.id else s for s in self._vault.services],
        )

    async def delete_service(self, service_id: str) -> None:
        if self._vault is None:
            return
        await self._send("delete_service", self.gateway.delete_service(service_id))
        self._replace(
            "delete_service", services=[s for s in self._vault.services if s.id != service_id]
        )

    async def delete_services(self, service_ids: list[str]) -> None:
        """Delete several services and drop them from every account's links."""
        if self._vault is None or not service_ids:
            return
        await self._send("delete_services", self.gateway.delete_services(service_ids))
        doomed = set(service_ids)
        vault = self._vault
        self._replace(
            "delete_services",
            services=[s for s in vault.services if s.id not in doomed],
            accounts=[a.without_linked(service_ids) for a in vault.accounts],
        )

    # ─── Accounts ────────────────────────────────────────────────────────

    async def add_account(self, account: Account) -> None:
        if self._vault is None:
            return
        _require_label(account.label, "account")

        await self._send("add_account", self.gateway.add_account(account))
        self._replace("add_account", accounts=[*self._vault.accounts, account])

    async def update_account(self, account: Account) -> None:
        if self._vault is None:
            return
        _require_label(account.label, "account")

        await self._send("update_account", self.gateway.update_account(account))
        self._replace(
            "update_account",
            accounts=[account if a.id == account.id else a for a in self._vault.accounts],
        )

    async def delete_account(self, account_id: str) -> None:
        if self._vault is None:
            return
        await self._send("delete_account", self.gateway.delete_account(account_id))
        self._replace(
            "delete_account", accounts=[a for a in self._vault.accounts if a.id != account_id]
        )

    async def link_services_to_account(self, account_id: str, service_ids: list[str]) -> None:
        """Union ``service_ids`` into the account's links. Repeats are no-ops."""
        if self._vault is None or not service_ids:
            return
        await self._send(
            "link_services_to_account",
            self.gateway.link_services_to_account(account_id, service_ids),
        )
        self._replace(
            "link_services_to_account",
            accounts=[
                a.with_linked(service_ids) if a.id == account_id else a
                for a in self._vault.accounts
            ],
        )

    async def unlink_service_from_account(self, account_id: str, service_id: str) -> None:
        vault = self._vault
        if vault is None:
            return
        account = vault.account(account_id)
        if account is None:
            raise ValidationError(f"unknown account '{account_id}'")
        await self.update_account(account.without_linked([service_id]))

    # ─── Bulk ────────────────────────────────────────────────────────────

    async def bulk_create_accounts(self, request: BulkCreateRequest) -> None:
        """Create accounts (and linked services) from a template in one batch.

        The backend owns id assignment for bulk creation, so the snapshot is
        replaced by a fresh ``get_vault`` once the batch is accepted.
        """
        vault = self._vault
        if vault is None:
            return
        validate_bulk_request(request, vault.service_types)
        label_collisions(expand_bulk_request(request), vault)

        await self._send("bulk_create_accounts", self.gateway.bulk_create_accounts(request))
        refreshed = await self._send("get_vault", self.gateway.get_vault())
        if self._vault is not None:
            self._vault = refreshed
            logger.info(
                "Committed bulk_create_accounts: %d account(s)", request.account_config.count
            )
