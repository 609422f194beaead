"""
In-memory backend gateway.

Holds the vault as plain models behind a password, enforcing the same command
rules as the real backend: a locked vault rejects every mutation, duplicate
service type ids are refused, and update/delete of unknown ids fails. Nothing
is encrypted or written to disk.

Used by the test suite and for local dry-runs. ``fail_next`` injects a
one-shot failure into the next command.
"""

from __future__ import annotations

import logging
from typing import Any

from vaultkeeper.bulk.generator import expand_bulk_request
from vaultkeeper.bulk.models import BulkCreateRequest
from vaultkeeper.catalog.defaults import default_service_types
from vaultkeeper.catalog.models import Account, Service, ServiceType, Settings, Vault
from vaultkeeper.errors import AuthError, BackendError
from vaultkeeper.gateway.base import BackendGateway

logger = logging.getLogger(__name__)

VAULT_VERSION = "0.2.0"


class InMemoryGateway(BackendGateway):
    def __init__(self, vault: Vault | None = None, password: str = "") -> None:
        self._stored = vault
        self._password = password
        self._unlocked = False
        self._pending_failure: BackendError | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []

    # ─── Test hooks ──────────────────────────────────────────────────────

    def fail_next(self, message: str, *, auth: bool = False) -> None:
        """Make the next command fail with ``message``."""
        cls = AuthError if auth else BackendError
        self._pending_failure = cls(message)

    @property
    def stored(self) -> Vault | None:
        return self._stored

    # ─── Internals ───────────────────────────────────────────────────────

    def _enter(self, command: str, **args: Any) -> None:
        self.calls.append((command, args))
        if self._pending_failure is not None:
            failure, self._pending_failure = self._pending_failure, None
            failure.command = command
            raise failure

    def _open(self) -> Vault:
        if not self._unlocked or self._stored is None:
            raise BackendError("Vault is locked or not yet created.")
        return self._stored

    def _save(self, vault: Vault) -> None:
        self._stored = vault

    # ─── Lifecycle ───────────────────────────────────────────────────────

    async def vault_exists(self) -> bool:
        self._enter("vault_exists")
        return self._stored is not None

    async def unlock_vault(self, password: str) -> Vault:
        self._enter("unlock_vault")
        if self._stored is None:
            raise BackendError("Vault not found.")
        if self._unlocked:
            return self._stored.model_copy(deep=True)
        if password != self._password:
            raise AuthError("Invalid master password.")
        self._unlocked = True
        return self._stored.model_copy(deep=True)

    async def create_vault(
        self, password: str, settings: Settings, selected_service_type_ids: list[str]
    ) -> Vault:
        self._enter("create_vault", selected_service_type_ids=selected_service_type_ids)
        if self._stored is not None and self._unlocked:
            return self._stored.model_copy(deep=True)

        wanted = set(selected_service_type_ids)
        vault = Vault(
            version=VAULT_VERSION,
            service_types=[st for st in default_service_types() if st.id in wanted],
            settings=settings,
        )
        self._stored = vault
        self._password = password
        self._unlocked = True
        logger.debug("Created in-memory vault with %d service types", len(vault.service_types))
        return vault.model_copy(deep=True)

    async def lock_vault(self) -> None:
        self._enter("lock_vault")
        if not self._unlocked:
            raise BackendError("Vault is locked or not yet created.")
        self._unlocked = False

    async def get_vault(self) -> Vault:
        self._enter("get_vault")
        return self._open().model_copy(deep=True)

    async def get_default_service_types(self) -> list[ServiceType]:
        self._enter("get_default_service_types")
        return default_service_types()

    # ─── Settings ────────────────────────────────────────────────────────

    async def update_settings(self, settings: Settings) -> None:
        self._enter("update_settings")
        vault = self._open()
        self._save(vault.model_copy(update={"settings": settings}))

    async def change_master_password(self, old_password: str, new_password: str) -> None:
        self._enter("change_master_password")
        self._open()
        if old_password != self._password:
            raise AuthError("The old password provided is incorrect.")
        self._password = new_password

    # ─── Service types ───────────────────────────────────────────────────

    async def add_service_type(self, service_type: ServiceType) -> None:
        self._enter("add_service_type", service_type=service_type)
        vault = self._open()
        if vault.service_type(service_type.id) is not None:
            raise BackendError(f"A Service Type with ID '{service_type.id}' already exists.")
        self._save(vault.model_copy(update={"service_types": [*vault.service_types, service_type]}))

    async def update_service_type(self, service_type: ServiceType) -> None:
        self._enter("update_service_type", service_type=service_type)
        vault = self._open()
        if vault.service_type(service_type.id) is None:
            raise BackendError(f"Service Type with ID '{service_type.id}' not found.")
        types = [service_type if st.id == service_type.id else st for st in vault.service_types]
        self._save(vault.model_copy(update={"service_types": types}))

    async def delete_service_type(self, service_type_id: str) -> None:
        self._enter("delete_service_type", service_type_id=service_type_id)
        vault = self._open()
        if vault.service_type(service_type_id) is None:
            raise BackendError(f"Service Type with ID '{service_type_id}' not found.")
        types = [st for st in vault.service_types if st.id != service_type_id]
        self._save(vault.model_copy(update={"service_types": types}))

    # ─── Services ────────────────────────────────────────────────────────

    async def add_service(self, service: Service, account_id: str | None = None) -> None:
        self._enter("add_service", service=service, account_id=account_id)
        vault = self._open()
        accounts = vault.accounts
        if account_id is not None:
            if vault.account(account_id) is None:
                raise BackendError(f"Account with ID '{account_id}' not found.")
            accounts = [
                a.with_linked([service.id]) if a.id == account_id else a for a in vault.accounts
            ]
        self._save(
            vault.model_copy(update={"services": [*vault.services, service], "accounts": accounts})
        )

    async def add_services(self, services: list[Service]) -> None:
        self._enter("add_services", services=services)
        vault = self._open()
        self._save(vault.model_copy(update={"services": [*vault.services, *services]}))

    async def update_service(self, service: Service) -> None:
        self._enter("update_service", service=service)
        vault = self._open()
        if vault.service(service.id) is None:
            raise BackendError(f"Service with ID '{service.id}' not found.")
        services = [service if s.id == service.id else s for s in vault.services]
        self._save(vault.model_copy(update={"services": services}))

    async def delete_service(self, service_id: str) -> None:
        self._enter("delete_service", service_id=service_id)
        vault = self._open()
        if vault.service(service_id) is None:
            raise BackendError(f"Service with ID '{service_id}' not found.")
        services = [s for s in vault.services if s.id != service_id]
        self._save(vault.model_copy(update={"services": services}))

    async def delete_services(self, service_ids: list[str]) -> None:
        self._enter("delete_services", service_ids=service_ids)
        vault = self._open()
        services = [s for s in vault.services if s.id not in service_ids]
        accounts = [a.without_linked(service_ids) for a in vault.accounts]
        self._save(vault.model_copy(update={"services": services, "accounts": accounts}))

    # ─── Accounts ────────────────────────────────────────────────────────

    async def add_account(self, account: Account) -> None:
        self._enter("add_account", account=account)
        vault = self._open()
        self._save(vault.model_copy(update={"accounts": [*vault.accounts, account]}))

    async def update_account(self, account: Account) -> None:
        self._enter("update_account", account=account)
        vault = self._open()
        if vault.account(account.id) is None:
            raise BackendError(f"Account with ID '{account.id}' not found.")
        accounts = [account if a.id == account.id else a for a in vault.accounts]
        self._save(vault.model_copy(update={"accounts": accounts}))

    async def delete_account(self, account_id: str) -> None:
        self._enter("delete_account", account_id=account_id)
        vault = self._open()
        if vault.account(account_id) is None:
            raise BackendError(f"Account with ID '{account_id}' not found.")
        accounts = [a for a in vault.accounts if a.id != account_id]
        self._save(vault.model_copy(update={"accounts": accounts}))

    async def link_services_to_account(self, account_id: str, service_ids: list[str]) -> None:
        self._enter("link_services_to_account", account_id=account_id, service_ids=service_ids)
        vault = self._open()
        if vault.account(account_id) is None:
            raise BackendError(f"Account with ID '{account_id}' not found.")
        accounts = [a.with_linked(service_ids) if a.id == account_id else a for a in vault.accounts]
        self._save(vault.model_copy(update={"accounts": accounts}))

    async def bulk_create_accounts(self, request: BulkCreateRequest) -> None:
        self._enter("bulk_create_accounts", request=request)
        vault = self._open()
        plan = expand_bulk_request(request)
        self._save(
            vault.model_copy(
                update={
                    "accounts": [*vault.accounts, *plan.accounts],
                    "services": [*vault.services, *plan.services],
                }
            )
        )
