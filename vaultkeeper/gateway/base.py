"""
Backend gateway contract — the only door to the encrypted vault.

Every command is a single request/response round trip. Implementations raise
``BackendError`` (``AuthError`` for rejected passwords) with the backend's
message verbatim; they never return partial results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from vaultkeeper.bulk.models import BulkCreateRequest
from vaultkeeper.catalog.models import Account, Service, ServiceType, Settings, Vault


class BackendGateway(ABC):
    # Lifecycle

    @abstractmethod
    async def vault_exists(self) -> bool: ...

    @abstractmethod
    async def unlock_vault(self, password: str) -> Vault: ...

    @abstractmethod
    async def create_vault(
        self, password: str, settings: Settings, selected_service_type_ids: list[str]
    ) -> Vault: ...

    @abstractmethod
    async def lock_vault(self) -> None: ...

    @abstractmethod
    async def get_vault(self) -> Vault: ...

    @abstractmethod
    async def get_default_service_types(self) -> list[ServiceType]: ...

    # Settings

    @abstractmethod
    async def update_settings(self, settings: Settings) -> None: ...

    @abstractmethod
    async def change_master_password(self, old_password: str, new_password: str) -> None: ...

    # Service types

    @abstractmethod
    async def add_service_type(self, service_type: ServiceType) -> None: ...

    @abstractmethod
    async def update_service_type(self, service_type: ServiceType) -> None: ...

    @abstractmethod
    async def delete_service_type(self, service_type_id: str) -> None: ...

    # Services

    @abstractmethod
    async def add_service(self, service: Service, account_id: str | None = None) -> None: ...

    @abstractmethod
    async def add_services(self, services: list[Service]) -> None: ...

    @abstractmethod
    async def update_service(self, service: Service) -> None: ...

    @abstractmethod
    async def delete_service(self, service_id: str) -> None: ...

    @abstractmethod
    async def delete_services(self, service_ids: list[str]) -> None: ...

    # Accounts

    @abstractmethod
    async def add_account(self, account: Account) -> None: ...

    @abstractmethod
    async def update_account(self, account: Account) -> None: ...

    @abstractmethod
    async def delete_account(self, account_id: str) -> None: ...

    @abstractmethod
    async def link_services_to_account(self, account_id: str, service_ids: list[str]) -> None: ...

    @abstractmethod
    async def bulk_create_accounts(self, request: BulkCreateRequest) -> None: ...

    async def close(self) -> None:
        """Release transport resources. No-op by default."""
