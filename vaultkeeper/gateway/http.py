"""
HTTP client for a vault backend exposing the command contract.

Wraps httpx.AsyncClient. Every command is ``POST {base}/commands/{name}`` with
body ``{"args": {...}}`` in the backend's camelCase shape; a 2xx reply carries
``{"result": ...}``, anything else ``{"error": "<message>"}``.

401 replies raise AuthError; other failures (non-2xx, transport errors,
timeouts) raise BackendError with the backend's message verbatim.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic.alias_generators import to_camel

from vaultkeeper.bulk.models import BulkCreateRequest
from vaultkeeper.catalog.models import Account, CatalogModel, Service, ServiceType, Settings, Vault
from vaultkeeper.config import BackendConfig, get_config
from vaultkeeper.errors import AuthError, BackendError
from vaultkeeper.gateway.base import BackendGateway

logger = logging.getLogger(__name__)


def _to_wire(value: Any) -> Any:
    if isinstance(value, CatalogModel):
        return value.to_wire()
    if isinstance(value, list):
        return [_to_wire(v) for v in value]
    return value


class HttpGateway(BackendGateway):
    """Async command client for a remote vault backend."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        cfg = get_config().backend
        if base_url:
            cfg = BackendConfig(url=base_url, timeout=cfg.timeout)
        self.base_url = cfg.url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=cfg.commands_url,
            timeout=timeout if timeout is not None else cfg.timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, command: str, **args: Any) -> Any:
        body = {"args": {to_camel(k): _to_wire(v) for k, v in args.items() if v is not None}}
        try:
            resp = await self._client.post(f"/{command}", json=body)
        except httpx.HTTPError as e:
            logger.warning("Backend command %s failed: %s", command, e)
            raise BackendError(f"backend unreachable: {e}", command=command) from e

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning("Backend command %s returned %d", command, resp.status_code)
            if resp.status_code == 401:
                raise AuthError(message, command=command)
            raise BackendError(message, command=command)

        if not resp.content:
            return None
        try:
            payload = resp.json()
        except ValueError as e:
            raise BackendError(f"malformed backend reply: {e}", command=command) from e
        if not isinstance(payload, dict):
            logger.warning("Backend command %s returned a non-object reply", command)
            raise BackendError("malformed backend reply", command=command)
        return payload.get("result")

    # Lifecycle

    async def vault_exists(self) -> bool:
        return bool(await self._call("vault_exists"))

    async def unlock_vault(self, password: str) -> Vault:
        return Vault.model_validate(await self._call("unlock_vault", password=password))

    async def create_vault(
        self, password: str, settings: Settings, selected_service_type_ids: list[str]
    ) -> Vault:
        result = await self._call(
            "create_vault",
            password=password,
            settings=settings,
            selected_service_type_ids=selected_service_type_ids,
        )
        return Vault.model_validate(result)

    async def lock_vault(self) -> None:
        await self._call("lock_vault")

    async def get_vault(self) -> Vault:
        return Vault.model_validate(await self._call("get_vault"))

    async def get_default_service_types(self) -> list[ServiceType]:
        result = await self._call("get_default_service_types_list")
        return [ServiceType.model_validate(st) for st in result or []]

    # Settings

    async def update_settings(self, settings: Settings) -> None:
        await self._call("update_settings", settings=settings)

    async def change_master_password(self, old_password: str, new_password: str) -> None:
        await self._call(
            "change_master_password", old_password=old_password, new_password=new_password
        )

    # Service types

    async def add_service_type(self, service_type: ServiceType) -> None:
        await self._call("add_service_type", service_type=service_type)

    async def update_service_type(self, service_type: ServiceType) -> None:
        await self._call("update_service_type", service_type=service_type)

    async def delete_service_type(self, service_type_id: str) -> None:
        await self._call("delete_service_type", service_type_id=service_type_id)

    # Services

    async def add_service(self, service: Service, account_id: str | None = None) -> None:
        await self._call("add_service", service=service, account_id=account_id)

    async def add_services(self, services: list[Service]) -> None:
        await self._call("add_services", services=services)

    async def update_service(self, service: Service) -> None:
        await self._call("update_service", service=service)

    async def delete_service(self, service_id: str) -> None:
        await self._call("delete_service", service_id=service_id)

    async def delete_services(self, service_ids: list[str]) -> None:
        await self._call("delete_services", service_ids=service_ids)

    # Accounts

    async def add_account(self, account: Account) -> None:
        await self._call("add_account", account=account)

    async def update_account(self, account: Account) -> None:
        await self._call("update_account", account=account)

    async def delete_account(self, account_id: str) -> None:
        await self._call("delete_account", account_id=account_id)

    async def link_services_to_account(self, account_id: str, service_ids: list[str]) -> None:
        await self._call("link_services_to_account", account_id=account_id, service_ids=service_ids)

    async def bulk_create_accounts(self, request: BulkCreateRequest) -> None:
        await self._call("bulk_create_accounts", request=request)


def _error_message(resp: httpx.Response) -> str:
    """Backend error string, falling back to the status line."""
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    text = resp.text.strip()
    return text or f"HTTP {resp.status_code}"
