"""Backend gateways — the command contract and its in-memory and HTTP implementations."""

from vaultkeeper.gateway.base import BackendGateway
from vaultkeeper.gateway.http import HttpGateway
from vaultkeeper.gateway.memory import InMemoryGateway

__all__ = ["BackendGateway", "HttpGateway", "InMemoryGateway"]
