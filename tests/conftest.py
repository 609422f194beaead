"""
Test fixtures for the catalog core.

- A small vault with an ``email`` type and an ``account`` type whose
  ``email_ref`` field links to ``email``
- An in-memory gateway holding that vault behind a password
- Config singleton reset around every test
"""

from __future__ import annotations

import itertools

import pytest

from vaultkeeper.catalog.models import (
    Account,
    FieldType,
    Service,
    ServiceField,
    ServiceType,
    Settings,
    Vault,
)
from vaultkeeper.catalog.store import CatalogStore
from vaultkeeper.config import reset_config
from vaultkeeper.gateway.memory import InMemoryGateway

# clean_env is inherited from the root conftest.py


@pytest.fixture(autouse=True)
def clean_config():
    """Reset config singleton between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def email_type() -> ServiceType:
    return ServiceType(
        id="email",
        name="Email",
        icon="Mail",
        fields=[
            ServiceField(id="f-1", key="address", label="Address", required=True),
            ServiceField(
                id="f-2", key="password", label="Password", type=FieldType.SECRET, masked=True
            ),
        ],
    )


@pytest.fixture
def account_type() -> ServiceType:
    return ServiceType(
        id="account",
        name="Account",
        fields=[
            ServiceField(id="f-3", key="login", label="Login"),
            ServiceField(
                id="f-4",
                key="email_ref",
                label="Email",
                type=FieldType.LINKED_SERVICE,
                linked_service_type_id="email",
            ),
        ],
    )


@pytest.fixture
def vault(email_type: ServiceType, account_type: ServiceType) -> Vault:
    return Vault(
        service_types=[email_type, account_type],
        services=[
            Service(
                id="s1",
                service_type_id="email",
                label="mail-1",
                data={"address": "a@x.com"},
                tags=["gmail"],
            ),
            Service(
                id="s2",
                service_type_id="email",
                label="mail-2",
                data={"address": "b@x.com"},
            ),
        ],
        accounts=[
            Account(id="acc-1", label="Work1", linked_services=["s1"]),
            Account(id="acc-2", label="Work10", tags=["farm"]),
            Account(id="acc-3", label="Work2", notes="backup profile", tags=["farm", "eu"]),
        ],
        settings=Settings(auto_lock_minutes=15),
    )


@pytest.fixture
def gateway(vault: Vault) -> InMemoryGateway:
    return InMemoryGateway(vault, password="pw")


@pytest.fixture
def store(gateway: InMemoryGateway) -> CatalogStore:
    """Store over the in-memory gateway. Still locked: await ``store.unlock("pw")``."""
    return CatalogStore(gateway)


@pytest.fixture
def id_factory():
    """Deterministic ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"
