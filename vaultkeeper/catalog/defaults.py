"""Built-in service types offered when a new vault is created."""

from __future__ import annotations

from vaultkeeper.catalog.models import FieldType, ServiceField, ServiceType


def _field(
    id: str, key: str, label: str, field_type: FieldType, masked: bool, required: bool
) -> ServiceField:
    return ServiceField(
        id=id, key=key, label=label, type=field_type, masked=masked, required=required
    )


_TEXT = FieldType.TEXT
_SECRET = FieldType.SECRET
_TEXTAREA = FieldType.TEXTAREA


def default_service_types() -> list[ServiceType]:
    return [
        ServiceType(
            id="discord",
            name="Discord",
            icon="MessageSquare",
            fields=[
                _field("d-1", "username", "Username", _TEXT, False, True),
                _field("d-2", "email", "Email", _TEXT, False, True),
                _field("d-3", "password", "Password", _SECRET, True, True),
                _field("d-6", "auth_token", "Auth Token", _TEXTAREA, True, False),
                _field("d-7", "2fa_key", "2FA Key", FieldType.TWO_FA, True, False),
                _field("d-8", "backup_codes", "Backup Codes", _TEXTAREA, True, False),
            ],
        ),
        ServiceType(
            id="twitter-x",
            name="Twitter (X)",
            icon="Twitter",
            fields=[
                _field("t-1", "display_name", "Name", _TEXT, False, True),
                _field("t-2", "email", "Email", _TEXT, False, True),
                _field("t-3", "password", "Password", _SECRET, True, True),
                _field("t-6", "auth_token", "Auth Token", _TEXTAREA, True, False),
                _field("t-7", "2fa_key", "2FA Key", FieldType.TWO_FA, True, False),
                _field("t-8", "backup_codes", "Backup Codes", _TEXTAREA, True, False),
            ],
        ),
        ServiceType(
            id="email",
            name="Email",
            icon="Mail",
            fields=[
                _field("g-1", "display_name", "Name", _TEXT, False, False),
                _field("g-2", "email", "Email", _TEXT, False, True),
                _field("g-3", "password", "Password", _SECRET, True, True),
                _field("g-4", "recovery_email", "Recovery Email", _TEXT, False, False),
                _field(
                    "g-5",
                    "recovery_email_access_url",
                    "Recovery Email Access URL",
                    FieldType.URL,
                    False,
                    False,
                ),
                _field(
                    "g-6",
                    "recovery_email_access_password",
                    "Recovery Email Access Password",
                    _SECRET,
                    True,
                    False,
                ),
                _field("g-7", "2fa_key", "2FA Key", FieldType.TWO_FA, True, False),
            ],
        ),
        ServiceType(
            id="proxy",
            name="Proxy",
            icon="Globe",
            fields=[_field("p-1", "proxy_string", "Proxy String", _SECRET, True, True)],
        ),
        ServiceType(
            id="evm-wallet",
            name="EVM Wallet",
            icon="Wallet",
            fields=[
                _field("evm-1", "address", "Address", _TEXT, False, True),
                _field("evm-2", "seed_phrase", "Seed Phrase", _TEXTAREA, True, False),
                _field("evm-3", "private_key", "Private Key", _TEXTAREA, True, False),
            ],
        ),
        ServiceType(
            id="solana-wallet",
            name="Solana Wallet",
            icon="WalletCards",
            fields=[
                _field("sol-1", "address", "Address", _TEXT, False, True),
                _field("sol-2", "seed_phrase", "Seed Phrase", _TEXTAREA, True, False),
                _field("sol-3", "private_key", "Private Key", _TEXTAREA, True, False),
            ],
        ),
    ]
