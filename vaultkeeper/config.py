"""
Centralized configuration for Vaultkeeper.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from vaultkeeper.config import get_config
    cfg = get_config()
    print(cfg.backend.url)          # "http://127.0.0.1:17800"
    print(cfg.import_.separator)    # "||"
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class BackendConfig:
    """Vault backend command endpoint."""

    url: str = "http://127.0.0.1:17800"
    timeout: float = 10.0

    @property
    def commands_url(self) -> str:
        return f"{self.url.rstrip('/')}/commands"


@dataclass(frozen=True)
class ImportConfig:
    """Defaults for the tabular importer."""

    separator: str = "||"
    label_pattern: str = "ACC"
    label_start: int = 1


@dataclass(frozen=True)
class Config:
    """Top-level Vaultkeeper configuration."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    import_: ImportConfig = field(default_factory=ImportConfig)

    # Bulk generation upper bound (inclusive)
    bulk_max_count: int = 100

    # Fuzzy search: accept normalized edit distance <= threshold
    fuzzy_threshold: float = 0.3

    log_level: str = "INFO"


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    backend = BackendConfig(
        url=os.environ.get("VAULTKEEPER_BACKEND_URL", "http://127.0.0.1:17800"),
        timeout=float(os.environ.get("VAULTKEEPER_BACKEND_TIMEOUT", "10")),
    )

    import_cfg = ImportConfig(
        separator=os.environ.get("VAULTKEEPER_IMPORT_SEPARATOR", "||"),
        label_pattern=os.environ.get("VAULTKEEPER_IMPORT_LABEL_PATTERN", "ACC"),
        label_start=int(os.environ.get("VAULTKEEPER_IMPORT_LABEL_START", "1")),
    )

    return Config(
        backend=backend,
        import_=import_cfg,
        bulk_max_count=int(os.environ.get("VAULTKEEPER_BULK_MAX_COUNT", "100")),
        fuzzy_threshold=float(os.environ.get("VAULTKEEPER_FUZZY_THRESHOLD", "0.3")),
        log_level=os.environ.get("VAULTKEEPER_LOG_LEVEL", "INFO").upper(),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
