"""
Vaultkeeper error taxonomy.

    ValidationError   bad input caught before any backend call
    ReferentialError  a reference to a nonexistent or mistyped service/type
    BackendError      opaque failure reported by the vault backend
    AuthError         backend refused a password (unlock, password change)
"""

from __future__ import annotations


class VaultkeeperError(Exception):
    """Base class for all vaultkeeper errors."""


class ValidationError(VaultkeeperError):
    pass


class ReferentialError(VaultkeeperError):
    def __init__(self, message: str, *, reference: str | None = None) -> None:
        super().__init__(message)
        self.reference = reference


class BackendError(VaultkeeperError):
    def __init__(self, message: str, *, command: str | None = None) -> None:
        super().__init__(message)
        self.command = command


class AuthError(BackendError):
    pass
