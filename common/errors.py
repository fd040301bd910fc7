"""Vault error taxonomy.

Every failure carries a short machine-readable ``code`` (e.g. ``ZeroAmount``)
next to the human message, so callers can branch on the code and tests can
assert on it.
"""
from __future__ import annotations


class VaultError(Exception):
    """Base class for all vault failures."""

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        super().__init__(f"{code}: {message}" if message else code)


class ValidationError(VaultError):
    """Bad input: zero address/amount, length mismatch, weight sum mismatch."""

    pass


class AuthorizationError(VaultError):
    """Caller lacks the role required by a privileged operation."""

    pass


class StateError(VaultError):
    """Operation not allowed in the current state (paused, token not enabled)."""

    pass


class ExecutionError(VaultError):
    """Rebalance could not be executed as planned."""

    pass


def require(condition: bool, exc: type[VaultError], code: str, message: str = "") -> None:
    if not condition:
        raise exc(code, message)
