"""Role-based access gate.

The vault never inspects roles itself beyond a single ``has_role`` query at the
entry of each privileged operation; everything else here is administration of
the role table.
"""
from __future__ import annotations

from typing import Dict, Protocol, Set, runtime_checkable

from loguru import logger

from common.errors import AuthorizationError, ValidationError

DEFAULT_ADMIN_ROLE = "DEFAULT_ADMIN_ROLE"
SUPER_ADMIN_ROLE = "SUPER_ADMIN_ROLE"
VAULT_ROLE = "VAULT_ROLE"
VAULT_MANAGER_ROLE = "VAULT_MANAGER_ROLE"
STRATEGY_MANAGER_ROLE = "STRATEGY_MANAGER_ROLE"

ALL_ROLES = (
    DEFAULT_ADMIN_ROLE,
    SUPER_ADMIN_ROLE,
    VAULT_ROLE,
    VAULT_MANAGER_ROLE,
    STRATEGY_MANAGER_ROLE,
)


@runtime_checkable
class AccessGate(Protocol):
    """Role-membership predicate consumed by the vault."""

    def has_role(self, role: str, principal: str) -> bool:
        ...


def check_role(gate: AccessGate, role: str, principal: str) -> None:
    if not gate.has_role(role, principal):
        raise AuthorizationError("MissingRole", f"{principal} lacks {role}")


class RoleAccessGate:
    """In-memory role table.

    Every role is administered by ``SUPER_ADMIN_ROLE`` except the super admin
    role itself, which is administered by ``DEFAULT_ADMIN_ROLE``.
    """

    def __init__(self) -> None:
        self._members: Dict[str, Set[str]] = {r: set() for r in ALL_ROLES}
        self._admin_of: Dict[str, str] = {r: SUPER_ADMIN_ROLE for r in ALL_ROLES}
        self._admin_of[SUPER_ADMIN_ROLE] = DEFAULT_ADMIN_ROLE
        self._admin_of[DEFAULT_ADMIN_ROLE] = DEFAULT_ADMIN_ROLE

    def has_role(self, role: str, principal: str) -> bool:
        return principal in self._members.get(role, set())

    def get_role_admin(self, role: str) -> str:
        return self._admin_of.get(role, DEFAULT_ADMIN_ROLE)

    def setup_initial_roles(self, creator: str, strategy_manager: str, vault: str) -> None:
        """Seed the table: creator administers everything, the two components get their roles."""
        for principal in (creator, strategy_manager, vault):
            if not principal:
                raise ValidationError("ZeroAddress", "initial role holder must be set")
        if any(self._members[r] for r in ALL_ROLES):
            raise AuthorizationError("CallerNotAdmin", "roles already initialised")
        self._members[DEFAULT_ADMIN_ROLE].add(creator)
        self._members[SUPER_ADMIN_ROLE].add(creator)
        self._members[VAULT_MANAGER_ROLE].add(creator)
        self._members[STRATEGY_MANAGER_ROLE].add(strategy_manager)
        self._members[VAULT_ROLE].add(vault)
        logger.info(
            "Initial roles set up: creator={} strategy_manager={} vault={}",
            creator, strategy_manager, vault,
        )

    def _check_admin(self, role: str, sender: str) -> None:
        if not self.has_role(self.get_role_admin(role), sender):
            raise AuthorizationError("CallerNotAdmin", f"{sender} cannot administer {role}")

    def grant_role(self, sender: str, role: str, principal: str) -> None:
        self._check_admin(role, sender)
        if not principal:
            raise ValidationError("ZeroAddress", "cannot grant role to empty principal")
        self._members.setdefault(role, set()).add(principal)
        logger.info("Role {} granted to {} by {}", role, principal, sender)

    def revoke_role(self, sender: str, role: str, principal: str) -> None:
        self._check_admin(role, sender)
        self._members.get(role, set()).discard(principal)
        logger.info("Role {} revoked from {} by {}", role, principal, sender)

    def renounce_role(self, sender: str, role: str) -> None:
        self._members.get(role, set()).discard(sender)
        logger.info("Role {} renounced by {}", role, sender)
