"""Role registry with a pause flag"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Set

from ..errors import MissingRoleError
from ..interfaces import Role

logger = logging.getLogger(__name__)


@dataclass
class RoleRegistry:
    """Role assignments; the admin grants and revokes, pausers toggle the pause flag"""
    admin: str
    roles: Dict[Role, Set[str]] = field(default_factory=dict)
    is_paused: bool = False

    def __post_init__(self) -> None:
        for role in Role:
            self.roles.setdefault(role, set())
        self.roles[Role.ADMIN].add(self.admin)

    @property
    def paused(self) -> bool:
        return self.is_paused

    def has_role(self, role: Role, account: str) -> bool:
        return account in self.roles.get(role, set())

    def _require(self, role: Role, account: str) -> None:
        if not self.has_role(role, account):
            raise MissingRoleError(f"{account} lacks role {role.value}")

    def grant_role(self, caller: str, role: Role, account: str) -> None:
        self._require(Role.ADMIN, caller)
        self.roles[role].add(account)
        logger.info(
            "Role granted",
            extra={"event": "rbac.role_granted", "role": role.value, "account": account},
        )

    def revoke_role(self, caller: str, role: Role, account: str) -> None:
        self._require(Role.ADMIN, caller)
        self.roles[role].discard(account)
        logger.info(
            "Role revoked",
            extra={"event": "rbac.role_revoked", "role": role.value, "account": account},
        )

    def pause(self, caller: str) -> None:
        self._require(Role.PAUSER, caller)
        self.is_paused = True
        logger.warning("Protocol paused", extra={"event": "rbac.paused", "caller": caller})

    def unpause(self, caller: str) -> None:
        self._require(Role.PAUSER, caller)
        self.is_paused = False
        logger.info("Protocol unpaused", extra={"event": "rbac.unpaused", "caller": caller})
