"""
Role Catalog

The registry only needs to ask whether a role exists; anything that
implements ``has_role`` can be injected.
"""

from typing import Dict, List, Optional, Protocol, runtime_checkable

from ..config import RoleConfig


@runtime_checkable
class RoleCatalog(Protocol):
    """Capability: does this role exist?"""

    def has_role(self, name: str) -> bool:
        ...


class StaticRoleCatalog:
    """Role catalog backed by the ``roles`` section of the config."""

    def __init__(self, roles: Optional[Dict[str, RoleConfig]] = None):
        self._roles: Dict[str, RoleConfig] = dict(roles or {})

    @classmethod
    def from_names(cls, *names: str) -> "StaticRoleCatalog":
        return cls({name: RoleConfig(name=name) for name in names})

    def has_role(self, name: str) -> bool:
        return name in self._roles

    def get(self, name: str) -> Optional[RoleConfig]:
        return self._roles.get(name)

    def names(self) -> List[str]:
        return sorted(self._roles)

    def __len__(self) -> int:
        return len(self._roles)
