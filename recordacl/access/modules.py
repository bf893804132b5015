"""Module-level access index.

Folds every role a user holds into a ``{module: {action: code}}`` table,
keeping the highest raw code per action. Used to decide which modules a
user may open at all, before any record is looked at.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..common.logger import get_logger
from .levels import ACL_ALLOW_DEFAULT, coerce_access_code
from .roles import RAW_CODE_KEYS

logger = get_logger("modules")

MODULE_ACCESS_ACTION = "access"


class ModuleAccessIndex:
    """Highest raw ACL code per (module, action) across all of a user's roles."""

    def __init__(self, permissions: Optional[Dict[str, Dict[str, float]]] = None):
        self.permissions: Dict[str, Dict[str, float]] = permissions or {}

    @classmethod
    def from_payload(cls, payload: Any) -> "ModuleAccessIndex":
        """Build the index from a role payload.

        Accepts the ``{"roles": [...]}`` envelope or a single role mapping.
        An empty or unusable payload gives an empty index (no access).
        """
        if not isinstance(payload, Mapping):
            return cls()

        roles = payload.get("roles")
        if not isinstance(roles, list):
            roles = [payload]

        permissions: Dict[str, Dict[str, float]] = {}
        for role in roles:
            if not isinstance(role, Mapping):
                continue
            for action in role.get("actions") or []:
                if not isinstance(action, Mapping):
                    continue
                module_name = action.get("category")
                action_name = action.get("name") or action.get("action_name")
                code = _raw_code(action)
                if not module_name or not action_name or code is None:
                    continue

                module_perms = permissions.setdefault(str(module_name), {})
                current = module_perms.get(str(action_name))
                if current is None or current < code:
                    module_perms[str(action_name)] = code

        if not permissions:
            logger.warning("Role payload yielded no module permissions")
        return cls(permissions)

    def get_module_permissions(self, module_name: str) -> Dict[str, float]:
        """Return the action → code table for a module (empty if none)."""
        return dict(self.permissions.get(module_name, {}))

    def has_module_permission(self, module_name: str, action_name: str) -> bool:
        """Check that an action's code is present and at least DEFAULT."""
        code = self.permissions.get(module_name, {}).get(action_name)
        return code is not None and code >= ACL_ALLOW_DEFAULT

    def has_module_access(self, module_name: str) -> bool:
        """Check whether the user may open a module at all."""
        return self.has_module_permission(module_name, MODULE_ACCESS_ACTION)

    def accessible_modules(self, module_names: Iterable[str]) -> List[str]:
        """Filter module names down to the accessible ones, keeping order."""
        return [name for name in module_names if self.has_module_access(name)]


def _raw_code(action: Mapping[str, Any]) -> Optional[float]:
    for key in RAW_CODE_KEYS:
        if key in action:
            return coerce_access_code(action[key])
    return None
