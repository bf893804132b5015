"""Role catalog: the user's personal role and its per-module actions.

A role carries one action per (category, operation). Only the five
record operations are kept; everything else the CRM attaches to a role
(import, export, massupdate, access, ...) is discarded here.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..common.logger import get_logger
from ..services.base import RoleService, ServiceError
from .levels import AccessLevel, coerce_access_code, normalize_access_code, parse_access_level

logger = get_logger("roles")


class Operation(str, Enum):
    """Record operations governed by role actions."""

    LIST = "list"
    VIEW = "view"
    EDIT = "edit"
    CREATE = "create"
    DELETE = "delete"


RECOGNIZED_OPERATIONS = frozenset(op.value for op in Operation)

# Keys the raw ACL code may be published under, in order of preference
RAW_CODE_KEYS = ("access_override", "raw_access_code", "aclaccess")


@dataclass(frozen=True)
class Action:
    """A (category, operation, raw code) tuple from a role.

    Some payloads only carry the level label (``access_level_name``); it is
    used when the raw code has no numeric value.
    """

    category: str
    name: str
    raw_access_code: Any = None
    access_level_name: Optional[str] = None

    @property
    def access_level(self) -> AccessLevel:
        """Normalized access level of this action."""
        if coerce_access_code(self.raw_access_code) is None:
            level = parse_access_level(self.access_level_name)
            if level is not None:
                return level
        return normalize_access_code(self.raw_access_code)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Action":
        """Create an action from a CRM payload entry."""
        raw_code = None
        for key in RAW_CODE_KEYS:
            if key in data:
                raw_code = data[key]
                break
        return cls(
            category=str(data.get("category") or ""),
            name=str(data.get("name") or data.get("action_name") or ""),
            raw_access_code=raw_code,
            access_level_name=data.get("access_level_name"),
        )


@dataclass
class Role:
    """A role and its (already module-filtered) actions."""

    role_id: Optional[str] = None
    role_name: str = ""
    actions: List[Action] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.actions

    @property
    def lookup_name(self) -> str:
        """Role name as used for group-relation lookups."""
        return (self.role_name or "").lower()

    def get_action(self, name: Union[str, Operation]) -> Optional[Action]:
        """Return the action for an operation, if the role has one."""
        wanted = Operation(name).value if isinstance(name, Operation) else name
        for action in self.actions:
            if action.name == wanted:
                return action
        return None


def get_action(role: Optional[Role], name: Union[str, Operation]) -> Optional[Action]:
    """Return ``role``'s action for ``name``, tolerating a missing role."""
    if role is None:
        return None
    return role.get_action(name)


def category_matches(category: str, module_name: str, case_sensitive: bool = False) -> bool:
    """Check whether an action category belongs to a module."""
    if case_sensitive:
        return category == module_name
    return category.lower() == str(module_name or "").lower()


def filter_module_actions(
    actions: Iterable[Any],
    module_name: str,
    case_sensitive: bool = False,
) -> List[Action]:
    """Keep the recognized record operations of one module.

    Args:
        actions: Raw action payloads or Action instances
        module_name: Module (category) to keep
        case_sensitive: Compare categories exactly

    Returns:
        Filtered actions in input order
    """
    filtered = []
    for raw in actions or []:
        if isinstance(raw, Action):
            action = raw
        elif isinstance(raw, Mapping):
            action = Action.from_dict(raw)
        else:
            continue

        if action.name not in RECOGNIZED_OPERATIONS:
            continue
        if not category_matches(action.category, module_name, case_sensitive):
            continue
        filtered.append(action)
    return filtered


def _unwrap_role_payload(payload: Any) -> Optional[Mapping[str, Any]]:
    """Find the role mapping inside either of the platform's envelopes."""
    if not isinstance(payload, Mapping):
        return None
    roles = payload.get("roles")
    if isinstance(roles, list):
        first = roles[0] if roles else None
        return first if isinstance(first, Mapping) else None
    return payload


def role_from_payload(
    payload: Any,
    module_name: str,
    case_sensitive: bool = False,
) -> Role:
    """Build a module-filtered Role from a role payload.

    Unusable payloads produce the empty Role.
    """
    data = _unwrap_role_payload(payload)
    if not data:
        return Role()

    role_id = data.get("role_id", data.get("roleId", data.get("id")))
    actions = data.get("actions")
    return Role(
        role_id=str(role_id) if role_id is not None else None,
        role_name=str(data.get("role_name") or data.get("roleName") or ""),
        actions=filter_module_actions(
            actions if isinstance(actions, list) else [],
            module_name,
            case_sensitive,
        ),
    )


class RoleCatalog:
    """Loads the acting user's personal role for a module."""

    def __init__(self, role_service: RoleService, *, case_sensitive_categories: bool = False):
        """
        Args:
            role_service: Collaborator that fetches the user's role
            case_sensitive_categories: Compare action categories exactly
        """
        self.role_service = role_service
        self.case_sensitive_categories = case_sensitive_categories

    async def load(self, user_id: str, module_name: str) -> Role:
        """Fetch the user's role and keep only this module's operations.

        A failed fetch or an empty response yields the empty Role.
        """
        try:
            payload = await self.role_service.get_user_role_actions(user_id)
        except ServiceError as e:
            logger.warning(f"Personal role unavailable for module {module_name}: {e}")
            return Role()

        role = role_from_payload(payload, module_name, self.case_sensitive_categories)
        if role.is_empty:
            logger.warning(f"No {module_name} actions in personal role")
        else:
            logger.debug(
                f"Loaded personal role {role.role_name!r} with "
                f"{len(role.actions)} {module_name} actions"
            )
        return role

    @staticmethod
    def get_action(role: Optional[Role], name: Union[str, Operation]) -> Optional[Action]:
        return get_action(role, name)
