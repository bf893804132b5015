"""Security group resolution.

Two independent lookups live here:

- the role bound to the user's *first* security group, which competes
  with the personal role as a permission source;
- the membership reachable from a role name through group relations,
  used by group-level (UNKNOWN) checks. This expansion is not limited
  to the first group.
"""

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional

from ..common.logger import get_logger
from ..services.base import GroupService, ServiceError
from .roles import Role, role_from_payload

logger = get_logger("groups")


@dataclass
class SecurityGroup:
    """A security group and the user ids in it."""

    group_id: str
    name: Optional[str] = None
    members: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Optional["SecurityGroup"]:
        """Create a group from a payload entry, or None if it has no id."""
        group_id = _entry_id(data, "group_id", "id")
        if not group_id:
            return None
        return cls(
            group_id=group_id,
            name=data.get("name"),
            members=member_ids_of(data.get("members")),
        )


@dataclass(frozen=True)
class GroupMembership:
    """Flattened result of a role-name relation lookup."""

    member_ids: FrozenSet[str] = frozenset()
    group_ids: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.member_ids and not self.group_ids


EMPTY_MEMBERSHIP = GroupMembership()


def _entry_id(data: Any, *keys: str) -> Optional[str]:
    if not isinstance(data, Mapping):
        return None
    for key in keys:
        value = data.get(key)
        if value is not None and not isinstance(value, bool) and str(value).strip():
            return str(value).strip()
    return None


def member_ids_of(members: Any) -> List[str]:
    """Extract user ids from a member list, dropping empty ones."""
    ids: List[str] = []
    for member in members or []:
        if isinstance(member, Mapping):
            member_id = _entry_id(member, "id", "user_id", "userId")
        elif isinstance(member, str) and member.strip():
            member_id = member.strip()
        else:
            member_id = None
        if member_id and member_id not in ids:
            ids.append(member_id)
    return ids


def build_membership(groups: Iterable[Any]) -> GroupMembership:
    """Flatten a group/member list into member and group id sets."""
    member_ids = set()
    group_ids = set()
    for group in groups or []:
        if not isinstance(group, Mapping):
            continue
        group_id = _entry_id(group, "group_id", "id")
        if group_id:
            group_ids.add(group_id)
        member_ids.update(member_ids_of(group.get("members")))
    return GroupMembership(frozenset(member_ids), frozenset(group_ids))


class SecurityGroupResolver:
    """Resolves groups, group-bound roles and group membership for a user."""

    def __init__(self, group_service: GroupService, *, case_sensitive_categories: bool = False):
        self.group_service = group_service
        self.case_sensitive_categories = case_sensitive_categories

    async def load_groups(self, user_id: str) -> List[SecurityGroup]:
        """Fetch the groups containing the user (empty on failure)."""
        try:
            payload = await self.group_service.get_user_groups(user_id)
        except ServiceError as e:
            logger.warning(f"Security groups unavailable: {e}")
            return []

        if isinstance(payload, Mapping):
            payload = payload.get("groups")
        if not isinstance(payload, list):
            return []

        groups = []
        for entry in payload:
            group = SecurityGroup.from_dict(entry) if isinstance(entry, Mapping) else None
            if group is not None:
                groups.append(group)
        return groups

    async def load_group_role(self, group_id: Optional[str], module_name: str) -> Role:
        """Fetch the role bound to one group, filtered to the module.

        A missing group id, a failed fetch or a group without a role
        all yield the empty Role.
        """
        if not group_id:
            return Role()

        try:
            payload = await self.group_service.get_group_role(group_id)
        except ServiceError as e:
            logger.warning(f"Role for security group {group_id} unavailable: {e}")
            return Role()

        role = role_from_payload(payload, module_name, self.case_sensitive_categories)
        logger.debug(
            f"Group {group_id} role {role.role_name!r}: "
            f"{len(role.actions)} {module_name} actions"
        )
        return role

    async def resolve_group_role(self, user_id: str, module_name: str) -> Role:
        """Role bound to the user's first security group.

        Only ``groups[0]`` is consulted, even when the user belongs to
        several groups.
        """
        groups = await self.load_groups(user_id)
        first_group_id = groups[0].group_id if groups else None
        return await self.load_group_role(first_group_id, module_name)

    async def load_membership(self, role_name: str) -> GroupMembership:
        """Expand a role name into member ids and group ids.

        Covers every group the relation lookup returns, not just the
        user's first group. Empty on any failure.
        """
        if not role_name:
            return EMPTY_MEMBERSHIP

        try:
            relations = await self.group_service.get_group_relations_by_role_name(role_name)
            if not relations:
                logger.warning(f"No security group relations for role {role_name!r}")
                return EMPTY_MEMBERSHIP
            groups = await self.group_service.get_group_members(relations)
        except ServiceError as e:
            logger.warning(f"Security group membership unavailable for role {role_name!r}: {e}")
            return EMPTY_MEMBERSHIP

        if not isinstance(groups, list) or not groups:
            logger.warning(f"No members found for role {role_name!r}")
            return EMPTY_MEMBERSHIP
        return build_membership(groups)

    async def load_members(self, role_name: str) -> FrozenSet[str]:
        """Flattened member-id set for a role name."""
        membership = await self.load_membership(role_name)
        return membership.member_ids
