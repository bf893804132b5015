"""Permission source selection.

Decides whether the personal role or the group-bound role governs an
operation. The decision compares the ``list`` actions of both sources
once per context and is then reused for every operation (view, edit,
delete, ...) in that context:

    rank(personal) <  rank(group)  -> personal
    rank(personal) >  rank(group)  -> group
    rank(personal) == rank(group)  -> personal

When only one source has a list action, that source is used.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..common.logger import get_logger
from .groups import SecurityGroupResolver
from .levels import AccessLevel, access_level_rank
from .roles import Action, Operation, Role, RoleCatalog

logger = get_logger("selector")

REFERENCE_OPERATION = Operation.LIST


class PermissionSource(str, Enum):
    """Where an effective permission comes from."""

    PERSONAL = "personal"
    GROUP = "group"


@dataclass(frozen=True)
class EffectivePermission:
    """Access level chosen for one operation after reconciliation.

    ``access_level`` is None when the winning source has no action for
    the operation, which always denies.
    """

    operation: Operation
    access_level: Optional[AccessLevel]
    source: Optional[PermissionSource]
    source_role_name: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.access_level is not None


@dataclass
class PermissionSources:
    """Both candidate roles for one (user, module) context."""

    personal_role: Role
    group_role: Role
    group_id: Optional[str] = None


def select_source(
    personal_action: Optional[Action],
    group_action: Optional[Action],
    reference_name: Union[str, Operation] = REFERENCE_OPERATION,
) -> PermissionSource:
    """Pick the governing source by comparing two reference actions.

    Args:
        personal_action: Reference action from the personal role
        group_action: Reference action from the group-bound role
        reference_name: Operation the actions belong to (for logging)

    Returns:
        The selected source
    """
    if personal_action is None and group_action is None:
        return PermissionSource.PERSONAL
    if group_action is None:
        return PermissionSource.PERSONAL
    if personal_action is None:
        return PermissionSource.GROUP

    personal_rank = access_level_rank(personal_action.access_level)
    group_rank = access_level_rank(group_action.access_level)

    if personal_rank > group_rank:
        selected = PermissionSource.GROUP
    else:
        selected = PermissionSource.PERSONAL

    logger.debug(
        f"Source for {getattr(reference_name, 'value', reference_name)}: "
        f"personal rank {personal_rank}, group rank {group_rank} -> {selected.value}"
    )
    return selected


def effective_permission(
    sources: PermissionSources,
    operation: Union[str, Operation],
) -> EffectivePermission:
    """Resolve one operation against already-loaded sources."""
    operation = Operation(operation)
    source = select_source(
        sources.personal_role.get_action(REFERENCE_OPERATION),
        sources.group_role.get_action(REFERENCE_OPERATION),
        REFERENCE_OPERATION,
    )
    role = sources.personal_role if source == PermissionSource.PERSONAL else sources.group_role
    action = role.get_action(operation)

    if action is None:
        return EffectivePermission(
            operation=operation,
            access_level=None,
            source=None,
            source_role_name=role.lookup_name,
        )
    return EffectivePermission(
        operation=operation,
        access_level=action.access_level,
        source=source,
        source_role_name=role.lookup_name,
    )


class PermissionSourceSelector:
    """Loads both permission sources and reconciles them per operation."""

    def __init__(self, role_catalog: RoleCatalog, group_resolver: SecurityGroupResolver):
        self.role_catalog = role_catalog
        self.group_resolver = group_resolver

    async def load_sources(self, user_id: str, module_name: str) -> PermissionSources:
        """Fetch the personal role and the first group's role concurrently."""
        groups_task = self.group_resolver.load_groups(user_id)
        personal_task = self.role_catalog.load(user_id, module_name)
        groups, personal_role = await asyncio.gather(groups_task, personal_task)

        group_id = groups[0].group_id if groups else None
        group_role = await self.group_resolver.load_group_role(group_id, module_name)
        return PermissionSources(personal_role, group_role, group_id)

    def select(
        self,
        sources: PermissionSources,
        operation: Union[str, Operation],
    ) -> EffectivePermission:
        return effective_permission(sources, operation)

    async def resolve_effective(
        self,
        module_name: str,
        user_id: str,
        operation: Union[str, Operation],
    ) -> EffectivePermission:
        """Resolve the effective permission for one operation from scratch."""
        sources = await self.load_sources(user_id, module_name)
        return effective_permission(sources, operation)
