"""Evaluation context for one (user, module) pair.

A context loads both permission sources once, then answers any number
of record and list checks. Each load or evaluation run carries a
cancellation token; closing or resetting the context cancels the run
in flight and its result is discarded instead of written.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from ..access.bulk import filter_records
from ..access.cache import PermissionCache
from ..access.evaluator import evaluate
from ..access.groups import EMPTY_MEMBERSHIP, GroupMembership, SecurityGroupResolver
from ..access.levels import AccessLevel
from ..access.records import Record, project_record
from ..access.roles import Operation, RoleCatalog
from ..access.selector import EffectivePermission, PermissionSources, effective_permission
from ..common.logger import get_logger
from .cancellation import CancellationToken
from .states import (
    READY_STAGES,
    EvaluationStage,
    StageTransition,
    StageTransitionError,
    advance,
)

logger = get_logger("context")


@dataclass(frozen=True)
class RecordPermissions:
    """Per-record operation flags."""

    record_id: Optional[str]
    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False


@dataclass
class ListPermissions:
    """Outcome of filtering a record list.

    ``records`` and ``visible_record_ids`` are governed by the list
    action, ``viewable_record_ids`` by the view action.
    """

    records: List[Record] = field(default_factory=list)
    visible_record_ids: List[str] = field(default_factory=list)
    viewable_record_ids: List[str] = field(default_factory=list)


class EvaluationContext:
    """Stateful evaluation scope for one acting user and one module."""

    def __init__(
        self,
        user_id: str,
        module_name: str,
        role_catalog: RoleCatalog,
        group_resolver: SecurityGroupResolver,
        cache: Optional[PermissionCache] = None,
    ):
        self.user_id = user_id
        self.module_name = module_name
        self.role_catalog = role_catalog
        self.group_resolver = group_resolver
        self.cache = cache

        self._stage = EvaluationStage.IDLE
        self._token = CancellationToken()
        self._sources: Optional[PermissionSources] = None
        self._memberships: Dict[str, GroupMembership] = {}
        self._history: List[Dict[str, Any]] = []
        self._load_lock = asyncio.Lock()

    @property
    def stage(self) -> EvaluationStage:
        return self._stage

    @property
    def sources(self) -> Optional[PermissionSources]:
        return self._sources

    @property
    def history(self) -> List[Dict[str, Any]]:
        """Stage changes applied to this context, oldest first."""
        return list(self._history)

    @property
    def is_ready(self) -> bool:
        return self._stage in READY_STAGES

    def _transition(self, transition: StageTransition) -> None:
        from_stage = self._stage
        self._stage = advance(from_stage, transition)
        self._history.append({
            "from_stage": from_stage.value,
            "to_stage": self._stage.value,
            "transition": transition.value,
            "timestamp": datetime.utcnow().isoformat(),
        })

    async def load(self) -> Optional[PermissionSources]:
        """Load the personal and group-bound roles.

        Groups are fetched first so the cache can be keyed on the first
        group id; both roles are then fetched concurrently.

        Returns:
            The loaded sources, or None if the run was cancelled
        """
        if self._stage == EvaluationStage.CANCELLED:
            raise StageTransitionError(self._stage, StageTransition.LOAD_ROLE)
        if self.is_ready:
            return self._sources

        async with self._load_lock:
            return await self._load_locked()

    async def _load_locked(self) -> Optional[PermissionSources]:
        # Another run may have finished loading, or the context was closed, while waiting
        if self._stage == EvaluationStage.CANCELLED:
            return None
        if self.is_ready:
            return self._sources

        token = self._token
        groups = await self.group_resolver.load_groups(self.user_id)
        group_id = groups[0].group_id if groups else None

        sources = None
        if self.cache is not None:
            sources = self.cache.get(self.user_id, self.module_name, group_id)

        if sources is None:
            personal_role, group_role = await asyncio.gather(
                self.role_catalog.load(self.user_id, self.module_name),
                self.group_resolver.load_group_role(group_id, self.module_name),
            )
            sources = PermissionSources(personal_role, group_role, group_id)
            if self.cache is not None and not token.cancelled:
                self.cache.set(self.user_id, self.module_name, group_id, sources)
        else:
            logger.debug(f"Using cached permission sources for {self.module_name}")

        if token.cancelled:
            logger.debug(f"Discarding cancelled load for {self.module_name}")
            return None

        self._sources = sources
        self._transition(StageTransition.LOAD_ROLE)
        self._transition(StageTransition.LOAD_GROUP)
        logger.info(f"Loaded permission sources for {self.module_name} (group {group_id})")
        return sources

    def effective(self, operation: Union[str, Operation]) -> EffectivePermission:
        """Effective permission for an operation on the loaded sources.

        Raises:
            StageTransitionError: If the sources are not loaded
        """
        if self._sources is None or not self.is_ready:
            raise StageTransitionError(self._stage, StageTransition.EVALUATE)
        return effective_permission(self._sources, operation)

    async def _membership_for(
        self,
        effective: EffectivePermission,
        token: CancellationToken,
    ) -> GroupMembership:
        if effective.access_level != AccessLevel.UNKNOWN:
            return EMPTY_MEMBERSHIP

        role_name = effective.source_role_name
        membership = self._memberships.get(role_name)
        if membership is None:
            membership = await self.group_resolver.load_membership(role_name)
            if not token.cancelled:
                self._memberships[role_name] = membership
        return membership

    async def _prepare(self) -> Optional[tuple[CancellationToken, PermissionSources]]:
        if not self.is_ready and await self.load() is None:
            return None
        return self._token, self._sources

    async def check_record(self, record: Any) -> Optional[RecordPermissions]:
        """Evaluate view, edit and delete for a single record.

        Returns:
            The flags, or None if the run was cancelled
        """
        prepared = await self._prepare()
        if prepared is None:
            return None
        token, sources = prepared
        record = project_record(record, self.module_name)

        flags = {}
        for operation in (Operation.VIEW, Operation.EDIT, Operation.DELETE):
            effective = effective_permission(sources, operation)
            if not effective.is_resolved:
                flags[operation] = False
                continue
            membership = await self._membership_for(effective, token)
            flags[operation] = evaluate(
                effective.access_level,
                record,
                self.user_id,
                membership.member_ids,
                membership.group_ids,
            )

        if token.cancelled:
            return None

        self._transition(StageTransition.EVALUATE)
        return RecordPermissions(
            record_id=record.id,
            can_view=flags[Operation.VIEW],
            can_edit=flags[Operation.EDIT],
            can_delete=flags[Operation.DELETE],
        )

    async def filter_list(self, records: Optional[Iterable[Any]]) -> Optional[ListPermissions]:
        """Filter a record list by the list and view actions.

        Returns:
            The permitted records and ids, or None if the run was cancelled
        """
        prepared = await self._prepare()
        if prepared is None:
            return None
        token, sources = prepared
        projected = [project_record(record, self.module_name) for record in records or []]

        list_effective = effective_permission(sources, Operation.LIST)
        view_effective = effective_permission(sources, Operation.VIEW)
        list_membership = await self._membership_for(list_effective, token)
        view_membership = await self._membership_for(view_effective, token)

        visible = filter_records(
            projected,
            list_effective,
            self.user_id,
            list_membership.member_ids,
            list_membership.group_ids,
        )
        viewable = filter_records(
            projected,
            view_effective,
            self.user_id,
            view_membership.member_ids,
            view_membership.group_ids,
        )

        if token.cancelled:
            return None

        self._transition(StageTransition.EVALUATE)
        logger.info(
            f"{self.module_name}: {len(visible)} of {len(projected)} records visible, "
            f"{len(viewable)} viewable"
        )
        return ListPermissions(
            records=visible,
            visible_record_ids=[record.id for record in visible],
            viewable_record_ids=[record.id for record in viewable],
        )

    def close(self) -> None:
        """Cancel the run in flight and tear the context down."""
        if self._stage == EvaluationStage.CANCELLED:
            return
        self._token.cancel("context closed")
        self._transition(StageTransition.CANCEL)

    def reset(self, module_name: Optional[str] = None) -> None:
        """Cancel the run in flight and drop all loaded state.

        Args:
            module_name: Switch the context to another module
        """
        self._token.cancel("context reset")
        self._transition(StageTransition.RESET)
        self._token = CancellationToken()
        self._sources = None
        self._memberships.clear()
        if module_name:
            self.module_name = module_name

    async def __aenter__(self) -> "EvaluationContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
