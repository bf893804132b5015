"""Record permission evaluation.

Stateless classification of a single record under an access level:

- ALL      -> allowed
- NONE     -> denied
- DEFAULT  -> allowed (platform default visibility)
- OWNER    -> allowed if the acting user created or is assigned the record
- UNKNOWN  -> allowed if the creator or assignee is a resolved group
              member, or the record sits in a resolved group

Missing record fields never raise; they simply fail the OWNER and
UNKNOWN tests. An empty resolution context denies UNKNOWN outright.
"""

from typing import AbstractSet, Any, Optional

from ..common.logger import get_logger
from .groups import GroupMembership
from .levels import AccessLevel
from .records import Record, project_record
from .selector import EffectivePermission

logger = get_logger("evaluator")

_EMPTY: AbstractSet[str] = frozenset()


def is_owner(record: Record, acting_user_id: Optional[str]) -> bool:
    """Check whether the acting user created or is assigned the record."""
    if not acting_user_id:
        return False
    return acting_user_id in (record.created_by, record.assigned_user_id)


def in_group_scope(
    record: Record,
    member_ids: AbstractSet[str],
    group_ids: AbstractSet[str],
) -> bool:
    """Check a record against resolved group members and group ids."""
    if not member_ids and not group_ids:
        return False

    if record.assigned_user_id and record.assigned_user_id in member_ids:
        return True
    if record.created_by and record.created_by in member_ids:
        return True
    return any(group_id in group_ids for group_id in record.group_ids)


def evaluate(
    level: AccessLevel,
    record: Any,
    acting_user_id: Optional[str],
    member_ids: Optional[AbstractSet[str]] = None,
    group_ids: Optional[AbstractSet[str]] = None,
) -> bool:
    """Decide whether ``acting_user_id`` may act on ``record`` at ``level``.

    Args:
        level: Effective access level
        record: Canonical Record (raw payloads are projected)
        acting_user_id: The user performing the operation
        member_ids: User ids resolved through group relations
        group_ids: Group ids resolved through group relations

    Returns:
        True if the operation is permitted
    """
    record = project_record(record)

    if level in (AccessLevel.ALL, AccessLevel.DEFAULT):
        allowed = True
    elif level == AccessLevel.OWNER:
        allowed = is_owner(record, acting_user_id)
    elif level == AccessLevel.UNKNOWN:
        allowed = in_group_scope(record, member_ids or _EMPTY, group_ids or _EMPTY)
    else:
        allowed = False

    if not allowed:
        # Ids only, never the record payload
        logger.debug(f"Denied record {record.id} at level {getattr(level, 'value', level)}")
    return allowed


def evaluate_effective(
    effective: EffectivePermission,
    record: Any,
    acting_user_id: Optional[str],
    membership: Optional[GroupMembership] = None,
) -> bool:
    """Evaluate a record under an effective permission.

    An unresolved permission (no action for the operation) denies,
    regardless of the record.
    """
    if not effective.is_resolved:
        logger.debug(f"No {effective.operation.value} action resolved; denying")
        return False

    membership = membership or GroupMembership()
    return evaluate(
        effective.access_level,
        record,
        acting_user_id,
        membership.member_ids,
        membership.group_ids,
    )
