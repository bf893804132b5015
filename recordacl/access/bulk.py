"""Bulk record filtering for list and view permissions."""

from typing import AbstractSet, Any, Iterable, List, Optional

from .evaluator import evaluate
from .records import Record, project_record
from .selector import EffectivePermission


def unique_records_by_id(records: Iterable[Record]) -> List[Record]:
    """Drop records without an id and repeats of an id, keeping first positions."""
    seen = set()
    unique = []
    for record in records:
        if not record.id or record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


def filter_records(
    records: Iterable[Any],
    effective: EffectivePermission,
    acting_user_id: Optional[str],
    member_ids: Optional[AbstractSet[str]] = None,
    group_ids: Optional[AbstractSet[str]] = None,
) -> List[Record]:
    """Return the permitted records, de-duplicated, in input order.

    Args:
        records: Records or raw payloads
        effective: Effective permission for the operation
        acting_user_id: The user performing the operation
        member_ids: User ids resolved through group relations
        group_ids: Group ids resolved through group relations

    Returns:
        Kept records
    """
    if not effective.is_resolved or records is None:
        return []

    projected = [project_record(record) for record in records]
    kept = [
        record
        for record in projected
        if evaluate(effective.access_level, record, acting_user_id, member_ids, group_ids)
    ]
    return unique_records_by_id(kept)


def filter_for_operation(
    records: Iterable[Any],
    effective: EffectivePermission,
    acting_user_id: Optional[str],
    member_ids: Optional[AbstractSet[str]] = None,
    group_ids: Optional[AbstractSet[str]] = None,
) -> List[str]:
    """Return the ids of the permitted records, de-duplicated, in input order."""
    return [
        record.id
        for record in filter_records(records, effective, acting_user_id, member_ids, group_ids)
    ]
