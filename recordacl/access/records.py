"""Canonical record projection.

Record payloads arrive in two shapes from the CRM:

- JSON:API items, ``{"id": ..., "type": ..., "attributes": {...}}``
- flat search results, ``{"id": ..., "name": ..., "created_by": ...}``

Both are projected exactly once into :class:`Record` before any
permission evaluation takes place.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Record:
    """Module-agnostic view of a record's ownership and group metadata."""

    id: Optional[str]
    created_by: Optional[str] = None
    assigned_user_id: Optional[str] = None
    security_group_id: Optional[str] = None
    security_group_ids: Tuple[str, ...] = ()
    module: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def group_ids(self) -> Tuple[str, ...]:
        """All security groups the record is directly assigned to."""
        if self.security_group_id and self.security_group_id not in self.security_group_ids:
            return (self.security_group_id,) + self.security_group_ids
        return self.security_group_ids


def _clean_id(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Mapping):
        return _clean_id(value.get("id"))
    text = str(value).strip()
    return text or None


def _first_present(data: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        cleaned = _clean_id(data.get(key))
        if cleaned:
            return cleaned
    return None


def _group_id_list(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    ids: List[str] = []
    for item in value:
        cleaned = _clean_id(item)
        if cleaned and cleaned not in ids:
            ids.append(cleaned)
    return tuple(ids)


def project_record(payload: Any, module_name: Optional[str] = None) -> Record:
    """Project a raw record payload into the canonical Record.

    Never raises: anything that is not a mapping becomes a record
    without an id, which no filter will keep.

    Args:
        payload: Raw record from the CRM (flat or attributes-wrapped),
            or an already projected Record
        module_name: Module the record belongs to, when the payload
            does not say

    Returns:
        Record instance
    """
    if isinstance(payload, Record):
        return payload
    if not isinstance(payload, Mapping):
        return Record(id=None, module=module_name)

    attributes = payload.get("attributes")
    if isinstance(attributes, Mapping):
        data: Dict[str, Any] = dict(attributes)
        for key in ("id", "type"):
            if payload.get(key) is not None:
                data[key] = payload[key]
    else:
        data = dict(payload)

    return Record(
        id=_first_present(data, "id", "record_id"),
        created_by=_first_present(data, "created_by", "created_by_id"),
        assigned_user_id=_first_present(data, "assigned_user_id", "owner_id"),
        security_group_id=_first_present(data, "securitygroup_id", "security_group_id"),
        security_group_ids=_group_id_list(
            data.get("securitygroups", data.get("security_group_ids"))
        ),
        module=_clean_id(data.get("type")) or module_name,
        attributes=data,
    )


def project_records(payloads: Iterable[Any], module_name: Optional[str] = None) -> List[Record]:
    """Project a collection of payloads, preserving order."""
    if payloads is None:
        return []
    return [project_record(payload, module_name) for payload in payloads]
