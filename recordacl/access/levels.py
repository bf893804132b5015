"""Access level normalization and ranking.

The CRM stores a numeric ACL code on every role action. Only five
semantics matter for record-level decisions:

    NONE(0) < DEFAULT(1) < OWNER(2) < UNKNOWN(3) < ALL(4)

UNKNOWN is the platform's "group" level: access is granted through
security-group membership.
"""

import math
from enum import Enum
from typing import Any, Dict, Optional


class AccessLevel(str, Enum):
    """Normalized access semantics attached to an action."""

    NONE = "none"          # Never allowed
    DEFAULT = "default"    # Platform default, allowed
    OWNER = "owner"        # Creator or assignee only
    UNKNOWN = "unknown"    # Security-group members only
    ALL = "all"            # Always allowed


# Platform ACL constants (raw codes)
ACL_ALLOW_ADMIN_DEV = 100
ACL_ALLOW_ADMIN = 99
ACL_ALLOW_DEV = 95
ACL_ALLOW_ALL = 90
ACL_ALLOW_ENABLED = 89
ACL_ALLOW_GROUP = 80
ACL_ALLOW_OWNER = 75
ACL_ALLOW_NORMAL = 1
ACL_ALLOW_DEFAULT = 0
ACL_ALLOW_DISABLED = -98
ACL_ALLOW_NONE = -99

# Fixed total order, never reordered at runtime
ACCESS_LEVEL_RANKS: Dict[AccessLevel, int] = {
    AccessLevel.NONE: 0,
    AccessLevel.DEFAULT: 1,
    AccessLevel.OWNER: 2,
    AccessLevel.UNKNOWN: 3,
    AccessLevel.ALL: 4,
}


def coerce_access_code(raw_code: Any) -> Optional[float]:
    """Turn a raw code into a number, or None when it has no numeric value."""
    if raw_code is None or isinstance(raw_code, bool):
        return None

    if isinstance(raw_code, int):
        return raw_code
    elif isinstance(raw_code, float):
        value = raw_code
    elif isinstance(raw_code, str):
        text = raw_code.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(value):
        return None
    return value


def normalize_access_code(raw_code: Any) -> AccessLevel:
    """Normalize a raw ACL code into one of the five access levels.

    Total and deterministic: any input that is not one of the known
    thresholds maps to DEFAULT.

    Args:
        raw_code: Numeric code, numeric string, None or anything else

    Returns:
        The normalized AccessLevel
    """
    value = coerce_access_code(raw_code)
    if value is None:
        return AccessLevel.DEFAULT

    if value == ACL_ALLOW_NONE:
        return AccessLevel.NONE
    if value == ACL_ALLOW_OWNER:
        return AccessLevel.OWNER
    if value == ACL_ALLOW_GROUP:
        return AccessLevel.UNKNOWN
    if value >= ACL_ALLOW_ALL:
        return AccessLevel.ALL
    return AccessLevel.DEFAULT


def access_level_rank(level: AccessLevel) -> int:
    """Return the fixed rank of an access level (comparison only)."""
    return ACCESS_LEVEL_RANKS[AccessLevel(level)]


def compare_access_levels(left: AccessLevel, right: AccessLevel) -> int:
    """Compare two levels by rank.

    Returns:
        -1 if left ranks lower, 1 if higher, 0 if equal
    """
    left_rank = access_level_rank(left)
    right_rank = access_level_rank(right)
    if left_rank < right_rank:
        return -1
    if left_rank > right_rank:
        return 1
    return 0


def parse_access_level(label: Any) -> Optional[AccessLevel]:
    """Parse a level label such as "owner" (case-insensitive).

    Returns:
        The AccessLevel, or None for unknown labels
    """
    if not isinstance(label, str):
        return None
    try:
        return AccessLevel(label.strip().lower())
    except ValueError:
        return None
