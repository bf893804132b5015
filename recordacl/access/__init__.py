"""Record-level access evaluation.

Normalizes role ACL codes, reconciles the personal and group-bound
roles, and evaluates records against the resulting access level.
"""

from .levels import AccessLevel, normalize_access_code, access_level_rank
from .records import Record, project_record, project_records
from .roles import Action, Operation, Role, RoleCatalog, RECOGNIZED_OPERATIONS
from .groups import GroupMembership, SecurityGroup, SecurityGroupResolver
from .selector import (
    EffectivePermission,
    PermissionSource,
    PermissionSources,
    PermissionSourceSelector,
    select_source,
)
from .evaluator import evaluate, evaluate_effective
from .bulk import filter_for_operation, filter_records
from .modules import ModuleAccessIndex
from .cache import PermissionCache

__all__ = [
    "AccessLevel",
    "normalize_access_code",
    "access_level_rank",
    "Record",
    "project_record",
    "project_records",
    "Action",
    "Operation",
    "Role",
    "RoleCatalog",
    "RECOGNIZED_OPERATIONS",
    "GroupMembership",
    "SecurityGroup",
    "SecurityGroupResolver",
    "EffectivePermission",
    "PermissionSource",
    "PermissionSources",
    "PermissionSourceSelector",
    "select_source",
    "evaluate",
    "evaluate_effective",
    "filter_for_operation",
    "filter_records",
    "ModuleAccessIndex",
    "PermissionCache",
]
