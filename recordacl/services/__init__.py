"""CRM collaborators consumed by the permission engine."""

from .base import GroupService, RecordSource, RoleService, ServiceError
from .client import CrmApiClient, HttpGroupService, HttpRecordSource, HttpRoleService
from .identity import user_id_from_token

__all__ = [
    "GroupService",
    "RecordSource",
    "RoleService",
    "ServiceError",
    "CrmApiClient",
    "HttpGroupService",
    "HttpRecordSource",
    "HttpRoleService",
    "user_id_from_token",
]
