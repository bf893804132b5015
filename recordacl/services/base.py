"""Base classes for the CRM collaborators.

Defines the contracts the permission engine consumes. Implementations
perform the actual fetches; the engine only ever sees the payloads
described here.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    """Raised when a collaborator cannot produce a usable response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RoleService(ABC):
    """Source of the acting user's personal role."""

    @abstractmethod
    async def get_user_role_actions(self, user_id: str) -> Dict[str, Any]:
        """Fetch the user's role with its actions.

        Args:
            user_id: Acting user id

        Returns:
            ``{"role_name": ..., "actions": [{category, name, access_override}]}``
            or the platform's ``{"roles": [...], "total_roles": n}`` envelope

        Raises:
            ServiceError: If the fetch fails
        """
        pass


class GroupService(ABC):
    """Source of security groups, group-bound roles and group members."""

    @abstractmethod
    async def get_user_groups(self, user_id: str) -> List[Dict[str, Any]]:
        """Fetch the security groups containing the user.

        Returns:
            List of ``{"id": ..., "name": ...}`` entries

        Raises:
            ServiceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def get_group_role(self, group_id: str) -> Dict[str, Any]:
        """Fetch the role bound to a security group.

        Returns:
            ``{"role_id": ..., "role_name": ..., "actions": [...]}``
            (empty mapping when the group has no role)

        Raises:
            ServiceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def get_group_relations_by_role_name(self, role_name: str) -> Any:
        """Resolve a role name to an opaque relation descriptor.

        Raises:
            ServiceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def get_group_members(self, relations: Any) -> List[Dict[str, Any]]:
        """Expand a relation descriptor into groups with their members.

        Returns:
            List of ``{"group_id": ..., "members": [{"id": ...}]}`` entries

        Raises:
            ServiceError: If the fetch fails
        """
        pass


class RecordSource(ABC):
    """Source of module records."""

    @abstractmethod
    async def fetch(
        self,
        module_name: str,
        page: int = 1,
        page_size: int = 10,
        fields: Optional[List[str]] = None,
    ) -> List[Any]:
        """Fetch a page of records for a module.

        Raises:
            ServiceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def fetch_one(self, module_name: str, record_id: str) -> Optional[Any]:
        """Fetch a single record, or None when it does not exist.

        Raises:
            ServiceError: If the fetch fails
        """
        pass

