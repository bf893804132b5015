"""HTTP implementations of the CRM collaborators.

All requests go through :class:`CrmApiClient`, which owns a single
``httpx.AsyncClient`` and forwards the caller's bearer token.
"""

from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..access.records import Record, project_record, project_records
from ..common.config import CrmConfig, EndpointConfig
from ..common.logger import get_logger
from .base import GroupService, RecordSource, RoleService, ServiceError

logger = get_logger("client")

# Fields every record fetch needs for ownership checks
OWNERSHIP_FIELDS = ("created_by", "assigned_user_id")


def _unwrap_list(payload: Any, *keys: str) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


class CrmApiClient:
    """Thin async JSON client for the CRM REST API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 15.0,
        endpoints: Optional[EndpointConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: CRM root URL
            token: Bearer token forwarded on every request
            timeout: Request timeout in seconds
            endpoints: Endpoint paths (defaults apply when omitted)
            transport: Custom httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.endpoints = endpoints or EndpointConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(
        cls,
        config: CrmConfig,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "CrmApiClient":
        return cls(
            config.base_url,
            token,
            timeout=config.timeout,
            endpoints=config.endpoints,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            )
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ServiceError: On transport errors, non-2xx responses or
                undecodable bodies
        """
        try:
            response = await self._get_client().request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ServiceError(f"{method} {path} returned {status}", status_code=status) from e
        except httpx.HTTPError as e:
            raise ServiceError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(f"{method} {path} returned invalid JSON") from e

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CrmApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class HttpRoleService(RoleService):
    """Personal role lookup over HTTP."""

    def __init__(self, client: CrmApiClient):
        self.client = client

    async def get_user_role_actions(self, user_id: str) -> Dict[str, Any]:
        payload = await self.client.get(
            self.client.endpoints.user_roles, params={"user_id": user_id}
        )
        return payload if isinstance(payload, dict) else {}


class HttpGroupService(GroupService):
    """Security group lookups over HTTP."""

    def __init__(self, client: CrmApiClient):
        self.client = client

    async def get_user_groups(self, user_id: str) -> List[Dict[str, Any]]:
        payload = await self.client.get(
            self.client.endpoints.user_groups, params={"user_id": user_id}
        )
        return _unwrap_list(payload, "groups", "data")

    async def get_group_role(self, group_id: str) -> Dict[str, Any]:
        """Resolve the group's first role, then fetch that role's actions."""
        endpoints = self.client.endpoints
        payload = await self.client.get(endpoints.group_roles.format(group_id=group_id))

        roles = _unwrap_list(payload, "roles", "data")
        first_role = roles[0] if roles and isinstance(roles[0], Mapping) else {}
        role_id = first_role.get("id") or first_role.get("role_id")
        if not role_id:
            logger.debug(f"Security group {group_id} has no role")
            return {}

        role = await self.client.get(endpoints.role_actions.format(role_id=role_id))
        return role if isinstance(role, dict) else {}

    async def get_group_relations_by_role_name(self, role_name: str) -> Any:
        return await self.client.get(
            self.client.endpoints.group_relations, params={"role_name": role_name}
        )

    async def get_group_members(self, relations: Any) -> List[Dict[str, Any]]:
        payload = await self.client.post(self.client.endpoints.group_members, json=relations)
        return _unwrap_list(payload, "groups", "data")


class HttpRecordSource(RecordSource):
    """Module record fetches over the CRM's JSON:API endpoints."""

    def __init__(self, client: CrmApiClient):
        self.client = client

    @staticmethod
    def build_params(
        module_name: str,
        page: int = 1,
        page_size: int = 10,
        fields: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Query parameters for one page of non-deleted records, newest first."""
        params: Dict[str, Any] = {
            "filter[deleted][eq]": 0,
            "page[size]": page_size,
            "page[number]": page,
            "sort": "-date_entered",
        }
        if fields:
            requested = list(fields) + [f for f in OWNERSHIP_FIELDS if f not in fields]
            params[f"fields[{module_name}]"] = ",".join(requested)
        return params

    async def fetch(
        self,
        module_name: str,
        page: int = 1,
        page_size: int = 10,
        fields: Optional[List[str]] = None,
    ) -> List[Record]:
        path = self.client.endpoints.module_records.format(module=module_name)
        payload = await self.client.get(
            path, params=self.build_params(module_name, page, page_size, fields)
        )
        return project_records(_unwrap_list(payload, "data"), module_name)

    async def fetch_one(self, module_name: str, record_id: str) -> Optional[Record]:
        path = self.client.endpoints.module_record.format(module=module_name, record_id=record_id)
        try:
            payload = await self.client.get(path)
        except ServiceError as e:
            if e.status_code == 404:
                return None
            raise

        if isinstance(payload, Mapping) and "data" in payload:
            payload = payload["data"]
        if not isinstance(payload, Mapping):
            return None
        return project_record(payload, module_name)
