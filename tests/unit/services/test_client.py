"""Tests for the HTTP collaborators."""

import asyncio
import json

import httpx
import pytest

from recordacl.access.groups import SecurityGroupResolver
from recordacl.access.records import Record
from recordacl.access.roles import RoleCatalog
from recordacl.common.config import CrmConfig, parse_endpoint_config
from recordacl.services.base import ServiceError
from recordacl.services.client import (
    CrmApiClient,
    HttpGroupService,
    HttpRecordSource,
    HttpRoleService,
)

from tests.factories import make_jsonapi_record, make_module_actions, make_role


class CrmStub:
    """Routes requests to canned JSON responses and records them."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        status, body = route
        return httpx.Response(status, json=body)


def _client(routes, token="tok"):
    stub = CrmStub(routes)
    client = CrmApiClient(
        "https://crm.example.com/",
        token,
        transport=httpx.MockTransport(stub),
    )
    return client, stub


class TestCrmApiClient:
    """Test request handling and error mapping."""

    def test_bearer_token_and_json(self):
        """Test that the token is forwarded and JSON decoded."""
        client, stub = _client({("GET", "/ping"): (200, {"ok": True})})

        result = asyncio.run(client.get("/ping"))

        assert result == {"ok": True}
        assert stub.requests[0].headers["Authorization"] == "Bearer tok"
        assert str(stub.requests[0].url).startswith("https://crm.example.com/ping")

    def test_no_token_no_header(self):
        """Test anonymous requests."""
        client, stub = _client({("GET", "/ping"): (200, {})}, token=None)
        asyncio.run(client.get("/ping"))
        assert "Authorization" not in stub.requests[0].headers

    def test_http_error_status(self):
        """Test that non-2xx responses raise ServiceError with the status."""
        client, _ = _client({("GET", "/boom"): (500, {"error": "x"})})

        with pytest.raises(ServiceError) as exc_info:
            asyncio.run(client.get("/boom"))
        assert exc_info.value.status_code == 500

    def test_transport_error(self):
        """Test that connection failures raise ServiceError."""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = CrmApiClient("https://crm.example.com", transport=httpx.MockTransport(handler))
        with pytest.raises(ServiceError) as exc_info:
            asyncio.run(client.get("/ping"))
        assert exc_info.value.status_code is None

    def test_invalid_json(self):
        """Test that undecodable bodies raise ServiceError."""
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        client = CrmApiClient("https://crm.example.com", transport=httpx.MockTransport(handler))
        with pytest.raises(ServiceError, match="invalid JSON"):
            asyncio.run(client.get("/ping"))

    def test_from_config(self):
        """Test building a client from the crm section."""
        config = CrmConfig(
            base_url="https://crm.example.com",
            timeout=3.0,
            endpoints=parse_endpoint_config({"user_roles": "/roles"}),
        )
        client = CrmApiClient.from_config(config, "tok")

        assert client.timeout == 3.0
        assert client.endpoints.user_roles == "/roles"

    def test_aclose(self):
        """Test that closing releases the underlying client."""
        client, _ = _client({("GET", "/ping"): (200, {})})

        async def run():
            async with client:
                await client.get("/ping")
            return client._client

        assert asyncio.run(run()) is None


class TestHttpRoleService:
    """Test the personal role endpoint."""

    def test_role_actions_through_catalog(self):
        """Test that the catalog loads a role over HTTP."""
        client, stub = _client({
            ("GET", "/Api/V8/custom/user/roles"): (200, {
                "roles": [make_role("Sales", make_module_actions("Accounts", {"list": 75}))],
                "total_roles": 1,
            }),
        })
        role = asyncio.run(RoleCatalog(HttpRoleService(client)).load("u1", "Accounts"))

        assert role.role_name == "Sales"
        assert role.get_action("list").raw_access_code == 75
        assert stub.requests[0].url.params["user_id"] == "u1"

    def test_failure_gives_empty_role(self):
        """Test that an HTTP failure degrades to the empty role."""
        client, _ = _client({("GET", "/Api/V8/custom/user/roles"): (503, {})})
        role = asyncio.run(RoleCatalog(HttpRoleService(client)).load("u1", "Accounts"))
        assert role.is_empty


class TestHttpGroupService:
    """Test security group endpoints."""

    def test_group_role_two_step_lookup(self):
        """Test group -> role id -> role actions."""
        client, stub = _client({
            ("GET", "/Api/V8/custom/user/security-groups"): (200, {"data": [{"id": "g1"}, {"id": "g2"}]}),
            ("GET", "/Api/V8/custom/security-groups/g1/roles"): (200, {"roles": [{"id": "r9"}]}),
            ("GET", "/Api/V8/custom/roles/r9/actions"): (200, make_role(
                "Team", make_module_actions("Accounts", {"list": 80}), role_id="r9",
            )),
        })
        resolver = SecurityGroupResolver(HttpGroupService(client))

        role = asyncio.run(resolver.resolve_group_role("u1", "Accounts"))

        assert role.role_id == "r9"
        assert role.lookup_name == "team"
        assert [r.url.path for r in stub.requests] == [
            "/Api/V8/custom/user/security-groups",
            "/Api/V8/custom/security-groups/g1/roles",
            "/Api/V8/custom/roles/r9/actions",
        ]

    def test_group_without_role(self):
        """Test that a group with no roles gives an empty payload."""
        client, stub = _client({
            ("GET", "/Api/V8/custom/security-groups/g1/roles"): (200, {"roles": []}),
        })
        assert asyncio.run(HttpGroupService(client).get_group_role("g1")) == {}
        assert len(stub.requests) == 1

    def test_membership(self):
        """Test relation lookup followed by the member expansion."""
        relations = {"relations": ["rel-1"]}
        client, stub = _client({
            ("GET", "/Api/V8/custom/security-groups/relations"): (200, relations),
            ("POST", "/Api/V8/custom/security-groups/members"): (200, {"groups": [
                {"group_id": "g1", "members": [{"id": "u1"}, {"id": "u2"}]},
            ]}),
        })
        resolver = SecurityGroupResolver(HttpGroupService(client))

        membership = asyncio.run(resolver.load_membership("sales"))

        assert membership.member_ids == {"u1", "u2"}
        assert stub.requests[0].url.params["role_name"] == "sales"
        assert json.loads(stub.requests[1].content) == relations


class TestHttpRecordSource:
    """Test JSON:API record fetches."""

    def test_build_params(self):
        """Test the query shape for a page of records."""
        params = HttpRecordSource.build_params("Accounts", page=2, page_size=20, fields=["name"])

        assert params["filter[deleted][eq]"] == 0
        assert params["page[number]"] == 2
        assert params["page[size]"] == 20
        assert params["sort"] == "-date_entered"
        assert params["fields[Accounts]"] == "name,created_by,assigned_user_id"

    def test_build_params_without_fields(self):
        """Test that no sparse fieldset is requested by default."""
        assert "fields[Accounts]" not in HttpRecordSource.build_params("Accounts")

    def test_fetch_projects_records(self):
        """Test that fetched items come back as Records."""
        client, stub = _client({
            ("GET", "/Api/V8/module/Accounts"): (200, {"data": [
                make_jsonapi_record("a", created_by="u1"),
                make_jsonapi_record("b", assigned_user_id="u2"),
            ]}),
        })
        records = asyncio.run(HttpRecordSource(client).fetch("Accounts"))

        assert records == [
            Record(id="a", created_by="u1", module="Accounts"),
            Record(id="b", assigned_user_id="u2", module="Accounts"),
        ]
        assert stub.requests[0].url.params["page[size]"] == "10"

    def test_fetch_one(self):
        """Test single record fetch and the not-found case."""
        client, _ = _client({
            ("GET", "/Api/V8/module/Accounts/a"): (200, {"data": make_jsonapi_record("a", created_by="u1")}),
        })
        source = HttpRecordSource(client)

        async def run():
            return await source.fetch_one("Accounts", "a"), await source.fetch_one("Accounts", "missing")

        found, missing = asyncio.run(run())

        assert found.created_by == "u1"
        assert missing is None

    def test_fetch_one_server_error(self):
        """Test that other failures propagate."""
        client, _ = _client({("GET", "/Api/V8/module/Accounts/a"): (500, {})})

        with pytest.raises(ServiceError):
            asyncio.run(HttpRecordSource(client).fetch_one("Accounts", "a"))
