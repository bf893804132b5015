"""Pytest configuration and shared fixtures."""

import pytest

from tests.factories import (
    FakeGroupService,
    FakeRoleService,
    make_module_actions,
    make_role,
)


@pytest.fixture
def sample_config():
    """Sample configuration dictionary."""
    return {
        "crm": {
            "base_url": "https://crm.example.com/",
            "timeout": 10,
            "endpoints": {
                "user_roles": "/Api/V8/custom/user/roles",
            },
        },
        "access": {
            "case_sensitive_categories": False,
        },
        "cache": {
            "enabled": True,
            "ttl_seconds": 60,
        },
        "logging": {
            "level": "debug",
        },
    }


@pytest.fixture
def owner_role_service():
    """Personal role with OWNER on every Accounts operation."""
    return FakeRoleService(make_role(
        "Sales Rep",
        make_module_actions("Accounts", {
            "list": 75, "view": 75, "edit": 75, "delete": 75, "create": 90,
        }),
    ))


@pytest.fixture
def no_group_service():
    """Group service for a user outside every security group."""
    return FakeGroupService()
