"""Configuration management for recordacl.

Handles loading and validation of YAML configuration files for the
permission engine and its CRM collaborators.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


# Default CRM endpoint paths (relative to crm.base_url)
DEFAULT_ENDPOINTS = {
    "user_roles": "/Api/V8/custom/user/roles",
    "user_groups": "/Api/V8/custom/user/security-groups",
    "group_roles": "/Api/V8/custom/security-groups/{group_id}/roles",
    "role_actions": "/Api/V8/custom/roles/{role_id}/actions",
    "group_relations": "/Api/V8/custom/security-groups/relations",
    "group_members": "/Api/V8/custom/security-groups/members",
    "module_records": "/Api/V8/module/{module}",
    "module_record": "/Api/V8/module/{module}/{record_id}",
}


@dataclass
class EndpointConfig:
    """Endpoint paths used by the HTTP collaborators."""

    user_roles: str = DEFAULT_ENDPOINTS["user_roles"]
    user_groups: str = DEFAULT_ENDPOINTS["user_groups"]
    group_roles: str = DEFAULT_ENDPOINTS["group_roles"]
    role_actions: str = DEFAULT_ENDPOINTS["role_actions"]
    group_relations: str = DEFAULT_ENDPOINTS["group_relations"]
    group_members: str = DEFAULT_ENDPOINTS["group_members"]
    module_records: str = DEFAULT_ENDPOINTS["module_records"]
    module_record: str = DEFAULT_ENDPOINTS["module_record"]


@dataclass
class CrmConfig:
    """Connection settings for the CRM backend."""

    base_url: str = "http://localhost"
    timeout: float = 15.0
    endpoints: EndpointConfig = field(default_factory=EndpointConfig)


@dataclass
class AccessConfig:
    """Access-evaluation behaviour."""

    case_sensitive_categories: bool = False


@dataclass
class CacheConfig:
    """Role/group data cache settings."""

    enabled: bool = True
    ttl_seconds: int = 300
    max_entries: int = 10000


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    log_dir: str = "/var/log/recordacl"
    file_logging: bool = False
    console_logging: bool = True


@dataclass
class RecordAclConfig:
    """Top-level configuration for recordacl."""

    crm: CrmConfig = field(default_factory=CrmConfig)
    access: AccessConfig = field(default_factory=AccessConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def parse_endpoint_config(endpoints_dict: Dict[str, Any]) -> EndpointConfig:
    """Parse endpoint paths, keeping defaults for missing entries.

    Args:
        endpoints_dict: Mapping of endpoint name to path

    Returns:
        EndpointConfig instance

    Raises:
        ValueError: If an unknown endpoint name is given
    """
    unknown = set(endpoints_dict) - set(DEFAULT_ENDPOINTS)
    if unknown:
        raise ValueError(f"Unknown CRM endpoints: {', '.join(sorted(unknown))}")

    merged = dict(DEFAULT_ENDPOINTS)
    merged.update({key: str(value) for key, value in endpoints_dict.items()})
    return EndpointConfig(**merged)


def parse_crm_config(crm_dict: Dict[str, Any]) -> CrmConfig:
    """Parse the crm section.

    Args:
        crm_dict: CRM configuration dictionary

    Returns:
        CrmConfig instance
    """
    timeout = float(crm_dict.get("timeout", 15.0))
    if timeout <= 0:
        raise ValueError(f"crm.timeout must be positive, got {timeout}")

    return CrmConfig(
        base_url=str(crm_dict.get("base_url", "http://localhost")).rstrip("/"),
        timeout=timeout,
        endpoints=parse_endpoint_config(crm_dict.get("endpoints") or {}),
    )


def parse_access_config(access_dict: Dict[str, Any]) -> AccessConfig:
    """Parse the access section."""
    return AccessConfig(
        case_sensitive_categories=bool(
            access_dict.get("case_sensitive_categories", False)
        ),
    )


def parse_cache_config(cache_dict: Dict[str, Any]) -> CacheConfig:
    """Parse the cache section."""
    ttl_seconds = int(cache_dict.get("ttl_seconds", 300))
    if ttl_seconds < 0:
        raise ValueError(f"cache.ttl_seconds must not be negative, got {ttl_seconds}")
    max_entries = int(cache_dict.get("max_entries", 10000))
    if max_entries < 1:
        raise ValueError(f"cache.max_entries must be positive, got {max_entries}")

    return CacheConfig(
        enabled=bool(cache_dict.get("enabled", True)),
        ttl_seconds=ttl_seconds,
        max_entries=max_entries,
    )


def parse_logging_config(logging_dict: Dict[str, Any]) -> LoggingConfig:
    """Parse the logging section."""
    return LoggingConfig(
        level=str(logging_dict.get("level", "INFO")).upper(),
        log_dir=logging_dict.get("log_dir", "/var/log/recordacl"),
        file_logging=bool(logging_dict.get("file_logging", False)),
        console_logging=bool(logging_dict.get("console_logging", True)),
    )


def parse_config(config_dict: Dict[str, Any]) -> RecordAclConfig:
    """Parse a configuration dictionary into typed dataclasses.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        RecordAclConfig instance
    """
    return RecordAclConfig(
        crm=parse_crm_config(config_dict.get("crm") or {}),
        access=parse_access_config(config_dict.get("access") or {}),
        cache=parse_cache_config(config_dict.get("cache") or {}),
        logging=parse_logging_config(config_dict.get("logging") or {}),
    )


def load_config(config_path: str = "/etc/recordacl/config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration.

    Args:
        obj: Configuration object (dict, list, str, etc.)

    Returns:
        Configuration with expanded environment variables
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(
    config_path: Optional[str] = None,
) -> RecordAclConfig:
    """Load and parse configuration into typed dataclasses.

    Without a path, the built-in defaults are returned.

    Args:
        config_path: Path to configuration file

    Returns:
        RecordAclConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        return RecordAclConfig()
    return parse_config(load_config(config_path))
