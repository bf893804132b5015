from functools import lru_cache
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from aclservice.core.config import get_settings
from recordacl.access.cache import PermissionCache
from recordacl.access.groups import SecurityGroupResolver
from recordacl.access.roles import RoleCatalog
from recordacl.common.config import RecordAclConfig, load_typed_config
from recordacl.pipeline.context import EvaluationContext
from recordacl.services.client import (
    CrmApiClient,
    HttpGroupService,
    HttpRecordSource,
    HttpRoleService,
)
from recordacl.services.identity import user_id_from_token

bearer_scheme = HTTPBearer(auto_error=False)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


@lru_cache
def get_engine_config() -> RecordAclConfig:
    """Engine configuration, loaded once per process."""
    settings = get_settings()
    config = load_typed_config(settings.config_path)
    if settings.crm_base_url:
        config.crm.base_url = settings.crm_base_url.rstrip("/")
    return config


_permission_cache: Optional[PermissionCache] = None


def get_permission_cache(
    config: RecordAclConfig = Depends(get_engine_config),
) -> Optional[PermissionCache]:
    """Process-wide permission cache, or None when caching is disabled."""
    global _permission_cache
    if not config.cache.enabled:
        return None
    if _permission_cache is None:
        _permission_cache = PermissionCache(
            ttl_seconds=config.cache.ttl_seconds,
            max_entries=config.cache.max_entries,
        )
    return _permission_cache


def get_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Bearer token from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise _credentials_exception()
    return credentials.credentials


def get_current_user_id(token: str = Depends(get_access_token)) -> str:
    """Acting user id from the bearer token."""
    settings = get_settings()
    user_id = user_id_from_token(token, settings.token_secret_key, settings.token_algorithm)
    if user_id is None:
        raise _credentials_exception()
    return user_id


async def get_crm_client(
    token: str = Depends(get_access_token),
    config: RecordAclConfig = Depends(get_engine_config),
) -> AsyncGenerator[CrmApiClient, None]:
    """CRM client forwarding the caller's token."""
    client = CrmApiClient.from_config(config.crm, token)
    try:
        yield client
    finally:
        await client.aclose()


def get_role_service(client: CrmApiClient = Depends(get_crm_client)) -> HttpRoleService:
    return HttpRoleService(client)


def get_record_source(client: CrmApiClient = Depends(get_crm_client)) -> HttpRecordSource:
    return HttpRecordSource(client)


async def get_evaluation_context(
    module: str,
    user_id: str = Depends(get_current_user_id),
    client: CrmApiClient = Depends(get_crm_client),
    config: RecordAclConfig = Depends(get_engine_config),
    cache: Optional[PermissionCache] = Depends(get_permission_cache),
) -> AsyncGenerator[EvaluationContext, None]:
    """Evaluation context for the caller on the requested module."""
    case_sensitive = config.access.case_sensitive_categories
    context = EvaluationContext(
        user_id,
        module,
        RoleCatalog(HttpRoleService(client), case_sensitive_categories=case_sensitive),
        SecurityGroupResolver(HttpGroupService(client), case_sensitive_categories=case_sensitive),
        cache=cache,
    )
    try:
        yield context
    finally:
        context.close()
