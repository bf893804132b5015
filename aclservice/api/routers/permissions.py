"""Record permission API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from aclservice.api.deps import (
    get_current_user_id,
    get_evaluation_context,
    get_record_source,
    get_role_service,
)
from aclservice.api.schemas import (
    EffectivePermissionResponse,
    ErrorResponse,
    ListPermissionsResponse,
    ModuleAccessResponse,
    RecordListRequest,
    RecordOut,
    RecordPermissionsResponse,
)
from recordacl.access.modules import ModuleAccessIndex
from recordacl.access.records import Record
from recordacl.access.roles import Operation
from recordacl.common.logger import get_logger
from recordacl.pipeline.context import EvaluationContext
from recordacl.services.base import ServiceError
from recordacl.services.client import HttpRecordSource, HttpRoleService

router = APIRouter(prefix="/modules/{module}", tags=["permissions"])
logger = get_logger("api")


def _record_out(record: Record) -> RecordOut:
    return RecordOut(
        id=record.id,
        created_by=record.created_by,
        assigned_user_id=record.assigned_user_id,
        security_group_id=record.security_group_id,
        security_group_ids=list(record.security_group_ids),
    )


@router.get(
    "/records/{record_id}/permissions",
    response_model=RecordPermissionsResponse,
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def get_record_permissions(
    module: str,
    record_id: str,
    context: EvaluationContext = Depends(get_evaluation_context),
    record_source: HttpRecordSource = Depends(get_record_source),
):
    """View, edit and delete flags for one stored record."""
    try:
        record = await record_source.fetch_one(module, record_id)
    except ServiceError as e:
        logger.warning(f"Record fetch failed for {module}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Record could not be fetched",
        )

    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Record not found",
        )

    permissions = await context.check_record(record)
    return RecordPermissionsResponse(
        record_id=permissions.record_id,
        can_view=permissions.can_view,
        can_edit=permissions.can_edit,
        can_delete=permissions.can_delete,
    )


@router.post("/records/permissions", response_model=ListPermissionsResponse)
async def filter_record_list(
    module: str,
    body: RecordListRequest,
    context: EvaluationContext = Depends(get_evaluation_context),
):
    """Filter a list of raw record payloads by list and view access."""
    result = await context.filter_list(body.records)
    return ListPermissionsResponse(
        visible_record_ids=result.visible_record_ids,
        viewable_record_ids=result.viewable_record_ids,
        records=[_record_out(record) for record in result.records],
    )


@router.get(
    "/access",
    response_model=ModuleAccessResponse,
    responses={502: {"model": ErrorResponse}},
)
async def get_module_access(
    module: str,
    user_id: str = Depends(get_current_user_id),
    role_service: HttpRoleService = Depends(get_role_service),
):
    """Whether the caller may open the module at all."""
    try:
        payload = await role_service.get_user_role_actions(user_id)
    except ServiceError as e:
        logger.warning(f"Role fetch failed for module access on {module}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Roles could not be fetched",
        )

    index = ModuleAccessIndex.from_payload(payload)
    return ModuleAccessResponse(
        module=module,
        has_access=index.has_module_access(module),
        permissions=index.get_module_permissions(module),
    )


@router.get("/effective", response_model=EffectivePermissionResponse)
async def get_effective_permission(
    module: str,
    operation: Operation = Query(Operation.LIST, description="Operation to resolve"),
    context: EvaluationContext = Depends(get_evaluation_context),
):
    """Effective access level and its source for one operation."""
    await context.load()
    effective = context.effective(operation)
    return EffectivePermissionResponse(
        operation=effective.operation.value,
        access_level=effective.access_level.value if effective.access_level else None,
        source=effective.source.value if effective.source else None,
        role_name=effective.source_role_name,
    )
