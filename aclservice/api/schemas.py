"""Request and response schemas for the record ACL API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RecordOut(BaseModel):
    """Canonical record fields used for access decisions."""
    id: Optional[str] = None
    created_by: Optional[str] = None
    assigned_user_id: Optional[str] = None
    security_group_id: Optional[str] = None
    security_group_ids: List[str] = Field(default_factory=list)


class RecordPermissionsResponse(BaseModel):
    record_id: Optional[str]
    can_view: bool
    can_edit: bool
    can_delete: bool


class RecordListRequest(BaseModel):
    """Raw record payloads, as returned by the CRM list endpoints."""
    records: List[Dict[str, Any]] = Field(default_factory=list)


class ListPermissionsResponse(BaseModel):
    visible_record_ids: List[str]
    viewable_record_ids: List[str]
    records: List[RecordOut]


class EffectivePermissionResponse(BaseModel):
    operation: str
    access_level: Optional[str] = None
    source: Optional[str] = None
    role_name: str = ""


class ModuleAccessResponse(BaseModel):
    """Whether the caller may open a module, with its raw action codes."""
    module: str
    has_access: bool
    permissions: Dict[str, float] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
