"""API routers for the record ACL service."""

from . import permissions

__all__ = [
    "permissions",
]
