"""
Tools module: the catalog of local capabilities and the gate in front of it.
"""

from .base import ExplainResult, Tool, ToolParameter, ToolResult
from .registry import ToolRegistry, create_default_registry
from .permissions import (
    DEFAULT_DENIAL,
    PermissionGateway,
    PermissionHandler,
    PermissionRequest,
    PermissionResponse,
)
from .validation import parse_arguments, validate_arguments, value_kind

__all__ = [
    "ExplainResult",
    "Tool",
    "ToolParameter",
    "ToolResult",
    "ToolRegistry",
    "create_default_registry",
    "DEFAULT_DENIAL",
    "PermissionGateway",
    "PermissionHandler",
    "PermissionRequest",
    "PermissionResponse",
    "parse_arguments",
    "validate_arguments",
    "value_kind",
]
