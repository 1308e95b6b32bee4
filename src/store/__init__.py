"""Versioned metadata store: backends, helper, schema gate and connection."""

from .backend import StoreBackend
from .connection import StoreConnectionManager, StoreLocation, resolve_location
from .container_version import bump_patch, compute_container_version
from .file_backend import FileStoreBackend
from .helper import StoreHelper
from .schema_gate import check_required_tool_version, check_schema_version

__all__ = [
    "StoreBackend",
    "FileStoreBackend",
    "StoreHelper",
    "StoreConnectionManager",
    "StoreLocation",
    "resolve_location",
    "compute_container_version",
    "bump_patch",
    "check_schema_version",
    "check_required_tool_version",
]
