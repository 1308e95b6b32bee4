"""Dependency compatibility classification and reporting."""

from .report import (
    NativeAppCompatibility,
    are_compatible,
    check_compatibility_with_native_app,
    format_compatibility_table,
    get_native_app_compatibility_report,
)
from .resolver import (
    CompatibilityEntry,
    CompatibilityReport,
    get_compatibility,
    is_bridging_module,
)

__all__ = [
    "CompatibilityEntry",
    "CompatibilityReport",
    "get_compatibility",
    "is_bridging_module",
    "NativeAppCompatibility",
    "get_native_app_compatibility_report",
    "check_compatibility_with_native_app",
    "are_compatible",
    "format_compatibility_table",
]
