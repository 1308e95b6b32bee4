"""Compatibility reports of a dependency set against native application versions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from descriptors.app_descriptor import AppVersionDescriptor
from descriptors.package_path import PackagePath
from store.helper import StoreHelper

from .resolver import CompatibilityReport, get_compatibility

logger = logging.getLogger(__name__)

_COLUMN_WIDTHS = (40, 16, 15)
_HEADERS = ("Name", "Needed Version", "Local Version")


@dataclass
class NativeAppCompatibility:
    """Compatibility of a dependency set with one native application version."""
    descriptor: AppVersionDescriptor
    is_released: bool
    binary: Optional[str]
    report: CompatibilityReport

    @property
    def is_compatible(self) -> bool:
        return self.report.is_compatible


def _row(cells: Sequence[Optional[str]]) -> str:
    return "| " + " | ".join(
        (cell or "").ljust(width)[:width] for cell, width in zip(cells, _COLUMN_WIDTHS)
    ) + " |"


def format_compatibility_table(report: CompatibilityReport) -> str:
    """Render a report as a text table (compatible, non strict, incompatible)."""
    separator = "+-" + "-+-".join("-" * w for w in _COLUMN_WIDTHS) + "-+"
    lines = [separator, _row(_HEADERS), separator]
    for status, entries in (
        ("", report.compatible),
        ("~", report.compatible_non_strict),
        ("!", report.incompatible),
    ):
        for e in entries:
            lines.append(_row((f"{status}{e.dependency_name}", e.remote_version, e.local_version)))
    lines.append(separator)
    return "\n".join(lines)


def log_compatibility_report_table(report: CompatibilityReport) -> None:
    logger.info("\n%s", format_compatibility_table(report))


async def get_native_app_compatibility_report(
    helper: StoreHelper,
    local_deps: Sequence[PackagePath],
    app_name: Optional[str] = None,
    platform: Optional[str] = None,
    version: Optional[str] = None,
) -> List[NativeAppCompatibility]:
    """Compare ``local_deps`` against every matching native application version.

    Released versions cannot be regenerated, so a dependency missing from
    them is reported as incompatible.
    """
    results = []
    for descriptor in await helper.get_all_native_apps():
        if app_name and descriptor.name != app_name:
            continue
        if platform and descriptor.platform != platform:
            continue
        if version and descriptor.version != version:
            continue
        is_released = await helper.is_released(descriptor)
        remote_deps = await helper.get_native_dependencies(descriptor)
        report = get_compatibility(
            local_deps,
            remote_deps,
            treat_missing_remote_as_incompatible=is_released,
        )
        results.append(
            NativeAppCompatibility(
                descriptor=descriptor,
                is_released=is_released,
                binary=await helper.get_binary(descriptor),
                report=report,
            )
        )
    return results


async def check_compatibility_with_native_app(
    helper: StoreHelper,
    local_deps: Sequence[PackagePath],
    app_name: str,
    platform: Optional[str] = None,
    version: Optional[str] = None,
) -> Optional[NativeAppCompatibility]:
    """Log compatibility with matching native application versions.

    Returns the result for the complete descriptor when one is given,
    None otherwise.
    """
    results = await get_native_app_compatibility_report(helper, local_deps, app_name, platform, version)
    for r in results:
        logger.info("%s : %s", r.descriptor, "COMPATIBLE" if r.is_compatible else "NOT COMPATIBLE")
        log_compatibility_report_table(r.report)
        if app_name and platform and version:
            return r
    return None


async def are_compatible(
    helper: StoreHelper,
    miniapp_dependencies: Mapping[str, Sequence[PackagePath]],
    target: AppVersionDescriptor,
) -> bool:
    """Check every MiniApp's native dependencies against ``target``.

    Args:
        miniapp_dependencies: MiniApp name -> its native/API dependencies.
    """
    for miniapp, deps in miniapp_dependencies.items():
        logger.info("Checking native dependencies version alignment of %s with %s", miniapp, target)
        result = await check_compatibility_with_native_app(
            helper, deps, target.name, target.platform, target.version
        )
        if result is None or not result.is_compatible:
            logger.warning("At least one native dependency version is not aligned !")
            return False
        logger.info("%s native dependencies versions are aligned with %s", miniapp, target)
    return True
