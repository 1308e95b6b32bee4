"""Dependency compatibility classification.

Compares the dependencies a MiniApp (or any local module set) needs against
the dependencies recorded for a target native application version, and
classifies each shared dependency as compatible, compatible non strict
(backward compatible bridging module) or incompatible.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import semantic_version

from constants import Constants
from descriptors.package_path import PackagePath


@dataclass
class CompatibilityEntry:
    """One dependency in a compatibility report."""
    dependency_name: str
    local_version: Optional[str] = None
    remote_version: Optional[str] = None


@dataclass
class CompatibilityReport:
    """Three-way classification of shared dependencies."""
    compatible: List[CompatibilityEntry] = field(default_factory=list)
    compatible_non_strict: List[CompatibilityEntry] = field(default_factory=list)
    incompatible: List[CompatibilityEntry] = field(default_factory=list)

    @property
    def is_compatible(self) -> bool:
        return not self.incompatible

    def to_dict(self) -> dict:
        def _rows(entries):
            return [
                {
                    "dependencyName": e.dependency_name,
                    "localVersion": e.local_version,
                    "remoteVersion": e.remote_version,
                }
                for e in entries
            ]

        return {
            "compatible": _rows(self.compatible),
            "compatibleNonStrict": _rows(self.compatible_non_strict),
            "incompatible": _rows(self.incompatible),
        }


def is_bridging_module(name: Optional[str]) -> bool:
    """Return True for API, API implementation and bridge modules.

    Their API surface is backward compatible across minor/patch versions of
    the same major version.
    """
    if not name:
        return False
    return name.endswith(Constants.BRIDGING_SUFFIXES) or name in Constants.BRIDGING_MODULES


def _parse_version(version: str) -> Optional[semantic_version.Version]:
    try:
        return semantic_version.Version.coerce(version)
    except ValueError:
        return None


def _classify_bridging(local_version: str, remote_version: Optional[str]) -> str:
    """Classify a version difference of a bridging module.

    Same major and local older is backward compatible; anything else
    (local newer, different major, unparsable version) is incompatible.
    """
    local = _parse_version(local_version)
    remote = _parse_version(remote_version) if remote_version else None
    if local is None or remote is None:
        return "incompatible"
    if local.major == remote.major and local < remote:
        return "compatible_non_strict"
    return "incompatible"


def get_compatibility(
    local_deps: Sequence[PackagePath],
    remote_deps: Sequence[PackagePath],
    treat_missing_remote_as_incompatible: bool = False,
) -> CompatibilityReport:
    """Classify ``remote_deps`` against their local counterparts.

    Args:
        local_deps: Dependencies of the module set being merged.
        remote_deps: Dependencies recorded for the target build.
        treat_missing_remote_as_incompatible: Also report local dependencies
            absent from the target as incompatible (remote version MISSING).
            Only meaningful for released builds, which cannot be regenerated.

    Returns:
        CompatibilityReport. Remote dependencies without a local counterpart
        are omitted.
    """
    report = CompatibilityReport()

    for remote_dep in remote_deps:
        local_dep = next(
            (d for d in local_deps if remote_dep.same(d, ignore_version=True)), None
        )
        local_version = local_dep.version if local_dep else None
        if not local_version:
            continue

        entry = CompatibilityEntry(
            dependency_name=remote_dep.name or remote_dep.base_path,
            local_version=local_version,
            remote_version=remote_dep.version,
        )
        if local_version == remote_dep.version:
            report.compatible.append(entry)
        elif is_bridging_module(local_dep.name):
            bucket = _classify_bridging(local_version, remote_dep.version)
            getattr(report, bucket).append(entry)
        else:
            report.incompatible.append(entry)

    if treat_missing_remote_as_incompatible:
        for local_dep in local_deps:
            remote_dep = next((d for d in remote_deps if d.name == local_dep.name), None)
            if remote_dep is None or not remote_dep.version:
                report.incompatible.append(
                    CompatibilityEntry(
                        dependency_name=local_dep.name or local_dep.base_path,
                        local_version=local_dep.version,
                        remote_version=Constants.MISSING_VERSION,
                    )
                )

    return report
