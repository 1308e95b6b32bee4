"""Validation checks run before mutating the store.

Every check returns a ``CheckResult`` instead of raising. Callers build a list
of results and surface the first failure or all of them; ``raise_if_failed``
turns failures into a single ``ValidationFailedError`` at the command
boundary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

import semantic_version

from common.errors import ValidationFailedError
from descriptors.app_descriptor import DescriptorLike, coerce_descriptor, coerce_descriptor_list
from descriptors.package_path import (
    PackagePathLike,
    coerce_package_path_list,
    looks_like_file_path,
)
from store.helper import StoreHelper

CONTAINER_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")

PackagePaths = Union[PackagePathLike, Sequence[PackagePathLike], None]


@dataclass(frozen=True)
class ValidationError:
    check: str
    message: str


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single check; ``error`` is None on success."""
    error: Optional[ValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls) -> "CheckResult":
        return cls()

    @classmethod
    def failure(cls, check: str, message: str, extra_error_message: str = "") -> "CheckResult":
        if extra_error_message:
            message = f"{message}\n{extra_error_message}"
        return cls(ValidationError(check=check, message=message))


def first_failure(results: Iterable[CheckResult]) -> Optional[ValidationError]:
    for r in results:
        if not r.ok:
            return r.error
    return None


def all_failures(results: Iterable[CheckResult]) -> List[ValidationError]:
    return [r.error for r in results if r.error is not None]


def raise_if_failed(results: Iterable[CheckResult]) -> None:
    """Raise ValidationFailedError listing every failed check."""
    failures = all_failures(results)
    if failures:
        raise ValidationFailedError([f.message for f in failures])


# ---------- stateless checks ----------


def is_valid_container_version(version: str, extra_error_message: str = "") -> CheckResult:
    if not CONTAINER_VERSION_RE.match(version or ""):
        return CheckResult.failure(
            "is_valid_container_version",
            f"{version} is not a valid container version.",
            extra_error_message,
        )
    return CheckResult.success()


def is_complete_descriptor(descriptor: DescriptorLike, extra_error_message: str = "") -> CheckResult:
    if coerce_descriptor(descriptor).is_partial:
        return CheckResult.failure(
            "is_complete_descriptor",
            f"{descriptor} is not a complete native application descriptor, "
            "in the form application:platform:version",
            extra_error_message,
        )
    return CheckResult.success()


def no_git_or_file_system_path(paths: PackagePaths, extra_error_message: str = "") -> CheckResult:
    for p in coerce_package_path_list(paths):
        if p.is_file_path or p.is_git_path:
            return CheckResult.failure(
                "no_git_or_file_system_path", f"Found a git or file system path ({p}).", extra_error_message
            )
    return CheckResult.success()


def no_file_system_path(paths: Union[str, Sequence[str]], extra_error_message: str = "") -> CheckResult:
    for p in [paths] if isinstance(paths, str) else paths:
        if looks_like_file_path(p):
            return CheckResult.failure(
                "no_file_system_path", f"Found a file system path ({p}).", extra_error_message
            )
    return CheckResult.success()


def same_native_application_and_platform(
    descriptors: Sequence[DescriptorLike], extra_error_message: str = ""
) -> CheckResult:
    pairs = {(d.name, d.platform) for d in coerce_descriptor_list(descriptors)}
    if len(pairs) > 1:
        return CheckResult.failure(
            "same_native_application_and_platform",
            "Descriptors do not all match the same native application/platform pair.",
            extra_error_message,
        )
    return CheckResult.success()


# ---------- store checks ----------


async def is_newer_container_version(
    helper: StoreHelper,
    descriptor: DescriptorLike,
    container_version: str,
    extra_error_message: str = "",
) -> CheckResult:
    current = await helper.get_top_level_container_version(coerce_descriptor(descriptor))
    if not current:
        return CheckResult.success()
    try:
        newer = semantic_version.Version(container_version) > semantic_version.Version(current)
    except ValueError:
        newer = False
    if not newer:
        return CheckResult.failure(
            "is_newer_container_version",
            f"Container version {container_version} is older than {current}",
            extra_error_message,
        )
    return CheckResult.success()


async def descriptor_exists_in_store(
    helper: StoreHelper,
    descriptors: Union[DescriptorLike, Sequence[DescriptorLike]],
    extra_error_message: str = "",
) -> CheckResult:
    for d in coerce_descriptor_list(descriptors):
        if not await helper.is_descriptor_in_store(d):
            return CheckResult.failure(
                "descriptor_exists_in_store",
                f"{d} descriptor does not exist in Cauldron.",
                extra_error_message,
            )
    return CheckResult.success()


async def descriptor_does_not_exist_in_store(
    helper: StoreHelper, descriptor: DescriptorLike, extra_error_message: str = ""
) -> CheckResult:
    d = coerce_descriptor(descriptor)
    if await helper.is_descriptor_in_store(d):
        return CheckResult.failure(
            "descriptor_does_not_exist_in_store", f"{d} descriptor exist in Cauldron.", extra_error_message
        )
    return CheckResult.success()


async def miniapp_not_in_container(
    helper: StoreHelper, miniapps: PackagePaths, descriptor: DescriptorLike, extra_error_message: str = ""
) -> CheckResult:
    for m in coerce_package_path_list(miniapps):
        if await helper.is_miniapp_in_container(descriptor, m.base_path):
            return CheckResult.failure(
                "miniapp_not_in_container",
                f"{m.base_path} MiniApp exists in {descriptor}.",
                extra_error_message,
            )
    return CheckResult.success()


async def miniapp_is_in_container(
    helper: StoreHelper, miniapps: PackagePaths, descriptor: DescriptorLike, extra_error_message: str = ""
) -> CheckResult:
    for m in coerce_package_path_list(miniapps):
        if not await helper.is_miniapp_in_container(descriptor, m.base_path):
            return CheckResult.failure(
                "miniapp_is_in_container",
                f"{m.base_path} MiniApp does not exist in {descriptor}.",
                extra_error_message,
            )
    return CheckResult.success()


async def miniapp_is_in_container_with_different_version(
    helper: StoreHelper, miniapps: PackagePaths, descriptor: DescriptorLike, extra_error_message: str = ""
) -> CheckResult:
    miniapps = coerce_package_path_list(miniapps)
    present = await miniapp_is_in_container(helper, miniapps, descriptor, extra_error_message)
    if not present.ok:
        return present
    for m in miniapps:
        current = await helper.get_container_miniapp(descriptor, m.base_path)
        if current is not None and current.version == m.version:
            return CheckResult.failure(
                "miniapp_is_in_container_with_different_version",
                f"{current.base_path} is already at version {m.version or ''} in {descriptor}.",
                extra_error_message,
            )
    return CheckResult.success()


async def dependency_not_in_container(
    helper: StoreHelper, dependencies: PackagePaths, descriptor: DescriptorLike, extra_error_message: str = ""
) -> CheckResult:
    for dep in coerce_package_path_list(dependencies):
        if await helper.is_native_dependency_in_container(descriptor, dep.base_path):
            return CheckResult.failure(
                "dependency_not_in_container",
                f"{dep.base_path} dependency exists in {descriptor}.",
                extra_error_message,
            )
    return CheckResult.success()


async def dependency_is_in_container(
    helper: StoreHelper, dependencies: PackagePaths, descriptor: DescriptorLike, extra_error_message: str = ""
) -> CheckResult:
    for dep in coerce_package_path_list(dependencies):
        if not await helper.is_native_dependency_in_container(descriptor, dep.base_path):
            return CheckResult.failure(
                "dependency_is_in_container",
                f"{dep.base_path} does not exists in {descriptor}.",
                extra_error_message,
            )
    return CheckResult.success()


async def dependency_is_in_container_with_different_version(
    helper: StoreHelper, dependencies: PackagePaths, descriptor: DescriptorLike, extra_error_message: str = ""
) -> CheckResult:
    dependencies = coerce_package_path_list(dependencies)
    present = await dependency_is_in_container(helper, dependencies, descriptor, extra_error_message)
    if not present.ok:
        return present
    for dep in dependencies:
        current = await helper.get_container_native_dependency(descriptor, dep.base_path)
        if current is not None and current.version == dep.version:
            return CheckResult.failure(
                "dependency_is_in_container_with_different_version",
                f"{dep.base_path} is already at version {current.version or 'undefined'} in {descriptor}.",
                extra_error_message,
            )
    return CheckResult.success()
