"""Container content changes: MiniApps and native dependencies.

Each operation validates its inputs against the store, then hands a store
mutation to ``sync_container``. Commit messages are built as a list: a
header line, then one line per item appended while the mutation runs, so
that the message only describes changes that were actually applied.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from descriptors.app_descriptor import AppVersionDescriptor, DescriptorLike, coerce_descriptor
from descriptors.package_path import PackagePath, PackagePathLike, coerce_package_path_list
from store.connection import StoreConnectionManager
from store.helper import StoreHelper

from . import ensure
from .ensure import CheckResult
from .sync import sync_container
from .toolchain import ContainerToolchain

logger = logging.getLogger(__name__)


async def _validate_target(
    helper: StoreHelper, descriptor: AppVersionDescriptor, container_version: Optional[str]
) -> None:
    """Checks that must pass before the container content can be inspected."""
    results: List[CheckResult] = [ensure.is_complete_descriptor(descriptor)]
    if container_version:
        results.append(ensure.is_valid_container_version(container_version))
    ensure.raise_if_failed(results)

    results = [await ensure.descriptor_exists_in_store(helper, descriptor)]
    if container_version:
        results.append(await ensure.is_newer_container_version(helper, descriptor, container_version))
    ensure.raise_if_failed(results)


def _header(
    verb: str, items: Sequence[PackagePath], kind: str, plural: str, descriptor: AppVersionDescriptor
) -> str:
    preposition = "from" if verb == "Remove" else "to"
    if len(items) == 1:
        return f"{verb} {items[0].base_path} {kind} {preposition} {descriptor}"
    return f"{verb} multiple {plural} {preposition} {descriptor}"


async def add_miniapps(
    miniapps: Sequence[PackagePathLike],
    descriptor: DescriptorLike,
    *,
    connection: StoreConnectionManager,
    toolchain: ContainerToolchain,
    container_version: Optional[str] = None,
    **sync_options,
) -> str:
    """Add MiniApps to the container of a native application version.

    Returns:
        The new container version.
    """
    descriptor = coerce_descriptor(descriptor)
    miniapps = coerce_package_path_list(miniapps)
    helper = await connection.get_active_helper()
    await _validate_target(helper, descriptor, container_version)
    ensure.raise_if_failed([await ensure.miniapp_not_in_container(helper, miniapps, descriptor)])

    message = [_header("Add", miniapps, "MiniApp", "MiniApps", descriptor)]

    async def mutate() -> None:
        for m in miniapps:
            await helper.sync_container_miniapps(descriptor, [m])
            message.append(f"- Add {m.base_path} MiniApp")

    return await sync_container(
        mutate,
        descriptor,
        message,
        connection=connection,
        toolchain=toolchain,
        container_version=container_version,
        **sync_options,
    )


async def update_miniapps(
    miniapps: Sequence[PackagePathLike],
    descriptor: DescriptorLike,
    *,
    connection: StoreConnectionManager,
    toolchain: ContainerToolchain,
    container_version: Optional[str] = None,
    **sync_options,
) -> str:
    """Move MiniApps already in the container to another version."""
    descriptor = coerce_descriptor(descriptor)
    miniapps = coerce_package_path_list(miniapps)
    helper = await connection.get_active_helper()
    await _validate_target(helper, descriptor, container_version)
    ensure.raise_if_failed(
        [await ensure.miniapp_is_in_container_with_different_version(helper, miniapps, descriptor)]
    )

    if len(miniapps) == 1:
        m = miniapps[0]
        message = [f"Update {m.base_path} MiniApp version to {m.version or m.full_path} in {descriptor}"]
    else:
        message = [f"Update multiple MiniApps in {descriptor}"]

    async def mutate() -> None:
        for m in miniapps:
            await helper.sync_container_miniapps(descriptor, [m])
            message.append(f"- Update {m.base_path} MiniApp version to {m.version or m.full_path}")

    return await sync_container(
        mutate,
        descriptor,
        message,
        connection=connection,
        toolchain=toolchain,
        container_version=container_version,
        **sync_options,
    )


async def remove_miniapps(
    miniapps: Sequence[PackagePathLike],
    descriptor: DescriptorLike,
    *,
    connection: StoreConnectionManager,
    toolchain: ContainerToolchain,
    container_version: Optional[str] = None,
    **sync_options,
) -> str:
    descriptor = coerce_descriptor(descriptor)
    miniapps = coerce_package_path_list(miniapps)
    helper = await connection.get_active_helper()
    await _validate_target(helper, descriptor, container_version)
    ensure.raise_if_failed([await ensure.miniapp_is_in_container(helper, miniapps, descriptor)])

    message = [_header("Remove", miniapps, "MiniApp", "MiniApps", descriptor)]

    async def mutate() -> None:
        for m in miniapps:
            await helper.remove_container_miniapp(descriptor, m.base_path)
            message.append(f"- Remove {m.base_path} MiniApp")

    return await sync_container(
        mutate,
        descriptor,
        message,
        connection=connection,
        toolchain=toolchain,
        container_version=container_version,
        **sync_options,
    )


async def add_dependencies(
    dependencies: Sequence[PackagePathLike],
    descriptor: DescriptorLike,
    *,
    connection: StoreConnectionManager,
    toolchain: ContainerToolchain,
    container_version: Optional[str] = None,
    **sync_options,
) -> str:
    """Add native dependencies to the container of a native application version."""
    descriptor = coerce_descriptor(descriptor)
    dependencies = coerce_package_path_list(dependencies)
    helper = await connection.get_active_helper()
    await _validate_target(helper, descriptor, container_version)
    ensure.raise_if_failed(
        [
            ensure.no_git_or_file_system_path(
                dependencies, "Native dependencies must be referenced by registry name and version"
            ),
            await ensure.dependency_not_in_container(helper, dependencies, descriptor),
        ]
    )

    message = [_header("Add", dependencies, "native dependency", "native dependencies", descriptor)]

    async def mutate() -> None:
        for dep in dependencies:
            await helper.sync_container_native_dependencies(descriptor, [dep])
            message.append(f"- Add {dep.base_path} native dependency")

    return await sync_container(
        mutate,
        descriptor,
        message,
        connection=connection,
        toolchain=toolchain,
        container_version=container_version,
        **sync_options,
    )


async def remove_dependencies(
    dependencies: Sequence[PackagePathLike],
    descriptor: DescriptorLike,
    *,
    connection: StoreConnectionManager,
    toolchain: ContainerToolchain,
    container_version: Optional[str] = None,
    **sync_options,
) -> str:
    descriptor = coerce_descriptor(descriptor)
    dependencies = coerce_package_path_list(dependencies)
    helper = await connection.get_active_helper()
    await _validate_target(helper, descriptor, container_version)
    ensure.raise_if_failed([await ensure.dependency_is_in_container(helper, dependencies, descriptor)])

    message = [_header("Remove", dependencies, "native dependency", "native dependencies", descriptor)]

    async def mutate() -> None:
        for dep in dependencies:
            await helper.remove_container_native_dependency(descriptor, dep.base_path)
            message.append(f"- Remove {dep.base_path} native dependency")

    logger.debug("Removing %d native dependencies from %s", len(dependencies), descriptor)
    return await sync_container(
        mutate,
        descriptor,
        message,
        connection=connection,
        toolchain=toolchain,
        container_version=container_version,
        **sync_options,
    )
