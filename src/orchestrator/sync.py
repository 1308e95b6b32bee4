"""Transactional container synchronization.

``sync_container`` wraps a caller supplied store mutation in a transaction,
regenerates the composite and the container for the target native
application version, records the new container version and commits. Any
failure discards the transaction and re-raises the original error, so that
nothing is left partially committed.
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import ExitStack
from typing import Awaitable, Callable, Optional, Sequence, Union

from common.errors import DescriptorError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants
from descriptors.app_descriptor import AppVersionDescriptor, DescriptorLike, coerce_descriptor
from store.connection import StoreConnectionManager
from store.container_version import compute_container_version
from store.helper import StoreHelper

from .toolchain import Composite, ContainerGenResult, ContainerToolchain
from .uploads import SideChannelUploader, miniapp_source_globs

logger = logging.getLogger(__name__)

Mutation = Callable[[], Awaitable[None]]
CommitMessage = Union[str, Sequence[str]]


async def _discard_quietly(helper: StoreHelper) -> None:
    try:
        await helper.discard_transaction()
    except Exception as e:  # pylint: disable=broad-exception-caught
        # The original failure is what the caller must see
        logger.error("Discarding the Cauldron transaction failed: %s", e)


async def _upload_side_channels(
    helper: StoreHelper,
    uploader: Optional[SideChannelUploader],
    descriptor: AppVersionDescriptor,
    container_version: str,
    source_map_output: str,
    gen_result: ContainerGenResult,
    composite: Composite,
) -> None:
    """Source map store and Bugsnag uploads; failures are logged only."""
    sourcemap_store = await helper.get_source_map_store_config()
    if sourcemap_store:
        try:
            uploader = uploader or SideChannelUploader()
            await uploader.upload_source_map(
                sourcemap_store["url"], descriptor, container_version, source_map_output
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Source map upload failed : %s", e)

    bugsnag = await helper.get_crash_report_config(descriptor)
    if bugsnag:
        try:
            uploader = uploader or SideChannelUploader()
            bundling = gen_result.bundling_result
            await uploader.upload_crash_report_source_map(
                api_key=bugsnag["apiKey"],
                bundle_path=os.path.realpath(bundling.bundle_path),
                source_map_path=os.path.realpath(bundling.source_map_path or source_map_output),
                project_root=os.path.realpath(os.path.join(composite.path, "node_modules")),
                app_version=container_version,
                upload_sources=bundling.is_hermes_bundle,
                upload_sources_globs=miniapp_source_globs(m.name or m.base_path for m in composite.miniapps),
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Bugsnag upload failed : %s", e)


async def sync_container(
    mutate: Mutation,
    descriptor: DescriptorLike,
    commit_message: CommitMessage,
    *,
    connection: StoreConnectionManager,
    toolchain: ContainerToolchain,
    container_version: Optional[str] = None,
    reset_cache: bool = False,
    source_map_output: Optional[str] = None,
    uploader: Optional[SideChannelUploader] = None,
) -> str:
    """Apply ``mutate`` to the store and regenerate the container atomically.

    Args:
        mutate: Coroutine function performing the store state change.
        descriptor: Complete target native application version.
        commit_message: Commit message, or lines of a multi-line message.
        connection: Store connection manager.
        toolchain: Composite/container generator and pipeline runner.
        container_version: Explicit new container version (else patch bump).
        reset_cache: Reset the packager cache before bundling.
        source_map_output: Where to write the bundle source map.
        uploader: Side channel uploader override.

    Returns:
        The new container version.
    """
    descriptor = coerce_descriptor(descriptor)
    if not descriptor.platform:
        raise DescriptorError(f"{descriptor} does not specify a platform")
    platform = descriptor.platform
    out_dir = connection.config.get_container_out_dir(platform)
    helper: Optional[StoreHelper] = None
    began = False

    try:
        helper = await connection.get_active_helper()
        new_version = await compute_container_version(helper, descriptor, container_version)

        await helper.begin_transaction()
        began = True

        await mutate()

        with Timer() as t, ExitStack() as scratch:
            composite_config = await helper.get_composite_generator_config(descriptor)
            composite_dir = scratch.enter_context(tempfile.TemporaryDirectory(prefix="composite-"))
            logger.info("Generating Composite from Cauldron")
            composite = await toolchain.generate_composite(
                descriptor, composite_config.get("baseComposite"), composite_dir
            )
            await helper.set_native_dependencies_in_container(
                descriptor, composite.injectable_native_dependencies(platform)
            )

            if not source_map_output:
                source_map_dir = scratch.enter_context(tempfile.TemporaryDirectory(prefix="sourcemap-"))
                source_map_output = os.path.join(source_map_dir, "index.map")
            logger.info("Generating Container from Cauldron")
            gen_result = await toolchain.generate_container(
                descriptor,
                composite,
                out_dir=out_dir,
                reset_cache=reset_cache,
                source_map_output=source_map_output,
            )
            await helper.update_container_version(descriptor, new_version)
            await helper.update_container_tool_version(descriptor, connection.config.tool_version)

            if composite.yarn_lock_path:
                await helper.add_or_update_yarn_lock(
                    descriptor, Constants.CONTAINER_YARN_KEY, composite.yarn_lock_path
                )

            logger.info("Running Container Pipeline")
            await toolchain.run_pipeline(out_dir, new_version, descriptor)

            await _upload_side_channels(
                helper, uploader, descriptor, new_version, source_map_output, gen_result, composite
            )

        logger.info("Updating Cauldron")
        await helper.commit_transaction(commit_message)
    except BaseException as e:
        logger.error("[sync_container] An error occurred: %s", e)
        # A transaction opened by the caller is not ours to drop
        if began:
            await _discard_quietly(helper)
        raise

    if is_debug_enabled(logger):
        logger.debug(
            "Container synced",
            extra=extra_context(
                event="function_exit",
                component="orchestrator",
                action="sync_container",
                outcome="success",
                descriptor=str(descriptor),
                duration_ms=t.duration_ms(),
            ),
        )
    logger.info("Added new container version %s for %s in Cauldron", new_version, descriptor)
    return new_version
