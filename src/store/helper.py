"""Typed access to the store and the begin/commit/discard protocol.

Records are addressed by descriptor strings:

- ``app``                    application record
- ``app:platform``           platform record (holds the top-level container version)
- ``app:platform:version``   native application version record (holds the container)

Configuration lookups cascade version -> platform -> application -> store.
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any, Dict, List, Optional, Sequence, Union

from common.errors import DescriptorError, TransactionError
from common.logging_utils import extra_context, is_debug_enabled
from constants import ConfigKeys
from descriptors.app_descriptor import AppVersionDescriptor, DescriptorLike, coerce_descriptor
from descriptors.package_path import PackagePath

from .backend import StoreBackend

logger = logging.getLogger(__name__)

YARN_LOCK_KEY_PREFIX = "yarnlocks/"


def _empty_container() -> Dict[str, Any]:
    return {"miniApps": [], "nativeDeps": [], "jsApiImpls": [], "toolVersion": None}


def _require_complete(descriptor: AppVersionDescriptor) -> None:
    if descriptor.is_partial:
        raise DescriptorError(
            f"{descriptor} is not a complete native application descriptor "
            "(application:platform:version)"
        )


def _upsert_paths(existing: List[str], updates: Sequence[PackagePath]) -> List[str]:
    """Replace entries sharing a base path with the update, append the others."""
    result = list(existing)
    for update in updates:
        for i, current in enumerate(result):
            if PackagePath.from_string(current).same(update, ignore_version=True):
                result[i] = str(update)
                break
        else:
            result.append(str(update))
    return result


class StoreHelper:
    """High level store API bound to one backend connection."""

    def __init__(self, backend: StoreBackend):
        self.backend = backend

    # ---------- transactions ----------

    @property
    def in_transaction(self) -> bool:
        return self.backend.in_transaction

    async def begin_transaction(self) -> None:
        if self.backend.in_transaction:
            raise TransactionError("Nested transactions are not supported")
        await self.backend.begin()
        logger.debug("Transaction started")

    async def commit_transaction(self, message: Union[str, Sequence[str]]) -> None:
        """Commit the open transaction.

        ``message`` may be a list of lines, joined as a multi-line message.
        """
        if not isinstance(message, str):
            message = "\n".join(message)
        await self.backend.commit(message)
        if is_debug_enabled(logger):
            logger.debug(
                "Transaction committed",
                extra=extra_context(event="transaction", component="store", action="commit", outcome="success"),
            )

    async def discard_transaction(self) -> None:
        if not self.backend.in_transaction:
            logger.debug("No open transaction to discard")
            return
        await self.backend.discard()
        logger.debug("Transaction discarded")

    # ---------- schema / config ----------

    async def get_schema_version(self) -> str:
        return await self.backend.get_schema_version()

    async def _record(self, key: Optional[str]) -> Dict[str, Any]:
        if not key:
            return {}
        return await self.backend.read_record(key) or {}

    async def get_config(self, descriptor: Optional[DescriptorLike] = None) -> Dict[str, Any]:
        """Merged configuration, most specific level winning."""
        merged = await self.backend.read_config()
        if descriptor is None:
            return merged
        d = coerce_descriptor(descriptor)
        levels = [d.app_key, d.platform_key, str(d) if d.is_complete else None]
        for key in levels:
            merged.update((await self._record(key)).get("config", {}))
        return merged

    async def get_config_for_key(self, key: str, descriptor: Optional[DescriptorLike] = None) -> Any:
        return (await self.get_config(descriptor)).get(key)

    async def set_config_for_key(self, key: str, value: Any, descriptor: Optional[DescriptorLike] = None) -> None:
        if descriptor is None:
            config = await self.backend.read_config()
            config[key] = value
            await self.backend.write_config(config)
            return
        d = coerce_descriptor(descriptor)
        record_key = str(d) if d.is_complete else (d.platform_key or d.app_key)
        record = await self._record(record_key)
        record.setdefault("config", {})[key] = value
        await self.backend.write_record(record_key, record)

    # ---------- descriptors ----------

    async def is_descriptor_in_store(self, descriptor: DescriptorLike) -> bool:
        return await self.get_descriptor(descriptor) is not None

    async def get_descriptor(self, descriptor: DescriptorLike) -> Optional[Dict[str, Any]]:
        """Record of an application, platform or version; None if absent."""
        d = coerce_descriptor(descriptor)
        return await self.backend.read_record(str(d) if d.is_complete else (d.platform_key or d.app_key))

    async def get_all_native_apps(self) -> List[AppVersionDescriptor]:
        """Complete descriptors of every recorded native application version."""
        result = []
        for key in await self.backend.keys():
            if key.startswith(YARN_LOCK_KEY_PREFIX):
                continue
            d = AppVersionDescriptor.from_string(key)
            if d.is_complete:
                result.append(d)
        return sorted(result, key=str)

    async def add_descriptor(
        self,
        descriptor: DescriptorLike,
        is_released: bool = False,
        binary: Optional[str] = None,
    ) -> None:
        d = coerce_descriptor(descriptor)
        _require_complete(d)
        if await self.backend.read_record(d.app_key) is None:
            await self.backend.write_record(d.app_key, {"config": {}})
        if await self.backend.read_record(d.platform_key) is None:
            await self.backend.write_record(d.platform_key, {"config": {}, "containerVersion": None})
        if await self.backend.read_record(str(d)) is None:
            await self.backend.write_record(
                str(d),
                {
                    "isReleased": is_released,
                    "binary": binary,
                    "config": {},
                    "containerVersion": None,
                    "container": _empty_container(),
                    "yarnLocks": {},
                },
            )

    async def _version_record(self, descriptor: DescriptorLike) -> Dict[str, Any]:
        d = coerce_descriptor(descriptor)
        _require_complete(d)
        record = await self.backend.read_record(str(d))
        if record is None:
            raise DescriptorError(f"{d} descriptor does not exist in Cauldron")
        record.setdefault("container", _empty_container())
        record.setdefault("yarnLocks", {})
        return record

    async def is_released(self, descriptor: DescriptorLike) -> bool:
        return bool((await self._version_record(descriptor)).get("isReleased"))

    async def get_binary(self, descriptor: DescriptorLike) -> Optional[str]:
        return (await self._version_record(descriptor)).get("binary")

    # ---------- container versions ----------

    async def get_container_version(self, descriptor: DescriptorLike) -> Optional[str]:
        return (await self._version_record(descriptor)).get("containerVersion")

    async def get_top_level_container_version(self, descriptor: DescriptorLike) -> Optional[str]:
        d = coerce_descriptor(descriptor)
        if not d.platform_key:
            raise DescriptorError(f"{d} does not specify a platform")
        return (await self._record(d.platform_key)).get("containerVersion")

    async def update_container_version(self, descriptor: DescriptorLike, version: str) -> None:
        """Record the container version, also at the top level unless detached."""
        d = coerce_descriptor(descriptor)
        record = await self._version_record(d)
        record["containerVersion"] = version
        await self.backend.write_record(str(d), record)
        detached = await self.get_config_for_key(ConfigKeys.DETACH_CONTAINER_VERSION_FROM_ROOT, d)
        if not detached:
            platform_record = await self._record(d.platform_key)
            platform_record["containerVersion"] = version
            await self.backend.write_record(d.platform_key, platform_record)

    async def update_container_tool_version(self, descriptor: DescriptorLike, tool_version: str) -> None:
        d = coerce_descriptor(descriptor)
        record = await self._version_record(d)
        record["container"]["toolVersion"] = tool_version
        await self.backend.write_record(str(d), record)

    async def get_container_tool_version(self, descriptor: DescriptorLike) -> Optional[str]:
        return (await self._version_record(descriptor))["container"].get("toolVersion")

    # ---------- container content ----------

    async def _container_paths(self, descriptor: DescriptorLike, field: str) -> List[PackagePath]:
        record = await self._version_record(descriptor)
        return [PackagePath.from_string(p) for p in record["container"].get(field, [])]

    async def _find_in_container(
        self, descriptor: DescriptorLike, field: str, base_path: str
    ) -> Optional[PackagePath]:
        for p in await self._container_paths(descriptor, field):
            if p.base_path == base_path:
                return p
        return None

    async def _sync_container_paths(
        self, descriptor: DescriptorLike, field: str, paths: Sequence[PackagePath]
    ) -> None:
        d = coerce_descriptor(descriptor)
        record = await self._version_record(d)
        record["container"][field] = _upsert_paths(record["container"].get(field, []), paths)
        await self.backend.write_record(str(d), record)

    async def _remove_from_container(self, descriptor: DescriptorLike, field: str, base_path: str) -> None:
        d = coerce_descriptor(descriptor)
        record = await self._version_record(d)
        record["container"][field] = [
            p for p in record["container"].get(field, [])
            if PackagePath.from_string(p).base_path != base_path
        ]
        await self.backend.write_record(str(d), record)

    async def get_container_miniapps(self, descriptor: DescriptorLike) -> List[PackagePath]:
        return await self._container_paths(descriptor, "miniApps")

    async def get_container_miniapp(self, descriptor: DescriptorLike, base_path: str) -> Optional[PackagePath]:
        return await self._find_in_container(descriptor, "miniApps", base_path)

    async def is_miniapp_in_container(self, descriptor: DescriptorLike, base_path: str) -> bool:
        return await self.get_container_miniapp(descriptor, base_path) is not None

    async def sync_container_miniapps(self, descriptor: DescriptorLike, miniapps: Sequence[PackagePath]) -> None:
        await self._sync_container_paths(descriptor, "miniApps", miniapps)

    async def remove_container_miniapp(self, descriptor: DescriptorLike, base_path: str) -> None:
        await self._remove_from_container(descriptor, "miniApps", base_path)

    async def get_container_js_api_impls(self, descriptor: DescriptorLike) -> List[PackagePath]:
        return await self._container_paths(descriptor, "jsApiImpls")

    async def sync_container_js_api_impls(self, descriptor: DescriptorLike, impls: Sequence[PackagePath]) -> None:
        await self._sync_container_paths(descriptor, "jsApiImpls", impls)

    async def get_native_dependencies(self, descriptor: DescriptorLike) -> List[PackagePath]:
        return await self._container_paths(descriptor, "nativeDeps")

    async def get_container_native_dependency(
        self, descriptor: DescriptorLike, base_path: str
    ) -> Optional[PackagePath]:
        return await self._find_in_container(descriptor, "nativeDeps", base_path)

    async def is_native_dependency_in_container(self, descriptor: DescriptorLike, base_path: str) -> bool:
        return await self.get_container_native_dependency(descriptor, base_path) is not None

    async def sync_container_native_dependencies(
        self, descriptor: DescriptorLike, dependencies: Sequence[PackagePath]
    ) -> None:
        await self._sync_container_paths(descriptor, "nativeDeps", dependencies)

    async def remove_container_native_dependency(self, descriptor: DescriptorLike, base_path: str) -> None:
        await self._remove_from_container(descriptor, "nativeDeps", base_path)

    async def set_native_dependencies_in_container(
        self, descriptor: DescriptorLike, dependencies: Sequence[PackagePath]
    ) -> None:
        """Replace the recorded native dependency set of the container."""
        d = coerce_descriptor(descriptor)
        record = await self._version_record(d)
        record["container"]["nativeDeps"] = [str(p) for p in dependencies]
        await self.backend.write_record(str(d), record)

    # ---------- lock files ----------

    async def add_or_update_yarn_lock(self, descriptor: DescriptorLike, key: str, path_to_lock: str) -> str:
        """Store the lock file content and reference it from the version record.

        Returns:
            The blob key of the stored lock file.
        """
        d = coerce_descriptor(descriptor)
        with open(path_to_lock, "r", encoding="utf-8") as f:
            content = f.read()
        record = await self._version_record(d)
        previous = record["yarnLocks"].get(key)
        blob_key = f"{YARN_LOCK_KEY_PREFIX}{uuid.uuid4().hex}"
        await self.backend.write_record(blob_key, {"content": content, "source": os.path.basename(path_to_lock)})
        record["yarnLocks"][key] = blob_key
        await self.backend.write_record(str(d), record)
        if previous:
            await self.backend.delete_record(previous)
        return blob_key

    async def get_yarn_lock(self, descriptor: DescriptorLike, key: str) -> Optional[str]:
        blob_key = (await self._version_record(descriptor))["yarnLocks"].get(key)
        if not blob_key:
            return None
        blob = await self.backend.read_record(blob_key)
        return blob.get("content") if blob else None

    # ---------- side channel / generator config ----------

    async def get_source_map_store_config(self) -> Optional[Dict[str, Any]]:
        return (await self.backend.read_config()).get(ConfigKeys.SOURCEMAP_STORE)

    async def get_crash_report_config(self, descriptor: DescriptorLike) -> Optional[Dict[str, Any]]:
        return await self.get_config_for_key(ConfigKeys.BUGSNAG, descriptor)

    async def get_composite_generator_config(self, descriptor: DescriptorLike) -> Dict[str, Any]:
        """Composite generator config with ``baseComposite`` parsed to a PackagePath."""
        config = dict(await self.get_config_for_key(ConfigKeys.COMPOSITE_GENERATOR, descriptor) or {})
        base = config.get("baseComposite")
        if base:
            config["baseComposite"] = PackagePath.from_string(base)
        return config
