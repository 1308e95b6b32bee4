"""Shared fixtures: a seeded file store, a connection to it and a fake toolchain."""

import asyncio
import os

import pytest

from cli_config import ClientConfig
from descriptors.package_path import PackagePath
from orchestrator.toolchain import (
    BundlingResult,
    Composite,
    ContainerGenResult,
    ContainerToolchain,
)
from store.connection import StoreConnectionManager
from store.file_backend import FileStoreBackend
from store.helper import StoreHelper

DESCRIPTOR = "myapp:android:1.0.0"


class FakeToolchain(ContainerToolchain):
    """Echoes the recorded native dependencies back as the composite's."""

    def __init__(self, connection, fail_on=None, extra_native_dependencies=None, yarn_lock=None, hermes=False):
        self.connection = connection
        self.fail_on = fail_on
        self.extra_native_dependencies = extra_native_dependencies or []
        self.yarn_lock = yarn_lock
        self.hermes = hermes
        self.calls = []

    def _maybe_fail(self, step):
        self.calls.append(step)
        if self.fail_on == step:
            raise RuntimeError(f"{step} failed")

    async def generate_composite(self, descriptor, base_composite, out_dir):
        self._maybe_fail("generate_composite")
        deps = await self.connection.helper.get_native_dependencies(descriptor)
        deps = deps + [PackagePath.from_string(d) for d in self.extra_native_dependencies]
        yarn_lock_path = None
        if self.yarn_lock is not None:
            yarn_lock_path = os.path.join(out_dir, "yarn.lock")
            with open(yarn_lock_path, "w", encoding="utf-8") as f:
                f.write(self.yarn_lock)
        return Composite(
            path=out_dir,
            miniapps=await self.connection.helper.get_container_miniapps(descriptor),
            native_dependencies={descriptor.platform: deps},
            yarn_lock_path=yarn_lock_path,
        )

    async def generate_container(self, descriptor, composite, out_dir, reset_cache=False, source_map_output=None):
        self._maybe_fail("generate_container")
        os.makedirs(out_dir, exist_ok=True)
        bundle = os.path.join(out_dir, "index.android.bundle")
        with open(bundle, "w", encoding="utf-8") as f:
            f.write("bundle")
        with open(source_map_output, "w", encoding="utf-8") as f:
            f.write("{}")
        return ContainerGenResult(
            BundlingResult(bundle_path=bundle, source_map_path=source_map_output, is_hermes_bundle=self.hermes)
        )

    async def run_pipeline(self, container_path, container_version, descriptor):
        self._maybe_fail("run_pipeline")


def seed_store(store_dir, descriptors=(DESCRIPTOR,), config=None, miniapps=None, native_deps=None,
               top_level_version=None, schema_version=None):
    """Create a file store with the given native application versions."""

    async def _seed():
        kwargs = {"create_if_missing": True}
        if schema_version:
            kwargs["schema_version"] = schema_version
        helper = StoreHelper(FileStoreBackend(str(store_dir), **kwargs))
        for d in descriptors:
            await helper.add_descriptor(d)
            if miniapps:
                await helper.sync_container_miniapps(d, [PackagePath.from_string(m) for m in miniapps])
            if native_deps:
                await helper.sync_container_native_dependencies(
                    d, [PackagePath.from_string(n) for n in native_deps]
                )
            if top_level_version:
                await helper.update_container_version(d, top_level_version)
        for key, value in (config or {}).items():
            await helper.set_config_for_key(key, value)
        return helper

    return asyncio.run(_seed())


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "cauldron"


@pytest.fixture
def client_config(tmp_path, store_dir):
    return ClientConfig(
        active_key="default",
        repositories={"default": str(store_dir)},
        home=str(tmp_path / "home"),
        container_out_dir=str(tmp_path / "out"),
        config_path=str(tmp_path / ".cauldronrc.yaml"),
    )


@pytest.fixture
def connection(client_config):
    return StoreConnectionManager(client_config)


@pytest.fixture
def toolchain(connection):
    return FakeToolchain(connection)
