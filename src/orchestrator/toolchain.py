"""Interfaces of the external build toolchain used during a container sync.

Composite generation (JS workspace assembly), container code generation and
the transformer/publisher pipeline live outside this package; the
orchestrator only talks to them through ``ContainerToolchain``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from descriptors.app_descriptor import AppVersionDescriptor
from descriptors.package_path import PackagePath


@dataclass
class Composite:
    """A generated JS composite (all MiniApps of a container in one workspace)."""
    path: str
    miniapps: List[PackagePath] = field(default_factory=list)
    # platform -> native dependencies that must be injected in the container
    native_dependencies: Dict[str, List[PackagePath]] = field(default_factory=dict)
    yarn_lock_path: Optional[str] = None

    def injectable_native_dependencies(self, platform: str) -> List[PackagePath]:
        return list(self.native_dependencies.get(platform, []))


@dataclass
class BundlingResult:
    bundle_path: str
    source_map_path: Optional[str] = None
    is_hermes_bundle: bool = False


@dataclass
class ContainerGenResult:
    bundling_result: BundlingResult


class ContainerToolchain(ABC):
    """Composite/container generation and post-generation pipeline."""

    @abstractmethod
    async def generate_composite(
        self,
        descriptor: AppVersionDescriptor,
        base_composite: Optional[PackagePath],
        out_dir: str,
    ) -> Composite:
        """Generate the composite of the container recorded for ``descriptor``."""

    @abstractmethod
    async def generate_container(
        self,
        descriptor: AppVersionDescriptor,
        composite: Composite,
        out_dir: str,
        reset_cache: bool = False,
        source_map_output: Optional[str] = None,
    ) -> ContainerGenResult:
        """Generate the native container in ``out_dir``."""

    @abstractmethod
    async def run_pipeline(
        self,
        container_path: str,
        container_version: str,
        descriptor: AppVersionDescriptor,
    ) -> None:
        """Run the configured transformers and publishers on the container."""
