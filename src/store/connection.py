"""Store connection management.

``StoreConnectionManager`` replaces a process-wide singleton: it is created
once (usually by the CLI) and passed to every operation. It keeps the helper
for the connected store and rebuilds it only when the active store key
changes.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Callable, Optional

from cli_config import ClientConfig
from common.errors import StoreConnectionError
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import ConfigKeys, Constants

from .backend import StoreBackend
from .file_backend import FileStoreBackend
from .helper import StoreHelper
from .schema_gate import check_required_tool_version, check_schema_version

logger = logging.getLogger(__name__)

_BRANCH_RE = re.compile(r"#(.+)$")


@dataclass(frozen=True)
class StoreLocation:
    """Where a store lives: local path, optional remote and branch."""
    path: str
    repository: Optional[str]
    branch: str


BackendFactory = Callable[[StoreLocation], StoreBackend]


def default_backend_factory(location: StoreLocation) -> StoreBackend:
    return FileStoreBackend(location.path, branch=location.branch)


def resolve_location(url: str, local_repo_path: Optional[str], home: str, key: str) -> StoreLocation:
    """Split a store URL into path, remote and branch (``url#branch``).

    Absolute paths are used in place; remote URLs map to a local working
    directory under ``local_repo_path`` or ``<home>/cauldron/<key>``.
    """
    m = _BRANCH_RE.search(url)
    branch = m.group(1) if m else Constants.DEFAULT_BRANCH
    url_without_branch = _BRANCH_RE.sub("", url)
    if os.path.isabs(url_without_branch):
        return StoreLocation(path=url_without_branch, repository=None, branch=branch)
    path = local_repo_path or os.path.join(home, "cauldron", key)
    return StoreLocation(path=path, repository=url_without_branch, branch=branch)


class StoreConnectionManager:
    """Owns at most one store connection at a time."""

    def __init__(self, config: ClientConfig, backend_factory: Optional[BackendFactory] = None):
        self.config = config
        self._backend_factory = backend_factory or default_backend_factory
        self.connected_key: Optional[str] = None
        self.helper: Optional[StoreHelper] = None

    @property
    def active_key(self) -> Optional[str]:
        return self.config.active_key

    def use(self, key: str) -> None:
        """Make ``key`` the active store; the next access reconnects."""
        if key not in self.config.repositories:
            raise StoreConnectionError(f"No Cauldron repository named {key}")
        self.config.set_active_key(key)

    def reset(self) -> None:
        self.connected_key = None
        self.helper = None

    async def get_active_helper(
        self,
        ignore_schema_version_mismatch: bool = False,
        ignore_required_tool_version_mismatch: bool = False,
        local_repo_path: Optional[str] = None,
        throw_if_no_active: bool = True,
    ) -> Optional[StoreHelper]:
        """Return the helper for the active store, connecting if needed.

        Raises:
            StoreConnectionError: no active store, unknown key, unreadable store.
            SchemaMismatchError: schema or required tool version mismatch.
        """
        key = self.active_key
        if not key:
            if throw_if_no_active:
                raise StoreConnectionError("No active Cauldron")
            return None
        if key == self.connected_key and self.helper is not None:
            return self.helper

        url = self.config.repositories.get(key)
        if not url:
            raise StoreConnectionError(f"No repository URL configured for Cauldron {key}")
        location = resolve_location(url, local_repo_path, self.config.home, key)
        logger.info("Connecting to the Cauldron %s", key)

        with Timer() as t:
            helper = StoreHelper(self._backend_factory(location))
            if not ignore_schema_version_mismatch:
                check_schema_version(await helper.get_schema_version(), self.config.schema_version)
            ignore_required = (
                ignore_required_tool_version_mismatch or self.config.ignore_required_tool_version
            )
            if not ignore_required:
                required = await helper.get_config_for_key(ConfigKeys.REQUIRED_TOOL_VERSION)
                check_required_tool_version(self.config.tool_version, required)

        self.helper = helper
        self.connected_key = key
        if is_debug_enabled(logger):
            logger.debug(
                "Connected to Cauldron",
                extra=extra_context(
                    event="store_connect",
                    component="connection",
                    action="connect",
                    outcome="success",
                    store=key,
                    target=safe_url(location.repository) if location.repository else location.path,
                    branch=location.branch,
                    duration_ms=t.duration_ms(),
                ),
            )
        return helper
