"""Best-effort side channel uploads performed after container generation.

Source maps go to an optional source map store server, and to Bugsnag for
crash reporting when configured. Callers treat failures as non fatal.
"""

from __future__ import annotations

import asyncio
import glob
import logging
import os
from typing import Any, Callable, Iterable, List, Optional, Sequence

import aiohttp

from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import Constants
from descriptors.app_descriptor import AppVersionDescriptor

logger = logging.getLogger(__name__)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


async def _read_bytes_async(path: str) -> bytes:
    return await asyncio.to_thread(_read_bytes, path)


def miniapp_source_globs(miniapp_names: Iterable[str]) -> List[str]:
    """Globs matching the JS/TS sources of each MiniApp under a ``node_modules`` root."""
    return [f"**/{name}/**/*.{ext}" for name in miniapp_names for ext in ("js", "ts")]


def collect_sources(project_root: str, patterns: Sequence[str]) -> List[str]:
    """Files under ``project_root`` matching any of ``patterns``, as sorted relative paths."""
    found = set()
    for pattern in patterns:
        for path in glob.glob(os.path.join(project_root, pattern), recursive=True):
            if os.path.isfile(path):
                found.add(os.path.relpath(path, project_root))
    return sorted(found)


class SideChannelUploader:
    """aiohttp based uploader for source maps."""

    def __init__(
        self,
        timeout: int = Constants.REQUEST_TIMEOUT,
        session_factory: Optional[Callable[..., Any]] = None,
        bugsnag_url: str = Constants.BUGSNAG_UPLOAD_URL,
    ):
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session_factory = session_factory or aiohttp.ClientSession
        self._bugsnag_url = bugsnag_url

    async def _post(self, url: str, form: aiohttp.FormData, context: str) -> int:
        with Timer() as t:
            async with self._session_factory(timeout=self._timeout) as session:
                async with session.post(url, data=form) as response:
                    response.raise_for_status()
                    status = response.status
        if is_debug_enabled(logger):
            logger.debug(
                "Upload done",
                extra=extra_context(
                    event="http_response",
                    component="uploads",
                    action="POST",
                    outcome="success",
                    target=safe_url(url),
                    duration_ms=t.duration_ms(),
                    status_code=status,
                    context=context,
                ),
            )
        return status

    async def upload_source_map(
        self,
        store_url: str,
        descriptor: AppVersionDescriptor,
        container_version: str,
        source_map_path: str,
    ) -> int:
        """Upload a container source map to the source map store."""
        url = f"{store_url.rstrip('/')}/sourcemaps/{descriptor}/{container_version}"
        form = aiohttp.FormData()
        form.add_field(
            "sourcemap",
            await _read_bytes_async(source_map_path),
            filename=os.path.basename(source_map_path),
            content_type="application/json",
        )
        logger.info("Uploading source map to source map store [%s]", safe_url(store_url))
        return await self._post(url, form, "sourcemap_store")

    async def upload_crash_report_source_map(
        self,
        api_key: str,
        bundle_path: str,
        source_map_path: str,
        project_root: str,
        app_version: Optional[str] = None,
        upload_sources: bool = False,
        upload_sources_globs: Sequence[str] = (),
    ) -> int:
        """Upload a bundle and its source map to Bugsnag.

        With ``upload_sources`` (Hermes bundles), the original sources matching
        ``upload_sources_globs`` under ``project_root`` are attached as well,
        one form field per file keyed by its path relative to ``project_root``.
        """
        form = aiohttp.FormData()
        form.add_field("apiKey", api_key)
        form.add_field("overwrite", "true")
        form.add_field("projectRoot", project_root)
        form.add_field("minifiedUrl", os.path.basename(bundle_path))
        if app_version:
            form.add_field("appVersion", app_version)
        form.add_field(
            "sourceMap",
            await _read_bytes_async(source_map_path),
            filename=os.path.basename(source_map_path),
            content_type="application/json",
        )
        form.add_field(
            "bundle",
            await _read_bytes_async(bundle_path),
            filename=os.path.basename(bundle_path),
            content_type="application/javascript",
        )
        if upload_sources:
            sources = collect_sources(project_root, upload_sources_globs)
            for rel_path in sources:
                form.add_field(
                    rel_path,
                    await _read_bytes_async(os.path.join(project_root, rel_path)),
                    filename=os.path.basename(rel_path),
                    content_type="application/javascript",
                )
            logger.debug("Attaching %d source files to the Bugsnag upload", len(sources))
        logger.info("Uploading source map to Bugsnag")
        return await self._post(self._bugsnag_url, form, "bugsnag")
