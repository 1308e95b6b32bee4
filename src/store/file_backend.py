"""Local file-system backend.

The whole store is a single JSON document (``cauldron.json``) in the store
directory. Every commit rewrites the document atomically and appends one line
to ``history.jsonl``, which acts as the append-only log of the store.

File I/O runs inline on the event loop: the document is a small local file
owned by a single operator process.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from common.errors import StoreConnectionError, TransactionError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants

from .backend import StoreBackend

logger = logging.getLogger(__name__)


def _empty_document(schema_version: str) -> Dict[str, Any]:
    return {"schemaVersion": schema_version, "revision": 0, "config": {}, "records": {}}


class FileStoreBackend(StoreBackend):
    """JSON document store with snapshot based transactions."""

    def __init__(
        self,
        store_dir: str,
        branch: str = Constants.DEFAULT_BRANCH,
        create_if_missing: bool = False,
        schema_version: str = Constants.SCHEMA_VERSION,
    ):
        self.store_dir = store_dir
        self.branch = branch
        self.document_path = os.path.join(store_dir, Constants.STORE_DOCUMENT_FILE)
        self.history_path = os.path.join(store_dir, Constants.STORE_HISTORY_FILE)
        self._create_if_missing = create_if_missing
        self._schema_version = schema_version
        self._committed: Optional[Dict[str, Any]] = None
        self._working: Optional[Dict[str, Any]] = None

    @property
    def in_transaction(self) -> bool:
        return self._working is not None

    # ---------- document access ----------

    def _load(self) -> Dict[str, Any]:
        if self._committed is not None:
            return self._committed
        if not os.path.isfile(self.document_path):
            if not self._create_if_missing:
                raise StoreConnectionError(f"No store document found at {self.document_path}")
            os.makedirs(self.store_dir, exist_ok=True)
            self._committed = self._persist(_empty_document(self._schema_version), "Create store")
            return self._committed
        try:
            with open(self.document_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreConnectionError(f"Cannot read store document {self.document_path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreConnectionError(f"Malformed store document {self.document_path}")
        data.setdefault("config", {})
        data.setdefault("records", {})
        data.setdefault("revision", 0)
        self._committed = data
        return data

    def _current(self) -> Dict[str, Any]:
        return self._working if self._working is not None else self._load()

    def _append_history(self, entry: Dict[str, Any]) -> int:
        """Append one log line and return the log size before the append."""
        size = os.path.getsize(self.history_path) if os.path.isfile(self.history_path) else 0
        with open(self.history_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
        return size

    def _truncate_history(self, size: int) -> None:
        try:
            with open(self.history_path, "r+b") as f:
                f.truncate(size)
        except OSError as e:
            logger.error("Cannot roll back store history %s: %s", self.history_path, e)

    def _persist(self, document: Dict[str, Any], message: str) -> Dict[str, Any]:
        """Write ``document`` as the next revision and return the written copy.

        The log entry is appended before the document swap. If the swap fails
        the log is truncated back, so a failure on either step leaves both
        files as they were.
        """
        document = dict(document, revision=int(document.get("revision", 0)) + 1)
        entry = {
            "revision": document["revision"],
            "branch": self.branch,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        with Timer() as t:
            fd, tmp_path = tempfile.mkstemp(dir=self.store_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, sort_keys=True)
                history_size = self._append_history(entry)
                try:
                    os.replace(tmp_path, self.document_path)
                except BaseException:
                    self._truncate_history(history_size)
                    raise
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        if is_debug_enabled(logger):
            logger.debug(
                "Store committed",
                extra=extra_context(
                    event="store_commit",
                    component="file_backend",
                    action="commit",
                    outcome="success",
                    store=self.store_dir,
                    duration_ms=t.duration_ms(),
                    revision=document["revision"],
                ),
            )
        return document

    def _apply(self, change: Callable[[Dict[str, Any]], bool], message: str) -> None:
        """Apply ``change`` to the working snapshot, or commit it on its own.

        Outside a transaction the change runs on a copy of the committed
        document, which replaces it only once persisted.
        """
        if self._working is not None:
            change(self._working)
            return
        document = copy.deepcopy(self._load())
        if change(document):
            self._committed = self._persist(document, message)

    # ---------- StoreBackend ----------

    async def get_schema_version(self) -> str:
        return str(self._current().get("schemaVersion", "0.0.0"))

    async def read_config(self) -> Dict[str, Any]:
        return copy.deepcopy(self._current().get("config", {}))

    async def write_config(self, config: Dict[str, Any]) -> None:
        def _change(document):
            document["config"] = copy.deepcopy(config)
            return True

        self._apply(_change, "Update store config")

    async def read_record(self, key: str) -> Optional[Dict[str, Any]]:
        record = self._current()["records"].get(key)
        return copy.deepcopy(record) if record is not None else None

    async def write_record(self, key: str, record: Dict[str, Any]) -> None:
        def _change(document):
            document["records"][key] = copy.deepcopy(record)
            return True

        self._apply(_change, f"Update {key}")

    async def delete_record(self, key: str) -> None:
        def _change(document):
            return document["records"].pop(key, None) is not None

        self._apply(_change, f"Remove {key}")

    async def keys(self) -> List[str]:
        return list(self._current()["records"].keys())

    async def begin(self) -> None:
        if self._working is not None:
            raise TransactionError("A transaction is already open on this store")
        self._working = copy.deepcopy(self._load())

    async def commit(self, message: str) -> None:
        if self._working is None:
            raise TransactionError("No open transaction to commit")
        self._committed = self._persist(self._working, message)
        self._working = None

    async def discard(self) -> None:
        self._working = None

    def history(self) -> List[Dict[str, Any]]:
        """Commit log entries, oldest first."""
        if not os.path.isfile(self.history_path):
            return []
        entries = []
        with open(self.history_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    entries.append(json.loads(line))
        return entries
