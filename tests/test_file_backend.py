"""Tests for the JSON file store backend."""

import asyncio
import json

import pytest

from common.errors import StoreConnectionError, TransactionError
from store.file_backend import FileStoreBackend


def _document(store_dir):
    return json.loads((store_dir / "cauldron.json").read_text())


class TestLoading:
    """Opening a store directory."""

    def test_missing_store_raises(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path / "nothing"))
        with pytest.raises(StoreConnectionError):
            asyncio.run(backend.keys())

    def test_create_if_missing(self, tmp_path):
        store_dir = tmp_path / "store"
        backend = FileStoreBackend(str(store_dir), create_if_missing=True, schema_version="1.2.0")
        assert asyncio.run(backend.get_schema_version()) == "1.2.0"
        doc = _document(store_dir)
        assert doc["records"] == {}
        assert doc["revision"] == 1

    def test_malformed_document_raises(self, tmp_path):
        (tmp_path / "cauldron.json").write_text("{not json")
        with pytest.raises(StoreConnectionError):
            asyncio.run(FileStoreBackend(str(tmp_path)).keys())

    def test_non_object_document_raises(self, tmp_path):
        (tmp_path / "cauldron.json").write_text("[]")
        with pytest.raises(StoreConnectionError):
            asyncio.run(FileStoreBackend(str(tmp_path)).keys())


class TestWrites:
    """Writes outside and inside transactions."""

    def test_write_outside_transaction_commits(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)
        asyncio.run(backend.write_record("myapp", {"config": {}}))
        assert _document(tmp_path)["records"]["myapp"] == {"config": {}}
        assert backend.history()[-1]["message"] == "Update myapp"

    def test_reads_are_copies(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)

        async def _run():
            await backend.write_record("myapp", {"config": {"a": 1}})
            record = await backend.read_record("myapp")
            record["config"]["a"] = 2
            return await backend.read_record("myapp")

        assert asyncio.run(_run()) == {"config": {"a": 1}}

    def test_transaction_is_invisible_on_disk_until_commit(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)

        async def _run():
            await backend.begin()
            await backend.write_record("myapp", {"config": {}})
            on_disk = _document(tmp_path)["records"]
            visible = await backend.read_record("myapp")
            await backend.commit("Add myapp")
            return on_disk, visible

        on_disk, visible = asyncio.run(_run())
        assert on_disk == {}
        assert visible == {"config": {}}
        assert _document(tmp_path)["records"] == {"myapp": {"config": {}}}
        assert backend.history()[-1]["message"] == "Add myapp"

    def test_discard_drops_changes(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)

        async def _run():
            await backend.write_record("myapp", {"config": {}})
            before = (tmp_path / "cauldron.json").read_bytes()
            await backend.begin()
            await backend.write_record("myapp", {"config": {"x": 1}})
            await backend.delete_record("myapp")
            await backend.discard()
            return before, await backend.read_record("myapp")

        before, record = asyncio.run(_run())
        assert (tmp_path / "cauldron.json").read_bytes() == before
        assert record == {"config": {}}
        assert not backend.in_transaction

    def test_nested_begin_raises(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)

        async def _run():
            await backend.begin()
            await backend.begin()

        with pytest.raises(TransactionError):
            asyncio.run(_run())

    def test_commit_without_transaction_raises(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)
        with pytest.raises(TransactionError):
            asyncio.run(backend.commit("nothing"))

    def test_history_records_revisions_and_branch(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), branch="production", create_if_missing=True)
        asyncio.run(backend.write_config({"sourcemapStore": {"url": "http://localhost"}}))
        history = backend.history()
        assert [e["revision"] for e in history] == [1, 2]
        assert {e["branch"] for e in history} == {"production"}
        assert _document(tmp_path)["config"] == {"sourcemapStore": {"url": "http://localhost"}}


class TestFailedCommits:
    """A commit that cannot complete leaves the store untouched."""

    def _break_history(self, store_dir):
        history = store_dir / "history.jsonl"
        history.unlink()
        history.mkdir()

    def test_history_failure_keeps_document(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)
        asyncio.run(backend.write_record("myapp", {"config": {}}))
        before = (tmp_path / "cauldron.json").read_bytes()
        self._break_history(tmp_path)

        async def _run():
            await backend.begin()
            await backend.write_record("myapp", {"config": {"x": 1}})
            with pytest.raises(OSError):
                await backend.commit("Update myapp")
            await backend.discard()
            return await backend.read_record("myapp")

        assert asyncio.run(_run()) == {"config": {}}
        assert (tmp_path / "cauldron.json").read_bytes() == before
        assert not list(tmp_path.glob("*.tmp"))

    def test_history_failure_outside_transaction(self, tmp_path):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)
        asyncio.run(backend.write_record("myapp", {"config": {}}))
        before = (tmp_path / "cauldron.json").read_bytes()
        self._break_history(tmp_path)

        async def _run():
            with pytest.raises(OSError):
                await backend.delete_record("myapp")
            return await backend.read_record("myapp"), await backend.keys()

        record, keys = asyncio.run(_run())
        assert record == {"config": {}}
        assert keys == ["myapp"]
        assert (tmp_path / "cauldron.json").read_bytes() == before

    def test_document_swap_failure_rolls_back_history(self, tmp_path, monkeypatch):
        backend = FileStoreBackend(str(tmp_path), create_if_missing=True)
        asyncio.run(backend.write_record("myapp", {"config": {}}))
        before = (tmp_path / "cauldron.json").read_bytes()
        history_before = (tmp_path / "history.jsonl").read_bytes()

        def _fail(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("store.file_backend.os.replace", _fail)

        async def _run():
            await backend.begin()
            await backend.write_record("other", {"config": {}})
            with pytest.raises(OSError, match="disk full"):
                await backend.commit("Add other")

        asyncio.run(_run())
        assert (tmp_path / "cauldron.json").read_bytes() == before
        assert (tmp_path / "history.jsonl").read_bytes() == history_before
        assert [e["revision"] for e in backend.history()] == [1, 2]
