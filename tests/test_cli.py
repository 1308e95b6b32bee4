"""Tests for the cauldron-sync command line."""

import pytest
import yaml

import cauldron_sync
from common.errors import (
    CauldronError,
    DescriptorError,
    ManifestReadError,
    SchemaMismatchError,
    StoreConnectionError,
    ValidationFailedError,
)
from conftest import DESCRIPTOR, seed_store
from constants import ExitCodes


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("CAULDRON_ACTIVE", "CAULDRON_IGNORE_REQUIRED_TOOL_VERSION"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_file(tmp_path, store_dir):
    path = tmp_path / "cauldronrc.yaml"
    path.write_text(yaml.safe_dump({
        "activeCauldron": "default",
        "cauldronRepositories": {"default": str(store_dir), "other": str(tmp_path / "other")},
    }))
    return str(path)


def _run(*argv):
    with pytest.raises(SystemExit) as exc:
        cauldron_sync.main(list(argv))
    return exc.value.code


class TestExitCodes:
    """Error to exit code mapping."""

    @pytest.mark.parametrize("error,code", [
        (StoreConnectionError("x"), ExitCodes.CONNECTION_ERROR),
        (SchemaMismatchError("x"), ExitCodes.SCHEMA_MISMATCH),
        (ValidationFailedError(["x"]), ExitCodes.VALIDATION_ERROR),
        (DescriptorError("x"), ExitCodes.VALIDATION_ERROR),
        (ManifestReadError("/x", "missing"), ExitCodes.FILE_ERROR),
        (CauldronError("x"), ExitCodes.FAILURE),
    ])
    def test_mapping(self, error, code):
        assert cauldron_sync.exit_code_for(error) is code


class TestCommands:
    """End to end runs against a file store."""

    def test_check_schema(self, config_file, store_dir):
        seed_store(store_dir)
        assert _run("--config", config_file, "check-schema") == 0

    def test_check_schema_mismatch(self, config_file, store_dir):
        seed_store(store_dir, schema_version="9.0.0")
        assert _run("--config", config_file, "check-schema") == ExitCodes.SCHEMA_MISMATCH.value

    def test_required_tool_version_flag(self, config_file, store_dir):
        seed_store(store_dir, config={"requiredToolVersion": ">=99.0.0"})
        assert _run("--config", config_file, "check-schema") == ExitCodes.SCHEMA_MISMATCH.value
        assert _run("--config", config_file, "--ignore-required-tool-version", "check-schema") == 0

    def test_missing_store(self, config_file):
        assert _run("--config", config_file, "check-schema") == ExitCodes.CONNECTION_ERROR.value

    def test_use(self, config_file, tmp_path):
        assert _run("--config", config_file, "use", "other") == 0
        with open(config_file, "r", encoding="utf-8") as f:
            assert yaml.safe_load(f)["activeCauldron"] == "other"

    def test_use_does_not_save_one_off_flags(self, config_file, store_dir):
        seed_store(store_dir, config={"requiredToolVersion": ">=99.0.0"})
        assert _run("--config", config_file, "--ignore-required-tool-version", "use", "default") == 0
        with open(config_file, "r", encoding="utf-8") as f:
            saved = yaml.safe_load(f)
        assert "ignoreRequiredToolVersion" not in saved
        assert _run("--config", config_file, "check-schema") == ExitCodes.SCHEMA_MISMATCH.value

    def test_use_does_not_save_environment_store(self, config_file, monkeypatch):
        monkeypatch.setenv("CAULDRON_ACTIVE", "other")
        monkeypatch.setenv("CAULDRON_IGNORE_REQUIRED_TOOL_VERSION", "true")
        assert _run("--config", config_file, "use", "default") == 0
        with open(config_file, "r", encoding="utf-8") as f:
            saved = yaml.safe_load(f)
        assert saved["activeCauldron"] == "default"
        assert "ignoreRequiredToolVersion" not in saved

    def test_use_unknown(self, config_file):
        assert _run("--config", config_file, "use", "nope") == ExitCodes.CONNECTION_ERROR.value

    def test_next_version(self, config_file, store_dir, capsys):
        seed_store(store_dir, top_level_version="2.3.1")
        assert _run("--config", config_file, "next-version", DESCRIPTOR) == 0
        assert capsys.readouterr().out.strip() == "2.3.2"

    def test_next_version_non_semver(self, config_file, store_dir):
        seed_store(store_dir, top_level_version="v1")
        assert _run("--config", config_file, "next-version", DESCRIPTOR) == ExitCodes.VALIDATION_ERROR.value

    def test_next_version_partial_descriptor(self, config_file, store_dir):
        seed_store(store_dir)
        assert _run("--config", config_file, "next-version", "myapp:android") == ExitCodes.VALIDATION_ERROR.value

    def test_compat(self, config_file, store_dir):
        seed_store(store_dir, native_deps=["react-native@0.72.0", "foo-api@1.1.0"])
        assert _run("--config", config_file, "compat", "-d", DESCRIPTOR,
                    "react-native@0.72.0", "foo-api@1.0.0") == 0
        assert _run("--config", config_file, "compat", "-d", DESCRIPTOR,
                    "react-native@0.73.0") == ExitCodes.FAILURE.value

    def test_compat_rejects_file_paths(self, config_file, store_dir):
        seed_store(store_dir)
        assert _run("--config", config_file, "compat", "-d", DESCRIPTOR,
                    "/some/dir") == ExitCodes.VALIDATION_ERROR.value

    def test_history(self, config_file, store_dir, capsys):
        seed_store(store_dir)
        assert _run("--config", config_file, "history", "-n", "1") == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert lines[0].split("\t")[2] == f"Update {DESCRIPTOR}"


class TestFileErrors:
    """Configuration and store file failures exit with a file error."""

    def test_malformed_config(self, tmp_path):
        path = tmp_path / "cauldronrc.yaml"
        path.write_text("cauldronRepositories: [unclosed\n")
        assert _run("--config", str(path), "check-schema") == ExitCodes.FILE_ERROR.value

    def test_config_save_failure(self, config_file, monkeypatch, caplog):
        def _fail(path, data):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr("cli_config.save_config_file", _fail)
        assert _run("--config", config_file, "use", "other") == ExitCodes.FILE_ERROR.value
        assert "Permission denied" in caplog.text

    def test_unreadable_history(self, config_file, store_dir, monkeypatch):
        seed_store(store_dir)

        def _fail(self):
            raise OSError("history unreadable")

        monkeypatch.setattr("store.file_backend.FileStoreBackend.history", _fail)
        assert _run("--config", config_file, "history") == ExitCodes.FILE_ERROR.value
