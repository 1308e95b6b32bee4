"""Tests for dependency reference parsing."""

import json
import os

import pytest

from common.errors import ManifestReadError
from descriptors.package_path import (
    FileSource,
    GitSource,
    PackagePath,
    RegistrySource,
    coerce_package_path_list,
    looks_like_file_path,
)


class TestRegistryPaths:
    """name[@version] references."""

    @pytest.mark.parametrize("name", ["react-native", "@scope/pkg", "foo-api"])
    def test_versioned(self, name):
        p = PackagePath.from_string(f"{name}@1.2.3")
        assert p.base_path == name
        assert p.name == name
        assert p.version == "1.2.3"
        assert p.is_registry_path
        assert not p.is_git_path
        assert not p.is_file_path
        assert p.source == RegistrySource(name=name, version="1.2.3")

    def test_unversioned(self):
        p = PackagePath.from_string("react-native")
        assert p.base_path == "react-native"
        assert p.version is None
        assert p.is_registry_path

    def test_scoped_without_version(self):
        p = PackagePath.from_string("@scope/pkg")
        assert p.base_path == "@scope/pkg"
        assert p.version is None

    def test_str_is_full_path(self):
        assert str(PackagePath.from_string("foo@1.0.0")) == "foo@1.0.0"


class TestGitPaths:
    """git+ssh, https and SCM shorthand references."""

    def test_ssh_with_branch(self):
        p = PackagePath.from_string("git+ssh://host/org/repo#branch")
        assert p.base_path == "git+ssh://host/org/repo"
        assert p.version == "branch"
        assert p.is_git_path
        assert p.source == GitSource(url="git+ssh://host/org/repo", ref="branch")

    def test_https_with_ref(self):
        p = PackagePath.from_string("https://github.com/org/repo.git#v1.0.0")
        assert p.base_path == "https://github.com/org/repo.git"
        assert p.version == "v1.0.0"
        assert p.is_git_path

    def test_without_ref(self):
        p = PackagePath.from_string("git+ssh://host/org/repo")
        assert p.base_path == "git+ssh://host/org/repo"
        assert p.version is None
        assert p.is_git_path

    def test_scm_shorthand_is_rewritten(self):
        p = PackagePath.from_string("git@github.com:org/repo.git#main")
        assert p.base_path == "git+ssh://git@github.com/org/repo.git"
        assert p.version == "main"
        assert p.is_git_path


class TestFilePaths:
    """Directory references, resolved through the package manifest."""

    def _module(self, tmp_path, name="my-miniapp", version="0.1.0"):
        module = tmp_path / "module"
        module.mkdir()
        (module / "package.json").write_text(json.dumps({"name": name, "version": version}))
        return module

    def test_absolute_path_reads_manifest(self, tmp_path):
        module = self._module(tmp_path)
        p = PackagePath.from_string(str(module))
        assert p.is_file_path
        assert p.base_path == str(module)
        assert p.name == "my-miniapp"
        assert p.version == "0.1.0"
        assert p.source == FileSource(path=str(module))

    def test_file_prefix_is_stripped(self, tmp_path):
        module = self._module(tmp_path)
        p = PackagePath.from_string(f"file:{module}")
        assert p.base_path == str(module)
        assert p.full_path == f"file:{module}"

    def test_tilde_is_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        self._module(tmp_path)
        p = PackagePath.from_string("~/module")
        assert p.base_path == os.path.join(str(tmp_path), "module")

    def test_missing_manifest_raises(self, tmp_path):
        with pytest.raises(ManifestReadError):
            PackagePath.from_string(str(tmp_path))

    def test_invalid_manifest_raises(self, tmp_path):
        (tmp_path / "package.json").write_text("[1, 2]")
        with pytest.raises(ManifestReadError):
            PackagePath.from_string(str(tmp_path))

    @pytest.mark.parametrize("s,expected", [
        ("/opt/miniapp", True),
        ("file:../miniapp", True),
        ("~/miniapp", True),
        ("C:\\miniapp", True),
        ("miniapp@1.0.0", False),
        ("git+ssh://host/org/repo", False),
    ])
    def test_looks_like_file_path_does_not_read_manifest(self, s, expected):
        assert looks_like_file_path(s) is expected


class TestComparison:
    """Identity of references."""

    def test_same_ignoring_version(self):
        a = PackagePath.from_string("foo@1.0.0")
        b = PackagePath.from_string("foo@2.0.0")
        assert a.same(b, ignore_version=True)
        assert not a.same(b)

    def test_equality(self):
        assert PackagePath.from_string("foo@1.0.0") == PackagePath.from_string("foo@1.0.0")

    def test_coerce_list(self):
        assert coerce_package_path_list(None) == []
        assert coerce_package_path_list("foo@1.0.0") == [PackagePath.from_string("foo@1.0.0")]
        assert len(coerce_package_path_list(["a@1.0.0", PackagePath.from_string("b")])) == 2
