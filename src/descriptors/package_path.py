"""Dependency references: registry, git and file-system package paths.

A package path string is parsed once, by ``PackagePath.from_string``, into a
tagged source variant (registry, git or file). The ``is_*_path`` flags are
derived from that variant rather than re-matched on the raw string.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from .manifest import read_package_json

GITHUB_SSH_PATH_RE = re.compile(r"^git@[^:]+:[^/]+/.+\.git(#.+)?$")
GIT_SSH_PATH_VERSION_RE = re.compile(r"^(git\+ssh://.+)#(.+)$")
GIT_HTTPS_PATH_VERSION_RE = re.compile(r"^(https://.+)#(.+)$")
GIT_SSH_PATH_RE = re.compile(r"^git\+ssh://.+$")
GIT_HTTPS_PATH_RE = re.compile(r"^https://.+$")
FILE_PATH_WITH_PREFIX_RE = re.compile(r"^file:(.+)$")
FILE_PATH_POSIX_RE = re.compile(r"^(/.+)$")
FILE_PATH_WINDOWS_RE = re.compile(r"^([a-zA-Z]:\\.*)$")
FILE_PATH_TILDE_RE = re.compile(r"^(~/.+)$")
REGISTRY_PATH_VERSION_RE = re.compile(r"^(.+)@(.+)$")


@dataclass(frozen=True)
class RegistrySource:
    name: str
    version: Optional[str] = None


@dataclass(frozen=True)
class GitSource:
    url: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class FileSource:
    path: str


PackageSource = Union[RegistrySource, GitSource, FileSource]


@dataclass(frozen=True)
class PackagePath:
    """Immutable reference to a distributable module.

    ``base_path`` never carries a version or branch suffix:
    - registry: package name (including scope)
    - git: repository URL without ``#ref``
    - file: absolute directory path (home expanded, no ``file:`` prefix)
    """

    full_path: str
    base_path: str
    source: PackageSource = field(compare=False)
    name: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def from_string(cls, path: str) -> "PackagePath":
        """Parse a package path string.

        Raises:
            ManifestReadError: for file paths whose directory has no readable
                package.json.
        """
        path = path.strip()

        # SCM-over-SSH shorthand (git@github.com:org/repo.git)
        if GITHUB_SSH_PATH_RE.match(path):
            path = "git+ssh://" + path.replace(":", "/", 1)

        m = GIT_SSH_PATH_VERSION_RE.match(path) or GIT_HTTPS_PATH_VERSION_RE.match(path)
        if m:
            return cls(
                full_path=path,
                base_path=m.group(1),
                source=GitSource(url=m.group(1), ref=m.group(2)),
                version=m.group(2),
            )
        if GIT_SSH_PATH_RE.match(path) or GIT_HTTPS_PATH_RE.match(path):
            return cls(full_path=path, base_path=path, source=GitSource(url=path))

        file_path = _match_file_path(path)
        if file_path is not None:
            pjson = read_package_json(file_path)
            return cls(
                full_path=path,
                base_path=file_path,
                source=FileSource(path=file_path),
                name=pjson.get("name"),
                version=pjson.get("version"),
            )

        m = REGISTRY_PATH_VERSION_RE.match(path)
        if m:
            return cls(
                full_path=path,
                base_path=m.group(1),
                source=RegistrySource(name=m.group(1), version=m.group(2)),
                name=m.group(1),
                version=m.group(2),
            )
        return cls(
            full_path=path,
            base_path=path,
            source=RegistrySource(name=path),
            name=path,
        )

    @property
    def is_git_path(self) -> bool:
        return isinstance(self.source, GitSource)

    @property
    def is_file_path(self) -> bool:
        return isinstance(self.source, FileSource)

    @property
    def is_registry_path(self) -> bool:
        return isinstance(self.source, RegistrySource)

    def same(self, other: "PackagePath", ignore_version: bool = False) -> bool:
        """Compare base paths and, unless ignored, versions."""
        return self.base_path == other.base_path and (
            ignore_version or self.version == other.version
        )

    def __str__(self) -> str:
        return self.full_path


def _match_file_path(path: str) -> Optional[str]:
    """Return the directory designated by a file path string, if it is one."""
    m = FILE_PATH_WITH_PREFIX_RE.match(path)
    if m:
        return os.path.expanduser(m.group(1))
    m = FILE_PATH_POSIX_RE.match(path) or FILE_PATH_WINDOWS_RE.match(path)
    if m:
        return m.group(1)
    m = FILE_PATH_TILDE_RE.match(path)
    if m:
        return os.path.expanduser(m.group(1))
    return None


def looks_like_file_path(path: str) -> bool:
    """Classify a path string as a file path without reading its manifest."""
    return _match_file_path(path.strip()) is not None


PackagePathLike = Union[str, PackagePath]


def coerce_package_path(p: PackagePathLike) -> PackagePath:
    if isinstance(p, PackagePath):
        return p
    return PackagePath.from_string(p)


def coerce_package_path_list(
    items: Union[PackagePathLike, Iterable[PackagePathLike], None]
) -> List[PackagePath]:
    """Accept a single path, a list of paths or None (empty list)."""
    if items is None:
        return []
    if isinstance(items, (str, PackagePath)):
        return [coerce_package_path(items)]
    return [coerce_package_path(p) for p in items]
