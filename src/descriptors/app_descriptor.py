"""Native application version descriptor (``name[:platform[:version]]``)."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Union


@dataclass(frozen=True)
class AppVersionDescriptor:
    """Identifier of an (application, platform, version) triple.

    A descriptor missing the platform and/or version is partial; partial
    descriptors are only used for lookups, never for mutations.
    """

    name: str
    platform: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def from_string(cls, s: str) -> "AppVersionDescriptor":
        """Parse a colon-delimited descriptor string.

        Never raises: empty segments become None and extra segments are
        folded into the version.
        """
        parts = (s or "").strip().split(":", 2)
        name = parts[0]
        platform = parts[1] if len(parts) > 1 and parts[1] else None
        version = parts[2] if len(parts) > 2 and parts[2] else None
        return cls(name=name, platform=platform, version=version)

    @property
    def is_partial(self) -> bool:
        return not (self.name and self.platform and self.version)

    @property
    def is_complete(self) -> bool:
        return not self.is_partial

    @property
    def app_key(self) -> str:
        return self.name

    @property
    def platform_key(self) -> Optional[str]:
        """``name:platform`` key, or None without a platform."""
        if not self.platform:
            return None
        return f"{self.name}:{self.platform}"

    def with_version(self, version: str) -> "AppVersionDescriptor":
        return replace(self, version=version)

    def without_version(self) -> "AppVersionDescriptor":
        return replace(self, version=None)

    def __str__(self) -> str:
        fields = [self.name]
        if self.platform:
            fields.append(self.platform)
            if self.version:
                fields.append(self.version)
        elif self.version:
            # Version without platform is not representable; keep the slot
            fields.extend(["", self.version])
        return ":".join(fields)


DescriptorLike = Union[str, AppVersionDescriptor]


def coerce_descriptor(d: DescriptorLike) -> AppVersionDescriptor:
    """Accept either a descriptor or its string form."""
    if isinstance(d, AppVersionDescriptor):
        return d
    return AppVersionDescriptor.from_string(d)


def coerce_descriptor_list(
    items: Union[DescriptorLike, Iterable[DescriptorLike]]
) -> List[AppVersionDescriptor]:
    if isinstance(items, (str, AppVersionDescriptor)):
        return [coerce_descriptor(items)]
    return [coerce_descriptor(d) for d in items]
