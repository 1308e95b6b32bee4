"""Value types identifying native application versions and dependencies."""

from .app_descriptor import AppVersionDescriptor, coerce_descriptor, coerce_descriptor_list
from .package_path import (
    FileSource,
    GitSource,
    PackagePath,
    RegistrySource,
    coerce_package_path,
    coerce_package_path_list,
    looks_like_file_path,
)

__all__ = [
    "AppVersionDescriptor",
    "coerce_descriptor",
    "coerce_descriptor_list",
    "PackagePath",
    "RegistrySource",
    "GitSource",
    "FileSource",
    "coerce_package_path",
    "coerce_package_path_list",
    "looks_like_file_path",
]
