"""Container sync orchestration, validation checks and container operations."""

from .container_ops import (
    add_dependencies,
    add_miniapps,
    remove_dependencies,
    remove_miniapps,
    update_miniapps,
)
from .sync import sync_container
from .toolchain import BundlingResult, Composite, ContainerGenResult, ContainerToolchain
from .uploads import SideChannelUploader

__all__ = [
    "sync_container",
    "add_miniapps",
    "update_miniapps",
    "remove_miniapps",
    "add_dependencies",
    "remove_dependencies",
    "Composite",
    "BundlingResult",
    "ContainerGenResult",
    "ContainerToolchain",
    "SideChannelUploader",
]
