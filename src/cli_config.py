"""Client configuration: active store, store repositories and runtime flags.

Configuration is read from a YAML file (``~/.cauldronrc.yaml`` by default,
``--config`` to override). Environment variables take precedence over the
file, CLI arguments over both.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

import yaml

from constants import ConfigKeys, Constants

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def default_home() -> str:
    """Tool home directory (CAULDRON_HOME or ~/.cauldron)."""
    return os.environ.get(Constants.ENV_HOME) or os.path.join(
        os.path.expanduser("~"), Constants.HOME_DIR_NAME
    )


def default_config_path() -> str:
    return os.path.join(os.path.expanduser("~"), Constants.CLIENT_CONFIG_FILE)


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML configuration file.

    A missing file yields an empty configuration. A file that does not
    contain a mapping is ignored with a warning.
    """
    if not config_path or not os.path.isfile(config_path):
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not a mapping", config_path)
        return {}
    return data


def save_config_file(config_path: str, data: Dict[str, Any]) -> None:
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)


@dataclass
class ClientConfig:
    """Runtime configuration of the client.

    ``file_data`` keeps the mapping read from the configuration file and
    ``runtime_overrides`` names the fields set from the environment or the
    command line. Only file sourced values and explicit changes are saved.
    """

    active_key: Optional[str] = None
    repositories: Dict[str, str] = field(default_factory=dict)
    ignore_required_tool_version: bool = False
    tool_version: str = Constants.TOOL_VERSION
    schema_version: str = Constants.SCHEMA_VERSION
    home: str = field(default_factory=default_home)
    container_out_dir: Optional[str] = None
    config_path: Optional[str] = None
    file_data: Dict[str, Any] = field(default_factory=dict, repr=False)
    runtime_overrides: Set[str] = field(default_factory=set, repr=False)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], config_path: Optional[str] = None) -> "ClientConfig":
        config = cls(
            active_key=data.get(ConfigKeys.ACTIVE_CAULDRON),
            repositories=dict(data.get(ConfigKeys.CAULDRON_REPOSITORIES) or {}),
            ignore_required_tool_version=bool(data.get(ConfigKeys.IGNORE_REQUIRED_TOOL_VERSION, False)),
            container_out_dir=data.get(ConfigKeys.CONTAINER_OUT_DIR),
            config_path=config_path,
            file_data=dict(data),
        )
        if os.environ.get(Constants.ENV_ACTIVE):
            config.override("active_key", os.environ[Constants.ENV_ACTIVE])
        if _env_flag(Constants.ENV_IGNORE_REQUIRED_TOOL_VERSION):
            config.override("ignore_required_tool_version", True)
        return config

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "ClientConfig":
        path = config_path or default_config_path()
        return cls.from_mapping(load_config_file(path), config_path=path)

    @classmethod
    def from_args(cls, args: Any) -> "ClientConfig":
        """Load configuration and apply CLI overrides (highest precedence)."""
        config = cls.load(getattr(args, "CONFIG", None))
        if getattr(args, "CAULDRON", None):
            config.override("active_key", args.CAULDRON)
        if getattr(args, "IGNORE_REQUIRED_TOOL_VERSION", False):
            config.override("ignore_required_tool_version", True)
        return config

    def override(self, name: str, value: Any) -> None:
        """Set a field for this run only."""
        setattr(self, name, value)
        self.runtime_overrides.add(name)

    def set_active_key(self, key: str) -> None:
        """Change the active store; saved by the next ``save``."""
        self.active_key = key
        self.runtime_overrides.discard("active_key")

    def get_container_out_dir(self, platform: str) -> str:
        base = self.container_out_dir or os.path.join(self.home, "containergen", "out")
        return os.path.join(base, platform)

    def _persisted(self, name: str, key: str) -> Any:
        if name in self.runtime_overrides:
            return self.file_data.get(key)
        return getattr(self, name)

    def to_mapping(self) -> Dict[str, Any]:
        data = dict(self.file_data)
        data[ConfigKeys.CAULDRON_REPOSITORIES] = dict(self.repositories)
        for name, key in (
            ("active_key", ConfigKeys.ACTIVE_CAULDRON),
            ("ignore_required_tool_version", ConfigKeys.IGNORE_REQUIRED_TOOL_VERSION),
            ("container_out_dir", ConfigKeys.CONTAINER_OUT_DIR),
        ):
            value = self._persisted(name, key)
            if value:
                data[key] = value
            else:
                data.pop(key, None)
        return data

    def save(self) -> None:
        if not self.config_path:
            raise ValueError("No configuration file path to save to")
        data = self.to_mapping()
        save_config_file(self.config_path, data)
        self.file_data = data
