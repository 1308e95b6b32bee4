"""Reading of JS module manifests (package.json) for file-path dependencies."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict

from common.errors import ManifestReadError
from constants import Constants

logger = logging.getLogger(__name__)


def read_package_json(directory: str) -> Dict[str, Any]:
    """Load ``package.json`` from ``directory``.

    Raises:
        ManifestReadError: missing file, I/O failure or invalid JSON object.
    """
    path = os.path.join(directory, Constants.PACKAGE_JSON_FILE)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ManifestReadError(directory, "package.json not found") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestReadError(directory, str(e)) from e

    if not isinstance(data, dict):
        raise ManifestReadError(directory, "package.json is not a JSON object")
    logger.debug("Read manifest %s (%s@%s)", path, data.get("name"), data.get("version"))
    return data
