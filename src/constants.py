"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1
    CONNECTION_ERROR = 2
    FILE_ERROR = 3
    SCHEMA_MISMATCH = 4
    VALIDATION_ERROR = 5


class NativePlatforms(Enum):
    """Native platforms a container can be generated for.

    Args:
        Enum (string): Platform names as used in descriptors.
    """

    ANDROID = "android"
    IOS = "ios"


class ConfigKeys:  # pylint: disable=too-few-public-methods
    """Configuration keys read from the client configuration or the store."""

    ACTIVE_CAULDRON = "activeCauldron"
    CAULDRON_REPOSITORIES = "cauldronRepositories"
    IGNORE_REQUIRED_TOOL_VERSION = "ignore-required-tool-version"
    CONTAINER_OUT_DIR = "containerOutDir"
    DETACH_CONTAINER_VERSION_FROM_ROOT = "detachContainerVersionFromRoot"
    REQUIRED_TOOL_VERSION = "requiredToolVersion"
    SOURCEMAP_STORE = "sourcemapStore"
    BUGSNAG = "bugsnag"
    COMPOSITE_GENERATOR = "compositeGenerator"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # Version of this tool, recorded against every generated container
    TOOL_VERSION = "0.9.0"
    # Store schema version understood by this client
    SCHEMA_VERSION = "1.0.0"

    DEFAULT_CONTAINER_VERSION = "1.0.0"
    DEFAULT_BRANCH = "master"
    CONTAINER_YARN_KEY = "container"
    MISSING_VERSION = "MISSING"

    BRIDGING_SUFFIXES = ("-api", "-api-impl")
    BRIDGING_MODULES = ("react-native-electrode-bridge",)

    PACKAGE_JSON_FILE = "package.json"
    STORE_DOCUMENT_FILE = "cauldron.json"
    STORE_HISTORY_FILE = "history.jsonl"
    CLIENT_CONFIG_FILE = ".cauldronrc.yaml"
    HOME_DIR_NAME = ".cauldron"

    ENV_HOME = "CAULDRON_HOME"
    ENV_ACTIVE = "CAULDRON_ACTIVE"
    ENV_LOG_LEVEL = "CAULDRON_LOG_LEVEL"
    ENV_IGNORE_REQUIRED_TOOL_VERSION = "CAULDRON_IGNORE_REQUIRED_TOOL_VERSION"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP uploads
    BUGSNAG_UPLOAD_URL = "https://upload.bugsnag.com/react-native-source-map"
