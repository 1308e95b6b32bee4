"""cauldron-sync - client of the container metadata store (Cauldron).

    Returns:
        int: Exit code
"""
import asyncio
import logging
import os
import sys

import yaml

from args import parse_args
from cli_config import ClientConfig
from common.errors import (
    CauldronError,
    DescriptorError,
    ManifestReadError,
    SchemaMismatchError,
    StoreConnectionError,
    ValidationFailedError,
    VersionFormatError,
)
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from compatibility.report import check_compatibility_with_native_app
from constants import Constants, ExitCodes
from descriptors.app_descriptor import AppVersionDescriptor
from descriptors.package_path import coerce_package_path_list
from orchestrator import ensure
from store.connection import StoreConnectionManager
from store.container_version import compute_container_version
from store.file_backend import FileStoreBackend

logger = logging.getLogger(__name__)


def _setup_logging(args):
    """Configure logging based on CLI arguments."""
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def exit_code_for(error):
    """Map a CauldronError to the process exit code."""
    if isinstance(error, StoreConnectionError):
        return ExitCodes.CONNECTION_ERROR
    if isinstance(error, SchemaMismatchError):
        return ExitCodes.SCHEMA_MISMATCH
    if isinstance(error, (ValidationFailedError, DescriptorError, VersionFormatError)):
        return ExitCodes.VALIDATION_ERROR
    if isinstance(error, ManifestReadError):
        return ExitCodes.FILE_ERROR
    return ExitCodes.FAILURE


def run_use(connection, args):
    connection.use(args.KEY)
    connection.config.save()
    logger.info("%s Cauldron is now activated", args.KEY)
    return ExitCodes.SUCCESS


async def run_check_schema(connection, _args):
    helper = await connection.get_active_helper()
    schema_version = await helper.get_schema_version()
    logger.info("Cauldron %s schema version %s is supported", connection.active_key, schema_version)
    return ExitCodes.SUCCESS


async def run_compat(connection, args):
    descriptor = AppVersionDescriptor.from_string(args.DESCRIPTOR)
    ensure.raise_if_failed([ensure.no_file_system_path(args.DEPENDENCIES)])
    local_deps = coerce_package_path_list(args.DEPENDENCIES)
    helper = await connection.get_active_helper()
    if descriptor.is_complete:
        ensure.raise_if_failed([await ensure.descriptor_exists_in_store(helper, descriptor)])
    result = await check_compatibility_with_native_app(
        helper, local_deps, descriptor.name, descriptor.platform, descriptor.version
    )
    if result is not None and not result.is_compatible:
        return ExitCodes.FAILURE
    return ExitCodes.SUCCESS


async def run_next_version(connection, args):
    descriptor = AppVersionDescriptor.from_string(args.DESCRIPTOR)
    checks = [ensure.is_complete_descriptor(descriptor)]
    if args.CONTAINER_VERSION:
        checks.append(ensure.is_valid_container_version(args.CONTAINER_VERSION))
    ensure.raise_if_failed(checks)
    helper = await connection.get_active_helper()
    ensure.raise_if_failed([await ensure.descriptor_exists_in_store(helper, descriptor)])
    print(await compute_container_version(helper, descriptor, args.CONTAINER_VERSION))
    return ExitCodes.SUCCESS


async def run_history(connection, args):
    helper = await connection.get_active_helper()
    if not isinstance(helper.backend, FileStoreBackend):
        logger.error("History is only available for file backed Cauldrons")
        return ExitCodes.FAILURE
    entries = helper.backend.history()
    if args.LIMIT:
        entries = entries[-args.LIMIT:]
    for entry in entries:
        lines = (entry.get("message") or "").splitlines()
        summary = lines[0] if lines else ""
        print(f"{entry.get('revision')}\t{entry.get('timestamp')}\t{summary}")
    return ExitCodes.SUCCESS


_ASYNC_COMMANDS = {
    "check-schema": run_check_schema,
    "compat": run_compat,
    "next-version": run_next_version,
    "history": run_history,
}


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )

    try:
        connection = StoreConnectionManager(ClientConfig.from_args(args))
        if args.COMMAND == "use":
            code = run_use(connection, args)
        else:
            code = asyncio.run(_ASYNC_COMMANDS[args.COMMAND](connection, args))
    except ValidationFailedError as e:
        for message in e.messages:
            logger.error(message)
        code = exit_code_for(e)
    except CauldronError as e:
        logger.error(str(e))
        code = exit_code_for(e)
    except yaml.YAMLError as e:
        logger.error("Cannot parse configuration file: %s", e)
        code = ExitCodes.FILE_ERROR
    except OSError as e:
        logger.error("File access failed: %s", e)
        code = ExitCodes.FILE_ERROR

    sys.exit(code.value)


if __name__ == "__main__":
    main()
