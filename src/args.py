"""Argument parsing functionality for cauldron-sync."""

import argparse

from constants import Constants


def _add_common_options(parser):
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to the client configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--cauldron",
                        dest="CAULDRON",
                        help="Cauldron to use instead of the active one",
                        action="store",
                        type=str)
    parser.add_argument("--ignore-required-tool-version",
                        dest="IGNORE_REQUIRED_TOOL_VERSION",
                        help="Do not enforce the tool version required by the Cauldron",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="cauldron-sync",
        description=(
            "cauldron-sync - Container metadata store client "
            f"(tool {Constants.TOOL_VERSION}, schema {Constants.SCHEMA_VERSION})"
        ),
        add_help=True,
    )
    _add_common_options(parser)

    subparsers = parser.add_subparsers(dest="COMMAND", metavar="command")
    subparsers.required = True

    use = subparsers.add_parser("use", help="Set the active Cauldron")
    use.add_argument("KEY", help="Alias of a configured Cauldron repository", type=str)

    subparsers.add_parser("check-schema",
                          help="Connect to the active Cauldron and check its schema and required tool version")

    compat = subparsers.add_parser("compat",
                                   help="Check native dependencies against native application versions")
    compat.add_argument("-d", "--descriptor",
                        dest="DESCRIPTOR",
                        help="Native application descriptor (app[:platform[:version]])",
                        action="store",
                        type=str,
                        required=True)
    compat.add_argument("DEPENDENCIES",
                        help="Local native dependencies (name@version)",
                        nargs="+",
                        type=str)

    next_version = subparsers.add_parser("next-version",
                                         help="Show the container version the next sync would produce")
    next_version.add_argument("DESCRIPTOR",
                              help="Complete native application descriptor (app:platform:version)",
                              type=str)
    next_version.add_argument("--container-version",
                              dest="CONTAINER_VERSION",
                              help="Explicit container version",
                              action="store",
                              type=str)

    history = subparsers.add_parser("history", help="Show the Cauldron commit history")
    history.add_argument("-n", "--limit",
                         dest="LIMIT",
                         help="Number of entries to show (default: all)",
                         action="store",
                         type=int)

    return parser.parse_args(argv)
