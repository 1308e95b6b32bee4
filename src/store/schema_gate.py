"""Compatibility checks between this client and a store.

Run once when a connection to a store is established, before any transaction.
"""

from __future__ import annotations

import logging
from typing import Optional

import semantic_version

from common.errors import SchemaMismatchError

logger = logging.getLogger(__name__)

_SWITCH_CLIENT_HINT = "Switch to a client version supporting this Cauldron using your tool version manager."


def _parse(version: str, what: str) -> semantic_version.Version:
    try:
        return semantic_version.Version.coerce(str(version))
    except ValueError as e:
        raise SchemaMismatchError(f"Invalid {what} '{version}'") from e


def check_schema_version(store_schema_version: str, client_schema_version: str) -> None:
    """Compare the store schema version against the one this client supports.

    Raises:
        SchemaMismatchError: store newer (upgrade the client) or older
            (upgrade the store) than the client.
    """
    store = _parse(store_schema_version, "store schema version")
    client = _parse(client_schema_version, "client schema version")
    if store == client:
        return
    if store > client:
        raise SchemaMismatchError(
            f"Cauldron schema version mismatch ({store_schema_version} > {client_schema_version}).",
            remediation=(
                "This Cauldron is too new for this client. "
                f"Upgrade the client to a version supporting schema {store_schema_version}. "
                + _SWITCH_CLIENT_HINT
            ),
        )
    raise SchemaMismatchError(
        f"Cauldron schema version mismatch ({store_schema_version} < {client_schema_version}).",
        remediation=(
            "This Cauldron needs an upgrade. Migrate it to the latest schema using the "
            "'cauldron upgrade' command, or use an older client supporting this schema version."
        ),
    )


def check_required_tool_version(tool_version: str, required_range: Optional[str]) -> None:
    """Check that the running tool satisfies the store's version requirement.

    ``required_range`` is an npm style range (``>=1.2.0 <2``, ``^1.4``...).
    No requirement means any version is accepted.

    Raises:
        SchemaMismatchError: the tool version is outside the required range.
    """
    if not required_range:
        return
    try:
        spec = semantic_version.NpmSpec(str(required_range))
    except ValueError as e:
        raise SchemaMismatchError(f"Invalid required tool version range '{required_range}' in Cauldron") from e
    version = _parse(tool_version, "tool version")
    if not spec.match(version):
        raise SchemaMismatchError(
            "This Cauldron requires a specific version of the tool to be used. "
            f"You are currently using version {tool_version} which does not satisfy "
            f"the requirement {required_range}.",
            remediation=(
                f"Use a tool version satisfying {required_range}, or use a different Cauldron. "
                + _SWITCH_CLIENT_HINT
            ),
        )
    logger.debug("Tool version %s satisfies %s", tool_version, required_range)
