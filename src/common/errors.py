"""Error taxonomy shared by the store, resolver and orchestrator layers."""

from __future__ import annotations

from typing import List, Optional


class CauldronError(Exception):
    """Base class for all errors raised by this package."""


class StoreConnectionError(CauldronError):
    """No active store, or the store could not be opened."""


class SchemaMismatchError(CauldronError):
    """Store schema or required tool version does not match this client.

    ``remediation`` names the concrete fix (upgrade the client or the store).
    """

    def __init__(self, message: str, remediation: Optional[str] = None):
        super().__init__(message if not remediation else f"{message}\n{remediation}")
        self.remediation = remediation


class ManifestReadError(CauldronError):
    """A file-path dependency has no readable package manifest."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read package manifest in {path}: {reason}")
        self.path = path


class VersionFormatError(CauldronError):
    """A prior container version cannot be auto incremented."""


class TransactionError(CauldronError):
    """Misuse of the begin/commit/discard protocol."""


class DescriptorError(CauldronError, ValueError):
    """A descriptor is missing a field required by the operation."""


class ValidationFailedError(CauldronError):
    """One or more validation checks failed."""

    def __init__(self, messages: List[str]):
        super().__init__("\n".join(messages))
        self.messages = list(messages)
