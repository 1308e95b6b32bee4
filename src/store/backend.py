"""Backing store interface.

A backend is a durable, versioned record store addressed by string keys
(descriptor strings for application records). Every call may suspend on I/O,
hence the async API. Transactions are begin / commit(message) / discard;
writes made outside a transaction are committed immediately.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class StoreBackend(ABC):
    """Abstract durable record store."""

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        """True between begin() and commit()/discard()."""

    @abstractmethod
    async def get_schema_version(self) -> str:
        """Schema version recorded in the store."""

    @abstractmethod
    async def read_config(self) -> Dict[str, Any]:
        """Top-level store configuration."""

    @abstractmethod
    async def write_config(self, config: Dict[str, Any]) -> None:
        """Replace the top-level store configuration."""

    @abstractmethod
    async def read_record(self, key: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the record stored under ``key``, or None."""

    @abstractmethod
    async def write_record(self, key: str, record: Dict[str, Any]) -> None:
        """Store ``record`` under ``key``."""

    @abstractmethod
    async def delete_record(self, key: str) -> None:
        """Remove the record stored under ``key`` if present."""

    @abstractmethod
    async def keys(self) -> List[str]:
        """All record keys."""

    @abstractmethod
    async def begin(self) -> None:
        """Open a transaction."""

    @abstractmethod
    async def commit(self, message: str) -> None:
        """Make the open transaction durable with ``message``."""

    @abstractmethod
    async def discard(self) -> None:
        """Drop every change made since begin()."""
