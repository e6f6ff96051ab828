"""Persistent store contract.

The persistent store is the durability boundary: it owns the three record
collections and the schema version marker. It stores plain JSON-compatible
documents and knows nothing about record semantics.
"""

from __future__ import annotations

import abc
from collections.abc import Mapping, Sequence
from enum import StrEnum
from types import TracebackType
from typing import Any, Self

from gsetrack._constants import KEY_PREFIX

Document = dict[str, Any]


class Collection(StrEnum):
    EQUIPMENT = "equipment"
    FAULTS = "faults"
    HANDOVERS = "handovers"

    @property
    def key(self) -> str:
        """Stable storage key (e.g. ``gsetrack.equipment``)."""
        return f"{KEY_PREFIX}.{self.value}"


class PersistentStore(abc.ABC):
    """Async durable store for record collections and the version marker.

    Writes are atomic from the caller's perspective: after a failed write
    every collection reads exactly as before. A completed write is visible
    to every following read in the same process.
    """

    @abc.abstractmethod
    async def get(self, collection: Collection) -> list[Document]:
        """All documents of *collection* in stored order (empty when never written)."""

    @abc.abstractmethod
    async def put_many(self, batch: Mapping[Collection, Sequence[Document]]) -> None:
        """Replace every collection in *batch* in one atomic write.

        Raises :class:`~gsetrack.exceptions.StoreError` on failure.
        """

    async def put_all(self, collection: Collection, documents: Sequence[Document]) -> None:
        """Replace *collection* atomically."""
        await self.put_many({collection: documents})

    @abc.abstractmethod
    async def get_version_marker(self) -> str | None:
        """Schema version the collections were seeded with, ``None`` before first seed."""

    @abc.abstractmethod
    async def set_version_marker(self, value: str) -> None:
        """Record the seeded schema version. Raises :class:`StoreError` on failure."""

    async def open(self) -> None:  # noqa: B027
        """Acquire engine resources. Optional for adapters without any."""

    async def close(self) -> None:  # noqa: B027
        """Release engine resources."""

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
