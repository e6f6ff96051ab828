"""Process-local persistent store adapter.

Survives only as long as the object does; used for tests and throwaway
sessions. Documents are deep-copied on the way in and out so callers never
alias stored data.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping, Sequence

from gsetrack._constants import VERSION_MARKER_KEY
from gsetrack.exceptions import StoreError
from gsetrack.storage.base import Collection, Document, PersistentStore


class MemoryStore(PersistentStore):
    """Dict-backed :class:`PersistentStore`."""

    def __init__(self) -> None:
        self._data: dict[str, list[Document]] = {}
        self._meta: dict[str, str] = {}

    async def get(self, collection: Collection) -> list[Document]:
        return copy.deepcopy(self._data.get(collection.key, []))

    async def put_many(self, batch: Mapping[Collection, Sequence[Document]]) -> None:
        staged: dict[str, list[Document]] = {}
        for collection, documents in batch.items():
            try:
                # Same serializability guarantee as the durable adapters.
                json.dumps(list(documents))
            except (TypeError, ValueError) as exc:
                raise StoreError(
                    f"Cannot serialize {collection.value}: {exc}",
                    operation="put_many",
                    collection=collection.value,
                ) from exc
            staged[collection.key] = copy.deepcopy(list(documents))
        self._data.update(staged)

    async def get_version_marker(self) -> str | None:
        return self._meta.get(VERSION_MARKER_KEY)

    async def set_version_marker(self, value: str) -> None:
        self._meta[VERSION_MARKER_KEY] = value
