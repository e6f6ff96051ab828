"""Durable persistent store adapter on SQLite.

Each collection is stored as ordered JSON documents keyed by the
collection's namespaced key; the version marker lives in a separate
``meta`` key/value table of the same database so both share one
durability contract.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

import aiosqlite

from gsetrack._constants import VERSION_MARKER_KEY
from gsetrack.exceptions import StoreError
from gsetrack.storage.base import Collection, Document, PersistentStore

_logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS records (
        collection TEXT NOT NULL,
        position INTEGER NOT NULL,
        document TEXT NOT NULL,
        PRIMARY KEY (collection, position)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
)


class SqliteStore(PersistentStore):
    """:class:`PersistentStore` backed by an ``aiosqlite`` connection.

    Usage::

        async with SqliteStore(path) as store:
            marker = await store.get_version_marker()

    Parameters
    ----------
    path : Path
        Database file. Parent directories are created on open.
        ``":memory:"`` gives a non-durable database for tests.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = path
        self._db: aiosqlite.Connection | None = None

    @property
    def path(self) -> Path | str:
        return self._path

    async def open(self) -> None:
        if self._db is not None:
            return
        try:
            if isinstance(self._path, Path):
                self._path.parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(self._path)
        except (OSError, aiosqlite.Error) as exc:
            raise StoreError(f"Cannot open store at {self._path}: {exc}", operation="open") from exc
        try:
            await db.execute("PRAGMA journal_mode=WAL")
            for statement in _SCHEMA:
                await db.execute(statement)
            await db.commit()
        except aiosqlite.Error as exc:
            await db.close()
            raise StoreError(f"Cannot initialize store schema: {exc}", operation="open") from exc
        self._db = db
        _logger.debug("Opened SQLite store at %s", self._path)

    async def close(self) -> None:
        if self._db is None:
            return
        db, self._db = self._db, None
        await db.close()
        _logger.debug("Closed SQLite store at %s", self._path)

    def _conn(self, operation: str) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreError("Store is not open", operation=operation)
        return self._db

    async def get(self, collection: Collection) -> list[Document]:
        db = self._conn("get")
        try:
            async with db.execute(
                "SELECT document FROM records WHERE collection = ? ORDER BY position",
                (collection.key,),
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(
                f"Cannot read {collection.value}: {exc}", operation="get", collection=collection.value
            ) from exc
        try:
            return [json.loads(row[0]) for row in rows]
        except json.JSONDecodeError as exc:
            raise StoreError(
                f"Corrupt document in {collection.value}: {exc}", operation="get", collection=collection.value
            ) from exc

    async def put_many(self, batch: Mapping[Collection, Sequence[Document]]) -> None:
        db = self._conn("put_many")
        encoded: dict[Collection, list[tuple[str, int, str]]] = {}
        for collection, documents in batch.items():
            try:
                encoded[collection] = [
                    (collection.key, position, json.dumps(document, ensure_ascii=False))
                    for position, document in enumerate(documents)
                ]
            except (TypeError, ValueError) as exc:
                raise StoreError(
                    f"Cannot serialize {collection.value}: {exc}",
                    operation="put_many",
                    collection=collection.value,
                ) from exc

        current: Collection | None = None
        try:
            for collection, rows in encoded.items():
                current = collection
                await db.execute("DELETE FROM records WHERE collection = ?", (collection.key,))
                await db.executemany(
                    "INSERT INTO records (collection, position, document) VALUES (?, ?, ?)",
                    rows,
                )
            current = None
            await db.commit()
        except aiosqlite.Error as exc:
            await db.rollback()
            name = current.value if current is not None else ""
            raise StoreError(f"Write failed: {exc}", operation="put_many", collection=name) from exc
        _logger.debug("Committed %s", ", ".join(f"{c.value}={len(r)}" for c, r in encoded.items()))

    async def get_version_marker(self) -> str | None:
        db = self._conn("get_version_marker")
        try:
            async with db.execute("SELECT value FROM meta WHERE key = ?", (VERSION_MARKER_KEY,)) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(f"Cannot read version marker: {exc}", operation="get_version_marker") from exc
        return None if row is None else str(row[0])

    async def set_version_marker(self, value: str) -> None:
        db = self._conn("set_version_marker")
        try:
            await db.execute(
                "INSERT INTO meta (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (VERSION_MARKER_KEY, value),
            )
            await db.commit()
        except aiosqlite.Error as exc:
            await db.rollback()
            raise StoreError(f"Cannot write version marker: {exc}", operation="set_version_marker") from exc
