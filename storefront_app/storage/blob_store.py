"""
Key-value blob store used for every persisted record.

The services only depend on the `BlobStore` protocol: string keys, string or
JSON values, prefix listing. No transactions; the last write wins.

Two adapters:
  * MemoryBlobStore: process-local dict, for tests and throwaway dev runs.
  * SqliteBlobStore: durable, one row per (namespace, key) via aiosqlite.
"""

import asyncio
import json
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Protocol

import aiosqlite

from storefront_app.errors import DependencyError
from storefront_app.utils.logger import get_logger

_logger = get_logger(__name__)


class BlobStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def get_json(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def set_json(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def list(self, prefix: str = "") -> List[Dict[str, str]]: ...


def _decode(key: str, raw: Optional[str]) -> Optional[Any]:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DependencyError(f"Stored value for '{key}' is not valid JSON") from exc


class MemoryBlobStore:
    """Non-durable store; state lives only as long as this object."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def get_json(self, key: str) -> Optional[Any]:
        return _decode(key, self._data.get(key))

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def set_json(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list(self, prefix: str = "") -> List[Dict[str, str]]:
        return [{"key": k} for k in sorted(self._data) if k.startswith(prefix)]


class SqliteBlobStore:
    """Durable store backed by a single SQLite table, namespaced per store name."""

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS blobs (
            namespace TEXT NOT NULL,
            key       TEXT NOT NULL,
            value     TEXT NOT NULL,
            PRIMARY KEY (namespace, key)
        );
    """

    def __init__(self, path: str, namespace: str = "storefront"):
        self.path = path
        self.namespace = namespace
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def _init_db(self, conn: aiosqlite.Connection) -> None:
        _logger.info(f"Initializing blob table in {self.path}...")
        await conn.executescript(self._SCHEMA)
        await conn.commit()

    @asynccontextmanager
    async def _connect(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            conn = await aiosqlite.connect(self.path)
        except Exception as exc:
            raise DependencyError("Could not open the blob store") from exc

        try:
            if not self._initialized:
                async with self._init_lock:
                    if not self._initialized:
                        await self._init_db(conn)
                        self._initialized = True
            yield conn
        except aiosqlite.Error as exc:
            _logger.error(f"Blob store operation failed: {exc}")
            raise DependencyError("Blob store operation failed") from exc
        finally:
            await conn.close()

    async def get(self, key: str) -> Optional[str]:
        async with self._connect() as conn:
            cur = await conn.execute(
                "SELECT value FROM blobs WHERE namespace = ? AND key = ?;",
                (self.namespace, key),
            )
            row = await cur.fetchone()
            await cur.close()
            return row[0] if row else None

    async def get_json(self, key: str) -> Optional[Any]:
        return _decode(key, await self.get(key))

    async def set(self, key: str, value: str) -> None:
        async with self._connect() as conn:
            await conn.execute(
                """
                INSERT INTO blobs(namespace, key, value) VALUES (?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE SET value = excluded.value;
                """,
                (self.namespace, key, value),
            )
            await conn.commit()

    async def set_json(self, key: str, value: Any) -> None:
        await self.set(key, json.dumps(value))

    async def delete(self, key: str) -> None:
        async with self._connect() as conn:
            await conn.execute(
                "DELETE FROM blobs WHERE namespace = ? AND key = ?;",
                (self.namespace, key),
            )
            await conn.commit()

    async def list(self, prefix: str = "") -> List[Dict[str, str]]:
        async with self._connect() as conn:
            cur = await conn.execute(
                "SELECT key FROM blobs WHERE namespace = ? AND substr(key, 1, ?) = ? ORDER BY key;",
                (self.namespace, len(prefix), prefix),
            )
            rows = await cur.fetchall()
            await cur.close()
            return [{"key": row[0]} for row in rows]
