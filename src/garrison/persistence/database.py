"""Database access — aiosqlite-backed city records.

Each city is one row: identifying columns plus the JSON-encoded state and
a version counter. ``run_transaction`` gives optimistic, serializable
per-city transactions: it reads the row fresh, lets a synchronous
function mutate the decoded City, and writes it back only if the version
is still the one it read.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, TypeVar

import aiosqlite

from garrison.models.city import City
from garrison.persistence.city_codec import city_from_dict, city_to_dict
from garrison.util.errors import CityNotFound, TransactionConflict

log = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS cities (
    cid INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_uid INTEGER NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    state TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_cities_owner ON cities(owner_uid);
"""


class CityStore:
    """Async SQLite store for cities.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str = "garrison.db") -> None:
        self._db_path = db_path
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open the database connection and create tables if needed."""
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()
        log.info("Database connected: %s", self._db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    # -- City records ----------------------------------------------------

    async def create_city(self, city: City) -> int:
        """Insert a new city. Returns the new CID and updates ``city`` in place."""
        assert self._conn is not None
        async with self._write_lock:
            async with self._conn.execute(
                "INSERT INTO cities (owner_uid, name, state, version) VALUES (?, ?, ?, 1)",
                (city.owner_uid, city.name, json.dumps(city_to_dict(city))),
            ) as cursor:
                cid = cursor.lastrowid
            await self._conn.commit()
        city.cid = cid
        city.version = 1
        log.info("Created city %r (cid=%d, owner=%d)", city.name, cid, city.owner_uid)
        return cid

    async def get_city(self, cid: int) -> City | None:
        """Load a city by CID, or None."""
        try:
            return await self._read(cid)
        except CityNotFound:
            return None

    async def list_cities(self) -> list[dict[str, Any]]:
        """Return the directory of all cities (no state blobs)."""
        assert self._conn is not None
        async with self._conn.execute(
            "SELECT cid, owner_uid, name FROM cities ORDER BY cid",
        ) as cursor:
            rows = await cursor.fetchall()
            return [
                {"cid": r[0], "owner_uid": r[1], "name": r[2]}
                for r in rows
            ]

    async def list_cids(self) -> list[int]:
        assert self._conn is not None
        async with self._conn.execute("SELECT cid FROM cities ORDER BY cid") as cursor:
            return [r[0] for r in await cursor.fetchall()]

    # -- Transactions ----------------------------------------------------

    async def run_transaction(self, cid: int, fn: Callable[[City], T]) -> T:
        """Apply ``fn`` to a fresh copy of the city and commit it atomically.

        ``fn`` runs synchronously between the read and the conditional
        write, so no other coroutine can observe a half-applied change.
        Anything ``fn`` raises propagates before a write happens.

        Raises:
            CityNotFound: the city does not exist.
            TransactionConflict: the city was written by someone else
                after it was read. The caller may retry.
        """
        city = await self._read(cid)
        read_version = city.version
        result = fn(city)
        if not await self._write(city, read_version):
            log.info("Transaction conflict on city %d (read version %d)", cid, read_version)
            raise TransactionConflict(cid, read_version)
        city.version = read_version + 1
        return result

    async def _read(self, cid: int) -> City:
        assert self._conn is not None
        async with self._conn.execute(
            "SELECT cid, state, version FROM cities WHERE cid = ?", (cid,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            raise CityNotFound(cid)
        return city_from_dict(json.loads(row[1]), cid=row[0], version=row[2])

    async def _write(self, city: City, expected_version: int) -> bool:
        """Conditionally overwrite a city. False if the version moved on."""
        assert self._conn is not None
        async with self._write_lock:
            async with self._conn.execute(
                "UPDATE cities SET name = ?, state = ?, version = version + 1 "
                "WHERE cid = ? AND version = ?",
                (city.name, json.dumps(city_to_dict(city)), city.cid, expected_version),
            ) as cursor:
                written = cursor.rowcount > 0
            await self._conn.commit()
        return written
