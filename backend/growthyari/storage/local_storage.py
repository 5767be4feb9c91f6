"""
Local Filesystem Storage Implementation.
Each table is a JSON document (``<table>.json``) mapping row id to row,
stored under a base directory on the server.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable

import aiofiles
import aiofiles.os

from .interface import (
    StorageInterface, StorageError, DuplicateRowError, ConflictingRowError, Row,
    find_conflict, row_matches, order_rows
)

logger = logging.getLogger(__name__)


class LocalStorage(StorageInterface):
    """
    Local filesystem table store.

    Every write rewrites the whole table file through a temp file and an
    atomic rename. A per-table lock serializes read-modify-write cycles, which
    makes conditional updates atomic within this process.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for the table files
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, table: str) -> asyncio.Lock:
        if table not in self._locks:
            self._locks[table] = asyncio.Lock()
        return self._locks[table]

    def _table_path(self, table: str) -> Path:
        """Resolve the file backing a table, refusing anything outside base_dir."""
        if not table or not table.replace("_", "").isalnum():
            raise StorageError(f"Invalid table name: {table!r}")
        return self.base_dir / f"{table}.json"

    async def _read_table(self, table: str) -> Dict[str, Row]:
        path = self._table_path(table)
        try:
            if not path.exists():
                return {}
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                content = await f.read()
            return json.loads(content) if content.strip() else {}
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read table {table}: {e}") from e

    async def _write_table(self, table: str, rows: Dict[str, Row]) -> None:
        path = self._table_path(table)
        tmp_path = path.with_suffix(f".json.{os.getpid()}.tmp")
        try:
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(rows, indent=2, ensure_ascii=False))
            await aiofiles.os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write table {table}: {e}") from e

    async def insert(
        self,
        table: str,
        row: Row,
        unless_any_of: Optional[List[Dict[str, Any]]] = None
    ) -> Row:
        """Insert a row, failing on a duplicate id or a conflicting row."""
        row_id = row.get("id")
        if not row_id:
            raise StorageError(f"Row for {table} has no id")

        async with self._lock(table):
            rows = await self._read_table(table)
            if row_id in rows:
                raise DuplicateRowError(f"Duplicate id {row_id} in {table}")
            conflict = find_conflict(rows.values(), unless_any_of)
            if conflict is not None:
                raise ConflictingRowError(f"Insert into {table} conflicts with {conflict['id']}", conflict)
            rows[row_id] = dict(row)
            await self._write_table(table, rows)

        logger.debug(f"Inserted {table}/{row_id}")
        return dict(row)

    async def get(self, table: str, row_id: str) -> Optional[Row]:
        """Fetch a row by id."""
        rows = await self._read_table(table)
        return rows.get(row_id)

    async def get_many(self, table: str, row_ids: Iterable[str]) -> Dict[str, Row]:
        """Fetch several rows by id."""
        rows = await self._read_table(table)
        return {row_id: rows[row_id] for row_id in set(row_ids) if row_id in rows}

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        any_of: Optional[List[Dict[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Row]:
        """Query rows with equality filters."""
        rows = await self._read_table(table)
        matched = (r for r in rows.values() if row_matches(r, filters, any_of))
        return order_rows(matched, order_by, descending)

    async def update(
        self,
        table: str,
        row_id: str,
        values: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> Optional[Row]:
        """Update a row, optionally only if it still matches ``expected``."""
        async with self._lock(table):
            rows = await self._read_table(table)
            row = rows.get(row_id)
            if row is None:
                return None
            if expected and not row_matches(row, expected):
                logger.debug(f"Conditional update skipped for {table}/{row_id}")
                return None

            row.update(values)
            await self._write_table(table, rows)

        return dict(row)
