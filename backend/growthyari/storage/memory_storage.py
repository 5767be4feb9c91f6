"""
In-memory Storage Implementation.
Keeps tables in process memory; used for development and tests.
"""

import asyncio
import copy
from typing import Optional, List, Dict, Any, Iterable

from .interface import (
    StorageInterface, StorageError, DuplicateRowError, ConflictingRowError, Row,
    find_conflict, row_matches, order_rows
)


class InMemoryStorage(StorageInterface):
    """Dict-backed table store. Rows are copied in and out."""

    def __init__(self):
        self._tables: Dict[str, Dict[str, Row]] = {}
        self._lock = asyncio.Lock()

    def _table(self, table: str) -> Dict[str, Row]:
        return self._tables.setdefault(table, {})

    async def insert(
        self,
        table: str,
        row: Row,
        unless_any_of: Optional[List[Dict[str, Any]]] = None
    ) -> Row:
        row_id = row.get("id")
        if not row_id:
            raise StorageError(f"Row for {table} has no id")

        async with self._lock:
            rows = self._table(table)
            if row_id in rows:
                raise DuplicateRowError(f"Duplicate id {row_id} in {table}")
            conflict = find_conflict(rows.values(), unless_any_of)
            if conflict is not None:
                raise ConflictingRowError(
                    f"Insert into {table} conflicts with {conflict['id']}", copy.deepcopy(conflict)
                )
            rows[row_id] = copy.deepcopy(row)
        return copy.deepcopy(row)

    async def get(self, table: str, row_id: str) -> Optional[Row]:
        row = self._table(table).get(row_id)
        return copy.deepcopy(row) if row is not None else None

    async def get_many(self, table: str, row_ids: Iterable[str]) -> Dict[str, Row]:
        rows = self._table(table)
        return {
            row_id: copy.deepcopy(rows[row_id])
            for row_id in set(row_ids) if row_id in rows
        }

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        any_of: Optional[List[Dict[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Row]:
        matched = [
            copy.deepcopy(r) for r in self._table(table).values()
            if row_matches(r, filters, any_of)
        ]
        return order_rows(matched, order_by, descending)

    async def update(
        self,
        table: str,
        row_id: str,
        values: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> Optional[Row]:
        async with self._lock:
            row = self._table(table).get(row_id)
            if row is None:
                return None
            if expected and not row_matches(row, expected):
                return None
            row.update(copy.deepcopy(values))
            return copy.deepcopy(row)
