"""
Storage Interface - Abstract base class for all table store implementations.
Workflow managers only talk to this interface, so the backing store can be
swapped (local JSON files, in-memory, a hosted database) without touching them.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Iterable

Row = Dict[str, Any]


class StorageError(Exception):
    """Raised when the underlying store cannot complete an operation."""


class DuplicateRowError(StorageError):
    """Raised when inserting a row whose id already exists."""


class ConflictingRowError(DuplicateRowError):
    """
    Raised when a conditional insert finds a row it must not coexist with.

    ``row`` is the existing row that blocked the insert.
    """

    def __init__(self, message: str, row: Dict[str, Any]):
        super().__init__(message)
        self.row = row


def row_matches(
    row: Row,
    filters: Optional[Dict[str, Any]] = None,
    any_of: Optional[List[Dict[str, Any]]] = None
) -> bool:
    """
    Check a row against equality filters.

    Args:
        row: Row to check
        filters: Column values that must all match
        any_of: Groups of column values; at least one group must fully match

    Returns:
        bool: True if the row satisfies both conditions
    """
    if filters and any(row.get(key) != value for key, value in filters.items()):
        return False
    if any_of:
        return any(
            all(row.get(key) == value for key, value in group.items())
            for group in any_of
        )
    return True


def find_conflict(rows: Iterable[Row], unless_any_of: Optional[List[Dict[str, Any]]]) -> Optional[Row]:
    """First row matching any of the given groups, if any."""
    if not unless_any_of:
        return None
    return next((r for r in rows if row_matches(r, any_of=unless_any_of)), None)


def order_rows(rows: Iterable[Row], order_by: Optional[str], descending: bool) -> List[Row]:
    """Sort rows by a column, placing rows without a value last."""
    rows = list(rows)
    if not order_by:
        return rows
    present = [r for r in rows if r.get(order_by) is not None]
    missing = [r for r in rows if r.get(order_by) is None]
    present.sort(key=lambda r: r[order_by], reverse=descending)
    return present + missing


class StorageInterface(ABC):
    """
    Abstract table store.

    Rows are plain dicts keyed by an ``id`` column. Single-row writes are
    atomic; ``update`` supports an ``expected`` predicate so callers can do
    compare-and-swap without a read-then-write window.
    """

    @abstractmethod
    async def insert(
        self,
        table: str,
        row: Row,
        unless_any_of: Optional[List[Dict[str, Any]]] = None
    ) -> Row:
        """
        Insert a new row.

        The existence checks and the write happen as one atomic step, which is
        how callers express uniqueness rules beyond the id.

        Args:
            table: Table name (e.g. "sessions")
            row: Row data, must contain a unique "id"
            unless_any_of: OR-groups of column values; the insert is refused
                if any existing row fully matches one of them

        Returns:
            Row: The stored row

        Raises:
            DuplicateRowError: If a row with the same id exists
            ConflictingRowError: If an existing row matches ``unless_any_of``
            StorageError: On any other store failure
        """
        pass

    @abstractmethod
    async def get(self, table: str, row_id: str) -> Optional[Row]:
        """
        Fetch a single row by id.

        Args:
            table: Table name
            row_id: Row id

        Returns:
            Optional[Row]: The row, or None if it does not exist
        """
        pass

    @abstractmethod
    async def get_many(self, table: str, row_ids: Iterable[str]) -> Dict[str, Row]:
        """
        Fetch several rows by id in one round-trip.

        Args:
            table: Table name
            row_ids: Ids to fetch; unknown ids are skipped

        Returns:
            Dict[str, Row]: Found rows keyed by id
        """
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        any_of: Optional[List[Dict[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Row]:
        """
        Query rows with equality filters.

        Args:
            table: Table name
            filters: Column values that must all match
            any_of: OR-groups of column values (at least one group must match)
            order_by: Optional column to sort by
            descending: Sort direction

        Returns:
            List[Row]: Matching rows
        """
        pass

    @abstractmethod
    async def update(
        self,
        table: str,
        row_id: str,
        values: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> Optional[Row]:
        """
        Atomically update a row.

        Args:
            table: Table name
            row_id: Row id
            values: Columns to overwrite
            expected: Column values the row must still hold for the write to apply

        Returns:
            Optional[Row]: The updated row, or None if the row does not exist
            or no longer matches ``expected``
        """
        pass
