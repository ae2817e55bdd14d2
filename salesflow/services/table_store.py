"""
Tabular store - positional rows over SQLAlchemy.

The workflow core consumes a spreadsheet-like store:

    read(table)                              -> ordered rows
    append(table, row)                       -> new row index
    write_cell(table, row_index, col, value)
    write_cells(table, row_index, {col: value, ...})
    ensure_headers(table, schema)
    headers(table)

``SqlTableStore`` implements it on top of StoreTable / StoreRow. Row and
column indices are 0-based and count data rows only (the header row is
kept separately). Every mutating call commits on its own: there is no
transaction spanning an append and the notifications that follow it.
``write_cells`` updates several cells of one row in a single commit.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence

from salesflow.core.exceptions import RecordNotFoundError, ValidationError
from salesflow.models import db
from salesflow.models.table_store import StoreRow, StoreTable

logger = logging.getLogger(__name__)


class TableStore(Protocol):
    def read(self, table: str) -> list[list[Any]]: ...

    def append(self, table: str, row: Sequence[Any]) -> int: ...

    def write_cell(self, table: str, row_index: int, col: int, value: Any) -> None: ...

    def write_cells(self, table: str, row_index: int, values: Mapping[int, Any]) -> None: ...

    def ensure_headers(self, table: str, schema: Sequence[str]) -> list[str]: ...

    def headers(self, table: str) -> list[str]: ...


class SqlTableStore:
    """Store backed by the ``store_tables`` / ``store_rows`` tables.

    Needs an active Flask app context (it uses ``db.session``).
    """

    # ── Table lookup ─────────────────────────────────────────────────────────

    @staticmethod
    def _get_table(name: str) -> StoreTable | None:
        return StoreTable.query.filter_by(name=name).first()

    def _require_table(self, name: str) -> StoreTable:
        table = self._get_table(name)
        if table is None:
            raise RecordNotFoundError("Table", name)
        return table

    # ── Schema ───────────────────────────────────────────────────────────────

    def ensure_headers(self, table: str, schema: Sequence[str]) -> list[str]:
        """Create *table* if missing and append any header not yet present.

        Existing header order is never changed; new headers go to the end.
        """
        obj = self._get_table(table)
        if obj is None:
            obj = StoreTable(name=table, headers=list(schema))
            db.session.add(obj)
            db.session.commit()
            logger.info("Created table %r with %d columns", table, len(schema))
            return list(obj.headers)

        current = list(obj.headers or [])
        missing = [h for h in schema if h not in current]
        if missing:
            obj.headers = current + missing
            db.session.commit()
            logger.info("Added columns %s to table %r", missing, table)
        return list(obj.headers)

    def headers(self, table: str) -> list[str]:
        obj = self._get_table(table)
        return list(obj.headers or []) if obj else []

    # ── Rows ─────────────────────────────────────────────────────────────────

    def read(self, table: str) -> list[list[Any]]:
        """Return every data row in table order, padded to the header width."""
        obj = self._get_table(table)
        if obj is None:
            return []
        width = len(obj.headers or [])
        rows = []
        for row in obj.rows.all():
            cells = list(row.cells or [])
            if len(cells) < width:
                cells.extend([""] * (width - len(cells)))
            rows.append(cells)
        return rows

    def append(self, table: str, row: Sequence[Any]) -> int:
        obj = self._require_table(table)
        position = obj.rows.count()
        db.session.add(StoreRow(table_id=obj.id, position=position, cells=list(row)))
        db.session.commit()
        return position

    def write_cell(self, table: str, row_index: int, col: int, value: Any) -> None:
        self.write_cells(table, row_index, {col: value})

    def write_cells(self, table: str, row_index: int, values: Mapping[int, Any]) -> None:
        """Set several cells of one row; all of them land in one commit or none do."""
        obj = self._require_table(table)
        bad = sorted(col for col in values if col < 0)
        if bad:
            raise ValidationError(f"Column index must be >= 0, got {bad[0]}")
        row = StoreRow.query.filter_by(table_id=obj.id, position=row_index).first()
        if row is None:
            raise RecordNotFoundError(f"{table} row", row_index)
        if not values:
            return
        cells = list(row.cells or [])
        width = max(values) + 1
        if width > len(cells):
            cells.extend([""] * (width - len(cells)))
        for col, value in values.items():
            cells[col] = value
        # JSON columns only detect reassignment, not in-place mutation.
        row.cells = cells
        db.session.commit()
