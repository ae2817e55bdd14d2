"""
SalesFlow workflow service
Tabular store models.

Models:
    - StoreTable: one named table with its ordered header row
    - StoreRow: one data row, cells kept as an ordered JSON array

The workflow core only sees rows as positional lists; these models are the
persistence behind ``SqlTableStore`` and are never queried directly by
services.
"""

from datetime import datetime, timezone

from salesflow.models import db


class StoreTable(db.Model):
    """Named table with an ordered header list."""

    __tablename__ = "store_tables"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True, index=True)
    headers = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    rows = db.relationship(
        "StoreRow",
        backref="table",
        lazy="dynamic",
        order_by="StoreRow.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<StoreTable {self.name} ({len(self.headers or [])} cols)>"


class StoreRow(db.Model):
    """
    Data row of a StoreTable.

    ``position`` is the 0-based data-row index exposed to callers. Rows are
    append-only, so positions are dense and stable.
    """

    __tablename__ = "store_rows"
    __table_args__ = (
        db.UniqueConstraint("table_id", "position", name="uq_store_rows_table_position"),
    )

    id = db.Column(db.Integer, primary_key=True)
    table_id = db.Column(
        db.Integer, db.ForeignKey("store_tables.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    position = db.Column(db.Integer, nullable=False)
    cells = db.Column(db.JSON, nullable=False, default=list)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<StoreRow table={self.table_id} pos={self.position}>"
