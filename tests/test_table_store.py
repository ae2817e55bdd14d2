"""Tests for salesflow.services.table_store - SqlTableStore.

Coverage
--------
    1. ensure_headers creates the table and only appends missing headers
    2. append returns dense 0-based row indices in table order
    3. read pads short rows to the header width
    4. write_cell / write_cells update cells and raise for a vanished row
    5. unknown tables read empty and reject appends
"""

import pytest

from salesflow.core.exceptions import RecordNotFoundError, ValidationError
from salesflow.services.table_store import SqlTableStore


@pytest.fixture()
def store():
    return SqlTableStore()


class TestSchema:
    def test_ensure_headers_creates_table(self, store):
        headers = store.ensure_headers("Disputes", ["Timestamp", "Dispute ID", "Status"])
        assert headers == ["Timestamp", "Dispute ID", "Status"]
        assert store.headers("Disputes") == headers

    def test_ensure_headers_appends_missing_without_reordering(self, store):
        store.ensure_headers("Disputes", ["Timestamp", "Dispute ID"])
        headers = store.ensure_headers("Disputes", ["Dispute ID", "Status", "Timestamp"])
        assert headers == ["Timestamp", "Dispute ID", "Status"]

    def test_headers_of_unknown_table_is_empty(self, store):
        assert store.headers("Nope") == []


class TestRows:
    def test_append_returns_sequential_indices(self, store):
        store.ensure_headers("T", ["A", "B"])
        assert store.append("T", ["a1", "b1"]) == 0
        assert store.append("T", ["a2", "b2"]) == 1
        assert store.read("T") == [["a1", "b1"], ["a2", "b2"]]

    def test_read_pads_short_rows(self, store):
        store.ensure_headers("T", ["A", "B", "C"])
        store.append("T", ["only-a"])
        assert store.read("T") == [["only-a", "", ""]]

    def test_write_cell_updates_single_cell(self, store):
        store.ensure_headers("T", ["A", "B"])
        store.append("T", ["a1", "b1"])
        store.append("T", ["a2", "b2"])
        store.write_cell("T", 1, 1, "changed")
        assert store.read("T") == [["a1", "b1"], ["a2", "changed"]]

    def test_write_cell_beyond_row_width_extends_row(self, store):
        store.ensure_headers("T", ["A"])
        store.append("T", ["a1"])
        store.ensure_headers("T", ["A", "B", "C"])
        store.write_cell("T", 0, 2, "c1")
        assert store.read("T") == [["a1", "", "c1"]]

    def test_write_cell_missing_row_raises(self, store):
        store.ensure_headers("T", ["A"])
        with pytest.raises(RecordNotFoundError):
            store.write_cell("T", 5, 0, "x")

    def test_write_cells_updates_row_at_once(self, store):
        store.ensure_headers("T", ["A", "B", "C"])
        store.append("T", ["a1", "b1", "c1"])
        store.write_cells("T", 0, {0: "x", 2: "z"})
        assert store.read("T") == [["x", "b1", "z"]]

    def test_write_cells_bad_column_leaves_row_untouched(self, store):
        store.ensure_headers("T", ["A", "B"])
        store.append("T", ["a1", "b1"])
        with pytest.raises(ValidationError):
            store.write_cells("T", 0, {0: "x", -1: "y"})
        assert store.read("T") == [["a1", "b1"]]

    def test_unknown_table_reads_empty(self, store):
        assert store.read("Nope") == []

    def test_append_to_unknown_table_raises(self, store):
        with pytest.raises(RecordNotFoundError):
            store.append("Nope", ["x"])
