"""
Tests for the LRU entry table

These tests verify LRUTable, which holds the client cache's entries:
- Eviction when a bounded table is full
- Recency updates on get/put
- Unbounded tables never evict

Run with: python -m pytest tests/test_eviction.py -v
"""

import pytest

from registry.cache.eviction import LRUTable


@pytest.fixture
def table() -> LRUTable:
    """LRU table holding at most 3 entries."""
    return LRUTable(max_size=3)


class TestLRUTable:
    """Test the LRUTable class directly."""

    def test_init_invalid_size(self):
        with pytest.raises(ValueError):
            LRUTable(max_size=0)
        with pytest.raises(ValueError):
            LRUTable(max_size=-1)

    def test_put_and_get(self, table: LRUTable):
        table.put(1, "one")

        assert table.get(1) == "one"
        assert table.get(2) is None
        assert 1 in table
        assert len(table) == 1

    def test_eviction_returns_pair(self, table: LRUTable):
        for key in (1, 2, 3):
            assert table.put(key, str(key)) is None

        assert table.put(4, "4") == (1, "1")
        assert list(table) == [2, 3, 4]

    def test_get_updates_order(self, table: LRUTable):
        for key in (1, 2, 3):
            table.put(key, str(key))
        table.get(1)

        assert table.put(4, "4") == (2, "2")

    def test_put_existing_replaces_without_eviction(self, table: LRUTable):
        for key in (1, 2, 3):
            table.put(key, str(key))

        assert table.put(1, "uno") is None
        assert table.items() == [(2, "2"), (3, "3"), (1, "uno")]

    def test_mixed_key_types(self, table: LRUTable):
        table.put(0, "record")
        table.put("Bo", "search")

        assert table.get(0) == "record"
        assert table.get("Bo") == "search"

    def test_pop_and_clear(self, table: LRUTable):
        table.put(1, "1")
        table.put(2, "2")

        assert table.pop(1) == "1"
        assert table.pop(1) is None

        table.clear()
        assert len(table) == 0

    def test_unbounded_never_evicts(self):
        table = LRUTable()

        evicted = [table.put(key, key) for key in range(1000)]

        assert all(pair is None for pair in evicted)
        assert len(table) == 1000
