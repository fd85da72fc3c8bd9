"""Tests for the bounded dedupe set."""

import pytest

from src.copytrade.dedupe import DedupeSet


class TestDedupeSet:

    def test_first_sighting_is_new(self):
        seen = DedupeSet(capacity=3)

        assert seen.check_and_add("0xa") is False
        assert seen.check_and_add("0xa") is True
        assert len(seen) == 1

    def test_evicts_oldest(self):
        seen = DedupeSet(capacity=3)
        for tx in ("0x1", "0x2", "0x3", "0x4"):
            seen.check_and_add(tx)

        assert len(seen) == 3
        assert "0x1" not in seen
        assert "0x4" in seen
        # evicted ids are treated as new again
        assert seen.check_and_add("0x1") is False
        assert "0x2" not in seen

    def test_duplicate_does_not_refresh_position(self):
        seen = DedupeSet(capacity=2)
        seen.check_and_add("0x1")
        seen.check_and_add("0x2")
        seen.check_and_add("0x1")
        seen.check_and_add("0x3")

        assert "0x1" not in seen
        assert "0x2" in seen

    def test_default_capacity(self):
        seen = DedupeSet()
        for i in range(2001):
            seen.check_and_add(f"0x{i}")

        assert len(seen) == 2000
        assert "0x0" not in seen

    def test_clear(self):
        seen = DedupeSet(capacity=5)
        seen.check_and_add("0x1")
        seen.clear()

        assert len(seen) == 0
        assert seen.check_and_add("0x1") is False

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            DedupeSet(capacity=0)
