"""Tests for promptcanvas.canvas.local_store - key-value slots."""

from __future__ import annotations

import pytest

from promptcanvas.canvas.local_store import LocalStore, MemoryStore


class TestLocalStore:
    def test_get_missing_key(self, temp_dir):
        assert LocalStore(temp_dir).get("absent") is None

    def test_set_and_get(self, temp_dir):
        store = LocalStore(temp_dir / "state")

        store.set("imagegen-canvas-state", '{"tiles": []}')

        assert store.get("imagegen-canvas-state") == '{"tiles": []}'
        assert (temp_dir / "state" / "imagegen-canvas-state.json").exists()

    def test_set_replaces_value_without_leftovers(self, temp_dir):
        store = LocalStore(temp_dir)

        store.set("slot", "one")
        store.set("slot", "two")

        assert store.get("slot") == "two"
        assert [path.name for path in temp_dir.iterdir()] == ["slot.json"]

    def test_remove(self, temp_dir):
        store = LocalStore(temp_dir)
        store.set("slot", "value")

        store.remove("slot")
        store.remove("slot")

        assert store.get("slot") is None

    @pytest.mark.parametrize("key", ["../escape", "a/b", "", "with space"])
    def test_rejects_unsafe_keys(self, temp_dir, key):
        with pytest.raises(ValueError):
            LocalStore(temp_dir).set(key, "value")


class TestMemoryStore:
    def test_round_trip_and_remove(self):
        store = MemoryStore({"seed": "1"})

        store.set("slot", "value")
        store.remove("seed")

        assert store.get("slot") == "value"
        assert store.get("seed") is None
