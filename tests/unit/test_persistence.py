"""Tests for promptcanvas.canvas.persistence - saving and restoring the canvas.

Tests cover:
- Round trip of tiles, selection, prompt and history.
- Merging of tile writes and UI-state writes into one slot.
- Recovery from missing, corrupt and partially malformed data.
- Startup priority of caller-supplied tiles.
- Write failures being logged instead of raised.
"""

from __future__ import annotations

import json
import logging

from promptcanvas.canvas.local_store import LocalStore, MemoryStore
from promptcanvas.canvas.models import GenerationState, Position
from promptcanvas.canvas.persistence import (
    CANVAS_STATE_KEY,
    PROMPT_HISTORY_KEY,
    PersistenceBridge,
)


class FailingStore(MemoryStore):
    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


class TestRoundTrip:
    def test_tiles_selection_and_prompt(self, bridge, tile_factory):
        tiles = [tile_factory("t1", position=Position(10, 20)), tile_factory("t2")]

        bridge.save_tiles(tiles)
        bridge.save_ui_state("t2", "a red fox")
        restored = bridge.load()

        assert restored.tiles == tiles
        assert restored.selected_tile_id == "t2"
        assert restored.current_prompt == "a red fox"

    def test_generating_tiles_survive_reload(self, bridge, tile_factory):
        tiles = [
            tile_factory("a", position=Position(10, 20)),
            tile_factory(
                "b",
                position=Position(200, 50),
                generation_state=GenerationState.GENERATING,
                image_url="",
                variations=[],
            ),
        ]

        bridge.save_tiles(tiles)
        restored = bridge.load()

        assert restored.tiles == tiles
        assert restored.tiles[1].generation_state is GenerationState.GENERATING

    def test_history(self, bridge):
        bridge.save_history(["b", "a"])

        assert bridge.load().prompt_history == ["b", "a"]

    def test_local_store_round_trip(self, temp_dir, tile_factory):
        PersistenceBridge(LocalStore(temp_dir)).save_tiles([tile_factory("t1")])

        restored = PersistenceBridge(LocalStore(temp_dir)).load()

        assert [tile.id for tile in restored.tiles] == ["t1"]

    def test_writes_merge_into_one_slot(self, bridge, memory_store, tile_factory):
        bridge.save_ui_state("t1", "prompt")
        bridge.save_tiles([tile_factory("t1")])

        data = json.loads(memory_store.get(CANVAS_STATE_KEY))

        assert set(data) == {"tiles", "timestamp", "selectedTileId", "currentPrompt"}
        assert data["selectedTileId"] == "t1"

    def test_clear(self, bridge, memory_store, tile_factory):
        bridge.save_tiles([tile_factory("t1")])
        bridge.save_history(["abc"])

        bridge.clear()

        assert memory_store.get(CANVAS_STATE_KEY) is None
        assert memory_store.get(PROMPT_HISTORY_KEY) is None


class TestRecovery:
    """Bad stored data never raises."""

    def test_empty_store(self, bridge):
        restored = bridge.load()

        assert restored.tiles == []
        assert restored.selected_tile_id is None
        assert restored.current_prompt == ""
        assert restored.prompt_history == []

    def test_corrupt_json(self):
        store = MemoryStore({CANVAS_STATE_KEY: "{not json", PROMPT_HISTORY_KEY: "]["})

        restored = PersistenceBridge(store).load()

        assert restored.tiles == []
        assert restored.prompt_history == []

    def test_wrong_shapes(self):
        store = MemoryStore(
            {CANVAS_STATE_KEY: json.dumps([1, 2]), PROMPT_HISTORY_KEY: json.dumps({"a": 1})}
        )

        restored = PersistenceBridge(store).load()

        assert restored.tiles == []
        assert restored.prompt_history == []

    def test_malformed_entries_dropped(self, tile_factory):
        good = tile_factory("good").to_dict()
        store = MemoryStore(
            {
                CANVAS_STATE_KEY: json.dumps(
                    {"tiles": [good, {"id": "bad"}, "junk", dict(good, prompt="dup")]}
                )
            }
        )

        restored = PersistenceBridge(store).load()

        assert [tile.id for tile in restored.tiles] == ["good"]
        assert restored.tiles[0].prompt == "prompt for good"

    def test_urlless_ready_tiles_dropped(self, tile_factory):
        broken = dict(tile_factory("broken").to_dict(), imageUrl="")
        idle = tile_factory("idle", generation_state=GenerationState.IDLE, image_url="").to_dict()
        store = MemoryStore({CANVAS_STATE_KEY: json.dumps({"tiles": [broken, idle]})})

        restored = PersistenceBridge(store).load()

        assert [tile.id for tile in restored.tiles] == ["idle"]

    def test_selection_revalidated(self, bridge, tile_factory):
        bridge.save_tiles([tile_factory("t1")])
        bridge.save_ui_state("gone", "prompt")

        restored = bridge.load()

        assert restored.selected_tile_id is None
        assert restored.current_prompt == "prompt"

    def test_history_filtered_and_capped(self):
        raw = ["a", 3, "b", "a"] + [f"p{i}" for i in range(20)]
        store = MemoryStore({PROMPT_HISTORY_KEY: json.dumps(raw)})

        history = PersistenceBridge(store).load_history()

        assert history[:3] == ["a", "b", "p0"]
        assert len(history) == 10

    def test_write_failures_are_logged(self, caplog, tile_factory):
        bridge = PersistenceBridge(FailingStore())

        with caplog.at_level(logging.ERROR):
            bridge.save_tiles([tile_factory("t1")])
            bridge.save_ui_state(None, "")
            bridge.save_history(["abc"])

        assert "disk full" in caplog.text


class TestStartupPriority:
    """Caller-supplied state wins over saved state."""

    def test_initial_tiles_replace_saved_and_are_recentered(self, bridge, tile_factory):
        bridge.save_tiles([tile_factory("saved")])
        bridge.save_ui_state("saved", "old prompt")

        restored = bridge.load(
            initial_tiles=[tile_factory("fav", position=Position(1, 1)), tile_factory("fav")],
            initial_prompt="fav prompt",
            initial_selected_id="fav",
        )

        assert [tile.id for tile in restored.tiles] == ["fav"]
        assert restored.tiles[0].position == Position(300, 200)
        assert restored.selected_tile_id == "fav"
        assert restored.current_prompt == "fav prompt"

    def test_saved_ui_state_ignored_when_not_fresh(self, bridge, tile_factory):
        bridge.save_tiles([tile_factory("t1")])
        bridge.save_ui_state("t1", "old prompt")

        restored = bridge.load(initial_prompt="new prompt")

        assert [tile.id for tile in restored.tiles] == ["t1"]
        assert restored.selected_tile_id is None
        assert restored.current_prompt == "new prompt"

    def test_initial_selection_must_exist(self, bridge, tile_factory):
        restored = bridge.load(initial_tiles=[tile_factory("fav")], initial_selected_id="other")

        assert restored.selected_tile_id is None
