"""Persistence bridge between the canvas state machine and the local store.

Storage layout
--------------
Two fixed keys are used:

``imagegen-canvas-state``
    A JSON object ``{"tiles": [...], "timestamp": <epoch ms>,
    "selectedTileId": ..., "currentPrompt": ...}``.  Tile writes and UI-state
    writes are merged into the existing object so neither clobbers the other.

``imagegen-previous-prompts``
    A JSON array of prompt strings, most recent first.

Recovery rules
--------------
Nothing in this module raises on bad data:

- a missing or unparseable slot loads as an empty canvas / empty history
- individual tile entries that cannot be parsed are dropped
- entries repeating an id already loaded are dropped (first one wins)
- ready tiles without an image URL are dropped
- write failures (disk full, permissions, unserialisable data) are logged
  and otherwise ignored

Tiles saved mid-generation load exactly as saved, still ``GENERATING``.
Submitting a prompt with one selected regenerates it in place.

Startup priority
----------------
Tiles supplied by the caller (for example a favorite being opened on the
canvas) take priority over saved tiles and are re-centered.  The saved
selection and prompt are only restored on a fresh start, that is when the
caller supplied no tiles, no prompt and no selection.  Whatever selection
results is revalidated against the loaded tiles.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from promptcanvas.canvas.local_store import KeyValueStore
from promptcanvas.canvas.models import (
    FAVORITE_LOAD_POSITION,
    MAX_PROMPT_HISTORY,
    GenerationState,
    Tile,
)

logger = logging.getLogger(__name__)

CANVAS_STATE_KEY = "imagegen-canvas-state"
PROMPT_HISTORY_KEY = "imagegen-previous-prompts"


@dataclass
class RestoredCanvas:
    """Canvas contents reconstructed at startup."""

    tiles: list[Tile] = field(default_factory=list)
    selected_tile_id: str | None = None
    current_prompt: str = ""
    prompt_history: list[str] = field(default_factory=list)


class PersistenceBridge:
    """Serialise canvas state to a key-value store and read it back.

    The bridge is the only writer of its two keys.

    Args:
        store: Backing key-value store (``LocalStore`` or ``MemoryStore``)
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    # -- Writes -------------------------------------------------------------

    def save_tiles(self, tiles: Iterable[Tile]) -> None:
        """Persist the tile collection with a fresh timestamp."""
        self._merge_canvas_slot(
            {
                "tiles": [tile.to_dict() for tile in tiles],
                "timestamp": _now_millis(),
            }
        )

    def save_ui_state(self, selected_tile_id: str | None, current_prompt: str) -> None:
        """Persist the selection and the prompt field."""
        self._merge_canvas_slot(
            {
                "selectedTileId": selected_tile_id,
                "currentPrompt": current_prompt,
                "timestamp": _now_millis(),
            }
        )

    def save_history(self, history: Sequence[str]) -> None:
        """Persist the prompt history array."""
        try:
            self.store.set(PROMPT_HISTORY_KEY, json.dumps(list(history)))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save prompt history: {e}")

    def clear(self) -> None:
        """Forget everything this bridge has saved."""
        for key in (CANVAS_STATE_KEY, PROMPT_HISTORY_KEY):
            try:
                self.store.remove(key)
            except OSError as e:
                logger.error(f"Failed to clear {key}: {e}")

    def _merge_canvas_slot(self, updates: dict[str, Any]) -> None:
        data = self._read_json(CANVAS_STATE_KEY)
        if not isinstance(data, dict):
            data = {}
        data.update(updates)
        try:
            self.store.set(CANVAS_STATE_KEY, json.dumps(data))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save canvas state: {e}")

    # -- Reads --------------------------------------------------------------

    def load(
        self,
        initial_tiles: Sequence[Tile] | None = None,
        initial_prompt: str = "",
        initial_selected_id: str | None = None,
    ) -> RestoredCanvas:
        """Reconstruct the canvas for a new session.

        Args:
            initial_tiles: Tiles supplied by the caller; they replace the
                saved collection and are moved to the load position
            initial_prompt: Prompt supplied by the caller
            initial_selected_id: Selection supplied by the caller

        Returns:
            RestoredCanvas with tiles, revalidated selection, prompt and history
        """
        fresh_start = not initial_tiles and not initial_prompt and initial_selected_id is None
        data = self._read_json(CANVAS_STATE_KEY)
        if not isinstance(data, dict):
            data = {}

        if initial_tiles:
            tiles = [
                replace(tile, position=FAVORITE_LOAD_POSITION, variations=list(tile.variations))
                for tile in _unique_by_id(initial_tiles)
            ]
        else:
            tiles = self._parse_tiles(data.get("tiles"))

        if fresh_start:
            selected_id = data.get("selectedTileId")
            current_prompt = data.get("currentPrompt")
            if not isinstance(current_prompt, str):
                current_prompt = ""
        else:
            selected_id = initial_selected_id
            current_prompt = initial_prompt

        if not any(tile.id == selected_id for tile in tiles):
            selected_id = None

        restored = RestoredCanvas(
            tiles=tiles,
            selected_tile_id=selected_id,
            current_prompt=current_prompt,
            prompt_history=self.load_history(),
        )
        logger.info(
            f"Restored canvas with {len(restored.tiles)} tiles "
            f"(fresh_start={fresh_start}, selected={restored.selected_tile_id})"
        )
        return restored

    def load_history(self) -> list[str]:
        """Return saved prompt history, empty when missing or corrupt."""
        raw = self._read_json(PROMPT_HISTORY_KEY)
        if not isinstance(raw, list):
            return []

        history: list[str] = []
        for entry in raw:
            if isinstance(entry, str) and entry not in history:
                history.append(entry)
        return history[:MAX_PROMPT_HISTORY]

    def _read_json(self, key: str) -> Any:
        try:
            raw = self.store.get(key)
        except OSError as e:
            logger.error(f"Failed to read {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error(f"Discarding corrupt data in {key}: {e}")
            return None

    def _parse_tiles(self, raw_tiles: Any) -> list[Tile]:
        if not isinstance(raw_tiles, list):
            return []

        tiles: list[Tile] = []
        seen: set[str] = set()
        for entry in raw_tiles:
            try:
                tile = Tile.from_dict(entry)
            except ValueError as e:
                logger.warning(f"Dropping unreadable tile: {e}")
                continue
            if tile.id in seen:
                logger.warning(f"Dropping duplicate tile id {tile.id}")
                continue
            if tile.generation_state is GenerationState.READY and not tile.image_url:
                logger.warning(f"Dropping ready tile {tile.id} without an image URL")
                continue
            seen.add(tile.id)
            tiles.append(tile)
        return tiles


def _unique_by_id(tiles: Iterable[Tile]) -> list[Tile]:
    seen: set[str] = set()
    unique: list[Tile] = []
    for tile in tiles:
        if tile.id not in seen:
            seen.add(tile.id)
            unique.append(tile)
    return unique


def _now_millis() -> int:
    return time.time_ns() // 1_000_000
