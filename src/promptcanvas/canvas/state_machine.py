"""
Canvas State Machine
====================

Owns the tile collection and the ancillary UI state, and mediates every
mutation of either.

Synchronous commands (``duplicate``, ``remove``, ``reposition``,
``arrange_to_grid``, ``clear``, ``select``) mutate the collection and return
immediately.  Asynchronous commands (``submit_prompt``, ``expand``,
``toggle_favorite``) follow one discipline:

1. All read-modify-write on the collection happens before the first
   ``await``: optimistic tiles are inserted in ``GENERATING`` state.
2. The backend is called.
3. On resolution the target is looked up again by id.  If it is gone the
   response is dropped; otherwise the response is applied.  On failure an
   optimistically inserted tile is removed.

Every mutation is persisted through the optional :class:`PersistenceBridge`
and emitted to subscribers.  During a drag (``start_drag``/``end_drag``)
position updates are emitted but only persisted on release.

Usage:
    canvas = CanvasStateMachine(generation_client, favorites_client, bridge)
    canvas.restore(bridge.load())
    canvas.set_prompt("a lighthouse at dusk")
    result = await canvas.submit_prompt("a lighthouse at dusk")
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import Protocol

from promptcanvas.api.models import Favorite, ImageResponse
from promptcanvas.canvas import layout
from promptcanvas.canvas.ids import generate_unique_id
from promptcanvas.canvas.models import (
    DEFAULT_TILE_POSITION,
    DUPLICATE_OFFSET,
    FAVORITE_LOAD_POSITION,
    MAX_PROMPT_HISTORY,
    MIN_HISTORY_PROMPT_LENGTH,
    CanvasSize,
    CanvasUIState,
    CommandOutcome,
    CommandResult,
    GenerationState,
    Position,
    Tile,
)
from promptcanvas.canvas.persistence import PersistenceBridge, RestoredCanvas

logger = logging.getLogger(__name__)

# Offsets for expanded tiles: above, right, below, left
EXPANSION_OFFSETS = (
    (0, -layout.CELL_SIZE),
    (layout.CELL_SIZE, 0),
    (0, layout.CELL_SIZE),
    (-layout.CELL_SIZE, 0),
)
EXPANSION_FALLBACK_OFFSET = (layout.CELL_SIZE, 0)

TilesListener = Callable[[Mapping[str, Tile]], None]


class GenerationBackend(Protocol):
    async def generate(self, prompt: str) -> ImageResponse: ...


class FavoritesBackend(Protocol):
    async def list(self) -> list[Favorite]: ...

    async def add(self, favorite: Favorite) -> None: ...

    async def remove(self, favorite_id: str) -> None: ...


def expansion_position(origin: Position, index: int) -> Position:
    """Position of the ``index``-th tile expanded from a tile at ``origin``."""
    if index < len(EXPANSION_OFFSETS):
        dx, dy = EXPANSION_OFFSETS[index]
    else:
        dx, dy = EXPANSION_FALLBACK_OFFSET
    return origin.offset(dx, dy)


class CanvasStateMachine:
    """Tile collection plus UI state with optimistic async commands.

    Args:
        generation_client: Anything with ``async generate(prompt)``
        favorites_client: Anything with async ``list``/``add``/``remove``
        persistence: Bridge used to save tiles, UI state and history;
            ``None`` keeps everything in memory
        canvas_size: Initial visible canvas size, used by grid layout
    """

    def __init__(
        self,
        generation_client: GenerationBackend,
        favorites_client: FavoritesBackend,
        persistence: PersistenceBridge | None = None,
        canvas_size: CanvasSize = CanvasSize(0, 0),
    ):
        self._generation = generation_client
        self._favorites = favorites_client
        self._persistence = persistence
        self.canvas_size = canvas_size
        self.ui = CanvasUIState()

        # Insertion-ordered; index 0 is the front of the collection
        self._tiles: dict[str, Tile] = {}
        self._pending: Counter[str] = Counter()
        self._favorite_requests: set[str] = set()
        self._listeners: list[TilesListener] = []
        self._dragging_id: str | None = None

    # ------------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------------

    @property
    def tiles(self) -> tuple[Tile, ...]:
        """Snapshot of the collection in display order."""
        return tuple(self._tiles.values())

    @property
    def pending_ids(self) -> frozenset[str]:
        """Ids of tiles with a backend request in flight."""
        return frozenset(self._pending)

    def get_tile(self, tile_id: str) -> Tile | None:
        return self._tiles.get(tile_id)

    def selected_tile(self) -> Tile | None:
        """Resolve the selection, or ``None`` if the tile no longer exists."""
        if self.ui.selected_tile_id is None:
            return None
        return self._tiles.get(self.ui.selected_tile_id)

    def subscribe(self, listener: TilesListener) -> Callable[[], None]:
        """Register ``listener`` for tile changes.

        The listener receives a live read-only view of the collection; copy
        it if it must outlive the call.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def restore(self, restored: RestoredCanvas) -> None:
        """Replace the whole state with what the persistence bridge loaded."""
        self._tiles = {tile.id: tile for tile in restored.tiles}
        self.ui.selected_tile_id = restored.selected_tile_id
        self.ui.current_prompt = restored.current_prompt
        self.ui.prompt_history = list(restored.prompt_history)
        self.ui.generation_enabled = False
        self._emit()
        logger.info(f"Canvas restored with {len(self._tiles)} tiles")

    # ------------------------------------------------------------------------
    # Prompt and selection
    # ------------------------------------------------------------------------

    def set_prompt(self, text: str) -> None:
        """Edit path: update the prompt field and re-enable auto-generation."""
        self.ui.current_prompt = text
        self.ui.generation_enabled = True
        self._save_ui_state()

    def select(self, tile_id: str) -> None:
        """Select a tile and show its prompt without regenerating it."""
        tile = self._tiles.get(tile_id)
        self.ui.selected_tile_id = tile_id
        self.ui.current_prompt = tile.prompt if tile else ""
        self.ui.generation_enabled = False
        self._save_ui_state()

    def set_canvas_size(self, size: CanvasSize) -> None:
        self.canvas_size = size

    def _record_history(self, text: str) -> None:
        if len(text) < MIN_HISTORY_PROMPT_LENGTH:
            return
        history = [text] + [p for p in self.ui.prompt_history if p != text]
        self.ui.prompt_history = history[:MAX_PROMPT_HISTORY]
        if self._persistence:
            self._persistence.save_history(self.ui.prompt_history)

    # ------------------------------------------------------------------------
    # Asynchronous commands
    # ------------------------------------------------------------------------

    async def submit_prompt(self, text: str) -> CommandResult:
        """Generate an image for ``text`` into the selected or a new tile.

        Returns:
            ``COMMITTED`` when the response was applied, ``ROLLED_BACK`` when
            the backend failed, ``IGNORED`` when the submission was gated or
            the target disappeared while the request was in flight
        """
        if not text or not text.strip():
            return CommandResult(CommandOutcome.IGNORED)
        if not self.ui.generation_enabled:
            logger.debug("Generation disabled, ignoring submission")
            return CommandResult(CommandOutcome.IGNORED)
        if self.ui.is_generating:
            logger.debug("Generation already in flight, ignoring submission")
            return CommandResult(CommandOutcome.IGNORED)

        self._record_history(text)

        selected = self.selected_tile()
        created = selected is None
        if created:
            target_id = generate_unique_id()
            tile = Tile(
                id=target_id,
                prompt=text,
                position=DEFAULT_TILE_POSITION,
                generation_state=GenerationState.GENERATING,
            )
            self._tiles = {target_id: tile, **self._tiles}
            self.ui.selected_tile_id = target_id
            self._save_ui_state()
            self._tiles_changed()
        else:
            target_id = selected.id

        self.ui.is_generating = True
        self._pending[target_id] += 1
        try:
            response = await self._generation.generate(text)
        except asyncio.CancelledError:
            if created:
                self._discard(target_id)
            raise
        except Exception as e:
            logger.error(f"Error generating image for tile {target_id}: {e}")
            if created:
                self._discard(target_id)
            return CommandResult(CommandOutcome.ROLLED_BACK, target_id, e)
        finally:
            self.ui.is_generating = False
            self._release(target_id)

        if not self._apply_generation(target_id, response):
            return CommandResult(CommandOutcome.IGNORED, target_id)
        return CommandResult(CommandOutcome.COMMITTED, target_id)

    async def expand(self, tile_id: str) -> list[CommandResult]:
        """Spawn one generating tile per variation of ``tile_id``.

        Generations run concurrently and settle independently: a failure
        removes only its own tile.  Never raises on backend failure; if the
        call is cancelled the variation tiles are removed and the
        cancellation propagates.
        """
        source = self._tiles.get(tile_id)
        if source is None or not source.variations:
            return []

        new_tiles = [
            Tile(
                id=generate_unique_id(),
                prompt=variation,
                position=expansion_position(source.position, index),
                generation_state=GenerationState.GENERATING,
            )
            for index, variation in enumerate(source.variations)
        ]
        for tile in new_tiles:
            self._tiles[tile.id] = tile
            self._pending[tile.id] += 1
        self._tiles_changed()
        logger.info(f"Expanding tile {tile_id} into {len(new_tiles)} variations")

        try:
            outcomes = await asyncio.gather(
                *(self._generation.generate(tile.prompt) for tile in new_tiles),
                return_exceptions=True,
            )
        except asyncio.CancelledError:
            for tile in new_tiles:
                self._discard(tile.id)
            raise
        finally:
            for tile in new_tiles:
                self._release(tile.id)

        results: list[CommandResult] = []
        for tile, outcome in zip(new_tiles, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Error generating variation for tile {tile.id}: {outcome}")
                self._discard(tile.id)
                error = outcome if isinstance(outcome, Exception) else None
                results.append(CommandResult(CommandOutcome.ROLLED_BACK, tile.id, error))
            elif self._apply_generation(tile.id, outcome):
                results.append(CommandResult(CommandOutcome.COMMITTED, tile.id))
            else:
                results.append(CommandResult(CommandOutcome.IGNORED, tile.id))
        return results

    async def toggle_favorite(self, tile_id: str) -> CommandResult:
        """Add or remove ``tile_id`` from favorites, confirm-then-apply."""
        tile = self._tiles.get(tile_id)
        if tile is None or not tile.is_ready:
            return CommandResult(CommandOutcome.IGNORED, tile_id)
        if tile_id in self._favorite_requests:
            logger.debug(f"Favorite request for {tile_id} already in flight")
            return CommandResult(CommandOutcome.IGNORED, tile_id)

        make_favorite = not tile.is_favorite
        self._favorite_requests.add(tile_id)
        try:
            if make_favorite:
                await self._favorites.add(
                    Favorite(
                        id=tile.id,
                        prompt=tile.prompt,
                        image_url=tile.image_url,
                        variations=list(tile.variations),
                    )
                )
            else:
                await self._favorites.remove(tile_id)
        except Exception as e:
            logger.error(f"Error updating favorite {tile_id}: {e}")
            return CommandResult(CommandOutcome.ROLLED_BACK, tile_id, e)
        finally:
            self._favorite_requests.discard(tile_id)

        self._set_favorite_flag(tile_id, make_favorite)
        return CommandResult(CommandOutcome.COMMITTED, tile_id)

    async def remove_favorite(self, favorite_id: str) -> CommandResult:
        """Delete a favorite by id and clear the flag on any matching tile."""
        try:
            await self._favorites.remove(favorite_id)
        except Exception as e:
            logger.error(f"Error removing favorite {favorite_id}: {e}")
            return CommandResult(CommandOutcome.ROLLED_BACK, favorite_id, e)

        self._set_favorite_flag(favorite_id, False)
        return CommandResult(CommandOutcome.COMMITTED, favorite_id)

    async def sync_favorites(self) -> list[Favorite]:
        """Fetch the favorites list and mirror membership onto tile flags.

        An empty list leaves the flags alone: ``list()`` also returns an
        empty list when the backend is unreachable.
        """
        favorites = await self._favorites.list()
        if not favorites:
            return favorites
        favorite_ids = {favorite.id for favorite in favorites}

        changed = False
        for tile in self._tiles.values():
            flag = tile.id in favorite_ids
            if tile.is_favorite != flag:
                tile.is_favorite = flag
                changed = True
        if changed:
            self._tiles_changed()
        return favorites

    # ------------------------------------------------------------------------
    # Synchronous commands
    # ------------------------------------------------------------------------

    def load_favorite(self, favorite: Favorite) -> Tile:
        """Put a favorite on the canvas as a ready tile and select it.

        If a tile with the favorite's id is already present it is selected
        instead of being inserted twice.
        """
        tile = self._tiles.get(favorite.id)
        if tile is None:
            tile = Tile(
                id=favorite.id,
                prompt=favorite.prompt,
                position=FAVORITE_LOAD_POSITION,
                image_url=favorite.image_url,
                generation_state=GenerationState.READY,
                variations=list(favorite.variations),
                is_favorite=True,
            )
            self._tiles[tile.id] = tile
            self._tiles_changed()
        self.select(tile.id)
        return tile

    def duplicate(self, tile_id: str) -> Tile | None:
        """Append a copy of ``tile_id`` offset by ``DUPLICATE_OFFSET``.

        The copy is not linked to any in-flight request, so duplicating a
        generating tile yields a tile that stays ``GENERATING``.
        """
        tile = self._tiles.get(tile_id)
        if tile is None:
            return None
        copy = replace(
            tile,
            id=generate_unique_id(),
            position=tile.position.offset(*DUPLICATE_OFFSET),
            variations=list(tile.variations),
            is_favorite=False,
        )
        self._tiles[copy.id] = copy
        self._tiles_changed()
        return copy

    def remove(self, tile_id: str) -> bool:
        if tile_id not in self._tiles:
            return False
        self._discard(tile_id)
        return True

    def reposition(self, tile_id: str, position: Position) -> bool:
        """Move a tile without reordering the collection.

        Inside a ``start_drag``/``end_drag`` bracket for this tile the move is
        only emitted, so each call is O(1).  Outside one it is a one-shot
        move and the collection is saved straight away.  Callers feeding
        pointer events must bracket the drag.
        """
        tile = self._tiles.get(tile_id)
        if tile is None:
            return False
        tile.position = position
        self._tiles_changed(persist=tile_id != self._dragging_id)
        return True

    def start_drag(self, tile_id: str) -> bool:
        if tile_id not in self._tiles:
            return False
        self._dragging_id = tile_id
        return True

    def end_drag(self, snap_to_grid: bool = False) -> Tile | None:
        """Finish the current drag and persist the final position once."""
        tile_id, self._dragging_id = self._dragging_id, None
        tile = self._tiles.get(tile_id) if tile_id else None
        if tile is None:
            return None
        if snap_to_grid:
            tile.position = layout.nearest_grid_position(tile.position, self.canvas_size)
        self._tiles_changed()
        return tile

    def arrange_to_grid(self) -> None:
        arranged = layout.arrange_to_grid(self._tiles.values(), self.canvas_size)
        self._tiles = {tile.id: tile for tile in arranged}
        self._tiles_changed()

    def clear(self) -> None:
        self._tiles = {}
        self._dragging_id = None
        self.ui.selected_tile_id = None
        self._tiles_changed()
        self._save_ui_state()
        logger.info("Canvas cleared")

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    def _apply_generation(self, tile_id: str, response: ImageResponse) -> bool:
        tile = self._tiles.get(tile_id)
        if tile is None:
            logger.debug(f"Dropping generation result for removed tile {tile_id}")
            return False
        tile.prompt = response.prompt
        tile.image_url = response.image_url
        tile.variations = list(response.variations)
        tile.generation_state = GenerationState.READY
        tile.is_favorite = False
        self._tiles_changed()
        return True

    def _set_favorite_flag(self, tile_id: str, value: bool) -> None:
        tile = self._tiles.get(tile_id)
        if tile is not None and tile.is_favorite != value:
            tile.is_favorite = value
            self._tiles_changed()

    def _discard(self, tile_id: str) -> None:
        if self._tiles.pop(tile_id, None) is None:
            return
        if self._dragging_id == tile_id:
            self._dragging_id = None
        if self.ui.selected_tile_id == tile_id:
            self.ui.selected_tile_id = None
            self._save_ui_state()
        self._tiles_changed()

    def _release(self, tile_id: str) -> None:
        self._pending[tile_id] -= 1
        if self._pending[tile_id] <= 0:
            del self._pending[tile_id]

    def _save_ui_state(self) -> None:
        if self._persistence:
            self._persistence.save_ui_state(self.ui.selected_tile_id, self.ui.current_prompt)

    def _tiles_changed(self, persist: bool = True) -> None:
        if persist and self._persistence:
            self._persistence.save_tiles(self._tiles.values())
        self._emit()

    def _emit(self) -> None:
        view = MappingProxyType(self._tiles)
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                logger.error(f"Tile listener {listener!r} failed: {e}", exc_info=True)
