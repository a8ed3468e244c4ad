"""Session wiring for the canvas.

This module builds the per-session component graph (HTTP clients,
persistence bridge, state machine and debouncer) from configuration, and
tears it down again.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from promptcanvas.canvas.debounce import PromptDebouncer
from promptcanvas.canvas.local_store import KeyValueStore, LocalStore
from promptcanvas.canvas.models import CanvasSize, Tile
from promptcanvas.canvas.persistence import PersistenceBridge
from promptcanvas.canvas.state_machine import CanvasStateMachine
from promptcanvas.clients import FavoritesClient, GenerationClient
from promptcanvas.core.config import CanvasConfig, config

logger = logging.getLogger(__name__)


@dataclass
class CanvasSession:
    """Everything one canvas session needs, created together."""

    generation_client: GenerationClient
    favorites_client: FavoritesClient
    persistence: PersistenceBridge
    canvas: CanvasStateMachine
    debouncer: PromptDebouncer

    def __repr__(self) -> str:
        return (
            f"CanvasSession(tiles={len(self.canvas.tiles)}, "
            f"selected={self.canvas.ui.selected_tile_id!r}, "
            f"backend={self.generation_client.base_url!r})"
        )


def initialize_session(
    initial_tiles: Sequence[Tile] | None = None,
    initial_prompt: str = "",
    initial_selected_id: str | None = None,
    *,
    settings: CanvasConfig | None = None,
    store: KeyValueStore | None = None,
    canvas_size: CanvasSize = CanvasSize(0, 0),
    transport: httpx.AsyncBaseTransport | None = None,
) -> CanvasSession:
    """Create a canvas session and restore its saved state.

    Args:
        initial_tiles: Tiles to open the canvas with (e.g. a favorite);
            they take priority over the saved canvas
        initial_prompt: Prompt to open the canvas with
        initial_selected_id: Tile to select initially
        settings: Configuration to use (default: global config)
        store: Key-value store (default: a LocalStore in ``state_dir``)
        canvas_size: Initial visible canvas size
        transport: Optional HTTPX transport shared by both clients

    Returns:
        Initialized CanvasSession
    """
    settings = settings or config
    logger.info(f"Initializing canvas session against {settings.api_base_url}")

    generation_client = GenerationClient(
        settings.api_base_url, timeout=settings.request_timeout, transport=transport
    )
    favorites_client = FavoritesClient(
        settings.api_base_url, timeout=settings.request_timeout, transport=transport
    )
    persistence = PersistenceBridge(store if store is not None else LocalStore(settings.state_dir))

    canvas = CanvasStateMachine(
        generation_client, favorites_client, persistence, canvas_size=canvas_size
    )
    canvas.restore(persistence.load(initial_tiles, initial_prompt, initial_selected_id))

    session = CanvasSession(
        generation_client=generation_client,
        favorites_client=favorites_client,
        persistence=persistence,
        canvas=canvas,
        debouncer=PromptDebouncer(canvas, quiet_period=settings.debounce_seconds),
    )
    logger.info(f"Canvas session ready: {session}")
    return session


async def close_session(session: CanvasSession) -> None:
    """Cancel pending input and close both HTTP clients."""
    session.debouncer.cancel()
    await session.generation_client.aclose()
    await session.favorites_client.aclose()
    logger.info("Canvas session closed")
