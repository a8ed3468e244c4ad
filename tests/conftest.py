"""Shared pytest fixtures for Prompt Canvas tests."""

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from promptcanvas.api.models import Favorite, ImageResponse
from promptcanvas.canvas.local_store import MemoryStore
from promptcanvas.canvas.models import CanvasSize, GenerationState, Position, Tile
from promptcanvas.canvas.persistence import PersistenceBridge
from promptcanvas.canvas.state_machine import CanvasStateMachine
from promptcanvas.clients.errors import FavoritesError, GenerationError
from promptcanvas.core.config import CanvasConfig


class FakeGenerationClient:
    """In-memory stand-in for GenerationClient.

    Prompts listed in ``failures`` raise GenerationError.  When ``gate`` is
    set, every call waits for it before resolving, which lets a test act
    while requests are in flight.
    """

    def __init__(self, variations: list[str] | None = None):
        self.variations = ["v1", "v2", "v3", "v4"] if variations is None else variations
        self.calls: list[str] = []
        self.failures: set[str] = set()
        self.gate: asyncio.Event | None = None

    async def generate(self, prompt: str) -> ImageResponse:
        self.calls.append(prompt)
        call_number = len(self.calls)
        if self.gate is not None:
            await self.gate.wait()
        if prompt in self.failures:
            raise GenerationError(
                "Image service returned an error",
                method="POST",
                url="http://backend.test/api/image",
                status_code=500,
            )
        return ImageResponse(
            prompt=prompt,
            image_url=f"https://images.test/{call_number}.png",
            variations=list(self.variations),
        )


class FakeFavoritesClient:
    """In-memory stand-in for FavoritesClient."""

    def __init__(self):
        self.favorites: dict[str, Favorite] = {}
        self.fail = False
        self.calls: list[tuple[str, str]] = []

    def _check(self, method: str) -> None:
        if self.fail:
            raise FavoritesError(
                "Failed to update favorite",
                method=method,
                url="http://backend.test/api/favorites",
                status_code=500,
            )

    async def list(self) -> list[Favorite]:
        self.calls.append(("list", ""))
        return list(self.favorites.values())

    async def add(self, favorite: Favorite) -> None:
        self.calls.append(("add", favorite.id))
        self._check("POST")
        self.favorites[favorite.id] = favorite

    async def remove(self, favorite_id: str) -> None:
        self.calls.append(("remove", favorite_id))
        self._check("DELETE")
        self.favorites.pop(favorite_id, None)


def make_tile(tile_id: str, **overrides) -> Tile:
    """Build a READY tile with sensible defaults."""
    fields = {
        "id": tile_id,
        "prompt": f"prompt for {tile_id}",
        "position": Position(0, 0),
        "image_url": f"https://images.test/{tile_id}.png",
        "generation_state": GenerationState.READY,
        "variations": ["a", "b"],
    }
    fields.update(overrides)
    return Tile(**fields)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> CanvasConfig:
    """Create a test configuration with temporary directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        CanvasConfig instance for testing
    """
    return CanvasConfig(
        api_base_url="http://backend.test",
        state_dir=temp_dir / "state",
        data_dir=temp_dir / "data",
        debounce_seconds=0.01,
        _env_file=None,
    )


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def bridge(memory_store: MemoryStore) -> PersistenceBridge:
    return PersistenceBridge(memory_store)


@pytest.fixture
def generation_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def favorites_client() -> FakeFavoritesClient:
    return FakeFavoritesClient()


@pytest.fixture
def canvas(
    generation_client: FakeGenerationClient,
    favorites_client: FakeFavoritesClient,
    bridge: PersistenceBridge,
) -> CanvasStateMachine:
    """State machine wired to fakes and an in-memory store."""
    return CanvasStateMachine(
        generation_client,
        favorites_client,
        bridge,
        canvas_size=CanvasSize(600, 400),
    )


@pytest.fixture
def tile_factory():
    """Return the ``make_tile`` helper for building READY tiles."""
    return make_tile
