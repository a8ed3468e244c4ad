"""End-to-end tests: a canvas session talking to the FastAPI backend.

The session's HTTP clients are pointed at the ASGI app through
``httpx.ASGITransport``; the app uses a fake ImageService and a temporary
SQLite favorites database.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from promptcanvas.api.main import app
from promptcanvas.api.models import ImageResponse
from promptcanvas.api.providers import ProviderError
from promptcanvas.canvas.local_store import MemoryStore
from promptcanvas.canvas.models import CommandOutcome
from promptcanvas.canvas.session import close_session, initialize_session
from promptcanvas.core.favorites_db import FavoritesDB


class EchoImageService:
    """Returns a deterministic image per prompt; prompts containing 'fail' fail."""

    async def generate(self, prompt: str) -> ImageResponse:
        if "fail" in prompt:
            raise ProviderError("fal", "content policy")
        slug = prompt.replace(" ", "-")
        return ImageResponse(
            prompt=prompt,
            image_url=f"https://cdn.test/{slug}.png",
            variations=[f"{prompt} watercolor", f"{prompt} fail", f"{prompt} noir"],
        )


@pytest.fixture
def backend(temp_dir: Path) -> FavoritesDB:
    db = FavoritesDB(temp_dir / "favorites.db", user_id="tester")
    app.state.image_service = EchoImageService()
    app.state.favorites_db = db
    return db


@pytest.fixture
def session_factory(test_config, backend):
    sessions = []

    def factory(store=None):
        session = initialize_session(
            settings=test_config,
            store=store if store is not None else MemoryStore(),
            transport=httpx.ASGITransport(app=app),
        )
        sessions.append(session)
        return session

    return factory


class TestCanvasAgainstBackend:
    @pytest.mark.asyncio
    async def test_generate_favorite_and_list(self, session_factory, backend):
        session = session_factory()
        canvas = session.canvas

        canvas.set_prompt("a red fox")
        generated = await canvas.submit_prompt("a red fox")
        favorited = await canvas.toggle_favorite(generated.tile_id)
        favorites = await session.favorites_client.list()
        await close_session(session)

        assert generated.committed
        assert favorited.committed
        assert canvas.get_tile(generated.tile_id).is_favorite is True
        assert [favorite.id for favorite in favorites] == [generated.tile_id]
        assert [favorite.id for favorite in backend.get_all_favorites()] == [generated.tile_id]

    @pytest.mark.asyncio
    async def test_provider_failure_rolls_back(self, session_factory):
        session = session_factory()

        session.canvas.set_prompt("please fail")
        result = await session.canvas.submit_prompt("please fail")
        await close_session(session)

        assert result.outcome is CommandOutcome.ROLLED_BACK
        assert session.canvas.tiles == ()

    @pytest.mark.asyncio
    async def test_expand_with_partial_failure(self, session_factory):
        session = session_factory()
        canvas = session.canvas

        canvas.set_prompt("a red fox")
        source = await canvas.submit_prompt("a red fox")
        results = await canvas.expand(source.tile_id)
        await close_session(session)

        outcomes = sorted(result.outcome.value for result in results)
        assert outcomes == ["committed", "committed", "rolled_back"]
        assert len(canvas.tiles) == 3

    @pytest.mark.asyncio
    async def test_unfavorite_and_reload(self, session_factory):
        store = MemoryStore()
        session = session_factory(store)
        canvas = session.canvas
        canvas.set_prompt("a red fox")
        generated = await canvas.submit_prompt("a red fox")
        await canvas.toggle_favorite(generated.tile_id)
        await canvas.toggle_favorite(generated.tile_id)
        await close_session(session)

        reloaded = session_factory(store)
        favorites = await reloaded.canvas.sync_favorites()
        await close_session(reloaded)

        assert favorites == []
        tile = reloaded.canvas.get_tile(generated.tile_id)
        assert tile is not None
        assert tile.is_favorite is False
        assert reloaded.canvas.ui.prompt_history == ["a red fox"]
