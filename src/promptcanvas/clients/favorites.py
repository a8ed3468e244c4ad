"""
Favorites Client
================

Async client for the backend's favorites endpoints.

Failure policy differs by operation:
- ``list()`` is best-effort: any failure is logged and an empty list is
  returned, because favorites are not critical to the canvas.
- ``add()`` and ``remove()`` raise :class:`FavoritesError`, because the
  caller must know whether to apply the local change.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from promptcanvas.api.models import Favorite
from promptcanvas.clients.base import BackendClient
from promptcanvas.clients.errors import FavoritesError

logger = logging.getLogger(__name__)

FAVORITES_PATH = "/api/favorites"


class FavoritesClient(BackendClient):
    """HTTP client for listing, adding and removing favorites."""

    async def list(self) -> list[Favorite]:
        """Fetch all favorites, degrading to an empty list on failure.

        Records that fail validation are skipped individually.
        """
        try:
            response = await self._client.get(FAVORITES_PATH)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[FavoritesClient] Error fetching favorites: {e}")
            return []

        raw_favorites = payload.get("favorites") if isinstance(payload, dict) else None
        if not isinstance(raw_favorites, list):
            logger.error("[FavoritesClient] Favorites payload has no 'favorites' list")
            return []

        favorites: list[Favorite] = []
        for raw in raw_favorites:
            try:
                favorites.append(Favorite.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"[FavoritesClient] Skipping malformed favorite: {e}")
        return favorites

    async def add(self, favorite: Favorite) -> None:
        """Store ``favorite`` on the backend.

        Raises:
            FavoritesError: If the request fails or the backend rejects it
        """
        await self._send(
            "POST",
            FAVORITES_PATH,
            json=favorite.model_dump(by_alias=True),
            action="add",
        )
        logger.info(f"[FavoritesClient] Added favorite {favorite.id}")

    async def remove(self, favorite_id: str) -> None:
        """Delete the favorite with ``favorite_id`` on the backend.

        Raises:
            FavoritesError: If the request fails or the backend rejects it
        """
        path = f"{FAVORITES_PATH}/{quote(favorite_id, safe='')}"
        await self._send("DELETE", path, action="remove")
        logger.info(f"[FavoritesClient] Removed favorite {favorite_id}")

    async def _send(self, method: str, path: str, *, action: str, json=None) -> None:
        url = self.url_for(path)
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"[FavoritesClient] Error trying to {action} favorite: {e}")
            raise FavoritesError(
                f"Failed to {action} favorite: {e}", method=method, url=url
            ) from e

        if not response.is_success:
            logger.error(
                f"[FavoritesClient] Failed to {action} favorite: HTTP {response.status_code}"
            )
            raise FavoritesError(
                f"Failed to {action} favorite",
                method=method,
                url=url,
                status_code=response.status_code,
            )
