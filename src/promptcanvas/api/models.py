"""Pydantic request and response models for the Prompt Canvas API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation and serialisation, and the async
clients in :mod:`promptcanvas.clients` use the same models to validate what
the backend sends back.

Field names follow the wire format (``imageUrl``); Python code uses the
snake_case attribute names.  Both spellings are accepted on input.

Models
------
ImageRequest
    Payload for ``POST /api/image``.
ImageResponse
    Response of ``POST /api/image``: the echoed prompt, the generated image
    URL and the LLM prompt variations.
Favorite
    A persisted snapshot of a finished canvas tile, used as the body of
    ``POST /api/favorites`` and as the items of ``GET /api/favorites``.
FavoritesResponse
    Envelope of ``GET /api/favorites``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ImageRequest(BaseModel):
    """Request body for the ``POST /api/image`` endpoint.

    Attributes:
        prompt: Text description of the image to generate.
    """

    prompt: str = Field(
        ...,
        description="Text prompt sent to the image provider.",
    )


class ImageResponse(BaseModel):
    """Response body of ``POST /api/image``.

    Attributes:
        prompt: The prompt the backend actually used (may be normalised).
        image_url: URL of the generated image, owned by the provider.
        variations: Alternative prompts written by the LLM, possibly empty.
    """

    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    image_url: str = Field(..., alias="imageUrl")
    variations: list[str] = Field(default_factory=list)


class Favorite(BaseModel):
    """A favorited tile as stored by the backend.

    Favorites are created from READY tiles and never mutated in place; the
    record is replaced only by removing and re-adding it.

    Attributes:
        id: Opaque tile id the favorite was created from.
        prompt: Prompt that produced the image.
        image_url: Provider-owned image URL.
        variations: Prompt variations captured with the image.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    prompt: str
    image_url: str = Field(..., alias="imageUrl")
    variations: list[str] = Field(default_factory=list)


class FavoritesResponse(BaseModel):
    """Response body of ``GET /api/favorites``."""

    favorites: list[Favorite] = Field(default_factory=list)
