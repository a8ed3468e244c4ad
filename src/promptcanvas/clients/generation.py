"""
Generation Client
=================

Async client for the backend's ``POST /api/image`` endpoint, which generates
an image for a prompt and, in the same call, asks the LLM for prompt
variations.

Contract:
- exactly one network call per ``generate()``; no retries
- resolves with the echoed prompt (the backend may normalise it), a
  non-empty image URL and zero or more variations
- raises :class:`GenerationError` on transport failure, non-2xx status or a
  malformed payload; rolling back any optimistic canvas state is the
  caller's job

Usage:
    async with GenerationClient("http://localhost:8080") as client:
        result = await client.generate("a lighthouse at dusk")
        print(result.image_url, result.variations)
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from promptcanvas.api.models import ImageResponse
from promptcanvas.clients.base import BackendClient
from promptcanvas.clients.errors import GenerationError

logger = logging.getLogger(__name__)

IMAGE_PATH = "/api/image"


class GenerationClient(BackendClient):
    """HTTP client for image-plus-variations generation."""

    async def generate(self, prompt: str) -> ImageResponse:
        """Generate an image and prompt variations for ``prompt``.

        Args:
            prompt: Text description to generate an image from

        Returns:
            ImageResponse with ``prompt``, ``image_url`` and ``variations``

        Raises:
            GenerationError: On network error, non-2xx response or malformed payload
        """
        url = self.url_for(IMAGE_PATH)
        logger.info(f"[GenerationClient] Generating image: {prompt[:50]}")

        try:
            response = await self._client.post(IMAGE_PATH, json={"prompt": prompt})
        except httpx.TimeoutException as e:
            raise GenerationError(
                f"Image service timeout: {e}", method="POST", url=url
            ) from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Network error: {e}", method="POST", url=url) from e

        if not response.is_success:
            raise GenerationError(
                "Image service returned an error",
                method="POST",
                url=url,
                status_code=response.status_code,
            )

        try:
            result = ImageResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            raise GenerationError(
                f"Malformed image response: {e}",
                method="POST",
                url=url,
                status_code=response.status_code,
            ) from e

        if not result.image_url:
            raise GenerationError(
                "Image response has an empty imageUrl",
                method="POST",
                url=url,
                status_code=response.status_code,
            )

        logger.info(
            f"[GenerationClient] Generated image with {len(result.variations)} variations"
        )
        return result
