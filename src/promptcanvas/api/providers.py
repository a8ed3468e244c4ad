"""Upstream providers behind ``POST /api/image``.

Two external services are involved in every generation:

- **fal.ai** renders the image.  The synchronous ``fal.run`` endpoint is
  called directly over HTTPX: ``POST {base_url}/{model}`` with an
  ``Authorization: Key <key>`` header; the first image URL in the response
  is used.
- **OpenAI** rewrites the prompt into a handful of stylistic variations,
  which the canvas later expands into new tiles.

:class:`ImageService` runs both concurrently.  Either failing fails the
whole generation with :class:`ProviderError`.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from openai import AsyncOpenAI, OpenAIError

from promptcanvas.api.models import ImageResponse

logger = logging.getLogger(__name__)

VARIATION_SYSTEM_PROMPT = (
    "You are a creative prompt engineer for text-to-image models. "
    "Return 4 short variations of the prompt given with no explanation "
    "or other text. Each variation should intend to produce an image in a "
    "different style than the original prompt. Separate each variation with a new line."
)


class ProviderError(Exception):
    """An upstream image or LLM provider failed."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class FalImageProvider:
    """Text-to-image generation via fal.ai's synchronous REST endpoint.

    Args:
        api_key: fal.ai key; requests fail with ProviderError when unset
        base_url: Endpoint root, ``https://fal.run`` by default
        model: Model application id, e.g. ``fal-ai/flux/schnell``
        timeout: Request timeout in seconds
        transport: Optional custom transport (``httpx.MockTransport`` in tests)
    """

    name = "fal"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://fal.run",
        model: str = "fal-ai/flux/schnell",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )

    async def generate_image(self, prompt: str) -> str:
        """Render ``prompt`` and return the URL of the first image.

        Raises:
            ProviderError: On missing credentials, transport failure,
                non-2xx status or a response without images
        """
        if not self.api_key:
            raise ProviderError(self.name, "No fal.ai API key configured")

        logger.info(f"Requesting image from {self.model}")
        try:
            response = await self._client.post(
                f"/{self.model}",
                json={"prompt": prompt},
                headers={"Authorization": f"Key {self.api_key}"},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"Request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, f"Invalid JSON response: {e}") from e

        try:
            url = payload["images"][0]["url"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, "Response contains no image URL") from e
        if not isinstance(url, str) or not url:
            raise ProviderError(self.name, "Response contains an empty image URL")

        logger.debug(f"Image ready: {url}")
        return url

    async def aclose(self) -> None:
        await self._client.aclose()


class OpenAIVariationProvider:
    """Prompt variations from an OpenAI chat model.

    The client is created on first use so that a server without an OpenAI
    key still starts; generation then fails with ProviderError.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 1.4,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    async def generate_variations(self, prompt: str) -> list[str]:
        """Return the non-blank, stripped lines of the model's answer.

        Raises:
            ProviderError: If the OpenAI call fails
        """
        logger.info(f"Generating prompt variations for: {prompt[:50]}")
        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": VARIATION_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            )
        except OpenAIError as e:
            raise ProviderError(self.name, f"Completion failed: {e}") from e

        if not response.choices:
            return []
        content = response.choices[0].message.content or ""
        variations = [line.strip() for line in content.split("\n") if line.strip()]
        logger.debug(f"Got {len(variations)} variations")
        return variations

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


class ImageService:
    """Image plus variations for one prompt, fetched concurrently."""

    def __init__(
        self,
        image_provider: FalImageProvider,
        variation_provider: OpenAIVariationProvider,
    ):
        self.image_provider = image_provider
        self.variation_provider = variation_provider

    async def generate(self, prompt: str) -> ImageResponse:
        """Return the ``/api/image`` payload for ``prompt``.

        Raises:
            ProviderError: If either provider fails
        """
        variations, image_url = await asyncio.gather(
            self.variation_provider.generate_variations(prompt),
            self.image_provider.generate_image(prompt),
        )
        return ImageResponse(prompt=prompt, image_url=image_url, variations=variations)

    async def aclose(self) -> None:
        await self.image_provider.aclose()
        await self.variation_provider.aclose()
