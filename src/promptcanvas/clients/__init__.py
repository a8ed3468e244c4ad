"""Async HTTP clients for the Prompt Canvas backend.

Modules
-------
generation
    ``GenerationClient`` for ``POST /api/image``.
favorites
    ``FavoritesClient`` for the ``/api/favorites`` endpoints.
errors
    Exceptions raised by both clients.
"""

from promptcanvas.clients.errors import ClientError, FavoritesError, GenerationError
from promptcanvas.clients.favorites import FavoritesClient
from promptcanvas.clients.generation import GenerationClient

__all__ = [
    "ClientError",
    "FavoritesClient",
    "FavoritesError",
    "GenerationClient",
    "GenerationError",
]
