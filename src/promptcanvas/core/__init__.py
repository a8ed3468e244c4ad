"""Core services shared by the canvas and the backend.

- **CanvasConfig**: configuration management using Pydantic Settings
  (``PROMPTCANVAS_`` environment prefix)
- **config**: global configuration instance
- **FavoritesDB**: SQLite-backed favorites store used by the backend
"""

from promptcanvas.core.config import CanvasConfig, config
from promptcanvas.core.favorites_db import FavoritesDB

__all__ = ["CanvasConfig", "config", "FavoritesDB"]
