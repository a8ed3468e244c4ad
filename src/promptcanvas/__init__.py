"""Prompt Canvas - an infinite canvas of AI-generated image tiles."""

__version__ = "0.1.0"

from promptcanvas.core.config import CanvasConfig, config

__all__ = [
    "CanvasConfig",
    "config",
]
