"""Configuration management for Prompt Canvas.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PROMPTCANVAS_
prefix, allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PROMPTCANVAS_* prefix)
2. .env file in the project root
3. Default values defined in CanvasConfig

Example .env file:
    PROMPTCANVAS_API_BASE_URL=http://localhost:8080
    PROMPTCANVAS_FAL_KEY=...
    PROMPTCANVAS_OPENAI_API_KEY=sk-...
    PROMPTCANVAS_STATE_DIR=state

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Both halves of the application read it: the canvas session (client side) uses
the API URL, timeout, debounce and state directory; the FastAPI backend uses
the provider keys, the favorites database location and the server address.

Usage Example
-------------
    from promptcanvas.core.config import config

    print(config.api_base_url)
    print(config.favorites_db_path)

Directory Management
--------------------
The configuration creates required directories on initialization:
- state_dir: local key-value store for canvas state and prompt history
- data_dir: SQLite favorites database
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CanvasConfig(BaseSettings):
    """Main configuration for Prompt Canvas.

    Values are loaded from environment variables with the PROMPTCANVAS_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Client Settings:
        api_base_url : str
            Base URL of the backend serving /api/image and /api/favorites
        request_timeout : float
            Timeout in seconds for backend calls (image generation is slow)
        debounce_seconds : float
            Quiet period before a typed prompt is submitted
        state_dir : Path
            Directory holding the local key-value store

    Backend Settings:
        data_dir : Path
            Directory holding the favorites database
        favorites_db_name : str
            File name of the SQLite favorites database
        default_user_id : str
            The single user id every favorite is stored under
        fal_key, fal_base_url, fal_model :
            Image provider credentials and endpoint
        openai_api_key, variation_model, variation_temperature :
            Prompt-variation provider settings
        server_host, server_port :
            uvicorn bind address
        log_level :
            Root logging level applied by the server entry point

    Examples
    --------
        >>> custom_config = CanvasConfig(
        ...     api_base_url="http://backend:8080",
        ...     debounce_seconds=0.25,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PROMPTCANVAS_",
        case_sensitive=False,
    )

    # Client settings
    api_base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the image/favorites backend",
    )
    request_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for backend requests",
        gt=0,
    )
    debounce_seconds: float = Field(
        default=0.5,
        description="Quiet period before typed input triggers generation",
        ge=0,
    )
    state_dir: Path = Field(
        default=Path("state"),
        description="Directory for the local canvas key-value store",
    )

    # Favorites store
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the favorites database",
    )
    favorites_db_name: str = Field(
        default="favorites.db",
        description="SQLite file name inside data_dir",
    )
    default_user_id: str = Field(
        default="default-user",
        description="Fixed user id for favorites (no multi-user partitioning)",
    )

    # Image provider (fal.ai)
    fal_key: str | None = Field(
        default=None,
        description="fal.ai API key",
    )
    fal_base_url: str = Field(
        default="https://fal.run",
        description="fal.ai synchronous run endpoint",
    )
    fal_model: str = Field(
        default="fal-ai/flux/schnell",
        description="fal.ai model path used for text-to-image",
    )

    # Prompt-variation provider (OpenAI)
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key (falls back to OPENAI_API_KEY when unset)",
    )
    variation_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model used to write prompt variations",
    )
    variation_temperature: float = Field(
        default=1.4,
        description="Sampling temperature for prompt variations",
        ge=0.0,
        le=2.0,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8080,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level applied by the server entry point",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def favorites_db_path(self) -> Path:
        """Full path of the SQLite favorites database."""
        return self.data_dir / self.favorites_db_name


# Global configuration instance
# Loads values from environment variables (PROMPTCANVAS_* prefix) and .env file.
config = CanvasConfig()
