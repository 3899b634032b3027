"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `HELPSMITH_ENV_FILE` to point to it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """helpsmith settings.

    All fields are environment-configurable. Prefix is `HELPSMITH_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="HELPSMITH_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    log_level: str = Field(default="INFO")

    # Project layout
    toc_filename: str = Field(default="hmcontent.htm")
    frame_name: str = Field(default="hmcontent")
    cache_filename: str = Field(default=".helpsmith_cache.json")

    # Search
    search_max_results: int = Field(default=50, ge=1, le=500)
    search_min_query_length: int = Field(default=2, ge=1, le=10)
    snippet_length: int = Field(default=150, ge=20, le=2000)
    search_payload_max_chars: int = Field(default=15000, ge=100, le=1_000_000)
    stem_language: Literal["ru", "en"] = Field(default="ru")

    # Build waits for a running index pass at most attempts * interval seconds
    index_wait_attempts: int = Field(default=300, ge=0, le=10_000)
    index_wait_interval_s: float = Field(default=0.1, ge=0.0, le=10.0)

    # Artifacts
    output_dir: Path = Field(default=Path("build"))


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("HELPSMITH_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
