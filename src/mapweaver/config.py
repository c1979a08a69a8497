"""Document settings.

Timers, presentation defaults and diagnostics switches shared by every `MindMapDocument`.
Values come from `MAPWEAVER_*` environment variables or an env file (see `load_settings`).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


ColorSetName = Literal["vibrant", "gentle", "pastel", "nord", "warm", "cool", "monochrome", "sunset"]


class Settings(BaseSettings):
    """Per-process document settings (env prefix `MAPWEAVER_`)."""

    model_config = SettingsConfigDict(
        env_prefix="MAPWEAVER_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    log_level: str = Field(default="INFO")

    # Timers
    history_debounce_ms: int = Field(default=120, ge=0, le=10_000)
    layout_debounce_ms: int = Field(default=50, ge=0, le=10_000)
    frame_interval_ms: int = Field(default=16, ge=0, le=1_000)

    # History
    # 0 keeps every snapshot
    max_history: int = Field(default=0, ge=0)

    # Layout / presentation
    auto_layout: bool = Field(default=True)
    color_set: ColorSetName = Field(default="vibrant")
    font_size: int = Field(default=14, ge=8, le=72)
    default_node_text: str = Field(default="New Node")

    # Diagnostics
    verify_integrity: bool = Field(default=False)


def _resolve_env_file() -> Path | None:
    override = os.getenv("MAPWEAVER_ENV_FILE")
    if override:
        return Path(override)
    local = Path.cwd() / ".env"
    return local if local.exists() else None


def load_settings(**overrides: Any) -> Settings:
    """Load settings from the environment and an optional env file.

    The env file is `MAPWEAVER_ENV_FILE` when set, else `.env` in the working directory.
    Keyword overrides win over both.

    Returns:
        Settings: Parsed settings.
    """

    return Settings(_env_file=_resolve_env_file(), **overrides)
