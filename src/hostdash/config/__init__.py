"""Configuration — Pydantic models for hostdash settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

DEFAULT_CAPACITY = 512 * 1024
DEFAULT_LOW_WATERMARK = 256 * 1024


class ShellConfig(BaseModel):
    """Embedded shell configuration."""

    buffer_capacity: int = Field(
        default=DEFAULT_CAPACITY,
        gt=0,
        description="Hard cap on buffered shell output, in bytes",
    )
    low_watermark: int = Field(
        default=DEFAULT_LOW_WATERMARK,
        ge=0,
        description="Bytes kept after an overflow evicts the oldest output",
    )
    chunk_size: int = Field(default=4096, gt=0, description="Pty read size")
    term: str | None = Field(
        default=None,
        description="TERM for the child shell (default: inherit, else xterm-256color)",
    )
    eager_spawn: bool = Field(
        default=False, description="Start the shell at startup instead of on first use"
    )
    command: list[str] | None = Field(
        default=None,
        description="Explicit shell command line; overrides platform resolution",
    )

    @model_validator(mode="after")
    def _check_watermark(self) -> ShellConfig:
        if self.low_watermark >= self.buffer_capacity:
            raise ValueError(
                f"low_watermark ({self.low_watermark}) must be below "
                f"buffer_capacity ({self.buffer_capacity})"
            )
        return self


class UIConfig(BaseModel):
    """Dashboard display configuration."""

    tick_rate: float = Field(default=0.25, gt=0, description="Redraw interval (s)")
    metrics_interval: float = Field(
        default=1.0, gt=0, description="Metrics sampling interval (s)"
    )
    process_limit: int = Field(default=15, gt=0, description="Rows in process table")


class DashConfig(BaseModel):
    """Top-level hostdash configuration."""

    shell: ShellConfig = Field(default_factory=ShellConfig)
    ui: UIConfig = Field(default_factory=UIConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> DashConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            HOSTDASH_SHELL_EAGER      - Spawn the shell at startup (1/true/yes)
            HOSTDASH_TERM             - TERM value for the child shell
            HOSTDASH_BUFFER_CAPACITY  - Shell output buffer capacity in bytes
            HOSTDASH_TICK_RATE        - Redraw interval in seconds
        """
        load_dotenv()

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        shell = config_data.get("shell", {})
        ui = config_data.get("ui", {})

        env_eager = os.environ.get("HOSTDASH_SHELL_EAGER")
        if env_eager:
            shell["eager_spawn"] = env_eager.strip().lower() in ("1", "true", "yes")

        env_term = os.environ.get("HOSTDASH_TERM")
        if env_term:
            shell["term"] = env_term

        env_capacity = os.environ.get("HOSTDASH_BUFFER_CAPACITY")
        if env_capacity:
            capacity = int(env_capacity)
            shell["buffer_capacity"] = capacity
            # Keep the default half-capacity ratio unless set explicitly
            shell.setdefault("low_watermark", capacity // 2)

        env_tick = os.environ.get("HOSTDASH_TICK_RATE")
        if env_tick:
            ui["tick_rate"] = float(env_tick)

        if shell:
            config_data["shell"] = shell
        if ui:
            config_data["ui"] = ui

        return cls.model_validate(config_data)
