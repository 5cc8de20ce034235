"""Render settings and environment-driven configuration."""

import os
from dataclasses import dataclass

from .constants import (
    DEFAULT_API_KEY,
    DEFAULT_API_VERSION,
    DEFAULT_DURATION,
    DEFAULT_FRAMES,
    DEFAULT_RESOLUTION,
    DEFAULT_TIMEOUT,
)


@dataclass(frozen=True, slots=True)
class RenderSettings:
    """Immutable per-run render configuration."""

    duration: float = DEFAULT_DURATION
    frames: int = DEFAULT_FRAMES
    resolution: float = DEFAULT_RESOLUTION

    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise ValueError(f"duration must be positive, got {self.duration}")
        if self.frames < 1:
            raise ValueError(f"frames must be at least 1, got {self.frames}")
        if self.resolution <= 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")

    @property
    def frame_delay_ms(self) -> float:
        """Display time of one frame in milliseconds."""
        return 1000 * self.duration / self.frames


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Host page and timeout configuration."""

    api_key: str = DEFAULT_API_KEY
    api_version: str = DEFAULT_API_VERSION
    timeout: float = DEFAULT_TIMEOUT
    headless: bool = True

    @classmethod
    def from_env(cls, headless: bool = True, timeout: float | None = None) -> "AppConfig":
        """
        Build configuration from ``DESMOS_*`` environment variables.

        Args:
            headless: Whether the browser runs without a window
            timeout: Explicit timeout overriding ``DESMOS_ANIMATOR_TIMEOUT``
        """
        if timeout is None:
            raw_timeout = os.getenv("DESMOS_ANIMATOR_TIMEOUT")
            try:
                timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
            except ValueError:
                raise ValueError(f"DESMOS_ANIMATOR_TIMEOUT must be a number, got {raw_timeout!r}")
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        return cls(
            api_key=os.getenv("DESMOS_API_KEY") or DEFAULT_API_KEY,
            api_version=os.getenv("DESMOS_API_VERSION") or DEFAULT_API_VERSION,
            timeout=timeout,
            headless=headless,
        )
