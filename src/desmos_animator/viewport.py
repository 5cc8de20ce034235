"""Viewport resolution and capture sizing."""

import math
from dataclasses import dataclass
from typing import Any

from .constants import CAPTURE_MODE
from .errors import CaptureError


@dataclass(frozen=True, slots=True)
class Viewport:
    """Rectangular math region, normalized so left <= right and bottom <= top."""

    left: float
    right: float
    bottom: float
    top: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    def to_math_bounds(self) -> dict[str, float]:
        return {
            "left": self.left,
            "right": self.right,
            "bottom": self.bottom,
            "top": self.top,
        }


def resolve_viewport(x1: float, x2: float, y1: float, y2: float) -> Viewport:
    """Build a viewport from two opposite corners dragged in any direction."""
    return Viewport(
        left=min(x1, x2),
        right=max(x1, x2),
        bottom=min(y1, y2),
        top=max(y1, y2),
    )


@dataclass(frozen=True, slots=True)
class CaptureOptions:
    """Screenshot request for one frame."""

    width: int
    height: int
    viewport: Viewport
    mode: str = CAPTURE_MODE

    @classmethod
    def for_viewport(cls, viewport: Viewport, resolution: float) -> "CaptureOptions":
        """
        Size a capture so that each calculator unit spans ``resolution`` pixels.

        Raises:
            CaptureError: If the viewport is not finite or collapses to less
                than one pixel
        """
        span_x = viewport.width * resolution
        span_y = viewport.height * resolution
        if not (math.isfinite(span_x) and math.isfinite(span_y)):
            raise CaptureError(f"Viewport {viewport} at resolution {resolution:g} is not finite")
        width = math.floor(span_x)
        height = math.floor(span_y)
        if width <= 0 or height <= 0:
            raise CaptureError(
                f"Viewport {viewport} at resolution {resolution:g} "
                f"gives an empty {width}x{height} capture"
            )
        return cls(width=width, height=height, viewport=viewport)

    def to_js(self) -> dict[str, Any]:
        """Options object for ``Calc.asyncScreenshot``."""
        return {
            "width": self.width,
            "height": self.height,
            "mode": self.mode,
            "mathBounds": self.viewport.to_math_bounds(),
        }
