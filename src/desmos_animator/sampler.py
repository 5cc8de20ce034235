"""Frame sampling: sweep the time binding and capture one still per sample."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from .calculator.base import Calculator
from .config import RenderSettings
from .constants import CHROME_SETTINGS, DEFAULT_TIMEOUT, FOLDER_ID, TIME_ID, TIME_VARIABLE
from .errors import BootstrapError, CaptureError, DesmosAnimatorError
from .observer import evaluate
from .viewport import CaptureOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChromeSnapshot:
    """Visibility of the decorations hidden while capturing."""

    show_grid: bool
    show_x_axis: bool
    show_y_axis: bool
    folder_hidden: bool

    def settings(self) -> dict[str, bool]:
        return dict(zip(CHROME_SETTINGS, (self.show_grid, self.show_x_axis, self.show_y_axis)))


async def snapshot_chrome(calculator: Calculator) -> ChromeSnapshot:
    settings = await calculator.get_settings()
    folder = await calculator.find_expression(FOLDER_ID)
    show_grid, show_x_axis, show_y_axis = (bool(settings.get(key, True)) for key in CHROME_SETTINGS)
    return ChromeSnapshot(
        show_grid=show_grid,
        show_x_axis=show_x_axis,
        show_y_axis=show_y_axis,
        folder_hidden=bool(folder.get("hidden", False)) if folder else False,
    )


@asynccontextmanager
async def hidden_chrome(calculator: Calculator) -> AsyncIterator[ChromeSnapshot]:
    """Hide grid, axes and the viewport markers; restore them on exit."""
    snapshot = await snapshot_chrome(calculator)
    try:
        await calculator.update_settings({key: False for key in CHROME_SETTINGS})
        await calculator.set_expression({"id": FOLDER_ID, "hidden": True})
        yield snapshot
    finally:
        await calculator.set_expression({"id": FOLDER_ID, "hidden": snapshot.folder_hidden})
        await calculator.update_settings(snapshot.settings())


def latex_number(value: float) -> str:
    """Format a float as a LaTeX number literal (no exponent notation)."""
    text = repr(value)
    if "e" in text or "E" in text:
        text = f"{value:.20f}".rstrip("0").rstrip(".")
    return text


def sample_times(minimum: float, maximum: float, frames: int) -> list[float]:
    """Evenly spaced sample times covering ``[minimum, maximum]`` inclusively."""
    if frames < 1:
        raise ValueError(f"frames must be at least 1, got {frames}")
    if frames == 1:
        return [minimum]

    last = frames - 1
    times = [minimum + (i / last) * (maximum - minimum) for i in range(last)]
    times.append(maximum)
    return times


async def time_range(calculator: Calculator, timeout: float) -> tuple[float, float]:
    """Evaluate the declared slider bounds of the time binding."""
    expression = await calculator.find_expression(TIME_ID)
    if expression is None:
        raise BootstrapError(f"Time binding '{TIME_ID}' is missing")
    slider_bounds = expression.get("sliderBounds") or {}
    if "min" not in slider_bounds or "max" not in slider_bounds:
        raise BootstrapError(f"Time binding '{TIME_ID}' has no slider bounds")

    minimum = await evaluate(calculator, slider_bounds["min"], timeout)
    maximum = await evaluate(calculator, slider_bounds["max"], timeout)
    return minimum, maximum


async def capture_frame(
    calculator: Calculator,
    options: CaptureOptions,
    timeout: float,
) -> str:
    try:
        return await asyncio.wait_for(calculator.async_screenshot(options.to_js()), timeout)
    except asyncio.TimeoutError:
        raise CaptureError(f"Screenshot did not complete within {timeout:g}s") from None
    except DesmosAnimatorError:
        raise
    except Exception as e:
        raise CaptureError(f"Screenshot failed: {e}") from e


async def capture_frames(
    calculator: Calculator,
    settings: RenderSettings,
    options: CaptureOptions,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[str]:
    """
    Capture one still per sample of the time binding.

    Captures run strictly one after another: each screenshot renders the
    live session, so the next time value is assigned only after the
    previous capture has completed.

    Args:
        calculator: Bootstrapped host calculator
        settings: Render settings (only ``frames`` is used)
        options: Capture size and math bounds
        timeout: Seconds allowed per evaluation and per screenshot

    Returns:
        Encoded stills (data URLs) in sample order
    """
    async with hidden_chrome(calculator):
        minimum, maximum = await time_range(calculator, timeout)
        logger.info(
            "Capturing %d frames at %dx%d for %s in [%g, %g]",
            settings.frames, options.width, options.height, TIME_VARIABLE, minimum, maximum,
        )

        frames: list[str] = []
        for index, time in enumerate(sample_times(minimum, maximum, settings.frames)):
            await calculator.set_expression({"id": TIME_ID, "latex": f"{TIME_VARIABLE}={latex_number(time)}"})
            frames.append(await capture_frame(calculator, options, timeout))
            logger.debug("Captured frame %d/%d (t=%r)", index + 1, settings.frames, time)

    return frames
