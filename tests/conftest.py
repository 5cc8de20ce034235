"""Shared fixtures: an in-memory stand-in for the Desmos calculator."""

import asyncio
import base64
import copy
import itertools
from io import BytesIO
from typing import Any

import pytest
from PIL import Image

from desmos_animator.calculator.base import Calculator
from desmos_animator.constants import (
    ANIMATE_ID,
    ANIMATE_VARIABLE,
    EVALUATION_SUFFIX,
    FOLDER_ID,
    START_ACTION_ID,
    TIME_VARIABLE,
)
from desmos_animator.observer import HelperExpression
from desmos_animator.output.base import VideoRecorder


def png_data_url(width: int, height: int, color=(255, 0, 0, 255)) -> str:
    """Encode a solid-color PNG as a data URL."""
    buffer = BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def frame_color(index: int) -> tuple[int, int, int, int]:
    """Distinct opaque color for the frame captured at ``index``."""
    return ((index * 37) % 256, (index * 91) % 256, (index * 13 + 50) % 256, 255)


class FakeCalculator(Calculator):
    """
    Minimal host calculator.

    Expressions of the form ``name=number`` define variables; helper
    expressions evaluate numbers and defined variable names and publish
    their values on a later loop iteration, like the real host does.
    """

    def __init__(
        self,
        expressions: list[dict[str, Any]] | None = None,
        settings: dict[str, Any] | None = None,
    ):
        self.expressions: dict[str, dict[str, Any]] = {}
        for expression in expressions or []:
            self.expressions[expression["id"]] = {"type": "expression", **copy.deepcopy(expression)}
        self.settings = {"showGrid": True, "showXAxis": True, "showYAxis": True}
        self.settings.update(settings or {})
        self.silent: set[str] = set()
        self.fail_screenshot_at: int | None = None
        self.screenshots: list[dict[str, Any]] = []
        self.helper_latex: list[str] = []
        self.released: list[str] = []
        self._live: dict[str, HelperExpression] = {}
        self._ids = itertools.count()

    # Calculator API

    async def get_expressions(self) -> list[dict[str, Any]]:
        return [copy.deepcopy(expression) for expression in self.expressions.values()]

    async def set_expression(self, expression: dict[str, Any]) -> None:
        self._merge(expression)
        self._republish()

    async def set_expressions(self, expressions: list[dict[str, Any]]) -> None:
        for expression in expressions:
            self._merge(expression)
        self._republish()

    async def get_state(self) -> dict[str, Any]:
        return {
            "version": 11,
            "graph": {"viewport": {"xmin": -10, "xmax": 10, "ymin": -10, "ymax": 10}},
            "expressions": {"list": await self.get_expressions()},
        }

    async def set_state(self, state: dict[str, Any]) -> None:
        self.expressions = {
            expression["id"]: copy.deepcopy(expression)
            for expression in state["expressions"]["list"]
        }
        self._republish()

    async def get_settings(self) -> dict[str, Any]:
        return dict(self.settings)

    async def update_settings(self, settings: dict[str, Any]) -> None:
        self.settings.update(settings)

    async def helper_expression(self, latex: str) -> HelperExpression:
        helper_id = f"helper-{next(self._ids)}"

        async def _release() -> None:
            self._live.pop(helper_id, None)
            self.released.append(latex)

        helper = HelperExpression(helper_id, latex, release=_release)
        self._live[helper_id] = helper
        self.helper_latex.append(latex)
        self._schedule(helper)
        return helper

    async def async_screenshot(self, options: dict[str, Any]) -> str:
        await asyncio.sleep(0)
        index = len(self.screenshots)
        folder = self.expressions.get(FOLDER_ID, {})
        start_action = self.expressions.get(START_ACTION_ID, {})
        self.screenshots.append({
            "options": copy.deepcopy(options),
            "time": self.variable(TIME_VARIABLE),
            "settings": dict(self.settings),
            "folder_hidden": folder.get("hidden", False),
            "start_action_secret": start_action.get("secret", False),
        })
        if self.fail_screenshot_at == index:
            raise RuntimeError("renderer crashed")
        return png_data_url(options["width"], options["height"], frame_color(index))

    # Test helpers

    def variable(self, name: str) -> float | None:
        for expression in self.expressions.values():
            latex = expression.get("latex", "")
            lhs, sep, rhs = latex.partition("=")
            if sep and lhs.strip() == name:
                try:
                    return float(rhs)
                except ValueError:
                    return None
        return None

    def evaluate(self, latex: str) -> float | None:
        while latex.endswith(EVALUATION_SUFFIX):
            latex = latex[: -len(EVALUATION_SUFFIX)]
        if latex in self.silent:
            return None
        try:
            return float(latex)
        except ValueError:
            return self.variable(latex)

    async def press_animate(self) -> None:
        """Run the ``a_nimate -> a_nimate + 1`` action."""
        current = self.variable(ANIMATE_VARIABLE) or 0
        await self.set_expression({"id": ANIMATE_ID, "latex": f"{ANIMATE_VARIABLE}={current + 1:g}"})

    def _merge(self, expression: dict[str, Any]) -> None:
        existing = self.expressions.get(expression["id"])
        if existing is None:
            self.expressions[expression["id"]] = {"type": "expression", **copy.deepcopy(expression)}
        else:
            existing.update(copy.deepcopy(expression))

    def _schedule(self, helper: HelperExpression) -> None:
        asyncio.get_running_loop().call_soon(self._publish, helper)

    def _publish(self, helper: HelperExpression) -> None:
        if helper.id not in self._live:
            return
        value = self.evaluate(helper.latex)
        if value is not None and value != helper.numeric_value:
            helper.publish(value)

    def _republish(self) -> None:
        for helper in list(self._live.values()):
            self._schedule(helper)


class TimelineRecorder(VideoRecorder):
    """Recorder that keeps every draw for inspection."""

    def __init__(self, path: str = ""):
        super().__init__(path)
        self.draws: list[tuple[float, tuple[int, ...]]] = []
        self.stopped_at: float | None = None
        self.aborted = False

    def _draw(self, image: Image.Image, timestamp_ms: float) -> None:
        self.draws.append((timestamp_ms, image.getpixel((0, 0))))

    def _finish(self, timestamp_ms: float) -> bytes:
        self.stopped_at = timestamp_ms
        return f"{len(self.draws)} frames".encode("ascii")

    def _abort(self) -> None:
        self.aborted = True


@pytest.fixture
def calculator() -> FakeCalculator:
    return FakeCalculator()


@pytest.fixture
def recorder(tmp_path) -> TimelineRecorder:
    return TimelineRecorder(str(tmp_path / "desmos.webm"))
