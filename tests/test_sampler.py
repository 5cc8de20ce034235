"""Tests for frame sampling."""

import asyncio
import itertools

import pytest

from conftest import FakeCalculator
from desmos_animator.config import RenderSettings
from desmos_animator.constants import FOLDER_ID, TIME_ID
from desmos_animator.errors import BootstrapError, CaptureError
from desmos_animator.sampler import (
    capture_frames,
    latex_number,
    sample_times,
    snapshot_chrome,
)
from desmos_animator.session import bootstrap
from desmos_animator.viewport import CaptureOptions, Viewport

OPTIONS = CaptureOptions.for_viewport(Viewport(left=0, right=4, bottom=0, top=3), resolution=2)


def test_sample_times_for_unit_range():
    assert sample_times(0, 1, 4) == [0, 1 / 3, 2 / 3, 1]


def test_sample_times_hit_endpoints_exactly():
    for minimum, maximum, frames in [(0.1, 0.7, 7), (-3, 11.3, 200), (2, -2, 5)]:
        times = sample_times(minimum, maximum, frames)

        assert len(times) == frames
        assert times[0] == minimum
        assert times[-1] == maximum
        for index, time in enumerate(times):
            assert time == pytest.approx(minimum + index / (frames - 1) * (maximum - minimum))


def test_sample_times_single_frame():
    """One frame should sample the start of the range without dividing by zero."""
    assert sample_times(2.5, 9, 1) == [2.5]


def test_sample_times_rejects_zero_frames():
    with pytest.raises(ValueError):
        sample_times(0, 1, 0)


def test_latex_number_avoids_exponents():
    assert latex_number(0.25) == "0.25"
    assert latex_number(-3.0) == "-3.0"
    assert latex_number(1e-7) == "0.0000001"
    assert "e" not in latex_number(1.5e20)


def run_capture(calculator: FakeCalculator, frames: int) -> list[str]:
    async def scenario():
        await bootstrap(calculator, timeout=1)
        return await capture_frames(calculator, RenderSettings(frames=frames), OPTIONS, timeout=1)

    return asyncio.run(scenario())


def test_capture_frames_sweeps_time_in_order(calculator):
    frames = run_capture(calculator, frames=4)

    assert len(frames) == 4
    assert all(frame.startswith("data:image/png;base64,") for frame in frames)
    assert [shot["time"] for shot in calculator.screenshots] == [0, 1 / 3, 2 / 3, 1]
    assert calculator.screenshots[0]["options"] == OPTIONS.to_js()


def test_capture_frames_evaluates_declared_range():
    """Slider bounds are expressions and must be evaluated each run."""
    calculator = FakeCalculator(
        expressions=[
            {"id": "period", "latex": "P=4"},
            {"id": TIME_ID, "latex": "t_{ime}=0", "sliderBounds": {"min": "-1", "max": "P"}},
        ]
    )

    run_capture(calculator, frames=6)

    assert [shot["time"] for shot in calculator.screenshots] == [-1, 0, 1, 2, 3, 4]
    assert "P+0" in calculator.helper_latex


def test_capture_frames_single_frame(calculator):
    run_capture(calculator, frames=1)

    assert [shot["time"] for shot in calculator.screenshots] == [0]


def test_capture_frames_hides_chrome_while_capturing(calculator):
    run_capture(calculator, frames=3)

    for shot in calculator.screenshots:
        assert shot["settings"] == {"showGrid": False, "showXAxis": False, "showYAxis": False}
        assert shot["folder_hidden"] is True


@pytest.mark.parametrize("fail", [False, True])
def test_capture_frames_restores_chrome(fail):
    """Chrome visibility should be restored for every initial state, even on failure."""
    for show_grid, show_axes, folder_hidden in itertools.product([True, False], repeat=3):
        calculator = FakeCalculator(
            settings={"showGrid": show_grid, "showXAxis": show_axes, "showYAxis": show_axes},
        )

        async def scenario():
            await bootstrap(calculator, timeout=1)
            await calculator.set_expression({"id": FOLDER_ID, "hidden": folder_hidden})
            before = await snapshot_chrome(calculator)
            if fail:
                calculator.fail_screenshot_at = 1
                with pytest.raises(CaptureError, match="renderer crashed"):
                    await capture_frames(calculator, RenderSettings(frames=3), OPTIONS, timeout=1)
            else:
                await capture_frames(calculator, RenderSettings(frames=3), OPTIONS, timeout=1)
            return before, await snapshot_chrome(calculator)

        before, after = asyncio.run(scenario())

        assert after == before
        assert before.folder_hidden is folder_hidden
        assert before.show_grid is show_grid


def test_capture_frames_restores_chrome_when_range_fails(calculator):
    async def scenario():
        await bootstrap(calculator, timeout=1)
        calculator.silent.add("1")
        with pytest.raises(TimeoutError):
            await capture_frames(calculator, RenderSettings(frames=3), OPTIONS, timeout=0.01)

    asyncio.run(scenario())

    assert calculator.settings == {"showGrid": True, "showXAxis": True, "showYAxis": True}
    assert calculator.expressions[FOLDER_ID]["hidden"] is False
    assert calculator.screenshots == []


def test_capture_frames_requires_time_binding():
    calculator = FakeCalculator()

    with pytest.raises(BootstrapError, match="missing"):
        asyncio.run(capture_frames(calculator, RenderSettings(frames=2), OPTIONS, timeout=1))


def test_capture_frames_times_out_stalled_screenshot(calculator):
    async def stalled(options):
        await asyncio.sleep(10)

    async def scenario():
        await bootstrap(calculator, timeout=1)
        calculator.async_screenshot = stalled
        await capture_frames(calculator, RenderSettings(frames=2), OPTIONS, timeout=0.01)

    with pytest.raises(CaptureError, match="did not complete"):
        asyncio.run(scenario())
