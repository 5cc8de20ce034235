"""Render cycle orchestration used by the CLI entry points."""

import asyncio
import enum
import logging
import math
from typing import Callable

from .assembler import assemble_video
from .config import RenderSettings
from .constants import START_ACTION_ID
from .errors import DesmosAnimatorError
from .observer import Subscription
from .output.base import VideoRecorder
from .sampler import capture_frames
from .scheduling import FrameScheduler
from .session import Session
from .viewport import CaptureOptions

logger = logging.getLogger(__name__)


class RenderState(enum.Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    ASSEMBLING = "assembling"


async def render_animation(
    session: Session,
    settings: RenderSettings,
    recorder: VideoRecorder,
    scheduler: FrameScheduler | None = None,
    on_state: Callable[[RenderState], None] | None = None,
) -> bytes:
    """
    Run one render cycle and return the encoded video.

    The start action is hidden for the duration of the cycle and shown
    again afterwards, whether or not the cycle succeeds.
    """
    notify = on_state or (lambda state: None)
    calculator = session.calculator
    options = CaptureOptions.for_viewport(session.viewport(), settings.resolution)

    await calculator.set_expression({"id": START_ACTION_ID, "secret": True})
    try:
        notify(RenderState.SAMPLING)
        frames = await capture_frames(calculator, settings, options, session.timeout)
        notify(RenderState.ASSEMBLING)
        return await assemble_video(
            frames, options.width, options.height, settings, recorder, scheduler
        )
    finally:
        notify(RenderState.IDLE)
        await calculator.set_expression({"id": START_ACTION_ID, "secret": False})


class RenderController:
    """
    Starts a render cycle whenever the animate trigger is non-zero.

    Only one cycle runs at a time; triggers that arrive while a cycle is in
    flight are dropped.
    """

    def __init__(
        self,
        session: Session,
        settings: RenderSettings,
        recorder: VideoRecorder,
        scheduler: FrameScheduler | None = None,
    ):
        self.session = session
        self.settings = settings
        self.recorder = recorder
        self.scheduler = scheduler
        self.state = RenderState.IDLE
        self.completed = 0
        self.dropped = 0
        self._task: asyncio.Task[None] | None = None
        self._subscription: Subscription | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Subscribe to the animate trigger."""
        if self._subscription is None:
            self._subscription = await self.session.watch_animate(self.trigger)

    async def stop(self) -> None:
        """Unsubscribe and wait for an in-flight cycle to finish."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def trigger(self, value: float) -> None:
        """Handle a new value of the animate trigger."""
        if value == 0 or math.isnan(value):
            return
        if self.busy:
            self.dropped += 1
            logger.warning("Render already in progress, ignoring animate=%g", value)
            return
        self._task = asyncio.ensure_future(self.run_cycle())

    async def run_cycle(self) -> None:
        """Render once and write the result; failures are logged, not raised."""
        logger.info("Render cycle started")
        try:
            data = await render_animation(
                self.session,
                self.settings,
                self.recorder,
                self.scheduler,
                on_state=self._set_state,
            )
            self.recorder.write(data)
        except (DesmosAnimatorError, OSError) as e:
            logger.error("Render cycle failed: %s", e)
            return
        except Exception:
            logger.exception("Render cycle failed unexpectedly")
            return
        self.completed += 1
        logger.info("Render cycle finished, wrote %s", self.recorder.path)

    def _set_state(self, state: RenderState) -> None:
        logger.debug("Render state %s -> %s", self.state.value, state.value)
        self.state = state
