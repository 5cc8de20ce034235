"""Fixed-cadence schedulers driving frame draws and recorder finalization."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Sequence, TypeVar

from .constants import DEFAULT_TIMEOUT
from .errors import AssemblyError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Actions receive the time in milliseconds since the schedule started
DrawAction = Callable[[float], None]
FinalizeAction = Callable[[float], T]


def schedule_offsets(count: int, delay_ms: float) -> list[float]:
    """Offsets of ``count`` draws followed by the finalize offset."""
    if delay_ms <= 0:
        raise ValueError(f"delay must be positive, got {delay_ms}")
    return [delay_ms * index for index in range(count + 1)]


class FrameScheduler(ABC):
    """Runs draw ``i`` at ``delay * i`` and finalize at ``delay * len(draws)``."""

    @abstractmethod
    async def run(
        self,
        draws: Sequence[DrawAction],
        delay_ms: float,
        finalize: FinalizeAction[T],
    ) -> T:
        raise NotImplementedError


class VirtualClockScheduler(FrameScheduler):
    """
    Runs every action immediately, stamped with its exact scheduled offset.

    Recorders see the same timeline a real-time run would produce, without
    wall-clock jitter.
    """

    async def run(
        self,
        draws: Sequence[DrawAction],
        delay_ms: float,
        finalize: FinalizeAction[T],
    ) -> T:
        offsets = schedule_offsets(len(draws), delay_ms)
        for draw, offset in zip(draws, offsets):
            draw(offset)
        return finalize(offsets[-1])


class RealTimeScheduler(FrameScheduler):
    """Runs every action on the event loop at its wall-clock offset."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        """
        Args:
            timeout: Seconds allowed beyond the scheduled finalize time
        """
        self.timeout = timeout

    async def run(
        self,
        draws: Sequence[DrawAction],
        delay_ms: float,
        finalize: FinalizeAction[T],
    ) -> T:
        loop = asyncio.get_running_loop()
        offsets = schedule_offsets(len(draws), delay_ms)
        done: asyncio.Future[T] = loop.create_future()
        handles: list[asyncio.TimerHandle] = []
        start = loop.time()

        def _elapsed_ms() -> float:
            return (loop.time() - start) * 1000

        def _draw(action: DrawAction) -> None:
            if done.done():
                return
            try:
                action(_elapsed_ms())
            except Exception as e:
                done.set_exception(e)

        def _finalize() -> None:
            if done.done():
                return
            try:
                done.set_result(finalize(_elapsed_ms()))
            except Exception as e:
                done.set_exception(e)

        for draw, offset in zip(draws, offsets):
            handles.append(loop.call_later(offset / 1000, _draw, draw))
        handles.append(loop.call_later(offsets[-1] / 1000, _finalize))

        try:
            return await asyncio.wait_for(done, offsets[-1] / 1000 + self.timeout)
        except asyncio.TimeoutError:
            raise AssemblyError(
                f"Recorder did not finalize within {self.timeout:g}s of the schedule end"
            ) from None
        finally:
            for handle in handles:
                handle.cancel()
