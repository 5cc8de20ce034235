"""Bridge from push-based calculator value notifications to awaitables."""

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable

from .constants import EVALUATION_SUFFIX
from .errors import EvaluationError, EvaluationTimeout

if TYPE_CHECKING:
    from .calculator.base import Calculator

logger = logging.getLogger(__name__)

ValueCallback = Callable[[float], None]


class Subscription:
    """Handle returned by ``HelperExpression.observe``."""

    def __init__(self, helper: "HelperExpression", callback: ValueCallback):
        self._helper = helper
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        self._helper._remove(self._callback)


class HelperExpression:
    """
    A live numeric binding computed by the host from a LaTeX expression.

    The host adapter calls ``publish`` every time the computed value changes;
    any number of observers can subscribe to those notifications.
    """

    def __init__(
        self,
        helper_id: str,
        latex: str,
        release: Callable[[], Awaitable[None]] | None = None,
    ):
        """
        Initialize the helper.

        Args:
            helper_id: Identifier the host adapter uses to route notifications
            latex: Expression the value is computed from
            release: Coroutine function that tears down the host-side helper
        """
        self.id = helper_id
        self.latex = latex
        self.numeric_value: float | None = None
        self._callbacks: list[ValueCallback] = []
        self._release = release
        self._disposed = False

    @property
    def has_value(self) -> bool:
        return self.numeric_value is not None

    def observe(self, callback: ValueCallback) -> Subscription:
        """Invoke ``callback`` with every subsequently published value."""
        self._callbacks.append(callback)
        return Subscription(self, callback)

    def publish(self, value: float) -> None:
        """Record a newly computed value and notify observers."""
        self.numeric_value = value
        for callback in list(self._callbacks):
            callback(value)

    async def dispose(self) -> None:
        """Drop all observers and release the host-side helper."""
        self._callbacks.clear()
        if self._disposed:
            return
        self._disposed = True
        if self._release is not None:
            await self._release()

    def _remove(self, callback: ValueCallback) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def __repr__(self) -> str:
        return f"HelperExpression({self.latex!r}, value={self.numeric_value!r})"


async def next_value(
    helper: HelperExpression,
    timeout: float,
    *,
    current_ok: bool = False,
) -> float:
    """
    Wait for one notification from ``helper`` and unsubscribe.

    Args:
        helper: Helper expression to observe
        timeout: Seconds to wait before giving up
        current_ok: Return the already published value instead of waiting,
            if there is one

    Raises:
        EvaluationTimeout: If no notification arrives in time
    """
    if current_ok and helper.numeric_value is not None:
        return helper.numeric_value

    future: asyncio.Future[float] = asyncio.get_running_loop().create_future()
    subscription: Subscription | None = None

    def _resolve(value: float) -> None:
        if subscription is not None:
            subscription.unsubscribe()
        if not future.done():
            future.set_result(value)

    subscription = helper.observe(_resolve)
    try:
        return await asyncio.wait_for(future, timeout)
    except asyncio.TimeoutError:
        raise EvaluationTimeout(
            f"'{helper.latex}' produced no value within {timeout:g}s"
        ) from None
    finally:
        subscription.unsubscribe()


async def evaluate(calculator: "Calculator", latex: str, timeout: float) -> float:
    """
    Evaluate a LaTeX expression once through a throwaway helper expression.

    Raises:
        EvaluationTimeout: If the host never computes the expression
        EvaluationError: If the computed value is not a finite number
    """
    helper = await calculator.helper_expression(latex + EVALUATION_SUFFIX)
    try:
        value = await next_value(helper, timeout, current_ok=True)
    finally:
        await helper.dispose()

    if value is None or not math.isfinite(value):
        raise EvaluationError(f"'{latex}' evaluated to {value!r}")
    logger.debug("Evaluated %s = %s", latex, value)
    return value


async def wait_until_live(helpers: Iterable[HelperExpression], timeout: float) -> None:
    """Wait until every helper has produced at least one value."""
    tasks = [
        asyncio.ensure_future(next_value(helper, timeout, current_ok=True))
        for helper in helpers
    ]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
