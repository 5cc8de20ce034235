"""Tests for the value observer bridge."""

import asyncio

import pytest

from desmos_animator.errors import EvaluationError, EvaluationTimeout
from desmos_animator.observer import HelperExpression, evaluate, next_value, wait_until_live


def test_observe_receives_every_value():
    helper = HelperExpression("h", "x")
    seen = []

    helper.observe(seen.append)
    helper.publish(1.0)
    helper.publish(2.0)

    assert seen == [1.0, 2.0]
    assert helper.numeric_value == 2.0


def test_unsubscribe_stops_notifications():
    helper = HelperExpression("h", "x")
    seen = []

    subscription = helper.observe(seen.append)
    helper.publish(1.0)
    subscription.unsubscribe()
    subscription.unsubscribe()
    helper.publish(2.0)

    assert seen == [1.0]
    assert subscription.active is False


def test_next_value_resolves_once_and_unsubscribes():
    """A one-shot read should take the first notification only."""

    async def scenario():
        helper = HelperExpression("h", "x")
        loop = asyncio.get_running_loop()
        loop.call_soon(helper.publish, 3.0)
        loop.call_soon(helper.publish, 4.0)
        value = await next_value(helper, timeout=1)
        await asyncio.sleep(0)
        return value, helper

    value, helper = asyncio.run(scenario())

    assert value == 3.0
    assert helper._callbacks == []


def test_next_value_can_use_current_value():
    async def scenario():
        helper = HelperExpression("h", "x")
        helper.publish(7.0)
        return await next_value(helper, timeout=0.01, current_ok=True)

    assert asyncio.run(scenario()) == 7.0


def test_next_value_times_out():
    """A helper that never computes should fail instead of hanging."""
    helper = HelperExpression("h", "\\frac{1}{")

    with pytest.raises(EvaluationTimeout, match="produced no value"):
        asyncio.run(next_value(helper, timeout=0.01))

    assert helper._callbacks == []


def test_evaluation_timeout_is_a_timeout_error():
    assert issubclass(EvaluationTimeout, TimeoutError)
    assert issubclass(EvaluationTimeout, EvaluationError)


def test_evaluate_appends_neutral_suffix(calculator):
    """Literal constants should evaluate through the same path as expressions."""
    value = asyncio.run(evaluate(calculator, "1", timeout=1))

    assert value == 1.0
    assert calculator.helper_latex == ["1+0"]
    assert calculator.released == ["1+0"]


def test_evaluate_resolves_variables(calculator):
    calculator.expressions["t"] = {"id": "t", "type": "expression", "latex": "T=2.5"}

    assert asyncio.run(evaluate(calculator, "T", timeout=1)) == 2.5


def test_evaluate_releases_helper_on_timeout(calculator):
    calculator.silent.add("T")

    with pytest.raises(EvaluationTimeout):
        asyncio.run(evaluate(calculator, "T", timeout=0.01))

    assert calculator.released == ["T+0"]


def test_evaluate_rejects_non_finite_values(calculator):
    with pytest.raises(EvaluationError, match="nan"):
        asyncio.run(evaluate(calculator, "nan", timeout=1))


def test_wait_until_live_requires_every_helper():
    async def scenario():
        helpers = [HelperExpression(f"h{i}", f"x_{i}") for i in range(3)]
        loop = asyncio.get_running_loop()
        for index, helper in enumerate(helpers):
            loop.call_later(0.001 * index, helper.publish, float(index))
        await wait_until_live(helpers, timeout=1)
        return helpers

    helpers = asyncio.run(scenario())

    assert [helper.numeric_value for helper in helpers] == [0.0, 1.0, 2.0]


def test_wait_until_live_fails_if_any_helper_is_silent():
    async def scenario():
        live = HelperExpression("a", "a")
        silent = HelperExpression("b", "b")
        asyncio.get_running_loop().call_soon(live.publish, 1.0)
        await wait_until_live([live, silent], timeout=0.01)

    with pytest.raises(EvaluationTimeout, match="'b'"):
        asyncio.run(scenario())


def test_dispose_releases_once():
    released = []

    async def release():
        released.append(True)

    async def scenario():
        helper = HelperExpression("h", "x", release=release)
        helper.observe(lambda value: None)
        await helper.dispose()
        await helper.dispose()
        return helper

    helper = asyncio.run(scenario())

    assert released == [True]
    assert helper._callbacks == []
