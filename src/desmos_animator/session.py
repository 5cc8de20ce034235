"""Session bootstrap: the bindings every render relies on."""

import logging
import math
from dataclasses import dataclass
from typing import Callable

from .calculator.base import Calculator, Expression
from .constants import (
    ANIMATE_ID,
    ANIMATE_VARIABLE,
    BINDING_PREFIX,
    CORNER_1_ID,
    CORNER_2_ID,
    DEFAULT_EDGE_VALUES,
    DEFAULT_TIME_RANGE,
    DEFAULT_TIMEOUT,
    EDGE_IDS,
    EDGE_VARIABLES,
    FOLDER_ID,
    FOLDER_TITLE,
    GREEN,
    RECT_ID,
    START_ACTION_ID,
    TIME_ID,
    TIME_VARIABLE,
)
from .errors import BootstrapError, EvaluationError
from .observer import HelperExpression, Subscription, wait_until_live
from .viewport import Viewport, resolve_viewport

logger = logging.getLogger(__name__)

_X1, _X2, _Y1, _Y2 = (EDGE_VARIABLES[key] for key in ("x1", "x2", "y1", "y2"))

RESERVED_TYPES: dict[str, str] = {
    FOLDER_ID: "folder",
    CORNER_1_ID: "expression",
    CORNER_2_ID: "expression",
    RECT_ID: "expression",
    ANIMATE_ID: "expression",
    START_ACTION_ID: "expression",
    TIME_ID: "expression",
    **{edge_id: "expression" for edge_id in EDGE_IDS},
}


def organizational_expressions() -> list[Expression]:
    """Bindings that are redeclared on every bootstrap."""
    return [
        {"id": FOLDER_ID, "hidden": False, "type": "folder"},
        {
            "id": CORNER_1_ID,
            "secret": True,
            "color": GREEN,
            "latex": rf"\left({_X1},{_Y1}\right)",
        },
        {
            "id": CORNER_2_ID,
            "secret": True,
            "color": GREEN,
            "latex": rf"\left({_X2},{_Y2}\right)",
        },
        {
            "id": RECT_ID,
            "secret": True,
            "color": GREEN,
            "fill": False,
            "latex": (
                r"\operatorname{polygon}\left(\left["
                rf"\left({_X1},{_Y1}\right),\left({_X1},{_Y2}\right),"
                rf"\left({_X2},{_Y2}\right),\left({_X2},{_Y1}\right)"
                r"\right]\right)"
            ),
        },
        {"id": ANIMATE_ID, "secret": True, "latex": f"{ANIMATE_VARIABLE}=0"},
        {
            "id": START_ACTION_ID,
            "secret": False,
            "latex": rf"{ANIMATE_VARIABLE} \to {ANIMATE_VARIABLE}+1",
        },
    ]


def default_edge_expressions() -> list[Expression]:
    """Corner coordinates, created only when the session has none."""
    return [
        {
            "id": f"{BINDING_PREFIX} {key}",
            "secret": True,
            "latex": f"{EDGE_VARIABLES[key]}={value:g}",
        }
        for key, value in DEFAULT_EDGE_VALUES.items()
    ]


def default_time_expression() -> Expression:
    minimum, maximum = DEFAULT_TIME_RANGE
    return {
        "id": TIME_ID,
        "latex": f"{TIME_VARIABLE}=0",
        "sliderBounds": {"min": minimum, "max": maximum},
    }


@dataclass(frozen=True)
class ViewportBindings:
    """Live helpers tracking the four corner coordinates."""

    x1: HelperExpression
    x2: HelperExpression
    y1: HelperExpression
    y2: HelperExpression

    def all(self) -> tuple[HelperExpression, ...]:
        return (self.x1, self.x2, self.y1, self.y2)


class Session:
    """
    Everything a render needs from a bootstrapped calculator.

    Created once by ``bootstrap`` and kept for the life of the process.
    """

    def __init__(
        self,
        calculator: Calculator,
        bindings: ViewportBindings,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.calculator = calculator
        self.bindings = bindings
        self.timeout = timeout
        self._animate: HelperExpression | None = None

    def viewport(self) -> Viewport:
        """Resolve the viewport from the current corner values."""
        values = []
        for helper in self.bindings.all():
            if helper.numeric_value is None:
                raise BootstrapError(f"Binding '{helper.latex}' has no value yet")
            if not math.isfinite(helper.numeric_value):
                raise EvaluationError(f"Binding '{helper.latex}' evaluated to {helper.numeric_value!r}")
            values.append(helper.numeric_value)
        return resolve_viewport(*values)

    async def watch_animate(self, handler: Callable[[float], None]) -> Subscription:
        """Call ``handler`` with every value the animate trigger takes."""
        if self._animate is None:
            self._animate = await self.calculator.helper_expression(ANIMATE_VARIABLE)
        return self._animate.observe(handler)

    async def close(self) -> None:
        helpers = list(self.bindings.all())
        if self._animate is not None:
            helpers.append(self._animate)
            self._animate = None
        for helper in helpers:
            await helper.dispose()


def _check_reserved_shapes(existing: dict[str, Expression]) -> None:
    for expression_id, expected in RESERVED_TYPES.items():
        expression = existing.get(expression_id)
        if expression is None:
            continue
        actual = expression.get("type", "expression")
        if actual != expected:
            raise BootstrapError(
                f"Expression '{expression_id}' is a {actual}, expected a {expected}"
            )


def _assign_folder(state: dict) -> dict:
    for expression in state.get("expressions", {}).get("list", []):
        expression_id = expression.get("id", "")
        if expression_id == FOLDER_ID:
            expression["title"] = FOLDER_TITLE
        elif expression_id.startswith(BINDING_PREFIX):
            expression["folderId"] = FOLDER_ID
    return state


async def bootstrap(calculator: Calculator, timeout: float = DEFAULT_TIMEOUT) -> Session:
    """
    Ensure the viewport, time and animate bindings exist exactly once.

    Existing edge and time bindings keep their values; only their folder
    placement is updated.

    Args:
        calculator: Host calculator to prepare
        timeout: Seconds to wait for the corner bindings to become live

    Raises:
        BootstrapError: If a reserved id holds an incompatible expression
        EvaluationTimeout: If a corner binding never produces a value
    """
    existing = {
        expression["id"]: expression
        for expression in await calculator.get_expressions()
        if "id" in expression
    }
    _check_reserved_shapes(existing)

    await calculator.set_expressions(organizational_expressions())

    missing_edges = [
        expression for expression in default_edge_expressions()
        if expression["id"] not in existing
    ]
    if missing_edges:
        await calculator.set_expressions(missing_edges)
    if TIME_ID not in existing:
        await calculator.set_expression(default_time_expression())

    state = await calculator.get_state()
    await calculator.set_state(_assign_folder(state))

    helpers = [await calculator.helper_expression(EDGE_VARIABLES[key]) for key in ("x1", "x2", "y1", "y2")]
    bindings = ViewportBindings(*helpers)
    try:
        await wait_until_live(bindings.all(), timeout)
    except BaseException:
        for helper in helpers:
            await helper.dispose()
        raise

    logger.info(
        "Session bootstrapped (%d edge and %d time bindings created)",
        len(missing_edges),
        0 if TIME_ID in existing else 1,
    )
    return Session(calculator, bindings, timeout=timeout)
