"""Interface the pipeline needs from a hosted graphing calculator."""

from abc import ABC, abstractmethod
from typing import Any

from ..observer import HelperExpression

Expression = dict[str, Any]
CalculatorState = dict[str, Any]


class Calculator(ABC):
    """
    Abstract host calculator.

    Method names mirror the Desmos ``GraphingCalculator`` API; expressions and
    state are the plain JSON objects that API exchanges.
    """

    @abstractmethod
    async def get_expressions(self) -> list[Expression]:
        raise NotImplementedError

    @abstractmethod
    async def set_expression(self, expression: Expression) -> None:
        raise NotImplementedError

    @abstractmethod
    async def set_expressions(self, expressions: list[Expression]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_state(self) -> CalculatorState:
        raise NotImplementedError

    @abstractmethod
    async def set_state(self, state: CalculatorState) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_settings(self) -> dict[str, Any]:
        """Current global settings such as ``showGrid`` and ``showXAxis``."""
        raise NotImplementedError

    @abstractmethod
    async def update_settings(self, settings: dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def helper_expression(self, latex: str) -> HelperExpression:
        """
        Create a live helper expression.

        The returned helper receives a ``publish`` call each time the host
        computes a new numeric value for ``latex``.
        """
        raise NotImplementedError

    @abstractmethod
    async def async_screenshot(self, options: dict[str, Any]) -> str:
        """
        Render the current session.

        Args:
            options: ``asyncScreenshot`` options (width, height, mode, mathBounds)

        Returns:
            The rendered image as a data URL
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release host resources."""
        return None

    async def find_expression(self, expression_id: str) -> Expression | None:
        """Return the expression with ``expression_id``, if present."""
        for expression in await self.get_expressions():
            if expression.get("id") == expression_id:
                return expression
        return None
