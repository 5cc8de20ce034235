"""Host calculator adapters."""

from .base import Calculator, CalculatorState, Expression

__all__ = [
    "Calculator",
    "CalculatorState",
    "Expression",
]
