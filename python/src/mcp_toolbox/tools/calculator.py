"""Calculator tools: basic floating-point arithmetic."""

from __future__ import annotations

import math
from typing import Any, Dict, List

from mcp_toolbox.core.errors import DomainError
from mcp_toolbox.core.format import ToolDescriptor, ToolParameter
from mcp_toolbox.core.registry import ToolEntry


def _binary(name: str, description: str, left: str = "a", right: str = "b") -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=description,
        parameters=(
            ToolParameter(name=left, type="number"),
            ToolParameter(name=right, type="number"),
        ),
    )


ADD = _binary("add", "Add two numbers together")
SUBTRACT = _binary("subtract", "Subtract b from a")
MULTIPLY = _binary("multiply", "Multiply two numbers")
DIVIDE = _binary("divide", "Divide a by b. Returns error if b is zero")
POWER = _binary(
    "power", "Calculate base raised to the power of exponent", "base", "exponent"
)
SQRT = ToolDescriptor(
    name="sqrt",
    description="Calculate the square root of a number. Returns error if number is negative",
    parameters=(ToolParameter(name="number", type="number"),),
)


def _is_odd_integer(x: float) -> bool:
    return math.isfinite(x) and x == int(x) and int(x) % 2 == 1


def _pow(base: float, exponent: float) -> float:
    # math.pow raises where IEEE-754 pow yields inf/nan; map those back.
    try:
        return math.pow(base, exponent)
    except OverflowError:
        if base < 0 and _is_odd_integer(exponent):
            return -math.inf
        return math.inf
    except ValueError:
        if base == 0:
            return math.copysign(math.inf, base) if _is_odd_integer(exponent) else math.inf
        return math.nan


class Calculator:
    """Stateless arithmetic tools."""

    def add(self, args: Dict[str, Any]) -> float:
        return args["a"] + args["b"]

    def subtract(self, args: Dict[str, Any]) -> float:
        return args["a"] - args["b"]

    def multiply(self, args: Dict[str, Any]) -> float:
        return args["a"] * args["b"]

    def divide(self, args: Dict[str, Any]) -> float:
        if args["b"] == 0:
            raise DomainError("Cannot divide by zero")
        return args["a"] / args["b"]

    def power(self, args: Dict[str, Any]) -> float:
        return _pow(args["base"], args["exponent"])

    def sqrt(self, args: Dict[str, Any]) -> float:
        if args["number"] < 0:
            raise DomainError("Cannot calculate square root of negative number")
        return math.sqrt(args["number"])

    def tools(self) -> List[ToolEntry]:
        return [
            (ADD, self.add),
            (SUBTRACT, self.subtract),
            (MULTIPLY, self.multiply),
            (DIVIDE, self.divide),
            (POWER, self.power),
            (SQRT, self.sqrt),
        ]
