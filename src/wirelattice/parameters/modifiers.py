"""
Modifier files and design-variable formulas.

A modifier file assigns a value per orbit. Values are numbers or formula
strings over named design variables, e.g. ``"{x} * 0.5 + 0.1"`` or
``"x * 0.5 + 0.1"``::

    thickness:
      type: vertex_orbit
      effective_orbits: [0, 2]
      thickness: [0.5, "{t} * 0.8"]
    vertex_offset:
      type: vertex_orbit
      effective_orbits: [1]
      offset_percentages: [[0.1, 0.0, "{dz}"]]
"""

import ast
import logging
import math
import operator
import re
from pathlib import Path
from typing import Literal, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from wirelattice.core.exceptions import ParameterError

logger = logging.getLogger(__name__)

Value = Union[float, str]

_BRACED = re.compile(r"\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}")

_BINARY = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}
_UNARY = {ast.UAdd: operator.pos, ast.USub: operator.neg}
_FUNCTIONS = {
    "abs": abs,
    "min": min,
    "max": max,
    "sqrt": math.sqrt,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "exp": math.exp,
    "log": math.log,
}
_CONSTANTS = {"pi": math.pi, "e": math.e}


def _parse(expression: str) -> ast.Expression:
    try:
        return ast.parse(_BRACED.sub(r"\1", expression), mode="eval")
    except SyntaxError as e:
        raise ParameterError(f"Invalid formula: {expression!r}") from e


def formula_variables(value: Value) -> set[str]:
    """Design variables a value refers to (empty for plain numbers)."""
    if not isinstance(value, str):
        return set()
    return {
        node.id for node in ast.walk(_parse(value))
        if isinstance(node, ast.Name) and node.id not in _FUNCTIONS and node.id not in _CONSTANTS
    }


def evaluate_formula(value: Value, variables: Optional[Mapping[str, float]] = None) -> float:
    """
    Evaluate a number or an arithmetic formula over design variables.

    Only numbers, variables, + - * / ** %, unary signs and a few math
    functions are allowed.

    Raises:
        ParameterError: On syntax errors, disallowed constructs, unknown
            variables, or arithmetic failures
    """
    if not isinstance(value, str):
        return float(value)
    variables = variables or {}

    def visit(node: ast.AST) -> float:
        if isinstance(node, ast.Expression):
            return visit(node.body)
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
            return float(node.value)
        if isinstance(node, ast.Name):
            if node.id in variables:
                return float(variables[node.id])
            if node.id in _CONSTANTS:
                return _CONSTANTS[node.id]
            raise ParameterError(f"Unknown design variable {node.id!r} in {value!r}")
        if isinstance(node, ast.BinOp) and type(node.op) in _BINARY:
            return _BINARY[type(node.op)](visit(node.left), visit(node.right))
        if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY:
            return _UNARY[type(node.op)](visit(node.operand))
        if (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id in _FUNCTIONS
            and not node.keywords
        ):
            return float(_FUNCTIONS[node.func.id](*(visit(arg) for arg in node.args)))
        raise ParameterError(
            f"Unsupported construct in formula {value!r}",
            details={"node": type(node).__name__},
        )

    try:
        return visit(_parse(value))
    except ParameterError:
        raise
    except (ArithmeticError, ValueError, TypeError) as e:
        raise ParameterError(f"Failed to evaluate formula {value!r}: {e}") from e


class ThicknessModifier(BaseModel):
    """Per-orbit thickness values."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["vertex_orbit", "edge_orbit"]
    effective_orbits: list[int]
    thickness: list[Value]

    @model_validator(mode="after")
    def _check_lengths(self) -> "ThicknessModifier":
        if len(self.effective_orbits) != len(self.thickness):
            raise ValueError("effective_orbits and thickness must have the same length")
        return self


class OffsetModifier(BaseModel):
    """Per-orbit vertex offsets, as fractions of the cell half-size."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["vertex_orbit"] = "vertex_orbit"
    effective_orbits: list[int]
    offset_percentages: list[tuple[Value, Value, Value]]

    @model_validator(mode="after")
    def _check_lengths(self) -> "OffsetModifier":
        if len(self.effective_orbits) != len(self.offset_percentages):
            raise ValueError("effective_orbits and offset_percentages must have the same length")
        return self


class ModifierFile(BaseModel):
    """On-disk modifier description (YAML or JSON)."""

    model_config = ConfigDict(extra="forbid")

    thickness: Optional[ThicknessModifier] = None
    vertex_offset: Optional[OffsetModifier] = None

    def values(self) -> list[Value]:
        found: list[Value] = []
        if self.thickness is not None:
            found += self.thickness.thickness
        if self.vertex_offset is not None:
            found += [v for row in self.vertex_offset.offset_percentages for v in row]
        return found


def load_modifier_file(file_path: str | Path) -> ModifierFile:
    """
    Raises:
        ParameterError: If the file is missing, unparseable, or has invalid
            structure or formulas
    """
    path = Path(file_path)
    if not path.exists():
        raise ParameterError(f"Modifier file not found: {path}", source=str(path))

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        modifiers = ModifierFile(**data)
    except (yaml.YAMLError, TypeError, ValidationError) as e:
        raise ParameterError(
            f"Failed to load modifier file: {path}",
            source=str(path),
            details={"error": str(e)},
        ) from e

    for value in modifiers.values():
        formula_variables(value)
    logger.debug("Loaded modifier file %s", path.name)
    return modifiers
