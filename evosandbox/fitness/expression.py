"""Restricted arithmetic expressions for user-supplied fitness functions.

Source is parsed with :mod:`ast` in ``eval`` mode and checked against a
whitelist before it is compiled. Only arithmetic, comparisons, boolean and
conditional expressions, calls to a fixed set of math functions and the names
``x, y, z, w, genes`` are accepted. Numeric literals are coerced to float so
integer exponent towers overflow instead of running unbounded.
"""

from __future__ import annotations

import ast
import math
from types import SimpleNamespace
from typing import Any, Sequence

from evosandbox.exceptions import FitnessCompilationError, UnsafeExpressionError
from evosandbox.fitness.presets import FitnessFunction

__all__ = ["compile_expression", "normalize_source", "ALLOWED_FUNCTIONS", "GENE_NAMES"]

GENE_NAMES = ("x", "y", "z", "w")


def _sign(v: float) -> float:
    if v == 0:
        return 0.0
    return math.copysign(1.0, v)


def _round(v: float) -> float:
    return float(math.floor(v + 0.5))


ALLOWED_FUNCTIONS: dict[str, Any] = {
    "abs": abs,
    "acos": math.acos,
    "asin": math.asin,
    "atan": math.atan,
    "atan2": math.atan2,
    "ceil": math.ceil,
    "cos": math.cos,
    "cosh": math.cosh,
    "exp": math.exp,
    "floor": math.floor,
    "hypot": math.hypot,
    "log": math.log,
    "max": max,
    "min": min,
    "pow": math.pow,
    "round": _round,
    "sign": _sign,
    "sin": math.sin,
    "sinh": math.sinh,
    "sqrt": math.sqrt,
    "tan": math.tan,
    "tanh": math.tanh,
}
ALLOWED_CONSTANTS: dict[str, float] = {"pi": math.pi, "e": math.e, "PI": math.pi, "E": math.e}
MODULE_ALIASES = ("math", "Math")

_ALLOWED_NODES: tuple[type[ast.AST], ...] = (
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.BoolOp,
    ast.Compare,
    ast.IfExp,
    ast.Call,
    ast.Name,
    ast.Load,
    ast.Constant,
    ast.Subscript,
    ast.Attribute,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.FloorDiv,
    ast.Mod,
    ast.Pow,
    ast.USub,
    ast.UAdd,
    ast.Not,
    ast.And,
    ast.Or,
    ast.Eq,
    ast.NotEq,
    ast.Lt,
    ast.LtE,
    ast.Gt,
    ast.GtE,
)

_MODULE_NAMESPACE = SimpleNamespace(**ALLOWED_FUNCTIONS, **ALLOWED_CONSTANTS)
_GLOBALS: dict[str, Any] = {
    "__builtins__": {},
    **ALLOWED_FUNCTIONS,
    **ALLOWED_CONSTANTS,
    **{alias: _MODULE_NAMESPACE for alias in MODULE_ALIASES},
}
_VARIABLE_NAMES = frozenset((*GENE_NAMES, "genes"))


class _GeneView(tuple):
    """Read-only gene tuple indexable by float-valued expressions."""

    def __getitem__(self, index):
        return tuple.__getitem__(self, int(index))


class _FloatLiterals(ast.NodeTransformer):
    """Rewrites every numeric literal as a float."""

    def visit_Constant(self, node: ast.Constant) -> ast.Constant:
        if isinstance(node.value, bool):
            return node
        if isinstance(node.value, (int, float)):
            return ast.copy_location(ast.Constant(value=float(node.value)), node)
        return node


def normalize_source(source: str) -> str:
    """Accept ``return <expr>;`` as well as a bare expression."""
    text = source.strip()
    while text.endswith(";"):
        text = text[:-1].rstrip()
    if text.startswith("return ") or text.startswith("return("):
        text = text[len("return") :].strip()
    return text


def _check_node(node: ast.AST) -> None:
    if not isinstance(node, _ALLOWED_NODES):
        raise UnsafeExpressionError(f"Unsupported syntax: {type(node).__name__}")

    if isinstance(node, ast.Constant) and not isinstance(node.value, (int, float)):
        raise UnsafeExpressionError(f"Unsupported literal: {node.value!r}")

    if isinstance(node, ast.Name):
        allowed = _VARIABLE_NAMES | ALLOWED_FUNCTIONS.keys() | ALLOWED_CONSTANTS.keys()
        if node.id not in allowed and node.id not in MODULE_ALIASES:
            raise UnsafeExpressionError(f"Unknown name: {node.id}")

    if isinstance(node, ast.Attribute):
        if not (isinstance(node.value, ast.Name) and node.value.id in MODULE_ALIASES):
            raise UnsafeExpressionError("Attribute access is only allowed on math")
        if node.attr not in ALLOWED_FUNCTIONS and node.attr not in ALLOWED_CONSTANTS:
            raise UnsafeExpressionError(f"Unknown math member: {node.attr}")

    if isinstance(node, ast.Call):
        if node.keywords:
            raise UnsafeExpressionError("Keyword arguments are not supported")
        func = node.func
        if isinstance(func, ast.Name):
            if func.id not in ALLOWED_FUNCTIONS:
                raise UnsafeExpressionError(f"Unknown function: {func.id}")
        elif not isinstance(func, ast.Attribute):
            raise UnsafeExpressionError("Only math functions can be called")

    if isinstance(node, ast.Subscript):
        if not (isinstance(node.value, ast.Name) and node.value.id == "genes"):
            raise UnsafeExpressionError("Only genes[...] can be indexed")


def compile_expression(source: str) -> FitnessFunction:
    """Compile *source* into a fitness function over a gene sequence.

    Raises:
        FitnessCompilationError: the source is empty or not a valid expression.
        UnsafeExpressionError: the source uses syntax outside the whitelist.
    """
    text = normalize_source(source)
    if not text:
        raise FitnessCompilationError("Provide custom fitness code or select a preset.")

    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as exc:
        raise FitnessCompilationError(
            f"SyntaxError at offset {exc.offset}: {exc.msg}"
        ) from exc
    except (RecursionError, MemoryError, ValueError) as exc:
        raise FitnessCompilationError(f"Expression too complex to parse: {exc}") from exc

    for node in ast.walk(tree):
        _check_node(node)

    # Both the transformer and the bytecode compiler recurse over the tree.
    try:
        tree = ast.fix_missing_locations(_FloatLiterals().visit(tree))
        code = compile(tree, "<custom-fitness>", "eval")
    except (SyntaxError, RecursionError, MemoryError, ValueError) as exc:
        raise FitnessCompilationError(f"Expression too complex to compile: {exc}") from exc

    def evaluate(genes: Sequence[float]) -> float:
        padded = list(genes[: len(GENE_NAMES)])
        padded += [0.0] * (len(GENE_NAMES) - len(padded))
        local_vars: dict[str, Any] = dict(zip(GENE_NAMES, padded))
        local_vars["genes"] = _GeneView(genes)
        return float(eval(code, _GLOBALS, local_vars))  # noqa: S307 - whitelisted AST

    return evaluate
