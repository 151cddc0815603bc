"""
Equation Parts - Split an equation into declaration, body and constraint.

    f(x)=1/x, x\\neq 0   ->   ("f(x)", "1/x", " x\\neq 0")

The split runs over the parsed markup so separators inside macro arguments
(subscripts, superscripts, fractions) are never seen. The returned parts are
exact slices of the input.
"""

import logging
from typing import Iterator, List, Optional

from pydantic import BaseModel, ConfigDict

from ..converters.latex_parser import parse_latex
from ..models.markup_models import MarkupNode
from .macro_registry import MacroRegistry

logger = logging.getLogger(__name__)

# An '=' right after one of these is part of <=, >=, != or an escaped macro
COMPARISON_PREFIXES = ("<", ">", "!", "\\")

OPENING_BRACKETS = ("(", "[")
CLOSING_BRACKETS = (")", "]")


class EquationParts(BaseModel):
    """The three parts of an equation. Unpacks like a (declaration, body, constraint) tuple."""

    declaration: str = ""
    body: str = ""
    constraint: str = ""

    model_config = ConfigDict(frozen=True)

    def as_tuple(self):
        return (self.declaration, self.body, self.constraint)

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_tuple())

    def __getitem__(self, index):
        return self.as_tuple()[index]

    def __len__(self) -> int:
        return 3


def _find_assignment(nodes: List[MarkupNode]) -> Optional[int]:
    """Offset of the first top-level '=' that is not part of a comparison."""
    previous = None
    for node in nodes:
        if node.is_string and node.content == "=" and node.position is not None:
            is_comparison = (
                previous is not None
                and previous.is_string
                and previous.content.endswith(COMPARISON_PREFIXES)
            )
            if not is_comparison:
                return node.position.start
        previous = node
    return None


def _find_top_level_comma(nodes: List[MarkupNode], resume: int) -> Optional[int]:
    """Offset of the first ',' at or after ``resume`` outside brackets and \\left...\\right."""
    bracket_depth = 0
    delimiter_depth = 0

    for node in nodes:
        if node.position is None or node.position.start < resume:
            continue

        if node.is_macro_named("left"):
            delimiter_depth += 1
        elif node.is_macro_named("right"):
            delimiter_depth -= 1
        elif node.is_string:
            if node.content in OPENING_BRACKETS:
                bracket_depth += 1
            elif node.content in CLOSING_BRACKETS:
                bracket_depth -= 1
            elif node.content == "," and bracket_depth == 0 and delimiter_depth == 0:
                return node.position.start

    return None


def _split_equation(
    equation: str, macro_registry: Optional[MacroRegistry]
) -> EquationParts:
    if not equation:
        return EquationParts()

    nodes = parse_latex(equation, macro_registry)
    if not nodes:
        return EquationParts()

    equals_at = _find_assignment(nodes)
    if equals_at is None:
        declaration = ""
        resume = 0
    else:
        declaration = equation[:equals_at]
        resume = equals_at + 1

    comma_at = _find_top_level_comma(nodes, resume)
    if comma_at is None:
        return EquationParts(declaration=declaration, body=equation[resume:])

    return EquationParts(
        declaration=declaration,
        body=equation[resume:comma_at],
        constraint=equation[comma_at + 1 :],
    )


def extract_equation_parts(
    equation: str, macro_registry: Optional[MacroRegistry] = None
) -> EquationParts:
    """
    Split an equation on its first assignment '=' and first top-level ','.

    Never raises: on an unexpected failure the whole input is returned as the body.
    """
    try:
        parts = _split_equation(equation, macro_registry)
        logger.debug(f"Split equation '{equation}' into {parts.as_tuple()}")
        return parts
    except Exception as e:
        logger.error(f"Failed to split equation '{equation}': {e}")
        return EquationParts(body=equation or "")


__all__ = ["EquationParts", "extract_equation_parts"]
