"""
Variable Extractor - Collect variable identities from LaTeX math markup.

Walks the parsed markup left to right. A single letter, a Greek-letter macro
or a decorated base such as \\overline{x} starts a variable; an immediately
following subscript and then superscript may be folded into its identity:

    x_{i}      -> x_{i}         subscripts always fold
    x^{2}      -> x             numeric superscripts are exponents
    M^{sl}     -> M^{sl}        alphabetic superscripts fold
    e^{3x}     -> x             anything else is scanned for nested variables

Results are deduplicated, known constants (e, i, \\pi) are removed and the
identities are returned sorted.
"""

import logging
from enum import Enum
from typing import List, Optional, Set, Tuple

from ..converters.latex_parser import parse_latex
from ..models.markup_models import MarkupNode, NodeType
from .macro_registry import MacroRegistry, get_default_macro_registry

logger = logging.getLogger(__name__)

MODIFIER_MACROS = ("_", "^")


class ModifierKind(str, Enum):
    """Classification of a subscript or superscript argument."""

    EMPTY = "empty"  # Nothing but whitespace
    NUMERIC = "numeric"  # Digits only: an exponent
    ALPHABETIC = "alphabetic"  # Letters, Greek macros and nested pure modifiers
    MIXED = "mixed"  # Operators, other macros, letters with digits


def format_modifier(raw: str) -> str:
    """Brace a modifier for an identity. A single digit stays bare: x_1, x_{i}, x_{12}."""
    if len(raw) == 1 and raw.isdigit():
        return raw
    return "{" + raw + "}"


def nodes_to_latex(
    nodes: List[MarkupNode], registry: Optional[MacroRegistry] = None
) -> str:
    """Rebuild LaTeX text from markup nodes in the canonical identity form."""
    registry = registry or get_default_macro_registry()
    parts = []

    for node in nodes:
        if node.node_type == NodeType.STRING:
            parts.append(node.content)
        elif node.node_type == NodeType.WHITESPACE:
            parts.append(" ")
        elif node.node_type == NodeType.GROUP:
            # Bare braces only group: x_{a{b}} names x_{ab}
            parts.append(nodes_to_latex(node.children, registry))
        elif node.node_type == NodeType.MACRO:
            parts.append(_macro_to_latex(node, registry))
        # Comments are dropped

    return "".join(parts)


def _macro_to_latex(node: MarkupNode, registry: MacroRegistry) -> str:
    if node.content in MODIFIER_MACROS:
        if not node.args:
            return node.content
        return node.content + format_modifier(
            nodes_to_latex(node.args[0].content, registry)
        )

    if registry.is_decorator(node.content) and node.args:
        return f"\\{node.content}{{{nodes_to_latex(node.args[0].content, registry)}}}"

    text = f"\\{node.content}"
    for arg in node.args or []:
        text += arg.open_mark + nodes_to_latex(arg.content, registry) + arg.close_mark
    return text


class VariableBuilder:
    """
    Builds the identities contributed by one base and its modifiers.

    Subscripts always fold into the base. Superscripts fold only when purely
    alphabetic, vanish when numeric, and are otherwise scanned for nested
    variables on their own.
    """

    def __init__(self, base: str, extractor: "VariableExtractor"):
        self.base = base
        self.extractor = extractor
        self.subscript: Optional[List[MarkupNode]] = None
        self.superscript: Optional[List[MarkupNode]] = None

    def add_subscript(self, nodes: List[MarkupNode]):
        self.subscript = nodes

    def add_superscript(self, nodes: List[MarkupNode]):
        self.superscript = nodes

    def build(self) -> List[str]:
        classify = self.extractor.classify_modifier
        registry = self.extractor.registry

        identity = self.base
        has_subscript = (
            self.subscript is not None
            and classify(self.subscript) != ModifierKind.EMPTY
        )
        if has_subscript:
            identity += "_" + format_modifier(
                nodes_to_latex(self.subscript, registry)
            )

        if self.superscript is None:
            return [identity]

        kind = classify(self.superscript)
        if kind in (ModifierKind.EMPTY, ModifierKind.NUMERIC):
            return [identity]

        if kind == ModifierKind.ALPHABETIC and (
            has_subscript or not registry.is_constant(self.base)
        ):
            return [
                identity
                + "^"
                + format_modifier(nodes_to_latex(self.superscript, registry))
            ]

        # Constant raised to something, or a mixed superscript
        return [identity] + self.extractor.extract_from_nodes(self.superscript)


class VariableExtractor:
    """Extracts the distinct variable identities of a LaTeX expression."""

    def __init__(self, registry: Optional[MacroRegistry] = None):
        self.registry = registry or get_default_macro_registry()

    def extract(self, latex: str) -> List[str]:
        """
        Extract sorted variable identities from a LaTeX string.

        Never raises: a failure is logged and yields an empty list.
        """
        try:
            nodes = parse_latex(latex, self.registry)
            variables = self.extract_from_nodes(nodes)
            logger.debug(f"Extracted variables from '{latex}': {variables}")
            return variables
        except Exception as e:
            logger.error(f"Failed to extract variables from '{latex}': {e}")
            return []

    def extract_from_nodes(self, nodes: List[MarkupNode]) -> List[str]:
        variables: Set[str] = set()
        index = 0

        while index < len(nodes):
            found, index = self._extract_at(nodes, index)
            variables.update(found)

        return sorted(v for v in variables if not self.registry.is_constant(v))

    def _extract_at(
        self, nodes: List[MarkupNode], index: int
    ) -> Tuple[List[str], int]:
        """Extract from the node at ``index``. Returns the variables and the next index."""
        node = nodes[index]

        base = self._candidate_base(node)
        if base is not None:
            return self._build_variable(base, nodes, index + 1)

        if node.is_string:
            # Multi-character runs split into standalone letters
            return [ch for ch in node.content if _is_ascii_letter(ch)], index + 1

        if node.is_macro:
            if node.args is None:
                return [], index + 1
            # Detached modifiers and argument-taking macros: scan each argument.
            # Text-mode arguments arrive as merged runs and split into letters.
            found: List[str] = []
            for arg in node.args:
                found.extend(self.extract_from_nodes(arg.content))
            return found, index + 1

        if node.is_group:
            return self.extract_from_nodes(node.children), index + 1

        return [], index + 1

    def _candidate_base(self, node: MarkupNode) -> Optional[str]:
        """The base identity a node starts, if any."""
        if node.is_string:
            if len(node.content) == 1 and _is_ascii_letter(node.content):
                return node.content
            return None

        if not node.is_macro:
            return None

        if self.registry.is_variable_macro(node.content):
            return f"\\{node.content}"

        if self.registry.is_decorator(node.content) and node.args:
            content = nodes_to_latex(node.args[0].content, self.registry)
            return f"\\{node.content}{{{content}}}"

        return None

    def _build_variable(
        self, base: str, nodes: List[MarkupNode], index: int
    ) -> Tuple[List[str], int]:
        builder = VariableBuilder(base, self)

        if _is_modifier_at(nodes, index, "_"):
            builder.add_subscript(nodes[index].args[0].content)
            index += 1

        if _is_modifier_at(nodes, index, "^"):
            builder.add_superscript(nodes[index].args[0].content)
            index += 1

        return builder.build(), index

    def classify_modifier(self, nodes: List[MarkupNode]) -> ModifierKind:
        if _is_blank(nodes):
            return ModifierKind.EMPTY
        if _is_numeric(nodes):
            return ModifierKind.NUMERIC
        if self._is_alphabetic(nodes):
            return ModifierKind.ALPHABETIC
        return ModifierKind.MIXED

    def _is_alphabetic(self, nodes: List[MarkupNode]) -> bool:
        """
        Letters, variable macros and nested pure modifiers only.

        A known constant carrying its own superscript (x^{e^{y}}) is a function
        application rather than a name, so it makes the content mixed.
        """
        for index, node in enumerate(nodes):
            if node.node_type in (NodeType.WHITESPACE, NodeType.COMMENT):
                continue

            if node.is_string:
                if not node.content.isascii() or not node.content.isalpha():
                    return False
                if self._is_raised_constant(node.content, nodes, index):
                    return False
            elif node.is_group:
                if not self._is_alphabetic(node.children):
                    return False
            elif node.is_macro_named(*MODIFIER_MACROS):
                if not node.args:
                    return False
                if not all(self._is_alphabetic(arg.content) for arg in node.args):
                    return False
            elif node.is_macro and self.registry.is_variable_macro(node.content):
                if self._is_raised_constant(f"\\{node.content}", nodes, index):
                    return False
            else:
                return False

        return True

    def _is_raised_constant(
        self, identity: str, nodes: List[MarkupNode], index: int
    ) -> bool:
        return self.registry.is_constant(identity) and _is_modifier_at(
            nodes, index + 1, "^"
        )


def _is_ascii_letter(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_modifier_at(nodes: List[MarkupNode], index: int, mark: str) -> bool:
    return (
        index < len(nodes)
        and nodes[index].is_macro_named(mark)
        and bool(nodes[index].args)
    )


def _is_blank(nodes: List[MarkupNode]) -> bool:
    for node in nodes:
        if node.node_type in (NodeType.WHITESPACE, NodeType.COMMENT):
            continue
        if node.is_group and _is_blank(node.children):
            continue
        if node.is_string and not node.content.strip():
            continue
        return False
    return True


def _is_numeric(nodes: List[MarkupNode]) -> bool:
    for node in nodes:
        if node.node_type in (NodeType.WHITESPACE, NodeType.COMMENT):
            continue
        if node.is_string:
            if not (node.content.isascii() and node.content.isdigit()):
                return False
        elif node.is_group:
            if not _is_numeric(node.children):
                return False
        else:
            return False
    return True


def extract_latex_variables(
    latex: str, registry: Optional[MacroRegistry] = None
) -> List[str]:
    """Extract the sorted, distinct variable identities of a LaTeX expression."""
    return VariableExtractor(registry).extract(latex)


__all__ = [
    "ModifierKind",
    "VariableBuilder",
    "VariableExtractor",
    "extract_latex_variables",
    "format_modifier",
    "nodes_to_latex",
]
