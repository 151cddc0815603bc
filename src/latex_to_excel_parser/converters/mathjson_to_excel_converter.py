"""
MathJSON to Excel Converter - Converts MathJSON expression trees to Excel formulas.

A MathJSON expression is a number, a symbol string, or a list whose first
element is a head (operator/function name) followed by argument expressions.
The converter walks the tree recursively and renders each head through the
mapping table in config/excel_mappings.yaml.
"""

import logging
import math
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import yaml

from ..models.excel_models import (
    AlgebraMode,
    ExcelMapping,
    ExcelMappingRegistry,
    MappingKind,
    VariableBinding,
)

logger = logging.getLogger(__name__)

DEFAULT_MAPPINGS_PATH = (
    Path(__file__).parent.parent / "config" / "excel_mappings.yaml"
)

MathJSON = Union[int, float, str, List[Any]]
VariableMap = Dict[str, str]


class ExcelTranslationError(Exception):
    """Base error for expressions that have no valid Excel rendering."""

    pass


class UnsupportedOperatorError(ExcelTranslationError):
    """Raised when a MathJSON head has no entry in the mapping table."""

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f'No Excel equivalent for operator "{operator}"')


class UnknownNodeTypeError(ExcelTranslationError):
    """Raised for values that are not a number, a symbol or a headed list."""

    pass


class MalformedExpressionError(ExcelTranslationError):
    """Raised when a head lacks arguments its rendering needs, or the tree is too deep."""

    pass


def load_mapping_registry(
    path: Optional[Union[str, Path]] = None,
) -> ExcelMappingRegistry:
    """
    Load a constant/operator/function table from YAML.

    Args:
        path: Path to a mappings YAML file. Defaults to the packaged excel_mappings.yaml.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    config_path = Path(path) if path is not None else DEFAULT_MAPPINGS_PATH
    if not config_path.exists():
        logger.error(f"Mapping config file not found: {config_path}")
        raise FileNotFoundError(f"Mapping config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    registry = ExcelMappingRegistry(
        constants={
            str(name): str(value)
            for name, value in (config.get("constants") or {}).items()
        }
    )

    for tag, entry in (config.get("operators") or {}).items():
        registry.add_mapping(
            ExcelMapping(tag=str(tag), kind=MappingKind.OPERATOR, **(entry or {}))
        )
    for tag, entry in (config.get("functions") or {}).items():
        registry.add_mapping(
            ExcelMapping(tag=str(tag), kind=MappingKind.FUNCTION, **(entry or {}))
        )

    logger.debug(
        f"Loaded {len(registry.mappings)} mappings and "
        f"{len(registry.constants)} constants from {config_path}"
    )
    return registry


def create_default_mapping_registry() -> ExcelMappingRegistry:
    """Create a fresh registry from the packaged mapping table."""
    return load_mapping_registry(DEFAULT_MAPPINGS_PATH)


class MathJSONToExcelConverter:
    """
    Converts MathJSON expressions to Excel formula text.

    Key rules:
    1. Numbers render with str(), symbols go through constants, then the variable map
    2. Operators join their arguments and wrap the whole chain in one pair of parentheses
    3. Functions render as NAME(a,b), through a format template, or through a callable
    4. Heads missing from the table raise instead of guessing a formula
    """

    def __init__(
        self,
        registry: Optional[ExcelMappingRegistry] = None,
        algebra_mode: Optional[AlgebraMode] = None,
    ):
        if registry is None:
            registry = create_default_mapping_registry()
        if algebra_mode is not None:
            registry = algebra_mode.apply(registry)
        self.registry = registry
        logger.debug("MathJSON to Excel converter initialized")

    def convert_to_excel(
        self, expression: MathJSON, var_map: Optional[VariableMap] = None
    ) -> str:
        """
        Convert a MathJSON expression to an Excel formula.

        Args:
            expression: MathJSON number, symbol or headed list
            var_map: Symbol name to cell reference mapping

        Returns:
            str: Formula text starting with "="

        Raises:
            UnsupportedOperatorError: A head has no Excel equivalent
            UnknownNodeTypeError: A value is not valid MathJSON
            MalformedExpressionError: A head lacks arguments, or the tree is too deep

        Example:
            Input: ["Add", "x", 1] with {"x": "A1"}
            Output: "=(A1+1)"
        """
        formula = "=" + self._convert_root(expression, var_map or {})
        logger.debug(f"Converted MathJSON to Excel: {formula}")
        return formula

    def can_convert(
        self, expression: MathJSON, var_map: Optional[VariableMap] = None
    ) -> bool:
        """Check whether convert_to_excel would succeed."""
        try:
            self._convert_root(expression, var_map or {})
            return True
        except ExcelTranslationError as e:
            logger.debug(f"Expression cannot be converted: {e}")
            return False

    def _convert_root(self, expression: MathJSON, var_map: VariableMap) -> str:
        try:
            return self._convert_node(expression, var_map)
        except RecursionError:
            raise MalformedExpressionError("Expression is nested too deeply to convert")

    def _convert_number(self, node: Union[int, float]) -> str:
        if isinstance(node, float) and not math.isfinite(node):
            # Excel has no infinity literal; the table maps it to a large sentinel
            constant = None
            if math.isinf(node):
                name = "PositiveInfinity" if node > 0 else "NegativeInfinity"
                constant = self.registry.get_constant(name)
            if constant is None:
                raise UnknownNodeTypeError(f"Unknown node type: {node!r}")
            return constant
        return str(node)

    def _convert_node(
        self, node: Any, var_map: VariableMap, in_subscript: bool = False
    ) -> str:
        """Core recursive method: dispatch on the MathJSON value shape."""
        # bool is an int subclass but is not a MathJSON number
        if isinstance(node, bool):
            raise UnknownNodeTypeError(f"Unknown node type: {node!r}")
        if isinstance(node, (int, float)):
            return self._convert_number(node)
        if isinstance(node, str):
            return self._convert_symbol(node, var_map)
        if isinstance(node, (list, tuple)):
            return self._convert_expression(node, var_map, in_subscript)

        raise UnknownNodeTypeError(f"Unknown node type: {node!r}")

    def _convert_symbol(self, symbol: str, var_map: VariableMap) -> str:
        constant = self.registry.get_constant(symbol)
        if constant is not None:
            return constant
        return var_map.get(symbol) or symbol

    def _convert_expression(
        self, node: Union[list, tuple], var_map: VariableMap, in_subscript: bool
    ) -> str:
        if not node or not isinstance(node[0], str):
            raise UnknownNodeTypeError(f"Unknown node type: {list(node)!r}")

        head, args = node[0], node[1:]
        mapping = self.registry.get_mapping(head)
        if mapping is None:
            raise UnsupportedOperatorError(head)

        excel_args = [
            self._convert_node(arg, var_map, index in mapping.index_arguments)
            for index, arg in enumerate(args)
        ]

        if mapping.is_operator:
            return self._convert_operator(mapping, excel_args, in_subscript)
        return self._convert_function(mapping, excel_args)

    def _convert_operator(
        self, mapping: ExcelMapping, excel_args: List[str], in_subscript: bool
    ) -> str:
        if in_subscript and mapping.subscript_symbol is not None:
            return mapping.subscript_symbol.join(excel_args)
        return f"({mapping.symbol.join(excel_args)})"

    def _convert_function(self, mapping: ExcelMapping, excel_args: List[str]) -> str:
        if mapping.name is not None:
            return f"{mapping.name}({','.join(excel_args)})"

        try:
            if mapping.template is not None:
                return mapping.template.format(*excel_args)
            return mapping.custom(excel_args)
        except IndexError:
            raise MalformedExpressionError(
                f'Operator "{mapping.tag}" expects more than {len(excel_args)} argument(s)'
            )


def build_variable_map(
    bindings: Iterable[VariableBinding],
    symbol_resolver: Optional[Callable[[str], str]] = None,
) -> VariableMap:
    """
    Build a variable map from variable panel rows.

    Args:
        bindings: Rows pairing a LaTeX variable with a cell reference
        symbol_resolver: Maps a LaTeX variable to its MathJSON symbol name.
            Defaults to using the LaTeX text unchanged.

    Rows without a LaTeX variable are skipped. Later rows win on duplicate keys.
    """
    resolve = symbol_resolver or (lambda latex_var: latex_var)
    var_map: VariableMap = {}
    for binding in bindings:
        if binding.is_blank:
            continue
        var_map[resolve(binding.latex_var)] = binding.excel_var
    return var_map


@lru_cache(maxsize=1)
def get_default_converter() -> MathJSONToExcelConverter:
    """Shared converter over the packaged mapping table."""
    return MathJSONToExcelConverter()


def mathjson_to_excel(
    expression: MathJSON, var_map: Optional[VariableMap] = None
) -> str:
    """Convert a MathJSON expression to an Excel formula with the default table."""
    return get_default_converter().convert_to_excel(expression, var_map)


def can_convert_to_excel(
    expression: MathJSON, var_map: Optional[VariableMap] = None
) -> bool:
    return get_default_converter().can_convert(expression, var_map)


__all__ = [
    "MathJSONToExcelConverter",
    "ExcelTranslationError",
    "UnsupportedOperatorError",
    "UnknownNodeTypeError",
    "MalformedExpressionError",
    "load_mapping_registry",
    "create_default_mapping_registry",
    "build_variable_map",
    "get_default_converter",
    "mathjson_to_excel",
    "can_convert_to_excel",
    "DEFAULT_MAPPINGS_PATH",
]
