"""LaTeX to Excel Formula Library.

This library splits LaTeX equations into their parts, extracts the
variables they use, and converts MathJSON expressions into Excel
formulas with user-defined variable-to-cell mappings.
"""

from latex_to_excel_parser.converters.latex_parser import LatexParser, parse_latex
from latex_to_excel_parser.converters.mathjson_to_excel_converter import (
    MathJSONToExcelConverter,
    ExcelTranslationError,
    UnsupportedOperatorError,
    UnknownNodeTypeError,
    MalformedExpressionError,
    build_variable_map,
    can_convert_to_excel,
    load_mapping_registry,
    mathjson_to_excel,
)
from latex_to_excel_parser.core.cell_reference import (
    CellReferenceError,
    InvalidCellSyntaxError,
    ColumnOutOfBoundsError,
    RowOutOfBoundsError,
    cycle_cell_anchors,
    is_valid_cell_reference,
    parse_cell_reference,
)
from latex_to_excel_parser.core.equation_parts import (
    EquationParts,
    extract_equation_parts,
)
from latex_to_excel_parser.core.variable_extractor import (
    VariableExtractor,
    extract_latex_variables,
)
from latex_to_excel_parser.core.variable_units import split_variable_units
from latex_to_excel_parser.models.excel_models import (
    AlgebraMode,
    CellReference,
    VariableBinding,
    VariableUnits,
)

# Version
__version__ = "0.1.0"

# Public API
__all__ = [
    # Markup parsing
    "LatexParser",
    "parse_latex",
    # Equation parts
    "EquationParts",
    "extract_equation_parts",
    # Variables
    "VariableExtractor",
    "extract_latex_variables",
    "split_variable_units",
    "VariableUnits",
    # Excel translation
    "MathJSONToExcelConverter",
    "ExcelTranslationError",
    "UnsupportedOperatorError",
    "UnknownNodeTypeError",
    "MalformedExpressionError",
    "AlgebraMode",
    "VariableBinding",
    "build_variable_map",
    "can_convert_to_excel",
    "load_mapping_registry",
    "mathjson_to_excel",
    # Cell references
    "CellReference",
    "CellReferenceError",
    "InvalidCellSyntaxError",
    "ColumnOutOfBoundsError",
    "RowOutOfBoundsError",
    "cycle_cell_anchors",
    "is_valid_cell_reference",
    "parse_cell_reference",
    # Version
    "__version__",
]
