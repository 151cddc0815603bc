"""
Command line entry point.

Exposes the equation toolkit as subcommands:
1. parts      - split an equation into declaration, body and constraint
2. vars       - list the variables of a LaTeX expression
3. translate  - convert a MathJSON expression to an Excel formula
4. cell       - parse a cell reference or cycle its anchors
5. units      - split a variable declaration into variable and units
"""

import sys
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from latex_to_excel_parser.converters.mathjson_to_excel_converter import (
    ExcelTranslationError,
    MathJSONToExcelConverter,
    load_mapping_registry,
)
from latex_to_excel_parser.core.cell_reference import (
    CellReferenceError,
    cycle_cell_anchors,
    parse_cell_reference,
)
from latex_to_excel_parser.core.equation_parts import extract_equation_parts
from latex_to_excel_parser.core.variable_extractor import extract_latex_variables
from latex_to_excel_parser.core.variable_units import split_variable_units
from latex_to_excel_parser.models.excel_models import AlgebraMode

logger = logging.getLogger(__name__)


def parse_var_assignments(assignments: List[str]) -> Dict[str, str]:
    """Parse repeated SYMBOL=CELL options into a variable map."""
    var_map = {}
    for assignment in assignments:
        symbol, sep, cell = assignment.partition("=")
        if not sep or not symbol.strip():
            raise ValueError(f"Expected SYMBOL=CELL, got '{assignment}'")
        var_map[symbol.strip()] = cell.strip()
    return var_map


def load_var_map_file(path: str) -> Dict[str, str]:
    """Load a JSON object mapping symbols to cells."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Variable map file must hold a JSON object: {path}")
    return {str(k): str(v) for k, v in data.items()}


def translate_expression(
    expression_json: str,
    var_assignments: Optional[List[str]] = None,
    var_map_file: Optional[str] = None,
    mappings_file: Optional[str] = None,
    algebra_mode: bool = False,
) -> str:
    """Convert a MathJSON document to an Excel formula."""
    expression = json.loads(expression_json)

    var_map: Dict[str, str] = {}
    if var_map_file:
        var_map.update(load_var_map_file(var_map_file))
    var_map.update(parse_var_assignments(var_assignments or []))

    registry = load_mapping_registry(Path(mappings_file)) if mappings_file else None
    converter = MathJSONToExcelConverter(
        registry=registry, algebra_mode=AlgebraMode() if algebra_mode else None
    )
    return converter.convert_to_excel(expression, var_map)


def run(args) -> int:
    """Execute a parsed command. Returns the process exit code."""
    if args.command == "parts":
        parts = extract_equation_parts(args.equation)
        print(json.dumps(parts.model_dump(), indent=2))
        return 0

    if args.command == "vars":
        print(json.dumps(extract_latex_variables(args.latex), indent=2))
        return 0

    if args.command == "units":
        print(json.dumps(split_variable_units(args.declaration).model_dump(), indent=2))
        return 0

    if args.command == "cell":
        if args.cycle:
            print(cycle_cell_anchors(args.ref))
            return 0
        try:
            print(json.dumps(parse_cell_reference(args.ref).model_dump(), indent=2))
            return 0
        except CellReferenceError as e:
            print(f"❌ {e}", file=sys.stderr)
            return 1

    if args.command == "translate":
        try:
            print(
                translate_expression(
                    args.expression,
                    var_assignments=args.var,
                    var_map_file=args.var_map,
                    mappings_file=args.mappings,
                    algebra_mode=args.algebra_mode,
                )
            )
            return 0
        except json.JSONDecodeError as e:
            print(f"❌ Invalid MathJSON: {e}", file=sys.stderr)
        except (ExcelTranslationError, ValueError, OSError) as e:
            print(f"❌ {e}", file=sys.stderr)
        return 1

    return 2


def main(argv: Optional[List[str]] = None):
    """Main entry point for the latex-excel CLI command."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Split equations, extract variables and build Excel formulas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Split an equation
  latex-excel parts "x=Ax^2+Bx+C,x<0"

  # List the variables of an expression
  latex-excel vars "F_{net}=ma"

  # Convert MathJSON with variable cells
  latex-excel translate '["Add", "x", ["Power", "y", 2]]' --var x=A1 --var y=B1

  # Cycle cell anchors
  latex-excel cell '$A$1' --cycle
        """,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    parts_parser = subparsers.add_parser(
        "parts", help="Split an equation into declaration, body and constraint"
    )
    parts_parser.add_argument("equation", type=str, help="LaTeX equation")

    vars_parser = subparsers.add_parser("vars", help="List the variables of an expression")
    vars_parser.add_argument("latex", type=str, help="LaTeX expression")

    translate_parser = subparsers.add_parser(
        "translate", help="Convert a MathJSON expression to an Excel formula"
    )
    translate_parser.add_argument(
        "expression", type=str, help="MathJSON expression as a JSON document"
    )
    translate_parser.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="SYMBOL=CELL",
        help="Map a symbol to a cell (repeatable)",
    )
    translate_parser.add_argument(
        "--var-map", type=str, help="JSON file mapping symbols to cells"
    )
    translate_parser.add_argument(
        "--mappings", type=str, help="YAML mapping table replacing the packaged one"
    )
    translate_parser.add_argument(
        "--algebra-mode",
        action="store_true",
        help="Treat D, N and the named constants as plain symbols",
    )

    cell_parser = subparsers.add_parser("cell", help="Parse or cycle a cell reference")
    cell_parser.add_argument("ref", type=str, help="Cell reference, e.g. $A$1")
    cell_parser.add_argument(
        "--cycle", action="store_true", help="Print the next anchor state"
    )

    units_parser = subparsers.add_parser(
        "units", help="Split a variable declaration into variable and units"
    )
    units_parser.add_argument("declaration", type=str, help="LaTeX variable declaration")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    sys.exit(run(args))


if __name__ == "__main__":
    main()
