from .macro_registry import MacroRegistry, load_macro_registry, get_default_macro_registry
from .cell_reference import (
    CellReferenceError,
    InvalidCellSyntaxError,
    ColumnOutOfBoundsError,
    RowOutOfBoundsError,
)

__all__ = [
    "MacroRegistry",
    "load_macro_registry",
    "get_default_macro_registry",
    "CellReferenceError",
    "InvalidCellSyntaxError",
    "ColumnOutOfBoundsError",
    "RowOutOfBoundsError",
]
