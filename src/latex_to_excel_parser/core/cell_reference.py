"""
Excel cell reference parsing and anchor cycling.

Handles A1-style addresses with optional $ anchors, e.g. A1, $A$1, A$1, $A1.
"""

import logging
import re

from ..models.excel_models import CellReference

logger = logging.getLogger(__name__)

MAX_ROW = 1_048_576
MAX_COL = 16_384  # XFD

CELL_PATTERN = re.compile(r"(\$?)([A-Z]{1,3})(\$?)([1-9][0-9]{0,6})")

# (column absolute, row absolute) in cycling order: A1 -> $A$1 -> A$1 -> $A1 -> A1
ANCHOR_CYCLE = [
    (False, False),
    (True, True),
    (False, True),
    (True, False),
]


class CellReferenceError(ValueError):
    """Base error for cell references that cannot be parsed."""

    pass


class InvalidCellSyntaxError(CellReferenceError):
    """Raised when a string does not match the cell address grammar."""

    pass


class ColumnOutOfBoundsError(CellReferenceError):
    """Raised when the column lies beyond XFD."""

    pass


class RowOutOfBoundsError(CellReferenceError):
    """Raised when the row lies beyond 1048576."""

    pass


def column_letters_to_number(letters: str) -> int:
    """Convert column letters to a 1-based column number (A=1, Z=26, AA=27)."""
    number = 0
    for ch in letters:
        value = ord(ch) - ord("A") + 1
        if value < 1 or value > 26:
            raise InvalidCellSyntaxError(f"Invalid column letter '{ch}'")
        number = number * 26 + value
    return number


def column_number_to_letters(number: int) -> str:
    """Convert a 1-based column number to column letters."""
    if number < 1:
        raise ColumnOutOfBoundsError(f"Column out of bounds: {number}")

    letters = ""
    while number > 0:
        number, remainder = divmod(number - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def parse_cell_reference(ref: str) -> CellReference:
    """
    Parse an A1-style cell address.

    Raises:
        InvalidCellSyntaxError: Not a cell address
        ColumnOutOfBoundsError: Column past XFD
        RowOutOfBoundsError: Row past 1048576
    """
    match = CELL_PATTERN.fullmatch(ref)
    if not match:
        raise InvalidCellSyntaxError(f"Invalid cell address syntax: '{ref}'")

    col_anchor, col_letters, row_anchor, row_digits = match.groups()

    col = column_letters_to_number(col_letters)
    row = int(row_digits)

    if col < 1 or col > MAX_COL:
        raise ColumnOutOfBoundsError(f"Column out of bounds: '{col_letters}' -> {col}")
    if row < 1 or row > MAX_ROW:
        raise RowOutOfBoundsError(f"Row out of bounds: {row}")

    return CellReference(
        row=row,
        col=col,
        is_row_absolute=bool(row_anchor),
        is_col_absolute=bool(col_anchor),
    )


def is_valid_cell_reference(ref: str) -> bool:
    try:
        parse_cell_reference(ref)
        return True
    except CellReferenceError:
        return False


def format_cell_reference(cell: CellReference) -> str:
    """Render a cell reference back to A1 notation."""
    return (
        ("$" if cell.is_col_absolute else "")
        + column_number_to_letters(cell.col)
        + ("$" if cell.is_row_absolute else "")
        + str(cell.row)
    )


def cycle_cell_anchors(ref: str) -> str:
    """
    Advance a cell address to its next anchor state.

    Invalid addresses are returned unchanged.
    """
    try:
        cell = parse_cell_reference(ref)
    except CellReferenceError as e:
        logger.debug(f"Not cycling anchors of '{ref}': {e}")
        return ref

    state = ANCHOR_CYCLE.index((cell.is_col_absolute, cell.is_row_absolute))
    col_absolute, row_absolute = ANCHOR_CYCLE[(state + 1) % len(ANCHOR_CYCLE)]

    return format_cell_reference(
        cell.model_copy(
            update={"is_col_absolute": col_absolute, "is_row_absolute": row_absolute}
        )
    )


__all__ = [
    "CellReferenceError",
    "InvalidCellSyntaxError",
    "ColumnOutOfBoundsError",
    "RowOutOfBoundsError",
    "column_letters_to_number",
    "column_number_to_letters",
    "parse_cell_reference",
    "is_valid_cell_reference",
    "format_cell_reference",
    "cycle_cell_anchors",
    "MAX_ROW",
    "MAX_COL",
]
