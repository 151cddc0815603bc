"""
Split a variable declaration such as ``v\\left\\lbrack m/s\\right\\rbrack``
into the variable (``v``) and its units (``m/s``).
"""

import logging
import re

from ..models.excel_models import VariableUnits

logger = logging.getLogger(__name__)

UNITS_DELIMITERS = re.compile(r"\\left\\lbrack|\\right\\rbrack|\\right\.")


def split_variable_units(var_expr: str) -> VariableUnits:
    """
    Split a declaration on its unit brackets.

    The variable is everything before the first bracket. The units are the
    first non-empty fragment after it, trimmed; later bracket pairs are ignored.
    """
    fragments = UNITS_DELIMITERS.split(var_expr)
    latex_var = fragments[0]
    units = next((frag.strip() for frag in fragments[1:] if frag), "")

    logger.debug(f"Split '{var_expr}' into variable '{latex_var}' and units '{units}'")
    return VariableUnits(latex_var=latex_var, units=units)


__all__ = ["split_variable_units", "UNITS_DELIMITERS"]
