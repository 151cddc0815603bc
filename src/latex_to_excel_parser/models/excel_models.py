"""
Pydantic models for the Excel side of the pipeline.

Covers the MathJSON-to-Excel mapping table, the algebra-mode exclusions the
host applies before translating, variable bindings from the variable panel,
and parsed cell references.
"""

from enum import Enum
from typing import Callable, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MappingKind(str, Enum):
    """How a MathJSON head renders in Excel."""

    OPERATOR = "operator"  # Infix, chainable: (a+b+c)
    FUNCTION = "function"  # NAME(a,b), a template, or a custom callable


class ExcelMapping(BaseModel):
    """
    One entry of the MathJSON head table.

    Operators carry an infix ``symbol``. Functions carry exactly one of
    ``name`` (rendered as ``NAME(a,b)``), ``template`` (a ``str.format``
    pattern over the rendered arguments) or ``custom`` (a callable taking the
    list of rendered arguments).
    """

    tag: str
    kind: MappingKind

    # Operator fields
    symbol: Optional[str] = None
    subscript_symbol: Optional[str] = None  # Joiner used inside a subscript, no parens

    # Function fields
    name: Optional[str] = None
    template: Optional[str] = None
    custom: Optional[Callable[[List[str]], str]] = Field(default=None, exclude=True)

    # Argument positions rendered in subscript context
    index_arguments: List[int] = Field(default_factory=list)

    description: str = ""

    model_config = ConfigDict(
        use_enum_values=True,
        extra="forbid",
        json_schema_extra={
            "examples": [
                {"tag": "Add", "kind": "operator", "symbol": "+"},
                {"tag": "Sqrt", "kind": "function", "name": "SQRT"},
                {"tag": "Root", "kind": "function", "template": "({0}^(1/{1}))"},
            ]
        },
    )

    @model_validator(mode="after")
    def check_shape(self):
        if self.kind == MappingKind.OPERATOR:
            if self.symbol is None:
                raise ValueError(f"Operator mapping '{self.tag}' needs a symbol")
        else:
            renderers = [r for r in (self.name, self.template, self.custom) if r is not None]
            if len(renderers) != 1:
                raise ValueError(
                    f"Function mapping '{self.tag}' needs exactly one of name, template or custom"
                )
        return self

    @property
    def is_operator(self) -> bool:
        return self.kind == MappingKind.OPERATOR


class ExcelMappingRegistry(BaseModel):
    """Central registry of constants and MathJSON heads with an Excel equivalent."""

    constants: Dict[str, str] = Field(default_factory=dict)
    mappings: Dict[str, ExcelMapping] = Field(default_factory=dict)

    def add_mapping(self, mapping: ExcelMapping):
        """Add or replace a mapping."""
        self.mappings[mapping.tag] = mapping

    def get_mapping(self, tag: str) -> Optional[ExcelMapping]:
        return self.mappings.get(tag)

    def is_supported(self, tag: str) -> bool:
        return tag in self.mappings

    def add_constant(self, name: str, value: str):
        self.constants[name] = value

    def get_constant(self, name: str) -> Optional[str]:
        return self.constants.get(name)

    def without(
        self, tags: Optional[List[str]] = None, constants: Optional[List[str]] = None
    ) -> "ExcelMappingRegistry":
        """Return a copy with the given heads and constants removed."""
        drop_tags = set(tags or [])
        drop_constants = set(constants or [])
        return ExcelMappingRegistry(
            constants={
                k: v for k, v in self.constants.items() if k not in drop_constants
            },
            mappings={k: v for k, v in self.mappings.items() if k not in drop_tags},
        )


class AlgebraMode(BaseModel):
    """
    Names the host engine treats as plain symbols instead of built-ins.

    With the defaults a user variable called ``D`` or ``N`` stays a symbol
    rather than becoming differentiation or numeric evaluation, and the
    named constants pass through to the variable map.
    """

    exclude_functions: List[str] = Field(default_factory=lambda: ["D", "N"])
    exclude_constants: List[str] = Field(
        default_factory=lambda: ["CatalanConstant", "GoldenRatio", "EulerGamma"]
    )

    def apply(self, registry: ExcelMappingRegistry) -> ExcelMappingRegistry:
        return registry.without(
            tags=self.exclude_functions, constants=self.exclude_constants
        )


class VariableBinding(BaseModel):
    """One row of the variable panel: a LaTeX variable, its units and its cell."""

    latex_var: str = ""
    units: str = ""
    excel_var: str = ""

    @field_validator("latex_var", "units", "excel_var")
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip()

    @property
    def is_blank(self) -> bool:
        return not self.latex_var


class VariableUnits(BaseModel):
    """A variable declaration split into the variable and its units."""

    latex_var: str = ""
    units: str = ""


class CellReference(BaseModel):
    """A parsed A1-style cell address."""

    row: int = Field(..., ge=1, le=1_048_576)
    col: int = Field(..., ge=1, le=16_384)
    is_row_absolute: bool = False
    is_col_absolute: bool = False

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [
                {"row": 1, "col": 1, "is_row_absolute": False, "is_col_absolute": False},
                {"row": 10, "col": 3, "is_row_absolute": True, "is_col_absolute": True},
            ]
        },
    )


__all__ = [
    "MappingKind",
    "ExcelMapping",
    "ExcelMappingRegistry",
    "AlgebraMode",
    "VariableBinding",
    "VariableUnits",
    "CellReference",
]
