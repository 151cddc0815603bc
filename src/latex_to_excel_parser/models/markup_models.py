"""
Pydantic models for LaTeX markup tokenization and parsing.
Separated from parser logic for better organization.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


class TokenType(Enum):
    """Token types for lexical analysis of math markup."""

    # Structural
    COMMENT = "COMMENT"  # % until end of line
    WHITESPACE = "WHITESPACE"
    LEFT_BRACE = "LEFT_BRACE"  # {
    RIGHT_BRACE = "RIGHT_BRACE"  # }

    # Macros
    CONTROL_WORD = "CONTROL_WORD"  # \alpha, \frac
    CONTROL_SYMBOL = "CONTROL_SYMBOL"  # \, \{ \\

    # Modifiers
    SUBSCRIPT = "SUBSCRIPT"  # _
    SUPERSCRIPT = "SUPERSCRIPT"  # ^

    # Characters
    LETTER = "LETTER"
    DIGIT = "DIGIT"
    OTHER = "OTHER"  # Operators, punctuation, anything else

    # Special
    EOF = "EOF"


class Token(BaseModel):
    """Token with type, value, and source offset."""

    type: TokenType
    value: str
    position: int

    @property
    def end(self) -> int:
        return self.position + len(self.value)


class NodeType(str, Enum):
    """Markup node types."""

    STRING = "string"  # Literal text: a letter, a digit run, an operator
    MACRO = "macro"  # \name, _ and ^
    GROUP = "group"  # {...}
    WHITESPACE = "whitespace"
    COMMENT = "comment"


class SourcePosition(BaseModel):
    """Half-open [start, end) character offsets into the parsed source."""

    start: int
    end: int


class MarkupNode(BaseModel):
    """
    One element of a parsed math-markup tree.

    For any node with a position, ``source[position.start:position.end]``
    reproduces the node's literal text.
    """

    node_type: NodeType

    # Text for string/whitespace/comment nodes, macro name for macros
    content: str = ""

    # Child sequence for group nodes
    children: List["MarkupNode"] = Field(default_factory=list)

    # Arguments for macros that take them; None when the macro takes none
    # or its argument is missing from the source
    args: Optional[List["MacroArgument"]] = None

    position: Optional[SourcePosition] = None

    model_config = ConfigDict(
        use_enum_values=True,
        extra="forbid",
        json_schema_extra={
            "examples": [
                {"node_type": "string", "content": "x"},
                {
                    "node_type": "macro",
                    "content": "_",
                    "args": [
                        {"content": [{"node_type": "string", "content": "i"}]}
                    ],
                },
                {
                    "node_type": "group",
                    "children": [{"node_type": "string", "content": "2"}],
                },
            ]
        },
    )

    @property
    def is_string(self) -> bool:
        return self.node_type == NodeType.STRING

    @property
    def is_macro(self) -> bool:
        return self.node_type == NodeType.MACRO

    @property
    def is_group(self) -> bool:
        return self.node_type == NodeType.GROUP

    def is_macro_named(self, *names: str) -> bool:
        return self.is_macro and self.content in names


class MacroArgument(BaseModel):
    """One argument of a macro: a node sequence plus the marks that delimited it."""

    content: List[MarkupNode] = Field(default_factory=list)
    open_mark: str = "{"  # "{", "[" or "" for an unbraced single-token argument
    close_mark: str = "}"


class ParserError(BaseModel):
    """Structured problem report from the markup parser."""

    message: str
    position: int
    token_value: Optional[str] = None
    severity: str = "warning"  # "error", "warning", "info"


# Forward reference resolution
MarkupNode.model_rebuild()
MacroArgument.model_rebuild()


__all__ = [
    "TokenType",
    "Token",
    "NodeType",
    "SourcePosition",
    "MarkupNode",
    "MacroArgument",
    "ParserError",
]
