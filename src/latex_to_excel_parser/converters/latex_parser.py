"""
LaTeX Markup Parser - Convert math markup to a structural node tree.
Handles tokenization and permissive parsing with source offsets on every node.
"""

import re
import logging
from typing import List, Optional, Tuple

from ..core.macro_registry import MacroRegistry, get_default_macro_registry
from ..models.markup_models import (
    MacroArgument,
    MarkupNode,
    NodeType,
    ParserError,
    SourcePosition,
    Token,
    TokenType,
)

logger = logging.getLogger(__name__)


class LatexLexer:
    """Tokenizer for LaTeX math markup."""

    # Token patterns (order matters!)
    TOKEN_PATTERNS = [
        # Comments run to end of line
        (r"%[^\n]*", TokenType.COMMENT),
        (r"\s+", TokenType.WHITESPACE),
        # Macros
        (r"\\[a-zA-Z]+", TokenType.CONTROL_WORD),
        (r"\\.", TokenType.CONTROL_SYMBOL),
        # Structure
        (r"\{", TokenType.LEFT_BRACE),
        (r"\}", TokenType.RIGHT_BRACE),
        (r"_", TokenType.SUBSCRIPT),
        (r"\^", TokenType.SUPERSCRIPT),
        # Characters
        (r"[a-zA-Z]", TokenType.LETTER),
        (r"[0-9]", TokenType.DIGIT),
        (r".", TokenType.OTHER),
    ]

    COMPILED_PATTERNS = [
        (re.compile(pattern, re.DOTALL), token_type)
        for pattern, token_type in TOKEN_PATTERNS
    ]

    def tokenize(self, source: str) -> List[Token]:
        """Tokenize a LaTeX string. Never fails: every character lands in some token."""
        tokens = []
        position = 0

        while position < len(source):
            for pattern, token_type in self.COMPILED_PATTERNS:
                match = pattern.match(source, position)
                if match:
                    tokens.append(
                        Token(type=token_type, value=match.group(0), position=position)
                    )
                    position = match.end()
                    break

        tokens.append(Token(type=TokenType.EOF, value="", position=position))
        return tokens


class LatexParser:
    """
    Permissive recursive descent parser for LaTeX math markup.

    In math mode every letter is its own string node and digit runs are merged.
    Macro arguments follow the signatures in the macro registry. Malformed input
    (unterminated groups, stray braces, missing arguments) is recorded in
    ``warnings`` instead of raising.
    """

    TEXT_TOKENS = (TokenType.LETTER, TokenType.DIGIT, TokenType.OTHER)

    def __init__(self, macro_registry: Optional[MacroRegistry] = None):
        self.lexer = LatexLexer()
        self.macro_registry = macro_registry or get_default_macro_registry()
        self.tokens: List[Token] = []
        self.current = 0
        self.warnings: List[ParserError] = []

    def parse(self, source: str) -> List[MarkupNode]:
        """Parse a LaTeX string into a top-level node sequence."""
        self.tokens = self.lexer.tokenize(source)
        self.current = 0
        self.warnings = []

        nodes = self.parse_sequence(math_mode=True, in_group=False)

        if self.warnings:
            logger.warning(
                f"Parsed '{source}' with {len(self.warnings)} warning(s): "
                + "; ".join(w.message for w in self.warnings)
            )
        return nodes

    def parse_sequence(
        self, math_mode: bool, in_group: bool, stop_chars: Tuple[str, ...] = ()
    ) -> List[MarkupNode]:
        """Parse nodes until end of input, a closing brace (inside a group) or a stop character."""
        nodes = []

        while not self.is_at_end():
            token = self.peek()

            if token.type == TokenType.RIGHT_BRACE:
                if in_group:
                    break
                # Stray closing brace at top level
                self.advance()
                self._warn("Unmatched '}'", token)
                nodes.append(self._string_node(token.value, token.position, token.end))
                continue

            if token.type == TokenType.OTHER and token.value in stop_chars:
                break

            nodes.append(self.parse_node(math_mode))

        return nodes

    def parse_node(self, math_mode: bool) -> MarkupNode:
        """Parse a single node starting at the current token."""
        token = self.advance()

        if token.type == TokenType.WHITESPACE:
            return MarkupNode(
                node_type=NodeType.WHITESPACE,
                content=token.value,
                position=SourcePosition(start=token.position, end=token.end),
            )

        if token.type == TokenType.COMMENT:
            return MarkupNode(
                node_type=NodeType.COMMENT,
                content=token.value,
                position=SourcePosition(start=token.position, end=token.end),
            )

        if token.type == TokenType.LEFT_BRACE:
            return self.parse_group(token, math_mode)

        if token.type in (TokenType.SUBSCRIPT, TokenType.SUPERSCRIPT):
            return self.parse_modifier(token)

        if token.type == TokenType.CONTROL_WORD:
            return self.parse_macro(token, math_mode)

        if token.type == TokenType.CONTROL_SYMBOL:
            return self._macro_node(token)

        if not math_mode:
            # Text mode: merge runs of plain characters
            return self._merge_run(token, self.TEXT_TOKENS)

        if token.type == TokenType.DIGIT:
            return self._merge_run(token, (TokenType.DIGIT,))

        # Letters and other characters stand alone in math mode
        return self._string_node(token.value, token.position, token.end)

    def parse_group(self, open_token: Token, math_mode: bool) -> MarkupNode:
        """Parse the body of a {...} group whose opening brace was just consumed."""
        children = self.parse_sequence(math_mode, in_group=True)

        if self.match(TokenType.RIGHT_BRACE):
            end = self.previous().end
        else:
            self._warn("Unterminated group", open_token)
            end = self.peek().position

        return MarkupNode(
            node_type=NodeType.GROUP,
            children=children,
            position=SourcePosition(start=open_token.position, end=end),
        )

    def parse_modifier(self, token: Token) -> MarkupNode:
        """Parse a subscript or superscript and its single argument."""
        argument = self.parse_single_argument(math_mode=True)
        if argument is None:
            self._warn(f"Missing argument for '{token.value}'", token)

        return MarkupNode(
            node_type=NodeType.MACRO,
            content=token.value,
            args=[argument] if argument is not None else None,
            position=SourcePosition(start=token.position, end=self.previous().end),
        )

    def parse_macro(self, token: Token, math_mode: bool) -> MarkupNode:
        """Parse a control word and the arguments its signature asks for."""
        name = token.value[1:]
        signature = self.macro_registry.signature_for(name)
        if not signature:
            return self._macro_node(token)

        arg_mode = math_mode and not self.macro_registry.is_text_mode(name)
        args: List[MacroArgument] = []

        for spec in signature:
            if spec == "o":
                optional = self.parse_optional_argument(arg_mode)
                if optional is not None:
                    args.append(optional)
                continue

            if spec == "d":
                argument = self.parse_delimiter()
            else:
                argument = self.parse_single_argument(arg_mode)

            if argument is None:
                self._warn(f"Missing argument for '\\{name}'", token)
                break
            args.append(argument)

        return MarkupNode(
            node_type=NodeType.MACRO,
            content=name,
            args=args or None,
            position=SourcePosition(start=token.position, end=self.previous().end),
        )

    def parse_single_argument(self, math_mode: bool) -> Optional[MacroArgument]:
        """
        Parse one mandatory argument: a {...} group, or else a single token.

        A digit run only contributes its first digit, as in TeX (x^23 is x^{2}3).
        """
        save = self.current
        self.skip_whitespace()
        token = self.peek()

        if token.type in (
            TokenType.EOF,
            TokenType.RIGHT_BRACE,
            TokenType.SUBSCRIPT,
            TokenType.SUPERSCRIPT,
        ):
            self.current = save
            return None

        self.advance()

        if token.type == TokenType.LEFT_BRACE:
            group = self.parse_group(token, math_mode)
            return MacroArgument(content=group.children)

        if token.type == TokenType.CONTROL_WORD:
            node = self.parse_macro(token, math_mode)
        elif token.type == TokenType.CONTROL_SYMBOL:
            node = self._macro_node(token)
        else:
            node = self._string_node(token.value, token.position, token.end)

        return MacroArgument(content=[node], open_mark="", close_mark="")

    def parse_optional_argument(self, math_mode: bool) -> Optional[MacroArgument]:
        """Parse an optional [...] argument if one follows."""
        save = self.current
        self.skip_whitespace()
        token = self.peek()

        if not (token.type == TokenType.OTHER and token.value == "["):
            self.current = save
            return None

        self.advance()
        content = self.parse_sequence(math_mode, in_group=True, stop_chars=("]",))

        if self.check(TokenType.OTHER) and self.peek().value == "]":
            self.advance()
            return MacroArgument(content=content, open_mark="[", close_mark="]")

        self._warn("Unterminated optional argument", token)
        return MacroArgument(content=content, open_mark="[", close_mark="")

    def parse_delimiter(self) -> Optional[MacroArgument]:
        """Parse the delimiter following \\left, \\right and friends."""
        save = self.current
        self.skip_whitespace()
        token = self.peek()

        if token.type in (TokenType.CONTROL_WORD, TokenType.CONTROL_SYMBOL):
            self.advance()
            node = self._macro_node(token)
        elif token.type in (TokenType.OTHER, TokenType.LETTER):
            self.advance()
            node = self._string_node(token.value, token.position, token.end)
        else:
            self.current = save
            return None

        return MacroArgument(content=[node], open_mark="", close_mark="")

    # ------------------------------------------------------------------
    # Node construction helpers
    # ------------------------------------------------------------------

    def _merge_run(self, first: Token, token_types: Tuple[TokenType, ...]) -> MarkupNode:
        value = first.value
        end = first.end
        while self.peek().type in token_types:
            token = self.advance()
            value += token.value
            end = token.end
        return self._string_node(value, first.position, end)

    def _string_node(self, value: str, start: int, end: int) -> MarkupNode:
        return MarkupNode(
            node_type=NodeType.STRING,
            content=value,
            position=SourcePosition(start=start, end=end),
        )

    def _macro_node(self, token: Token) -> MarkupNode:
        return MarkupNode(
            node_type=NodeType.MACRO,
            content=token.value[1:],
            position=SourcePosition(start=token.position, end=token.end),
        )

    def _warn(self, message: str, token: Token):
        self.warnings.append(
            ParserError(message=message, position=token.position, token_value=token.value)
        )

    # ------------------------------------------------------------------
    # Token cursor
    # ------------------------------------------------------------------

    def skip_whitespace(self):
        while self.peek().type in (TokenType.WHITESPACE, TokenType.COMMENT):
            self.advance()

    def match(self, *token_types: TokenType) -> bool:
        """Check if current token matches any of the given types and consume it."""
        for token_type in token_types:
            if self.check(token_type):
                self.advance()
                return True
        return False

    def check(self, token_type: TokenType) -> bool:
        if self.is_at_end():
            return False
        return self.peek().type == token_type

    def advance(self) -> Token:
        if not self.is_at_end():
            self.current += 1
        return self.previous()

    def is_at_end(self) -> bool:
        return self.peek().type == TokenType.EOF

    def peek(self) -> Token:
        return self.tokens[self.current]

    def previous(self) -> Token:
        return self.tokens[self.current - 1]


def parse_latex(
    source: str, macro_registry: Optional[MacroRegistry] = None
) -> List[MarkupNode]:
    """Parse LaTeX math markup with a fresh parser."""
    return LatexParser(macro_registry).parse(source)


__all__ = ["LatexLexer", "LatexParser", "parse_latex"]
