"""Command expressions.

Build and install commands are templates which may embed expressions in
`#{...}`. The syntax is designed to live inside JSON strings without needing
escapes:

    export MERLIN_VIM_PLUGIN="#{@opam/merlin.share / 'vim'}"
    export PATH="#{cur.bin : $PATH}"

Inside an expression:
- `'text'` is a literal,
- `$NAME` is an environment variable reference,
- `/` is the path separator and `:` the path list separator,
- `a.b.c` is an identifier (segments are `[A-Za-z0-9_-]+` or a scoped
  `@scope/name`); `__dot__` inside a segment stands for a literal dot,
- whitespace is ignored.

Text outside expressions, including shell `${...}` references, is copied
verbatim. How identifiers, variables and separators render is decided by an
`Evaluator`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import NamedTuple, Protocol

from pkgbuild.exceptions import ExpressionSyntaxError


class Evaluator(Protocol):
    def id(self, id: list[str]) -> str:
        """Evaluate an identifier such as ["cur", "install"]."""
        ...

    def var(self, name: str) -> str:
        """Evaluate an environment variable reference."""
        ...

    def path_sep(self) -> str: ...

    def colon(self) -> str: ...


class DummyEvaluator:
    """Renders the structure of an expression, useful for debugging."""

    def id(self, id: list[str]) -> str:
        return f"ID({'.'.join(id)})"

    def var(self, name: str) -> str:
        return f"VAR({name})"

    def path_sep(self) -> str:
        return " PATH_SEP "

    def colon(self) -> str:
        return " COLON "


def escape_id(id: str) -> str:
    return id.replace(".", "__dot__")


def unescape_id(id: str) -> str:
    return id.replace("__dot__", ".")


# =============================================================================
# Tokens
# =============================================================================


class TokenType(StrEnum):
    # Template level
    SHARP_LPAREN = "sharp_lparen"
    DOLLAR_LPAREN = "dollar_lparen"
    RPAREN = "rparen"
    # Expression level
    COLON = "colon"
    SLASH = "slash"
    DOT = "dot"
    ID = "id"
    VAR = "var"
    # Both
    VALUE = "value"


class Token(NamedTuple):
    type: TokenType
    index: int
    value: str = ""


_TEMPLATE_DELIMITER = re.compile(r"#\{|\$\{|\}")
_VAR_END = re.compile(r"[^a-zA-Z0-9_]+")
_SPACE = re.compile(r"\s+")
_SCOPED_ID = re.compile(r"@[a-zA-Z0-9_\-]+/[a-zA-Z0-9_\-]+")
_ID = re.compile(r"[a-zA-Z0-9_\-]+")


def tokenize_template(input: str) -> list[Token]:
    tokens: list[Token] = []
    index = 0
    while index < len(input):
        if input.startswith("#{", index):
            tokens.append(Token(TokenType.SHARP_LPAREN, index))
            index += 2
        elif input.startswith("${", index):
            tokens.append(Token(TokenType.DOLLAR_LPAREN, index))
            index += 2
        elif input[index] == "}":
            tokens.append(Token(TokenType.RPAREN, index))
            index += 1
        else:
            m = _TEMPLATE_DELIMITER.search(input, index)
            end = m.start() if m is not None else len(input)
            tokens.append(Token(TokenType.VALUE, index, input[index:end]))
            index = end
    return tokens


def tokenize_expression(source: str, expr: str, start_index: int) -> list[Token]:
    """Tokenize the body of a `#{...}` expression.

    Token indices are offsets into `source`, the full template, which starts
    the expression at `start_index`.
    """
    tokens: list[Token] = []
    index = 0
    while index < len(expr):
        char = expr[index]
        if char == "'":
            index += 1
            end = expr.find("'", index)
            if end == -1:
                raise ExpressionSyntaxError(
                    source, start_index + index - 1, "Expected (')"
                )
            tokens.append(Token(TokenType.VALUE, start_index + index, expr[index:end]))
            index = end + 1
        elif char == "$":
            index += 1
            m = _VAR_END.search(expr, index)
            end = m.start() if m is not None else len(expr)
            name = expr[index:end]
            if not name:
                raise ExpressionSyntaxError(
                    source, start_index + index - 1, "Invalid variable reference"
                )
            tokens.append(Token(TokenType.VAR, start_index + index, name))
            index = end
        elif char == "/":
            tokens.append(Token(TokenType.SLASH, start_index + index))
            index += 1
        elif char == ".":
            tokens.append(Token(TokenType.DOT, start_index + index))
            index += 1
        elif char == ":":
            tokens.append(Token(TokenType.COLON, start_index + index))
            index += 1
        elif m := _SPACE.match(expr, index):
            index = m.end()
        elif m := (_SCOPED_ID.match(expr, index) or _ID.match(expr, index)):
            tokens.append(
                Token(TokenType.ID, start_index + index, unescape_id(m.group()))
            )
            index = m.end()
        else:
            raise ExpressionSyntaxError(source, start_index + index, "Unknown syntax")
    return tokens


# =============================================================================
# Evaluation
# =============================================================================


@dataclass
class _Frame:
    kind: str
    index: int = 0
    children: list[str] = field(default_factory=list)


def evaluate(input: str, evaluator: Evaluator | None = None) -> str:
    """Expand all `#{...}` expressions of `input`.

    Raises:
        ExpressionSyntaxError: With the offending character offset in `input`.
    """
    evaluator = evaluator or DummyEvaluator()
    tokens = tokenize_template(input)
    stack = [_Frame("value")]

    for position, tok in enumerate(tokens):
        if tok.type == TokenType.SHARP_LPAREN:
            following = tokens[position + 1] if position + 1 < len(tokens) else None
            start = following.index if following is not None else len(input)
            stack.append(_Frame("expression", index=start))
        elif tok.type == TokenType.DOLLAR_LPAREN:
            stack[-1].children.append("${")
            stack.append(_Frame("var"))
        elif tok.type == TokenType.RPAREN:
            frame = stack[-1]
            if frame.kind == "expression":
                stack.pop()
                result = _evaluate_expression(
                    input, "".join(frame.children), frame.index, evaluator
                )
                stack[-1].children.append(result)
            elif frame.kind == "var":
                stack.pop()
                frame.children.append("}")
                stack[-1].children.append("".join(frame.children))
            else:
                frame.children.append("}")
        else:
            stack[-1].children.append(tok.value)

    if len(stack) != 1:
        raise ExpressionSyntaxError(input, len(input) - 1, "Expected (})")

    return "".join(stack[0].children)


def _evaluate_expression(
    source: str, expr: str, start_index: int, evaluator: Evaluator
) -> str:
    tokens = tokenize_expression(source, expr, start_index)
    result: list[str] = []

    position = 0
    while position < len(tokens):
        tok = tokens[position]
        position += 1
        if tok.type == TokenType.COLON:
            result.append(evaluator.colon())
        elif tok.type == TokenType.SLASH:
            result.append(evaluator.path_sep())
        elif tok.type == TokenType.VALUE:
            result.append(tok.value)
        elif tok.type == TokenType.VAR:
            result.append(evaluator.var(tok.value))
        elif tok.type == TokenType.ID:
            id = [tok.value]
            while position < len(tokens) and tokens[position].type == TokenType.DOT:
                dot = tokens[position]
                position += 1
                if position >= len(tokens) or tokens[position].type != TokenType.ID:
                    index = (
                        tokens[position].index
                        if position < len(tokens)
                        else dot.index + 1
                    )
                    raise ExpressionSyntaxError(source, index, "Invalid identifier")
                id.append(tokens[position].value)
                position += 1
            result.append(evaluator.id(id))
        else:
            raise ExpressionSyntaxError(source, tok.index, "Invalid expression")

    return "".join(result)
