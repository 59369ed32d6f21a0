"""
Operator tokens and source locations for paramscript syntax trees.

The parser that produces the tree lives outside this package; these
definitions are the shared vocabulary between it and the analyzer.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Optional


class TokenType(Enum):
    """Operator tokens that can appear in unary and binary expressions."""

    # --- Arithmetic ---
    PLUS = auto()       # +
    MINUS = auto()      # -
    STAR = auto()       # *
    SLASH = auto()      # /

    # --- Comparison ---
    EQ = auto()         # ==
    NE = auto()         # <>
    LT = auto()         # <
    GT = auto()         # >
    LE = auto()         # <=
    GE = auto()         # >=

    # --- Logical ---
    AND = auto()        # AND
    OR = auto()         # OR


ARITHMETIC_OPERATORS = frozenset({
    TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
})

EQUALITY_OPERATORS = frozenset({TokenType.EQ, TokenType.NE})

ORDERING_OPERATORS = frozenset({
    TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE,
})

COMPARISON_OPERATORS = EQUALITY_OPERATORS | ORDERING_OPERATORS

LOGICAL_OPERATORS = frozenset({TokenType.AND, TokenType.OR})


# Script spelling of each operator, used when rendering expressions back to text
OPERATOR_SYMBOLS: dict[TokenType, str] = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.EQ: "==",
    TokenType.NE: "<>",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
    TokenType.AND: "AND",
    TokenType.OR: "OR",
}


def operator_from_symbol(symbol: str) -> Optional[TokenType]:
    """Resolve an operator spelling ("+", "<>", "and", ...) to its token."""
    wanted = symbol.strip().upper()
    for token_type, spelling in OPERATOR_SYMBOLS.items():
        if spelling == wanted:
            return token_type
    return None


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in a script."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in a script."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"

    @classmethod
    def at_line(cls, line: int, filename: Optional[str] = None) -> "SourceSpan":
        """Span covering the start of a single line."""
        loc = SourceLocation(line, 1, filename)
        return cls(loc, loc)
