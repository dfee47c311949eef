"""
Dice Expressions - Tokenizer, parser and evaluator for roll traits.

Supports:
- Constants: 5 (0 to MAX_CONST)
- Dice: 3d6
- Keep modifier: 4d6kh3
- Addition and subtraction, left-associative: 1d20+5, 2d8 + 1d6 - 2

Grammar:
    expr := term (('+' | '-') term)*
    term := CONST | CONST 'd' CONST | CONST 'd' CONST 'kh' CONST

Randomness always comes from an injected source with randint(a, b)
(random.Random fits), so a seeded or scripted source makes rolls
reproducible.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Union
import logging

from .errors import RollParseError, RollTokenError

logger = logging.getLogger(__name__)

# Largest constant a roll expression may contain (dice count, faces, keep).
MAX_CONST = 255


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


@dataclass(frozen=True)
class Roll:
    """Outcome of rolling an expression: the total and the dice that counted."""
    total: int
    dice: tuple[int, ...] = ()

    def __add__(self, other: Roll) -> Roll:
        return Roll(self.total + other.total, self.dice + other.dice)

    def __sub__(self, other: Roll) -> Roll:
        return Roll(self.total - other.total, self.dice + other.dice)


# =============================================================================
# Expression tree
# =============================================================================

@dataclass(frozen=True)
class Const:
    value: int

    def roll(self, rng: RandomSource) -> Roll:
        return Roll(self.value)

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class DiceRoll:
    """
    `count` dice with `die` faces.

    With `keep` set, the faces are sorted ascending and the first `keep`
    are retained, so "4d6kh3" keeps the three lowest dice. This matches
    how existing libraries were balanced; do not flip it without
    migrating them.
    """
    count: int
    die: int
    keep: int | None = None

    def roll(self, rng: RandomSource) -> Roll:
        faces = sorted(rng.randint(1, self.die) for _ in range(self.count))
        if self.keep is not None:
            faces = faces[:self.keep]
        return Roll(sum(faces), tuple(faces))

    def __str__(self) -> str:
        text = f"{self.count}d{self.die}"
        if self.keep is not None:
            text += f"kh{self.keep}"
        return text


@dataclass(frozen=True)
class Sum:
    left: RollExpr
    right: RollExpr

    def roll(self, rng: RandomSource) -> Roll:
        return self.left.roll(rng) + self.right.roll(rng)

    def __str__(self) -> str:
        return f"{self.left}+{self.right}"


@dataclass(frozen=True)
class Difference:
    left: RollExpr
    right: RollExpr

    def roll(self, rng: RandomSource) -> Roll:
        return self.left.roll(rng) - self.right.roll(rng)

    def __str__(self) -> str:
        return f"{self.left}-{self.right}"


RollExpr = Union[Const, DiceRoll, Sum, Difference]


# =============================================================================
# Tokenizer
# =============================================================================

class TokenType(Enum):
    CONST = "const"
    PLUS = "+"
    MINUS = "-"
    D = "d"
    KH = "kh"


@dataclass(frozen=True)
class Token:
    type: TokenType
    position: int
    value: int | None = None


_SYMBOLS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "d": TokenType.D,
}


def tokenize(text: str) -> list[Token]:
    """Split a roll expression into tokens. Raises RollTokenError."""
    tokens: list[Token] = []
    i = 0
    while i < len(text):
        c = text[i]

        if c in "0123456789":
            start = i
            while i < len(text) and text[i] in "0123456789":
                i += 1
            digits = text[start:i]
            # Length check first; int() refuses very long digit strings.
            if len(digits.lstrip("0")) > len(str(MAX_CONST)) or int(digits) > MAX_CONST:
                raise RollTokenError(
                    text, start, f"Constant {digits} at position {start} exceeds {MAX_CONST}",
                )
            value = int(digits)
            tokens.append(Token(TokenType.CONST, start, value))
            continue

        if c in _SYMBOLS:
            tokens.append(Token(_SYMBOLS[c], i))
        elif c == "k":
            if i + 1 >= len(text) or text[i + 1] != "h":
                raise RollTokenError(text, i + 1)
            tokens.append(Token(TokenType.KH, i))
            i += 1
        elif not c.isspace():
            raise RollTokenError(text, i)
        i += 1

    return tokens


# =============================================================================
# Parser
# =============================================================================

@dataclass
class _Parser:
    text: str
    tokens: list[Token]
    pos: int = 0
    _end: int = field(init=False)

    def __post_init__(self):
        self._end = len(self.tokens)

    def peek(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < self._end else None

    def expect(self, token_type: TokenType) -> Token:
        token = self.peek()
        if token is None:
            raise RollParseError(self.text, f"Expected {token_type.value}, found end of input")
        if token.type is not token_type:
            raise RollParseError(
                self.text,
                f"Expected {token_type.value}, found {token.type.value} at position {token.position}",
            )
        self.pos += 1
        return token

    def parse(self) -> RollExpr:
        if not self.tokens:
            raise RollParseError(self.text, "Empty expression")
        expr = self.parse_expr()
        leftover = self.peek()
        if leftover is not None:
            raise RollParseError(
                self.text,
                f"Unexpected {leftover.type.value} at position {leftover.position}",
            )
        return expr

    def parse_expr(self) -> RollExpr:
        expr = self.parse_term()
        while True:
            token = self.peek()
            if token is None or token.type not in (TokenType.PLUS, TokenType.MINUS):
                return expr
            self.pos += 1
            right = self.parse_term()
            expr = Sum(expr, right) if token.type is TokenType.PLUS else Difference(expr, right)

    def parse_term(self) -> RollExpr:
        count = self.expect(TokenType.CONST).value
        token = self.peek()
        if token is None or token.type is not TokenType.D:
            return Const(count)
        self.pos += 1

        die_token = self.expect(TokenType.CONST)
        if die_token.value == 0:
            raise RollParseError(self.text, f"Die at position {die_token.position} has no faces")

        keep = None
        token = self.peek()
        if token is not None and token.type is TokenType.KH:
            self.pos += 1
            keep = self.expect(TokenType.CONST).value

        return DiceRoll(count=count, die=die_token.value, keep=keep)


def parse_roll(text: str) -> RollExpr:
    """
    Parse a roll expression.

    Raises:
        RollTokenError: a character outside the roll alphabet
        RollParseError: tokens that do not fit the grammar
    """
    return _Parser(text, tokenize(text)).parse()


def roll_expression(text: str, rng: RandomSource) -> Roll:
    """Parse and roll in one step."""
    result = parse_roll(text).roll(rng)
    logger.debug("Rolled %s -> %d %s", text, result.total, list(result.dice))
    return result
