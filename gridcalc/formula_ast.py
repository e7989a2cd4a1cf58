"""Parsing, printing and evaluation of formula expression trees."""

from __future__ import annotations

import enum
import math
import operator
import re
from typing import Callable, Iterator, NamedTuple, Optional, Protocol, Sequence

from .common import Category, FormulaError, FormulaSyntaxError, Position, Value


class ParsingError(RuntimeError):
    """Raised when a formula cannot be lexed or parsed."""


class CellLike(Protocol):
    def value(self) -> Value: ...


class SheetLike(Protocol):
    def get_cell(self, pos: Position) -> Optional[CellLike]: ...


class _Precedence(enum.IntEnum):
    ADD = 0
    SUB = 1
    MUL = 2
    DIV = 3
    UNARY = 4
    ATOM = 5


_NONE = 0b00
_LEFT = 0b01
_RIGHT = 0b10
_BOTH = _LEFT | _RIGHT

# _RULES[parent][child]: whether parentheses are needed around a left and/or
# right child of the given precedence.
_RULES: dict[_Precedence, tuple[int, ...]] = {
    _Precedence.ADD: (_NONE, _NONE, _NONE, _NONE, _NONE, _NONE),
    _Precedence.SUB: (_RIGHT, _RIGHT, _NONE, _NONE, _NONE, _NONE),
    _Precedence.MUL: (_BOTH, _BOTH, _NONE, _NONE, _NONE, _NONE),
    _Precedence.DIV: (_BOTH, _BOTH, _RIGHT, _RIGHT, _NONE, _NONE),
    _Precedence.UNARY: (_BOTH, _BOTH, _NONE, _NONE, _NONE, _NONE),
    _Precedence.ATOM: (_NONE, _NONE, _NONE, _NONE, _NONE, _NONE),
}


def _format_number(value: float) -> str:
    return "%g" % value


def _checked(result: float) -> float:
    if not math.isfinite(result):
        raise FormulaError(Category.ARITHMETIC)
    return result


_DECIMAL_TEXT = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_HEX_TEXT = re.compile(
    r"[+-]?0x(?:[0-9a-f]+\.?[0-9a-f]*|\.[0-9a-f]+)(?:p[+-]?\d+)?",
    re.IGNORECASE,
)


def _text_to_number(text: str) -> float:
    """Interpret cell text as a number; empty text counts as zero."""
    if not text:
        return 0.0
    body = text.lstrip(" \t\n\r\f\v")
    try:
        if _DECIMAL_TEXT.fullmatch(body):
            number = float(body)
        elif _HEX_TEXT.fullmatch(body):
            number = float.fromhex(body)
        else:
            raise FormulaError(Category.VALUE)
    except (ValueError, OverflowError) as exc:
        raise FormulaError(Category.VALUE) from exc
    if math.isinf(number) and "inf" not in body.lower():
        raise FormulaError(Category.VALUE)
    return number


class _Expr:
    precedence: _Precedence

    def tree(self) -> str:
        raise NotImplementedError

    def formula_body(self) -> str:
        raise NotImplementedError

    def evaluate(self, sheet: SheetLike) -> float:
        raise NotImplementedError

    def formula(self, parent: _Precedence, right_child: bool = False) -> str:
        mask = _RIGHT if right_child else _LEFT
        body = self.formula_body()
        if _RULES[parent][self.precedence] & mask:
            return f"({body})"
        return body


_BINARY_PRECEDENCE = {
    "+": _Precedence.ADD,
    "-": _Precedence.SUB,
    "*": _Precedence.MUL,
    "/": _Precedence.DIV,
}

_BINARY_OPS: dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}


class _BinaryOp(_Expr):
    def __init__(self, op: str, lhs: _Expr, rhs: _Expr) -> None:
        self.op = op
        self.lhs = lhs
        self.rhs = rhs
        self.precedence = _BINARY_PRECEDENCE[op]

    def tree(self) -> str:
        return f"({self.op} {self.lhs.tree()} {self.rhs.tree()})"

    def formula_body(self) -> str:
        left = self.lhs.formula(self.precedence)
        right = self.rhs.formula(self.precedence, right_child=True)
        return f"{left}{self.op}{right}"

    def evaluate(self, sheet: SheetLike) -> float:
        lhs = self.lhs.evaluate(sheet)
        rhs = self.rhs.evaluate(sheet)
        if self.op == "/" and rhs == 0:
            raise FormulaError(Category.ARITHMETIC)
        return _checked(_BINARY_OPS[self.op](lhs, rhs))


class _UnaryOp(_Expr):
    precedence = _Precedence.UNARY

    def __init__(self, op: str, operand: _Expr) -> None:
        self.op = op
        self.operand = operand

    def tree(self) -> str:
        return f"({self.op} {self.operand.tree()})"

    def formula_body(self) -> str:
        return f"{self.op}{self.operand.formula(self.precedence)}"

    def evaluate(self, sheet: SheetLike) -> float:
        value = self.operand.evaluate(sheet)
        return _checked(-value if self.op == "-" else +value)


class _CellRef(_Expr):
    precedence = _Precedence.ATOM

    def __init__(self, pos: Position) -> None:
        self.pos = pos

    def tree(self) -> str:
        if not self.pos.is_valid():
            return Category.REF.value
        return self.pos.to_string()

    def formula_body(self) -> str:
        return self.tree()

    def evaluate(self, sheet: SheetLike) -> float:
        if not self.pos.is_valid():
            raise FormulaError(Category.REF)
        cell = sheet.get_cell(self.pos)
        if cell is None:
            return 0.0
        value = cell.value()
        if isinstance(value, FormulaError):
            raise FormulaError(value.category)
        if isinstance(value, str):
            return _text_to_number(value)
        return float(value)


class _Number(_Expr):
    precedence = _Precedence.ATOM

    def __init__(self, value: float) -> None:
        self.value = value

    def tree(self) -> str:
        return _format_number(self.value)

    def formula_body(self) -> str:
        return _format_number(self.value)

    def evaluate(self, sheet: SheetLike) -> float:
        return self.value


class _Token(NamedTuple):
    kind: str
    text: str


_LEXEME_PATTERN = re.compile(
    r"""
    (?P<ws>[ \t\r\n]+)
    |(?P<number>(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<cell>[A-Z]+\d+)
    |(?P<op>[-+*/()])
    """,
    re.VERBOSE,
)


def _tokenize(text: str) -> Iterator[_Token]:
    pos = 0
    while pos < len(text):
        match = _LEXEME_PATTERN.match(text, pos)
        if match is None:
            raise ParsingError(
                f"Error when lexing: token recognition error at: '{text[pos]}'"
            )
        kind = match.lastgroup
        if kind != "ws":
            yield _Token(kind, match.group())
        pos = match.end()


class _Parser:
    def __init__(self, text: str) -> None:
        self._tokens = list(_tokenize(text))
        self._next = 0
        self._cells: list[Position] = []
        self._problems: list[Exception] = []

    def parse(self) -> FormulaAST:
        try:
            root = self._additive()
        except RecursionError as exc:
            raise ParsingError("Error when parsing: expression is nested too deeply") from exc
        extra = self._peek()
        if extra is not None:
            raise ParsingError(f"Error when parsing: unexpected '{extra.text}'")
        if self._problems:
            raise self._problems[0]
        return FormulaAST(root, self._cells)

    def _peek(self) -> Optional[_Token]:
        if self._next < len(self._tokens):
            return self._tokens[self._next]
        return None

    def _take_op(self, ops: str) -> Optional[str]:
        current = self._peek()
        if current is not None and current.kind == "op" and current.text in ops:
            self._next += 1
            return current.text
        return None

    def _additive(self) -> _Expr:
        node = self._multiplicative()
        while (op := self._take_op("+-")) is not None:
            node = _BinaryOp(op, node, self._multiplicative())
        return node

    def _multiplicative(self) -> _Expr:
        node = self._unary()
        while (op := self._take_op("*/")) is not None:
            node = _BinaryOp(op, node, self._unary())
        return node

    def _unary(self) -> _Expr:
        current = self._peek()
        if current is None:
            raise ParsingError("Error when parsing: unexpected end of input")
        if (op := self._take_op("+-")) is not None:
            return _UnaryOp(op, self._unary())
        if self._take_op("(") is not None:
            inner = self._additive()
            if self._take_op(")") is None:
                found = self._peek()
                where = "end of input" if found is None else f"'{found.text}'"
                raise ParsingError(f"Error when parsing: expected ')' before {where}")
            return inner
        self._next += 1
        if current.kind == "number":
            return self._number(current.text)
        if current.kind == "cell":
            return self._cell(current.text)
        raise ParsingError(f"Error when parsing: unexpected '{current.text}'")

    def _number(self, text: str) -> _Expr:
        value = float(text)
        mantissa = re.split(r"[eE]", text)[0]
        if math.isinf(value) or (value == 0 and re.search(r"[1-9]", mantissa)):
            self._problems.append(ParsingError(f"Invalid number: {text}"))
        return _Number(value)

    def _cell(self, text: str) -> _Expr:
        pos = Position.from_string(text)
        if not pos.is_valid():
            self._problems.append(FormulaSyntaxError(f"Invalid position: {text}"))
        self._cells.append(pos)
        return _CellRef(pos)


class FormulaAST:
    """A parsed formula: its expression tree and the cells it mentions."""

    def __init__(self, root: _Expr, cells: Sequence[Position]) -> None:
        self._root = root
        self.cells: list[Position] = sorted(cells)

    def execute(self, sheet: SheetLike) -> float:
        """Evaluate against the sheet; raises FormulaError on failure."""
        return self._root.evaluate(sheet)

    def tree_string(self) -> str:
        """Return the tree in prefix notation, e.g. "(+ 1 2)"."""
        return self._root.tree()

    def formula_string(self) -> str:
        """Return the formula without spaces or redundant parentheses."""
        return self._root.formula(_Precedence.ATOM)

    def cells_string(self) -> str:
        """Return the sorted referenced cells, each followed by a space."""
        return "".join(f"{cell.to_string()} " for cell in self.cells)


def parse_formula_ast(text: str) -> FormulaAST:
    """Parse a formula expression (without the leading '=')."""
    return _Parser(text).parse()