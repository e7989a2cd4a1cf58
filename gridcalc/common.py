"""Core value types shared across the spreadsheet: positions, sizes and errors."""

from __future__ import annotations

import enum
import string
from dataclasses import dataclass
from typing import ClassVar, Union

FORMULA_SIGN = "="
ESCAPE_SIGN = "'"

_LETTERS = 26
_MAX_POS_LETTER_COUNT = 3
_INT_MAX = 2**31 - 1


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based cell position; ordered by row, then column."""

    row: int = 0
    col: int = 0

    MAX_ROWS: ClassVar[int] = 16384
    MAX_COLS: ClassVar[int] = 16384
    NONE: ClassVar["Position"]

    def is_valid(self) -> bool:
        """Return True if the position lies inside the sheet bounds."""
        return 0 <= self.row < self.MAX_ROWS and 0 <= self.col < self.MAX_COLS

    def to_string(self) -> str:
        """Return the A1-style name of the position, or "" if it is invalid."""
        if not self.is_valid():
            return ""
        letters = []
        c = self.col
        while c >= 0:
            letters.append(chr(ord("A") + c % _LETTERS))
            c = c // _LETTERS - 1
        return "".join(reversed(letters)) + str(self.row + 1)

    @classmethod
    def from_string(cls, text: str) -> "Position":
        """Parse an A1-style name; malformed input yields Position.NONE.

        A well-formed name outside the sheet bounds yields an invalid position.
        """
        split = len(text)
        for index, ch in enumerate(text):
            if ch not in string.ascii_uppercase:
                split = index
                break
        letters, digits = text[:split], text[split:]

        if not letters or not digits:
            return cls.NONE
        if len(letters) > _MAX_POS_LETTER_COUNT:
            return cls.NONE
        if not all(ch in string.digits for ch in digits):
            return cls.NONE

        row = int(digits)
        if row > _INT_MAX:
            return cls.NONE

        col = 0
        for ch in letters:
            col = col * _LETTERS + (ord(ch) - ord("A") + 1)

        return cls(row - 1, col - 1)


Position.NONE = Position(-1, -1)


@dataclass(frozen=True)
class Size:
    """Dimensions of a rectangular area of the sheet."""

    rows: int = 0
    cols: int = 0


class Category(enum.Enum):
    """Kinds of errors a formula evaluation can produce."""

    REF = "#REF!"
    VALUE = "#VALUE!"
    ARITHMETIC = "#ARITHM!"


class FormulaError(Exception):
    """An evaluation error; raised during evaluation and stored as a cell value."""

    def __init__(self, category: Category) -> None:
        super().__init__(category.value)
        self.category = category

    def to_string(self) -> str:
        """Return the spreadsheet display text of the error."""
        return self.category.value

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"FormulaError({self.category})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FormulaError):
            return self.category == other.category
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.category)


class InvalidPositionError(IndexError):
    """Raised when a method is given a position outside the sheet."""


class FormulaSyntaxError(RuntimeError):
    """Raised when a formula is syntactically incorrect."""


class CircularDependencyError(RuntimeError):
    """Raised when a formula would create a cycle between cells."""


Value = Union[str, float, FormulaError]