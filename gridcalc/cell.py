"""Spreadsheet cells: empty, text or formula contents with a cached value."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .common import (
    ESCAPE_SIGN,
    FORMULA_SIGN,
    FormulaError,
    FormulaSyntaxError,
    Position,
    Value,
)
from .formula import Formula, parse_formula
from .formula_ast import CellLike


class DependencyTracker(Protocol):
    """What a cell needs from the sheet that owns it."""

    def get_cell(self, pos: Position) -> Optional[CellLike]: ...

    def check_circular_dependency(
        self, pos: Position, deps: Sequence[Position]
    ) -> None: ...

    def update_dependencies(self, pos: Position, deps: Sequence[Position]) -> None: ...


class _Empty:
    def value(self) -> Value:
        return ""

    def text(self) -> str:
        return ""


class _Text:
    def __init__(self, text: str, escaped: bool) -> None:
        self._text = text
        self._escaped = escaped

    def value(self) -> Value:
        return self._text

    def text(self) -> str:
        return ESCAPE_SIGN + self._text if self._escaped else self._text


class _FormulaContent:
    def __init__(self, formula: Formula, sheet: DependencyTracker) -> None:
        self.formula = formula
        self._sheet = sheet

    def value(self) -> Value:
        return self.formula.evaluate(self._sheet)

    def text(self) -> str:
        return FORMULA_SIGN + self.formula.expression()


class Cell:
    """A single cell of a sheet; its value is computed lazily and cached."""

    def __init__(self, sheet: DependencyTracker) -> None:
        self._sheet = sheet
        self._content: _Empty | _Text | _FormulaContent = _Empty()
        self._cached: Optional[Value] = None

    def set(self, pos: Position, text: str) -> None:
        """Set the contents of the cell located at ``pos``.

        Text starting with '=' is a formula; a leading apostrophe escapes it.
        On a syntax error or a dependency cycle the cell is left unchanged.
        """
        if not text:
            content: _Empty | _Text | _FormulaContent = _Empty()
        elif text[0] == FORMULA_SIGN:
            formula = parse_formula(text[1:])
            deps = formula.referenced_cells()
            invalid = [dep for dep in deps if not dep.is_valid()]
            if invalid:
                raise FormulaSyntaxError(
                    f"Invalid cell position: {invalid[0].to_string()}"
                )
            self._sheet.check_circular_dependency(pos, deps)
            self._sheet.update_dependencies(pos, deps)
            content = _FormulaContent(formula, self._sheet)
        elif text[0] == ESCAPE_SIGN:
            content = _Text(text[1:], escaped=True)
        else:
            content = _Text(text, escaped=False)

        self._content = content
        self.invalidate_cache()

    def value(self) -> Value:
        """Return the visible value: text, a number or a FormulaError."""
        if self._cached is None:
            try:
                self._cached = self._content.value()
            except FormulaError as error:
                self._cached = error
        return self._cached

    def text(self) -> str:
        """Return the contents as they would be edited."""
        return self._content.text()

    def referenced_cells(self) -> list[Position]:
        """Return the cells a formula refers to, sorted and unique."""
        if isinstance(self._content, _FormulaContent):
            return self._content.formula.referenced_cells()
        return []

    def invalidate_cache(self) -> None:
        """Forget the cached value so the next read recomputes it."""
        self._cached = None