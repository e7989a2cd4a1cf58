"""A sheet of cells with formula dependency tracking and printing."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional, Sequence, TextIO

from .cell import Cell
from .common import (
    CircularDependencyError,
    FormulaError,
    InvalidPositionError,
    Position,
    Size,
    Value,
)


def _check_position(pos: Position) -> None:
    if not pos.is_valid():
        raise InvalidPositionError("Invalid position")


def _format_value(value: Value) -> str:
    if isinstance(value, FormulaError):
        return value.to_string()
    if isinstance(value, float):
        return "%g" % value
    return value


class Sheet:
    """A rectangular sheet of cells addressed by Position."""

    def __init__(self) -> None:
        self._cells: dict[Position, Cell] = {}
        self._dependencies: dict[Position, list[Position]] = {}
        self._reverse_dependencies: defaultdict[Position, list[Position]] = defaultdict(
            list
        )

    def set_cell(self, pos: Position, text: str) -> None:
        """Set the cell contents; empty text clears the cell.

        Raises InvalidPositionError, FormulaSyntaxError or
        CircularDependencyError; on an error the cell is left unchanged.
        """
        _check_position(pos)
        if not text:
            self.clear_cell(pos)
            return

        cell = Cell(self)
        cell.set(pos, text)

        if pos in self._cells:
            self.clear_cell(pos)
        self._cells[pos] = cell
        self.invalidate_cache_for_dependents(pos)

    def get_cell(self, pos: Position) -> Optional[Cell]:
        """Return the cell at ``pos``, or None if it is empty."""
        _check_position(pos)
        return self._cells.get(pos)

    def clear_cell(self, pos: Position) -> None:
        """Remove the cell at ``pos``; clearing an empty cell does nothing."""
        _check_position(pos)
        self._cells.pop(pos, None)

    def printable_size(self) -> Size:
        """Return the bounding rectangle of all non-empty cells."""
        if not self._cells:
            return Size(0, 0)
        rows = max(pos.row for pos in self._cells) + 1
        cols = max(pos.col for pos in self._cells) + 1
        return Size(rows, cols)

    def _print(self, output: TextIO, render) -> None:
        size = self.printable_size()
        for row in range(size.rows):
            fields = []
            for col in range(size.cols):
                cell = self._cells.get(Position(row, col))
                fields.append("" if cell is None else render(cell))
            output.write("\t".join(fields) + "\n")

    def print_values(self, output: TextIO) -> None:
        """Write cell values, tab-separated, one line per row."""
        self._print(output, lambda cell: _format_value(cell.value()))

    def print_texts(self, output: TextIO) -> None:
        """Write cell texts, tab-separated, one line per row."""
        self._print(output, lambda cell: cell.text())

    def check_circular_dependency(
        self, pos: Position, deps: Sequence[Position]
    ) -> None:
        """Raise CircularDependencyError if ``deps`` lead back to ``pos``."""
        visited: set[Position] = set()
        stack: list[Position] = list(deps)
        while stack:
            current = stack.pop()
            if current == pos:
                raise CircularDependencyError("Cycle detected")
            if current in visited:
                continue
            visited.add(current)
            stack.extend(self._dependencies.get(current, ()))

    def update_dependencies(self, pos: Position, deps: Sequence[Position]) -> None:
        """Record that ``pos`` now depends on exactly ``deps``."""
        for old_dep in self._dependencies.get(pos, ()):
            self._reverse_dependencies[old_dep] = [
                p for p in self._reverse_dependencies[old_dep] if p != pos
            ]
        self._dependencies[pos] = list(deps)
        for dep in deps:
            self._reverse_dependencies[dep].append(pos)

    def invalidate_cache_for_dependents(self, pos: Position) -> None:
        """Drop cached values of ``pos`` and every cell depending on it."""
        visited: set[Position] = set()
        stack: list[Position] = [pos]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            cell = self._cells.get(current)
            if cell is not None:
                cell.invalidate_cache()
            stack.extend(self._reverse_dependencies.get(current, ()))

    def _positions(self) -> Iterable[Position]:
        return self._cells.keys()


def create_sheet() -> Sheet:
    """Return a new, empty sheet."""
    return Sheet()