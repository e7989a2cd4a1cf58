"""Formulas: parsed arithmetic expressions over numbers and cell references."""

from __future__ import annotations

from .common import FormulaError, FormulaSyntaxError, Position
from .formula_ast import SheetLike, parse_formula_ast


class Formula:
    """An arithmetic expression that can be evaluated against a sheet."""

    def __init__(self, expression: str) -> None:
        self._ast = parse_formula_ast(expression)

    def evaluate(self, sheet: SheetLike) -> float | FormulaError:
        """Return the value of the formula, or the error evaluation produced."""
        try:
            return self._ast.execute(sheet)
        except FormulaError as error:
            return error

    def expression(self) -> str:
        """Return the expression without spaces or redundant parentheses."""
        return self._ast.formula_string()

    def referenced_cells(self) -> list[Position]:
        """Return the referenced cells, sorted and without duplicates."""
        return sorted(set(self._ast.cells))


def parse_formula(expression: str) -> Formula:
    """Parse an expression; raises FormulaSyntaxError if it is incorrect."""
    try:
        return Formula(expression)
    except FormulaSyntaxError:
        raise
    except Exception as exc:
        raise FormulaSyntaxError(str(exc)) from exc