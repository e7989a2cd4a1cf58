"""A small spreadsheet engine: cells, formulas, dependency tracking and printing."""

__version__ = "0.1.0"
__all__ = ["cell", "common", "formula", "formula_ast", "sheet"]