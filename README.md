# gridcalc

gridcalc is a small spreadsheet engine. Each cell holds plain text or a formula. Formulas are arithmetic expressions over numbers and other cells. The sheet keeps track of which cells depend on which. It rejects circular references. It caches computed values and drops the cached value of a cell, and of every cell that depends on it, when that cell is set again.

## Installation

```
pip install .
```

## Usage

```python
import io

from gridcalc.common import Position
from gridcalc.sheet import create_sheet

sheet = create_sheet()
sheet.set_cell(Position.from_string("A1"), "2")
sheet.set_cell(Position.from_string("A2"), "=A1*(3+4)")

cell = sheet.get_cell(Position.from_string("A2"))
print(cell.text())   # =A1*(3+4)
print(cell.value())  # 14.0

out = io.StringIO()
sheet.print_values(out)
print(out.getvalue())  # "2\n14\n"
```

## Positions

`gridcalc.common.Position` is a frozen dataclass with zero-based `row` and `col` fields. Positions are ordered by row, then by column. The sheet is at most `Position.MAX_ROWS` × `Position.MAX_COLS` cells, which is 16384 × 16384.

- `Position.from_string("C137")` returns `Position(136, 2)`. A malformed name returns `Position.NONE`, which is `(-1, -1)`.
- `to_string()` gives the A1-style name. For a position that is not valid it gives `""`.
- `is_valid()` tells whether the position lies inside the sheet.

`gridcalc.common.Size` holds `rows` and `cols`.

## Cell contents

`Sheet.set_cell(pos, text)` reads the text as follows:

- A text that starts with `=` is a formula. The rest of the text is parsed, so `"="` on its own is a syntax error.
- A text that starts with `'` is escaped. The apostrophe shows in `text()` but is dropped from `value()`.
- Any other text is stored as it is, and its value is that same string.
- An empty text clears the cell.

`Sheet.get_cell(pos)` returns a `gridcalc.cell.Cell`, or `None` if the cell is empty. A `Cell` has these methods:

- `text()` returns the contents as they would be edited. For a formula this is `=` followed by the normalised expression.
- `value()` returns the string, the float or the `FormulaError`.
- `referenced_cells()` returns the positions a formula refers to.

## Formulas

A formula supports `+`, `-`, `*` and `/`, unary plus and minus, parentheses, decimal numbers with an optional exponent, and cell references such as `B12`.

A referenced cell contributes to a formula as follows:

- An empty cell counts as zero.
- A cell that holds the empty string counts as zero.
- A cell that holds text counts as that number when the text reads as one.
- A cell whose value is an error passes that error on.

A cell reference that lies outside the sheet, such as `XFD16385`, is rejected when the formula is parsed.

When evaluation fails, the cell's value is a `gridcalc.common.FormulaError`. Its `category` is a `Category` member:

| Category | Displayed as | Cause |
| --- | --- | --- |
| `Category.REF` | `#REF!` | A reference to a position that is not valid. |
| `Category.VALUE` | `#VALUE!` | A referenced cell holds text that is not a number. |
| `Category.ARITHMETIC` | `#ARITHM!` | Division by zero, or a result that is not finite. |

You can parse a formula on its own with `gridcalc.formula.parse_formula`. It returns a `Formula`, which has these methods:

- `evaluate(sheet)` computes the formula against a sheet. It returns a float, or the `FormulaError` that evaluation produced.
- `expression()` gives the expression without spaces or redundant parentheses. For example, `"(2*3)+4"` gives `"2*3+4"`.
- `referenced_cells()` gives the referenced positions, sorted and without duplicates.

The module `gridcalc.formula_ast` provides the lower-level parser:

- `parse_formula_ast(text)` returns a `FormulaAST`.
- `FormulaAST` has `execute(sheet)`, `tree_string()` for prefix notation such as `(+ 1 2)`, `formula_string()` and `cells_string()`.
- It raises `ParsingError` for input it cannot lex or parse.

## Errors

- `InvalidPositionError` is raised when a sheet method gets a position outside the sheet. It is an `IndexError`.
- `FormulaSyntaxError` is raised for a malformed formula.
- `CircularDependencyError` is raised when a formula would create a cycle, including a formula that refers to its own cell.

On `FormulaSyntaxError` and on `CircularDependencyError` the cell is left unchanged.

## Sheet layout

- `printable_size()` returns the bounding `Size` of all non-empty cells, counted from `A1`.
- `print_values(output)` writes the sheet's values to a text stream. Numbers are written in `%g` form, so `35.0` is written as `35`, and errors are written as their display text.
- `print_texts(output)` writes the sheet's texts to a text stream.

In both, columns are separated by tabs, each row ends with a newline, and empty cells are written as empty strings.

## What it does not do

gridcalc is a library only. It has no command-line program and no user interface. It cannot load or save sheets from files. Formulas have no functions, such as `SUM`, and no cell ranges.

## Running the tests

```
pip install .[test]
pytest
```