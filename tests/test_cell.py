import pytest

from gridcalc.cell import Cell
from gridcalc.common import (
    Category,
    CircularDependencyError,
    FormulaError,
    FormulaSyntaxError,
    Position,
)


class FakeSheet:
    def __init__(self, cycle=False):
        self.cells = {}
        self.cycle = cycle
        self.checked = []
        self.updated = []

    def get_cell(self, pos):
        return self.cells.get(pos)

    def check_circular_dependency(self, pos, deps):
        self.checked.append((pos, list(deps)))
        if self.cycle:
            raise CircularDependencyError("Cycle detected")

    def update_dependencies(self, pos, deps):
        self.updated.append((pos, list(deps)))


A1 = Position.from_string("A1")
A2 = Position.from_string("A2")
A3 = Position.from_string("A3")


def test_new_cell_is_empty():
    cell = Cell(FakeSheet())
    assert cell.text() == ""
    assert cell.value() == ""
    assert cell.referenced_cells() == []


def test_plain_text():
    cell = Cell(FakeSheet())
    cell.set(A1, "Hello")
    assert cell.text() == "Hello"
    assert cell.value() == "Hello"
    cell.set(A1, "World")
    assert cell.text() == "World"
    assert cell.value() == "World"


def test_escaped_text():
    cell = Cell(FakeSheet())
    cell.set(A3, "'=escaped")
    assert cell.text() == "'=escaped"
    assert cell.value() == "=escaped"


def test_empty_text_resets_cell():
    cell = Cell(FakeSheet())
    cell.set(A1, "Purr")
    cell.set(A1, "")
    assert cell.text() == ""
    assert cell.value() == ""


@pytest.mark.parametrize(
    "text, expected_text, expected_value",
    [
        ("=2 + 2*2", "=2+2*2", 6.0),
        ("=(2*3)+4", "=2*3+4", 10.0),
        ("=4/2 + 6/3", "=4/2+6/3", 4.0),
        ("=(12+13) * (14+(13-24/(1+1))*55-46)", "=(12+13)*(14+(13-24/(1+1))*55-46)", 575.0),
    ],
)
def test_formula_text_and_value(text, expected_text, expected_value):
    cell = Cell(FakeSheet())
    cell.set(A1, text)
    assert cell.text() == expected_text
    assert cell.value() == expected_value


def test_formula_text_round_trips():
    sheet = FakeSheet()
    first = Cell(sheet)
    first.set(A1, "=  (1 + A2) * 3 ")
    second = Cell(sheet)
    second.set(A1, first.text())
    assert second.text() == first.text()


def test_division_by_zero_is_arithmetic_error():
    cell = Cell(FakeSheet())
    cell.set(A1, "=1/0")
    assert cell.value() == FormulaError(Category.ARITHMETIC)


def test_overflow_is_arithmetic_error():
    cell = Cell(FakeSheet())
    cell.set(A1, "=1e+200/1e-200")
    assert cell.value() == FormulaError(Category.ARITHMETIC)


def test_referenced_cells_sorted_unique():
    sheet = FakeSheet()
    cell = Cell(sheet)
    cell.set(Position.from_string("B5"), "=A1 + A2 + A1 + A3 + A1 + A2 + A1")
    assert cell.referenced_cells() == [A1, A2, A3]


def test_text_cell_references_nothing():
    cell = Cell(FakeSheet())
    cell.set(A1, "A1+A2")
    assert cell.referenced_cells() == []


def test_set_formula_registers_dependencies():
    sheet = FakeSheet()
    b2 = Position.from_string("B2")
    cell = Cell(sheet)
    cell.set(b2, "=A1")
    assert sheet.checked == [(b2, [A1])]
    assert sheet.updated == [(b2, [A1])]


def test_reference_to_missing_cell_is_zero():
    sheet = FakeSheet()
    cell = Cell(sheet)
    cell.set(A1, "=B2")
    sheet.cells[A1] = cell
    assert cell.value() == 0.0


def test_reference_to_numeric_text():
    sheet = FakeSheet()
    first = Cell(sheet)
    first.set(A1, "1")
    sheet.cells[A1] = first
    second = Cell(sheet)
    second.set(A2, "2")
    sheet.cells[A2] = second
    c1 = Position.from_string("C1")
    cell = Cell(sheet)
    cell.set(c1, "=A1+A2")
    sheet.cells[c1] = cell
    assert cell.value() == 3.0


def test_reference_to_non_numeric_text_is_value_error():
    sheet = FakeSheet()
    e2 = Position.from_string("E2")
    e4 = Position.from_string("E4")
    text_cell = Cell(sheet)
    text_cell.set(e2, "A1")
    sheet.cells[e2] = text_cell
    cell = Cell(sheet)
    cell.set(e4, "=E2")
    sheet.cells[e4] = cell
    assert cell.value() == FormulaError(Category.VALUE)


def test_value_is_cached_until_invalidated():
    sheet = FakeSheet()
    b1 = Position.from_string("B1")
    source = Cell(sheet)
    source.set(A1, "1")
    sheet.cells[A1] = source
    dependent = Cell(sheet)
    dependent.set(b1, "=A1")
    sheet.cells[b1] = dependent
    assert dependent.value() == 1.0
    source.set(A1, "2")
    assert source.value() == "2"
    assert dependent.value() == 1.0
    dependent.invalidate_cache()
    assert dependent.value() == 2.0


def test_syntax_error_keeps_previous_contents():
    sheet = FakeSheet()
    cell = Cell(sheet)
    cell.set(A1, "Ready")
    with pytest.raises(FormulaSyntaxError):
        cell.set(A1, "=2+4-")
    assert cell.text() == "Ready"
    assert sheet.updated == []


@pytest.mark.parametrize("text", ["=X0", "=ABCD1", "=A123456", "=XFD16385", "=R2D2"])
def test_invalid_position_in_formula(text):
    cell = Cell(FakeSheet())
    with pytest.raises(FormulaSyntaxError):
        cell.set(A1, text)
    assert cell.text() == ""


def test_lone_formula_sign_is_rejected():
    cell = Cell(FakeSheet())
    with pytest.raises(FormulaSyntaxError):
        cell.set(A1, "=")
    assert cell.value() == ""


def test_cycle_keeps_previous_contents():
    sheet = FakeSheet(cycle=True)
    cell = Cell(sheet)
    cell.set(A1, "Ready")
    with pytest.raises(CircularDependencyError):
        cell.set(A1, "=E2")
    assert cell.text() == "Ready"
    assert sheet.updated == []