from __future__ import annotations

import numpy as np
import pytest

from pbcell import (
    CellShape,
    ConstraintViolationError,
    InvalidArgumentError,
    UnitCell,
)


def test_set_lengths_on_rectangular_cell() -> None:
    cell = UnitCell.from_lengths(2.0, 3.0, 4.0)
    cell.set_lengths((10.0, 20.0, 30.0))

    assert tuple(cell.lengths()) == (10.0, 20.0, 30.0)
    assert tuple(cell.angles()) == (90.0, 90.0, 90.0)
    assert cell.shape() is CellShape.RECTANGULAR


def test_set_lengths_preserves_triclinic_angles() -> None:
    cell = UnitCell.from_lengths_angles((2.0, 3.0, 4.0), (75.0, 85.0, 105.0))
    before = cell.angles()

    cell.set_lengths((7.0, 0.5, 11.0))

    assert np.allclose(cell.lengths(), [7.0, 0.5, 11.0], atol=1e-12)
    assert np.allclose(cell.angles(), before, atol=1e-10)
    m = cell.matrix()
    assert m[0, 1] == 0.0 and m[0, 2] == 0.0 and m[1, 2] == 0.0


def test_set_lengths_rejects_negative_and_keeps_state() -> None:
    cell = UnitCell.from_lengths_angles((2.0, 3.0, 4.0), (75.0, 85.0, 105.0))
    snapshot = cell.copy()

    with pytest.raises(InvalidArgumentError, match='non-negative'):
        cell.set_lengths((1.0, -1.0, 1.0))
    assert cell == snapshot


def test_set_lengths_from_zero_uses_canonical_axes() -> None:
    cell = UnitCell.from_lengths_angles((2.0, 3.0, 4.0), (75.0, 85.0, 105.0))
    cell.set_lengths((0.0, 0.0, 0.0))
    assert np.array_equal(cell.matrix(), np.zeros((3, 3)))

    cell.set_lengths((1.0, 2.0, 3.0))
    assert np.array_equal(cell.matrix(), np.diag([1.0, 2.0, 3.0]))


def test_set_angles_requires_triclinic() -> None:
    cell = UnitCell.from_lengths(2.0, 3.0, 4.0)
    assert tuple(cell.angles()) == (90.0, 90.0, 90.0)

    with pytest.raises(ConstraintViolationError, match='triclinic first'):
        cell.set_angles((80.0, 89.0, 100.0))
    assert cell == UnitCell.from_lengths(2.0, 3.0, 4.0)

    cell.set_shape(CellShape.TRICLINIC)
    cell.set_angles((80.0, 89.0, 100.0))

    assert np.allclose(cell.angles(), [80.0, 89.0, 100.0], atol=1e-10)
    assert np.allclose(cell.lengths(), [2.0, 3.0, 4.0], atol=1e-12)


def test_set_angles_on_infinite_cell_fails() -> None:
    cell = UnitCell()
    with pytest.raises(ConstraintViolationError):
        cell.set_angles((80.0, 89.0, 100.0))


def test_set_angles_degenerate_keeps_state() -> None:
    cell = UnitCell.from_lengths_angles((2.0, 3.0, 4.0), (75.0, 85.0, 105.0))
    snapshot = cell.copy()
    with pytest.raises(ConstraintViolationError):
        cell.set_angles((90.0, 90.0, 180.0))
    assert cell == snapshot


def test_shape_transitions() -> None:
    cell = UnitCell.from_lengths(2.0, 3.0, 4.0)
    assert cell.shape() is CellShape.RECTANGULAR

    cell.set_shape(CellShape.TRICLINIC)
    assert cell.shape() is CellShape.TRICLINIC
    assert np.array_equal(cell.matrix(), np.diag([2.0, 3.0, 4.0]))

    cell.set_lengths((0.0, 0.0, 0.0))
    cell.set_shape(CellShape.INFINITE)
    assert cell.shape() is CellShape.INFINITE


def test_triclinic_to_rectangular_needs_right_angles() -> None:
    cell = UnitCell.from_lengths_angles((2.0, 3.0, 4.0), (90.0, 90.0, 90.0))
    cell.set_shape('rectangular')
    assert cell.shape() is CellShape.RECTANGULAR
    assert cell == UnitCell.from_lengths(2.0, 3.0, 4.0)

    skewed = UnitCell.from_lengths_angles((2.0, 3.0, 4.0), (90.0, 90.0, 100.0))
    with pytest.raises(ConstraintViolationError, match='exactly 90'):
        skewed.set_shape(CellShape.RECTANGULAR)
    assert skewed.shape() is CellShape.TRICLINIC


def test_shape_accepts_names() -> None:
    cell = UnitCell.from_lengths(1.0, 1.0, 1.0)
    cell.set_shape('Triclinic')
    assert cell.shape() is CellShape.TRICLINIC
    cell.set_shape('orthorhombic')
    assert cell.shape() is CellShape.RECTANGULAR

    with pytest.raises(InvalidArgumentError, match='unknown cell shape'):
        cell.set_shape('cubic')
    with pytest.raises(InvalidArgumentError):
        cell.set_shape(None)


def test_to_infinite_keeps_matrix() -> None:
    cell = UnitCell.from_lengths_angles((2.0, 3.0, 4.0), (75.0, 85.0, 105.0))
    m = cell.matrix()
    cell.set_shape(CellShape.INFINITE)

    assert cell.shape() is CellShape.INFINITE
    assert np.array_equal(cell.matrix(), m)
    assert cell.volume() == 0.0


def test_leave_infinite_with_fresh_lengths() -> None:
    cell = UnitCell()
    cell.set_shape(CellShape.RECTANGULAR, lengths=(5.0, 6.0, 7.0))
    assert cell == UnitCell.from_lengths(5.0, 6.0, 7.0)

    cell = UnitCell()
    cell.set_shape(
        CellShape.TRICLINIC, lengths=(5.0, 6.0, 7.0), angles=(80.0, 90.0, 110.0)
    )
    assert cell == UnitCell.from_lengths_angles((5.0, 6.0, 7.0), (80.0, 90.0, 110.0))

    cell = UnitCell()
    cell.set_shape(CellShape.TRICLINIC, lengths=(5.0, 6.0, 7.0))
    assert tuple(cell.angles()) == (90.0, 90.0, 90.0)
    assert cell.shape() is CellShape.TRICLINIC


def test_leave_infinite_without_lengths() -> None:
    cell = UnitCell()
    with pytest.raises(ConstraintViolationError, match='give lengths'):
        cell.set_shape(CellShape.TRICLINIC)
    assert cell.shape() is CellShape.INFINITE

    # A non-degenerate stored matrix can be reused.
    cell = UnitCell.from_lengths(2.0, 3.0, 4.0)
    cell.set_shape(CellShape.INFINITE)
    cell.set_shape(CellShape.RECTANGULAR)
    assert cell == UnitCell.from_lengths(2.0, 3.0, 4.0)


def test_leave_infinite_rejects_misplaced_arguments() -> None:
    cell = UnitCell()
    with pytest.raises(InvalidArgumentError, match='no angles'):
        cell.set_shape(
            CellShape.RECTANGULAR, lengths=(1.0, 1.0, 1.0), angles=(90, 90, 90)
        )
    with pytest.raises(InvalidArgumentError, match='without lengths'):
        cell.set_shape(CellShape.TRICLINIC, angles=(90.0, 90.0, 90.0))
    with pytest.raises(ConstraintViolationError):
        cell.set_shape(CellShape.RECTANGULAR, lengths=(0.0, 0.0, 0.0))
    with pytest.raises(ConstraintViolationError, match='non-zero lengths'):
        cell.set_shape(CellShape.TRICLINIC, lengths=(3.0, 0.0, 3.0))
    assert cell.shape() is CellShape.INFINITE


def test_lengths_keyword_only_when_leaving_infinite() -> None:
    cell = UnitCell.from_lengths(1.0, 2.0, 3.0)
    with pytest.raises(InvalidArgumentError, match='infinite'):
        cell.set_shape(CellShape.TRICLINIC, lengths=(4.0, 5.0, 6.0))
    assert cell.shape() is CellShape.RECTANGULAR


def test_same_shape_is_noop() -> None:
    cell = UnitCell.from_lengths_angles((2.0, 3.0, 4.0), (75.0, 85.0, 105.0))
    snapshot = cell.copy()
    cell.set_shape(CellShape.TRICLINIC)
    assert cell == snapshot
