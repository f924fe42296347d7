"""Periodic simulation cell.

A :class:`UnitCell` stores three edge vectors as the rows of a 3x3 matrix
together with an explicit :class:`CellShape` tag:

- ``RECTANGULAR``: diagonal matrix, all angles exactly 90 degrees.
- ``TRICLINIC``: general parallelepiped in canonical upper-triangular form:

      a = (ax, 0,  0)
      b = (bx, by, 0)
      c = (cx, cy, cz)

- ``INFINITE``: no periodicity; :meth:`UnitCell.wrap` leaves vectors alone.

The tag is never recomputed from the matrix. A triclinic cell built with
90/90/90 angles stays triclinic until :meth:`UnitCell.set_shape` is called.

Lengths, angles and volume are derived from the matrix on every call. All
mutators compute the complete new state first and only then store it, so a
failing call leaves the cell unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

import numpy as np

from .errors import AllocationError, ConstraintViolationError, InvalidArgumentError
from .geometry import (
    as_matrix3,
    as_points,
    cell_matrix,
    check_lengths,
    is_diagonal,
    matrix_angles,
    matrix_lengths,
    matrix_volume,
    to_cartesian,
    to_fractional,
    wrap_vectors,
)


_RIGHT_ANGLES = (90.0, 90.0, 90.0)


class CellShape(str, Enum):
    """Shape tag of a :class:`UnitCell`."""

    RECTANGULAR = 'rectangular'
    TRICLINIC = 'triclinic'
    INFINITE = 'infinite'

    @classmethod
    def _missing_(cls, value: object) -> 'CellShape | None':
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        if key == 'orthorhombic':
            return cls.RECTANGULAR
        for member in cls:
            if member.value == key:
                return member
        return None

    @classmethod
    def coerce(cls, value: Any) -> 'CellShape':
        """Return ``value`` as a CellShape.

        Strings are matched case-insensitively; ``'orthorhombic'`` is accepted
        as an alias of ``'rectangular'``.

        Raises:
            InvalidArgumentError: If the value names no shape.
        """
        if value is None:
            raise InvalidArgumentError('cell shape is missing')
        try:
            return cls(value)
        except ValueError as e:
            raise InvalidArgumentError(f'unknown cell shape: {value!r}') from e


def _allocate(matrix: np.ndarray) -> np.ndarray:
    """Copy ``matrix`` into storage owned by a new cell."""
    try:
        return np.array(matrix, dtype=np.float64, copy=True)
    except MemoryError as e:
        raise AllocationError('could not allocate storage for a unit cell') from e


def _rectangular_matrix(lengths: Any) -> tuple[np.ndarray, CellShape]:
    """Matrix and shape for a cell given by lengths only.

    All-zero lengths are the conventional "no cell" value and give an
    infinite cell.
    """
    lengths = check_lengths(lengths)
    if not np.any(lengths):
        return np.zeros((3, 3), dtype=np.float64), CellShape.INFINITE
    if np.any(lengths == 0.0):
        raise ConstraintViolationError(
            'a periodic cell needs three non-zero lengths, got '
            f'{tuple(lengths.tolist())}; use (0, 0, 0) for an infinite cell'
        )
    return np.diag(lengths), CellShape.RECTANGULAR


def _triclinic_matrix(lengths: Any, angles: Any) -> np.ndarray:
    lengths = check_lengths(lengths)
    if np.any(lengths == 0.0):
        raise ConstraintViolationError(
            'a triclinic cell needs three non-zero lengths, got '
            f'{tuple(lengths.tolist())}'
        )
    return cell_matrix(lengths, angles)


def _lookup(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        value = source.get(name)
    else:
        value = getattr(source, name, None)
    if callable(value):
        value = value()
    return value


class UnitCell:
    """Periodic simulation cell with an explicit shape tag.

    ``UnitCell()`` is an infinite cell; ``UnitCell(lengths)`` is the same as
    :meth:`from_lengths`.

    Args:
        lengths: Optional (a, b, c) side lengths of a rectangular cell.

    Raises:
        InvalidArgumentError: If a length is negative or not finite.
        ConstraintViolationError: If some, but not all, lengths are zero.
        AllocationError: If storage cannot be obtained.
    """

    __slots__ = ('_matrix', '_shape')

    def __init__(self, lengths: Any = None) -> None:
        if lengths is None:
            matrix, shape = np.zeros((3, 3), dtype=np.float64), CellShape.INFINITE
        else:
            matrix, shape = _rectangular_matrix(lengths)
        self._matrix = _allocate(matrix)
        self._shape = shape

    @classmethod
    def _new(cls, matrix: np.ndarray, shape: CellShape) -> 'UnitCell':
        storage = _allocate(matrix)
        cell = cls.__new__(cls)
        cell._matrix = storage
        cell._shape = shape
        return cell

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_lengths(cls, a: float, b: float, c: float) -> 'UnitCell':
        """Create a rectangular cell with matrix ``diag(a, b, c)``.

        ``from_lengths(0, 0, 0)`` gives an infinite cell.
        """
        matrix, shape = _rectangular_matrix((a, b, c))
        return cls._new(matrix, shape)

    @classmethod
    def from_lengths_angles(cls, lengths: Any, angles: Any) -> 'UnitCell':
        """Create a triclinic cell from lengths and angles (degrees).

        The result is always tagged triclinic, including for 90/90/90.

        Raises:
            InvalidArgumentError: On negative or non-finite input.
            ConstraintViolationError: On a zero length or degenerate angles.
        """
        matrix = _triclinic_matrix(lengths, angles)
        return cls._new(matrix, CellShape.TRICLINIC)

    @classmethod
    def from_matrix(cls, matrix: Any, shape: Any = None) -> 'UnitCell':
        """Create a cell from three edge vectors given as matrix rows.

        Periodic cells are stored in canonical form, rebuilt from the lengths
        and angles of the given vectors (so only the lattice geometry, not
        its orientation, is kept). Infinite cells keep the matrix as given.

        Args:
            matrix: (3, 3) array, rows are edge vectors.
            shape: Optional shape. If None, a zero matrix is infinite, a
                diagonal matrix is rectangular, anything else triclinic.

        Raises:
            InvalidArgumentError: On malformed input or unknown shape.
            ConstraintViolationError: On degenerate vectors, or when a
                rectangular shape is requested for non-orthogonal vectors.
        """
        m = as_matrix3(matrix)
        if shape is not None:
            shape = CellShape.coerce(shape)

        if shape is CellShape.INFINITE or (shape is None and not np.any(m)):
            return cls._new(m, CellShape.INFINITE)

        lengths = matrix_lengths(m)
        if np.any(lengths == 0.0):
            raise ConstraintViolationError(
                'a periodic cell needs three non-zero edge vectors'
            )
        angles = matrix_angles(m)

        if shape is None:
            shape = CellShape.RECTANGULAR if is_diagonal(m) else CellShape.TRICLINIC
        if shape is CellShape.RECTANGULAR:
            if not np.all(angles == 90.0):
                raise ConstraintViolationError(
                    'a rectangular cell needs orthogonal edge vectors, got '
                    f'angles {tuple(angles.tolist())}'
                )
            return cls._new(np.diag(lengths), CellShape.RECTANGULAR)
        return cls._new(cell_matrix(lengths, angles), CellShape.TRICLINIC)

    @classmethod
    def from_geometry(cls, source: Any) -> 'UnitCell':
        """Derive a cell from geometry stored by another object.

        ``source`` may be a :class:`UnitCell` (copied), or any object or
        mapping exposing, in order of preference:

        - ``cell``: resolved recursively (e.g. a trajectory frame);
        - ``matrix`` or ``vectors``: passed to :meth:`from_matrix`;
        - ``lengths`` and optionally ``angles``: rectangular without angles,
          triclinic with them.

        An optional ``shape`` entry is applied to the result. Attributes that
        are callables are called without arguments.

        Raises:
            InvalidArgumentError: If no geometry can be found.
        """
        if source is None:
            raise InvalidArgumentError('geometry source is missing')
        if isinstance(source, UnitCell):
            return source.copy()

        inner = _lookup(source, 'cell')
        if inner is not None:
            return cls.from_geometry(inner)

        shape = _lookup(source, 'shape')
        matrix = _lookup(source, 'matrix')
        if matrix is None:
            matrix = _lookup(source, 'vectors')
        if matrix is not None:
            return cls.from_matrix(matrix, shape=shape)

        lengths = _lookup(source, 'lengths')
        if lengths is None:
            raise InvalidArgumentError(
                f'cannot derive a unit cell from {type(source).__name__}: '
                'expected cell, matrix, vectors or lengths'
            )
        angles = _lookup(source, 'angles')
        if angles is None:
            cell = cls(lengths)
        else:
            cell = cls.from_lengths_angles(lengths, angles)
        if shape is not None:
            cell.set_shape(shape)
        return cell

    def copy(self) -> 'UnitCell':
        """Return an independent copy of this cell."""
        return type(self)._new(self._matrix, self._shape)

    def __copy__(self) -> 'UnitCell':
        return self.copy()

    def __deepcopy__(self, memo: dict[int, Any]) -> 'UnitCell':
        return self.copy()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def shape(self) -> CellShape:
        return self._shape

    def matrix(self) -> np.ndarray:
        """Return a copy of the cell matrix (rows are edge vectors)."""
        return self._matrix.copy()

    def lengths(self) -> np.ndarray:
        """Return (a, b, c)."""
        return matrix_lengths(self._matrix)

    def angles(self) -> np.ndarray:
        """Return (alpha, beta, gamma) in degrees."""
        return matrix_angles(self._matrix)

    def volume(self) -> float:
        """Return the cell volume; zero for infinite cells."""
        if self._shape is CellShape.INFINITE:
            return 0.0
        return matrix_volume(self._matrix)

    @property
    def a(self) -> float:
        return float(self.lengths()[0])

    @property
    def b(self) -> float:
        return float(self.lengths()[1])

    @property
    def c(self) -> float:
        return float(self.lengths()[2])

    @property
    def alpha(self) -> float:
        "Angle between b and c, in degrees"
        return float(self.angles()[0])

    @property
    def beta(self) -> float:
        "Angle between a and c, in degrees"
        return float(self.angles()[1])

    @property
    def gamma(self) -> float:
        "Angle between a and b, in degrees"
        return float(self.angles()[2])

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def set_lengths(self, lengths: Any) -> None:
        """Rescale the edge vectors to new lengths, keeping their directions.

        Angles are not changed. A zero-length edge takes the matching
        Cartesian axis as its direction.

        Raises:
            InvalidArgumentError: If a length is negative or not finite.
        """
        new = check_lengths(lengths)
        if self._shape is CellShape.RECTANGULAR:
            self._matrix = np.diag(new)
            return

        m = self._matrix.copy()
        current = matrix_lengths(m)
        axes = np.eye(3, dtype=np.float64)
        for i in range(3):
            if current[i] == 0.0:
                m[i] = axes[i] * new[i]
            else:
                m[i] = m[i] / current[i] * new[i]
        self._matrix = m

    def set_angles(self, angles: Any) -> None:
        """Rebuild a triclinic cell from its lengths and new angles (degrees).

        Raises:
            ConstraintViolationError: If the cell is not triclinic, or the
                angles are degenerate.
        """
        if self._shape is not CellShape.TRICLINIC:
            raise ConstraintViolationError(
                f'cannot set angles of a {self._shape.value} cell; '
                'set the shape to triclinic first'
            )
        self._matrix = cell_matrix(self.lengths(), angles)

    def set_shape(
        self,
        shape: Any,
        *,
        lengths: Any = None,
        angles: Any = None,
    ) -> None:
        """Change the shape tag.

        Allowed transitions:

        - rectangular -> triclinic: always, matrix unchanged;
        - triclinic -> rectangular: only if all angles are exactly 90;
        - any -> infinite: always, matrix kept but no longer periodic;
        - infinite -> rectangular/triclinic: the matrix is rebuilt from
          ``lengths`` (and ``angles`` for triclinic, default 90/90/90). If
          no lengths are given the stored matrix is reused, provided it
          describes a non-degenerate cell of the requested shape.

        Args:
            shape: Target shape (CellShape or its name).
            lengths: New lengths, only when leaving the infinite shape.
            angles: New angles, only when leaving the infinite shape towards
                triclinic.

        Raises:
            InvalidArgumentError: On an unknown shape, or lengths/angles
                given for a transition that does not use them.
            ConstraintViolationError: If the transition is not allowed.
        """
        new = CellShape.coerce(shape)
        leaving_infinite = (
            self._shape is CellShape.INFINITE and new is not CellShape.INFINITE
        )
        if not leaving_infinite and (lengths is not None or angles is not None):
            raise InvalidArgumentError(
                'lengths and angles can only be given when converting an '
                'infinite cell to a periodic one'
            )

        if leaving_infinite:
            matrix = self._periodic_matrix(new, lengths, angles)
        elif new is CellShape.RECTANGULAR and self._shape is CellShape.TRICLINIC:
            current = self.angles()
            if not np.all(current == 90.0):
                raise ConstraintViolationError(
                    'cannot convert a triclinic cell with angles '
                    f'{tuple(current.tolist())} to rectangular; all angles '
                    'must be exactly 90'
                )
            matrix = np.diag(self.lengths())
        else:
            matrix = self._matrix

        self._matrix = matrix
        self._shape = new

    def _periodic_matrix(
        self, shape: CellShape, lengths: Any, angles: Any
    ) -> np.ndarray:
        if lengths is not None:
            if shape is CellShape.RECTANGULAR:
                if angles is not None:
                    raise InvalidArgumentError('a rectangular cell takes no angles')
                matrix, built = _rectangular_matrix(lengths)
                if built is CellShape.INFINITE:
                    raise ConstraintViolationError(
                        'a periodic cell needs non-zero lengths'
                    )
                return matrix
            return _triclinic_matrix(
                lengths, _RIGHT_ANGLES if angles is None else angles
            )

        if angles is not None:
            raise InvalidArgumentError('angles were given without lengths')
        if matrix_volume(self._matrix) == 0.0:
            raise ConstraintViolationError(
                'the stored matrix of this infinite cell is degenerate; '
                'give lengths to make it periodic'
            )
        current_lengths = self.lengths()
        current_angles = self.angles()
        if shape is CellShape.RECTANGULAR:
            if not np.all(current_angles == 90.0):
                raise ConstraintViolationError(
                    'cannot convert an infinite cell with angles '
                    f'{tuple(current_angles.tolist())} to rectangular'
                )
            return np.diag(current_lengths)
        return cell_matrix(current_lengths, current_angles)

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------

    def to_fractional(self, points: Any) -> np.ndarray:
        """Cartesian -> fractional coordinates, shape (3,) or (n, 3).

        Raises:
            ConstraintViolationError: For infinite or degenerate cells.
        """
        self._require_periodic('fractional coordinates')
        return to_fractional(self._matrix, points)

    def to_cartesian(self, fractional: Any) -> np.ndarray:
        """Fractional -> Cartesian coordinates, shape (3,) or (n, 3)."""
        self._require_periodic('Cartesian coordinates from fractional ones')
        return to_cartesian(self._matrix, fractional)

    def wrap(self, vector: Any) -> np.ndarray:
        """Wrap vectors into the cell centred on the origin.

        The fractional components are reduced to [-1/2, 1/2] with ties
        rounded away from zero, e.g. for ``UnitCell((2, 3, 4))``:

            >>> UnitCell((2, 3, 4)).wrap((0.8, 1.7, -6))
            array([ 0.8, -1.3,  2. ])

        A component exactly on a face (fractional +1/2 or -1/2) moves to the
        opposite face, so ``wrap(wrap(v))`` equals ``wrap(v)`` only away from
        such ties; both results are images of the same point.

        Infinite cells return a copy of the input.

        Args:
            vector: Cartesian vector (3,) or array of vectors (n, 3).

        Returns:
            np.ndarray: Wrapped vectors, same shape as the input. The input
            is never modified.

        Raises:
            InvalidArgumentError: On malformed or non-finite input.
            ConstraintViolationError: If the periodic cell is degenerate.
        """
        if self._shape is CellShape.INFINITE:
            return as_points(vector, name='vector')
        return wrap_vectors(self._matrix, vector)

    def _require_periodic(self, what: str) -> None:
        if self._shape is CellShape.INFINITE:
            raise ConstraintViolationError(f'an infinite cell has no {what}')

    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnitCell):
            return NotImplemented
        return self._shape is other._shape and bool(
            np.array_equal(self._matrix, other._matrix)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        lengths = ', '.join(f'{x:.6g}' for x in self.lengths())
        if self._shape is CellShape.RECTANGULAR:
            return f'UnitCell(shape={self._shape.value!r}, lengths=({lengths}))'
        angles = ', '.join(f'{x:.6g}' for x in self.angles())
        return (
            f'UnitCell(shape={self._shape.value!r}, lengths=({lengths}), '
            f'angles=({angles}))'
        )
