"""Status-code interface to :class:`pbcell.UnitCell`.

This module exposes the cell operations as functions that never raise. Each
returns a :class:`CallResult` holding a :class:`Status`, the produced value
(or None), and a human readable message describing the failure of *that*
call. Unexpected exceptions are reported as :attr:`Status.GENERIC_ERROR`.
There is no process-wide "last error".

Failures are also reported through the ``pbcell`` logger (see
:mod:`pbcell.log`) at ERROR level.

Construction entry points (:func:`cell`, :func:`cell_triclinic`,
:func:`cell_copy`, :func:`cell_from_frame`) each perform one allocation.
:func:`fail_next_allocation` arms simulated exhaustion for tests: the next
allocation fails with :attr:`Status.MEMORY_ERROR`, nothing is created, and
later calls behave normally.

Example:

    >>> res = cell([2, 3, 4])
    >>> vec = [0.8, 1.7, -6.0]
    >>> cell_wrap(res.value, vec).ok
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable

import numpy as np

from .__about__ import __version__
from .cell import CellShape, UnitCell
from .errors import CellError, ErrorKind, InvalidArgumentError
from .log import LOG


class Status(IntEnum):
    """Status codes returned by every entry point."""

    SUCCESS = 0
    MEMORY_ERROR = 1
    # Reserved for file, format and selection collaborators.
    FILE_ERROR = 2
    FORMAT_ERROR = 3
    SELECTION_ERROR = 4
    GENERIC_ERROR = 5
    CXX_ERROR = 6
    INVALID_ARGUMENT = 7
    CONSTRAINT_VIOLATION = 8


_MESSAGES = {
    Status.SUCCESS: 'operation was successful',
    Status.MEMORY_ERROR: 'memory allocation error',
    Status.FILE_ERROR: 'system error while reading a file',
    Status.FORMAT_ERROR: 'error while parsing a file',
    Status.SELECTION_ERROR: 'error in selection parsing or evaluation',
    Status.GENERIC_ERROR: 'unknown error from pbcell library',
    Status.CXX_ERROR: 'error from the underlying runtime',
    Status.INVALID_ARGUMENT: 'invalid argument',
    Status.CONSTRAINT_VIOLATION: 'operation violates the cell constraints',
}

_KIND_STATUS = {
    ErrorKind.INVALID_ARGUMENT: Status.INVALID_ARGUMENT,
    ErrorKind.CONSTRAINT_VIOLATION: Status.CONSTRAINT_VIOLATION,
    ErrorKind.ALLOCATION_FAILURE: Status.MEMORY_ERROR,
    ErrorKind.GENERIC_FAILURE: Status.GENERIC_ERROR,
}


@dataclass(frozen=True, slots=True)
class CallResult:
    status: Status
    value: Any = None
    message: str = ''

    @property
    def ok(self) -> bool:
        return self.status is Status.SUCCESS


def version() -> str:
    return __version__


def strerror(status: int) -> str:
    """Return the static description of a status code ('' if unknown)."""
    try:
        return _MESSAGES[Status(status)]
    except ValueError:
        return ''


# ----------------------------------------------------------------------
# Allocation failure injection
# ----------------------------------------------------------------------

_failures_armed = 0


def fail_next_allocation(count: int = 1) -> None:
    """Make the next ``count`` allocations fail with MEMORY_ERROR."""
    global _failures_armed
    n = int(count)
    if n < 0:
        raise ValueError('count must be >= 0')
    _failures_armed = n


def reset_allocation_failures() -> None:
    global _failures_armed
    _failures_armed = 0


def _allocation() -> None:
    global _failures_armed
    if _failures_armed > 0:
        _failures_armed -= 1
        raise MemoryError('simulated allocation failure')


# ----------------------------------------------------------------------
# Dispatch
# ----------------------------------------------------------------------


def _failure(status: Status, error: BaseException) -> CallResult:
    message = str(error) or strerror(status)
    LOG.error('%s', message)
    return CallResult(status=status, value=None, message=message)


def _call(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> CallResult:
    try:
        value = fn(*args, **kwargs)
    except CellError as e:
        return _failure(_KIND_STATUS[e.kind], e)
    except MemoryError as e:
        return _failure(Status.MEMORY_ERROR, e)
    except Exception as e:
        return _failure(Status.GENERIC_ERROR, e)
    return CallResult(status=Status.SUCCESS, value=value)


def _require(value: Any, name: str) -> Any:
    if value is None:
        raise InvalidArgumentError(f'{name} is missing')
    return value


def _construct(factory: Callable[..., UnitCell], *args: Any) -> UnitCell:
    _allocation()
    return factory(*args)


def _cell(cell: Any) -> UnitCell:
    _require(cell, 'cell')
    if not isinstance(cell, UnitCell):
        raise InvalidArgumentError(
            f'expected a UnitCell, got {type(cell).__name__}'
        )
    return cell


def _floats(values: np.ndarray) -> tuple[float, float, float]:
    return float(values[0]), float(values[1]), float(values[2])


# ----------------------------------------------------------------------
# Construction
# ----------------------------------------------------------------------


def cell(lengths: Any) -> CallResult:
    """Create a rectangular cell (or an infinite one for (0, 0, 0))."""
    return _call(lambda: _construct(UnitCell, _require(lengths, 'lengths')))


def cell_triclinic(lengths: Any, angles: Any) -> CallResult:
    """Create a triclinic cell; the shape is triclinic even for 90/90/90."""
    return _call(
        lambda: _construct(
            UnitCell.from_lengths_angles,
            _require(lengths, 'lengths'),
            _require(angles, 'angles'),
        )
    )


def cell_copy(cell: Any) -> CallResult:
    return _call(lambda: _construct(_cell(cell).copy))


def cell_from_frame(frame: Any) -> CallResult:
    """Create a cell from the geometry stored in ``frame``.

    See :meth:`pbcell.UnitCell.from_geometry` for the accepted sources.
    """
    return _call(
        lambda: _construct(UnitCell.from_geometry, _require(frame, 'frame'))
    )


# ----------------------------------------------------------------------
# Accessors
# ----------------------------------------------------------------------


def cell_lengths(cell: Any) -> CallResult:
    return _call(lambda: _floats(_cell(cell).lengths()))


def cell_angles(cell: Any) -> CallResult:
    return _call(lambda: _floats(_cell(cell).angles()))


def cell_volume(cell: Any) -> CallResult:
    return _call(lambda: float(_cell(cell).volume()))


def cell_matrix(cell: Any) -> CallResult:
    """Return the matrix as three row tuples (rows are edge vectors)."""
    return _call(
        lambda: tuple(_floats(row) for row in _cell(cell).matrix())
    )


def cell_shape(cell: Any) -> CallResult:
    return _call(lambda: _cell(cell).shape())


# ----------------------------------------------------------------------
# Mutators
# ----------------------------------------------------------------------


def cell_set_lengths(cell: Any, lengths: Any) -> CallResult:
    return _call(lambda: _cell(cell).set_lengths(_require(lengths, 'lengths')))


def cell_set_angles(cell: Any, angles: Any) -> CallResult:
    return _call(lambda: _cell(cell).set_angles(_require(angles, 'angles')))


def cell_set_shape(cell: Any, shape: CellShape | str) -> CallResult:
    return _call(lambda: _cell(cell).set_shape(shape))


def _wrap_inplace(cell: Any, vector: Any) -> None:
    uc = _cell(cell)
    _require(vector, 'vector')
    if not hasattr(vector, '__setitem__'):
        raise InvalidArgumentError(
            f'vector must be a mutable sequence, got {type(vector).__name__}'
        )
    if isinstance(vector, np.ndarray) and not np.issubdtype(
        vector.dtype, np.floating
    ):
        raise InvalidArgumentError(
            f'vector must hold floating point values, got dtype {vector.dtype}'
        )
    wrapped = uc.wrap(vector)
    if wrapped.shape != (3,):
        raise InvalidArgumentError('vector must hold exactly three values')
    vector[0], vector[1], vector[2] = _floats(wrapped)


def cell_wrap(cell: Any, vector: Any) -> CallResult:
    """Wrap a single 3-vector in place.

    ``vector`` must be a mutable sequence of three numbers (a list or a
    floating point numpy array). It is left untouched on failure.
    """
    return _call(_wrap_inplace, cell, vector)
