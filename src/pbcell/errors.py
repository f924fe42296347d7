"""Error kinds raised by the unit cell engine.

Every fallible operation in :mod:`pbcell.cell` and :mod:`pbcell.geometry`
raises one of the exceptions below at the point where the problem is
detected. The instance being operated on is left exactly as it was before the
call.

The status-code layer in :mod:`pbcell.boundary` maps these onto
:class:`~pbcell.boundary.Status` values via :attr:`CellError.kind`.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    INVALID_ARGUMENT = 'invalid_argument'
    CONSTRAINT_VIOLATION = 'constraint_violation'
    ALLOCATION_FAILURE = 'allocation_failure'
    GENERIC_FAILURE = 'generic_failure'


class CellError(Exception):
    """Base class for all pbcell errors.

    Raised directly only for internal inconsistencies that should never
    happen in correct operation.
    """

    kind: ErrorKind = ErrorKind.GENERIC_FAILURE


class InvalidArgumentError(CellError, ValueError):
    """Raised for missing, malformed, non-finite or negative inputs."""

    kind = ErrorKind.INVALID_ARGUMENT


class ConstraintViolationError(CellError, ValueError):
    """Raised when an operation would break the cell's shape invariants.

    Examples: setting angles on a non-triclinic cell, converting a triclinic
    cell with non-right angles to rectangular, or angles that do not describe
    a real parallelepiped.
    """

    kind = ErrorKind.CONSTRAINT_VIOLATION


class AllocationError(CellError, MemoryError):
    """Raised when storage for a new cell cannot be obtained."""

    kind = ErrorKind.ALLOCATION_FAILURE
