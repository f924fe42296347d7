"""pbcell package.

Periodic simulation cell geometry: canonical cell matrices, lengths, angles,
volume, an explicit shape tag and periodic wrapping.

Public API:
    - UnitCell, CellShape
    - CellError, InvalidArgumentError, ConstraintViolationError,
      AllocationError, ErrorKind
    - boundary: status-code entry points
    - log: logging sink configuration
"""

from __future__ import annotations

from .__about__ import __version__

from .cell import CellShape, UnitCell
from .errors import (
    AllocationError,
    CellError,
    ConstraintViolationError,
    ErrorKind,
    InvalidArgumentError,
)
from . import boundary, log

__all__ = [
    'UnitCell',
    'CellShape',
    'CellError',
    'InvalidArgumentError',
    'ConstraintViolationError',
    'AllocationError',
    'ErrorKind',
    'boundary',
    'log',
    '__version__',
]
