"""Pure 3x3 geometry used by :class:`pbcell.UnitCell`.

Conventions:
  - A cell matrix stores the edge vectors as rows:

        a = M[0], b = M[1], c = M[2]

  - Angles are in degrees at every public boundary:
    alpha = angle(b, c), beta = angle(a, c), gamma = angle(a, b).
  - Fractional coordinates ``f`` relate to Cartesian ``v`` via ``v = f @ M``.

Nothing here keeps state; all functions return fresh float64 arrays.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from .errors import ConstraintViolationError, InvalidArgumentError


def as_vector3(values: Any, *, name: str = 'vector') -> np.ndarray:
    """Return ``values`` as a finite float64 array of shape (3,).

    Raises:
        InvalidArgumentError: If values is None, has the wrong shape, or
            contains NaN/inf.
    """
    if values is None:
        raise InvalidArgumentError(f'{name} is missing')
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f'{name} must be numeric: {e}') from e
    if arr.shape != (3,):
        raise InvalidArgumentError(f'{name} must have shape (3,), got {arr.shape}')
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f'{name} must contain only finite values')
    return arr


def as_matrix3(values: Any, *, name: str = 'matrix') -> np.ndarray:
    """Return ``values`` as a finite float64 array of shape (3, 3)."""
    if values is None:
        raise InvalidArgumentError(f'{name} is missing')
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f'{name} must be numeric: {e}') from e
    if arr.shape != (3, 3):
        raise InvalidArgumentError(f'{name} must have shape (3, 3), got {arr.shape}')
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f'{name} must contain only finite values')
    return arr


def as_points(values: Any, *, name: str = 'points') -> np.ndarray:
    """Return ``values`` as a finite float64 array of shape (3,) or (n, 3)."""
    if values is None:
        raise InvalidArgumentError(f'{name} is missing')
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f'{name} must be numeric: {e}') from e
    if arr.shape != (3,) and (arr.ndim != 2 or arr.shape[1] != 3):
        raise InvalidArgumentError(
            f'{name} must have shape (3,) or (n, 3), got {arr.shape}'
        )
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f'{name} must contain only finite values')
    return arr


def check_lengths(values: Any) -> np.ndarray:
    """Validate cell lengths (finite and non-negative)."""
    lengths = as_vector3(values, name='lengths')
    if np.any(lengths < 0.0):
        raise InvalidArgumentError(
            f'cell lengths must be non-negative, got {tuple(lengths.tolist())}'
        )
    return lengths


def cos_deg(theta: float) -> float:
    """Cosine of an angle in degrees, exact at 90 and 180."""
    if theta == 90.0:
        return 0.0
    if theta == 180.0:
        return -1.0
    return float(np.cos(np.radians(theta)))


def sin_deg(theta: float) -> float:
    """Sine of an angle in degrees, exact at 90 and 180."""
    if theta == 90.0:
        return 1.0
    if theta == 180.0:
        return 0.0
    return float(np.sin(np.radians(theta)))


def cell_matrix(lengths: Any, angles: Any) -> np.ndarray:
    """Build the canonical upper-triangular cell matrix.

    Row 0 lies along x, row 1 in the xy plane:

        a = (a, 0, 0)
        b = (b cos(gamma), b sin(gamma), 0)
        c = (c cos(beta), c (cos(alpha) - cos(beta) cos(gamma)) / sin(gamma), c h)

    Args:
        lengths: (a, b, c), non-negative.
        angles: (alpha, beta, gamma) in degrees, each in (0, 180).

    Returns:
        np.ndarray: (3, 3) matrix, rows are edge vectors.

    Raises:
        InvalidArgumentError: On negative or non-finite input.
        ConstraintViolationError: If the angles cannot describe a
            parallelepiped (sin(gamma) == 0, angle out of range, or an
            impossible angle triple).
    """
    a, b, c = check_lengths(lengths)
    alpha, beta, gamma = (float(x) for x in as_vector3(angles, name='angles'))

    for label, theta in (('alpha', alpha), ('beta', beta), ('gamma', gamma)):
        if not 0.0 < theta < 180.0:
            raise ConstraintViolationError(
                f'cell angle {label}={theta:g} must lie strictly between 0 and 180'
            )

    ca, cb, cg = cos_deg(alpha), cos_deg(beta), cos_deg(gamma)
    sg = sin_deg(gamma)
    if sg == 0.0:
        raise ConstraintViolationError(
            f'sin(gamma) is zero for gamma={gamma:g}: a and b are colinear'
        )

    radicand = 1.0 - ca * ca - cb * cb - cg * cg + 2.0 * ca * cb * cg
    if radicand <= 0.0:
        raise ConstraintViolationError(
            'cell angles ({:g}, {:g}, {:g}) do not describe a parallelepiped '
            'with non-zero volume'.format(alpha, beta, gamma)
        )
    h = np.sqrt(radicand) / sg

    m = np.zeros((3, 3), dtype=np.float64)
    m[0, 0] = a
    m[1, 0] = b * cg
    m[1, 1] = b * sg
    m[2, 0] = c * cb
    m[2, 1] = c * (ca - cb * cg) / sg
    m[2, 2] = c * h
    return m


def matrix_lengths(matrix: np.ndarray) -> np.ndarray:
    """Euclidean norm of each row."""
    return np.linalg.norm(np.asarray(matrix, dtype=np.float64), axis=1)


def _angle_deg(u: np.ndarray, v: np.ndarray) -> float:
    nu = float(np.linalg.norm(u))
    nv = float(np.linalg.norm(v))
    if nu == 0.0 or nv == 0.0:
        return 90.0
    dot = float(np.dot(u, v))
    if dot == 0.0:
        return 90.0
    cosine = dot / (nu * nv)
    return float(np.degrees(np.arccos(np.clip(cosine, -1.0, 1.0))))


def matrix_angles(matrix: np.ndarray) -> np.ndarray:
    """Return (alpha, beta, gamma) in degrees.

    Angles involving a zero-length row are reported as 90.
    """
    m = np.asarray(matrix, dtype=np.float64)
    return np.array(
        [
            _angle_deg(m[1], m[2]),
            _angle_deg(m[0], m[2]),
            _angle_deg(m[0], m[1]),
        ],
        dtype=np.float64,
    )


def matrix_volume(matrix: np.ndarray) -> float:
    """Absolute determinant of the cell matrix."""
    m = np.asarray(matrix, dtype=np.float64)
    if is_diagonal(m):
        # Exact product for diagonal matrices.
        return float(abs(m[0, 0] * m[1, 1] * m[2, 2]))
    return float(abs(np.linalg.det(m)))


def is_diagonal(matrix: np.ndarray) -> bool:
    m = np.asarray(matrix, dtype=np.float64)
    return bool(np.all(m[~np.eye(3, dtype=bool)] == 0.0))


def round_half_away(values: Any) -> np.ndarray:
    """Round to the nearest integer, breaking ties away from zero.

    ``numpy.round`` uses banker's rounding (round(2.5) == 2), which gives
    different images for points sitting exactly on a cell boundary. Here
    round(1.5) == 2, round(-1.5) == -2 and round(0.5) == 1.
    """
    x = np.asarray(values, dtype=np.float64)
    whole = np.trunc(x)
    # x - trunc(x) is exact in floating point.
    rest = x - whole
    return whole + np.where(np.abs(rest) >= 0.5, np.sign(x), 0.0)


def _require_invertible(matrix: np.ndarray) -> None:
    if matrix_volume(matrix) == 0.0:
        raise ConstraintViolationError(
            'cell matrix is singular (zero volume); fractional coordinates '
            'are undefined'
        )


def to_fractional(matrix: np.ndarray, points: Any) -> np.ndarray:
    """Solve ``f @ M = v`` for fractional coordinates.

    Uses a linear solve rather than an explicit inverse.

    Args:
        matrix: (3, 3) cell matrix, rows are edge vectors.
        points: Cartesian coordinates, shape (3,) or (n, 3).

    Returns:
        np.ndarray: Fractional coordinates with the same shape as points.

    Raises:
        ConstraintViolationError: If the matrix is singular.
    """
    m = np.asarray(matrix, dtype=np.float64)
    pts = as_points(points)
    _require_invertible(m)
    if is_diagonal(m):
        return pts / np.diag(m)
    try:
        frac = np.linalg.solve(m.T, pts.T).T
    except np.linalg.LinAlgError as e:
        raise ConstraintViolationError(f'cell matrix is singular: {e}') from e
    return frac


def to_cartesian(matrix: np.ndarray, fractional: Any) -> np.ndarray:
    """Return ``f @ M`` for fractional coordinates of shape (3,) or (n, 3)."""
    m = np.asarray(matrix, dtype=np.float64)
    frac = as_points(fractional, name='fractional')
    return frac @ m


def wrap_vectors(matrix: np.ndarray, points: Any) -> np.ndarray:
    """Fold Cartesian vectors into the cell centred on the origin.

    Each fractional component is reduced as ``f - round_half_away(f)``, so
    the result lies in [-1/2, 1/2] in fractional units. Both ends are
    reachable: an exact +1/2 becomes -1/2 and the reverse, so wrapping is
    idempotent everywhere except at exact ties.
    """
    frac = to_fractional(matrix, points)
    frac = frac - round_half_away(frac)
    return frac @ np.asarray(matrix, dtype=np.float64)
