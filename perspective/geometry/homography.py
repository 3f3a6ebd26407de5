"""Helpers for 3x3 homogeneous transform matrices."""

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


def identity() -> np.ndarray:
    """Return a fresh 3x3 float64 identity matrix."""
    return np.eye(3, dtype=np.float64)


def invert_homography(
    matrix: np.ndarray,
    singular_tolerance: float = 1e-12,
) -> Optional[np.ndarray]:
    """Invert a 3x3 matrix, or return None if it is singular.

    Singularity is judged by the reciprocal condition number, which does
    not depend on the scale of the coordinates, and is checked before
    inverting so that singular input never produces NaN or inf entries.

    Args:
        matrix: 3x3 matrix.
        singular_tolerance: Matrices whose reciprocal condition number is at
            or below this are singular. Must be finite and >= 0.

    Returns:
        The inverse as a 3x3 float64 array, or None.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 matrix, got shape {matrix.shape}")
    if not (np.isfinite(singular_tolerance) and singular_tolerance >= 0):
        raise ValueError(f"singular_tolerance must be finite and >= 0, got {singular_tolerance}")

    if not np.isfinite(matrix).all():
        logger.debug("Matrix has non-finite entries")
        return None

    with np.errstate(divide='ignore', invalid='ignore'):
        cond = np.linalg.cond(matrix)
    if not np.isfinite(cond) or 1.0 / cond <= singular_tolerance:
        logger.debug(f"Matrix is singular: cond={cond:.3e}")
        return None

    try:
        return np.linalg.inv(matrix)
    except np.linalg.LinAlgError as e:
        logger.debug(f"Matrix is singular: {e}")
        return None


def apply_homography(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Map 2D points through a homography, dividing by the resulting w.

    Args:
        matrix: 3x3 homography.
        points: (N, 2) array of (x, y), or a single (2,) point.

    Returns:
        Mapped points with the same shape as the input.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    pts = np.asarray(points, dtype=np.float64)
    single = pts.ndim == 1
    pts = np.atleast_2d(pts)

    if pts.shape[1] != 2:
        raise ValueError(f"Expected (N, 2) points, got shape {np.shape(points)}")

    homogeneous = np.hstack([pts, np.ones((len(pts), 1))])
    mapped = homogeneous @ matrix.T
    result = mapped[:, :2] / mapped[:, 2:3]

    return result[0] if single else result


def normalize_homography(matrix: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """Scale a homography so that its bottom-right entry is 1.

    Homographies are only defined up to scale; this makes matrices from
    different solvers comparable. Matrices whose H[2, 2] is ~0 are returned
    unchanged.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if abs(matrix[2, 2]) < eps:
        return matrix.copy()
    return matrix / matrix[2, 2]
