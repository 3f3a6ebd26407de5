"""Triangles and the affine transform between two of them."""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from perspective.geometry.homography import invert_homography

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point2D:
    """A point in the plane."""

    x: float
    y: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            raise ValueError(f"Point coordinates must be finite, got ({self.x}, {self.y})")

    def homogeneous(self) -> np.ndarray:
        """Return (x, y, 1) as a float64 array."""
        return np.array([self.x, self.y, 1.0], dtype=np.float64)

    @classmethod
    def from_homogeneous(cls, vector: np.ndarray) -> "Point2D":
        """Build a point from a homogeneous 3-vector by dividing by w."""
        x, y, w = np.asarray(vector, dtype=np.float64)
        return cls(float(x / w), float(y / w))


@dataclass(frozen=True)
class Triangle:
    """Three points nominally defining a triangle, but possibly collinear."""

    point1: Point2D
    point2: Point2D
    point3: Point2D

    @classmethod
    def from_homogeneous(
        cls,
        vector1: np.ndarray,
        vector2: np.ndarray,
        vector3: np.ndarray,
    ) -> "Triangle":
        """Build a triangle from three homogeneous 3-vectors."""
        return cls(
            Point2D.from_homogeneous(vector1),
            Point2D.from_homogeneous(vector2),
            Point2D.from_homogeneous(vector3),
        )

    def matrix(self) -> np.ndarray:
        """Homogeneous matrix with one point per column.

            | p1.x  p2.x  p3.x |
            | p1.y  p2.y  p3.y |
            |  1     1     1   |
        """
        return np.column_stack([
            self.point1.homogeneous(),
            self.point2.homogeneous(),
            self.point3.homogeneous(),
        ])

    def determinant(self) -> float:
        """Determinant of matrix(); twice the signed area of the triangle."""
        return float(np.linalg.det(self.matrix()))

    def is_collinear(self, tolerance: float = 0.01) -> bool:
        """Check whether the three points are (nearly) collinear.

        Points close to collinear are treated as collinear, since the affine
        transform they define is numerically unstable.
        """
        return abs(self.determinant()) < tolerance

    def affine_transform(
        self,
        other: "Triangle",
        singular_tolerance: float = 1e-12,
    ) -> Optional[np.ndarray]:
        """Find the affine transform that maps this triangle onto another.

        Solves M @ A = B for M = B @ inv(A), where A and B are the homogeneous
        matrices of this triangle and `other`.

        Args:
            other: Target triangle.
            singular_tolerance: A reciprocal condition number of A at or below
                this means no transform.

        Returns:
            3x3 affine matrix, or None if this triangle is degenerate.
        """
        inv_a = invert_homography(self.matrix(), singular_tolerance)
        if inv_a is None:
            logger.debug(f"No affine transform: source triangle is degenerate {self}")
            return None

        return other.matrix() @ inv_a
