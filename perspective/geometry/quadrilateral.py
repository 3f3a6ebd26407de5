"""Quadrilateral-to-quadrilateral perspective transform.

The homography H mapping quadrilateral p onto quadrilateral q is built in
closed form from four corner correspondences:

1. Affine transforms Ap, Aq take the canonical triangle (0,0), (1,0), (0,1)
   to the affine frames (v00, v10, v01) of p and q.
2. The diagonal corners v11 are pulled back into canonical coordinates,
   giving (a, b) for p and (c, d) for q.
3. The convexity scalars s = a + b - 1 and t = c + d - 1 must be positive.
4. A fractional linear transform F maps canonical p onto canonical q, and
   H = Aq @ F @ inv(Ap).

Failures are reported as a tagged PerspectiveTransformResult. The lenient
perspective_transform() falls back to the identity matrix instead.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Tuple

import numpy as np

from perspective.config import TransformConfig
from perspective.geometry.homography import identity, invert_homography
from perspective.geometry.triangle import Point2D, Triangle

logger = logging.getLogger(__name__)

FailureKind = Literal["singular_matrix", "non_convex"]

CANONICAL_TRIANGLE = Triangle(Point2D(0.0, 0.0), Point2D(1.0, 0.0), Point2D(0.0, 1.0))


@dataclass
class PerspectiveTransformResult:
    """Outcome of a quadrilateral-to-quadrilateral solve."""

    matrix: Optional[np.ndarray]          # 3x3 homography, None on failure
    failure: Optional[FailureKind] = None
    reason: str = ""
    s: Optional[float] = None             # convexity scalar of the source
    t: Optional[float] = None             # convexity scalar of the destination

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    def matrix_or_identity(self) -> np.ndarray:
        """Return the homography, or a fresh identity if the solve failed."""
        if self.matrix is None:
            return identity()
        return self.matrix.copy()


@dataclass(frozen=True)
class Quadrilateral:
    """Four corners named by their role in the affine frame.

    anchor_a (v00), anchor_b (v10) and anchor_c (v01) span the affine frame.
    diagonal (v11) is the corner opposite anchor_a; its position inside that
    frame decides convexity and drives the projective correction. Going
    around the boundary the order is anchor_a, anchor_b, diagonal, anchor_c.
    """

    anchor_a: Point2D
    anchor_b: Point2D
    diagonal: Point2D
    anchor_c: Point2D

    @classmethod
    def from_points(
        cls,
        point1: Tuple[float, float],
        point2: Tuple[float, float],
        point3: Tuple[float, float],
        point4: Tuple[float, float],
    ) -> "Quadrilateral":
        """Build from four (x, y) points in boundary order.

        point1 -> v00, point2 -> v10, point3 -> v11 (diagonal), point4 -> v01.
        Note that the third point, not the fourth, becomes the diagonal corner.
        """
        return cls(*(Point2D(float(x), float(y)) for x, y in (point1, point2, point3, point4)))

    @classmethod
    def from_array(cls, corners: np.ndarray) -> "Quadrilateral":
        """Build from a (4, 2) array in the same order as from_points()."""
        corners = np.asarray(corners, dtype=np.float64)
        if corners.shape != (4, 2):
            raise ValueError(f"Expected corners of shape (4, 2), got {corners.shape}")
        return cls.from_points(*corners.tolist())

    @property
    def v00(self) -> np.ndarray:
        return self.anchor_a.homogeneous()

    @property
    def v10(self) -> np.ndarray:
        return self.anchor_b.homogeneous()

    @property
    def v11(self) -> np.ndarray:
        return self.diagonal.homogeneous()

    @property
    def v01(self) -> np.ndarray:
        return self.anchor_c.homogeneous()

    def matrix(self) -> np.ndarray:
        """3x4 homogeneous matrix with columns v00, v10, v11, v01."""
        return np.column_stack([self.v00, self.v10, self.v11, self.v01])

    def corners(self) -> np.ndarray:
        """(4, 2) array of corners in from_points() order."""
        return self.matrix()[:2].T.copy()

    def affine_frame(self) -> Triangle:
        """Triangle (v00, v10, v01); the diagonal corner is left out."""
        return Triangle(self.anchor_a, self.anchor_b, self.anchor_c)

    def solve_perspective_transform(
        self,
        other: "Quadrilateral",
        config: Optional[TransformConfig] = None,
    ) -> PerspectiveTransformResult:
        """Compute the homography mapping this quadrilateral onto another.

        Args:
            other: Destination quadrilateral.
            config: Tolerances. If None, uses defaults.

        Returns:
            PerspectiveTransformResult. On success, `matrix` maps each corner
            of this quadrilateral to the matching corner of `other`.
        """
        config = config or TransformConfig()

        p_tri = self.affine_frame()
        q_tri = other.affine_frame()

        ap = CANONICAL_TRIANGLE.affine_transform(p_tri, config.singular_tolerance)
        if ap is None:
            return _failure("singular_matrix", "Could not get affine transform for quadrilateral p")

        aq = CANONICAL_TRIANGLE.affine_transform(q_tri, config.singular_tolerance)
        if aq is None:
            return _failure("singular_matrix", "Could not get affine transform for quadrilateral q")

        inv_ap = invert_homography(ap, config.singular_tolerance)
        if inv_ap is None:
            return _failure(
                "singular_matrix",
                f"Could not invert affine transform for quadrilateral p "
                f"(det={p_tri.determinant():.3e})",
            )

        inv_aq = invert_homography(aq, config.singular_tolerance)
        if inv_aq is None:
            return _failure(
                "singular_matrix",
                f"Could not invert affine transform for quadrilateral q "
                f"(det={q_tri.determinant():.3e})",
            )

        for name, tri in (("p", p_tri), ("q", q_tri)):
            if tri.is_collinear(config.collinear_tolerance):
                logger.warning(
                    f"Affine frame of quadrilateral {name} is nearly collinear "
                    f"(det={tri.determinant():.3e}), transform may be unstable"
                )

        # (a, b) and (c, d) are the diagonal corners in canonical coordinates
        a, b = _canonical_coordinates(inv_ap, self.v11)
        c, d = _canonical_coordinates(inv_aq, other.v11)

        s = a + b - 1
        t = c + d - 1

        p_convex = s > config.convexity_threshold
        q_convex = t > config.convexity_threshold
        logger.debug(f"Canonical diagonals: p=({a:.4f}, {b:.4f}) q=({c:.4f}, {d:.4f}), s={s:.4f}, t={t:.4f}")

        if not (p_convex and q_convex):
            reason = (
                f"p is {'convex' if p_convex else 'NOT convex'}, s = {s:.6g}; "
                f"q is {'convex' if q_convex else 'NOT convex'}, t = {t:.6g}"
            )
            return _failure("non_convex", reason, s=s, t=t)

        # Fractional linear transform from canonical p to canonical q.
        # Sends (0,0), (1,0), (0,1) to themselves and (a, b) to (c, d).
        flt = np.array([
            [b * c * s, 0.0, 0.0],
            [0.0, a * d * s, 0.0],
            [b * (c * s - a * t), a * (d * s - b * t), a * b * t],
        ], dtype=np.float64)

        homography = aq @ flt @ inv_ap

        return PerspectiveTransformResult(matrix=homography, s=s, t=t)

    def perspective_transform(
        self,
        other: "Quadrilateral",
        config: Optional[TransformConfig] = None,
    ) -> np.ndarray:
        """Like solve_perspective_transform(), but never fails.

        Any failure is logged and the identity matrix is returned, so callers
        cannot tell a failed solve from a genuine identity mapping without
        the logs. Use solve_perspective_transform() when that matters.
        """
        result = self.solve_perspective_transform(other, config)
        if not result.succeeded:
            logger.error(f"{result.reason}. Fallback to identity.")
        return result.matrix_or_identity()


def _canonical_coordinates(inverse_affine: np.ndarray, vector: np.ndarray) -> Tuple[float, float]:
    x, y, w = inverse_affine @ vector
    return float(x / w), float(y / w)


def _failure(
    kind: FailureKind,
    reason: str,
    s: Optional[float] = None,
    t: Optional[float] = None,
) -> PerspectiveTransformResult:
    logger.debug(f"Perspective transform failed ({kind}): {reason}")
    return PerspectiveTransformResult(matrix=None, failure=kind, reason=reason, s=s, t=t)
