"""Closed-form planar geometry: triangles, quadrilaterals and homographies."""

from perspective.geometry.homography import (
    apply_homography,
    identity,
    invert_homography,
    normalize_homography,
)
from perspective.geometry.quadrilateral import (
    CANONICAL_TRIANGLE,
    PerspectiveTransformResult,
    Quadrilateral,
)
from perspective.geometry.triangle import Point2D, Triangle

__all__ = [
    'CANONICAL_TRIANGLE',
    'PerspectiveTransformResult',
    'Point2D',
    'Quadrilateral',
    'Triangle',
    'apply_homography',
    'identity',
    'invert_homography',
    'normalize_homography',
]
