"""Perspective - quadrilateral-to-quadrilateral homographies."""

from perspective.config import TransformConfig
from perspective.geometry import (
    PerspectiveTransformResult,
    Point2D,
    Quadrilateral,
    Triangle,
    apply_homography,
    invert_homography,
)
from perspective.warp import order_corners, quadrilateral_from_corners, warp_perspective_matrix

__version__ = '0.1.0'

__all__ = [
    'PerspectiveTransformResult',
    'Point2D',
    'Quadrilateral',
    'TransformConfig',
    'Triangle',
    'apply_homography',
    'invert_homography',
    'order_corners',
    'quadrilateral_from_corners',
    'warp_perspective_matrix',
]
