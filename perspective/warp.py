"""Host-side helpers for feeding perspective transforms to a pixel remap.

A renderer that distorts a view of size (width, height) so that its four
corners land on user-chosen points needs, for every output pixel, the source
pixel to sample. That is the inverse of the homography mapping the chosen
corners onto the view rectangle, which is what warp_perspective_matrix()
returns.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from perspective.config import TransformConfig
from perspective.geometry.homography import identity, invert_homography
from perspective.geometry.quadrilateral import Quadrilateral

logger = logging.getLogger(__name__)


def order_corners(points: np.ndarray) -> np.ndarray:
    """Order four corner points as: top-left, top-right, bottom-right, bottom-left.

    Uses image coordinates (y grows downward). The top-left corner has the
    smallest x + y and the bottom-right the largest; top-right has the
    smallest y - x and bottom-left the largest.

    Args:
        points: Array of shape (4, 2) with (x, y) coordinates, any order.

    Returns:
        Ordered float64 array of shape (4, 2).

    Raises:
        ValueError: If the shape is wrong or the points are too degenerate
            to assign each one a distinct corner.
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.shape != (4, 2):
        raise ValueError(f"Expected 4 points of shape (4, 2), got {pts.shape}")

    s = pts.sum(axis=1)
    d = pts[:, 1] - pts[:, 0]

    indices = [np.argmin(s), np.argmin(d), np.argmax(s), np.argmax(d)]
    if len(set(int(i) for i in indices)) != 4:
        raise ValueError(f"Cannot order degenerate corners: {pts.tolist()}")

    return pts[indices]


def quadrilateral_from_corners(corners: np.ndarray) -> Quadrilateral:
    """Build a Quadrilateral from [TL, TR, BR, BL] corners.

    TL becomes the anchor corner, BR (opposite it) the diagonal corner.
    """
    corners = np.asarray(corners, dtype=np.float64)
    if corners.shape != (4, 2):
        raise ValueError(f"Expected corners of shape (4, 2), got {corners.shape}")

    tl, tr, br, bl = corners
    return Quadrilateral.from_points(tuple(tl), tuple(tr), tuple(br), tuple(bl))


def warp_perspective_matrix(
    top_left: Sequence[float],
    bottom_left: Sequence[float],
    bottom_right: Sequence[float],
    top_right: Sequence[float],
    size: Tuple[float, float],
    config: Optional[TransformConfig] = None,
) -> np.ndarray:
    """Compute the per-pixel remap matrix for a perspective-warped view.

    Args:
        top_left: Normalized (0..1) position of the view's top-left corner.
        bottom_left: Normalized position of the bottom-left corner.
        bottom_right: Normalized position of the bottom-right corner.
        top_right: Normalized position of the top-right corner.
        size: (width, height) of the view in pixels.
        config: Tolerances. If None, uses defaults.

    Returns:
        3x3 matrix taking destination pixel coordinates to source pixel
        coordinates. Identity if the transform cannot be computed.
    """
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError(f"View size must be positive, got {width}x{height}")

    scale = np.array([width, height], dtype=np.float64)
    scaled = [np.asarray(p, dtype=np.float64) * scale
              for p in (top_left, bottom_left, bottom_right, top_right)]

    source = Quadrilateral.from_points(*(tuple(p) for p in scaled))
    destination = Quadrilateral.from_points(
        (0.0, 0.0),
        (0.0, height),
        (width, height),
        (width, 0.0),
    )

    config = config or TransformConfig()
    matrix = source.perspective_transform(destination, config)

    inverse = invert_homography(matrix, config.singular_tolerance)
    if inverse is None:
        logger.error("Perspective matrix is not invertible. Fallback to identity.")
        return identity()

    logger.debug(f"Warp matrix for {width}x{height} view:\n{inverse}")
    return inverse
