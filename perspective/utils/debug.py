"""Debug visualization for quadrilateral transforms."""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from perspective.geometry.homography import apply_homography
from perspective.geometry.quadrilateral import Quadrilateral

logger = logging.getLogger(__name__)

_SOURCE_COLOR = (0, 200, 0)        # green, RGB
_DESTINATION_COLOR = (0, 0, 255)   # blue
_MAPPED_COLOR = (255, 0, 0)        # red


def draw_quadrilaterals(
    source: Quadrilateral,
    destination: Quadrilateral,
    matrix: np.ndarray,
    canvas_size: Tuple[int, int] = (512, 512),
    margin: int = 20,
    line_thickness: int = 2,
) -> np.ndarray:
    """Draw both quadrilaterals and the mapped source corners.

    The source outline is green and the destination outline blue. Each
    source corner mapped through `matrix` is drawn as a red dot, which should
    sit on the matching destination corner. All points are scaled uniformly
    to fill the canvas, so normalized and pixel coordinates both render at a
    readable size.

    Args:
        source: Source quadrilateral.
        destination: Destination quadrilateral.
        matrix: 3x3 homography from source to destination.
        canvas_size: (width, height) of the canvas in pixels.
        margin: Padding around the points, in pixels.
        line_thickness: Outline thickness.

    Returns:
        Canvas as float32 RGB [0, 1].
    """
    width, height = canvas_size
    if width <= 2 * margin or height <= 2 * margin:
        raise ValueError(f"Canvas {width}x{height} is too small for a {margin}px margin")

    src = source.corners()
    dst = destination.corners()
    mapped = apply_homography(matrix, src)
    mapped_ok = np.isfinite(mapped).all(axis=1)

    all_points = np.vstack([src, dst, mapped[mapped_ok]])
    low = all_points.min(axis=0)
    span = all_points.max(axis=0) - low

    # Uniform scale keeps the aspect ratio; the drawing is centered
    available = np.array([width - 2 * margin, height - 2 * margin], dtype=np.float64)
    with np.errstate(divide='ignore'):
        scale = float(np.min(np.where(span > 0, available / span, np.inf)))
    if not np.isfinite(scale):
        scale = 1.0
    offset = margin + (available - span * scale) / 2

    def _to_pixels(points: np.ndarray) -> np.ndarray:
        return np.round((points - low) * scale + offset).astype(np.int32)

    canvas = np.full((height, width, 3), 255, dtype=np.uint8)

    # Corners are stored in boundary order, so polylines closes the outline
    cv2.polylines(canvas, [_to_pixels(src)], True, _SOURCE_COLOR, line_thickness, cv2.LINE_AA)
    cv2.polylines(canvas, [_to_pixels(dst)], True, _DESTINATION_COLOR, line_thickness, cv2.LINE_AA)

    for i in np.flatnonzero(mapped_ok):
        x, y = _to_pixels(mapped[i])
        cv2.circle(canvas, (int(x), int(y)), 5, _MAPPED_COLOR, -1)
        cv2.putText(
            canvas,
            str(i + 1),
            (int(x) + 6, int(y) - 6),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.5,
            _MAPPED_COLOR,
            1,
            cv2.LINE_AA,
        )

    logger.debug(f"Overlay scale: {scale:.3g} px per unit")
    return canvas.astype(np.float32) / 255.0


def save_debug_image(
    image: np.ndarray,
    output_path: Union[str, Path],
    description: Optional[str] = None,
    quality: int = 95
) -> Path:
    """Save a debug image, always as JPEG for easy viewing.

    Args:
        image: Image array as float32 RGB [0,1] or uint8 RGB [0,255]
        output_path: Where to save; the suffix is forced to .jpg
        description: Optional description to log
        quality: JPEG quality (0-100)

    Returns:
        The path actually written.

    Raises:
        OSError: If OpenCV could not write the file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if image.dtype in (np.float32, np.float64):
        img_uint8 = (np.clip(image, 0.0, 1.0) * 255).astype(np.uint8)
    else:
        img_uint8 = image

    if img_uint8.ndim == 2:
        img_bgr = cv2.cvtColor(img_uint8, cv2.COLOR_GRAY2BGR)
    elif img_uint8.shape[2] == 3:
        img_bgr = cv2.cvtColor(img_uint8, cv2.COLOR_RGB2BGR)
    else:
        raise ValueError(f"Unsupported number of channels: {img_uint8.shape[2]}")

    if output_path.suffix.lower() not in ['.jpg', '.jpeg']:
        output_path = output_path.with_suffix('.jpg')

    if not cv2.imwrite(str(output_path), img_bgr, [cv2.IMWRITE_JPEG_QUALITY, quality]):
        raise OSError(f"Failed to write debug image: {output_path}")

    suffix = f" - {description}" if description else ""
    logger.debug(f"Saved debug image: {output_path}{suffix}")

    return output_path
