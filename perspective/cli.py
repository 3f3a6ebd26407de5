"""Command-line interface for Perspective."""

import logging
import re
import sys
from typing import Optional, Tuple

import click
import numpy as np
from dotenv import load_dotenv

from perspective.config import TransformConfig
from perspective.geometry.homography import invert_homography
from perspective.geometry.quadrilateral import Quadrilateral
from perspective.warp import order_corners, quadrilateral_from_corners, warp_perspective_matrix

# Load environment variables from .env
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)

logger = logging.getLogger(__name__)


class PointType(click.ParamType):
    """A single "x,y" point."""

    name = 'point'

    def convert(self, value, param, ctx):
        if isinstance(value, tuple):
            return value
        parts = value.split(',')
        try:
            if len(parts) != 2:
                raise ValueError
            return float(parts[0]), float(parts[1])
        except ValueError:
            self.fail(f"{value!r} is not an x,y point", param, ctx)


class CornersType(click.ParamType):
    """Four "x,y" points separated by spaces or semicolons."""

    name = 'corners'

    def convert(self, value, param, ctx):
        if isinstance(value, np.ndarray):
            return value
        tokens = [t for t in re.split(r'[;\s]+', value.strip()) if t]
        if len(tokens) != 4:
            self.fail(f"expected 4 points, got {len(tokens)} in {value!r}", param, ctx)
        return np.array([POINT.convert(t, param, ctx) for t in tokens], dtype=np.float64)


POINT = PointType()
CORNERS = CornersType()


def _load_config() -> TransformConfig:
    try:
        return TransformConfig.from_env()
    except ValueError as e:
        raise click.ClickException(str(e))


def _echo_matrix(matrix: np.ndarray, precision: int) -> None:
    for row in matrix:
        click.echo(' '.join(f"{v:.{precision}f}" for v in row))


@click.group()
@click.version_option(version='0.1.0')
def main() -> None:
    """Perspective - compute homographies between convex quadrilaterals."""
    pass


@main.command()
@click.argument('source', type=CORNERS)
@click.argument('destination', type=CORNERS)
@click.option(
    '--inverse',
    is_flag=True,
    help='Print the inverse matrix (destination to source)'
)
@click.option(
    '--strict',
    is_flag=True,
    help='Exit with an error instead of falling back to identity'
)
@click.option(
    '--order',
    'reorder',
    is_flag=True,
    help='Sort corners as top-left, top-right, bottom-right, bottom-left first'
)
@click.option(
    '--debug',
    'debug_path',
    type=click.Path(dir_okay=False),
    help='Save a debug overlay image to this path'
)
@click.option(
    '--precision',
    type=click.IntRange(0, 17),
    default=6,
    show_default=True,
    help='Digits after the decimal point'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging'
)
def transform(
    source: np.ndarray,
    destination: np.ndarray,
    inverse: bool,
    strict: bool,
    reorder: bool,
    debug_path: Optional[str],
    precision: int,
    verbose: bool
) -> None:
    """Compute the homography mapping SOURCE onto DESTINATION.

    Each argument is four x,y corners in boundary order, e.g. "0,0 1,0 1,1 0,1".
    The third corner is the one opposite the first. Put "--" before the
    arguments when a coordinate is negative.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = _load_config()

    try:
        if reorder:
            src_quad = quadrilateral_from_corners(order_corners(source))
            dst_quad = quadrilateral_from_corners(order_corners(destination))
        else:
            src_quad = Quadrilateral.from_array(source)
            dst_quad = Quadrilateral.from_array(destination)
    except ValueError as e:
        raise click.BadParameter(str(e))

    result = src_quad.solve_perspective_transform(dst_quad, config)

    if not result.succeeded:
        if strict:
            logger.error(f"Transform failed ({result.failure}): {result.reason}")
            sys.exit(1)
        logger.error(f"{result.reason}. Fallback to identity.")

    matrix = result.matrix_or_identity()

    if debug_path:
        from perspective.utils.debug import draw_quadrilaterals, save_debug_image
        overlay = draw_quadrilaterals(src_quad, dst_quad, matrix)
        try:
            saved = save_debug_image(overlay, debug_path, "Quadrilateral overlay")
        except OSError as e:
            raise click.ClickException(str(e))
        logger.info(f"Debug overlay saved to: {saved}")

    if inverse:
        inverted = invert_homography(matrix, config.singular_tolerance)
        if inverted is None:
            logger.error("Matrix is not invertible")
            sys.exit(1)
        matrix = inverted

    _echo_matrix(matrix, precision)


@main.command()
@click.argument('top_left', type=POINT)
@click.argument('bottom_left', type=POINT)
@click.argument('bottom_right', type=POINT)
@click.argument('top_right', type=POINT)
@click.option(
    '--size',
    type=(float, float),
    required=True,
    help='View width and height in pixels'
)
@click.option(
    '--precision',
    type=click.IntRange(0, 17),
    default=6,
    show_default=True,
    help='Digits after the decimal point'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging'
)
def warp(
    top_left: Tuple[float, float],
    bottom_left: Tuple[float, float],
    bottom_right: Tuple[float, float],
    top_right: Tuple[float, float],
    size: Tuple[float, float],
    precision: int,
    verbose: bool
) -> None:
    """Print the pixel remap matrix for a view with moved corners.

    Corners are normalized x,y positions in the range 0..1. The printed
    matrix takes output pixel coordinates to the source pixel to sample.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = _load_config()

    try:
        matrix = warp_perspective_matrix(
            top_left, bottom_left, bottom_right, top_right, size, config
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    _echo_matrix(matrix, precision)


if __name__ == '__main__':
    main()
