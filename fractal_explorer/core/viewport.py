"""
Mapping between canvas pixels and the fractal plane.

The visible region always spans 2/zoom on each side of the center,
independently of the canvas aspect ratio, so non-square canvases get a
different scale per axis instead of a letterboxed square.
"""

import logging
import math
from typing import Tuple

from .errors import InvalidParameterError
from .view_state import CanvasDimensions, PlaneBounds, ViewState, is_finite_number

logger = logging.getLogger(__name__)

# Half-extent of the visible plane region at zoom 1
HALF_EXTENT = 2.0


def plane_bounds(view: ViewState, dims: CanvasDimensions) -> PlaneBounds:
    """
    Compute the plane-space rectangle shown on the canvas.

    Args:
        view: Current view snapshot
        dims: Canvas size in pixels

    Returns:
        PlaneBounds centred on view.center with half-extent 2/zoom
    """
    dims.validate()
    half = HALF_EXTENT / view.zoom
    cx, cy = view.center
    return PlaneBounds(xmin=cx - half, xmax=cx + half, ymin=cy - half, ymax=cy + half)


def scale(bounds: PlaneBounds, dims: CanvasDimensions) -> Tuple[float, float]:
    """Plane units per pixel along x and y."""
    dims.validate()
    return bounds.width / dims.width, bounds.height / dims.height


def inverse_scale(bounds: PlaneBounds, dims: CanvasDimensions) -> Tuple[float, float]:
    """Pixels per plane unit along x and y."""
    dims.validate()
    return dims.width / bounds.width, dims.height / bounds.height


def screen_to_plane(view: ViewState, dims: CanvasDimensions,
                    screen_x: float, screen_y: float) -> Tuple[float, float]:
    """
    Convert a canvas coordinate to the plane point under it.

    Uses the escape-time sampling convention (plane y grows with pixel y),
    which is the convention the anchor-preserving zoom keeps fixed.
    """
    bounds = plane_bounds(view, dims)
    scale_x, scale_y = scale(bounds, dims)
    return screen_x * scale_x + bounds.xmin, screen_y * scale_y + bounds.ymin


def zoom_about_screen_point(view: ViewState, dims: CanvasDimensions, factor: float,
                            screen_x: float, screen_y: float) -> ViewState:
    """
    Zoom by a multiplicative factor while keeping the plane point under
    (screen_x, screen_y) at the same screen position.

    Args:
        view: View before the zoom
        dims: Canvas size in pixels
        factor: Zoom multiplier (> 1 zooms in, < 1 zooms out)
        screen_x, screen_y: Anchor in canvas pixel coordinates

    Returns:
        New ViewState with zoom * factor and an adjusted center

    Raises:
        InvalidParameterError: On a non-positive or non-finite factor, bad
            coordinates, bad canvas size, or a zoom that would overflow
    """
    if not is_finite_number(factor) or factor <= 0:
        raise InvalidParameterError(f"Zoom factor must be a finite positive number, got {factor!r}")
    if not (is_finite_number(screen_x) and is_finite_number(screen_y)):
        raise InvalidParameterError(f"Screen point must be finite, got ({screen_x!r}, {screen_y!r})")
    dims.validate()

    nx = screen_x / dims.width
    ny = screen_y / dims.height
    span = 2.0 * HALF_EXTENT / view.zoom
    shrink = 1.0 - 1.0 / factor

    cx, cy = view.center
    new_center = (cx + (nx - 0.5) * span * shrink, cy + (ny - 0.5) * span * shrink)

    # ViewState rejects an overflowed or underflowed zoom
    zoomed = view.evolve(zoom=view.zoom * factor, center=new_center)
    logger.debug(f"Zoom x{factor:.4f} about ({screen_x}, {screen_y}): zoom={zoomed.zoom:.6g}, "
                 f"center=({zoomed.center_x:.6f}, {zoomed.center_y:.6f})")
    return zoomed


class Viewport:
    """A view bound to a canvas, with pixel/plane conversion helpers."""

    def __init__(self, view: ViewState, dims: CanvasDimensions):
        """
        Initialize viewport.

        Args:
            view: View snapshot
            dims: Canvas size in pixels
        """
        self.view = view
        self.dims = dims
        self.bounds = plane_bounds(view, dims)

        # Sampling direction (pixels -> plane) and plotting direction (plane -> pixels)
        self.x_scale, self.y_scale = scale(self.bounds, dims)
        self.x_pixels_per_unit, self.y_pixels_per_unit = inverse_scale(self.bounds, dims)

    @property
    def width(self) -> int:
        return self.dims.width

    @property
    def height(self) -> int:
        return self.dims.height

    def pixel_to_plane(self, px: float, py: float) -> Tuple[float, float]:
        """Convert pixel coordinates to the sampled plane point."""
        return px * self.x_scale + self.bounds.xmin, py * self.y_scale + self.bounds.ymin

    def plane_to_pixel(self, x: float, y: float) -> Tuple[int, int]:
        """Convert a plane point to pixel coordinates, flipping y so plane-up is screen-up."""
        px = math.floor((x - self.bounds.xmin) * self.x_pixels_per_unit)
        py = math.floor((self.bounds.ymax - y) * self.y_pixels_per_unit)
        return px, py

    def contains_pixel(self, px: int, py: int) -> bool:
        return 0 <= px < self.width and 0 <= py < self.height
