"""
Coloring for fractal pixel buffers.

Pixel buffers are dense row-major RGBA arrays of shape (height, width, 4)
with one uint8 per channel.
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass
import logging

from ..core.errors import InvalidParameterError

logger = logging.getLogger(__name__)

OPAQUE = 255


@dataclass(frozen=True)
class ColorRGB:
    """RGB color representation with 0-1 components."""
    r: float
    g: float
    b: float

    def __post_init__(self):
        """Validate RGB values."""
        for component in [self.r, self.g, self.b]:
            if not 0 <= component <= 1:
                raise InvalidParameterError("RGB components must be between 0 and 1")

    @classmethod
    def from_uint8(cls, r: int, g: int, b: int) -> 'ColorRGB':
        """Create a color from 8-bit components."""
        return cls(r / 255, g / 255, b / 255)

    def to_uint8_tuple(self) -> Tuple[int, int, int]:
        """Convert to 8-bit RGB tuple."""
        return (int(round(self.r * 255)), int(round(self.g * 255)), int(round(self.b * 255)))

    def to_rgba(self) -> np.ndarray:
        """Opaque RGBA uint8 pixel value."""
        return np.array([*self.to_uint8_tuple(), OPAQUE], dtype=np.uint8)


BLACK = ColorRGB(0.0, 0.0, 0.0)
WHITE = ColorRGB(1.0, 1.0, 1.0)
# CSS "green"
FERN_GREEN = ColorRGB.from_uint8(0, 128, 0)


def new_pixel_buffer(width: int, height: int, background: ColorRGB = BLACK) -> np.ndarray:
    """Allocate an opaque buffer filled with the background color."""
    buffer = np.empty((height, width, 4), dtype=np.uint8)
    buffer[...] = background.to_rgba()
    return buffer


def escape_time_grayscale(iterations: np.ndarray, max_iter: int, out: np.ndarray = None) -> np.ndarray:
    """
    Map escape counts to grayscale RGBA.

    Points that never escaped (n == max_iter) are black; every other point
    gets floor(n * 255 / max_iter) on R, G and B with alpha 255.

    Args:
        iterations: (h, w) integer escape counts
        max_iter: Iteration budget the counts were computed with
        out: Optional (h, w, 4) uint8 array to write into

    Returns:
        (h, w, 4) uint8 RGBA array
    """
    counts = iterations.astype(np.int64)
    intensity = np.where(counts == max_iter, 0, (counts * 255) // max_iter).astype(np.uint8)

    if out is None:
        out = np.empty(iterations.shape + (4,), dtype=np.uint8)
    out[..., 0] = intensity
    out[..., 1] = intensity
    out[..., 2] = intensity
    out[..., 3] = OPAQUE
    return out


def paint_mask(buffer: np.ndarray, mask: np.ndarray, color: ColorRGB) -> np.ndarray:
    """Set every pixel where mask is True to a solid color."""
    buffer[mask] = color.to_rgba()
    return buffer
