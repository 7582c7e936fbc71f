"""
Center reticle drawn over the rendered fractal.
"""

import logging
import math
from contextlib import contextmanager
from typing import Iterator

import numpy as np

from ..core.errors import InvalidParameterError

logger = logging.getLogger(__name__)


class Reticle:
    """
    Crosshair marking the canvas center.

    The strokes are composited in "difference" mode against white, so each
    covered pixel has its RGB channels inverted and stays visible on both
    black and bright backgrounds.
    """

    def __init__(self, size: int = 20, thickness: int = 2):
        """
        Initialize reticle.

        Args:
            size: Length of each stroke in pixels
            thickness: Stroke width in pixels
        """
        if size <= 0 or thickness <= 0:
            raise InvalidParameterError("Reticle size and thickness must be positive")
        self.size = size
        self.thickness = thickness
        self.visible = True

    def mask(self, width: int, height: int) -> np.ndarray:
        """Boolean (height, width) mask of the pixels covered by the crosshair."""
        mask = np.zeros((height, width), dtype=bool)
        cx = width / 2
        cy = height / 2
        half_len = self.size / 2
        half_thick = self.thickness / 2

        def span(lo: float, hi: float, limit: int) -> slice:
            return slice(max(0, math.floor(lo)), min(limit, math.ceil(hi)))

        # Horizontal then vertical stroke; overlap is inverted once
        mask[span(cy - half_thick, cy + half_thick, height), span(cx - half_len, cx + half_len, width)] = True
        mask[span(cy - half_len, cy + half_len, height), span(cx - half_thick, cx + half_thick, width)] = True
        return mask

    def apply(self, buffer: np.ndarray) -> np.ndarray:
        """Draw the reticle into an RGBA buffer in place, unless hidden."""
        if not self.visible:
            return buffer
        height, width = buffer.shape[:2]
        covered = self.mask(width, height)
        buffer[covered, :3] = 255 - buffer[covered, :3]
        return buffer

    @contextmanager
    def suppressed(self) -> Iterator['Reticle']:
        """Hide the reticle for the duration of the block, restoring it on every exit path."""
        previous = self.visible
        self.visible = False
        try:
            yield self
        finally:
            self.visible = previous
