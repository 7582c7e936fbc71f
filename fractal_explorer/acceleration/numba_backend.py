"""
Numba JIT compilation backend for fractal computation.

This module provides JIT-compiled versions of the escape-time iteration and
the IFS chaos game. Kernels run single-threaded; callers split the work into
row bands or sample chunks so a render can be abandoned between calls.
"""

import math
import logging

import numba
import numpy as np
from numba import njit

logger = logging.getLogger(__name__)
logger.debug(f"Numba available: {numba.__version__}")


@njit
def escape_time_kernel(x_min, y_min, scale_x, scale_y, row_start, max_iter, escape_radius_sq, out):
    """
    JIT-compiled escape-time kernel for a band of pixel rows.

    Args:
        x_min, y_min: Plane coordinates of pixel (0, 0)
        scale_x, scale_y: Plane units per pixel
        row_start: Canvas row of out[0]
        max_iter: Iteration budget
        escape_radius_sq: Squared escape radius
        out: (band_height, width) int32 array receiving escape counts
    """
    band_height, width = out.shape

    for i in range(band_height):
        b = (row_start + i) * scale_y + y_min
        for px in range(width):
            a = px * scale_x + x_min
            ca = a
            cb = b
            n = 0

            while n < max_iter and ca * ca + cb * cb <= escape_radius_sq:
                temp = ca * ca - cb * cb + a
                cb = 2.0 * ca * cb + b
                ca = temp
                n += 1

            out[i, px] = n


@njit
def chaos_game_kernel(x, y, n_samples, thresholds, coefficients,
                      x_min, y_max, px_per_unit_x, px_per_unit_y, hits, map_counts):
    """
    JIT-compiled chaos game over an affine IFS.

    Args:
        x, y: Running point to continue from
        n_samples: Number of steps to take
        thresholds: Cumulative map-selection probabilities
        coefficients: (n_maps, 6) array of (a, b, c, d, e, f)
        x_min, y_max: Plane coordinates of the top-left canvas corner
        px_per_unit_x, px_per_unit_y: Pixels per plane unit
        hits: (height, width) bool array, set True where a point lands
        map_counts: int64 array counting how often each map was chosen

    Returns:
        The running point after the last step
    """
    height, width = hits.shape
    n_maps = thresholds.shape[0]

    for _ in range(n_samples):
        r = np.random.random()

        k = n_maps - 1
        for j in range(n_maps):
            if r < thresholds[j]:
                k = j
                break

        nx = coefficients[k, 0] * x + coefficients[k, 1] * y + coefficients[k, 4]
        ny = coefficients[k, 2] * x + coefficients[k, 3] * y + coefficients[k, 5]
        x = nx
        y = ny
        map_counts[k] += 1

        # Plane y grows upward, pixel rows grow downward
        px = math.floor((x - x_min) * px_per_unit_x)
        py = math.floor((y_max - y) * px_per_unit_y)

        if px >= 0 and px < width and py >= 0 and py < height:
            hits[py, px] = True

    return x, y


@njit
def seed_kernel(seed):
    """Seed the random generator used inside compiled kernels."""
    np.random.seed(seed)


class NumbaAccelerator:
    """Numba-accelerated fractal computation backend."""

    def escape_time_band(self, x_min: float, y_min: float, scale_x: float, scale_y: float,
                         width: int, row_start: int, row_end: int,
                         max_iter: int, escape_radius_sq: float) -> np.ndarray:
        """
        Compute escape counts for canvas rows [row_start, row_end).

        Returns:
            (row_end - row_start, width) int32 array of iteration counts
        """
        out = np.zeros((row_end - row_start, width), dtype=np.int32)
        escape_time_kernel(float(x_min), float(y_min), float(scale_x), float(scale_y),
                           int(row_start), int(max_iter), float(escape_radius_sq), out)
        return out

    def chaos_game(self, x: float, y: float, n_samples: int, thresholds: np.ndarray,
                   coefficients: np.ndarray, x_min: float, y_max: float,
                   px_per_unit_x: float, px_per_unit_y: float,
                   hits: np.ndarray, map_counts: np.ndarray):
        """Advance the chaos game by n_samples steps, plotting into hits."""
        return chaos_game_kernel(float(x), float(y), int(n_samples), thresholds, coefficients,
                                 float(x_min), float(y_max), float(px_per_unit_x),
                                 float(px_per_unit_y), hits, map_counts)

    def seed(self, seed: int) -> None:
        """Seed the compiled-code random generator for reproducible IFS output."""
        seed_kernel(int(seed))


# Global accelerator instance
_numba_accelerator = None


def get_numba_accelerator() -> NumbaAccelerator:
    """Get the global Numba accelerator instance."""
    global _numba_accelerator
    if _numba_accelerator is None:
        _numba_accelerator = NumbaAccelerator()
    return _numba_accelerator
