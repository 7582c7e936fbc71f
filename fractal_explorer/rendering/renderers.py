"""
Renderers that turn a view snapshot into an RGBA pixel buffer.

Each render reads an immutable (ViewState, CanvasDimensions) pair and writes
to a buffer it allocates and owns until it is returned. Work is split into
row bands (escape time) or sample chunks (IFS) so that a superseded render
can stop early when its should_cancel callback returns True.
"""

import numpy as np
from typing import Callable, Optional
from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import time

from ..acceleration.numba_backend import NumbaAccelerator, get_numba_accelerator
from ..core.errors import InvalidParameterError, RenderCancelled, RenderFailure
from ..core.fractal_types import BarnsleyFern, FractalRegistry, FractalType, IFSParameters, MandelbrotSet
from ..core.view_state import CanvasDimensions, FractalVariant, ViewState
from ..core.viewport import Viewport
from .coloring import FERN_GREEN, ColorRGB, escape_time_grayscale, new_pixel_buffer, paint_mask

logger = logging.getLogger(__name__)

CancelCallback = Callable[[], bool]


def _check_cancel(should_cancel: Optional[CancelCallback]) -> None:
    if should_cancel is not None and should_cancel():
        raise RenderCancelled("Render superseded by a newer request")


class Renderer(ABC):
    """Abstract base class for fractal renderers."""

    variant: FractalVariant

    def __init__(self, fractal: FractalType, accelerator: Optional[NumbaAccelerator] = None):
        """
        Initialize renderer.

        Args:
            fractal: Fractal definition to draw
            accelerator: Kernel backend (defaults to the shared Numba accelerator)
        """
        self.fractal = fractal
        self.accelerator = accelerator or get_numba_accelerator()

    @abstractmethod
    def render(self, view: ViewState, dims: CanvasDimensions,
               should_cancel: Optional[CancelCallback] = None) -> np.ndarray:
        """
        Render a full frame.

        Args:
            view: View snapshot
            dims: Canvas size
            should_cancel: Polled between work units; True abandons the render

        Returns:
            (height, width, 4) uint8 RGBA buffer

        Raises:
            RenderFailure: If the canvas has zero area or the viewport is invalid
            RenderCancelled: If should_cancel returned True
        """
        pass

    def _viewport(self, view: ViewState, dims: CanvasDimensions) -> Viewport:
        """Resolve the viewport, reporting unusable canvases as render failures."""
        if dims.is_empty:
            raise RenderFailure(f"Cannot render a zero-area canvas ({dims.width}x{dims.height})")
        try:
            return Viewport(view, dims)
        except InvalidParameterError as e:
            raise RenderFailure(f"Invalid viewport: {e}") from e


class EscapeTimeRenderer(Renderer):
    """Grayscale escape-time renderer for the quadratic set."""

    variant = FractalVariant.ESCAPE_TIME

    def __init__(self, fractal: Optional[MandelbrotSet] = None, band_rows: int = 32,
                 accelerator: Optional[NumbaAccelerator] = None):
        super().__init__(fractal or MandelbrotSet(), accelerator)
        if band_rows <= 0:
            raise InvalidParameterError("band_rows must be positive")
        self.band_rows = band_rows

    def compute_iterations(self, view: ViewState, dims: CanvasDimensions,
                           should_cancel: Optional[CancelCallback] = None) -> np.ndarray:
        """
        Compute raw escape counts for every pixel.

        Returns:
            (height, width) int32 array; a value equal to the iteration budget
            means the point never escaped
        """
        viewport = self._viewport(view, dims)
        iterations = np.empty((dims.height, dims.width), dtype=np.int32)
        escape_radius_sq = self.fractal.parameters.escape_radius_sq

        for row_start in range(0, dims.height, self.band_rows):
            _check_cancel(should_cancel)
            row_end = min(row_start + self.band_rows, dims.height)
            iterations[row_start:row_end] = self.accelerator.escape_time_band(
                viewport.bounds.xmin, viewport.bounds.ymin,
                viewport.x_scale, viewport.y_scale,
                dims.width, row_start, row_end,
                view.iteration_budget, escape_radius_sq
            )

        return iterations

    def render(self, view: ViewState, dims: CanvasDimensions,
               should_cancel: Optional[CancelCallback] = None) -> np.ndarray:
        start_time = time.time()

        iterations = self.compute_iterations(view, dims, should_cancel)
        buffer = escape_time_grayscale(iterations, view.iteration_budget)

        logger.debug(f"Escape-time render {dims.width}x{dims.height} @ {view.iteration_budget} "
                     f"iterations: {time.time() - start_time:.3f}s")
        return buffer


@dataclass
class IFSRenderResult:
    """Buffer plus sampling statistics from one IFS render."""

    buffer: np.ndarray
    sample_count: int
    map_counts: np.ndarray
    lit_pixels: int

    def map_frequencies(self) -> np.ndarray:
        """Fraction of steps that chose each map."""
        return self.map_counts / max(1, self.sample_count)


class IFSRenderer(Renderer):
    """
    Chaos-game renderer for an affine iterated function system.

    The loop is strictly sequential (each sample continues from the previous
    point), so it is chunked only for cancellation, never split across workers.
    """

    variant = FractalVariant.IFS

    def __init__(self, fractal: Optional[BarnsleyFern] = None, color: ColorRGB = FERN_GREEN,
                 chunk_samples: int = 20000, seed: Optional[int] = None,
                 accelerator: Optional[NumbaAccelerator] = None):
        """
        Initialize IFS renderer.

        Args:
            fractal: IFS definition (defaults to the Barnsley fern)
            color: Foreground color for lit pixels
            chunk_samples: Samples per cancellable chunk
            seed: Reseed the generator before every render for reproducible output
            accelerator: Kernel backend
        """
        super().__init__(fractal or BarnsleyFern(), accelerator)
        if chunk_samples <= 0:
            raise InvalidParameterError("chunk_samples must be positive")
        self.color = color
        self.chunk_samples = chunk_samples
        self.seed = seed

    def render_with_stats(self, view: ViewState, dims: CanvasDimensions,
                          sample_count: Optional[int] = None,
                          should_cancel: Optional[CancelCallback] = None) -> IFSRenderResult:
        """
        Run the chaos game and plot every in-bounds point.

        Args:
            view: View snapshot
            dims: Canvas size
            sample_count: Number of steps (defaults to iteration_budget * samples_per_budget)
            should_cancel: Polled between chunks

        Returns:
            IFSRenderResult with the buffer and per-map visit counts
        """
        params = self.fractal.parameters
        if sample_count is None:
            sample_count = params.sample_count(view.iteration_budget)
        if sample_count < 0:
            raise InvalidParameterError(f"sample_count must be non-negative, got {sample_count}")

        viewport = self._viewport(view, dims)
        start_time = time.time()

        thresholds = params.cumulative_thresholds()
        coefficients = params.coefficient_array()
        hits = np.zeros((dims.height, dims.width), dtype=np.bool_)
        map_counts = np.zeros(len(params.maps), dtype=np.int64)

        if self.seed is not None:
            self.accelerator.seed(self.seed)

        x, y = 0.0, 0.0
        remaining = sample_count
        while remaining > 0:
            _check_cancel(should_cancel)
            chunk = min(self.chunk_samples, remaining)
            x, y = self.accelerator.chaos_game(
                x, y, chunk, thresholds, coefficients,
                viewport.bounds.xmin, viewport.bounds.ymax,
                viewport.x_pixels_per_unit, viewport.y_pixels_per_unit,
                hits, map_counts
            )
            remaining -= chunk

        buffer = paint_mask(new_pixel_buffer(dims.width, dims.height), hits, self.color)
        lit_pixels = int(hits.sum())

        logger.debug(f"IFS render {dims.width}x{dims.height}: {sample_count} samples, "
                     f"{lit_pixels} lit pixels, {time.time() - start_time:.3f}s")

        return IFSRenderResult(buffer=buffer, sample_count=sample_count,
                               map_counts=map_counts, lit_pixels=lit_pixels)

    def render(self, view: ViewState, dims: CanvasDimensions,
               sample_count: Optional[int] = None,
               should_cancel: Optional[CancelCallback] = None) -> np.ndarray:
        return self.render_with_stats(view, dims, sample_count, should_cancel).buffer


def create_renderers(config=None) -> dict:
    """
    Build one renderer per variant.

    Args:
        config: Optional ExplorerConfig supplying colors, chunk sizes and seed

    Returns:
        Dict mapping FractalVariant to Renderer
    """
    ifs_parameters = None
    if config is not None:
        ifs_parameters = IFSParameters(samples_per_budget=config.samples_per_budget)

    mandelbrot = FractalRegistry.create_fractal(FractalVariant.ESCAPE_TIME)
    fern = FractalRegistry.create_fractal(FractalVariant.IFS, ifs_parameters)

    if config is None:
        return {
            FractalVariant.ESCAPE_TIME: EscapeTimeRenderer(mandelbrot),
            FractalVariant.IFS: IFSRenderer(fern),
        }

    return {
        FractalVariant.ESCAPE_TIME: EscapeTimeRenderer(mandelbrot, band_rows=config.escape_band_rows),
        FractalVariant.IFS: IFSRenderer(
            fern,
            color=ColorRGB.from_uint8(*config.fern_color),
            chunk_samples=config.ifs_chunk_samples,
            seed=config.ifs_seed,
        ),
    }
