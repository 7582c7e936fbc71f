"""
Interactive fractal explorer engine.

This library renders the Mandelbrot set (escape time) and the Barnsley fern
(chaos game) for an interactive viewer: pan, wheel and pinch zoom, a
selectable iteration budget, a center reticle and image capture.

Key Features:
- Anchor-preserving zoom about any screen point
- Numba-compiled escape-time and IFS kernels
- Last-state-wins render scheduling with cooperative cancellation
- Reticle-free capture to PNG with embedded render metadata

Example usage:
    >>> from fractal_explorer import FractalExplorer
    >>> explorer = FractalExplorer()
    >>> explorer.wheel(-1, 400, 400)
    True
    >>> png_bytes = explorer.take_picture()
"""

__version__ = "1.0.0"
__author__ = "Fractal Explorer Team"

from fractal_explorer.core.errors import (
    FractalExplorerError, InvalidParameterError, RenderCancelled, RenderFailure
)
from fractal_explorer.core.view_state import (
    ALLOWED_ITERATION_BUDGETS, CanvasDimensions, FractalVariant, PlaneBounds, ViewState
)
from fractal_explorer.core.viewport import Viewport, plane_bounds, zoom_about_screen_point
from fractal_explorer.core.fractal_types import BarnsleyFern, MandelbrotSet
from fractal_explorer.rendering.renderers import EscapeTimeRenderer, IFSRenderer
from fractal_explorer.rendering.capture import CaptureCoordinator
from fractal_explorer.rendering.image_output import ImageExporter
from fractal_explorer.rendering.pipeline import ArrayDisplaySurface, DisplaySurface
from fractal_explorer.interaction.controller import InteractionController
from fractal_explorer.io.config import ConfigManager, ExplorerConfig, load_config
from fractal_explorer.io.logging_config import setup_logging

# Main API class
from fractal_explorer.api import FractalExplorer

__all__ = [
    "FractalExplorer",
    "ExplorerConfig",
    "ConfigManager",
    "load_config",
    "setup_logging",
    "ViewState",
    "CanvasDimensions",
    "PlaneBounds",
    "FractalVariant",
    "ALLOWED_ITERATION_BUDGETS",
    "Viewport",
    "plane_bounds",
    "zoom_about_screen_point",
    "MandelbrotSet",
    "BarnsleyFern",
    "EscapeTimeRenderer",
    "IFSRenderer",
    "CaptureCoordinator",
    "ImageExporter",
    "DisplaySurface",
    "ArrayDisplaySurface",
    "InteractionController",
    "FractalExplorerError",
    "InvalidParameterError",
    "RenderFailure",
    "RenderCancelled",
]
