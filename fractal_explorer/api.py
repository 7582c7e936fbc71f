"""
High-level API for the interactive fractal explorer.

FractalExplorer wires the pieces together: the InteractionController owns
the view, every effective change is forwarded to the RenderScheduler, and
the CaptureCoordinator produces export images on demand.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Union

from .core.view_state import CanvasDimensions, FractalVariant, ViewState
from .core.viewport import plane_bounds
from .interaction.controller import InteractionController
from .interaction.gestures import Point
from .io.config import ExplorerConfig
from .rendering.capture import CaptureCoordinator
from .rendering.image_output import ImageExporter
from .rendering.overlay import Reticle
from .rendering.pipeline import ArrayDisplaySurface, DisplaySurface, RenderPipeline, RenderScheduler
from .rendering.renderers import create_renderers

logger = logging.getLogger(__name__)

ImageSink = Callable[[bytes, FractalVariant, str], Any]


class FractalExplorer:
    """Interactive fractal exploration with pan, zoom and image capture."""

    def __init__(self, config: Optional[ExplorerConfig] = None,
                 surface: Optional[DisplaySurface] = None,
                 export_directory: Union[str, Path] = "."):
        """
        Initialize fractal explorer and render the first frame.

        Args:
            config: Explorer configuration (defaults to ExplorerConfig())
            surface: Display surface receiving frames (defaults to an in-memory surface)
            export_directory: Directory used by save_picture()
        """
        self.config = config or ExplorerConfig()
        self.config.validate()

        self.surface = surface or ArrayDisplaySurface()
        self.reticle = Reticle(self.config.reticle_size, self.config.reticle_thickness)
        self.pipeline = RenderPipeline(self.surface, create_renderers(self.config), self.reticle)
        self.scheduler = RenderScheduler(self.pipeline, background=self.config.background_render)
        self.capture_coordinator = CaptureCoordinator(self.pipeline, self.config.export_format,
                                                      scheduler=self.scheduler)
        self.exporter = ImageExporter(export_directory)

        self.controller = InteractionController(
            CanvasDimensions(self.config.width, self.config.height),
            on_change=self._on_view_change,
            pan_divisor=self.config.pan_divisor,
            wheel_zoom_factor=self.config.wheel_zoom_factor,
            default_iteration_budget=self.config.default_iteration_budget,
        )

        self.request_render()

    @property
    def view(self) -> ViewState:
        return self.controller.view

    @property
    def dimensions(self) -> CanvasDimensions:
        return self.controller.dimensions

    def _on_view_change(self, view: ViewState) -> None:
        self.scheduler.request(view, self.controller.dimensions)

    def request_render(self) -> int:
        """Schedule a redraw of the current view; returns its generation."""
        return self.scheduler.request(self.view, self.dimensions)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return self.scheduler.wait_idle(timeout)

    def resize(self, width: int, height: int) -> bool:
        """
        Change the canvas size and redraw once.

        Raises:
            InvalidParameterError: If either side is not a positive integer
        """
        if not self.controller.set_dimensions(CanvasDimensions(width, height)):
            return False
        logger.info(f"Canvas resized to {width}x{height}")
        self.request_render()
        return True

    # View operations

    def pan(self, dx: float, dy: float) -> bool:
        return self.controller.pan(dx, dy)

    def zoom_at(self, factor: float, screen_x: float, screen_y: float) -> bool:
        return self.controller.zoom_at(factor, screen_x, screen_y)

    def set_iteration_budget(self, value: int) -> bool:
        return self.controller.set_iteration_budget(value)

    def reset_view(self, reset_iteration_budget: bool = False) -> bool:
        return self.controller.reset_view(reset_iteration_budget)

    def toggle_variant(self) -> bool:
        return self.controller.toggle_variant()

    # Input events

    def mouse_down(self, x: float, y: float) -> bool:
        return self.controller.mouse_down(x, y)

    def mouse_move(self, x: float, y: float) -> bool:
        return self.controller.mouse_move(x, y)

    def mouse_up(self) -> None:
        self.controller.mouse_up()

    def touch_start(self, points: Sequence[Point]) -> bool:
        return self.controller.touch_start(points)

    def touch_move(self, points: Sequence[Point]) -> bool:
        return self.controller.touch_move(points)

    def touch_end(self) -> None:
        self.controller.touch_end()

    def wheel(self, delta_y: float, x: float, y: float) -> bool:
        return self.controller.wheel(delta_y, x, y)

    # Capture

    def take_picture(self, sink: Optional[ImageSink] = None) -> bytes:
        """
        Capture the current view without the reticle.

        Args:
            sink: Optional callable receiving (data, variant, image_format),
                e.g. an ImageExporter

        Returns:
            Encoded image bytes

        Raises:
            RenderFailure: If the capture render or encoding failed
        """
        view, dims = self.view, self.dimensions
        renderer = self.pipeline.renderer_for(view.variant)
        data = self.capture_coordinator.capture(renderer, view, dims)
        if sink is not None:
            sink(data, view.variant, self.config.export_format)
        return data

    def save_picture(self) -> Path:
        """Capture the current view and write it under the variant's export name."""
        data = self.take_picture()
        return self.exporter.save(data, self.view.variant, self.config.export_format)

    def get_exploration_info(self) -> Dict[str, Any]:
        """Get current exploration state information."""
        view, dims = self.view, self.dimensions
        info = {
            'fractal': view.variant.label,
            'variant': view.variant.value,
            'x': f"{view.center_x:.6f}",
            'y': f"{view.center_y:.6f}",
            'zoom': f"{view.zoom:.0f}",
            'center': view.center,
            'zoom_level': view.zoom,
            'iteration_budget': view.iteration_budget,
            'resolution': (dims.width, dims.height),
            'frames_rendered': self.scheduler.frames_rendered,
            'render_failures': self.scheduler.failures,
        }
        if not dims.is_empty:
            info['bounds'] = plane_bounds(view, dims).as_tuple()
        return info

    def close(self) -> None:
        self.scheduler.close()

    def __enter__(self) -> 'FractalExplorer':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
