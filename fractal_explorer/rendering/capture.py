"""
UI-free render pass for image export.
"""

import logging
from typing import Optional

import numpy as np

from ..core.errors import InvalidParameterError, RenderCancelled, RenderFailure
from ..core.view_state import CanvasDimensions, ViewState
from .image_output import RenderMetadata, encode_image
from .pipeline import RenderPipeline, RenderScheduler
from .renderers import Renderer

logger = logging.getLogger(__name__)


class CaptureCoordinator:
    """
    Renders a frame without the reticle, encodes it, then restores the
    visible frame with a normal render.

    The view is only read, never mutated. The reticle is hidden through a
    scoped suppression, so it is visible again on every exit path. When a
    scheduler is given, the restoring render is dropped if a newer redraw
    was requested while the capture ran.
    """

    def __init__(self, pipeline: RenderPipeline, image_format: str = "png",
                 scheduler: Optional[RenderScheduler] = None):
        """
        Initialize capture coordinator.

        Args:
            pipeline: Pipeline used for both the capture and the restoring render
            image_format: Encoding of the captured image
            scheduler: Scheduler whose newer requests supersede the restoring render
        """
        self.pipeline = pipeline
        self.image_format = image_format
        self.scheduler = scheduler
        self.last_buffer: Optional[np.ndarray] = None

    def capture(self, renderer: Renderer, view: ViewState, dims: CanvasDimensions) -> bytes:
        """
        Capture the given view as encoded image bytes.

        Args:
            renderer: Renderer for the view's variant
            view: View snapshot to capture
            dims: Canvas size

        Returns:
            Encoded image bytes (PNG by default)

        Raises:
            RenderFailure: If rendering or encoding fails; the visible canvas
                is then either re-rendered or left on its previous frame
        """
        generation = self.scheduler.generation if self.scheduler is not None else None
        with self.pipeline.lock:
            try:
                with self.pipeline.reticle.suppressed():
                    buffer = self.pipeline.render_frame(view, dims, renderer=renderer)
                data = encode_image(buffer, RenderMetadata.from_view(view, dims), self.image_format)
            except (RenderFailure, InvalidParameterError) as e:
                logger.error(f"Capture of {view.variant.value} failed: {e}")
                raise RenderFailure(f"Capture failed: {e}") from e
            finally:
                self._restore(renderer, view, dims, generation)

        self.last_buffer = buffer
        logger.info(f"Captured {view.variant.label} at {dims.width}x{dims.height} ({len(data)} bytes)")
        return data

    def _restore(self, renderer: Renderer, view: ViewState, dims: CanvasDimensions,
                 generation: Optional[int]) -> None:
        """Re-render the visible frame with the reticle shown."""
        should_cancel = None
        if generation is not None:
            should_cancel = lambda: self.scheduler.generation != generation
        try:
            self.pipeline.render_and_present(view, dims, should_cancel=should_cancel, renderer=renderer)
        except RenderCancelled:
            logger.debug("Skipped restoring render, a newer frame was requested during capture")
        except (RenderFailure, InvalidParameterError) as e:
            # The surface still holds the pre-capture frame
            logger.warning(f"Could not restore visible frame after capture, keeping previous frame: {e}")
