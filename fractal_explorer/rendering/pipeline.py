"""
Render pipeline, display surface hand-off and redraw scheduling.

A RenderPipeline renders one (ViewState, CanvasDimensions) snapshot with the
renderer for its variant, draws the reticle on top and presents the buffer.
A RenderScheduler sits in front of it as a single-slot redraw request: only
the most recent snapshot is ever rendered, and a render that has been
superseded is abandoned and its buffer discarded.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import numpy as np

from ..core.errors import InvalidParameterError, RenderCancelled, RenderFailure
from ..core.view_state import CanvasDimensions, FractalVariant, ViewState
from .overlay import Reticle
from .renderers import CancelCallback, Renderer, create_renderers

logger = logging.getLogger(__name__)


class DisplaySurface(ABC):
    """Receives fully populated RGBA buffers for presentation."""

    @abstractmethod
    def present(self, buffer: np.ndarray, dims: CanvasDimensions) -> None:
        """
        Present a frame.

        Raises:
            RenderFailure: If the surface rejects the buffer
        """
        pass


class ArrayDisplaySurface(DisplaySurface):
    """In-memory surface that keeps the last presented frame."""

    def __init__(self):
        self.frame: Optional[np.ndarray] = None
        self.dims: Optional[CanvasDimensions] = None
        self.frames_presented = 0
        self._lock = threading.Lock()

    def present(self, buffer: np.ndarray, dims: CanvasDimensions) -> None:
        if buffer.shape != (dims.height, dims.width, 4) or buffer.dtype != np.uint8:
            raise RenderFailure(f"Surface rejected buffer of shape {buffer.shape} "
                                f"for a {dims.width}x{dims.height} canvas")
        with self._lock:
            self.frame = buffer
            self.dims = dims
            self.frames_presented += 1

    def snapshot(self) -> Optional[np.ndarray]:
        """Copy of the last presented frame, or None."""
        with self._lock:
            return None if self.frame is None else self.frame.copy()


class RenderPipeline:
    """Renders view snapshots and hands them to the display surface."""

    def __init__(self, surface: DisplaySurface,
                 renderers: Optional[Dict[FractalVariant, Renderer]] = None,
                 reticle: Optional[Reticle] = None):
        """
        Initialize render pipeline.

        Args:
            surface: Display surface receiving finished frames
            renderers: Renderer per variant (defaults to one of each)
            reticle: Overlay drawn on visible frames
        """
        self.surface = surface
        self.renderers = renderers or create_renderers()
        self.reticle = reticle or Reticle()
        # Held for the full render+present so at most one pass is in flight
        self.lock = threading.RLock()

    def renderer_for(self, variant: FractalVariant) -> Renderer:
        renderer = self.renderers.get(variant)
        if renderer is None:
            raise InvalidParameterError(f"No renderer registered for variant '{variant.value}'")
        return renderer

    def render_frame(self, view: ViewState, dims: CanvasDimensions,
                     should_cancel: Optional[CancelCallback] = None,
                     renderer: Optional[Renderer] = None) -> np.ndarray:
        """Render a buffer and draw the overlay on it (if the reticle is visible)."""
        renderer = renderer or self.renderer_for(view.variant)
        buffer = renderer.render(view, dims, should_cancel=should_cancel)
        return self.reticle.apply(buffer)

    def present(self, buffer: np.ndarray, dims: CanvasDimensions) -> None:
        self.surface.present(buffer, dims)

    def render_and_present(self, view: ViewState, dims: CanvasDimensions,
                           should_cancel: Optional[CancelCallback] = None,
                           renderer: Optional[Renderer] = None) -> np.ndarray:
        """Render a frame and present it unless the render was superseded."""
        with self.lock:
            buffer = self.render_frame(view, dims, should_cancel, renderer)
            # A request may have arrived after the last work unit finished
            if should_cancel is not None and should_cancel():
                raise RenderCancelled("Render superseded before presentation")
            self.present(buffer, dims)
            return buffer


class RenderScheduler:
    """
    Single-slot redraw request with last-state-wins semantics.

    Every request() bumps a generation counter. Renders poll should_cancel,
    which turns True once a newer generation exists, so stale work stops early
    and is never presented. In synchronous mode the render runs inside
    request(); in background mode one worker thread renders the latest
    pending snapshot.
    """

    def __init__(self, pipeline: RenderPipeline, background: bool = False):
        """
        Initialize render scheduler.

        Args:
            pipeline: Pipeline that renders and presents frames
            background: Render on a worker thread instead of inside request()
        """
        self.pipeline = pipeline
        self.background = background

        self._condition = threading.Condition()
        self._generation = 0
        self._pending: Optional[Tuple[int, ViewState, CanvasDimensions]] = None
        self._busy = False
        self._closed = False

        self.frames_rendered = 0
        self.frames_discarded = 0
        self.failures = 0
        self.last_error: Optional[Exception] = None

        self._worker: Optional[threading.Thread] = None
        if background:
            self._worker = threading.Thread(target=self._run_worker, name="fractal-render", daemon=True)
            self._worker.start()

    @property
    def generation(self) -> int:
        return self._generation

    def request(self, view: ViewState, dims: CanvasDimensions) -> int:
        """
        Ask for a redraw of the given snapshot, superseding any earlier request.

        Returns:
            Generation number of this request
        """
        with self._condition:
            if self._closed:
                raise RenderFailure("Render scheduler is closed")
            self._generation += 1
            generation = self._generation
            self._pending = (generation, view, dims)
            self._condition.notify_all()

        if not self.background:
            self._drain()
        return generation

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _take_pending(self) -> Optional[Tuple[int, ViewState, CanvasDimensions]]:
        with self._condition:
            pending, self._pending = self._pending, None
            if pending is not None:
                self._busy = True
            return pending

    def _drain(self) -> None:
        """Render pending snapshots until none is left."""
        while True:
            pending = self._take_pending()
            if pending is None:
                return
            try:
                self._render(*pending)
            finally:
                with self._condition:
                    self._busy = False
                    self._condition.notify_all()

    def _render(self, generation: int, view: ViewState, dims: CanvasDimensions) -> None:
        start_time = time.time()
        try:
            self.pipeline.render_and_present(view, dims, should_cancel=lambda: self._is_stale(generation))
        except RenderCancelled:
            self.frames_discarded += 1
            logger.debug(f"Discarded superseded render (generation {generation})")
            return
        except (RenderFailure, InvalidParameterError) as e:
            self.failures += 1
            self.last_error = e
            logger.error(f"Render failed, keeping previous frame: {e}")
            return

        self.frames_rendered += 1
        logger.debug(f"Frame {generation} ({view.variant.value}) presented in "
                     f"{time.time() - start_time:.3f}s")

    def _run_worker(self) -> None:
        while True:
            with self._condition:
                while self._pending is None and not self._closed:
                    self._condition.wait()
                if self._closed:
                    return
            try:
                self._drain()
            except Exception:
                # Keep the worker alive for the next request
                logger.exception("Unexpected error in render worker")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no render is pending or in progress.

        Returns:
            True if idle, False on timeout
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._pending is None and not self._busy, timeout)

    def close(self) -> None:
        """Stop the worker thread; pending requests are dropped."""
        with self._condition:
            self._closed = True
            # Make any in-flight render stale
            self._generation += 1
            self._pending = None
            self._condition.notify_all()
        if self._worker is not None:
            self._worker.join()
            self._worker = None
