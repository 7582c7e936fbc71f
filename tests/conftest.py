import numpy as np
import pytest

from fractal_explorer.core.errors import RenderCancelled, RenderFailure
from fractal_explorer.core.view_state import FractalVariant
from fractal_explorer.io.config import ExplorerConfig
from fractal_explorer.rendering.pipeline import ArrayDisplaySurface


class FillRenderer:
    """Renderer stand-in that fills the frame with the view's iteration budget."""

    variant = FractalVariant.ESCAPE_TIME

    def __init__(self, on_render=None, fail_times=0):
        self.on_render = on_render
        self.fail_times = fail_times
        self.calls = 0

    def render(self, view, dims, should_cancel=None):
        self.calls += 1
        if self.calls <= self.fail_times:
            raise RenderFailure("simulated renderer failure")
        if dims.is_empty:
            raise RenderFailure("zero-area canvas")
        if self.on_render is not None:
            self.on_render(view, dims)
        buffer = np.zeros((dims.height, dims.width, 4), dtype=np.uint8)
        buffer[..., :3] = view.iteration_budget
        buffer[..., 3] = 255
        if should_cancel is not None and should_cancel():
            raise RenderCancelled("superseded")
        return buffer


class RejectingSurface(ArrayDisplaySurface):
    """Surface that refuses every frame."""

    def present(self, buffer, dims):
        raise RenderFailure("surface rejected frame")


@pytest.fixture
def small_config():
    return ExplorerConfig(width=48, height=48, samples_per_budget=50, ifs_seed=3)


@pytest.fixture
def surface():
    return ArrayDisplaySurface()
