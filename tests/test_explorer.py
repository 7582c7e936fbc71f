import io

import numpy as np
import pytest
from PIL import Image

from fractal_explorer import FractalExplorer
from fractal_explorer.core.errors import InvalidParameterError, RenderFailure
from fractal_explorer.core.view_state import CanvasDimensions, FractalVariant, ViewState
from fractal_explorer.io.config import ExplorerConfig
from fractal_explorer.rendering.image_output import ImageExporter


@pytest.fixture
def explorer(small_config, tmp_path):
    with FractalExplorer(small_config, export_directory=tmp_path) as explorer:
        yield explorer


def rendered(explorer):
    return explorer.scheduler.frames_rendered


def test_first_frame_is_rendered_on_start(explorer):
    assert rendered(explorer) == 1
    frame = explorer.surface.frame
    assert frame.shape == (48, 48, 4)
    # Reticle over the black interior at the origin
    assert frame[24, 24, :3].tolist() == [255, 255, 255]


def test_each_mutation_renders_once(explorer):
    explorer.wheel(-1, 10, 10)
    assert rendered(explorer) == 2
    explorer.set_iteration_budget(64)
    assert rendered(explorer) == 3
    explorer.mouse_down(0, 0)
    explorer.mouse_move(15, 0)
    explorer.mouse_move(30, 0)
    explorer.mouse_up()
    assert rendered(explorer) == 5
    explorer.touch_start([(10, 20), (30, 20)])
    explorer.touch_move([(0, 20), (40, 20)])
    explorer.touch_end()
    assert rendered(explorer) == 6


def test_no_op_mutations_do_not_render(explorer):
    explorer.set_iteration_budget(16)
    explorer.reset_view()
    explorer.mouse_move(5, 5)
    assert rendered(explorer) == 1


def test_invalid_budget_leaves_view_and_frame(explorer):
    before = explorer.surface.snapshot()
    with pytest.raises(InvalidParameterError):
        explorer.set_iteration_budget(17)
    assert explorer.view.iteration_budget == 16
    assert rendered(explorer) == 1
    np.testing.assert_array_equal(explorer.surface.frame, before)


def test_toggle_switches_family_with_one_render(explorer):
    explorer.zoom_at(3.0, 5, 5)
    explorer.toggle_variant()

    assert rendered(explorer) == 3
    assert explorer.view == ViewState(variant=FractalVariant.IFS)
    lit = (explorer.surface.frame[..., 1] == 128)
    assert lit.any()


def test_exploration_info(explorer):
    explorer.pan(0.1234567, -0.5)
    explorer.zoom_at(4.4, 24, 24)
    info = explorer.get_exploration_info()

    assert info["fractal"] == "Mandelbrot fractal"
    assert info["x"] == "0.123457"
    assert info["y"] == "-0.500000"
    assert info["zoom"] == "4"
    assert info["iteration_budget"] == 16
    assert info["resolution"] == (48, 48)
    assert info["bounds"][0] == pytest.approx(0.1234567 - 2 / 4.4)


def test_resize_renders_once(explorer):
    assert explorer.resize(64, 32)
    assert rendered(explorer) == 2
    assert explorer.surface.frame.shape == (32, 64, 4)

    assert not explorer.resize(64, 32)
    assert rendered(explorer) == 2


def test_resize_rejects_empty_canvas(explorer):
    with pytest.raises(InvalidParameterError):
        explorer.resize(0, 10)
    assert explorer.dimensions == CanvasDimensions(48, 48)


def test_take_picture_without_reticle(explorer):
    data = explorer.take_picture()
    image = np.asarray(Image.open(io.BytesIO(data)))

    assert image.shape == (48, 48, 4)
    assert image[24, 24, :3].tolist() == [0, 0, 0]
    assert explorer.surface.frame[24, 24, :3].tolist() == [255, 255, 255]
    assert explorer.reticle.visible
    assert explorer.view == ViewState()


def test_take_picture_hands_bytes_to_sink(explorer, tmp_path):
    received = []
    data = explorer.take_picture(sink=lambda *args: received.append(args))
    assert received == [(data, FractalVariant.ESCAPE_TIME, "png")]

    exporter = ImageExporter(tmp_path / "out")
    explorer.take_picture(sink=exporter)
    assert (tmp_path / "out" / "mandelbrot.png").exists()


def test_save_picture_uses_variant_name(explorer, tmp_path):
    explorer.toggle_variant()
    path = explorer.save_picture()
    assert path == tmp_path / "barnsley.png"
    assert path.read_bytes().startswith(b"\x89PNG")


def test_seeded_fern_capture_is_reproducible(small_config, tmp_path):
    captures = []
    for _ in range(2):
        with FractalExplorer(small_config, export_directory=tmp_path) as explorer:
            explorer.toggle_variant()
            captures.append(np.asarray(Image.open(io.BytesIO(explorer.take_picture()))))
    np.testing.assert_array_equal(captures[0], captures[1])


def test_failed_capture_keeps_session_usable(explorer, monkeypatch):
    def broken_encode(*args, **kwargs):
        raise RenderFailure("encoder unavailable")

    monkeypatch.setattr("fractal_explorer.rendering.capture.encode_image", broken_encode)
    with pytest.raises(RenderFailure):
        explorer.take_picture()

    assert explorer.reticle.visible
    assert explorer.surface.frame[24, 24, :3].tolist() == [255, 255, 255]
    assert explorer.wheel(-1, 24, 24)


def test_invalid_config_is_rejected():
    with pytest.raises(InvalidParameterError):
        FractalExplorer(ExplorerConfig(width=0))
    with pytest.raises(InvalidParameterError):
        FractalExplorer(ExplorerConfig(width=40.5, height=40))


def test_background_rendering(tmp_path):
    config = ExplorerConfig(width=40, height=40, background_render=True)
    with FractalExplorer(config, export_directory=tmp_path) as explorer:
        for _ in range(5):
            explorer.wheel(-1, 20, 20)
        assert explorer.wait_idle(timeout=30)

        assert explorer.scheduler.failures == 0
        assert explorer.view.zoom == pytest.approx(1.15 ** 5)
        expected = explorer.pipeline.render_frame(explorer.view, explorer.dimensions)
        np.testing.assert_array_equal(explorer.surface.frame, expected)
