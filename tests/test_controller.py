import math

import numpy as np
import pytest

from fractal_explorer.core.errors import InvalidParameterError
from fractal_explorer.core.view_state import CanvasDimensions, FractalVariant, ViewState
from fractal_explorer.interaction.controller import InteractionController
from fractal_explorer.interaction.gestures import GesturePhase, InputChannel


@pytest.fixture
def changes():
    return []


@pytest.fixture
def controller(changes):
    return InteractionController(CanvasDimensions(300, 300), on_change=changes.append)


class TestDrag:

    def test_pan_is_inverse_to_drag(self, controller, changes):
        controller.mouse_down(100, 100)
        assert controller.phase(InputChannel.MOUSE) is GesturePhase.DRAGGING

        assert controller.mouse_move(130, 85)
        assert controller.view.center == pytest.approx((-0.2, 0.1))
        assert len(changes) == 1

    def test_moves_do_not_compound(self, controller):
        controller.mouse_down(100, 100)
        controller.mouse_move(130, 100)
        controller.mouse_move(160, 100)
        assert controller.view.center == pytest.approx((-0.4, 0.0))

    def test_numpy_scalar_coordinates_are_accepted(self, controller, changes):
        controller.mouse_down(np.int64(100), np.int64(100))
        assert controller.mouse_move(np.int64(130), np.float32(85))
        assert controller.view.center == pytest.approx((-0.2, 0.1))
        assert controller.wheel(np.float64(-1.0), np.int32(150), np.int32(150))
        assert len(changes) == 2

    def test_pan_is_scaled_by_zoom(self, changes):
        controller = InteractionController(CanvasDimensions(300, 300), view=ViewState(zoom=2.0),
                                           on_change=changes.append)
        controller.mouse_down(0, 0)
        controller.mouse_move(30, 0)
        assert controller.view.center == pytest.approx((-0.1, 0.0))
        assert controller.view.zoom == 2.0

    def test_move_without_press_is_ignored(self, controller, changes):
        assert not controller.mouse_move(50, 50)
        assert changes == []

    def test_release_ends_drag(self, controller, changes):
        controller.mouse_down(10, 10)
        controller.mouse_up()
        assert controller.phase(InputChannel.MOUSE) is GesturePhase.IDLE
        controller.mouse_move(40, 40)
        assert changes == []

    def test_move_back_to_start_is_a_no_op(self, controller, changes):
        controller.mouse_down(10, 10)
        controller.mouse_move(10, 10)
        assert changes == []

    def test_non_finite_pointer_is_ignored(self, controller, changes):
        assert not controller.mouse_down(math.nan, 10)
        assert controller.phase(InputChannel.MOUSE) is GesturePhase.IDLE

        controller.mouse_down(10, 10)
        assert not controller.mouse_move(math.inf, 10)
        assert changes == []
        assert controller.view == ViewState()

    def test_single_finger_drag_matches_mouse(self, controller):
        controller.touch_start([(100, 100)])
        assert controller.phase(InputChannel.TOUCH) is GesturePhase.DRAGGING
        controller.touch_move([(130, 85)])
        assert controller.view.center == pytest.approx((-0.2, 0.1))
        controller.touch_end()
        assert controller.phase(InputChannel.TOUCH) is GesturePhase.IDLE

    def test_drag_keeps_budget_changed_mid_gesture(self, controller):
        controller.mouse_down(0, 0)
        controller.set_iteration_budget(128)
        controller.mouse_move(15, 0)
        assert controller.view.iteration_budget == 128
        assert controller.view.center == pytest.approx((-0.1, 0.0))


class TestPinch:

    def test_pinch_zooms_by_distance_ratio_about_midpoint(self, controller, changes):
        controller.touch_start([(100, 150), (200, 150)])
        assert controller.phase(InputChannel.TOUCH) is GesturePhase.PINCHING

        controller.touch_move([(50, 150), (250, 150)])
        assert controller.view.zoom == pytest.approx(2.0)
        assert controller.view.center == pytest.approx((0.0, 0.0))

        # Ratio is measured against the starting distance
        controller.touch_move([(0, 150), (300, 150)])
        assert controller.view.zoom == pytest.approx(3.0)
        assert len(changes) == 2

    def test_pinch_off_center_preserves_anchor(self, controller):
        controller.touch_start([(0, 0), (60, 0)])
        controller.touch_move([(0, 0), (120, 0)])
        # Midpoint moved from x=30 to x=60; zoom is about the current midpoint
        view = controller.view
        assert view.zoom == pytest.approx(2.0)
        nx, ny = 60 / 300, 0.0
        shrink = 1 - 1 / 2.0
        assert view.center == pytest.approx(((nx - 0.5) * 4 * shrink, (ny - 0.5) * 4 * shrink))

    def test_coincident_touch_points_are_ignored(self, controller, changes):
        assert not controller.touch_start([(50, 50), (50, 50)])
        assert controller.phase(InputChannel.TOUCH) is GesturePhase.IDLE

    def test_collapsing_fingers_do_not_zero_zoom(self, controller, changes):
        controller.touch_start([(100, 100), (200, 100)])
        assert not controller.touch_move([(150, 100), (150, 100)])
        assert controller.view.zoom == 1.0
        assert changes == []

    def test_new_touch_start_replaces_gesture(self, controller):
        controller.touch_start([(100, 150), (200, 150)])
        controller.touch_start([(20, 20)])
        assert controller.phase(InputChannel.TOUCH) is GesturePhase.DRAGGING

    def test_pinch_and_mouse_are_independent_channels(self, controller):
        controller.mouse_down(5, 5)
        controller.touch_start([(100, 150), (200, 150)])
        assert controller.phase(InputChannel.MOUSE) is GesturePhase.DRAGGING
        assert controller.phase(InputChannel.TOUCH) is GesturePhase.PINCHING


class TestWheel:

    def test_scroll_up_zooms_in(self, controller, changes):
        assert controller.wheel(-120, 150, 150)
        assert controller.view.zoom == pytest.approx(1.15)
        assert controller.view.center == pytest.approx((0.0, 0.0))
        assert len(changes) == 1

    def test_scroll_down_zooms_out(self, controller):
        controller.wheel(120, 150, 150)
        assert controller.view.zoom == pytest.approx(1 / 1.15)

    def test_zero_delta_zooms_out(self, controller):
        controller.wheel(0, 150, 150)
        assert controller.view.zoom == pytest.approx(1 / 1.15)

    def test_wheel_is_anchor_preserving(self, controller):
        controller.wheel(-1, 0, 0)
        # Top-left corner stays at (-2, -2)
        half = 2.0 / controller.view.zoom
        assert controller.view.center_x - half == pytest.approx(-2.0)
        assert controller.view.center_y - half == pytest.approx(-2.0)

    def test_bad_wheel_event_is_ignored(self, controller, changes):
        assert not controller.wheel(math.nan, 10, 10)
        assert not controller.wheel(-1, "x", 10)
        assert changes == []


class TestOperations:

    def test_invalid_budget_is_rejected_and_state_kept(self, controller, changes):
        controller.set_iteration_budget(64)
        with pytest.raises(InvalidParameterError):
            controller.set_iteration_budget(17)
        assert controller.view.iteration_budget == 64
        assert len(changes) == 1

    def test_setting_same_budget_does_not_notify(self, controller, changes):
        assert not controller.set_iteration_budget(16)
        assert changes == []

    def test_reset_keeps_budget_by_default(self, controller):
        controller.set_iteration_budget(256)
        controller.wheel(-1, 10, 10)
        controller.reset_view()
        assert controller.view == ViewState(iteration_budget=256)

    def test_reset_can_restore_default_budget(self, controller):
        controller.set_iteration_budget(256)
        controller.pan(1.0, 1.0)
        controller.reset_view(reset_iteration_budget=True)
        assert controller.view == ViewState()

    def test_reset_at_home_view_does_not_notify(self, controller, changes):
        assert not controller.reset_view()
        assert changes == []

    def test_toggle_resets_view_in_one_mutation(self, controller, changes):
        controller.set_iteration_budget(32)
        controller.wheel(-1, 20, 40)
        changes.clear()

        assert controller.toggle_variant()
        assert len(changes) == 1
        assert changes[0] == ViewState(iteration_budget=32, variant=FractalVariant.IFS)

        controller.toggle_variant()
        assert controller.view.variant is FractalVariant.ESCAPE_TIME
        assert len(changes) == 2

    def test_toggle_ends_active_gestures(self, controller):
        controller.mouse_down(0, 0)
        controller.toggle_variant()
        assert controller.phase(InputChannel.MOUSE) is GesturePhase.IDLE
        controller.mouse_move(100, 100)
        assert controller.view.center == (0.0, 0.0)

    def test_set_variant(self, controller, changes):
        assert not controller.set_variant(FractalVariant.ESCAPE_TIME)
        assert controller.set_variant(FractalVariant.IFS)
        assert controller.view.variant is FractalVariant.IFS
        with pytest.raises(InvalidParameterError):
            controller.set_variant("fern")

    def test_pan_in_plane_units(self, controller):
        controller.pan(0.5, -0.25)
        assert controller.view.center == (0.5, -0.25)
        with pytest.raises(InvalidParameterError):
            controller.pan(math.nan, 0)

    def test_zoom_at_rejects_bad_factor(self, controller, changes):
        for factor in (0, -1, math.nan):
            with pytest.raises(InvalidParameterError):
                controller.zoom_at(factor, 10, 10)
        assert controller.view.zoom == 1.0
        assert changes == []

    def test_every_effective_mutation_notifies_once(self, controller, changes):
        controller.pan(0.1, 0)
        controller.zoom_at(2.0, 150, 150)
        controller.set_iteration_budget(8)
        controller.reset_view()
        controller.toggle_variant()
        assert len(changes) == 5
        assert changes[-1] is controller.view


def test_set_dimensions(controller, changes):
    assert controller.set_dimensions(CanvasDimensions(600, 300))
    assert not controller.set_dimensions(CanvasDimensions(600, 300))
    with pytest.raises(InvalidParameterError):
        controller.set_dimensions(CanvasDimensions(0, 300))
    assert controller.dimensions == CanvasDimensions(600, 300)
    assert changes == []


@pytest.mark.parametrize("kwargs", [
    {"pan_divisor": 0},
    {"wheel_zoom_factor": 1.0},
    {"default_iteration_budget": 17},
])
def test_invalid_controller_settings(kwargs):
    with pytest.raises(InvalidParameterError):
        InteractionController(CanvasDimensions(10, 10), **kwargs)


@pytest.mark.parametrize("dims", [CanvasDimensions(0, 0), CanvasDimensions(-5, 10), CanvasDimensions(40.5, 40)])
def test_controller_rejects_unusable_canvas(dims):
    with pytest.raises(InvalidParameterError):
        InteractionController(dims)
