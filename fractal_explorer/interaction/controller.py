"""
Interaction controller: the single owner of the live view state.

Input events (pointer, touch, wheel) and programmatic operations (pan,
zoom, iteration budget, reset, variant toggle) all funnel through here.
Each one produces a new immutable ViewState; when it differs from the
current one the controller stores it and notifies its listener exactly
once, which is what schedules the re-render.
"""

import logging
from typing import Callable, Dict, Optional, Sequence, Union

from ..core.errors import InvalidParameterError
from ..core.view_state import (
    DEFAULT_CENTER, DEFAULT_ITERATION_BUDGET, DEFAULT_ZOOM,
    CanvasDimensions, FractalVariant, ViewState, is_finite_number, validate_iteration_budget
)
from ..core.viewport import zoom_about_screen_point
from .gestures import DragGesture, GesturePhase, InputChannel, PinchGesture, Point, validate_point

logger = logging.getLogger(__name__)

ChangeListener = Callable[[ViewState], None]
Gesture = Union[DragGesture, PinchGesture]


class InteractionController:
    """Owns ViewState and the per-channel gesture state machines."""

    def __init__(self, dims: CanvasDimensions, view: Optional[ViewState] = None,
                 on_change: Optional[ChangeListener] = None,
                 pan_divisor: float = 150.0, wheel_zoom_factor: float = 1.15,
                 default_iteration_budget: int = DEFAULT_ITERATION_BUDGET):
        """
        Initialize interaction controller.

        Args:
            dims: Canvas size used to interpret screen coordinates; must be non-empty
            view: Initial view (defaults to the home view of the escape-time set)
            on_change: Called with the new ViewState after every effective mutation
            pan_divisor: Screen pixels per plane unit of pan at zoom 1
            wheel_zoom_factor: Zoom multiplier for one wheel notch
            default_iteration_budget: Budget restored by reset_view(reset_iteration_budget=True)
        """
        if not is_finite_number(pan_divisor) or pan_divisor <= 0:
            raise InvalidParameterError(f"pan_divisor must be positive, got {pan_divisor!r}")
        if not is_finite_number(wheel_zoom_factor) or wheel_zoom_factor <= 1:
            raise InvalidParameterError(f"wheel_zoom_factor must be greater than 1, got {wheel_zoom_factor!r}")
        dims.validate()

        self.default_iteration_budget = validate_iteration_budget(default_iteration_budget)
        self.pan_divisor = float(pan_divisor)
        self.wheel_zoom_factor = float(wheel_zoom_factor)
        self.on_change = on_change

        self._dims = dims
        self._view = view or ViewState(iteration_budget=self.default_iteration_budget)
        self._gestures: Dict[InputChannel, Gesture] = {}

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def dimensions(self) -> CanvasDimensions:
        return self._dims

    def set_dimensions(self, dims: CanvasDimensions) -> bool:
        """
        Replace the canvas size used for screen-space input.

        Does not notify; the view itself is unchanged. Returns True if the
        size actually changed.
        """
        dims.validate()
        if dims == self._dims:
            return False
        self._dims = dims
        return True

    def phase(self, channel: InputChannel) -> GesturePhase:
        """Current gesture phase of an input channel."""
        gesture = self._gestures.get(channel)
        return gesture.phase if gesture else GesturePhase.IDLE

    def _commit(self, new_view: ViewState, reason: str) -> bool:
        if new_view == self._view:
            return False
        self._view = new_view
        logger.debug(f"{reason}: zoom={new_view.zoom:.6g}, center=({new_view.center_x:.6f}, "
                     f"{new_view.center_y:.6f}), budget={new_view.iteration_budget}, "
                     f"variant={new_view.variant.value}")
        if self.on_change is not None:
            self.on_change(new_view)
        return True

    def _apply_gesture_view(self, gesture_view: ViewState, reason: str) -> bool:
        # Gestures only own zoom and center; budget and variant come from the live view
        return self._commit(self._view.evolve(zoom=gesture_view.zoom, center=gesture_view.center), reason)

    # Programmatic operations. These raise InvalidParameterError and keep the
    # previous state on bad input.

    def pan(self, dx: float, dy: float) -> bool:
        """
        Pan the view by the specified amount.

        Args:
            dx, dy: Pan amounts in plane units
        """
        if not (is_finite_number(dx) and is_finite_number(dy)):
            raise InvalidParameterError(f"Pan offset must be finite, got ({dx!r}, {dy!r})")
        cx, cy = self._view.center
        return self._commit(self._view.evolve(center=(cx + dx, cy + dy)), "Pan")

    def zoom_at(self, factor: float, screen_x: float, screen_y: float) -> bool:
        """Zoom by factor keeping the plane point under (screen_x, screen_y) fixed."""
        return self._commit(zoom_about_screen_point(self._view, self._dims, factor, screen_x, screen_y),
                            "Zoom")

    def set_iteration_budget(self, value: int) -> bool:
        """
        Set the iteration budget.

        Raises:
            InvalidParameterError: If value is not one of the allowed budgets
        """
        try:
            budget = validate_iteration_budget(value)
        except InvalidParameterError:
            logger.warning(f"Rejected iteration budget {value!r}")
            raise
        return self._commit(self._view.evolve(iteration_budget=budget), "Iteration budget")

    def reset_view(self, reset_iteration_budget: bool = False) -> bool:
        """
        Return to zoom 1 centred on the origin.

        Args:
            reset_iteration_budget: Also restore the default iteration budget
        """
        changes = dict(zoom=DEFAULT_ZOOM, center=DEFAULT_CENTER)
        if reset_iteration_budget:
            changes['iteration_budget'] = self.default_iteration_budget
        self._gestures.clear()
        return self._commit(self._view.evolve(**changes), "Reset view")

    def toggle_variant(self) -> bool:
        """Switch fractal family and reset the view in a single mutation."""
        self._gestures.clear()
        new_view = self._view.evolve(variant=self._view.variant.toggled(),
                                     zoom=DEFAULT_ZOOM, center=DEFAULT_CENTER)
        logger.info(f"Switched to {new_view.variant.label}")
        return self._commit(new_view, "Toggle variant")

    def set_variant(self, variant: FractalVariant) -> bool:
        """Select a fractal family; selecting the other one behaves like toggle_variant()."""
        if not isinstance(variant, FractalVariant):
            raise InvalidParameterError(f"Unknown fractal variant: {variant!r}")
        if variant is self._view.variant:
            return False
        return self.toggle_variant()

    # Input-event handlers. These never raise: malformed events are logged
    # and dropped.

    def _handle(self, event: str, action: Callable[[], bool]) -> bool:
        try:
            return action()
        except InvalidParameterError as e:
            logger.warning(f"Ignored {event} event: {e}")
            return False

    def mouse_down(self, x: float, y: float) -> bool:
        def action():
            self._gestures[InputChannel.MOUSE] = DragGesture(InputChannel.MOUSE, validate_point((x, y)),
                                                             self._view)
            return False
        return self._handle("mouse-down", action)

    def mouse_move(self, x: float, y: float) -> bool:
        gesture = self._gestures.get(InputChannel.MOUSE)
        if gesture is None:
            return False
        return self._handle("mouse-move", lambda: self._apply_gesture_view(
            gesture.view_for((x, y), self.pan_divisor), "Drag"))

    def mouse_up(self) -> None:
        self._gestures.pop(InputChannel.MOUSE, None)

    def touch_start(self, points: Sequence[Point]) -> bool:
        """
        Begin a touch gesture, replacing any active one.

        One point starts a drag; two or more start a pinch on the first two.
        """
        def action():
            self._gestures.pop(InputChannel.TOUCH, None)
            if len(points) == 1:
                self._gestures[InputChannel.TOUCH] = DragGesture(
                    InputChannel.TOUCH, validate_point(points[0]), self._view)
            elif len(points) >= 2:
                self._gestures[InputChannel.TOUCH] = PinchGesture.begin(points[0], points[1], self._view)
            return False
        return self._handle("touch-start", action)

    def touch_move(self, points: Sequence[Point]) -> bool:
        gesture = self._gestures.get(InputChannel.TOUCH)
        if gesture is None or not points:
            return False

        def action():
            if isinstance(gesture, PinchGesture):
                if len(points) < 2:
                    return False
                return self._apply_gesture_view(gesture.view_for(points[0], points[1], self._dims), "Pinch")
            return self._apply_gesture_view(gesture.view_for(points[0], self.pan_divisor), "Drag")

        return self._handle("touch-move", action)

    def touch_end(self) -> None:
        self._gestures.pop(InputChannel.TOUCH, None)

    def wheel(self, delta_y: float, x: float, y: float) -> bool:
        """Zoom in one notch for delta_y < 0, out otherwise, about the pointer."""
        def action():
            if not is_finite_number(delta_y):
                raise InvalidParameterError(f"Wheel delta must be finite, got {delta_y!r}")
            factor = self.wheel_zoom_factor if delta_y < 0 else 1.0 / self.wheel_zoom_factor
            return self.zoom_at(factor, x, y)
        return self._handle("wheel", action)
