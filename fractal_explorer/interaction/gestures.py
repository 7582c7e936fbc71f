"""
Gesture state for drag-pan and pinch-zoom.

A gesture lives from pointer-down/touch-start to pointer-up/touch-end and
remembers where it started and what the view looked like at that moment.
Every move is measured against that start, so a stream of move events
never compounds.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

from ..core.errors import InvalidParameterError
from ..core.view_state import CanvasDimensions, ViewState, is_finite_number
from ..core.viewport import zoom_about_screen_point

Point = Tuple[float, float]


class InputChannel(Enum):
    """Independent input sources; each holds at most one active gesture."""

    MOUSE = "mouse"
    TOUCH = "touch"


class GesturePhase(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    PINCHING = "pinching"


def validate_point(point: Sequence[float]) -> Point:
    """Return the point as a float pair, rejecting malformed or non-finite input."""
    if (not isinstance(point, (tuple, list)) or len(point) != 2
            or not all(is_finite_number(v) for v in point)):
        raise InvalidParameterError(f"Pointer position must be two finite numbers, got {point!r}")
    return float(point[0]), float(point[1])


def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def midpoint(p1: Point, p2: Point) -> Point:
    return (p1[0] + p2[0]) / 2, (p1[1] + p2[1]) / 2


@dataclass(frozen=True)
class DragGesture:
    """One-pointer pan, from mouse or a single finger."""

    channel: InputChannel
    start: Point
    start_view: ViewState

    phase = GesturePhase.DRAGGING

    def view_for(self, position: Point, pan_divisor: float) -> ViewState:
        """
        View after dragging from the start to the given position.

        The view moves opposite to the drag, scaled by 1/zoom so a drag
        covers the same screen distance at every zoom level.
        """
        x, y = validate_point(position)
        zoom = self.start_view.zoom
        dx = (x - self.start[0]) / zoom / pan_divisor
        dy = (y - self.start[1]) / zoom / pan_divisor
        cx, cy = self.start_view.center
        return self.start_view.evolve(center=(cx - dx, cy - dy))


@dataclass(frozen=True)
class PinchGesture:
    """Two-finger zoom about the midpoint of the fingers."""

    start_distance: float
    start_view: ViewState

    channel = InputChannel.TOUCH
    phase = GesturePhase.PINCHING

    @classmethod
    def begin(cls, p1: Point, p2: Point, view: ViewState) -> 'PinchGesture':
        p1, p2 = validate_point(p1), validate_point(p2)
        start_distance = distance(p1, p2)
        if start_distance <= 0:
            raise InvalidParameterError("Pinch needs two distinct touch points")
        return cls(start_distance=start_distance, start_view=view)

    def view_for(self, p1: Point, p2: Point, dims: CanvasDimensions) -> ViewState:
        """View after the fingers moved to p1 and p2."""
        p1, p2 = validate_point(p1), validate_point(p2)
        factor = distance(p1, p2) / self.start_distance
        mx, my = midpoint(p1, p2)
        return zoom_about_screen_point(self.start_view, dims, factor, mx, my)
