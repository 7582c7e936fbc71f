"""
View state and canvas data model.

This module defines the immutable snapshots that flow between the
interaction layer and the renderers: the live view (zoom, center,
iteration budget, fractal variant), the canvas size, and the derived
plane-space bounds.
"""

import math
import numbers
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Tuple

from .errors import InvalidParameterError

# Iteration budgets offered by the budget selector
ALLOWED_ITERATION_BUDGETS: Tuple[int, ...] = (2, 4, 8, 16, 32, 64, 128, 256, 512)

DEFAULT_ZOOM = 1.0
DEFAULT_CENTER = (0.0, 0.0)
DEFAULT_ITERATION_BUDGET = 16


class FractalVariant(Enum):
    """Fractal families the engine can render."""

    ESCAPE_TIME = "mandelbrot"
    IFS = "barnsley"

    @property
    def label(self) -> str:
        """Human-readable name shown next to the canvas."""
        return _VARIANT_LABELS[self]

    @property
    def export_filename(self) -> str:
        """File name used when a capture of this variant is saved."""
        return f"{self.value}.png"

    def toggled(self) -> 'FractalVariant':
        """Return the other variant."""
        if self is FractalVariant.ESCAPE_TIME:
            return FractalVariant.IFS
        return FractalVariant.ESCAPE_TIME


_VARIANT_LABELS = {
    FractalVariant.ESCAPE_TIME: "Mandelbrot fractal",
    FractalVariant.IFS: "Barnsley fern",
}


def is_finite_number(value: Any) -> bool:
    """Check that a value is a real, finite number (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


def validate_iteration_budget(value: Any) -> int:
    """
    Validate an iteration budget against the allowed set.

    Args:
        value: Candidate budget

    Returns:
        The budget as an int

    Raises:
        InvalidParameterError: If the value is not one of ALLOWED_ITERATION_BUDGETS
    """
    if isinstance(value, bool) or not isinstance(value, int) or value not in ALLOWED_ITERATION_BUDGETS:
        allowed = ', '.join(str(v) for v in ALLOWED_ITERATION_BUDGETS)
        raise InvalidParameterError(f"Iteration budget {value!r} is not one of: {allowed}")
    return int(value)


@dataclass(frozen=True)
class ViewState:
    """Immutable snapshot of the live view."""

    zoom: float = DEFAULT_ZOOM
    center: Tuple[float, float] = DEFAULT_CENTER
    iteration_budget: int = DEFAULT_ITERATION_BUDGET
    variant: FractalVariant = FractalVariant.ESCAPE_TIME

    def __post_init__(self):
        """Validate every field; a ViewState can never hold a bad zoom or budget."""
        if not is_finite_number(self.zoom) or self.zoom <= 0:
            raise InvalidParameterError(f"zoom must be a finite positive number, got {self.zoom!r}")

        if (not isinstance(self.center, (tuple, list)) or len(self.center) != 2
                or not all(is_finite_number(c) for c in self.center)):
            raise InvalidParameterError(f"center must be two finite numbers, got {self.center!r}")

        validate_iteration_budget(self.iteration_budget)

        if not isinstance(self.variant, FractalVariant):
            raise InvalidParameterError(f"Unknown fractal variant: {self.variant!r}")

        # Normalise numeric types so equal views compare equal
        object.__setattr__(self, 'zoom', float(self.zoom))
        object.__setattr__(self, 'center', (float(self.center[0]), float(self.center[1])))

    @property
    def center_x(self) -> float:
        return self.center[0]

    @property
    def center_y(self) -> float:
        return self.center[1]

    def evolve(self, **changes) -> 'ViewState':
        """Return a validated copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the view to a JSON-friendly dictionary."""
        return {
            'zoom': self.zoom,
            'center': list(self.center),
            'iteration_budget': self.iteration_budget,
            'variant': self.variant.value,
        }


@dataclass(frozen=True)
class CanvasDimensions:
    """
    Pixel size of the drawing surface.

    Owned by the UI shell; it may briefly report a zero-sized canvas (e.g. a
    collapsed window), so construction does not validate. Consumers call
    validate() or check is_empty before use.
    """

    width: int
    height: int

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def validate(self) -> None:
        """Raise InvalidParameterError unless both sides are positive integers."""
        for name, value in (('width', self.width), ('height', self.height)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidParameterError(f"Canvas {name} must be an integer, got {value!r}")
            if value <= 0:
                raise InvalidParameterError(f"Canvas {name} must be positive, got {value}")


@dataclass(frozen=True)
class PlaneBounds:
    """Plane-space rectangle visible on the canvas."""

    xmin: float
    xmax: float
    ymin: float
    ymax: float

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return (xmin, xmax, ymin, ymax)."""
        return (self.xmin, self.xmax, self.ymin, self.ymax)
