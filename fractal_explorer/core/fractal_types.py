"""
Fractal type definitions and parameter management.

This module describes the two fractal families the explorer can draw, the
escape-time quadratic set and the Barnsley fern iterated function system,
as configurable classes registered by variant.
"""

import numpy as np
from typing import Dict, Any, Tuple
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
import logging

from .errors import InvalidParameterError
from .view_state import FractalVariant, is_finite_number

logger = logging.getLogger(__name__)


@dataclass
class FractalParameters:
    """Base class for fractal parameters with validation."""

    def validate(self) -> None:
        """Validate parameter values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to dictionary."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith('_')}


class FractalType(ABC):
    """Abstract base class for fractal types."""

    variant: FractalVariant

    def __init__(self, name: str, parameters: FractalParameters):
        """
        Initialize fractal type.

        Args:
            name: Human-readable name for the fractal
            parameters: Fractal-specific parameters
        """
        self.name = name
        self.parameters = parameters
        self.parameters.validate()

    @abstractmethod
    def get_description(self) -> str:
        """Get a description of this fractal type."""
        pass


@dataclass
class EscapeTimeParameters(FractalParameters):
    """Parameters for the quadratic escape-time set."""

    escape_radius: float = 2.0

    def validate(self) -> None:
        """Validate escape-time parameters."""
        if not is_finite_number(self.escape_radius) or self.escape_radius <= 0:
            raise InvalidParameterError("escape_radius must be a finite positive number")

    @property
    def escape_radius_sq(self) -> float:
        return float(self.escape_radius) ** 2


class MandelbrotSet(FractalType):
    """Quadratic escape-time set: z_{n+1} = z_n^2 + c with z_0 = c."""

    variant = FractalVariant.ESCAPE_TIME

    def __init__(self, parameters: EscapeTimeParameters = None):
        if parameters is None:
            parameters = EscapeTimeParameters()
        super().__init__("Mandelbrot", parameters)

    def get_description(self) -> str:
        return (f"Mandelbrot set: z_{{n+1}} = z_n^2 + c, z_0 = c, "
                f"escape when |z| > {self.parameters.escape_radius}")


@dataclass(frozen=True)
class AffineMap:
    """
    One affine contraction of an iterated function system.

    Maps (x, y) to (a*x + b*y + e, c*x + d*y + f) and is chosen with the
    given probability on each step.
    """

    name: str
    a: float
    b: float
    c: float
    d: float
    e: float
    f: float
    probability: float

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        """Apply the map to a single point."""
        return self.a * x + self.b * y + self.e, self.c * x + self.d * y + self.f

    def coefficients(self) -> Tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)


# The four canonical fern maps
BARNSLEY_FERN_MAPS: Tuple[AffineMap, ...] = (
    AffineMap("stem", 0.0, 0.0, 0.0, 0.16, 0.0, 0.0, probability=0.01),
    AffineMap("large_leaflet", 0.85, 0.04, -0.04, 0.85, 0.0, 1.6, probability=0.85),
    AffineMap("left_leaflet", 0.2, -0.26, 0.23, 0.22, 0.0, 1.6, probability=0.07),
    AffineMap("right_leaflet", -0.15, 0.28, 0.26, 0.24, 0.0, 0.44, probability=0.07),
)


@dataclass
class IFSParameters(FractalParameters):
    """Parameters for a stochastic iterated function system."""

    maps: Tuple[AffineMap, ...] = BARNSLEY_FERN_MAPS
    # Samples drawn per unit of iteration budget
    samples_per_budget: int = 5000

    def validate(self) -> None:
        """Validate IFS parameters."""
        if not self.maps:
            raise InvalidParameterError("An IFS needs at least one affine map")

        probabilities = [m.probability for m in self.maps]
        if any(not is_finite_number(p) or p < 0 for p in probabilities):
            raise InvalidParameterError("Map probabilities must be finite and non-negative")
        if abs(sum(probabilities) - 1.0) > 1e-9:
            raise InvalidParameterError(f"Map probabilities must sum to 1, got {sum(probabilities)}")

        if isinstance(self.samples_per_budget, bool) or not isinstance(self.samples_per_budget, int) \
                or self.samples_per_budget <= 0:
            raise InvalidParameterError("samples_per_budget must be a positive integer")

    def sample_count(self, iteration_budget: int) -> int:
        """Number of samples drawn for a given iteration budget."""
        return iteration_budget * self.samples_per_budget

    def cumulative_thresholds(self) -> np.ndarray:
        """Cumulative selection thresholds, e.g. [0.01, 0.86, 0.93, 1.0] for the fern."""
        thresholds = np.round(np.cumsum([m.probability for m in self.maps]), 12)
        thresholds[-1] = 1.0
        return thresholds.astype(np.float64)

    def coefficient_array(self) -> np.ndarray:
        """Map coefficients as an (n_maps, 6) float64 array of (a, b, c, d, e, f)."""
        return np.array([m.coefficients() for m in self.maps], dtype=np.float64)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'maps': [asdict(m) for m in self.maps],
            'samples_per_budget': self.samples_per_budget,
        }


class BarnsleyFern(FractalType):
    """Barnsley fern drawn by the chaos game over four affine maps."""

    variant = FractalVariant.IFS

    def __init__(self, parameters: IFSParameters = None):
        if parameters is None:
            parameters = IFSParameters()
        super().__init__("Barnsley fern", parameters)

    def get_description(self) -> str:
        names = ', '.join(f"{m.name} ({m.probability:.0%})" for m in self.parameters.maps)
        return f"Barnsley fern IFS with maps: {names}"


class FractalRegistry:
    """Registry mapping each variant to its fractal type."""

    _fractals: Dict[FractalVariant, type] = {
        FractalVariant.ESCAPE_TIME: MandelbrotSet,
        FractalVariant.IFS: BarnsleyFern,
    }

    @classmethod
    def get(cls, variant: FractalVariant) -> type:
        """
        Get a fractal class by variant.

        Args:
            variant: Fractal variant

        Returns:
            Fractal class
        """
        fractal_class = cls._fractals.get(variant)
        if fractal_class is None:
            available = ', '.join(v.value for v in cls._fractals)
            raise InvalidParameterError(f"Unknown fractal variant '{variant}'. Available: {available}")
        return fractal_class

    @classmethod
    def create_fractal(cls, variant: FractalVariant, parameters: FractalParameters = None) -> FractalType:
        """Create a fractal instance, optionally with custom parameters."""
        fractal = cls.get(variant)(parameters)
        logger.debug(f"Created fractal: {fractal.get_description()}")
        return fractal
