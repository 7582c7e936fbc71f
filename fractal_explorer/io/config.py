"""
Explorer configuration: defaults, JSON files and environment overrides.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from ..core.errors import InvalidParameterError
from ..core.view_state import (
    DEFAULT_ITERATION_BUDGET, CanvasDimensions, is_finite_number, validate_iteration_budget
)

logger = logging.getLogger(__name__)

SUPPORTED_EXPORT_FORMATS = ('png', 'jpeg', 'jpg')


@dataclass
class ExplorerConfig:
    """Configuration for an interactive explorer session."""

    # Canvas
    width: int = 800
    height: int = 800

    # View and sampling
    default_iteration_budget: int = DEFAULT_ITERATION_BUDGET
    samples_per_budget: int = 5000

    # Input
    wheel_zoom_factor: float = 1.15
    pan_divisor: float = 150.0

    # Overlay and colors
    reticle_size: int = 20
    reticle_thickness: int = 2
    fern_color: Tuple[int, int, int] = (0, 128, 0)

    # Rendering
    escape_band_rows: int = 32
    ifs_chunk_samples: int = 20000
    ifs_seed: Optional[int] = None
    background_render: bool = False

    # Output
    export_format: str = 'png'

    def validate(self):
        """Validate configuration parameters."""
        CanvasDimensions(self.width, self.height).validate()

        validate_iteration_budget(self.default_iteration_budget)

        if self.samples_per_budget <= 0:
            raise InvalidParameterError("samples_per_budget must be positive")

        if not is_finite_number(self.wheel_zoom_factor) or self.wheel_zoom_factor <= 1:
            raise InvalidParameterError("wheel_zoom_factor must be greater than 1")

        if not is_finite_number(self.pan_divisor) or self.pan_divisor <= 0:
            raise InvalidParameterError("pan_divisor must be positive")

        if self.reticle_size <= 0 or self.reticle_thickness <= 0:
            raise InvalidParameterError("reticle_size and reticle_thickness must be positive")

        if len(self.fern_color) != 3 or not all(0 <= c <= 255 for c in self.fern_color):
            raise InvalidParameterError("fern_color must be three values in 0-255")

        if self.escape_band_rows <= 0 or self.ifs_chunk_samples <= 0:
            raise InvalidParameterError("escape_band_rows and ifs_chunk_samples must be positive")

        if self.export_format.lower() not in SUPPORTED_EXPORT_FORMATS:
            raise InvalidParameterError(f"Unsupported export format '{self.export_format}'")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['fern_color'] = list(self.fern_color)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ExplorerConfig':
        """
        Build a validated config from a mapping.

        Raises:
            InvalidParameterError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidParameterError(f"Unknown configuration keys: {', '.join(unknown)}")

        values = dict(data)
        if 'fern_color' in values:
            values['fern_color'] = tuple(values['fern_color'])

        config = cls(**values)
        try:
            config.validate()
        except TypeError as e:
            raise InvalidParameterError(f"Configuration value has the wrong type: {e}") from e
        return config

    def updated(self, **overrides) -> 'ExplorerConfig':
        """Return a validated copy with the given fields replaced."""
        return self.from_dict({**self.to_dict(), **overrides})


class ConfigManager:
    """Loads and saves explorer configuration files."""

    def __init__(self, base: Optional[ExplorerConfig] = None):
        self.base = base or ExplorerConfig()

    def load_config(self, path: Union[str, Path]) -> ExplorerConfig:
        """
        Load a JSON config file on top of the base config.

        Raises:
            InvalidParameterError: If the file is unreadable, not JSON, or invalid
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidParameterError(f"Could not load configuration from {path}: {e}") from e

        if not isinstance(data, dict):
            raise InvalidParameterError(f"Configuration file {path} must contain a JSON object")

        config = self.apply_overrides(self.base, data)
        logger.info(f"Loaded configuration from {path}")
        return config

    def save_config(self, config: ExplorerConfig, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config.to_dict(), indent=2), encoding='utf-8')
        logger.info(f"Saved configuration to {path}")
        return path

    @staticmethod
    def apply_overrides(config: ExplorerConfig, overrides: Mapping[str, Any]) -> ExplorerConfig:
        return config.updated(**overrides)


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_color(raw: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in raw.split(','))


def _parse_optional_int(raw: str) -> Optional[int]:
    return None if raw.strip().lower() in ('', 'none') else int(raw)


class EnvironmentConfig:
    """Reads FRACTAL_EXPLORER_<FIELD> environment variables."""

    PREFIX = 'FRACTAL_EXPLORER_'

    _PARSERS: Dict[str, Callable[[str], Any]] = {
        'fern_color': _parse_color,
        'ifs_seed': _parse_optional_int,
    }

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def _parser_for(self, name: str, default: Any) -> Callable[[str], Any]:
        if name in self._PARSERS:
            return self._PARSERS[name]
        if isinstance(default, bool):
            return _parse_bool
        if isinstance(default, int):
            return int
        if isinstance(default, float):
            return float
        return str

    def overrides(self) -> Dict[str, Any]:
        """Typed overrides for every field set in the environment."""
        defaults = ExplorerConfig()
        result = {}
        for f in fields(ExplorerConfig):
            key = self.PREFIX + f.name.upper()
            if key not in self.environ:
                continue
            raw = self.environ[key]
            try:
                result[f.name] = self._parser_for(f.name, getattr(defaults, f.name))(raw)
            except ValueError as e:
                raise InvalidParameterError(f"Invalid value for {key}: {e}") from e
        return result

    def apply(self, config: ExplorerConfig) -> ExplorerConfig:
        overrides = self.overrides()
        if overrides:
            logger.debug(f"Environment overrides: {', '.join(sorted(overrides))}")
        return config.updated(**overrides)


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Mapping[str, str]] = None,
                **overrides) -> ExplorerConfig:
    """
    Resolve the effective configuration.

    Precedence, lowest first: defaults, config file, environment, keyword overrides.
    """
    manager = ConfigManager()
    config = manager.load_config(path) if path else ExplorerConfig()
    config = EnvironmentConfig(environ).apply(config)
    return ConfigManager.apply_overrides(config, overrides)
