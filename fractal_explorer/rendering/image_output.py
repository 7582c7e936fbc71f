"""
Image encoding and export for captured frames.

This module turns RGBA pixel buffers into standard raster encodings with
render metadata embedded, and persists capture bytes under a filename
derived from the fractal variant.
"""

import io
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
from PIL import Image, PngImagePlugin

from .. import __version__
from ..core.errors import InvalidParameterError, RenderFailure
from ..core.view_state import CanvasDimensions, FractalVariant, ViewState
from ..core.viewport import plane_bounds

logger = logging.getLogger(__name__)


@dataclass
class RenderMetadata:
    """Metadata for a captured frame."""

    variant: str
    label: str
    bounds: Tuple[float, float, float, float]  # xmin, xmax, ymin, ymax
    resolution: Tuple[int, int]  # width, height
    zoom: float
    center: Tuple[float, float]
    iteration_budget: int

    timestamp: str = ""
    software_version: str = __version__
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    @classmethod
    def from_view(cls, view: ViewState, dims: CanvasDimensions, **extra) -> 'RenderMetadata':
        """Describe a render of the given view on the given canvas."""
        return cls(
            variant=view.variant.value,
            label=view.variant.label,
            bounds=plane_bounds(view, dims).as_tuple(),
            resolution=(dims.width, dims.height),
            zoom=view.zoom,
            center=view.center,
            iteration_budget=view.iteration_budget,
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


def _to_pil_image(buffer: np.ndarray) -> Image.Image:
    """Wrap an RGBA buffer as a PIL image."""
    if buffer.ndim != 3 or buffer.shape[2] != 4:
        raise InvalidParameterError(f"Expected RGBA pixel buffer (H, W, 4), got {buffer.shape}")
    if buffer.dtype != np.uint8:
        raise InvalidParameterError(f"Expected uint8 pixel buffer, got {buffer.dtype}")
    return Image.fromarray(np.ascontiguousarray(buffer))


def encode_image(buffer: np.ndarray, metadata: Optional[RenderMetadata] = None,
                 image_format: str = "png") -> bytes:
    """
    Encode an RGBA pixel buffer as image bytes.

    Args:
        buffer: (height, width, 4) uint8 RGBA buffer
        metadata: Render metadata to embed (PNG text chunks)
        image_format: "png" (lossless, keeps alpha) or "jpeg"

    Returns:
        Encoded image bytes

    Raises:
        RenderFailure: If the buffer cannot be encoded
    """
    pil_image = _to_pil_image(buffer)
    output = io.BytesIO()
    fmt = image_format.lower()

    try:
        if fmt == "png":
            pnginfo = PngImagePlugin.PngInfo()
            if metadata:
                pnginfo.add_text("Title", f"Fractal: {metadata.label}")
                pnginfo.add_text("Software", f"FractalExplorer v{metadata.software_version}")
                pnginfo.add_text("Creation Time", metadata.timestamp)
                pnginfo.add_text("FractalMetadata", metadata.to_json())
            pil_image.save(output, "PNG", pnginfo=pnginfo)
        elif fmt in ("jpg", "jpeg"):
            # JPEG has no alpha channel
            pil_image.convert("RGB").save(output, "JPEG", quality=95)
        else:
            raise InvalidParameterError(f"Unsupported image format '{image_format}'. Supported: png, jpeg")
    except OSError as e:
        raise RenderFailure(f"Image encoding failed: {e}") from e

    return output.getvalue()


class ImageExporter:
    """Persists captured image bytes to disk."""

    def __init__(self, directory: Union[str, Path] = "."):
        """
        Initialize image exporter.

        Args:
            directory: Directory that receives exported files
        """
        self.directory = Path(directory)

    def filename_for(self, variant: FractalVariant, image_format: str = "png") -> str:
        """File name for a capture of the given variant, e.g. 'mandelbrot.png'."""
        if image_format.lower() == "png":
            return variant.export_filename
        return f"{variant.value}.{image_format.lower()}"

    def save(self, data: bytes, variant: FractalVariant, image_format: str = "png") -> Path:
        """
        Write capture bytes under the variant-derived filename.

        Returns:
            Path of the written file
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        filepath = self.directory / self.filename_for(variant, image_format)
        filepath.write_bytes(data)
        logger.info(f"Saved image: {filepath} ({len(data)} bytes)")
        return filepath

    def __call__(self, data: bytes, variant: FractalVariant, image_format: str = "png") -> Path:
        return self.save(data, variant, image_format)
