"""Adapter between the pixel pipeline and the vtracer tracing engine.

AIDEV-NOTE: This module does no pixel math of its own beyond the optional
engine pre-blur. It packages the buffer, translates TracingOptions into
vtracer's keyword arguments and shapes the returned document.
"""

import io
import logging
import math
import re
from typing import Any, Callable

from PIL import Image

from image2svg.errors import TracingError
from image2svg.models import PixelBuffer, TracingOptions

from .smoothing import selective_blur

try:
    import vtracer
except ImportError:
    vtracer = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

# vtracer's accepted ranges
_SPECKLE_RANGE = (0, 128)
_LENGTH_THRESHOLD_RANGE = (3.5, 10.0)
_COLOR_PRECISION = 6

_SVG_ROOT = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_SIZE_ATTR = re.compile(r'\s(width|height|viewBox)="[^"]*"', re.IGNORECASE)
_PATH_FILL = re.compile(r'<path\b(?![^>]*\bstroke=)([^>]*?)\bfill="([^"]+)"')

Engine = Callable[..., str]


def _clamp(value, low, high):
    return max(low, min(high, value))


def _format_number(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def engine_options(
    options: TracingOptions, width: int, height: int
) -> "dict[str, Any]":
    """Translate TracingOptions into vtracer keyword arguments.

    Args:
        options: Tracing subset of the settings snapshot
        width: Effective image width in pixels
        height: Effective image height in pixels

    Returns:
        Keyword arguments for vtracer.convert_raw_image_to_svg
    """
    # AIDEV-NOTE: vtracer has no palette-share knob. A colour occupying less
    # than min_color_ratio of the image is at most that many pixels, so it
    # is expressed as a speckle floor on the side of an equivalent square.
    speckle = options.min_shape_size
    if options.min_color_ratio > 0:
        ratio_side = math.ceil(math.sqrt(options.min_color_ratio * width * height))
        speckle = max(speckle, ratio_side)

    # Fewer target colours -> larger colour gap between layers
    layer_difference = round(256 / max(options.color_count, 1))

    return {
        "colormode": options.color_mode,
        "hierarchical": options.hierarchical,
        "mode": "polygon" if options.square_corners else options.trace_mode,
        "filter_speckle": int(_clamp(speckle, *_SPECKLE_RANGE)),
        "color_precision": _COLOR_PRECISION,
        "layer_difference": int(_clamp(layer_difference, 1, 255)),
        "corner_threshold": int(options.corner_threshold),
        "length_threshold": float(
            _clamp(options.line_threshold, *_LENGTH_THRESHOLD_RANGE)
        ),
        "max_iterations": max(1, int(options.refinement_cycles)),
        "splice_threshold": int(options.curve_threshold),
        "path_precision": max(0, int(options.coordinate_precision)),
    }


def encode_png(buffer: PixelBuffer) -> bytes:
    """Encode a buffer as PNG bytes for the engine."""
    output = io.BytesIO()
    Image.fromarray(buffer.pixels).save(output, format="PNG")
    return output.getvalue()


def shape_document(
    svg: str, options: TracingOptions, width: int, height: int
) -> str:
    """Apply output scale, viewBox mode and stroke width to engine output."""
    match = _SVG_ROOT.search(svg)
    if match is None:
        raise TracingError("Tracing engine returned no <svg> element")

    root = _SIZE_ATTR.sub("", match.group(0)).rstrip("/>").rstrip()
    viewbox = f'viewBox="0 0 {width} {height}"'
    if options.use_viewbox:
        root = f"{root} {viewbox}>"
    else:
        scaled_width = _format_number(width * options.scale)
        scaled_height = _format_number(height * options.scale)
        root = f'{root} width="{scaled_width}" height="{scaled_height}" {viewbox}>'

    svg = svg[: match.start()] + root + svg[match.end():]

    if options.stroke_width > 0:
        stroke_width = _format_number(options.stroke_width)
        svg = _PATH_FILL.sub(
            lambda m: (
                f'<path{m.group(1)}fill="{m.group(2)}" '
                f'stroke="{m.group(2)}" stroke-width="{stroke_width}"'
            ),
            svg,
        )
    return svg


class TracingEngineAdapter:
    """Calls the tracing engine for a filtered buffer."""

    def __init__(self, engine: Engine | None = None):
        """Initialize adapter.

        Args:
            engine: Callable with vtracer.convert_raw_image_to_svg's
                signature; defaults to vtracer itself
        """
        self.engine = engine

    def _resolve_engine(self) -> Engine:
        if self.engine is not None:
            return self.engine
        if vtracer is None:
            raise TracingError("vtracer is not installed. Run: pip install vtracer")
        return vtracer.convert_raw_image_to_svg

    def trace(self, buffer: PixelBuffer, options: TracingOptions) -> str:
        """Vectorize a buffer.

        Args:
            buffer: Filtered pixels; may be blurred in place by the
                engine pre-blur
            options: Tracing options from the settings snapshot

        Returns:
            Complete SVG document

        Raises:
            TracingError: If the engine raises or returns no usable output
        """
        engine = self._resolve_engine()

        if options.blur_radius > 0:
            selective_blur(buffer, options.blur_radius, options.blur_delta)

        kwargs = engine_options(options, buffer.width, buffer.height)
        logger.debug("Tracing %dx%d buffer with %s", buffer.width, buffer.height, kwargs)

        try:
            svg = engine(encode_png(buffer), img_format="png", **kwargs)
        except Exception as e:
            raise TracingError(f"Tracing engine failed: {e}") from e

        if not isinstance(svg, str) or not svg.strip():
            raise TracingError("Tracing engine returned empty output")

        return shape_document(svg, options, buffer.width, buffer.height)
