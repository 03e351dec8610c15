"""Noise-reduction filters run before tracing.

AIDEV-NOTE: Every filter works in place on a PixelBuffer and leaves its
geometry untouched. A radius <= 0 is always a no-op.
"""

import numpy as np
from PIL import Image, ImageFilter

from image2svg.models import PixelBuffer, SmoothingMethod

# Upper bound on samples materialised per median band (~64 MB of uint8)
_MEDIAN_BAND_SAMPLES = 64 * 1024 * 1024


def _round_to_uint8(values: np.ndarray) -> np.ndarray:
    """Round half up and clamp back into byte range."""
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def _window_mean(values: np.ndarray, radius: int, axis: int) -> np.ndarray:
    """Mean over a (2r+1) window along one axis with edge clamping."""
    size = 2 * radius + 1
    length = values.shape[axis]

    pad = [(0, 0)] * values.ndim
    pad[axis] = (radius, radius)
    padded = np.pad(values, pad, mode="edge")

    total = np.zeros(values.shape, dtype=np.float64)
    for offset in range(size):
        total += np.take(padded, range(offset, offset + length), axis=axis)
    return total / size


def box_blur(buffer: PixelBuffer, radius: int) -> None:
    """Separable box blur over all four channels.

    The horizontal pass writes into a float64 intermediate, the vertical
    pass reads it and rounds back to integer samples.

    Args:
        buffer: Buffer to blur in place
        radius: Window half-width; the window spans 2r+1 pixels
    """
    if radius <= 0:
        return

    horizontal = _window_mean(buffer.pixels.astype(np.float64), radius, axis=1)
    vertical = _window_mean(horizontal, radius, axis=0)
    buffer.pixels[...] = _round_to_uint8(vertical)


def median_filter(buffer: PixelBuffer, radius: int) -> None:
    """Per-channel median over a (2r+1)x(2r+1) edge-clamped window.

    The result is computed from an untouched snapshot into a separate
    array and copied in at the end, so no pixel ever sees a neighbour that
    was already filtered. Cost grows with the square of the window; keep
    the radius small.

    Args:
        buffer: Buffer to filter in place
        radius: Window half-width
    """
    if radius <= 0:
        return

    size = 2 * radius + 1
    window_area = size * size
    middle = window_area // 2

    padded = np.pad(
        buffer.pixels, ((radius, radius), (radius, radius), (0, 0)), mode="edge"
    )
    # (height, width, 4, size, size) view, nothing copied yet
    windows = np.lib.stride_tricks.sliding_window_view(
        padded, (size, size), axis=(0, 1)
    )

    output = np.empty_like(buffer.pixels)
    row_samples = buffer.width * 4 * window_area
    band = max(1, _MEDIAN_BAND_SAMPLES // row_samples)

    for top in range(0, buffer.height, band):
        bottom = min(top + band, buffer.height)
        samples = windows[top:bottom].reshape(
            bottom - top, buffer.width, 4, window_area
        )
        # Window area is always odd, so the median is the middle element
        output[top:bottom] = np.partition(samples, middle, axis=-1)[..., middle]

    buffer.pixels[...] = output


def selective_blur(buffer: PixelBuffer, radius: int, delta: int) -> None:
    """Gaussian blur that leaves high-contrast pixels alone.

    A blurred pixel is only kept when the summed absolute change across
    its channels stays within `delta`; otherwise the original survives.
    Used to emulate the tracing options `blur_radius` / `blur_delta`.
    """
    if radius <= 0:
        return

    original = buffer.pixels
    image = Image.fromarray(original)
    blurred = np.array(
        image.filter(ImageFilter.GaussianBlur(radius=radius)), dtype=np.uint8
    )

    change = np.abs(blurred.astype(np.int16) - original.astype(np.int16)).sum(
        axis=2
    )
    keep_original = change > delta
    blurred[keep_original] = original[keep_original]
    buffer.pixels[...] = blurred


def smooth(buffer: PixelBuffer, radius: int, method: SmoothingMethod) -> None:
    """Apply the selected smoothing filter."""
    if method == SmoothingMethod.MEDIAN:
        median_filter(buffer, radius)
    elif method == SmoothingMethod.BOX:
        box_blur(buffer, radius)
    else:
        raise ValueError(f"Unknown smoothing method: {method}")
