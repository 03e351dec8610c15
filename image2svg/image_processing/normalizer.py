"""Decoding and size normalisation of incoming image payloads."""

import io
import logging

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from image2svg.errors import DecodeError
from image2svg.models import MAX_DIMENSION, PixelBuffer

logger = logging.getLogger(__name__)


def fit_dimensions(
    width: int, height: int, limit: int = MAX_DIMENSION
) -> "tuple[int, int]":
    """Scale dimensions down so that neither exceeds `limit`.

    Both sides are scaled by the same factor, so the larger one ends up
    equal to `limit`. Images already within bounds are never upscaled.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        limit: Maximum allowed size of either side

    Returns:
        Tuple of (effective width, effective height)
    """
    if width <= limit and height <= limit:
        return width, height

    scale = min(limit / width, limit / height)
    # AIDEV-NOTE: Round half up, and never collapse a side to zero on
    # extreme aspect ratios.
    new_width = max(1, int(width * scale + 0.5))
    new_height = max(1, int(height * scale + 0.5))
    return min(new_width, limit), min(new_height, limit)


def decode_image(payload: bytes) -> Image.Image:
    """Decode an image payload into an RGBA PIL image.

    Args:
        payload: Encoded image bytes (PNG, JPG, WebP, ...)

    Returns:
        PIL Image in RGBA mode with EXIF orientation applied

    Raises:
        DecodeError: If the payload is empty or not a decodable image
    """
    if not payload:
        raise DecodeError("No image data provided")

    try:
        image = Image.open(io.BytesIO(payload))
        image.load()
        image = ImageOps.exif_transpose(image)
    except UnidentifiedImageError as e:
        raise DecodeError("Unrecognized image format") from e
    except Image.DecompressionBombError as e:
        raise DecodeError(f"Image is too large to decode: {e}") from e
    except (OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e

    # AIDEV-NOTE: Always convert to RGBA for consistent processing
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return image


def normalize_image(payload: bytes) -> PixelBuffer:
    """Decode a payload and downsample it to the safety ceiling.

    Args:
        payload: Encoded image bytes

    Returns:
        Freshly allocated PixelBuffer at the effective dimensions

    Raises:
        DecodeError: If the payload cannot be decoded
    """
    image = decode_image(payload)
    width, height = image.size
    target = fit_dimensions(width, height)

    if target != (width, height):
        logger.info(
            "Downsampling %dx%d image to %dx%d", width, height, *target
        )
        image = image.resize(target, Image.Resampling.LANCZOS)

    pixels = np.array(image, dtype=np.uint8)
    return PixelBuffer(image.width, image.height, pixels)
