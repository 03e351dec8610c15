"""image2svg - raster to SVG vectorizer.

Decodes an image, optionally smooths and simplifies its colours, traces it
with vtracer and reports the fill colours of the result.
"""

from image2svg.errors import DecodeError, TracingError, UnavailableSourceError, VectorizerError
from image2svg.image_processing import VectorizationPipeline
from image2svg.models import (
    PixelBuffer,
    ProcessingRequest,
    ProcessingResult,
    VectorizerSettings,
)

__all__ = [
    "DecodeError",
    "PixelBuffer",
    "ProcessingRequest",
    "ProcessingResult",
    "TracingError",
    "UnavailableSourceError",
    "VectorizationPipeline",
    "VectorizerError",
    "VectorizerSettings",
]
