"""Image processing pipeline for raster-to-SVG conversion.

AIDEV-NOTE: Organized into modular components:
- normalizer: Payload decoding and size ceiling
- smoothing: Box blur, median and engine pre-blur
- quantization: Posterization and k-means colour clustering
- tracing: vtracer adapter
- palette: Fill colour detection and masking on traced markup
- processor: VectorizationPipeline orchestrator
"""

from .palette import apply_hidden_colors, extract_palette
from .processor import VectorizationPipeline

__all__ = ["VectorizationPipeline", "apply_hidden_colors", "extract_palette"]
