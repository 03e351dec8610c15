"""Main vectorization pipeline orchestrating one request end to end.

AIDEV-NOTE: Decoding -> Filtering -> Tracing -> ExtractingPalette -> Done,
or Failed from any stage. Every request yields exactly one result, and a
failed request never carries partial output.
"""

import logging
from typing import Any, Callable

from image2svg.errors import UnavailableSourceError, VectorizerError
from image2svg.models import (
    MEDIAN_MAX_RADIUS,
    PipelineStage,
    PixelBuffer,
    PreprocessOptions,
    ProcessingRequest,
    ProcessingResult,
    SmoothingMethod,
)

from .normalizer import normalize_image
from .palette import extract_palette
from .quantization import simplify
from .smoothing import smooth
from .tracing import TracingEngineAdapter

logger = logging.getLogger(__name__)

StageCallback = Callable[[Any, PipelineStage], None]


def apply_preprocessing(buffer: PixelBuffer, options: PreprocessOptions) -> None:
    """Run smoothing then colour simplification on a buffer in place.

    AIDEV-NOTE: Order matters. Smoothing first so the simplification pass
    clusters denoised colours.
    """
    if options.smooth_radius > 0:
        method = options.smooth_method
        if method == SmoothingMethod.MEDIAN and options.smooth_radius > MEDIAN_MAX_RADIUS:
            logger.warning(
                "Median radius %d exceeds %d, using box blur instead",
                options.smooth_radius,
                MEDIAN_MAX_RADIUS,
            )
            method = SmoothingMethod.BOX
        smooth(buffer, options.smooth_radius, method)

    if options.simplify_strength > 0:
        simplify(
            buffer,
            options.simplify_strength,
            options.simplify_method,
            seed=options.cluster_seed,
        )


class VectorizationPipeline:
    """Turns processing requests into vector markup results."""

    def __init__(
        self,
        image_store=None,
        tracer: TracingEngineAdapter | None = None,
        on_stage: StageCallback | None = None,
    ):
        """Initialize pipeline.

        Args:
            image_store: Read-only source for requests without a payload
            tracer: Tracing adapter, defaults to the vtracer adapter
            on_stage: Called with (correlation_id, stage) on every transition
        """
        self.image_store = image_store
        self.tracer = tracer or TracingEngineAdapter()
        self.on_stage = on_stage
        self.stage = PipelineStage.IDLE

    def _enter(self, correlation_id: Any, stage: PipelineStage) -> None:
        self.stage = stage
        logger.debug("Request %r: %s", correlation_id, stage.value)
        if self.on_stage is not None:
            self.on_stage(correlation_id, stage)

    def _load_payload(self, request: ProcessingRequest) -> bytes:
        if request.image_payload is not None:
            return request.image_payload

        record = self.image_store.get(request.correlation_id) if self.image_store else None
        if record is None:
            raise UnavailableSourceError(request.correlation_id)
        return record.payload

    def _run(self, request: ProcessingRequest) -> ProcessingResult:
        correlation_id = request.correlation_id
        settings = request.settings

        self._enter(correlation_id, PipelineStage.DECODING)
        buffer = normalize_image(self._load_payload(request))
        logger.info(
            "Request %r: decoded %dx%d image",
            correlation_id,
            buffer.width,
            buffer.height,
        )

        self._enter(correlation_id, PipelineStage.FILTERING)
        apply_preprocessing(buffer, settings.preprocessing)

        self._enter(correlation_id, PipelineStage.TRACING)
        svg = self.tracer.trace(buffer, settings.tracing)

        self._enter(correlation_id, PipelineStage.EXTRACTING_PALETTE)
        palette = extract_palette(svg)
        logger.info(
            "Request %r: traced %d characters, %d colours",
            correlation_id,
            len(svg),
            len(palette),
        )

        return ProcessingResult.success(
            correlation_id, svg, palette, buffer.width, buffer.height
        )

    def process(self, request: ProcessingRequest) -> ProcessingResult:
        """Execute the complete pipeline for one request.

        Args:
            request: Request carrying correlation id, payload and settings

        Returns:
            Success result with markup and palette, or a failure result
            with a human-readable message
        """
        try:
            result = self._run(request)
        except VectorizerError as e:
            logger.warning("Request %r failed: %s", request.correlation_id, e)
            self._enter(request.correlation_id, PipelineStage.FAILED)
            return ProcessingResult.failure(request.correlation_id, str(e))
        except Exception as e:
            logger.exception("Request %r failed unexpectedly", request.correlation_id)
            self._enter(request.correlation_id, PipelineStage.FAILED)
            return ProcessingResult.failure(
                request.correlation_id, f"Unexpected error: {e}"
            )

        self._enter(request.correlation_id, PipelineStage.DONE)
        return result
