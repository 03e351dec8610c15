"""Data models and constants for the image2svg vectorizer."""

import json
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np

# AIDEV-NOTE: Larger images are downsampled before any filter runs. Keeps
# filter and tracer memory bounded on huge photos.
MAX_DIMENSION = 2560

# Median cost grows with the square of the window; above this radius the
# pipeline substitutes the box blur.
MEDIAN_MAX_RADIUS = 5

KMEANS_MIN_CLUSTERS = 2
KMEANS_MAX_CLUSTERS = 32
KMEANS_ROUNDS = 5
KMEANS_TOLERANCE = 1.0  # summed absolute centroid movement

DEBOUNCE_MS = 500  # settings-change quiescence before re-processing

NO_FILL = "none"

# Configuration file path
CONFIG_FILE = Path.home() / ".image2svg_settings.json"


class SmoothingMethod(Enum):
    """Noise-reduction filter applied before tracing."""

    BOX = "box"  # Separable mean, fast at any radius
    MEDIAN = "median"  # Edge preserving, only for small radii


class SimplifyMethod(Enum):
    """Colour simplification filter applied before tracing."""

    POSTERIZE = "posterize"  # strength = levels per channel
    KMEANS = "kmeans"  # strength = cluster count, clamped to [2, 32]


class PipelineStage(Enum):
    """States a single request moves through inside the pipeline."""

    IDLE = "idle"
    DECODING = "decoding"
    FILTERING = "filtering"
    TRACING = "tracing"
    EXTRACTING_PALETTE = "extracting_palette"
    DONE = "done"
    FAILED = "failed"


# --- Raster Models ---


@dataclass
class PixelBuffer:
    """In-memory RGBA raster.

    AIDEV-NOTE: `pixels` has shape (height, width, 4) and dtype uint8.
    Filters mutate it in place and must never change its shape.
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 samples, got {self.pixels.dtype}")
        if self.pixels.shape != (self.height, self.width, 4):
            raise ValueError(
                f"Pixel array shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height}x4"
            )

    @classmethod
    def from_flat(cls, width: int, height: int, data) -> "PixelBuffer":
        """Build a buffer from a flat row-major RGBA sequence."""
        flat = np.asarray(data, dtype=np.uint8)
        if flat.size != width * height * 4:
            raise ValueError(
                f"Expected {width * height * 4} samples, got {flat.size}"
            )
        return cls(width, height, flat.reshape(height, width, 4).copy())

    @property
    def data(self) -> np.ndarray:
        """Flat row-major RGBA view of length width*height*4."""
        return self.pixels.reshape(-1)

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.pixels.copy())


# --- Settings Models ---


@dataclass(frozen=True)
class PreprocessOptions:
    """Filters this pipeline runs before handing pixels to the tracer."""

    smooth_radius: int = 1  # 0 disables smoothing
    smooth_method: SmoothingMethod = SmoothingMethod.BOX

    # AIDEV-NOTE: One strength, two meanings. Posterize reads it as levels
    # per channel, k-means as a cluster count clamped to [2, 32].
    simplify_strength: int = 0  # 0 disables simplification
    simplify_method: SimplifyMethod = SimplifyMethod.POSTERIZE

    cluster_seed: int | None = None  # None = fresh randomness per request


@dataclass(frozen=True)
class TracingOptions:
    """Options forwarded to the tracing engine."""

    # Trace error thresholds
    line_threshold: float = 4.0  # straight segments, px
    curve_threshold: int = 45  # curved segments, degrees
    corner_threshold: int = 60  # degrees

    min_shape_size: int = 4  # discard patches smaller than X px
    color_count: int = 8  # target palette size
    min_color_ratio: float = 0.0  # drop colours below this share of the image
    refinement_cycles: int = 10

    # Output document
    stroke_width: float = 0.0
    scale: float = 1.0
    coordinate_precision: int = 2  # decimals kept in path coordinates
    square_corners: bool = False
    use_viewbox: bool = False  # viewBox only instead of fixed width/height

    # Engine pre-blur
    blur_radius: int = 0
    blur_delta: int = 20

    color_mode: str = "color"  # "color" or "binary"
    hierarchical: str = "stacked"  # "stacked" or "cutout"
    trace_mode: str = "spline"  # "spline", "polygon" or "none"


_ENUM_FIELDS = {
    "smooth_method": SmoothingMethod,
    "simplify_method": SimplifyMethod,
}


def _group_from_dict(cls, data: dict[str, Any]):
    names = {f.name for f in fields(cls)}
    values = {}
    for key, value in data.items():
        if key not in names:
            continue
        if key in _ENUM_FIELDS and not isinstance(value, Enum):
            value = _ENUM_FIELDS[key](value)
        values[key] = value
    return cls(**values)


def _group_to_dict(group) -> dict[str, Any]:
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in asdict(group).items()
    }


@dataclass(frozen=True)
class VectorizerSettings:
    """Immutable settings snapshot for one processing request.

    AIDEV-NOTE: Both groups are frozen, so a snapshot captured at request
    time cannot be affected by later edits. Edits produce new values via
    with_changes().
    """

    tracing: TracingOptions = field(default_factory=TracingOptions)
    preprocessing: PreprocessOptions = field(default_factory=PreprocessOptions)

    def with_changes(self, **changes: Any) -> "VectorizerSettings":
        """Return a copy with flat field names routed to their group.

        Raises:
            KeyError: If a name belongs to neither group
        """
        tracing_names = {f.name for f in fields(TracingOptions)}
        preprocess_names = {f.name for f in fields(PreprocessOptions)}

        tracing_changes = {}
        preprocess_changes = {}
        for key, value in changes.items():
            if key in tracing_names:
                tracing_changes[key] = value
            elif key in preprocess_names:
                if key in _ENUM_FIELDS and not isinstance(value, Enum):
                    value = _ENUM_FIELDS[key](value)
                preprocess_changes[key] = value
            else:
                raise KeyError(f"Unknown setting: {key}")

        return VectorizerSettings(
            tracing=replace(self.tracing, **tracing_changes),
            preprocessing=replace(self.preprocessing, **preprocess_changes),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tracing": _group_to_dict(self.tracing),
            "preprocessing": _group_to_dict(self.preprocessing),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VectorizerSettings":
        """Create from dictionary, ignoring unknown keys."""
        return cls(
            tracing=_group_from_dict(TracingOptions, data.get("tracing", {})),
            preprocessing=_group_from_dict(
                PreprocessOptions, data.get("preprocessing", {})
            ),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> "VectorizerSettings":
        return cls.from_dict(json.loads(text))


# --- Store Models ---


@dataclass(frozen=True)
class ImageRecord:
    """An ingested source image."""

    id: int
    name: str
    payload: bytes
    created_at: float  # seconds since the epoch
    mime_type: str | None = None


# --- Request/Result Models ---


@dataclass(frozen=True)
class ProcessingRequest:
    """One unit of work for the vectorizer worker.

    AIDEV-NOTE: Settings travel as a JSON snapshot so that nothing mutable is
    shared between the requester and the worker. When `image_payload` is None
    the worker reads the image from its store using the correlation id.
    """

    correlation_id: Any
    settings_json: str
    image_payload: bytes | None = None
    kind: str = "process"

    @classmethod
    def create(
        cls,
        correlation_id: Any,
        settings: VectorizerSettings,
        image_payload: bytes | None = None,
    ) -> "ProcessingRequest":
        return cls(
            correlation_id=correlation_id,
            settings_json=settings.to_json(),
            image_payload=image_payload,
        )

    @property
    def settings(self) -> VectorizerSettings:
        return VectorizerSettings.from_json(self.settings_json)

    def to_message(self) -> dict[str, Any]:
        return {
            "correlationId": self.correlation_id,
            "kind": self.kind,
            "imagePayload": self.image_payload,
            "settingsSnapshotJSON": self.settings_json,
        }

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "ProcessingRequest":
        """Parse a channel message.

        Raises:
            ValueError: If the message is not a process request
        """
        kind = message.get("kind")
        if kind != "process":
            raise ValueError(f"Unsupported message kind: {kind!r}")
        return cls(
            correlation_id=message.get("correlationId"),
            settings_json=message.get("settingsSnapshotJSON") or "{}",
            image_payload=message.get("imagePayload"),
        )


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of one request: either markup or an error, never both."""

    correlation_id: Any
    svg: str | None = None
    error: str | None = None
    palette: frozenset = frozenset()
    width: int = 0
    height: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls,
        correlation_id: Any,
        svg: str,
        palette: frozenset,
        width: int,
        height: int,
    ) -> "ProcessingResult":
        return cls(
            correlation_id=correlation_id,
            svg=svg,
            palette=frozenset(palette),
            width=width,
            height=height,
        )

    @classmethod
    def failure(cls, correlation_id: Any, message: str) -> "ProcessingResult":
        return cls(correlation_id=correlation_id, error=message)

    def to_message(self) -> dict[str, Any]:
        if self.succeeded:
            return {
                "correlationId": self.correlation_id,
                "kind": "success",
                "vectorMarkup": self.svg,
            }
        return {
            "correlationId": self.correlation_id,
            "kind": "error",
            "message": self.error,
        }

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "ProcessingResult":
        """Parse a result message; palette is re-derived by the caller."""
        kind = message.get("kind")
        if kind == "success":
            return cls(
                correlation_id=message.get("correlationId"),
                svg=message.get("vectorMarkup"),
            )
        if kind == "error":
            return cls(
                correlation_id=message.get("correlationId"),
                error=message.get("message") or "Unknown error",
            )
        raise ValueError(f"Unsupported message kind: {kind!r}")
