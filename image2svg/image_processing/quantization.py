"""Colour simplification passes for reducing the traced palette.

AIDEV-NOTE: Posterization is fast but bands gradients; k-means gives
perceptually coherent palettes at higher cost. Both leave alpha untouched.
"""

import logging

import numpy as np
from sklearn.metrics import pairwise_distances_argmin

from image2svg.models import (
    KMEANS_MAX_CLUSTERS,
    KMEANS_MIN_CLUSTERS,
    KMEANS_ROUNDS,
    KMEANS_TOLERANCE,
    PixelBuffer,
    SimplifyMethod,
)

logger = logging.getLogger(__name__)

# Pixels drawn per cluster when looking for distinct starting colours
_SEED_OVERSAMPLE = 64

_PACK_WEIGHTS = np.array([65536, 256, 1], dtype=np.uint32)


def posterize(buffer: PixelBuffer, levels: int) -> None:
    """Snap R, G and B down to a fixed number of steps.

    Args:
        buffer: Buffer to modify in place
        levels: Distinct values allowed per channel (<= 0 disables)

    AIDEV-NOTE: step = 255 / levels and values become floor(v / step) * step.
    Only 255 itself would land in bin `levels`, so that bin is folded into
    the one below to keep at most `levels` values per channel. As a result
    the top value is never 255: white becomes 127 at 2 levels and 191 at 4,
    and a single level maps every channel to 0.
    """
    if levels <= 0:
        return

    levels = min(int(levels), 255)
    step = 255.0 / levels
    rgb = buffer.pixels[..., :3].astype(np.float64)
    bins = np.minimum(np.floor(rgb / step), levels - 1)
    buffer.pixels[..., :3] = np.floor(bins * step).astype(np.uint8)


def _pack(rgb: np.ndarray) -> np.ndarray:
    """One uint32 key per RGB row, so distinct colours sort as scalars."""
    return rgb.astype(np.uint32) @ _PACK_WEIGHTS


def _unpack(keys: np.ndarray) -> np.ndarray:
    return np.stack([(keys >> 16) & 0xFF, (keys >> 8) & 0xFF, keys & 0xFF], axis=1)


def _initial_centroids(
    colors: np.ndarray, k: int, rng: np.random.Generator
) -> np.ndarray:
    """Sample starting centroids from randomly chosen pixels.

    Distinct colours are preferred so that an image with at most k colours
    starts with every one of them as a centroid.
    """
    count = colors.shape[0]
    sample_size = min(count, k * _SEED_OVERSAMPLE)
    picks = colors[rng.choice(count, size=sample_size, replace=False)]

    _, first_seen = np.unique(_pack(picks), return_index=True)
    distinct = picks[np.sort(first_seen)]

    if len(distinct) < k and sample_size < count:
        # Sample missed some colours; take every distinct colour in random order
        keys = np.unique(_pack(colors))
        distinct = _unpack(keys[rng.permutation(len(keys))])

    if len(distinct) >= k:
        return distinct[:k].astype(np.float64)

    # Fewer distinct colours than clusters: pad with repeats
    extra = distinct[rng.integers(0, len(distinct), size=k - len(distinct))]
    return np.vstack([distinct, extra]).astype(np.float64)


def _assign(colors: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid (squared Euclidean in RGB) per pixel."""
    return pairwise_distances_argmin(colors, centroids, metric="euclidean")


def kmeans_quantize(
    buffer: PixelBuffer,
    k: int,
    seed: int | None = None,
) -> "list[tuple[int, int, int]]":
    """Iterative colour clustering (k-means) over R, G, B.

    Args:
        buffer: Buffer to modify in place
        k: Target cluster count; values below 2 disable the pass, values
            above 32 are clamped
        seed: Seed for centroid sampling, None for fresh randomness

    Returns:
        Final palette as a list of rounded (r, g, b) tuples, empty when the
        pass is disabled
    """
    if k < KMEANS_MIN_CLUSTERS:
        return []

    k = min(int(k), KMEANS_MAX_CLUSTERS)
    rng = np.random.default_rng(seed)

    rgb = buffer.pixels[..., :3].reshape(-1, 3)
    colors = rgb.astype(np.float64)
    centroids = _initial_centroids(rgb, k, rng)

    for round_index in range(KMEANS_ROUNDS):
        labels = _assign(colors, centroids)

        counts = np.bincount(labels, minlength=k)
        sums = np.stack(
            [np.bincount(labels, weights=colors[:, c], minlength=k) for c in range(3)],
            axis=1,
        )
        updated = centroids.copy()
        occupied = counts > 0
        # Empty clusters keep their previous centroid
        updated[occupied] = sums[occupied] / counts[occupied, None]

        movement = float(np.abs(updated - centroids).sum())
        centroids = updated
        if movement < KMEANS_TOLERANCE:
            logger.debug(
                "k-means converged after %d rounds (movement %.3f)",
                round_index + 1,
                movement,
            )
            break

    palette = np.clip(np.floor(centroids + 0.5), 0, 255).astype(np.uint8)
    labels = _assign(colors, centroids)
    buffer.pixels[..., :3] = palette[labels].reshape(
        buffer.height, buffer.width, 3
    )

    return [tuple(int(c) for c in color) for color in palette]


def simplify(
    buffer: PixelBuffer,
    strength: int,
    method: SimplifyMethod,
    seed: int | None = None,
) -> None:
    """Apply the selected colour simplification filter."""
    if method == SimplifyMethod.KMEANS:
        kmeans_quantize(buffer, strength, seed=seed)
    elif method == SimplifyMethod.POSTERIZE:
        posterize(buffer, strength)
    else:
        raise ValueError(f"Unknown simplification method: {method}")
