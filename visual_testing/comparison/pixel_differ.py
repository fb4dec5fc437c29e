"""Pixel differ — perceptual per-pixel comparison of two screenshots.

Pixels are compared in YIQ colour space after blending onto white, using the
same colour-delta metric as pixelmatch. A pixel counts as mismatched when its
delta exceeds ``35215 * threshold ** 2`` (35215 is the largest possible delta)
and, unless ``include_aa`` is set, it is not an anti-aliased edge pixel in
either image. Anti-aliased pixels are drawn yellow in the diff image.
"""

from __future__ import annotations

import io
import logging
from typing import Union

import numpy as np
from PIL import Image

from visual_testing.errors import ImageSizeMismatch
from visual_testing.models.comparison import ComparisonResult

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, Image.Image]

MAX_YIQ_DELTA = 35215
DEFAULT_THRESHOLD = 0.1
# Opacity of the greyed-out baseline drawn under matching pixels
DIFF_FADE_ALPHA = 0.1
DIFF_COLOR = (255, 0, 0, 255)
AA_COLOR = (255, 255, 0, 255)

_NEIGHBOURS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]


def decode_png(data: bytes) -> Image.Image:
    """Decode raster bytes into an RGBA image."""
    with Image.open(io.BytesIO(data)) as img:
        return img.convert("RGBA")


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def _as_rgba_array(image: ImageInput) -> np.ndarray:
    if isinstance(image, (bytes, bytearray)):
        image = decode_png(bytes(image))
    elif image.mode != "RGBA":
        image = image.convert("RGBA")
    return np.asarray(image, dtype=np.float64)


def _luma(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.29889531 + rgb[..., 1] * 0.58662247 + rgb[..., 2] * 0.11448223


def _yiq(rgba: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    alpha = rgba[..., 3:4] / 255
    rgb = 255 + (rgba[..., :3] - 255) * alpha
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    y = _luma(rgb)
    i = r * 0.59597799 - g * 0.27417610 - b * 0.32180189
    q = r * 0.21147017 - g * 0.52261711 + b * 0.31114694
    return y, i, q


def _shifted(arr: np.ndarray, dx: int, dy: int, fill) -> np.ndarray:
    """``out[y, x] = arr[y + dy, x + dx]``, with ``fill`` where that falls outside."""
    h, w = arr.shape[:2]
    out = np.full(arr.shape, fill, dtype=arr.dtype)
    dst_y = slice(max(-dy, 0), h - max(dy, 0))
    src_y = slice(max(dy, 0), h - max(-dy, 0))
    dst_x = slice(max(-dx, 0), w - max(dx, 0))
    src_x = slice(max(dx, 0), w - max(-dx, 0))
    out[dst_y, dst_x] = arr[src_y, src_x]
    return out


def _edge_mask(height: int, width: int) -> np.ndarray:
    edge = np.zeros((height, width), dtype=bool)
    edge[0, :] = edge[-1, :] = True
    edge[:, 0] = edge[:, -1] = True
    return edge


def _has_many_siblings(rgba: np.ndarray, edge: np.ndarray) -> np.ndarray:
    """Pixels with more than two identical neighbours (image edges count as one)."""
    count = edge.astype(np.int8)
    for dx, dy in _NEIGHBOURS:
        count += np.all(_shifted(rgba, dx, dy, np.nan) == rgba, axis=2)
    return count > 2


def _antialiased(
    luma: np.ndarray,
    siblings: np.ndarray,
    other_siblings: np.ndarray,
    edge: np.ndarray,
) -> np.ndarray:
    """Vectorized form of pixelmatch's anti-aliasing test.

    A pixel is anti-aliased when its neighbourhood has both a darker and a
    brighter neighbour, at most two equal neighbours, and the darkest or the
    brightest neighbour sits in a flat area in both images.
    """
    deltas = np.stack([luma - _shifted(luma, dx, dy, np.nan) for dx, dy in _NEIGHBOURS])
    zeroes = edge.astype(np.int8) + np.count_nonzero(deltas == 0, axis=0)

    darker = np.where(deltas < 0, deltas, np.inf)
    brighter = np.where(deltas > 0, deltas, -np.inf)
    # argmin/argmax keep the first neighbour on ties, like the scan order in pixelmatch
    min_at = np.argmin(darker, axis=0)[None]
    max_at = np.argmax(brighter, axis=0)[None]
    has_min = np.isfinite(np.min(darker, axis=0))
    has_max = np.isfinite(np.max(brighter, axis=0))

    own = np.stack([_shifted(siblings, dx, dy, False) for dx, dy in _NEIGHBOURS])
    other = np.stack([_shifted(other_siblings, dx, dy, False) for dx, dy in _NEIGHBOURS])
    flat_min = np.take_along_axis(own, min_at, 0)[0] & np.take_along_axis(other, min_at, 0)[0]
    flat_max = np.take_along_axis(own, max_at, 0)[0] & np.take_along_axis(other, max_at, 0)[0]

    return (zeroes <= 2) & has_min & has_max & (flat_min | flat_max)


class PixelDiffer:
    """Compares two equally sized images and renders a diff image."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, include_aa: bool = False):
        if not 0 <= threshold <= 1:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
        self.threshold = threshold
        self.include_aa = include_aa

    def compare(self, baseline: ImageInput, candidate: ImageInput) -> ComparisonResult:
        base = _as_rgba_array(baseline)
        cand = _as_rgba_array(candidate)

        if base.shape != cand.shape:
            raise ImageSizeMismatch(
                (base.shape[1], base.shape[0]),
                (cand.shape[1], cand.shape[0]),
            )

        height, width = base.shape[:2]
        total = width * height

        y1, i1, q1 = _yiq(base)
        y2, i2, q2 = _yiq(cand)
        delta = 0.5053 * (y1 - y2) ** 2 + 0.299 * (i1 - i2) ** 2 + 0.1957 * (q1 - q2) ** 2
        changed = delta > MAX_YIQ_DELTA * self.threshold ** 2

        antialiased = np.zeros(changed.shape, dtype=bool)
        if not self.include_aa and changed.any():
            edge = _edge_mask(height, width)
            base_flat = _has_many_siblings(base, edge)
            cand_flat = _has_many_siblings(cand, edge)
            antialiased = changed & (
                _antialiased(y1, base_flat, cand_flat, edge) | _antialiased(y2, cand_flat, base_flat, edge)
            )
        mask = changed & ~antialiased
        mismatched = int(np.count_nonzero(mask))
        aa_count = int(np.count_nonzero(antialiased))

        diff = self._render_diff(base, mask, antialiased)
        ratio = mismatched / total if total else 0.0
        logger.debug(
            "Compared %dx%d images: %d mismatched pixels (%.4f), %d anti-aliased",
            width, height, mismatched, ratio, aa_count,
        )

        return ComparisonResult(
            mismatched_pixels=mismatched,
            total_pixels=total,
            mismatch_ratio=ratio,
            diff_image=diff,
            antialiased_pixels=aa_count,
        )

    def _render_diff(self, base: np.ndarray, mask: np.ndarray, antialiased: np.ndarray) -> Image.Image:
        # Matching pixels: faded grey of the baseline luminance; mismatches: solid red
        alpha = base[..., 3] / 255
        grey = 255 + (_luma(base[..., :3]) - 255) * DIFF_FADE_ALPHA * alpha
        grey = np.clip(np.rint(grey), 0, 255).astype(np.uint8)

        out = np.empty(base.shape, dtype=np.uint8)
        out[..., 0] = grey
        out[..., 1] = grey
        out[..., 2] = grey
        out[..., 3] = 255
        out[antialiased] = AA_COLOR
        out[mask] = DIFF_COLOR
        return Image.fromarray(out)
