"""
Face-preserving composite.

The generated preview can drift on facial identity, so the final image keeps
the original photo's pixels from the top of the frame down to just below the
chin, then fades linearly into the generated body.

Row layout for an image of height ``h`` (all values in pixel rows):

    0 .. solid_end          original pixels
    solid_end .. fade_end   linear blend, original weight 1 -> 0
    fade_end .. h           generated pixels
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from io import BytesIO

import httpx
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from services.errors import CompositeError, ImageFetchError

logger = logging.getLogger(__name__)

DEFAULT_FACE_END_PERCENT = 30.0
MIN_FACE_END_PERCENT = 5.0
MAX_FACE_END_PERCENT = 70.0
SOLID_PADDING_RATIO = 0.05
FADE_RATIO = 0.06


@dataclass(frozen=True)
class BlendBounds:
    chin_px: int
    solid_end: int
    fade_end: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def resolve_face_end_percent(face_end_percent: float) -> float:
    """Clamp an untrusted chin position into the usable range, else fall back to 30%."""
    if (
        isinstance(face_end_percent, (int, float))
        and not isinstance(face_end_percent, bool)
        and math.isfinite(face_end_percent)
        and MIN_FACE_END_PERCENT <= face_end_percent <= MAX_FACE_END_PERCENT
    ):
        return float(face_end_percent)
    return DEFAULT_FACE_END_PERCENT


def compute_blend_bounds(height: int, face_end_percent: float) -> BlendBounds:
    pct = resolve_face_end_percent(face_end_percent)
    chin_px = _round_half_up(pct / 100 * height)
    solid_end = min(height, chin_px + _round_half_up(height * SOLID_PADDING_RATIO))
    fade_end = min(height, solid_end + _round_half_up(height * FADE_RATIO))
    return BlendBounds(chin_px=chin_px, solid_end=solid_end, fade_end=fade_end)


def row_weights(height: int, bounds: BlendBounds) -> np.ndarray:
    """Weight of the original image for every row, from 1.0 down to 0.0."""
    rows = np.arange(height, dtype=np.float64)
    span = max(bounds.fade_end - bounds.solid_end, 1)
    weights = 1.0 - (rows - bounds.solid_end) / span
    weights[rows >= bounds.fade_end] = 0.0
    # Solid rows win when the fade band is empty.
    weights[rows <= bounds.solid_end] = 1.0
    return np.clip(weights, 0.0, 1.0)


def _decode_rgba(data: bytes, label: str) -> Image.Image:
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise CompositeError(f"Could not decode {label} image") from exc


def blend_rows(original: np.ndarray, generated: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Blend two HxWx4 uint8 arrays row by row; output alpha is always opaque."""
    w = weights.reshape(-1, 1, 1)
    mixed = original.astype(np.float64) * w + generated.astype(np.float64) * (1.0 - w)
    out = np.floor(mixed + 0.5).clip(0, 255).astype(np.uint8)
    out[..., 3] = 255
    return out


def composite_image_bytes(
    original_bytes: bytes,
    generated_bytes: bytes,
    face_end_percent: float,
) -> bytes:
    """CPU-bound composite of two encoded images into a PNG."""
    original = _decode_rgba(original_bytes, "original")
    generated = _decode_rgba(generated_bytes, "generated")
    width, height = original.size

    if generated.size != original.size:
        # Cover-fit: scale to fill, centre-crop the overflow.
        generated = ImageOps.fit(generated, (width, height), method=Image.Resampling.LANCZOS)

    bounds = compute_blend_bounds(height, face_end_percent)
    logger.debug(
        "Composite %dx%d: chin=%d solid_end=%d fade_end=%d",
        width,
        height,
        bounds.chin_px,
        bounds.solid_end,
        bounds.fade_end,
    )

    pixels = blend_rows(
        np.asarray(original, dtype=np.uint8),
        np.asarray(generated, dtype=np.uint8),
        row_weights(height, bounds),
    )

    buffer = BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


async def _fetch_image(http_client: httpx.AsyncClient, url: str) -> bytes:
    try:
        response = await http_client.get(url)
    except httpx.HTTPError as exc:
        raise ImageFetchError(f"Failed to fetch image: {exc.__class__.__name__}") from exc
    if not response.is_success:
        raise ImageFetchError(f"Failed to fetch image: {response.status_code}")
    return response.content


async def composite_preserve_face(
    http_client: httpx.AsyncClient,
    original_url: str,
    generated_url: str,
    face_end_percent: float,
) -> bytes:
    """Download both images and return the face-preserving composite as PNG bytes."""
    original_bytes, generated_bytes = await asyncio.gather(
        _fetch_image(http_client, original_url),
        _fetch_image(http_client, generated_url),
    )
    return await asyncio.to_thread(
        composite_image_bytes, original_bytes, generated_bytes, face_end_percent
    )
