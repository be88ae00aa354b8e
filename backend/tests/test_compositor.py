"""
Tests for the face-preserving compositor.
"""

import math
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import httpx
import numpy as np
import pytest
from PIL import Image

from services.compositor import (
    BlendBounds,
    blend_rows,
    composite_image_bytes,
    composite_preserve_face,
    compute_blend_bounds,
    resolve_face_end_percent,
    row_weights,
)
from services.errors import CompositeError, ImageFetchError

ORIGINAL = (200, 0, 0, 255)
GENERATED = (0, 0, 100, 255)


def _png(size, color) -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _decode(data: bytes) -> np.ndarray:
    with Image.open(BytesIO(data)) as img:
        assert img.format == "PNG"
        return np.asarray(img.convert("RGBA"))


class TestResolveFaceEndPercent:
    @pytest.mark.parametrize("value", [-10, 0, 4, 4.99, 70.01, 71, 1000, math.nan, math.inf])
    def test_out_of_range_falls_back_to_30(self, value):
        assert resolve_face_end_percent(value) == 30.0

    @pytest.mark.parametrize("value", [True, False, "20", None])
    def test_non_numeric_falls_back_to_30(self, value):
        assert resolve_face_end_percent(value) == 30.0

    @pytest.mark.parametrize("value", [-10, 0, 4, 71, 1000, math.nan])
    def test_out_of_range_matches_explicit_30(self, value):
        assert compute_blend_bounds(2000, value) == compute_blend_bounds(2000, 30)

    @pytest.mark.parametrize("value", [5, 22.5, 70])
    def test_in_range_is_used(self, value):
        assert resolve_face_end_percent(value) == value


class TestComputeBlendBounds:
    def test_reference_geometry(self):
        bounds = compute_blend_bounds(2000, 20)
        assert bounds == BlendBounds(chin_px=400, solid_end=500, fade_end=620)

    @pytest.mark.parametrize("height", [1, 7, 100, 333, 1024, 2000])
    def test_ordering_and_monotonicity(self, height):
        previous = None
        for pct in range(5, 71):
            bounds = compute_blend_bounds(height, pct)
            assert 0 <= bounds.chin_px <= bounds.solid_end <= bounds.fade_end <= height
            if previous is not None:
                assert bounds.solid_end >= previous.solid_end
                assert bounds.fade_end >= previous.fade_end
            previous = bounds

    def test_bounds_clamped_to_height(self):
        bounds = compute_blend_bounds(100, 70)
        assert bounds.solid_end == 75
        assert bounds.fade_end == 81
        tiny = compute_blend_bounds(10, 70)
        assert tiny.fade_end <= 10


class TestRowWeights:
    def test_weights_profile(self):
        bounds = BlendBounds(chin_px=400, solid_end=500, fade_end=620)
        weights = row_weights(2000, bounds)

        assert weights[0] == 1.0
        assert weights[500] == 1.0
        assert weights[560] == pytest.approx(0.5)
        assert weights[620] == 0.0
        assert weights[1999] == 0.0
        assert np.all(np.diff(weights) <= 0)

    def test_zero_width_fade(self):
        bounds = BlendBounds(chin_px=10, solid_end=10, fade_end=10)
        weights = row_weights(20, bounds)
        assert weights[10] == 1.0
        assert weights[11] == 0.0


class TestCompositeImageBytes:
    def test_reference_scenario(self):
        original = _png((10, 2000), ORIGINAL)
        generated = _png((10, 2000), GENERATED)

        out = _decode(composite_image_bytes(original, generated, 20))

        assert out.shape == (2000, 10, 4)
        assert tuple(out[450, 0]) == ORIGINAL
        assert tuple(out[500, 0]) == ORIGINAL
        assert tuple(out[650, 0]) == GENERATED
        assert tuple(out[560, 0]) == (100, 0, 50, 255)

    def test_rows_copied_exactly_and_alpha_opaque(self):
        rng = np.random.default_rng(7)
        original_px = rng.integers(0, 256, size=(200, 16, 4), dtype=np.uint8)
        original_px[..., 3] = 255
        generated_px = rng.integers(0, 256, size=(200, 16, 4), dtype=np.uint8)
        generated_px[..., 3] = 255

        def encode(arr):
            buffer = BytesIO()
            Image.fromarray(arr).save(buffer, format="PNG")
            return buffer.getvalue()

        out = _decode(composite_image_bytes(encode(original_px), encode(generated_px), 30))
        bounds = compute_blend_bounds(200, 30)

        assert np.array_equal(out[: bounds.solid_end + 1], original_px[: bounds.solid_end + 1])
        assert np.array_equal(out[bounds.fade_end :], generated_px[bounds.fade_end :])
        assert np.all(out[..., 3] == 255)

    def test_translucent_inputs_become_opaque(self):
        original = _png((8, 100), (10, 20, 30, 0))
        generated = _png((8, 100), (40, 50, 60, 128))

        out = _decode(composite_image_bytes(original, generated, 30))

        assert np.all(out[..., 3] == 255)

    def test_generated_image_is_resized_to_original(self):
        original = _png((40, 80), ORIGINAL)
        generated = _png((100, 100), GENERATED)

        out = _decode(composite_image_bytes(original, generated, 30))

        assert out.shape == (80, 40, 4)
        assert np.allclose(out[79, 20], GENERATED, atol=1)

    def test_blend_is_deterministic(self):
        original = _png((12, 300), ORIGINAL)
        generated = _png((12, 300), GENERATED)

        first = composite_image_bytes(original, generated, 33)
        second = composite_image_bytes(original, generated, 33)

        assert first == second

    def test_blend_rows_rounds_half_up(self):
        original = np.full((1, 1, 4), 1, dtype=np.uint8)
        generated = np.zeros((1, 1, 4), dtype=np.uint8)
        out = blend_rows(original, generated, np.array([0.5]))
        assert out[0, 0, 0] == 1
        assert out[0, 0, 3] == 255

    def test_undecodable_input(self):
        with pytest.raises(CompositeError):
            composite_image_bytes(b"not an image", _png((4, 4), GENERATED), 30)


class TestCompositePreserveFace:
    @pytest.mark.asyncio
    async def test_downloads_both_and_composites(self):
        original = _png((10, 100), ORIGINAL)
        generated = _png((10, 100), GENERATED)
        responses = {
            "https://storage/original": httpx.Response(200, content=original),
            "https://gen/output.png": httpx.Response(200, content=generated),
        }
        http = MagicMock()
        http.get = AsyncMock(side_effect=lambda url: responses[url])

        out = _decode(
            await composite_preserve_face(
                http, "https://storage/original", "https://gen/output.png", 20
            )
        )

        assert tuple(out[0, 0]) == ORIGINAL
        assert tuple(out[99, 0]) == GENERATED
        assert http.get.await_count == 2

    @pytest.mark.asyncio
    async def test_fetch_failure_status(self):
        http = MagicMock()
        http.get = AsyncMock(return_value=httpx.Response(404))

        with pytest.raises(ImageFetchError, match="Failed to fetch image: 404"):
            await composite_preserve_face(http, "a", "b", 20)

    @pytest.mark.asyncio
    async def test_fetch_transport_error(self):
        http = MagicMock()
        http.get = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(ImageFetchError):
            await composite_preserve_face(http, "a", "b", 20)
