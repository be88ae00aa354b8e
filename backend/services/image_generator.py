"""
Physique preview image generation.

``FluxKontextImageGenerator`` runs FLUX Kontext Pro on Replicate through its
HTTP predictions API. ``MockImageGenerator`` is a drop-in placeholder for
environments without provider credentials.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Callable, Optional, Protocol

import httpx

from config import Settings
from schemas.physique import ImageGeneratorInput, ImageGeneratorOutput, ImageMetadata
from services.errors import ExternalTimeoutError, ImageGenerationError, ImageSafetyRejectionError
from services.prompts import build_prompt

logger = logging.getLogger(__name__)

SAFETY_REJECTION_MARKERS = ("flagged as sensitive", "E005")
TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})


class ImageGenerator(Protocol):
    async def generate(self, request: ImageGeneratorInput) -> ImageGeneratorOutput:
        ...


def is_safety_rejection(message: str) -> bool:
    return any(marker in message for marker in SAFETY_REJECTION_MARKERS)


# ── Output URL extraction ─────────────────────────────────
# Replicate has returned the output as a bare string, as {"url": "..."} and
# as {"url": {"href": "..."}}; extractors are tried in order.


def _field(raw: object, name: str) -> object:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def _url_from_string(raw: object) -> Optional[str]:
    return raw if isinstance(raw, str) and raw else None


def _url_from_url_string(raw: object) -> Optional[str]:
    url = _field(raw, "url")
    return url if isinstance(url, str) and url else None


def _url_from_url_href(raw: object) -> Optional[str]:
    href = _field(_field(raw, "url"), "href")
    return href if isinstance(href, str) and href else None


def _url_from_first_item(raw: object) -> Optional[str]:
    if isinstance(raw, (list, tuple)) and raw:
        for extractor in URL_EXTRACTORS[:3]:
            url = extractor(raw[0])
            if url:
                return url
    return None


URL_EXTRACTORS: tuple[Callable[[object], Optional[str]], ...] = (
    _url_from_string,
    _url_from_url_string,
    _url_from_url_href,
    _url_from_first_item,
)


def extract_image_url(raw: object) -> str:
    """Resolve a provider output of any known shape to a URL string."""
    for extractor in URL_EXTRACTORS:
        url = extractor(raw)
        if url:
            return url
    return str(raw)


class FluxKontextImageGenerator:
    """Image-to-image physique transformation on Replicate."""

    MODEL_LABEL = "flux-kontext-pro"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_token: str,
        *,
        model: str = "black-forest-labs/flux-kontext-pro",
        api_base_url: str = "https://api.replicate.com/v1",
        safety_tolerance: int = 5,
        poll_interval_seconds: float = 1.0,
        timeout_seconds: float = 120.0,
    ):
        if not api_token:
            raise ValueError("Replicate API token is required")
        self._http = http_client
        self._api_token = api_token
        self._model = model
        self._api_base_url = api_base_url.rstrip("/")
        self._safety_tolerance = safety_tolerance
        self._poll_interval_seconds = poll_interval_seconds
        self._timeout_seconds = timeout_seconds

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_token}", "Prefer": "wait"}

    async def generate(self, request: ImageGeneratorInput) -> ImageGeneratorOutput:
        start = time.monotonic()
        prompt = build_prompt(request)
        logger.info(
            "Generating physique preview: scenario=%s focus=%s prompt=%.120s...",
            request.scenario,
            request.focus_muscle or "-",
            prompt,
        )

        try:
            output = await self._run_prediction(
                {
                    "prompt": prompt,
                    "input_image": request.source_image_url,
                    "safety_tolerance": self._safety_tolerance,
                    "output_format": "png",
                    "aspect_ratio": "match_input_image",
                }
            )
        except ImageGenerationError as exc:
            if is_safety_rejection(str(exc)):
                logger.warning("Image provider flagged the photo: %s", exc)
                raise ImageSafetyRejectionError() from exc
            raise

        image_url = extract_image_url(output)
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info("Physique preview generated in %dms", elapsed_ms)
        return ImageGeneratorOutput(
            image_url=image_url,
            metadata=ImageMetadata(
                model=self.MODEL_LABEL,
                processing_time_ms=elapsed_ms,
                is_mock=False,
            ),
        )

    async def _run_prediction(self, model_input: dict[str, object]) -> object:
        """Create a prediction and wait for it to reach a terminal status."""
        deadline = time.monotonic() + self._timeout_seconds
        url = f"{self._api_base_url}/models/{self._model}/predictions"
        prediction = await self._request("POST", url, json={"input": model_input})

        while prediction.get("status") not in TERMINAL_STATUSES:
            if time.monotonic() >= deadline:
                raise ExternalTimeoutError(
                    f"Image generation timed out after {self._timeout_seconds:g}s"
                )
            poll_url = _field(prediction.get("urls"), "get")
            if not isinstance(poll_url, str):
                raise ImageGenerationError("Prediction response has no status URL")
            await asyncio.sleep(self._poll_interval_seconds)
            prediction = await self._request("GET", poll_url)

        if prediction["status"] != "succeeded":
            error = prediction.get("error") or f"Prediction {prediction['status']}"
            raise ImageGenerationError(str(error))
        return prediction.get("output")

    async def _request(self, method: str, url: str, **kwargs: object) -> dict:
        try:
            response = await self._http.request(method, url, headers=self._headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise ExternalTimeoutError("Image provider request timed out") from exc
        except httpx.HTTPError as exc:
            raise ImageGenerationError(f"Image provider request failed: {exc}") from exc

        if not response.is_success:
            raise ImageGenerationError(
                f"Image provider returned {response.status_code}: {_error_detail(response)}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ImageGenerationError("Image provider returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ImageGenerationError("Image provider returned an unexpected payload")
        return payload


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(payload, dict):
        return str(payload.get("detail") or payload.get("error") or payload)
    return str(payload)


class MockImageGenerator:
    """Placeholder generator: echoes the source photo as the preview."""

    MODEL_LABEL = "mock"

    async def generate(self, request: ImageGeneratorInput) -> ImageGeneratorOutput:
        start = time.monotonic()
        # Build the prompt anyway so prompt regressions surface without a provider.
        prompt = build_prompt(request)
        logger.info("Mock physique preview (prompt=%d chars)", len(prompt))
        return ImageGeneratorOutput(
            image_url=request.source_image_url,
            metadata=ImageMetadata(
                model=self.MODEL_LABEL,
                processing_time_ms=int((time.monotonic() - start) * 1000),
                is_mock=True,
            ),
        )


def create_image_generator(settings: Settings, http_client: httpx.AsyncClient) -> ImageGenerator:
    if settings.image_generation_enabled:
        return FluxKontextImageGenerator(
            http_client,
            settings.REPLICATE_API_TOKEN,
            model=settings.IMAGE_MODEL,
            api_base_url=settings.REPLICATE_API_BASE_URL,
            safety_tolerance=settings.IMAGE_SAFETY_TOLERANCE,
            poll_interval_seconds=settings.IMAGE_POLL_INTERVAL_SECONDS,
            timeout_seconds=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        )
    logger.warning("Replicate not configured; using placeholder image generator")
    return MockImageGenerator()
