"""
Structured completions via Google Gemini.

Every AI text call in the service goes through ``StructuredCompletionClient``:
a system/user prompt pair, a fixed sampling budget, JSON-only output, and a
caller-supplied ``parse`` function that decodes and validates the text.
"""

import asyncio
import json
import logging
from typing import Callable, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from services.errors import (
    AIEmptyResponseError,
    ExternalTimeoutError,
    MalformedAIOutputError,
    StorageError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


def parse_json_as(model: Type[M]) -> Callable[[str], M]:
    """Build a ``parse`` callback that decodes JSON and validates it against ``model``."""

    def _parse(raw: str) -> M:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedAIOutputError(
                f"AI returned invalid JSON for {model.__name__}", raw=raw
            ) from exc
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise MalformedAIOutputError(
                f"AI returned data that does not match {model.__name__} "
                f"({exc.error_count()} errors)",
                raw=raw,
            ) from exc

    return _parse


def _response_text(response: object) -> str:
    try:
        text = getattr(response, "text", None)
    except ValueError:
        # The SDK raises when a candidate holds no text parts.
        text = None
    return text.strip() if isinstance(text, str) else ""


class StructuredCompletionClient:
    """
    JSON-mode text generation with optional single-image vision input.

    The Gemini SDK client and the HTTP client are created once at startup and
    injected here.
    """

    def __init__(
        self,
        client: object,
        http_client: httpx.AsyncClient,
        *,
        model: str,
        vision_model: Optional[str] = None,
        timeout_seconds: float = 120.0,
    ):
        self._client = client
        self._http = http_client
        self._model = model
        self._vision_model = vision_model or model
        self._timeout_seconds = timeout_seconds

    async def _run_with_timeout(self, call: Callable[[], object]) -> object:
        """Run a blocking SDK call in a worker thread with a bounded wait."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(call), timeout=self._timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise ExternalTimeoutError(
                f"AI call timed out after {self._timeout_seconds:g}s"
            ) from exc

    def _build_config(
        self,
        *,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
        low_detail_media: bool = False,
    ) -> object:
        from google.genai import types

        config_kwargs: dict[str, object] = {
            "system_instruction": system_prompt,
            "temperature": temperature,
            "max_output_tokens": max_tokens,
            "response_mime_type": "application/json",
        }
        if low_detail_media:
            config_kwargs["media_resolution"] = types.MediaResolution.MEDIA_RESOLUTION_LOW
        return types.GenerateContentConfig(**config_kwargs)

    def _parse(self, raw: str, parse: Callable[[str], T]) -> T:
        try:
            return parse(raw)
        except MalformedAIOutputError:
            raise
        except (ValueError, TypeError, KeyError) as exc:
            # json.JSONDecodeError and pydantic.ValidationError are ValueErrors.
            raise MalformedAIOutputError(raw=raw) from exc

    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        parse: Callable[[str], T],
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> T:
        config = self._build_config(
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        logger.debug("Structured completion: model=%s max_tokens=%d", self._model, max_tokens)
        response = await self._run_with_timeout(
            lambda: self._client.models.generate_content(
                model=self._model,
                contents=[user_prompt],
                config=config,
            )
        )
        raw = _response_text(response)
        if not raw:
            raise AIEmptyResponseError()
        return self._parse(raw, parse)

    async def complete_vision(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        image_url: str,
        parse: Callable[[str], T],
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> T:
        from google.genai import types

        image_bytes, mime_type = await self._download_image(image_url)
        config = self._build_config(
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            low_detail_media=True,
        )
        logger.debug(
            "Vision completion: model=%s image=%d bytes (%s)",
            self._vision_model,
            len(image_bytes),
            mime_type,
        )
        response = await self._run_with_timeout(
            lambda: self._client.models.generate_content(
                model=self._vision_model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    user_prompt,
                ],
                config=config,
            )
        )
        raw = _response_text(response)
        if not raw:
            raise AIEmptyResponseError()
        return self._parse(raw, parse)

    async def _download_image(self, url: str) -> tuple[bytes, str]:
        try:
            response = await self._http.get(url)
        except httpx.TimeoutException as exc:
            raise ExternalTimeoutError("Timed out downloading photo for analysis") from exc
        except httpx.HTTPError as exc:
            raise StorageError(f"Failed to read photo for analysis: {exc}") from exc
        if not response.is_success:
            raise StorageError(f"Failed to read photo for analysis: {response.status_code}")

        mime_type = (response.headers.get("content-type") or "").split(";", 1)[0].strip().lower()
        if not mime_type.startswith("image/"):
            mime_type = DEFAULT_IMAGE_MIME_TYPE
        return response.content, mime_type
