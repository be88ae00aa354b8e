"""
Physique analysis and simulation.

Pipeline for one request:

1. Presign a download URL for the uploaded photo.
2. Vision scan of the photo (grounds every later step).
3. In parallel: plan-analysis completion and preview image generation.
4. If the scan located a chin and the preview is real, composite the original
   face back onto the generated body and store the result. Any composite
   failure falls back to the raw generated image.
5. Merge everything into a validated ``PhysiqueAIOutput``.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import ValidationError

from config import Settings
from constants import FITNESS_DISCLAIMERS
from schemas.physique import (
    ImageGeneratorInput,
    ImageGeneratorOutput,
    PhysiqueAIOutput,
    PhysiqueAnalysisResult,
    PhysiqueVisionAnalysis,
    UserProfileSnapshot,
)
from services.coercion import parse_untrusted_number
from services.completion import StructuredCompletionClient, parse_json_as
from services.compositor import composite_preserve_face
from services.errors import MalformedAIOutputError
from services.image_generator import ImageGenerator, create_image_generator
from services.prompts import PHYSIQUE_SYSTEM_PROMPT, build_physique_user_prompt
from services.storage import PhotoStorage
from services.vision_scan import run_vision_physique_scan

logger = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.6
ANALYSIS_MAX_TOKENS = 4096
COMPOSITE_PHOTO_TYPE = "physique_output"


async def _settle_all(*coros):
    """Run branches concurrently; on the first failure cancel and await the rest, then re-raise."""
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass
class SimulationRequest:
    user_id: str
    photo_storage_key: str
    scenario: str
    user_profile: UserProfileSnapshot
    focus_muscle: Optional[str] = None


class PhysiqueSimulator:
    def __init__(
        self,
        *,
        storage: PhotoStorage,
        completion_client: StructuredCompletionClient,
        image_generator: ImageGenerator,
        http_client: httpx.AsyncClient,
    ):
        self.storage = storage
        self.completion_client = completion_client
        self.image_generator = image_generator
        self.http_client = http_client

    async def analyze_and_simulate(self, request: SimulationRequest) -> PhysiqueAIOutput:
        photo_url = await self.storage.create_download_url(request.photo_storage_key)

        vision = await run_vision_physique_scan(
            self.completion_client,
            photo_url,
            request.user_profile.experience_level,
        )

        analysis, image = await _settle_all(
            self._analyze_plan(request, vision),
            self.image_generator.generate(
                ImageGeneratorInput(
                    source_image_url=photo_url,
                    scenario=request.scenario,
                    focus_muscle=request.focus_muscle,
                    user_profile=request.user_profile,
                    vision_analysis=vision,
                )
            ),
        )

        final_url = await self._preserve_face(request.user_id, photo_url, image, vision)

        payload = analysis.model_dump(by_alias=True)
        payload.update(
            scenario=request.scenario,
            imageResult={
                "type": "mock_preview" if image.metadata.is_mock else "generated",
                "url": final_url,
                "metadata": image.metadata.model_dump(by_alias=True),
            },
            disclaimers=list(FITNESS_DISCLAIMERS),
        )
        try:
            return PhysiqueAIOutput.model_validate(payload)
        except ValidationError as exc:
            raise MalformedAIOutputError() from exc

    async def _analyze_plan(
        self, request: SimulationRequest, vision: PhysiqueVisionAnalysis
    ) -> PhysiqueAnalysisResult:
        return await self.completion_client.complete(
            system_prompt=PHYSIQUE_SYSTEM_PROMPT,
            user_prompt=build_physique_user_prompt(
                request.user_profile, vision, request.scenario, request.focus_muscle
            ),
            temperature=ANALYSIS_TEMPERATURE,
            max_tokens=ANALYSIS_MAX_TOKENS,
            parse=parse_json_as(PhysiqueAnalysisResult),
        )

    async def _preserve_face(
        self,
        user_id: str,
        photo_url: str,
        image: ImageGeneratorOutput,
        vision: PhysiqueVisionAnalysis,
    ) -> str:
        """Return the composited image URL, or the raw generated URL on any failure."""
        face_end = parse_untrusted_number(vision.face_end_percent)
        if face_end <= 0 or image.metadata.is_mock:
            return image.image_url

        try:
            composite = await composite_preserve_face(
                self.http_client, photo_url, image.image_url, face_end
            )
            stored = await self.storage.upload_buffer(
                user_id, COMPOSITE_PHOTO_TYPE, composite, "image/png"
            )
            return await self.storage.create_download_url(stored.storage_key)
        except Exception:
            logger.exception("Face composite failed, returning raw generated image")
            return image.image_url


def build_physique_simulator(
    settings: Settings,
    http_client: httpx.AsyncClient,
    storage: PhotoStorage,
) -> Optional[PhysiqueSimulator]:
    """Wire the simulator from settings; None when no completion provider is configured."""
    if not settings.ai_completion_enabled:
        logger.warning("GOOGLE_API_KEY not configured. Physique analysis is disabled.")
        return None

    from google import genai

    completion_client = StructuredCompletionClient(
        genai.Client(api_key=settings.GOOGLE_API_KEY),
        http_client,
        model=settings.COMPLETION_MODEL,
        vision_model=settings.VISION_MODEL,
        timeout_seconds=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
    )
    return PhysiqueSimulator(
        storage=storage,
        completion_client=completion_client,
        image_generator=create_image_generator(settings, http_client),
        http_client=http_client,
    )
