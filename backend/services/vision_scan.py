"""
Vision-based physique scan.

Sends the user's photo to the vision model and returns a structured physique
read. The read grounds both the plan-analysis prompt and the image prompt,
and its ``face_end_percent`` anchors the face-preserving composite.
"""

import logging

from schemas.physique import PhysiqueVisionAnalysis
from services.completion import StructuredCompletionClient, parse_json_as
from services.prompts import VISION_SCAN_SYSTEM_PROMPT, build_vision_user_prompt

logger = logging.getLogger(__name__)

VISION_TEMPERATURE = 0.3
VISION_MAX_TOKENS = 512


async def run_vision_physique_scan(
    completion_client: StructuredCompletionClient,
    photo_url: str,
    experience_level: str,
) -> PhysiqueVisionAnalysis:
    analysis = await completion_client.complete_vision(
        system_prompt=VISION_SCAN_SYSTEM_PROMPT,
        user_prompt=build_vision_user_prompt(experience_level),
        image_url=photo_url,
        temperature=VISION_TEMPERATURE,
        max_tokens=VISION_MAX_TOKENS,
        parse=parse_json_as(PhysiqueVisionAnalysis),
    )
    logger.info(
        "Vision scan: build=%s body_fat=%s opportunities=%s face_end=%.1f%%",
        analysis.build_type or "?",
        analysis.body_fat_range or "?",
        ",".join(analysis.key_opportunities) or "-",
        analysis.face_end_percent,
    )
    return analysis
