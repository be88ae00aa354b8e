"""
Content moderation for physique uploads.

Metadata checks (content type, size, age) are enforced. Image classification
is a placeholder that approves every photo with low confidence; a real
moderation provider slots in behind ``check_image_content`` without changing
``ModerationResult``.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from constants import ALLOWED_PHOTO_CONTENT_TYPES

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_MB = 10
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
MINIMUM_AGE = 18

# Placeholder checks report low confidence.
PLACEHOLDER_CONFIDENCE = 0.5


@dataclass
class ModerationResult:
    approved: bool
    reasons: list[str] = field(default_factory=list)
    confidence: float = 0.0


def validate_content_type(content_type: str) -> bool:
    return content_type in ALLOWED_PHOTO_CONTENT_TYPES


def validate_file_size(size_bytes: int) -> bool:
    return size_bytes <= MAX_FILE_SIZE_BYTES


def verify_age(date_of_birth: date, today: Optional[date] = None) -> tuple[bool, int]:
    """Return ``(is_over_18, age)`` in whole years as of ``today``."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age >= MINIMUM_AGE, age


async def check_image_content(storage_key: str) -> ModerationResult:
    logger.debug("Moderation placeholder approving %s", storage_key)
    return ModerationResult(approved=True, reasons=[], confidence=PLACEHOLDER_CONFIDENCE)
