from .ai_result import AIResult
from .photo_asset import PhotoAsset
from .profile import BodyMetric, UserProfile

__all__ = [
    "AIResult",
    "BodyMetric",
    "PhotoAsset",
    "UserProfile",
]
