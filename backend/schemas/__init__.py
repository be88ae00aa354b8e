from .physique import (
    EstimatedCurrent,
    ImageGeneratorInput,
    ImageGeneratorOutput,
    ImageMetadata,
    ImageResult,
    ImageResultMetadata,
    KeyExercise,
    NutritionTargets,
    PhysiqueAIOutput,
    PhysiqueAnalysisResult,
    PhysiqueAnalyzeRequest,
    PhysiqueUploadRequest,
    PhysiqueUploadResponse,
    PhysiqueVisionAnalysis,
    PlanUpdate,
    UserProfileSnapshot,
)

from .profile import AgeVerificationRequest, AgeVerificationResponse

__all__ = [
    "AgeVerificationRequest",
    "AgeVerificationResponse",
    "EstimatedCurrent",
    "ImageGeneratorInput",
    "ImageGeneratorOutput",
    "ImageMetadata",
    "ImageResult",
    "ImageResultMetadata",
    "KeyExercise",
    "NutritionTargets",
    "PhysiqueAIOutput",
    "PhysiqueAnalysisResult",
    "PhysiqueAnalyzeRequest",
    "PhysiqueUploadRequest",
    "PhysiqueUploadResponse",
    "PhysiqueVisionAnalysis",
    "PlanUpdate",
    "UserProfileSnapshot",
]
