from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from services.coercion import coerce_text, coerce_text_list, parse_untrusted_number


ExperienceLevel = Literal["beginner", "intermediate", "advanced"]
TrainingGoal = Literal["hypertrophy", "strength", "cut"]
EquipmentOption = Literal[
    "full_gym", "home_dumbbells", "home_barbell", "bodyweight_only", "resistance_bands"
]
PhysiqueScenario = Literal["3_month_lock_in", "single_muscle_focus"]
MuscleGroup = Literal[
    "chest",
    "back",
    "shoulders",
    "biceps",
    "triceps",
    "quads",
    "hamstrings",
    "glutes",
    "calves",
    "abs",
    "forearms",
    "traps",
]
PhotoContentType = Literal["image/jpeg", "image/png", "image/webp"]


class CamelModel(BaseModel):
    """Base model whose wire format uses camelCase keys."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# ── Requests / responses ──────────────────────────────────


class PhysiqueUploadRequest(CamelModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    content_type: PhotoContentType


class PhysiqueUploadResponse(CamelModel):
    upload_url: str
    storage_key: str
    expires_in: int


class PhysiqueAnalyzeRequest(CamelModel):
    photo_storage_key: str = Field(..., min_length=1, max_length=512)
    scenario: PhysiqueScenario
    focus_muscle: Optional[MuscleGroup] = None

    @model_validator(mode="after")
    def _focus_muscle_required_for_single_focus(self) -> "PhysiqueAnalyzeRequest":
        if self.scenario == "single_muscle_focus" and self.focus_muscle is None:
            raise ValueError("focusMuscle is required for the single_muscle_focus scenario")
        return self


# ── Pipeline inputs ───────────────────────────────────────


class UserProfileSnapshot(CamelModel):
    """The subset of a user profile the physique pipeline reads."""

    experience_level: ExperienceLevel
    goal: TrainingGoal
    days_per_week: int = Field(..., ge=2, le=7)
    equipment: List[EquipmentOption] = Field(..., min_length=1)
    injuries: List[str] = Field(default_factory=list)
    weight: Optional[float] = None


class PhysiqueVisionAnalysis(CamelModel):
    """
    Structured physique read extracted from one photo.

    Every field tolerates being absent or mistyped in the model's JSON;
    ``face_end_percent`` is coerced from numeric strings.
    """

    body_fat_range: str = ""
    build_type: str = ""
    muscle_development: str = ""
    key_opportunities: List[str] = Field(default_factory=list)
    realistic_changes: str = ""
    facial_hair: Optional[str] = None
    face_end_percent: float = 0.0

    @field_validator(
        "body_fat_range",
        "build_type",
        "muscle_development",
        "realistic_changes",
        mode="before",
    )
    @classmethod
    def _text(cls, value: object) -> str:
        return coerce_text(value)

    @field_validator("facial_hair", mode="before")
    @classmethod
    def _optional_text(cls, value: object) -> Optional[str]:
        return coerce_text(value) or None

    @field_validator("key_opportunities", mode="before")
    @classmethod
    def _text_list(cls, value: object) -> List[str]:
        return coerce_text_list(value)

    @field_validator("face_end_percent", mode="before")
    @classmethod
    def _face_end(cls, value: object) -> float:
        return parse_untrusted_number(value)


class ImageGeneratorInput(CamelModel):
    source_image_url: str
    scenario: PhysiqueScenario
    focus_muscle: Optional[str] = None
    user_profile: UserProfileSnapshot
    vision_analysis: Optional[PhysiqueVisionAnalysis] = None


class ImageMetadata(CamelModel):
    model: str
    processing_time_ms: int
    is_mock: bool


class ImageGeneratorOutput(CamelModel):
    image_url: str
    metadata: ImageMetadata


# ── AI output ─────────────────────────────────────────────


class EstimatedCurrent(CamelModel):
    posture_notes: List[str]
    muscle_emphasis_opportunities: List[str]
    estimated_training_age: str


class KeyExercise(CamelModel):
    name: str
    target_muscle: str
    sets: float
    reps_range: str
    priority: Literal["high", "medium", "low"]


class PlanUpdate(CamelModel):
    split_type: str
    weekly_schedule: List[str]
    key_exercises: List[KeyExercise]
    progression_rules: List[str]


class NutritionTargets(CamelModel):
    calories: float
    protein_grams: float
    carbs_grams: float
    fat_grams: float
    notes: str


class PhysiqueAnalysisResult(CamelModel):
    """Shape the plan-analysis completion must return."""

    estimated_current: EstimatedCurrent
    plan_update: PlanUpdate
    nutrition_targets: NutritionTargets
    explanation: str


class ImageResultMetadata(CamelModel):
    model: Optional[str] = None
    processing_time_ms: Optional[int] = None
    is_mock: bool


class ImageResult(CamelModel):
    type: Literal["mock_preview", "generated"]
    url: Optional[str] = None
    metadata: ImageResultMetadata


class PhysiqueAIOutput(CamelModel):
    """Final result persisted as the audit record and returned to the client."""

    estimated_current: EstimatedCurrent
    scenario: PhysiqueScenario
    plan_update: PlanUpdate
    nutrition_targets: NutritionTargets
    image_result: ImageResult
    disclaimers: List[str]
    explanation: str
