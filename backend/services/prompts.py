"""
Prompt construction for the physique pipeline.

Pure functions: a user profile and an optional vision analysis in, prompt
text out. Nothing here performs I/O.
"""

from typing import Iterable, Optional

from schemas.physique import ImageGeneratorInput, PhysiqueVisionAnalysis, UserProfileSnapshot

DEFAULT_FOCUS_AREAS = ("chest", "shoulders", "arms")
MAX_FOCUS_AREAS = 3

# First match wins, so order is priority.
PHYSIQUE_STYLES: tuple[tuple[str, str], ...] = (
    ("full_gym", "well-rounded muscular"),
    ("home_barbell", "strong and dense"),
    ("home_dumbbells", "toned and defined"),
    ("bodyweight_only", "lean and athletic"),
)
DEFAULT_PHYSIQUE_STYLE = "fit and toned"

ONLY_BODY_CLAUSE = "Only modify the body and physique, nothing else."

VISION_SCAN_SYSTEM_PROMPT = """\
You are an expert fitness coach and physique analyst. You will be shown a photo of a person. \
Analyze their current physique and output ONLY valid JSON matching this schema:

{
  "bodyFatRange": "string, estimated body fat percentage range, e.g. '15-18%'",
  "buildType": "string, one of: slim, average, stocky, athletic, muscular",
  "muscleDevelopment": "string, brief description of overall visible muscle development",
  "keyOpportunities": ["string, top 3-4 muscle groups with most room for visible improvement"],
  "realisticChanges": "string, one detailed sentence on the visible changes realistically achievable in 3 months of perfect training and nutrition",
  "facialHair": "string, e.g. 'clean-shaven', 'light stubble', 'short beard', 'full beard', 'mustache only'; 'not visible' if the face is not visible",
  "faceEndPercent": "number, how far from the TOP of the image the chin/jawline ends, as a percentage (0-100). Return 0 if no face is visible."
}

RULES:
- Base everything on what you can actually see in the photo.
- Be realistic and encouraging. Do not exaggerate or understate.
- realisticChanges must describe concrete physical changes, not abstract goals.
- facialHair MUST accurately describe the current facial hair; it is used for identity preservation.
- faceEndPercent MUST be a number, not a string. It is used to preserve the face during image transformation.
- Output ONLY the JSON object, nothing else."""

PHYSIQUE_SYSTEM_PROMPT = """\
You are an AI physique analyst, an expert at visual physique assessment and program design.

IMPORTANT DISCLAIMERS:
- You are NOT a medical professional.
- Your assessments are general fitness observations, not diagnoses.
- Always recommend consulting a healthcare professional for medical concerns.
- Physique previews are illustrative simulations, not guaranteed outcomes.

You analyze a user's current physique and create a targeted plan.
Use the provided vision analysis of their photo to ground your assessment.

RULES:
- Be encouraging and constructive.
- Focus on muscle development opportunities, not flaws.
- Provide realistic timeframe expectations.
- Output ONLY valid JSON.

OUTPUT JSON SCHEMA:
{
  "estimatedCurrent": {
    "postureNotes": ["string"],
    "muscleEmphasisOpportunities": ["string"],
    "estimatedTrainingAge": "string"
  },
  "scenario": "3_month_lock_in | single_muscle_focus",
  "planUpdate": {
    "splitType": "string",
    "weeklySchedule": ["string"],
    "keyExercises": [
      {
        "name": "string",
        "targetMuscle": "string",
        "sets": number,
        "repsRange": "string",
        "priority": "high | medium | low"
      }
    ],
    "progressionRules": ["string"]
  },
  "nutritionTargets": {
    "calories": number,
    "proteinGrams": number,
    "carbsGrams": number,
    "fatGrams": number,
    "notes": "string"
  },
  "explanation": "string, user-friendly summary"
}"""


def get_intensity(experience_level: str, days_per_week: int) -> str:
    """Pick how strong the visual change should be.

    More training days and less experience mean more visible beginner gains;
    advanced lifters always get the mildest wording.
    """
    if experience_level == "advanced":
        return "slightly"
    if experience_level == "beginner" and days_per_week >= 5:
        return "noticeably"
    return "moderately"


def get_physique_style(equipment: Iterable[str]) -> str:
    available = set(equipment)
    for tag, style in PHYSIQUE_STYLES:
        if tag in available:
            return style
    return DEFAULT_PHYSIQUE_STYLE


def _focus_areas(vision_analysis: Optional[PhysiqueVisionAnalysis]) -> str:
    if vision_analysis is not None and vision_analysis.key_opportunities:
        return ", ".join(vision_analysis.key_opportunities[:MAX_FOCUS_AREAS])
    return "{}, {}, and {}".format(*DEFAULT_FOCUS_AREAS)


def build_change_description(
    profile: UserProfileSnapshot,
    vision_analysis: Optional[PhysiqueVisionAnalysis] = None,
) -> str:
    intensity = get_intensity(profile.experience_level, profile.days_per_week)
    style = get_physique_style(profile.equipment)
    areas = _focus_areas(vision_analysis)

    if profile.goal == "hypertrophy":
        return (
            f"Make this person's body {intensity} more muscular with more size in the "
            f"{areas} and a {style} look. {ONLY_BODY_CLAUSE}"
        )
    if profile.goal == "cut":
        return (
            f"Make this person's body {intensity} leaner with more visible muscle "
            f"definition, a tighter midsection, and less body fat with a {style} look. "
            f"{ONLY_BODY_CLAUSE}"
        )
    if profile.goal == "strength":
        return (
            f"Make this person's body look {intensity} thicker and more solid with more "
            f"mass in the {areas} and a {style} build. {ONLY_BODY_CLAUSE}"
        )
    return (
        f"Make this person's body look {intensity} more athletic and toned with more "
        f"definition in the {areas} and a {style} look. {ONLY_BODY_CLAUSE}"
    )


def build_identity_lock(vision_analysis: Optional[PhysiqueVisionAnalysis] = None) -> str:
    facial_hair = vision_analysis.facial_hair if vision_analysis is not None else None
    if facial_hair and facial_hair.lower() != "not visible":
        facial_hair_clause = (
            f"This person's facial hair is: {facial_hair}. "
            "Keep their facial hair exactly the same."
        )
    else:
        facial_hair_clause = "Preserve the person's exact facial hair (or lack thereof)."

    return (
        f"{facial_hair_clause} "
        "Keep the exact same hairstyle, hair color, skin tone, tattoos, scars, face, "
        "expression, pose, clothing, and background. "
        "The ONLY change should be to body musculature and body fat."
    )


def build_prompt(request: ImageGeneratorInput) -> str:
    """Full image-transformation prompt for one generation request."""
    change = build_change_description(request.user_profile, request.vision_analysis)
    lock = build_identity_lock(request.vision_analysis)
    body = f"{change} {lock}"

    if request.scenario == "single_muscle_focus":
        focus = request.focus_muscle or "muscles"
        return f"Make the {focus} bigger and more defined. {body}"
    return body


def build_vision_user_prompt(experience_level: str) -> str:
    return (
        f"Analyze this person's physique. They are a {experience_level} lifter. "
        "Provide your assessment as JSON."
    )


def build_physique_user_prompt(
    profile: UserProfileSnapshot,
    vision_analysis: PhysiqueVisionAnalysis,
    scenario: str,
    focus_muscle: Optional[str] = None,
) -> str:
    """User prompt for the plan-analysis completion."""
    injuries = ", ".join(profile.injuries) if profile.injuries else "None"
    lines = [
        "Analyze this user and create a targeted plan:",
        "",
        "User Profile:",
        f"- Experience: {profile.experience_level}",
        f"- Goal: {profile.goal}",
        f"- Training days/week: {profile.days_per_week}",
        f"- Equipment: {', '.join(profile.equipment)}",
        f"- Injuries: {injuries}",
    ]
    if profile.weight:
        lines.append(f"- Weight: {profile.weight:g} lbs")

    lines += [
        "",
        "Photo Analysis (from vision scan):",
        f"- Build type: {vision_analysis.build_type or 'unknown'}",
        f"- Estimated body fat: {vision_analysis.body_fat_range or 'unknown'}",
        f"- Muscle development: {vision_analysis.muscle_development or 'unknown'}",
        f"- Key opportunities: {', '.join(vision_analysis.key_opportunities) or 'unknown'}",
        f"- Realistic 3-month changes: {vision_analysis.realistic_changes or 'unknown'}",
        "",
    ]

    if scenario == "3_month_lock_in":
        lines.append("Scenario: 3 months of full dedication (diet + training adherence)")
    else:
        lines.append(f"Scenario: Focus on {focus_muscle or 'overall muscle'} development")
    if focus_muscle:
        lines.append(f"Focus muscle: {focus_muscle}")

    lines += [
        "",
        "Provide realistic assessment and a targeted plan for this scenario.",
        "For the 3-month scenario, assume 100% adherence to training and nutrition.",
        "For single muscle focus, optimize the program to prioritize that muscle "
        "while maintaining overall balance.",
        "Use the photo analysis above to ground your recommendations in this "
        "person's actual starting point.",
    ]
    return "\n".join(lines)
