"""Fixed vocabularies shared by the API, the prompts and the schemas."""

EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced")

TRAINING_GOALS = ("hypertrophy", "strength", "cut")

EQUIPMENT_OPTIONS = (
    "full_gym",
    "home_dumbbells",
    "home_barbell",
    "bodyweight_only",
    "resistance_bands",
)

MUSCLE_GROUPS = (
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
)

PHYSIQUE_SCENARIOS = ("3_month_lock_in", "single_muscle_focus")

PHOTO_TYPES = ("progress", "physique_input", "physique_output")

ALLOWED_PHOTO_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")

FITNESS_DISCLAIMERS = (
    "This is AI-generated fitness guidance, not medical advice.",
    "Consult a healthcare professional before starting any new exercise program.",
    "Results vary based on genetics, consistency, nutrition, sleep, and other factors.",
    "The physique preview is an illustrative simulation, not a guaranteed outcome.",
    "We do not store, train on, or share your photos with third parties.",
)
