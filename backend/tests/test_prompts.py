"""
Tests for physique prompt construction.
"""

import pytest

from schemas.physique import ImageGeneratorInput, PhysiqueVisionAnalysis, UserProfileSnapshot
from services.prompts import (
    ONLY_BODY_CLAUSE,
    build_change_description,
    build_identity_lock,
    build_physique_user_prompt,
    build_prompt,
    build_vision_user_prompt,
    get_intensity,
    get_physique_style,
)


def _profile(**overrides) -> UserProfileSnapshot:
    data = {
        "experience_level": "intermediate",
        "goal": "hypertrophy",
        "days_per_week": 4,
        "equipment": ["full_gym"],
    }
    data.update(overrides)
    return UserProfileSnapshot(**data)


class TestGetIntensity:
    @pytest.mark.parametrize(
        "level,days,expected",
        [
            ("advanced", 6, "slightly"),
            ("advanced", 2, "slightly"),
            ("beginner", 5, "noticeably"),
            ("beginner", 7, "noticeably"),
            ("beginner", 4, "moderately"),
            ("intermediate", 6, "moderately"),
        ],
    )
    def test_decision_table(self, level, days, expected):
        assert get_intensity(level, days) == expected


class TestGetPhysiqueStyle:
    def test_full_gym_wins_over_everything(self):
        assert get_physique_style(["bodyweight_only", "home_dumbbells", "full_gym"]) == (
            "well-rounded muscular"
        )

    def test_barbell_beats_dumbbells(self):
        assert get_physique_style(["home_dumbbells", "home_barbell"]) == "strong and dense"

    def test_dumbbells(self):
        assert get_physique_style(["home_dumbbells"]) == "toned and defined"

    def test_bodyweight(self):
        assert get_physique_style(["bodyweight_only"]) == "lean and athletic"

    def test_unknown_equipment_falls_back(self):
        assert get_physique_style(["resistance_bands"]) == "fit and toned"


class TestBuildChangeDescription:
    def test_hypertrophy_uses_first_three_opportunities(self, vision_analysis):
        text = build_change_description(_profile(), vision_analysis)
        assert text.startswith("Make this person's body moderately more muscular")
        assert "shoulders, back, arms" in text
        assert "chest" not in text.split("in the ")[1].split(" and a")[0]
        assert "well-rounded muscular look" in text
        assert text.endswith(ONLY_BODY_CLAUSE)

    def test_default_areas_without_vision(self):
        text = build_change_description(_profile(goal="strength"))
        assert "chest, shoulders, and arms" in text
        assert "thicker and more solid" in text

    def test_cut_mentions_body_fat(self):
        text = build_change_description(
            _profile(goal="cut", experience_level="beginner", days_per_week=6)
        )
        assert "noticeably leaner" in text
        assert "less body fat" in text

    def test_empty_opportunities_use_default_areas(self):
        text = build_change_description(_profile(), PhysiqueVisionAnalysis())
        assert "chest, shoulders, and arms" in text


class TestBuildIdentityLock:
    def test_known_facial_hair_is_named(self, vision_analysis):
        text = build_identity_lock(vision_analysis)
        assert text.startswith("This person's facial hair is: short beard.")

    @pytest.mark.parametrize("facial_hair", [None, "not visible", "Not Visible"])
    def test_unknown_facial_hair_uses_generic_clause(self, facial_hair):
        text = build_identity_lock(PhysiqueVisionAnalysis(facial_hair=facial_hair))
        assert text.startswith("Preserve the person's exact facial hair (or lack thereof).")

    def test_locks_everything_but_the_body(self):
        text = build_identity_lock(None)
        assert "background" in text
        assert "The ONLY change should be to body musculature and body fat." in text


class TestBuildPrompt:
    def test_lock_in_prompt_is_change_plus_lock(self, vision_analysis):
        request = ImageGeneratorInput(
            source_image_url="https://example.com/p.jpg",
            scenario="3_month_lock_in",
            user_profile=_profile(),
            vision_analysis=vision_analysis,
        )
        expected = (
            build_change_description(request.user_profile, vision_analysis)
            + " "
            + build_identity_lock(vision_analysis)
        )
        assert build_prompt(request) == expected

    def test_single_focus_prefix(self):
        request = ImageGeneratorInput(
            source_image_url="https://example.com/p.jpg",
            scenario="single_muscle_focus",
            focus_muscle="biceps",
            user_profile=_profile(),
        )
        assert build_prompt(request).startswith("Make the biceps bigger and more defined. ")

    def test_focus_muscle_ignored_for_lock_in(self):
        request = ImageGeneratorInput(
            source_image_url="https://example.com/p.jpg",
            scenario="3_month_lock_in",
            focus_muscle="biceps",
            user_profile=_profile(),
        )
        assert "biceps" not in build_prompt(request)


class TestUserPrompts:
    def test_vision_user_prompt_names_level(self):
        assert "They are a beginner lifter." in build_vision_user_prompt("beginner")

    def test_physique_user_prompt_includes_profile_and_vision(self, vision_analysis):
        text = build_physique_user_prompt(
            _profile(injuries=["knee"], weight=175.5), vision_analysis, "3_month_lock_in"
        )
        assert "- Injuries: knee" in text
        assert "- Weight: 175.5 lbs" in text
        assert "- Estimated body fat: 15-18%" in text
        assert "Scenario: 3 months of full dedication" in text
        assert "Focus muscle" not in text

    def test_physique_user_prompt_single_focus(self, vision_analysis):
        text = build_physique_user_prompt(
            _profile(), vision_analysis, "single_muscle_focus", "glutes"
        )
        assert "Scenario: Focus on glutes development" in text
        assert "Focus muscle: glutes" in text
        assert "- Injuries: None" in text
        assert "Weight" not in text


def test_beginner_bodyweight_lock_in_prompt():
    request = ImageGeneratorInput(
        source_image_url="https://example.com/p.jpg",
        scenario="3_month_lock_in",
        user_profile=_profile(
            experience_level="beginner",
            goal="hypertrophy",
            days_per_week=5,
            equipment=["bodyweight_only"],
        ),
        vision_analysis=PhysiqueVisionAnalysis(
            face_end_percent=25, key_opportunities=["chest", "back", "shoulders"]
        ),
    )

    prompt = build_prompt(request)

    assert "noticeably" in prompt
    assert "lean and athletic" in prompt
    assert "chest, back, shoulders" in prompt
