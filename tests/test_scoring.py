"""
Unit tests for coach scoring.
"""

import pytest

from salesgrow_ai.coach.feedback import DIMENSIONS, CoachFeedback, DimensionScore
from salesgrow_ai.coach.scenarios import ScenarioCategory
from salesgrow_ai.coach.scoring import (
    DEFAULT_WEIGHTS,
    SCENARIO_WEIGHTS,
    calculate_weighted_score,
    calculate_xp_reward,
    get_scenario_weights,
    get_score_grade,
    get_weakest_dimension,
)


def make_feedback(**scores):
    """Feedback with the given raw scores (out of 20); unspecified dimensions score 0."""
    return CoachFeedback(
        total_score=0,
        dimensions={name: DimensionScore(score=scores.get(name, 0)) for name in DIMENSIONS},
    )


class TestWeights:
    """Test category weight tables."""

    @pytest.mark.parametrize("category", list(SCENARIO_WEIGHTS))
    def test_weights_sum_to_one(self, category):
        assert sum(SCENARIO_WEIGHTS[category].values()) == pytest.approx(1.0)

    def test_every_category_has_weights(self):
        for category in ScenarioCategory:
            assert get_scenario_weights(category) is SCENARIO_WEIGHTS[category.value]

    def test_unknown_category_uses_even_weights(self):
        assert get_scenario_weights("karaoke") == DEFAULT_WEIGHTS
        assert get_scenario_weights(None) == DEFAULT_WEIGHTS


class TestWeightedScore:
    """Test the weighted total."""

    def test_objection_emphasis(self):
        feedback = make_feedback(objection_handling=20)
        assert calculate_weighted_score(feedback, "objection") == 45

    def test_default_weights(self):
        feedback = make_feedback(objection_handling=20)
        assert calculate_weighted_score(feedback, "unknown") == 20

    def test_perfect_score(self):
        feedback = make_feedback(**{name: 20 for name in DIMENSIONS})
        for category in SCENARIO_WEIGHTS:
            assert calculate_weighted_score(feedback, category) == 100

    def test_zero_score(self):
        assert calculate_weighted_score(make_feedback(), ScenarioCategory.CLOSING) == 0

    def test_respects_max_score(self):
        feedback = CoachFeedback(
            total_score=0,
            dimensions={name: DimensionScore(score=5, max_score=10) for name in DIMENSIONS},
        )
        assert calculate_weighted_score(feedback, "discovery") == 50


class TestXpReward:
    """Test the XP step function."""

    @pytest.mark.parametrize("score,xp", [
        (100, 75), (86, 75), (85, 50), (71, 50), (70, 35), (51, 35), (50, 20), (31, 20), (30, 10), (0, 10),
    ])
    def test_steps(self, score, xp):
        assert calculate_xp_reward(score) == xp

    def test_non_decreasing(self):
        rewards = [calculate_xp_reward(score) for score in range(101)]
        assert rewards == sorted(rewards)


class TestGrades:
    """Test letter grades."""

    @pytest.mark.parametrize("score,grade", [(95, "S"), (90, "S"), (80, "A"), (65, "B"), (50, "C"), (49, "D")])
    def test_grade_boundaries(self, score, grade):
        assert get_score_grade(score).grade == grade

    def test_localized_label(self):
        assert get_score_grade(85).label("ja") == "優秀"
        assert get_score_grade(10).label("fr") == "Needs Practice"


class TestWeakestDimension:
    """Test weakest-dimension selection."""

    def test_lowest_ratio(self):
        feedback = make_feedback(opening=15, needs_discovery=12, solution_presentation=18,
                                 objection_handling=9, closing=14)
        assert get_weakest_dimension(feedback) == "objection_handling"

    def test_tie_goes_to_first_dimension(self):
        feedback = make_feedback(opening=10, needs_discovery=10, solution_presentation=10,
                                 objection_handling=10, closing=10)
        assert get_weakest_dimension(feedback) == "opening"
