"""
Coach scoring.

Turns the five raw dimension scores into a category-weighted total, an XP
award and a letter grade.

Weighted total = sum over dimensions of (score / max_score) * weight * 100,
rounded. Each category's weights sum to 1.0.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Union

from .feedback import DIMENSIONS, CoachFeedback
from .scenarios import ScenarioCategory

SCENARIO_WEIGHTS: Dict[str, Dict[str, float]] = {
    "objection": {
        "opening": 0.10,
        "needs_discovery": 0.15,
        "solution_presentation": 0.15,
        "objection_handling": 0.45,
        "closing": 0.15,
    },
    "closing": {
        "opening": 0.10,
        "needs_discovery": 0.10,
        "solution_presentation": 0.25,
        "objection_handling": 0.15,
        "closing": 0.40,
    },
    "discovery": {
        "opening": 0.15,
        "needs_discovery": 0.40,
        "solution_presentation": 0.15,
        "objection_handling": 0.15,
        "closing": 0.15,
    },
    "presentation": {
        "opening": 0.15,
        "needs_discovery": 0.10,
        "solution_presentation": 0.40,
        "objection_handling": 0.20,
        "closing": 0.15,
    },
    "networking": {
        "opening": 0.25,
        "needs_discovery": 0.25,
        "solution_presentation": 0.15,
        "objection_handling": 0.10,
        "closing": 0.25,
    },
    "follow_up": {
        "opening": 0.25,
        "needs_discovery": 0.20,
        "solution_presentation": 0.15,
        "objection_handling": 0.10,
        "closing": 0.30,
    },
}

DEFAULT_WEIGHTS: Dict[str, float] = {name: 0.20 for name in DIMENSIONS}

# (minimum total, XP), checked top down
XP_STEPS = ((86, 75), (71, 50), (51, 35), (31, 20))
MIN_XP = 10


@dataclass(frozen=True)
class ScoreGrade:
    """Letter grade with its display label per locale."""
    grade: str
    labels: Dict[str, str]

    def label(self, locale: str = "en") -> str:
        return self.labels.get(locale, self.labels["en"])


GRADES = (
    (90, ScoreGrade("S", {"en": "Master", "zh-TW": "大師級", "zh-CN": "大师级", "ja": "マスター", "ko": "마스터"})),
    (80, ScoreGrade("A", {"en": "Excellent", "zh-TW": "優秀", "zh-CN": "优秀", "ja": "優秀", "ko": "우수"})),
    (65, ScoreGrade("B", {"en": "Good", "zh-TW": "良好", "zh-CN": "良好", "ja": "良好", "ko": "양호"})),
    (50, ScoreGrade("C", {"en": "Average", "zh-TW": "普通", "zh-CN": "普通", "ja": "普通", "ko": "보통"})),
)
LOWEST_GRADE = ScoreGrade(
    "D", {"en": "Needs Practice", "zh-TW": "需要練習", "zh-CN": "需要练习", "ja": "要練習", "ko": "연습 필요"}
)


def get_scenario_weights(category: Optional[Union[ScenarioCategory, str]]) -> Dict[str, float]:
    """Dimension weights for a category; even weights when unknown."""
    if isinstance(category, ScenarioCategory):
        category = category.value
    return SCENARIO_WEIGHTS.get(category, DEFAULT_WEIGHTS)


def calculate_weighted_score(
    feedback: CoachFeedback,
    category: Optional[Union[ScenarioCategory, str]],
) -> int:
    """Category-weighted total on a 0-100 scale."""
    weights = get_scenario_weights(category)
    total = sum(
        feedback.dimensions[name].ratio * weights[name] * 100
        for name in DIMENSIONS
    )
    # Half-up rounding, so 44.5 scores 45 rather than banker's 44
    return int(Decimal(str(round(total, 6))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_xp_reward(total_score: float) -> int:
    for minimum, xp in XP_STEPS:
        if total_score >= minimum:
            return xp
    return MIN_XP


def get_score_grade(total_score: float) -> ScoreGrade:
    for minimum, grade in GRADES:
        if total_score >= minimum:
            return grade
    return LOWEST_GRADE


def get_weakest_dimension(feedback: CoachFeedback) -> str:
    """Dimension with the lowest score ratio; the first one wins a tie."""
    return min(DIMENSIONS, key=lambda name: feedback.dimensions[name].ratio)
