"""
Coach feedback documents.

Parses the model's JSON scoring reply into a ``CoachFeedback``. Replies
wrapped in a markdown code fence (or surrounded by prose) are cleaned
before parsing.
"""

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .errors import FeedbackParseError

DEFAULT_MAX_SCORE = 20

# Python attribute name -> JSON key, in scoring order
DIMENSIONS = {
    "opening": "opening",
    "needs_discovery": "needsDiscovery",
    "solution_presentation": "solutionPresentation",
    "objection_handling": "objectionHandling",
    "closing": "closing",
}

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class DimensionScore:
    """Raw model score for one skill dimension."""
    score: float
    max_score: float = DEFAULT_MAX_SCORE
    feedback: str = ""

    @property
    def ratio(self) -> float:
        return self.score / self.max_score

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "maxScore": self.max_score, "feedback": self.feedback}


@dataclass(frozen=True)
class CoachFeedback:
    """Scored evaluation of a practice session.

    ``total_score`` and ``xp_earned`` are recomputed from the dimension
    scores by the engine; the values the model reports are not trusted.
    """
    total_score: int
    dimensions: Dict[str, DimensionScore]
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    encouragement: str = ""
    xp_earned: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape returned to API clients."""
        return {
            "totalScore": self.total_score,
            "dimensions": {
                json_key: self.dimensions[name].to_dict()
                for name, json_key in DIMENSIONS.items()
            },
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "encouragement": self.encouragement,
            "xpEarned": self.xp_earned,
        }


def clean_json_response(text: str) -> str:
    """Strip a markdown fence or surrounding prose from a JSON reply."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text.strip()


def _number(value: Any, path: str) -> float:
    # json.loads accepts NaN and Infinity
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise FeedbackParseError(f"'{path}' must be a finite number")
    return value


def _optional_int(value: Any, path: str) -> int:
    """Missing or non-numeric reads as 0; non-finite numbers are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(_number(value, path))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _parse_dimension(name: str, data: Any) -> DimensionScore:
    if not isinstance(data, dict):
        raise FeedbackParseError(f"Missing feedback dimension: {name}")
    max_score = data.get("maxScore", DEFAULT_MAX_SCORE)
    max_score = _number(max_score, f"{name}.maxScore")
    if max_score <= 0:
        raise FeedbackParseError(f"'{name}.maxScore' must be > 0")
    score = _number(data.get("score"), f"{name}.score")
    return DimensionScore(
        score=min(max(score, 0), max_score),
        max_score=max_score,
        feedback=str(data.get("feedback", "")),
    )


def parse_feedback(content: str) -> CoachFeedback:
    """Parse the model's scoring reply.

    Raises:
        FeedbackParseError: If the reply is not JSON or misses a dimension
    """
    try:
        data = json.loads(content)
    except ValueError:
        try:
            data = json.loads(clean_json_response(content))
        except ValueError as e:
            raise FeedbackParseError(f"Feedback reply is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise FeedbackParseError("Feedback reply must be a JSON object")
    raw_dimensions = data.get("dimensions")
    if not isinstance(raw_dimensions, dict):
        raise FeedbackParseError("Feedback reply has no dimensions")

    dimensions = {
        name: _parse_dimension(json_key, raw_dimensions.get(json_key))
        for name, json_key in DIMENSIONS.items()
    }
    return CoachFeedback(
        total_score=_optional_int(data.get("totalScore"), "totalScore"),
        dimensions=dimensions,
        strengths=_string_list(data.get("strengths")),
        improvements=_string_list(data.get("improvements")),
        encouragement=str(data.get("encouragement") or ""),
        xp_earned=_optional_int(data.get("xpEarned"), "xpEarned"),
    )
