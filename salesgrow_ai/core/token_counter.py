"""
Token counting and usage tracking.

Carries token accounting for a single model call and estimates token
counts locally when a provider omits its usage metadata.
"""

import math
import re
from dataclasses import dataclass


# CJK ideographs, hiragana, katakana and hangul syllables
_CJK_PATTERN = re.compile(r"[\u4e00-\u9fff\u3040-\u309f\u30a0-\u30ff\uac00-\ud7af]")

CJK_CHARS_PER_TOKEN = 1.5
OTHER_CHARS_PER_TOKEN = 4.0


@dataclass(frozen=True)
class TokenUsage:
    """Token usage and estimated cost for one model call."""
    input_tokens: int
    output_tokens: int
    estimated_cost_usd: float = 0.0

    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens

    @classmethod
    def zero(cls) -> "TokenUsage":
        return cls(input_tokens=0, output_tokens=0, estimated_cost_usd=0.0)

    def to_dict(self) -> dict:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "estimated_cost_usd": self.estimated_cost_usd,
        }


def estimate_tokens(text: str) -> int:
    """Roughly estimate the token count of ``text``.

    CJK characters average about 1.5 characters per token, everything
    else about 4.

    Args:
        text: Text to measure

    Returns:
        Estimated token count, rounded up
    """
    if not text:
        return 0
    cjk_count = len(_CJK_PATTERN.findall(text))
    other_count = len(text) - cjk_count
    return math.ceil(cjk_count / CJK_CHARS_PER_TOKEN + other_count / OTHER_CHARS_PER_TOKEN)
