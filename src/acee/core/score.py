"""Anti-pattern scoring for candidate functions.

Each rule is an independent regex over the function body. A body's score
is the sum of the weights of the rules it matches; a score of 0 means the
function already looks modern and is left alone.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class AntiPattern:
    pattern: re.Pattern[str]
    weight: int
    reason: str


@dataclass
class ScoreResult:
    """Need-score of a function body and the reasons behind it."""

    score: int = 0
    reasons: list[str] = field(default_factory=list)


def _rule(pattern: str, weight: int, reason: str, flags: int = 0) -> AntiPattern:
    return AntiPattern(re.compile(pattern, flags), weight, reason)


ANTI_PATTERNS: tuple[AntiPattern, ...] = (
    _rule(r"\bvar\s+", 3, "uses 'var' (should be let/const)"),
    _rule(r"\.then\s*\(", 3, "uses .then() chain (could be async/await)"),
    _rule(r"\.catch\s*\(", 2, "uses .catch() chain (could be async/await)"),
    _rule(
        r"['\"]\s*\+\s*\w",
        2,
        "uses string concatenation (could use template literals)",
    ),
    _rule(
        r"function\s*\(\s*err\s*,",
        3,
        "uses error-first callback pattern (could be async/await)",
    ),
    _rule(
        r"for\s*\(\s*(var|let)\s+\w+\s*=\s*0",
        2,
        "uses index for-loop (could be .map/.filter/.forEach)",
    ),
    _rule(r"\barguments\b", 3, "uses 'arguments' object (should use rest params)"),
    _rule(
        r"\b(self|that)\s*=\s*this\b",
        3,
        "uses self/that=this hack (use arrow functions)",
    ),
    _rule(
        r"Object\.assign\s*\(\s*\{\s*\}",
        1,
        "uses Object.assign({}, ...) (could use spread)",
    ),
    _rule(
        r"\.(apply|call)\s*\(\s*(null|undefined)",
        1,
        "uses .apply(null) (could use spread)",
    ),
    _rule(r"\.hasOwnProperty\s*\(", 1, "uses .hasOwnProperty (prefer Object.hasOwn)"),
    _rule(
        r"if.{400,}else",
        2,
        "deeply nested if/else (could use early return)",
        re.DOTALL,
    ),
)


def score(body: str) -> ScoreResult:
    """Score a function body against the anti-pattern table."""
    result = ScoreResult()
    for rule in ANTI_PATTERNS:
        if rule.pattern.search(body):
            result.score += rule.weight
            result.reasons.append(rule.reason)
    return result
