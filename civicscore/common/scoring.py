"""Config-driven percentile scoring utilities."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

from civicscore.common.deterministic import round_half_up

HIGHER_IS_BETTER = "higher_is_better"
LOWER_IS_BETTER = "lower_is_better"


@dataclass(frozen=True)
class ScoringPolicy:
    """How one metric is turned into a 0-100 score.

    ``zero_means`` decides what a zero reading signals: ``best`` (no complaints
    at all), ``worst`` (no activity at all), ``no_data`` (zero is a missing
    value in disguise) or ``ranked`` (zero is an ordinary value).
    """

    direction: str
    zero_means: str

    @classmethod
    def from_config(cls, metric_cfg: dict) -> ScoringPolicy:
        return cls(direction=metric_cfg["direction"], zero_means=metric_cfg["zero_means"])


def clamp(value: float, *, minimum: float = 0.0, maximum: float = 100.0) -> float:
    return max(minimum, min(maximum, value))


def _is_missing(value: float | None) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def percentile_scores(
    values: Mapping[str, float | None],
    policy: ScoringPolicy,
    zero_flags: Mapping[str, bool] | None = None,
) -> dict[str, float | None]:
    """Score each value by its position among the other non-zero values.

    ``zero_flags`` overrides the zero test per id, for metrics whose zero
    condition is defined by a count rather than by the rate itself. A flagged
    zero count is scored by the zero policy even when its rate is missing.
    """
    scores: dict[str, float | None] = {}
    ranked: dict[str, float] = {}

    for key, value in values.items():
        flagged = zero_flags.get(key) if zero_flags is not None else None
        if flagged is not None:
            is_zero = flagged
        else:
            is_zero = not _is_missing(value) and value == 0
        if is_zero and policy.zero_means != "ranked":
            if policy.zero_means == "best":
                scores[key] = 100.0
            elif policy.zero_means == "worst":
                scores[key] = 0.0
            else:
                scores[key] = None
            continue
        if _is_missing(value):
            scores[key] = None
            continue
        ranked[key] = float(value)

    population = sorted(ranked.values())
    n = len(population)
    for key, value in ranked.items():
        if policy.direction == LOWER_IS_BETTER:
            position = sum(1 for other in population if other >= value)
        else:
            position = sum(1 for other in population if other <= value)
        scores[key] = clamp(round_half_up(100.0 * position / n, 1))
    return scores


def compose(scores: Mapping[str, float | None], weights: Mapping[str, float]) -> float | None:
    """Weighted mean over the present scores, weights renormalised to them."""
    total_weight = 0.0
    weighted = 0.0
    for key, score in scores.items():
        if _is_missing(score):
            continue
        weight = float(weights.get(key, 0.0))
        if weight <= 0:
            continue
        total_weight += weight
        weighted += weight * float(score)
    if total_weight == 0:
        return None
    return clamp(round_half_up(weighted / total_weight, 1))
