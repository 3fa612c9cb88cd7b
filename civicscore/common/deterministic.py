"""Helpers for deterministic ordering, rounding and breakdown capping."""

from __future__ import annotations

import math
from typing import Callable, Iterable, Mapping, TypeVar

from civicscore.common.constants import SECONDARY_LANGUAGE_SEPARATOR

T = TypeVar("T")


def stable_sorted(items: Iterable[T], key: Callable[[T], object]) -> list[T]:
    return sorted(items, key=key)


def round_half_up(value: float, digits: int = 0) -> float:
    # round() is banker's rounding; published counts use the conventional half-up rule.
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_count(value: float) -> int:
    return int(round_half_up(value))


def rate(count: float, denominator: float, *, scale: float = 1.0, digits: int = 1) -> float | None:
    if denominator <= 0:
        return None
    return round_half_up(count / denominator * scale, digits)


def primary_label(label: str) -> str:
    return label.split(SECONDARY_LANGUAGE_SEPARATOR)[0].strip()


def top_breakdown(counts: Mapping[str, float], limit: int | None) -> dict[str, int]:
    """Round the largest ``limit`` entries and fold bilingual labels together.

    Capping happens before labels are merged, so two raw labels that share a
    primary-language part can both contribute to one published entry.
    """
    ranked = stable_sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ranked = ranked[:limit]

    out: dict[str, int] = {}
    for label, count in ranked:
        clean = primary_label(label)
        out[clean] = out.get(clean, 0) + round_count(count)
    return out
