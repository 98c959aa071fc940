"""Deterministic team synergy scoring.

Total score (0..1000) = offense (<=450) + defense (<=300) + base stats (<=200)
minus a stacked-weakness penalty (<=150).
"""
from __future__ import annotations

from typing import Dict, List, Sequence

from .effectiveness import ALL_TYPES, DEFAULT_TABLE, EffectivenessTable, PokemonType, sort_multipliers
from .models import ScoreBreakdown, Species, TeamSummary
from .observability import get_logger, metrics

LOGGER = get_logger(__name__)

MAX_OFFENSIVE_SCORE = 450
MAX_DEFENSIVE_SCORE = 300
MAX_BASE_STAT_SCORE = 200
MAX_WEAKNESS_PENALTY = 150
MAX_TEAM_BASE_STATS = 720 * 6
NONE_PLACEHOLDER = "None"


def offensive_coverage(members: Sequence[Species], table: EffectivenessTable = DEFAULT_TABLE) -> Dict[PokemonType, float]:
    """Best multiplier any member's own type lands on each defending type, floored at 1.0."""
    coverage: Dict[PokemonType, float] = {}
    for defense in ALL_TYPES:
        best = 1.0
        for member in members:
            for attack in member.types or ():
                best = max(best, table.lookup(attack, defense))
        coverage[defense] = best
    return coverage


def _member_multipliers(
    members: Sequence[Species], attack: PokemonType, table: EffectivenessTable
) -> List[float]:
    return [table.multiplier_against(attack, member.types) for member in members if member.types]


def defensive_profile(
    members: Sequence[Species], table: EffectivenessTable = DEFAULT_TABLE
) -> tuple:
    """Return ``(resilience, danger)`` keyed by attacking type.

    Resilience is what the best-suited member takes from that attack,
    danger is what the worst-hit member takes.
    """
    resilience: Dict[PokemonType, float] = {}
    danger: Dict[PokemonType, float] = {}
    for attack in ALL_TYPES:
        values = _member_multipliers(members, attack, table)
        resilience[attack] = min(values) if values else 1.0
        danger[attack] = max(values) if values else 0.0
    return resilience, danger


def _offensive_points(multiplier: float) -> int:
    if multiplier >= 4:
        return 25
    if multiplier >= 2:
        return 20
    if multiplier >= 1:
        return 10
    return 5


def _defensive_points(multiplier: float) -> int:
    if multiplier == 0:
        return 20
    if multiplier <= 0.25:
        return 18
    if multiplier <= 0.5:
        return 15
    if multiplier <= 1:
        return 10
    if multiplier <= 2:
        return 5
    return 0


def _penalty_points(weak_count: int) -> int:
    # Tiers stack: five weak members cost 25 + 35 + 45 for a single type.
    points = 0
    if weak_count >= 3:
        points += 25
    if weak_count >= 4:
        points += 35
    if weak_count >= 5:
        points += 45
    return points


def weakness_penalty(members: Sequence[Species], table: EffectivenessTable = DEFAULT_TABLE) -> int:
    total = 0
    for attack in ALL_TYPES:
        weak_count = sum(1 for value in _member_multipliers(members, attack, table) if value > 1.0)
        total += _penalty_points(weak_count)
    return min(total, MAX_WEAKNESS_PENALTY)


def base_stat_score(members: Sequence[Species]) -> int:
    total = sum(member.total_base_stats for member in members)
    return int(min(total / MAX_TEAM_BASE_STATS, 1.0) * MAX_BASE_STAT_SCORE)


def _labels(values: Dict[PokemonType, float]) -> List[str]:
    labels = [entry.label for entry in sort_multipliers(values)]
    return labels or [NONE_PLACEHOLDER]


def score_team(members: Sequence[Species], table: EffectivenessTable = DEFAULT_TABLE) -> TeamSummary:
    """Score a team and list the types it covers well and the types that threaten it."""

    if not members:
        return TeamSummary()

    coverage = offensive_coverage(members, table)
    resilience, danger = defensive_profile(members, table)

    offensive = min(sum(_offensive_points(value) for value in coverage.values()), MAX_OFFENSIVE_SCORE)
    defensive = min(sum(_defensive_points(value) for value in resilience.values()), MAX_DEFENSIVE_SCORE)
    base_stats = base_stat_score(members)
    penalty = weakness_penalty(members, table)
    total = max(0, min(offensive + defensive + base_stats - penalty, 1000))

    strong = {kind for kind, value in coverage.items() if value > 1.0}
    weak = {kind for kind, value in danger.items() if value > 1.0}
    cancelled = strong & weak

    summary = TeamSummary(
        total_score=total,
        strengths=_labels({kind: coverage[kind] for kind in strong - cancelled}),
        weaknesses=_labels({kind: danger[kind] for kind in weak - cancelled}),
        breakdown=ScoreBreakdown(
            offensive=offensive,
            defensive=defensive,
            base_stats=base_stats,
            weakness_penalty=penalty,
        ),
    )
    metrics.increment("poke_team_builder_team_scores_total")
    LOGGER.debug(
        "team_scored",
        extra={
            "event": "team_scored",
            "members": [member.name for member in members],
            "total_score": total,
            "offensive": offensive,
            "defensive": defensive,
            "base_stats": base_stats,
            "weakness_penalty": penalty,
        },
    )
    return summary


__all__ = [
    "score_team",
    "offensive_coverage",
    "defensive_profile",
    "weakness_penalty",
    "base_stat_score",
    "NONE_PLACEHOLDER",
]
