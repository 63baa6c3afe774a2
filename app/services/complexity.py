"""
Complexity Classifier.

Maps a PerformanceSnapshot to one of three routine tiers. Pure functions,
no DB access.

Cold-start rules (first match wins)
-----------------------------------
  1. completion_rate < 0.6 OR recent_failures > 3        → simple
  2. completion_rate > 0.8 AND consistency_score > 0.75  → complex
  3. otherwise                                           → moderate
  No snapshot at all (first-time user)                   → moderate

Incremental adaptation
----------------------
simplify() / intensify() move an existing complexity one tier and clamp
each parameter, so a single step can never jump simple → complex:

  task_count        ±2   within [3, 10]
  deep_work_blocks  ±1   within [1, 4]
  break_frequency   ±30  within [45, 150]

Public API
----------
classify(snapshot)                      -> RoutineComplexity
simplify(complexity)                    -> RoutineComplexity
intensify(complexity)                   -> RoutineComplexity
apply_adaptations(complexity, adaptations) -> RoutineComplexity
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.adaptation_engine import RoutineAdaptation
    from app.services.performance import PerformanceSnapshot


class ComplexityLevel:
    SIMPLE   = "simple"
    MODERATE = "moderate"
    COMPLEX  = "complex"


_ORDER = [ComplexityLevel.SIMPLE, ComplexityLevel.MODERATE, ComplexityLevel.COMPLEX]

TASK_COUNT_BOUNDS       = (3, 10)
DEEP_WORK_BLOCK_BOUNDS  = (1, 4)
BREAK_FREQUENCY_BOUNDS  = (45, 150)


@dataclass(frozen=True)
class RoutineComplexity:
    level: str
    task_count: int
    deep_work_blocks: int
    break_frequency: int          # minutes between mandatory breaks
    multitasking_allowed: bool

    def to_dict(self) -> dict:
        return asdict(self)


SIMPLE = RoutineComplexity(ComplexityLevel.SIMPLE, 4, 1, 60, False)
MODERATE = RoutineComplexity(ComplexityLevel.MODERATE, 6, 2, 90, False)
COMPLEX = RoutineComplexity(ComplexityLevel.COMPLEX, 8, 3, 120, True)

TIERS = {c.level: c for c in (SIMPLE, MODERATE, COMPLEX)}


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    lo, hi = bounds
    return max(lo, min(hi, value))


# ---------------------------------------------------------------------------
# Cold start
# ---------------------------------------------------------------------------

def classify(snapshot: Optional["PerformanceSnapshot"]) -> RoutineComplexity:
    if snapshot is None:
        return MODERATE
    if snapshot.completion_rate < 0.6 or snapshot.recent_failures > 3:
        return SIMPLE
    if snapshot.completion_rate > 0.8 and snapshot.consistency_score > 0.75:
        return COMPLEX
    return MODERATE


# ---------------------------------------------------------------------------
# Incremental steps
# ---------------------------------------------------------------------------

def _step_level(level: str, delta: int) -> str:
    idx = _ORDER.index(level) if level in _ORDER else 1
    return _ORDER[max(0, min(len(_ORDER) - 1, idx + delta))]


def simplify(current: RoutineComplexity) -> RoutineComplexity:
    level = _step_level(current.level, -1)
    return RoutineComplexity(
        level=level,
        task_count=_clamp(current.task_count - 2, TASK_COUNT_BOUNDS),
        deep_work_blocks=_clamp(current.deep_work_blocks - 1, DEEP_WORK_BLOCK_BOUNDS),
        break_frequency=_clamp(current.break_frequency - 30, BREAK_FREQUENCY_BOUNDS),
        multitasking_allowed=level == ComplexityLevel.COMPLEX,
    )


def intensify(current: RoutineComplexity) -> RoutineComplexity:
    level = _step_level(current.level, +1)
    return RoutineComplexity(
        level=level,
        task_count=_clamp(current.task_count + 2, TASK_COUNT_BOUNDS),
        deep_work_blocks=_clamp(current.deep_work_blocks + 1, DEEP_WORK_BLOCK_BOUNDS),
        break_frequency=_clamp(current.break_frequency + 30, BREAK_FREQUENCY_BOUNDS),
        multitasking_allowed=level == ComplexityLevel.COMPLEX,
    )


def apply_adaptations(
    current: RoutineComplexity,
    adaptations: Iterable["RoutineAdaptation"],
) -> RoutineComplexity:
    """
    Apply the highest-impact complexity directive, if any, as one step.
    adjust_timing / change_focus never change the tier.
    """
    relevant = [a for a in adaptations if a.type in ("simplify", "increase_complexity")]
    if not relevant:
        return current
    top = max(relevant, key=lambda a: a.impact_score)
    if top.type == "simplify":
        return simplify(current)
    return intensify(current)


def from_dict(data: Optional[dict]) -> RoutineComplexity:
    """Rebuild a stored complexity; unknown or missing data → moderate."""
    if not data:
        return MODERATE
    try:
        return RoutineComplexity(
            level=str(data["level"]),
            task_count=int(data["task_count"]),
            deep_work_blocks=int(data["deep_work_blocks"]),
            break_frequency=int(data["break_frequency"]),
            multitasking_allowed=bool(data["multitasking_allowed"]),
        )
    except (KeyError, TypeError, ValueError):
        return TIERS.get(str(data.get("level")), MODERATE)
