"""AI decision values returned by the decision engine."""

from __future__ import annotations

from dataclasses import dataclass

from flotilla.core.models import Coord, ShipType
from flotilla.core.skills import SkillOptions


@dataclass(frozen=True, slots=True)
class AttackDecision:
    """Fire at ``coord``."""

    coord: Coord


@dataclass(frozen=True, slots=True)
class SkillDecision:
    """Invoke ``skill`` with ``options``."""

    skill: ShipType
    options: SkillOptions = None


Decision = AttackDecision | SkillDecision
