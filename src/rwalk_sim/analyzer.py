"""
Movement-model classification of a sampled walk.

Counts unit steps per direction and how often a step repeats the previous
step's direction, then labels the walk as a biased, correlated or simple
random walk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import numpy as np

from .errors import AnalysisError
from .kernel import Direction
from .walk import Walk

MOVING = (Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST)


class WalkModel(str, Enum):
    SIMPLE = "simple"
    BIASED = "biased"
    CORRELATED = "correlated"


@dataclass
class AnalysisThresholds:
    biased: float = 0.25
    correlated: float = 0.5


@dataclass
class AnalysisResult:
    model: WalkModel
    direction: Optional[Direction] = None
    strength: float = 0.0
    biases: Dict[Direction, float] = field(default_factory=dict)
    persistence: float = 0.0


class WalkAnalyzer:
    """
    Classifies a walk whose steps are all unit moves or stays.

    A walk is *biased* if one moving direction accounts for at least
    ``thresholds.biased`` of all steps, otherwise *correlated* if the largest
    fraction of steps repeating the previous (moving) direction reaches
    ``thresholds.correlated``, otherwise *simple*.
    """

    def __init__(self, walk: Walk, thresholds: Optional[AnalysisThresholds] = None) -> None:
        self.walk = walk
        self.thresholds = thresholds or AnalysisThresholds()

    def directions(self):
        steps = self.walk.steps()
        if steps.shape[0] < 1:
            raise AnalysisError("walk is too short to analyse")
        if np.any(np.abs(steps).sum(axis=1) > 1):
            raise AnalysisError("walk contains steps that are not unit moves")
        return [Direction.from_displacement(int(dx), int(dy)) for dx, dy in steps]

    def analyze(self) -> AnalysisResult:
        directions = self.directions()
        n = len(directions)

        counts = {d: 0 for d in Direction}
        repeats = {d: 0 for d in MOVING}
        previous = Direction.STAY
        for d in directions:
            counts[d] += 1
            if d is previous and d is not Direction.STAY:
                repeats[d] += 1
            previous = d

        biases = {d: counts[d] / n for d in Direction}
        persistence = max(repeats[d] / n for d in MOVING)

        for d in MOVING:
            if biases[d] >= self.thresholds.biased:
                return AnalysisResult(WalkModel.BIASED, d, biases[d], biases, persistence)
        if persistence >= self.thresholds.correlated:
            return AnalysisResult(
                WalkModel.CORRELATED, None, persistence, biases, persistence
            )
        return AnalysisResult(WalkModel.SIMPLE, None, 0.0, biases, persistence)


__all__ = [
    "AnalysisError",
    "AnalysisResult",
    "AnalysisThresholds",
    "WalkAnalyzer",
    "WalkModel",
]
