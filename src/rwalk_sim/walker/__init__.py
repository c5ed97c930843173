"""Walkers sample paths from reachability fields."""

from .base import Move, Walker
from .batch import base_seed, generate_batch
from .correlated import CorrelatedWalker
from .land_cover import LandCoverWalker
from .levy import LevyWalker
from .multi_step import MultiStepWalker
from .standard import StandardWalker

WALKERS = {
    cls.short_name: cls
    for cls in (StandardWalker, CorrelatedWalker, MultiStepWalker, LandCoverWalker, LevyWalker)
}

__all__ = [
    "CorrelatedWalker",
    "LandCoverWalker",
    "LevyWalker",
    "Move",
    "MultiStepWalker",
    "StandardWalker",
    "WALKERS",
    "Walker",
    "base_seed",
    "generate_batch",
]
