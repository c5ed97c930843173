"""
Random Walk Simulation Library

Samples lattice random walks that start and end at given cells within a
fixed number of steps:
- Kernel: step distributions and their generators
- DynamicProgramBuilder: backward-induction reachability fields
- Walkers: StandardWalker, CorrelatedWalker, MultiStepWalker,
  LandCoverWalker and LevyWalker
"""

import logging

from .analyzer import AnalysisResult, AnalysisThresholds, WalkAnalyzer
from .dp import (
    BoundaryPolicy,
    DynamicProgram,
    DynamicProgramBuilder,
    DynamicProgramConfig,
    DynamicProgramPool,
    GridBounds,
    build_dynamic_program,
    load_pool,
    load_program,
    save_pool,
    save_program,
)
from .errors import *  # noqa: F401,F403
from .errors import __all__ as _error_names
from .kernel import (
    BiasedCorrelatedRwGenerator,
    BiasedRwGenerator,
    CorrelatedRwGenerator,
    Direction,
    Kernel,
    NormalDistGenerator,
    SimpleRwGenerator,
    build_kernel,
)
from .walk import Walk
from .walker import (
    CorrelatedWalker,
    LandCoverWalker,
    LevyWalker,
    MultiStepWalker,
    StandardWalker,
    Walker,
)
from . import utils

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Kernels
    "Direction",
    "Kernel",
    "SimpleRwGenerator",
    "BiasedRwGenerator",
    "CorrelatedRwGenerator",
    "BiasedCorrelatedRwGenerator",
    "NormalDistGenerator",
    "build_kernel",
    # Dynamic programs
    "BoundaryPolicy",
    "GridBounds",
    "DynamicProgram",
    "DynamicProgramBuilder",
    "DynamicProgramConfig",
    "DynamicProgramPool",
    "build_dynamic_program",
    "load_program",
    "load_pool",
    "save_program",
    "save_pool",
    # Walks and walkers
    "Walk",
    "Walker",
    "StandardWalker",
    "CorrelatedWalker",
    "MultiStepWalker",
    "LandCoverWalker",
    "LevyWalker",
    # Analysis
    "WalkAnalyzer",
    "AnalysisThresholds",
    "AnalysisResult",
    # Utilities
    "utils",
    *_error_names,
]
