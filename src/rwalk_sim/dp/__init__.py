"""Reachability fields: grid description, builder, pools and persistence."""

from .builder import DynamicProgramBuilder, DynamicProgramConfig, build_dynamic_program
from .pool import DynamicProgramPool
from .program import BoundaryPolicy, DynamicProgram, GridBounds
from .store import load_pool, load_program, save_pool, save_program

__all__ = [
    "BoundaryPolicy",
    "DynamicProgram",
    "DynamicProgramBuilder",
    "DynamicProgramConfig",
    "DynamicProgramPool",
    "GridBounds",
    "build_dynamic_program",
    "load_pool",
    "load_program",
    "save_pool",
    "save_program",
]
