"""
Exception hierarchy shared by kernels, dynamic programs and walkers.

Every error raised on purpose by the library derives from ``RandomWalkError``
so callers can catch the whole family at once. Configuration problems also
derive from ``ValueError``.
"""

from __future__ import annotations


class RandomWalkError(Exception):
    """Base class of all library errors."""


###############################################################################
# Kernels
###############################################################################


class KernelError(RandomWalkError, ValueError):
    """A kernel matrix or generator configuration is malformed."""


###############################################################################
# Dynamic programs
###############################################################################


class DynamicProgramBuilderError(RandomWalkError, ValueError):
    """The builder was configured inconsistently."""


class NoTimeLimitSet(DynamicProgramBuilderError):
    pass


class NoKernelSet(DynamicProgramBuilderError):
    pass


class WrongSizeOfFieldProbabilities(DynamicProgramBuilderError):
    pass


class BarrierOutOfRange(DynamicProgramBuilderError):
    pass


class TargetOutOfRange(DynamicProgramBuilderError):
    pass


class MissingFieldTypeKernel(DynamicProgramBuilderError):
    pass


class MissingHeadingKernel(DynamicProgramBuilderError):
    pass


class PoolInconsistencyError(RandomWalkError, ValueError):
    """Members of a pool disagree on bounds, target or horizon."""


class InvalidProgramData(RandomWalkError, ValueError):
    """A stored table does not satisfy the dynamic program invariants."""


###############################################################################
# Walkers
###############################################################################


class WalkerError(RandomWalkError):
    """Base class of errors raised while sampling walks."""


class RequiresSingleDynamicProgram(WalkerError):
    pass


class RequiresMultipleDynamicPrograms(WalkerError):
    pass


class NoPathExists(WalkerError):
    """The target cannot be reached in the remaining number of steps."""


class InconsistentPath(WalkerError):
    """A sampled walk does not terminate at the target."""


class RandomDistributionError(WalkerError):
    """A set of weights could not be normalised into a distribution."""


class LandCoverError(WalkerError, ValueError):
    """The land-cover grid does not match the dynamic program."""


###############################################################################
# Analysis
###############################################################################


class AnalysisError(RandomWalkError, ValueError):
    """A walk cannot be analysed (too short, or contains non-unit steps)."""


__all__ = [
    "RandomWalkError",
    "KernelError",
    "DynamicProgramBuilderError",
    "NoTimeLimitSet",
    "NoKernelSet",
    "WrongSizeOfFieldProbabilities",
    "BarrierOutOfRange",
    "TargetOutOfRange",
    "MissingFieldTypeKernel",
    "MissingHeadingKernel",
    "PoolInconsistencyError",
    "InvalidProgramData",
    "WalkerError",
    "RequiresSingleDynamicProgram",
    "RequiresMultipleDynamicPrograms",
    "NoPathExists",
    "InconsistentPath",
    "RandomDistributionError",
    "LandCoverError",
    "AnalysisError",
]
