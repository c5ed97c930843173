"""Keyed collection of dynamic programs that share bounds, target and horizon."""

from __future__ import annotations

import logging
from typing import Dict, Hashable, Iterator, Optional

from ..errors import PoolInconsistencyError
from .program import Cell, DynamicProgram, GridBounds

logger = logging.getLogger(__name__)


class DynamicProgramPool:
    """
    Programs indexed by a discriminator (heading, field type, phase, ...).

    The first inserted program fixes the bounds, target and horizon; every
    later insertion must agree with it.
    """

    def __init__(self, programs: Optional[Dict[Hashable, DynamicProgram]] = None) -> None:
        self._programs: Dict[Hashable, DynamicProgram] = {}
        for key, program in (programs or {}).items():
            self.insert(key, program)

    def insert(self, key: Hashable, program: DynamicProgram) -> None:
        if self._programs:
            reference = next(iter(self._programs.values()))
            if not reference.matches(program):
                raise PoolInconsistencyError(
                    f"Program for key {key!r} ({program!r}) does not match the pool "
                    f"({reference!r})"
                )
        if key in self._programs:
            logger.warning("Replacing dynamic program for key %r", key)
        self._programs[key] = program

    def get(self, key: Hashable) -> Optional[DynamicProgram]:
        return self._programs.get(key)

    def __getitem__(self, key: Hashable) -> DynamicProgram:
        return self._programs[key]

    def __contains__(self, key: object) -> bool:
        return key in self._programs

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._programs)

    def __len__(self) -> int:
        return len(self._programs)

    def keys(self):
        return self._programs.keys()

    def items(self):
        return self._programs.items()

    def _reference(self) -> DynamicProgram:
        if not self._programs:
            raise PoolInconsistencyError("The pool is empty")
        return next(iter(self._programs.values()))

    @property
    def bounds(self) -> GridBounds:
        return self._reference().bounds

    @property
    def target(self) -> Cell:
        return self._reference().target

    @property
    def horizon(self) -> int:
        return self._reference().horizon

    @property
    def start(self) -> Optional[Cell]:
        return self._reference().start

    def __repr__(self) -> str:
        return f"DynamicProgramPool(keys={list(self._programs)!r})"


__all__ = ["DynamicProgramPool"]
