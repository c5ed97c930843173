# src/rwalk_sim/utils.py
from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

import numpy as np

from .walk import Walk

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None  # type: ignore


@dataclass
class WalkBatch:
    """Walks sampled together plus the parameters that produced them."""

    walks: List[Walk] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.walks)


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def npz_path(path: str | os.PathLike[str]) -> Path:
    """``path`` as numpy writes it: with ``.npz`` appended when missing."""
    path = Path(path)
    if path.name.endswith(".npz"):
        return path
    return path.with_name(path.name + ".npz")


def save_walks(
    path: str | os.PathLike[str],
    walks: Sequence[Walk],
    meta: Dict[str, Any] | None = None,
    *,
    overwrite: bool = True,
) -> Path:
    """
    Serialize walks to a compressed .npz and return the path written.

    Walks are concatenated into one ``cells``/``times`` array; ``offsets``
    marks where each walk starts.
    """
    path = npz_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not overwrite and path.exists():
        raise FileExistsError(f"{path} already exists")
    lengths = [len(w) for w in walks]
    offsets = np.concatenate(([0], np.cumsum(lengths))).astype(np.int64)
    if walks:
        cells = np.concatenate([w.cells for w in walks])
        times = np.concatenate([w.times for w in walks])
    else:
        cells = np.zeros((0, 2), dtype=np.int64)
        times = np.zeros(0, dtype=np.int64)
    np.savez_compressed(
        path,
        cells=cells,
        times=times,
        offsets=offsets,
        meta=np.array(json.dumps(meta or {})),
    )
    return path


def load_walks(path: str | os.PathLike[str]) -> WalkBatch:
    """Load walks written by ``save_walks``."""
    with np.load(npz_path(path), allow_pickle=False) as data:
        cells = data["cells"]
        times = data["times"]
        offsets = data["offsets"]
        meta = json.loads(str(data["meta"])) if "meta" in data else {}
    walks = [
        Walk(cells[a:b], times[a:b]) for a, b in zip(offsets[:-1], offsets[1:])
    ]
    return WalkBatch(walks=walks, meta=meta)


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load walk parameters (kernel, grid, walker settings) from JSON or TOML.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        if tomllib is None:
            raise RuntimeError("tomllib is unavailable; cannot parse TOML files")
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")
