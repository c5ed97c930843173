"""
Persistence of dynamic programs and pools as compressed ``.npz`` archives.

Metadata is stored as a JSON string so archives load without pickle.
Loaded programs are checked with ``DynamicProgram.check_invariants``.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Hashable, List, Tuple

import numpy as np

from ..errors import InvalidProgramData
from ..kernel import Direction, Kernel
from ..utils import npz_path
from .pool import DynamicProgramPool
from .program import DynamicProgram, GridBounds

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def _kernel_arrays(kernels: Dict[int, Kernel]) -> Dict[str, Any]:
    types = sorted(kernels)
    size = max(k.size for k in kernels.values())
    return {
        "kernel_types": np.array(types, dtype=np.int64),
        "kernels": np.stack([kernels[t].pad(size).probabilities for t in types]),
        "kernel_names": [[kernels[t].name(short=True), kernels[t].name()] for t in types],
    }


def _kernels_from(data, names: List[List[str]]) -> Dict[int, Kernel]:
    types = data["kernel_types"].tolist()
    stack = data["kernels"]
    if len(types) != stack.shape[0] or len(names) != len(types):
        raise InvalidProgramData("Kernel arrays do not line up")
    return {int(t): Kernel(stack[i], name=tuple(names[i])) for i, t in enumerate(types)}


def _encode_key(key: Hashable) -> Tuple[str, Any]:
    if isinstance(key, Direction):
        return "direction", key.name
    if isinstance(key, (int, np.integer)):
        return "int", int(key)
    return "str", str(key)


def _decode_key(kind: str, value: Any) -> Hashable:
    if kind == "direction":
        return Direction[value]
    if kind == "int":
        return int(value)
    return str(value)


def _write(path: str | os.PathLike[str], meta: Dict[str, Any], arrays: Dict[str, np.ndarray]) -> Path:
    path = npz_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    meta = dict(meta, format_version=FORMAT_VERSION)
    np.savez_compressed(path, meta=np.array(json.dumps(meta)), **arrays)
    return path


def _read(path: str | os.PathLike[str]):
    with np.load(npz_path(path), allow_pickle=False) as archive:
        data = {name: archive[name] for name in archive.files}
    if "meta" not in data:
        raise InvalidProgramData(f"{path} has no metadata")
    meta = json.loads(str(data["meta"]))
    if meta.get("format_version") != FORMAT_VERSION:
        raise InvalidProgramData(f"Unsupported format version {meta.get('format_version')!r}")
    return data, meta


def _program_from(meta: Dict[str, Any], table, field_types, field_probs, kernels, key=None):
    try:
        bounds = GridBounds(*meta["bounds"])
        program = DynamicProgram(
            table,
            bounds,
            tuple(meta["target"]),
            kernels,
            field_types,
            field_probs,
            boundary=meta["boundary"],
            renormalize=meta["renormalize"],
            start=None if meta["start"] is None else tuple(meta["start"]),
            key=key,
        )
    except InvalidProgramData:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidProgramData(f"Malformed program archive: {exc}") from exc
    program.check_invariants()
    return program


def save_program(path: str | os.PathLike[str], dp: DynamicProgram) -> Path:
    kernels = _kernel_arrays(dp.kernels_by_type)
    meta = dp.metadata()
    meta["kernel_names"] = kernels.pop("kernel_names")
    path = _write(
        path,
        meta,
        {
            "table": dp.table,
            "field_types": dp.field_types,
            "field_probabilities": dp.field_probabilities,
            **kernels,
        },
    )
    logger.debug("Saved %r to %s", dp, path)
    return path


def load_program(path: str | os.PathLike[str]) -> DynamicProgram:
    data, meta = _read(path)
    try:
        kernels = _kernels_from(data, meta["kernel_names"])
        table = data["table"]
        field_types = data["field_types"]
        field_probs = data["field_probabilities"]
    except KeyError as exc:
        raise InvalidProgramData(f"{path} is missing {exc}") from exc
    return _program_from(meta, table, field_types, field_probs, kernels)


def save_pool(path: str | os.PathLike[str], pool: DynamicProgramPool) -> Path:
    if len(pool) == 0:
        raise InvalidProgramData("Cannot save an empty pool")
    keys = list(pool)
    members = [pool[k] for k in keys]
    reference = members[0]
    meta = reference.metadata()
    meta["keys"] = [list(_encode_key(k)) for k in keys]
    arrays: Dict[str, np.ndarray] = {
        "tables": np.stack([m.table for m in members]),
        "field_probabilities": reference.field_probabilities,
        "field_types": np.stack([m.field_types for m in members]),
    }
    meta["kernel_names"] = []
    for i, member in enumerate(members):
        kernels = _kernel_arrays(member.kernels_by_type)
        meta["kernel_names"].append(kernels.pop("kernel_names"))
        arrays[f"kernel_types_{i}"] = kernels["kernel_types"]
        arrays[f"kernels_{i}"] = kernels["kernels"]
    path = _write(path, meta, arrays)
    logger.debug("Saved %r to %s", pool, path)
    return path


def load_pool(path: str | os.PathLike[str]) -> DynamicProgramPool:
    data, meta = _read(path)
    try:
        tables = data["tables"]
        field_types = data["field_types"]
        field_probs = data["field_probabilities"]
        keys = [_decode_key(kind, value) for kind, value in meta["keys"]]
        if tables.shape[0] != len(keys) or field_types.shape[0] != len(keys):
            raise InvalidProgramData("Pool arrays do not match the stored keys")
        pool = DynamicProgramPool()
        for i, key in enumerate(keys):
            member = {
                "kernel_types": data[f"kernel_types_{i}"],
                "kernels": data[f"kernels_{i}"],
            }
            kernels = _kernels_from(member, meta["kernel_names"][i])
            pool.insert(
                key,
                _program_from(meta, tables[i], field_types[i], field_probs, kernels, key=key),
            )
    except KeyError as exc:
        raise InvalidProgramData(f"{path} is missing {exc}") from exc
    return pool


__all__ = ["load_pool", "load_program", "save_pool", "save_program"]
