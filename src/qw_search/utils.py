# src/qw_search/utils.py
from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None  # type: ignore


@dataclass
class SampleResult:
    """Common container for success-probability outputs (trajectories or samples)."""

    probabilities: Optional[np.ndarray] = None
    meta: Optional[Dict[str, Any]] = None

    def ensure_meta(self) -> Dict[str, Any]:
        if self.meta is None:
            self.meta = {}
        return self.meta


def make_rng(seed: int | np.random.SeedSequence | None = None) -> np.random.Generator:
    """Independent numpy Generator; pass a seed or SeedSequence for reproducibility."""
    return np.random.default_rng(seed)


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def save_result(
    path: str | os.PathLike[str], result: SampleResult, *, overwrite: bool = True
) -> None:
    """Serialize a SampleResult to a compressed .npz file."""
    if not overwrite and Path(path).exists():
        raise FileExistsError(f"{path} already exists")
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    out: Dict[str, Any] = {}
    if result.probabilities is not None:
        out["probabilities"] = np.asarray(result.probabilities, dtype=np.float64)

    # Arrays in meta go to the top level, everything else stays in the pickled dict
    meta_clean = {}
    for key, value in (result.meta or {}).items():
        if isinstance(value, np.ndarray):
            out[key] = value
        else:
            meta_clean[key] = value
    out["meta"] = np.array(meta_clean, dtype=object)
    np.savez_compressed(path, **out)


def load_result(path: str | os.PathLike[str]) -> SampleResult:
    """Load a .npz written by save_result."""
    if not Path(path).exists():
        raise FileNotFoundError(f"Missing result file: {path}")
    with np.load(path, allow_pickle=True) as data:
        probabilities = (
            data["probabilities"].astype(np.float64) if "probabilities" in data else None
        )
        meta: Dict[str, Any] = {}
        if "meta" in data:
            meta = dict(data["meta"].item())
        for key in data.files:
            if key not in ("probabilities", "meta") and key not in meta:
                meta[key] = data[key]
    return SampleResult(probabilities=probabilities, meta=meta)


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load simulation parameters from JSON or TOML.
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
