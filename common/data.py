# common/data.py

from __future__ import annotations

from pathlib import Path
from typing import List

import numpy as np

from bernoullirbm.model import MISSING, is_missing


# ---------------------------------------------------------------------
# Core transforms
# ---------------------------------------------------------------------
def to_rows(data) -> List[list]:
    """
    Convert a dataset (list of rows or 2-D array) to plain Python rows.

    NaN and None entries become `MISSING`; everything else is passed through
    as float so the engine sees one uniform representation.
    """
    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise ValueError(f"Dataset must be 2-D (rows, visible); got shape {data.shape}")
        rows = data.astype("float64", copy=False).tolist()
    else:
        rows = [list(row) for row in data]

    out = []
    for row in rows:
        out.append([
            MISSING if is_missing(v) or (isinstance(v, float) and np.isnan(v)) else float(v)
            for v in row
        ])
    return out


def binarize01(x: np.ndarray, threshold: float = 0.5) -> np.ndarray:
    """
    Deterministically binarize values in [0,1] at `threshold` (NaN stays NaN).
    """
    x = np.asarray(x, dtype="float64")
    out = (x >= float(threshold)).astype("float64")
    out[np.isnan(x)] = np.nan
    return out


def one_hot_dataset(n: int) -> List[List[int]]:
    """The n x n identity as rows: [[1,0,..],[0,1,..],...]."""
    if n < 1:
        raise ValueError(f"n must be >= 1; got {n}")
    return np.eye(n, dtype=int).tolist()


# ---------------------------------------------------------------------
# Dataset loader
# ---------------------------------------------------------------------
def load_dataset_npy(
    path: Path | str,
    *,
    binarize: bool = False,
    threshold: float = 0.5,
) -> List[list]:
    """
    Load a (N, V) visible dataset from a .npy file.

    Values 0..255 are scaled to [0,1]; NaN marks unobserved entries.
    Returns rows as produced by `to_rows`.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset file not found: {path}")

    x = np.load(path).astype("float64")
    if x.ndim == 1:
        x = x.reshape((1, -1))
    if x.size and np.nanmax(x) > 1.5:  # typical for 0..255 arrays
        x = x / 255.0
    if binarize:
        x = binarize01(x, threshold=threshold)
    return to_rows(x)
