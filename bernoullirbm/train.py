# bernoullirbm/train.py
"""
Training driver for the Bernoulli-Bernoulli RBM engine.

What this module provides
-------------------------
- `RBMTrainConfig`: iterations / CD-n hyperparameters / logging cadence.
- `train_rbm(...)`: repeated online CD-n sweeps with optional early stopping.

Design choices
--------------
- One "iteration" is one `RBM.train` call, i.e. one online sweep over every
  row of the dataset (weights change after each row).
- The monitored quantity is the mean of the per-row errors returned by the
  engine; the engine itself never aggregates.
- The first sweep passes `hidden_units`, so an uninitialised engine builds its
  weights from the dataset's visible proportions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from common.data import to_rows
from common.interfaces import LogCallback

from .model import RBM


@dataclass
class RBMTrainConfig:
    iterations: int = 5000
    learning_rate: float = 0.1
    gibbs_steps: int = 1
    hidden_units: Optional[int] = 2
    log_every: int = 500
    # Early stopping on the mean sweep error (None disables it)
    patience: Optional[int] = None
    min_delta: float = 0.0


def train_rbm(
    rbm: RBM,
    dataset,
    *,
    cfg: RBMTrainConfig,
    log_cb: Optional[LogCallback] = None,
) -> Dict[str, Any]:
    """
    Train `rbm` on `dataset` for up to `cfg.iterations` sweeps.

    Returns
    -------
    dict with {"errors": list[float] (mean error per sweep), "best_error": float,
    "best_iteration": int, "iterations": int, "stopped_early": bool}
    """
    if cfg.iterations < 1:
        raise ValueError(f"iterations must be >= 1; got {cfg.iterations}")
    rows = to_rows(dataset)

    errors = []
    best_err = np.inf
    best_iter = 0
    wait = 0
    stopped_early = False

    for it in range(1, cfg.iterations + 1):
        row_errors = rbm.train(
            rows,
            learning_rate=cfg.learning_rate,
            gibbs_steps=cfg.gibbs_steps,
            hidden_units=cfg.hidden_units,
        )
        err = float(np.mean(row_errors)) if row_errors else float("nan")
        errors.append(err)

        if np.isfinite(err) and err < best_err - cfg.min_delta:
            best_err = err
            best_iter = it
            wait = 0
            stop = False
        else:
            wait += 1
            stop = cfg.patience is not None and wait >= int(cfg.patience)

        last = stop or it == cfg.iterations
        if log_cb is not None and (it == 1 or it % max(1, int(cfg.log_every)) == 0 or last):
            log_cb(it, err, float(best_err) if np.isfinite(best_err) else None)
        if stop:
            stopped_early = True
            break

    return {
        "errors": errors,
        "best_error": float(best_err) if np.isfinite(best_err) else float("nan"),
        "best_iteration": int(best_iter),
        "iterations": len(errors),
        "stopped_early": stopped_early,
    }


__all__ = [
    "RBMTrainConfig",
    "train_rbm",
]
