# bernoullirbm/pipeline.py

"""
Training + read-out pipeline for the Bernoulli-Bernoulli RBM.

Why this exists
---------------
A small wrapper that:
  • trains one RBM engine with online CD-n for a fixed number of sweeps
  • decodes what every hidden code has learned (argmax + optional labels)
  • writes a human-readable summary of the run

Artifacts written by `.summarize()`
-----------------------------------
ARTIFACTS["summaries"]/
  summary.json   -> config, final/best errors, decoded codebook (no weights)
  codebook.png   -> p(v | h) heat-map, one row per hidden code
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.interfaces import StageLogger

from .model import RBM, RBMConfig, build_rbm
from .sample import codebook, decode_argmax, save_codebook_png
from .train import RBMTrainConfig, train_rbm


def _ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------
# Pipeline config
# ---------------------------------------------------------------------
@dataclass
class RBMPipelineConfig:
    # RBM hyperparameters
    HIDDEN_UNITS: int = 2
    GIBBS_STEPS: int = 1
    LR: float = 0.1

    # Training loop
    ITERATIONS: int = 5000
    LOG_EVERY: int = 500
    PATIENCE: Optional[int] = None
    MIN_DELTA: float = 0.0

    # Read-out
    LABELS: Optional[List[str]] = None

    # Reproducibility
    SEED: Optional[int] = 42

    # Artifacts
    ARTIFACTS: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------
class RBMPipeline:
    """
    Orchestrates training, decoding and summaries for a single RBM.
    """

    def __init__(self, cfg: Dict):
        # Map dict -> dataclass (with defaults)
        patience = cfg.get("PATIENCE", None)
        labels = cfg.get("LABELS", None)
        self.cfg = RBMPipelineConfig(
            HIDDEN_UNITS=int(cfg.get("HIDDEN_UNITS", 2)),
            GIBBS_STEPS=int(cfg.get("GIBBS_STEPS", 1)),
            LR=float(cfg.get("LR", 0.1)),
            ITERATIONS=int(cfg.get("ITERATIONS", 5000)),
            LOG_EVERY=int(cfg.get("LOG_EVERY", 500)),
            PATIENCE=None if patience is None else int(patience),
            MIN_DELTA=float(cfg.get("MIN_DELTA", 0.0)),
            LABELS=None if labels is None else [str(x) for x in labels],
            SEED=cfg.get("SEED", 42),
            ARTIFACTS=dict(cfg.get("ARTIFACTS", {}) or {}),
        )
        if self.cfg.HIDDEN_UNITS < 1:
            raise ValueError(f"HIDDEN_UNITS must be >= 1; got {self.cfg.HIDDEN_UNITS}")
        if self.cfg.GIBBS_STEPS < 1:
            raise ValueError(f"GIBBS_STEPS must be >= 1; got {self.cfg.GIBBS_STEPS}")

        self.summary_dir = Path(self.cfg.ARTIFACTS.get("summaries", "artifacts/bernoullirbm/summaries"))

        # Optional external logger callback: cb(stage: str, message: str)
        self.log_cb: Optional[StageLogger] = cfg.get("LOG_CB", None)

        self.rbm: RBM = build_rbm(
            RBMConfig(
                hidden_units=self.cfg.HIDDEN_UNITS,
                gibbs_steps=self.cfg.GIBBS_STEPS,
                learning_rate=self.cfg.LR,
                seed=self.cfg.SEED,
            ),
            weights=cfg.get("WEIGHTS", None),
        )
        self.history: Optional[Dict[str, Any]] = None

    # ----------------------- Logging -----------------------
    def _log(self, stage: str, msg: str) -> None:
        if self.log_cb:
            self.log_cb(stage, msg)
            return
        print(f"[{stage}] {msg}")

    # ----------------------- Training -----------------------
    def train(self, dataset) -> Dict[str, Any]:
        """
        Run up to ITERATIONS online CD-n sweeps over `dataset`.

        Returns the training history from `train_rbm`.
        """
        train_cfg = RBMTrainConfig(
            iterations=self.cfg.ITERATIONS,
            learning_rate=self.cfg.LR,
            gibbs_steps=self.cfg.GIBBS_STEPS,
            hidden_units=self.cfg.HIDDEN_UNITS,
            log_every=self.cfg.LOG_EVERY,
            patience=self.cfg.PATIENCE,
            min_delta=self.cfg.MIN_DELTA,
        )
        self._log(
            "train",
            f"RBM(H={self.cfg.HIDDEN_UNITS}) on {len(dataset)} rows "
            f"gibbs_steps={self.cfg.GIBBS_STEPS} lr={self.cfg.LR:g} iterations={self.cfg.ITERATIONS}",
        )

        def _epoch_log(it: int, err: float, best: Optional[float]) -> None:
            best_s = "n/a" if best is None else f"{best:.5f}"
            self._log("train", f"iteration {it:05d}: error={err:.5f} | best={best_s}")

        self.history = train_rbm(self.rbm, dataset, cfg=train_cfg, log_cb=_epoch_log)
        if self.history["stopped_early"]:
            self._log(
                "train",
                f"early stop at iteration {self.history['iterations']} "
                f"(best={self.history['best_error']:.5f} @ {self.history['best_iteration']}).",
            )
        return self.history

    # Backwards-friendly alias (some runners may call .fit)
    def fit(self, *args, **kwargs):
        return self.train(*args, **kwargs)

    # ----------------------- Read-out -----------------------
    def decode(self) -> List[Dict[str, Any]]:
        """
        Decode every hidden code to the visible unit it most strongly activates.
        """
        labels = self.cfg.LABELS
        rows = []
        for code, units in codebook(self.rbm):
            idx = decode_argmax(units)
            rows.append({
                "code": list(code),
                "argmax": idx,
                "label": labels[idx] if labels and idx < len(labels) else str(idx),
                "probabilities": [u.probability for u in units],
            })
        return rows

    def summarize(self, write_png: bool = True) -> Dict[str, Any]:
        """Write summary.json (and codebook.png unless write_png=False) under ARTIFACTS['summaries']."""
        _ensure_dir(self.summary_dir)
        decoded = self.decode()
        history = self.history or {}
        errors = history.get("errors", [])

        record = {
            "config": {k: v for k, v in asdict(self.cfg).items() if k != "ARTIFACTS"},
            "visible_units": self.rbm.visible_units,
            "hidden_units": self.rbm.hidden_units,
            "iterations": history.get("iterations", 0),
            "final_error": errors[-1] if errors else None,
            "best_error": history.get("best_error"),
            "stopped_early": history.get("stopped_early", False),
            "codebook": decoded,
            "distinct_decodes": len({row["argmax"] for row in decoded}),
        }
        out_path = self.summary_dir / "summary.json"
        with out_path.open("w") as f:
            json.dump(record, f, indent=2)
        self._log("summary", f"Saved {out_path}")

        if write_png:
            png_path = self.summary_dir / "codebook.png"
            save_codebook_png(codebook(self.rbm), png_path)
            self._log("summary", f"Saved {png_path}")
        return record


__all__ = ["RBMPipeline", "RBMPipelineConfig"]
