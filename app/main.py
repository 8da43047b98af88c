# app/main.py
# =============================================================================
# Bernoulli RBM : pipeline entry point
#
# Commands
# --------
# python -m app.main train         # train on DATASET, decode hidden codes, write summary
# python -m app.main demo          # 4-number one-hot system with 2 hidden units
#
# Outputs
# -------
# - ARTIFACTS/summaries/summary.json  (config, errors, decoded codebook)
# - ARTIFACTS/summaries/codebook.png  (p(v | h) per hidden code, best effort)
#
# Notes
# -----
# • DATASET is either "one_hot" (identity rows, size ONE_HOT_SIZE) or a path
#   to a 2-D .npy array; NaN entries in the array mark unobserved values.
# =============================================================================

from __future__ import annotations

# --- Make repo-local packages importable (bernoullirbm/, common/) ------------
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
# ------------------------------------------------------------------------------

import argparse
from typing import Dict, List

import yaml

from bernoullirbm.pipeline import RBMPipeline
from bernoullirbm.sample import codebook, label_states, save_codebook_png
from common.data import load_dataset_npy, one_hot_dataset

DEMO_LABELS = ["one", "two", "three", "four"]


# =============================================================================
# Utilities
# =============================================================================
def load_yaml(path: Path) -> Dict:
    """Parse YAML at `path` (empty file -> {})."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r") as f:
        return yaml.safe_load(f) or {}


def ensure_dirs(cfg: Dict) -> None:
    """Create artifact directories present in cfg (idempotent)."""
    arts = cfg.get("ARTIFACTS", {})
    for key in ("summaries",):
        p = arts.get(key)
        if p:
            Path(p).mkdir(parents=True, exist_ok=True)


def load_dataset(cfg: Dict) -> List[list]:
    """Resolve cfg["DATASET"] to a list of visible rows."""
    source = str(cfg.get("DATASET", "one_hot"))
    if source == "one_hot":
        return one_hot_dataset(int(cfg.get("ONE_HOT_SIZE", 4)))
    return load_dataset_npy(
        Path(source),
        binarize=bool(cfg.get("BINARIZE", False)),
        threshold=float(cfg.get("BIN_THRESHOLD", 0.5)),
    )


def apply_defaults(cfg: Dict) -> Dict:
    """Non-destructive defaults."""
    cfg.setdefault("SEED", 42)
    cfg.setdefault("DATASET", "one_hot")
    cfg.setdefault("ONE_HOT_SIZE", 4)
    cfg.setdefault("HIDDEN_UNITS", 2)
    cfg.setdefault("GIBBS_STEPS", 1)
    cfg.setdefault("LR", 0.1)
    cfg.setdefault("ITERATIONS", 5000)
    cfg.setdefault("LOG_EVERY", 500)
    cfg.setdefault("ARTIFACTS", {})
    cfg["ARTIFACTS"].setdefault("summaries", "artifacts/bernoullirbm/summaries")
    return cfg


# =============================================================================
# Orchestration
# =============================================================================
def run_train(cfg: Dict) -> Dict:
    """Train, decode every hidden code and write the summary."""
    ensure_dirs(cfg)
    dataset = load_dataset(cfg)

    pipe = RBMPipeline(cfg)
    pipe.train(dataset)
    record = pipe.summarize(write_png=False)

    png_path = pipe.summary_dir / "codebook.png"
    try:
        save_codebook_png(codebook(pipe.rbm), png_path)
        print(f"Saved codebook preview to {png_path}")
    except Exception as e:
        print(f"[warn] could not write codebook preview -> {e}")

    for row in record["codebook"]:
        code = "".join(str(b) for b in row["code"])
        print(f"h={code} -> {row['label']}")
    return record


def run_demo(cfg: Dict) -> List[str]:
    """
    One-hot encoding of four numbers learned by two hidden units.
    Prints the label decoded from each hidden combination (any order).
    """
    demo_cfg = dict(cfg)
    demo_cfg.update({"HIDDEN_UNITS": 2, "LABELS": DEMO_LABELS})
    pipe = RBMPipeline(demo_cfg)
    pipe.train(one_hot_dataset(len(DEMO_LABELS)))

    decoded = []
    for code in ([0, 0], [0, 1], [1, 0], [1, 1]):
        units = pipe.rbm.sample_visible(code)
        decoded.append(label_states(units, DEMO_LABELS))
        print(decoded[-1])
    return decoded


# =============================================================================
# CLI
# =============================================================================
def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Bernoulli RBM (CD-n) runner")
    p.add_argument("command", choices=["train", "demo"], help="Which step to run")
    p.add_argument("--config", default="config.yaml", help="Path to YAML config")
    p.add_argument("--seed", type=int, default=None, help="Override SEED from the config")
    p.add_argument("--iterations", type=int, default=None, help="Override ITERATIONS from the config")
    return p.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    cfg = apply_defaults(load_yaml(Path(args.config)))
    if args.seed is not None:
        cfg["SEED"] = args.seed
    if args.iterations is not None:
        cfg["ITERATIONS"] = args.iterations

    print(f"[config] Using {Path(args.config).resolve()}")
    print(f"Summaries -> {Path(cfg['ARTIFACTS']['summaries']).resolve()}")

    if args.command == "train":
        run_train(cfg)
    elif args.command == "demo":
        run_demo(cfg)


if __name__ == "__main__":
    main()
