"""
Bernoulli-Bernoulli Restricted Boltzmann Machine (RBM) package.

What this package provides
--------------------------
- `RBM`: the learning/inference engine (single (V+1)x(H+1) weight matrix,
  stochastic layer sampling in both directions, online CD-n training).
- `Unit`, `MISSING`, `InvalidArgument`, `NotInitialized`: the engine's value
  and error types.
- `RBMPipeline`: a small wrapper that trains an engine, decodes every hidden
  code and writes a summary.
- `make_pipeline(cfg)`: convenience constructor returning a pipeline instance
  from a simple config dict.

Design notes
------------
- The engine symbols are imported eagerly; the pipeline is imported lazily so
  `common.data` (which needs `MISSING`) can import this package without a cycle.

Typical usage
-------------
>>> from bernoullirbm import RBM
>>> rbm = RBM(rng=0)
>>> errors = rbm.train([[1, 0, 0, 0], [0, 1, 0, 0]], 0.1, 1, hidden_units=2)
>>> units = rbm.sample_visible([0, 1])
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict

from .model import (
    MISSING,
    RBM,
    InvalidArgument,
    NotInitialized,
    RBMConfig,
    Unit,
    build_rbm,
    gaussian_rand,
    logistic,
    visible_proportions,
)

__all__ = [
    "RBM",
    "RBMConfig",
    "Unit",
    "MISSING",
    "InvalidArgument",
    "NotInitialized",
    "build_rbm",
    "gaussian_rand",
    "logistic",
    "visible_proportions",
    "RBMPipeline",
    "make_pipeline",
    "__version__",
]
__version__ = RBM.version


def _load_pipeline_class():
    """Import and return `RBMPipeline` from `bernoullirbm.pipeline`."""
    mod = import_module(".pipeline", __name__)
    return getattr(mod, "RBMPipeline")


def make_pipeline(cfg: Dict[str, Any]):
    """
    Convenience constructor.

    Args
    ----
    cfg : dict
        Configuration mapping (HIDDEN_UNITS, GIBBS_STEPS, LR, ITERATIONS, ...)

    Returns
    -------
    RBMPipeline
        A ready-to-use pipeline instance.
    """
    cls = _load_pipeline_class()
    return cls(cfg)


def __getattr__(name: str):
    """Provide `RBMPipeline` on demand."""
    if name == "RBMPipeline":
        return _load_pipeline_class()
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
