# bernoullirbm/model.py
"""
Bernoulli-Bernoulli Restricted Boltzmann Machine (RBM) engine.

What you get
------------
- Unit:          (state, probability) pair returned by the sampling passes.
- MISSING:       explicit marker for an unobserved visible value.
- RBMConfig:     Dataclass of core hyperparameters.
- RBM:           Single-matrix RBM with:
                   * explicit initialisation (log-odds visible biases)
                   * sample_hidden / sample_visible (stochastic layer passes)
                   * online CD-n training (one update per dataset row)
                   * reconstruct / free_energy read-outs
- build_rbm():   Convenience constructor (seeded generator).
- logistic(), gaussian_rand(): numeric helpers shared by the engine.

Conventions
-----------
- The weight matrix has shape (V+1, H+1). Row 0 holds the hidden biases,
  column 0 holds the visible biases and cell [0, 0] is never read or written.
- The same matrix is read in both directions: v -> h uses W[:, j], h -> v
  uses W[i, :].
- All randomness comes from the engine's `numpy.random.Generator`.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from numbers import Real
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

RngLike = Union[np.random.Generator, int, None]

# Visible proportions are clipped to this distance from 0/1 before log-odds.
PROPORTION_EPS = 1e-3
INIT_WEIGHT_SD = 0.01
# Unit probabilities never reach exactly 0 or 1 in float64.
_P_TINY = np.finfo(np.float64).eps


# =============================================================================
# Errors
# =============================================================================
class InvalidArgument(ValueError):
    """Input to the engine has the wrong shape, length or type."""


class NotInitialized(RuntimeError):
    """The engine has no weight matrix and nothing to build one from."""


# =============================================================================
# Values
# =============================================================================
class _Missing:
    """Singleton marking an unobserved unit value."""

    _instance: Optional["_Missing"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Missing, ())


MISSING = _Missing()


def is_missing(value) -> bool:
    return value is MISSING or value is None


@dataclass(frozen=True)
class Unit:
    """A sampled binary state and the probability it was drawn from."""
    state: int
    probability: float


@dataclass
class RBMConfig:
    """
    Hyperparameters for the RBM.

    `RBM.train` falls back to these when an argument is omitted.

    hidden_units : Optional[int]
        Number of hidden (latent) binary units used for lazy initialisation
        (None -> training an uninitialised engine raises NotInitialized).
    gibbs_steps : int
        Steps of Gibbs sampling per update (CD-n).
    learning_rate : float
        Step size of the CD-n update.
    seed : Optional[int]
        Seed for the engine's generator (None -> unseeded).
    """
    hidden_units: Optional[int] = None
    gibbs_steps: int = 1
    learning_rate: float = 0.1
    seed: Optional[int] = None


# =============================================================================
# Small helpers
# =============================================================================
def _as_generator(rng: RngLike) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def logistic(x):
    """sigma(x) = 1 / (1 + e^-x); works on scalars and arrays, stays inside (0, 1)."""
    with np.errstate(over="ignore"):
        p = 1.0 / (1.0 + np.exp(-np.asarray(x, dtype=np.float64)))
    return np.clip(p, _P_TINY, 1.0 - _P_TINY)


def gaussian_rand(standard_deviation: float, size=None, rng: RngLike = None):
    """
    Approximate N(0, sd) draw: mean of 6 uniforms rescaled to [-sd, sd].

    Bounded and only roughly bell-shaped; the weight noise magnitude is a
    tuning knob here, not a statistical requirement.
    """
    gen = _as_generator(rng)
    shape = (6,) if size is None else (6,) + tuple(np.atleast_1d(size))
    total = gen.random(shape).sum(axis=0)
    out = (total / 6.0) * 2.0 * standard_deviation - standard_deviation
    return float(out) if size is None else out


def _is_number(value) -> bool:
    return isinstance(value, (Real, np.number, np.bool_)) and not isinstance(value, (str, bytes))


def _layer_input(values, expected: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Validate a layer assignment and split it into (values, present-mask).

    Missing entries become 0.0 in `values` and False in the mask.
    """
    if isinstance(values, (str, bytes, dict)) or not isinstance(values, (Sequence, np.ndarray)):
        raise InvalidArgument(f"Layer input must be a sequence; got {type(values).__name__}")
    if isinstance(values, np.ndarray) and values.ndim != 1:
        raise InvalidArgument(f"Layer input must be 1-D; got shape {values.shape}")
    n = len(values)
    if n == 0:
        raise InvalidArgument("Layer input is empty")
    if n != expected:
        raise InvalidArgument(f"Layer input has {n} values, expected {expected}")

    x = np.zeros(n, dtype=np.float64)
    present = np.ones(n, dtype=bool)
    for i, value in enumerate(values):
        if is_missing(value):
            present[i] = False
        elif _is_number(value) and math.isfinite(value):
            x[i] = float(value)
        else:
            raise InvalidArgument(f"Layer input[{i}] is not a finite number: {value!r}")
    return x, present


# =============================================================================
# RBM core
# =============================================================================
class RBM:
    """
    Bernoulli-Bernoulli RBM trained with online CD-n.

    Variables
    ---------
    weights : (V+1, H+1)  Shared weight matrix with bias row/column.
    """

    version = "0.1.0"

    def __init__(self, weights=None, *, rng: RngLike = None, config: Optional[RBMConfig] = None):
        self.rng = _as_generator(rng)
        self.config = config if config is not None else RBMConfig()
        self._lock = threading.RLock()
        self._weights: Optional[np.ndarray] = None
        if weights is not None:
            self._weights = self._check_weights(weights)

    # ----- Properties -----
    @property
    def is_initialized(self) -> bool:
        return self._weights is not None

    @property
    def visible_units(self) -> int:
        return self._require_weights().shape[0] - 1

    @property
    def hidden_units(self) -> int:
        return self._require_weights().shape[1] - 1

    @property
    def weights(self) -> Optional[np.ndarray]:
        """Read-only view of the weight matrix (None before initialisation)."""
        if self._weights is None:
            return None
        view = self._weights.view()
        view.flags.writeable = False
        return view

    @staticmethod
    def _check_weights(weights) -> np.ndarray:
        try:
            W = np.array(weights, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidArgument(f"Weights must be a numeric matrix: {e}") from e
        if W.ndim != 2 or W.shape[0] < 2 or W.shape[1] < 2:
            raise InvalidArgument(f"Weights must be 2-D with shape >= (2, 2); got {W.shape}")
        finite = np.isfinite(W)
        finite[0, 0] = True
        if not finite.all():
            raise InvalidArgument("Weights contain non-finite values")
        return W

    def _require_weights(self) -> np.ndarray:
        if self._weights is None:
            raise NotInitialized("RBM has no weights; train with hidden_units or pass weights")
        return self._weights

    # ----- Initialisation -----
    def initialize(self, visible_proportions: Sequence[float], hidden_units: int) -> None:
        """
        Build a fresh (V+1, H+1) matrix.

        Visible biases are the log-odds of each unit's proportion in the
        training data, hidden biases start at 0 and regular weights are
        `gaussian_rand(0.01)`.
        """
        p = np.asarray(visible_proportions, dtype=np.float64)
        if p.ndim != 1 or p.size == 0:
            raise InvalidArgument("visible_proportions must be a non-empty 1-D sequence")
        if not np.all((p >= 0.0) & (p <= 1.0)):
            raise InvalidArgument("visible_proportions must lie in [0, 1]")
        if isinstance(hidden_units, bool) or not isinstance(hidden_units, (int, np.integer)) or hidden_units < 1:
            raise InvalidArgument(f"hidden_units must be a positive integer; got {hidden_units!r}")

        V, H = p.size, int(hidden_units)
        with self._lock:
            W = np.zeros((V + 1, H + 1), dtype=np.float64)
            p = np.clip(p, PROPORTION_EPS, 1.0 - PROPORTION_EPS)
            W[1:, 0] = np.log(p / (1.0 - p))
            W[1:, 1:] = gaussian_rand(INIT_WEIGHT_SD, size=(V, H), rng=self.rng)
            self._weights = W

    # ----- Up/Down passes -----
    def _hidden_probs(self, x: np.ndarray, present: np.ndarray) -> np.ndarray:
        W = self._weights
        return logistic(W[0, 1:] + (x * present) @ W[1:, 1:])

    def _visible_probs(self, h: np.ndarray, present: np.ndarray) -> np.ndarray:
        W = self._weights
        return logistic(W[1:, 0] + W[1:, 1:] @ (h * present))

    def _bernoulli(self, probs: np.ndarray) -> List[Unit]:
        rnd = self.rng.random(probs.shape)
        return [Unit(int(p > u), float(p)) for p, u in zip(probs, rnd)]

    def sample_hidden(self, visible) -> List[Unit]:
        """v -> h: H units sampled from p(h_j = 1 | v)."""
        with self._lock:
            W = self._require_weights()
            x, present = _layer_input(visible, W.shape[0] - 1)
            return self._bernoulli(self._hidden_probs(x, present))

    def sample_visible(self, hidden) -> List[Unit]:
        """h -> v: V units sampled from p(v_i = 1 | h)."""
        with self._lock:
            W = self._require_weights()
            h, present = _layer_input(hidden, W.shape[1] - 1)
            return self._bernoulli(self._visible_probs(h, present))

    # ----- Mean-field read-outs -----
    def reconstruct(self, visible) -> List[float]:
        """Deterministic v -> p(h) -> p(v) pass (probabilities only)."""
        with self._lock:
            W = self._require_weights()
            x, present = _layer_input(visible, W.shape[0] - 1)
            h_prob = self._hidden_probs(x, present)
            return self._visible_probs(h_prob, np.ones_like(h_prob, dtype=bool)).tolist()

    def free_energy(self, visible) -> float:
        """F(v) = -v.b - sum_j softplus(c_j + v.W_j) over observed units."""
        with self._lock:
            W = self._require_weights()
            x, present = _layer_input(visible, W.shape[0] - 1)
            x = x * present
            vbias_term = float(x @ W[1:, 0])
            hidden_lin = W[0, 1:] + x @ W[1:, 1:]
            hidden_term = float(np.logaddexp(0.0, hidden_lin).sum())
            return -(vbias_term + hidden_term)

    # ----- Training -----
    def train(
        self,
        dataset,
        learning_rate: Optional[float] = None,
        gibbs_steps: Optional[int] = None,
        hidden_units: Optional[int] = None,
    ) -> List[float]:
        """
        One online CD-n sweep over `dataset`.

        Omitted arguments fall back to `self.config`.
        Builds the weights on first use when `hidden_units` is given. Every row
        is validated before the matrix is touched. Returns one reconstruction
        error per row, in dataset order.
        """
        if learning_rate is None:
            learning_rate = self.config.learning_rate
        if gibbs_steps is None:
            gibbs_steps = self.config.gibbs_steps
        if hidden_units is None:
            hidden_units = self.config.hidden_units
        if isinstance(dataset, (str, bytes)) or not isinstance(dataset, (Sequence, np.ndarray)):
            raise InvalidArgument(f"Dataset must be a sequence of rows; got {type(dataset).__name__}")
        if isinstance(gibbs_steps, bool) or not isinstance(gibbs_steps, (int, np.integer)) or gibbs_steps < 1:
            raise InvalidArgument(f"gibbs_steps must be an integer >= 1; got {gibbs_steps!r}")
        if not _is_number(learning_rate) or not math.isfinite(learning_rate):
            raise InvalidArgument(f"learning_rate must be a finite number; got {learning_rate!r}")

        with self._lock:
            if self._weights is None:
                if hidden_units is None:
                    raise NotInitialized("RBM has no weights and no hidden_units to build them")
                if len(dataset) == 0:
                    raise InvalidArgument("Cannot initialise from an empty dataset")
                try:
                    visible_units = len(dataset[0])
                except TypeError as e:
                    raise InvalidArgument(f"Dataset row 0 is not a sequence: {dataset[0]!r}") from e
                rows = self._check_rows(dataset, visible_units)
                self.initialize(_proportions(rows), hidden_units)
            else:
                rows = self._check_rows(dataset, self.visible_units)

            lr = float(learning_rate)
            return [self._cd_step(x, present, lr, int(gibbs_steps)) for x, present in rows]

    @staticmethod
    def _check_rows(dataset, visible_units: int) -> List[Tuple[np.ndarray, np.ndarray]]:
        rows = []
        for n, row in enumerate(dataset):
            try:
                rows.append(_layer_input(row, visible_units))
            except InvalidArgument as e:
                raise InvalidArgument(f"Dataset row {n}: {e}") from e
        return rows

    def _cd_step(self, v0: np.ndarray, present: np.ndarray, lr: float, k: int) -> float:
        W = self._weights
        V, H = W.shape[0] - 1, W.shape[1] - 1
        all_hidden = np.ones(H, dtype=bool)
        all_visible = np.ones(V, dtype=bool)

        # Positive phase
        h_pos = self._hidden_probs(v0, present)

        # Negative phase: n-step Gibbs chain from the clamped example
        x, x_present = v0, present
        for _ in range(k):
            h_state = self._bernoulli(self._hidden_probs(x, x_present))
            h = np.array([u.state for u in h_state], dtype=np.float64)
            recon = self._bernoulli(self._visible_probs(h, all_hidden))
            x = np.array([u.state for u in recon], dtype=np.float64)
            x_present = all_visible
        v_neg = np.array([u.probability for u in recon], dtype=np.float64)
        h_neg = self._hidden_probs(x, all_visible)

        # Bias units
        v_pos_b = np.concatenate(([1.0], v0))
        h_pos_b = np.concatenate(([1.0], h_pos))
        v_neg_b = np.concatenate(([1.0], v_neg))
        h_neg_b = np.concatenate(([1.0], h_neg))

        touched = np.ones_like(W, dtype=bool)
        touched[1:][~present] = False
        touched[0, 0] = False

        delta = np.outer(v_pos_b, h_pos_b) - np.outer(v_neg_b, h_neg_b)
        W += np.where(touched, lr * delta, 0.0)

        binary = (v_pos_b != 0).astype(np.float64)
        sq = (binary - v_neg_b) ** 2
        return float((sq[:, None] * touched).sum())


def _proportions(rows: List[Tuple[np.ndarray, np.ndarray]]) -> np.ndarray:
    """Per-column mean over observed values (0.5 for never-observed columns)."""
    values = np.stack([x for x, _ in rows])
    mask = np.stack([m for _, m in rows])
    counts = mask.sum(axis=0)
    sums = (values * mask).sum(axis=0)
    return np.where(counts > 0, sums / np.maximum(counts, 1), 0.5)


def visible_proportions(dataset) -> np.ndarray:
    """Marginal activation proportion of every visible column in `dataset`."""
    if len(dataset) == 0:
        raise InvalidArgument("Cannot compute proportions of an empty dataset")
    try:
        visible_units = len(dataset[0])
    except TypeError as e:
        raise InvalidArgument(f"Dataset row 0 is not a sequence: {dataset[0]!r}") from e
    return _proportions(RBM._check_rows(dataset, visible_units))


# =============================================================================
# Builders
# =============================================================================
def build_rbm(cfg: RBMConfig, weights=None) -> RBM:
    """Construct an RBM that trains with `cfg` defaults and a generator seeded from cfg.seed."""
    return RBM(weights, rng=np.random.default_rng(cfg.seed), config=cfg)


__all__ = [
    "InvalidArgument",
    "NotInitialized",
    "MISSING",
    "is_missing",
    "Unit",
    "RBMConfig",
    "RBM",
    "build_rbm",
    "visible_proportions",
    "logistic",
    "gaussian_rand",
    "PROPORTION_EPS",
]
