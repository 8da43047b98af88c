# bernoullirbm/sample.py
from __future__ import annotations

from itertools import product
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from common.interfaces import LayerSampler

from .model import InvalidArgument, Unit

Codebook = List[Tuple[Tuple[int, ...], List[Unit]]]


# ------------------------- Decoding ------------------------- #
def hidden_codes(hidden_units: int) -> List[Tuple[int, ...]]:
    """All 2^H binary hidden assignments in lexicographic order."""
    if hidden_units < 1:
        raise InvalidArgument(f"hidden_units must be >= 1; got {hidden_units}")
    return list(product((0, 1), repeat=int(hidden_units)))


def decode_argmax(units: Sequence[Unit]) -> int:
    """Index of the most probable unit."""
    if len(units) == 0:
        raise InvalidArgument("Cannot decode an empty layer")
    return int(np.argmax([u.probability for u in units]))


def label_states(units: Sequence[Unit], labels: Sequence[str]) -> str:
    """Label of the one-hot state pattern in `units`, else 'unknown'."""
    states = [u.state for u in units]
    if sum(states) == 1 and len(states) == len(labels):
        return labels[states.index(1)]
    return "unknown"


def codebook(rbm: LayerSampler) -> Codebook:
    """Sample the visible layer once for every hidden code."""
    return [(code, rbm.sample_visible(list(code))) for code in hidden_codes(rbm.hidden_units)]


# ------------------------- Gibbs sampling ------------------------- #
def gibbs_chain(
    rbm: LayerSampler,
    init: Optional[Sequence[float]] = None,
    *,
    steps: int = 1,
    burn_in: int = 0,
) -> List[List[Unit]]:
    """
    Free-running block Gibbs chain v -> h -> v.

    Starts from `init` or from a Bernoulli(0.5) visible draw taken from the
    engine's generator. Returns the visible layer after each post-burn-in step.
    """
    if steps < 1 or burn_in < 0:
        raise InvalidArgument(f"steps must be >= 1 and burn_in >= 0; got {steps}, {burn_in}")
    if init is None:
        rng = getattr(rbm, "rng", None) or np.random.default_rng()
        v = (rng.random(rbm.visible_units) < 0.5).astype(int).tolist()
    else:
        v = list(init)

    chain = []
    for step in range(int(burn_in) + int(steps)):
        h = rbm.sample_hidden(v)
        visible = rbm.sample_visible([u.state for u in h])
        v = [u.state for u in visible]
        if step >= burn_in:
            chain.append(visible)
    return chain


# ------------------------- PNG helpers ------------------------- #
def save_codebook_png(book: Codebook, path: Path | str) -> None:
    """Heat-map of p(v | h) with one row per hidden code."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    probs = np.array([[u.probability for u in units] for _, units in book], dtype=np.float64)
    labels = ["".join(str(b) for b in code) for code, _ in book]

    fig, ax = plt.subplots(figsize=(0.6 * probs.shape[1] + 1.5, 0.45 * probs.shape[0] + 1.0))
    im = ax.imshow(probs, cmap="gray_r", vmin=0.0, vmax=1.0, aspect="auto")
    ax.set_yticks(range(len(labels)))
    ax.set_yticklabels(labels, fontsize=8)
    ax.set_xlabel("visible unit")
    ax.set_ylabel("hidden code")
    fig.colorbar(im, ax=ax, fraction=0.05)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=200)
    plt.close(fig)


__all__ = [
    "hidden_codes",
    "decode_argmax",
    "label_states",
    "codebook",
    "gibbs_chain",
    "save_codebook_png",
]
