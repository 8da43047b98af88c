# common/interfaces.py

from __future__ import annotations

from typing import Any, Callable, List, Optional, Protocol, Sequence, runtime_checkable

# -----------------------------------------------------------------------------
# Callback type used by the training driver (iteration, mean_error, best_error)
# -----------------------------------------------------------------------------
LogCallback = Callable[[int, float, Optional[float]], None]

# Stage-tagged logger used by the pipeline: cb(stage, message)
StageLogger = Callable[[str, str], None]


# -----------------------------------------------------------------------------
# Minimal interface for a two-layer stochastic sampler:
#   - sample_hidden(...)  -> one Unit-like item per hidden unit
#   - sample_visible(...) -> one Unit-like item per visible unit
# The read-out helpers in bernoullirbm.sample only rely on this surface.
# -----------------------------------------------------------------------------
@runtime_checkable
class LayerSampler(Protocol):
    visible_units: int
    hidden_units: int

    def sample_hidden(self, visible: Sequence[Any]) -> List[Any]:
        """Sample the hidden layer given a visible assignment."""
        ...

    def sample_visible(self, hidden: Sequence[Any]) -> List[Any]:
        """Sample the visible layer given a hidden assignment."""
        ...
