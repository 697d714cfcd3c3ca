from __future__ import annotations

"""Stopping statistic for the iterative loop.

Per round, with ``cur``/``prev`` the snapshots after/before the round:

    numeric_delta     = sum((cur - prev)^2) / sum(cur^2)
                        over all cells of numeric columns that had missing cells
    categorical_delta = #(cur != prev) / #missing
                        over categorical columns that had missing cells

The loop stops after the first round whose ``numeric_delta + categorical_delta``
is not smaller than the previous round's. The first round always proceeds.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from .table import Snapshot


@dataclass
class RoundDelta:
    round: int
    numeric_delta: float
    categorical_delta: float

    @property
    def combined(self) -> float:
        return self.numeric_delta + self.categorical_delta


@dataclass
class ConvergenceTracker:
    numeric_cols: Sequence[str]
    categorical_cols: Sequence[str]
    mask: Dict[str, np.ndarray]
    history: List[RoundDelta] = field(default_factory=list)

    def __post_init__(self):
        self.numeric_cols = list(self.numeric_cols)
        self.categorical_cols = list(self.categorical_cols)
        self._n_missing_cat = int(sum(self.mask[c].sum() for c in self.categorical_cols))

    def numeric_delta(self, current: Snapshot, previous: Snapshot) -> float:
        if not self.numeric_cols:
            return 0.0
        diff_sum = 0.0
        cur_sum_sq = 0.0
        for col in self.numeric_cols:
            cur = current[col].astype("float64")
            prev = previous[col].astype("float64")
            diff_sum += float(np.sum((cur - prev) ** 2))
            cur_sum_sq += float(np.sum(cur ** 2))
        if cur_sum_sq == 0:
            return 0.0 if diff_sum == 0 else float("inf")
        return diff_sum / cur_sum_sq

    def categorical_delta(self, current: Snapshot, previous: Snapshot) -> float:
        if not self.categorical_cols or self._n_missing_cat == 0:
            return 0.0
        changed = 0
        for col in self.categorical_cols:
            m = self.mask[col]
            changed += int(np.sum(current[col][m] != previous[col][m]))
        return changed / self._n_missing_cat

    def update(self, current: Snapshot, previous: Snapshot) -> RoundDelta:
        """Record the delta of the round that just finished and return it."""
        delta = RoundDelta(
            round=len(self.history) + 1,
            numeric_delta=self.numeric_delta(current, previous),
            categorical_delta=self.categorical_delta(current, previous),
        )
        self.history.append(delta)
        return delta

    @property
    def last(self) -> Optional[RoundDelta]:
        return self.history[-1] if self.history else None

    def should_stop(self) -> bool:
        """True once the combined delta stopped decreasing."""
        if len(self.history) < 2:
            return False
        return not (self.history[-1].combined < self.history[-2].combined)

    def trace(self) -> List[Dict[str, float]]:
        return [
            {
                "round": d.round,
                "numeric_delta": d.numeric_delta,
                "categorical_delta": d.categorical_delta,
                "combined": d.combined,
            }
            for d in self.history
        ]
