# imputer.py - iterative random-forest imputation (missForest-style)
# Mixed numeric/categorical tables, no one-hot expansion, OOB error report.

from __future__ import annotations

import logging
import time

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
import yaml

from .convergence import ConvergenceTracker
from .errors import InsufficientDataError
from .forest import ForestPredictor
from .initial import initial_fill
from .scheduler import schedule_variables
from .table import TypedTable

log = logging.getLogger(__name__)


@dataclass
class ImputeConfig:
    """
    Run configuration.

    - max_rounds: hard ceiling on rounds (missForest maxiter=10)
    - min_observed_rows_to_fit: columns with fewer observed rows are not
      modelled; they keep their mean/mode fill and report no OOB error
    - n_estimators: trees per forest (missForest ntree=100)
    - seed: random_state of every forest in the run
    - n_jobs: tree-level parallelism inside a single forest fit
    - decreasing: visit columns from most to fewest missing cells
    - max_depth: optional per-tree depth cap
    - verbose: log per-round progress at INFO instead of DEBUG
    """
    max_rounds: int = 10
    min_observed_rows_to_fit: int = 5
    n_estimators: int = 100
    seed: int = 42
    n_jobs: int = 1
    decreasing: bool = False
    max_depth: Optional[int] = None
    verbose: bool = False

    def __post_init__(self):
        for name in ("max_rounds", "min_observed_rows_to_fit", "n_estimators"):
            v = getattr(self, name)
            if not isinstance(v, (int, np.integer)) or isinstance(v, bool) or v < 1:
                raise ValueError(f"{name} must be a positive integer, got {v!r}")
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError(f"max_depth must be None or >= 1, got {self.max_depth!r}")

    @classmethod
    def from_yaml(cls, path: str, profile: str = "main", **overrides: Any) -> "ImputeConfig":
        """Load a named profile from a YAML file; ``overrides`` win over the file."""
        with open(path) as f:
            profiles = yaml.safe_load(f) or {}
        if profile not in profiles:
            raise ValueError(f"Profile '{profile}' not found. Available: {list(profiles.keys())}")
        values = dict(profiles[profile] or {})
        unknown = sorted(set(values) - set(cls.__dataclass_fields__))
        if unknown:
            raise ValueError(f"Unknown config keys in profile '{profile}': {unknown}")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TerminatedBy(str, Enum):
    CONVERGED = "converged"
    MAX_ROUNDS_REACHED = "max_rounds_reached"


def _mean_error(errors: Mapping[str, Optional[float]], cols: List[str]) -> Optional[float]:
    vals = [errors[c] for c in cols if errors.get(c) is not None and np.isfinite(errors[c])]
    return float(np.mean(vals)) if vals else None


@dataclass(frozen=True)
class RunResult:
    """
    Output of one imputation run.

    ``errors`` maps every scheduled column to its OOB error (NRMSE for numeric,
    PFC for categorical), or to None when the column was not modelled.
    """
    table: TypedTable
    errors: Mapping[str, Optional[float]]
    n_rounds: int
    terminated_by: TerminatedBy
    schedule: Tuple[str, ...]
    convergence_trace: Tuple[Dict[str, float], ...] = ()
    unavailable: Tuple[str, ...] = ()
    runtime_sec: float = 0.0

    @property
    def converged(self) -> bool:
        return self.terminated_by == TerminatedBy.CONVERGED

    @property
    def nrmse(self) -> Optional[float]:
        cols = [c for c in self.errors if not self.table.is_categorical(c)]
        return _mean_error(self.errors, cols)

    @property
    def pfc(self) -> Optional[float]:
        cols = [c for c in self.errors if self.table.is_categorical(c)]
        return _mean_error(self.errors, cols)

    def to_frame(self) -> pd.DataFrame:
        return self.table.to_frame()

    def summary(self) -> Dict[str, Any]:
        return {
            "NRMSE": self.nrmse,
            "PFC": self.pfc,
            "n_rounds": self.n_rounds,
            "terminated_by": self.terminated_by.value,
            "schedule": list(self.schedule),
            "unavailable": list(self.unavailable),
            "errors": dict(self.errors),
            "runtime_sec": self.runtime_sec,
        }


class MissForestImputer:
    """
    Iterative random-forest imputer for mixed-type data.

    Each round visits the columns with missing cells in a fixed order (fewest
    missing first), fits a forest on the rows where the column is observed and
    overwrites its missing cells right away, so later columns in the same round
    see the new values.

    Stopping: after the first round whose combined delta (numeric + categorical)
    is not smaller than the previous round's. That last round is discarded and
    the result, including the OOB errors, comes from the round before it. If
    ``max_rounds`` is hit first, the last round is kept and the result is
    flagged ``MAX_ROUNDS_REACHED``.

    An instance holds only configuration; every ``impute`` call builds its own
    table, tracker and forests, so one instance can serve several datasets.
    """

    def __init__(
        self,
        categorical_vars: Optional[List[str]] = None,
        continuous_vars: Optional[List[str]] = None,
        config: Optional[ImputeConfig] = None,
    ):
        self.categorical_vars = list(categorical_vars or [])
        self.continuous_vars = list(continuous_vars or [])
        self.cfg = config or ImputeConfig()

    def _progress(self, msg: str, *args) -> None:
        log.log(logging.INFO if self.cfg.verbose else logging.DEBUG, msg, *args)

    def _fit_column(
        self, table: TypedTable, col: str, cfg: ImputeConfig
    ) -> ForestPredictor:
        na_mask = table.mask[col]
        predictor = ForestPredictor(
            categorical=table.is_categorical(col),
            column=col,
            n_estimators=cfg.n_estimators,
            min_observed_rows_to_fit=cfg.min_observed_rows_to_fit,
            n_variables=len(table.columns),
            seed=cfg.seed,
            n_jobs=cfg.n_jobs,
            max_depth=cfg.max_depth,
        )
        predictor.fit(table.design_matrix(col, ~na_mask), table.observed_values(col))
        table.set_missing_values(col, predictor.predict_missing(table.design_matrix(col, na_mask)))
        return predictor

    def impute(self, X_missing: pd.DataFrame) -> RunResult:
        """
        Impute every missing cell of ``X_missing``.

        Args:
            X_missing: DataFrame with NaN/None at missing cells; every column
                must be listed in categorical_vars or continuous_vars

        Returns:
            RunResult with the frozen imputed table and per-column OOB errors

        Raises:
            DegenerateColumnError: a column has no observed value
        """
        cfg = replace(self.cfg)
        _t0 = time.time()

        table = TypedTable.from_frame(X_missing, self.categorical_vars, self.continuous_vars)
        self._progress("[MissForest] %d rows, %d variables", table.n_rows, len(table.columns))

        # Initializing
        table.restore(initial_fill(table))
        schedule = schedule_variables(table, decreasing=cfg.decreasing)
        counts = table.missing_counts()
        for c in schedule:
            self._progress("[MissForest]   %s: %d missing", c, counts[c])

        if not schedule:
            return RunResult(
                table=table.freeze(),
                errors={},
                n_rounds=1,
                terminated_by=TerminatedBy.CONVERGED,
                schedule=(),
                convergence_trace=({"round": 1, "numeric_delta": 0.0,
                                    "categorical_delta": 0.0, "combined": 0.0},),
                runtime_sec=float(time.time() - _t0),
            )

        tracker = ConvergenceTracker(
            numeric_cols=[c for c in schedule if not table.is_categorical(c)],
            categorical_cols=[c for c in schedule if table.is_categorical(c)],
            mask=table.mask,
        )

        unavailable: List[str] = []
        if len(table.columns) < 2:
            log.warning("[MissForest] single-column table; '%s' keeps its initial fill", schedule[0])
            unavailable.append(schedule[0])

        models: Dict[str, ForestPredictor] = {}
        prev_models: Dict[str, ForestPredictor] = {}
        terminated_by = TerminatedBy.MAX_ROUNDS_REACHED
        n_rounds = 0

        # Iterating
        for rnd in range(1, cfg.max_rounds + 1):
            n_rounds = rnd
            before = table.snapshot()
            prev_models, models = models, {}

            for col in schedule:
                if col in unavailable:
                    continue
                try:
                    models[col] = self._fit_column(table, col, cfg)
                except InsufficientDataError as e:
                    log.warning("[MissForest] %s Keeping mean/mode fill.", e)
                    unavailable.append(col)
                    continue
                log.debug("[MissForest] round %d: refit '%s'", rnd, col)

            delta = tracker.update(table.snapshot(), before)
            self._progress(
                "[MissForest] round %d/%d: numeric_delta=%.6g categorical_delta=%.6g",
                rnd, cfg.max_rounds, delta.numeric_delta, delta.categorical_delta,
            )

            if tracker.should_stop():
                self._progress("[MissForest] delta stopped decreasing at round %d; keeping round %d", rnd, rnd - 1)
                table.restore(before)
                models = prev_models
                terminated_by = TerminatedBy.CONVERGED
                break

        if terminated_by == TerminatedBy.MAX_ROUNDS_REACHED:
            log.warning(
                "[MissForest] reached max_rounds=%d before the delta stopped decreasing",
                cfg.max_rounds,
            )

        errors: Dict[str, Optional[float]] = {}
        for col in schedule:
            errors[col] = models[col].oob_error() if col in models else None

        return RunResult(
            table=table.freeze(),
            errors=errors,
            n_rounds=n_rounds,
            terminated_by=terminated_by,
            schedule=tuple(schedule),
            convergence_trace=tuple(tracker.trace()),
            unavailable=tuple(c for c in schedule if c in unavailable),
            runtime_sec=float(time.time() - _t0),
        )
