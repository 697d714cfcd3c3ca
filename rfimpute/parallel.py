"""
Run independent imputations side by side (e.g. a train table and a test table).

Each dataset gets its own MissForestImputer and its own copy of the config,
and with the default process backend its own interpreter, so no value or
state crosses between datasets. Parallelism inside one run is left to the
forest (``ImputeConfig.n_jobs``).

Usage:
    results = impute_datasets(
        {"train": train_df, "test": test_df},
        categorical_vars=[...],
        continuous_vars=[...],
        config=ImputeConfig(seed=0),
        n_jobs=2,
    )
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Optional

import joblib
import pandas as pd
from joblib import Parallel, delayed
from tqdm.auto import tqdm

from .imputer import ImputeConfig, MissForestImputer, RunResult

log = logging.getLogger(__name__)


@contextlib.contextmanager
def tqdm_joblib(tqdm_object):
    """Context manager to patch joblib to report into a tqdm progress bar."""
    class TqdmBatchCompletionCallback(joblib.parallel.BatchCompletionCallBack):
        def __call__(self, *args, **kwargs):
            tqdm_object.update(n=self.batch_size)
            return super().__call__(*args, **kwargs)

    old_batch_callback = joblib.parallel.BatchCompletionCallBack
    joblib.parallel.BatchCompletionCallBack = TqdmBatchCompletionCallback
    try:
        yield tqdm_object
    finally:
        joblib.parallel.BatchCompletionCallBack = old_batch_callback
        tqdm_object.close()


def impute_one(
    X_missing: pd.DataFrame,
    categorical_vars: List[str],
    continuous_vars: List[str],
    config: ImputeConfig,
) -> RunResult:
    imputer = MissForestImputer(
        categorical_vars=categorical_vars,
        continuous_vars=continuous_vars,
        config=replace(config),
    )
    return imputer.impute(X_missing)


def impute_datasets(
    datasets: Mapping[str, pd.DataFrame],
    categorical_vars: List[str],
    continuous_vars: List[str],
    config: Optional[ImputeConfig] = None,
    n_jobs: int = 1,
    backend: Optional[str] = None,
    progress: bool = False,
) -> Dict[str, RunResult]:
    """Impute each dataset independently and return results keyed by name.

    A failure in one dataset (e.g. DegenerateColumnError) propagates to the
    caller; no partial results are returned.
    """
    config = config or ImputeConfig()
    names = list(datasets.keys())
    log.info("Imputing %d dataset(s) with n_jobs=%d: %s", len(names), n_jobs, names)

    jobs = (
        delayed(impute_one)(datasets[name], list(categorical_vars), list(continuous_vars), config)
        for name in names
    )
    if progress:
        with tqdm_joblib(tqdm(desc="Imputing", total=len(names))):
            results = Parallel(n_jobs=n_jobs, backend=backend)(jobs)
    else:
        results = Parallel(n_jobs=n_jobs, backend=backend)(jobs)

    out = dict(zip(names, results))
    for name, res in out.items():
        log.info(
            "[%s] %s after %d round(s); NRMSE=%s PFC=%s",
            name, res.terminated_by.value, res.n_rounds, res.nrmse, res.pfc,
        )
    return out
