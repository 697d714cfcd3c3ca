"""
Shared fixtures for rfimpute tests
"""

import numpy as np
import pandas as pd
import pytest

from rfimpute import ImputeConfig


def _introduce_mcar(X_complete: pd.DataFrame, rate: float, seed: int) -> pd.DataFrame:
    """Introduce MCAR missing values at the given rate (row 0 stays observed)."""
    rng = np.random.RandomState(seed)
    X_missing = X_complete.copy()
    mask = rng.rand(*X_complete.shape) < rate
    mask[0, :] = False
    for j, col in enumerate(X_missing.columns):
        X_missing.loc[mask[:, j], col] = np.nan
    return X_missing


@pytest.fixture
def mixed_complete():
    """150 x 4 mixed-type table: 2 continuous, 2 categorical, with dependencies"""
    rng = np.random.RandomState(0)
    n = 150
    x1 = rng.randn(n) * 10 + 50
    x2 = 0.5 * x1 + rng.randn(n) * 2
    cat1 = np.where(x1 > 50, "hi", "lo").astype(object)
    cat2 = rng.choice(["a", "b", "c"], n).astype(object)
    return pd.DataFrame({"x1": x1, "x2": x2, "cat1": cat1, "cat2": cat2})


@pytest.fixture
def mixed_missing(mixed_complete):
    return _introduce_mcar(mixed_complete, rate=0.15, seed=1)


@pytest.fixture
def cat_vars():
    return ["cat1", "cat2"]


@pytest.fixture
def cont_vars():
    return ["x1", "x2"]


@pytest.fixture
def small_config():
    """Small forests so the tests stay fast"""
    return ImputeConfig(n_estimators=15, max_rounds=5, seed=0)


@pytest.fixture
def toy_df():
    """5-row, 2-column table: A numeric, B categorical"""
    return pd.DataFrame({
        "A": [1.0, np.nan, 3.0, np.nan, 5.0],
        "B": ["x", "y", None, "x", "y"],
    })
