#!/usr/bin/env python3
"""Imputation self-test: generate toy data, impute it, compare OOB and true errors.

This script is a quick sanity check that:
  1. Generates 200x5 toy mixed-type data (3 continuous, 2 categorical columns)
  2. Introduces 20% MCAR missing values
  3. Runs the random-forest imputer
  4. Compares the OOB error estimates with the true errors on the masked cells

Usage:
    python scripts/imputation_selftest.py
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import numpy as np
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rfimpute import ImputeConfig, MissForestImputer
from rfimpute.metrics import evaluate_imputation


def _generate_toy_data(n_rows: int = 200, seed: int = 42) -> tuple:
    """Generate toy mixed-type data with dependencies between columns."""
    rng = np.random.RandomState(seed)

    x1 = rng.randn(n_rows) * 10 + 50
    x2 = rng.randn(n_rows) * 5 + 20
    x3 = x1 * 0.5 + x2 * 0.3 + rng.randn(n_rows) * 2

    cat1 = np.where(x3 > np.median(x3), "A", rng.choice(["B", "C"], n_rows))
    cat2 = rng.choice(["X", "Y"], n_rows)

    continuous_vars = ["x1", "x2", "x3"]
    categorical_vars = ["cat1", "cat2"]
    X_complete = pd.DataFrame({"x1": x1, "x2": x2, "x3": x3, "cat1": cat1, "cat2": cat2})
    return X_complete, continuous_vars, categorical_vars


def _introduce_mcar(X_complete: pd.DataFrame, rate: float = 0.2, seed: int = 42) -> pd.DataFrame:
    """Introduce MCAR missing values at the given rate."""
    rng = np.random.RandomState(seed)
    X_missing = X_complete.copy()
    mask = rng.rand(*X_complete.shape) < rate
    for j, col in enumerate(X_missing.columns):
        if mask[:, j].any():
            X_missing.loc[mask[:, j], col] = np.nan
    return X_missing


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("Imputation Self-Test")
    print("=" * 60)

    print("\n[1/4] Generating 200x5 toy mixed-type data...")
    X_complete, continuous_vars, categorical_vars = _generate_toy_data()

    print("\n[2/4] Introducing 20% MCAR missing values...")
    X_missing = _introduce_mcar(X_complete)
    print(f"       Missing cells per column: {X_missing.isna().sum().to_dict()}")

    print("\n[3/4] Running random-forest imputation...")
    imputer = MissForestImputer(
        categorical_vars=categorical_vars,
        continuous_vars=continuous_vars,
        config=ImputeConfig(n_estimators=50, verbose=True),
    )
    result = imputer.impute(X_missing)
    X_imputed = result.to_frame()

    print("\n[4/4] Computing true errors...")
    eval_result = evaluate_imputation(
        X_imputed=X_imputed,
        X_complete=X_complete,
        X_missing=X_missing,
        categorical_vars=categorical_vars,
        continuous_vars=continuous_vars,
    )
    print(eval_result.per_feature.to_string(index=False))

    print("\n--- OOB estimate vs true error ---")
    print(f"  NRMSE: OOB={result.nrmse}  true={eval_result.summary.get('cont_NRMSE')}")
    print(f"  PFC:   OOB={result.pfc}  true={eval_result.summary.get('cat_PFC')}")
    print(f"  rounds={result.n_rounds}  terminated_by={result.terminated_by.value}")

    checks = {
        "no remaining NaN": int(X_imputed.isna().sum().sum()) == 0,
        "shape matches": X_imputed.shape == X_complete.shape,
        "observed cells unchanged": all(
            X_imputed.loc[X_missing[c].notna(), c].tolist() == X_missing.loc[X_missing[c].notna(), c].tolist()
            for c in X_missing.columns
        ),
        "NRMSE finite": result.nrmse is not None and np.isfinite(result.nrmse),
    }
    for name, ok in checks.items():
        print(f"  [{'PASS' if ok else 'FAIL'}] {name}")

    if all(checks.values()):
        print("\n[PASS] All sanity checks passed.")
        sys.exit(0)
    print(f"\n[FAIL] {sum(not v for v in checks.values())} check(s) failed.")
    sys.exit(1)


if __name__ == "__main__":
    main()
