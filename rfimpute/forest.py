# forest.py
# -*- coding: utf-8 -*-
"""
Per-column random forest used by the imputation loop.

Thin adapter around scikit-learn's RandomForestRegressor / RandomForestClassifier
with the three operations the loop needs: fit, predict_missing and oob_error.

Defaults follow missForest (Stekhoven & Bühlmann, 2012):
  - mtry = floor(sqrt(p)), p = number of variables in the table
  - nodesize: regression = 5, classification = 1
  - bootstrap sampling with replacement

Categorical predictors arrive as integer level codes, so the design matrix has
one column per variable (no one-hot expansion).

Out-of-bag error:
  - numeric target:     NRMSE = sqrt(mean((y - y_oob)^2) / var(y))
  - categorical target: PFC   = share of OOB predictions != observed level
Rows that were in-bag for every tree have no OOB prediction and are skipped.
"""

from __future__ import annotations

import warnings
from typing import Optional

import numpy as np
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor

from .errors import InsufficientDataError


class ForestPredictor:
    """
    Random forest for one column of the table.

    Args:
        categorical: classification (True) or regression (False)
        column: name of the target column, used in error messages
        n_estimators: number of trees (missForest default ntree=100)
        min_observed_rows_to_fit: below this many observed rows, fit() raises
            InsufficientDataError
        n_variables: total number of variables p in the table, for mtry
        seed: random_state passed to scikit-learn
        n_jobs: tree-level parallelism inside one fit
        max_depth: optional depth cap per tree
    """

    def __init__(
        self,
        categorical: bool,
        column: str = "",
        n_estimators: int = 100,
        min_observed_rows_to_fit: int = 5,
        n_variables: Optional[int] = None,
        seed: int = 42,
        n_jobs: int = 1,
        max_depth: Optional[int] = None,
    ):
        self.categorical = categorical
        self.column = column
        self.n_estimators = n_estimators
        self.min_observed_rows_to_fit = min_observed_rows_to_fit
        self.n_variables = n_variables
        self.seed = seed
        self.n_jobs = n_jobs
        self.max_depth = max_depth

        self.model_ = None
        self._X = None
        self._y = None

    def _build(self, p: int):
        mtry = max(1, int(np.floor(np.sqrt(p))))
        if self.categorical:
            return RandomForestClassifier(
                n_estimators=self.n_estimators,
                max_features=mtry,
                min_samples_leaf=1,
                max_depth=self.max_depth,
                bootstrap=True,
                random_state=self.seed,
                n_jobs=self.n_jobs,
            )
        return RandomForestRegressor(
            n_estimators=self.n_estimators,
            max_features=mtry,
            min_samples_leaf=5,
            max_depth=self.max_depth,
            bootstrap=True,
            random_state=self.seed,
            n_jobs=self.n_jobs,
        )

    def fit(self, X: np.ndarray, y: np.ndarray) -> "ForestPredictor":
        n_obs = int(len(y))
        if n_obs < self.min_observed_rows_to_fit:
            raise InsufficientDataError(self.column, n_obs, self.min_observed_rows_to_fit)

        p = self.n_variables if self.n_variables is not None else X.shape[1] + 1
        model = self._build(p)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            model.fit(X, y)

        self.model_ = model
        self._X = X
        self._y = y
        return self

    def predict_missing(self, X: np.ndarray) -> np.ndarray:
        if self.model_ is None:
            raise RuntimeError("ForestPredictor.predict_missing called before fit().")
        if X.shape[0] == 0:
            return np.empty(0, dtype=self._y.dtype)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            return self.model_.predict(X)

    def _oob_accumulate(self):
        """Sum per-row OOB outputs over trees; return (sums, counts)."""
        X, n = self._X, self._X.shape[0]
        if self.categorical:
            sums = np.zeros((n, len(self.model_.classes_)))
        else:
            sums = np.zeros(n)
        counts = np.zeros(n, dtype=np.int64)

        for tree, in_bag in zip(self.model_.estimators_, self.model_.estimators_samples_):
            oob = np.ones(n, dtype=bool)
            oob[in_bag] = False
            if not oob.any():
                continue
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                if self.categorical:
                    sums[oob] += tree.predict_proba(X[oob])
                else:
                    sums[oob] += tree.predict(X[oob])
            counts[oob] += 1
        return sums, counts

    def oob_error(self) -> float:
        """OOB NRMSE (numeric) or PFC (categorical); NaN if no row is ever OOB."""
        if self.model_ is None:
            raise RuntimeError("ForestPredictor.oob_error called before fit().")

        sums, counts = self._oob_accumulate()
        has_oob = counts > 0
        if not has_oob.any():
            return float("nan")
        y = self._y[has_oob]

        if self.categorical:
            pred = self.model_.classes_[np.argmax(sums[has_oob], axis=1)]
            return float(np.mean(pred != y))

        pred = sums[has_oob] / counts[has_oob]
        mse = float(np.mean((y.astype("float64") - pred) ** 2))
        var = float(np.var(self._y.astype("float64"), ddof=1)) if len(self._y) > 1 else 0.0
        if var > 0:
            return float(np.sqrt(mse / var))
        return float(np.sqrt(mse))
