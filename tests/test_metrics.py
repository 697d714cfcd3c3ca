"""
Unit tests for ground-truth evaluation metrics
"""

import numpy as np
import pandas as pd
import pytest

from rfimpute.metrics import evaluate_imputation, nrmse, pfc


class TestScalarMetrics:
    """Tests for nrmse and pfc"""

    def test_nrmse_perfect(self):
        assert nrmse(np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 3.0])) == 0.0

    def test_nrmse_normalized_by_variance(self):
        true = np.array([1.0, 2.0, 3.0])
        pred = np.array([2.0, 3.0, 4.0])
        # mse = 1, var(ddof=1) = 1
        assert nrmse(true, pred) == pytest.approx(1.0)

    def test_nrmse_constant_truth(self):
        assert nrmse(np.array([2.0, 2.0]), np.array([4.0, 2.0])) == pytest.approx(np.sqrt(2.0))

    def test_pfc(self):
        assert pfc(np.array(["a", "b", "c", "a"]), np.array(["a", "c", "c", "b"])) == pytest.approx(0.5)

    def test_pfc_compares_as_strings(self):
        assert pfc(np.array([1, 2]), np.array(["1", "2"])) == 0.0


class TestEvaluateImputation:
    """Tests for evaluate_imputation"""

    def test_only_missing_positions_count(self):
        complete = pd.DataFrame({"n": [1.0, 2.0, 3.0, 4.0], "c": ["a", "b", "a", "b"]})
        missing = pd.DataFrame({"n": [1.0, np.nan, np.nan, 4.0], "c": ["a", None, "a", None]})
        imputed = pd.DataFrame({"n": [1.0, 2.0, 4.0, 4.0], "c": ["a", "b", "a", "a"]})

        res = evaluate_imputation(imputed, complete, missing, ["c"], ["n"])
        per = res.per_feature.set_index("feature")
        assert per.loc["n", "n_eval"] == 2
        assert per.loc["c", "PFC"] == pytest.approx(0.5)
        assert res.summary["n_cont_features"] == 1
        assert res.summary["n_cat_features"] == 1
        assert res.summary["cont_RMSE"] == pytest.approx(np.sqrt(0.5))
