from __future__ import annotations

import warnings

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.exceptions import UndefinedMetricWarning
from sklearn.metrics import accuracy_score, f1_score, mean_absolute_error, mean_squared_error


def _safe_numeric_series(s: pd.Series) -> pd.Series:
    return pd.to_numeric(s, errors="coerce")


def nrmse(true: np.ndarray, pred: np.ndarray) -> float:
    """Normalized RMSE, missForest convention: sqrt(MSE / var(true)).

    Falls back to plain RMSE when ``true`` is constant.
    """
    true = np.asarray(true, dtype=float)
    pred = np.asarray(pred, dtype=float)
    mse = float(mean_squared_error(true, pred))
    var = float(np.var(true, ddof=1)) if true.size > 1 else 0.0
    return float(np.sqrt(mse / var)) if var > 0 else float(np.sqrt(mse))


def pfc(true: np.ndarray, pred: np.ndarray) -> float:
    """Proportion of falsely classified entries."""
    true = np.asarray(true, dtype=object)
    pred = np.asarray(pred, dtype=object)
    if true.size == 0:
        return float("nan")
    return float(1.0 - accuracy_score(true.astype(str), pred.astype(str)))


def compute_continuous_metrics(true_vals: np.ndarray, pred_vals: np.ndarray) -> Dict[str, float]:
    true_vals = np.asarray(true_vals, dtype=float)
    pred_vals = np.asarray(pred_vals, dtype=float)
    rmse = float(np.sqrt(mean_squared_error(true_vals, pred_vals)))
    mae = float(mean_absolute_error(true_vals, pred_vals))
    return {"NRMSE": nrmse(true_vals, pred_vals), "RMSE": rmse, "MAE": mae}


def compute_categorical_metrics(true_s: pd.Series, pred_s: pd.Series) -> Dict[str, float]:
    """PFC, accuracy and macro-F1 on aligned (true, pred) series.

    Labels are compared as strings so that ``82`` and ``"82"`` match.
    """
    mask = true_s.notna() & pred_s.notna()
    true_vals = true_s[mask].astype(str)
    pred_vals = pred_s[mask].astype(str)
    if len(true_vals) == 0:
        return {"PFC": float("nan"), "Accuracy": float("nan"), "Macro-F1": float("nan")}

    labels = sorted(pd.concat([true_vals, pred_vals], axis=0).unique().tolist())
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=UndefinedMetricWarning)
        acc = float(accuracy_score(true_vals, pred_vals))
        f1_macro = float(f1_score(true_vals, pred_vals, labels=labels, average="macro", zero_division=0))
    return {"PFC": 1.0 - acc, "Accuracy": acc, "Macro-F1": f1_macro}


@dataclass
class EvaluationResult:
    per_feature: pd.DataFrame
    summary: Dict[str, float]


def evaluate_imputation(
    X_imputed: pd.DataFrame,
    X_complete: pd.DataFrame,
    X_missing: pd.DataFrame,
    categorical_vars: List[str],
    continuous_vars: List[str],
    mask_df: Optional[pd.DataFrame] = None,
) -> EvaluationResult:
    '''
    True imputation error against a complete copy of the data.

    Evaluated only on positions that are missing in X_missing (or True in
    mask_df when given).
    '''
    if mask_df is None:
        mask_df = X_missing.isna()

    rows = []
    for col in continuous_vars:
        if col not in X_imputed.columns:
            continue
        miss_mask = mask_df[col].to_numpy(dtype=bool)
        if int(miss_mask.sum()) == 0:
            continue
        true_s = _safe_numeric_series(X_complete.loc[miss_mask, col]).dropna()
        if len(true_s) == 0:
            continue
        pred_s = _safe_numeric_series(X_imputed.loc[true_s.index, col])

        m = compute_continuous_metrics(true_s.values, pred_s.values)
        m.update({"feature": col, "type": "continuous", "n_eval": int(len(true_s))})
        rows.append(m)

    for col in categorical_vars:
        if col not in X_imputed.columns:
            continue
        miss_mask = mask_df[col].to_numpy(dtype=bool)
        if int(miss_mask.sum()) == 0:
            continue
        true_s = X_complete.loc[miss_mask, col].dropna()
        if len(true_s) == 0:
            continue
        pred_s = X_imputed.loc[true_s.index, col]

        m = compute_categorical_metrics(true_s, pred_s)
        m.update({"feature": col, "type": "categorical", "n_eval": int(len(true_s))})
        rows.append(m)

    per_feature = pd.DataFrame(rows)

    summary: Dict[str, float] = {}
    if not per_feature.empty:
        cont_df = per_feature[per_feature["type"] == "continuous"]
        cat_df = per_feature[per_feature["type"] == "categorical"]

        for metric in ["NRMSE", "RMSE", "MAE"]:
            if metric in cont_df.columns and len(cont_df) > 0:
                summary[f"cont_{metric}"] = float(np.nanmean(cont_df[metric].values))
        for metric in ["PFC", "Accuracy", "Macro-F1"]:
            if metric in cat_df.columns and len(cat_df) > 0:
                summary[f"cat_{metric}"] = float(np.nanmean(cat_df[metric].values))

        summary["n_cont_features"] = int(len(cont_df))
        summary["n_cat_features"] = int(len(cat_df))

    return EvaluationResult(per_feature=per_feature, summary=summary)
