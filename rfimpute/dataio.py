from __future__ import annotations

"""Data I/O helpers.

These helpers enforce a **stable schema** for mixed-type tabular CSVs.

Motivation
----------
CSV files that contain missing values will often coerce integer columns into
``float64`` (e.g., ``82`` becomes ``82.0``). For integer-coded categorical
variables this turns the level ``82`` into ``82.0`` in the imputed output.

This module keeps categorical columns as ``Int64`` (nullable integer) whenever
possible, string categoricals as ``category`` and continuous columns as
``float64``. The schema of each table is inferred from that table alone, so a
train file and a test file never influence each other.
"""

from typing import Dict, List, Tuple

import numpy as np
import pandas as pd


Schema = Dict[str, str]


def _strip_df_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of ``df`` with whitespace-trimmed column names."""
    out = df.copy()
    out.columns = [str(c).strip() for c in out.columns]
    if len(set(out.columns)) != len(out.columns):
        raise ValueError(
            "Duplicate column names after stripping whitespace. "
            "Please sanitize the dataset headers."
        )
    return out


def clean_var_list(vars: List[str]) -> List[str]:
    """Clean a list of variable names.

    - accept "A,B,C" tokens as well as separate items
    - drop None/NaN/empty tokens and the literal token 'nan'
    - strip whitespace, de-duplicate preserving order
    """
    out: List[str] = []
    seen = set()
    for v in vars or []:
        if v is None:
            continue
        if isinstance(v, float) and np.isnan(v):
            continue
        for part in str(v).split(","):
            s = part.strip()
            if s == "" or s.lower() == "nan" or s in seen:
                continue
            seen.add(s)
            out.append(s)
    return out


def _is_int_like(series: pd.Series, *, tol: float = 1e-6) -> bool:
    """Return True if values are (almost) all integers."""
    s = pd.to_numeric(series, errors="coerce")
    s = s.dropna()
    if len(s) == 0:
        return False
    frac = (s - np.round(s)).abs()
    return float((frac < tol).mean()) > 0.99


def infer_schema(
    df: pd.DataFrame,
    *,
    categorical_vars: List[str],
    continuous_vars: List[str],
) -> Schema:
    """Infer target dtypes from the observed cells + variable lists.

    Rules:
      - continuous vars -> float64
      - categorical vars -> Int64 if every observed value is an integer, else category
    """
    schema: Schema = {}

    for c in continuous_vars:
        schema[c] = "float64"

    for c in categorical_vars:
        if c not in df.columns:
            continue
        observed = df[c].dropna()
        num = pd.to_numeric(observed, errors="coerce")
        if len(observed) > 0 and num.notna().all() and _is_int_like(num):
            schema[c] = "Int64"
        else:
            schema[c] = "category"

    return schema


def cast_dataframe_to_schema(df: pd.DataFrame, schema: Schema) -> pd.DataFrame:
    """Cast a copy of ``df`` to the provided schema.

    Robust to common CSV artifacts, such as integer columns serialized as
    floats ("82.0") and empty strings.
    """
    out = df.copy()
    for col, dtype in schema.items():
        if col not in out.columns:
            continue

        if dtype == "Int64":
            num = pd.to_numeric(out[col], errors="coerce")
            num = np.rint(num)
            out[col] = pd.Series(num, index=out.index).astype("Int64")

        elif dtype in {"float64", "Float64"}:
            out[col] = pd.to_numeric(out[col], errors="coerce").astype("float64")

        elif dtype == "category":
            s = out[col].replace("", np.nan)
            out[col] = s.astype("category")

        else:
            out[col] = out[col].astype(dtype)

    return out


def load_table(
    path: str,
    *,
    categorical_vars: List[str],
    continuous_vars: List[str],
) -> Tuple[pd.DataFrame, pd.DataFrame, Schema]:
    """Load one CSV for imputation.

    Returns ``(X, passthrough, schema)``: ``X`` holds the declared variables
    cast to a stable schema, ``passthrough`` holds every other column (IDs,
    targets, ...) untouched so callers can re-attach them after imputation.

    Notes
    -----
    The CSV is read with ``dtype=str`` to avoid pandas inferring ``float64``
    for integer-coded categorical columns.
    """
    categorical_vars = clean_var_list(categorical_vars)
    continuous_vars = clean_var_list(continuous_vars)
    all_vars = list(categorical_vars) + list(continuous_vars)

    raw = _strip_df_columns(pd.read_csv(path, dtype=str))

    missing_cols = [c for c in all_vars if c not in raw.columns]
    if missing_cols:
        raise KeyError(
            f"Columns {missing_cols} not found in CSV: {path}. "
            f"Available columns: {list(raw.columns)}"
        )

    # Keep the file's column order for the declared variables.
    ordered = [c for c in raw.columns if c in set(all_vars)]
    X = raw[ordered]
    passthrough = raw[[c for c in raw.columns if c not in set(all_vars)]]

    schema = infer_schema(X, categorical_vars=categorical_vars, continuous_vars=continuous_vars)
    X = cast_dataframe_to_schema(X, schema)

    return X, passthrough, schema
