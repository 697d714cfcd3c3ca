from __future__ import annotations

"""Typed in-memory table used by the imputation loop.

A :class:`TypedTable` keeps one numpy array per column:

- numeric columns as ``float64`` (NaN where missing),
- categorical columns as integer codes into an ordered level list
  (``-1`` where missing).

The missingness mask is computed once from the input frame and made read-only.
Only cells inside the mask may ever be written; everything else is left exactly
as it was loaded, and :meth:`TypedTable.to_frame` copies observed cells
straight from the original frame.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .errors import FrozenTableError

Snapshot = Dict[str, np.ndarray]

MISSING_CODE = -1


class ColumnKind(str, Enum):
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


def _observed_levels(s: pd.Series) -> list:
    """Admissible levels of a categorical column.

    pandas ``category`` columns keep their declared category order. Any other
    dtype uses the order in which levels first appear in the column.
    """
    if isinstance(s.dtype, pd.CategoricalDtype):
        return list(s.cat.categories)
    return list(pd.unique(s.dropna()))


class TypedTable:
    """Mixed-type table with a fixed missingness mask."""

    def __init__(
        self,
        source: pd.DataFrame,
        kinds: Dict[str, ColumnKind],
        values: Dict[str, np.ndarray],
        levels: Dict[str, list],
        mask: Dict[str, np.ndarray],
    ):
        self._source = source
        self.columns: List[str] = list(source.columns)
        self.kinds = dict(kinds)
        self.levels = {c: list(v) for c, v in levels.items()}
        self.mask = {c: _readonly(np.asarray(m, dtype=bool).copy()) for c, m in mask.items()}
        self._values = values
        self._frozen = False

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        categorical_vars: Sequence[str],
        continuous_vars: Sequence[str],
    ) -> "TypedTable":
        """Build a table from a DataFrame and declared column kinds.

        Every column of ``df`` must be declared exactly once, either as
        categorical or continuous. Column kinds are never inferred from values.
        """
        cat_vars = list(categorical_vars or [])
        cont_vars = list(continuous_vars or [])

        overlap = sorted(set(cat_vars) & set(cont_vars))
        if overlap:
            raise ValueError(f"Columns declared both categorical and continuous: {overlap}")
        if len(set(df.columns)) != len(df.columns):
            raise ValueError("Duplicate column names in input table.")

        declared = set(cat_vars) | set(cont_vars)
        unknown = [c for c in declared if c not in df.columns]
        if unknown:
            raise KeyError(
                f"Declared columns {sorted(unknown)} not found in table. "
                f"Available columns: {list(df.columns)}"
            )
        undeclared = [c for c in df.columns if c not in declared]
        if undeclared:
            raise ValueError(f"Columns {undeclared} have no declared kind (categorical/continuous).")

        source = df.copy(deep=True)
        kinds: Dict[str, ColumnKind] = {}
        values: Dict[str, np.ndarray] = {}
        levels: Dict[str, list] = {}
        mask: Dict[str, np.ndarray] = {}

        for col in source.columns:
            s = source[col]
            mask[col] = s.isna().to_numpy()
            if col in cat_vars:
                kinds[col] = ColumnKind.CATEGORICAL
                levels[col] = _observed_levels(s)
                codes = pd.Categorical(s, categories=levels[col]).codes
                values[col] = np.asarray(codes, dtype=np.int64).copy()
            else:
                kinds[col] = ColumnKind.NUMERIC
                num = pd.to_numeric(s, errors="raise")
                values[col] = num.to_numpy(dtype="float64", na_value=np.nan).copy()

        return cls(source, kinds, values, levels, mask)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def n_rows(self) -> int:
        return len(self._source)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def is_categorical(self, col: str) -> bool:
        return self.kinds[col] == ColumnKind.CATEGORICAL

    def missing_counts(self) -> Dict[str, int]:
        return {c: int(self.mask[c].sum()) for c in self.columns}

    def n_observed(self, col: str) -> int:
        return int(self.n_rows - self.mask[col].sum())

    def values(self, col: str) -> np.ndarray:
        """Read-only view of a column's current values."""
        view = self._values[col].view()
        view.flags.writeable = False
        return view

    def observed_values(self, col: str) -> np.ndarray:
        return self._values[col][~self.mask[col]]

    # ------------------------------------------------------------------
    # Writes (masked cells only)
    # ------------------------------------------------------------------
    def set_missing_values(self, col: str, new_values) -> None:
        """Overwrite the originally-missing cells of ``col`` in row order."""
        if self._frozen:
            raise FrozenTableError("Table is frozen; it was already emitted in a RunResult.")
        m = self.mask[col]
        new_values = np.asarray(new_values)
        if new_values.shape[0] != int(m.sum()):
            raise ValueError(
                f"Column '{col}': expected {int(m.sum())} values for missing cells, "
                f"got {new_values.shape[0]}."
            )
        self._values[col][m] = new_values.astype(self._values[col].dtype, copy=False)

    def snapshot(self) -> Snapshot:
        return {c: self._values[c].copy() for c in self.columns}

    def restore(self, snap: Snapshot) -> None:
        """Bring masked cells back to the state held in ``snap``."""
        for col in self.columns:
            if self.mask[col].any():
                self.set_missing_values(col, snap[col][self.mask[col]])

    def freeze(self) -> "TypedTable":
        for arr in self._values.values():
            arr.flags.writeable = False
        self._frozen = True
        return self

    # ------------------------------------------------------------------
    # Model inputs / outputs
    # ------------------------------------------------------------------
    def design_matrix(self, target: str, rows: Optional[np.ndarray] = None) -> np.ndarray:
        """All columns except ``target`` as a float matrix.

        Categorical predictors enter as their integer level codes; there is no
        indicator expansion.
        """
        others = [c for c in self.columns if c != target]
        if not others:
            return np.empty((self.n_rows if rows is None else int(np.sum(rows)), 0))
        X = np.column_stack([self._values[c].astype("float64") for c in others])
        return X if rows is None else X[rows]

    def _level_dtype(self, col: str):
        """dtype of ``col``'s levels when they are numeric, else None."""
        dtype = self._source[col].dtype
        if isinstance(dtype, pd.CategoricalDtype):
            dtype = dtype.categories.dtype
        return dtype if pd.api.types.is_numeric_dtype(dtype) else None

    def decode(self, col: str, codes: np.ndarray) -> np.ndarray:
        """Map level codes back to level values in the column's own dtype.

        Numeric levels (float64, int64, nullable Int64, ...) keep their dtype
        so they can be written back into the source column; anything else is
        returned as an object array.
        """
        codes = np.asarray(codes, dtype=np.int64)
        dtype = self._level_dtype(col)
        lv = self.levels[col]
        if dtype is None:
            return np.array([lv[k] if k != MISSING_CODE else np.nan for k in codes], dtype=object)
        decoded = pd.array(lv, dtype=dtype).take(codes, allow_fill=True)
        if isinstance(dtype, pd.api.extensions.ExtensionDtype):
            return decoded
        return np.asarray(decoded)

    def to_frame(self) -> pd.DataFrame:
        """Return the table as a DataFrame with imputed cells filled in.

        Observed cells are copied from the input frame untouched.
        """
        out = self._source.copy(deep=True)
        for col in self.columns:
            m = self.mask[col]
            if not m.any():
                continue
            pos = out.columns.get_loc(col)
            filled = self._values[col][m]
            if self.is_categorical(col):
                out.iloc[np.flatnonzero(m), pos] = self.decode(col, filled)
            else:
                out[col] = pd.to_numeric(out[col]).astype("float64")
                out.iloc[np.flatnonzero(m), pos] = filled
        return out
