# initial.py
# -*- coding: utf-8 -*-
"""
Initial mean/mode fill.

Gives the iterative loop a complete starting point:
  - numeric columns: missing cells <- arithmetic mean of the observed cells
  - categorical columns: missing cells <- most frequent observed level;
    ties go to the level that appears first in the column

Only the column itself is inspected. A column with no observed value cannot be
filled and raises DegenerateColumnError instead of getting a placeholder.
"""

from __future__ import annotations

import numpy as np

from .errors import DegenerateColumnError
from .table import Snapshot, TypedTable


def column_mean(observed: np.ndarray) -> float:
    return float(np.mean(observed.astype("float64")))


def column_mode(observed_codes: np.ndarray) -> int:
    """Most frequent code; ties broken by first occurrence in row order."""
    uniq, first_idx, counts = np.unique(observed_codes, return_index=True, return_counts=True)
    tied = first_idx[counts == counts.max()]
    return int(observed_codes[tied.min()])


def initial_fill(table: TypedTable) -> Snapshot:
    """
    Return a complete snapshot of ``table`` with every missing cell filled.

    The table itself is not modified; callers apply the snapshot with
    ``table.restore(snapshot)``.

    Raises:
        DegenerateColumnError: a column has no observed value (this includes
            every column of a zero-row table).
    """
    snap = table.snapshot()
    for col in table.columns:
        if table.n_observed(col) == 0:
            raise DegenerateColumnError(col)
        m = table.mask[col]
        if not m.any():
            continue
        observed = table.observed_values(col)
        if table.is_categorical(col):
            snap[col][m] = column_mode(observed)
        else:
            snap[col][m] = column_mean(observed)
    return snap
