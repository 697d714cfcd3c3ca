from __future__ import annotations

"""Exceptions raised by the imputation engine."""


class ImputationError(Exception):
    """Base class for imputation failures."""


class DegenerateColumnError(ImputationError):
    """A column has no observed values, so no initial guess can be made.

    This aborts the whole run: every other column's fit may depend on it.
    """

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Column '{column}' has zero observed values; cannot impute.")


class InsufficientDataError(ImputationError):
    """Too few observed rows to fit a forest for one column."""

    def __init__(self, column: str, n_observed: int, threshold: int):
        self.column = column
        self.n_observed = n_observed
        self.threshold = threshold
        super().__init__(
            f"Column '{column}' has {n_observed} observed rows "
            f"(< min_observed_rows_to_fit={threshold})."
        )


class FrozenTableError(ImputationError):
    """Raised when writing into a table that was already emitted in a RunResult."""
