"""
Unit tests for the initial mean/mode fill
"""

import numpy as np
import pandas as pd
import pytest

from rfimpute.errors import DegenerateColumnError
from rfimpute.initial import column_mode, initial_fill
from rfimpute.table import TypedTable


class TestInitialFill:
    """Tests for initial_fill"""

    def test_mean_and_mode_on_toy_table(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        snap = initial_fill(table)
        assert snap["A"].tolist() == [1.0, 3.0, 3.0, 3.0, 5.0]
        # x and y tie 2-2; x is encountered first
        assert table.decode("B", snap["B"]).tolist() == ["x", "y", "x", "x", "y"]

    def test_table_itself_untouched(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        initial_fill(table)
        assert np.isnan(table.values("A")[1])

    def test_degenerate_column_raises(self):
        df = pd.DataFrame({"A": [np.nan, np.nan], "B": ["x", "y"]})
        table = TypedTable.from_frame(df, ["B"], ["A"])
        with pytest.raises(DegenerateColumnError) as exc:
            initial_fill(table)
        assert exc.value.column == "A"

    def test_degenerate_categorical_raises(self):
        df = pd.DataFrame({"A": [1.0, 2.0], "B": [None, None]})
        table = TypedTable.from_frame(df, ["B"], ["A"])
        with pytest.raises(DegenerateColumnError):
            initial_fill(table)

    def test_complete_table_is_unchanged(self):
        df = pd.DataFrame({"A": [1.0, 2.0], "B": ["x", "y"]})
        table = TypedTable.from_frame(df, ["B"], ["A"])
        snap = initial_fill(table)
        assert snap["A"].tolist() == [1.0, 2.0]
        assert snap["B"].tolist() == [0, 1]

    def test_zero_row_table_raises(self):
        df = pd.DataFrame({"A": pd.Series([], dtype="float64"), "B": pd.Series([], dtype=object)})
        table = TypedTable.from_frame(df, ["B"], ["A"])
        with pytest.raises(DegenerateColumnError):
            initial_fill(table)


class TestColumnMode:
    """Tests for the mode tie-break"""

    def test_clear_winner(self):
        assert column_mode(np.array([2, 1, 1, 0])) == 1

    def test_tie_goes_to_first_encountered(self):
        assert column_mode(np.array([2, 0, 0, 2, 1])) == 2
        assert column_mode(np.array([0, 2, 2, 0, 1])) == 0
