"""
Unit tests for TypedTable
"""

import numpy as np
import pandas as pd
import pytest

from rfimpute.errors import FrozenTableError
from rfimpute.table import MISSING_CODE, ColumnKind, TypedTable


class TestFromFrame:
    """Tests for building a table from a DataFrame"""

    def test_kinds_levels_and_mask(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        assert table.kinds == {"A": ColumnKind.NUMERIC, "B": ColumnKind.CATEGORICAL}
        assert table.levels["B"] == ["x", "y"]
        assert table.mask["A"].tolist() == [False, True, False, True, False]
        assert table.mask["B"].tolist() == [False, False, True, False, False]
        assert table.values("B").tolist() == [0, 1, MISSING_CODE, 0, 1]

    def test_category_dtype_keeps_declared_levels(self):
        df = pd.DataFrame({
            "c": pd.Categorical(["b", None, "b"], categories=["a", "b", "z"]),
            "n": [1.0, 2.0, 3.0],
        })
        table = TypedTable.from_frame(df, ["c"], ["n"])
        assert table.levels["c"] == ["a", "b", "z"]

    def test_undeclared_column_rejected(self, toy_df):
        with pytest.raises(ValueError, match="no declared kind"):
            TypedTable.from_frame(toy_df, ["B"], [])

    def test_unknown_column_rejected(self, toy_df):
        with pytest.raises(KeyError):
            TypedTable.from_frame(toy_df, ["B", "C"], ["A"])

    def test_overlapping_declarations_rejected(self, toy_df):
        with pytest.raises(ValueError, match="both categorical and continuous"):
            TypedTable.from_frame(toy_df, ["A", "B"], ["A"])

    def test_input_frame_not_modified(self, toy_df):
        before = toy_df.copy()
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        table.set_missing_values("A", [9.0, 9.0])
        pd.testing.assert_frame_equal(toy_df, before)


class TestWrites:
    """Tests for masked writes, snapshots and freezing"""

    def test_mask_is_read_only(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        with pytest.raises(ValueError):
            table.mask["A"][0] = True

    def test_set_missing_values_length_checked(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        with pytest.raises(ValueError, match="expected 2 values"):
            table.set_missing_values("A", [1.0])

    def test_set_missing_values_only_touches_masked_cells(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        table.set_missing_values("A", [7.0, 8.0])
        assert table.values("A").tolist() == [1.0, 7.0, 3.0, 8.0, 5.0]

    def test_snapshot_is_a_copy(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        snap = table.snapshot()
        table.set_missing_values("A", [7.0, 8.0])
        assert np.isnan(snap["A"][1])

    def test_restore_applies_masked_cells(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        snap = table.snapshot()
        snap["A"][[1, 3]] = [2.0, 4.0]
        snap["B"][2] = 1
        table.restore(snap)
        assert table.values("A").tolist() == [1.0, 2.0, 3.0, 4.0, 5.0]
        assert table.values("B").tolist() == [0, 1, 1, 0, 1]

    def test_frozen_table_rejects_writes(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"]).freeze()
        assert table.frozen
        with pytest.raises(FrozenTableError):
            table.set_missing_values("A", [7.0, 8.0])


class TestModelIO:
    """Tests for design matrices and DataFrame output"""

    def test_design_matrix_excludes_target(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        X = table.design_matrix("A", ~table.mask["A"])
        assert X.shape == (3, 1)
        assert X[:, 0].tolist() == [0.0, -1.0, 1.0]

    def test_to_frame_fills_masked_cells(self, toy_df):
        table = TypedTable.from_frame(toy_df, ["B"], ["A"])
        table.set_missing_values("A", [2.0, 4.0])
        table.set_missing_values("B", [1])
        out = table.to_frame()
        assert out["A"].tolist() == [1.0, 2.0, 3.0, 4.0, 5.0]
        assert out["B"].tolist() == ["x", "y", "y", "x", "y"]

    def test_to_frame_keeps_category_dtype(self):
        df = pd.DataFrame({
            "c": pd.Categorical(["a", None, "b", "a"], categories=["a", "b"]),
            "n": [1.0, 2.0, 3.0, 4.0],
        })
        table = TypedTable.from_frame(df, ["c"], ["n"])
        table.set_missing_values("c", [1])
        out = table.to_frame()
        assert isinstance(out["c"].dtype, pd.CategoricalDtype)
        assert out["c"].tolist() == ["a", "b", "b", "a"]

    @pytest.mark.parametrize("column, dtype, filled", [
        ([1.0, 2.0, np.nan, 1.0], "float64", 2.0),
        (pd.array([1, 2, None, 1], dtype="Int64"), "Int64", 2),
        (pd.Categorical([1, 2, None, 1]), "category", 2),
    ])
    def test_to_frame_numeric_coded_categorical(self, column, dtype, filled):
        df = pd.DataFrame({"k": column, "n": [1.0, 2.0, 3.0, 4.0]})
        table = TypedTable.from_frame(df, ["k"], ["n"])
        table.set_missing_values("k", [1])
        out = table.to_frame()
        assert str(out["k"].dtype) == dtype
        assert out["k"].tolist() == [1, 2, filled, 1]

    def test_decode_keeps_level_dtype(self):
        df = pd.DataFrame({"k": [3.0, np.nan, 5.0], "n": [1.0, 2.0, 3.0]})
        table = TypedTable.from_frame(df, ["k"], ["n"])
        decoded = table.decode("k", np.array([1, 0]))
        assert decoded.dtype == np.float64
        assert decoded.tolist() == [5.0, 3.0]
