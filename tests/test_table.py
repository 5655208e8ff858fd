"""Tests for the combined per-bin result table."""

import numpy as np
import pandas as pd
import pytest

from hexmeta.binning.aggregator import aggregate
from hexmeta.binning.assigner import assign
from hexmeta.binning.grid import build_grid
from hexmeta.errors import InvalidParameterError, ShapeMismatchError
from hexmeta.table import BASE_COLUMNS, build_result_table

from conftest import BIN_A, BIN_B


@pytest.fixture
def cluster_assignment(two_clusters):
    return assign(build_grid(two_clusters, 4), two_clusters)


class TestBuildResultTable:
    def test_base_columns_only(self, cluster_assignment):
        table = build_result_table(cluster_assignment)
        assert tuple(table.columns) == BASE_COLUMNS
        assert table["bin_id"].tolist() == [BIN_A, BIN_B]
        assert table["number_of_cells"].tolist() == [3, 3]

    def test_joins_aggregates(self, cluster_assignment):
        aggregates = [
            aggregate(cluster_assignment, pd.Categorical(list("AAABBB")), "majority", name="cell_type"),
            aggregate(cluster_assignment, [0, 0, 0, 5, 5, 5], "prop_0", name="score"),
            aggregate(cluster_assignment, list("xyxyyy"), "prop", name="sample"),
        ]
        table = build_result_table(cluster_assignment, aggregates)

        assert list(table.columns) == list(BASE_COLUMNS) + [
            "cell_type_majority",
            "score_prop_0",
            "sample_x",
            "sample_y",
        ]
        assert isinstance(table["cell_type_majority"].dtype, pd.CategoricalDtype)
        assert table["score_prop_0"].tolist() == [0.0, 1.0]
        assert table["sample_x"].tolist() == pytest.approx([2 / 3, 0.0])

    def test_matches_aggregate_frame(self, cluster_assignment):
        agg = aggregate(cluster_assignment, [1.0, 2.0, 3.0, 4.0, 5.0, 6.0], "mean", name="v")
        pd.testing.assert_frame_equal(build_result_table(cluster_assignment, [agg]), agg.to_frame())

    def test_duplicate_columns(self, cluster_assignment):
        agg = aggregate(cluster_assignment, np.arange(6.0), "mean", name="v")
        with pytest.raises(InvalidParameterError):
            build_result_table(cluster_assignment, [agg, agg])

    def test_aggregate_from_other_assignment(self, cluster_assignment, random_points):
        other = assign(build_grid(random_points, 10), random_points)
        agg = aggregate(other, np.ones(other.n_points), "mean")
        with pytest.raises(ShapeMismatchError):
            build_result_table(cluster_assignment, [agg])
