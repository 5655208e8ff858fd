"""Tests for category label placement."""

import numpy as np
import pandas as pd
import pytest

from hexmeta.binning.aggregator import aggregate
from hexmeta.binning.assigner import assign
from hexmeta.binning.grid import build_grid
from hexmeta.errors import TypeMismatchError
from hexmeta.labels import LabelAnchor, anchors_to_frame, locate_labels

from conftest import BIN_A, BIN_B


class TestLocateLabels:
    def test_one_anchor_per_cluster(self, two_clusters):
        grid = build_grid(two_clusters, 4)
        assignment = assign(grid, two_clusters)
        table = aggregate(assignment, pd.Categorical(list("AAABBB")), "majority", name="cell_type")

        anchors = locate_labels(table)
        cx, cy = grid.tile_centers(np.array([BIN_A, BIN_B]))
        assert [a.category for a in anchors] == ["A", "B"]
        assert anchors[0].x == pytest.approx(cx[0])
        assert anchors[0].y == pytest.approx(cy[0])
        assert anchors[1].x == pytest.approx(cx[1])
        assert anchors[1].y == pytest.approx(cy[1])

    def test_anchor_is_mean_of_won_bins(self, two_clusters):
        """A category winning both bins is labelled between them."""
        grid = build_grid(two_clusters, 4)
        assignment = assign(grid, two_clusters)
        values = pd.Categorical(list("AAAAAB"), categories=["A", "B", "C"])
        anchors = locate_labels(aggregate(assignment, values, "majority"))

        cx, cy = grid.tile_centers(np.array([BIN_A, BIN_B]))
        assert len(anchors) == 1
        assert anchors[0].category == "A"
        assert anchors[0].x == pytest.approx(cx.mean())
        assert anchors[0].y == pytest.approx(cy.mean())

    def test_requires_majority(self, two_clusters):
        assignment = assign(build_grid(two_clusters, 4), two_clusters)
        table = aggregate(assignment, list("AAABBB"), "prop")
        with pytest.raises(TypeMismatchError):
            locate_labels(table)

    def test_anchors_to_frame(self):
        frame = anchors_to_frame([LabelAnchor("T cell", 1.0, 2.0)])
        assert list(frame.columns) == ["category", "x", "y"]
        assert frame.iloc[0].tolist() == ["T cell", 1.0, 2.0]
