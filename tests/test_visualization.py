"""Tests for hexagon plots."""

import matplotlib.pyplot as plt
import pandas as pd
import pytest
from matplotlib.collections import PolyCollection

from hexmeta.api import hexbin_meta, label_anchors, make_hexbin
from hexmeta.errors import UnknownColumnError
from hexmeta.visualization import HexbinPlotter


@pytest.fixture
def plotter(adata):
    return HexbinPlotter(make_hexbin(adata, nbins=4).grid)


class TestHexbinPlotter:
    def test_categorical_plot(self, adata, plotter, tmp_path):
        table = hexbin_meta(adata, "cell_type", "majority")
        out = tmp_path / "cell_type.png"
        fig = plotter.plot(
            table,
            "cell_type_majority",
            labels=label_anchors(adata, "cell_type"),
            output_path=out,
        )
        ax = fig.axes[0]
        collection = next(c for c in ax.collections if isinstance(c, PolyCollection))
        assert len(collection.get_paths()) == 2
        assert [t.get_text() for t in ax.texts] == ["A", "B"]
        assert [t.get_text() for t in ax.get_legend().get_texts()] == ["A", "B"]
        assert out.exists()
        plt.close(fig)

    def test_numeric_plot_has_colorbar(self, adata, plotter):
        table = hexbin_meta(adata, "score", "mean")
        fig = plotter.plot(table, "score_mean", title="Score")
        assert len(fig.axes) == 2
        assert fig.axes[0].get_title() == "Score"
        plt.close(fig)

    def test_too_few_colors(self, adata, plotter):
        table = hexbin_meta(adata, "cell_type", "majority")
        with pytest.raises(ValueError):
            plotter.plot(table, "cell_type_majority", colors=["red"])
        plt.close("all")

    def test_missing_column(self, plotter):
        with pytest.raises(UnknownColumnError):
            plotter.plot(pd.DataFrame({"x": [0.0], "y": [0.0]}), "score_mean")
