"""Hexagon plots of result tables."""

import logging
from pathlib import Path
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.collections import PolyCollection
from matplotlib.patches import Patch

from .binning.grid import HexGrid
from .errors import UnknownColumnError
from .labels import LabelAnchor

logger = logging.getLogger(__name__)


class HexbinPlotter:
    """Draw a result table as filled hexagons."""

    def __init__(self, grid: HexGrid):
        """Initialize the plotter.

        Args:
            grid: Grid the result table was binned on (gives the hexagon size)
        """
        self.grid = grid

    def _polygons(self, table: pd.DataFrame) -> np.ndarray:
        centers = table[["x", "y"]].to_numpy(dtype=np.float64)
        return centers[:, None, :] + self.grid.hexagon_vertices()[None, :, :]

    def plot(
        self,
        table: pd.DataFrame,
        colour_by: str,
        colors: Optional[Sequence[str]] = None,
        labels: Optional[list[LabelAnchor]] = None,
        title: Optional[str] = None,
        xlab: str = "x",
        ylab: str = "y",
        output_path: Optional[Path] = None,
        figsize: tuple[float, float] = (7, 7),
        dpi: int = 150,
        cmap: str = "viridis",
    ) -> plt.Figure:
        """Plot hexagons coloured by one column of a result table.

        Categorical columns get a discrete palette with a legend below the plot
        and optional text labels; numeric columns get a continuous colormap.

        Args:
            table: Result table with ``x``, ``y`` and the ``colour_by`` column
            colour_by: Column to colour by
            colors: Optional colours for the categories (categorical columns only)
            labels: Optional label anchors drawn as text
            title: Plot title (defaults to ``colour_by``)
            xlab: X axis title
            ylab: Y axis title
            output_path: Optional path to save figure
            figsize: Figure size in inches
            dpi: Figure resolution
            cmap: Colormap name for numeric columns

        Returns:
            Matplotlib figure
        """
        missing = [c for c in ("x", "y", colour_by) if c not in table.columns]
        if missing:
            raise UnknownColumnError(f"Result table is missing columns: {missing}")

        fig, ax = plt.subplots(figsize=figsize)
        polygons = self._polygons(table)
        values = table[colour_by]

        if isinstance(values.dtype, pd.CategoricalDtype):
            categories = list(values.cat.categories)
            n_categories = len(categories)
            if colors is None:
                palette = plt.get_cmap("tab20" if n_categories <= 20 else "nipy_spectral")
                colors = [palette(i / max(n_categories, 1)) for i in range(n_categories)]
            elif len(colors) < n_categories:
                raise ValueError(f"Need {n_categories} colors, got {len(colors)}")

            codes = values.cat.codes.to_numpy()
            facecolors = [colors[c] if c >= 0 else "lightgrey" for c in codes]
            ax.add_collection(PolyCollection(polygons, facecolors=facecolors, edgecolors="none"))

            handles = [Patch(facecolor=colors[i], label=str(cat)) for i, cat in enumerate(categories)]
            ax.legend(
                handles=handles,
                loc="upper center",
                bbox_to_anchor=(0.5, -0.1),
                ncol=min(n_categories, 5) or 1,
                frameon=False,
                fontsize=8,
            )

            for anchor in labels or []:
                ax.text(anchor.x, anchor.y, str(anchor.category), ha="center", va="center", fontsize=9)
        else:
            collection = PolyCollection(polygons, cmap=cmap, edgecolors="none")
            collection.set_array(values.to_numpy(dtype=np.float64, na_value=np.nan))
            ax.add_collection(collection)
            fig.colorbar(collection, ax=ax)

        ax.set_xlim(self.grid.xbnds[0] - self.grid.width, self.grid.xbnds[1] + self.grid.width)
        ax.set_ylim(self.grid.ybnds[0] - self.grid.hex_height, self.grid.ybnds[1] + self.grid.hex_height)
        ax.set_title(title or colour_by, fontsize=12)
        ax.set_xlabel(xlab)
        ax.set_ylabel(ylab)
        for side in ("top", "right"):
            ax.spines[side].set_visible(False)

        plt.tight_layout()

        if output_path:
            fig.savefig(output_path, dpi=dpi, bbox_inches="tight")
            logger.info(f"Saved: {output_path}")

        return fig
