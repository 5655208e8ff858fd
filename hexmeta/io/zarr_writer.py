"""Zarr writer for hexagon bin tables."""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import zarr

from ..binning.assigner import Assignment
from ..labels import LabelAnchor

logger = logging.getLogger(__name__)


class ZarrHexbinWriter:
    """Writer for one embedding's hexagon bins and aggregates in Zarr format.

    Layout::

        hexbin.zarr/
            bin_ids              int64[n_cells]   bin of every cell
            bins/bin_id          int64[n_bins]
            bins/x, bins/y       float64[n_bins]  tile centers
            bins/number_of_cells int64[n_bins]
            columns/<name>       float32[n_bins]  numeric aggregates
            columns/<name>       int32[n_bins]    categorical codes (-1 = missing),
                                                  levels in the array attrs
    """

    def __init__(self, path: Path, embedding: str, chunk_size: int = 4096):
        """Initialize the Zarr writer.

        Args:
            path: Output path for Zarr store
            embedding: Embedding the bins were computed on
            chunk_size: Chunk length for all 1-D arrays
        """
        self.path = Path(path)
        self.embedding = embedding
        self.chunk_size = chunk_size
        self.columns: list[str] = []

        self.path.mkdir(parents=True, exist_ok=True)

        # Create root group using zarr v3 API
        self.root = zarr.open_group(str(self.path), mode="w")
        self.root.attrs["embedding"] = embedding
        self.root.attrs["format_version"] = "1.0"

    def _chunks(self, n: int) -> tuple[int]:
        return (max(1, min(self.chunk_size, n)),)

    def write_assignment(self, assignment: Assignment) -> None:
        """Write grid parameters, per-cell bin IDs and the bin index."""
        self.root.attrs["grid"] = assignment.grid.to_dict()
        self.root.attrs["n_cells"] = assignment.n_points
        self.root.attrs["n_bins"] = assignment.n_populated

        self.root.create_array(
            "bin_ids",
            data=np.asarray(assignment.bin_ids, dtype=np.int64),
            chunks=self._chunks(assignment.n_points),
        )

        x, y = assignment.centroids()
        bins = self.root.create_group("bins")
        n_bins = assignment.n_populated
        bins.create_array("bin_id", data=assignment.populated.astype(np.int64), chunks=self._chunks(n_bins))
        bins.create_array("x", data=x, chunks=self._chunks(n_bins))
        bins.create_array("y", data=y, chunks=self._chunks(n_bins))
        bins.create_array(
            "number_of_cells",
            data=assignment.counts.astype(np.int64),
            chunks=self._chunks(n_bins),
        )
        self.root.create_group("columns")

        logger.info(f"Wrote {n_bins:,} bins for {assignment.n_points:,} cells")

    def write_table_columns(self, table: pd.DataFrame, columns: list[str]) -> None:
        """Write aggregate columns of a result table."""
        group = self.root["columns"]
        n_bins = table.shape[0]

        for col in columns:
            series = table[col]
            # Zarr node names cannot contain "/"
            name = str(col).replace("/", "_")
            if isinstance(series.dtype, pd.CategoricalDtype):
                arr = group.create_array(
                    name,
                    data=series.cat.codes.to_numpy(dtype=np.int32),
                    chunks=self._chunks(n_bins),
                )
                arr.attrs["levels"] = [str(c) for c in series.cat.categories]
            else:
                group.create_array(
                    name,
                    data=series.to_numpy(dtype=np.float32, na_value=np.nan),
                    chunks=self._chunks(n_bins),
                )
            self.columns.append(name)

    def write_labels(self, column: str, anchors: list[LabelAnchor]) -> None:
        """Store label anchors of a majority column in the root attrs."""
        labels = dict(self.root.attrs.get("labels", {}))
        labels[column] = [
            {"category": str(a.category), "x": float(a.x), "y": float(a.y)} for a in anchors
        ]
        self.root.attrs["labels"] = labels

    def finalize(self, extra_attrs: Optional[dict] = None) -> None:
        """Finalize the Zarr store."""
        self.root.attrs["columns"] = list(self.columns)
        if extra_attrs:
            self.root.attrs.update(extra_attrs)
        logger.info(f"Finalized Zarr store at: {self.path}")
