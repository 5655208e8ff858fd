"""Main pipeline: H5AD in, hexagon bin tables out."""

import json
import logging
import re
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd
import scanpy as sc
from tqdm import tqdm

from .api import make_hexbin
from .binning.aggregator import ActionKind, AggregateTable, aggregate_many
from .binning.assigner import Assignment
from .config import HexbinConfig
from .io.sources import AnnDataSource
from .io.zarr_writer import ZarrHexbinWriter
from .labels import LabelAnchor, locate_labels
from .table import BASE_COLUMNS, build_result_table
from .visualization import HexbinPlotter

logger = logging.getLogger(__name__)


class HexbinPipeline:
    """Bin one embedding into hexagons and summarize the requested columns."""

    def __init__(self, config: HexbinConfig):
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration
        """
        self.config = config
        self.adata: Optional[sc.AnnData] = None
        self.source: Optional[AnnDataSource] = None
        self.assignment: Optional[Assignment] = None
        self.aggregates: list[AggregateTable] = []
        self.table: Optional[pd.DataFrame] = None
        self.labels: dict[str, list[LabelAnchor]] = {}

    def run(self) -> pd.DataFrame:
        """Execute the full pipeline and return the result table."""
        logger.info("Starting hexbin pipeline")

        # Step 1: Load H5AD
        self._load_data()

        # Step 2: Bin cells into hexagons
        self._bin_cells()

        # Step 3: Aggregate requested columns
        self._aggregate()

        # Step 4: Write Zarr store and metadata
        self._write_zarr()
        self._write_metadata()

        # Step 5: Figures (optional)
        if self.config.plot:
            self._plot()

        logger.info("Pipeline completed successfully")
        return self.table

    def _load_data(self) -> None:
        """Load H5AD file."""
        logger.info(f"Loading H5AD from: {self.config.input_path}")
        self.adata = sc.read_h5ad(self.config.input_path)
        self.source = AnnDataSource(self.adata, layer=self.config.layer)
        logger.info(f"Loaded {self.adata.n_obs:,} cells, {self.adata.n_vars:,} genes")

    def _bin_cells(self) -> None:
        """Compute (or reuse) the hexagon assignment of the embedding."""
        nbins = self.config.nbins
        if isinstance(nbins, list):
            nbins = tuple(nbins)

        self.assignment = make_hexbin(self.source, nbins, self.config.embedding)
        grid = self.assignment.grid
        logger.info(
            f"Hexagon grid for '{self.config.embedding}': {grid.n_cols} x {grid.n_rows} tiles, "
            f"{self.assignment.n_populated:,} populated"
        )

    def _aggregate(self) -> None:
        """Summarize every requested column and build the result table."""
        requests = []
        for spec in tqdm(self.config.aggregations, desc="Loading columns", leave=False):
            values = self.source.get_values(spec.column)
            requests.append((spec.column, values, ActionKind.parse(spec.action)))
            logger.info(f"  {spec.column}: {spec.action}")

        self.aggregates = aggregate_many(
            self.assignment,
            requests,
            max_workers=self.config.max_workers,
        )
        self.table = build_result_table(self.assignment, self.aggregates)

        for agg in self.aggregates:
            if agg.action is ActionKind.MAJORITY:
                self.labels[agg.columns[0]] = locate_labels(agg)

        logger.info(f"Result table: {self.table.shape[0]:,} bins x {self.table.shape[1]} columns")

    def _value_columns(self) -> list[str]:
        return [c for c in self.table.columns if c not in BASE_COLUMNS]

    def _write_zarr(self) -> None:
        """Write bins, per-cell assignment and aggregate columns to Zarr."""
        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        zarr_path = self.config.output_dir / "hexbin.zarr"
        logger.info(f"Writing Zarr store -> {zarr_path}")

        writer = ZarrHexbinWriter(zarr_path, embedding=self.config.embedding, chunk_size=self.config.chunk_size)
        writer.write_assignment(self.assignment)
        writer.write_table_columns(self.table, self._value_columns())
        for column, anchors in self.labels.items():
            writer.write_labels(column, anchors)
        writer.finalize()

    def _write_metadata(self) -> None:
        """Write metadata.json describing the grid, columns and label anchors."""
        metadata = {
            "dataset_name": self.config.dataset_name or self.config.input_path.stem,
            "n_cells": int(self.adata.n_obs),
            "embedding": self.config.embedding,
            "grid": self.assignment.grid.to_dict(),
            "n_bins": self.assignment.n_populated,
            "aggregations": [
                {
                    "column": agg.attribute,
                    "action": agg.action.value,
                    "output_columns": agg.columns,
                    "levels": [str(level) for level in agg.levels] if agg.levels is not None else None,
                }
                for agg in self.aggregates
            ],
            "labels": {
                column: [{"category": str(a.category), "x": a.x, "y": a.y} for a in anchors]
                for column, anchors in self.labels.items()
            },
            "zarr_path": "hexbin.zarr",
        }

        metadata_path = self.config.output_dir / "metadata.json"
        with open(metadata_path, "w") as f:
            json.dump(metadata, f, indent=2)

        logger.info(f"Metadata written to: {metadata_path}")

    def _plot(self) -> None:
        """Render one figure per aggregate column."""
        figures_dir = self.config.output_dir / "figures"
        figures_dir.mkdir(parents=True, exist_ok=True)

        plotter = HexbinPlotter(self.assignment.grid)
        for column, stem in tqdm(self._figure_stems().items(), desc="Plotting", leave=False):
            fig = plotter.plot(
                self.table,
                colour_by=column,
                labels=self.labels.get(column),
                xlab=f"{self.config.embedding}_1",
                ylab=f"{self.config.embedding}_2",
                output_path=figures_dir / f"{stem}.{self.config.plot_format}",
                dpi=self.config.dpi,
            )
            plt.close(fig)

    def _figure_stems(self) -> dict[str, str]:
        """Map each value column to a unique file-safe figure name."""
        stems: dict[str, str] = {}
        used: set[str] = set()
        for column in self._value_columns():
            safe = re.sub(r"[^A-Za-z0-9_.-]+", "_", column).strip("_") or "column"
            stem = safe
            n = 1
            while stem in used:
                n += 1
                stem = f"{safe}_{n}"
            used.add(stem)
            stems[column] = stem
        return stems
