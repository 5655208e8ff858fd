"""High-level helpers operating on host containers."""

from __future__ import annotations

import logging
from typing import Optional, Union

import pandas as pd

from .binning.aggregator import ActionKind, aggregate
from .binning.assigner import Assignment, assign
from .binning.grid import Resolution, build_grid
from .errors import HexbinNotComputedError
from .io.sources import DataSource, as_source
from .labels import LabelAnchor, locate_labels
from .table import build_result_table

logger = logging.getLogger(__name__)


def make_hexbin(
    host,
    nbins: Resolution = 80,
    embedding: str = "X_umap",
    use_cache: bool = True,
) -> Assignment:
    """Bin the cells of an embedding into hexagons and attach the result.

    Args:
        host: AnnData object or DataSource
        nbins: Hexagons across the x-range (or an ``(nx, ny)`` pair)
        embedding: Embedding name, e.g. ``X_umap`` or ``umap``
        use_cache: Reuse a stored assignment for the same embedding and resolution

    Returns:
        Assignment of cells to hexagons
    """
    source = as_source(host)
    embedding = source.resolve_embedding(embedding)
    coords = source.get_embedding(embedding)

    if use_cache:
        cached = source.get_cached(embedding, nbins, coords)
        if cached is not None:
            logger.info(f"Reusing cached hexbin for '{embedding}' (nbins={nbins})")
            source.set_latest(embedding, nbins)
            return cached

    grid = build_grid(coords, nbins)
    assignment = assign(grid, coords)
    source.set_cached(embedding, nbins, assignment, coords)
    return assignment


def _resolve_assignment(
    source: DataSource,
    nbins: Optional[Resolution],
    embedding: Optional[str],
) -> Assignment:
    if nbins is not None:
        return make_hexbin(source, nbins, embedding or "X_umap")
    latest_embedding, assignment = source.get_latest()
    if embedding is not None and latest_embedding != source.resolve_embedding(embedding):
        raise HexbinNotComputedError(
            f"Latest hexbin was computed on '{latest_embedding}'; "
            f"pass nbins to bin '{embedding}'"
        )
    return assignment


def hexbin_meta(
    host,
    column: str,
    action: Union[str, ActionKind],
    nbins: Optional[Resolution] = None,
    embedding: Optional[str] = None,
) -> pd.DataFrame:
    """Summarize an attribute column per hexagon.

    Without ``nbins`` the most recent :func:`make_hexbin` result is used.

    Returns:
        Result table with ``x``, ``y``, ``number_of_cells`` and the aggregate columns
    """
    source = as_source(host)
    assignment = _resolve_assignment(source, nbins, embedding)
    values = source.get_column(column)
    table = aggregate(assignment, values, action, name=column)
    return build_result_table(assignment, [table])


def hexbin_feature(
    host,
    feature: str,
    action: Union[str, ActionKind] = ActionKind.MEAN,
    nbins: Optional[Resolution] = None,
    embedding: Optional[str] = None,
) -> pd.DataFrame:
    """Summarize a gene (or any named value the host resolves) per hexagon."""
    source = as_source(host)
    assignment = _resolve_assignment(source, nbins, embedding)
    values = source.get_values(feature)
    table = aggregate(assignment, values, action, name=feature)
    return build_result_table(assignment, [table])


def label_anchors(
    host,
    column: str,
    nbins: Optional[Resolution] = None,
    embedding: Optional[str] = None,
) -> list[LabelAnchor]:
    """Get label positions for the categories of a column."""
    source = as_source(host)
    assignment = _resolve_assignment(source, nbins, embedding)
    table = aggregate(assignment, source.get_column(column), ActionKind.MAJORITY, name=column)
    return locate_labels(table)
