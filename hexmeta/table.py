"""Bin-indexed result table handed to the plotting layer."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from .binning.aggregator import AggregateTable
from .binning.assigner import Assignment
from .errors import InvalidParameterError, ShapeMismatchError

BASE_COLUMNS = ("bin_id", "x", "y", "number_of_cells")


def build_result_table(
    assignment: Assignment,
    aggregates: Iterable[AggregateTable] = (),
) -> pd.DataFrame:
    """Join aggregate columns with bin centroids and member counts.

    Args:
        assignment: Assignment every aggregate was computed from
        aggregates: Aggregate tables to add as columns

    Returns:
        DataFrame with ``bin_id``, ``x``, ``y``, ``number_of_cells`` and one
        column per aggregate value, one row per populated bin
    """
    x, y = assignment.centroids()
    out = pd.DataFrame(
        {
            "bin_id": assignment.populated,
            "x": x,
            "y": y,
            "number_of_cells": assignment.counts,
        }
    )

    seen = set(BASE_COLUMNS)
    for table in aggregates:
        if not np.array_equal(table.bin_ids, assignment.populated):
            raise ShapeMismatchError(
                f"Aggregate for '{table.attribute}' was computed from a different assignment"
            )
        for col in table.columns:
            if col in seen:
                raise InvalidParameterError(f"Duplicate result column '{col}'")
            seen.add(col)
            # .array keeps the categorical dtype of majority columns
            out[col] = table.values[col].array

    return out
