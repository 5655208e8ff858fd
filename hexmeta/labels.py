"""Label anchors for categorical hexagon plots."""

from __future__ import annotations

from typing import Any, NamedTuple

import numpy as np
import pandas as pd

from .binning.aggregator import ActionKind, AggregateTable
from .errors import TypeMismatchError


class LabelAnchor(NamedTuple):
    category: Any
    x: float
    y: float


def locate_labels(aggregate_table: AggregateTable) -> list[LabelAnchor]:
    """Place one label per category at the mean centroid of the bins it wins.

    Categories that are not the majority of any bin get no anchor. Anchors
    follow the level order of the attribute.

    Args:
        aggregate_table: Result of a ``majority`` aggregation

    Returns:
        List of LabelAnchor
    """
    if aggregate_table.action is not ActionKind.MAJORITY:
        raise TypeMismatchError(
            f"Label anchors need a majority aggregation, got '{aggregate_table.action.value}'"
        )

    majority = aggregate_table.values.iloc[:, 0].array
    codes = np.asarray(majority.codes)

    anchors = []
    for code, level in enumerate(aggregate_table.levels or ()):
        won = codes == code
        if not np.any(won):
            continue
        anchors.append(
            LabelAnchor(
                category=level,
                x=float(np.mean(aggregate_table.x[won])),
                y=float(np.mean(aggregate_table.y[won])),
            )
        )
    return anchors


def anchors_to_frame(anchors: list[LabelAnchor]) -> pd.DataFrame:
    """Convert label anchors to a DataFrame with category, x and y columns."""
    return pd.DataFrame(anchors, columns=list(LabelAnchor._fields))
