"""Attribute aggregation for binned cells."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Union

import numpy as np
import pandas as pd

from ..errors import ShapeMismatchError, TypeMismatchError, UnsupportedActionError
from .assigner import Assignment
from .stats import half_sample_mode

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    """Summary statistic applied to the members of each bin."""

    MAJORITY = "majority"
    PROP = "prop"
    PROP_0 = "prop_0"
    MODE = "mode"
    MEAN = "mean"
    MEDIAN = "median"

    @classmethod
    def parse(cls, action: Union[str, "ActionKind"]) -> "ActionKind":
        """Resolve an action name, raising UnsupportedActionError if unknown."""
        if isinstance(action, cls):
            return action
        try:
            return cls(str(action).strip().lower())
        except ValueError:
            valid = [a.value for a in cls]
            raise UnsupportedActionError(f"Unsupported action '{action}'. Valid actions: {valid}")

    @property
    def is_categorical(self) -> bool:
        """True if the action needs a categorical attribute."""
        return self in (ActionKind.MAJORITY, ActionKind.PROP)


@dataclass(frozen=True)
class NumericAttribute:
    """Numeric attribute; NaN and infinite values count as missing."""

    values: np.ndarray
    name: str = "value"

    def __len__(self) -> int:
        return int(self.values.shape[0])


@dataclass(frozen=True)
class CategoricalAttribute:
    """Categorical attribute encoded as level codes (-1 = missing).

    ``declared`` is True when ``levels`` is an order the data declares (a
    pandas categorical or a boolean), and False when the levels were taken in
    first-encountered order from plain values.
    """

    codes: np.ndarray
    levels: tuple
    name: str = "value"
    declared: bool = True

    def __len__(self) -> int:
        return int(self.codes.shape[0])


Attribute = Union[NumericAttribute, CategoricalAttribute]


def as_attribute(values, name: Optional[str] = None) -> Attribute:
    """Classify a column of values as a numeric or categorical attribute.

    Args:
        values: 1-D sequence, numpy array, pandas Series or Categorical
        name: Attribute name used for output columns (defaults to the Series name)

    Returns:
        NumericAttribute or CategoricalAttribute
    """
    if isinstance(values, (NumericAttribute, CategoricalAttribute)):
        return values

    if np.ndim(values) != 1:
        raise ShapeMismatchError(f"Attribute must be one-dimensional, got {np.ndim(values)} dimensions")

    if name is None:
        name = getattr(values, "name", None)
    name = "value" if name is None else str(name)

    series = values if isinstance(values, pd.Series) else pd.Series(values)

    if isinstance(series.dtype, pd.CategoricalDtype):
        return CategoricalAttribute(
            codes=series.cat.codes.to_numpy(dtype=np.int32),
            levels=tuple(series.cat.categories),
            name=name,
            declared=True,
        )

    if pd.api.types.is_bool_dtype(series):
        codes = pd.Categorical(series, categories=[False, True]).codes
        return CategoricalAttribute(
            codes=np.asarray(codes, dtype=np.int32),
            levels=(False, True),
            name=name,
            declared=True,
        )

    if pd.api.types.is_numeric_dtype(series):
        return NumericAttribute(
            values=series.to_numpy(dtype=np.float64, na_value=np.nan),
            name=name,
        )

    codes, uniques = pd.factorize(series, sort=False)
    return CategoricalAttribute(
        codes=codes.astype(np.int32, copy=False),
        levels=tuple(uniques),
        name=name,
        declared=False,
    )


@dataclass(frozen=True, eq=False)
class AggregateTable:
    """Aggregate values of one attribute for every populated bin."""

    action: ActionKind
    attribute: str
    bin_ids: np.ndarray
    x: np.ndarray
    y: np.ndarray
    counts: np.ndarray
    values: pd.DataFrame  # indexed by bin ID
    levels: Optional[tuple] = field(default=None)

    def __len__(self) -> int:
        return int(self.bin_ids.shape[0])

    @property
    def columns(self) -> list[str]:
        return list(self.values.columns)

    def to_frame(self) -> pd.DataFrame:
        """Get the table with bin ID, centroid and count columns."""
        base = pd.DataFrame(
            {
                "bin_id": self.bin_ids,
                "x": self.x,
                "y": self.y,
                "number_of_cells": self.counts,
            }
        )
        values = self.values.reset_index(drop=True)
        return pd.concat([base, values], axis=1)


def _finite_values(attribute: NumericAttribute) -> np.ndarray:
    values = attribute.values
    return np.where(np.isfinite(values), values, np.nan)


def _aggregate_mean(assignment: Assignment, attribute: NumericAttribute) -> np.ndarray:
    values = _finite_values(attribute)
    valid = ~np.isnan(values)
    n_bins = assignment.n_populated
    bin_idx = assignment.bin_index_per_point[valid]

    sums = np.bincount(bin_idx, weights=values[valid], minlength=n_bins)
    n_valid = np.bincount(bin_idx, minlength=n_bins)
    with np.errstate(invalid="ignore", divide="ignore"):
        mean = sums / n_valid
    mean = np.where(n_valid == 0, np.nan, mean)

    # Keep rounding error from pushing the mean outside the member range
    sorted_values = values[assignment.order]
    mins = np.fmin.reduceat(sorted_values, assignment.starts)
    maxs = np.fmax.reduceat(sorted_values, assignment.starts)
    return np.minimum(np.maximum(mean, mins), maxs)


def _aggregate_per_bin(
    assignment: Assignment,
    attribute: NumericAttribute,
    func: Callable[[np.ndarray], float],
) -> np.ndarray:
    values = _finite_values(attribute)
    out = np.full(assignment.n_populated, np.nan, dtype=np.float64)
    for k, members in enumerate(assignment.iter_members()):
        v = values[members]
        v = v[~np.isnan(v)]
        if v.size:
            out[k] = func(v)
    return out


def _aggregate_median(assignment: Assignment, attribute: NumericAttribute) -> np.ndarray:
    return _aggregate_per_bin(assignment, attribute, np.median)


def _aggregate_mode(assignment: Assignment, attribute: NumericAttribute) -> np.ndarray:
    return _aggregate_per_bin(assignment, attribute, half_sample_mode)


def _aggregate_prop_0(assignment: Assignment, attribute: NumericAttribute) -> np.ndarray:
    values = _finite_values(attribute)
    valid = ~np.isnan(values)
    n_bins = assignment.n_populated
    bin_idx = assignment.bin_index_per_point[valid]

    positive = np.bincount(bin_idx, weights=(values[valid] > 0).astype(np.float64), minlength=n_bins)
    n_valid = np.bincount(bin_idx, minlength=n_bins)
    with np.errstate(invalid="ignore", divide="ignore"):
        prop = positive / n_valid
    return np.where(n_valid == 0, np.nan, prop)


def _level_counts(assignment: Assignment, attribute: CategoricalAttribute) -> np.ndarray:
    """Count members per (populated bin, level), shape (n_populated, n_levels)."""
    n_bins = assignment.n_populated
    n_levels = len(attribute.levels)
    valid = attribute.codes >= 0
    bin_idx = assignment.bin_index_per_point[valid].astype(np.int64, copy=False)
    idx = bin_idx * n_levels + attribute.codes[valid].astype(np.int64, copy=False)
    counts_flat = np.bincount(idx, minlength=n_bins * n_levels)
    return counts_flat.reshape((n_bins, n_levels))


def _aggregate_majority(assignment: Assignment, attribute: CategoricalAttribute) -> pd.Categorical:
    n_levels = len(attribute.levels)
    if n_levels == 0:
        codes = np.full(assignment.n_populated, -1, dtype=np.int64)
        return pd.Categorical.from_codes(codes, categories=[])

    counts = _level_counts(assignment, attribute)
    is_max = counts == counts.max(axis=1, keepdims=True)

    if attribute.declared:
        # argmax returns the first maximum, i.e. the earliest declared level
        winner = np.argmax(is_max, axis=1)
    else:
        # Earliest member position per (bin, level); stable order keeps input order
        valid = attribute.codes >= 0
        n_points = assignment.n_points
        first = np.full(counts.shape, n_points, dtype=np.int64)
        np.minimum.at(
            first,
            (assignment.bin_index_per_point[valid], attribute.codes[valid]),
            np.arange(n_points, dtype=np.int64)[valid],
        )
        winner = np.argmin(np.where(is_max, first, n_points + 1), axis=1)

    winner = np.where(counts.sum(axis=1) == 0, -1, winner)
    return pd.Categorical.from_codes(winner, categories=list(attribute.levels))


def _aggregate_prop(assignment: Assignment, attribute: CategoricalAttribute) -> np.ndarray:
    counts = _level_counts(assignment, attribute).astype(np.float64)
    n_valid = counts.sum(axis=1, keepdims=True)
    with np.errstate(invalid="ignore", divide="ignore"):
        prop = counts / n_valid
    return np.where(n_valid == 0, np.nan, prop)


_NUMERIC_HANDLERS = {
    ActionKind.MEAN: _aggregate_mean,
    ActionKind.MEDIAN: _aggregate_median,
    ActionKind.MODE: _aggregate_mode,
    ActionKind.PROP_0: _aggregate_prop_0,
}


def _check_kind(attribute: Attribute, action: ActionKind) -> None:
    if action.is_categorical and not isinstance(attribute, CategoricalAttribute):
        raise TypeMismatchError(
            f"Action '{action.value}' needs a categorical attribute, "
            f"but '{attribute.name}' is numeric"
        )
    if not action.is_categorical and not isinstance(attribute, NumericAttribute):
        raise TypeMismatchError(
            f"Action '{action.value}' needs a numeric attribute, "
            f"but '{attribute.name}' is categorical"
        )


def aggregate(
    assignment: Assignment,
    attribute,
    action: Union[str, ActionKind],
    name: Optional[str] = None,
) -> AggregateTable:
    """Summarize an attribute over the members of every populated bin.

    Args:
        assignment: Point assignment shared by all aggregations of the point set
        attribute: Values parallel to the points (or a prepared attribute)
        action: One of the ActionKind names
        name: Attribute name used for output columns

    Returns:
        AggregateTable with one row per populated bin
    """
    action = ActionKind.parse(action)
    attr = as_attribute(attribute, name)
    _check_kind(attr, action)

    if len(attr) != assignment.n_points:
        raise ShapeMismatchError(
            f"Attribute '{attr.name}' has {len(attr)} values, "
            f"assignment has {assignment.n_points} points"
        )

    index = pd.Index(assignment.populated, name="bin_id")
    levels = None

    if action is ActionKind.MAJORITY:
        levels = attr.levels
        values = pd.DataFrame(
            {f"{attr.name}_{action.value}": _aggregate_majority(assignment, attr)},
            index=index,
        )
    elif action is ActionKind.PROP:
        levels = attr.levels
        columns = [f"{attr.name}_{level}" for level in levels]
        values = pd.DataFrame(_aggregate_prop(assignment, attr), index=index, columns=columns)
    else:
        handler = _NUMERIC_HANDLERS[action]
        values = pd.DataFrame({f"{attr.name}_{action.value}": handler(assignment, attr)}, index=index)

    x, y = assignment.centroids()
    logger.debug(f"Aggregated '{attr.name}' with {action.value} over {assignment.n_populated:,} bins")

    return AggregateTable(
        action=action,
        attribute=attr.name,
        bin_ids=assignment.populated,
        x=x,
        y=y,
        counts=assignment.counts,
        values=values,
        levels=levels,
    )


def aggregate_many(
    assignment: Assignment,
    requests: Iterable[tuple],
    max_workers: Optional[int] = None,
) -> list[AggregateTable]:
    """Run several aggregations over one assignment concurrently.

    Args:
        assignment: Shared, read-only point assignment
        requests: Iterable of ``(name, values, action)`` tuples
        max_workers: Thread pool size (None lets the executor decide)

    Returns:
        AggregateTables in request order
    """
    requests = list(requests)
    if not requests:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(aggregate, assignment, values, action, name)
            for name, values, action in requests
        ]
        return [future.result() for future in futures]
