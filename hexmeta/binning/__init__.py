"""Binning module for hexagonal binning and per-bin aggregation."""

from .grid import HexGrid, build_grid
from .assigner import Assignment, Bin, assign
from .aggregator import (
    ActionKind,
    AggregateTable,
    CategoricalAttribute,
    NumericAttribute,
    aggregate,
    aggregate_many,
    as_attribute,
)
from .stats import half_sample_mode

__all__ = [
    "HexGrid",
    "build_grid",
    "Assignment",
    "Bin",
    "assign",
    "ActionKind",
    "AggregateTable",
    "CategoricalAttribute",
    "NumericAttribute",
    "aggregate",
    "aggregate_many",
    "as_attribute",
    "half_sample_mode",
]
