"""hexmeta: hexagonal binning of single-cell embeddings.

Summarize cell attributes over a hexagonal tiling of a 2-D embedding to plot
them without overplotting.
"""

from __future__ import annotations

import os
from pathlib import Path

__version__ = "0.1.0"

# Ensure Numba has a writable cache directory. Read-only site-packages make
# `@njit(cache=True)` imports fail unless NUMBA_CACHE_DIR is set.
if "NUMBA_CACHE_DIR" not in os.environ:
    candidates: list[Path] = []
    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        candidates.append(Path(xdg_cache) / "numba")
    candidates.append(Path.home() / ".cache" / "numba")
    candidates.append(Path.cwd() / ".numba_cache")

    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except OSError:
            continue
        os.environ["NUMBA_CACHE_DIR"] = str(candidate)
        break

from .errors import (
    DegenerateInputError,
    HexbinError,
    HexbinNotComputedError,
    InvalidParameterError,
    ShapeMismatchError,
    TypeMismatchError,
    UnknownColumnError,
    UnknownEmbeddingError,
    UnsupportedActionError,
)
from .binning import ActionKind, AggregateTable, Assignment, HexGrid, aggregate, aggregate_many, assign, build_grid
from .labels import LabelAnchor, locate_labels
from .table import build_result_table
from .api import hexbin_feature, hexbin_meta, label_anchors, make_hexbin

__all__ = [
    "__version__",
    "ActionKind",
    "AggregateTable",
    "Assignment",
    "HexGrid",
    "LabelAnchor",
    "aggregate",
    "aggregate_many",
    "assign",
    "build_grid",
    "build_result_table",
    "locate_labels",
    "make_hexbin",
    "hexbin_meta",
    "hexbin_feature",
    "label_anchors",
    "HexbinError",
    "InvalidParameterError",
    "DegenerateInputError",
    "ShapeMismatchError",
    "TypeMismatchError",
    "UnsupportedActionError",
    "UnknownColumnError",
    "UnknownEmbeddingError",
    "HexbinNotComputedError",
]
