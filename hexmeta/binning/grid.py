"""Hexagonal grid covering the bounding box of a 2-D point set."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from ..errors import DegenerateInputError, InvalidParameterError, ShapeMismatchError

SQRT3 = math.sqrt(3.0)

Resolution = Union[int, Sequence[int]]


@dataclass(frozen=True)
class HexGrid:
    """Brick-and-offset hexagonal tiling.

    Tiles are pointy-top hexagons laid out in rows; odd rows are shifted right
    by half a tile width. Tile ``(row, col)`` has bin ID ``row * n_cols + col``.
    One extra column and at least one extra row pair are allocated beyond the
    bounding box so points on the boundary are always captured.
    """

    xbnds: tuple[float, float]
    ybnds: tuple[float, float]
    nbins: tuple[int, int]
    shape: float
    n_cols: int
    n_rows: int
    n_points: int

    @property
    def x_range(self) -> float:
        return self.xbnds[1] - self.xbnds[0]

    @property
    def y_range(self) -> float:
        return self.ybnds[1] - self.ybnds[0]

    @property
    def width(self) -> float:
        """Horizontal distance between neighbouring tile centers in a row."""
        return self.x_range / self.nbins[0]

    @property
    def row_height(self) -> float:
        """Vertical distance between centers of consecutive rows."""
        return self.y_range * SQRT3 / (2.0 * self.shape * self.nbins[0])

    @property
    def hex_height(self) -> float:
        """Vertex-to-vertex height of a tile."""
        return self.row_height * 4.0 / 3.0

    @property
    def n_tiles(self) -> int:
        return self.n_cols * self.n_rows

    @property
    def scale_x(self) -> float:
        # Data units -> lattice units along x
        return self.nbins[0] / self.x_range

    @property
    def scale_y(self) -> float:
        # Data units -> lattice units along y (lattice rows are two grid rows apart)
        return self.nbins[0] * self.shape / (self.y_range * SQRT3)

    def tile_rows_cols(self, bin_ids: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Split bin IDs into (row, col) index arrays."""
        bin_ids = np.asarray(bin_ids, dtype=np.int64)
        return bin_ids // self.n_cols, bin_ids % self.n_cols

    def tile_centers(self, bin_ids: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Get center coordinates of tiles.

        Args:
            bin_ids: Bin IDs, any subset of ``range(n_tiles)``

        Returns:
            Tuple of (x, y) arrays in input coordinates
        """
        rows, cols = self.tile_rows_cols(bin_ids)
        x = self.xbnds[0] + (cols + 0.5 * (rows % 2)) * self.width
        y = self.ybnds[0] + rows * self.row_height
        return x.astype(np.float64), y.astype(np.float64)

    def hexagon_vertices(self) -> np.ndarray:
        """Vertex offsets of one tile relative to its center, shape (6, 2)."""
        half_w = self.width / 2.0
        r = self.hex_height / 2.0
        return np.array(
            [
                (0.0, r),
                (half_w, r / 2.0),
                (half_w, -r / 2.0),
                (0.0, -r),
                (-half_w, -r / 2.0),
                (-half_w, r / 2.0),
            ]
        )

    def to_dict(self) -> dict:
        """Get grid parameters as a JSON/H5AD friendly dictionary."""
        return {
            "xbnds": [float(v) for v in self.xbnds],
            "ybnds": [float(v) for v in self.ybnds],
            "nbins": [int(v) for v in self.nbins],
            "shape": float(self.shape),
            "n_cols": int(self.n_cols),
            "n_rows": int(self.n_rows),
            "n_points": int(self.n_points),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HexGrid":
        """Rebuild a grid from the output of :meth:`to_dict`."""
        return cls(
            xbnds=(float(data["xbnds"][0]), float(data["xbnds"][1])),
            ybnds=(float(data["ybnds"][0]), float(data["ybnds"][1])),
            nbins=(int(data["nbins"][0]), int(data["nbins"][1])),
            shape=float(data["shape"]),
            n_cols=int(data["n_cols"]),
            n_rows=int(data["n_rows"]),
            n_points=int(data["n_points"]),
        )


def as_points(points) -> np.ndarray:
    """Convert a point sequence into a float64 array of shape (n_points, 2)."""
    coords = np.asarray(points, dtype=np.float64)
    if coords.ndim != 2 or coords.shape[1] != 2:
        raise ShapeMismatchError(f"Points must have shape (n_points, 2), got {coords.shape}")
    return coords


def parse_resolution(nbins: Resolution) -> tuple[int, int]:
    """Normalize a resolution into ``(nx, ny)``; ``ny`` is 0 for a single int."""
    if isinstance(nbins, (bool, np.bool_)):
        raise InvalidParameterError(f"nbins must be an integer, got {nbins!r}")

    if isinstance(nbins, (int, np.integer)):
        values = [int(nbins)]
    else:
        try:
            values = list(nbins)
        except TypeError:
            raise InvalidParameterError(f"nbins must be an integer or a pair of integers, got {nbins!r}")
        if len(values) != 2 or not all(
            isinstance(v, (int, np.integer)) and not isinstance(v, (bool, np.bool_)) for v in values
        ):
            raise InvalidParameterError(f"nbins must be an integer or a pair of integers, got {nbins!r}")
        values = [int(v) for v in values]

    for v in values:
        if v < 2:
            raise InvalidParameterError(f"nbins must be >= 2, got {nbins!r}")

    if len(values) == 1:
        return values[0], 0
    return values[0], values[1]


def build_grid(points, nbins: Resolution) -> HexGrid:
    """Build a hexagonal grid covering the bounding box of a point set.

    With a single integer, ``nbins`` tiles span the x-range and tiles are
    regular hexagons in data space, so the number of rows follows from the
    y-range. With a pair ``(nx, ny)``, ``nx`` tiles span the x-range and ``ny``
    row steps span the y-range.

    Args:
        points: Point coordinates, shape (n_points, 2)
        nbins: Resolution, an integer >= 2 or a pair of such integers

    Returns:
        HexGrid for the point set
    """
    nx, ny = parse_resolution(nbins)
    coords = as_points(points)

    if coords.shape[0] == 0:
        raise DegenerateInputError("Cannot build a hexagon grid from an empty point set")
    if not np.all(np.isfinite(coords)):
        raise InvalidParameterError("Points contain non-finite coordinates")

    xmin, ymin = coords.min(axis=0)
    xmax, ymax = coords.max(axis=0)
    x_range = float(xmax - xmin)
    y_range = float(ymax - ymin)
    if x_range <= 0 or y_range <= 0:
        raise DegenerateInputError(
            f"Bounding box has zero extent (x range {x_range}, y range {y_range})"
        )

    if ny:
        shape = SQRT3 * ny / (2.0 * nx)
    else:
        shape = y_range / x_range

    n_cols = int(math.floor(nx + 1.5001))
    n_rows = 2 * int(math.floor(nx * shape / SQRT3 + 1.5001))

    return HexGrid(
        xbnds=(float(xmin), float(xmax)),
        ybnds=(float(ymin), float(ymax)),
        nbins=(nx, ny if ny else nx),
        shape=float(shape),
        n_cols=n_cols,
        n_rows=n_rows,
        n_points=int(coords.shape[0]),
    )
