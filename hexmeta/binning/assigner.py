"""Point-to-hexagon assignment."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numba import njit

from ..errors import InvalidParameterError, ShapeMismatchError
from .grid import HexGrid, as_points

logger = logging.getLogger(__name__)

# Squared lattice distance below which the rounded even-row center always wins,
# and above which the odd-row center always wins.
_NEAR_EVEN = 0.25
_NEAR_ODD = 1.0 / 3.0


@njit(cache=True)
def _hex_bin_ids(
    x: np.ndarray,
    y: np.ndarray,
    xmin: float,
    ymin: float,
    scale_x: float,
    scale_y: float,
    n_cols: int,
) -> np.ndarray:
    """Numba-accelerated nearest hexagon center lookup.

    Args:
        x: Point x coordinates, shape (n_points,)
        y: Point y coordinates, shape (n_points,)
        xmin: Grid x origin
        ymin: Grid y origin
        scale_x: Data -> lattice scale along x
        scale_y: Data -> lattice scale along y
        n_cols: Tiles per grid row

    Returns:
        Bin IDs, shape (n_points,)
    """
    n_points = x.shape[0]
    result = np.empty(n_points, dtype=np.int64)

    for k in range(n_points):
        sx = scale_x * (x[k] - xmin)
        sy = scale_y * (y[k] - ymin)

        # Even-row candidate: nearest integer lattice point
        j1 = int(sx + 0.5)
        i1 = int(sy + 0.5)
        if sx - j1 == -0.5:
            # Halfway between two columns: take the lower one
            j1 -= 1
        dist1 = (sx - j1) ** 2 + 3.0 * (sy - i1) ** 2

        # Odd-row candidate: enclosing half-integer lattice point
        j2 = int(sx)
        i2 = int(sy)
        if j2 > 0 and sx == j2:
            j2 -= 1

        if dist1 < _NEAR_EVEN:
            row = 2 * i1
            col = j1
        elif dist1 > _NEAR_ODD:
            row = 2 * i2 + 1
            col = j2
        else:
            dist2 = (sx - j2 - 0.5) ** 2 + 3.0 * (sy - i2 - 0.5) ** 2
            row1 = 2 * i1
            row2 = 2 * i2 + 1
            if dist1 < dist2:
                row = row1
                col = j1
            elif dist2 < dist1:
                row = row2
                col = j2
            elif row1 < row2 or (row1 == row2 and j1 <= j2):
                row = row1
                col = j1
            else:
                row = row2
                col = j2

        result[k] = row * n_cols + col

    return result


@dataclass(frozen=True)
class Bin:
    """One populated hexagon tile."""

    bin_id: int
    x: float
    y: float
    count: int
    members: np.ndarray


@dataclass(frozen=True)
class Assignment:
    """Mapping from points to hexagon tiles.

    ``order`` sorts point indices by bin ID (stable, so members keep their
    input order) and ``starts`` holds the offset of each populated bin in that
    sorted order, so members of the k-th populated bin are
    ``order[starts[k]:starts[k + 1]]``.
    """

    grid: HexGrid
    bin_ids: np.ndarray  # int64[n_points] -> [0..n_tiles)
    populated: np.ndarray  # sorted unique bin IDs
    counts: np.ndarray  # int64[n_populated]
    order: np.ndarray
    starts: np.ndarray

    @property
    def n_points(self) -> int:
        return int(self.bin_ids.shape[0])

    @property
    def n_populated(self) -> int:
        return int(self.populated.shape[0])

    @property
    def bin_index_per_point(self) -> np.ndarray:
        """Per-point index into ``populated`` (0..n_populated-1)."""
        return np.searchsorted(self.populated, self.bin_ids)

    @property
    def ends(self) -> np.ndarray:
        return np.append(self.starts[1:], self.order.size)

    def centroids(self) -> tuple[np.ndarray, np.ndarray]:
        """Get tile centers of all populated bins, in ``populated`` order."""
        return self.grid.tile_centers(self.populated)

    def members(self, bin_id: int) -> np.ndarray:
        """Get indices of the points assigned to a bin (empty if unpopulated)."""
        k = int(np.searchsorted(self.populated, bin_id))
        if k >= self.n_populated or self.populated[k] != bin_id:
            return np.empty(0, dtype=np.int64)
        return self.order[self.starts[k]:self.starts[k] + self.counts[k]]

    def iter_members(self):
        """Yield member index arrays of every populated bin, in ``populated`` order."""
        for start, end in zip(self.starts, self.ends):
            yield self.order[start:end]

    def bins(self) -> list[Bin]:
        """Get all populated bins as records."""
        x, y = self.centroids()
        return [
            Bin(
                bin_id=int(bin_id),
                x=float(bx),
                y=float(by),
                count=int(count),
                members=members,
            )
            for bin_id, bx, by, count, members in zip(
                self.populated, x, y, self.counts, self.iter_members()
            )
        ]

    @classmethod
    def from_bin_ids(cls, grid: HexGrid, bin_ids: np.ndarray) -> "Assignment":
        """Build the populated-bin index from per-point bin IDs."""
        bin_ids = np.asarray(bin_ids, dtype=np.int64)
        if bin_ids.ndim != 1 or bin_ids.shape[0] != grid.n_points:
            raise ShapeMismatchError(
                f"Expected {grid.n_points} bin IDs for this grid, got shape {bin_ids.shape}"
            )
        if bin_ids.size and (bin_ids.min() < 0 or bin_ids.max() >= grid.n_tiles):
            raise InvalidParameterError(f"Bin IDs must lie in [0, {grid.n_tiles})")

        order = np.argsort(bin_ids, kind="stable")
        bin_ids_sorted = bin_ids[order]
        boundaries = np.flatnonzero(np.diff(bin_ids_sorted)) + 1
        starts = np.concatenate(([0], boundaries)).astype(np.int64, copy=False)
        populated = bin_ids_sorted[starts]
        counts = np.diff(np.append(starts, bin_ids.size)).astype(np.int64, copy=False)

        return cls(
            grid=grid,
            bin_ids=bin_ids,
            populated=populated,
            counts=counts,
            order=order,
            starts=starts,
        )


def assign(grid: HexGrid, points) -> Assignment:
    """Assign every point to the hexagon tile with the nearest center.

    Exact ties between the two candidate tiles go to the lower row index, then
    the lower column index, so assignments are reproducible.

    Args:
        grid: Grid built from the same point set
        points: Point coordinates, shape (n_points, 2)

    Returns:
        Assignment of the points
    """
    coords = as_points(points)
    if coords.shape[0] != grid.n_points:
        raise ShapeMismatchError(
            f"Grid was built from {grid.n_points} points, got {coords.shape[0]}"
        )

    x = np.ascontiguousarray(coords[:, 0])
    y = np.ascontiguousarray(coords[:, 1])
    inside = (
        (x >= grid.xbnds[0]) & (x <= grid.xbnds[1])
        & (y >= grid.ybnds[0]) & (y <= grid.ybnds[1])
    )
    if not np.all(inside):
        raise InvalidParameterError(
            f"{int((~inside).sum())} points fall outside the grid bounds"
        )

    bin_ids = _hex_bin_ids(
        x,
        y,
        grid.xbnds[0],
        grid.ybnds[0],
        grid.scale_x,
        grid.scale_y,
        grid.n_cols,
    )
    assignment = Assignment.from_bin_ids(grid, bin_ids)

    logger.info(
        f"Assigned {assignment.n_points:,} points to {assignment.n_populated:,} "
        f"of {grid.n_tiles:,} hexagons"
    )
    return assignment
