"""Host container adapters.

The binning core only needs two things from a host: a column of values by
name and a 2-column coordinate matrix by embedding name. Each adapter also
keeps computed assignments so repeated aggregations over the same embedding
and resolution skip the binning step. A stored assignment is only reused
while the embedding still holds the coordinates it was computed from.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import MutableMapping
from typing import Mapping, Optional

import numpy as np
import pandas as pd
import scanpy as sc
from scipy import sparse

from ..binning.assigner import Assignment
from ..binning.grid import HexGrid, Resolution, parse_resolution
from ..errors import HexbinNotComputedError, ShapeMismatchError, UnknownColumnError, UnknownEmbeddingError

logger = logging.getLogger(__name__)

CACHE_KEY = "hexbin"


def resolution_key(nbins: Resolution) -> str:
    """Cache key for a resolution: ``"40"`` or ``"40x30"``."""
    nx, ny = parse_resolution(nbins)
    return f"{nx}x{ny}" if ny else str(nx)


def coordinates_fingerprint(coords: np.ndarray) -> str:
    """Hash of the coordinate values an assignment was computed from."""
    data = np.ascontiguousarray(coords, dtype=np.float64)
    return hashlib.md5(data.tobytes()).hexdigest()


def _preview(names, max_show: int = 10) -> list[str]:
    names = [str(n) for n in names]
    if len(names) <= max_show:
        return names
    return names[:max_show] + [f"... and {len(names) - max_show} more"]


class DataSource:
    """Capability interface of a host container."""

    @property
    def n_obs(self) -> int:
        raise NotImplementedError

    def get_column(self, name: str) -> pd.Series:
        """Get a per-observation attribute column by name."""
        raise NotImplementedError

    def get_embedding(self, name: str) -> np.ndarray:
        """Get the first two embedding dimensions, shape (n_obs, 2)."""
        raise NotImplementedError

    def resolve_embedding(self, name: str) -> str:
        """Get the canonical key of an embedding name."""
        return name

    def _cache_store(self) -> MutableMapping:
        raise NotImplementedError

    def get_values(self, name: str) -> pd.Series:
        """Get values by name; the default only looks at attribute columns."""
        return self.get_column(name)

    def get_cached(
        self,
        embedding: str,
        nbins: Resolution,
        coords: Optional[np.ndarray] = None,
    ) -> Optional[Assignment]:
        """Get a previously stored assignment, or None if missing or stale.

        Args:
            embedding: Embedding name
            nbins: Resolution the assignment was computed at
            coords: Current embedding coordinates (looked up when omitted)

        Returns:
            Assignment, or None when nothing is stored or the embedding changed
        """
        embedding = self.resolve_embedding(embedding)
        store = self._cache_store()
        entry = store.get("results", {}).get(embedding, {}).get(resolution_key(nbins))
        if entry is None:
            return None

        bin_ids = np.asarray(entry["bin_ids"], dtype=np.int64)
        if bin_ids.shape[0] != self.n_obs:
            logger.warning(
                f"Ignoring cached hexbin for '{embedding}' ({bin_ids.shape[0]:,} cells, "
                f"container has {self.n_obs:,})"
            )
            return None

        if coords is None:
            coords = self.get_embedding(embedding)
        if str(entry.get("fingerprint", "")) != coordinates_fingerprint(coords):
            logger.warning(f"Ignoring cached hexbin for '{embedding}': coordinates changed since it was computed")
            return None

        grid = HexGrid.from_dict(dict(entry["grid"]))
        return Assignment.from_bin_ids(grid, bin_ids)

    def set_cached(
        self,
        embedding: str,
        nbins: Resolution,
        assignment: Assignment,
        coords: Optional[np.ndarray] = None,
    ) -> None:
        """Attach an assignment to the container and mark it as the latest."""
        embedding = self.resolve_embedding(embedding)
        if coords is None:
            coords = self.get_embedding(embedding)

        key = resolution_key(nbins)
        store = self._cache_store()
        results = store.setdefault("results", {})
        results.setdefault(embedding, {})[key] = {
            "grid": assignment.grid.to_dict(),
            "bin_ids": np.asarray(assignment.bin_ids, dtype=np.int64),
            "fingerprint": coordinates_fingerprint(coords),
        }
        self.set_latest(embedding, nbins)

    def set_latest(self, embedding: str, nbins: Resolution) -> None:
        """Mark a stored assignment as the one used when no resolution is given."""
        store = self._cache_store()
        store["latest"] = {"embedding": self.resolve_embedding(embedding), "nbins": resolution_key(nbins)}

    def get_latest(self) -> tuple[str, Assignment]:
        """Get the most recently stored assignment and its embedding name."""
        latest = self._cache_store().get("latest")
        if not latest:
            raise HexbinNotComputedError("Compute the hexbin representation with make_hexbin() first")

        embedding = str(latest["embedding"])
        key = str(latest["nbins"])
        nbins = tuple(int(v) for v in key.split("x")) if "x" in key else int(key)
        assignment = self.get_cached(embedding, nbins)
        if assignment is None:
            raise HexbinNotComputedError(
                f"Stored hexbin for '{embedding}' is missing or stale; run make_hexbin() again"
            )
        return embedding, assignment


def _first_two_dims(name: str, coords) -> np.ndarray:
    if isinstance(coords, pd.DataFrame):
        coords = coords.to_numpy()
    coords = np.asarray(coords, dtype=np.float64)
    if coords.ndim != 2 or coords.shape[1] < 2:
        raise ShapeMismatchError(f"Embedding '{name}' needs at least 2 dimensions, got shape {coords.shape}")
    return coords[:, :2]


class AnnDataSource(DataSource):
    """Adapter for AnnData objects.

    Attribute columns come from ``adata.obs``; gene values come from ``X`` (or
    a layer); embeddings come from ``adata.obsm``. Assignments are stored in
    ``adata.uns["hexbin"]`` as plain arrays so they survive ``write_h5ad``.
    """

    def __init__(self, adata: sc.AnnData, layer: Optional[str] = None):
        """Initialize the adapter.

        Args:
            adata: AnnData object
            layer: Optional layer to read gene values from instead of X
        """
        self.adata = adata
        self.layer = layer

    @property
    def n_obs(self) -> int:
        return int(self.adata.n_obs)

    def get_column(self, name: str) -> pd.Series:
        if name not in self.adata.obs.columns:
            raise UnknownColumnError(
                f"Column '{name}' not found in obs. Available: {_preview(self.adata.obs.columns)}"
            )
        return self.adata.obs[name]

    def get_feature(self, gene: str) -> pd.Series:
        """Get expression values of one gene for every cell."""
        if gene not in self.adata.var_names:
            raise UnknownColumnError(f"Gene '{gene}' not found in var_names")

        loc = self.adata.var_names.get_loc(gene)
        X = self.adata.layers[self.layer] if self.layer else self.adata.X
        col = X[:, loc]
        if sparse.issparse(col):
            col = col.toarray()
        values = np.asarray(col, dtype=np.float64).ravel()
        return pd.Series(values, index=self.adata.obs_names, name=gene)

    def get_values(self, name: str) -> pd.Series:
        """Get an obs column, falling back to a gene of the same name."""
        if name in self.adata.obs.columns:
            return self.get_column(name)
        if name in self.adata.var_names:
            return self.get_feature(name)
        raise UnknownColumnError(f"'{name}' is neither an obs column nor a gene")

    def resolve_embedding(self, name: str) -> str:
        """Get the obsm key of an embedding; ``umap`` resolves to ``X_umap``."""
        if name in self.adata.obsm:
            return name
        if f"X_{name}" in self.adata.obsm:
            return f"X_{name}"
        raise UnknownEmbeddingError(
            f"Embedding '{name}' not found. Available keys: {list(self.adata.obsm.keys())}"
        )

    def get_embedding(self, name: str) -> np.ndarray:
        key = self.resolve_embedding(name)
        return _first_two_dims(key, self.adata.obsm[key])

    def _cache_store(self) -> MutableMapping:
        if CACHE_KEY not in self.adata.uns:
            self.adata.uns[CACHE_KEY] = {}
        return self.adata.uns[CACHE_KEY]


class FrameSource(DataSource):
    """Adapter for a per-cell DataFrame plus named coordinate matrices."""

    def __init__(self, obs: pd.DataFrame, embeddings: Mapping[str, object]):
        """Initialize the adapter.

        Args:
            obs: Per-cell attribute table, one row per cell
            embeddings: Mapping of embedding name -> array-like of shape (n_cells, >=2)
        """
        self.obs = obs
        self.embeddings = dict(embeddings)
        self._cache: dict = {}

    @property
    def n_obs(self) -> int:
        return int(self.obs.shape[0])

    def get_column(self, name: str) -> pd.Series:
        if name not in self.obs.columns:
            raise UnknownColumnError(f"Column '{name}' not found. Available: {_preview(self.obs.columns)}")
        return self.obs[name]

    def get_embedding(self, name: str) -> np.ndarray:
        if name not in self.embeddings:
            raise UnknownEmbeddingError(
                f"Embedding '{name}' not found. Available keys: {list(self.embeddings.keys())}"
            )
        coords = _first_two_dims(name, self.embeddings[name])
        if coords.shape[0] != self.n_obs:
            raise ShapeMismatchError(
                f"Embedding '{name}' has {coords.shape[0]} rows, table has {self.n_obs}"
            )
        return coords

    def _cache_store(self) -> MutableMapping:
        return self._cache


def as_source(host) -> DataSource:
    """Wrap a host container in its adapter."""
    if isinstance(host, DataSource):
        return host
    if isinstance(host, sc.AnnData):
        return AnnDataSource(host)
    raise TypeError(
        f"Unsupported container type {type(host).__name__}; "
        "pass an AnnData object or a DataSource such as FrameSource"
    )
