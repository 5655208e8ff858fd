"""Shared test fixtures for the hexmeta test suite.

The two-cluster fixtures place each cluster inside a single hexagon at
resolution 4: cluster A falls in bin 0 (tile center (0, 0)) and cluster B in
bin 24 (row 4, column 4 of a 5-column grid).
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
import scanpy as sc
from scipy import sparse

CLUSTER_A = [(0.0, 0.0), (0.1, 0.0), (0.0, 0.1)]
CLUSTER_B = [(10.0, 10.0), (9.9, 10.0), (10.0, 9.9)]

BIN_A = 0
BIN_B = 24


@pytest.fixture
def two_clusters() -> np.ndarray:
    """Six points in two well separated clusters of three."""
    return np.array(CLUSTER_A + CLUSTER_B, dtype=np.float64)


@pytest.fixture
def two_clusters_of_four() -> np.ndarray:
    """Eight points in two clusters of four, for majority tie scenarios."""
    return np.array(
        CLUSTER_A + [(0.1, 0.1)] + CLUSTER_B + [(9.9, 9.9)],
        dtype=np.float64,
    )


@pytest.fixture
def random_points() -> np.ndarray:
    """Two thousand points from a mixture of three Gaussian blobs."""
    rng = np.random.default_rng(7)
    centers = np.array([[0.0, 0.0], [6.0, 2.0], [2.0, 7.0]])
    labels = rng.integers(0, 3, size=2000)
    return centers[labels] + rng.normal(scale=1.2, size=(2000, 2))


def make_adata(n_cells: int = 6, with_sparse: bool = False) -> sc.AnnData:
    """Build a small AnnData with the two-cluster embedding."""
    coords = np.array(CLUSTER_A + CLUSTER_B, dtype=np.float64)
    assert n_cells == coords.shape[0]

    obs = pd.DataFrame(
        {
            "cell_type": pd.Categorical(["A", "A", "A", "B", "B", "B"], categories=["A", "B"]),
            "score": [0.0, 0.0, 0.0, 5.0, 5.0, 5.0],
            "sample": ["s1", "s2", "s1", "s2", "s2", "s1"],
        },
        index=[f"cell_{i}" for i in range(n_cells)],
    )
    var = pd.DataFrame(index=["GeneA", "GeneB"])
    X = np.array(
        [[1.0, 0.0], [2.0, 0.0], [3.0, 0.0], [0.0, 4.0], [0.0, 6.0], [0.0, 8.0]],
        dtype=np.float32,
    )
    if with_sparse:
        X = sparse.csr_matrix(X)

    adata = sc.AnnData(X=X, obs=obs, var=var)
    adata.obsm["X_umap"] = np.column_stack([coords, np.zeros(n_cells)])
    adata.obsm["X_pca"] = coords * 2.0
    return adata


@pytest.fixture
def adata() -> sc.AnnData:
    return make_adata()


@pytest.fixture
def sparse_adata() -> sc.AnnData:
    return make_adata(with_sparse=True)
