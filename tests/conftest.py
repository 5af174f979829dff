# pyright: basic
from __future__ import annotations

import networkx as nx
import numpy as np
import pandas as pd
import pytest

from hilldiv.tools import mock


@pytest.fixture
def simple_comm() -> pd.DataFrame:
    """
    Two sites sharing one of three species.

    Returns
    -------
    pd.DataFrame
        Sites `A` and `B` as the index and species `x`, `y`, `z` as columns.

    Notes
    -----
    ```python
    #    x  y  z
    # A  1  1  0
    # B  0  1  1
    ```

    """
    return pd.DataFrame([[1, 1, 0], [0, 1, 1]], index=["A", "B"], columns=["x", "y", "z"])


@pytest.fixture
def mock_comm() -> pd.DataFrame:
    """A random community of 6 sites and 10 species."""
    return mock.mock_community(n_sites=6, n_species=10, random_seed=42)


@pytest.fixture
def equidistant_dists(mock_comm) -> pd.DataFrame:
    """A distance matrix where all species of `mock_comm` are equally distinct."""
    species = list(mock_comm.columns)
    dists = np.ones((len(species), len(species))) - np.eye(len(species))
    return pd.DataFrame(dists, index=species, columns=species)


@pytest.fixture
def star_tree(mock_comm) -> nx.DiGraph:
    """A star tree where all species of `mock_comm` are equally related."""
    return mock.mock_star_tree(mock_comm.columns, length=2.5)


@pytest.fixture
def ultrametric_tree(mock_comm) -> nx.DiGraph:
    """A random ultrametric tree for the species of `mock_comm`."""
    return mock.mock_tree(mock_comm.columns, random_seed=42)


@pytest.fixture
def nonultrametric_tree(mock_comm) -> nx.DiGraph:
    """A random tree for the species of `mock_comm`, with tips at differing distances from the root."""
    return mock.mock_tree(mock_comm.columns, random_seed=42, ultrametric=False)


@pytest.fixture
def uneven_comm() -> pd.DataFrame:
    """Two sites of unequal size and composition, for use with `uneven_tree`."""
    return pd.DataFrame([[5, 1, 0], [1, 1, 8]], index=["A", "B"], columns=["x", "y", "z"])


@pytest.fixture
def uneven_tree() -> str:
    """A small tree where the tips of `uneven_comm` sit at differing distances from the root."""
    return "((x:1,y:3):1,z:0.5);"
