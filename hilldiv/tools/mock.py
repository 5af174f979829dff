"""
A collection of functions for the generation of mock data.

This module is intended for project development and writing code tests, but may otherwise be useful for demonstration
and utility purposes.
"""
from __future__ import annotations

import logging
from typing import Generator, Optional, Sequence

import networkx as nx
import numpy as np
import numpy.typing as npt
import pandas as pd

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def mock_species_data(
    random_seed: int = 0,
) -> Generator[tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]], None, None]:
    """
    Generate a series of randomly generated counts and corresponding probabilities.

    This function is used for testing diversity measures. The data is generated in varying lengths from randomly
    assigned integers between 1 and 10. Matching integers are then collapsed into species "classes" with probabilities
    computed accordingly.

    Parameters
    ----------
    random_seed: int
        An optional random seed, by default 0

    Yields
    ------
    counts: ndarray[float]
        The number of members for each species class.
    probs: ndarray[float]
        The probability of encountering the respective species classes.

    Examples
    --------
    ```python
    from hilldiv.tools import mock

    for counts, probs in mock.mock_species_data():
        cs = [c for c in counts]
        print(f'c = {cs}')
        ps = [round(p, 3) for p in probs]
        print(f'p = {ps}')

    # c = [1.0]
    # p = [1.0]

    # c = [1.0, 1.0, 2.0, 2.0]
    # p = [0.167, 0.167, 0.333, 0.333]

    # etc.
    ```

    """
    rng = np.random.default_rng(seed=random_seed)
    for n in range(1, 50, 5):
        data = rng.integers(1, 10, n)
        unique: npt.NDArray[np.int_] = np.unique(data)
        counts: npt.NDArray[np.float64] = np.zeros_like(unique, dtype=np.float64)
        for idx, uniq in enumerate(unique):
            counts[idx] = (data == uniq).sum()
        probs = counts / len(data)

        yield counts, probs


def mock_community(
    n_sites: int = 6,
    n_species: int = 10,
    max_abundance: int = 10,
    random_seed: int = 0,
) -> pd.DataFrame:
    """
    Generate a site by species `DataFrame` of random integer abundances.

    Roughly a third of the entries are absences. Each site is guaranteed at least one species.

    Parameters
    ----------
    n_sites: int
        The number of sites (rows).
    n_species: int
        The number of species (columns).
    max_abundance: int
        The maximum abundance of any species at any site.
    random_seed: int
        An optional random seed, by default 0

    Returns
    -------
    pd.DataFrame
        Abundances with sites `site_1`, `site_2`, etc. as the index and species `sp_1`, `sp_2`, etc. as columns.

    """
    rng = np.random.default_rng(seed=random_seed)
    abundances = rng.integers(1, max_abundance + 1, (n_sites, n_species))
    abundances[rng.random((n_sites, n_species)) < 0.33] = 0
    for site_idx in range(n_sites):
        if abundances[site_idx].sum() == 0:
            abundances[site_idx, rng.integers(0, n_species)] = rng.integers(1, max_abundance + 1)
    return pd.DataFrame(
        abundances,
        index=[f"site_{idx + 1}" for idx in range(n_sites)],
        columns=[f"sp_{idx + 1}" for idx in range(n_species)],
    )


def mock_traits(species_labels: Sequence[str], random_seed: int = 0) -> pd.DataFrame:
    """
    Generate a `DataFrame` of mixed species traits.

    Contains two numeric traits, a nominal trait and an ordered categorical trait.

    Parameters
    ----------
    species_labels: Sequence[str]
        The species for which to generate traits, used as the index.
    random_seed: int
        An optional random seed, by default 0

    Returns
    -------
    pd.DataFrame
        Species as the index, with `body_size`, `fecundity`, `growth_form`, and `shade_tolerance` columns.

    """
    rng = np.random.default_rng(seed=random_seed)
    n_species = len(species_labels)
    return pd.DataFrame(
        {
            "body_size": rng.lognormal(0, 1, n_species),
            "fecundity": rng.integers(1, 100, n_species).astype(np.float64),
            "growth_form": rng.choice(["tree", "shrub", "herb"], n_species),
            "shade_tolerance": pd.Categorical(
                rng.choice(["low", "mid", "high"], n_species),
                categories=["low", "mid", "high"],
                ordered=True,
            ),
        },
        index=list(species_labels),
    )


def mock_tree(species_labels: Sequence[str], random_seed: int = 0, ultrametric: bool = True) -> nx.DiGraph:
    """
    Generate a random tree for the given species.

    Clusters are merged pairwise at increasing heights until a single root remains, so that all tips are equidistant
    from the root. If `ultrametric` is `False`, each edge is instead given an independently drawn length, so that tips
    sit at differing distances from the root.

    Parameters
    ----------
    species_labels: Sequence[str]
        The tip labels.
    random_seed: int
        An optional random seed, by default 0
    ultrametric: bool
        Whether all tips should be equidistant from the root, by default True.

    Returns
    -------
    nx.DiGraph
        A rooted tree with edges directed from parent to child, a `length` attribute on each edge, and the species
        labels as the tip node keys. Internal nodes are keyed `node_0`, `node_1`, etc.

    """
    rng = np.random.default_rng(seed=random_seed)
    tree = nx.DiGraph()
    heights: dict[str, float] = {}
    clusters: list[str] = []
    for label in species_labels:
        tree.add_node(label)
        heights[label] = 0.0
        clusters.append(label)
    height = 0.0
    node_idx = 0
    while len(clusters) > 1:
        height += rng.uniform(0.1, 1.0)
        left_idx, right_idx = sorted(rng.choice(len(clusters), 2, replace=False), reverse=True)
        left = clusters.pop(left_idx)
        right = clusters.pop(right_idx)
        parent = f"node_{node_idx}"
        node_idx += 1
        if ultrametric:
            tree.add_edge(parent, left, length=height - heights[left])
            tree.add_edge(parent, right, length=height - heights[right])
        else:
            tree.add_edge(parent, left, length=rng.uniform(0.1, 2.0))
            tree.add_edge(parent, right, length=rng.uniform(0.1, 2.0))
        heights[parent] = height
        clusters.append(parent)
    return tree


def mock_star_tree(species_labels: Sequence[str], length: Optional[float] = 1.0) -> nx.DiGraph:
    """
    Generate a star tree, with each species on its own branch of equal length directly from the root.

    All species are equally related, so phylogenetic diversity on a star tree equals taxonomic diversity.

    """
    tree = nx.DiGraph()
    for label in species_labels:
        tree.add_edge("root", label, length=length)
    return tree
