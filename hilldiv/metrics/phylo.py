"""
Phylogenetic diversity: Hill numbers over the branches of a phylogeny.

Each branch is weighted by its length and by the summed relative abundance of the species descending from it. See
Chao, Chiu, Jost 2010 "Phylogenetic diversity measures based on Hill numbers".
"""
from __future__ import annotations

import logging
from typing import Union

import networkx as nx
import numpy as np
import numpy.typing as npt
import pandas as pd

from hilldiv import structures
from hilldiv.algos import checks, diversity
from hilldiv.metrics import pairwise, partition
from hilldiv.tools.phylo import nx_from_newick, phylo_structure, tip_labels

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TreeType = Union[nx.DiGraph, str, structures.PhyloStructure]


def prepare_phylo(
    comm_mat: structures.CommunityMatrix, tree: TreeType
) -> tuple[structures.PhyloStructure, list[int]]:
    """
    Prepare the branch structure of a phylogeny for the species of a community.

    Species with a zero total abundance that are absent from the phylogeny are dropped, since they do not contribute to
    any branch.

    Parameters
    ----------
    comm_mat: CommunityMatrix
        The community for which to prepare the phylogeny.
    tree: nx.DiGraph | str | PhyloStructure
        A rooted `NetworkX` tree, a Newick string, or an existing `PhyloStructure`.

    Returns
    -------
    phylo: PhyloStructure
        The branches reached by the retained species.
    species_idx: list[int]
        The community columns of the retained species, in `phylo` species order.

    Raises
    ------
    ShapeMismatchError
        If a species with a positive total abundance is absent from the phylogeny.

    """
    if isinstance(tree, str):
        tree = nx_from_newick(tree)
    if isinstance(tree, structures.PhyloStructure):
        tips = set(tree.species_labels)
    else:
        tips = set(tip_labels(tree).values())
    totals = comm_mat.abundances.sum(axis=0)
    species_idx: list[int] = []
    for sp_idx, (label, total) in enumerate(zip(comm_mat.species_labels, totals)):
        if total == 0 and label not in tips:
            logger.warning(f"Dropping species {label} with zero total abundance, which is absent from the phylogeny.")
            continue
        species_idx.append(sp_idx)
    species_labels = [comm_mat.species_labels[sp_idx] for sp_idx in species_idx]
    if isinstance(tree, structures.PhyloStructure):
        return tree.aligned(species_labels), species_idx
    return phylo_structure(tree, species_labels), species_idx


def hill_phylo(comm: structures.CommunityType, tree: TreeType, q: float = 0) -> pd.Series:
    """
    Compute phylogenetic diversity for each site.

    Parameters
    ----------
    comm: pd.DataFrame | ndarray | CommunityMatrix
        Site by species abundances, with sites as rows and species as columns.
    tree: nx.DiGraph | str | PhyloStructure
        A rooted tree with edges directed from parent to child, each with a `length` attribute, and tips matching the
        community species. Alternatively, a Newick string or a prepared `PhyloStructure`.
    q: float
        The order of diversity, by default 0.

    Returns
    -------
    pd.Series
        The phylogenetic Hill number for each site, i.e. the effective number of equally distinct lineages, indexed by
        site label. At `q=0` this is Faith's PD divided by the mean base to tip distance of the site.

    Examples
    --------
    ```python
    from hilldiv.metrics import phylo
    from hilldiv.tools import mock

    comm = mock.mock_community()
    tree = mock.mock_tree(comm.columns)
    print(phylo.hill_phylo(comm, tree, q=1))
    ```

    """
    comm_mat = structures.prepare_community(comm)
    checks.check_q(np.float64(q))
    phylo, species_idx = prepare_phylo(comm_mat, tree)
    logger.info(f"Computing phylogenetic diversity for q={q} across {comm_mat.n_sites} sites.")
    relative = comm_mat.relative()[:, species_idx]
    hill = [
        diversity.hill_diversity_branch_wt(
            phylo.branch_abundances(probs), phylo.branch_lengths, np.float64(q), np.float64(0)
        )
        for probs in relative
    ]
    return pd.Series(hill, index=comm_mat.site_labels, name="hill_phylo", dtype=np.float64)


def _phylo_diversity_fn(phylo: structures.PhyloStructure, q: float) -> partition.DiversityFn:
    q = np.float64(q)

    def diversity_fn(probs: npt.NDArray[np.float64], pooled: npt.NDArray[np.float64]) -> float:
        # sites and pooled sites share the mean base to tip distance of the pooled sites
        tbar = np.float64(phylo.branch_lengths @ phylo.branch_abundances(pooled))
        return diversity.hill_diversity_branch_wt(
            phylo.branch_abundances(probs), phylo.branch_lengths, q, tbar
        )

    return diversity_fn


def _phylo_alpha_fn(phylo: structures.PhyloStructure, q: float) -> partition.AlphaFn:
    q = np.float64(q)

    def alpha_fn(
        relative: npt.NDArray[np.float64], weights: npt.NDArray[np.float64], pooled: npt.NDArray[np.float64]
    ) -> float:
        # sites may have differing base to tip distances on trees that are not ultrametric
        tbar = np.float64(phylo.branch_lengths @ phylo.branch_abundances(pooled))
        site_branch_abundances = np.ascontiguousarray(relative @ phylo.incidence.T)
        return diversity.hill_alpha_branch_wt(site_branch_abundances, phylo.branch_lengths, weights, q, tbar)

    return alpha_fn


def hill_phylo_parti(
    comm: structures.CommunityType,
    tree: TreeType,
    q: float = 0,
    rel_then_pool: bool = True,
    show_warning: bool = True,
) -> partition.PartitionResult:
    """
    Partition phylogenetic diversity into gamma, alpha and beta components.

    Parameters
    ----------
    comm: pd.DataFrame | ndarray | CommunityMatrix
        Site by species abundances for at least two sites.
    tree: nx.DiGraph | str | PhyloStructure
        See [`hill_phylo`](#hill-phylo).
    q: float
        The order of diversity, by default 0.
    rel_then_pool: bool
        If `True` (default), abundances are converted to relative abundances within sites and then pooled with equal
        site weights. If `False`, sites are pooled first and weighted by their total abundance.
    show_warning: bool
        Whether to warn if a similarity fell outside of [0, 1] and was reported as `nan`.

    Returns
    -------
    PartitionResult
        `q`, `gamma`, `alpha`, `beta`, `local_similarity`, and `region_similarity`.

    """
    comm_mat = structures.prepare_community(comm)
    checks.check_q(np.float64(q))
    phylo, species_idx = prepare_phylo(comm_mat, tree)
    logger.info(f"Computing phylogenetic diversity partition for q={q} across {comm_mat.n_sites} sites.")
    result = partition.partition_diversity(
        comm_mat.abundances[:, species_idx],
        _phylo_diversity_fn(phylo, q),
        q,
        rel_then_pool=rel_then_pool,
        alpha_fn=_phylo_alpha_fn(phylo, q),
    )
    partition.warn_degenerate(len(result.out_of_range), show_warning)
    return result


def hill_phylo_parti_pairwise(
    comm: structures.CommunityType,
    tree: TreeType,
    q: float = 0,
    rel_then_pool: bool = True,
    output: str = "data.frame",
    pairs: str = "unique",
    show_warning: bool = False,
) -> pairwise.PairwiseResult:
    """
    Partition phylogenetic diversity for each pair of sites.

    See [`hill_phylo_parti`](#hill-phylo-parti) for the partitioning, and
    [`pairwise.pairwise_partition`](/metrics/pairwise#pairwise-partition) for the `output` and `pairs` options.

    """
    pairwise.check_pairwise_options(output, pairs)
    comm_mat = structures.prepare_community(comm)
    checks.check_q(np.float64(q))
    phylo, species_idx = prepare_phylo(comm_mat, tree)
    logger.info(f"Computing pairwise phylogenetic diversity partitions for q={q} across {comm_mat.n_sites} sites.")
    return pairwise.pairwise_partition(
        comm_mat.abundances[:, species_idx],
        comm_mat.site_labels,
        _phylo_diversity_fn(phylo, q),
        q,
        rel_then_pool=rel_then_pool,
        output=output,
        pairs=pairs,
        show_warning=show_warning,
        alpha_fn=_phylo_alpha_fn(phylo, q),
    )
