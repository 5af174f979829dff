"""
Functional diversity: Hill numbers accounting for the functional dissimilarity between species.

Distances between species are rescaled so that the largest observed distance equals one, and converted to
similarities as one minus the rescaled distance. The functional Hill number is computed over the pairs of co-occurring
species, weighted by their similarity. Species that are all equally and maximally distinct therefore give the same
results as taxonomic diversity.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import numpy as np
import numpy.typing as npt
import pandas as pd

from hilldiv import structures
from hilldiv.algos import checks, diversity
from hilldiv.metrics import pairwise, partition
from hilldiv.tools.traits import functional_dispersion, gower_distance, pcoa

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DistanceFn = Callable[[pd.DataFrame], structures.TraitDistances]


def prepare_distances(
    comm_mat: structures.CommunityMatrix,
    traits: Any,
    traits_as_is: bool = False,
    distance_fn: Optional[DistanceFn] = None,
) -> structures.TraitDistances:
    """
    Prepare trait distances aligned to the species of a community.

    Parameters
    ----------
    comm_mat: CommunityMatrix
        The community for which to align the distances.
    traits: pd.DataFrame | TraitDistances | ndarray
        If `traits_as_is` is `False`, a `DataFrame` of species traits with species as the index. Otherwise a square
        distance `DataFrame` with species as the index and columns, a `TraitDistances` instance, or an unlabelled
        array in the same species order as the community.
    traits_as_is: bool
        Whether `traits` is already a distance matrix.
    distance_fn: Callable
        The function converting the traits `DataFrame` to distances, by default
        [`gower_distance`](/tools/traits#gower-distance).

    Returns
    -------
    TraitDistances
        The distances between the community species, in community column order.

    Raises
    ------
    ShapeMismatchError
        If any of the community species is absent from the traits or distances.

    """
    if traits_as_is:
        if isinstance(traits, structures.TraitDistances):
            dists = traits
        elif isinstance(traits, pd.DataFrame):
            dists = structures.TraitDistances.from_dataframe(traits)
        else:
            dists = structures.TraitDistances(traits, comm_mat.species_labels)
        if dists.distances.max() > 1:
            logger.warning("Distances exceeding one were provided. These are rescaled to the largest distance.")
    else:
        if not isinstance(traits, pd.DataFrame):
            raise TypeError("Traits should be provided as a pandas DataFrame with species as the index.")
        if distance_fn is None:
            distance_fn = gower_distance
        trait_idx = structures.align_labels([str(label) for label in traits.index], comm_mat.species_labels)
        dists = distance_fn(traits.iloc[trait_idx])
    return dists.aligned(comm_mat.species_labels)


def hill_func(
    comm: structures.CommunityType,
    traits: Any,
    traits_as_is: bool = False,
    q: float = 0,
    fdis: bool = True,
    distance_fn: Optional[DistanceFn] = None,
) -> pd.DataFrame:
    """
    Compute functional diversity for each site.

    Parameters
    ----------
    comm: pd.DataFrame | ndarray | CommunityMatrix
        Site by species abundances, with sites as rows and species as columns.
    traits: pd.DataFrame | TraitDistances
        Species traits, or a distance matrix if `traits_as_is` is `True`. See
        [`prepare_distances`](#prepare-distances).
    traits_as_is: bool
        Whether `traits` is already a distance matrix, by default `False`.
    q: float
        The order of diversity, by default 0.
    fdis: bool
        Whether to compute functional dispersion.
    distance_fn: Callable
        An optional replacement for [`gower_distance`](/tools/traits#gower-distance).

    Returns
    -------
    pd.DataFrame
        Indexed by site, with columns:
        - `Q`: Rao's quadratic entropy, the expected rescaled distance between two individuals.
        - `FDis`: Functional dispersion, the mean distance to the abundance weighted centroid (if `fdis`).
        - `MD_q`: The functional Hill number, the effective number of functionally distinct species.
        - `FD_q`: `MD_q` multiplied by `Q`.

    """
    comm_mat = structures.prepare_community(comm)
    checks.check_q(np.float64(q))
    dists = prepare_distances(comm_mat, traits, traits_as_is=traits_as_is, distance_fn=distance_fn)
    logger.info(f"Computing functional diversity for q={q} across {comm_mat.n_sites} sites.")
    dist_rescaled = dists.rescaled()
    sim_matrix = dists.similarity()
    relative = comm_mat.relative()
    coords = pcoa(dist_rescaled) if fdis else None
    rows: list[dict[str, float]] = []
    for site_idx in range(comm_mat.n_sites):
        probs = relative[site_idx]
        agg_q = diversity.raos_quadratic_diversity(probs, dist_rescaled)
        md_q = diversity.hill_diversity_similarity_wt(probs, sim_matrix, np.float64(q))
        row = {"Q": agg_q}
        if coords is not None:
            row["FDis"] = functional_dispersion(probs, coords)
        row["MD_q"] = md_q
        row["FD_q"] = md_q * agg_q
        rows.append(row)
    return pd.DataFrame(rows, index=comm_mat.site_labels)


def _func_diversity_fn(sim_matrix: npt.NDArray[np.float64], q: float) -> partition.DiversityFn:
    q = np.float64(q)

    def diversity_fn(probs: npt.NDArray[np.float64], _pooled: npt.NDArray[np.float64]) -> float:
        return diversity.hill_diversity_similarity_wt(probs, sim_matrix, q)

    return diversity_fn


def hill_func_parti(
    comm: structures.CommunityType,
    traits: Any,
    traits_as_is: bool = False,
    q: float = 0,
    rel_then_pool: bool = True,
    show_warning: bool = True,
    distance_fn: Optional[DistanceFn] = None,
) -> partition.PartitionResult:
    """
    Partition functional diversity into gamma, alpha and beta components.

    Gamma diversity is the functional Hill number of the pooled sites. Alpha diversity combines the functional Hill
    numbers of the sites, weighted by site. Beta diversity is gamma divided by alpha.

    Parameters
    ----------
    comm: pd.DataFrame | ndarray | CommunityMatrix
        Site by species abundances for at least two sites.
    traits: pd.DataFrame | TraitDistances
        Species traits, or a distance matrix if `traits_as_is` is `True`.
    traits_as_is: bool
        Whether `traits` is already a distance matrix, by default `False`.
    q: float
        The order of diversity, by default 0.
    rel_then_pool: bool
        If `True` (default), abundances are converted to relative abundances within sites and then pooled with equal
        site weights. If `False`, sites are pooled first and weighted by their total abundance.
    show_warning: bool
        Whether to warn if a similarity fell outside of [0, 1] and was reported as `nan`.
    distance_fn: Callable
        An optional replacement for [`gower_distance`](/tools/traits#gower-distance).

    Returns
    -------
    PartitionResult
        `q`, `gamma`, `alpha`, `beta`, `local_similarity`, and `region_similarity`.

    """
    comm_mat = structures.prepare_community(comm)
    checks.check_q(np.float64(q))
    dists = prepare_distances(comm_mat, traits, traits_as_is=traits_as_is, distance_fn=distance_fn)
    logger.info(f"Computing functional diversity partition for q={q} across {comm_mat.n_sites} sites.")
    result = partition.partition_diversity(
        comm_mat.abundances, _func_diversity_fn(dists.similarity(), q), q, rel_then_pool=rel_then_pool
    )
    partition.warn_degenerate(len(result.out_of_range), show_warning)
    return result


def hill_func_parti_pairwise(
    comm: structures.CommunityType,
    traits: Any,
    traits_as_is: bool = False,
    q: float = 0,
    rel_then_pool: bool = True,
    output: str = "data.frame",
    pairs: str = "unique",
    show_warning: bool = False,
    distance_fn: Optional[DistanceFn] = None,
) -> pairwise.PairwiseResult:
    """
    Partition functional diversity for each pair of sites.

    The distances are rescaled once across all species of the community, so that pairs are compared on the same scale.
    See [`hill_func_parti`](#hill-func-parti) for the partitioning, and
    [`pairwise.pairwise_partition`](/metrics/pairwise#pairwise-partition) for the `output` and `pairs` options.

    Examples
    --------
    ```python
    from hilldiv.metrics import functional
    from hilldiv.tools import mock

    comm = mock.mock_community()
    traits = mock.mock_traits(comm.columns)
    print(functional.hill_func_parti_pairwise(comm, traits, q=0))
    print(functional.hill_func_parti_pairwise(comm, traits, q=1, output="matrix", pairs="full"))
    ```

    """
    pairwise.check_pairwise_options(output, pairs)
    comm_mat = structures.prepare_community(comm)
    checks.check_q(np.float64(q))
    dists = prepare_distances(comm_mat, traits, traits_as_is=traits_as_is, distance_fn=distance_fn)
    logger.info(f"Computing pairwise functional diversity partitions for q={q} across {comm_mat.n_sites} sites.")
    return pairwise.pairwise_partition(
        comm_mat.abundances,
        comm_mat.site_labels,
        _func_diversity_fn(dists.similarity(), q),
        q,
        rel_then_pool=rel_then_pool,
        output=output,
        pairs=pairs,
        show_warning=show_warning,
    )
