"""
Taxonomic diversity: Hill numbers computed directly from the relative abundances of species.
"""
from __future__ import annotations

import logging
from typing import Sequence, Union

import numpy as np
import numpy.typing as npt
import pandas as pd

from hilldiv import structures
from hilldiv.algos import checks, diversity
from hilldiv.errors import ShapeMismatchError
from hilldiv.metrics import pairwise, partition

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

QType = Union[float, Sequence[float], npt.NDArray[np.float64]]


def broadcast_q(q: QType, n_sites: int) -> npt.NDArray[np.float64]:
    """
    Broadcast `q` across sites.

    A scalar, or a sequence of length one, is applied to all sites. Otherwise a sequence must contain one `q` per site.

    """
    qs = np.atleast_1d(np.asarray(q, dtype=np.float64))
    if qs.ndim != 1:
        raise ShapeMismatchError("q must be a scalar or a one dimensional sequence.")
    if len(qs) == 1:
        qs = np.full(n_sites, qs[0], dtype=np.float64)
    if len(qs) != n_sites:
        raise ShapeMismatchError(f"Received {len(qs)} values of q for {n_sites} sites. Provide one q, or one per site.")
    for q_val in qs:
        checks.check_q(q_val)
    return qs


def hill_taxa(comm: structures.CommunityType, q: QType = 0) -> pd.Series:
    """
    Compute taxonomic diversity for each site.

    Parameters
    ----------
    comm: pd.DataFrame | ndarray | CommunityMatrix
        Site by species abundances, with sites as rows and species as columns.
    q: float | Sequence[float]
        The order of diversity: 0 (default) for species richness, 1 for the exponential of Shannon entropy, 2 for the
        inverse Simpson index. Either a single value applied to all sites, or one value per site.

    Returns
    -------
    pd.Series
        The Hill number for each site, indexed by site label.

    Examples
    --------
    ```python
    import pandas as pd
    from hilldiv.metrics import taxa

    comm = pd.DataFrame([[1, 1, 0], [0, 1, 1]], index=["A", "B"], columns=["x", "y", "z"])
    print(taxa.hill_taxa(comm, q=0))
    # A    2.0
    # B    2.0
    ```

    """
    comm_mat = structures.prepare_community(comm)
    qs = broadcast_q(q, comm_mat.n_sites)
    relative = comm_mat.relative()
    hill = [diversity.hill_diversity(relative[site_idx], q_val) for site_idx, q_val in enumerate(qs)]
    return pd.Series(hill, index=comm_mat.site_labels, name="hill_taxa", dtype=np.float64)


def _taxa_diversity_fn(q: float) -> partition.DiversityFn:
    q = np.float64(q)

    def diversity_fn(probs: npt.NDArray[np.float64], _pooled: npt.NDArray[np.float64]) -> float:
        return diversity.hill_diversity(probs, q)

    return diversity_fn


def hill_taxa_parti(
    comm: structures.CommunityType,
    q: float = 0,
    rel_then_pool: bool = True,
    show_warning: bool = True,
) -> partition.PartitionResult:
    """
    Partition taxonomic diversity into gamma, alpha and beta components.

    Parameters
    ----------
    comm: pd.DataFrame | ndarray | CommunityMatrix
        Site by species abundances for at least two sites.
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

    Examples
    --------
    ```python
    import pandas as pd
    from hilldiv.metrics import taxa

    comm = pd.DataFrame([[1, 1, 0], [0, 1, 1]], index=["A", "B"], columns=["x", "y", "z"])
    print(taxa.hill_taxa_parti(comm, q=0))
    # PartitionResult(q=0.0, gamma=3.0, alpha=2.0, beta=1.5, local_similarity=0.5, region_similarity=0.333...)
    ```

    """
    comm_mat = structures.prepare_community(comm)
    checks.check_q(np.float64(q))
    logger.info(f"Computing taxonomic diversity partition for q={q} across {comm_mat.n_sites} sites.")
    result = partition.partition_diversity(
        comm_mat.abundances, _taxa_diversity_fn(q), q, rel_then_pool=rel_then_pool
    )
    partition.warn_degenerate(len(result.out_of_range), show_warning)
    return result


def hill_taxa_parti_pairwise(
    comm: structures.CommunityType,
    q: float = 0,
    rel_then_pool: bool = True,
    output: str = "data.frame",
    pairs: str = "unique",
    show_warning: bool = False,
) -> pairwise.PairwiseResult:
    """
    Partition taxonomic diversity for each pair of sites.

    See [`hill_taxa_parti`](#hill-taxa-parti) for the partitioning, and
    [`pairwise.pairwise_partition`](/metrics/pairwise#pairwise-partition) for the `output` and `pairs` options.

    """
    pairwise.check_pairwise_options(output, pairs)
    comm_mat = structures.prepare_community(comm)
    checks.check_q(np.float64(q))
    logger.info(f"Computing pairwise taxonomic diversity partitions for q={q} across {comm_mat.n_sites} sites.")
    return pairwise.pairwise_partition(
        comm_mat.abundances,
        comm_mat.site_labels,
        _taxa_diversity_fn(q),
        q,
        rel_then_pool=rel_then_pool,
        output=output,
        pairs=pairs,
        show_warning=show_warning,
    )
