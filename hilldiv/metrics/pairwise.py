"""
Pairwise partitioning of diversity across all pairs of sites.

Pairs are partitioned once, as immutable records keyed by their site indices. The records are then passed through two
independent projections: one selecting the pairs (`full` or `unique`), and one rendering the selected pairs as a table
or as site x site matrices.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import numpy.typing as npt
import pandas as pd
from tqdm import tqdm

from hilldiv import config
from hilldiv.metrics import partition

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

OUTPUT_TYPES: tuple[str, str] = ("data.frame", "matrix")
PAIR_TYPES: tuple[str, str] = ("unique", "full")
RESULT_KEYS: tuple[str, ...] = ("gamma", "alpha", "beta", "local_similarity", "region_similarity")

PairwiseResult = Union[pd.DataFrame, dict[str, Union[float, pd.DataFrame]]]


@dataclass(frozen=True)
class PairRecord:
    """The partitioning result for a pair of sites."""

    site1: str
    site2: str
    row_idx: int
    col_idx: int
    result: partition.PartitionResult


def check_pairwise_options(output: str, pairs: str) -> None:
    """Check the output and pairs options before any computation begins."""
    if output not in OUTPUT_TYPES:
        raise ValueError(f"Unknown output type: {output}. Please use one of {', '.join(OUTPUT_TYPES)}.")
    if pairs not in PAIR_TYPES:
        raise ValueError(f"Unknown pairs type: {pairs}. Please use one of {', '.join(PAIR_TYPES)}.")


def pair_records(
    abundances: npt.NDArray[np.float64],
    site_labels: Sequence[str],
    diversity_fn: partition.DiversityFn,
    q: float,
    rel_then_pool: bool = True,
    include_self: bool = True,
    alpha_fn: Optional[partition.AlphaFn] = None,
) -> list[PairRecord]:
    """
    Partition every pair of sites.

    Each unordered pair is partitioned once. Since the partitioning is symmetric, the result is shared by both orders
    of the pair. The pairing of each site with itself is only partitioned if `include_self` is `True`.

    Returns
    -------
    list[PairRecord]
        One record for each of the ordered pairs, in the order of site1 (outer) and site2 (inner): N x N records if
        `include_self`, otherwise N x (N - 1).

    """
    n_sites = abundances.shape[0]
    results: dict[tuple[int, int], partition.PartitionResult] = {}
    n_pairs = n_sites * (n_sites + 1) // 2 if include_self else n_sites * (n_sites - 1) // 2
    with tqdm(total=n_pairs, disable=config.QUIET_MODE) as progress:
        for i in range(n_sites):
            for j in range(i if include_self else i + 1, n_sites):
                results[(i, j)] = partition.partition_diversity(
                    abundances[[i, j]], diversity_fn, q, rel_then_pool=rel_then_pool, alpha_fn=alpha_fn
                )
                progress.update(1)
    return [
        PairRecord(site_labels[i], site_labels[j], i, j, results[(min(i, j), max(i, j))])
        for i in range(n_sites)
        for j in range(n_sites)
        if include_self or i != j
    ]


def filter_pairs(records: Sequence[PairRecord], pairs: str = "unique") -> list[PairRecord]:
    """Select all pairs (`full`), or only the unique pairs of distinct sites (`unique`)."""
    if pairs == "full":
        return list(records)
    return [record for record in records if record.row_idx < record.col_idx]


def records_to_frame(records: Sequence[PairRecord], q: float) -> pd.DataFrame:
    """Render pair records as a `DataFrame` with a row for each pair."""
    rows = [
        {"q": float(q), "site1": record.site1, "site2": record.site2}
        | {key: getattr(record.result, key) for key in RESULT_KEYS}
        for record in records
    ]
    return pd.DataFrame(rows, columns=["q", "site1", "site2", *RESULT_KEYS])


def records_to_matrices(
    records: Sequence[PairRecord], site_labels: Sequence[str], q: float
) -> dict[str, Union[float, pd.DataFrame]]:
    """Render pair records as site x site matrices keyed by result, alongside `q`. Pairs without a record are `nan`."""
    n_sites = len(site_labels)
    matrices = {key: np.full((n_sites, n_sites), np.nan, dtype=np.float64) for key in RESULT_KEYS}
    for record in records:
        for key in RESULT_KEYS:
            matrices[key][record.row_idx, record.col_idx] = getattr(record.result, key)
    result: dict[str, Union[float, pd.DataFrame]] = {"q": float(q)}
    for key, matrix in matrices.items():
        result[key] = pd.DataFrame(matrix, index=list(site_labels), columns=list(site_labels))
    return result


def pairwise_partition(
    abundances: npt.NDArray[np.float64],
    site_labels: Sequence[str],
    diversity_fn: partition.DiversityFn,
    q: float,
    rel_then_pool: bool = True,
    output: str = "data.frame",
    pairs: str = "unique",
    show_warning: bool = False,
    alpha_fn: Optional[partition.AlphaFn] = None,
) -> PairwiseResult:
    """
    Partition diversity for each pair of sites.

    Parameters
    ----------
    abundances: ndarray[float]
        A validated sites x species array of abundances.
    site_labels: Sequence[str]
        Site labels in row order.
    diversity_fn: Callable
        See [`partition.partition_diversity`](/metrics/partition#partition-diversity).
    q: float
        The order of diversity.
    rel_then_pool: bool
        Whether to convert abundances to relative abundances before pooling sites.
    output: str
        `data.frame` for a `DataFrame` with a row per pair, or `matrix` for a dictionary of site x site `DataFrame`
        matrices keyed by `gamma`, `alpha`, `beta`, `local_similarity`, and `region_similarity`, together with the
        `q` used.
    pairs: str
        `unique` for pairs of distinct sites where the first site precedes the second, or `full` for all N x N pairs
        including the pairing of each site with itself. Excluded pairs are omitted from `data.frame` output and are
        `nan` in `matrix` output.
    show_warning: bool
        Whether to warn if any similarities fell outside of [0, 1] and were reported as `nan`.
    alpha_fn: Callable
        An optional alpha diversity function. See
        [`partition.partition_diversity`](/metrics/partition#partition-diversity).

    Returns
    -------
    pd.DataFrame | dict[str, float | pd.DataFrame]
        The pairwise results.

    """
    check_pairwise_options(output, pairs)
    records = pair_records(
        abundances,
        site_labels,
        diversity_fn,
        q,
        rel_then_pool=rel_then_pool,
        include_self=pairs == "full",
        alpha_fn=alpha_fn,
    )
    records = filter_pairs(records, pairs)
    partition.warn_degenerate(sum(len(record.result.out_of_range) for record in records), show_warning)
    if output == "matrix":
        return records_to_matrices(records, site_labels, q)
    return records_to_frame(records, q)
