"""
Multiplicative partitioning of Hill diversity into gamma, alpha and beta components.

The partitioning is shared by the taxonomic, functional and phylogenetic engines: each engine supplies a function
computing the diversity of a relative abundance vector and the partitioning takes care of pooling sites, combining
the site diversities into alpha diversity, and deriving beta diversity and the similarity indices.
"""
from __future__ import annotations

import warnings
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Optional

import numpy as np
import numpy.typing as npt

from hilldiv import config
from hilldiv.algos import checks, diversity
from hilldiv.errors import DegenerateResultWarning, DomainError

# computes the diversity of a relative abundance vector, given the pooled relative abundances of the community
DiversityFn = Callable[[npt.NDArray[np.float64], npt.NDArray[np.float64]], float]
# computes alpha diversity from the sites x species relative abundances, the site weights, and the pooled abundances
AlphaFn = Callable[[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]], float]

SIMILARITY_KEYS: tuple[str, str] = ("local_similarity", "region_similarity")


@dataclass(frozen=True)
class PartitionResult:
    """
    Gamma, alpha and beta diversity for a community of sites, with the derived similarity indices.

    `beta` is always computed as `gamma / alpha`. Similarities falling outside of [0, 1] are reported as `nan` and
    their keys are listed in `out_of_range`.
    """

    q: float
    gamma: float
    alpha: float
    beta: float
    local_similarity: float
    region_similarity: float
    out_of_range: tuple[str, ...] = field(default=(), compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the result as a dictionary, excluding the out of range bookkeeping."""
        result = asdict(self)
        result.pop("out_of_range")
        return result


def local_similarity(beta: float, n_sites: int, q: float) -> float:
    """
    Local overlap (Sørensen-type) similarity derived from beta diversity.

    ((1 / beta) ** (q - 1) - (1 / N) ** (q - 1)) / (1 - (1 / N) ** (q - 1))

    In the limit at q = 1, this is 1 - log(beta) / log(N). Values are not bounded: see `bound_similarity`. A beta of
    zero or infinity gives a non-finite value.

    """
    beta = np.float64(beta)
    with np.errstate(divide="ignore", over="ignore", invalid="ignore"):
        if q == 1:
            return float(1 - np.log(beta) / np.log(n_sites))
        return float(((1 / beta) ** (q - 1) - (1 / n_sites) ** (q - 1)) / (1 - (1 / n_sites) ** (q - 1)))


def region_similarity(beta: float, n_sites: int, q: float) -> float:
    """
    Regional overlap (Jaccard-type) similarity derived from beta diversity.

    ((1 / beta) ** (1 - q) - (1 / N) ** (1 - q)) / (1 - (1 / N) ** (1 - q))

    In the limit at q = 1, this is 1 - log(beta) / log(N). Values are not bounded: see `bound_similarity`. A beta of
    zero or infinity gives a non-finite value.

    """
    beta = np.float64(beta)
    with np.errstate(divide="ignore", over="ignore", invalid="ignore"):
        if q == 1:
            return float(1 - np.log(beta) / np.log(n_sites))
        return float(((1 / beta) ** (1 - q) - (1 / n_sites) ** (1 - q)) / (1 - (1 / n_sites) ** (1 - q)))


def bound_similarity(value: float) -> tuple[float, bool]:
    """
    Bound a similarity to [0, 1].

    Values within `config.SIMILARITY_TOL` of the bounds are snapped to the bound. Values further out of range, or
    non-finite values, are returned as `nan`, with the second element of the returned tuple set to `True`.

    """
    if not np.isfinite(value):
        return np.nan, True
    if value < 0:
        if value < -config.SIMILARITY_TOL:
            return np.nan, True
        return 0.0, False
    if value > 1:
        if value > 1 + config.SIMILARITY_TOL:
            return np.nan, True
        return 1.0, False
    return float(value), False


def site_weights(abundances: npt.NDArray[np.float64], rel_then_pool: bool = True) -> npt.NDArray[np.float64]:
    """
    Weights of the respective sites.

    If `rel_then_pool` is `True`, each site has an equal weight of 1 / N. Otherwise sites are weighted by their share
    of the total abundance.

    """
    if rel_then_pool:
        return np.full(abundances.shape[0], 1 / abundances.shape[0], dtype=np.float64)
    site_totals = abundances.sum(axis=1)
    return site_totals / site_totals.sum()


def pooled_abundances(abundances: npt.NDArray[np.float64], rel_then_pool: bool = True) -> npt.NDArray[np.float64]:
    """
    Pool the sites into a single relative abundance vector.

    If `rel_then_pool` is `True`, abundances are first converted to relative abundances within each site and then
    averaged across sites. Otherwise the raw abundances are summed across sites and then converted to relative
    abundances.

    """
    if rel_then_pool:
        relative = abundances / abundances.sum(axis=1, keepdims=True)
        return relative.mean(axis=0)
    pooled = abundances.sum(axis=0)
    return pooled / pooled.sum()


def partition_diversity(
    abundances: npt.NDArray[np.float64],
    diversity_fn: DiversityFn,
    q: float,
    rel_then_pool: bool = True,
    alpha_fn: Optional[AlphaFn] = None,
) -> PartitionResult:
    """
    Partition the diversity of a community of sites into gamma, alpha and beta components.

    This is the array level partitioning used by the `hill_*_parti` and `hill_*_parti_pairwise` functions, which take
    care of validating and aligning the input data before calling this function.

    Parameters
    ----------
    abundances: ndarray[float]
        A sites x species array of abundances, with at least two sites and a positive total for each site.
    diversity_fn: Callable
        A function computing the diversity of a relative abundance vector, given the pooled relative abundances of the
        community as a second argument.
    q: float
        The order of diversity.
    rel_then_pool: bool
        Whether to convert abundances to relative abundances before pooling sites. See `pooled_abundances`.
    alpha_fn: Callable
        An optional function computing alpha diversity from the sites x species relative abundances, the site weights,
        and the pooled relative abundances. By default, the diversity of each site is computed with `diversity_fn`
        and the sites are combined with [`hill_alpha`](/algos/diversity#hill-alpha).

    Returns
    -------
    PartitionResult
        Gamma diversity of the pooled sites, alpha diversity combined from the sites, beta diversity as gamma divided
        by alpha, and the local and regional similarities.

    """
    n_sites = abundances.shape[0]
    if n_sites < 2:
        raise DomainError("Partitioning diversity requires at least two sites.")
    q = np.float64(q)
    checks.check_q(q)
    relative = abundances / abundances.sum(axis=1, keepdims=True)
    weights = site_weights(abundances, rel_then_pool)
    pooled = pooled_abundances(abundances, rel_then_pool)
    gamma = float(diversity_fn(pooled, pooled))
    if alpha_fn is None:
        site_divs = np.array(
            [diversity_fn(relative[site_idx], pooled) for site_idx in range(n_sites)], dtype=np.float64
        )
        alpha = float(diversity.hill_alpha(site_divs, weights, q))
    else:
        alpha = float(alpha_fn(relative, weights, pooled))
    with np.errstate(divide="ignore", invalid="ignore"):
        beta = float(np.float64(gamma) / np.float64(alpha))
    out_of_range: list[str] = []
    bounded: dict[str, float] = {}
    for simi_key, simi_fn in zip(SIMILARITY_KEYS, (local_similarity, region_similarity)):
        simi, degenerate = bound_similarity(simi_fn(beta, n_sites, q))
        bounded[simi_key] = simi
        if degenerate:
            out_of_range.append(simi_key)
    return PartitionResult(
        q=float(q),
        gamma=gamma,
        alpha=alpha,
        beta=beta,
        local_similarity=bounded["local_similarity"],
        region_similarity=bounded["region_similarity"],
        out_of_range=tuple(out_of_range),
    )


def warn_degenerate(n_degenerate: int, show_warning: bool = True) -> None:
    """Emit a single `DegenerateResultWarning` for the similarities that were reported as `nan`."""
    if n_degenerate and show_warning:
        warnings.warn(
            f"{n_degenerate} similarity value(s) fell outside of [0, 1] and were reported as nan. "
            "This can happen for near identical or maximally dissimilar communities.",
            DegenerateResultWarning,
            stacklevel=3,
        )
