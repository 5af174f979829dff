from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import numpy.typing as npt
from numba import njit  # type: ignore

from hilldiv import config
from hilldiv.algos import checks
from hilldiv.errors import DomainError, ShapeMismatchError


@njit(cache=True, fastmath=config.FASTMATH, nogil=True)
def hill_diversity(class_counts: npt.NDArray[np.float64], q: np.float64) -> np.float64:
    """
    Compute Hill diversity.

    Hill numbers - express actual diversity as opposed e.g. to Gini-Simpson (probability) and Shannon (information)

    exponent at 1 results in undefined because of 1/0 - but limit exists as exp(entropy)
    See "Entropy and diversity" by Lou Jost

    Exponent at 0 = variety - i.e. count of unique species
    Exponent at 1 = unity
    Exponent at 2 = diversity form of simpson index

    """
    checks.check_q(q)
    checks.check_abundances(class_counts)
    num = class_counts.sum()
    # hill number defined in the limit as the exponential of information entropy
    if q == 1:
        ent = 0.0
        for class_count in class_counts:
            if class_count > 0:
                prob = class_count / num  # the probability of this class
                ent += prob * np.log(prob)  # sum entropy
        return np.exp(-ent)  # return exponent of entropy
    # otherwise use the usual form of Hill numbers
    div = 0.0
    for class_count in class_counts:
        if class_count > 0:
            prob = class_count / num  # the probability of this class
            div += prob**q  # sum
    return div ** (1 / (1 - q))  # return as equivalent species


@njit(cache=True, fastmath=config.FASTMATH, nogil=True)
def hill_diversity_similarity_wt(
    class_counts: npt.NDArray[np.float64], sim_matrix: npt.NDArray[np.float64], q: np.float64
) -> np.float64:
    """
    Hill diversity weighted by a pairwise species similarity matrix.

    Requires a precomputed similarity matrix for all classes, with ones on the diagonal and values in [0, 1]
    elsewhere, e.g. one minus a distance matrix rescaled to its largest observed distance.

    Every co-occurring pair of classes i, j (including i = j) contributes p_j * s_ij to the "ordinariness" z_i of
    class i, i.e. the expected similarity between an individual of class i and a randomly drawn individual. The power
    mean is then taken over the ordinariness of each class, weighted by the class probabilities.

    See Leinster and Cobbold 2012 "Measuring diversity: the importance of species similarity".

    When the similarity matrix is the identity - all classes are equally and completely dissimilar - this reduces
    exactly to the plain Hill number.

    """
    if len(class_counts) != len(sim_matrix):
        raise ShapeMismatchError("Mismatching number of class counts and dimensionality of class similarity matrix.")
    if not sim_matrix.ndim == 2 or sim_matrix.shape[0] != sim_matrix.shape[1]:
        raise ShapeMismatchError("Similarity matrix must be an NxN pairwise matrix of similarity weights.")
    checks.check_q(q)
    checks.check_abundances(class_counts)
    num = class_counts.sum()
    div_sim_wt = 0.0
    for i, class_count_i in enumerate(class_counts):
        if not class_count_i > 0:
            continue
        p_i = class_count_i / num
        # aggregate the pairwise similarity weighted abundances
        agg_z = 0.0
        for j, class_count_j in enumerate(class_counts):
            if not class_count_j > 0:
                continue
            agg_z += sim_matrix[i][j] * class_count_j / num
        if q == 1:
            div_sim_wt += p_i * np.log(agg_z)
        else:
            div_sim_wt += p_i * agg_z ** (q - 1)
    # hill number defined in the limit as the exponential of information entropy
    if q == 1:
        return np.exp(-div_sim_wt)
    return div_sim_wt ** (1 / (1 - q))


@njit(cache=True, fastmath=config.FASTMATH, nogil=True)
def hill_diversity_branch_wt(
    branch_abundances: npt.NDArray[np.float64],
    branch_lengths: npt.NDArray[np.float64],
    q: np.float64,
    tbar: np.float64 = np.float64(0),
) -> np.float64:
    """
    Compute Hill diversity weighted by phylogenetic branch lengths.

    Based on the phylogenetic Hill numbers in Chao, Chiu, Jost 2010 and the unified framework in Chao, Chiu, Jost
    2014. See table on page 308 and surrounding text.

    Branch abundances are the summed relative abundances of the species descending from each branch. Each branch
    contributes with a weight of L_i / T where T is the abundance weighted mean base to tip distance. If `tbar` is not
    provided (zero), then T is computed from the given abundances.

    Exponent at 0 = Faith's PD divided by T

    """
    if len(branch_abundances) != len(branch_lengths):
        raise ShapeMismatchError("Mismatching number of branch abundances and respective branch lengths.")
    checks.check_q(q)
    checks.check_abundances(branch_abundances)
    # find T
    agg_t = 0.0
    for branch_abund, branch_len in zip(branch_abundances, branch_lengths):
        agg_t += branch_len * branch_abund
    if tbar > 0:
        agg_t = tbar
    if agg_t <= 0:
        raise DomainError("The branches reached by the present species have zero total length.")
    # hill number defined in the limit as the exponential of information entropy
    if q == 1:
        div_branch_wt_lim = 0.0
        for branch_abund, branch_len in zip(branch_abundances, branch_lengths):
            if branch_abund > 0:
                div_branch_wt_lim += branch_len / agg_t * branch_abund * np.log(branch_abund)  # sum entropy
        return np.exp(-div_branch_wt_lim)
    # otherwise use the usual form of Hill numbers
    div_branch_wt = 0.0
    for branch_abund, branch_len in zip(branch_abundances, branch_lengths):
        if branch_abund > 0:
            div_branch_wt += branch_len / agg_t * branch_abund**q  # sum
    # once summed, apply q
    return div_branch_wt ** (1 / (1 - q))


@njit(cache=True, fastmath=config.FASTMATH, nogil=True)
def raos_quadratic_diversity(
    class_counts: npt.NDArray[np.float64], dist_matrix: npt.NDArray[np.float64]
) -> np.float64:
    """
    Rao's quadratic diversity.

    Sum of distance weighted pairwise products, i.e. the expected distance between two individuals picked at random
    (with replacement):
    Q = sum(dij * pi * pj)

    """
    if len(class_counts) != len(dist_matrix):
        raise ShapeMismatchError("Mismatching number of class counts and dimensionality of class distance matrix.")
    if not dist_matrix.ndim == 2 or dist_matrix.shape[0] != dist_matrix.shape[1]:
        raise ShapeMismatchError("Distance matrix must be an NxN pairwise matrix of distances.")
    checks.check_abundances(class_counts)
    num = class_counts.sum()
    raos = 0.0  # variable for additive calculations of distance * p1 * p2
    for i, class_count_i in enumerate(class_counts):
        if not class_count_i > 0:
            continue
        for j, class_count_j in enumerate(class_counts):
            if not class_count_j > 0:
                continue
            raos += dist_matrix[i][j] * class_count_i / num * class_count_j / num
    return raos


@njit(cache=True, fastmath=config.FASTMATH, nogil=True)
def hill_alpha(
    site_diversities: npt.NDArray[np.float64], site_weights: npt.NDArray[np.float64], q: np.float64
) -> np.float64:
    """
    Compute alpha diversity from the Hill diversities of the respective sites.

    The site diversities are combined as a weighted power mean of order 1 - q, which is then normalised by the number
    of sites. For equal weights (1 / N) this is the plain power mean of order 1 - q. Otherwise, this matches the alpha
    diversity of Jost 2007 and Chiu, Jost, Chao 2014 where sites are weighted by their share of the total abundance:

    alpha = 1 / N * (sum(wj ** q * Dj ** (1 - q))) ** (1 / (1 - q))

    And, in the limit at q = 1:

    alpha = 1 / N * exp(H(w) + sum(wj * log(Dj)))

    """
    if len(site_diversities) != len(site_weights):
        raise ShapeMismatchError("Mismatching number of site diversities and respective site weights.")
    checks.check_q(q)
    checks.check_abundances(site_weights)
    n_sites = len(site_diversities)
    num = site_weights.sum()
    if q == 1:
        ent = 0.0
        for site_div, site_wt in zip(site_diversities, site_weights):
            if site_wt > 0:
                wt = site_wt / num
                ent += wt * np.log(wt) - wt * np.log(site_div)
        return np.exp(-ent) / n_sites
    div = 0.0
    for site_div, site_wt in zip(site_diversities, site_weights):
        if site_wt > 0:
            div += (site_wt / num) ** q * site_div ** (1 - q)
    return div ** (1 / (1 - q)) / n_sites


@njit(cache=True, fastmath=config.FASTMATH, nogil=True)
def hill_alpha_branch_wt(
    site_branch_abundances: npt.NDArray[np.float64],
    branch_lengths: npt.NDArray[np.float64],
    site_weights: npt.NDArray[np.float64],
    q: np.float64,
    tbar: np.float64,
) -> np.float64:
    """
    Compute phylogenetic alpha diversity directly from the branch abundances of the respective sites.

    See Chao, Chiu, Jost 2010, where alpha is computed over the site weighted branch abundances w_j * a_bj:

    alpha = 1 / N * (sum_j sum_b (L_b / T) * (w_j * a_bj) ** q) ** (1 / (1 - q))

    And, in the limit at q = 1:

    alpha = 1 / N * exp(-sum_j sum_b (L_b / T) * w_j * a_bj * log(w_j * a_bj))

    Where T is the mean base to tip distance of the pooled sites, the summation tends to one as q approaches one.
    Combining per site phylogenetic diversities with `hill_alpha` is only equivalent where each site shares the same
    base to tip distance, i.e. ultrametric trees.

    """
    if site_branch_abundances.shape[0] != len(site_weights):
        raise ShapeMismatchError("Mismatching number of sites and respective site weights.")
    if site_branch_abundances.shape[1] != len(branch_lengths):
        raise ShapeMismatchError("Mismatching number of branch abundances and respective branch lengths.")
    checks.check_q(q)
    checks.check_abundances(site_weights)
    if tbar <= 0:
        raise DomainError("The branches reached by the present species have zero total length.")
    n_sites = len(site_weights)
    num = site_weights.sum()
    agg = 0.0
    for site_idx in range(n_sites):
        wt = site_weights[site_idx] / num
        if not wt > 0:
            continue
        for branch_idx in range(len(branch_lengths)):
            wt_abund = wt * site_branch_abundances[site_idx, branch_idx]
            if not wt_abund > 0:
                continue
            if q == 1:
                agg += branch_lengths[branch_idx] / tbar * wt_abund * np.log(wt_abund)
            else:
                agg += branch_lengths[branch_idx] / tbar * wt_abund**q
    if q == 1:
        return np.exp(-agg) / n_sites
    return agg ** (1 / (1 - q)) / n_sites


def hill_number(weights: Union[Sequence[float], npt.NDArray[np.float64]], q: float = 0) -> float:
    """
    Compute the Hill number of order `q` for a vector of abundances or probabilities.

    Parameters
    ----------
    weights: Sequence[float] | ndarray[float]
        Non-negative abundances or probabilities. These are normalised to sum to one and entries that are exactly zero
        are excluded.
    q: float
        The order of diversity. 0 gives richness, 1 the exponential of Shannon entropy, 2 inverse Simpson.

    Returns
    -------
    float
        The effective number of species.

    Raises
    ------
    DomainError
        If the weights are empty, all zero or contain negative values, or if `q` is negative.

    """
    weights_arr = np.asarray(weights, dtype=np.float64)
    if weights_arr.ndim != 1:
        raise ShapeMismatchError("Weights must be a one dimensional sequence.")
    return float(hill_diversity(weights_arr, np.float64(q)))
