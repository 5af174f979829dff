from __future__ import annotations

import numpy as np
import numpy.typing as npt
from numba import njit  # type: ignore

from hilldiv import config
from hilldiv.errors import DomainError, ShapeMismatchError

# checks are compiled without fastmath, since the "ninf" flag allows infinity checks to be optimised away


@njit(cache=True)
def check_q(q: np.float64) -> None:
    """Check that the order of diversity is a finite non-negative number."""
    if not np.isfinite(q):
        raise DomainError("The order of diversity q must be a finite number.")
    if q < 0:
        raise DomainError("Please select a non-negative value for q.")


@njit(cache=True)
def check_abundances(abundances: npt.NDArray[np.float64]) -> None:
    """Check the integrity of a single abundance (or probability) vector."""
    if len(abundances) == 0:
        raise DomainError("Zero length abundance vector.")
    for abund in abundances:
        if not np.isfinite(abund):
            raise DomainError("Abundances must be finite numbers.")
        if abund < 0:
            raise DomainError("Abundances must be non-negative.")
    if abundances.sum() <= 0:
        raise DomainError("Abundances must contain at least one positive entry.")


@njit(cache=True)
def check_community_data(comm_arr: npt.NDArray[np.float64]) -> None:
    """
    Check the integrity of a community array.

    Notes
    -----
    COMMUNITY ARRAY:
    rows - sites
    columns - species

    """
    if not comm_arr.ndim == 2:
        raise ShapeMismatchError(
            "The community array must have a dimensionality 2, consisting of the number of sites x the number of species."
        )
    if comm_arr.shape[0] == 0 or comm_arr.shape[1] == 0:
        raise ShapeMismatchError("Zero length community array.")
    for site_idx in range(comm_arr.shape[0]):
        row_total = 0.0
        for abund in comm_arr[site_idx]:
            if not np.isfinite(abund):
                raise DomainError("Community abundances must be finite numbers.")
            if abund < 0:
                raise DomainError("Community abundances must be non-negative.")
            row_total += abund
        if row_total <= 0:
            raise DomainError("Encountered a site with zero total abundance. Each site requires at least one species.")


@njit(cache=True)
def check_distance_matrix(dist_matrix: npt.NDArray[np.float64]) -> None:
    """Check that a distance matrix is square, symmetric, non-negative and with a zero diagonal."""
    if not dist_matrix.ndim == 2 or dist_matrix.shape[0] != dist_matrix.shape[1]:
        raise ShapeMismatchError("Distance matrix must be an NxN pairwise matrix of species distances.")
    n_species = dist_matrix.shape[0]
    for i in range(n_species):
        if dist_matrix[i, i] != 0:
            raise ShapeMismatchError("Distance matrix must have a zero diagonal.")
        for j in range(n_species):
            dist = dist_matrix[i, j]
            if not np.isfinite(dist) or dist < 0:
                raise DomainError("Distances must be finite non-negative numbers.")
            # use a small tolerance for rounding point issues
            if j > i and np.abs(dist - dist_matrix[j, i]) > config.ATOL * config.RTOL:
                raise ShapeMismatchError("Distance matrix must be symmetric.")


@njit(cache=True)
def check_phylo_data(branch_lengths: npt.NDArray[np.float64], incidence: npt.NDArray[np.float64]) -> None:
    """
    Check the integrity of branch lengths against the branch to species incidence array.

    Notes
    -----
    INCIDENCE ARRAY:
    rows - branches
    columns - species, 1 where the species descends from the branch
    """
    if len(branch_lengths) == 0:
        raise DomainError("Zero length branch array.")
    if not incidence.ndim == 2 or incidence.shape[0] != len(branch_lengths):
        raise ShapeMismatchError("Mismatching number of branch lengths and rows of the branch incidence array.")
    for length in branch_lengths:
        if not np.isfinite(length) or length < 0:
            raise DomainError("Branch lengths must be finite non-negative numbers.")
    if branch_lengths.sum() <= 0:
        raise DomainError("The phylogeny must have a positive total branch length.")
