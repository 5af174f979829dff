"""
Convenience functions for converting species trait data into functional distances.

Functional diversity measures only require a species x species distance matrix: any distance function returning a
[`TraitDistances`](/structures#traitdistances) instance can be substituted for [`gower_distance`](#gower-distance).
"""
from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt
import pandas as pd

from hilldiv.errors import DomainError, ShapeMismatchError
from hilldiv.structures import TraitDistances

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _numeric_trait_distances(values: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Range normalised absolute differences, `nan` where either value is missing."""
    diffs = np.abs(values[:, None] - values[None, :])
    trait_range = np.nanmax(values) - np.nanmin(values) if np.any(np.isfinite(values)) else 0
    if not trait_range > 0:
        return np.where(np.isnan(diffs), np.nan, 0.0)
    return diffs / trait_range


def _categorical_trait_distances(trait: pd.Series) -> npt.NDArray[np.float64]:
    """Zero for matching categories, one for mismatches, `nan` where either value is missing."""
    codes = trait.astype("category").cat.codes.to_numpy()
    diffs = (codes[:, None] != codes[None, :]).astype(np.float64)
    missing = codes < 0
    diffs[missing, :] = np.nan
    diffs[:, missing] = np.nan
    return diffs


def gower_distance(traits: pd.DataFrame) -> TraitDistances:
    """
    Compute Gower distances between species from a table of mixed traits.

    Parameters
    ----------
    traits: pd.DataFrame
        A `DataFrame` with species as the index and traits as columns. Numeric columns are compared by their range
        normalised absolute differences. Ordered categorical columns are compared by their range normalised category
        ranks. All other columns (strings, booleans, unordered categoricals) are treated as nominal: zero if matching,
        otherwise one.

    Returns
    -------
    TraitDistances
        The mean distance across the traits that are available for both species of a pair, in [0, 1].

    Notes
    -----
    Missing trait values are excluded pairwise, i.e. a pair of species is compared on the traits they both have.

    """
    if not isinstance(traits, pd.DataFrame):
        raise TypeError("Traits should be provided as a pandas DataFrame with species as the index.")
    if traits.empty:
        raise ShapeMismatchError("The traits DataFrame is empty.")
    logger.info(f"Computing Gower distances for {len(traits)} species and {traits.shape[1]} traits.")
    n_species = len(traits)
    dist_sum = np.zeros((n_species, n_species), dtype=np.float64)
    wt_sum = np.zeros((n_species, n_species), dtype=np.float64)
    for trait_key in traits.columns:
        trait = traits[trait_key]
        if isinstance(trait.dtype, pd.CategoricalDtype) and trait.cat.ordered:
            ranks = trait.cat.codes.to_numpy().astype(np.float64)
            ranks[ranks < 0] = np.nan
            diffs = _numeric_trait_distances(ranks)
        elif pd.api.types.is_bool_dtype(trait):
            diffs = _categorical_trait_distances(trait)
        elif pd.api.types.is_numeric_dtype(trait):
            diffs = _numeric_trait_distances(trait.to_numpy(dtype=np.float64))
        else:
            diffs = _categorical_trait_distances(trait)
        valid = ~np.isnan(diffs)
        dist_sum += np.where(valid, diffs, 0)
        wt_sum += valid
    if np.any(wt_sum == 0):
        raise DomainError("Some species pairs do not share any non-missing traits.")
    dists = dist_sum / wt_sum
    np.fill_diagonal(dists, 0)
    return TraitDistances(dists, traits.index)


def pcoa(dist_matrix: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """
    Principal coordinates of a distance matrix.

    Axes with non-positive eigenvalues are dropped, so that non-euclidean distances are represented by their euclidean
    component.

    Parameters
    ----------
    dist_matrix: ndarray[float]
        A square, symmetric distance matrix.

    Returns
    -------
    ndarray[float]
        Species x axes coordinates. If all distances are zero, a single axis of zeros is returned.

    """
    n_species = len(dist_matrix)
    centring = np.eye(n_species) - np.full((n_species, n_species), 1 / n_species)
    gower_centred = -0.5 * centring @ (dist_matrix**2) @ centring
    eig_vals, eig_vecs = np.linalg.eigh(gower_centred)
    if not np.any(eig_vals > 0):
        return np.zeros((n_species, 1), dtype=np.float64)
    keep = eig_vals > eig_vals.max() * 1e-10
    return eig_vecs[:, keep] * np.sqrt(eig_vals[keep])


def functional_dispersion(probs: npt.NDArray[np.float64], coords: npt.NDArray[np.float64]) -> float:
    """
    Functional dispersion (FDis) of Laliberté and Legendre 2010.

    The abundance weighted mean distance of species to the abundance weighted centroid of the community in trait space.

    """
    probs = probs / probs.sum()
    centroid = probs @ coords
    return float(probs @ np.sqrt(((coords - centroid) ** 2).sum(axis=1)))
