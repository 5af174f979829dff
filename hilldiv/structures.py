"""
The `structures` module defines the data structures consumed by the diversity engines.

Each structure carries explicit, ordered labels alongside its numeric arrays. Alignment between a community matrix and
trait or phylogeny data always goes through an explicit label to index mapping: unresolved labels raise a
`ShapeMismatchError` instead of being silently reindexed.

It is not necessary to create these structures directly when using the `metrics` functions, which accept `pandas`
data frames and prepare the structures implicitly.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import numpy as np
import numpy.typing as npt
import pandas as pd

from hilldiv.algos import checks
from hilldiv.errors import ShapeMismatchError


def _check_labels(labels: list[str], kind: str) -> None:
    if len(set(labels)) != len(labels):
        raise ShapeMismatchError(f"Duplicate {kind} labels encountered. Please provide unique {kind} labels.")


def label_index(labels: Sequence[str]) -> dict[str, int]:
    """Map labels to their positional indices."""
    return {label: idx for idx, label in enumerate(labels)}


def align_labels(source_labels: Sequence[str], target_labels: Sequence[str], kind: str = "species") -> list[int]:
    """
    Resolve the positions of `target_labels` within `source_labels`.

    Parameters
    ----------
    source_labels: Sequence[str]
        The labels of the data being indexed into, e.g. the species of a distance matrix.
    target_labels: Sequence[str]
        The labels, in order, for which to find positions, e.g. the species of a community matrix.
    kind: str
        Used for error messages.

    Returns
    -------
    list[int]
        Indices into `source_labels` in the order of `target_labels`.

    Raises
    ------
    ShapeMismatchError
        If any of the target labels is absent from the source labels.

    """
    source_idx = label_index(source_labels)
    missing = [label for label in target_labels if label not in source_idx]
    if missing:
        raise ShapeMismatchError(f"Unable to resolve {kind} labels: {', '.join(str(m) for m in missing)}.")
    return [source_idx[label] for label in target_labels]


class CommunityMatrix:
    """
    `CommunityMatrix` structure representing site by species abundances.

    Rows correspond to sites and columns to species. Abundances must be non-negative and each site must contain at
    least one species with a positive abundance.
    """

    abundances: npt.NDArray[np.float64]
    """Sites x species abundances."""
    site_labels: list[str]
    """Unique site labels, in row order."""
    species_labels: list[str]
    """Unique species labels, in column order."""

    def __init__(
        self,
        abundances: Any,
        site_labels: Optional[Sequence[Any]] = None,
        species_labels: Optional[Sequence[Any]] = None,
    ):
        """
        Instance a `CommunityMatrix`.

        Parameters
        ----------
        abundances: ndarray[float]
            A 2d array of sites x species abundances.
        site_labels: Sequence[str]
            Optional site labels. Defaults to `site_1`, `site_2`, etc.
        species_labels: Sequence[str]
            Optional species labels. Defaults to `sp_1`, `sp_2`, etc.

        """
        self.abundances = np.asarray(abundances, dtype=np.float64)
        if self.abundances.ndim != 2:
            raise ShapeMismatchError("The community array must be two dimensional: sites x species.")
        if site_labels is None:
            site_labels = [f"site_{idx + 1}" for idx in range(self.abundances.shape[0])]
        if species_labels is None:
            species_labels = [f"sp_{idx + 1}" for idx in range(self.abundances.shape[1])]
        self.site_labels = [str(label) for label in site_labels]
        self.species_labels = [str(label) for label in species_labels]
        self.validate()

    @classmethod
    def from_dataframe(cls, comm_df: pd.DataFrame) -> CommunityMatrix:
        """Prepare a `CommunityMatrix` from a `DataFrame` with sites as the index and species as the columns."""
        return cls(comm_df.to_numpy(dtype=np.float64), comm_df.index, comm_df.columns)

    @property
    def n_sites(self) -> int:
        """The number of sites."""
        return self.abundances.shape[0]

    @property
    def n_species(self) -> int:
        """The number of species."""
        return self.abundances.shape[1]

    def relative(self) -> npt.NDArray[np.float64]:
        """Abundances normalised to relative abundances within each site."""
        return self.abundances / self.abundances.sum(axis=1, keepdims=True)

    def present_species(self) -> list[str]:
        """Labels of the species with a positive total abundance."""
        totals = self.abundances.sum(axis=0)
        return [label for label, total in zip(self.species_labels, totals) if total > 0]

    def validate(self) -> None:
        """Validate this `CommunityMatrix` instance."""
        if len(self.site_labels) != self.abundances.shape[0]:
            raise ShapeMismatchError("The number of site labels does not match the number of community rows.")
        if len(self.species_labels) != self.abundances.shape[1]:
            raise ShapeMismatchError("The number of species labels does not match the number of community columns.")
        _check_labels(self.site_labels, "site")
        _check_labels(self.species_labels, "species")
        checks.check_community_data(self.abundances)


class TraitDistances:
    """
    `TraitDistances` structure representing a species x species functional distance matrix.

    The matrix must be square, symmetric, non-negative and with a zero diagonal.
    """

    distances: npt.NDArray[np.float64]
    """Species x species distances."""
    species_labels: list[str]
    """Species labels, in row and column order."""

    def __init__(self, distances: Any, species_labels: Sequence[Any]):
        self.distances = np.asarray(distances, dtype=np.float64)
        self.species_labels = [str(label) for label in species_labels]
        self.validate()

    @classmethod
    def from_dataframe(cls, dist_df: pd.DataFrame) -> TraitDistances:
        """Prepare `TraitDistances` from a square `DataFrame`, with species for both the index and the columns."""
        if set(dist_df.index.astype(str)) != set(dist_df.columns.astype(str)):
            raise ShapeMismatchError("The distance matrix index and columns must contain the same species labels.")
        # put columns in the same order as the index
        col_order = align_labels(list(dist_df.columns.astype(str)), list(dist_df.index.astype(str)))
        return cls(dist_df.to_numpy(dtype=np.float64)[:, col_order], dist_df.index)

    def aligned(self, species_labels: Sequence[str]) -> TraitDistances:
        """
        Return the distances for the given species, in the given order.

        Raises
        ------
        ShapeMismatchError
            If any of the species is absent from the distance matrix.

        """
        idx = align_labels(self.species_labels, species_labels)
        return TraitDistances(self.distances[np.ix_(idx, idx)], species_labels)

    def rescaled(self) -> npt.NDArray[np.float64]:
        """Distances rescaled so that the largest observed distance equals one."""
        max_dist = self.distances.max()
        if max_dist == 0:
            return np.zeros_like(self.distances)
        return self.distances / max_dist

    def similarity(self) -> npt.NDArray[np.float64]:
        """Similarities computed as one minus the rescaled distances."""
        return 1 - self.rescaled()

    def validate(self) -> None:
        """Validate this `TraitDistances` instance."""
        if self.distances.ndim != 2:
            raise ShapeMismatchError("Distance matrix must be an NxN pairwise matrix of species distances.")
        checks.check_distance_matrix(self.distances)
        if len(self.species_labels) != self.distances.shape[0]:
            raise ShapeMismatchError("The number of species labels does not match the dimensions of the distances.")
        _check_labels(self.species_labels, "species")


class PhyloStructure:
    """
    `PhyloStructure` representing the branches of a phylogeny reached by a set of species.

    Each branch is represented by its length and by the community species descending from it. Only branches with at
    least one descendant species are retained. It is not necessary to create this class directly: see
    [`phylo.phylo_structure`](/tools/phylo#phylo-structure).
    """

    branch_lengths: npt.NDArray[np.float64]
    """Length of each branch."""
    incidence: npt.NDArray[np.float64]
    """Branches x species array, 1 where the species descends from the branch, otherwise 0."""
    species_labels: list[str]
    """Species labels, in column order."""

    def __init__(self, branch_lengths: Any, incidence: Any, species_labels: Sequence[Any]):
        self.branch_lengths = np.asarray(branch_lengths, dtype=np.float64)
        self.incidence = np.asarray(incidence, dtype=np.float64)
        self.species_labels = [str(label) for label in species_labels]
        self.validate()

    @property
    def n_branches(self) -> int:
        """The number of branches."""
        return len(self.branch_lengths)

    def aligned(self, species_labels: Sequence[str]) -> PhyloStructure:
        """
        Return the structure for the given species, in the given order, dropping branches that are no longer reached.

        Raises
        ------
        ShapeMismatchError
            If any of the species is absent from the phylogeny.

        """
        idx = align_labels(self.species_labels, species_labels)
        incidence = self.incidence[:, idx]
        keep = incidence.sum(axis=1) > 0
        return PhyloStructure(self.branch_lengths[keep], incidence[keep], species_labels)

    def branch_abundances(self, abundances: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Sum the abundances of the species descending from each branch."""
        return self.incidence @ abundances

    def validate(self) -> None:
        """Validate this `PhyloStructure` instance."""
        checks.check_phylo_data(self.branch_lengths, self.incidence)
        if self.incidence.shape[1] != len(self.species_labels):
            raise ShapeMismatchError("The number of species labels does not match the columns of the incidence array.")
        _check_labels(self.species_labels, "species")
        if np.any(self.incidence.sum(axis=0) == 0):
            raise ShapeMismatchError("Each species must descend from at least one branch.")


CommunityType = Union[CommunityMatrix, pd.DataFrame, npt.NDArray[np.float64]]


def prepare_community(comm: CommunityType) -> CommunityMatrix:
    """Prepare a `CommunityMatrix` from a `DataFrame`, an array, or an existing `CommunityMatrix`."""
    if isinstance(comm, CommunityMatrix):
        comm.validate()
        return comm
    if isinstance(comm, pd.DataFrame):
        return CommunityMatrix.from_dataframe(comm)
    return CommunityMatrix(comm)
