# pyright: basic
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from hilldiv.errors import DomainError, ShapeMismatchError
from hilldiv.metrics import functional, taxa
from hilldiv.structures import CommunityMatrix, TraitDistances
from hilldiv.tools import mock, traits


def test_hill_func_equidistant(mock_comm, equidistant_dists):
    for q in [0, 0.5, 1, 2, 3]:
        func = functional.hill_func(mock_comm, equidistant_dists, traits_as_is=True, q=q)
        assert list(func.columns) == ["Q", "FDis", "MD_q", "FD_q"]
        assert list(func.index) == list(mock_comm.index)
        # equally distinct species reduce to taxonomic diversity
        assert np.allclose(func["MD_q"].to_numpy(), taxa.hill_taxa(mock_comm, q=q).to_numpy())
        # rao's Q reduces to the gini-simpson index
        probs = mock_comm.to_numpy() / mock_comm.to_numpy().sum(axis=1, keepdims=True)
        assert np.allclose(func["Q"].to_numpy(), 1 - np.sum(probs**2, axis=1))
        assert np.allclose(func["FD_q"].to_numpy(), func["MD_q"].to_numpy() * func["Q"].to_numpy())
        assert np.all(func["FDis"].to_numpy() >= 0)


def test_hill_func_traits(mock_comm):
    trait_df = mock.mock_traits(mock_comm.columns, random_seed=42)
    for q in [0, 1, 2]:
        func = functional.hill_func(mock_comm, trait_df, q=q)
        # functional similarity can only reduce the effective number of species
        assert np.all(func["MD_q"].to_numpy() <= taxa.hill_taxa(mock_comm, q=q).to_numpy() + 1e-9)
        assert np.all(func["MD_q"].to_numpy() >= 1 - 1e-9)
        assert np.all((func["Q"].to_numpy() >= 0) & (func["Q"].to_numpy() <= 1))
        assert np.all(func["FDis"].to_numpy() >= 0)
    # matches precomputed distances
    dists = traits.gower_distance(trait_df)
    func_dists = functional.hill_func(mock_comm, dists, traits_as_is=True, q=1)
    func_traits = functional.hill_func(mock_comm, trait_df, q=1)
    assert np.allclose(func_dists.to_numpy(), func_traits.to_numpy())
    # traits for additional species, in a different order, are fine
    extra_traits = pd.concat([trait_df, mock.mock_traits(["sp_extra"])]).iloc[::-1]
    func_extra = functional.hill_func(mock_comm, extra_traits, q=0)
    assert func_extra["MD_q"].notna().all()
    # dispersion is optional
    func = functional.hill_func(mock_comm, trait_df, q=1, fdis=False)
    assert list(func.columns) == ["Q", "MD_q", "FD_q"]


def test_hill_func_custom_distance(mock_comm, equidistant_dists):
    def equal_distance(trait_df: pd.DataFrame) -> TraitDistances:
        n_species = len(trait_df)
        return TraitDistances(np.ones((n_species, n_species)) - np.eye(n_species), trait_df.index)

    trait_df = mock.mock_traits(mock_comm.columns)
    func = functional.hill_func(mock_comm, trait_df, q=2, distance_fn=equal_distance)
    func_equi = functional.hill_func(mock_comm, equidistant_dists, traits_as_is=True, q=2)
    assert np.allclose(func.to_numpy(), func_equi.to_numpy())


def test_prepare_distances(mock_comm, equidistant_dists):
    comm_mat = CommunityMatrix.from_dataframe(mock_comm)
    # unlabelled arrays are taken in community order
    dists = functional.prepare_distances(comm_mat, equidistant_dists.to_numpy(), traits_as_is=True)
    assert dists.species_labels == comm_mat.species_labels
    # labelled distances are aligned to the community
    reordered = equidistant_dists.iloc[::-1, ::-1].copy()
    reordered.iloc[0, 1] = reordered.iloc[1, 0] = 0.5
    dists = functional.prepare_distances(comm_mat, reordered, traits_as_is=True)
    assert dists.species_labels == comm_mat.species_labels
    # the last two species were swapped to the front
    assert dists.distances[-1, -2] == 0.5
    assert dists.distances[0, 1] == 1


def test_hill_func_malformed(mock_comm, equidistant_dists):
    # missing species
    trait_df = mock.mock_traits(mock_comm.columns[:-1])
    with pytest.raises(ShapeMismatchError):
        functional.hill_func(mock_comm, trait_df)
    with pytest.raises(DomainError):
        functional.hill_func(mock_comm, trait_df)
    with pytest.raises(ShapeMismatchError):
        functional.hill_func(mock_comm, equidistant_dists.iloc[:-1, :-1], traits_as_is=True)
    # traits must be a DataFrame
    with pytest.raises(TypeError):
        functional.hill_func(mock_comm, mock.mock_traits(mock_comm.columns).to_numpy())
    # malformed q
    with pytest.raises(DomainError):
        functional.hill_func(mock_comm, equidistant_dists, traits_as_is=True, q=-1)
    # asymmetric distances
    corrupt_dists = equidistant_dists.copy()
    corrupt_dists.iloc[0, 1] = 0.5
    with pytest.raises(ShapeMismatchError):
        functional.hill_func(mock_comm, corrupt_dists, traits_as_is=True)


def test_hill_func_parti(mock_comm, equidistant_dists):
    for q in [0, 0.5, 1, 2, 3]:
        for rel_then_pool in [True, False]:
            func_result = functional.hill_func_parti(
                mock_comm, equidistant_dists, traits_as_is=True, q=q, rel_then_pool=rel_then_pool
            )
            taxa_result = taxa.hill_taxa_parti(mock_comm, q=q, rel_then_pool=rel_then_pool)
            for key, val in taxa_result.to_dict().items():
                assert np.isclose(func_result.to_dict()[key], val)
    trait_df = mock.mock_traits(mock_comm.columns)
    for q in [0, 1, 2]:
        result = functional.hill_func_parti(mock_comm, trait_df, q=q)
        assert np.isclose(result.beta, result.gamma / result.alpha)
        assert result.gamma <= taxa.hill_taxa_parti(mock_comm, q=q).gamma + 1e-9
    with pytest.raises(DomainError):
        functional.hill_func_parti(mock_comm.iloc[:1], trait_df, q=0)


def test_hill_func_parti_pairwise(mock_comm, equidistant_dists):
    for q in [0, 1, 2]:
        func_pairs = functional.hill_func_parti_pairwise(mock_comm, equidistant_dists, traits_as_is=True, q=q)
        taxa_pairs = taxa.hill_taxa_parti_pairwise(mock_comm, q=q)
        assert func_pairs[["site1", "site2"]].equals(taxa_pairs[["site1", "site2"]])
        for key in ["gamma", "alpha", "beta"]:
            assert np.allclose(func_pairs[key].to_numpy(), taxa_pairs[key].to_numpy())
        for key in ["local_similarity", "region_similarity"]:
            assert np.allclose(func_pairs[key].to_numpy(), taxa_pairs[key].to_numpy(), equal_nan=True)
    trait_df = mock.mock_traits(mock_comm.columns)
    mats = functional.hill_func_parti_pairwise(mock_comm, trait_df, q=1, output="matrix", pairs="full")
    assert np.allclose(mats["beta"].to_numpy(), mats["beta"].to_numpy().T)
    assert np.allclose(np.diag(mats["beta"].to_numpy()), 1)
