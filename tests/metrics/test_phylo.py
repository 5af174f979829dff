# pyright: basic
from __future__ import annotations

import networkx as nx
import numpy as np
import pandas as pd
import pytest

from hilldiv.errors import DomainError, ShapeMismatchError
from hilldiv.metrics import phylo, taxa
from hilldiv.tools.phylo import phylo_structure


def _faiths_pd(tree: nx.DiGraph, root, species) -> float:
    """Sum of the branch lengths connecting the species to the root."""
    edges = set()
    for sp in species:
        path = nx.shortest_path(tree, root, sp)
        edges.update(zip(path[:-1], path[1:]))
    return sum(tree.edges[edge]["length"] for edge in edges)


def test_hill_phylo_star(mock_comm, star_tree):
    # a star tree reduces to taxonomic diversity
    for q in [0, 0.5, 1, 2, 3]:
        hill = phylo.hill_phylo(mock_comm, star_tree, q=q)
        assert isinstance(hill, pd.Series)
        assert list(hill.index) == list(mock_comm.index)
        assert np.allclose(hill.to_numpy(), taxa.hill_taxa(mock_comm, q=q).to_numpy())


def test_hill_phylo_ultrametric(mock_comm, ultrametric_tree):
    root = next(node for node, in_deg in ultrametric_tree.in_degree() if in_deg == 0)
    depth = nx.shortest_path_length(ultrametric_tree, root, mock_comm.columns[0], weight="length")
    # q=0 is faith's PD divided by the depth of the tree
    hill = phylo.hill_phylo(mock_comm, ultrametric_tree, q=0)
    for site_label, row in mock_comm.iterrows():
        present = row.index[row > 0]
        assert np.isclose(hill[site_label], _faiths_pd(ultrametric_tree, root, present) / depth)
    # phylogenetic diversity is bounded by the number of species
    for q in [0, 1, 2]:
        hill = phylo.hill_phylo(mock_comm, ultrametric_tree, q=q)
        assert np.all(hill.to_numpy() >= 1 - 1e-9)
        assert np.all(hill.to_numpy() <= taxa.hill_taxa(mock_comm, q=q).to_numpy() + 1e-9)


def test_hill_phylo_newick(simple_comm):
    tree = nx.DiGraph()
    tree.add_edge("root", "n1", length=1.0)
    tree.add_edge("n1", "x", length=1.0)
    tree.add_edge("n1", "y", length=1.0)
    tree.add_edge("root", "z", length=2.0)
    newick = "((x:1,y:1):1,z:2);"
    for q in [0, 1, 2]:
        assert np.allclose(
            phylo.hill_phylo(simple_comm, newick, q=q).to_numpy(),
            phylo.hill_phylo(simple_comm, tree, q=q).to_numpy(),
        )
        # prepared structures are accepted
        phylo_struct = phylo_structure(tree, list(simple_comm.columns))
        assert np.allclose(
            phylo.hill_phylo(simple_comm, phylo_struct, q=q).to_numpy(),
            phylo.hill_phylo(simple_comm, tree, q=q).to_numpy(),
        )
    # site A: branches n1 (1), x (0.5), y (0.5), T = 2
    assert np.isclose(phylo.hill_phylo(simple_comm, newick, q=0)["A"], 3 / 2)
    assert np.isclose(phylo.hill_phylo(simple_comm, newick, q=2)["A"], 1 / (0.5 * 1 + 0.5 * 0.25 + 0.5 * 0.25))


def test_hill_phylo_missing_species(simple_comm):
    # z is present but missing from the tree
    with pytest.raises(ShapeMismatchError):
        phylo.hill_phylo(simple_comm, "(x:1,y:1);")
    with pytest.raises(DomainError):
        phylo.hill_phylo(simple_comm, "(x:1,y:1);")
    # species with zero total abundance which are missing from the tree are dropped
    comm = simple_comm.copy()
    comm["w"] = 0
    tree = "((x:1,y:1):1,z:2);"
    assert np.allclose(
        phylo.hill_phylo(comm, tree, q=1).to_numpy(),
        phylo.hill_phylo(simple_comm, tree, q=1).to_numpy(),
    )
    # missing branch lengths
    with pytest.raises(DomainError):
        phylo.hill_phylo(simple_comm, "((x,y):1,z:2);")
    with pytest.raises(DomainError):
        phylo.hill_phylo(simple_comm, tree, q=-1)


def test_hill_phylo_parti(mock_comm, star_tree, ultrametric_tree):
    for q in [0, 0.5, 1, 2, 3]:
        for rel_then_pool in [True, False]:
            phylo_result = phylo.hill_phylo_parti(mock_comm, star_tree, q=q, rel_then_pool=rel_then_pool)
            taxa_result = taxa.hill_taxa_parti(mock_comm, q=q, rel_then_pool=rel_then_pool)
            for key, val in taxa_result.to_dict().items():
                assert np.isclose(phylo_result.to_dict()[key], val)
    # beta is bounded by the number of sites for ultrametric trees
    n_sites = len(mock_comm)
    for q in [0, 1, 2]:
        result = phylo.hill_phylo_parti(mock_comm, ultrametric_tree, q=q)
        assert np.isclose(result.beta, result.gamma / result.alpha)
        assert 1 - 1e-9 <= result.beta <= n_sites + 1e-9
        assert 0 <= result.local_similarity <= 1
        assert 0 <= result.region_similarity <= 1
    with pytest.raises(DomainError):
        phylo.hill_phylo_parti(mock_comm.iloc[:1], star_tree, q=0)


def test_hill_phylo_parti_pairwise(mock_comm, star_tree, ultrametric_tree):
    for q in [0, 1, 2]:
        phylo_pairs = phylo.hill_phylo_parti_pairwise(mock_comm, star_tree, q=q)
        taxa_pairs = taxa.hill_taxa_parti_pairwise(mock_comm, q=q)
        assert phylo_pairs[["site1", "site2"]].equals(taxa_pairs[["site1", "site2"]])
        for key in ["gamma", "alpha", "beta", "local_similarity", "region_similarity"]:
            assert np.allclose(phylo_pairs[key].to_numpy(), taxa_pairs[key].to_numpy())
    mats = phylo.hill_phylo_parti_pairwise(mock_comm, ultrametric_tree, q=1, output="matrix", pairs="full")
    assert np.allclose(mats["beta"].to_numpy(), mats["beta"].to_numpy().T)
    assert np.allclose(np.diag(mats["beta"].to_numpy()), 1)
    assert np.all(mats["beta"].to_numpy() <= 2 + 1e-9)


def test_hill_phylo_parti_uneven_depths(uneven_comm, uneven_tree):
    # branches x, y, (x, y), z with tips at depths 2, 4 and 0.5
    lengths = np.array([1, 3, 1, 0.5])
    site_branch = np.array([[5 / 6, 1 / 6, 1, 0], [0.1, 0.1, 0.2, 0.8]])
    # sites weighted by their share of the total abundance
    weights = np.array([6 / 16, 10 / 16])
    wt_abund = weights[:, None] * site_branch
    pooled = wt_abund.sum(axis=0)
    tbar = lengths @ pooled
    assert np.isclose(tbar, 1.5)
    log_wt_abund = np.log(np.where(wt_abund > 0, wt_abund, 1))
    result = phylo.hill_phylo_parti(uneven_comm, uneven_tree, q=1, rel_then_pool=False, show_warning=False)
    assert np.isclose(result.gamma, np.exp(-np.sum(lengths / tbar * pooled * np.log(pooled))))
    assert np.isclose(result.alpha, np.exp(-np.sum(lengths / tbar * wt_abund * log_wt_abund)) / 2)
    result = phylo.hill_phylo_parti(uneven_comm, uneven_tree, q=2, rel_then_pool=False, show_warning=False)
    assert np.isclose(result.gamma, 1 / np.sum(lengths / tbar * pooled**2))
    assert np.isclose(result.alpha, 1 / np.sum(lengths / tbar * wt_abund**2) / 2)
    # alpha is continuous through q=1
    near = {
        q: phylo.hill_phylo_parti(uneven_comm, uneven_tree, q=q, rel_then_pool=False, show_warning=False)
        for q in [0.999, 0.999999, 1, 1.000001, 1.001]
    }
    assert np.isclose(near[0.999].alpha, 2.44052, atol=1e-4)
    assert np.isclose(near[1.001].alpha, 2.43883, atol=1e-4)
    assert np.isclose(near[1].alpha, (near[0.999].alpha + near[1.001].alpha) / 2, rtol=1e-4)
    for q in [0.999999, 1.000001]:
        assert np.isclose(near[1].alpha, near[q].alpha, rtol=1e-5)
        assert np.isclose(near[1].gamma, near[q].gamma, rtol=1e-5)


def test_hill_phylo_parti_near_unity(uneven_comm, uneven_tree):
    for rel_then_pool in [True, False]:
        results = [
            phylo.hill_phylo_parti(uneven_comm, uneven_tree, q=q, rel_then_pool=rel_then_pool, show_warning=False)
            for q in [0.9999, 1, 1.0001]
        ]
        for result in results:
            for key in ["gamma", "alpha", "beta"]:
                assert np.isfinite(getattr(result, key))
            assert np.isclose(result.beta, result.gamma / result.alpha)
        for key in ["gamma", "alpha", "beta"]:
            assert np.isclose(getattr(results[0], key), getattr(results[1], key), rtol=1e-3)
            assert np.isclose(getattr(results[2], key), getattr(results[1], key), rtol=1e-3)
        for q in [0.9999, 1, 1.0001]:
            pairs = phylo.hill_phylo_parti_pairwise(uneven_comm, uneven_tree, q=q, rel_then_pool=rel_then_pool)
            assert len(pairs) == 1
            assert np.all(np.isfinite(pairs[["gamma", "alpha", "beta"]].to_numpy()))
            mats = phylo.hill_phylo_parti_pairwise(
                uneven_comm, uneven_tree, q=q, rel_then_pool=rel_then_pool, output="matrix", pairs="full"
            )
            assert np.all(np.isfinite(mats["beta"].to_numpy()))


def test_hill_phylo_parti_nonultrametric(mock_comm, nonultrametric_tree):
    for q in [0, 0.5, 0.9999, 1, 1.0001, 2]:
        for rel_then_pool in [True, False]:
            result = phylo.hill_phylo_parti(
                mock_comm, nonultrametric_tree, q=q, rel_then_pool=rel_then_pool, show_warning=False
            )
            for key in ["gamma", "alpha", "beta"]:
                assert np.isfinite(getattr(result, key))
                assert getattr(result, key) > 0
            assert np.isclose(result.beta, result.gamma / result.alpha)
            mats = phylo.hill_phylo_parti_pairwise(
                mock_comm, nonultrametric_tree, q=q, rel_then_pool=rel_then_pool, output="matrix", pairs="full"
            )
            beta = mats["beta"].to_numpy()
            assert np.all(np.isfinite(beta))
            assert np.allclose(beta, beta.T)
            # a site paired with itself is not differentiated
            assert np.allclose(np.diag(beta), 1)
            assert np.allclose(np.diag(mats["gamma"].to_numpy()), np.diag(mats["alpha"].to_numpy()))
