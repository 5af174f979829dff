"""
Convenience functions for preparing phylogenies.

Phylogenies are represented as rooted `NetworkX` `DiGraph` trees with edges directed from parent to child. Each edge
requires a `length` attribute. Tips are matched to species by their `label` attribute, or by their node key where no
label is present.
"""
from __future__ import annotations

import itertools
import logging
import re
from typing import Any, Sequence

import networkx as nx
import numpy as np

from hilldiv.errors import DomainError, ShapeMismatchError
from hilldiv.structures import PhyloStructure, align_labels

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# parentheses, commas, colons and semicolons, quoted labels, bracketed comments, everything else
_NEWICK_TOKENS = re.compile(r"\(|\)|,|:|;|'[^']*'|\[[^\]]*\]|[^()\[\],:;']+")


def nx_from_newick(newick: str) -> nx.DiGraph:
    """
    Parse a Newick string into a rooted `NetworkX` `DiGraph`.

    Parameters
    ----------
    newick: str
        A Newick formatted tree terminated by a semicolon, e.g. `((a:1,b:1):1,c:2);`. Quoted labels and bracketed
        comments are supported. Comments are discarded.

    Returns
    -------
    nx.DiGraph
        A tree with integer node keys, edges directed from parent to child, a `length` edge attribute where branch
        lengths are given, and a `label` node attribute where node names are given. The root is node `0`.

    Examples
    --------
    ```python
    from hilldiv.tools import phylo
    tree = phylo.nx_from_newick("((a:1,b:1):1,c:2);")
    print(tree.edges(data=True))
    ```

    """
    newick = newick.strip()
    if not newick.endswith(";"):
        raise ValueError("Newick strings must be terminated by a semicolon.")
    tree = nx.DiGraph()
    node_keys = itertools.count()
    root = next(node_keys)
    tree.add_node(root)
    current = root
    stack: list[int] = []
    expect_length = False
    for token in _NEWICK_TOKENS.findall(newick):
        # comments
        if token.startswith("["):
            continue
        if token == "(":
            child = next(node_keys)
            tree.add_edge(current, child)
            stack.append(current)
            current = child
        elif token == ",":
            if not stack:
                raise ValueError("Encountered a sibling separator outside of parentheses.")
            child = next(node_keys)
            tree.add_edge(stack[-1], child)
            current = child
        elif token == ")":
            if not stack:
                raise ValueError("Unbalanced parentheses in Newick string.")
            current = stack.pop()
        elif token == ":":
            expect_length = True
        elif token == ";":
            break
        else:
            token = token.strip()
            if not token:
                continue
            if expect_length:
                try:
                    length = float(token)
                except ValueError as err:
                    raise ValueError(f"Unable to parse branch length: {token}") from err
                if current == root:
                    tree.graph["root_length"] = length
                else:
                    parent = next(iter(tree.predecessors(current)))
                    tree.edges[parent, current]["length"] = length
                expect_length = False
            else:
                tree.nodes[current]["label"] = token.strip("'")
    if stack:
        raise ValueError("Unbalanced parentheses in Newick string.")
    return tree


def tip_labels(tree: nx.DiGraph) -> dict[Any, str]:
    """Map the tips of a tree to their species labels."""
    return {
        node: str(data.get("label", node)) for node, data in tree.nodes(data=True) if tree.out_degree(node) == 0
    }


def phylo_structure(tree: nx.DiGraph, species_labels: Sequence[str]) -> PhyloStructure:
    """
    Prepare a [`PhyloStructure`](/structures#phylostructure) from a rooted tree for the given species.

    Parameters
    ----------
    tree: nx.DiGraph
        A rooted tree with edges directed from parent to child, and a `length` attribute for each edge.
    species_labels: Sequence[str]
        The species to resolve against the tree tips. The tips may be a superset of these species.

    Returns
    -------
    PhyloStructure
        The length of each branch reached by at least one of the species, and the species descending from each of
        these branches.

    Raises
    ------
    ShapeMismatchError
        If the tree is not a rooted tree, or if any of the species is not found amongst the tree tips.
    DomainError
        If a branch is missing its length.

    """
    if not isinstance(tree, nx.DiGraph) or not nx.is_arborescence(tree):
        raise ShapeMismatchError("The phylogeny must be a rooted tree with edges directed from parent to child.")
    tips = tip_labels(tree)
    tip_keys = list(tips.keys())
    tip_label_list = list(tips.values())
    if len(set(tip_label_list)) != len(tip_label_list):
        raise ShapeMismatchError("Duplicate tip labels encountered in the phylogeny.")
    tip_idx = align_labels(tip_label_list, species_labels)
    tip_to_col = {tip_keys[t_idx]: col_idx for col_idx, t_idx in enumerate(tip_idx)}
    root = next(node for node, in_deg in tree.in_degree() if in_deg == 0)
    branch_lengths: list[float] = []
    incidence_rows: list[np.ndarray] = []
    for parent, child in nx.bfs_edges(tree, root):
        edge_data = tree.edges[parent, child]
        if "length" not in edge_data:
            raise DomainError(f"Missing branch length for edge {parent} - {child}.")
        if tree.out_degree(child) == 0:
            descendants = {child}
        else:
            descendants = nx.descendants(tree, child)
        cols = [tip_to_col[node] for node in descendants if node in tip_to_col]
        if not cols:
            continue
        row = np.zeros(len(species_labels), dtype=np.float64)
        row[cols] = 1
        branch_lengths.append(float(edge_data["length"]))
        incidence_rows.append(row)
    if not branch_lengths:
        raise DomainError("The phylogeny does not contain any branches reached by the species.")
    return PhyloStructure(np.array(branch_lengths), np.vstack(incidence_rows), species_labels)
