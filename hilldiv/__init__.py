from __future__ import annotations

from . import algos, config, errors, metrics, structures, tools
from .algos.diversity import hill_number
from .errors import DegenerateResultWarning, DomainError, ShapeMismatchError
from .metrics.functional import hill_func, hill_func_parti, hill_func_parti_pairwise
from .metrics.partition import PartitionResult
from .metrics.phylo import hill_phylo, hill_phylo_parti, hill_phylo_parti_pairwise
from .metrics.taxa import hill_taxa, hill_taxa_parti, hill_taxa_parti_pairwise

__all__ = [
    "algos",
    "config",
    "errors",
    "metrics",
    "structures",
    "tools",
    "hill_number",
    "DegenerateResultWarning",
    "DomainError",
    "ShapeMismatchError",
    "PartitionResult",
    "hill_taxa",
    "hill_taxa_parti",
    "hill_taxa_parti_pairwise",
    "hill_func",
    "hill_func_parti",
    "hill_func_parti_pairwise",
    "hill_phylo",
    "hill_phylo_parti",
    "hill_phylo_parti_pairwise",
]
