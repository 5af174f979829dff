from . import functional, pairwise, partition, phylo, taxa

__all__ = ["functional", "pairwise", "partition", "phylo", "taxa"]
