from . import mock, phylo, traits

__all__ = ["mock", "phylo", "traits"]
