"""
Exceptions and warnings raised by `hilldiv`.

`ShapeMismatchError` is a subclass of `DomainError`, so catching `DomainError` also catches label and shape
inconsistencies between a community matrix and its trait or phylogeny data.
"""
from __future__ import annotations


class DomainError(ValueError):
    """Invalid mathematical input, e.g. an empty or all-zero abundance vector, or a negative `q`."""


class ShapeMismatchError(DomainError):
    """Inconsistent labels or shapes between a community matrix and the accompanying data."""


class DegenerateResultWarning(UserWarning):
    """A similarity index fell outside of [0, 1] and was reported as `nan`."""
