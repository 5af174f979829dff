from . import checks, diversity

__all__ = ["checks", "diversity"]
