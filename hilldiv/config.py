from __future__ import annotations

import os

import numpy as np

np.seterr(invalid="ignore")


def check_quiet() -> bool:
    """Check whether to enable quiet mode."""
    if "GCP_PROJECT" in os.environ:
        return True
    if "HILLDIV_QUIET_MODE" in os.environ:
        if os.environ["HILLDIV_QUIET_MODE"].lower() in ["true", "1"]:
            return True
    return False


QUIET_MODE = check_quiet()


# for all_close equality checks
ATOL: float = 0.001
RTOL: float = 0.0001
# similarities this close outside of [0, 1] are floating point noise and are snapped to the bound
SIMILARITY_TOL: float = 1e-8
# fastmath flags
FASTMATH: set[str] = {"ninf", "nsz", "arcp", "contract", "afn", "reassoc"}
