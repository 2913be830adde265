"""
Example data sets.
"""

import numpy as np

from .cpgibbs_types import IntArray

# Yearly number of coal-mining disasters in the UK, 1851 to 1962.
_COAL_MINING_DISASTERS = (
    4, 5, 4, 1, 0, 4, 3, 4, 0, 6, 3, 3, 4, 0, 2, 6,
    3, 3, 5, 4, 5, 3, 1, 4, 4, 1, 5, 5, 3, 4, 2, 5,
    2, 2, 3, 4, 2, 1, 3, 2, 2, 1, 1, 1, 1, 3, 0, 0,
    1, 0, 1, 1, 0, 0, 3, 1, 0, 3, 2, 2, 0, 1, 1, 1,
    0, 1, 0, 1, 0, 0, 0, 2, 1, 0, 0, 0, 1, 1, 0, 2,
    3, 3, 1, 1, 2, 1, 1, 1, 1, 2, 4, 2, 0, 0, 0, 1,
    4, 0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 0, 0, 1, 0, 1,
)  # fmt: skip

COAL_MINING_FIRST_YEAR = 1851


def coal_mining_disasters() -> IntArray:
    """The 112 yearly counts of coal-mining disasters in the UK from 1851 to 1962."""
    return np.array(_COAL_MINING_DISASTERS, dtype=np.int64)


def coal_mining_years() -> IntArray:
    """The years associated with `coal_mining_disasters()`."""
    return COAL_MINING_FIRST_YEAR + np.arange(len(_COAL_MINING_DISASTERS))
