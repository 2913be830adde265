import numpy as np
import numpy.typing as npt

IntArray = npt.NDArray[np.int64]  # Array or vector of integers
FloatArray = npt.NDArray[np.float64]  # Array or vector of floats

# Anything `np.random.default_rng()` accepts: `None`, an integer seed,
# a `SeedSequence` or an existing `Generator` (which is used as is).
SeedLike = int | np.random.SeedSequence | np.random.Generator | None
