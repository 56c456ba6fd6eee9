from __future__ import annotations

from typing import Any

import numpy as np

from abseir.config import ConfigurationError


def readonly(values: Any, dtype: Any = np.float64, ndim: int | None = None) -> np.ndarray:
    """Copy ``values`` into a write-protected array."""
    array = np.array(values, dtype=dtype)
    if ndim is not None and array.ndim != ndim:
        raise ConfigurationError(f"Expected a {ndim}-dimensional array, got shape {array.shape}.")
    array.flags.writeable = False
    return array
