from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from abseir.calibration.abc import ABCResult


def summarize_posterior(result: ABCResult, levels: Iterable[float] = (0.5, 0.95)) -> pd.DataFrame:
    """One row per parameter: weighted mean, std and credible bounds."""
    means = result.posterior_mean()
    stds = result.posterior_std()
    rows = []
    for name in result.parameter_names:
        row = {"parameter": name, "mean": means.get(name, np.nan), "std": stds.get(name, np.nan)}
        for level in levels:
            pct = int(round(level * 100))
            if len(result.particles):
                lower, upper = result.credible_interval(name, level)
            else:
                lower, upper = np.nan, np.nan
            row[f"ci{pct}_lower"] = lower
            row[f"ci{pct}_upper"] = upper
        rows.append(row)
    return pd.DataFrame(rows)
