"""
Bayesian Calibration Framework
===============================
Approximate Bayesian Computation for the spatial SEIR model.

Key components:
1. ABCResult: accepted particles with weighted posterior summaries
2. ABCAlgorithm: generation loop interface, selected by sampling control code
3. BasicABC: rejection sampling over successive prior batches

References:
- Beaumont, M. A., et al. (2002). Approximate Bayesian computation
- Beaumont, M. A., et al. (2009). Adaptive approximate Bayesian computation
- Del Moral, P., et al. (2012). An adaptive sequential Monte Carlo method
  for approximate Bayesian computation
"""

from abseir.calibration.abc import (
    ABCAlgorithm,
    ABCResult,
    BasicABC,
    register_algorithm,
    resolve_algorithm,
)

__all__ = [
    "ABCAlgorithm",
    "ABCResult",
    "BasicABC",
    "register_algorithm",
    "resolve_algorithm",
]
