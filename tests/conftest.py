from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from abseir import (
    DataModel,
    DistanceModel,
    ExposureModel,
    InitialValueContainer,
    ReinfectionModel,
    SamplingControl,
    TransitionPriors,
)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"


def _components(
    n_loc: int = 3,
    n_tpt: int = 10,
    n_beta: int = 2,
    exposure_n_loc: int | None = None,
    n_lags: int = 1,
    spatial_prior=(1.0, 1.0),
    transitions: TransitionPriors | None = None,
    reinfection: ReinfectionModel | None = None,
    **control,
):
    exposure_n_loc = n_loc if exposure_n_loc is None else exposure_n_loc
    Y = np.tile(np.arange(1, n_tpt + 1, dtype=float)[:, None], (1, n_loc))
    X = np.column_stack([np.ones(exposure_n_loc * n_tpt)] + [np.linspace(0, 1, exposure_n_loc * n_tpt)] * (n_beta - 1))
    adjacency = np.ones((n_loc, n_loc)) - np.eye(n_loc)
    settings = dict(random_seed=123, CPU_cores=1, batch_size=20, max_batches=2)
    settings.update(control)
    return (
        DataModel(Y=Y),
        ExposureModel(X=X, n_tpt=n_tpt, n_loc=exposure_n_loc, beta_prior_precision=np.ones(n_beta)),
        reinfection if reinfection is not None else ReinfectionModel(mode="SEIR"),
        DistanceModel(
            distance_matrices=[adjacency],
            lagged_matrices=[[adjacency / 2] * n_lags for _ in range(n_tpt)],
            spatial_prior=spatial_prior,
        ),
        transitions if transitions is not None else TransitionPriors.exponential(5.0, 10.0, 5.0, 10.0),
        InitialValueContainer(S0=[1000] * n_loc, E0=[0] * n_loc, I0=[5] * n_loc, R0=[0] * n_loc),
        SamplingControl.build(**settings),
    )


@pytest.fixture
def make_components():
    return _components


@pytest.fixture
def config_dir():
    return CONFIG_DIR
