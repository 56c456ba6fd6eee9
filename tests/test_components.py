import numpy as np
import pytest
from scipy import stats

from abseir.components import (
    DataModel,
    DistanceModel,
    ExposureModel,
    ExponentialTransitionDistribution,
    ReinfectionModel,
    TransitionPriors,
    WeibullTransitionDistribution,
)
from abseir.config import ConfigurationError


def test_data_model_missing_mask_and_readonly():
    model = DataModel(Y=[[1.0, np.nan], [2.0, 3.0]])
    assert model.n_tpt == 2 and model.n_loc == 2
    assert model.na_mask.tolist() == [[False, True], [False, False]]
    with pytest.raises(ValueError):
        model.Y[0, 0] = 5.0


def test_exposure_model_row_count():
    with pytest.raises(ConfigurationError, match="rows"):
        ExposureModel(X=np.ones((9, 2)), n_tpt=5, n_loc=2)


def test_reinfection_modes():
    assert not ReinfectionModel(mode="SEIR").enabled
    fixed = ReinfectionModel(mode="fixed", X_rs=np.ones((4, 1)), beta_prior_mean=[-2.0])
    assert fixed.enabled and not fixed.estimated
    seirs = ReinfectionModel(
        mode="SEIRS", X_rs=np.ones((4, 2)), beta_prior_mean=[0.0, 0.0], beta_prior_precision=[1.0, 2.0]
    )
    assert seirs.estimated
    no_covariates = ReinfectionModel(
        mode="SEIRS", X_rs=np.ones((4, 0)), beta_prior_mean=[], beta_prior_precision=[]
    )
    assert not no_covariates.estimated
    with pytest.raises(ConfigurationError):
        ReinfectionModel(mode="SIR")


def test_distance_model_without_lags():
    model = DistanceModel(distance_matrices=[np.eye(3)], n_tpt=7)
    assert model.tdm_empty
    assert len(model.tdm_list) == 7
    assert model.n_lags == 0
    assert model.n_loc == 3


def test_distance_model_rejects_mismatched_shapes():
    with pytest.raises(ConfigurationError, match="inconsistent"):
        DistanceModel(distance_matrices=[np.eye(3), np.eye(2)], n_tpt=2)


def test_transition_priors_pad_exponential_hyperparameters():
    priors = TransitionPriors.exponential(2.0, 4.0, 3.0, 6.0)
    assert priors.E_to_I_params.shape == (4, 1)
    assert priors.E_to_I_params[:2, 0].tolist() == [2.0, 4.0]


def test_weibull_requires_four_hyperparameter_rows():
    with pytest.raises(ConfigurationError, match="4 rows"):
        TransitionPriors.weibull([[2.0], [1.0]], [2.0, 1.0, 6.0, 2.0])
    assert TransitionPriors.weibull([2.0, 1.0, 4.0, 2.0], [2.0, 1.0, 6.0, 2.0]).I_to_R_params[2, 0] == 6.0


def test_path_specific_requires_mean():
    with pytest.raises(ConfigurationError):
        TransitionPriors(mode="path_specific")
    assert TransitionPriors.path_specific(4.0).inf_mean == 4.0


def test_weibull_param_prior_matches_gamma_product():
    dist = WeibullTransitionDistribution([2.0, 1.0, 10.0, 2.0])
    expected = stats.gamma.pdf(1.5, a=2.0, scale=1.0) * stats.gamma.pdf(4.0, a=10.0, scale=0.5)
    assert dist.eval_param_prior([1.5, 4.0]) == pytest.approx(expected)
    with pytest.raises(ConfigurationError):
        dist.eval_param_prior([1.5, 4.0, 1.0])


def test_weibull_sample_uses_current_params():
    dist = WeibullTransitionDistribution([2.0, 1.0, 10.0, 2.0])
    dist.set_params([3.0, 5.0])
    draws = dist.sample(np.random.default_rng(0), 20000)
    assert np.all(draws > 0)
    assert draws.mean() == pytest.approx(dist.mean(), rel=0.05)


def test_exponential_distribution():
    dist = ExponentialTransitionDistribution(0.5, hyperparams=[2.0, 4.0])
    assert dist.mean() == 2.0
    assert dist.eval_param_prior([0.5]) == pytest.approx(stats.gamma.pdf(0.5, a=2.0, scale=0.25))
