import numpy as np
import pytest

from abseir import SpatialSEIRModel
from abseir.analysis import summarize_posterior
from abseir.calibration import ABCAlgorithm, ABCResult, BasicABC, register_algorithm, resolve_algorithm
from abseir.calibration import abc as abc_module
from abseir.config import Algorithm


def test_basic_abc_keeps_best_particles(make_components):
    with SpatialSEIRModel(*make_components(batch_size=30, max_batches=3)) as model:
        result = model.sample(10)
    assert result.particles.shape == (10, 6)
    assert result.n_batches == 3
    assert result.n_simulated == 90
    assert np.all(np.diff(result.distances) >= 0)
    assert result.final_epsilon == result.distances[-1]
    assert result.weights.sum() == pytest.approx(1.0)
    assert model.call_counter == 3


def test_basic_abc_stops_at_target_epsilon(make_components):
    with SpatialSEIRModel(*make_components(batch_size=30, max_batches=5, target_eps=1e12)) as model:
        result = model.sample(10)
    assert result.n_batches == 1
    assert result.final_epsilon <= 1e12


def test_basic_abc_keeps_trajectories(make_components):
    with SpatialSEIRModel(*make_components(batch_size=10, max_batches=1)) as model:
        result = model.sample(4, keep_trajectories=True)
    assert len(result.trajectories) == 4
    assert result.trajectories[0]["I_star"].shape == (10, 3)


@pytest.mark.parametrize("code", [Algorithm.MODIFIED_BEAUMONT_2009, Algorithm.DEL_MORAL_2012])
def test_smc_algorithms_need_registration(make_components, code):
    with SpatialSEIRModel(*make_components(algorithm=int(code))) as model:
        with pytest.raises(NotImplementedError, match=code.name):
            model.sample(10)


def test_register_algorithm(make_components, monkeypatch):
    class PriorOnly(ABCAlgorithm):
        def run(self, model, n_particles, keep_trajectories=False):
            particles = model.generate_params_prior(n_particles)
            return ABCResult(
                particles=particles,
                distances=np.zeros(n_particles),
                weights=np.full(n_particles, 1.0 / n_particles),
                parameter_names=model.parameter_names,
                n_simulated=0,
                n_batches=0,
                final_epsilon=np.inf,
            )

    monkeypatch.setattr(abc_module, "_ALGORITHMS", dict(abc_module._ALGORITHMS))
    register_algorithm(2, PriorOnly)
    assert isinstance(resolve_algorithm(Algorithm.MODIFIED_BEAUMONT_2009), PriorOnly)
    assert isinstance(resolve_algorithm(1), BasicABC)
    with SpatialSEIRModel(*make_components(algorithm=2)) as model:
        assert model.sample(7).particles.shape == (7, 6)


def _result():
    particles = np.array([[0.0, 1.0], [1.0, 3.0], [2.0, 5.0], [3.0, 7.0]])
    return ABCResult(
        particles=particles,
        distances=np.array([1.0, 2.0, 3.0, 4.0]),
        weights=np.array([0.1, 0.2, 0.3, 0.4]),
        parameter_names=["a", "b"],
        n_simulated=8,
        n_batches=1,
        final_epsilon=4.0,
    )


def test_result_posterior_summaries():
    result = _result()
    mean = result.posterior_mean()
    assert mean["a"] == pytest.approx(2.0)
    assert mean["b"] == pytest.approx(5.0)
    assert result.posterior_std()["a"] == pytest.approx(1.0)
    assert result.acceptance_rate == 0.5
    lower, upper = result.credible_interval("a", 0.5)
    assert lower <= mean["a"] <= upper


def test_result_frames():
    result = _result()
    frame = result.to_frame()
    assert list(frame.columns) == ["a", "b", "distance", "weight"]
    summary = summarize_posterior(result)
    assert summary["parameter"].tolist() == ["a", "b"]
    assert {"mean", "std", "ci95_lower", "ci95_upper", "ci50_lower"} <= set(summary.columns)
