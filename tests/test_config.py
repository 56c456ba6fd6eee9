import pytest
from pydantic import ValidationError

from abseir.config import Algorithm, ConfigurationError, SamplingControl, load_config


def test_sampling_control_from_blocks():
    control = SamplingControl.from_blocks([1, 42, 2, 1, 500, 3, 10, 1, 2], [0.5, 0.9, 25.0])
    assert control.random_seed == 42
    assert control.CPU_cores == 2
    assert control.algorithm is Algorithm.BASIC_ABC
    assert control.multivariate_perturbation is True
    assert control.m == 2
    assert control.target_eps == 25.0


def test_sampling_control_rejects_wrong_block_lengths():
    with pytest.raises(ConfigurationError, match="12 sampling control parameters"):
        SamplingControl.from_blocks([1, 42, 2, 1, 500, 3, 10, 1], [0.5, 0.9, 25.0])
    with pytest.raises(ConfigurationError):
        SamplingControl.from_blocks([1, 42, 2, 1, 500, 3, 10, 1, 2], [0.5, 0.9])


@pytest.mark.parametrize("code", [0, 4])
def test_sampling_control_rejects_unknown_algorithm(code):
    with pytest.raises(ConfigurationError, match="algorithm"):
        SamplingControl.from_blocks([1, 42, 2, code, 500, 3, 10, 0, 1], [0.5, 0.9, 0.0])


def test_sampling_control_requires_positive_max_batches():
    with pytest.raises(ConfigurationError, match="max_batches"):
        SamplingControl.build(max_batches=0)


@pytest.mark.parametrize("kwargs", [{"algorithm": 5}, {"m": 0}, {"random_seed": -1}])
def test_sampling_control_constructor_raises_configuration_error(kwargs):
    with pytest.raises(ConfigurationError):
        SamplingControl(**kwargs)


def test_sampling_control_is_immutable():
    control = SamplingControl.build()
    with pytest.raises(ValidationError):
        control.batch_size = 10


def test_algorithm_accepts_names():
    assert SamplingControl.build(algorithm="DEL_MORAL_2012").algorithm is Algorithm.DEL_MORAL_2012


def test_load_config(config_dir):
    cfg = load_config(config_dir / "three_location.yaml")
    assert cfg.exposure.n_loc == 3
    assert len(cfg.data.Y) == 10
    assert cfg.data.Y[5][2] is None
    components = cfg.build_components()
    assert components[0].na_mask.sum() == 1
    assert components[-1].batch_size == 500


def test_load_config_with_base(config_dir):
    cfg = load_config(config_dir / "three_location_parallel.yaml")
    assert cfg.sampling["CPU_cores"] == 4
    assert cfg.sampling["random_seed"] == 123124
    assert cfg.transitions.mode == "exponential"


def test_load_config_invalid(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("data:\n  compartment: S\n")
    with pytest.raises(ConfigurationError):
        load_config(path)
