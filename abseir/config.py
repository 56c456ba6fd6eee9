from __future__ import annotations

import logging
from enum import IntEnum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Literal, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigurationError(ValueError):
    pass


class ComponentType(IntEnum):
    DATA_MODEL = 1
    EXPOSURE_MODEL = 2
    REINFECTION_MODEL = 3
    DISTANCE_MODEL = 4
    TRANSITION_PRIORS = 5
    INITIAL_VALUES = 6
    SAMPLING_CONTROL = 7


class Algorithm(IntEnum):
    BASIC_ABC = 1
    MODIFIED_BEAUMONT_2009 = 2
    DEL_MORAL_2012 = 3


_INTEGER_FIELDS = (
    "simulation_width",
    "random_seed",
    "CPU_cores",
    "algorithm",
    "batch_size",
    "epochs",
    "max_batches",
    "multivariate_perturbation",
    "m",
)
_NUMERIC_FIELDS = ("accept_fraction", "shrinkage", "target_eps")


class SamplingControl(BaseModel):
    """Run-control block for the calibration loop."""

    model_config = ConfigDict(frozen=True)

    component_type: ClassVar[ComponentType] = ComponentType.SAMPLING_CONTROL

    simulation_width: int = 1
    random_seed: int = 12345
    CPU_cores: int = 1
    algorithm: Algorithm = Algorithm.BASIC_ABC
    batch_size: int = 1000
    epochs: int = 1
    max_batches: int = 10
    multivariate_perturbation: bool = False
    m: int = 1
    accept_fraction: float = 0.5
    shrinkage: float = 0.9
    target_eps: float = 0.0

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

    @field_validator("algorithm", mode="before")
    @classmethod
    def _check_algorithm(cls, value: Any) -> Any:
        if isinstance(value, str) and value in Algorithm.__members__:
            return Algorithm[value]
        if value not in {a.value for a in Algorithm}:
            raise ValueError("algorithm must be 1 (BasicABC), 2 (ModifiedBeaumont2009) or 3 (DelMoral2012)")
        return value

    @field_validator("max_batches")
    @classmethod
    def _check_max_batches(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_batches must be greater than zero")
        return value

    @field_validator("random_seed")
    @classmethod
    def _check_seed(cls, value: int) -> int:
        if value < 0:
            raise ValueError("random_seed must be non-negative")
        return value

    @field_validator("CPU_cores", "batch_size", "m")
    @classmethod
    def _check_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @classmethod
    def build(cls, **kwargs: Any) -> "SamplingControl":
        control = cls(**kwargs)
        if control.CPU_cores > 1 and not parallel_supported():
            logging.warning("Multiple cores requested but parallel execution is unavailable; running serially")
        return control

    @classmethod
    def from_blocks(
        cls, integer_params: Sequence[int], numeric_params: Sequence[float]
    ) -> "SamplingControl":
        """Parse the fixed 9-integer + 3-numeric parameter block."""
        if len(integer_params) != len(_INTEGER_FIELDS) or len(numeric_params) != len(_NUMERIC_FIELDS):
            raise ConfigurationError(
                f"Exactly {len(_INTEGER_FIELDS) + len(_NUMERIC_FIELDS)} sampling control parameters "
                f"are required ({len(_INTEGER_FIELDS)} integer, {len(_NUMERIC_FIELDS)} numeric)."
            )
        values: Dict[str, Any] = dict(zip(_INTEGER_FIELDS, (int(v) for v in integer_params)))
        values["multivariate_perturbation"] = values["multivariate_perturbation"] != 0
        values.update(zip(_NUMERIC_FIELDS, (float(v) for v in numeric_params)))
        return cls.build(**values)


def parallel_supported() -> bool:
    try:
        import multiprocessing.synchronize  # noqa: F401
    except ImportError:
        return False
    return True


class DataModelSpec(BaseModel):
    Y: List[List[Optional[float]]]
    compartment: Literal["I_star", "R_star"] = "I_star"
    cumulative: bool = False
    phi: float = 0.0


class ExposureModelSpec(BaseModel):
    X: List[List[float]]
    n_tpt: int
    n_loc: int
    offset: Optional[List[float]] = None
    beta_prior_mean: Optional[List[float]] = None
    beta_prior_precision: Optional[List[float]] = None


class ReinfectionModelSpec(BaseModel):
    mode: Literal["SEIRS", "fixed", "SEIR"] = "SEIR"
    X_rs: Optional[List[List[float]]] = None
    beta_prior_mean: Optional[List[float]] = None
    beta_prior_precision: Optional[List[float]] = None


class DistanceModelSpec(BaseModel):
    distance_matrices: List[List[List[float]]] = Field(default_factory=list)
    lagged_matrices: Optional[List[List[List[List[float]]]]] = None
    n_tpt: Optional[int] = None
    spatial_prior: List[float] = [1.0, 1.0]


class TransitionPriorsSpec(BaseModel):
    mode: str = "exponential"
    E_to_I_params: Optional[List[List[float]]] = None
    I_to_R_params: Optional[List[List[float]]] = None
    inf_mean: Optional[float] = None


class InitialValuesSpec(BaseModel):
    S0: List[int]
    E0: List[int]
    I0: List[int]
    R0: List[int]


class RunConfig(BaseModel):
    data: DataModelSpec
    exposure: ExposureModelSpec
    reinfection: ReinfectionModelSpec = ReinfectionModelSpec()
    distance: DistanceModelSpec = DistanceModelSpec()
    transitions: TransitionPriorsSpec = TransitionPriorsSpec()
    initial_values: InitialValuesSpec
    sampling: Dict[str, Any] = Field(default_factory=dict)
    n_particles: int = 100

    def build_components(self) -> tuple:
        """Instantiate the seven model components in constructor order."""
        from abseir.components import (
            DataModel,
            DistanceModel,
            ExposureModel,
            InitialValueContainer,
            ReinfectionModel,
            TransitionPriors,
        )

        data_model = DataModel(**self.data.model_dump())
        exposure_model = ExposureModel(**self.exposure.model_dump())
        reinfection_model = ReinfectionModel(**self.reinfection.model_dump())
        distance_model = DistanceModel(**self.distance.model_dump())
        transition_priors = TransitionPriors(**self.transitions.model_dump())
        initial_values = InitialValueContainer(**self.initial_values.model_dump())
        sampling_control = SamplingControl.build(**self.sampling)
        return (
            data_model,
            exposure_model,
            reinfection_model,
            distance_model,
            transition_priors,
            initial_values,
            sampling_control,
        )


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str | Path) -> RunConfig:
    path = Path(path)
    data = yaml.safe_load(path.read_text()) or {}
    base_path = data.get("base")
    if base_path:
        base_data = yaml.safe_load((path.parent / base_path).read_text()) or {}
        data = deep_merge(base_data, data)
        data.pop("base", None)
    try:
        return RunConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def dump_config(cfg: RunConfig, path: str | Path) -> None:
    path = Path(path)
    path.write_text(yaml.safe_dump(cfg.model_dump(mode="json"), sort_keys=False))
