"""
Spatial SEIR Model
==================
Orchestrates ABC calibration of a stochastic spatial SEIR model.

The model checks its seven components against each other, draws particles
from the joint prior, evaluates the prior density and dispatches particle
batches to a pool of simulation workers.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
from scipy import stats

from abseir.calibration.abc import ABCResult, resolve_algorithm
from abseir.components import (
    DataModel,
    DistanceModel,
    ExposureModel,
    InitialValueContainer,
    ReinfectionModel,
    SamplingControl,
    TransitionPriors,
    WeibullTransitionDistribution,
)
from abseir.components.transitions import TRANSITION_MODES
from abseir.config import ComponentType, ConfigurationError
from abseir.layout import ParameterLayout
from abseir.rng import RNGManager
from abseir.simulation import BatchResult, SimulationInputs, WorkerPool

RHO_MAX_ATTEMPTS = 100

_COMPONENT_ORDER = (
    ("data_model", ComponentType.DATA_MODEL),
    ("exposure_model", ComponentType.EXPOSURE_MODEL),
    ("reinfection_model", ComponentType.REINFECTION_MODEL),
    ("distance_model", ComponentType.DISTANCE_MODEL),
    ("transition_priors", ComponentType.TRANSITION_PRIORS),
    ("initial_value_container", ComponentType.INITIAL_VALUES),
    ("sampling_control", ComponentType.SAMPLING_CONTROL),
)


def _check_component_order(components: Sequence[object]) -> None:
    for position, (component, (name, expected)) in enumerate(zip(components, _COMPONENT_ORDER)):
        actual = getattr(component, "component_type", None)
        if actual != expected:
            raise ConfigurationError(
                f"Model components were not provided in the correct order: argument {position} "
                f"({name}) must be a {expected.name} component, got {type(component).__name__}."
            )


class SpatialSEIRModel:
    def __init__(
        self,
        data_model: DataModel,
        exposure_model: ExposureModel,
        reinfection_model: ReinfectionModel,
        distance_model: DistanceModel,
        transition_priors: TransitionPriors,
        initial_value_container: InitialValueContainer,
        sampling_control: SamplingControl,
        parallel: bool = True,
    ):
        _check_component_order(
            (
                data_model,
                exposure_model,
                reinfection_model,
                distance_model,
                transition_priors,
                initial_value_container,
                sampling_control,
            )
        )
        self.data_model = data_model
        self.exposure_model = exposure_model
        self.reinfection_model = reinfection_model
        self.distance_model = distance_model
        self.transition_priors = transition_priors
        self.initial_value_container = initial_value_container
        self.sampling_control = sampling_control
        self._validate_dimensions()

        if transition_priors.mode == "weibull":
            self.ei_transition_dist = WeibullTransitionDistribution(transition_priors.E_to_I_params[:, 0])
            self.ir_transition_dist = WeibullTransitionDistribution(transition_priors.I_to_R_params[:, 0])
        else:
            self.ei_transition_dist = WeibullTransitionDistribution(np.ones(4))
            self.ir_transition_dist = WeibullTransitionDistribution(np.ones(4))

        self.has_reinfection = reinfection_model.estimated
        self.has_spatial = data_model.n_loc > 1
        self.layout = ParameterLayout(
            n_beta=exposure_model.X.shape[1],
            n_beta_rs=reinfection_model.X_rs.shape[1] if self.has_reinfection else 0,
            n_rho=(len(distance_model.dm_list) + distance_model.n_lags) if self.has_spatial else 0,
            transition_mode=transition_priors.mode,
        )

        self.rng_manager = RNGManager(sampling_control.random_seed)
        self.generator = self.rng_manager.numpy
        self.call_counter = 0
        self.is_initialized = False
        self.param_matrix: Optional[np.ndarray] = None
        self.last_batch: Optional[BatchResult] = None

        self.worker_pool = WorkerPool(
            self._simulation_inputs(),
            n_workers=sampling_control.CPU_cores,
            base_seed=sampling_control.random_seed + self.call_counter,
            parallel=parallel,
        )

    def _validate_dimensions(self) -> None:
        data = self.data_model
        exposure = self.exposure_model
        distance = self.distance_model

        if data.n_loc != exposure.n_loc:
            raise ConfigurationError(
                f"Exposure model and data model imply different number of locations: "
                f"{data.n_loc}, {exposure.n_loc}."
            )
        if data.n_tpt != exposure.n_tpt:
            raise ConfigurationError(
                f"Exposure model and data model imply different number of time points: "
                f"{data.n_tpt}, {exposure.n_tpt}."
            )
        if data.n_loc != distance.n_loc:
            raise ConfigurationError(
                f"Data model and distance model imply different number of locations: "
                f"{data.n_loc}, {distance.n_loc}."
            )
        if len(distance.tdm_list) != data.n_tpt:
            raise ConfigurationError(
                f"Distance model and data model imply different number of time points: "
                f"{len(distance.tdm_list)}, {data.n_tpt}."
            )
        lag_counts = {len(lags) for lags in distance.tdm_list}
        if len(lag_counts) > 1:
            raise ConfigurationError(
                f"Differing number of lagged contact matrices across time points: {sorted(lag_counts)}."
            )
        if data.n_loc != len(self.initial_value_container.S0):
            raise ConfigurationError(
                f"Data model and initial value container imply different number of locations: "
                f"{data.n_loc}, {len(self.initial_value_container.S0)}."
            )
        if self.reinfection_model.enabled and self.reinfection_model.X_rs.shape[0] != data.n_tpt:
            raise ConfigurationError(
                f"Reinfection model and data model imply different number of time points: "
                f"{self.reinfection_model.X_rs.shape[0]}, {data.n_tpt}."
            )
        if self.transition_priors.mode not in TRANSITION_MODES:
            raise ConfigurationError(f"Invalid transition mode: {self.transition_priors.mode}")

    def _simulation_inputs(self) -> SimulationInputs:
        init = self.initial_value_container
        return SimulationInputs(
            layout=self.layout,
            S0=init.S0,
            E0=init.E0,
            I0=init.I0,
            R0=init.R0,
            offset=self.exposure_model.offset,
            X=self.exposure_model.X,
            X_rs=self.reinfection_model.X_rs,
            Y=self.data_model.Y,
            na_mask=self.data_model.na_mask,
            dm_list=self.distance_model.dm_list,
            tdm_list=self.distance_model.tdm_list,
            tdm_empty=self.distance_model.tdm_empty,
            transition_mode=self.transition_priors.mode,
            E_to_I_params=self.transition_priors.E_to_I_params,
            I_to_R_params=self.transition_priors.I_to_R_params,
            inf_mean=self.transition_priors.inf_mean,
            spatial_prior=self.distance_model.spatial_prior,
            exposure_prior_precision=self.exposure_model.beta_prior_precision,
            reinfection_prior_precision=self.reinfection_model.beta_prior_precision,
            exposure_prior_mean=self.exposure_model.beta_prior_mean,
            reinfection_prior_mean=self.reinfection_model.beta_prior_mean,
            reinfection_mode=self.reinfection_model.mode,
            phi=self.data_model.phi,
            compartment=self.data_model.compartment,
            cumulative=self.data_model.cumulative,
            m=self.sampling_control.m,
        )

    @property
    def n_params(self) -> int:
        return self.layout.n_params

    @property
    def parameter_names(self) -> List[str]:
        return self.layout.names

    def generate_params_prior(self, n_particles: int) -> np.ndarray:
        """Draw ``n_particles`` i.i.d. particles from the joint prior."""
        layout = self.layout
        rng = self.generator
        out = np.empty((n_particles, layout.n_params))

        exposure = self.exposure_model
        z = rng.standard_normal((n_particles, layout.n_beta))
        out[:, layout.beta] = exposure.beta_prior_mean + z / exposure.beta_prior_precision

        ei = self.transition_priors.E_to_I_params
        ir = self.transition_priors.I_to_R_params
        trans = layout.transition
        if layout.transition_mode == "exponential":
            out[:, trans.start] = rng.gamma(ei[0, 0], 1.0 / ei[1, 0], size=n_particles)
            out[:, trans.start + 1] = rng.gamma(ir[0, 0], 1.0 / ir[1, 0], size=n_particles)
        elif layout.transition_mode == "weibull":
            out[:, trans.start] = rng.gamma(ei[0, 0], 1.0 / ei[1, 0], size=n_particles)
            out[:, trans.start + 1] = rng.gamma(ei[2, 0], 1.0 / ei[3, 0], size=n_particles)
            out[:, trans.start + 2] = rng.gamma(ir[0, 0], 1.0 / ir[1, 0], size=n_particles)
            out[:, trans.start + 3] = rng.gamma(ir[2, 0], 1.0 / ir[3, 0], size=n_particles)

        if layout.n_beta_rs:
            reinfection = self.reinfection_model
            z = rng.standard_normal((n_particles, layout.n_beta_rs))
            out[:, layout.beta_rs] = reinfection.beta_prior_mean + z / reinfection.beta_prior_precision

        if layout.n_rho:
            out[:, layout.rho] = self._draw_rho(n_particles)

        return out

    def _draw_rho(self, n_particles: int) -> np.ndarray:
        shape, rate = self.distance_model.spatial_prior
        rho = np.empty((n_particles, self.layout.n_rho))
        pending = np.arange(n_particles)
        for _ in range(RHO_MAX_ATTEMPTS):
            if pending.size == 0:
                break
            rho[pending] = self.generator.gamma(shape, 1.0 / rate, size=(pending.size, self.layout.n_rho))
            pending = pending[rho[pending].sum(axis=1) > 1.0]
        if pending.size:
            logging.warning(
                "Valid rho value not obtained for %d of %d particles after %d attempts; keeping last draw",
                pending.size,
                n_particles,
                RHO_MAX_ATTEMPTS,
            )
        return rho

    def eval_prior(self, param_vector: Sequence[float]) -> float:
        """Unnormalised joint prior density of a single particle."""
        layout = self.layout
        params = np.asarray(param_vector, dtype=np.float64)
        if params.shape != (layout.n_params,):
            raise ConfigurationError(
                f"Parameter vector has shape {params.shape}, expected ({layout.n_params},)."
            )
        exposure = self.exposure_model
        out = np.prod(
            stats.norm.pdf(params[layout.beta], exposure.beta_prior_mean, 1.0 / exposure.beta_prior_precision)
        )
        if layout.n_beta_rs:
            reinfection = self.reinfection_model
            out *= np.prod(
                stats.norm.pdf(
                    params[layout.beta_rs], reinfection.beta_prior_mean, 1.0 / reinfection.beta_prior_precision
                )
            )
        if layout.n_rho:
            rho = params[layout.rho]
            a, b = self.distance_model.spatial_prior
            out *= np.prod(stats.beta.pdf(rho, a, b))
            out *= float(rho.sum() <= 1.0)

        trans = params[layout.transition]
        if layout.transition_mode == "exponential":
            ei = self.transition_priors.E_to_I_params
            ir = self.transition_priors.I_to_R_params
            out *= stats.gamma.pdf(trans[0], a=ei[0, 0], scale=1.0 / ei[1, 0])
            out *= stats.gamma.pdf(trans[1], a=ir[0, 0], scale=1.0 / ir[1, 0])
        elif layout.transition_mode == "weibull":
            out *= self.ei_transition_dist.eval_param_prior(trans[0:2])
            out *= self.ir_transition_dist.eval_param_prior(trans[2:4])
        return float(out)

    def _check_matrix(self, params: np.ndarray) -> np.ndarray:
        params = np.asarray(params, dtype=np.float64)
        if params.ndim != 2 or params.shape[1] != self.layout.n_params:
            raise ConfigurationError(
                f"Number of supplied parameters does not match the model parameter layout: "
                f"got shape {params.shape}, expected {self.layout.n_params} columns."
            )
        return params

    def set_parameters(self, params: np.ndarray) -> bool:
        params = self._check_matrix(params)
        self.param_matrix = params.copy()
        self.is_initialized = True
        return True

    def run_simulation(self, params: Optional[np.ndarray] = None, keep_trajectories: bool = False) -> BatchResult:
        """Simulate one batch; blocks until every particle has finished."""
        if params is None:
            if not self.is_initialized:
                raise ConfigurationError("No parameters have been set; call set_parameters first.")
            params = self.param_matrix
        params = self._check_matrix(params)
        batch = self.worker_pool.run(params, self.call_counter, keep_trajectories)
        self.call_counter += 1
        self.last_batch = batch
        return batch

    def sample(self, n_particles: int, keep_trajectories: bool = False) -> ABCResult:
        """Calibrate with the configured ABC algorithm."""
        algorithm = resolve_algorithm(self.sampling_control.algorithm)
        return algorithm.run(self, n_particles, keep_trajectories=keep_trajectories)

    def close(self) -> None:
        self.worker_pool.close()

    def __enter__(self) -> "SpatialSEIRModel":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
