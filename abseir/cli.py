from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import pandas as pd

from abseir.analysis.summary import summarize_posterior
from abseir.config import RunConfig, dump_config, load_config
from abseir.io.logging import setup_logging
from abseir.io.metadata import build_run_metadata
from abseir.model import SpatialSEIRModel


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="abseir", description="ABC calibration of spatial SEIR models")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Calibrate a model against observed incidence")
    run.add_argument("--config", required=True, help="Path to config YAML")
    run.add_argument("--seed", type=int, default=None)
    run.add_argument("--cores", type=int, default=None)
    run.add_argument("--particles", type=int, default=None)
    run.add_argument("--out", required=True, help="Output directory")

    prior = sub.add_parser("prior", help="Write draws from the joint prior")
    prior.add_argument("--config", required=True, help="Path to config YAML")
    prior.add_argument("--n", type=int, default=1000)
    prior.add_argument("--seed", type=int, default=None)
    prior.add_argument("--out", required=True, help="Output directory")

    return parser.parse_args(argv)


def override_config(cfg: RunConfig, args: argparse.Namespace) -> RunConfig:
    sampling = dict(cfg.sampling)
    if args.seed is not None:
        sampling["random_seed"] = args.seed
    if getattr(args, "cores", None) is not None:
        sampling["CPU_cores"] = args.cores
    updates = {"sampling": sampling}
    if getattr(args, "particles", None) is not None:
        updates["n_particles"] = args.particles
    return cfg.model_copy(update=updates)


def run_calibration(args: argparse.Namespace) -> None:
    cfg = override_config(load_config(args.config), args)
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    dump_config(cfg, out_dir / "config_resolved.yaml")

    with SpatialSEIRModel(*cfg.build_components()) as model:
        logging.info("Calibrating %d parameters: %s", model.n_params, ", ".join(model.parameter_names))
        result = model.sample(cfg.n_particles)

    result.to_frame().to_csv(out_dir / "posterior.csv", index=False)
    summarize_posterior(result).to_csv(out_dir / "posterior_summary.csv", index=False)
    metadata = build_run_metadata(model.sampling_control, cfg.n_particles)
    metadata["final_epsilon"] = str(result.final_epsilon)
    metadata["n_simulated"] = str(result.n_simulated)
    with (out_dir / "run_metadata.json").open("w") as f:
        json.dump(metadata, f, indent=2)
    logging.info("Accepted %d particles, epsilon=%.4g", len(result.particles), result.final_epsilon)


def run_prior(args: argparse.Namespace) -> None:
    cfg = override_config(load_config(args.config), args)
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    with SpatialSEIRModel(*cfg.build_components()) as model:
        draws = model.generate_params_prior(args.n)
        frame = pd.DataFrame(draws, columns=model.parameter_names)
        frame["prior_density"] = [model.eval_prior(row) for row in draws]
    frame.to_csv(out_dir / "prior_draws.csv", index=False)


def main(argv: list[str] | None = None) -> None:
    setup_logging()
    args = parse_args(argv)
    if args.command == "run":
        run_calibration(args)
    elif args.command == "prior":
        run_prior(args)


if __name__ == "__main__":
    main()
