import json

import pandas as pd

from abseir.cli import main


def _small_config(tmp_path, config_dir):
    path = tmp_path / "small.yaml"
    path.write_text(
        f"base: {config_dir / 'three_location.yaml'}\n"
        "sampling:\n"
        "  batch_size: 40\n"
        "  max_batches: 2\n"
        "n_particles: 10\n"
    )
    return path


def test_cli_prior(tmp_path, config_dir):
    out = tmp_path / "prior"
    main(["prior", "--config", str(_small_config(tmp_path, config_dir)), "--n", "25", "--out", str(out)])
    frame = pd.read_csv(out / "prior_draws.csv")
    assert len(frame) == 25
    assert list(frame.columns) == ["beta_0", "beta_1", "rho_0", "gamma_ei", "gamma_ir", "prior_density"]
    assert (frame["prior_density"] >= 0).all()


def test_cli_run(tmp_path, config_dir):
    out = tmp_path / "run"
    main(["run", "--config", str(_small_config(tmp_path, config_dir)), "--seed", "7", "--out", str(out)])
    posterior = pd.read_csv(out / "posterior.csv")
    assert len(posterior) == 10
    summary = pd.read_csv(out / "posterior_summary.csv")
    assert len(summary) == 5
    metadata = json.loads((out / "run_metadata.json").read_text())
    assert metadata["seed"] == "7"
    assert metadata["algorithm"] == "BASIC_ABC"
    assert (out / "config_resolved.yaml").exists()
