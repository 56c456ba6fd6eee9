from __future__ import annotations

import platform
import subprocess
import sys
from importlib import metadata
from typing import Dict

from abseir.components import SamplingControl


def _pkg_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return "unknown"


def build_run_metadata(control: SamplingControl, n_particles: int) -> Dict[str, str]:
    try:
        git_hash = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            text=True,
            stderr=subprocess.DEVNULL,
        ).strip()
    except (OSError, subprocess.CalledProcessError):
        git_hash = "unknown"
    return {
        "python_version": sys.version.split()[0],
        "platform": platform.platform(),
        "numpy_version": _pkg_version("numpy"),
        "scipy_version": _pkg_version("scipy"),
        "pandas_version": _pkg_version("pandas"),
        "pydantic_version": _pkg_version("pydantic"),
        "abseir_version": _pkg_version("abseir"),
        "git_commit": git_hash,
        "seed": str(control.random_seed),
        "algorithm": control.algorithm.name,
        "cpu_cores": str(control.CPU_cores),
        "n_particles": str(n_particles),
    }
