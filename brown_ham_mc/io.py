"""
I/O helpers: CSV input/output, YAML setup and parameter files, sample
archives and JSON-formatted output.
"""

from __future__ import annotations

import csv
import json
import math

import numpy as np
import yaml

from .constants import (
    INPUT_VARIABLE_NAMES,
    OUTPUT_VARIABLE_NAMES,
    MODEL_DESCRIPTION,
    SIGMA_DESCRIPTION,
    CPU_TIME_SYMBOL,
    CPU_TIME_DESCRIPTION,
    JSON_TYPE_DOUBLE,
    JSON_TYPE_DOUBLE_PARTICLE,
)
from .errors import ConfigurationError, InputFileError


# -------------------------------------------------------------------
# CSV
# -------------------------------------------------------------------

def read_input_csv(
    filename: str,
    names: tuple[str, ...] = INPUT_VARIABLE_NAMES,
) -> dict[str, float]:
    """Read one row of named scalar inputs.

    The header must name exactly *names* (in any order) and the first data
    row must hold a finite number for each of them.
    """
    try:
        with open(filename, "r", newline="") as fh:
            reader = csv.reader(fh)
            rows = [row for row in reader if any(cell.strip() for cell in row)]
    except OSError as exc:
        raise InputFileError(filename, exc.strerror or str(exc)) from exc

    if len(rows) < 2:
        raise InputFileError(filename, "expected a header and one data row")

    header = [cell.strip() for cell in rows[0]]
    if sorted(header) != sorted(names):
        raise InputFileError(
            filename,
            f"header must name exactly {', '.join(names)} "
            f"(got {', '.join(header)})",
        )
    row = rows[1]
    if len(row) != len(header):
        raise InputFileError(
            filename, f"data row has {len(row)} values, expected {len(header)}"
        )

    values = {}
    for name, cell in zip(header, row):
        try:
            value = float(cell)
        except ValueError:
            raise InputFileError(
                filename, f"value of '{name}' is not a number ('{cell.strip()}')"
            )
        if not math.isfinite(value):
            raise InputFileError(filename, f"value of '{name}' is not finite")
        values[name] = value
    return values


def write_output_csv(
    filename: str,
    values: list[float],
    names: tuple[str, ...] = OUTPUT_VARIABLE_NAMES,
):
    """Write one header row of *names* and one row of *values*."""
    try:
        with open(filename, "w", newline="") as fh:
            writer = csv.writer(fh)
            writer.writerow(names)
            writer.writerow([f"{v:.17g}" for v in values])
    except OSError as exc:
        raise InputFileError(filename, exc.strerror or str(exc)) from exc


# -------------------------------------------------------------------
# YAML
# -------------------------------------------------------------------

def read_yaml(filename: str) -> dict:
    try:
        with open(filename, "r") as fh:
            data = yaml.safe_load(fh) or {}
    except OSError as exc:
        raise InputFileError(filename, exc.strerror or str(exc)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Cannot parse '{filename}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{filename}' must contain a mapping.")
    return data


def read_params_file(filename: str) -> dict:
    """Return the per-parameter entries of a parameters YAML file."""
    data = read_yaml(filename)
    return data.get("parameters", data)


def write_params_file(filename: str, distributions: dict):
    """Write a parameters YAML file from a name -> Distribution mapping."""
    entries = {name: dist.to_config() for name, dist in distributions.items()}
    with open(filename, "w") as fh:
        fh.write("# Brown-Ham model — input distributions\n")
        fh.write("#\n")
        fh.write("# Built-in distributions:\n")
        fh.write("#   constant   — fixed value; 'value' key\n")
        fh.write("#   uniform    — flat between 'low' and 'high'\n")
        fh.write("#   gaussian   — Normal('mean', 'sigma')\n")
        fh.write("#   mixture    — 'components' (list of entries) and 'weights'\n")
        fh.write("#\n")
        fh.write("# Any scipy.stats distribution is also supported.  Use the\n")
        fh.write("# scipy name as 'distribution' and pass shape/loc/scale\n")
        fh.write("# parameters under the 'dist_params' key, e.g.\n")
        fh.write("#\n")
        fh.write("#   distribution: truncnorm\n")
        fh.write("#   dist_params: {a: -2, b: 2, loc: 3.0, scale: 0.5}\n\n")
        yaml.dump({"parameters": entries}, fh,
                  default_flow_style=False, sort_keys=False)


def write_setup_file(filename: str, setup_cfg: dict, params_file: str):
    with open(filename, "w") as fh:
        fh.write("# Brown-Ham model — Monte Carlo run setup\n")
        fh.write("# ---------------------------------------\n")
        fh.write("#\n")
        fh.write("# Workflow:\n")
        fh.write("#   1. python -m brown_ham_mc populate\n")
        fh.write(f"#   2. (edit {params_file} — adjust distributions)\n")
        fh.write(f"#   3. python -m brown_ham_mc run -c {filename} -M 100000\n")
        fh.write("#   4. python -m brown_ham_mc summary -r "
                 f"{setup_cfg.get('samples_file')}\n\n")
        yaml.dump(setup_cfg, fh, default_flow_style=False, sort_keys=False)


# -------------------------------------------------------------------
# Sample archives
# -------------------------------------------------------------------

def save_samples(
    filename: str,
    samples: np.ndarray,
    mean: float,
    variance: float,
    cpu_time_us: int,
    quantiles: list[float],
):
    try:
        np.savez(
            file=filename,
            samples=samples,
            mean=mean,
            variance=variance,
            cpu_time_us=cpu_time_us,
            quantile_levels=np.array(quantiles),
            input_names=np.array(INPUT_VARIABLE_NAMES),
            output_name=np.array(OUTPUT_VARIABLE_NAMES[0]),
        )
    except OSError as exc:
        raise InputFileError(filename, exc.strerror or str(exc)) from exc


def load_samples(filename: str) -> dict[str, np.ndarray]:
    try:
        with np.load(filename, allow_pickle=False) as data:
            loaded = {key: data[key] for key in data.files}
    except (OSError, ValueError) as exc:
        raise InputFileError(filename, str(exc)) from exc
    if "samples" not in loaded:
        raise InputFileError(filename, "not a sample archive (no 'samples')")
    return loaded


# -------------------------------------------------------------------
# Output formatting
# -------------------------------------------------------------------

def _json_variable(symbol, description, value, type_tag):
    return {
        "variableSymbol": symbol,
        "variableDescription": description,
        "values": [value],
        "type": type_tag,
    }


def format_json_output(sigma: float, cpu_time: float | None = None) -> str:
    """JSON record of the cutting stress and, when given, the CPU time."""
    variables = [
        _json_variable(OUTPUT_VARIABLE_NAMES[0], SIGMA_DESCRIPTION,
                       sigma, JSON_TYPE_DOUBLE),
    ]
    if cpu_time is not None:
        variables.append(
            _json_variable(CPU_TIME_SYMBOL, CPU_TIME_DESCRIPTION,
                           cpu_time, JSON_TYPE_DOUBLE_PARTICLE)
        )
    return json.dumps(
        {"description": MODEL_DESCRIPTION, "results": variables},
        ensure_ascii=False,
    )


def format_human_output(sigma: float) -> str:
    return f"{SIGMA_DESCRIPTION} = {sigma:e} MPa"


def format_benchmark_output(value: float, cpu_time_us: int) -> str:
    return f"{value:f} {max(int(cpu_time_us), 0)}"
