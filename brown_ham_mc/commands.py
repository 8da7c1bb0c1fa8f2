"""
High-level sub-command implementations: run, populate, summary.
"""

from __future__ import annotations

import logging
import os
import time

import numpy as np

from .constants import DEFAULT_QUANTILES, DEFAULT_SAMPLES_FILE
from .errors import ConfigurationError
from .io import (
    read_input_csv, write_output_csv, read_yaml, read_params_file,
    write_params_file, write_setup_file, save_samples, load_samples,
    format_json_output, format_human_output, format_benchmark_output,
)
from .models import EvaluationResult, ModelInputs, RunConfiguration
from .parameters import default_distributions, expected_inputs, resolve_inputs
from .runner import run_iterations

log = logging.getLogger(__name__)


def resolve_max_workers(max_workers, cpu_count):
    """Resolve ``'auto'`` to one worker per CPU."""
    if max_workers == "auto":
        return max(1, cpu_count)
    try:
        max_workers = int(max_workers)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"max_workers must be an integer or 'auto' (got {max_workers!r}).",
            "max_workers",
        )
    return max(1, max_workers)


def mean_and_variance(samples: np.ndarray) -> tuple[float, float]:
    """Mean and unbiased sample variance; the variance of one sample is 0."""
    mean = float(np.mean(samples))
    if len(samples) < 2:
        return mean, 0.0
    return mean, float(np.var(samples, ddof=1))


def validate_configuration(config: RunConfiguration):
    """Reject invalid settings and mode combinations before evaluation."""
    if config.iterations < 1:
        raise ConfigurationError(
            f"The number of executions must be at least 1 "
            f"(got {config.iterations}).", "iterations"
        )
    if config.input_file and config.mode == "monte_carlo":
        raise ConfigurationError(
            "Reading from an input file is not supported for Monte Carlo mode.",
            "input",
        )
    if config.seed is not None and config.seed < 0:
        raise ConfigurationError(
            f"The seed must be a non-negative integer (got {config.seed}).",
            "seed",
        )
    if config.expected and config.mode != "single":
        raise ConfigurationError(
            "Expected-value evaluation cannot be combined with Monte Carlo "
            "or benchmarking mode.", "expected"
        )


def evaluate(inputs: ModelInputs, config: RunConfiguration) -> EvaluationResult:
    """Run the selected mode over resolved *inputs*.

    * single: one draw, one kernel evaluation.
    * monte_carlo: ``config.iterations`` independent evaluations reduced to
      mean and variance; the mean is the representative value.
    * benchmark: ``config.iterations`` evaluations, only the last one kept.
    """
    validate_configuration(config)
    if config.expected:
        inputs = expected_inputs(inputs)

    n = config.loop_count
    try:
        samples = np.empty(n)
    except (MemoryError, ValueError, OverflowError) as exc:
        raise MemoryError(
            f"Cannot allocate a sample buffer for {n} iterations."
        ) from exc

    timed = config.timing or config.benchmarking
    max_workers = config.max_workers
    if timed and max_workers > 1:
        # process_time() only sees this process
        log.info("Timing requested: running in-process instead of "
                 "%d workers.", max_workers)
        max_workers = 1
    start = time.process_time() if timed else None

    run_iterations(
        inputs,
        samples,
        seed=config.seed,
        max_workers=max_workers,
        verbose=config.verbose,
    )

    if config.mode == "monte_carlo":
        mean, variance = mean_and_variance(samples)
        cpu_time = time.process_time() - start if timed else None
        return EvaluationResult(mean, samples=samples, mean=mean,
                                variance=variance, cpu_time=cpu_time)

    cpu_time = time.process_time() - start if timed else None
    return EvaluationResult(float(samples[-1]), cpu_time=cpu_time)


def report(result: EvaluationResult, config: RunConfiguration):
    """Print the result in the format the configuration asks for."""
    if config.benchmarking:
        print(format_benchmark_output(result.value, result.cpu_time_us))
        return

    if config.json_output:
        print(format_json_output(
            result.value, result.cpu_time if config.timing else None))
    else:
        print(format_human_output(result.value))

    if config.timing:
        print(f"CPU time used: {result.cpu_time:f} seconds")


def cmd_run(
    overrides: dict[str, str | None],
    config: RunConfiguration,
    params_file: str | None = None,
) -> EvaluationResult:
    """Resolve inputs, evaluate, report and write any requested files."""
    validate_configuration(config)

    file_values = None
    if config.input_file:
        file_values = read_input_csv(config.input_file)
        log.info("Read inputs from %s", config.input_file)

    params_config = read_params_file(params_file) if params_file else None
    inputs = resolve_inputs(overrides, file_values, params_config)
    log.debug("Resolved inputs: %r", inputs)

    result = evaluate(inputs, config)
    report(result, config)

    if config.mode == "monte_carlo":
        log.info("Monte Carlo: %d samples, mean = %.6e MPa, variance = %.6e",
                 len(result.samples), result.mean, result.variance)
        if config.samples_file:
            save_samples(config.samples_file, result.samples, result.mean,
                         result.variance, result.cpu_time_us,
                         config.quantiles or DEFAULT_QUANTILES)
            log.info("Saved %s  (%d samples)", config.samples_file,
                     len(result.samples))

    if config.output_file and not config.benchmarking:
        write_output_csv(config.output_file, [result.value])
        log.info("Output written to %s", config.output_file)

    return result


def cmd_populate(setup_out: str, params_out: str):
    """Write a default setup YAML and a parameters YAML with the built-in
    input distributions."""
    write_params_file(params_out, default_distributions())

    setup_cfg = {
        "iterations": 100000,
        "seed": 42,
        "max_workers": "auto",
        "params_file": params_out,
        "samples_file": DEFAULT_SAMPLES_FILE,
        "quantiles": list(DEFAULT_QUANTILES),
    }
    write_setup_file(setup_out, setup_cfg, params_out)

    print(f"Setup     written to {setup_out}")
    print(f"Params    written to {params_out}")


def load_setup(setup_filepath: str) -> dict:
    """Read a setup YAML; ``params_file`` is resolved relative to it."""
    cfg = read_yaml(setup_filepath)
    params_filepath = cfg.get("params_file")
    if params_filepath and not os.path.isabs(params_filepath):
        cfg["params_file"] = os.path.join(
            os.path.dirname(os.path.abspath(setup_filepath)), params_filepath
        )
    if "max_workers" in cfg:
        cfg["max_workers"] = resolve_max_workers(cfg["max_workers"],
                                                 os.cpu_count() or 1)
    for key, minimum in (("iterations", 1), ("seed", 0)):
        if cfg.get(key) is not None:
            cfg[key] = _setup_integer(setup_filepath, key, cfg[key], minimum)
    return cfg


def _setup_integer(setup_filepath, key, value, minimum):
    # bool is an int subclass; YAML 'yes'/'true' must not pass as 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"'{setup_filepath}': {key} must be an integer (got {value!r}).",
            key,
        )
    if value < minimum:
        raise ConfigurationError(
            f"'{setup_filepath}': {key} must be at least {minimum} "
            f"(got {value}).", key,
        )
    return value


def cmd_summary(npz_file: str, quantiles: list[float] | None = None):
    """Print statistics of a saved sample archive."""
    data = load_samples(npz_file)
    samples = data["samples"]
    if quantiles is None:
        quantiles = [float(q) for q in data.get(
            "quantile_levels", np.array(DEFAULT_QUANTILES))]

    finite = samples[np.isfinite(samples)]
    n_bad = len(samples) - len(finite)

    print(f"Results: {npz_file}")
    print(f"  Samples        : {len(samples)}")
    if n_bad:
        print(f"  Non-finite     : {n_bad} (out-of-domain inputs)")
    if len(finite) == 0:
        print("  No finite samples.")
        return
    mean, variance = mean_and_variance(finite)
    print(f"  Mean           : {mean:.6e} MPa")
    print(f"  Variance       : {variance:.6e} MPa^2")
    print(f"  Std. deviation : {np.sqrt(variance):.6e} MPa")
    print(f"  Min / Max      : {finite.min():.6e} / {finite.max():.6e} MPa")
    if "cpu_time_us" in data:
        print(f"  CPU time       : {int(data['cpu_time_us'])} us")
    q_values = np.quantile(finite, quantiles)
    for q, v in zip(quantiles, q_values):
        print(f"  Q{q * 100:<5g}         : {v:.6e} MPa")
