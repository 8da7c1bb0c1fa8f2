"""
Kernel execution over chunks of Monte Carlo iterations.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed

import numpy as np

from .constants import CHUNK_SIZE, INPUT_DESCRIPTIONS
from .models import ModelInputs, cutting_stress
from .parameters import sample_inputs

log = logging.getLogger(__name__)


def chunk_bounds(n_iterations: int, chunk_size: int = CHUNK_SIZE):
    """``(start, stop)`` index pairs covering ``range(n_iterations)``."""
    return [(start, min(start + chunk_size, n_iterations))
            for start in range(0, n_iterations, chunk_size)]


def run_chunk(
    inputs: ModelInputs,
    size: int,
    seed_seq: np.random.SeedSequence,
) -> tuple[np.ndarray, dict[str, np.ndarray]]:
    """Draw *size* fresh input realisations and evaluate the kernel on each.

    Returns
    -------
    outputs : np.ndarray, shape (size,)
        Cutting stress per iteration (MPa).
    drawn : dict[str, np.ndarray]
        The input values used, keyed by parameter name.
    """
    rng = np.random.default_rng(seed_seq)
    drawn = sample_inputs(inputs, rng, size)
    outputs = cutting_stress(**drawn)
    return np.asarray(outputs, dtype=float).reshape(size), drawn


def _run_chunk_outputs(inputs, size, seed_seq):
    # Worker entry point: only ship the outputs back to the parent.
    return run_chunk(inputs, size, seed_seq)[0]


def print_inputs(drawn: dict[str, np.ndarray], index: int):
    """Print the resolved inputs of one iteration."""
    for name, (description, unit) in INPUT_DESCRIPTIONS.items():
        print(f"{description}\t\t= {drawn[name][index]:e}{unit}")


def run_iterations(
    inputs: ModelInputs,
    samples: np.ndarray,
    seed: int | None = None,
    max_workers: int = 1,
    verbose: bool = False,
) -> np.ndarray:
    """Fill *samples* with one kernel evaluation per entry.

    Iterations are grouped in fixed-size chunks, each seeded from its own
    child of ``SeedSequence(seed)``, so the result for a given seed does
    not depend on *max_workers*.  Each chunk writes only its own slice.
    """
    bounds = chunk_bounds(len(samples))
    seeds = np.random.SeedSequence(seed).spawn(len(bounds))

    if max_workers <= 1 or len(bounds) == 1 or verbose:
        for (start, stop), ss in zip(bounds, seeds):
            outputs, drawn = run_chunk(inputs, stop - start, ss)
            samples[start:stop] = outputs
            if verbose:
                for i in range(stop - start):
                    print_inputs(drawn, i)
        return samples

    log.info("Launching %d iterations in %d chunks (%d workers) ...",
             len(samples), len(bounds), max_workers)
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(_run_chunk_outputs, inputs, stop - start, ss):
                (start, stop)
            for (start, stop), ss in zip(bounds, seeds)
        }
        for done, fut in enumerate(as_completed(futures), start=1):
            start, stop = futures[fut]
            samples[start:stop] = fut.result()
            if done % max(1, len(bounds) // 20) == 0:
                log.info("  Progress: %d/%d chunks", done, len(bounds))
    return samples
