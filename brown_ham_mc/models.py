"""
Data model classes and the Brown–Ham model kernel.
"""

from __future__ import annotations

import numpy as np

from .constants import KERNEL_ARGUMENT_ORDER, PA_PER_MPA


def cutting_stress(gamma, phi, Rs, G, b, M):
    r"""Cutting stress in MPa predicted by the Brown–Ham model.

    .. math::

        \sigma_c = \frac{M \gamma}{2 b}
                   \left(\sqrt{\frac{8 \gamma \phi R_s}{\pi G b^2}} - \phi\right)

    Accepts scalars or numpy arrays (element-wise).  A negative radicand
    gives NaN, which is returned as is.
    """
    with np.errstate(invalid="ignore"):
        root = np.sqrt((8.0 * gamma * phi * Rs) / (np.pi * G * b ** 2))
    sigma = ((M * gamma) / (2.0 * b)) * (root - phi) / PA_PER_MPA
    if np.ndim(sigma) == 0:
        return float(sigma)
    return sigma


class ModelInputs:
    """The six model inputs, each held as a distribution.

    Fixed values are represented by ``Constant`` distributions.  Instances
    are treated as read-only once built.
    """

    __slots__ = KERNEL_ARGUMENT_ORDER

    def __init__(self, gamma, phi, Rs, G, b, M):
        self.gamma = gamma
        self.phi = phi
        self.Rs = Rs
        self.G = G
        self.b = b
        self.M = M

    def items(self):
        """``(name, distribution)`` pairs in kernel argument order."""
        return [(name, getattr(self, name)) for name in KERNEL_ARGUMENT_ORDER]

    def as_dict(self) -> dict:
        return dict(self.items())

    def means(self) -> dict[str, float]:
        return {name: dist.mean() for name, dist in self.items()}

    def is_deterministic(self) -> bool:
        return all(dist.variance() == 0.0 for _, dist in self.items())

    def __repr__(self):
        inner = ", ".join(f"{name}={dist!r}" for name, dist in self.items())
        return f"ModelInputs({inner})"


class RunConfiguration:
    """Execution settings owned by the evaluation driver."""

    def __init__(
        self,
        iterations: int = 1,
        monte_carlo: bool = False,
        benchmarking: bool = False,
        timing: bool = False,
        verbose: bool = False,
        json_output: bool = False,
        expected: bool = False,
        seed: int | None = None,
        max_workers: int = 1,
        input_file: str | None = None,
        output_file: str | None = None,
        samples_file: str | None = None,
        quantiles: list[float] | None = None,
    ):
        self.iterations = int(iterations)
        self.monte_carlo = monte_carlo
        self.benchmarking = benchmarking
        self.timing = timing
        self.verbose = verbose
        self.json_output = json_output
        self.expected = expected
        self.seed = seed
        self.max_workers = max_workers
        self.input_file = input_file
        self.output_file = output_file
        self.samples_file = samples_file
        self.quantiles = quantiles

    @property
    def mode(self) -> str:
        """One of ``"benchmark"``, ``"monte_carlo"`` or ``"single"``."""
        if self.benchmarking:
            return "benchmark"
        if self.monte_carlo:
            return "monte_carlo"
        return "single"

    @property
    def loop_count(self) -> int:
        """Number of kernel evaluations the selected mode performs."""
        if self.mode == "single":
            return 1
        return self.iterations


class EvaluationResult:
    """Outcome of one run of the driver."""

    def __init__(
        self,
        value: float,
        samples: np.ndarray | None = None,
        mean: float | None = None,
        variance: float | None = None,
        cpu_time: float | None = None,
    ):
        self.value = value          # representative output (MPa)
        self.samples = samples      # all outputs, sampling mode only
        self.mean = mean
        self.variance = variance
        self.cpu_time = cpu_time    # seconds, when timed

    @property
    def cpu_time_us(self) -> int:
        if self.cpu_time is None:
            return 0
        return int(self.cpu_time * 1_000_000)
