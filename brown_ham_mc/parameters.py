"""
Input distributions, input resolution and Monte Carlo sampling.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from . import constants as c
from .errors import ConfigurationError
from .models import ModelInputs

log = logging.getLogger(__name__)

# ---- scipy lazy import ---------------------------------------------------

_scipy_stats = None  # populated on first use


def _get_scipy_stats():
    """Import ``scipy.stats`` lazily so scipy is only required when needed."""
    global _scipy_stats
    if _scipy_stats is None:
        try:
            from scipy import stats as _st
            _scipy_stats = _st
        except ImportError:
            raise ImportError(
                "scipy is required for distributions other than 'constant', "
                "'uniform', 'gaussian' and 'mixture'.  Install with:  "
                "pip install scipy"
            )
    return _scipy_stats


# -------------------------------------------------------------------
# Distributions
# -------------------------------------------------------------------

class Distribution:
    """A scalar random variable.

    ``sample(rng, size)`` draws ``size`` independent values as an array;
    ``mean()`` and ``variance()`` give the analytic moments.
    """

    kind = "distribution"

    def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
        raise NotImplementedError

    def mean(self) -> float:
        raise NotImplementedError

    def variance(self) -> float:
        raise NotImplementedError

    def to_config(self) -> dict:
        raise NotImplementedError


class Constant(Distribution):
    kind = "constant"

    def __init__(self, value: float):
        self.value = float(value)

    def sample(self, rng, size):
        return np.full(size, self.value)

    def mean(self):
        return self.value

    def variance(self):
        return 0.0

    def to_config(self):
        return {"distribution": self.kind, "value": self.value}

    def __repr__(self):
        return f"Constant({self.value!r})"


class Uniform(Distribution):
    kind = "uniform"

    def __init__(self, low: float, high: float):
        if low > high:
            raise ConfigurationError(
                f"Uniform distribution needs low <= high (got {low}, {high})."
            )
        self.low = float(low)
        self.high = float(high)

    def sample(self, rng, size):
        return rng.uniform(self.low, self.high, size)

    def mean(self):
        return 0.5 * (self.low + self.high)

    def variance(self):
        return (self.high - self.low) ** 2 / 12.0

    def to_config(self):
        return {"distribution": self.kind, "low": self.low, "high": self.high}

    def __repr__(self):
        return f"Uniform({self.low!r}, {self.high!r})"


class Gaussian(Distribution):
    kind = "gaussian"

    def __init__(self, mean: float, sigma: float):
        if sigma < 0:
            raise ConfigurationError(
                f"Gaussian standard deviation must be >= 0 (got {sigma})."
            )
        self.mu = float(mean)
        self.sigma = float(sigma)

    def sample(self, rng, size):
        return rng.normal(self.mu, self.sigma, size)

    def mean(self):
        return self.mu

    def variance(self):
        return self.sigma ** 2

    def to_config(self):
        return {"distribution": self.kind, "mean": self.mu, "sigma": self.sigma}

    def __repr__(self):
        return f"Gaussian({self.mu!r}, {self.sigma!r})"


class Mixture(Distribution):
    """Weighted mixture; each draw first picks a component by weight."""

    kind = "mixture"

    def __init__(self, components: list[Distribution], weights: list[float]):
        if len(components) != len(weights) or not components:
            raise ConfigurationError(
                "Mixture needs one weight per component."
            )
        w = np.asarray(weights, dtype=float)
        if np.any(w < 0) or w.sum() <= 0:
            raise ConfigurationError(
                f"Mixture weights must be non-negative with a positive sum "
                f"(got {list(weights)})."
            )
        self.components = list(components)
        self.weights = w / w.sum()

    def sample(self, rng, size):
        choice = rng.choice(len(self.components), size=size, p=self.weights)
        out = np.empty(size)
        for k, comp in enumerate(self.components):
            mask = choice == k
            n = int(np.count_nonzero(mask))
            if n:
                out[mask] = comp.sample(rng, n)
        return out

    def mean(self):
        return float(sum(w * comp.mean()
                         for w, comp in zip(self.weights, self.components)))

    def variance(self):
        mu = self.mean()
        second = sum(w * (comp.variance() + comp.mean() ** 2)
                     for w, comp in zip(self.weights, self.components))
        return float(max(second - mu ** 2, 0.0))

    def to_config(self):
        return {
            "distribution": self.kind,
            "components": [comp.to_config() for comp in self.components],
            "weights": [float(w) for w in self.weights],
        }

    def __repr__(self):
        return f"Mixture({self.components!r}, {list(self.weights)!r})"


class ScipyDistribution(Distribution):
    """Any ``scipy.stats`` distribution, frozen with ``dist_params``."""

    def __init__(self, name: str, dist_params: dict | None = None):
        stats = _get_scipy_stats()
        sp_cls = getattr(stats, name, None)
        if sp_cls is None or not hasattr(sp_cls, "rvs"):
            raise ConfigurationError(
                f"Unknown distribution '{name}'. Must be 'constant', "
                "'uniform', 'gaussian', 'mixture', or a scipy.stats "
                "distribution name."
            )
        self.kind = name
        self.dist_params = dict(dist_params or {})
        try:
            self._frozen = sp_cls(**self.dist_params)
        except TypeError as exc:
            raise ConfigurationError(
                f"Bad dist_params for '{name}': {exc}"
            ) from exc

    def sample(self, rng, size):
        return np.asarray(self._frozen.rvs(size=size, random_state=rng),
                          dtype=float)

    def mean(self):
        return float(self._frozen.mean())

    def variance(self):
        return float(self._frozen.var())

    def to_config(self):
        return {"distribution": self.kind, "dist_params": self.dist_params}

    def __repr__(self):
        return f"ScipyDistribution({self.kind!r}, {self.dist_params!r})"


def distribution_from_config(name: str, r) -> Distribution:
    """Build a distribution from one ``params.yaml`` entry.

    A bare number is a constant.  Otherwise *r* is a dict with a
    ``distribution`` key:

    **constant**   ``value``
    **uniform**    ``low``, ``high``
    **gaussian** / **normal**  ``mean``, ``sigma``
    **mixture**    ``components`` (list of entries), ``weights``
    *<any scipy.stats name>*  parameters under ``dist_params``
    """
    if isinstance(r, (int, float)) and not isinstance(r, bool):
        return Constant(r)
    if not isinstance(r, dict):
        raise ConfigurationError(
            f"Parameter '{name}' must be a number or a mapping.", name
        )

    dist = r.get("distribution", "uniform")
    if dist == "mixture":
        if "components" not in r:
            raise ConfigurationError(
                f"Parameter '{name}': 'mixture' distribution is missing key "
                "'components'.", name
            )
        components = [distribution_from_config(name, sub)
                      for sub in r["components"]]
        weights = r.get("weights", [1.0] * len(components))
    try:
        if dist == "constant":
            return Constant(r["value"])
        if dist == "uniform":
            return Uniform(r["low"], r["high"])
        if dist in ("gaussian", "normal"):
            return Gaussian(r["mean"], r["sigma"])
        if dist == "mixture":
            return Mixture(components, weights)
        return ScipyDistribution(dist, r.get("dist_params"))
    except KeyError as exc:
        raise ConfigurationError(
            f"Parameter '{name}': '{dist}' distribution is missing key "
            f"{exc}.", name
        ) from exc
    except (ConfigurationError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Parameter '{name}': {exc}", name) from exc


# -------------------------------------------------------------------
# Input resolution
# -------------------------------------------------------------------

def default_distributions() -> dict[str, Distribution]:
    """Built-in input distributions, keyed by parameter name."""
    return {
        "gamma": Uniform(c.GAMMA_UNIFORM_MIN, c.GAMMA_UNIFORM_MAX),
        "phi": Uniform(c.PHI_UNIFORM_MIN, c.PHI_UNIFORM_MAX),
        "Rs": Mixture(
            [Gaussian(c.RS_MIXTURE_FIRST_MEAN, c.RS_MIXTURE_FIRST_SIGMA),
             Gaussian(c.RS_MIXTURE_SECOND_MEAN, c.RS_MIXTURE_SECOND_SIGMA)],
            [c.RS_MIXTURE_FIRST_WEIGHT, 1.0 - c.RS_MIXTURE_FIRST_WEIGHT],
        ),
        "G": Uniform(c.G_UNIFORM_MIN, c.G_UNIFORM_MAX),
        "b": Constant(c.BURGERS_VECTOR),
        "M": Uniform(c.M_UNIFORM_MIN, c.M_UNIFORM_MAX),
    }


def reference_inputs() -> ModelInputs:
    """Fixed reference point, with ``M`` the mean of the empirical Taylor
    factors."""
    taylor = sum(c.EMPIRICAL_TAYLOR_FACTORS) / len(c.EMPIRICAL_TAYLOR_FACTORS)
    return ModelInputs(
        gamma=Constant(c.REFERENCE_GAMMA),
        phi=Constant(c.REFERENCE_PHI),
        Rs=Constant(c.REFERENCE_RS),
        G=Constant(c.REFERENCE_G),
        b=Constant(c.BURGERS_VECTOR),
        M=Constant(taylor),
    )


def parse_override(name: str, text: str) -> float:
    """Parse a numeric command-line override for parameter *name*."""
    try:
        value = float(text)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"The {name} must be a real number (got '{text}').", name
        )
    if not math.isfinite(value):
        raise ConfigurationError(
            f"The {name} must be finite (got '{text}').", name
        )
    return value


def resolve_inputs(
    overrides: dict[str, str] | None = None,
    file_values: dict[str, float] | None = None,
    params_config: dict | None = None,
) -> ModelInputs:
    """Combine the input sources into a :class:`ModelInputs`.

    Priority, highest first: per-parameter *overrides* (numeric strings),
    *file_values* from a bulk input file, *params_config* entries from a
    parameters YAML file, then the built-in defaults.
    """
    resolved = default_distributions()

    if params_config:
        unknown = set(params_config) - set(resolved)
        if unknown:
            log.warning("Params in YAML not recognised (ignored): %s",
                        sorted(unknown))
        for name in resolved:
            if name in params_config:
                resolved[name] = distribution_from_config(
                    name, params_config[name])

    if file_values:
        for name in resolved:
            resolved[name] = Constant(file_values[name])

    for name, text in (overrides or {}).items():
        if text is None:
            continue
        if name not in resolved:
            raise ConfigurationError(f"Unknown parameter '{name}'.", name)
        resolved[name] = Constant(parse_override(name, text))

    return ModelInputs(**resolved)


def expected_inputs(inputs: ModelInputs) -> ModelInputs:
    """Replace every distribution by a constant at its mean."""
    return ModelInputs(**{name: Constant(mu)
                          for name, mu in inputs.means().items()})


def sample_inputs(
    inputs: ModelInputs,
    rng: np.random.Generator,
    size: int,
) -> dict[str, np.ndarray]:
    """Draw *size* independent realisations of every input."""
    return {name: dist.sample(rng, size) for name, dist in inputs.items()}
