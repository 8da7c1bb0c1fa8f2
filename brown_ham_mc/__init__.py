"""
Brown–Ham precipitate "cutting" dislocation model with Monte Carlo
uncertainty propagation.

Evaluates the cutting stress of a precipitate-strengthened alloy from six
physical parameters, any of which may be given as a probability
distribution instead of a fixed value.  Repeated evaluation over fresh
draws builds an empirical output distribution that is reduced to its
mean and variance.
"""

from __future__ import annotations

import logging

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
