# tests/conftest.py
import math

import pytest

from brown_ham_mc.models import ModelInputs, RunConfiguration
from brown_ham_mc.parameters import Constant, reference_inputs


def closed_form(gamma, phi, Rs, G, b, M):
    """Cutting stress (MPa) written out independently with the math module."""
    root = math.sqrt((8.0 * gamma * phi * Rs) / (math.pi * G * b * b))
    return ((M * gamma) / (2.0 * b)) * (root - phi) / 1e6


def constant_inputs(**values) -> ModelInputs:
    return ModelInputs(**{name: Constant(v) for name, v in values.items()})


@pytest.fixture
def reference():
    return reference_inputs()


@pytest.fixture
def reference_values(reference):
    return reference.means()


@pytest.fixture
def single_config():
    return RunConfiguration(seed=1234)


@pytest.fixture
def input_csv(tmp_path, reference_values):
    """Bulk input file with the columns deliberately out of order."""
    names = ["Rs", "M", "b", "phi", "G", "gamma"]
    path = tmp_path / "inputs.csv"
    path.write_text(
        ",".join(names) + "\n"
        + ",".join(repr(reference_values[n]) for n in names) + "\n"
    )
    return path
