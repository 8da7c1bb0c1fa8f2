# tests/test_commands.py
import re

import numpy as np
import pytest

from brown_ham_mc import commands
from brown_ham_mc.commands import (
    cmd_populate, cmd_run, cmd_summary, evaluate, load_setup,
    mean_and_variance,
)
from brown_ham_mc.errors import ConfigurationError
from brown_ham_mc.models import RunConfiguration, cutting_stress
from brown_ham_mc.parameters import Uniform, resolve_inputs
from brown_ham_mc.runner import chunk_bounds, run_iterations
from tests.conftest import closed_form, constant_inputs


def _no_kernel(*args, **kwargs):
    raise AssertionError("kernel must not be evaluated")


class TestMeanAndVariance:

    def test_matches_numpy(self):
        samples = np.array([1.0, 2.0, 4.0, 8.0])
        mean, variance = mean_and_variance(samples)
        assert mean == pytest.approx(3.75)
        assert variance == pytest.approx(np.var(samples, ddof=1))

    def test_single_sample_has_zero_variance(self):
        assert mean_and_variance(np.array([5.0])) == (5.0, 0.0)

    def test_degenerate_samples(self):
        assert mean_and_variance(np.full(10, 2.5))[1] == 0.0


class TestEvaluate:

    def test_single_matches_kernel(self, reference, reference_values,
                                   single_config):
        result = evaluate(reference, single_config)
        assert result.value == pytest.approx(closed_form(**reference_values),
                                             rel=1e-9)
        assert result.samples is None
        assert result.cpu_time is None

    def test_monte_carlo_with_one_iteration_equals_single(self):
        inputs = resolve_inputs()
        single = evaluate(inputs, RunConfiguration(seed=7))
        mc = evaluate(inputs, RunConfiguration(iterations=1, monte_carlo=True,
                                               seed=7))
        assert mc.value == single.value
        assert mc.variance == 0.0
        assert len(mc.samples) == 1

    def test_mean_converges_to_expected_value(self):
        # M enters linearly, so the mean equals the plug-in value.
        inputs = constant_inputs(gamma=0.2, phi=0.375, Rs=2e-8, G=7e10,
                                 b=2.54e-10, M=3.0)
        as_dict = inputs.as_dict()
        as_dict["M"] = Uniform(1.9, 4.1)
        inputs = type(inputs)(**as_dict)

        expected = evaluate(inputs, RunConfiguration(expected=True))
        mc = evaluate(inputs, RunConfiguration(iterations=100_000,
                                               monte_carlo=True, seed=11))
        assert abs(mc.mean - expected.value) / expected.value < 0.01
        assert mc.variance > 0

    def test_variance_zero_for_fixed_inputs(self, reference):
        mc = evaluate(reference, RunConfiguration(iterations=25,
                                                  monte_carlo=True, seed=3))
        assert mc.variance == 0.0
        assert np.all(mc.samples == mc.samples[0])

    def test_variance_non_negative_default_inputs(self):
        inputs = resolve_inputs()
        for n in (1, 2, 17, 500):
            mc = evaluate(inputs, RunConfiguration(iterations=n,
                                                   monte_carlo=True, seed=n))
            assert mc.variance >= 0.0
            assert len(mc.samples) == n

    def test_iterations_are_independent_draws(self):
        mc = evaluate(resolve_inputs(),
                      RunConfiguration(iterations=1000, monte_carlo=True,
                                       seed=5))
        assert len(np.unique(mc.samples)) == 1000

    def test_seed_reproducible(self):
        cfg = RunConfiguration(iterations=50, monte_carlo=True, seed=99)
        a = evaluate(resolve_inputs(), cfg)
        b = evaluate(resolve_inputs(), cfg)
        np.testing.assert_array_equal(a.samples, b.samples)

    def test_benchmark_keeps_last_value(self, monkeypatch):
        seen = []

        def spy(inputs, samples, **kwargs):
            samples[:] = np.arange(len(samples), dtype=float)
            seen.append(len(samples))
            return samples

        monkeypatch.setattr(commands, "run_iterations", spy)
        result = evaluate(resolve_inputs(),
                          RunConfiguration(iterations=8, benchmarking=True))
        assert seen == [8]
        assert result.value == 7.0
        assert result.samples is None
        assert result.cpu_time is not None and result.cpu_time >= 0

    def test_timing(self, reference):
        result = evaluate(reference, RunConfiguration(timing=True))
        assert result.cpu_time >= 0.0
        assert result.cpu_time_us >= 0

    @pytest.mark.parametrize("flags", [{"timing": True},
                                       {"benchmarking": True}])
    def test_timed_runs_stay_in_process(self, monkeypatch, flags):
        seen = {}

        def spy(inputs, samples, **kwargs):
            seen.update(kwargs)
            samples[:] = 1.0
            return samples

        monkeypatch.setattr(commands, "run_iterations", spy)
        evaluate(resolve_inputs(),
                 RunConfiguration(iterations=20, monte_carlo=True,
                                  max_workers=4, **flags))
        assert seen["max_workers"] == 1

    def test_untimed_runs_keep_workers(self, monkeypatch):
        seen = {}

        def spy(inputs, samples, **kwargs):
            seen.update(kwargs)
            samples[:] = 1.0
            return samples

        monkeypatch.setattr(commands, "run_iterations", spy)
        evaluate(resolve_inputs(),
                 RunConfiguration(iterations=20, monte_carlo=True,
                                  max_workers=4))
        assert seen["max_workers"] == 4

    def test_unallocatable_buffer_raises_memory_error(self, reference,
                                                      monkeypatch):
        monkeypatch.setattr(commands, "run_iterations", _no_kernel)
        with pytest.raises(MemoryError):
            evaluate(reference, RunConfiguration(iterations=10**19,
                                                 monte_carlo=True))

    def test_rejects_negative_seed(self, reference):
        with pytest.raises(ConfigurationError) as exc_info:
            evaluate(reference, RunConfiguration(seed=-1))
        assert exc_info.value.parameter == "seed"

    def test_rejects_zero_iterations(self, reference):
        with pytest.raises(ConfigurationError):
            evaluate(reference, RunConfiguration(iterations=0,
                                                 monte_carlo=True))

    def test_nan_propagates(self):
        inputs = constant_inputs(gamma=0.2, phi=-0.375, Rs=2e-8, G=7e10,
                                 b=2.54e-10, M=3.0)
        result = evaluate(inputs, RunConfiguration())
        assert np.isnan(result.value)


class TestRunIterations:

    def test_chunk_bounds_cover_range(self):
        bounds = chunk_bounds(25, chunk_size=10)
        assert bounds == [(0, 10), (10, 20), (20, 25)]

    def test_worker_count_does_not_change_result(self):
        inputs = resolve_inputs()
        serial = run_iterations(inputs, np.empty(25_000), seed=2024)
        parallel = run_iterations(inputs, np.empty(25_000), seed=2024,
                                  max_workers=2)
        np.testing.assert_array_equal(serial, parallel)

    def test_verbose_prints_each_iteration(self, reference, capsys):
        run_iterations(reference, np.empty(3), seed=1, verbose=True)
        out = capsys.readouterr().out
        assert out.count("Taylor factor (M)") == 3
        assert "Anti-phase boundary energy" in out


class TestCmdRun:

    def test_single_human_output(self, capsys):
        overrides = {"gamma": "0.2", "phi": "0.375", "Rs": "2e-8",
                     "G": "7e10", "b": "2.54e-10", "M": "3.045"}
        result = cmd_run(overrides, RunConfiguration())
        out = capsys.readouterr().out.strip()
        assert out == f"Cutting stress (σc) = {result.value:e} MPa"
        assert result.value == pytest.approx(
            cutting_stress(0.2, 0.375, 2e-8, 7e10, 2.54e-10, 3.045))

    def test_file_input_with_monte_carlo_is_rejected(self, input_csv,
                                                     monkeypatch):
        monkeypatch.setattr("brown_ham_mc.runner.cutting_stress", _no_kernel)
        monkeypatch.setattr(commands, "run_iterations", _no_kernel)
        cfg = RunConfiguration(iterations=10, monte_carlo=True,
                               input_file=str(input_csv))
        with pytest.raises(ConfigurationError, match="Monte Carlo"):
            cmd_run({}, cfg)

    def test_non_numeric_override_rejected_before_evaluation(self,
                                                             monkeypatch):
        monkeypatch.setattr(commands, "run_iterations", _no_kernel)
        with pytest.raises(ConfigurationError, match="phi"):
            cmd_run({"phi": "lots"}, RunConfiguration())

    def test_file_input_single(self, input_csv, reference_values, tmp_path,
                               capsys):
        out_csv = tmp_path / "out.csv"
        result = cmd_run({}, RunConfiguration(input_file=str(input_csv),
                                              output_file=str(out_csv)))
        assert result.value == pytest.approx(closed_form(**reference_values),
                                             rel=1e-9)
        lines = out_csv.read_text().splitlines()
        assert lines[0] == "sigmaCMpa"
        assert float(lines[1]) == pytest.approx(result.value, rel=1e-15)

    def test_override_wins_over_file(self, input_csv, reference_values):
        result = cmd_run({"M": "2.0"},
                         RunConfiguration(input_file=str(input_csv)))
        values = dict(reference_values, M=2.0)
        assert result.value == pytest.approx(closed_form(**values), rel=1e-9)

    def test_monte_carlo_saves_samples(self, tmp_path, capsys):
        npz = tmp_path / "mc.npz"
        result = cmd_run({}, RunConfiguration(iterations=200, monte_carlo=True,
                                              seed=1, samples_file=str(npz)))
        out = capsys.readouterr().out
        assert f"{result.mean:e}" in out
        data = np.load(npz)
        np.testing.assert_array_equal(data["samples"], result.samples)
        assert float(data["mean"]) == result.mean

    def test_benchmark_line(self, capsys):
        cmd_run({}, RunConfiguration(iterations=20, benchmarking=True, seed=4))
        out = capsys.readouterr().out
        assert re.fullmatch(r"-?\d+\.\d+ \d+\n", out)

    def test_json_with_timing(self, capsys):
        cmd_run({}, RunConfiguration(json_output=True, timing=True, seed=4))
        lines = capsys.readouterr().out.splitlines()
        assert '"cpuTimeUsed"' in lines[0]
        assert lines[1].startswith("CPU time used: ")

    def test_params_file(self, tmp_path, capsys):
        params = tmp_path / "params.yaml"
        params.write_text(
            "parameters:\n"
            "  M: {distribution: constant, value: 3.0}\n"
            "  gamma: 0.2\n  phi: 0.375\n  Rs: 2.0e-8\n  G: 7.0e+10\n"
        )
        result = cmd_run({}, RunConfiguration(), params_file=str(params))
        assert result.value == pytest.approx(
            closed_form(0.2, 0.375, 2e-8, 7e10, 2.54e-10, 3.0), rel=1e-9)


class TestPopulateAndSummary:

    def test_populate_then_load(self, tmp_path, capsys):
        setup = tmp_path / "setup.yaml"
        params = tmp_path / "params.yaml"
        cmd_populate(str(setup), str(params))
        cfg = load_setup(str(setup))
        assert cfg["iterations"] == 100000
        assert cfg["params_file"] == str(params)
        assert cfg["max_workers"] >= 1

    @pytest.mark.parametrize("key, text", [
        ("iterations", "many"),
        ("iterations", "0"),
        ("iterations", "2.5"),
        ("iterations", "yes"),
        ("seed", "abc"),
        ("seed", "-3"),
    ])
    def test_load_setup_rejects_bad_integers(self, tmp_path, key, text):
        setup = tmp_path / "setup.yaml"
        setup.write_text(f"{key}: {text}\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_setup(str(setup))
        assert exc_info.value.parameter == key

    def test_summary(self, tmp_path, capsys):
        npz = tmp_path / "mc.npz"
        cmd_run({}, RunConfiguration(iterations=500, monte_carlo=True, seed=8,
                                     samples_file=str(npz)))
        capsys.readouterr()
        cmd_summary(str(npz), [0.5])
        out = capsys.readouterr().out
        assert "Samples        : 500" in out
        assert "Q50" in out
