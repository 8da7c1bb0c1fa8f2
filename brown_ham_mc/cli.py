"""
CLI entry point — argparse setup and dispatch.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from . import constants as c
from .commands import (
    cmd_run, cmd_populate, cmd_summary, load_setup, resolve_max_workers,
)
from .errors import BrownHamError
from .models import RunConfiguration

log = logging.getLogger(__name__)

_PROG = "brown-ham"

# (short flag, long flag, parameter name, default description)
_PARAMETER_OPTIONS = [
    ("-g", "--apb-energy", "gamma",
     f"Uniform({c.GAMMA_UNIFORM_MIN:.2f}, {c.GAMMA_UNIFORM_MAX:.2f})"),
    ("-p", "--precipitate-volume-fraction", "phi",
     f"Uniform({c.PHI_UNIFORM_MIN:.2f}, {c.PHI_UNIFORM_MAX:.2f})"),
    ("-R", "--mean-particle-radius", "Rs",
     f"Mixture(Gauss({c.RS_MIXTURE_FIRST_MEAN:.1e}, "
     f"{c.RS_MIXTURE_FIRST_SIGMA:.1e}), "
     f"Gauss({c.RS_MIXTURE_SECOND_MEAN:.1e}, "
     f"{c.RS_MIXTURE_SECOND_SIGMA:.1e}), {c.RS_MIXTURE_FIRST_WEIGHT:.1f})"),
    ("-G", "--shear-modulus", "G",
     f"Uniform({c.G_UNIFORM_MIN:.1e}, {c.G_UNIFORM_MAX:.1e})"),
    ("-B", "--burgers-vector", "b", f"{c.BURGERS_VECTOR:.2e}"),
    ("-m", "--taylor-factor", "M",
     f"Uniform({c.M_UNIFORM_MIN:.1f}, {c.M_UNIFORM_MAX:.1f})"),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=_PROG,
        description="Precipitate \"cutting\" dislocation model from Brown "
                    "and Ham, with Monte Carlo uncertainty propagation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""\
Workflow — single evaluation:
  {_PROG} run                       (one draw from the default distributions)
  {_PROG} run -g 0.2 -p 0.375 ...   (override individual inputs)
  {_PROG} run -i inputs.csv -o out.csv

Workflow — Monte Carlo:
  1. {_PROG} populate
  2. (edit params.yaml — adjust distributions)
  3. {_PROG} run -c setup.yaml
  4. {_PROG} summary -r {c.DEFAULT_SAMPLES_FILE}
""",
    )
    sub = parser.add_subparsers(dest="command")

    # ── run ──────────────────────────────────────────────────────────
    run = sub.add_parser("run", help="Evaluate the model")
    run.add_argument("-i", "--input", dest="input_file", default=None,
                     help="CSV file with one value per input "
                          f"({','.join(c.INPUT_VARIABLE_NAMES)})")
    run.add_argument("-o", "--output", dest="output_file", default=None,
                     help="Output CSV file")
    run.add_argument("-M", "--multiple-executions", dest="iterations",
                     type=int, default=None,
                     help="Monte Carlo mode: number of executions "
                          "(default: 1)")
    run.add_argument("-T", "--time", dest="timing", action="store_true",
                     help="Time and print the CPU time of the kernel loop")
    run.add_argument("-v", "--verbose", action="store_true",
                     help="Print the inputs of every iteration")
    run.add_argument("-b", "--benchmarking", action="store_true",
                     help="Print '<output> <microseconds>' only")
    run.add_argument("-j", "--json", dest="json_output", action="store_true",
                     help="Print output in JSON format")
    run.add_argument("--expected", action="store_true",
                     help="Evaluate once at the mean of every input")
    run.add_argument("-c", "--config", dest="setup", default=None,
                     help="Setup YAML (iterations, seed, max_workers, ...)")
    run.add_argument("--params", dest="params_file", default=None,
                     help="Parameters YAML with input distributions")
    run.add_argument("--seed", type=int, default=None,
                     help="Random seed (default: fresh entropy)")
    run.add_argument("--max-workers", default=None,
                     help="Worker processes for Monte Carlo mode, "
                          "or 'auto' (default: 1); ignored with -T/-b, "
                          "which run in-process so CPU time is complete")
    run.add_argument("--samples-out", dest="samples_file", default=None,
                     help="Monte Carlo sample archive "
                          f"(default: {c.DEFAULT_SAMPLES_FILE})")
    for short, long, name, default in _PARAMETER_OPTIONS:
        run.add_argument(short, long, dest=name, default=None,
                         metavar=name,
                         help=f"Set `{name}` (default: {default})")

    # ── populate ─────────────────────────────────────────────────────
    pop = sub.add_parser(
        "populate",
        help="Write default setup.yaml + params.yaml",
    )
    pop.add_argument("--setup-out", default="setup.yaml",
                     help="Output setup file (default: setup.yaml)")
    pop.add_argument("--params-out", default="params.yaml",
                     help="Output parameters file (default: params.yaml)")

    # ── summary ──────────────────────────────────────────────────────
    summ = sub.add_parser(
        "summary",
        help="Print statistics of a Monte Carlo sample archive",
    )
    summ.add_argument("-r", "--results", required=True, dest="npz_file",
                      help="Sample archive .npz file")
    summ.add_argument("-q", "--quantiles", type=float, nargs="+",
                      default=None,
                      help="Quantile levels (e.g. -q 0.025 0.5 0.975)")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "run":
            overrides = {name: getattr(args, name)
                         for _, _, name, _ in _PARAMETER_OPTIONS}
            config, params_file = _run_configuration(args)
            cmd_run(overrides, config, params_file)
        elif args.command == "populate":
            cmd_populate(args.setup_out, args.params_out)
        elif args.command == "summary":
            cmd_summary(args.npz_file, args.quantiles)
        else:
            parser.print_help()
            sys.exit(0 if args.command is None else 1)
    except BrownHamError as exc:
        log.error("%s", exc)
        sys.exit(1)
    except OSError as exc:
        log.error("Cannot access '%s': %s", exc.filename, exc.strerror)
        sys.exit(1)
    except MemoryError as exc:
        log.error("Out of memory. %s", exc)
        sys.exit(1)


# ── helpers ──────────────────────────────────────────────────────────

def _run_configuration(args) -> tuple[RunConfiguration, str | None]:
    """Merge setup YAML values with command-line flags (flags win)."""
    cfg = load_setup(args.setup) if args.setup else {}

    iterations = args.iterations
    if iterations is None:
        iterations = cfg.get("iterations")
    monte_carlo = iterations is not None and not args.benchmarking

    max_workers = cfg.get("max_workers", 1)
    if args.max_workers is not None:
        max_workers = resolve_max_workers(args.max_workers,
                                          os.cpu_count() or 1)

    samples_file = args.samples_file or cfg.get("samples_file",
                                                c.DEFAULT_SAMPLES_FILE)
    seed = args.seed if args.seed is not None else cfg.get("seed")

    config = RunConfiguration(
        iterations=iterations if iterations is not None else 1,
        monte_carlo=monte_carlo,
        benchmarking=args.benchmarking,
        timing=args.timing,
        verbose=args.verbose,
        json_output=args.json_output,
        expected=args.expected,
        seed=seed,
        max_workers=max_workers,
        input_file=args.input_file,
        output_file=args.output_file,
        samples_file=samples_file,
        quantiles=cfg.get("quantiles"),
    )
    return config, args.params_file or cfg.get("params_file")


