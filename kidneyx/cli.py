"""Command-line entry point: solve one instance with a chosen formulation."""

from __future__ import annotations

import argparse
import sys
from functools import partial
from pathlib import Path
from typing import Callable, Sequence

from .cycle import CycleVariant, solve_cycle
from .cycle_lp import solve_cycle_reduced
from .eef import EEFVariant, solve_eef
from .instance import Instance, RunInfo, load_instance
from .pief import PIEFVariant, solve_pief

Solver = Callable[[Instance, int, int], "tuple[RunInfo, list[str]]"]

FORMULATIONS: dict[str, Solver] = {
    "cycle": partial(solve_cycle, variant=CycleVariant.BUDGET),
    "cycle-unit": partial(solve_cycle, variant=CycleVariant.UNIT_BUDGET),
    "cycle-chains": partial(solve_cycle, variant=CycleVariant.CHAINS),
    "cycle-chains-lp": solve_cycle_reduced,
    "eef": partial(solve_eef, variant=EEFVariant.BUDGET),
    "eef-unit": partial(solve_eef, variant=EEFVariant.UNIT_BUDGET),
    "eef-chains": partial(solve_eef, variant=EEFVariant.CHAINS),
    "pief": partial(solve_pief, variant=PIEFVariant.BUDGET),
    "pief-unit": partial(solve_pief, variant=PIEFVariant.UNIT_BUDGET),
    "pief-chains": partial(solve_pief, variant=PIEFVariant.CHAINS),
}


def run(
    formulation: str,
    path: str | Path,
    filename: str,
    output: str | Path,
    max_length: int,
    budget: int,
) -> RunInfo:
    """Load ``path + filename``, solve it and append the result line to ``output``.

    The instance summary and the solver report are printed to standard output.
    """
    try:
        solver = FORMULATIONS[formulation]
    except KeyError:
        raise ValueError(f"unknown formulation {formulation!r}") from None
    instance = load_instance(path, filename)
    print(instance.describe(max_length, budget), end="")
    info, report = solver(instance, max_length, budget)
    for line in report:
        print(line)
    info.append_to(output, instance.name)
    return info


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kidneyx",
        description="Solve a kidney-exchange instance with a budget on missing arcs or chains.",
    )
    parser.add_argument("path", help="directory prefix of the instance file")
    parser.add_argument("filename", help="instance file name")
    parser.add_argument("output", help="file to which the result line is appended")
    parser.add_argument("max_length", type=int, help="maximum cycle or chain length (K)")
    parser.add_argument("budget", type=int, help="budget (B)")
    parser.add_argument(
        "--formulation", choices=sorted(FORMULATIONS), default="cycle",
        help="model to solve (default: cycle)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    try:
        run(args.formulation, args.path, args.filename, args.output, args.max_length, args.budget)
    except OSError as exc:
        print(f"Could not open the file {args.path}{args.filename}: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())