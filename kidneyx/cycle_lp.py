"""Cycle formulation with chains, solved after reduced-cost variable fixing.

The linear relaxation is solved first. Its optimum gives an upper bound and a
reduced cost for every variable. A variable whose reduced cost shows that it
cannot be part of a solution reaching the current target value is left out of
the integer model. If the reduced integer model does not reach the target,
the target is lowered by one and the model is rebuilt with more variables.
"""

from __future__ import annotations

import math
from typing import Sequence

from .chains import ChainArc, add_chain_structure, build_chain_arcs, format_chain_arc
from .cycle import enumerate_cycles
from .instance import Instance, RunInfo, cpu_time
from .milp import EPSILON, Model, Solution, Status, VarType

Term = tuple[int, float]


def _build_model(
    instance: Instance,
    cycles: Sequence[tuple[int, ...]],
    arcs: Sequence[ChainArc],
    max_length: int,
    budget: int,
    vtype: VarType,
    cycle_mask: Sequence[bool],
    arc_mask: Sequence[bool],
) -> tuple[Model, dict[int, int], dict[int, int]]:
    """Model over the cycles and chain arcs whose mask entry is true."""
    model = Model()
    cycle_vars = {i: model.add_var(vtype) for i, keep in enumerate(cycle_mask) if keep}
    arc_vars = {j: model.add_var(vtype) for j, keep in enumerate(arc_mask) if keep}

    node_usage: list[list[Term]] = [[] for _ in range(instance.nb_nodes)]
    objective: list[Term] = []
    for index, var in cycle_vars.items():
        for node in cycles[index]:
            node_usage[node].append((var, 1.0))
        objective.append((var, float(len(cycles[index]))))

    add_chain_structure(
        model,
        [arcs[j] for j in arc_vars],
        list(arc_vars.values()),
        instance.nb_nodes,
        max_length,
        budget,
        node_usage,
        objective,
    )
    for terms in node_usage:
        model.add_constraint(terms, "<=", 1)
    model.set_objective(objective)
    return model, cycle_vars, arc_vars


def _reduced_costs(solution: Solution, variables: dict[int, int], count: int) -> list[float]:
    costs = [0.0] * count
    for index, var in variables.items():
        if solution.value(var) < EPSILON:
            costs[index] = solution.reduced_cost(var)
    return costs


def _record_model(info: RunInfo, model: Model) -> None:
    info.nb_vars = model.num_vars()
    info.nb_cons = model.num_constraints()
    info.nb_nonzeros = model.num_nonzeros()


def solve_cycle_reduced(
    instance: Instance,
    max_length: int,
    budget: int,
    time_limit: float = 3600.0,
) -> tuple[RunInfo, list[str]]:
    """Solve the cycle-and-chain formulation with reduced-cost fixing.

    Returns the run statistics and the report lines: the number of cycles and
    of chain arcs, then the selected cycles, a separator and the selected
    chain arcs.
    """
    start = cpu_time()
    info = RunInfo(cpu_times=[0.0])

    cycles = enumerate_cycles(instance, max_length)
    arcs = build_chain_arcs(instance, max_length, budget)
    report = [str(len(cycles)), str(len(arcs))]
    info.cpu_times.append(cpu_time() - start)

    everything_cycles = [True] * len(cycles)
    everything_arcs = [True] * len(arcs)
    relaxed, lp_cycle_vars, lp_arc_vars = _build_model(
        instance, cycles, arcs, max_length, budget, VarType.CONTINUOUS,
        everything_cycles, everything_arcs,
    )
    lp = relaxed.solve(time_limit)
    if not lp.has_solution:
        info.cpu_times[0] = cpu_time() - start
        info.opt = False
        info.lb = 0
        report.append("Failed to optimize LP.")
        return info, report

    cycle_rc = _reduced_costs(lp, lp_cycle_vars, len(cycles))
    arc_rc = _reduced_costs(lp, lp_arc_vars, len(arcs))
    info.cont_ub = lp.objective
    info.ub = math.floor(lp.objective + EPSILON)

    while True:
        cycle_mask = [info.cont_ub + rc + EPSILON >= info.ub for rc in cycle_rc]
        arc_mask = [info.cont_ub + rc + EPSILON >= info.ub for rc in arc_rc]
        model, cycle_vars, arc_vars = _build_model(
            instance, cycles, arcs, max_length, budget, VarType.BINARY, cycle_mask, arc_mask
        )
        remaining = max(0.0, time_limit - (cpu_time() - start))
        solution = model.solve(remaining)

        if solution.has_solution and math.ceil(solution.objective - EPSILON) == info.ub:
            info.cpu_times[0] = cpu_time() - start
            _record_model(info, model)
            info.lb = info.ub
            info.opt = True
            labels = instance.labels
            report.extend(
                " ".join(str(labels[node]) for node in cycles[index])
                for index, var in cycle_vars.items()
                if solution.is_selected(var)
            )
            report.append("-----")
            report.extend(
                format_chain_arc(instance, arcs[index])
                for index, var in arc_vars.items()
                if solution.is_selected(var)
            )
            return info, report

        if solution.status is Status.TIME_LIMIT or not solution.has_solution:
            info.cpu_times[0] = cpu_time() - start
            info.opt = False
            _record_model(info, model)
            info.lb = 0
            if not solution.has_solution:
                report.append("Failed to optimize ILP.")
            return info, report

        info.ub -= 1