"""Edge formulation with chains, solved after reduced-cost variable fixing.

The linear relaxation is solved first. Its optimum gives an upper bound and a
reduced cost for every graph-copy arc and chain arc. Variables whose reduced
cost shows they cannot take part in a solution reaching the current target
are left out of the integer model. If the reduced integer model does not
reach the target, the target is lowered by one and the model is rebuilt.
"""

from __future__ import annotations

import math
from typing import Sequence

from .chains import ChainArc, add_chain_structure, build_chain_arcs, format_chain_arc
from .eef import graph_edges
from .instance import Instance, RunInfo, cpu_time
from .milp import EPSILON, Model, Solution, Status, VarType

Term = tuple[int, float]
EdgeKey = tuple[int, int]


def _check_length(max_length: int) -> None:
    if max_length < 1:
        raise ValueError("the maximum cycle length must be at least 1")


def _build_model(
    instance: Instance,
    graphs: Sequence[Sequence[tuple[int, int]]],
    arcs: Sequence[ChainArc],
    max_length: int,
    budget: int,
    vtype: VarType,
    edge_mask: Sequence[Sequence[bool]],
    arc_mask: Sequence[bool],
) -> tuple[Model, dict[EdgeKey, int], dict[int, int]]:
    """Model over the copy arcs and chain arcs whose mask entry is true.

    Copy arcs are keyed by (copy, position in that copy's arc list).
    """
    n = instance.nb_nodes
    model = Model()
    edge_vars = {
        (copy, index): model.add_var(vtype)
        for copy, mask in enumerate(edge_mask)
        for index, keep in enumerate(mask)
        if keep
    }
    arc_vars = {j: model.add_var(vtype) for j, keep in enumerate(arc_mask) if keep}

    node_usage: list[list[Term]] = [[] for _ in range(n)]
    objective: list[Term] = []
    inflow: list[dict[int, list[Term]]] = [{} for _ in range(n)]
    outflow: list[dict[int, list[Term]]] = [{} for _ in range(n)]

    for (copy, index), var in edge_vars.items():
        u, v = graphs[copy][index]
        node_usage[v].append((var, 1.0))
        inflow[copy].setdefault(v, []).append((var, 1.0))
        outflow[copy].setdefault(u, []).append((var, 1.0))
        objective.append((var, 1.0))

    add_chain_structure(
        model,
        [arcs[j] for j in arc_vars],
        list(arc_vars.values()),
        n,
        max_length,
        budget,
        node_usage,
        objective,
    )

    for copy in range(n):
        carried: list[Term] = []
        for node in range(n):
            if node in inflow[copy]:
                terms_in = inflow[copy][node]
                carried.extend(terms_in)
                terms_out = outflow[copy].get(node, [])
                model.add_constraint(
                    terms_in + [(var, -coef) for var, coef in terms_out], "==", 0
                )
        model.add_constraint(node_usage[copy], "<=", 1)
        start_out = outflow[copy].get(copy, [])
        model.add_constraint(
            carried + [(var, -max_length * coef) for var, coef in start_out], "<=", 0
        )

    model.set_objective(objective)
    return model, edge_vars, arc_vars


def _record_model(info: RunInfo, model: Model) -> None:
    info.nb_vars = model.num_vars()
    info.nb_cons = model.num_constraints()
    info.nb_nonzeros = model.num_nonzeros()


def _reduced_cost(solution: Solution, var: int) -> float:
    if solution.value(var) < EPSILON:
        return solution.reduced_cost(var)
    return 0.0


def solve_eef_reduced(
    instance: Instance,
    max_length: int,
    budget: int,
    time_limit: float = 3600.0,
) -> tuple[RunInfo, list[str]]:
    """Solve the edge-and-chain formulation with reduced-cost fixing.

    Returns the run statistics and the report lines: the number of chain
    arcs, then the selected copy arcs as ``copy tail head`` pair identifiers,
    a separator and the selected chain arcs.
    """
    _check_length(max_length)
    start = cpu_time()
    info = RunInfo(cpu_times=[0.0])

    graphs = graph_edges(instance, max_length)
    arcs = build_chain_arcs(instance, max_length, budget)
    report = [str(len(arcs))]
    info.cpu_times.append(cpu_time() - start)

    relaxed, lp_edge_vars, lp_arc_vars = _build_model(
        instance, graphs, arcs, max_length, budget, VarType.CONTINUOUS,
        [[True] * len(edges) for edges in graphs], [True] * len(arcs),
    )
    lp = relaxed.solve(time_limit)
    if not lp.has_solution:
        info.cpu_times[0] = cpu_time() - start
        info.opt = False
        info.lb = 0
        report.append("Failed to optimize LP.")
        return info, report

    edge_rc = [[0.0] * len(edges) for edges in graphs]
    for (copy, index), var in lp_edge_vars.items():
        edge_rc[copy][index] = _reduced_cost(lp, var)
    arc_rc = [0.0] * len(arcs)
    for index, var in lp_arc_vars.items():
        arc_rc[index] = _reduced_cost(lp, var)
    info.cont_ub = lp.objective
    info.ub = math.floor(lp.objective + EPSILON)

    while True:
        edge_mask = [[info.cont_ub + rc + EPSILON >= info.ub for rc in row] for row in edge_rc]
        arc_mask = [info.cont_ub + rc + EPSILON >= info.ub for rc in arc_rc]
        model, edge_vars, arc_vars = _build_model(
            instance, graphs, arcs, max_length, budget, VarType.BINARY, edge_mask, arc_mask
        )
        remaining = max(0.0, time_limit - (cpu_time() - start))
        solution = model.solve(remaining)

        if solution.has_solution and math.ceil(solution.objective - EPSILON) == info.ub:
            info.cpu_times[0] = cpu_time() - start
            _record_model(info, model)
            info.lb = info.ub
            info.opt = True
            labels = instance.labels
            for (copy, index), var in edge_vars.items():
                if solution.is_selected(var):
                    u, v = graphs[copy][index]
                    report.append(f"{labels[copy]} {labels[u]} {labels[v]}")
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