"""Edge formulation: one copy of the compatibility graph per cycle start.

Graph copy ``i`` holds the arcs that may lie on a cycle whose smallest node
is ``i``. Flow is conserved in each copy and a copy may carry at most
``max_length`` arcs. In the budget variants a missing arc may be used at the
price of one budget unit. In the chain variant the budget instead pays for
chains started by non-directed donors.
"""

from __future__ import annotations

import math
from enum import Enum

from .chains import add_chain_structure, build_chain_arcs, format_chain_arc
from .instance import Instance, RunInfo, cpu_time
from .milp import EPSILON, Model, VarType

Term = tuple[int, float]


class EEFVariant(Enum):
    """How chains and the budget enter the edge formulation."""

    BUDGET = "budget"
    UNIT_BUDGET = "unit_budget"
    CHAINS = "chains"


def _check_length(max_length: int) -> None:
    if max_length < 1:
        raise ValueError("the maximum cycle length must be at least 1")


def _back_reach(instance: Instance, start: int, max_length: int) -> list[list[int]]:
    """``heads[j][v]`` is 0 when ``v`` can return to ``start`` from position ``j``."""
    n = instance.nb_nodes
    arcs = instance.arcs
    heads = [[1] * n for _ in range(max_length)]
    for position in range(max_length - 1, 0, -1):
        heads[position][start] = 0
        for tail, head in arcs:
            if heads[position][head] == 0 and tail >= start:
                heads[position - 1][tail] = 0
    heads[0][start] = 0
    return heads


def budget_graph_edges(
    instance: Instance, max_length: int, budget: int
) -> list[list[tuple[int, int]]]:
    """Arcs of every graph copy when missing arcs may be bought.

    An arc ``(u, v)`` of copy ``i`` may be a missing arc; it is kept when the
    cheapest way to reach it from ``i``, plus its own cost, plus the cost of
    returning to ``i`` does not exceed ``budget``.
    """
    _check_length(max_length)
    n = instance.nb_nodes
    matrix = instance.matrix
    graphs: list[list[tuple[int, int]]] = []
    for start in range(n):
        heads = _back_reach(instance, start, max_length)
        tails = [[max_length + 1] * n for _ in range(max_length)]
        tails[0][start] = 0
        seen: set[tuple[int, int]] = set()
        edges: list[tuple[int, int]] = []
        for position in range(max_length):
            for u in range(start, n):
                for v in range(start, n):
                    if position == 0 and u != start:
                        continue
                    if position == max_length - 1 and v != start:
                        continue
                    if position > 0 and u == start:
                        continue
                    step = 1 - matrix[u][v]
                    if tails[position][u] + step + heads[position][v] <= budget:
                        if position < max_length - 1:
                            tails[position + 1][v] = min(
                                tails[position + 1][v], tails[position][u] + step
                            )
                        if (u, v) not in seen:
                            seen.add((u, v))
                            edges.append((u, v))
        graphs.append(edges)
    return graphs


def graph_edges(instance: Instance, max_length: int) -> list[list[tuple[int, int]]]:
    """Arcs of every graph copy, using existing compatibilities only."""
    _check_length(max_length)
    n = instance.nb_nodes
    arcs = instance.arcs
    graphs: list[list[tuple[int, int]]] = []
    for start in range(n):
        heads = _back_reach(instance, start, max_length)
        tails = [[max_length + 1] * n for _ in range(max_length)]
        tails[0][start] = 0
        seen: set[tuple[int, int]] = set()
        edges: list[tuple[int, int]] = []
        for position in range(max_length):
            for tail, head in arcs:
                if tails[position][tail] + heads[position][head] == 0:
                    if position < max_length - 1:
                        tails[position + 1][head] = 0
                    if (tail, head) not in seen:
                        seen.add((tail, head))
                        edges.append((tail, head))
        graphs.append(edges)
    return graphs


def solve_eef(
    instance: Instance,
    max_length: int,
    budget: int,
    variant: EEFVariant = EEFVariant.BUDGET,
    time_limit: float = 3600.0,
) -> tuple[RunInfo, list[str]]:
    """Build and solve the edge formulation.

    Returns the run statistics and the report lines: the number of chain arcs
    (chain variant only), then the selected arcs as ``copy tail head`` pair
    identifiers and, for chains, a separator followed by the selected chain arcs.
    """
    variant = EEFVariant(variant)
    _check_length(max_length)
    start = cpu_time()
    info = RunInfo(cpu_times=[0.0])
    n = instance.nb_nodes
    matrix = instance.matrix
    with_chains = variant is EEFVariant.CHAINS

    report: list[str] = []
    if with_chains:
        graphs = graph_edges(instance, max_length)
        arcs = build_chain_arcs(instance, max_length, budget)
        report.append(str(len(arcs)))
    else:
        cap = min(budget, 1) if variant is EEFVariant.UNIT_BUDGET else budget
        graphs = budget_graph_edges(instance, max_length, cap)
        arcs = []
    info.cpu_times.append(cpu_time() - start)

    model = Model()
    edge_vars = [[model.add_var(VarType.BINARY) for _ in edges] for edges in graphs]
    arc_vars = [model.add_var(VarType.BINARY) for _ in arcs]

    node_usage: list[list[Term]] = [[] for _ in range(n)]
    objective: list[Term] = []
    total_cost: list[Term] = []
    inflow: list[dict[int, list[Term]]] = [{} for _ in range(n)]
    outflow: list[dict[int, list[Term]]] = [{} for _ in range(n)]
    graph_cost: list[list[Term]] = [[] for _ in range(n)]

    for copy, (edges, variables) in enumerate(zip(graphs, edge_vars)):
        for (u, v), var in zip(edges, variables):
            node_usage[v].append((var, 1.0))
            inflow[copy].setdefault(v, []).append((var, 1.0))
            outflow[copy].setdefault(u, []).append((var, 1.0))
            objective.append((var, 1.0))
            if not with_chains:
                cost = float(1 - matrix[u][v])
                total_cost.append((var, cost))
                graph_cost[copy].append((var, cost))

    if with_chains:
        add_chain_structure(
            model, arcs, arc_vars, n, max_length, budget, node_usage, objective
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
        if variant is EEFVariant.UNIT_BUDGET:
            model.add_constraint(
                graph_cost[copy] + [(var, -budget * coef) for var, coef in start_out],
                "<=",
                0,
            )

    if not with_chains:
        model.add_constraint(total_cost, "<=", budget)
    model.set_objective(objective)

    solution = model.solve(time_limit)
    info.cpu_times[0] = cpu_time() - start
    info.ub = math.ceil(solution.bound - EPSILON) if solution.bound is not None else 0
    info.opt = False
    info.nb_vars = model.num_vars()
    info.nb_cons = model.num_constraints()
    info.nb_nonzeros = model.num_nonzeros()

    if not solution.has_solution:
        report.append("Failed to optimize ILP.")
        info.lb = 0
        return info, report

    info.lb = math.ceil(solution.objective - EPSILON)
    info.opt = info.lb == info.ub

    labels = instance.labels
    for copy, (edges, variables) in enumerate(zip(graphs, edge_vars)):
        for (u, v), var in zip(edges, variables):
            if solution.is_selected(var):
                report.append(f"{labels[copy]} {labels[u]} {labels[v]}")
    if with_chains:
        report.append("-----")
        report.extend(
            format_chain_arc(instance, arc)
            for arc, var in zip(arcs, arc_vars)
            if solution.is_selected(var)
        )
    return info, report