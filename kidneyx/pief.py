"""Position-indexed edge formulation: graph copies with arc positions.

Graph copy ``i`` holds the arcs that may lie on a cycle whose smallest node
is ``i``, each tagged with the position it occupies in that cycle. Flow is
conserved at every (node, position) of every copy; an arc that closes the
cycle returns to ``i`` at position 0. In the budget variants a missing arc
may be used at the price of one budget unit. In the chain variant the
budget instead pays for chains started by non-directed donors.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from .chains import add_chain_structure, build_chain_arcs, format_chain_arc
from .instance import Instance, RunInfo, cpu_time
from .milp import EPSILON, Model, VarType

Term = tuple[int, float]


class PIEFVariant(Enum):
    """How chains and the budget enter the position-indexed formulation."""

    BUDGET = "budget"
    UNIT_BUDGET = "unit_budget"
    CHAINS = "chains"


@dataclass(frozen=True)
class PositionEdge:
    """Arc ``tail@position -> head@head_position`` of one graph copy."""

    tail: int
    position: int
    head: int
    head_position: int

    @property
    def closes_cycle(self) -> bool:
        return self.head_position == 0


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


def _edge(start: int, tail: int, position: int, head: int) -> PositionEdge:
    if head == start:
        return PositionEdge(tail, position, head, 0)
    return PositionEdge(tail, position, head, position + 1)


def budget_position_edges(
    instance: Instance, max_length: int, budget: int
) -> list[list[PositionEdge]]:
    """Positioned arcs of every graph copy when missing arcs may be bought.

    An arc ``(u, v)`` at position ``j`` of copy ``i`` may be a missing arc; it
    is kept when the cheapest way to reach ``u`` at ``j`` from ``i``, plus its
    own cost, plus the cost of returning to ``i`` does not exceed ``budget``.
    """
    _check_length(max_length)
    n = instance.nb_nodes
    matrix = instance.matrix
    graphs: list[list[PositionEdge]] = []
    for start in range(n):
        heads = _back_reach(instance, start, max_length)
        tails = [[max_length + 1] * n for _ in range(max_length)]
        tails[0][start] = 0
        seen: set[tuple[int, int, int]] = set()
        edges: list[PositionEdge] = []
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
                        if (u, v, position) not in seen:
                            seen.add((u, v, position))
                            edges.append(_edge(start, u, position, v))
        graphs.append(edges)
    return graphs


def position_edges(instance: Instance, max_length: int) -> list[list[PositionEdge]]:
    """Positioned arcs of every graph copy, using existing compatibilities only."""
    _check_length(max_length)
    n = instance.nb_nodes
    arcs = instance.arcs
    graphs: list[list[PositionEdge]] = []
    for start in range(n):
        heads = _back_reach(instance, start, max_length)
        tails = [[max_length + 1] * n for _ in range(max_length)]
        tails[0][start] = 0
        seen: set[tuple[int, int, int]] = set()
        edges: list[PositionEdge] = []
        for position in range(max_length):
            for tail, head in arcs:
                if tails[position][tail] + heads[position][head] == 0:
                    if position < max_length - 1 and head != start:
                        tails[position + 1][head] = 0
                    if (tail, head, position) not in seen:
                        seen.add((tail, head, position))
                        edges.append(_edge(start, tail, position, head))
        graphs.append(edges)
    return graphs


def solve_pief(
    instance: Instance,
    max_length: int,
    budget: int,
    variant: PIEFVariant = PIEFVariant.BUDGET,
    time_limit: float = 3600.0,
) -> tuple[RunInfo, list[str]]:
    """Build and solve the position-indexed edge formulation.

    Returns the run statistics and the report lines: the number of chain arcs
    (chain variant only), then the selected arcs as
    ``copy tail position head head_position`` and, for chains, a separator
    followed by the selected chain arcs.
    """
    variant = PIEFVariant(variant)
    _check_length(max_length)
    start = cpu_time()
    info = RunInfo(cpu_times=[0.0])
    n = instance.nb_nodes
    matrix = instance.matrix
    with_chains = variant is PIEFVariant.CHAINS

    report: list[str] = []
    if with_chains:
        graphs = position_edges(instance, max_length)
        arcs = build_chain_arcs(instance, max_length, budget)
        report.append(str(len(arcs)))
    else:
        cap = min(budget, 1) if variant is PIEFVariant.UNIT_BUDGET else budget
        graphs = budget_position_edges(instance, max_length, cap)
        arcs = []
    info.cpu_times.append(cpu_time() - start)

    model = Model()
    edge_vars = [[model.add_var(VarType.BINARY) for _ in edges] for edges in graphs]
    arc_vars = [model.add_var(VarType.BINARY) for _ in arcs]

    node_usage: list[list[Term]] = [[] for _ in range(n)]
    objective: list[Term] = []
    total_cost: list[Term] = []
    inflow: list[dict[tuple[int, int], list[Term]]] = [{} for _ in range(n)]
    outflow: list[dict[tuple[int, int], list[Term]]] = [{} for _ in range(n)]
    touched: list[set[tuple[int, int]]] = [set() for _ in range(n)]

    for copy, (edges, variables) in enumerate(zip(graphs, edge_vars)):
        for edge, var in zip(edges, variables):
            head_key = (edge.head, edge.head_position)
            tail_key = (edge.tail, edge.position)
            node_usage[edge.head].append((var, 1.0))
            inflow[copy].setdefault(head_key, []).append((var, 1.0))
            outflow[copy].setdefault(tail_key, []).append((var, 1.0))
            touched[copy].update((head_key, tail_key))
            objective.append((var, 1.0))
            if not with_chains:
                total_cost.append((var, float(1 - matrix[edge.tail][edge.head])))

    if with_chains:
        add_chain_structure(
            model, arcs, arc_vars, n, max_length, budget, node_usage, objective
        )

    for copy in range(n):
        for position in range(max_length):
            for node in range(n):
                key = (node, position)
                if key in touched[copy]:
                    terms_in = inflow[copy].get(key, [])
                    terms_out = outflow[copy].get(key, [])
                    model.add_constraint(
                        terms_in + [(var, -coef) for var, coef in terms_out], "==", 0
                    )
        model.add_constraint(node_usage[copy], "<=", 1)

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
        for edge, var in zip(edges, variables):
            if solution.is_selected(var):
                report.append(
                    f"{labels[copy]} {labels[edge.tail]} {edge.position} "
                    f"{labels[edge.head]} {edge.head_position}"
                )
    if with_chains:
        report.append("-----")
        report.extend(
            format_chain_arc(instance, arc)
            for arc, var in zip(arcs, arc_vars)
            if solution.is_selected(var)
        )
    return info, report