"""Cycle formulation: one binary variable per enumerated exchange cycle."""

from __future__ import annotations

import math
from enum import Enum

import numpy as np

from .chains import add_chain_structure, build_chain_arcs, format_chain_arc
from .instance import Instance, RunInfo, cpu_time
from .milp import EPSILON, Model, VarType


class CycleVariant(Enum):
    """How chains and the budget enter the cycle formulation."""

    BUDGET = "budget"
    UNIT_BUDGET = "unit_budget"
    CHAINS = "chains"


def shortest_path_lengths(instance: Instance) -> list[list[int]]:
    """Arc counts of shortest paths; unreachable pairs keep ``nb_nodes``."""
    n = instance.nb_nodes
    dist = np.full((n, n), n, dtype=np.int64)
    for tail, head in instance.arcs:
        dist[tail, head] = 1
    for middle in range(n):
        np.minimum(dist, dist[:, middle : middle + 1] + dist[middle : middle + 1, :], out=dist)
    return dist.tolist()


def enumerate_budget_cycles(
    instance: Instance, max_length: int, budget: int, cap: int | None = None
) -> list[tuple[tuple[int, ...], int]]:
    """Cycles of at most ``max_length`` nodes that may use missing arcs.

    Each missing arc costs one unit; a cycle's cost may not exceed ``budget``,
    further limited to ``cap`` when given. Every cycle starts at its smallest
    node. Returns (cycle, cost) pairs.
    """
    limit = budget if cap is None else min(cap, budget)
    n = instance.nb_nodes
    dist = shortest_path_lengths(instance)
    matrix = instance.matrix
    cycles: list[tuple[tuple[int, ...], int]] = []
    for start in range(n):
        current: list[tuple[tuple[int, ...], int]] = [((start,), 0)]
        for length in range(1, max_length + 1):
            extended: list[tuple[tuple[int, ...], int]] = []
            for path, cost in current:
                last = path[-1]
                for node in range(start, n):
                    new_cost = cost + 1 - matrix[last][node]
                    if new_cost > limit:
                        continue
                    if node == start:
                        cycles.append((path, new_cost))
                    elif node not in path and (
                        new_cost < limit or dist[node][start] <= max_length - length
                    ):
                        extended.append((path + (node,), new_cost))
            current = extended
    return cycles


def enumerate_cycles(instance: Instance, max_length: int) -> list[tuple[int, ...]]:
    """Directed cycles of at most ``max_length`` nodes, each from its smallest node."""
    dist = shortest_path_lengths(instance)
    adjacency = instance.adjacency
    cycles: list[tuple[int, ...]] = []
    for start in range(instance.nb_nodes):
        current: list[tuple[int, ...]] = [(start,)]
        for length in range(1, max_length + 1):
            extended: list[tuple[int, ...]] = []
            for path in current:
                for node in adjacency[path[-1]]:
                    if node < start:
                        continue
                    if node == start:
                        cycles.append(path)
                    elif dist[node][start] <= max_length - length and node not in path[1:]:
                        extended.append(path + (node,))
            current = extended
    return cycles


def solve_cycle(
    instance: Instance,
    max_length: int,
    budget: int,
    variant: CycleVariant = CycleVariant.BUDGET,
    time_limit: float = 3600.0,
) -> tuple[RunInfo, list[str]]:
    """Build and solve the cycle formulation.

    Returns the run statistics and the report lines: the number of cycles
    (and of chain arcs), then the selected cycles and chain arcs.
    """
    variant = CycleVariant(variant)
    start = cpu_time()
    info = RunInfo(cpu_times=[0.0])
    with_chains = variant is CycleVariant.CHAINS

    if with_chains:
        cycles = [(cycle, 0) for cycle in enumerate_cycles(instance, max_length)]
        arcs = build_chain_arcs(instance, max_length, budget)
        report = [str(len(cycles)), str(len(arcs))]
    else:
        cap = 1 if variant is CycleVariant.UNIT_BUDGET else None
        cycles = enumerate_budget_cycles(instance, max_length, budget, cap)
        arcs = []
        report = [str(len(cycles))]
    info.cpu_times.append(cpu_time() - start)

    model = Model()
    cycle_vars = [model.add_var(VarType.BINARY) for _ in cycles]
    arc_vars = [model.add_var(VarType.BINARY) for _ in arcs]
    node_usage: list[list[tuple[int, float]]] = [[] for _ in range(instance.nb_nodes)]
    objective: list[tuple[int, float]] = []
    cost_terms: list[tuple[int, float]] = []
    for (cycle, cost), var in zip(cycles, cycle_vars):
        for node in cycle:
            node_usage[node].append((var, 1.0))
        objective.append((var, float(len(cycle))))
        cost_terms.append((var, float(cost)))

    if with_chains:
        add_chain_structure(
            model, arcs, arc_vars, instance.nb_nodes, max_length, budget, node_usage, objective
        )
    for terms in node_usage:
        model.add_constraint(terms, "<=", 1)
    if not with_chains:
        model.add_constraint(cost_terms, "<=", budget)
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
    for (cycle, cost), var in zip(cycles, cycle_vars):
        if solution.is_selected(var):
            text = " ".join(str(labels[node]) for node in cycle)
            report.append(text if with_chains else f"{text} with cost {cost}")
    if with_chains:
        report.append("-----")
        report.extend(
            format_chain_arc(instance, arc)
            for arc, var in zip(arcs, arc_vars)
            if solution.is_selected(var)
        )
    return info, report