"""Position-indexed arcs for chains started by non-directed donors.

A chain is a path through the compatibility graph whose first donation comes
from outside the pool. Chains are modelled with one arc per (edge, position)
plus a closing arc at every reachable position; each closing arc consumes one
unit of the chain budget.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import MutableSequence, Sequence

from .instance import Instance
from .milp import Model

NO_HEAD = -1

Term = tuple[int, float]


@dataclass(frozen=True)
class ChainArc:
    """Arc ``tail@position -> head@head_position``; closing arcs have no head."""

    tail: int
    position: int
    head: int = NO_HEAD
    head_position: int = NO_HEAD

    @property
    def is_closing(self) -> bool:
        return self.head_position == NO_HEAD


def build_chain_arcs(instance: Instance, max_length: int, budget: int) -> list[ChainArc]:
    """All chain arcs for chains of at most ``max_length`` positions.

    No arcs are built when the budget allows no chain at all.
    """
    if budget < 1:
        return []
    n = instance.nb_nodes
    edges = instance.arcs
    arcs = [ChainArc(node, 0) for node in range(n)]
    reachable = [True] * n
    for position in range(max_length - 1):
        reached = [False] * n
        for tail, head in edges:
            if reachable[tail]:
                reached[head] = True
                arcs.append(ChainArc(tail, position, head, position + 1))
        arcs.extend(ChainArc(node, position + 1) for node, hit in enumerate(reached) if hit)
        reachable = reached
    return arcs


def add_chain_structure(
    model: Model,
    arcs: Sequence[ChainArc],
    variables: Sequence[int],
    nb_nodes: int,
    max_length: int,
    budget: int,
    node_usage: Sequence[MutableSequence[Term]],
    objective: MutableSequence[Term],
) -> list[Term]:
    """Add the chain flow and budget constraints to ``model``.

    ``variables[i]`` is the model variable of ``arcs[i]``. The arc terms are
    appended to ``node_usage`` (indexed by node) and to ``objective``. Returns
    the terms counting the closing arcs, that is the chains used.
    """
    if len(arcs) != len(variables):
        raise ValueError("one variable is needed for each chain arc")
    inflow: dict[tuple[int, int], list[Term]] = defaultdict(list)
    outflow: dict[tuple[int, int], list[Term]] = defaultdict(list)
    touched: set[tuple[int, int]] = set()
    cost_terms: list[Term] = []

    for arc, var in zip(arcs, variables):
        node_usage[arc.tail].append((var, 1.0))
        if arc.is_closing:
            cost_terms.append((var, 1.0))
        else:
            key = (arc.head, arc.head_position)
            inflow[key].append((var, 1.0))
            touched.add(key)
        key = (arc.tail, arc.position)
        outflow[key].append((var, 1.0))
        touched.add(key)
        objective.append((var, 1.0))

    starts: list[Term] = []
    for node in range(nb_nodes):
        for position in range(1, max_length):
            key = (node, position)
            if key in touched:
                terms = inflow.get(key, []) + [(v, -c) for v, c in outflow.get(key, [])]
                model.add_constraint(terms, "==", 0)
        starts.extend(outflow.get((node, 0), []))

    model.add_constraint(starts + [(v, -c) for v, c in cost_terms], "==", 0)
    model.add_constraint(cost_terms, "<=", budget)
    return cost_terms


def format_chain_arc(instance: Instance, arc: ChainArc) -> str:
    """Report line for a selected chain arc, using pair identifiers."""
    tail = instance.labels[arc.tail]
    if arc.is_closing:
        return f"{tail} {arc.position} {arc.head} {arc.head_position}"
    return f"{tail} {arc.position} {instance.labels[arc.head]} {arc.head_position}"