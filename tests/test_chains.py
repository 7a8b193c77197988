import pytest

from kidneyx.chains import ChainArc, add_chain_structure, build_chain_arcs, format_chain_arc
from kidneyx.instance import Instance
from kidneyx.milp import Model, VarType


def _path():
    return Instance("path", [1, 2, 3], [(1, 2), (2, 3)])


def _solve(instance, max_length, arc_budget, model_budget):
    arcs = build_chain_arcs(instance, max_length, arc_budget)
    model = Model()
    variables = [model.add_var(VarType.BINARY) for _ in arcs]
    node_usage = [[] for _ in range(instance.nb_nodes)]
    objective = []
    cost = add_chain_structure(
        model, arcs, variables, instance.nb_nodes, max_length, model_budget, node_usage, objective
    )
    for terms in node_usage:
        model.add_constraint(terms, "<=", 1)
    model.set_objective(objective)
    return arcs, cost, node_usage, variables, model.solve()


def test_no_arcs_without_budget():
    assert build_chain_arcs(_path(), 3, 0) == []


def test_single_position_has_only_initial_closing_arcs():
    inst = _path()
    assert build_chain_arcs(inst, 1, 1) == [ChainArc(k, 0) for k in range(inst.nb_nodes)]


def test_arc_structure_invariants():
    inst = _path()
    max_length = 3
    arcs = build_chain_arcs(inst, max_length, 1)
    assert sum(1 for a in arcs if a.is_closing and a.position == 0) == inst.nb_nodes
    for arc in arcs:
        assert 0 <= arc.position < max_length
        if arc.is_closing:
            assert arc.head == -1
        else:
            assert arc.head_position == arc.position + 1
            assert (arc.tail, arc.head) in inst.arcs


def test_second_position_follows_reachable_tails():
    arcs = build_chain_arcs(_path(), 3, 1)
    assert [a for a in arcs if a.position == 1 and not a.is_closing] == [ChainArc(1, 1, 2, 2)]


def test_format_chain_arc():
    inst = Instance("two", [10, 20], [(10, 20)])
    assert format_chain_arc(inst, ChainArc(0, 0, 1, 1)) == "10 0 20 1"
    assert format_chain_arc(inst, ChainArc(1, 2)) == "20 2 -1 -1"


def test_chain_covers_whole_path():
    inst = _path()
    arcs, cost, _, _, solution = _solve(inst, 3, 1, 1)
    assert round(solution.objective) == inst.nb_nodes
    assert len(cost) == sum(1 for a in arcs if a.is_closing)


def test_zero_budget_forbids_chains():
    _, _, _, _, solution = _solve(_path(), 3, 1, 0)
    assert round(solution.objective) == 0


def test_node_usage_receives_arc_tails():
    arcs, _, node_usage, variables, _ = _solve(_path(), 3, 1, 1)
    for arc, var in zip(arcs, variables):
        assert (var, 1.0) in node_usage[arc.tail]


def test_variable_count_mismatch_is_rejected():
    inst = _path()
    arcs = build_chain_arcs(inst, 2, 1)
    with pytest.raises(ValueError):
        add_chain_structure(Model(), arcs, [], inst.nb_nodes, 2, 1, [[] for _ in range(3)], [])