import pytest

from kidneyx.eef import (
    EEFVariant,
    budget_graph_edges,
    graph_edges,
    solve_eef,
)
from kidneyx.instance import Instance


def _two_cycle():
    return Instance(name="two", labels=[1, 2], edges=[(1, 2), (2, 1)])


def _path():
    return Instance(name="path", labels=[1, 2], edges=[(1, 2)])


def _triangle_with_extra():
    return Instance(
        name="tri",
        labels=[1, 2, 3, 4],
        edges=[(1, 2), (2, 3), (3, 1), (3, 4), (4, 3)],
    )


def test_graph_edges_two_cycle():
    assert graph_edges(_two_cycle(), 2) == [[(0, 1), (1, 0)], []]


def test_graph_edges_path_has_no_cycle_arcs():
    assert graph_edges(_path(), 2) == [[], []]


def test_zero_budget_matches_plain_graph_edges():
    inst = _triangle_with_extra()
    for length in (2, 3):
        assert budget_graph_edges(inst, length, 0) == graph_edges(inst, length)


def test_budget_edges_grow_with_budget():
    inst = _triangle_with_extra()
    small = budget_graph_edges(inst, 3, 0)
    large = budget_graph_edges(inst, 3, 1)
    for few, many in zip(small, large):
        assert set(few) <= set(many)


def test_graph_edges_start_at_smallest_node():
    inst = _triangle_with_extra()
    for copy, edges in enumerate(graph_edges(inst, 3)):
        for u, v in edges:
            assert u >= copy and v >= copy


def test_invalid_length_rejected():
    with pytest.raises(ValueError):
        graph_edges(_two_cycle(), 0)
    with pytest.raises(ValueError):
        solve_eef(_two_cycle(), 0, 0)


def test_solve_two_cycle():
    info, report = solve_eef(_two_cycle(), 2, 0)
    assert info.lb == 2
    assert info.opt
    assert report == ["1 1 2", "1 2 1"]
    assert info.nb_vars == 2


def test_budget_closes_missing_arc():
    info, report = solve_eef(_path(), 2, 1)
    assert info.lb == 2
    assert sorted(report) == ["1 1 2", "1 2 1"]


def test_no_budget_no_exchange_on_path():
    info, report = solve_eef(_path(), 2, 0)
    assert info.lb == 0
    assert report == []


def test_unit_budget_zero_matches_budget_variant():
    inst = _triangle_with_extra()
    plain, _ = solve_eef(inst, 3, 0, EEFVariant.BUDGET)
    unit, _ = solve_eef(inst, 3, 0, EEFVariant.UNIT_BUDGET)
    assert plain.lb == unit.lb
    assert plain.nb_vars == unit.nb_vars


def test_triangle_and_two_cycle_cannot_share_node():
    info, _ = solve_eef(_triangle_with_extra(), 3, 0)
    assert info.lb == 3
    assert info.opt


def test_chain_variant_uses_chain():
    info, report = solve_eef(_path(), 2, 1, "chains")
    assert report == ["4", "-----", "1 0 2 1", "2 1 -1 -1"]
    assert info.lb == 2


def test_chain_variant_without_budget_only_cycles():
    info, report = solve_eef(_two_cycle(), 2, 0, EEFVariant.CHAINS)
    assert report[0] == "0"
    assert report[-1] == "-----"
    assert info.lb == 2
    assert info.nb_vars == sum(len(e) for e in graph_edges(_two_cycle(), 2))