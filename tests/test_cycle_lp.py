import pytest

from kidneyx.cycle import CycleVariant, solve_cycle
from kidneyx.cycle_lp import solve_cycle_reduced
from kidneyx.instance import Instance


def _two_cycle():
    return Instance(name="pair", labels=[1, 2], edges=[(1, 2), (2, 1)])


def _triangle_of_pairs():
    edges = [(1, 2), (2, 1), (2, 3), (3, 2), (1, 3), (3, 1)]
    return Instance(name="tri", labels=[1, 2, 3], edges=edges)


def _chain_instance():
    edges = [(1, 2), (2, 3), (3, 1), (3, 4)]
    return Instance(name="chain", labels=[3, 1, 2, 4], edges=edges)


def test_single_two_cycle_report():
    info, report = solve_cycle_reduced(_two_cycle(), 2, 0)
    assert report == ["1", "0", "1 2", "-----"]
    assert info.lb == info.ub == 2
    assert info.opt is True


def test_fractional_relaxation_lowers_target():
    info, report = solve_cycle_reduced(_triangle_of_pairs(), 2, 0)
    assert info.cont_ub == pytest.approx(3.0, abs=1e-6)
    assert info.lb == 2
    assert info.ub == info.lb
    assert info.opt is True
    selected = report[2:report.index("-----")]
    assert len(selected) == 1


def test_matches_full_chain_model():
    instance = _chain_instance()
    reduced, _ = solve_cycle_reduced(instance, 3, 1)
    full, _ = solve_cycle(instance, 3, 1, CycleVariant.CHAINS)
    assert reduced.lb == full.lb
    assert reduced.opt is True


def test_bounds_are_consistent():
    info, _ = solve_cycle_reduced(_chain_instance(), 3, 2)
    assert info.lb <= info.cont_ub + 1e-6
    assert info.lb == info.ub
    assert len(info.cpu_times) == 2
    assert all(t >= 0 for t in info.cpu_times)


def test_counts_in_report_match_structure():
    instance = _chain_instance()
    info, report = solve_cycle_reduced(instance, 3, 1)
    _, full_report = solve_cycle(instance, 3, 1, CycleVariant.CHAINS)
    assert report[:2] == full_report[:2]
    assert "-----" in report


def test_no_budget_means_no_chain_arcs():
    info, report = solve_cycle_reduced(_chain_instance(), 3, 0)
    assert report[1] == "0"
    assert all(len(line.split()) != 4 for line in report[report.index("-----") + 1:])
    assert info.lb == 3


def test_instance_without_edges():
    instance = Instance(name="empty", labels=[5, 6], edges=[])
    info, report = solve_cycle_reduced(instance, 3, 0)
    assert report == ["0", "0", "-----"]
    assert info.lb == 0
    assert info.opt is True