# kidneyx

Integer programming models for the kidney exchange problem.

An instance is a compatibility graph. Every node is an incompatible
patient–donor pair. An arc from one pair to another means the donor of the
first pair can give to the patient of the second. The aim is to pick
node-disjoint exchanges that cover as many pairs as possible. Exchanges are
cycles of at most `K` pairs and, in some variants, chains. A budget `B`
limits either the "non-matching" steps (arcs missing from the graph, each
costing one unit) or the number of chains started by non-directed donors.

## Formulations

- **Cycle formulation**, `kidneyx.cycle.solve_cycle`: every feasible cycle
  becomes one binary variable. The variants, given as `CycleVariant`, are:
  - `BUDGET`: cycles may use missing arcs within the budget;
  - `UNIT_BUDGET`: the same, but each cycle may use at most one missing arc;
  - `CHAINS`: cycles use existing arcs only, and the budget bounds the
    number of chains.
- **Extended edge formulation**, `kidneyx.eef.solve_eef`: one copy of the
  graph for each lowest-index pair in a cycle. It has the same three variants
  as `EEFVariant`. `UNIT_BUDGET` also limits the budget used inside each
  graph copy.
- **Position-indexed edge formulation**, `kidneyx.pief.solve_pief`: arcs of
  each graph copy carry the position at which they are used. Its variants are
  given as `PIEFVariant`.

In the chain variants, chains are built by `kidneyx.chains.build_chain_arcs`
as position-indexed arcs, with a closing arc at every reachable position.

Two formulations also have a two-phase version with chains:
`kidneyx.cycle_lp.solve_cycle_reduced` and
`kidneyx.eef_lp.solve_eef_reduced`. Each solves the LP relaxation first, then
leaves out variables whose reduced cost rules them out for the current target
value. It lowers the integer target by one until the reduced model reaches it.

Models are built with `kidneyx.milp.Model`. This is a small maximisation
model over variables in [0, 1], solved with the HiGHS solver in SciPy
(`scipy.optimize.milp` and `linprog`).

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

The `kidneyx` command loads the instance at `path + filename` and prints its
compatibility graph, the model sizes and the selected exchanges. It then
appends a tab-separated results line to the output file:

```
kidneyx --help
kidneyx data/ instance.json results.tsv 3 1
kidneyx data/ instance.json results.tsv 3 1 --formulation pief-chains
```

The positional arguments are the directory prefix, the file name, the results
file, `K` and `B`. `--formulation` selects one of the following; the default
is `cycle`:

- `cycle`, `cycle-unit`, `cycle-chains`
- `cycle-chains-lp` (the two-phase cycle version)
- `eef`, `eef-unit`, `eef-chains`
- `pief`, `pief-unit`, `pief-chains`

Each results line holds the following fields, in order:

- the instance name;
- `1` or `0` for whether optimality was proved;
- the total and model-building CPU times;
- the lower and upper bounds;
- the numbers of variables, constraints and non-zeros of the model.

If the file cannot be read, or the data or arguments are invalid, the command
prints a message to standard error and exits with status 1.

## Python use

```python
from kidneyx.instance import load_instance
from kidneyx.cycle import CycleVariant, enumerate_cycles, solve_cycle

instance = load_instance("data/", "instance.json")
print(instance.describe(3, 1), end="")

cycles = enumerate_cycles(instance, 3)
print(len(cycles), "cycles of length at most 3")

info, report = solve_cycle(instance, 3, 1, CycleVariant.BUDGET, time_limit=60)
print(info.lb, info.ub, info.opt)
print("\n".join(report))
info.append_to("results.tsv", instance.name)
```

`parse_instance(text, name)` reads the same layout from a string, and raises
`ValueError` on malformed data. Pairs are renumbered internally by decreasing
degree. `Instance.labels` maps internal indices back to the identifiers in
the file, and all report lines use those identifiers.

Every solver returns a `RunInfo` together with a list of report lines.
`RunInfo.format_line` gives the results line, and `RunInfo.append_to` writes
it to a file.

## Limits

The only solver setting exposed is the time limit, in seconds, which defaults
to 3600. The relative MIP gap is fixed at zero. There is no memory limit,
thread setting or choice of solver algorithm. The command line does not offer
the two-phase edge formulation; call `solve_eef_reduced` from Python instead.