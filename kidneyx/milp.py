"""A small mixed-integer linear model solved with HiGHS through SciPy.

Every model maximises its objective; all variables lie in [0, 1].
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Union

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, linprog, milp
from scipy.sparse import csr_matrix

EPSILON = 0.001

Terms = Union[Mapping[int, float], Iterable[tuple[int, float]]]

_SENSES = ("<=", "==", ">=")


class VarType(Enum):
    BINARY = "binary"
    CONTINUOUS = "continuous"


class Status(Enum):
    OPTIMAL = "optimal"
    TIME_LIMIT = "time_limit"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    ERROR = "error"


_STATUS_CODES = {
    0: Status.OPTIMAL,
    1: Status.TIME_LIMIT,
    2: Status.INFEASIBLE,
    3: Status.UNBOUNDED,
}


@dataclass(frozen=True)
class _Constraint:
    coefficients: dict[int, float]
    sense: str
    rhs: float


@dataclass(frozen=True)
class Solution:
    """Outcome of :meth:`Model.solve`."""

    status: Status
    objective: float | None = None
    bound: float | None = None
    values: tuple[float, ...] | None = None
    reduced_costs: tuple[float, ...] | None = None

    @property
    def has_solution(self) -> bool:
        return self.values is not None

    def value(self, var: int) -> float:
        if self.values is None:
            raise ValueError("no solution available")
        return self.values[var]

    def reduced_cost(self, var: int) -> float:
        """Reduced cost in the maximisation sense (LP models only)."""
        if self.reduced_costs is None:
            raise ValueError("reduced costs are only available for solved LP models")
        return self.reduced_costs[var]

    def is_selected(self, var: int) -> bool:
        """True when the variable rounds to one."""
        return math.ceil(self.value(var) - EPSILON) == 1


class Model:
    """Maximisation model over variables bounded by 0 and 1."""

    def __init__(self) -> None:
        self._types: list[VarType] = []
        self._constraints: list[_Constraint] = []
        self._objective: dict[int, float] = {}

    def add_var(self, vtype: VarType = VarType.BINARY) -> int:
        self._types.append(VarType(vtype))
        return len(self._types) - 1

    def _collect(self, terms: Terms) -> dict[int, float]:
        pairs = terms.items() if isinstance(terms, Mapping) else terms
        merged: dict[int, float] = {}
        for var, coef in pairs:
            if not 0 <= var < len(self._types):
                raise ValueError(f"unknown variable {var}")
            merged[var] = merged.get(var, 0.0) + float(coef)
        return {var: coef for var, coef in merged.items() if coef != 0.0}

    def add_constraint(self, terms: Terms, sense: str, rhs: float) -> None:
        if sense not in _SENSES:
            raise ValueError(f"unknown constraint sense {sense!r}")
        self._constraints.append(_Constraint(self._collect(terms), sense, float(rhs)))

    def set_objective(self, terms: Terms) -> None:
        """Set the linear objective to maximise."""
        self._objective = self._collect(terms)

    def num_vars(self) -> int:
        return len(self._types)

    def num_constraints(self) -> int:
        return len(self._constraints)

    def num_nonzeros(self) -> int:
        return sum(len(c.coefficients) for c in self._constraints)

    def _matrix(self, constraints: list[_Constraint], sign: list[float]) -> csr_matrix:
        rows, cols, data = [], [], []
        for row, (con, s) in enumerate(zip(constraints, sign)):
            for var, coef in con.coefficients.items():
                rows.append(row)
                cols.append(var)
                data.append(s * coef)
        return csr_matrix((data, (rows, cols)), shape=(len(constraints), self.num_vars()))

    def _cost(self) -> np.ndarray:
        cost = np.zeros(self.num_vars())
        for var, coef in self._objective.items():
            cost[var] = -coef
        return cost

    def solve(self, time_limit: float | None = None) -> Solution:
        """Optimise the model, stopping after ``time_limit`` seconds if given."""
        if self.num_vars() == 0:
            return self._solve_empty()
        if any(t is VarType.BINARY for t in self._types):
            return self._solve_milp(time_limit)
        return self._solve_lp(time_limit)

    def _solve_empty(self) -> Solution:
        checks = {"<=": lambda r: 0.0 <= r, "==": lambda r: r == 0.0, ">=": lambda r: 0.0 >= r}
        if all(checks[c.sense](c.rhs) for c in self._constraints):
            return Solution(Status.OPTIMAL, 0.0, 0.0, ())
        return Solution(Status.INFEASIBLE)

    def _solve_milp(self, time_limit: float | None) -> Solution:
        n = self.num_vars()
        constraints = []
        if self._constraints:
            matrix = self._matrix(self._constraints, [1.0] * len(self._constraints))
            lower = [c.rhs if c.sense in ("==", ">=") else -np.inf for c in self._constraints]
            upper = [c.rhs if c.sense in ("==", "<=") else np.inf for c in self._constraints]
            constraints.append(LinearConstraint(matrix, lower, upper))
        options: dict[str, float] = {"mip_rel_gap": 0.0}
        if time_limit is not None:
            options["time_limit"] = max(0.0, float(time_limit))
        integrality = np.array([1 if t is VarType.BINARY else 0 for t in self._types])
        res = milp(
            self._cost(),
            integrality=integrality,
            bounds=Bounds(np.zeros(n), np.ones(n)),
            constraints=constraints,
            options=options,
        )
        status = _STATUS_CODES.get(res.status, Status.ERROR)
        if res.x is None:
            return Solution(status)
        objective = -float(res.fun)
        dual_bound = getattr(res, "mip_dual_bound", None)
        if dual_bound is not None and np.isfinite(dual_bound):
            bound = -float(dual_bound)
        else:
            bound = objective
        return Solution(status, objective, bound, tuple(float(v) for v in res.x))

    def _solve_lp(self, time_limit: float | None) -> Solution:
        inequalities = [c for c in self._constraints if c.sense != "=="]
        equalities = [c for c in self._constraints if c.sense == "=="]
        kwargs: dict = {}
        if inequalities:
            signs = [1.0 if c.sense == "<=" else -1.0 for c in inequalities]
            kwargs["A_ub"] = self._matrix(inequalities, signs)
            kwargs["b_ub"] = np.array([s * c.rhs for s, c in zip(signs, inequalities)])
        if equalities:
            kwargs["A_eq"] = self._matrix(equalities, [1.0] * len(equalities))
            kwargs["b_eq"] = np.array([c.rhs for c in equalities])
        options = {}
        if time_limit is not None:
            options["time_limit"] = max(0.0, float(time_limit))
        res = linprog(self._cost(), bounds=(0, 1), method="highs", options=options, **kwargs)
        status = _STATUS_CODES.get(res.status, Status.ERROR)
        if res.x is None:
            return Solution(status)
        objective = -float(res.fun)
        reduced = -(np.asarray(res.lower.marginals) + np.asarray(res.upper.marginals))
        return Solution(
            status,
            objective,
            objective,
            tuple(float(v) for v in res.x),
            tuple(float(r) for r in reduced),
        )