"""Kidney-exchange instances: reading, relabelling and run reporting."""

from __future__ import annotations

import re
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _leading_int(text: str, what: str) -> int:
    match = _LEADING_INT.match(text)
    if match is None:
        raise ValueError(f"cannot read {what} from {text!r}")
    return int(match.group(1))


def _first_marker(line: str, markers: str) -> str:
    for char in line:
        if char in markers:
            return char
    raise ValueError(f"expected one of {markers!r} in line {line!r}")


def _donor_label(line: str) -> int:
    _, _, rest = line.partition('"')
    label_text, _, _ = rest.partition('"')
    return _leading_int(label_text, "donor label")


def _recipient(line: str) -> int:
    head, _, _ = line.partition(",")
    tokens = head.split()
    if len(tokens) < 2:
        raise ValueError(f"cannot read recipient from {line!r}")
    return _leading_int(tokens[1], "recipient")


@dataclass
class Instance:
    """A compatibility graph whose nodes are donor/patient pairs.

    ``labels`` gives the original pair identifier of each internal index,
    ``edges`` holds the compatibilities as (donor, recipient) identifiers in
    file order.
    """

    name: str
    labels: list[int]
    edges: list[tuple[int, int]]
    index: dict[int, int] = field(init=False, repr=False)
    adjacency: list[list[int]] = field(init=False, repr=False)
    matrix: list[list[int]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.labels = list(self.labels)
        self.edges = [(int(t), int(h)) for t, h in self.edges]
        self.index = {label: i for i, label in enumerate(self.labels)}
        if len(self.index) != len(self.labels):
            raise ValueError("pair identifiers must be unique")
        for tail, head in self.edges:
            if tail not in self.index or head not in self.index:
                raise ValueError(f"edge ({tail}, {head}) refers to an unknown pair")
        n = len(self.labels)
        self.adjacency = [[] for _ in range(n)]
        self.matrix = [[0] * n for _ in range(n)]
        for u, v in self.arcs:
            self.adjacency[u].append(v)
            self.matrix[u][v] = 1

    @property
    def nb_nodes(self) -> int:
        return len(self.labels)

    @property
    def arcs(self) -> list[tuple[int, int]]:
        """The edges in file order, as internal indices."""
        return [(self.index[t], self.index[h]) for t, h in self.edges]

    def describe(self, max_length: int, budget: int) -> str:
        """Human-readable summary of the graph and the run parameters."""
        lines = [f"Instance {self.name}"]
        for label, successors in zip(self.labels, self.adjacency):
            lines.append(
                f"Pair {label} :" + "".join(f" {self.labels[v]}" for v in successors)
            )
        lines.append(f"K is {max_length} and B is {budget}")
        return "\n".join(lines) + "\n"


def parse_instance(text: str, name: str) -> Instance:
    """Read an instance in the line-oriented JSON layout of the data sets.

    Pairs are relabelled by decreasing degree (in + out); ties keep file order.
    """
    lines: Iterator[str] = iter(text.splitlines())

    def take() -> str:
        try:
            return next(lines)
        except StopIteration:
            raise ValueError("unexpected end of instance data") from None

    take()
    take()
    labels: list[int] = []
    edges: list[tuple[int, int]] = []
    while True:
        line = take()
        if _first_marker(line, '}"') == "}":
            break
        label = _donor_label(line)
        labels.append(label)
        for _ in range(4):
            take()
        if _first_marker(take(), '}"') == '"':
            while True:
                if _first_marker(take(), "]{") == "]":
                    take()
                    break
                edges.append((label, _recipient(take())))
                take()
                take()

    if len(set(labels)) != len(labels):
        raise ValueError("pair identifiers must be unique")
    degree = Counter({label: 0 for label in labels})
    for tail, head in edges:
        degree[tail] += 1
        degree[head] += 1
    ordered = sorted(labels, key=lambda label: degree[label], reverse=True)
    return Instance(name=name, labels=ordered, edges=edges)


def load_instance(path: str | Path, filename: str) -> Instance:
    """Load ``path + filename``; the instance is named after ``filename``."""
    text = Path(f"{path}{filename}").read_text()
    return parse_instance(text, filename)


def cpu_time() -> float:
    """Processor time used by this process, in seconds."""
    return time.process_time()


def wall_time() -> float:
    """Wall-clock time, in seconds since the epoch."""
    return time.time()


@dataclass
class RunInfo:
    """Statistics gathered while solving one instance."""

    opt: bool = False
    cpu_times: list[float] = field(default_factory=list)
    lb: int = 0
    ub: int = 0
    nb_vars: int = 0
    nb_cons: int = 0
    nb_nonzeros: int = 0
    cont_ub: float = 0.0

    def format_line(self, name: str) -> str:
        """One tab-separated result line."""
        fields = [name, str(int(self.opt))]
        fields += [f"{t:g}" for t in self.cpu_times]
        fields += [str(v) for v in (self.lb, self.ub, self.nb_vars, self.nb_cons, self.nb_nonzeros)]
        return "\t".join(fields) + "\n"

    def append_to(self, path: str | Path, name: str) -> None:
        """Append the result line to the file at ``path``."""
        with open(path, "a") as handle:
            handle.write(self.format_line(name))