"""Coverage traces: per-line statistics and a map of traces keyed by source file."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from os import PathLike
from pathlib import Path

logger = logging.getLogger(__name__)

_ALIGN_MASK = ~0x7


@dataclass(frozen=True)
class LogicState:
    """Tracks whether a logical condition has been seen true and/or false."""

    been_true: bool = False
    been_false: bool = False

    def __add__(self, other: LogicState) -> LogicState:
        if not isinstance(other, LogicState):
            return NotImplemented
        return LogicState(
            been_true=self.been_true or other.been_true,
            been_false=self.been_false or other.been_false,
        )

    @property
    def observed(self) -> int:
        """Number of outcomes (true, false) that have been observed."""
        return int(self.been_true) + int(self.been_false)


class CoverageStat:
    """Base class for the kind of coverage data gathered by a trace.

    Adding two stats of the same kind combines them; adding stats of
    different kinds keeps the left-hand operand unchanged.
    """

    __slots__ = ()

    @property
    def coverable(self) -> int:
        """Number of coverable points this stat represents."""
        raise NotImplementedError

    @property
    def covered(self) -> int:
        """Number of those points that have been covered."""
        raise NotImplementedError

    def __str__(self) -> str:
        return ""


@dataclass(frozen=True)
class LineStat(CoverageStat):
    """Line coverage: how many times the line was hit."""

    hits: int = 0

    def __add__(self, other: CoverageStat) -> CoverageStat:
        if isinstance(other, LineStat):
            return LineStat(self.hits + other.hits)
        return self

    def __str__(self) -> str:
        return f"hits: {self.hits}"

    @property
    def coverable(self) -> int:
        return 1

    @property
    def covered(self) -> int:
        return 1 if self.hits > 0 else 0


@dataclass(frozen=True)
class BranchStat(CoverageStat):
    """Branch coverage: whether the branch has been taken both ways."""

    state: LogicState = field(default_factory=LogicState)

    def __add__(self, other: CoverageStat) -> CoverageStat:
        if isinstance(other, BranchStat):
            return BranchStat(self.state + other.state)
        return self

    def __str__(self) -> str:
        return ""

    @property
    def coverable(self) -> int:
        return 2

    @property
    def covered(self) -> int:
        return self.state.observed


@dataclass(frozen=True)
class ConditionStat(CoverageStat):
    """Condition coverage: each boolean sub-condition true and false."""

    states: tuple[LogicState, ...] = ()

    def __add__(self, other: CoverageStat) -> CoverageStat:
        if isinstance(other, CoverageStat):
            return self
        return NotImplemented

    def __str__(self) -> str:
        return ""

    @property
    def coverable(self) -> int:
        return 2 * len(self.states)

    @property
    def covered(self) -> int:
        return sum(state.observed for state in self.states)


@dataclass
class Trace:
    """A coverage point at a line of a source file.

    Traces compare equal when every field matches, but order by line only.
    """

    line: int
    address: set[int] = field(default_factory=set)
    length: int = 0
    stats: CoverageStat = field(default_factory=LineStat)
    fn_name: str | None = None

    @classmethod
    def stub(cls, line: int) -> Trace:
        """A trace with no addresses and zero hits at the given line."""
        return cls(line=line)

    def __lt__(self, other: Trace) -> bool:
        if not isinstance(other, Trace):
            return NotImplemented
        return self.line < other.line

    def _copy(self) -> Trace:
        return replace(self, address=set(self.address))


@dataclass(frozen=True, order=True)
class Location:
    """A source file and line."""

    file: Path
    line: int


def amount_coverable(traces: Iterable[Trace]) -> int:
    """Amount of data coverable in the given traces."""
    return sum(t.stats.coverable for t in traces)


def amount_covered(traces: Iterable[Trace]) -> int:
    """Amount of data covered in the given traces."""
    return sum(t.stats.covered for t in traces)


def coverage_percentage(traces: Iterable[Trace]) -> float:
    """Covered fraction, from 0.0 to 1.0; NaN when nothing is coverable."""
    traces = list(traces)
    coverable = amount_coverable(traces)
    if coverable == 0:
        return math.nan
    return amount_covered(traces) / coverable


class TraceMap:
    """Program traces mapped to source files, kept in path order."""

    def __init__(self) -> None:
        self._traces: dict[Path, list[Trace]] = {}

    def __repr__(self) -> str:
        return f"TraceMap({dict(self)!r})"

    def _items(self) -> list[tuple[Path, list[Trace]]]:
        return sorted(self._traces.items(), key=lambda item: item[0])

    def is_empty(self) -> bool:
        """True if no files are recorded."""
        return not self._traces

    def __iter__(self) -> Iterator[tuple[Path, list[Trace]]]:
        for path, traces in self._items():
            yield path, list(traces)

    def merge(self, other: TraceMap) -> None:
        """Add missing records from ``other`` and combine stats of matching ones."""
        for path, values in other._items():
            existing = self._traces.get(path)
            if existing is None:
                self._traces[path] = [t._copy() for t in values]
                continue
            for value in values:
                match = next(
                    (
                        t
                        for t in existing
                        if t.line == value.line and t.address == value.address
                    ),
                    None,
                )
                if match is not None:
                    match.stats = match.stats + value.stats
                else:
                    existing.append(value._copy())
                    existing.sort()

    def dedup(self) -> None:
        """Collapse traces sharing a line into one, combining their stats.

        The addresses of the dropped duplicates are lost.
        """
        for values in self._traces.values():
            merged: dict[int, CoverageStat] = {}
            dirty: set[int] = set()
            for trace in values:
                if trace.line in merged:
                    dirty.add(trace.line)
                    merged[trace.line] = merged[trace.line] + trace.stats
                else:
                    merged[trace.line] = trace.stats
            if not dirty:
                continue
            kept: list[Trace] = []
            seen: set[int] = set()
            for trace in values:
                if trace.line in dirty:
                    if trace.line in seen:
                        continue
                    seen.add(trace.line)
                    trace.stats = merged[trace.line]
                kept.append(trace)
            values[:] = kept

    def add_trace(self, file: str | PathLike[str], trace: Trace) -> None:
        """Add a trace for the given file."""
        path = Path(file)
        traces = self._traces.setdefault(path, [])
        traces.append(trace)
        traces.sort()

    def add_file(self, file: str | PathLike[str]) -> None:
        """Record a file with no traces, if it is not already present."""
        self._traces.setdefault(Path(file), [])

    def get_trace(self, address: int) -> Trace | None:
        """The first trace at the given address, or None."""
        return next((t for t in self.all_traces() if address in t.address), None)

    def increment_hit(self, address: int) -> None:
        """Increment the hit count of every line trace at the given address."""
        for trace in self.all_traces():
            if address in trace.address and isinstance(trace.stats, LineStat):
                logger.debug("Incrementing hit count for trace")
                trace.stats = LineStat(trace.stats.hits + 1)

    def get_location(self, address: int) -> Location | None:
        """Location of the trace whose 8-byte aligned address matches, or None."""
        for path, traces in self._items():
            for trace in traces:
                if any((a & _ALIGN_MASK) == address for a in trace.address):
                    return Location(file=path, line=trace.line)
        return None

    def contains_location(self, file: str | PathLike[str], line: int) -> bool:
        """True if a trace exists at the given file and line."""
        traces = self._traces.get(Path(file))
        return traces is not None and any(t.line == line for t in traces)

    def contains_file(self, file: str | PathLike[str]) -> bool:
        """True if the file is among the traces."""
        return Path(file) in self._traces

    def get_child_traces(self, root: str | PathLike[str]) -> list[Trace]:
        """All traces in files at or below ``root``."""
        root = Path(root)
        return [
            trace
            for path, traces in self._items()
            if path == root or path.is_relative_to(root)
            for trace in traces
        ]

    def get_traces(self, root: str | PathLike[str]) -> list[Trace]:
        """Traces directly in folder ``root`` (or in ``root`` itself if it is a file)."""
        root = Path(root)
        if root.is_file():
            return self.get_child_traces(root)
        return [
            trace
            for path, traces in self._items()
            if path != path.parent and path.parent == root
            for trace in traces
        ]

    def all_traces(self) -> list[Trace]:
        """Every trace, in path order."""
        return [trace for _, traces in self._items() for trace in traces]

    def files(self) -> list[Path]:
        """Every recorded file, in path order."""
        return [path for path, _ in self._items()]

    def coverable_in_path(self, path: str | PathLike[str]) -> int:
        """Coverable points at or below ``path``."""
        return amount_coverable(self.get_child_traces(path))

    def covered_in_path(self, path: str | PathLike[str]) -> int:
        """Covered points at or below ``path``."""
        return amount_covered(self.get_child_traces(path))

    def total_coverable(self) -> int:
        """Total coverable points across all files."""
        return amount_coverable(self.all_traces())

    def total_covered(self) -> int:
        """Total covered points across all files."""
        return amount_covered(self.all_traces())

    def coverage_percentage(self) -> float:
        """Coverage from 0.0 to 1.0 across all files."""
        return coverage_percentage(self.all_traces())