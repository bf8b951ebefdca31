# tracecov

Bookkeeping for code coverage data, and a small state machine that drives a
test run while coverage is collected.

## Installing

```
pip install tracecov
```

To run the test suite, install the `test` extra:

```
pip install "tracecov[test]"
```

## Coverage traces

`tracecov.traces` holds the data model.

- `LineStat`, `BranchStat` and `ConditionStat` are the kinds of
  `CoverageStat`. Stats of the same kind add together: line hit counts are
  summed and branch states are combined with `LogicState` addition. Adding
  stats of different kinds, or adding to a `ConditionStat`, keeps the
  left-hand stat unchanged. `str(LineStat(3))` is `"hits: 3"`.
- `LogicState(been_true, been_false)` records which outcomes of a condition
  have been seen; adding two states ORs each flag.
- A `Trace` is one instrumentation point: a source `line`, the set of
  `address` values that map to it, a `length`, its `stats` and an optional
  `fn_name`. Traces sort by line only. `Trace.stub(line)` makes a trace with
  no addresses and zero hits.
- A `Location` is a source `file` and `line`.
- A `TraceMap` maps source files to their sorted traces. Iterating it yields
  `(path, traces)` pairs in path order.

```python
from pathlib import Path
from tracecov.traces import LineStat, Trace, TraceMap

first = TraceMap()
first.add_trace(Path("src/lib.rs"), Trace(line=1, address={5}, length=0, stats=LineStat(1)))

second = TraceMap()
second.add_trace(Path("src/lib.rs"), Trace(line=1, address=set(), length=0, stats=LineStat(2)))

first.merge(second)      # two traces on line 1, with different addresses
first.dedup()            # collapsed into one trace with 3 hits
print(first.total_covered(), first.total_coverable(), first.coverage_percentage())
# 1 1 1.0
```

`merge` combines the stats of traces that share both line and addresses and
adds the rest; `dedup` collapses traces on the same line into the first one,
dropping the others' addresses.

Other `TraceMap` methods:

- `is_empty()`, `add_file(file)`, `contains_file(file)`, `files()`
- `get_trace(address)`: first trace holding the address, or `None`
- `increment_hit(address)`: adds one hit to every line trace at the address
- `get_location(address)`: `Location` of the trace with an address whose
  8-byte-aligned value equals `address`, or `None`
- `contains_location(file, line)`
- `get_child_traces(root)`: traces of files at or below `root`
- `get_traces(root)`: traces of files directly inside the folder `root`, or
  of `root` itself if it is an existing file
- `all_traces()`, `coverable_in_path(path)`, `covered_in_path(path)`,
  `total_coverable()`, `total_covered()`, `coverage_percentage()`

The free functions `amount_coverable`, `amount_covered` and
`coverage_percentage` work on any iterable of traces. A line counts one
coverable point, a branch two and a condition two per sub-condition.
`coverage_percentage` returns a fraction from 0.0 to 1.0, or NaN when nothing
is coverable.

## Running a test under the state machine

`tracecov.statemachine` defines `TestState` (with kinds from `StateKind`:
START, INITIALISE, WAITING, STOPPED, END), `TracerAction` (with kinds from
`ActionKind`) and the abstract `StateData` interface with its `start`,
`init`, `wait` and `stop` steps. Call `state.step(data, timeout)` until
`state.is_finished()` is true; `timeout` is in seconds or a `timedelta`, and a
start or wait that outlasts it raises `TestRuntimeError`. An ended state
carries the exit code in `state.code`.

`tracecov.factory.create_state_machine(test, traces, engine, root)` picks a
collector for a `TraceEngine` (`AUTO`, `PTRACE`, `LLVM`). With `LLVM` it
calls `tracecov.instrumented.create_instrumented_machine(test, traces, root)`,
which takes a `ProcessHandle` for a test process already started. Waiting on
it waits for the process to exit, logs any new `.profraw` files in `root`
(also kept in the collector's `profraws` list) and ends with the process's
exit code, or 1 if it was killed by a signal. Passing anything other than a
`ProcessHandle` gives an ended state with code 1.

```python
import subprocess
from pathlib import Path
from tracecov.factory import TraceEngine, create_state_machine
from tracecov.instrumented import ProcessHandle
from tracecov.traces import TraceMap

root = Path(".")
handle = ProcessHandle(
    child=subprocess.Popen(["./target/debug/my-tests"]),
    path=Path("target/debug/my-tests"),
    existing_profraws=set(root.glob("*.profraw")),
)
state, machine = create_state_machine(handle, TraceMap(), TraceEngine.LLVM, root)
while not state.is_finished():
    state = state.step(machine, timeout=60.0)
print("exit code:", state.code)
```

Failures are raised as subclasses of `RunError`: `TestRuntimeError`,
`TestCoverageError` and `StateMachineError`.

## What this package does not do

- There is no breakpoint-based collector. `TraceEngine.PTRACE` and
  `TraceEngine.AUTO` give an ended state (exit code 1) and a
  `NullStateData`, whose every step raises `StateMachineError`.
- It does not build or launch test binaries; you start the process and hand
  it over in a `ProcessHandle`.
- It does not read `.profraw` files or debug information, so it never fills
  a `TraceMap` by itself; traces are added through the `TraceMap` methods.
- There is no command-line tool and no report output.