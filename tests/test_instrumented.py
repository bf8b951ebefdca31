import subprocess
import sys

import pytest

from tracecov.instrumented import (
    InstrumentedData,
    ProcessHandle,
    create_instrumented_machine,
)
from tracecov.statemachine import (
    RunError,
    StateKind,
    StateMachineError,
    TestCoverageError,
    TestState,
)
from tracecov.traces import TraceMap


class SignalledChild:
    def wait(self):
        return -9


def run_python(code, cwd):
    return subprocess.Popen([sys.executable, "-c", code], cwd=cwd)


def test_start_goes_to_waiting(tmp_path):
    data = InstrumentedData(None, tmp_path, TraceMap())
    assert data.start().kind is StateKind.WAITING


def test_exit_code_is_reported(tmp_path):
    child = run_python("import sys; sys.exit(3)", tmp_path)
    handle = ProcessHandle(child=child, path=tmp_path / "bin")
    data = InstrumentedData(handle, tmp_path, TraceMap())
    assert data.wait() == TestState.end(3)
    assert data.process is None


def test_second_wait_fails(tmp_path):
    child = run_python("pass", tmp_path)
    data = InstrumentedData(ProcessHandle(child, tmp_path / "bin"), tmp_path, TraceMap())
    assert data.wait() == TestState.end(0)
    with pytest.raises(TestCoverageError, match="Test was not launched"):
        data.wait()


def test_new_profraws_collected(tmp_path):
    old = tmp_path / "old.profraw"
    old.touch()
    (tmp_path / "notes.txt").touch()
    child = run_python("open('new.profraw', 'w').close()", tmp_path)
    handle = ProcessHandle(child, tmp_path / "bin", existing_profraws={old})
    data = InstrumentedData(handle, tmp_path, TraceMap())
    data.wait()
    assert data.profraws == [tmp_path / "new.profraw"]


def test_signalled_process_ends_with_one(tmp_path):
    handle = ProcessHandle(SignalledChild(), tmp_path / "bin")
    data = InstrumentedData(handle, tmp_path, TraceMap())
    assert data.wait() == TestState.end(1)


def test_missing_root_raises_run_error(tmp_path):
    child = run_python("pass", tmp_path)
    data = InstrumentedData(
        ProcessHandle(child, tmp_path / "bin"), tmp_path / "missing", TraceMap()
    )
    with pytest.raises(RunError):
        data.wait()


def test_init_and_stop_are_invalid(tmp_path):
    data = InstrumentedData(None, tmp_path, TraceMap())
    with pytest.raises(StateMachineError):
        data.init()
    with pytest.raises(StateMachineError):
        data.stop()


def test_create_with_process(tmp_path):
    child = run_python("pass", tmp_path)
    traces = TraceMap()
    handle = ProcessHandle(child, tmp_path / "bin")
    state, data = create_instrumented_machine(handle, traces, tmp_path)
    assert state.kind is StateKind.START
    assert data.process is handle
    assert data.traces is traces
    child.wait()


def test_create_without_process(tmp_path):
    state, data = create_instrumented_machine(1234, TraceMap(), tmp_path)
    assert state == TestState.end(1)
    assert data.process is None


def test_full_run_through_steps(tmp_path):
    child = run_python("import sys; sys.exit(2)", tmp_path)
    state, data = create_instrumented_machine(
        ProcessHandle(child, tmp_path / "bin"), TraceMap(), tmp_path
    )
    steps = 0
    while not state.is_finished():
        state = state.step(data, 60)
        steps += 1
    assert state == TestState.end(2)
    assert steps == 2