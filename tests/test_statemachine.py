import time
from datetime import timedelta

import pytest

from tracecov.statemachine import (
    ActionKind,
    NullStateData,
    StateData,
    StateKind,
    StateMachineError,
    TestRuntimeError,
    TestState,
    TracerAction,
)


class Recorder(StateData):
    def __init__(self, start=None, init=None, wait=None, stop=None):
        self._start = start
        self._init = init
        self._wait = wait
        self._stop = stop
        self.calls = []

    def start(self):
        self.calls.append("start")
        return self._start

    def init(self):
        self.calls.append("init")
        return self._init

    def wait(self):
        self.calls.append("wait")
        return self._wait

    def stop(self):
        self.calls.append("stop")
        return self._stop


def test_constructors_have_kinds():
    assert TestState.start_state().kind is StateKind.START
    assert TestState.wait_state().kind is StateKind.WAITING
    end = TestState.end(4)
    assert end.kind is StateKind.END
    assert end.code == 4


def test_is_finished_only_for_end():
    assert TestState.end(0).is_finished()
    assert not TestState.start_state().is_finished()
    assert not TestState.wait_state().is_finished()
    assert not TestState(StateKind.INITIALISE).is_finished()
    assert not TestState(StateKind.STOPPED).is_finished()


def test_start_transitions_when_data_reports():
    data = Recorder(start=TestState(StateKind.INITIALISE))
    nxt = TestState.start_state().step(data, 60)
    assert nxt == TestState(StateKind.INITIALISE)
    assert data.calls == ["start"]


def test_start_stays_while_waiting():
    state = TestState.start_state()
    assert state.step(Recorder(), 60) == state


def test_start_times_out():
    state = TestState(StateKind.START, start_time=time.monotonic() - 10)
    with pytest.raises(TestRuntimeError, match="Timed out when starting test"):
        state.step(Recorder(), 1)


def test_waiting_times_out_with_timedelta():
    state = TestState(StateKind.WAITING, start_time=time.monotonic() - 10)
    with pytest.raises(TestRuntimeError, match="Timed out waiting for test response"):
        state.step(Recorder(), timedelta(seconds=1))


def test_waiting_stays_and_transitions():
    state = TestState.wait_state()
    assert state.step(Recorder(), 60) == state
    data = Recorder(wait=TestState(StateKind.STOPPED))
    assert state.step(data, 60).kind is StateKind.STOPPED


def test_initialise_and_stopped_delegate():
    waiting = TestState.wait_state()
    data = Recorder(init=waiting, stop=TestState.end(2))
    assert TestState(StateKind.INITIALISE).step(data, 60) == waiting
    assert TestState(StateKind.STOPPED).step(data, 60) == TestState.end(2)
    assert data.calls == ["init", "stop"]


def test_end_is_terminal():
    data = Recorder()
    assert TestState.end(7).step(data, 60) == TestState.end(7)
    assert data.calls == []


def test_tracer_action_data():
    assert TracerAction(ActionKind.CONTINUE, 12).data() == 12
    assert TracerAction(ActionKind.TRY_CONTINUE, 5).data() == 5
    assert TracerAction(ActionKind.STEP, 3).data() == 3
    assert TracerAction(ActionKind.DETACH, 9).data() == 9
    assert TracerAction(ActionKind.NOTHING, 9).data() is None


@pytest.mark.parametrize("method", ["start", "init", "wait", "stop"])
def test_null_state_data_fails(method):
    with pytest.raises(StateMachineError, match="No valid coverage collector"):
        getattr(NullStateData(), method)()


def test_null_state_data_through_step():
    with pytest.raises(StateMachineError):
        TestState.start_state().step(NullStateData(), 60)