"""States of a traced test run and the interface that drives them."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class RunError(Exception):
    """Base error raised while running a test under coverage."""


class TestRuntimeError(RunError):
    """The test misbehaved or timed out while running."""

    __test__ = False


class TestCoverageError(RunError):
    """Coverage could not be collected from the test."""

    __test__ = False


class StateMachineError(RunError):
    """The state machine was driven in a way it cannot handle."""


class StateKind(Enum):
    """The phases a traced test passes through."""

    START = "start"
    INITIALISE = "initialise"
    WAITING = "waiting"
    STOPPED = "stopped"
    END = "end"


def _seconds(timeout: float | timedelta) -> float:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


@dataclass(frozen=True)
class TestState:
    """Current state of a traced test.

    START and WAITING carry the monotonic time they began, used for
    timeouts; END carries the test's exit code.
    """

    __test__ = False

    kind: StateKind
    start_time: float | None = None
    code: int | None = None

    @classmethod
    def start_state(cls) -> TestState:
        """A START state beginning now."""
        return cls(StateKind.START, start_time=time.monotonic())

    @classmethod
    def wait_state(cls) -> TestState:
        """A WAITING state beginning now."""
        return cls(StateKind.WAITING, start_time=time.monotonic())

    @classmethod
    def end(cls, code: int) -> TestState:
        """An END state with the given exit code."""
        return cls(StateKind.END, code=code)

    def is_finished(self) -> bool:
        """True once the test has ended."""
        return self.kind is StateKind.END

    def _timed_out(self, timeout: float | timedelta) -> bool:
        start = self.start_time if self.start_time is not None else time.monotonic()
        return time.monotonic() - start >= _seconds(timeout)

    def step(self, data: StateData, timeout: float | timedelta) -> TestState:
        """Advance the state machine one step using ``data``.

        ``timeout`` is in seconds or a timedelta. Raises TestRuntimeError
        when starting or waiting takes longer than that.
        """
        if self.kind is StateKind.START:
            nxt = data.start()
            if nxt is not None:
                return nxt
            if self._timed_out(timeout):
                raise TestRuntimeError("Error: Timed out when starting test")
            return self
        if self.kind is StateKind.INITIALISE:
            return data.init()
        if self.kind is StateKind.WAITING:
            nxt = data.wait()
            if nxt is not None:
                return nxt
            if self._timed_out(timeout):
                raise TestRuntimeError("Error: Timed out waiting for test response")
            return self
        if self.kind is StateKind.STOPPED:
            return data.stop()
        return TestState.end(self.code if self.code is not None else 0)


class ActionKind(Enum):
    """What the tracer should do to a traced process."""

    TRY_CONTINUE = "try_continue"
    CONTINUE = "continue"
    STEP = "step"
    DETACH = "detach"
    NOTHING = "nothing"


@dataclass(frozen=True)
class TracerAction(Generic[T]):
    """An action for the tracer, with the handle of the process it targets.

    TRY_CONTINUE continues a process that may or may not be paused.
    """

    kind: ActionKind
    payload: T | None = None

    def data(self) -> T | None:
        """The process handle, or None for NOTHING."""
        if self.kind is ActionKind.NOTHING:
            return None
        return self.payload


class StateData(ABC):
    """Platform-specific handling of each state of a traced test."""

    @abstractmethod
    def start(self) -> TestState | None:
        """Start tracing; None while still waiting for the test to appear."""

    @abstractmethod
    def init(self) -> TestState:
        """Prepare the test for tracing and return the next state."""

    @abstractmethod
    def wait(self) -> TestState | None:
        """Poll the test; None if there is nothing to do yet."""

    @abstractmethod
    def stop(self) -> TestState:
        """Handle a stop in the test, collecting coverage."""


class NullStateData(StateData):
    """Collector used when no coverage backend is available: every step fails."""

    _MESSAGE = "No valid coverage collector"

    def start(self) -> TestState | None:
        raise StateMachineError(self._MESSAGE)

    def init(self) -> TestState:
        raise StateMachineError(self._MESSAGE)

    def wait(self) -> TestState | None:
        raise StateMachineError(self._MESSAGE)

    def stop(self) -> TestState:
        raise StateMachineError(self._MESSAGE)