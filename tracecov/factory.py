"""Selection of the state machine for a coverage engine."""

from __future__ import annotations

import logging
from enum import Enum
from os import PathLike

from .instrumented import create_instrumented_machine
from .statemachine import NullStateData, StateData, TestState
from .traces import TraceMap

logger = logging.getLogger(__name__)


class TraceEngine(Enum):
    """How coverage is collected."""

    AUTO = "auto"
    PTRACE = "ptrace"
    LLVM = "llvm"


def create_state_machine(
    test: object,
    traces: TraceMap,
    engine: TraceEngine,
    root: str | PathLike[str],
) -> tuple[TestState, StateData]:
    """Initial state and state data for running ``test`` with ``engine``.

    Engines without a collector yield an ended state (exit code 1) and a
    collector whose every step fails.
    """
    if engine is TraceEngine.LLVM:
        return create_instrumented_machine(test, traces, root)
    if engine is TraceEngine.PTRACE:
        logger.error("The ptrace backend is not supported on this system")
    else:
        logger.error("Coverage collection is not currently supported on this system")
    return TestState.end(1), NullStateData()