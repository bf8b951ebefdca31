"""State handling for instrumented test binaries that write profiling data."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Any

from .statemachine import (
    RunError,
    StateData,
    StateMachineError,
    TestCoverageError,
    TestState,
)
from .traces import TraceMap

logger = logging.getLogger(__name__)

PROFRAW_SUFFIX = ".profraw"


@dataclass
class ProcessHandle:
    """A running test process, with the profile files present before it started."""

    child: subprocess.Popen[Any]
    path: Path
    existing_profraws: set[Path] = field(default_factory=set)


class InstrumentedData(StateData):
    """Drives an instrumented binary: it simply runs to completion."""

    def __init__(
        self,
        process: ProcessHandle | None,
        root: str | PathLike[str],
        traces: TraceMap,
    ) -> None:
        self.process = process
        self.root = Path(root)
        self.traces = traces
        self.profraws: list[Path] = []

    def _strip(self, path: Path) -> Path:
        try:
            return path.relative_to(self.root)
        except ValueError:
            return path

    def start(self) -> TestState | None:
        return TestState.wait_state()

    def init(self) -> TestState:
        raise StateMachineError("Instrumented binaries have no initialise state")

    def wait(self) -> TestState | None:
        """Wait for the process to exit and record the profile files it wrote."""
        process = self.process
        if process is None:
            raise TestCoverageError("Test was not launched")
        try:
            returncode = process.child.wait()
            new_files = sorted(
                entry
                for entry in self.root.iterdir()
                if entry.is_file()
                and entry.suffix == PROFRAW_SUFFIX
                and entry not in process.existing_profraws
            )
        except OSError as exc:
            raise RunError(str(exc)) from exc
        logger.info("For binary: %s", self._strip(process.path))
        for prof in new_files:
            logger.info("Generated: %s", self._strip(prof))
        self.profraws = new_files
        self.process = None
        code = returncode if returncode is not None and returncode >= 0 else 1
        return TestState.end(code)

    def stop(self) -> TestState:
        raise StateMachineError("Instrumented binaries have no stopped state")


def create_instrumented_machine(
    test: object, traces: TraceMap, root: str | PathLike[str]
) -> tuple[TestState, InstrumentedData]:
    """Initial state and data for an instrumented test.

    ``test`` must be a ProcessHandle; otherwise the machine starts ended
    with exit code 1.
    """
    if isinstance(test, ProcessHandle):
        return TestState.start_state(), InstrumentedData(test, root, traces)
    logger.error("The instrumented state machine requires a running process")
    return TestState.end(1), InstrumentedData(None, root, traces)