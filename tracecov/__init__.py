"""Coverage trace bookkeeping and a state machine for running tests under coverage."""

__version__ = "0.1.0"
__all__ = ["traces", "statemachine", "instrumented", "factory"]