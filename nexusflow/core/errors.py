"""Base exception for the execution engine."""


class EngineError(Exception):
    """Base class for run-level engine failures."""

    pass
