"""Per-run execution context and log.

Both are owned by a single coordinator, created fresh at run start and
discarded (or explicitly cleared) when the run ends.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator
from typing import Any

from nexusflow.core.errors import EngineError
from nexusflow.core.models import LogEntry, LogLevel

logger = logging.getLogger(__name__)


class ContextWriteError(EngineError):
    """A node output was written twice within one run."""

    pass


class ExecutionContext:
    """Write-once mapping of node id to that node's output.

    Insertion order is execution order.
    """

    def __init__(self) -> None:
        self._outputs: dict[str, Any] = {}

    def set(self, node_id: str, output: Any) -> None:
        if node_id in self._outputs:
            raise ContextWriteError(f"Output for node '{node_id}' already recorded in this run")
        self._outputs[node_id] = output

    def get(self, node_id: str, default: Any = None) -> Any:
        return self._outputs.get(node_id, default)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._outputs

    def __len__(self) -> int:
        return len(self._outputs)

    def __iter__(self) -> Iterator[str]:
        return iter(self._outputs)

    def snapshot(self) -> dict[str, Any]:
        """Deep copy, safe to hand to callers after the run."""
        return copy.deepcopy(self._outputs)

    def clear(self) -> None:
        self._outputs.clear()


# Map execution log levels onto stdlib logging levels
_LOGGING_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class ExecutionLog:
    """Append-only sequence of structured log entries for one run.

    Every entry is mirrored to the module logger and, if set, to ``listener``.
    """

    def __init__(self, listener: Callable[[LogEntry], None] | None = None) -> None:
        self._entries: list[LogEntry] = []
        self.execution_id: str | None = None
        self.listener = listener

    def log(self, level: LogLevel, message: str, **extra: Any) -> LogEntry:
        entry = LogEntry(
            level=level,
            message=message,
            execution_id=self.execution_id,
            extra=extra,
        )
        self._entries.append(entry)

        logger.log(_LOGGING_LEVELS[level], f"[{self.execution_id}] {message}")
        if self.listener is not None:
            self.listener(entry)
        return entry

    def info(self, message: str, **extra: Any) -> LogEntry:
        return self.log(LogLevel.INFO, message, **extra)

    def success(self, message: str, **extra: Any) -> LogEntry:
        return self.log(LogLevel.SUCCESS, message, **extra)

    def warning(self, message: str, **extra: Any) -> LogEntry:
        return self.log(LogLevel.WARNING, message, **extra)

    def error(self, message: str, **extra: Any) -> LogEntry:
        return self.log(LogLevel.ERROR, message, **extra)

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
