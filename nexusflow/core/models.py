"""Data models for execution records.

Uses Pydantic for the log entries and result bundle handed to callers.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    """Severity of an execution log entry."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class LogEntry(BaseModel):
    """A single structured execution log record."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    level: LogLevel
    message: str
    execution_id: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class ExecutionResult(BaseModel):
    """Outcome of a completed run. Failed runs raise instead of returning."""

    success: bool = True
    execution_id: str
    context: dict[str, Any]
    logs: list[LogEntry]
    duration_ms: float = 0.0
