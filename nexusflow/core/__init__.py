"""Core modules for the Nexus Flow execution engine."""

from nexusflow.core.context import ContextWriteError, ExecutionContext, ExecutionLog
from nexusflow.core.engine import (
    AlreadyExecutingError,
    CancellationToken,
    EmptyGraphError,
    ExecutionCancelledError,
    ExecutionCoordinator,
)
from nexusflow.core.errors import EngineError
from nexusflow.core.executor import NodeExecutionError, NodeExecutor
from nexusflow.core.graph_schema import Connection, Node, NodeState, WorkflowGraph
from nexusflow.core.handlers import default_registry
from nexusflow.core.models import ExecutionResult, LogEntry, LogLevel
from nexusflow.core.registry import HandlerRegistry, NodeTypeDescriptor
from nexusflow.core.resolver import VariableResolver
from nexusflow.core.scheduler import CyclicGraphError, DuplicateNodeError, TopologicalScheduler

__all__ = [
    "AlreadyExecutingError",
    "CancellationToken",
    "Connection",
    "ContextWriteError",
    "CyclicGraphError",
    "DuplicateNodeError",
    "EmptyGraphError",
    "EngineError",
    "ExecutionCancelledError",
    "ExecutionContext",
    "ExecutionCoordinator",
    "ExecutionLog",
    "ExecutionResult",
    "HandlerRegistry",
    "LogEntry",
    "LogLevel",
    "Node",
    "NodeExecutionError",
    "NodeExecutor",
    "NodeState",
    "NodeTypeDescriptor",
    "TopologicalScheduler",
    "VariableResolver",
    "WorkflowGraph",
    "default_registry",
]
