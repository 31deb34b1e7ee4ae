"""Workflow execution coordinator.

Orchestrates one run end-to-end:
- Topological ordering (cycle detection is fatal)
- Strictly sequential per-node execution, even across independent branches
- Context accumulation and structured logging
- Single-run exclusivity per coordinator instance
- Cooperative cancellation between nodes
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

from nexusflow.core.config import EngineConfig
from nexusflow.core.context import ExecutionContext, ExecutionLog
from nexusflow.core.errors import EngineError
from nexusflow.core.executor import NodeExecutor
from nexusflow.core.graph_schema import WorkflowGraph
from nexusflow.core.handlers import default_registry
from nexusflow.core.models import ExecutionResult, LogEntry
from nexusflow.core.observer import NodeStateObserver, NullObserver
from nexusflow.core.registry import HandlerRegistry
from nexusflow.core.scheduler import TopologicalScheduler

logger = logging.getLogger(__name__)


class EmptyGraphError(EngineError):
    """Workflow has no nodes to execute."""

    pass


class AlreadyExecutingError(EngineError):
    """A run is already in progress on this coordinator."""

    pass


class ExecutionCancelledError(EngineError):
    """Run was cancelled between node executions."""

    pass


class CancellationToken:
    """Cooperative cancel flag, checked by the coordinator before each node."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ExecutionCoordinator:
    """
    Runs a workflow graph to completion or raises.

    Key Features:
    - Not reentrant: a second execute_workflow() while one is in flight is
      rejected with AlreadyExecutingError, never queued
    - Context and log are reset at the start of every run and stay
      inspectable after a failure
    - The graph snapshot is read-only; the coordinator never mutates it
    """

    def __init__(
        self,
        graph: WorkflowGraph,
        registry: HandlerRegistry | None = None,
        observer: NodeStateObserver | None = None,
        config: EngineConfig | None = None,
        log_listener: Callable[[LogEntry], None] | None = None,
    ):
        self.graph = graph
        self._registry = registry or default_registry()
        self.observer = observer or NullObserver()
        self.config = config or EngineConfig()
        self.scheduler = TopologicalScheduler()

        self.context = ExecutionContext()
        self.log = ExecutionLog(listener=log_listener)
        self.executor = NodeExecutor(
            graph, self.context, self.log, self._registry, self.observer, self.config
        )

        self.execution_id: str | None = None
        self.is_executing = False

    @property
    def registry(self) -> HandlerRegistry:
        """Registry bound at construction; build a new coordinator to change it."""
        return self._registry

    async def execute_workflow(
        self, cancel_token: CancellationToken | None = None
    ) -> ExecutionResult:
        """
        Execute every node of the graph in topological order.

        Returns:
            ExecutionResult with a snapshot of all node outputs and the run log

        Raises:
            AlreadyExecutingError: If a run is already in progress
            EmptyGraphError: If the graph has no nodes
            CyclicGraphError: If the graph contains a cycle (no node executes)
            NodeExecutionError: If a node fails (remaining nodes are skipped)
            ExecutionCancelledError: If ``cancel_token`` is cancelled mid-run
        """
        # Both guards run before the first await, so concurrent callers on
        # the same event loop observe is_executing immediately
        if self.is_executing:
            raise AlreadyExecutingError("Workflow is already executing")
        if not self.graph.nodes:
            raise EmptyGraphError("No nodes to execute")

        self.is_executing = True
        self.execution_id = f"exec_{uuid.uuid4().hex[:12]}"
        self.context.clear()
        self.log.clear()
        self.log.execution_id = self.execution_id
        start = time.monotonic()

        try:
            self.log.info("Workflow execution started", execution_id=self.execution_id)

            sorted_nodes = self.scheduler.sort(self.graph)
            self.log.info(
                f"Execution order determined: {len(sorted_nodes)} nodes",
                node_ids=[n.id for n in sorted_nodes],
            )

            for node in sorted_nodes:
                if cancel_token is not None and cancel_token.cancelled:
                    reason = cancel_token.reason or "cancelled by caller"
                    raise ExecutionCancelledError(
                        f"Execution cancelled before node {node.id}: {reason}"
                    )
                await self.executor.execute_node(node)

            duration_ms = round((time.monotonic() - start) * 1000, 2)
            self.log.success(
                "Workflow execution completed successfully",
                nodes_executed=len(sorted_nodes),
                duration_ms=duration_ms,
            )

            return ExecutionResult(
                success=True,
                execution_id=self.execution_id,
                context=self.context.snapshot(),
                logs=self.log.entries,
                duration_ms=duration_ms,
            )

        except Exception as e:
            self.log.error(f"Workflow execution failed: {e}", error=str(e))
            raise
        finally:
            self.is_executing = False

    def get_logs(self) -> list[LogEntry]:
        return self.log.entries

    def get_context(self) -> dict:
        return self.context.snapshot()

    def clear(self) -> None:
        """Discard context, log and execution id of the last run."""
        if self.is_executing:
            raise AlreadyExecutingError("Cannot clear state while a workflow is executing")
        self.context.clear()
        self.log.clear()
        self.log.execution_id = None
        self.execution_id = None
        logger.debug("Execution state cleared")
