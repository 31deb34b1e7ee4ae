"""Per-node execution.

Collects direct-predecessor inputs, resolves configuration templates,
dispatches to the registered handler and records the output in the run's
context. Failures are logged and re-raised as ``NodeExecutionError``.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import random
import time
from typing import Any

from nexusflow.core.config import EngineConfig
from nexusflow.core.context import ExecutionContext, ExecutionLog
from nexusflow.core.errors import EngineError
from nexusflow.core.graph_schema import Node, NodeState, WorkflowGraph
from nexusflow.core.observer import NodeStateObserver, NullObserver
from nexusflow.core.registry import HandlerRegistry
from nexusflow.core.resolver import VariableResolver

logger = logging.getLogger(__name__)


def _output_size(output: Any) -> int | None:
    """Length of the JSON form of ``output``, or None if it has no JSON form."""
    try:
        return len(json.dumps(output, default=str))
    except (TypeError, ValueError):
        # Self-referencing containers
        return None


class NodeExecutionError(EngineError):
    """A node's resolution or handler failed."""

    def __init__(self, node_id: str, node_type: str, cause: BaseException):
        self.node_id = node_id
        self.node_type = node_type
        self.cause = cause
        reason = str(cause) or type(cause).__name__
        super().__init__(f"Node {node_id} ({node_type}) failed: {reason}")


class NodeExecutor:
    """
    Executes one node at a time against a shared run context.

    The executor never decides ordering: callers must run nodes in
    topological order so every predecessor output is present.
    """

    def __init__(
        self,
        graph: WorkflowGraph,
        context: ExecutionContext,
        log: ExecutionLog,
        registry: HandlerRegistry,
        observer: NodeStateObserver | None = None,
        config: EngineConfig | None = None,
    ):
        self.graph = graph
        self.context = context
        self.log = log
        self.registry = registry
        self.observer = observer or NullObserver()
        self.config = config or EngineConfig()
        self.resolver = VariableResolver(graph, context, log)

    def collect_inputs(self, node: Node) -> dict[str, Any]:
        """
        Outputs of direct predecessors keyed by predecessor id.

        Predecessors without a recorded output are omitted.
        """
        inputs: dict[str, Any] = {}
        for conn in self.graph.incoming(node.id):
            if conn.source in self.context:
                inputs[conn.source] = self.context.get(conn.source)
        return inputs

    def resolve_node(self, node: Node) -> Node:
        """Copy of ``node`` with defaults applied and all placeholders resolved."""
        descriptor = self.registry.get(node.type)
        properties = {**descriptor.default_properties, **node.properties}
        resolved = self.resolver.resolve(properties, node)
        return node.model_copy(update={"properties": resolved})

    async def execute_node(self, node: Node) -> Any:
        """Run ``node`` and record its output.

        Raises:
            NodeExecutionError: If resolution, the handler, or the context write fails
        """
        start = time.monotonic()
        try:
            self.log.info(f"Executing node: {node.type}", node_id=node.id)
            self.observer.on_node_state_change(node.id, NodeState.EXECUTING)

            inputs = self.collect_inputs(node)
            resolved_node = self.resolve_node(node)

            if self.config.node_timeout is not None:
                output = await asyncio.wait_for(
                    self._dispatch(resolved_node, inputs), timeout=self.config.node_timeout
                )
            else:
                output = await self._dispatch(resolved_node, inputs)

            duration_ms = round((time.monotonic() - start) * 1000, 2)
            output_size = _output_size(output)

            self.context.set(node.id, output)
            self.observer.on_node_state_change(node.id, NodeState.SUCCESS)

            self.log.success(
                f"Node executed successfully: {node.type}",
                node_id=node.id,
                duration_ms=duration_ms,
                output_size=output_size,
            )
            return output

        except Exception as e:
            self.observer.on_node_state_change(node.id, NodeState.ERROR)
            reason = str(e) or type(e).__name__
            self.log.error(
                f"Node execution failed: {node.type}",
                node_id=node.id,
                node_type=node.type,
                error=reason,
            )
            raise NodeExecutionError(node.id, node.type, e) from e

    async def _dispatch(self, node: Node, inputs: dict[str, Any]) -> Any:
        await self._simulate_latency()

        handler = self.registry.get(node.type).handler
        logger.debug(f"Dispatching {node.id} to {getattr(handler, '__name__', handler)}")
        result = handler(node, inputs)
        if inspect.isawaitable(result):
            result = await result

        # Handle Pydantic models - serialize with model_dump()
        if hasattr(result, "model_dump"):
            result = result.model_dump()
        return result

    async def _simulate_latency(self) -> None:
        low, high = self.config.min_latency_ms, self.config.max_latency_ms
        if high <= 0:
            return
        await asyncio.sleep(random.uniform(low, high) / 1000)
