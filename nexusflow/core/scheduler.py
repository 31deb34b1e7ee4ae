"""Topological scheduling of workflow nodes.

Produces a strictly sequential execution order in which every connection's
source precedes its target. Cycle detection here is the engine's only
structural check on the graph.
"""

from __future__ import annotations

import logging
from collections import deque

from nexusflow.core.errors import EngineError
from nexusflow.core.graph_schema import Node, WorkflowGraph

logger = logging.getLogger(__name__)


class SchedulerError(EngineError):
    """Error in topological scheduler."""

    pass


class CyclicGraphError(SchedulerError):
    """Circular connection detected in workflow graph."""

    def __init__(self, unscheduled: list[str]):
        self.unscheduled = unscheduled
        super().__init__(
            "Workflow contains cycles - cannot execute "
            f"(unscheduled nodes: {', '.join(unscheduled)})"
        )


class DuplicateNodeError(SchedulerError):
    """Two nodes in the workflow graph share an id."""

    def __init__(self, duplicates: list[str]):
        self.duplicates = duplicates
        super().__init__(f"Duplicate node ids in workflow: {', '.join(duplicates)}")


class TopologicalScheduler:
    """Order nodes with Kahn's algorithm.

    ORDERING:
    - The queue is seeded with in-degree-0 nodes in node definition order
    - Successors are released in connection order
    - Given the same graph snapshot, the result is always the same

    Example:
        webhook ──► chatgpt ──► email-send
                      ▲
        form ─────────┘

        Order: webhook, form, chatgpt, email-send
    """

    def __init__(self) -> None:
        # Adjacency list: node -> nodes that consume its output
        self._successors: dict[str, list[str]] = {}
        self._in_degree: dict[str, int] = {}

    def build_graph(self, graph: WorkflowGraph) -> None:
        """Build adjacency list and in-degree counts.

        Connections whose endpoints are not nodes of the graph are ignored.

        Raises:
            DuplicateNodeError: If two nodes share an id
        """
        seen: set[str] = set()
        duplicates: list[str] = []
        for node in graph.nodes:
            if node.id in seen and node.id not in duplicates:
                duplicates.append(node.id)
            seen.add(node.id)
        if duplicates:
            raise DuplicateNodeError(duplicates)

        self._successors = {node.id: [] for node in graph.nodes}
        self._in_degree = {node.id: 0 for node in graph.nodes}

        for conn in graph.connections:
            if conn.source not in self._successors or conn.target not in self._in_degree:
                logger.debug(f"Ignoring dangling connection {conn.id}")
                continue
            self._successors[conn.source].append(conn.target)
            self._in_degree[conn.target] += 1

    def sort(self, graph: WorkflowGraph) -> list[Node]:
        """Return the nodes of ``graph`` in execution order.

        Raises:
            CyclicGraphError: If the graph contains a cycle (including self-loops)
            DuplicateNodeError: If two nodes share an id
        """
        self.build_graph(graph)
        node_map = graph.node_map()
        in_degree = dict(self._in_degree)

        queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
        ordered: list[str] = []

        while queue:
            current = queue.popleft()
            ordered.append(current)
            for successor in self._successors[current]:
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    queue.append(successor)

        if len(ordered) < len(node_map):
            scheduled = set(ordered)
            raise CyclicGraphError([node_id for node_id in node_map if node_id not in scheduled])

        return [node_map[node_id] for node_id in ordered]
