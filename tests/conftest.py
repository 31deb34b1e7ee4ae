# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the Nexus Flow test suite.

This module provides foundational fixtures used across all test modules:
- Graph builders for common shapes (chain, fan-in, cycle)
- Registries with deterministic, recording and failing handlers
- Coordinators wired to a recording observer

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
    All fixtures in this file are automatically available in test modules.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from nexusflow.core.engine import ExecutionCoordinator
from nexusflow.core.graph_schema import Connection, Node, WorkflowGraph
from nexusflow.core.handlers import default_registry
from nexusflow.core.observer import RecordingObserver
from nexusflow.core.registry import HandlerRegistry, NodeTypeDescriptor


# =============================================================================
# Graph Builders
# =============================================================================


def make_graph(
    nodes: list[tuple[str, str] | tuple[str, str, dict[str, Any]]],
    connections: list[tuple[str, str]],
    name: str = "Test Workflow",
) -> WorkflowGraph:
    """Build a WorkflowGraph from compact tuples.

    Example:
        make_graph([("A", "source"), ("B", "echo", {"text": "{{A.msg}}"})], [("A", "B")])
    """
    built_nodes = []
    for entry in nodes:
        node_id, node_type = entry[0], entry[1]
        properties = entry[2] if len(entry) > 2 else {}
        built_nodes.append(Node(id=node_id, type=node_type, properties=properties))
    built_connections = [Connection(source=src, target=dst) for src, dst in connections]
    return WorkflowGraph(name=name, nodes=built_nodes, connections=built_connections)


@pytest.fixture
def graph_factory() -> Callable[..., WorkflowGraph]:
    """Expose make_graph as a fixture."""
    return make_graph


@pytest.fixture
def chain_graph() -> WorkflowGraph:
    """A -> B -> C, all echo nodes."""
    return make_graph([("A", "echo"), ("B", "echo"), ("C", "echo")], [("A", "B"), ("B", "C")])


@pytest.fixture
def cyclic_graph() -> WorkflowGraph:
    """start -> A -> B -> A."""
    return make_graph(
        [("start", "echo"), ("A", "echo"), ("B", "echo")],
        [("start", "A"), ("A", "B"), ("B", "A")],
    )


# =============================================================================
# Handlers and Registries
# =============================================================================


class HandlerRecorder:
    """Records every (resolved node, inputs) pair a handler receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[Node, dict[str, Any]]] = []

    @property
    def order(self) -> list[str]:
        return [node.id for node, _ in self.calls]

    def resolved(self, node_id: str) -> dict[str, Any]:
        for node, _ in self.calls:
            if node.id == node_id:
                return node.properties
        raise KeyError(node_id)

    def inputs_for(self, node_id: str) -> dict[str, Any]:
        for node, inputs in self.calls:
            if node.id == node_id:
                return inputs
        raise KeyError(node_id)


@pytest.fixture
def recorder() -> HandlerRecorder:
    return HandlerRecorder()


@pytest.fixture
def stub_registry(recorder: HandlerRecorder) -> HandlerRegistry:
    """Registry with deterministic handlers for engine tests.

    - source: returns its "output" property (default {"msg": "hi"})
    - echo:   returns {"node": id, "properties": ..., "inputs": ...}
    - fail:   always raises RuntimeError("boom")
    - slow:   async handler that yields to the event loop first
    """

    def source(node: Node, inputs: dict[str, Any]) -> Any:
        recorder.calls.append((node, inputs))
        return node.properties.get("output", {"msg": "hi"})

    def echo(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
        recorder.calls.append((node, inputs))
        return {"node": node.id, "properties": dict(node.properties), "inputs": inputs}

    def fail(node: Node, inputs: dict[str, Any]) -> Any:
        recorder.calls.append((node, inputs))
        raise RuntimeError("boom")

    async def slow(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(0.01)
        recorder.calls.append((node, inputs))
        return {"node": node.id, "slow": True}

    return HandlerRegistry(
        [
            NodeTypeDescriptor(type="source", handler=source, has_input=False),
            NodeTypeDescriptor(type="echo", handler=echo),
            NodeTypeDescriptor(type="fail", handler=fail),
            NodeTypeDescriptor(type="slow", handler=slow),
        ],
        fallback=default_registry().fallback,
    )


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def coordinator_factory(
    stub_registry: HandlerRegistry, observer: RecordingObserver
) -> Callable[[WorkflowGraph], ExecutionCoordinator]:
    """Build a coordinator over a graph using the test registry and observer."""

    def factory(graph: WorkflowGraph, **kwargs: Any) -> ExecutionCoordinator:
        kwargs.setdefault("registry", stub_registry)
        kwargs.setdefault("observer", observer)
        return ExecutionCoordinator(graph, **kwargs)

    return factory


# =============================================================================
# Files
# =============================================================================


@pytest.fixture
def workflow_file(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a workflow dict as YAML and return its path."""

    def write(data: dict[str, Any], name: str = "workflow.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return write
