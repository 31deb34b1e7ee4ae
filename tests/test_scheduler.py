"""Tests for the topological scheduler.

Covers ordering validity, determinism and cycle rejection.
"""

import pytest

from nexusflow.core.errors import EngineError
from nexusflow.core.graph_schema import Connection, Node, WorkflowGraph
from nexusflow.core.scheduler import (
    CyclicGraphError,
    DuplicateNodeError,
    SchedulerError,
    TopologicalScheduler,
)


@pytest.fixture
def scheduler():
    return TopologicalScheduler()


def ids(nodes):
    return [n.id for n in nodes]


class TestOrdering:
    """Every connection's source must precede its target."""

    def test_chain(self, scheduler, chain_graph):
        """A -> B -> C executes in chain order."""
        assert ids(scheduler.sort(chain_graph)) == ["A", "B", "C"]

    def test_chain_defined_in_reverse(self, scheduler, graph_factory):
        """Definition order does not override dependencies."""
        graph = graph_factory([("C", "echo"), ("B", "echo"), ("A", "echo")], [("A", "B"), ("B", "C")])
        assert ids(scheduler.sort(graph)) == ["A", "B", "C"]

    def test_fan_in_after_all_sources(self, scheduler, graph_factory):
        """A merge node runs after every one of its sources."""
        graph = graph_factory(
            [("webhook", "echo"), ("form", "echo"), ("merge", "echo"), ("sink", "echo")],
            [("webhook", "merge"), ("form", "merge"), ("merge", "sink")],
        )
        assert ids(scheduler.sort(graph)) == ["webhook", "form", "merge", "sink"]

    def test_diamond(self, scheduler, graph_factory):
        """Both branches of a diamond precede the join."""
        graph = graph_factory(
            [("A", "echo"), ("B", "echo"), ("C", "echo"), ("D", "echo")],
            [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")],
        )
        order = ids(scheduler.sort(graph))
        assert order[0] == "A"
        assert order[-1] == "D"
        assert set(order[1:3]) == {"B", "C"}

    def test_every_connection_respected(self, scheduler, graph_factory):
        """Position of source < position of target for all connections."""
        graph = graph_factory(
            [(n, "echo") for n in "GFEDCBA"],
            [("A", "C"), ("B", "C"), ("C", "D"), ("A", "E"), ("E", "F"), ("D", "G"), ("F", "G")],
        )
        order = ids(scheduler.sort(graph))
        position = {node_id: i for i, node_id in enumerate(order)}
        for conn in graph.connections:
            assert position[conn.source] < position[conn.target]

    def test_disconnected_nodes_included(self, scheduler, graph_factory):
        """Isolated nodes are still scheduled, in definition order."""
        graph = graph_factory([("X", "echo"), ("Y", "echo"), ("Z", "echo")], [])
        assert ids(scheduler.sort(graph)) == ["X", "Y", "Z"]

    def test_returns_node_objects(self, scheduler, chain_graph):
        """Sorted entries are the graph's own Node instances."""
        nodes = scheduler.sort(chain_graph)
        assert all(isinstance(n, Node) for n in nodes)
        assert nodes[0] is chain_graph.nodes[0]

    def test_dangling_connection_ignored(self, scheduler):
        """Connections to unknown nodes do not block scheduling."""
        graph = WorkflowGraph(
            nodes=[Node(id="A", type="echo"), Node(id="B", type="echo")],
            connections=[
                Connection(source="A", target="B"),
                Connection(source="ghost", target="B"),
            ],
        )
        assert ids(scheduler.sort(graph)) == ["A", "B"]

    def test_empty_graph(self, scheduler):
        """An empty graph sorts to an empty list."""
        assert scheduler.sort(WorkflowGraph()) == []


class TestDeterminism:
    """Same snapshot, same order."""

    def test_repeated_sorts_identical(self, scheduler, graph_factory):
        """Sorting the same graph many times yields one order."""
        graph = graph_factory(
            [("A", "echo"), ("B", "echo"), ("C", "echo"), ("D", "echo"), ("E", "echo")],
            [("A", "D"), ("B", "D"), ("C", "E"), ("D", "E")],
        )
        first = ids(scheduler.sort(graph))
        for _ in range(10):
            assert ids(TopologicalScheduler().sort(graph)) == first

    def test_successors_released_in_connection_order(self, scheduler, graph_factory):
        """Siblings follow the order their connections were listed."""
        graph = graph_factory(
            [("root", "echo"), ("left", "echo"), ("right", "echo")],
            [("root", "right"), ("root", "left")],
        )
        assert ids(scheduler.sort(graph)) == ["root", "right", "left"]


class TestCycles:
    """Any cycle aborts scheduling."""

    def test_two_node_cycle(self, scheduler, cyclic_graph):
        """A <-> B is rejected and names the stuck nodes."""
        with pytest.raises(CyclicGraphError) as exc_info:
            scheduler.sort(cyclic_graph)
        assert "cycles" in str(exc_info.value)
        assert exc_info.value.unscheduled == ["A", "B"]

    def test_self_loop(self, scheduler, graph_factory):
        """A self-loop is a cycle."""
        graph = graph_factory([("A", "echo")], [("A", "A")])
        with pytest.raises(CyclicGraphError):
            scheduler.sort(graph)

    def test_cycle_downstream_of_valid_nodes(self, scheduler, graph_factory):
        """A cycle anywhere fails the whole sort."""
        graph = graph_factory(
            [("A", "echo"), ("B", "echo"), ("C", "echo"), ("D", "echo")],
            [("A", "B"), ("B", "C"), ("C", "D"), ("D", "C")],
        )
        with pytest.raises(CyclicGraphError) as exc_info:
            scheduler.sort(graph)
        assert set(exc_info.value.unscheduled) == {"C", "D"}

    def test_is_engine_error(self):
        """Cycle errors are catchable as EngineError."""
        assert issubclass(CyclicGraphError, EngineError)


class TestDuplicateIds:
    """Nodes sharing an id are rejected rather than collapsed."""

    def test_duplicate_rejected(self, scheduler, graph_factory):
        graph = graph_factory([("A", "source"), ("A", "echo"), ("B", "echo")], [("A", "B")])
        with pytest.raises(DuplicateNodeError, match="Duplicate node ids in workflow: A") as exc_info:
            scheduler.sort(graph)
        assert exc_info.value.duplicates == ["A"]

    def test_each_duplicate_reported_once(self, scheduler, graph_factory):
        graph = graph_factory(
            [("B", "echo"), ("A", "echo"), ("B", "echo"), ("A", "echo"), ("B", "echo")], []
        )
        with pytest.raises(DuplicateNodeError) as exc_info:
            scheduler.build_graph(graph)
        assert exc_info.value.duplicates == ["B", "A"]

    def test_is_scheduler_error(self):
        assert issubclass(DuplicateNodeError, SchedulerError)
        assert issubclass(DuplicateNodeError, EngineError)
