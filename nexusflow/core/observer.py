"""Observer hooks for node visual-state transitions."""

from __future__ import annotations

from typing import Protocol

from nexusflow.core.graph_schema import NodeState


class NodeStateObserver(Protocol):
    """Sink for per-node state signals (executing, success, error).

    Fire-and-forget: the engine ignores return values and never waits on the
    observer for data.
    """

    def on_node_state_change(self, node_id: str, state: NodeState) -> None:
        ...


class NullObserver:
    """Observer for embeddings without a UI."""

    def on_node_state_change(self, node_id: str, state: NodeState) -> None:
        return None


class RecordingObserver:
    """Keeps every transition in order. Useful for tests and replay."""

    def __init__(self) -> None:
        self.transitions: list[tuple[str, NodeState]] = []

    def on_node_state_change(self, node_id: str, state: NodeState) -> None:
        self.transitions.append((node_id, state))

    def states_for(self, node_id: str) -> list[NodeState]:
        return [state for nid, state in self.transitions if nid == node_id]
