"""Graph workflow schema definitions using Pydantic models.

Workflows are directed graphs of typed nodes joined by data-flow connections.
The graph is owned by the editor; the execution engine only reads a snapshot
of it per run.
"""

from enum import Enum
from typing import Any

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator, model_validator


class NodeState(str, Enum):
    """Visual execution state signalled to observers"""

    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"


class Node(BaseModel):
    """A unit of work in the graph, typed by the action it performs"""

    id: str
    type: str  # Handler tag, e.g. "webhook", "chatgpt", "filter"
    label: str | None = None

    # string | number | boolean | sequence | mapping (null tolerated)
    properties: dict[str, JsonValue] = Field(default_factory=dict)

    # UI metadata (position, styling) for the visual editor
    ui_metadata: dict[str, Any] | None = None

    @field_validator("id", "type")
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v


class Connection(BaseModel):
    """Directed edge: the output of ``source`` feeds the input of ``target``"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    source: str = Field(alias="from")
    target: str = Field(alias="to")

    @model_validator(mode="before")
    @classmethod
    def flatten_port_refs(cls, data):
        """Accept the editor's ``{"nodeId": ..., "port": ...}`` endpoint form."""
        if isinstance(data, dict):
            data = dict(data)
            for key in ("from", "to", "source", "target"):
                value = data.get(key)
                if isinstance(value, dict) and "nodeId" in value:
                    data[key] = value["nodeId"]
        return data

    @model_validator(mode="after")
    def derive_id(self) -> "Connection":
        if not self.id:
            self.id = f"{self.source}_{self.target}"
        return self


class WorkflowGraph(BaseModel):
    """Complete workflow definition"""

    id: str = "workflow"
    name: str = "Untitled Workflow"
    description: str | None = None
    version: str = "1.0"

    nodes: list[Node] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)

    def node_map(self) -> dict[str, Node]:
        """Nodes by id, in definition order."""
        return {n.id: n for n in self.nodes}

    def incoming(self, node_id: str) -> list[Connection]:
        """Connections targeting ``node_id``, in connection order."""
        return [c for c in self.connections if c.target == node_id]

    def validate_graph(self) -> list[str]:
        """
        Validate graph structure using NetworkX.
        Returns list of validation errors.

        The engine does not call this; it is a diagnostic for tooling.
        Execution relies only on the scheduler's own cycle detection.
        """
        errors = []

        seen_node_ids = set()
        for node in self.nodes:
            if node.id in seen_node_ids:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_node_ids.add(node.id)
        node_ids = seen_node_ids

        seen_connection_ids = set()
        seen_pairs = set()
        for conn in self.connections:
            if conn.id in seen_connection_ids:
                errors.append(f"Duplicate connection ID: '{conn.id}'")
            seen_connection_ids.add(conn.id)

            pair = (conn.source, conn.target)
            if pair in seen_pairs:
                errors.append(f"Duplicate connection from '{conn.source}' to '{conn.target}'")
            seen_pairs.add(pair)

            if conn.source == conn.target:
                errors.append(f"Connection {conn.id}: self-loop on '{conn.source}'")
            if conn.source not in node_ids:
                errors.append(f"Connection {conn.id}: source '{conn.source}' not found")
            if conn.target not in node_ids:
                errors.append(f"Connection {conn.id}: target '{conn.target}' not found")

        G = self._to_networkx()
        MAX_CYCLES_TO_REPORT = 20
        for cycle_count, cycle in enumerate(nx.simple_cycles(G), start=1):
            if cycle_count > MAX_CYCLES_TO_REPORT:
                errors.append(f"Too many cycles to report (>{MAX_CYCLES_TO_REPORT})")
                break
            # Self-loops were already reported above
            if len(cycle) > 1:
                errors.append(f"Cycle detected: {' -> '.join(cycle + [cycle[0]])}")

        return errors

    def _to_networkx(self) -> nx.DiGraph:
        """Convert to NetworkX DiGraph for analysis"""
        G = nx.DiGraph()
        for node in self.nodes:
            G.add_node(node.id)
        for conn in self.connections:
            G.add_edge(conn.source, conn.target)
        return G

    def get_entry_nodes(self) -> list[str]:
        """Nodes with no incoming connections"""
        targets = {c.target for c in self.connections}
        return [n.id for n in self.nodes if n.id not in targets]

    def analyze_parallelism(self) -> list[list[str]]:
        """Group nodes into topological levels (display only, execution stays sequential)"""
        G = self._to_networkx()
        try:
            return [list(level) for level in nx.topological_generations(G)]
        except nx.NetworkXUnfeasible:
            return []  # Has cycles
