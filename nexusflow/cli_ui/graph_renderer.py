"""Terminal graph rendering for workflow visualization.

Provides level-based and tree-based visualization of workflow graphs using Rich.
"""

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from nexusflow.core.graph_schema import Connection, Node, NodeState, WorkflowGraph
from nexusflow.core.registry import HandlerRegistry


class TerminalGraphRenderer:
    """
    Renders workflow graphs in the terminal.

    NOTE: render_graph() shows topological levels but does not draw exact
    connections. Use render_as_tree() for the structural view.
    """

    # Symbols and colors per node category
    CATEGORY_STYLES = {
        "input": ("[>]", "cyan"),
        "processing": ("[*]", "magenta"),
        "output": ("[<]", "yellow"),
        "custom": ("[ ]", "white"),
    }

    # Status colors - string keys so raw values and NodeState both work
    STATUS_COLORS = {
        "pending": "dim",
        "executing": "blue bold",
        "success": "green",
        "error": "red bold",
    }

    @staticmethod
    def _normalize_status(status: NodeState | str | None) -> str:
        """Normalize status to string for consistent lookup."""
        if isinstance(status, NodeState):
            return status.value
        return str(status) if status else "pending"

    def __init__(self, registry: HandlerRegistry, console: Console | None = None):
        self.registry = registry
        self.console = console or Console()

    def _style_for(self, node: Node) -> tuple[str, str]:
        category = self.registry.get(node.type).category
        return self.CATEGORY_STYLES.get(category, self.CATEGORY_STYLES["custom"])

    def _build_edge_map(self, workflow: WorkflowGraph) -> dict[str, list[Connection]]:
        """Outgoing connections by source node ID."""
        edge_map: dict[str, list[Connection]] = {n.id: [] for n in workflow.nodes}
        for conn in workflow.connections:
            if conn.source in edge_map:
                edge_map[conn.source].append(conn)
        return edge_map

    def _node_text(self, node: Node, statuses: dict[str, NodeState | str] | None) -> str:
        symbol, color = self._style_for(node)
        # SECURITY: Escape node labels to prevent Rich markup injection
        safe_label = escape(node.label or node.id)
        safe_type = escape(node.type)

        status = self._normalize_status(statuses.get(node.id)) if statuses else None
        if status and status != "pending":
            status_color = self.STATUS_COLORS.get(status, "white")
            indicator = {"success": " ✓", "error": " ✗", "executing": " ⟳"}.get(status, "")
            return f"[{status_color}]{symbol} {safe_label}{indicator}[/] [dim]({safe_type})[/]"
        return f"[{color}]{symbol} {safe_label}[/] [dim]({safe_type})[/]"

    def render_graph(
        self,
        workflow: WorkflowGraph,
        statuses: dict[str, NodeState | str] | None = None,
    ) -> str:
        """Render workflow graph as topological levels."""
        node_map = workflow.node_map()
        levels = workflow.analyze_parallelism()
        if not levels:
            # Has cycles - use simple layout
            levels = [[n.id for n in workflow.nodes]]

        lines = []
        for level_idx, level in enumerate(levels):
            level_nodes = [self._node_text(node_map[nid], statuses) for nid in level if nid in node_map]
            lines.append("  |  ".join(level_nodes))

            if level_idx < len(levels) - 1:
                lines.append("  " + "  |  " * len(level_nodes))
                lines.append("  " + "  v  " * len(level_nodes))

        return "\n".join(lines)

    def render_as_tree(
        self,
        workflow: WorkflowGraph,
        statuses: dict[str, NodeState | str] | None = None,
        max_depth: int = 50,
    ) -> Tree:
        """
        Render workflow as a Rich Tree rooted at every entry node.

        Nodes reachable along several paths appear once per path; cycles
        are marked instead of followed.
        """
        tree = Tree(f"[bold]{escape(workflow.name)}[/] (v{escape(workflow.version)})")
        node_map = workflow.node_map()
        edge_map = self._build_edge_map(workflow)

        entries = workflow.get_entry_nodes()
        if not entries:
            tree.add("[red]No entry nodes (every node has an incoming connection)[/]")
            return tree

        for entry_id in entries:
            self._add_node_to_tree(
                tree, node_map[entry_id], statuses, node_map, edge_map, set(), 0, max_depth
            )
        return tree

    def _add_node_to_tree(
        self,
        parent: Tree,
        node: Node,
        statuses: dict[str, NodeState | str] | None,
        node_map: dict[str, Node],
        edge_map: dict[str, list[Connection]],
        visited: set,
        depth: int,
        max_depth: int,
    ):
        if depth >= max_depth:
            parent.add("[dim]... (max depth reached)[/]")
            return
        if node.id in visited:
            parent.add(f"[red]↩ {escape(node.id)} (cycle)[/]")
            return
        visited.add(node.id)

        branch = parent.add(self._node_text(node, statuses))
        for conn in edge_map.get(node.id, []):
            child = node_map.get(conn.target)
            if child:
                self._add_node_to_tree(
                    branch, child, statuses, node_map, edge_map, visited.copy(), depth + 1, max_depth
                )


class StatusTableRenderer:
    """Renders node execution status as a Rich table.

    SECURITY: All user-controlled strings are escaped to prevent Rich markup injection.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def render_status_table(
        self,
        workflow: WorkflowGraph,
        execution_id: str,
        statuses: dict[str, NodeState | str],
        outputs: dict[str, Any] | None = None,
    ) -> Table:
        table = Table(title=f"Execution: {escape(execution_id)}")

        table.add_column("Node", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Status", justify="center")
        table.add_column("Output", max_width=60)

        for node in workflow.nodes:
            status = TerminalGraphRenderer._normalize_status(statuses.get(node.id))
            val = outputs.get(node.id) if outputs else None
            output = val if val is not None else ""

            if status == "success":
                status_text = "[green]✓ Success[/]"
            elif status == "error":
                status_text = "[red]✗ Error[/]"
            elif status == "executing":
                status_text = "[blue]⟳ Executing[/]"
            else:
                status_text = "[dim]○ Not run[/]"

            output_str = escape(str(output))
            if len(output_str) > 60:
                output_str = output_str[:57] + "..."

            table.add_row(escape(node.label or node.id), escape(node.type), status_text, output_str)

        return table
