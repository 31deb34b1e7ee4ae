"""Live execution feedback for workflows.

Implements the engine's observer and log-listener hooks by printing node
state transitions and log entries to a Rich console as they happen.
"""

from rich.console import Console
from rich.markup import escape

from nexusflow.core.graph_schema import NodeState
from nexusflow.core.models import LogEntry, LogLevel


class LiveExecutionMonitor:
    """
    Console sink for one run.

    Keeps the latest state per node so the final status table can be drawn
    after the run, including for nodes that failed.
    """

    STATE_STYLES = {
        NodeState.EXECUTING: ("⟳", "blue"),
        NodeState.SUCCESS: ("✓", "green"),
        NodeState.ERROR: ("✗", "red"),
    }

    LEVEL_STYLES = {
        LogLevel.INFO: "dim",
        LogLevel.SUCCESS: "green",
        LogLevel.WARNING: "yellow",
        LogLevel.ERROR: "red",
    }

    def __init__(self, console: Console | None = None, show_logs: bool = False):
        self.console = console or Console()
        self.show_logs = show_logs
        self.statuses: dict[str, NodeState] = {}

    def on_node_state_change(self, node_id: str, state: NodeState) -> None:
        self.statuses[node_id] = state
        symbol, color = self.STATE_STYLES[state]
        self.console.print(f"  [{color}]{symbol} {escape(node_id)}[/] [dim]{state.value}[/]")

    def on_log_entry(self, entry: LogEntry) -> None:
        # Warnings always surface: they flag unresolved template variables
        if not self.show_logs and entry.level != LogLevel.WARNING:
            return
        style = self.LEVEL_STYLES[entry.level]
        self.console.print(f"    [{style}]{entry.level.value:<7} {escape(entry.message)}[/]")
