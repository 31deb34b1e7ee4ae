"""CLI UI components for terminal-based workflow visualization.

This package provides rich terminal UI capabilities for:
- Visualizing workflow graphs as levels or trees
- Live node-state feedback during execution
- Status tables of finished runs
"""

from nexusflow.cli_ui.graph_renderer import StatusTableRenderer, TerminalGraphRenderer
from nexusflow.cli_ui.live_monitor import LiveExecutionMonitor

__all__ = [
    "TerminalGraphRenderer",
    "StatusTableRenderer",
    "LiveExecutionMonitor",
]
