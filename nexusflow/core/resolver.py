"""Template variable resolution for node configuration.

Placeholders have the form ``{{ reference }}``::

    reference := "prev." subpath | node_id ("." subpath)?

``prev`` is the first direct predecessor of the node being resolved; any other
leading segment names a node already present in the execution context.
Unresolvable placeholders are never errors: a warning is logged and the
placeholder text is kept verbatim.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from nexusflow.core.context import ExecutionContext, ExecutionLog
from nexusflow.core.graph_schema import Node, WorkflowGraph

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_.-]+)\s*\}\}")
PREV_PREFIX = "prev."

# Sentinel for "no value at this path", distinct from a stored None
MISSING = object()


def get_nested_value(data: Any, path: str) -> Any:
    """Walk a dot-separated ``path`` through mappings (and sequences by index).

    Returns ``MISSING`` if any step cannot be followed. An empty path returns
    ``data`` itself.
    """
    if not path:
        return data

    current = data
    for key in path.split("."):
        if isinstance(current, dict):
            if key not in current:
                return MISSING
            current = current[key]
        elif isinstance(current, (list, tuple)) and key.isdigit():
            index = int(key)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def stringify(value: Any) -> str:
    """String form of a resolved value for substitution into text."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


class VariableResolver:
    """Resolve placeholders against the outputs recorded so far in a run."""

    def __init__(self, graph: WorkflowGraph, context: ExecutionContext, log: ExecutionLog):
        self.graph = graph
        self.context = context
        self.log = log

    def resolve(self, value: Any, node: Node) -> Any:
        """Resolve every placeholder in ``value``, recursing through containers."""
        if isinstance(value, str):
            return self.resolve_string(value, node)
        if isinstance(value, list):
            return [self.resolve(item, node) for item in value]
        if isinstance(value, dict):
            return {key: self.resolve(item, node) for key, item in value.items()}
        return value

    def resolve_string(self, text: str, node: Node) -> str:
        def substitute(match: re.Match) -> str:
            placeholder = match.group(0)
            value = self._lookup(match.group(1), placeholder, node)
            return placeholder if value is MISSING else stringify(value)

        return VARIABLE_PATTERN.sub(substitute, text)

    def _lookup(self, reference: str, placeholder: str, node: Node) -> Any:
        if reference.startswith(PREV_PREFIX):
            prev_id = self._first_predecessor(node)
            if prev_id is None:
                self.log.warning(
                    f"Variable {placeholder}: no previous nodes connected",
                    node_id=node.id,
                    variable=placeholder,
                )
                return MISSING
            source_id, field_path = prev_id, reference[len(PREV_PREFIX):]
        else:
            source_id, _, field_path = reference.partition(".")
            if source_id not in self.context:
                self.log.warning(
                    f"Variable {placeholder}: node {source_id} not found or not executed yet",
                    node_id=node.id,
                    variable=placeholder,
                )
                return MISSING

        value = get_nested_value(self.context.get(source_id), field_path)
        if value is MISSING:
            self.log.warning(
                f"Variable {placeholder}: field '{field_path}' not found in output of {source_id}",
                node_id=node.id,
                variable=placeholder,
            )
        return value

    def _first_predecessor(self, node: Node) -> str | None:
        """First direct predecessor, in connection order, that has an output."""
        for conn in self.graph.incoming(node.id):
            if conn.source in self.context:
                return conn.source
        return None
