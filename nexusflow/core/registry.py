"""Node type registry.

An immutable table from node type tag to a descriptor (capabilities, default
properties, handler). Built once at startup and injected into the executor.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from nexusflow.core.graph_schema import Node

# (resolved_node, inputs) -> output, sync or async
NodeHandler = Callable[[Node, dict[str, Any]], Any | Awaitable[Any]]

GENERIC_TYPE = "generic"


class UnknownNodeTypeError(KeyError):
    """Node type not registered and no fallback configured."""

    pass


@dataclass(frozen=True)
class NodeTypeDescriptor:
    """Everything the engine knows about one node type."""

    type: str
    handler: NodeHandler
    category: str = "custom"
    has_input: bool = True
    has_output: bool = True
    default_properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze defaults so a shared descriptor cannot leak state between runs
        object.__setattr__(
            self, "default_properties", MappingProxyType(dict(self.default_properties))
        )


class HandlerRegistry:
    """Read-only mapping of node type to descriptor with a generic fallback."""

    def __init__(
        self,
        descriptors: Iterable[NodeTypeDescriptor],
        fallback: NodeTypeDescriptor | None = None,
    ):
        table: dict[str, NodeTypeDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.type in table:
                raise ValueError(f"Duplicate node type: '{descriptor.type}'")
            table[descriptor.type] = descriptor
        self._descriptors = MappingProxyType(table)
        self._fallback = fallback

    def get(self, node_type: str) -> NodeTypeDescriptor:
        """Descriptor for ``node_type``; unknown types use the fallback."""
        descriptor = self._descriptors.get(node_type)
        if descriptor is not None:
            return descriptor
        if self._fallback is None:
            raise UnknownNodeTypeError(node_type)
        return self._fallback

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def types(self) -> list[str]:
        return list(self._descriptors)

    def descriptors(self) -> list[NodeTypeDescriptor]:
        return list(self._descriptors.values())

    @property
    def fallback(self) -> NodeTypeDescriptor | None:
        return self._fallback

    def with_handler(self, node_type: str, handler: NodeHandler, **overrides: Any) -> HandlerRegistry:
        """Return a new registry with ``node_type`` bound to ``handler``.

        An existing descriptor keeps its capabilities and defaults unless
        overridden; this registry is left untouched.
        """
        existing = self._descriptors.get(node_type)
        if existing is not None:
            descriptor = replace(existing, handler=handler, **overrides)
        else:
            descriptor = NodeTypeDescriptor(type=node_type, handler=handler, **overrides)

        table = dict(self._descriptors)
        table[node_type] = descriptor
        return HandlerRegistry(table.values(), fallback=self._fallback)
