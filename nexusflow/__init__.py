"""Nexus Flow - workflow execution engine.

Runs user-built automation graphs node by node in topological order,
propagating outputs downstream and resolving {{references}} in configuration.
"""

__version__ = "0.1.0"
