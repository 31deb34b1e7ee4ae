"""Built-in node handlers.

Each handler maps ``(resolved_node, inputs)`` to an output shaped like what
the real integration would return. No network I/O happens here: outputs are
simulated. A real integration can be swapped in through the registry without
touching the engine; it must raise on I/O failure so the executor reports a
``NodeExecutionError``.

``inputs`` maps each direct predecessor's node id to its output, in
connection order.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from nexusflow.core.graph_schema import Node
from nexusflow.core.registry import GENERIC_TYPE, HandlerRegistry, NodeTypeDescriptor
from nexusflow.core.resolver import MISSING, get_nested_value

logger = logging.getLogger(__name__)

CONDITION_OPERATORS = {
    "==", "!=", ">", "<", ">=", "<=", "in", "not_in", "contains", "starts_with", "ends_with"
}


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _first_input(inputs: dict[str, Any]) -> Any:
    return next(iter(inputs.values()), {})


# ========== Input Nodes ==========


def execute_webhook(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    props = node.properties
    return {
        "status": 200,
        "method": props.get("method") or "POST",
        "url": props.get("url") or "/webhook",
        "body": {
            "timestamp": _now(),
            "data": "Sample webhook data",
            "source": "webhook-trigger",
        },
        "headers": {"Content-Type": "application/json"},
    }


def execute_form(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    return {
        "formName": node.properties.get("formName") or "Contact Form",
        "fields": {
            "name": "Jane Doe",
            "email": "jane@example.com",
            "company": "Acme Corp",
            "phone": "+1234567890",
            "message": "Interested in your services",
        },
        "submittedAt": _now(),
    }


def execute_schedule(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    props = node.properties
    return {
        "triggered": True,
        "frequency": props.get("frequency") or "daily",
        "time": props.get("time") or "09:00",
        "timezone": props.get("timezone") or "UTC",
        "firedAt": _now(),
    }


def execute_email_trigger(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    return {
        "mailbox": node.properties.get("mailbox") or "inbox",
        "from": "customer@example.com",
        "subject": "Question about my order",
        "body": "Hello, I would like to know the status of my order.",
        "receivedAt": _now(),
    }


# ========== Processing Nodes ==========


def execute_ai(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    """Simulated LLM call. The prompt has already been variable-resolved."""
    prompt = node.properties.get("systemPrompt") or "Process this data"
    prompt = str(prompt)
    default_model = "gemini-pro" if node.type == "gemini" else "gpt-4"
    return {
        "model": node.properties.get("model") or default_model,
        "prompt": prompt,
        "input": _first_input(inputs),
        "response": {
            "text": (
                f'Processed by {node.type}: AI response based on prompt "{prompt[:50]}..." '
                "and input data."
            ),
            "confidence": 0.95,
            "tokens": 150,
            "variables_resolved": True,
        },
        "timestamp": _now(),
    }


def evaluate_condition(condition: Any, data: Any) -> bool:
    """
    Evaluate a structured filter condition safely.

    A condition is ``{"field": ..., "operator": ..., "value": ...}``; ``field``
    supports dotted paths into ``data``. A bare string checks that the field
    exists and is truthy. Missing fields, type mismatches and invalid
    comparisons return False instead of raising.
    """
    if isinstance(condition, str):
        value = get_nested_value(data, condition)
        return value is not MISSING and bool(value)

    if not isinstance(condition, dict) or "field" not in condition:
        raise ValueError(f"Invalid filter condition: {condition!r}")

    operator = condition.get("operator", "==")
    if operator not in CONDITION_OPERATORS:
        raise ValueError(f"Unsupported filter operator: '{operator}'")
    expected = condition.get("value")

    value = get_nested_value(data, str(condition["field"]))
    # Absent fields never match, even for "!=": a typo must not pass a filter
    if value is MISSING:
        return False

    try:
        if operator == "==":
            return value == expected
        elif operator == "!=":
            return value != expected
        elif operator in (">", "<", ">=", "<="):
            if value is None or expected is None or isinstance(value, bool):
                return False
            if not isinstance(value, type(expected)) and not (
                isinstance(value, (int, float)) and isinstance(expected, (int, float))
            ):
                return False
            if operator == ">":
                return value > expected
            elif operator == "<":
                return value < expected
            elif operator == ">=":
                return value >= expected
            return value <= expected
        elif operator == "in":
            if not isinstance(expected, (str, list)):
                return False
            return value in expected
        elif operator == "not_in":
            if not isinstance(expected, (str, list)):
                return False
            return value not in expected
        elif operator == "contains":
            if isinstance(value, (dict, str, list)):
                return expected in value
            return False
        elif operator == "starts_with":
            return value.startswith(expected) if isinstance(value, str) else False
        else:  # ends_with
            return value.endswith(expected) if isinstance(value, str) else False
    except TypeError:
        return False


def execute_filter(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    first_input = _first_input(inputs)
    conditions = node.properties.get("conditions") or []
    combinator = str(node.properties.get("operator") or "AND").upper()
    if combinator not in ("AND", "OR"):
        raise ValueError(f"Unsupported filter combinator: '{combinator}'")

    results = [evaluate_condition(c, first_input) for c in conditions]
    if not results:
        passed = True
    elif combinator == "AND":
        passed = all(results)
    else:
        passed = any(results)
    logger.debug(f"Filter {node.id}: {combinator} of {results} -> {passed}")

    return {
        "filtered": passed,
        "input": first_input,
        "conditions": conditions,
        "operator": combinator,
    }


def execute_transform(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    first_input = _first_input(inputs)
    mappings = node.properties.get("mappings") or {}
    if not isinstance(mappings, dict):
        raise ValueError("Transform 'mappings' must be a mapping")

    output = dict(first_input) if isinstance(first_input, dict) else {"value": first_input}
    output.update(mappings)
    output["transformed_at"] = _now()
    output["node_type"] = node.type
    return {
        "transformed": True,
        "input": first_input,
        "output": output,
        "mappings": mappings,
    }


# ========== Output Nodes ==========


def execute_email_send(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    props = node.properties
    first_input = _first_input(inputs)
    fallback_to = first_input.get("email") if isinstance(first_input, dict) else None
    return {
        "sent": True,
        "provider": props.get("provider") or "SMTP",
        "to": props.get("to") or fallback_to or "recipient@example.com",
        "subject": props.get("subject") or "Email from Nexus Flow",
        "body": props.get("body") or "Email body content",
        "variables_resolved": True,
        "timestamp": _now(),
    }


def execute_slack(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    props = node.properties
    return {
        "sent": True,
        "channel": props.get("channel") or "#general",
        "message": props.get("message") or json.dumps(_first_input(inputs), indent=2, default=str),
        "variables_resolved": True,
        "timestamp": _now(),
    }


def execute_api_call(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    props = node.properties
    return {
        "status": 200,
        "method": props.get("method") or "POST",
        "url": props.get("url") or "https://api.example.com",
        "response": {"success": True, "data": _first_input(inputs)},
        "timestamp": _now(),
    }


def execute_database(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    props = node.properties
    return {
        "stored": True,
        "connection": props.get("connection") or "default",
        "table": props.get("table") or "automation_data",
        "operation": props.get("operation") or "insert",
        "record": _first_input(inputs),
        "timestamp": _now(),
    }


def execute_generic(node: Node, inputs: dict[str, Any]) -> dict[str, Any]:
    """Fallback for unregistered node types: echo inputs."""
    return {
        "nodeType": node.type,
        "executed": True,
        "inputs": inputs,
        "timestamp": _now(),
    }


# ========== Registry ==========

BUILTIN_DESCRIPTORS = [
    NodeTypeDescriptor(
        type="webhook",
        handler=execute_webhook,
        category="input",
        has_input=False,
        default_properties={"url": "/webhook/nexus-flow", "method": "POST", "authentication": False},
    ),
    NodeTypeDescriptor(
        type="form",
        handler=execute_form,
        category="input",
        has_input=False,
        default_properties={"formName": "Contact", "fields": ["name", "email", "message"]},
    ),
    NodeTypeDescriptor(
        type="schedule",
        handler=execute_schedule,
        category="input",
        has_input=False,
        default_properties={"frequency": "daily", "time": "09:00", "timezone": "UTC"},
    ),
    NodeTypeDescriptor(
        type="email-trigger",
        handler=execute_email_trigger,
        category="input",
        has_input=False,
        default_properties={"mailbox": "inbox", "pollInterval": 5},
    ),
    NodeTypeDescriptor(
        type="chatgpt",
        handler=execute_ai,
        category="processing",
        default_properties={
            "model": "gpt-4",
            "temperature": 0.7,
            "maxTokens": 1000,
            "systemPrompt": "You are a helpful Nexus Flow assistant",
        },
    ),
    NodeTypeDescriptor(
        type="gemini",
        handler=execute_ai,
        category="processing",
        default_properties={"model": "gemini-pro", "temperature": 0.7, "safetySettings": "high"},
    ),
    NodeTypeDescriptor(
        type="filter",
        handler=execute_filter,
        category="processing",
        default_properties={"conditions": [], "operator": "AND", "action": "continue"},
    ),
    NodeTypeDescriptor(
        type="transform",
        handler=execute_transform,
        category="processing",
        default_properties={"mappings": {}, "format": "json"},
    ),
    NodeTypeDescriptor(
        type="email-send",
        handler=execute_email_send,
        category="output",
        has_output=False,
        default_properties={"provider": "SMTP", "template": "default", "bcc": False},
    ),
    NodeTypeDescriptor(
        type="slack",
        handler=execute_slack,
        category="output",
        has_output=False,
        default_properties={"channel": "#general", "username": "Nexus Flow", "icon": ":robot_face:"},
    ),
    NodeTypeDescriptor(
        type="database",
        handler=execute_database,
        category="output",
        has_output=False,
        default_properties={"connection": "default", "table": "automation_data", "operation": "insert"},
    ),
    NodeTypeDescriptor(
        type="api-call",
        handler=execute_api_call,
        category="output",
        default_properties={"url": "", "method": "POST", "headers": {}, "timeout": 30000},
    ),
]

GENERIC_DESCRIPTOR = NodeTypeDescriptor(type=GENERIC_TYPE, handler=execute_generic)


def default_registry() -> HandlerRegistry:
    """Registry of all built-in handlers with the generic fallback."""
    return HandlerRegistry(BUILTIN_DESCRIPTORS, fallback=GENERIC_DESCRIPTOR)
