"""Function declarations that tell the agent which tools exist.

The agent's model needs a name, a description and a JSON schema for the
arguments of every tool it may call. These are generated from the
registered handlers so the schema and the validation the handler applies
can never drift apart.
"""

from __future__ import annotations

from typing import Any

from frontdesk.router import ToolCallRouter
from frontdesk.tools import ToolHandler


def _clean_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Drop pydantic's "title" keys, which the agent has no use for."""
    cleaned: dict[str, Any] = {}
    for key, value in schema.items():
        if key == "title":
            continue
        if key == "properties":
            cleaned[key] = {name: _clean_schema(prop) for name, prop in value.items()}
        elif isinstance(value, dict):
            cleaned[key] = _clean_schema(value)
        elif isinstance(value, list):
            cleaned[key] = [_clean_schema(v) if isinstance(v, dict) else v for v in value]
        else:
            cleaned[key] = value
    return cleaned


def declaration_for(handler: ToolHandler) -> dict[str, Any]:
    schema = handler.args_model.model_json_schema(by_alias=True)
    parameters = _clean_schema(schema)
    parameters.setdefault("required", [])
    return {
        "name": handler.name,
        "description": handler.description,
        "parameters": parameters,
    }


def tool_declarations(router: ToolCallRouter) -> list[dict[str, Any]]:
    """Declarations for every operation the router can serve."""
    return [declaration_for(handler) for handler in router.handlers]
