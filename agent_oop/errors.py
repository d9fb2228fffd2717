"""Error types raised while declaring, building and invoking agent tools."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class AgentError(Exception):
    """Base class for every error raised by the agent core."""


class ToolDefinitionError(AgentError, ValueError):
    """A tool declaration is malformed (bad name, schema or duplicate)."""


class ConstructionFailure(AgentError):
    """An agent could not be built: a hook does not resolve or the runtime rejected its tools."""


class ToolCallError(AgentError):
    """A single tool invocation failed; recoverable by the model."""

    error_type = "tool_error"

    def __init__(self, tool: str, message: str) -> None:
        super().__init__(message)
        self.tool = tool
        self.message = message

    def __str__(self) -> str:
        return f"{self.tool}: {self.message}"


class SchemaValidationError(ToolCallError):
    """Raw input (or a declared output) does not match the tool's schema."""

    error_type = "schema_validation"

    def __init__(self, tool: str, message: str, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(tool, message)
        self.errors = errors or []


class PreconditionError(ToolCallError):
    """A before-hook rejected the input; the tool method never ran."""

    error_type = "precondition"


class UnderlyingFailure(ToolCallError):
    """The tool method itself raised; after-hooks were skipped."""

    error_type = "underlying_failure"


def not_found(kind: str, key: str) -> Dict[str, str]:
    """Structured miss returned by lookups (a value, not an exception)."""
    return {"error": f"{kind} not found: {key}"}
