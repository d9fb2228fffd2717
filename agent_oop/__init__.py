"""Class-based agents whose methods are exposed to a chat model as tools."""

from agent_oop.agent import BaseAgent
from agent_oop.errors import (
    AgentError,
    ConstructionFailure,
    PreconditionError,
    SchemaValidationError,
    ToolCallError,
    ToolDefinitionError,
    UnderlyingFailure,
)
from agent_oop.operations import Operation, ToolOutcome
from agent_oop.registry import EmptyInput, TextInput, ToolRegistry, ToolSpec, after, before, task, tool
from agent_oop.runtime import ChatModel, RuntimeResult, ToolRuntime, create_runtime

__all__ = [
    "AgentError",
    "BaseAgent",
    "ChatModel",
    "ConstructionFailure",
    "EmptyInput",
    "Operation",
    "PreconditionError",
    "RuntimeResult",
    "SchemaValidationError",
    "TextInput",
    "ToolCallError",
    "ToolDefinitionError",
    "ToolOutcome",
    "ToolRegistry",
    "ToolRuntime",
    "ToolSpec",
    "UnderlyingFailure",
    "after",
    "before",
    "create_runtime",
    "task",
    "tool",
]
