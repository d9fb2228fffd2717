"""
Tool-calling runtime on top of Groq chat completions.

`create_runtime(model, operations)` is the factory every agent calls during
construction. The returned `ToolRuntime.invoke` drives the loop: ask the
model, run the tool calls it requests, feed the results back, repeat until
the model answers in plain text or the turn limit is hit.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from groq import AsyncGroq

from agent_oop.config import get_groq_api_key, get_max_turns, get_model_name
from agent_oop.errors import ConstructionFailure
from agent_oop.operations import Operation, ToolOutcome
from agent_oop.registry import TOOL_NAME_PATTERN

logger = logging.getLogger(__name__)

Conversation = Union[str, Sequence[Dict[str, Any]], Dict[str, Any]]

_ROLE_ALIASES = {"human": "user", "ai": "assistant"}


@dataclass
class ChatModel:
    """Model reference handed to agents; the Groq client is built lazily."""

    name: str
    client: Any = None
    temperature: float = 0.2
    max_tokens: Optional[int] = None

    @classmethod
    def from_env(cls, **kwargs: Any) -> "ChatModel":
        return cls(name=get_model_name(), **kwargs)

    def get_client(self) -> Any:
        """Return the injected client or build an `AsyncGroq` one."""
        if self.client is None:
            self.client = AsyncGroq(api_key=get_groq_api_key())
        return self.client

    def request_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens is not None:
            options["max_tokens"] = self.max_tokens
        return options

    async def complete(self, prompt: str, system: Optional[str] = None) -> str:
        """Single chat completion without tools; returns the message text."""
        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        completion = await self.get_client().chat.completions.create(
            model=self.name,
            messages=messages,
            **self.request_options(),
        )
        return completion.choices[0].message.content or ""


def as_chat_model(model: Union[ChatModel, str, None]) -> ChatModel:
    if isinstance(model, ChatModel):
        return model
    if isinstance(model, str):
        return ChatModel(name=model)
    if model is None:
        return ChatModel.from_env()
    raise TypeError(f"Expected a ChatModel or model name, got {type(model).__name__}.")


@dataclass
class RuntimeResult:
    """Transcript of one `invoke` call."""

    messages: List[Dict[str, Any]]
    trace: List[ToolOutcome] = field(default_factory=list)
    turns: int = 0
    finished: bool = True

    @property
    def content(self) -> str:
        """Text of the last assistant message."""
        for message in reversed(self.messages):
            if message.get("role") == "assistant" and message.get("content"):
                return str(message["content"])
        return ""

    @property
    def tool_names(self) -> List[str]:
        return [outcome.name for outcome in self.trace]


def parse_arguments(raw: Any) -> Dict[str, Any]:
    """Decode tool-call arguments produced by the model (untrusted JSON)."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Tool arguments are not valid JSON: {exc}") from exc
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Tool arguments must be a JSON object, got {type(value).__name__}.")
    return value


def _normalize_message(message: Dict[str, Any]) -> Dict[str, Any]:
    entry = dict(message)
    role = entry.get("role", "user")
    entry["role"] = _ROLE_ALIASES.get(role, role)
    return entry


def _assistant_entry(message: Any, tool_calls: List[Any]) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"role": "assistant", "content": message.content or ""}
    if tool_calls:
        entry["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.function.name, "arguments": call.function.arguments},
            }
            for call in tool_calls
        ]
    return entry


class ToolRuntime:
    """Conversational loop that lets the model call an agent's operations."""

    def __init__(
        self,
        model: ChatModel,
        operations: Sequence[Operation],
        system_prompt: Optional[str] = None,
        max_turns: int = 20,
    ) -> None:
        self.model = model
        self.operations: Dict[str, Operation] = {op.name: op for op in operations}
        self.system_prompt = system_prompt
        self.max_turns = max_turns

    @property
    def tool_schemas(self) -> List[Dict[str, Any]]:
        return [op.to_tool_schema() for op in self.operations.values()]

    def operation(self, name: str) -> Operation:
        try:
            return self.operations[name]
        except KeyError as exc:
            raise KeyError(f"Unknown tool '{name}'. Available: {', '.join(self.operations) or '(none)'}") from exc

    async def dispatch(self, name: str, raw_arguments: Any) -> ToolOutcome:
        """Run one model-requested tool call; never raises for bad calls."""
        op = self.operations.get(name)
        if op is None:
            return ToolOutcome(name=name, ok=False, error=f"Unknown tool: {name}", error_type="unknown_tool")
        try:
            arguments = parse_arguments(raw_arguments)
        except ValueError as exc:
            return ToolOutcome(name=name, ok=False, error=str(exc), error_type="invalid_arguments")
        return await op.call(arguments)

    def _initial_messages(self, conversation: Conversation) -> List[Dict[str, Any]]:
        if isinstance(conversation, str):
            messages = [{"role": "user", "content": conversation}]
        elif isinstance(conversation, dict):
            if "messages" in conversation:
                messages = [_normalize_message(m) for m in conversation["messages"]]
            else:
                messages = [{"role": "user", "content": str(conversation.get("input", ""))}]
        else:
            messages = [_normalize_message(m) for m in conversation]

        if self.system_prompt and not any(m["role"] == "system" for m in messages):
            messages.insert(0, {"role": "system", "content": self.system_prompt})
        return messages

    async def invoke(self, conversation: Conversation) -> RuntimeResult:
        """Run the tool loop for one conversational turn."""
        messages = self._initial_messages(conversation)
        trace: List[ToolOutcome] = []
        client = self.model.get_client()
        request = self.model.request_options()
        if self.operations:
            request.update(tools=self.tool_schemas, tool_choice="auto")

        for turn in range(1, self.max_turns + 1):
            completion = await client.chat.completions.create(
                model=self.model.name,
                messages=list(messages),
                **request,
            )
            message = completion.choices[0].message
            tool_calls = list(getattr(message, "tool_calls", None) or [])
            messages.append(_assistant_entry(message, tool_calls))

            if not tool_calls:
                return RuntimeResult(messages=messages, trace=trace, turns=turn, finished=True)

            for call in tool_calls:
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug("Turn %d: tool call %s(%s)", turn, call.function.name, call.function.arguments)
                outcome = await self.dispatch(call.function.name, call.function.arguments)
                trace.append(outcome)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": outcome.to_message(),
                    }
                )

        logger.warning("Reached max turns (%d) without a final answer.", self.max_turns)
        return RuntimeResult(messages=messages, trace=trace, turns=self.max_turns, finished=False)


def create_runtime(
    model: Union[ChatModel, str, None],
    operations: Sequence[Operation],
    *,
    system_prompt: Optional[str] = None,
    max_turns: Optional[int] = None,
) -> ToolRuntime:
    """
    Build a runtime for `operations`.

    Raises
    ------
    ConstructionFailure
        If two operations share a name, a name is not a valid function name,
        or a schema cannot be rendered as JSON schema.
    """
    counts = Counter(op.name for op in operations)
    duplicates = sorted(name for name, count in counts.items() if count > 1)
    if duplicates:
        raise ConstructionFailure(f"Duplicate tool names: {', '.join(duplicates)}")

    for op in operations:
        if not TOOL_NAME_PATTERN.match(op.name):
            raise ConstructionFailure(f"Invalid tool name '{op.name}'.")
        try:
            op.to_tool_schema()
        except Exception as exc:
            raise ConstructionFailure(f"Tool '{op.name}' has a schema that cannot be described: {exc}") from exc

    return ToolRuntime(
        model=as_chat_model(model),
        operations=operations,
        system_prompt=system_prompt,
        max_turns=max_turns or get_max_turns(),
    )
