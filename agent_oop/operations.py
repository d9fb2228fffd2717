"""
Invocable operations: one per (agent, ToolSpec) pair.

An operation validates raw input, threads it through the before-hooks, calls
the bound method, threads the result through the after-hooks and returns it.
`Operation.execute` raises the typed errors from `agent_oop.errors`;
`Operation.call` is the runtime boundary and turns them into a `ToolOutcome`.
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from agent_oop.errors import (
    AgentError,
    ConstructionFailure,
    PreconditionError,
    SchemaValidationError,
    ToolCallError,
    UnderlyingFailure,
)
from agent_oop.registry import Hook, ToolRegistry, ToolSpec

logger = logging.getLogger(__name__)


async def maybe_await(value: Any) -> Any:
    """Await `value` if it is awaitable, else return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def to_jsonable(value: Any) -> Any:
    """Convert tool results into plain JSON-compatible structures."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


@dataclass(slots=True)
class ToolOutcome:
    """Structured result of one tool call, success or failure."""

    name: str
    ok: bool
    result: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    def to_message(self) -> str:
        """Render the outcome as the text of a `tool` chat message."""
        if not self.ok:
            return json.dumps({"error": self.error, "type": self.error_type})
        if isinstance(self.result, str):
            return self.result
        return json.dumps(to_jsonable(self.result))


@dataclass(frozen=True, slots=True)
class Operation:
    """An externally invocable tool bound to one agent instance."""

    name: str
    description: str
    schema: Type[BaseModel]
    kind: str
    execute: Callable[[Any], Awaitable[Any]]

    def to_tool_schema(self) -> Dict[str, Any]:
        """Function-calling definition (OpenAI/Groq `tools` format)."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.schema.model_json_schema(),
            },
        }

    async def call(self, raw: Any) -> ToolOutcome:
        """Run the operation; failures come back as a failed `ToolOutcome`."""
        try:
            result = await self.execute(raw)
        except ToolCallError as exc:
            logger.warning("Tool %s failed (%s): %s", self.name, exc.error_type, exc.message)
            return ToolOutcome(name=self.name, ok=False, error=exc.message, error_type=exc.error_type)
        return ToolOutcome(name=self.name, ok=True, result=result)


def _resolve_hook(entity: Any, spec: ToolSpec, hook: Hook) -> Callable[[Any], Any]:
    if isinstance(hook, str):
        bound = getattr(entity, hook, None)
        if not callable(bound):
            raise ConstructionFailure(
                f"Hook '{hook}' on tool '{spec.name}' is not a method of {type(entity).__qualname__}."
            )
        return bound
    return hook


def _hook_name(fn: Callable[[Any], Any]) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


def validate_input(spec: ToolSpec, raw: Any) -> BaseModel:
    """Coerce raw tool arguments into the tool's input schema."""
    if isinstance(raw, spec.schema):
        return raw
    if raw is None:
        raw = {}
    try:
        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        return spec.schema.model_validate(raw)
    except ValidationError as exc:
        raise SchemaValidationError(
            spec.name,
            f"Invalid arguments: {exc.error_count()} validation error(s): "
            + "; ".join(f"{'.'.join(str(p) for p in e['loc']) or '<root>'}: {e['msg']}" for e in exc.errors()),
            errors=exc.errors(include_url=False),
        ) from exc


def _validate_output(spec: ToolSpec, value: Any) -> Any:
    try:
        if isinstance(value, BaseModel):
            value = value.model_dump()
        return spec.output_schema.model_validate(value).model_dump()
    except ValidationError as exc:
        raise SchemaValidationError(
            spec.name,
            f"Result does not match the declared output schema: {exc.error_count()} error(s)",
            errors=exc.errors(include_url=False),
        ) from exc


def build_operation(entity: Any, spec: ToolSpec, registry: ToolRegistry) -> Operation:
    """Bind `spec` to `entity`, resolving its method and hook chains once."""
    method = getattr(entity, spec.method_name)
    before_hooks, after_hooks = registry.hooks_for(type(entity), spec.method_name)
    before_fns: List[Callable[[Any], Any]] = [_resolve_hook(entity, spec, h) for h in before_hooks]
    after_fns: List[Callable[[Any], Any]] = [_resolve_hook(entity, spec, h) for h in after_hooks]

    async def execute(raw: Any) -> Any:
        payload: Any = validate_input(spec, raw)

        for fn in before_fns:
            try:
                payload = await maybe_await(fn(payload))
            except ToolCallError:
                raise
            except Exception as exc:
                raise PreconditionError(spec.name, f"{_hook_name(fn)}: {exc}") from exc

        try:
            result = await maybe_await(method(payload))
        except AgentError as exc:
            if isinstance(exc, ToolCallError) and exc.tool == spec.name:
                raise
            raise UnderlyingFailure(spec.name, str(exc)) from exc
        except Exception as exc:
            raise UnderlyingFailure(spec.name, f"{type(exc).__name__}: {exc}") from exc

        for fn in after_fns:
            try:
                result = await maybe_await(fn(result))
            except ToolCallError:
                raise
            except Exception as exc:
                raise UnderlyingFailure(spec.name, f"{_hook_name(fn)}: {exc}") from exc

        if spec.output_schema is not None:
            result = _validate_output(spec, result)
        return result

    return Operation(
        name=spec.name,
        description=spec.display_description,
        schema=spec.schema,
        kind=spec.kind,
        execute=execute,
    )
