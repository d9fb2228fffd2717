"""Base class for agents whose methods are exposed to the model as tools."""

from __future__ import annotations

import abc
import logging
from typing import Any, ClassVar, Dict, List, Optional, Union

from agent_oop.errors import ToolDefinitionError
from agent_oop.operations import Operation, build_operation
from agent_oop.registry import ToolRegistry, ToolSpec, default_registry, marked_tools
from agent_oop.runtime import ChatModel, RuntimeResult, ToolRuntime, as_chat_model, create_runtime

logger = logging.getLogger(__name__)


class BaseAgent(abc.ABC):
    """
    Lifecycle anchor for every agent.

    Subclasses declare tools with `@tool` / `@task` (optionally `@before` /
    `@after`). Declaring the class registers them; constructing an instance
    resolves the effective tool set across the class hierarchy, binds one
    operation per tool to `self` and hands the list to `create_runtime`.
    Once `__init__` returns, the agent is ready and `execute` may be called
    any number of times.

    Concurrent calls on one instance are not serialized; callers that need
    one-at-a-time semantics must queue or lock per instance.
    """

    registry: ClassVar[ToolRegistry] = default_registry
    system_prompt: ClassVar[Optional[str]] = None

    def __init_subclass__(cls, registry: Optional[ToolRegistry] = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if registry is not None:
            cls.registry = registry
        for base in cls.__mro__[1:]:
            if issubclass(base, BaseAgent):
                continue
            inherited = marked_tools(base)
            if inherited:
                raise ToolDefinitionError(
                    f"{cls.__qualname__} inherits tools {inherited} from {base.__qualname__}, "
                    "which is not a BaseAgent subclass; declare them on an agent class."
                )
        cls.registry.register_class(cls)

    def __init__(self, model: Union[ChatModel, str, None] = None) -> None:
        self.model = as_chat_model(model)
        self._tools: List[ToolSpec] = self.registry.resolve(type(self), root=BaseAgent)
        self._operations: List[Operation] = [
            build_operation(self, spec, self.registry) for spec in self._tools
        ]
        self.runtime: ToolRuntime = create_runtime(
            self.model,
            self._operations,
            system_prompt=self.system_prompt,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s ready with tools: %s", type(self).__name__, [s.name for s in self._tools])

    @property
    def tools(self) -> List[ToolSpec]:
        """Effective, override-resolved tools of this agent."""
        return list(self._tools)

    @property
    def operations(self) -> Dict[str, Operation]:
        return dict(self.runtime.operations)

    def operation(self, name: str) -> Operation:
        return self.runtime.operation(name)

    async def run_operation(self, name: str, payload: Any = None) -> Any:
        """Execute one tool directly, through its full hook chain."""
        return await self.operation(name).execute(payload)

    @abc.abstractmethod
    async def execute(self, input: str) -> RuntimeResult:
        """Handle a free-form request, usually via `self.runtime.invoke`."""
