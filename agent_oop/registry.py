"""
Tool declarations and the tables that hold them.

Decorators only mark functions. `ToolRegistry.register_class` turns the marks
into `ToolSpec` rows and hook chains; `BaseAgent.__init_subclass__` calls it
for every agent class, so a class is fully registered once its `class`
statement finishes. Everything after that point only reads these tables.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from pydantic import BaseModel

from agent_oop.errors import ToolDefinitionError

logger = logging.getLogger(__name__)

#: A hook is a unary callable (sync or async) or the name of an agent method.
Hook = Union[Callable[[Any], Any], str]

#: Chains are keyed by the class that defines the method plus its name.
ChainKey = Tuple[type, str]

TOOL_KIND = "tool"
TASK_KIND = "task"

TOOL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

_MARK_ATTR = "__agent_tool__"
_BEFORE_ATTR = "__agent_before__"
_AFTER_ATTR = "__agent_after__"


class EmptyInput(BaseModel):
    """Schema for tools that take no arguments."""


class TextInput(BaseModel):
    """Default task schema: a single free-form string."""

    input: str


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Static metadata for one method exposed to the model."""

    owner: type
    method_name: str
    name: str
    description: str
    schema: Type[BaseModel]
    kind: str = TOOL_KIND
    output_schema: Optional[Type[BaseModel]] = None

    @property
    def is_task(self) -> bool:
        return self.kind == TASK_KIND

    @property
    def display_description(self) -> str:
        """Description as shown to the model; tasks are tagged."""
        if self.is_task:
            return f"[Task] {self.description}"
        return self.description


@dataclass(frozen=True, slots=True)
class _ToolMark:
    name: str
    description: str
    schema: Type[BaseModel]
    kind: str
    output_schema: Optional[Type[BaseModel]] = None


# --------------------------------------------------------------------------- #
# Declaration decorators
# --------------------------------------------------------------------------- #

def _check_declaration(name: str, description: str) -> None:
    if not isinstance(name, str) or not TOOL_NAME_PATTERN.match(name):
        raise ToolDefinitionError(
            f"Tool name {name!r} must match {TOOL_NAME_PATTERN.pattern}."
        )
    if not isinstance(description, str) or not description.strip():
        raise ToolDefinitionError(f"Tool '{name}' needs a non-empty description.")


def _check_schema(name: str, schema: Any, role: str) -> None:
    if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
        raise ToolDefinitionError(
            f"Tool '{name}': {role} must be a pydantic BaseModel subclass, got {schema!r}."
        )


def _mark(fn: Callable[..., Any], mark: _ToolMark) -> Callable[..., Any]:
    if not callable(fn):
        raise ToolDefinitionError(f"@{mark.kind}('{mark.name}') must decorate a function.")
    existing = getattr(fn, _MARK_ATTR, None)
    if existing is not None:
        raise ToolDefinitionError(
            f"{fn.__qualname__} is already declared as '{existing.name}'; "
            f"cannot also declare it as '{mark.name}'."
        )
    setattr(fn, _MARK_ATTR, mark)
    return fn


def tool(name: str, description: str, schema: Type[BaseModel] = EmptyInput):
    """Declare a deterministic method the model may call."""
    _check_declaration(name, description)
    _check_schema(name, schema, "schema")

    def decorator(fn):
        return _mark(fn, _ToolMark(name=name, description=description, schema=schema, kind=TOOL_KIND))

    return decorator


def task(
    name: str,
    description: str,
    input_schema: Optional[Type[BaseModel]] = None,
    output_schema: Optional[Type[BaseModel]] = None,
):
    """Declare an agentic method (usually one that calls the model itself)."""
    _check_declaration(name, description)
    input_schema = input_schema or TextInput
    _check_schema(name, input_schema, "input_schema")
    if output_schema is not None:
        _check_schema(name, output_schema, "output_schema")

    def decorator(fn):
        return _mark(
            fn,
            _ToolMark(
                name=name,
                description=description,
                schema=input_schema,
                kind=TASK_KIND,
                output_schema=output_schema,
            ),
        )

    return decorator


def _push_hook(fn: Callable[..., Any], attr: str, hook: Hook) -> Callable[..., Any]:
    if not (callable(hook) or isinstance(hook, str)):
        raise ToolDefinitionError(f"Hook {hook!r} must be callable or a method name.")
    hooks = list(getattr(fn, attr, ()))
    # Decorators apply bottom-up; prepending keeps hooks in source order.
    hooks.insert(0, hook)
    setattr(fn, attr, hooks)
    return fn


def before(hook: Hook):
    """Run `hook(payload)` before the method; its return value replaces the payload."""

    def decorator(fn):
        return _push_hook(fn, _BEFORE_ATTR, hook)

    return decorator


def after(hook: Hook):
    """Run `hook(result)` after the method; its return value replaces the result."""

    def decorator(fn):
        return _push_hook(fn, _AFTER_ATTR, hook)

    return decorator


# --------------------------------------------------------------------------- #
# Tables
# --------------------------------------------------------------------------- #

class ChainStore:
    """Ordered before/after hooks per (defining class, method name)."""

    def __init__(self) -> None:
        self._before: Dict[ChainKey, List[Hook]] = {}
        self._after: Dict[ChainKey, List[Hook]] = {}

    def add_before(self, key: ChainKey, hook: Hook) -> None:
        self._before.setdefault(key, []).append(hook)

    def add_after(self, key: ChainKey, hook: Hook) -> None:
        self._after.setdefault(key, []).append(hook)

    def get_before(self, key: ChainKey) -> List[Hook]:
        return list(self._before.get(key, ()))

    def get_after(self, key: ChainKey) -> List[Hook]:
        return list(self._after.get(key, ()))


def defining_class(cls: type, method_name: str) -> Optional[type]:
    """Return the first class in `cls`'s MRO whose body defines `method_name`."""
    for klass in cls.__mro__:
        if method_name in vars(klass):
            return klass
    return None


def _unwrap(value: Any) -> Optional[Callable[..., Any]]:
    if isinstance(value, (staticmethod, classmethod)):
        value = value.__func__
    if not callable(value) or isinstance(value, type):
        return None
    return value


def marked_tools(klass: type) -> List[str]:
    """External names of the tools declared in the body of `klass`."""
    names = []
    for value in vars(klass).values():
        mark = getattr(_unwrap(value), _MARK_ATTR, None)
        if mark is not None:
            names.append(mark.name)
    return names


class ToolRegistry:
    """
    Class -> declared tools, plus the hook chains of their methods.

    Rows are only ever added, at class-definition time; reads afterwards need
    no locking.
    """

    def __init__(self) -> None:
        self._tools: Dict[type, List[ToolSpec]] = {}
        self.chains = ChainStore()

    def register(self, owner: type, spec: ToolSpec) -> None:
        self._tools.setdefault(owner, []).append(spec)

    def lookup(self, owner: type) -> List[ToolSpec]:
        """Tools declared directly on `owner` (never inherited ones)."""
        return list(self._tools.get(owner, ()))

    def register_class(self, cls: type) -> List[ToolSpec]:
        """Record every marked method and hook found in the body of `cls`."""
        declared = {spec.name: spec.method_name for spec in self._tools.get(cls, ())}
        specs: List[ToolSpec] = []

        for attr, value in vars(cls).items():
            fn = _unwrap(value)
            if fn is None:
                continue

            for hook in getattr(fn, _BEFORE_ATTR, ()):
                self.chains.add_before((cls, attr), hook)
            for hook in getattr(fn, _AFTER_ATTR, ()):
                self.chains.add_after((cls, attr), hook)

            mark = getattr(fn, _MARK_ATTR, None)
            if mark is None:
                continue
            if mark.name in declared:
                raise ToolDefinitionError(
                    f"{cls.__qualname__} declares tool '{mark.name}' twice "
                    f"({declared[mark.name]} and {attr})."
                )
            declared[mark.name] = attr

            spec = ToolSpec(
                owner=cls,
                method_name=attr,
                name=mark.name,
                description=mark.description,
                schema=mark.schema,
                kind=mark.kind,
                output_schema=mark.output_schema,
            )
            self.register(cls, spec)
            specs.append(spec)

        if specs and logger.isEnabledFor(logging.DEBUG):
            logger.debug("Registered %s tools: %s", cls.__qualname__, [s.name for s in specs])
        return specs

    def resolve(self, cls: type, root: type = object) -> List[ToolSpec]:
        """
        Effective tools for `cls`: walk the MRO up to `root`, first name wins.

        A subclass declaration fully replaces an ancestor declaration with the
        same external name.
        """
        resolved: List[ToolSpec] = []
        seen: set[str] = set()
        for klass in cls.__mro__:
            if klass is root or klass is object:
                break
            for spec in self.lookup(klass):
                if spec.name in seen:
                    continue
                seen.add(spec.name)
                resolved.append(spec)
        return resolved

    def hooks_for(self, cls: type, method_name: str) -> Tuple[List[Hook], List[Hook]]:
        """Before/after chains of the implementation `cls` would dispatch to."""
        owner = defining_class(cls, method_name)
        if owner is None:
            return [], []
        key = (owner, method_name)
        return self.chains.get_before(key), self.chains.get_after(key)


#: Process-wide registry used by `BaseAgent` unless a hierarchy brings its own.
default_registry = ToolRegistry()
