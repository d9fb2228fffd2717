from typing import Optional

import pytest
from pydantic import BaseModel

from agent_oop.agent import BaseAgent
from agent_oop.errors import ToolDefinitionError
from agent_oop.registry import (
    EmptyInput,
    TextInput,
    ToolRegistry,
    after,
    before,
    defining_class,
    task,
    tool,
)


class QueryInput(BaseModel):
    query: str


def make_hierarchy():
    """Fresh registry plus a Base/Sub pair that both declare `search`."""
    registry = ToolRegistry()

    class Entity(BaseAgent, registry=registry):
        async def execute(self, input):
            return await self.runtime.invoke(input)

    def shout(result):
        return result.upper()

    class Base(Entity):
        @tool("search", "Base search", QueryInput)
        @after(shout)
        def search(self, payload):
            return f"base:{payload.query}"

        @tool("ping", "Ping")
        def ping(self, payload):
            return "pong"

    class Sub(Base):
        @tool("search", "Sub search", QueryInput)
        def search(self, payload):
            return f"sub:{payload.query}"

    return registry, Entity, Base, Sub, shout


def test_decorators_only_mark_functions():
    def fn(self, payload):
        return payload

    marked = tool("ping", "Ping")(fn)
    assert marked is fn
    assert ToolRegistry().lookup(object) == []


def test_class_definition_registers_declared_tools():
    registry, _, Base, Sub, _ = make_hierarchy()

    assert [s.name for s in registry.lookup(Base)] == ["search", "ping"]
    # Sub only declares its override; inherited tools are not copied.
    assert [s.name for s in registry.lookup(Sub)] == ["search"]
    spec = registry.lookup(Base)[0]
    assert spec.owner is Base
    assert spec.method_name == "search"
    assert spec.schema is QueryInput


def test_resolve_first_occurrence_wins():
    registry, Entity, Base, Sub, _ = make_hierarchy()

    resolved = registry.resolve(Sub, root=Entity)
    assert [s.name for s in resolved] == ["search", "ping"]
    assert resolved[0].description == "Sub search"
    assert resolved[0].owner is Sub


def test_resolve_stops_at_root():
    registry, Entity, Base, _, _ = make_hierarchy()

    assert registry.resolve(Entity, root=Entity) == []
    assert [s.name for s in registry.resolve(Base, root=Entity)] == ["search", "ping"]


def test_override_gets_its_own_chain():
    registry, _, Base, Sub, shout = make_hierarchy()

    assert registry.hooks_for(Base, "search") == ([], [shout])
    assert registry.hooks_for(Sub, "search") == ([], [])


def test_inherited_method_shares_declaring_class_chain():
    registry, _, Base, Sub, shout = make_hierarchy()

    class Leaf(Sub):
        pass

    assert defining_class(Leaf, "search") is Sub
    assert defining_class(Leaf, "ping") is Base
    assert registry.hooks_for(Leaf, "search") == registry.hooks_for(Sub, "search")


def test_hooks_kept_in_source_order():
    registry = ToolRegistry()

    def first(p):
        return p

    def second(p):
        return p

    class Ordered(BaseAgent, registry=registry):
        @tool("go", "Go")
        @before(first)
        @before(second)
        @after("cleanup")
        def go(self, payload):
            return payload

        def cleanup(self, result):
            return result

        async def execute(self, input):
            return None

    assert registry.hooks_for(Ordered, "go") == ([first, second], ["cleanup"])


def test_hooks_without_tool_mark_still_registered():
    registry = ToolRegistry()

    def check(p):
        return p

    class Plain(BaseAgent, registry=registry):
        @before(check)
        def helper(self, payload):
            return payload

        async def execute(self, input):
            return None

    assert registry.lookup(Plain) == []
    assert registry.hooks_for(Plain, "helper") == ([check], [])


def test_duplicate_name_in_one_class_rejected():
    registry = ToolRegistry()

    with pytest.raises(ToolDefinitionError, match="twice"):

        class Broken(BaseAgent, registry=registry):
            @tool("same", "First")
            def one(self, payload):
                return 1

            @tool("same", "Second")
            def two(self, payload):
                return 2

            async def execute(self, input):
                return None


def test_tools_on_a_plain_mixin_rejected():
    registry = ToolRegistry()

    class Searchable:
        @tool("lookup", "Look something up", QueryInput)
        def lookup(self, payload):
            return payload.query

    with pytest.raises(ToolDefinitionError, match="not a BaseAgent subclass"):

        class Broken(Searchable, BaseAgent, registry=registry):
            async def execute(self, input):
                return None

    assert registry.lookup(Searchable) == []


@pytest.mark.parametrize("name", ["", "has space", "x" * 65, "semi;colon"])
def test_invalid_tool_names_rejected(name):
    with pytest.raises(ToolDefinitionError):
        tool(name, "desc")


def test_description_and_schema_checked():
    with pytest.raises(ToolDefinitionError, match="description"):
        tool("ok", "   ")
    with pytest.raises(ToolDefinitionError, match="BaseModel"):
        tool("ok", "desc", dict)
    with pytest.raises(ToolDefinitionError, match="output_schema"):
        task("ok", "desc", output_schema=str)


def test_function_cannot_be_declared_twice():
    def fn(self, payload):
        return payload

    tool("first", "First")(fn)
    with pytest.raises(ToolDefinitionError, match="already declared"):
        task("second", "Second")(fn)


def test_task_defaults_and_description():
    registry = ToolRegistry()

    class Writer(BaseAgent, registry=registry):
        @task("draft", "Draft some text")
        def draft(self, payload):
            return payload.input

        @tool("count", "Count")
        def count(self, payload: Optional[EmptyInput] = None):
            return 0

        async def execute(self, input):
            return None

    draft, count = registry.lookup(Writer)
    assert draft.is_task and draft.schema is TextInput
    assert draft.display_description == "[Task] Draft some text"
    assert not count.is_task and count.schema is EmptyInput
    assert count.display_description == "Count"


def test_separate_registries_do_not_mix():
    first, _, Base, _, _ = make_hierarchy()
    second, _, _, _, _ = make_hierarchy()

    assert first.lookup(Base)
    assert second.lookup(Base) == []
