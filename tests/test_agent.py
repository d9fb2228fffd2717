import pytest
from pydantic import BaseModel

from agent_oop.agent import BaseAgent
from agent_oop.registry import ToolRegistry, after, tool
from agent_oop.runtime import ChatModel

from tests.conftest import DummyGroq, dummy_model, tool_call

registry = ToolRegistry()


class QueryInput(BaseModel):
    query: str


class Entity(BaseAgent, registry=registry):
    async def execute(self, input):
        return await self.runtime.invoke(input)


def tag(result):
    return f"[{result}]"


class Base(Entity):
    system_prompt = "You search things."

    @tool("search", "Base search", QueryInput)
    @after(tag)
    def search(self, payload):
        return f"base:{payload.query}"

    @tool("ping", "Ping")
    def ping(self, payload):
        return "pong"


class Sub(Base):
    @tool("search", "Sub search", QueryInput)
    def search(self, payload):
        return f"sub:{payload.query}"


class Inheritor(Base):
    pass


def test_agent_is_abstract():
    with pytest.raises(TypeError):
        BaseAgent(dummy_model())


@pytest.mark.asyncio
async def test_subclass_override_replaces_parent_tool():
    sub = Sub(dummy_model())

    assert [s.name for s in sub.tools] == ["search", "ping"]
    assert sub.operation("search").description == "Sub search"
    # Override has its own (empty) chain, so the parent's after-hook is gone.
    assert await sub.run_operation("search", {"query": "q"}) == "sub:q"
    assert await sub.run_operation("ping") == "pong"


@pytest.mark.asyncio
async def test_inherited_tool_keeps_parent_hooks():
    agent = Inheritor(dummy_model())

    assert await agent.run_operation("search", {"query": "q"}) == "[base:q]"


@pytest.mark.asyncio
async def test_operations_are_bound_to_their_instance():
    first, second = Base(dummy_model()), Sub(dummy_model())

    assert await first.run_operation("search", {"query": "a"}) == "[base:a]"
    assert await second.run_operation("search", {"query": "a"}) == "sub:a"


def test_unknown_operation_lists_available_tools():
    agent = Base(dummy_model())

    with pytest.raises(KeyError, match="search, ping"):
        agent.operation("nope")


def test_model_can_be_given_by_name_or_env():
    assert Base("some-model").model == ChatModel(name="some-model")
    assert Base().model.name == "dummy-model"
    with pytest.raises(TypeError):
        Base(42)


def test_construction_needs_no_client():
    agent = Base()

    assert agent.model.client is None
    assert set(agent.operations) == {"search", "ping"}
    assert agent.runtime.system_prompt == "You search things."


@pytest.mark.asyncio
async def test_execute_drives_tools_through_runtime():
    client = DummyGroq([tool_call("search", {"query": "cats"})], "Found cats.")
    agent = Sub(ChatModel(name="dummy-model", client=client))

    result = await agent.execute("look for cats")

    assert result.content == "Found cats."
    assert result.tool_names == ["search"]
    assert result.trace[0].result == "sub:cats"
    assert client.requests[0]["messages"][0] == {"role": "system", "content": "You search things."}
    assert [t["function"]["name"] for t in client.requests[0]["tools"]] == ["search", "ping"]
