import json
import types
from typing import Any, Dict, List, Optional

import pytest
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agent_oop.runtime import ChatModel


def tool_call(name: str, arguments: Any = None, call_id: Optional[str] = None) -> types.SimpleNamespace:
    """Build a tool call the way the Groq SDK returns it (arguments as JSON text)."""
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return types.SimpleNamespace(
        id=call_id or f"call_{name}",
        type="function",
        function=types.SimpleNamespace(name=name, arguments=arguments),
    )


class DummyCompletion:
    def __init__(self, content: Optional[str], tool_calls: Optional[List[Any]] = None):
        message = types.SimpleNamespace(content=content, tool_calls=tool_calls)
        self.choices = [types.SimpleNamespace(message=message)]


class DummyGroq:
    """
    Minimal async mock for groq.AsyncGroq that supports:
    await client.chat.completions.create(...)

    Each scripted response is consumed in order: a string is a plain answer,
    a list is a batch of tool calls, an exception is raised.
    """

    def __init__(self, *responses: Any, default: str = "done"):
        self._responses = list(responses)
        self._default = default
        self.requests: List[Dict[str, Any]] = []
        self.chat = types.SimpleNamespace(
            completions=types.SimpleNamespace(create=self._create)
        )

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        item = self._responses.pop(0) if self._responses else self._default
        if isinstance(item, Exception):
            raise item
        if isinstance(item, list):
            return DummyCompletion(None, item)
        return DummyCompletion(item)

    @property
    def prompts(self) -> List[str]:
        """Content of the last user message of every request."""
        return [
            [m for m in request["messages"] if m["role"] == "user"][-1]["content"]
            for request in self.requests
        ]


def dummy_model(*responses: Any, default: str = "done") -> ChatModel:
    return ChatModel(name="dummy-model", client=DummyGroq(*responses, default=default))


@pytest.fixture(autouse=True)
def set_env(monkeypatch):
    """
    Automatically set the required model env var for all tests.
    """
    monkeypatch.setenv("GROQ_MODEL", "dummy-model")
    monkeypatch.delenv("AGENT_MAX_TURNS", raising=False)
    yield
