"""Agents offered by the chat front end, and the call that drives one."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from agent_oop.agent import BaseAgent
from agent_oop.agents import BashAgent, CypherpunkLibrary, PMAgent, SeniorEngineerAgent
from agent_oop.runtime import ChatModel, RuntimeResult, as_chat_model


@dataclass(frozen=True)
class AgentArg:
    name: str
    description: str
    default: Optional[str] = None


@dataclass(frozen=True)
class AgentEntry:
    """One selectable agent: its arguments and how to build it."""

    name: str
    description: str
    create: Callable[[ChatModel, Dict[str, str]], BaseAgent]
    args: List[AgentArg] = field(default_factory=list)

    def resolve_args(self, values: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Fill blanks with defaults; raise ValueError for required args left empty."""
        values = values or {}
        resolved: Dict[str, str] = {}
        for arg in self.args:
            value = (values.get(arg.name) or "").strip() or arg.default
            if value is None:
                raise ValueError(f"Missing value for '{arg.name}' ({arg.description}).")
            resolved[arg.name] = value
        return resolved


AGENTS: List[AgentEntry] = [
    AgentEntry(
        name="Senior Engineer",
        description="Orchestrates file and directory agents to implement features, refactor code, and debug issues",
        args=[AgentArg("root_path", "Root directory to operate on", default=os.getcwd())],
        create=lambda model, args: SeniorEngineerAgent(model, args["root_path"]),
    ),
    AgentEntry(
        name="Bash",
        description="Runs whitelisted shell commands: listing, searching, reading files and git status",
        args=[AgentArg("working_directory", "Directory commands run in", default=os.getcwd())],
        create=lambda model, args: BashAgent(model, args["working_directory"]),
    ),
    AgentEntry(
        name="Project Manager",
        description="Turns ideas into project plans, feature breakdowns, estimates and sprint plans",
        create=lambda model, args: PMAgent(model),
    ),
    AgentEntry(
        name="Cypherpunk Library",
        description="Example hierarchy of library, book, page and librarian agents",
        create=lambda model, args: CypherpunkLibrary(model),
    ),
]


def get_entry(name: str) -> AgentEntry:
    for entry in AGENTS:
        if entry.name == name:
            return entry
    raise KeyError(f"Unknown agent '{name}'. Available: {', '.join(e.name for e in AGENTS)}")


def create_agent(
    entry: AgentEntry,
    values: Optional[Dict[str, str]] = None,
    model: Union[ChatModel, str, None] = None,
) -> BaseAgent:
    return entry.create(as_chat_model(model), entry.resolve_args(values))


def format_trace(tool_order: List[str]) -> str:
    """Render the trace line shown under every reply."""
    if not tool_order:
        return "Trace: none"
    return "Trace: " + " -> ".join(tool_order)


def render_reply(result: RuntimeResult) -> str:
    text = result.content or "(no answer)"
    if not result.finished:
        text += "\n\n_Stopped after the maximum number of turns._"
    return f"{text}\n{format_trace(result.tool_names)}"


async def ask(agent: BaseAgent, text: str) -> str:
    """
    Send one request to `agent` and render the answer with its tool trace.

    Parameters
    ----------
    agent : BaseAgent
        Agent built from a catalog entry.
    text : str
        User's free-text request.

    Returns
    -------
    str
        Assistant answer followed by a `Trace:` line.
    """
    return render_reply(await agent.execute(text))
