"""
Streamlit entry-point for the agent chat.

Responsibilities
- Let the user pick an agent from the catalog and fill its arguments
- Build the agent once per session
- Forward each chat message to `execute` and render the reply with its trace
"""
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import streamlit as st

# Ensure absolute `agent_oop.*` imports work when Streamlit runs this file directly
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from agent_oop.agent import BaseAgent
from agent_oop.catalog import AGENTS, AgentEntry, ask, create_agent, get_entry
from agent_oop.logs import configure_logging

configure_logging()
logger = logging.getLogger(__name__)


def _sidebar() -> AgentEntry:
    st.sidebar.header("Agent")
    name = st.sidebar.selectbox("Choose an agent", [entry.name for entry in AGENTS])
    entry = get_entry(name)
    st.sidebar.caption(entry.description)
    for arg in entry.args:
        st.sidebar.text_input(arg.description, value=arg.default or "", key=f"arg:{entry.name}:{arg.name}")
    return entry


def _event_loop() -> asyncio.AbstractEventLoop:
    # The Groq async client is bound to the loop it first ran on.
    if "event_loop" not in st.session_state:
        st.session_state["event_loop"] = asyncio.new_event_loop()
    return st.session_state["event_loop"]


def _get_agent(entry: AgentEntry) -> BaseAgent:
    values = {arg.name: st.session_state.get(f"arg:{entry.name}:{arg.name}", "") for arg in entry.args}
    key = (entry.name, tuple(sorted(values.items())))
    if st.session_state.get("agent_key") != key:
        st.session_state["agent_instance"] = create_agent(entry, values)
        st.session_state["agent_key"] = key
        st.session_state["messages"] = []
    return st.session_state["agent_instance"]


def main() -> None:
    """Run the Streamlit chat UI."""
    st.title("Agent OOP")

    entry = _sidebar()
    try:
        agent = _get_agent(entry)
    except Exception as exc:
        logger.exception("Failed to create agent %s: %s", entry.name, exc)
        st.error(f"Could not start {entry.name}: {exc}")
        return

    if "messages" not in st.session_state:
        st.session_state["messages"] = []

    for message in st.session_state.messages:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])  # type: ignore[arg-type]

    query = st.chat_input(f"Ask the {entry.name} agent")  # type: ignore[assignment]
    if not query:
        return

    with st.chat_message("user"):
        st.markdown(query)
    st.session_state.messages.append({"role": "user", "content": query})

    try:
        response = _event_loop().run_until_complete(ask(agent, query))
    except Exception as exc:
        logger.exception("Error while handling query: %s", exc)
        response = "Sorry, something went wrong while handling your request."

    with st.chat_message("assistant"):
        st.markdown(response)
    st.session_state.messages.append({"role": "assistant", "content": response})


if __name__ == "__main__":
    main()
