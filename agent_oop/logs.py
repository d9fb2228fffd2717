"""Logging helpers shared by the agents."""

from __future__ import annotations

import json
import logging
from typing import Any, MutableMapping, Optional, Tuple

from agent_oop.config import get_log_level

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler; safe to call more than once."""
    logging.basicConfig(level=level or get_log_level(), format=LOG_FORMAT)


def truncate(value: Any, limit: int = 100) -> str:
    """Render `value` as compact text, cut to `limit` characters."""
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, default=str)
        except (TypeError, ValueError):
            text = repr(value)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class AgentLogger(logging.LoggerAdapter):
    """
    Logger adapter that tags every record with an agent prefix.

    The helpers mirror the life of a tool call: `tool` when it starts,
    `step` for progress inside it, then `success` or `failure`.
    """

    def __init__(self, name: str, prefix: str = "") -> None:
        super().__init__(logging.getLogger(name), {"prefix": prefix})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.prefix:
            msg = f"[{self.prefix}] {msg}"
        return msg, kwargs

    def tool(self, name: str, payload: Any) -> None:
        self.info("> %s %s", name, truncate(payload, 80))

    def success(self, name: str, result: Any) -> None:
        self.info("ok %s %s", name, truncate(result))

    def failure(self, name: str, err: Any) -> None:
        self.error("x %s %s", name, err)

    def step(self, msg: str) -> None:
        self.debug("  -> %s", msg)

    def child(self, prefix: str) -> "AgentLogger":
        full = f"{self.prefix}:{prefix}" if self.prefix else prefix
        return AgentLogger(self.logger.name, full)
