"""Reusable before/after hooks for agent tools."""

from __future__ import annotations

import logging
import re
from pathlib import PureWindowsPath
from typing import Any, Callable

from pydantic import BaseModel

from agent_oop.logs import truncate

logger = logging.getLogger(__name__)

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n]")


def field_value(payload: Any, name: str) -> Any:
    """Read `name` from a pydantic model, a dict, or any attribute holder."""
    if isinstance(payload, dict):
        return payload.get(name)
    return getattr(payload, name, None)


def _dump(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump()
    return payload


def log_access(payload: Any) -> Any:
    logger.info("[ACCESS] %s", truncate(_dump(payload)))
    return payload


def require_fields(*names: str) -> Callable[[Any], Any]:
    """Build a before-hook rejecting payloads where any of `names` is empty."""

    def check(payload: Any) -> Any:
        missing = [name for name in names if field_value(payload, name) in (None, "")]
        if missing:
            raise ValueError(f"Missing required field(s): {', '.join(missing)}")
        return payload

    check.__qualname__ = f"require_fields({', '.join(names)})"
    return check


def require_auth(payload: Any) -> Any:
    if not field_value(payload, "user_id"):
        raise PermissionError("Authentication required")
    return payload


def validate_path(payload: Any) -> Any:
    """Reject `path` or `name` values that are absolute or climb out of the agent's tree."""
    for key in ("path", "name"):
        value = field_value(payload, key)
        if not value:
            continue
        text = str(value)
        if text.startswith(("/", "\\")) or PureWindowsPath(text).drive:
            raise ValueError("Absolute paths not allowed")
        if ".." in re.split(r"[\\/]", text):
            raise ValueError("Path traversal not allowed")
    return payload


def require_confirmation(payload: Any) -> Any:
    # No interactive confirmation channel exists; the operation is recorded.
    logger.warning("[CONFIRM] Destructive operation: %s", truncate(_dump(payload)))
    return payload


def sanitize_ascii(result: Any) -> Any:
    """After-hook keeping printable ASCII and newlines in string results."""
    if isinstance(result, str):
        return _NON_PRINTABLE.sub("", result)
    return result
