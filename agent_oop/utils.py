"""Helpers for reading model output."""

from __future__ import annotations

import json
import re
from typing import Any, Optional

_FENCED = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", flags=re.DOTALL | re.IGNORECASE)
_FENCE_LINE = re.compile(r"^```[\w-]*\s*$")


def parse_json_response(text: str) -> Optional[Any]:
    """
    Best-effort JSON extraction from model output.

    Tries, in order: the whole text, the first fenced block, then the widest
    `{...}` or `[...]` span. Returns None when nothing decodes.
    """
    if not text:
        return None

    candidates = [text.strip()]
    fenced = _FENCED.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = text.find(opener), text.rfind(closer)
        if start != -1 and end > start:
            candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def strip_code_fences(text: str) -> str:
    """Drop a surrounding markdown fence that models add despite instructions."""
    lines = text.strip().splitlines()
    if len(lines) >= 2 and _FENCE_LINE.match(lines[0]) and lines[-1].strip() == "```":
        lines = lines[1:-1]
    return "\n".join(lines)
