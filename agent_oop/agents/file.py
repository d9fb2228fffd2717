"""
Self-describing agent for a single file on disk.

The file keeps a one-line `summary` of itself that is recomputed after every
modification, so parents can reason about a tree without reading it all.
All writes persist to the filesystem.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

from agent_oop.agent import BaseAgent
from agent_oop.errors import not_found
from agent_oop.hooks import require_confirmation
from agent_oop.logs import AgentLogger, truncate
from agent_oop.registry import EmptyInput, after, before, task, tool
from agent_oop.runtime import ChatModel, RuntimeResult
from agent_oop.utils import strip_code_fences

log = AgentLogger(__name__, "File")

LANGUAGES = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "rs": "rust",
    "go": "go",
    "md": "markdown",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
}

#: Below this many characters a file is described as empty or minimal.
MINIMAL_CHARS = 10
#: From this many characters on, the summary is written by the model.
MODEL_SUMMARY_CHARS = 500
#: How much of a large file the model sees when summarizing.
SUMMARY_PROMPT_CHARS = 2000
SUMMARY_MAX_CHARS = 200

_BLOCK_COMMENT = re.compile(r"^/\*\*?\s*(.*?)\s*\*?/", flags=re.DOTALL)
_DOCSTRING = re.compile(r'^\s*(?:"""|\'\'\')\s*(.+)', flags=re.MULTILINE)
_LINE_COMMENT = re.compile(r"^//\s*(.+)", flags=re.MULTILINE)
_HASH_COMMENT = re.compile(r"^#(?!!)\s*(.+)", flags=re.MULTILINE)
_TS_EXPORT = re.compile(r"export\s+(?:function|class|const|interface|type)\s+(\w+)")
_PY_DEF = re.compile(r"^(?:async\s+def|def|class)\s+(\w+)", flags=re.MULTILINE)


def detect_language(path: Union[str, Path]) -> str:
    return LANGUAGES.get(Path(path).suffix.lstrip(".").lower(), "plaintext")


class WriteInput(BaseModel):
    new_content: str = Field(description="Complete new file content")


class EditInput(BaseModel):
    instruction: str = Field(description="What to change, in plain language")


class AnalyzeInput(BaseModel):
    focus: Optional[str] = Field(default=None, description="Optional aspect to focus the analysis on")


class FileAgent(BaseAgent):
    """Agent representing one file; it can edit and re-describe itself."""

    def __init__(self, model: Union[ChatModel, str, None], path: Union[str, Path], content: str = "") -> None:
        super().__init__(model)
        self.path = Path(path)
        self.content = content
        self.language = detect_language(self.path)
        self.last_modified = datetime.now(timezone.utc)
        self.summary = self.quick_summary() or self._fallback_summary()

    @classmethod
    def from_disk(cls, model: Union[ChatModel, str, None], path: Union[str, Path]) -> "FileAgent":
        """Create a FileAgent from an existing file."""
        path = Path(path)
        agent = cls(model, path, path.read_text(encoding="utf-8"))
        agent.last_modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return agent

    @property
    def line_count(self) -> int:
        return len(self.content.split("\n"))

    # ----------------------------------------------------------- summaries
    def _first_comment(self) -> str:
        for pattern in (_BLOCK_COMMENT, _DOCSTRING, _LINE_COMMENT, _HASH_COMMENT):
            match = pattern.search(self.content)
            if match:
                return match.group(1).strip().strip("\"'")[:100]
        return ""

    def _exports(self) -> str:
        names = _TS_EXPORT.findall(self.content) or _PY_DEF.findall(self.content)
        if names:
            return "exports: " + ", ".join(names[:3])
        return ""

    def _fallback_summary(self) -> str:
        return f"{self.language} file ({self.line_count} lines)"

    def quick_summary(self) -> Optional[str]:
        """Summary computable without the model, or None for large files."""
        if len(self.content) < MINIMAL_CHARS:
            return f"Empty or minimal {self.language} file"
        if len(self.content) < MODEL_SUMMARY_CHARS:
            detail = self._first_comment() or self._exports()
            base = self._fallback_summary()
            return f"{base}: {detail}" if detail else base
        return None

    async def update_summary(self) -> str:
        """Recompute `summary` from the current content."""
        summary = self.quick_summary()
        if summary is None:
            excerpt = self.content[:SUMMARY_PROMPT_CHARS]
            if len(self.content) > SUMMARY_PROMPT_CHARS:
                excerpt += "\n... truncated"
            prompt = (
                f"Summarize this {self.language} file in one sentence "
                "(what it does, main exports/functions):\n"
                f"```{self.language}\n{excerpt}\n```"
            )
            try:
                summary = (await self.model.complete(prompt)).strip()[:SUMMARY_MAX_CHARS]
            except Exception as exc:
                # A failed description must not fail the write that triggered it.
                log.warning("Summary generation failed for %s: %s", self.path, exc)
                summary = ""
            summary = summary or self._fallback_summary()
        self.summary = summary
        return summary

    async def refresh_summary(self, result: Any) -> Any:
        """After-hook: re-describe the file, pass the result through."""
        await self.update_summary()
        return result

    # ---------------------------------------------------------- filesystem
    def write_to_disk(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.content, encoding="utf-8")

    def _replace_content(self, new_content: str) -> int:
        old_lines = self.line_count
        self.content = new_content
        self.last_modified = datetime.now(timezone.utc)
        self.write_to_disk()
        return old_lines

    # --------------------------------------------------------------- tools
    @tool("read", "Read the file contents")
    def read(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "language": self.language,
            "content": self.content,
            "summary": self.summary,
            "lines": self.line_count,
        }

    @tool("describe", "Get the file's self-description without full content")
    def describe(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "language": self.language,
            "summary": self.summary,
            "lines": self.line_count,
            "last_modified": self.last_modified.isoformat(),
        }

    @tool("write", "Completely replace the file contents and persist to disk", WriteInput)
    @after("refresh_summary")
    def write(self, payload: WriteInput) -> Dict[str, Any]:
        old_lines = self._replace_content(payload.new_content)
        return {
            "path": str(self.path),
            "status": "written",
            "old_lines": old_lines,
            "new_lines": self.line_count,
        }

    @tool("reload", "Reload the file contents from disk")
    @after("refresh_summary")
    def reload(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        if not self.path.is_file():
            return not_found("File", str(self.path))
        self.content = self.path.read_text(encoding="utf-8")
        self.last_modified = datetime.fromtimestamp(self.path.stat().st_mtime, tz=timezone.utc)
        return {"path": str(self.path), "status": "reloaded", "lines": self.line_count}

    @task(
        "edit",
        "Edit the file using natural language instructions. The file edits itself and persists to disk.",
        input_schema=EditInput,
    )
    async def edit(self, payload: EditInput) -> Dict[str, Any]:
        log.tool("edit", {"path": str(self.path), "instruction": payload.instruction[:50]})
        prompt = (
            f'You are editing the file "{self.path}" ({self.language}).\n\n'
            f"Current content:\n```{self.language}\n{self.content}\n```\n\n"
            f"Instruction: {payload.instruction}\n\n"
            "Return ONLY the complete new file content. No explanations, no markdown fences."
        )
        new_content = strip_code_fences(await self.model.complete(prompt)).strip()
        if not new_content:
            log.failure("edit", "Empty response from model")
            return {"error": "Empty response from model", "path": str(self.path)}

        old_lines = self._replace_content(new_content)
        log.step(f"Wrote {self.line_count} lines to disk")
        await self.update_summary()
        log.success("edit", str(self.path))
        return {
            "path": str(self.path),
            "status": "self-edited",
            "instruction": payload.instruction,
            "old_lines": old_lines,
            "new_lines": self.line_count,
            "new_summary": self.summary,
        }

    @task("analyze", "Analyze the file for issues, patterns, or improvements", input_schema=AnalyzeInput)
    async def analyze(self, payload: AnalyzeInput) -> Dict[str, Any]:
        focus = (
            f"Focus on: {payload.focus}"
            if payload.focus
            else "Provide general analysis: issues, improvements, patterns."
        )
        prompt = f"Analyze this {self.language} file:\n```{self.language}\n{self.content}\n```\n{focus}"
        return {"path": str(self.path), "analysis": await self.model.complete(prompt)}

    @tool("delete", "Delete this file from disk")
    @before(require_confirmation)
    def delete(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        self.path.unlink(missing_ok=True)
        self.content = ""
        self.summary = "Deleted"
        return {"path": str(self.path), "status": "deleted"}

    async def execute(self, input: str) -> RuntimeResult:
        log.info("Executing: %s", truncate(input, 60))
        return await self.runtime.invoke(input)
