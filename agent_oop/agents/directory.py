"""Agent for a directory: owns FileAgents and nested DirectoryAgents."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from agent_oop.agent import BaseAgent
from agent_oop.agents.file import FileAgent
from agent_oop.errors import not_found
from agent_oop.hooks import require_confirmation, validate_path
from agent_oop.logs import AgentLogger, truncate
from agent_oop.registry import EmptyInput, after, before, tool
from agent_oop.runtime import ChatModel, RuntimeResult

log = AgentLogger(__name__, "Dir")

SKIPPED_NAMES = {"node_modules", "__pycache__"}
#: Directories with at most this many entries list them in their summary.
DETAILED_SUMMARY_ENTRIES = 5


def require_plain_name(payload: Any) -> Any:
    """Before-hook: new entries are created directly in this directory."""
    if re.search(r"[\\/]", payload.name):
        raise ValueError(f"Name must not contain path separators: {payload.name}")
    return payload


class ListInput(BaseModel):
    recursive: bool = Field(default=False, description="Include nested directory contents")


class NameInput(BaseModel):
    name: str = Field(description="File name or relative path")


class CreateFileInput(BaseModel):
    name: str = Field(description="Name of the new file")
    content: str = Field(default="", description="Initial file content")


class FindFilesInput(BaseModel):
    pattern: Optional[str] = Field(default=None, description="Case-insensitive regex matched against file names")
    description: Optional[str] = Field(default=None, description="Text to look for in file summaries")


class EditFileInput(BaseModel):
    name: str = Field(description="File name or relative path like 'app/page.py'")
    instruction: str


class DirectoryAgent(BaseAgent):
    """
    A directory that describes itself from its children's summaries.

    Parameters
    ----------
    model:
        Model shared with every child agent.
    path:
        Directory on disk.
    auto_load:
        Populate children from the filesystem on construction.
    """

    def __init__(self, model: Union[ChatModel, str, None], path: Union[str, Path], auto_load: bool = True) -> None:
        super().__init__(model)
        self.path = Path(path)
        self.files: Dict[str, FileAgent] = {}
        self.directories: Dict[str, DirectoryAgent] = {}
        self.summary = ""
        if auto_load:
            self.load_from_filesystem()
        self.update_summary()

    # ------------------------------------------------------------- loading
    def load_from_filesystem(self) -> None:
        root = self.path.resolve()
        if not root.is_dir():
            log.failure("load", f"Directory does not exist: {root}")
            return

        entries = sorted(root.iterdir(), key=lambda p: p.name)
        log.step(f"Loading {len(entries)} entries from {root}")
        for entry in entries:
            if entry.name.startswith(".") or entry.name in SKIPPED_NAMES:
                continue
            if entry.is_dir():
                self.directories[entry.name] = DirectoryAgent(self.model, entry, auto_load=True)
            elif entry.is_file():
                try:
                    self.files[entry.name] = FileAgent.from_disk(self.model, entry)
                except (OSError, UnicodeDecodeError):
                    log.step(f"Skipping unreadable file {entry.name}")
        log.success("load", f"Loaded {len(self.files)} files, {len(self.directories)} dirs")

    # ------------------------------------------------------------ summaries
    def update_summary(self) -> str:
        if not self.files and not self.directories:
            self.summary = "Empty directory"
            return self.summary

        summary = f"{len(self.files)} files, {len(self.directories)} subdirs"
        if len(self.files) + len(self.directories) <= DETAILED_SUMMARY_ENTRIES:
            details = [f"  {name}: {f.summary}" for name, f in self.files.items()]
            details += [f"  {name}/: {d.summary}" for name, d in self.directories.items()]
            summary += "\n" + "\n".join(details)
        self.summary = summary
        return summary

    def refresh_summary(self, result: Any) -> Any:
        self.update_summary()
        return result

    def get_tree(self, indent: str = "") -> str:
        """Indented tree of this directory with every file's summary."""
        lines = [f"{indent}{self.path}/"]
        for name, file in self.files.items():
            lines.append(f"{indent}  - {name} - {file.summary}")
        for directory in self.directories.values():
            lines.append(directory.get_tree(indent + "  "))
        return "\n".join(lines)

    # -------------------------------------------------------------- lookup
    def relative_parts(self, file_path: str) -> List[str]:
        candidate = Path(file_path)
        if candidate.is_absolute():
            try:
                candidate = candidate.relative_to(self.path.resolve())
            except ValueError:
                return []
        parts = [p for p in candidate.parts if p not in ("", ".")]
        own = [p for p in self.path.parts if p not in ("", ".")]
        if own and parts[: len(own)] == own:
            parts = parts[len(own):]
        return parts

    def find_file_by_path(self, file_path: str) -> Optional[FileAgent]:
        """Resolve a bare name or a relative/absolute path to a FileAgent."""
        if file_path in self.files:
            return self.files[file_path]

        parts = self.relative_parts(file_path)
        log.step(f"find_file_by_path: {file_path!r} -> {parts}")
        current: DirectoryAgent = self
        for dir_name in parts[:-1]:
            subdir = current.directories.get(dir_name)
            if subdir is None:
                return None
            current = subdir
        if not parts:
            return None
        return current.files.get(parts[-1])

    def all_files(self) -> List[FileAgent]:
        files = list(self.files.values())
        for directory in self.directories.values():
            files.extend(directory.all_files())
        return files

    # --------------------------------------------------------------- tools
    @tool("reload", "Reload directory contents from the filesystem")
    @after("refresh_summary")
    def reload(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        log.tool("reload", {"path": str(self.path)})
        self.files.clear()
        self.directories.clear()
        self.load_from_filesystem()
        return {
            "status": "reloaded",
            "path": str(self.path),
            "file_count": len(self.files),
            "dir_count": len(self.directories),
        }

    @tool("list", "List contents of this directory", ListInput)
    def list(self, payload: ListInput) -> Dict[str, Any]:
        contents: List[Dict[str, Any]] = [
            {"type": "file", "name": name, "path": str(f.path), "summary": f.summary}
            for name, f in self.files.items()
        ]
        for name, directory in self.directories.items():
            entry: Dict[str, Any] = {
                "type": "directory",
                "name": name,
                "path": str(directory.path),
                "summary": directory.summary,
            }
            if payload.recursive:
                entry["contents"] = directory.list(payload)["contents"]
            contents.append(entry)
        return {"path": str(self.path), "summary": self.summary, "contents": contents}

    @tool("describe", "Get the directory's self-description")
    def describe(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "summary": self.summary,
            "file_count": len(self.files),
            "dir_count": len(self.directories),
            "tree": self.get_tree(),
        }

    @tool("getFile", "Get a file from this directory by name or path", NameInput)
    def get_file(self, payload: NameInput) -> Dict[str, Any]:
        file = self.find_file_by_path(payload.name)
        if file is None:
            log.failure("getFile", f"File not found: {payload.name}")
            return not_found("File", payload.name)
        return file.describe()

    @tool("getDirectory", "Get a subdirectory by name", NameInput)
    def get_directory(self, payload: NameInput) -> Dict[str, Any]:
        directory = self.directories.get(payload.name)
        if directory is None:
            return not_found("Directory", payload.name)
        return {"path": str(directory.path), "summary": directory.summary, "tree": directory.get_tree()}

    @tool("createFile", "Create a new file in this directory and write it to disk", CreateFileInput)
    @before(validate_path)
    @before(require_plain_name)
    @after("refresh_summary")
    def create_file(self, payload: CreateFileInput) -> Dict[str, Any]:
        log.tool("createFile", {"name": payload.name, "content_length": len(payload.content)})
        if payload.name in self.files:
            log.failure("createFile", f"File already exists: {payload.name}")
            return {"error": f"File already exists: {payload.name}"}

        file = FileAgent(self.model, self.path.resolve() / payload.name, payload.content)
        file.write_to_disk()
        self.files[payload.name] = file
        log.success("createFile", str(file.path))
        return {"status": "created", "path": str(file.path), "file": file.describe()}

    @tool("createDirectory", "Create a new subdirectory", NameInput)
    @before(validate_path)
    @before(require_plain_name)
    @after("refresh_summary")
    def create_directory(self, payload: NameInput) -> Dict[str, Any]:
        if payload.name in self.directories:
            return {"error": f"Directory already exists: {payload.name}"}
        path = self.path / payload.name
        path.mkdir(parents=True, exist_ok=True)
        directory = DirectoryAgent(self.model, path, auto_load=False)
        self.directories[payload.name] = directory
        return {"status": "created", "path": str(directory.path)}

    @tool("deleteFile", "Delete a file from this directory and from disk", NameInput)
    @before(validate_path)
    @before(require_confirmation)
    @after("refresh_summary")
    def delete_file(self, payload: NameInput) -> Dict[str, Any]:
        file = self.files.pop(payload.name, None)
        if file is None:
            return not_found("File", payload.name)
        file.delete()
        return {"status": "deleted", "path": str(file.path)}

    @tool("findFiles", "Find files matching a name pattern or a description", FindFilesInput)
    def find_files(self, payload: FindFilesInput) -> Dict[str, Any]:
        name_pattern = re.compile(payload.pattern, re.IGNORECASE) if payload.pattern else None
        needle = payload.description.lower() if payload.description else None
        results = [
            {"path": str(f.path), "summary": f.summary}
            for f in self.all_files()
            if (name_pattern is None or name_pattern.search(f.path.name))
            and (needle is None or needle in f.summary.lower())
        ]
        return {"results": results}

    @tool("editFile", "Edit a file in this directory by name or path", EditFileInput)
    @after("refresh_summary")
    async def edit_file(self, payload: EditFileInput) -> Dict[str, Any]:
        log.tool("editFile", {"name": payload.name, "instruction": payload.instruction[:50]})
        file = self.find_file_by_path(payload.name)
        if file is None:
            log.failure("editFile", f"File not found: {payload.name}")
            return not_found("File", payload.name)
        result = await file.run_operation("edit", {"instruction": payload.instruction})
        log.success("editFile", str(file.path))
        return result

    async def execute(self, input: str) -> RuntimeResult:
        log.info("Executing: %s", truncate(input, 60))
        return await self.runtime.invoke(input)
