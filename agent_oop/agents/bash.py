"""
Agent that runs whitelisted shell commands in a working directory.

Every command goes through `validate_command`: it must not match any
`DENIED_PATTERNS` entry and its first word must be in `COMMAND_WHITELIST`.
The `bash` tool enforces this in a before-hook, so a rejected command never
reaches the shell.
"""

from __future__ import annotations

import asyncio
import os
import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from agent_oop.agent import BaseAgent
from agent_oop.config import get_bash_timeout
from agent_oop.logs import AgentLogger, truncate
from agent_oop.registry import EmptyInput, before, tool
from agent_oop.runtime import ChatModel, RuntimeResult

log = AgentLogger(__name__, "Bash")


@dataclass(frozen=True)
class CommandRule:
    description: str
    allowed_flags: Tuple[str, ...] = ()


COMMAND_WHITELIST: Dict[str, CommandRule] = {
    # inspection
    "ls": CommandRule("List directory contents", ("-l", "-a", "-la", "-al", "-lh", "-alh", "-R")),
    "cat": CommandRule("Display file contents"),
    "head": CommandRule("Display first lines of file", ("-n",)),
    "tail": CommandRule("Display last lines of file", ("-n", "-f")),
    "wc": CommandRule("Word/line/character count", ("-l", "-w", "-c")),
    "file": CommandRule("Determine file type"),
    "stat": CommandRule("Display file status"),
    # search
    "grep": CommandRule("Search text patterns", ("-r", "-i", "-n", "-l", "-c", "-v", "-E")),
    "find": CommandRule("Find files", ("-name", "-type", "-mtime", "-size", "-maxdepth")),
    "which": CommandRule("Locate a command"),
    # navigation
    "pwd": CommandRule("Print working directory"),
    "tree": CommandRule("Display directory tree", ("-L", "-d", "-a")),
    # file manipulation
    "mkdir": CommandRule("Create directory", ("-p",)),
    "touch": CommandRule("Create empty file or update timestamp"),
    "cp": CommandRule("Copy files", ("-r", "-R", "-f")),
    "mv": CommandRule("Move/rename files", ("-f",)),
    "rm": CommandRule("Remove files", ("-r", "-R", "-f", "-rf", "-fr")),
    # text processing
    "echo": CommandRule("Print text"),
    "sort": CommandRule("Sort lines", ("-r", "-n", "-u")),
    "uniq": CommandRule("Filter duplicate lines", ("-c", "-d")),
    "cut": CommandRule("Cut sections from lines", ("-d", "-f")),
    "sed": CommandRule("Stream editor"),
    "awk": CommandRule("Pattern scanning"),
    # package managers, read-only
    "npm": CommandRule("Node package manager", ("list", "ls", "outdated", "view")),
    "yarn": CommandRule("Yarn package manager", ("list", "info", "why")),
    "pip": CommandRule("Python package manager", ("list", "show", "freeze")),
    # git, read-only
    "git": CommandRule("Git version control", ("status", "log", "diff", "branch", "show", "ls-files", "remote", "-v")),
    # development tools
    "node": CommandRule("Run Node.js", ("-v", "--version", "-e")),
    "npx": CommandRule("Execute npm packages"),
    "tsc": CommandRule("TypeScript compiler", ("--version", "--noEmit", "--listFiles")),
    "python": CommandRule("Python interpreter", ("--version", "-V")),
}

DENIED_PATTERNS: List[re.Pattern] = [
    re.compile(r"sudo", re.IGNORECASE),
    re.compile(r"\bsu\s", re.IGNORECASE),
    re.compile(r"chmod\s+[0-7]*[67]", re.IGNORECASE),
    re.compile(r"chown", re.IGNORECASE),
    re.compile(r"curl.*\|.*sh", re.IGNORECASE),
    re.compile(r"wget.*\|.*sh", re.IGNORECASE),
    re.compile(r"eval\s", re.IGNORECASE),
    re.compile(r"rm\s+-rf\s+/(?!\w)", re.IGNORECASE),
    re.compile(r">\s*/dev/", re.IGNORECASE),
    re.compile(r"mkfs", re.IGNORECASE),
    re.compile(r"dd\s+if=", re.IGNORECASE),
    re.compile(re.escape(":(){ :|:& };:")),
]

_GREP_LINE = re.compile(r"^(.+?):(\d+):(.*)$")


def validate_command(command: str) -> Optional[str]:
    """Return why `command` may not run, or None when it is allowed."""
    for pattern in DENIED_PATTERNS:
        if pattern.search(command):
            return f"Command matches blacklisted pattern: {pattern.pattern}"
    words = command.strip().split()
    base = words[0] if words else ""
    if base not in COMMAND_WHITELIST:
        return f"Command '{base}' is not whitelisted. Allowed: {', '.join(COMMAND_WHITELIST)}"
    return None


def guard_command(payload: Any) -> Any:
    error = validate_command(payload.command)
    if error:
        raise PermissionError(error)
    return payload


@dataclass
class CommandResult:
    stdout: str
    stderr: str
    code: int

    @property
    def lines(self) -> List[str]:
        return [line for line in self.stdout.split("\n") if line]


class BashInput(BaseModel):
    command: str = Field(description="The bash command to execute")


class ListFilesInput(BaseModel):
    subpath: str = Field(default="", description="Optional subdirectory to list")
    show_hidden: bool = Field(default=False, description="Include hidden files")
    detailed: bool = Field(default=False, description="Show detailed listing")


class SearchInput(BaseModel):
    pattern: str = Field(description="The text pattern to search for")
    path: str = Field(default=".", description="Path to search in")
    recursive: bool = True
    case_insensitive: bool = True


class FindFilesInput(BaseModel):
    name: str = Field(description="File name pattern (supports wildcards like *.py)")
    path: str = Field(default=".", description="Starting path")
    type: Optional[Literal["f", "d"]] = Field(default=None, description="f=files only, d=directories only")
    max_depth: Optional[int] = Field(default=None, ge=1, description="Maximum directory depth")


class ReadFileInput(BaseModel):
    file_path: str = Field(description="Path to the file")
    lines: Optional[int] = Field(default=None, ge=1, description="Limit to first N lines")


class BashAgent(BaseAgent):
    def __init__(
        self,
        model: Union[ChatModel, str, None],
        working_directory: Union[str, Path] = ".",
        timeout: Optional[int] = None,
    ) -> None:
        super().__init__(model)
        self.working_directory = Path(working_directory).resolve()
        self.timeout = timeout or get_bash_timeout()

    async def run_command(self, command: str) -> CommandResult:
        """Run a validated command; a non-zero exit is a result, not an error."""
        error = validate_command(command)
        if error:
            raise PermissionError(error)

        log.step(f"Running: {command}")
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=self.working_directory,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ, "FORCE_COLOR": "0"},
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return CommandResult("", f"Command timed out after {self.timeout}s", 124)
        return CommandResult(
            stdout.decode(errors="replace").rstrip(),
            stderr.decode(errors="replace").strip(),
            process.returncode or 0,
        )

    @tool(
        "bash",
        "Execute a whitelisted bash command in the working directory. Safe commands include: "
        "ls, cat, grep, find, mkdir, touch, cp, mv, rm, git status/log/diff, npm list, etc.",
        BashInput,
    )
    @before(guard_command)
    async def bash(self, payload: BashInput) -> Dict[str, Any]:
        log.tool("bash", {"command": payload.command[:60]})
        result = await self.run_command(payload.command)
        if result.code == 0:
            log.success("bash", f"Exit 0, {len(result.lines)} lines")
        else:
            log.failure("bash", f"Exit {result.code}")
        return {
            "command": payload.command,
            "cwd": str(self.working_directory),
            "exit_code": result.code,
            "stdout": result.stdout,
            "stderr": result.stderr,
        }

    @tool("listFiles", "List files in the working directory or a subdirectory", ListFilesInput)
    async def list_files(self, payload: ListFilesInput) -> Dict[str, Any]:
        flags = ("l" if payload.detailed else "") + ("a" if payload.show_hidden else "")
        parts = ["ls"]
        if flags:
            parts.append(f"-{flags}")
        parts.append(shlex.quote(payload.subpath or "."))
        result = await self.run_command(" ".join(parts))
        return {
            "path": str(self.working_directory / payload.subpath),
            "files": result.lines,
            "raw": result.stdout,
        }

    @tool("search", "Search for text patterns in files using grep", SearchInput)
    async def search(self, payload: SearchInput) -> Dict[str, Any]:
        flags = ("r" if payload.recursive else "") + ("i" if payload.case_insensitive else "") + "n"
        result = await self.run_command(
            f"grep -{flags} {shlex.quote(payload.pattern)} {shlex.quote(payload.path)}"
        )
        matches: List[Dict[str, Any]] = []
        for line in result.lines:
            match = _GREP_LINE.match(line)
            if match:
                matches.append({"file": match.group(1), "line": int(match.group(2)), "content": match.group(3)})
            else:
                matches.append({"raw": line})
        log.success("search", f"{len(matches)} matches")
        return {"pattern": payload.pattern, "path": payload.path, "match_count": len(matches), "matches": matches}

    @tool("findFiles", "Find files by name pattern", FindFilesInput)
    async def find_files(self, payload: FindFilesInput) -> Dict[str, Any]:
        command = f"find {shlex.quote(payload.path)}"
        if payload.max_depth:
            command += f" -maxdepth {payload.max_depth}"
        command += f" -name {shlex.quote(payload.name)}"
        if payload.type:
            command += f" -type {payload.type}"
        files = (await self.run_command(command)).lines
        return {"pattern": payload.name, "files": files, "count": len(files)}

    @tool("gitStatus", "Get git status of the repository")
    async def git_status(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        status = await self.run_command("git status --porcelain")
        branch = await self.run_command("git branch --show-current")
        changes = [{"status": line[:2].strip(), "file": line[3:]} for line in status.lines]
        log.success("gitStatus", f"{len(changes)} changes on {branch.stdout}")
        return {"branch": branch.stdout, "changes": changes, "clean": not changes}

    @tool("readFileContent", "Read the content of a file using cat", ReadFileInput)
    async def read_file_content(self, payload: ReadFileInput) -> Dict[str, Any]:
        quoted = shlex.quote(payload.file_path)
        command = f"head -n {payload.lines} {quoted}" if payload.lines else f"cat {quoted}"
        result = await self.run_command(command)
        if result.code != 0:
            log.failure("readFileContent", result.stderr)
            return {"error": result.stderr, "file_path": payload.file_path}
        return {
            "file_path": payload.file_path,
            "content": result.stdout,
            "lines": len(result.stdout.split("\n")),
        }

    @tool("getWhitelistedCommands", "Get list of all whitelisted commands that can be executed")
    def get_whitelisted_commands(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        return {
            "commands": [
                {"command": name, "description": rule.description, "allowed_flags": list(rule.allowed_flags)}
                for name, rule in COMMAND_WHITELIST.items()
            ]
        }

    async def execute(self, input: str) -> RuntimeResult:
        log.info("Executing: %s", truncate(input, 60))
        result = await self.runtime.invoke(input)
        log.success("execute", "Completed")
        return result
