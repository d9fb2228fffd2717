"""
Senior engineer agent working on a codebase through self-describing agents.

The codebase is a `DirectoryAgent` tree. Instead of reading every file, the
engineer reasons over the tree of file summaries and only opens the files
the model marks as relevant.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from agent_oop.agent import BaseAgent
from agent_oop.agents.directory import DirectoryAgent
from agent_oop.agents.file import FileAgent
from agent_oop.errors import ToolCallError, not_found
from agent_oop.hooks import require_fields, validate_path
from agent_oop.logs import AgentLogger, truncate
from agent_oop.registry import EmptyInput, before, task, tool
from agent_oop.runtime import ChatModel, RuntimeResult
from agent_oop.utils import parse_json_response, strip_code_fences

log = AgentLogger(__name__, "Engineer")


class CreatePathInput(BaseModel):
    path: str = Field(description="Full path like 'src/utils/helpers.py'")
    content: str = ""


class PathInput(BaseModel):
    path: str


class EditPathInput(BaseModel):
    path: str
    instruction: str


class FeatureInput(BaseModel):
    feature: str = Field(description="Description of the feature to implement")


class RefactorInput(BaseModel):
    instruction: str
    paths: Optional[List[str]] = Field(
        default=None, description="Specific files to refactor, or all relevant files if omitted"
    )


class DebugInput(BaseModel):
    issue: str
    error_message: Optional[str] = None


class SeniorEngineerAgent(BaseAgent):
    def __init__(self, model: Union[ChatModel, str, None] = None, root_path: Union[str, Path] = "src") -> None:
        super().__init__(model)
        self.root = DirectoryAgent(self.model, root_path)

    # ------------------------------------------------------------- context
    def codebase_context(self) -> str:
        return self.root.get_tree()

    def find_file(self, path: str) -> Optional[FileAgent]:
        file = self.root.find_file_by_path(path)
        if file is None:
            log.step(f"File not found: {path}")
        return file

    async def find_relevant_files(self, description: str) -> List[FileAgent]:
        """Ask the model which files matter, using summaries only; all files on failure."""
        files = self.root.all_files()
        listing = "\n".join(f"{f.path}: {f.summary}" for f in files)
        prompt = (
            f'Given this task: "{description}"\n\n'
            f"Which files are relevant? Here are the files with their descriptions:\n{listing}\n\n"
            'Return ONLY a JSON array of file paths that are relevant, e.g. ["src/utils.py", "src/main.py"]'
        )
        paths = parse_json_response(await self.model.complete(prompt))
        if not isinstance(paths, list):
            return files
        chosen = {id(f) for f in (self.root.find_file_by_path(str(p)) for p in paths) if f is not None}
        return [f for f in files if id(f) in chosen]

    async def _step(self, name: str, payload: Dict[str, Any]) -> Any:
        try:
            return await self.run_operation(name, payload)
        except ToolCallError as exc:
            log.failure(name, exc.message)
            return {"error": exc.message, "type": exc.error_type}

    async def _edit(self, file: FileAgent, instruction: str) -> Any:
        try:
            return await file.run_operation("edit", {"instruction": instruction})
        except ToolCallError as exc:
            log.failure("edit", exc.message)
            return {"error": exc.message, "path": str(file.path)}

    # --------------------------------------------------------------- tools
    @tool("understand", "Understand the current codebase structure using self-descriptions")
    def understand(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        structure = self.codebase_context()
        log.success("understand", f"Found {len(structure.splitlines())} items")
        return {"structure": structure, "summary": self.root.summary}

    @tool("createFile", "Create a new file at a path, creating directories as needed", CreatePathInput)
    @before(validate_path)
    async def create_file(self, payload: CreatePathInput) -> Dict[str, Any]:
        log.tool("createFile", {"path": payload.path, "content_length": len(payload.content)})
        parts = self.root.relative_parts(payload.path)
        if not parts:
            raise ValueError(f"No file name in path: {payload.path}")

        current = self.root
        for dir_name in parts[:-1]:
            if dir_name not in current.directories:
                log.step(f"Creating directory: {dir_name}")
                await current.run_operation("createDirectory", {"name": dir_name})
            current = current.directories[dir_name]

        result = await current.run_operation("createFile", {"name": parts[-1], "content": payload.content})
        # Parents re-describe themselves once the new file is in place.
        self._refresh_parents(parts[:-1])
        log.success("createFile", payload.path)
        return result

    def _refresh_parents(self, dir_names: List[str]) -> None:
        chain = [self.root]
        for name in dir_names:
            chain.append(chain[-1].directories[name])
        for directory in reversed(chain):
            directory.update_summary()

    @tool("readFile", "Read a file's contents", PathInput)
    def read_file(self, payload: PathInput) -> Dict[str, Any]:
        file = self.find_file(payload.path)
        if file is None:
            return not_found("File", payload.path)
        return file.read()

    @tool("editFile", "Edit a file using natural language instructions", EditPathInput)
    @before(require_fields("path", "instruction"))
    async def edit_file(self, payload: EditPathInput) -> Dict[str, Any]:
        log.tool("editFile", {"path": payload.path, "instruction": payload.instruction[:50]})
        file = self.find_file(payload.path)
        if file is None:
            return not_found("File", payload.path)
        result = await self._edit(file, payload.instruction)
        self.root.update_summary()
        return result

    @task("implement", "Implement a feature across the codebase", input_schema=FeatureInput)
    async def implement(self, payload: FeatureInput) -> Dict[str, Any]:
        feature = payload.feature
        log.info("Implementing: %s", feature)
        plan_prompt = (
            f'You are implementing: "{feature}"\n\n'
            f"Current codebase:\n{self.codebase_context()}\n\n"
            "Create a step-by-step plan. For each step, specify:\n"
            '- action: "create" | "edit" | "delete"\n'
            "- path: file path\n"
            "- description: what to do\n\n"
            "Return as JSON array: [{ action, path, description }]"
        )
        steps = parse_json_response(await self.model.complete(plan_prompt))
        if not isinstance(steps, list):
            log.failure("implement", "Failed to parse implementation plan")
            return {"error": "Failed to parse implementation plan"}
        log.step(f"Plan has {len(steps)} steps")

        results: List[Dict[str, Any]] = []
        for step in steps:
            if not isinstance(step, dict):
                continue
            action, path = step.get("action"), str(step.get("path", ""))
            description = str(step.get("description", ""))
            log.step(f"{action}: {path}")
            if action == "create":
                content_prompt = (
                    f'Generate the content for a new file at "{path}".\n'
                    f"Purpose: {description}\nFeature: {feature}\n\n"
                    "Return ONLY the file content, no explanations."
                )
                content = strip_code_fences(await self.model.complete(content_prompt))
                result = await self._step("createFile", {"path": path, "content": content})
            elif action == "edit":
                result = await self._step("editFile", {"path": path, "instruction": description})
            elif action == "delete":
                result = await self._delete(path)
            else:
                result = {"error": f"Unknown action: {action}"}
            results.append({"step": step, "result": result})

        log.success("implement", f"Completed {len(results)} steps")
        return {
            "feature": feature,
            "steps_executed": len(results),
            "results": results,
            "new_structure": self.codebase_context(),
        }

    async def _delete(self, path: str) -> Any:
        parts = self.root.relative_parts(path)
        current = self.root
        for dir_name in parts[:-1]:
            if dir_name not in current.directories:
                return not_found("File", path)
            current = current.directories[dir_name]
        if not parts:
            return not_found("File", path)
        try:
            return await current.run_operation("deleteFile", {"name": parts[-1]})
        except ToolCallError as exc:
            return {"error": exc.message, "path": path}
        finally:
            self._refresh_parents(parts[:-1])

    @task("refactor", "Refactor code based on instructions", input_schema=RefactorInput)
    async def refactor(self, payload: RefactorInput) -> Dict[str, Any]:
        if payload.paths:
            files = [f for f in (self.find_file(p) for p in payload.paths) if f is not None]
        else:
            files = await self.find_relevant_files(payload.instruction)
        log.info("Refactoring %d files", len(files))

        results = []
        for file in files:
            log.step(f"Editing {file.path}")
            results.append(await self._edit(file, payload.instruction))
        self.root.update_summary()
        return {"instruction": payload.instruction, "files_refactored": len(results), "results": results}

    @task("debug", "Debug an issue in the codebase and apply fixes", input_schema=DebugInput)
    async def debug(self, payload: DebugInput) -> Dict[str, Any]:
        log.info("Debugging: %s", payload.issue)
        files = await self.find_relevant_files(payload.issue)
        log.step(f"Found {len(files)} relevant files")
        code = "\n\n".join(f"# {f.path}\n{f.content}" for f in files)
        error_line = f"Error: {payload.error_message}\n" if payload.error_message else ""
        prompt = (
            f'Debug this issue: "{payload.issue}"\n{error_line}\n'
            f"Relevant code:\n{code}\n\n"
            "Identify:\n1. Root cause\n2. Which files need changes\n3. The fix\n\n"
            "Return as JSON: { rootCause, filesToFix: [{ path, fix }] }"
        )
        response = await self.model.complete(prompt)
        analysis = parse_json_response(response)
        if not isinstance(analysis, dict):
            log.failure("debug", "Failed to parse debug analysis")
            return {"error": "Failed to parse debug analysis", "analysis": response}

        root_cause = analysis.get("rootCause", "")
        log.step(f"Root cause: {root_cause}")
        results = []
        for fix in analysis.get("filesToFix") or []:
            if isinstance(fix, dict) and fix.get("path"):
                results.append(await self._step("editFile", {"path": fix["path"], "instruction": str(fix.get("fix", ""))}))
        return {
            "issue": payload.issue,
            "root_cause": root_cause,
            "files_fixed": len(results),
            "results": results,
        }

    async def execute(self, input: str) -> RuntimeResult:
        log.info("Executing: %s", truncate(input, 60))
        result = await self.runtime.invoke(input)
        log.success("execute", "Completed")
        return result
