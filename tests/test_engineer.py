import json

import pytest

from agent_oop.agents.engineer import SeniorEngineerAgent
from agent_oop.errors import PreconditionError

from tests.conftest import DummyGroq, dummy_model


@pytest.fixture
def codebase(tmp_path):
    root = tmp_path.resolve()
    (root / "main.py").write_text("# Entry point\nprint('hi')\n")
    (root / "old.py").write_text("# Legacy helpers\n")
    (root / "lib").mkdir()
    (root / "lib" / "math_utils.py").write_text("# Math helpers\ndef add(a, b):\n    return a + b\n")
    return root


def engineer(root, *responses):
    return SeniorEngineerAgent(dummy_model(*responses), root)


@pytest.mark.asyncio
async def test_understand_returns_the_summary_tree(codebase):
    agent = engineer(codebase)

    result = await agent.run_operation("understand")

    assert "  - main.py - python file (3 lines): Entry point" in result["structure"]
    assert "  - math_utils.py - python file (4 lines): Math helpers" in result["structure"]
    assert result["summary"].startswith("2 files, 1 subdirs")


@pytest.mark.asyncio
async def test_create_file_builds_missing_directories(codebase):
    agent = engineer(codebase)

    result = await agent.run_operation("createFile", {"path": "api/v1/routes.py", "content": "# Routes\nROUTES = []\n"})

    assert result["status"] == "created"
    assert (codebase / "api" / "v1" / "routes.py").read_text() == "# Routes\nROUTES = []\n"
    assert "routes.py" in agent.root.directories["api"].directories["v1"].files
    assert "api/: 0 files, 1 subdirs" in agent.root.summary


@pytest.mark.asyncio
async def test_create_file_rejects_traversal(codebase):
    agent = engineer(codebase)

    with pytest.raises(PreconditionError, match="traversal"):
        await agent.run_operation("createFile", {"path": "../outside.py"})


@pytest.mark.asyncio
async def test_read_and_edit_file(codebase):
    agent = engineer(codebase, "# Math helpers\ndef add(a, b):\n    return sum((a, b))\n")

    read = await agent.run_operation("readFile", {"path": "lib/math_utils.py"})
    assert read["content"].startswith("# Math helpers")
    assert await agent.run_operation("readFile", {"path": "lib/nope.py"}) == {"error": "File not found: lib/nope.py"}

    edited = await agent.run_operation("editFile", {"path": "lib/math_utils.py", "instruction": "use sum"})
    assert edited["status"] == "self-edited"
    assert "sum((a, b))" in (codebase / "lib" / "math_utils.py").read_text()


@pytest.mark.asyncio
async def test_implement_runs_each_planned_step(codebase):
    plan = [
        {"action": "create", "path": "lib/strings.py", "description": "String helpers"},
        {"action": "edit", "path": "main.py", "description": "Use the helpers"},
        {"action": "delete", "path": "old.py", "description": "Drop legacy code"},
        {"action": "rename", "path": "main.py", "description": "?"},
    ]
    client = DummyGroq(
        f"Here is the plan:\n```json\n{json.dumps(plan)}\n```",
        "```python\n# String helpers\ndef shout(s):\n    return s.upper()\n```",
        "# Entry point\nfrom lib.strings import shout\nprint(shout('hi'))\n",
    )
    agent = SeniorEngineerAgent(dummy_model(), codebase)
    agent.model.client = client

    result = await agent.run_operation("implement", {"feature": "Shouting"})

    assert result["steps_executed"] == 4
    statuses = [step["result"].get("status") for step in result["results"]]
    assert statuses == ["created", "self-edited", "deleted", None]
    assert result["results"][3]["result"] == {"error": "Unknown action: rename"}
    assert (codebase / "lib" / "strings.py").read_text() == "# String helpers\ndef shout(s):\n    return s.upper()"
    assert "shout('hi')" in (codebase / "main.py").read_text()
    assert not (codebase / "old.py").exists()
    assert "strings.py" in result["new_structure"]
    assert "Shouting" in client.prompts[0]


@pytest.mark.asyncio
async def test_implement_reports_unparseable_plan(codebase):
    agent = engineer(codebase, "I would rather not.")

    assert await agent.run_operation("implement", {"feature": "x"}) == {"error": "Failed to parse implementation plan"}


@pytest.mark.asyncio
async def test_refactor_edits_files_the_model_selects(codebase):
    client = DummyGroq(
        json.dumps([str(codebase / "lib" / "math_utils.py"), "missing.py"]),
        "# Math helpers\ndef add(a: int, b: int) -> int:\n    return a + b\n",
    )
    agent = SeniorEngineerAgent(dummy_model(), codebase)
    agent.model.client = client

    result = await agent.run_operation("refactor", {"instruction": "add type hints"})

    assert result["files_refactored"] == 1
    assert "a: int" in (codebase / "lib" / "math_utils.py").read_text()
    assert "math_utils.py: python file (4 lines): Math helpers" in client.prompts[0]


@pytest.mark.asyncio
async def test_debug_applies_fixes(codebase):
    analysis = {"rootCause": "Wrong greeting", "filesToFix": [{"path": "main.py", "fix": "print hello"}]}
    client = DummyGroq(
        "not json at all",
        json.dumps(analysis),
        "# Entry point\nprint('hello')\n",
    )
    agent = SeniorEngineerAgent(dummy_model(), codebase)
    agent.model.client = client

    result = await agent.run_operation("debug", {"issue": "Greets wrong", "error_message": "AssertionError"})

    assert result["root_cause"] == "Wrong greeting"
    assert result["files_fixed"] == 1
    assert (codebase / "main.py").read_text() == "# Entry point\nprint('hello')"
    # Unparseable file selection falls back to every file.
    assert "# " + str(codebase / "old.py") in client.prompts[1]
    assert "Error: AssertionError" in client.prompts[1]


@pytest.mark.asyncio
async def test_debug_reports_unparseable_analysis(codebase):
    agent = engineer(codebase, "[]", "no idea")

    result = await agent.run_operation("debug", {"issue": "broken"})

    assert result == {"error": "Failed to parse debug analysis", "analysis": "no idea"}
