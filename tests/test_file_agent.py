import pytest

from agent_oop.agents.file import FileAgent, detect_language
from agent_oop.errors import SchemaValidationError

from tests.conftest import DummyGroq, dummy_model


@pytest.mark.parametrize(
    "name, language",
    [("a.py", "python"), ("b.ts", "typescript"), ("c.JSX", "javascript"), ("README", "plaintext")],
)
def test_detect_language(name, language):
    assert detect_language(name) == language


def test_summary_rules_without_model(tmp_path):
    model = dummy_model()

    assert FileAgent(model, tmp_path / "a.py", "x = 1").summary == "Empty or minimal python file"
    commented = FileAgent(model, tmp_path / "b.py", "# Parses settings\nVALUE = 1\n")
    assert commented.summary == "python file (3 lines): Parses settings"
    exports = FileAgent(model, tmp_path / "c.ts", "export function alpha() {}\nexport const beta = 2;\n")
    assert exports.summary == "typescript file (3 lines): exports: alpha, beta"
    docstring = FileAgent(model, tmp_path / "d.py", '"""Command line entry."""\n\ndef main():\n    pass\n')
    assert docstring.summary == "python file (5 lines): Command line entry."


@pytest.mark.asyncio
async def test_write_persists_and_refreshes_summary(tmp_path):
    path = tmp_path / "notes.txt"
    agent = FileAgent(dummy_model(), path, "")

    result = await agent.run_operation("write", {"new_content": "hello"})

    assert result["status"] == "written"
    assert path.read_text() == "hello"
    assert agent.content == "hello"
    assert agent.summary == "Empty or minimal plaintext file"

    await agent.run_operation("write", {"new_content": "# Shopping list\neggs\nmilk\n"})
    assert agent.summary == "plaintext file (4 lines): Shopping list"


@pytest.mark.asyncio
async def test_large_files_are_summarized_by_the_model(tmp_path):
    client = DummyGroq("  Implements the billing engine.  ")
    agent = FileAgent(dummy_model(), tmp_path / "big.py", "")
    agent.model.client = client

    await agent.run_operation("write", {"new_content": "x = 1\n" * 200})

    assert agent.summary == "Implements the billing engine."
    assert "Summarize this python file" in client.prompts[0]


@pytest.mark.asyncio
async def test_summary_falls_back_when_model_fails(tmp_path):
    agent = FileAgent(dummy_model(RuntimeError("offline")), tmp_path / "big.py", "")

    result = await agent.run_operation("write", {"new_content": "y = 2\n" * 200})

    assert result["status"] == "written"
    assert agent.summary == "python file (201 lines)"


@pytest.mark.asyncio
async def test_reload_reads_disk(tmp_path):
    path = tmp_path / "app.py"
    path.write_text("# Original\n")
    agent = FileAgent.from_disk(dummy_model(), path)
    path.write_text("# Changed on disk\nA = 1\n")

    result = await agent.run_operation("reload")

    assert result == {"path": str(path), "status": "reloaded", "lines": 3}
    assert agent.summary == "python file (3 lines): Changed on disk"

    path.unlink()
    assert await agent.run_operation("reload") == {"error": f"File not found: {path}"}


@pytest.mark.asyncio
async def test_edit_rewrites_file_via_model(tmp_path):
    path = tmp_path / "greet.py"
    path.write_text("def greet():\n    return 'hi'\n")
    agent = FileAgent.from_disk(dummy_model("```python\ndef greet():\n    return 'hello'\n```"), path)

    result = await agent.run_operation("edit", {"instruction": "say hello"})

    assert result["status"] == "self-edited"
    assert path.read_text() == "def greet():\n    return 'hello'"
    assert result["new_summary"] == agent.summary


@pytest.mark.asyncio
async def test_edit_with_empty_answer_leaves_file_alone(tmp_path):
    path = tmp_path / "keep.py"
    path.write_text("A = 1\n")
    agent = FileAgent.from_disk(dummy_model("   "), path)

    result = await agent.run_operation("edit", {"instruction": "anything"})

    assert "error" in result
    assert path.read_text() == "A = 1\n"


@pytest.mark.asyncio
async def test_read_describe_analyze_delete(tmp_path):
    path = tmp_path / "mod.py"
    path.write_text("# Module\n")
    agent = FileAgent.from_disk(dummy_model("Looks fine."), path)

    assert (await agent.run_operation("read"))["content"] == "# Module\n"
    assert set(await agent.run_operation("describe")) == {"path", "language", "summary", "lines", "last_modified"}
    assert (await agent.run_operation("analyze", {"focus": "naming"}))["analysis"] == "Looks fine."

    assert (await agent.run_operation("delete"))["status"] == "deleted"
    assert not path.exists()


@pytest.mark.asyncio
async def test_edit_requires_instruction(tmp_path):
    agent = FileAgent(dummy_model(), tmp_path / "x.py", "")

    with pytest.raises(SchemaValidationError):
        await agent.run_operation("edit", {})

    assert agent.operation("edit").description.startswith("[Task] ")


@pytest.mark.asyncio
async def test_read_and_describe_do_not_change_the_file(tmp_path):
    path = tmp_path / "stable.py"
    path.write_text("# Stable module\nVALUE = 1\n")
    agent = FileAgent.from_disk(dummy_model(), path)

    first_read = await agent.run_operation("read")
    first_description = await agent.run_operation("describe")

    assert await agent.run_operation("read") == first_read
    assert await agent.run_operation("describe") == first_description
    assert path.read_text() == "# Stable module\nVALUE = 1\n"
    assert agent.model.client.prompts == []
