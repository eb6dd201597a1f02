"""Tests for basic and advanced diagram generation."""

from typing import Optional

import pytest

from narrator.app.core.config import Settings
from narrator.app.forge.models import EntryKind, PathEntry
from narrator.app.providers.base import TextGenerator
from narrator.app.services.diagram import (
    EMPTY_DIAGRAM,
    DiagramGenerator,
    DiagramMode,
    clean_diagram_reply,
)
from narrator.app.services.tree_graph import GraphOptions


class StubGenerator(TextGenerator):
    def __init__(self, reply: Optional[str]):
        self.reply = reply
        self.prompts = []

    async def generate(self, prompt, *, system_prompt=None, max_tokens=None):
        self.prompts.append(prompt)
        return self.reply

    async def health_check(self, timeout: float = 2.0) -> bool:
        return self.reply is not None


ENTRIES = [
    PathEntry(path="src", kind=EntryKind.TREE),
    PathEntry(path="src/app.py", kind=EntryKind.BLOB),
    PathEntry(path="node_modules/x.js", kind=EntryKind.BLOB),
]


def test_basic_renders_graph():
    definition = DiagramGenerator().generate_basic(ENTRIES, title="octo/demo")
    assert definition.startswith("graph LR\nroot[\"octo/demo\"]")
    assert "node_modules" not in definition


def test_basic_with_no_entries():
    assert DiagramGenerator().generate_basic([]) == EMPTY_DIAGRAM


@pytest.mark.asyncio
async def test_basic_mode_result():
    result = await DiagramGenerator().generate(ENTRIES, mode=DiagramMode.BASIC)
    assert result.mode is DiagramMode.BASIC
    assert result.fallback_reason is None


@pytest.mark.asyncio
async def test_advanced_without_generator_falls_back():
    result = await DiagramGenerator().generate(ENTRIES, mode=DiagramMode.ADVANCED, title="octo/demo")
    assert result.mode is DiagramMode.BASIC
    assert result.fallback_reason is not None
    assert result.definition.startswith("graph LR")


@pytest.mark.asyncio
async def test_advanced_accepts_fenced_reply():
    stub = StubGenerator("```mermaid\ngraph TD\n  UI --> API\n```")
    diagrams = DiagramGenerator(text_generator=stub)

    result = await diagrams.generate(
        ENTRIES,
        mode="advanced",
        title="octo/demo",
        description="Demo app",
        languages=["Python"],
    )

    assert result.mode is DiagramMode.ADVANCED
    assert result.definition == "graph TD\n  UI --> API"
    prompt = stub.prompts[0]
    assert "src/app.py" in prompt
    assert "node_modules" not in prompt
    assert "Python" in prompt


@pytest.mark.asyncio
async def test_advanced_accepts_flowchart_keyword():
    diagrams = DiagramGenerator(text_generator=StubGenerator("flowchart LR\nA --> B"))
    result = await diagrams.generate(ENTRIES, mode=DiagramMode.ADVANCED)
    assert result.definition == "flowchart LR\nA --> B"


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [None, "", "Here is your diagram: A -> B"])
async def test_advanced_unusable_reply_falls_back(reply):
    diagrams = DiagramGenerator(text_generator=StubGenerator(reply))
    result = await diagrams.generate(ENTRIES, mode=DiagramMode.ADVANCED, title="octo/demo")

    assert result.mode is DiagramMode.BASIC
    assert result.fallback_reason is not None
    assert result.definition == diagrams.generate_basic(ENTRIES, "octo/demo")


@pytest.mark.asyncio
async def test_advanced_context_is_bounded():
    entries = [PathEntry(path=f"file{i:03d}.py", kind=EntryKind.BLOB) for i in range(200)]
    stub = StubGenerator("graph TD\nA --> B")
    diagrams = DiagramGenerator(text_generator=stub, context_max_chars=50)

    await diagrams.generate(entries, mode=DiagramMode.ADVANCED)

    structure = stub.prompts[0].split("File Structure:\n", 1)[1].split("\n\nRules:", 1)[0]
    assert len(structure) <= 50


def test_from_settings_uses_diagram_bounds():
    config = Settings(
        _env_file=None,
        diagram_max_nodes=7,
        diagram_max_depth=2,
        diagram_ignore_names="vendor,dist",
    )
    diagrams = DiagramGenerator.from_settings(config)
    assert diagrams.options == GraphOptions(max_nodes=7, max_depth=2, ignore_names={"vendor", "dist"})


def test_clean_reply_strips_fences():
    assert clean_diagram_reply("```\ngraph TD\nA\n```") == "graph TD\nA"
