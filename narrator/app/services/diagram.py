"""Mermaid diagram generation.

Basic mode renders the tree graph directly. Advanced mode asks the text
generator for an architecture flowchart and falls back to the basic
rendering whenever that is not possible.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

from narrator.app.core.config import Settings
from narrator.app.core.logging import get_logger
from narrator.app.forge.models import PathEntry
from narrator.app.providers.base import TextGenerator
from narrator.app.services.tree_graph import GraphOptions, TreeGraphBuilder

logger = get_logger(__name__)

EMPTY_DIAGRAM = "graph TD\nEmpty[No Data Available]"

_CODE_FENCE = re.compile(r"```(?:mermaid)?")
_ACCEPTED_PREFIXES = ("graph", "flowchart")

ADVANCED_SYSTEM_PROMPT = "You are an expert software architect generating Mermaid diagrams."


class DiagramMode(str, Enum):
    BASIC = "basic"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class DiagramResult:
    mode: DiagramMode
    definition: str
    fallback_reason: Optional[str] = None


class DiagramGenerator:
    def __init__(
        self,
        builder: Optional[TreeGraphBuilder] = None,
        options: Optional[GraphOptions] = None,
        text_generator: Optional[TextGenerator] = None,
        context_max_chars: int = 2000,
    ):
        self.options = options or GraphOptions()
        self.builder = builder or TreeGraphBuilder(self.options)
        self.text_generator = text_generator
        self.context_max_chars = context_max_chars

    @classmethod
    def from_settings(
        cls, config: Settings, text_generator: Optional[TextGenerator] = None
    ) -> "DiagramGenerator":
        options = GraphOptions(
            max_nodes=config.diagram_max_nodes,
            max_depth=config.diagram_max_depth,
            ignore_names=frozenset(config.diagram_ignore_names),
        )
        return cls(
            options=options,
            text_generator=text_generator,
            context_max_chars=config.advanced_context_max_chars,
        )

    def generate_basic(self, entries: Sequence[PathEntry], title: str = "Repository") -> str:
        if not entries:
            return EMPTY_DIAGRAM
        graph = self.builder.build(entries, root_label=title, options=self.options)
        return graph.render()

    async def generate(
        self,
        entries: Sequence[PathEntry],
        mode: DiagramMode = DiagramMode.BASIC,
        title: str = "Repository",
        description: Optional[str] = None,
        languages: Iterable[str] = (),
    ) -> DiagramResult:
        mode = DiagramMode(mode)
        if mode is DiagramMode.BASIC or not entries:
            return DiagramResult(mode=DiagramMode.BASIC, definition=self.generate_basic(entries, title))

        if self.text_generator is None:
            return self._fallback(entries, title, "Text generation is not configured")

        definition = await self.generate_advanced(entries, title, description, languages)
        if definition is None:
            return self._fallback(entries, title, "Text generation did not return a usable diagram")
        return DiagramResult(mode=DiagramMode.ADVANCED, definition=definition)

    async def generate_advanced(
        self,
        entries: Sequence[PathEntry],
        title: str,
        description: Optional[str] = None,
        languages: Iterable[str] = (),
    ) -> Optional[str]:
        """Ask the generator for an architecture flowchart.

        Returns None when the generator is absent, unavailable, or replies
        with something that is not a Mermaid graph.
        """
        if self.text_generator is None:
            return None

        paths = self.builder.flat_paths(entries, max_chars=self.context_max_chars, options=self.options)
        prompt = self._advanced_prompt(title, description, languages, paths)
        reply = await self.text_generator.generate(prompt, system_prompt=ADVANCED_SYSTEM_PROMPT)
        if not reply:
            return None

        cleaned = clean_diagram_reply(reply)
        if not cleaned.startswith(_ACCEPTED_PREFIXES):
            logger.warning("Discarding generated diagram that is not a Mermaid graph")
            return None
        return cleaned

    def _fallback(self, entries: Sequence[PathEntry], title: str, reason: str) -> DiagramResult:
        logger.info(f"Falling back to basic diagram: {reason}")
        return DiagramResult(
            mode=DiagramMode.BASIC,
            definition=self.generate_basic(entries, title),
            fallback_reason=reason,
        )

    @staticmethod
    def _advanced_prompt(
        title: str, description: Optional[str], languages: Iterable[str], paths: Sequence[str]
    ) -> str:
        structure = "\n".join(paths)
        return (
            "Generate a Mermaid.js flowchart (graph TD) representing the high-level "
            "architecture of this project.\n\n"
            f"Project: {title}\n"
            f"Description: {description or 'N/A'}\n"
            f"Tech Stack: {', '.join(languages)}\n\n"
            f"File Structure:\n{structure}\n\n"
            "Rules:\n"
            "1. Group logic into components (e.g. UI, API, Services, Database, Core).\n"
            "2. Focus on how modules interact.\n"
            "3. Do not list files; abstract them into architectural blocks.\n"
            '4. Return ONLY the Mermaid code starting with "graph TD".\n'
            "5. Keep it concise."
        )


def clean_diagram_reply(reply: str) -> str:
    return _CODE_FENCE.sub("", reply).strip()
